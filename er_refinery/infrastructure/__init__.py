"""Infrastructure layer for ER-Refinery.

Configuration loading, application settings, logging setup and data quality
reporting.
"""
