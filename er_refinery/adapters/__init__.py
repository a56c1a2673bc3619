"""Adapters layer for ER-Refinery.

Ingesters read raw visit exports; storage adapters persist the analytics
relation consumed by reporting.
"""
