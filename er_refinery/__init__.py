"""ER-Refinery: emergency department visit standardization and enrichment.

Raw visit exports are deduplicated, standardized (timestamps, complaints,
ages, identifiers) and enriched with wait-time KPIs, LWBS status and
revenue-leakage estimates.
"""

__version__ = "1.0.0"
