"""Storage adapters for ER-Refinery.

This module contains storage adapters that implement the StoragePort interface
for persisting the analytics visit relation and the pipeline audit trail.
"""

from er_refinery.adapters.storage.duckdb_adapter import DuckDBAdapter

__all__ = ["DuckDBAdapter"]
