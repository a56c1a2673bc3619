"""Ingestion adapters for ER-Refinery.

This module contains ingestion adapters that implement the IngestionPort interface
for reading raw visit exports (CSV, TSV, JSON).
"""

from pathlib import Path

from er_refinery.adapters.ingesters.csv_ingester import CSVIngester
from er_refinery.adapters.ingesters.json_ingester import JSONIngester
from er_refinery.adapters.ingesters.raw_frames import to_raw_records
from er_refinery.domain.ports import IngestionPort, UnsupportedSourceError

__all__ = ["CSVIngester", "JSONIngester", "get_adapter", "to_raw_records"]


def get_adapter(source: str, **kwargs) -> IngestionPort:
    """Factory function to get the appropriate ingestion adapter for a source.

    Parameters:
        source: Source identifier (file path)
        **kwargs: Additional arguments passed to adapter constructors
            (column_mapping, chunk_size, ...)

    Returns:
        IngestionPort: Appropriate adapter instance

    Raises:
        UnsupportedSourceError: If no adapter can handle the source

    Example Usage:
        ```python
        adapter = get_adapter("er_visits.csv", chunk_size=5000)
        for result in adapter.ingest("er_visits.csv"):
            ...
        ```
    """
    extension = Path(source).suffix.lower()

    adapters = [
        ((".csv", ".tsv"), CSVIngester),
        ((".json",), JSONIngester),
    ]

    for extensions, adapter_class in adapters:
        if extension in extensions:
            try:
                return adapter_class(**kwargs)
            except (TypeError, ValueError) as e:
                raise UnsupportedSourceError(
                    f"Failed to create {adapter_class.__name__}: {str(e)}",
                    source=source,
                    adapter=adapter_class.__name__
                )

    raise UnsupportedSourceError(
        f"No adapter found for source: {source}. Supported formats: CSV, TSV, JSON",
        source=source
    )
