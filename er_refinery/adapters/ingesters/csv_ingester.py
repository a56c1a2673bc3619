"""CSV Raw Visit Ingestion Adapter.

This adapter implements the IngestionPort contract for CSV exports of the
emergency-department visit log. Every column is read as text: the source
mixes timestamp encodings and invalid age tokens that a typed load would
reject or silently coerce.

Architecture:
    - Implements IngestionPort (Hexagonal Architecture)
    - Configurable column mapping via dictionary or header detection
    - pandas chunked reading keeps memory bounded on large exports
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional

import pandas as pd

from er_refinery.adapters.ingesters.raw_frames import (
    NULL_TOKENS,
    resolve_column_mapping,
    to_raw_frame,
)
from er_refinery.domain.ports import (
    IngestionPort,
    Result,
    SourceNotFoundError,
    UnsupportedSourceError,
)

logger = logging.getLogger(__name__)


class CSVIngester(IngestionPort):
    """CSV ingestion adapter with configurable column mapping.

    Column Mapping Format:
        {
            "visit_id": "VisitID",
            "arrival_time": "Arrival",
            ...
        }

    Unmapped raw fields fall back to a header of the same name; fields with no
    column at all are filled with None.
    """

    def __init__(
        self,
        column_mapping: Optional[Dict[str, str]] = None,
        delimiter: str = ',',
        chunk_size: int = 10000,
        encoding: str = 'utf-8',
    ):
        """Initialize CSV ingester.

        Parameters:
            column_mapping: Raw field -> CSV column name overrides
            delimiter: CSV delimiter (TSV files always use a tab)
            chunk_size: Rows per yielded chunk
            encoding: File encoding
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive. Got: {chunk_size}")

        self.column_mapping = column_mapping or {}
        self.delimiter = delimiter
        self.chunk_size = chunk_size
        self.encoding = encoding
        self.adapter_name = "csv_ingester"

    def can_ingest(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier (file path)

        Returns:
            bool: True if source is a CSV/TSV file, False otherwise
        """
        if not source:
            return False
        return Path(source).suffix.lower() in ('.csv', '.tsv')

    def get_source_info(self, source: str) -> Optional[dict]:
        """Get metadata about the CSV source."""
        try:
            source_path = Path(source)
            if source_path.exists():
                return {
                    'format': 'csv',
                    'size': source_path.stat().st_size,
                    'encoding': self.encoding,
                    'exists': True,
                    'delimiter': self._delimiter_for(source_path),
                }
        except (OSError, ValueError):
            pass

        return None

    def ingest(self, source: str) -> Iterator[Result[pd.DataFrame]]:
        """Ingest raw visits from a CSV file in chunks.

        Parameters:
            source: Path to CSV file

        Yields:
            Result[pd.DataFrame]: Text-only frame with one column per raw field

        Raises:
            SourceNotFoundError: If source file doesn't exist
            UnsupportedSourceError: If the file is empty, unparsable or lacks
                                    a visit_id column
        """
        source_path = Path(source)
        if not source_path.exists():
            raise SourceNotFoundError(f"CSV source not found: {source}", source=source)

        delimiter = self._delimiter_for(source_path)

        try:
            chunk_iterator = pd.read_csv(
                source_path,
                chunksize=self.chunk_size,
                delimiter=delimiter,
                dtype=str,
                keep_default_na=False,
                na_values=list(NULL_TOKENS),
                encoding=self.encoding,
            )

            mapping = None
            chunk_count = 0
            total_rows = 0
            for chunk_df in chunk_iterator:
                chunk_count += 1
                if mapping is None:
                    mapping = resolve_column_mapping(chunk_df.columns.tolist(), self.column_mapping)
                    if 'visit_id' not in mapping:
                        raise UnsupportedSourceError(
                            f"CSV file {source} has no visit_id column",
                            source=source,
                            adapter=self.adapter_name
                        )
                    if 'arrival_time' not in mapping:
                        logger.warning(f"CSV file {source} has no arrival_time column")

                raw_df = to_raw_frame(chunk_df, mapping)
                total_rows += len(raw_df)
                logger.debug(f"Chunk {chunk_count} from {source}: {len(raw_df)} rows")
                yield Result.success_result(raw_df)

            logger.info(f"CSV ingestion complete: {source} - {total_rows} rows ({chunk_count} chunks)")

        except pd.errors.EmptyDataError:
            raise UnsupportedSourceError(
                f"CSV file {source} is empty",
                source=source,
                adapter=self.adapter_name
            )
        except pd.errors.ParserError as e:
            raise UnsupportedSourceError(
                f"CSV file {source} could not be parsed: {str(e)}",
                source=source,
                adapter=self.adapter_name
            )

    def _delimiter_for(self, source_path: Path) -> str:
        return '\t' if source_path.suffix.lower() == '.tsv' else self.delimiter
