"""JSON Raw Visit Ingestion Adapter.

This adapter implements the IngestionPort contract for JSON exports of the
visit log. Values of any JSON type are coerced to text so the pipeline sees
the same raw shape as from CSV.

Architecture:
    - Implements IngestionPort (Hexagonal Architecture)
    - Loads the document once, then yields fixed-size DataFrame chunks
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import pandas as pd

from er_refinery.adapters.ingesters.raw_frames import resolve_column_mapping, to_raw_frame
from er_refinery.domain.ports import (
    IngestionPort,
    Result,
    SourceNotFoundError,
    UnsupportedSourceError,
)

logger = logging.getLogger(__name__)


class JSONIngester(IngestionPort):
    """JSON ingestion adapter.

    Supported structures:
        - Array of visit objects: [{"visit_id": "V1", ...}, ...]
        - Wrapper object: {"visits": [...]}, {"records": [...]} or {"data": [...]}
        - Single visit object: {"visit_id": "V1", ...}
    """

    WRAPPER_KEYS = ('visits', 'records', 'data')

    def __init__(self, column_mapping: Optional[Dict[str, str]] = None, chunk_size: int = 10000):
        """Initialize JSON ingester.

        Parameters:
            column_mapping: Raw field -> JSON key overrides
            chunk_size: Records per yielded chunk
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive. Got: {chunk_size}")

        self.column_mapping = column_mapping or {}
        self.chunk_size = chunk_size
        self.adapter_name = "json_ingester"

    def can_ingest(self, source: str) -> bool:
        if not source:
            return False
        return Path(source).suffix.lower() == '.json'

    def get_source_info(self, source: str) -> Optional[dict]:
        try:
            source_path = Path(source)
            if source_path.exists():
                return {
                    'format': 'json',
                    'size': source_path.stat().st_size,
                    'encoding': 'utf-8',
                    'exists': True,
                }
        except (OSError, ValueError):
            pass

        return None

    def ingest(self, source: str) -> Iterator[Result[pd.DataFrame]]:
        """Ingest raw visits from a JSON file in chunks.

        Parameters:
            source: Path to JSON file

        Yields:
            Result[pd.DataFrame]: Text-only frame with one column per raw field

        Raises:
            SourceNotFoundError: If source file doesn't exist or cannot be read
            UnsupportedSourceError: If source is not valid JSON or has an
                                    unsupported structure
        """
        source_path = Path(source)
        if not source_path.exists():
            raise SourceNotFoundError(f"JSON source not found: {source}", source=source)

        try:
            with open(source_path, 'r', encoding='utf-8') as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise UnsupportedSourceError(
                f"Invalid JSON format in {source}: {str(e)}",
                source=source,
                adapter=self.adapter_name
            )
        except OSError as e:
            raise SourceNotFoundError(f"Cannot read JSON source {source}: {str(e)}", source=source)

        records = self._extract_records(raw_data, source)
        if not records:
            logger.warning(f"No records found in {source}")
            return

        frame = pd.DataFrame([self._to_text_record(record) for record in records])
        mapping = resolve_column_mapping(frame.columns.tolist(), self.column_mapping)
        if 'visit_id' not in mapping:
            raise UnsupportedSourceError(
                f"JSON source {source} has no visit_id field",
                source=source,
                adapter=self.adapter_name
            )

        chunk_count = 0
        for start in range(0, len(frame), self.chunk_size):
            chunk_count += 1
            yield Result.success_result(to_raw_frame(frame.iloc[start:start + self.chunk_size], mapping))

        logger.info(f"JSON ingestion complete: {source} - {len(frame)} rows ({chunk_count} chunks)")

    def _extract_records(self, raw_data: Any, source: str) -> list[dict]:
        """Extract the list of visit objects from the parsed document."""
        if isinstance(raw_data, list):
            records = raw_data
        elif isinstance(raw_data, dict):
            for key in self.WRAPPER_KEYS:
                if isinstance(raw_data.get(key), list):
                    records = raw_data[key]
                    break
            else:
                records = [raw_data]
        else:
            raise UnsupportedSourceError(
                f"Unsupported JSON structure: expected array or object, got {type(raw_data).__name__}",
                source=source,
                adapter=self.adapter_name
            )

        non_objects = [index for index, record in enumerate(records) if not isinstance(record, dict)]
        if non_objects:
            raise UnsupportedSourceError(
                f"JSON source {source} contains non-object records at positions {non_objects[:10]}",
                source=source,
                adapter=self.adapter_name
            )
        return records

    @staticmethod
    def _to_text_record(record: dict) -> dict:
        """Coerce scalar JSON values to text, keeping null as None."""
        text_record = {}
        for key, value in record.items():
            if value is None:
                text_record[key] = None
            elif isinstance(value, bool):
                text_record[key] = str(value).lower()
            elif isinstance(value, (dict, list)):
                text_record[key] = json.dumps(value)
            else:
                text_record[key] = str(value)
        return text_record
