"""Raw Frame Helpers shared by the ingestion adapters.

Ingesters hand the pipeline text-only DataFrames shaped like the raw visit
record. These helpers apply column mappings, normalize null tokens and turn a
frame into RawVisitRecord objects while enforcing the structural contract.
"""

import logging
from typing import Iterator, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from er_refinery.domain.ports import ValidationError
from er_refinery.domain.visit_records import RAW_FIELDS, RawVisitRecord

logger = logging.getLogger(__name__)

# Tokens the source store treats as SQL NULL
NULL_TOKENS = ("NULL", "null", "")


def resolve_column_mapping(columns: list[str], column_mapping: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Map raw field names to the source columns that hold them.

    Header matching is case-insensitive and ignores surrounding whitespace.
    Without an explicit mapping each raw field maps to the header of the same
    name, when present.

    Parameters:
        columns: Source column names
        column_mapping: Optional raw field -> source column overrides

    Returns:
        dict: raw field -> actual source column (fields with no column are omitted)
    """
    header_map = {str(column).strip().lower(): column for column in columns}
    mapping = {}
    overrides = column_mapping or {}

    for field_name in RAW_FIELDS:
        wanted = overrides.get(field_name, field_name)
        actual = header_map.get(wanted.strip().lower())
        if actual is not None:
            mapping[field_name] = actual

    return mapping


def to_raw_frame(df: pd.DataFrame, mapping: dict[str, str]) -> pd.DataFrame:
    """Project a source frame onto the raw visit columns.

    Every value becomes str or None; absent columns are filled with None and
    null tokens become None. The frame is built with object dtype so pandas
    keeps None instead of inferring a string dtype that stores NaN.
    """
    columns = {}
    for field_name in RAW_FIELDS:
        source_column = mapping.get(field_name)
        if source_column is None:
            columns[field_name] = [None] * len(df)
            continue

        columns[field_name] = [_normalize_text(value) for value in df[source_column].tolist()]

    return pd.DataFrame(columns, columns=list(RAW_FIELDS), dtype=object)


def _normalize_text(value) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = value if isinstance(value, str) else str(value)
    if text in NULL_TOKENS:
        return None
    return text


def to_raw_records(df: pd.DataFrame, source: Optional[str] = None, row_offset: int = 0) -> Iterator[RawVisitRecord]:
    """Convert a raw frame into RawVisitRecords.

    Parameters:
        df: Frame produced by ``to_raw_frame``
        source: Source identifier for error reporting
        row_offset: Row number of the frame's first row within the source

    Yields:
        RawVisitRecord per row

    Raises:
        ValidationError: A row has no visit_id or no arrival_time text. These
                         are input contract violations and are not repaired.
    """
    for position, row in enumerate(df.to_dict(orient="records")):
        row_number = row_offset + position
        values = {field_name: _normalize_text(row.get(field_name)) for field_name in RAW_FIELDS}

        if values["visit_id"] is None:
            raise ValidationError(
                f"Row {row_number} has no visit_id",
                source=source,
                details={"row": row_number},
            )
        if values["arrival_time"] is None or not values["arrival_time"].strip():
            raise ValidationError(
                f"Visit {values['visit_id']} (row {row_number}) has no arrival_time",
                source=source,
                details={"row": row_number, "visit_id": values["visit_id"]},
            )

        try:
            yield RawVisitRecord(**values)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Row {row_number} violates the raw visit contract: {e.errors()[0]['msg']}",
                source=source,
                details={"row": row_number, "errors": e.errors()},
            ) from e
