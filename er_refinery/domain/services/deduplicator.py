"""Ghost Record Deduplication Service.

A physical patient cannot register two arrivals at the same instant, so raw
rows sharing (patient_id, arrival_time) are treated as injected duplicates.
Within each group the row with the smallest visit_id survives; the others are
dropped permanently before any other processing.

The key is built from the raw, uncleaned values. Rows with a null patient_id
and the same arrival text therefore collapse into one survivor even when they
belong to different people. This over-collapse is accepted and kept.

Architecture:
    - The only set-wide stage of the pipeline; it must see every row at once
    - Record-based API for the pipeline, vectorized pandas API for chunk frames
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from er_refinery.domain.visit_records import RawVisitRecord

logger = logging.getLogger(__name__)

DEDUP_KEY_COLUMNS = ("patient_id", "arrival_time")


@dataclass(frozen=True)
class DeduplicationResult:
    """Survivors of a deduplication pass plus the audit trail of drops.

    Attributes:
        survivors: Surviving raw records in input order
        dropped_visit_ids: visit_ids removed as duplicates, sorted
        input_count: Number of raw records examined
    """

    survivors: tuple[RawVisitRecord, ...]
    dropped_visit_ids: tuple[str, ...]
    input_count: int

    @property
    def duplicates_removed(self) -> int:
        return len(self.dropped_visit_ids)


class Deduplicator:
    """Select exactly one survivor per (raw patient_id, raw arrival_time) key."""

    @staticmethod
    def dedup_key(record: RawVisitRecord) -> tuple[Optional[str], Optional[str]]:
        return (record.patient_id, record.arrival_time)

    def deduplicate(self, records: Iterable[RawVisitRecord]) -> DeduplicationResult:
        """Drop ghost duplicates from a complete set of raw records.

        Parameters:
            records: Every raw record of the batch. Groups can only be ranked
                     correctly when all members are visible.

        Returns:
            DeduplicationResult: survivors keep their original relative order
        """
        records = list(records)

        winners: dict[tuple[Optional[str], Optional[str]], RawVisitRecord] = {}
        for record in records:
            key = self.dedup_key(record)
            current = winners.get(key)
            if current is None or record.visit_id < current.visit_id:
                winners[key] = record

        survivors = []
        dropped = []
        for record in records:
            if winners[self.dedup_key(record)] is record:
                survivors.append(record)
            else:
                dropped.append(record.visit_id)

        if dropped:
            logger.info(
                f"Deduplication removed {len(dropped)} ghost records "
                f"({len(survivors)} of {len(records)} survive)"
            )

        return DeduplicationResult(
            survivors=tuple(survivors),
            dropped_visit_ids=tuple(sorted(dropped)),
            input_count=len(records),
        )

    @staticmethod
    def deduplicate_dataframe(df: pd.DataFrame) -> pd.DataFrame:
        """Vectorized deduplication of a raw visit DataFrame.

        Equivalent to ``deduplicate`` for frames holding the raw text columns.
        pandas treats missing values as equal when detecting duplicates, which
        reproduces the null patient_id over-collapse.

        Parameters:
            df: Frame with visit_id, patient_id and arrival_time columns

        Returns:
            DataFrame of survivors in original row order
        """
        if df.empty:
            return df.copy()

        positional = df.reset_index(drop=True)
        ranked = positional.sort_values("visit_id", kind="mergesort")
        duplicated = ranked.duplicated(subset=list(DEDUP_KEY_COLUMNS), keep="first")
        keep_positions = sorted(ranked.index[~duplicated.to_numpy()])
        return df.iloc[keep_positions].copy()
