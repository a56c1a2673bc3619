"""Pipeline Health Check Statistics.

Counts collected after standardization so a run can be audited: how many
ghost rows were dropped, how many values were mended or nulled, and which
timestamps and complaints the configured vocabulary failed to cover.
"""

from collections import Counter
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from er_refinery.domain.enums import AgeQualityFlag, PatientIdQualityFlag
from er_refinery.domain.services.deduplicator import DeduplicationResult
from er_refinery.domain.visit_records import TIMESTAMP_FIELDS, CleanVisitRecord


class QualityStats(BaseModel):
    """Health check of one pipeline run.

    Parameters:
        raw_rows: Rows received from the source store
        duplicates_removed: Ghost rows dropped by deduplication
        survivor_rows: Rows standardized and enriched
        patient_ids_mended: Missing patient ids replaced by the sentinel
        invalid_ages: Ages outside the valid range (nulled)
        missing_ages: Ages absent or not numeric
        resolved_timestamps: Field -> count of values resolved to an instant
        unparseable_timestamps: Field -> count of present values no encoding matched
        complaint_categories: Clean complaint label -> count
        non_canonical_complaints: Complaint texts that fell through the lookup table
    """

    model_config = ConfigDict(frozen=True)

    raw_rows: int = 0
    duplicates_removed: int = 0
    survivor_rows: int = 0
    patient_ids_mended: int = 0
    invalid_ages: int = 0
    missing_ages: int = 0
    resolved_timestamps: dict[str, int] = Field(default_factory=dict)
    unparseable_timestamps: dict[str, int] = Field(default_factory=dict)
    complaint_categories: dict[str, int] = Field(default_factory=dict)
    non_canonical_complaints: dict[str, int] = Field(default_factory=dict)

    @property
    def total_unparseable(self) -> int:
        return sum(self.unparseable_timestamps.values())

    @classmethod
    def collect(
        cls,
        dedup_result: DeduplicationResult,
        clean_records: Iterable[CleanVisitRecord],
        canonical_labels: frozenset[str],
    ) -> "QualityStats":
        """Count quality outcomes over the clean records of a run.

        Parameters:
            dedup_result: Output of the deduplication stage
            clean_records: Standardized survivors
            canonical_labels: Labels the complaint lookup table produces
        """
        resolved = Counter({field_name: 0 for field_name in TIMESTAMP_FIELDS})
        unparseable = Counter({field_name: 0 for field_name in TIMESTAMP_FIELDS})
        complaints: Counter = Counter()
        non_canonical: Counter = Counter()
        age_flags: Counter = Counter()
        mended = 0
        survivors = 0

        for record in clean_records:
            survivors += 1
            for field_name in TIMESTAMP_FIELDS:
                if getattr(record, field_name) is not None:
                    resolved[field_name] += 1
            unparseable.update(record.unparseable_timestamps)

            age_flags[record.age_quality_flag] += 1
            if record.patient_id_quality_flag == PatientIdQualityFlag.MISSING:
                mended += 1

            if record.complaint_category is not None:
                complaints[record.complaint_category] += 1
                if record.complaint_category not in canonical_labels:
                    non_canonical[record.complaint_category] += 1

        return cls(
            raw_rows=dedup_result.input_count,
            duplicates_removed=dedup_result.duplicates_removed,
            survivor_rows=survivors,
            patient_ids_mended=mended,
            invalid_ages=age_flags[AgeQualityFlag.INVALID],
            missing_ages=age_flags[AgeQualityFlag.MISSING],
            resolved_timestamps=dict(resolved),
            unparseable_timestamps=dict(unparseable),
            complaint_categories=dict(sorted(complaints.items())),
            non_canonical_complaints=dict(sorted(non_canonical.items())),
        )
