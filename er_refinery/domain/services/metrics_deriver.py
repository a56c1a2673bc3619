"""Visit Metrics Derivation Service.

Turns a clean visit into an analytics visit: stopwatch KPIs between the four
clinical touchpoints, temporal bins of the arrival, the LWBS visit status,
the revenue-leakage estimate and the demographic age group.

Architecture:
    - Pure per-record map; derived fields depend only on the clean record
    - Thresholds and the loss unit come from PipelineConfig
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from er_refinery.domain.enums import REVENUE_LOSS_STATUSES, AgeGroup, VisitStatus
from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.domain.visit_records import AnalyticsVisitRecord, CleanVisitRecord

logger = logging.getLogger(__name__)

DAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Count minute boundaries crossed from start to end.

    Both instants are truncated to the minute before subtracting, so the
    component durations of a visit always add up to its total duration.
    Returns None when either endpoint is missing.
    """
    if start is None or end is None:
        return None

    start_minute = start.replace(second=0, microsecond=0)
    end_minute = end.replace(second=0, microsecond=0)
    return int((end_minute - start_minute).total_seconds() // 60)


def classify_visit_status(record: CleanVisitRecord) -> VisitStatus:
    """Classify where the patient journey stopped (first matching rule wins)."""
    if record.triage_time is None:
        return VisitStatus.LEFT_BEFORE_TRIAGE
    if record.doctor_assigned_time is None:
        return VisitStatus.LEFT_BEFORE_DOCTOR
    if record.discharge_time is None:
        return VisitStatus.LEFT_BEFORE_DISCHARGE
    return VisitStatus.COMPLETED


class MetricsDeriver:
    """Derive KPIs and bins for clean visit records.

    Example Usage:
        ```python
        deriver = MetricsDeriver(PipelineConfig())
        analytics = deriver.derive(clean_record)
        analytics.visit_status   # VisitStatus.COMPLETED
        analytics.revenue_lost   # 0
        ```
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    def revenue_lost(self, status: VisitStatus) -> int:
        """Loss unit for walkouts before a physician, zero otherwise."""
        if status in REVENUE_LOSS_STATUSES:
            return self.config.revenue_loss_per_visit
        return 0

    def age_group(self, age: Optional[int]) -> AgeGroup:
        if age is None:
            return AgeGroup.UNKNOWN
        if age < self.config.adult_min_age:
            return AgeGroup.PEDIATRIC
        if age < self.config.senior_min_age:
            return AgeGroup.ADULT
        return AgeGroup.SENIOR

    def derive(self, record: CleanVisitRecord) -> AnalyticsVisitRecord:
        """Build the analytics record for one clean visit."""
        arrival = record.arrival_time
        status = classify_visit_status(record)

        return AnalyticsVisitRecord(
            **record.model_dump(),
            wait_to_triage_min=minutes_between(arrival, record.triage_time),
            wait_to_doctor_min=minutes_between(record.triage_time, record.doctor_assigned_time),
            treatment_duration_min=minutes_between(record.doctor_assigned_time, record.discharge_time),
            total_visit_duration_min=minutes_between(arrival, record.discharge_time),
            arrival_hour=arrival.hour if arrival else None,
            arrival_day_of_week=DAY_ABBREVIATIONS[arrival.weekday()] if arrival else None,
            arrival_month=arrival.month if arrival else None,
            arrival_date=arrival.date() if arrival else None,
            visit_status=status,
            revenue_lost=self.revenue_lost(status),
            age_group=self.age_group(record.age),
        )

    def derive_all(self, records: Iterable[CleanVisitRecord]) -> list[AnalyticsVisitRecord]:
        return [self.derive(record) for record in records]
