"""Unit tests for KPI and bin derivation.

Tests cover:
- Stopwatch durations and their additivity
- Visit status classification and revenue leakage
- Temporal bins and age groups
"""

from datetime import date, datetime

import pytest

from er_refinery.domain.enums import AgeGroup, AgeQualityFlag, PatientIdQualityFlag, VisitStatus
from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.domain.services.metrics_deriver import MetricsDeriver, minutes_between
from er_refinery.domain.visit_records import CleanVisitRecord


def make_clean(**overrides):
    values = {
        "visit_id": "V1",
        "patient_id": "P1",
        "arrival_time": datetime(2024, 4, 15, 14, 30),
        "triage_time": datetime(2024, 4, 15, 14, 45),
        "doctor_assigned_time": datetime(2024, 4, 15, 15, 10),
        "discharge_time": datetime(2024, 4, 15, 16, 0),
        "complaint_category": "Chest Pain",
        "severity_level": "High",
        "age": 45,
        "insurance_status": "Private",
        "age_quality_flag": AgeQualityFlag.VALID,
        "patient_id_quality_flag": PatientIdQualityFlag.VALID,
    }
    values.update(overrides)
    return CleanVisitRecord(**values)


@pytest.fixture
def deriver():
    return MetricsDeriver(PipelineConfig())


class TestMinutesBetween:
    """Test minute-boundary durations."""

    def test_whole_minutes(self):
        """Test a plain difference."""
        assert minutes_between(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 10, 15)) == 15

    def test_counts_minute_boundaries(self):
        """Test seconds are truncated before subtracting."""
        assert minutes_between(datetime(2024, 1, 1, 10, 0, 59), datetime(2024, 1, 1, 10, 1, 0)) == 1
        assert minutes_between(datetime(2024, 1, 1, 10, 0, 0), datetime(2024, 1, 1, 10, 0, 59)) == 0

    def test_negative_duration_reported(self):
        """Test inconsistent ordering yields a negative value, not an error."""
        assert minutes_between(datetime(2024, 1, 1, 10, 30), datetime(2024, 1, 1, 10, 0)) == -30

    def test_missing_endpoint(self):
        """Test any missing endpoint yields None."""
        assert minutes_between(None, datetime(2024, 1, 1)) is None
        assert minutes_between(datetime(2024, 1, 1), None) is None


class TestDerive:
    """Test full analytics derivation."""

    def test_completed_visit(self, deriver):
        """Test KPIs, bins and status of a completed visit."""
        analytics = deriver.derive(make_clean())

        assert analytics.wait_to_triage_min == 15
        assert analytics.wait_to_doctor_min == 25
        assert analytics.treatment_duration_min == 50
        assert analytics.total_visit_duration_min == 90
        assert analytics.arrival_hour == 14
        assert analytics.arrival_day_of_week == "Mon"
        assert analytics.arrival_month == 4
        assert analytics.arrival_date == date(2024, 4, 15)
        assert analytics.visit_status is VisitStatus.COMPLETED
        assert analytics.revenue_lost == 0
        assert analytics.age_group is AgeGroup.ADULT
        assert analytics.visit_id == "V1"

    def test_durations_add_up_with_seconds(self, deriver):
        """Test component durations sum to the total even with seconds."""
        analytics = deriver.derive(make_clean(
            arrival_time=datetime(2024, 4, 15, 14, 30, 40),
            triage_time=datetime(2024, 4, 15, 14, 45, 10),
            doctor_assigned_time=datetime(2024, 4, 15, 15, 10, 59),
            discharge_time=datetime(2024, 4, 15, 16, 0, 1),
        ))

        assert analytics.total_visit_duration_min == (
            analytics.wait_to_triage_min
            + analytics.wait_to_doctor_min
            + analytics.treatment_duration_min
        )

    @pytest.mark.parametrize("overrides, status, revenue", [
        ({"triage_time": None, "doctor_assigned_time": None, "discharge_time": None},
         VisitStatus.LEFT_BEFORE_TRIAGE, 5000),
        ({"doctor_assigned_time": None, "discharge_time": None},
         VisitStatus.LEFT_BEFORE_DOCTOR, 5000),
        ({"discharge_time": None}, VisitStatus.LEFT_BEFORE_DISCHARGE, 0),
        ({}, VisitStatus.COMPLETED, 0),
        ({"triage_time": None}, VisitStatus.LEFT_BEFORE_TRIAGE, 5000),
    ])
    def test_visit_status_and_revenue(self, deriver, overrides, status, revenue):
        """Test status classification and the revenue attributed to it."""
        analytics = deriver.derive(make_clean(**overrides))
        assert analytics.visit_status is status
        assert analytics.revenue_lost == revenue

    def test_walkout_durations_missing(self, deriver):
        """Test durations touching a missing stage are None."""
        analytics = deriver.derive(make_clean(doctor_assigned_time=None, discharge_time=None))
        assert analytics.wait_to_triage_min == 15
        assert analytics.wait_to_doctor_min is None
        assert analytics.treatment_duration_min is None
        assert analytics.total_visit_duration_min is None

    def test_missing_arrival_has_no_bins(self, deriver):
        """Test an unresolved arrival leaves bins and durations empty."""
        analytics = deriver.derive(make_clean(arrival_time=None))
        assert analytics.arrival_hour is None
        assert analytics.arrival_day_of_week is None
        assert analytics.arrival_date is None
        assert analytics.wait_to_triage_min is None
        assert analytics.visit_status is VisitStatus.COMPLETED

    def test_configured_revenue_unit(self):
        """Test the loss unit comes from configuration."""
        deriver = MetricsDeriver(PipelineConfig(revenue_loss_per_visit=120))
        assert deriver.derive(make_clean(triage_time=None)).revenue_lost == 120


class TestAgeGroup:
    """Test demographic binning."""

    @pytest.mark.parametrize("age, group", [
        (1, AgeGroup.PEDIATRIC),
        (17, AgeGroup.PEDIATRIC),
        (18, AgeGroup.ADULT),
        (59, AgeGroup.ADULT),
        (60, AgeGroup.SENIOR),
        (120, AgeGroup.SENIOR),
        (None, AgeGroup.UNKNOWN),
    ])
    def test_boundaries(self, deriver, age, group):
        """Test group thresholds."""
        assert deriver.age_group(age) is group
