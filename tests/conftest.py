"""Shared fixtures for ER-Refinery tests."""

import pytest

from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.domain.visit_records import RawVisitRecord

SAMPLE_CSV = (
    "visit_id,patient_id,arrival_time,triage_time,doctor_assigned_time,discharge_time,"
    "complaint_category,severity_level,age,insurance_status,doctor_id,nurse_id\n"
    "V1,P1,2024-04-15 14:30:00,2024/04/15 14:45,15-Apr-2024 15:10,Apr 15 2024 16:00,"
    "chest pain,critical,45,Private,D1,N1\n"
    "V2,P1,2024-04-15 14:30:00,2024/04/15 14:50,,,"
    "Chest Pain,High,45,Private,D1,N1\n"
    "V3,,2024-04-16 09:00:00,,,,"
    "Injury / Trauma,low,999,,,\n"
    "V4,P4,2024-04-17 22:05:00,2024-04-17 22:20:00,,,"
    "Fever,MEDIUM,NULL,Public,,N2\n"
)


@pytest.fixture
def config():
    """Default pipeline configuration."""
    return PipelineConfig()


@pytest.fixture
def make_raw():
    """Factory for raw visit records with sensible defaults."""
    def _make_raw(visit_id="V1", **overrides):
        values = {
            "patient_id": "P1",
            "arrival_time": "2024-04-15 14:30:00",
            "triage_time": "2024-04-15 14:45:00",
            "doctor_assigned_time": "2024-04-15 15:10:00",
            "discharge_time": "2024-04-15 16:00:00",
            "complaint_category": "Chest Pain",
            "severity_level": "High",
            "age": "45",
            "insurance_status": "Private",
            "doctor_id": "D1",
            "nurse_id": "N1",
        }
        values.update(overrides)
        return RawVisitRecord(visit_id=visit_id, **values)
    return _make_raw


@pytest.fixture
def sample_csv(tmp_path):
    """A small dirty visit export on disk."""
    path = tmp_path / "er_visits.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path
