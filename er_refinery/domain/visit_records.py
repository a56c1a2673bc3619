"""Visit Record Schema Definitions.

This module defines the three shapes an emergency-department visit takes as it
moves through the pipeline:

    RawVisitRecord       -> untyped text exactly as the source store supplied it
    CleanVisitRecord     -> standardized values plus quality flags
    AnalyticsVisitRecord -> clean record plus derived KPIs and bins

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are immutable; every stage emits new records
    - Raw fields stay text because the source mixes encodings and invalid tokens
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from er_refinery.domain.enums import (
    AgeGroup,
    AgeQualityFlag,
    PatientIdQualityFlag,
    VisitStatus,
)

TIMESTAMP_FIELDS = (
    "arrival_time",
    "triage_time",
    "doctor_assigned_time",
    "discharge_time",
)

RAW_FIELDS = (
    "visit_id",
    "patient_id",
    *TIMESTAMP_FIELDS,
    "complaint_category",
    "severity_level",
    "age",
    "insurance_status",
    "doctor_id",
    "nurse_id",
)


class RawVisitRecord(BaseModel):
    """One visit row as loaded from the source store (Bronze shape).

    Every field is text. Only ``visit_id`` is required by the input contract;
    ``arrival_time`` is guaranteed present by the source but its encoding is
    unknown until resolved.
    """

    model_config = ConfigDict(frozen=True)

    visit_id: str = Field(..., description="Unique visit identifier (row identity)")
    patient_id: Optional[str] = Field(None, description="Patient identifier as supplied")
    arrival_time: Optional[str] = Field(None, description="Arrival timestamp text")
    triage_time: Optional[str] = Field(None, description="Triage timestamp text")
    doctor_assigned_time: Optional[str] = Field(None, description="Doctor assignment timestamp text")
    discharge_time: Optional[str] = Field(None, description="Discharge timestamp text")
    complaint_category: Optional[str] = Field(None, description="Free-text complaint")
    severity_level: Optional[str] = Field(None, description="Severity text")
    age: Optional[str] = Field(None, description="Age text")
    insurance_status: Optional[str] = Field(None, description="Insurance status text")
    doctor_id: Optional[str] = Field(None, description="Assigned doctor identifier")
    nurse_id: Optional[str] = Field(None, description="Assigned nurse identifier")

    @field_validator("visit_id")
    @classmethod
    def validate_visit_id(cls, v: str) -> str:
        """Reject empty visit identifiers (structural contract violation)."""
        if not v or not v.strip():
            raise ValueError("visit_id cannot be empty or whitespace only")
        return v


class CleanVisitRecord(BaseModel):
    """A visit after standardization (Silver shape).

    Absent timestamps are meaningful: a missing triage time is a Left Before
    Triage patient, not a defect. ``unparseable_timestamps`` names the fields
    whose text was present but matched no known encoding.
    """

    model_config = ConfigDict(frozen=True)

    visit_id: str
    patient_id: str = Field(..., min_length=1)
    arrival_time: Optional[datetime] = None
    triage_time: Optional[datetime] = None
    doctor_assigned_time: Optional[datetime] = None
    discharge_time: Optional[datetime] = None
    complaint_category: Optional[str] = None
    severity_level: Optional[str] = None
    age: Optional[int] = None
    insurance_status: str
    doctor_id: Optional[str] = None
    nurse_id: Optional[str] = None
    age_quality_flag: AgeQualityFlag
    patient_id_quality_flag: PatientIdQualityFlag
    unparseable_timestamps: tuple[str, ...] = ()


class AnalyticsVisitRecord(CleanVisitRecord):
    """A clean visit enriched with operational and financial metrics (Gold shape).

    Every derived field is a pure function of the clean fields.
    """

    wait_to_triage_min: Optional[int] = None
    wait_to_doctor_min: Optional[int] = None
    treatment_duration_min: Optional[int] = None
    total_visit_duration_min: Optional[int] = None
    arrival_hour: Optional[int] = None
    arrival_day_of_week: Optional[str] = None
    arrival_month: Optional[int] = None
    arrival_date: Optional[date] = None
    visit_status: VisitStatus
    revenue_lost: int = 0
    age_group: AgeGroup
