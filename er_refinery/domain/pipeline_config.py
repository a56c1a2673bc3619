"""Pipeline Configuration Model.

This module defines the tunable domain vocabulary of the standardization and
enrichment pipeline: timestamp encodings, the complaint lookup table, the
valid age bound, the revenue-loss unit and the age-group thresholds.

Architecture:
    - Pure domain model (Pydantic V2), no infrastructure dependencies
    - Passed explicitly into every domain service; there is no global table
    - Immutable once validated so services can share one instance across workers
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TimestampEncoding(BaseModel):
    """One candidate encoding for raw timestamp strings.

    Parameters:
        name: Short identifier used in logs and audit output
        pattern: strptime/strftime pattern. ``%b`` is matched against English
                 three-letter month abbreviations, case-insensitively.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Encoding identifier")
    pattern: str = Field(..., min_length=1, description="strptime pattern")


DEFAULT_TIMESTAMP_ENCODINGS = (
    TimestampEncoding(name="iso_seconds", pattern="%Y-%m-%d %H:%M:%S"),
    TimestampEncoding(name="slash_minutes", pattern="%Y/%m/%d %H:%M"),
    TimestampEncoding(name="day_first_month_name", pattern="%d-%b-%Y %H:%M"),
    TimestampEncoding(name="month_name_first", pattern="%b %d %Y %H:%M"),
)

CANONICAL_COMPLAINTS = (
    "Abdominal Pain",
    "Allergic Reaction",
    "Back Pain",
    "Chest Pain",
    "Dizziness",
    "Fever",
    "Headache",
    "Injury/Trauma",
    "Minor Cuts",
    "Nausea/Vomiting",
    "Respiratory Issues",
    "Shortness of Breath",
)

# Keys are upper-cased, trimmed raw complaint text
DEFAULT_COMPLAINT_MAP = {
    "ABDOMINAL PAIN": "Abdominal Pain",
    "ALLERGIC REACTION": "Allergic Reaction",
    "BACK PAIN": "Back Pain",
    "CHEST PAIN": "Chest Pain",
    "DIZZINESS": "Dizziness",
    "FEVER": "Fever",
    "HEADACHE": "Headache",
    "INJURY/TRAUMA": "Injury/Trauma",
    "INJURY / TRAUMA": "Injury/Trauma",
    "MINOR CUTS": "Minor Cuts",
    "NAUSEA/VOMITING": "Nausea/Vomiting",
    "NAUSEA / VOMITING": "Nausea/Vomiting",
    "RESPIRATORY ISSUES": "Respiratory Issues",
    "SHORTNESS OF BREATH": "Shortness of Breath",
}


class PipelineConfig(BaseModel):
    """Tunable parameters of the visit standardization pipeline.

    Parameters:
        timestamp_encodings: Ordered candidate encodings; first match wins
        complaint_map: Normalized raw complaint key -> canonical label
        age_min: Lowest valid age (inclusive)
        age_max: Highest valid age (inclusive)
        revenue_loss_per_visit: Estimated loss for a pre-physician walkout
        adult_min_age: Ages below this are Pediatric
        senior_min_age: Ages at or above this are Senior
        unknown_patient_id: Sentinel replacing a missing patient identifier
        unknown_insurance: Sentinel replacing a missing insurance status
    """

    model_config = ConfigDict(frozen=True)

    timestamp_encodings: tuple[TimestampEncoding, ...] = Field(
        default=DEFAULT_TIMESTAMP_ENCODINGS,
        description="Ordered timestamp encodings (first match wins)"
    )
    complaint_map: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_COMPLAINT_MAP),
        description="Upper-cased raw complaint -> canonical label"
    )
    age_min: int = Field(default=1, description="Lowest valid age (inclusive)")
    age_max: int = Field(default=120, description="Highest valid age (inclusive)")
    revenue_loss_per_visit: int = Field(
        default=5000, description="Loss attributed to one pre-physician walkout"
    )
    adult_min_age: int = Field(default=18, description="First Adult age")
    senior_min_age: int = Field(default=60, description="First Senior age")
    unknown_patient_id: str = Field(default="UNKNOWN_PATIENT", min_length=1)
    unknown_insurance: str = Field(default="Unknown", min_length=1)

    @field_validator("timestamp_encodings")
    @classmethod
    def validate_encodings(cls, v: tuple[TimestampEncoding, ...]) -> tuple[TimestampEncoding, ...]:
        """Require at least one encoding and unique encoding names."""
        if not v:
            raise ValueError("At least one timestamp encoding is required")
        names = [encoding.name for encoding in v]
        if len(names) != len(set(names)):
            raise ValueError(f"Timestamp encoding names must be unique. Got: {names}")
        return tuple(v)

    @field_validator("complaint_map")
    @classmethod
    def normalize_complaint_keys(cls, v: dict[str, str]) -> dict[str, str]:
        """Normalize lookup keys the same way raw complaints are normalized."""
        normalized = {}
        for raw_key, canonical in v.items():
            key = raw_key.strip().upper()
            if not key:
                raise ValueError("Complaint map keys cannot be empty")
            normalized[key] = canonical
        return normalized

    @field_validator("revenue_loss_per_visit")
    @classmethod
    def validate_revenue_loss(cls, v: int) -> int:
        """Reject negative loss amounts."""
        if v < 0:
            raise ValueError(f"revenue_loss_per_visit cannot be negative. Got: {v}")
        return v

    @model_validator(mode="after")
    def validate_age_bounds(self) -> "PipelineConfig":
        """Check age bound and age-group threshold ordering."""
        if self.age_min > self.age_max:
            raise ValueError(
                f"age_min ({self.age_min}) must not exceed age_max ({self.age_max})"
            )
        if self.adult_min_age >= self.senior_min_age:
            raise ValueError(
                f"adult_min_age ({self.adult_min_age}) must be below "
                f"senior_min_age ({self.senior_min_age})"
            )
        return self

    @classmethod
    def from_overrides(cls, overrides: Optional[dict] = None) -> "PipelineConfig":
        """Build a config from a partial dictionary, ignoring None values."""
        values = {key: value for key, value in (overrides or {}).items() if value is not None}
        return cls(**values)
