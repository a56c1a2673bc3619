"""Domain Enumerations.

Fixed vocabularies used by the clean and analytics visit records. Values are
the exact strings persisted to storage and consumed by reporting.
"""

from enum import Enum


class AgeQualityFlag(str, Enum):
    """Quality classification of the age field."""
    VALID = "Valid"
    MISSING = "Missing"
    INVALID = "Invalid"


class PatientIdQualityFlag(str, Enum):
    """Quality classification of the patient identifier field."""
    VALID = "Valid"
    MISSING = "Missing"


class TimestampOutcome(str, Enum):
    """Result kind of resolving one raw timestamp string."""
    RESOLVED = "resolved"
    ABSENT = "absent"
    UNPARSEABLE = "unparseable"


class VisitStatus(str, Enum):
    """Where the patient journey ended (LWBS segmentation)."""
    LEFT_BEFORE_TRIAGE = "Left Before Triage"
    LEFT_BEFORE_DOCTOR = "Left Before Doctor"
    LEFT_BEFORE_DISCHARGE = "Left Before Discharge"
    COMPLETED = "Completed Visit"


class AgeGroup(str, Enum):
    """Demographic bin derived from the validated age."""
    PEDIATRIC = "Pediatric"
    ADULT = "Adult"
    SENIOR = "Senior"
    UNKNOWN = "Unknown"


# Visit outcomes that count as lost revenue (patient never saw a physician)
REVENUE_LOSS_STATUSES = frozenset({
    VisitStatus.LEFT_BEFORE_TRIAGE,
    VisitStatus.LEFT_BEFORE_DOCTOR,
})
