"""Field Validation Service.

Validates and cleans the age, patient identifier, insurance status, severity
and staff identifier fields of a raw visit. Nothing here raises on bad data:
every malformed value degrades to None or a sentinel, and a quality flag is
attached where the field carries one.

Architecture:
    - Pure domain service configured from PipelineConfig
    - Records are kept even when a value is nulled ("mend, not delete")
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from er_refinery.domain.enums import AgeQualityFlag, PatientIdQualityFlag
from er_refinery.domain.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedAge:
    value: Optional[int]
    flag: AgeQualityFlag


@dataclass(frozen=True)
class ValidatedPatientId:
    value: str
    flag: PatientIdQualityFlag


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def parse_integer(raw_value: Optional[str]) -> Optional[Decimal]:
    """Parse text as an integral Decimal, returning None when it is not numeric.

    Decimal text is rounded half away from zero ("25.5" -> 26), matching a
    numeric cast to INTEGER in the warehouse the data was profiled in. The
    result stays a Decimal so arbitrarily large tokens ("1e30") compare
    against the age bounds without overflowing.
    """
    if _is_blank(raw_value):
        return None

    text = raw_value.strip()
    # Python literals allow digit separators; source numbers never do
    if "_" in text:
        return None

    try:
        number = Decimal(text)
    except InvalidOperation:
        return None

    if not number.is_finite():
        return None
    return number.to_integral_value(rounding=ROUND_HALF_UP)


class FieldValidator:
    """Validate and clean single visit fields.

    Example Usage:
        ```python
        validator = FieldValidator(PipelineConfig())
        validator.validate_age("999")    # ValidatedAge(None, INVALID)
        validator.validate_patient_id(None)
        # ValidatedPatientId("UNKNOWN_PATIENT", MISSING)
        ```
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """Initialize validator.

        Parameters:
            config: Pipeline configuration (age bounds and sentinels)
        """
        self.config = config or PipelineConfig()

    def validate_age(self, raw_value: Optional[str]) -> ValidatedAge:
        """Validate age text against the configured bounds.

        Returns:
            ValidatedAge: (age, VALID) when in range; (None, MISSING) when
            absent or non-numeric; (None, INVALID) when numeric but out of range
        """
        age = parse_integer(raw_value)
        if age is None:
            return ValidatedAge(value=None, flag=AgeQualityFlag.MISSING)

        if self.config.age_min <= age <= self.config.age_max:
            return ValidatedAge(value=int(age), flag=AgeQualityFlag.VALID)

        logger.debug(
            f"Age {age} outside [{self.config.age_min}, {self.config.age_max}], nulling value"
        )
        return ValidatedAge(value=None, flag=AgeQualityFlag.INVALID)

    def validate_patient_id(self, raw_value: Optional[str]) -> ValidatedPatientId:
        """Replace a missing patient identifier with the sentinel."""
        if _is_blank(raw_value):
            return ValidatedPatientId(
                value=self.config.unknown_patient_id,
                flag=PatientIdQualityFlag.MISSING,
            )
        return ValidatedPatientId(value=raw_value, flag=PatientIdQualityFlag.VALID)

    def clean_insurance_status(self, raw_value: Optional[str]) -> str:
        if _is_blank(raw_value):
            return self.config.unknown_insurance
        return raw_value

    @staticmethod
    def clean_severity(raw_value: Optional[str]) -> Optional[str]:
        """Capitalize the first letter and lower-case the rest.

        Severity values are single tokens (Critical, High, ...), so a generic
        casing rule is safe here.
        """
        if _is_blank(raw_value):
            return None
        return raw_value.strip().capitalize()

    @staticmethod
    def pass_through_staff_id(raw_value: Optional[str]) -> Optional[str]:
        # A missing doctor or nurse is a walkout signal, not a defect
        return raw_value
