"""Record Standardization Service.

Composes the timestamp resolver, complaint normalizer and field validator
into one per-record transform: RawVisitRecord -> CleanVisitRecord.

Architecture:
    - Pure per-record map with no cross-record state, safe to fan out
    - Total over the raw record shape: malformed fields degrade to None or a
      flag, nothing is raised
"""

import logging
from typing import Iterable, Optional

from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.domain.services.category_normalizer import CategoryNormalizer
from er_refinery.domain.services.field_validator import FieldValidator
from er_refinery.domain.services.timestamp_resolver import TimestampResolver
from er_refinery.domain.visit_records import (
    TIMESTAMP_FIELDS,
    CleanVisitRecord,
    RawVisitRecord,
)

logger = logging.getLogger(__name__)


class RecordStandardizer:
    """Standardize raw visits into clean visits.

    Each timestamp field is resolved on its own; one row may use a different
    encoding per field.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        timestamp_resolver: Optional[TimestampResolver] = None,
        category_normalizer: Optional[CategoryNormalizer] = None,
        field_validator: Optional[FieldValidator] = None,
    ):
        """Initialize standardizer.

        Parameters:
            config: Pipeline configuration used to build any collaborator not given
            timestamp_resolver: Resolver override (for tests)
            category_normalizer: Normalizer override (for tests)
            field_validator: Validator override (for tests)
        """
        self.config = config or PipelineConfig()
        self.timestamp_resolver = timestamp_resolver or TimestampResolver(
            self.config.timestamp_encodings
        )
        self.category_normalizer = category_normalizer or CategoryNormalizer(
            self.config.complaint_map
        )
        self.field_validator = field_validator or FieldValidator(self.config)

    def standardize(self, raw: RawVisitRecord) -> CleanVisitRecord:
        """Produce the clean record for one surviving raw record."""
        timestamps = {}
        unparseable = []
        for field_name in TIMESTAMP_FIELDS:
            resolution = self.timestamp_resolver.resolve(getattr(raw, field_name))
            timestamps[field_name] = resolution.value
            if resolution.is_unparseable:
                unparseable.append(field_name)

        if unparseable:
            logger.debug(
                f"Visit {raw.visit_id}: unparseable timestamps in {', '.join(unparseable)}"
            )

        age = self.field_validator.validate_age(raw.age)
        patient = self.field_validator.validate_patient_id(raw.patient_id)

        return CleanVisitRecord(
            visit_id=raw.visit_id,
            patient_id=patient.value,
            **timestamps,
            complaint_category=self.category_normalizer.normalize(raw.complaint_category),
            severity_level=self.field_validator.clean_severity(raw.severity_level),
            age=age.value,
            insurance_status=self.field_validator.clean_insurance_status(raw.insurance_status),
            doctor_id=self.field_validator.pass_through_staff_id(raw.doctor_id),
            nurse_id=self.field_validator.pass_through_staff_id(raw.nurse_id),
            age_quality_flag=age.flag,
            patient_id_quality_flag=patient.flag,
            unparseable_timestamps=tuple(unparseable),
        )

    def standardize_all(self, records: Iterable[RawVisitRecord]) -> list[CleanVisitRecord]:
        return [self.standardize(record) for record in records]
