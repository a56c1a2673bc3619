"""Domain Services.

This package contains the standardization and enrichment services. None of
them depend on infrastructure; each receives its configuration explicitly.
"""

from er_refinery.domain.services.timestamp_resolver import (
    TimestampResolution,
    TimestampResolver,
)
from er_refinery.domain.services.category_normalizer import CategoryNormalizer
from er_refinery.domain.services.field_validator import (
    FieldValidator,
    ValidatedAge,
    ValidatedPatientId,
)
from er_refinery.domain.services.deduplicator import DeduplicationResult, Deduplicator
from er_refinery.domain.services.record_standardizer import RecordStandardizer
from er_refinery.domain.services.metrics_deriver import MetricsDeriver
from er_refinery.domain.services.raw_profiler import RawDataProfiler

__all__ = [
    'TimestampResolution',
    'TimestampResolver',
    'CategoryNormalizer',
    'FieldValidator',
    'ValidatedAge',
    'ValidatedPatientId',
    'DeduplicationResult',
    'Deduplicator',
    'RecordStandardizer',
    'MetricsDeriver',
    'RawDataProfiler',
]
