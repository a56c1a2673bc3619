"""Domain layer for ER-Refinery.

This module contains the visit record schemas, the pipeline configuration
model and the standardization / enrichment services. All domain models are
pure Python with no external dependencies beyond Pydantic and pandas.
"""

from .visit_records import (
    RawVisitRecord,
    CleanVisitRecord,
    AnalyticsVisitRecord,
)
from .pipeline_config import PipelineConfig, TimestampEncoding

__all__ = [
    "RawVisitRecord",
    "CleanVisitRecord",
    "AnalyticsVisitRecord",
    "PipelineConfig",
    "TimestampEncoding",
]
