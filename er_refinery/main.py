"""Main entry point for the ER-Refinery visit pipeline.

This module wires the ingestion adapters, the domain services and the storage
adapter into one batch run: raw visits -> deduplicated -> standardized ->
enriched -> persisted analytics relation.

Architecture:
    - Follows Hexagonal Architecture principles
    - Adapters are selected automatically based on source format
    - Storage adapter is configured via configuration manager
    - Deduplication sees the complete batch; standardization and enrichment
      are per-record maps and may fan out over worker threads
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, TypeVar

import pandas as pd

from er_refinery.adapters.ingesters import get_adapter, to_raw_records
from er_refinery.adapters.storage import DuckDBAdapter
from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.domain.ports import IngestionError, StoragePort, ValidationError
from er_refinery.domain.quality_stats import QualityStats
from er_refinery.domain.services import (
    CategoryNormalizer,
    DeduplicationResult,
    Deduplicator,
    MetricsDeriver,
    RecordStandardizer,
)
from er_refinery.domain.visit_records import (
    AnalyticsVisitRecord,
    CleanVisitRecord,
    RawVisitRecord,
)
from er_refinery.infrastructure.config_manager import DatabaseConfig, get_database_config
from er_refinery.infrastructure.settings import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def create_storage_adapter(db_config: Optional[DatabaseConfig] = None) -> StoragePort:
    """Create storage adapter based on configuration.

    Parameters:
        db_config: Explicit database configuration (defaults to the environment)

    Returns:
        StoragePort: Configured storage adapter instance

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = db_config or get_database_config()

    if db_config.db_type == "duckdb":
        logger.info(f"Initializing DuckDB adapter with path: {db_config.db_path or ':memory:'}")
        return DuckDBAdapter(db_config=db_config)
    raise ValueError(f"Unsupported database type: {db_config.db_type}")


@dataclass(frozen=True)
class PipelineRunResult:
    """Output of one pipeline run.

    Attributes:
        analytics: Enriched survivors in input order
        stats: Health check statistics of the run
        dropped_visit_ids: visit_ids removed as ghost duplicates
    """

    analytics: list[AnalyticsVisitRecord]
    stats: QualityStats
    dropped_visit_ids: tuple[str, ...] = ()


class VisitPipeline:
    """Deduplicate, standardize and enrich a complete batch of raw visits.

    Example Usage:
        ```python
        pipeline = VisitPipeline(PipelineConfig(), workers=4)
        result = pipeline.run(raw_records)
        storage.persist_analytics(result.analytics)
        ```
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        workers: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize pipeline.

        Parameters:
            config: Pipeline configuration (defaults apply when omitted)
            workers: Worker threads for the per-record stages
            chunk_size: Records per work item when fanning out

        Raises:
            ValueError: If workers or chunk_size is not positive
        """
        if workers < 1:
            raise ValueError(f"workers must be positive. Got: {workers}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive. Got: {chunk_size}")

        self.config = config or PipelineConfig()
        self.workers = workers
        self.chunk_size = chunk_size
        self.deduplicator = Deduplicator()
        self.category_normalizer = CategoryNormalizer(self.config.complaint_map)
        self.standardizer = RecordStandardizer(
            self.config, category_normalizer=self.category_normalizer
        )
        self.deriver = MetricsDeriver(self.config)

    def deduplicate(self, records: Iterable[RawVisitRecord]) -> DeduplicationResult:
        return self.deduplicator.deduplicate(records)

    def standardize(self, records: Sequence[RawVisitRecord]) -> list[CleanVisitRecord]:
        return self._map_chunks(self.standardizer.standardize_all, records)

    def enrich(self, records: Sequence[CleanVisitRecord]) -> list[AnalyticsVisitRecord]:
        return self._map_chunks(self.deriver.derive_all, records)

    def run(self, raw_records: Iterable[RawVisitRecord]) -> PipelineRunResult:
        """Run every stage over a complete batch.

        Parameters:
            raw_records: All raw records of the batch. Deduplication groups
                         span the whole batch, so partial batches give
                         different survivors.

        Returns:
            PipelineRunResult with enriched survivors and run statistics
        """
        dedup_result = self.deduplicate(raw_records)
        clean_records = self.standardize(dedup_result.survivors)
        analytics = self.enrich(clean_records)

        stats = QualityStats.collect(
            dedup_result, clean_records, self.category_normalizer.canonical_labels
        )
        logger.info(
            f"Pipeline run complete: {stats.raw_rows} raw, "
            f"{stats.duplicates_removed} duplicates removed, "
            f"{len(analytics)} enriched"
        )

        return PipelineRunResult(
            analytics=analytics,
            stats=stats,
            dropped_visit_ids=dedup_result.dropped_visit_ids,
        )

    def _map_chunks(
        self,
        func: Callable[[Sequence[InT]], list[OutT]],
        records: Sequence[InT],
    ) -> list[OutT]:
        """Apply a list transform chunk-by-chunk, preserving input order."""
        records = list(records)
        if self.workers == 1 or len(records) <= self.chunk_size:
            return func(records)

        chunks = [
            records[start:start + self.chunk_size]
            for start in range(0, len(records), self.chunk_size)
        ]
        logger.debug(f"Fanning out {len(chunks)} chunks over {self.workers} workers")

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="visit-worker") as executor:
            results = executor.map(func, chunks)
            return [record for chunk in results for record in chunk]


def ensure_unique_visit_ids(records: Sequence[RawVisitRecord], source: Optional[str] = None) -> None:
    """Reject a batch in which two rows share a visit_id.

    Raises:
        ValidationError: With the offending ids in ``details``
    """
    visit_ids = pd.Series([record.visit_id for record in records], dtype=object)
    duplicated = sorted(set(visit_ids[visit_ids.duplicated()]))
    if duplicated:
        raise ValidationError(
            f"{len(duplicated)} visit_id values appear more than once",
            source=source,
            details={"visit_ids": duplicated[:20]},
        )


def load_raw_records(
    source: str,
    chunk_size: Optional[int] = None,
    column_mapping: Optional[dict[str, str]] = None,
) -> list[RawVisitRecord]:
    """Read every raw visit of a source into memory.

    Raises:
        IngestionError: If the source is unusable or violates the input contract
    """
    adapter_kwargs = {}
    if chunk_size:
        adapter_kwargs["chunk_size"] = chunk_size
    if column_mapping:
        adapter_kwargs["column_mapping"] = column_mapping

    adapter = get_adapter(source, **adapter_kwargs)
    logger.info(f"Selected adapter: {adapter.__class__.__name__}")

    records: list[RawVisitRecord] = []
    for result in adapter.ingest(source):
        if result.is_failure():
            raise IngestionError(f"Failed to read {source}: {result.error}")
        records.extend(to_raw_records(result.value, source=source, row_offset=len(records)))
        logger.debug(f"Loaded chunk of {len(result.value)} rows from {source}")

    ensure_unique_visit_ids(records, source=source)
    logger.info(f"Loaded {len(records)} raw visits from {source}")
    return records


def process_source(
    source: str,
    storage: StoragePort,
    config: Optional[PipelineConfig] = None,
    workers: int = 1,
    chunk_size: Optional[int] = None,
    column_mapping: Optional[dict[str, str]] = None,
) -> tuple[PipelineRunResult, str]:
    """Run the pipeline from a source file to the analytics relation.

    Parameters:
        source: Source file path (CSV, TSV or JSON)
        storage: Storage adapter instance
        config: Pipeline configuration
        workers: Worker threads for the per-record stages
        chunk_size: Ingestion and fan-out chunk size
        column_mapping: Optional raw field -> source column mapping

    Returns:
        tuple[PipelineRunResult, str]: (run result, run_id)

    Raises:
        IngestionError: Structural input violations (logged to the audit trail first)
        RuntimeError: If schema initialization or persistence fails
    """
    run_id = str(uuid.uuid4())
    log_extra = {"run_id": run_id}
    logger.info(f"Run ID: {run_id}", extra=log_extra)

    logger.info("Initializing storage schema...", extra=log_extra)
    schema_result = storage.initialize_schema()
    if not schema_result.is_success():
        logger.error(f"Failed to initialize schema: {schema_result.error}", extra=log_extra)
        raise RuntimeError(f"Schema initialization failed: {schema_result.error}")

    try:
        raw_records = load_raw_records(source, chunk_size=chunk_size, column_mapping=column_mapping)
    except IngestionError as e:
        logger.error(f"Rejected source '{source}': {str(e)}", extra=log_extra)
        storage.log_audit_event(
            "STRUCTURAL_REJECTION",
            {"run_id": run_id, "source": source, "error": str(e), **getattr(e, "details", {})},
        )
        raise

    pipeline = VisitPipeline(config, workers=workers, chunk_size=chunk_size or DEFAULT_CHUNK_SIZE)
    run_result = pipeline.run(raw_records)

    persist_result = storage.persist_analytics(run_result.analytics)
    if not persist_result.is_success():
        logger.error(f"Failed to persist analytics: {persist_result.error}", extra=log_extra)
        storage.log_audit_event(
            "PERSISTENCE_ERROR",
            {"run_id": run_id, "source": source, "error": persist_result.error},
        )
        raise RuntimeError(f"Persistence failed: {persist_result.error}")

    logger.info(
        f"Persisted {persist_result.value} analytics visits",
        extra={
            **log_extra,
            "extra_fields": {
                "source": source,
                "persisted": persist_result.value,
                "duplicates_removed": run_result.stats.duplicates_removed,
            },
        },
    )
    storage.log_audit_event(
        "PIPELINE_RUN",
        {
            "run_id": run_id,
            "source": source,
            "persisted": persist_result.value,
            "dropped_visit_ids": list(run_result.dropped_visit_ids),
            **run_result.stats.model_dump(),
        },
    )

    return run_result, run_id
