"""Domain Ports - Abstract Contracts for Ingestion and Storage.

This module defines the Port interfaces (abstract contracts) that Adapters must implement.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Ingesters (CSV, JSON) supply raw visit rows as text-only DataFrames
    - Storage adapters expose the analytics relation keyed by visit_id
    - Iterator pattern enables memory-efficient chunked ingestion
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Iterator, Optional, Sequence, TypeVar, Union

import pandas as pd

from er_refinery.domain.visit_records import AnalyticsVisitRecord

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an adapter operation.

    Adapters report recoverable failures (a bad chunk, a failed write) through
    a failure Result so the caller decides whether the run continues.

    Example:
        ```python
        result = storage.persist_analytics(records)
        if result.is_failure():
            logger.error(f"Persist failed: {result.error}")
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Build a failure; the error type defaults to the exception class name."""
        if isinstance(error, Exception):
            return cls(
                success=False,
                error=str(error),
                error_type=error_type or type(error).__name__,
                error_details=error_details or {},
            )
        return cls(
            success=False,
            error=error,
            error_type=error_type or "UnknownError",
            error_details=error_details or {},
        )

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success


class IngestionError(Exception):
    """Base exception for all ingestion-related errors.

    Raised at the source-store boundary only. Field-level problems inside the
    core (unparseable dates, bad ages) are never raised; they become None
    values and quality flags.
    """
    pass


class ValidationError(IngestionError):
    """Raised when the input violates the structural contract.

    A row without a visit identifier or arrival text, or two rows sharing a
    visit identifier, cannot be repaired by the core and aborts ingestion.

    Attributes:
        source: The source identifier that failed validation
        details: Additional error details (row index, offending ids, etc.)
    """

    def __init__(self, message: str, source: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.source = source
        self.details = details or {}


class SourceNotFoundError(IngestionError):
    """The input path does not exist or cannot be opened."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UnsupportedSourceError(IngestionError):
    """No ingester handles the source, or the file is not a readable visit export."""

    def __init__(self, message: str, source: Optional[str] = None, adapter: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.adapter = adapter


class StorageError(Exception):
    """Raised when a storage operation fails.

    Attributes:
        operation: Name of the storage operation that failed
        details: Additional error context
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class IngestionPort(ABC):
    """Abstract contract for raw visit ingestion adapters (the source store).

    Key Principles:
        - Chunked: Yields DataFrames chunk-by-chunk to bound memory
        - Text-only: Every column is str or None; no typed coercion happens here
        - Source-agnostic: The pipeline does not care about file format
    """

    @abstractmethod
    def ingest(self, source: str) -> Iterator[Result[pd.DataFrame]]:
        """Ingest raw visits and yield Result objects containing text DataFrames.

        Parameters:
            source: Source identifier (file path)

        Yields:
            Result[pd.DataFrame]: Chunk whose columns are the raw visit fields

        Raises:
            SourceNotFoundError: If source doesn't exist
            UnsupportedSourceError: If source format is invalid or unsupported
        """
        pass

    @abstractmethod
    def can_ingest(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier to check

        Returns:
            bool: True if this adapter can handle the source, False otherwise
        """
        pass

    def get_source_info(self, source: str) -> Optional[dict]:
        """Get metadata about the source (optional, adapter-specific).

        Returns:
            Optional[dict]: Metadata dictionary or None if unavailable
        """
        return None


class StoragePort(ABC):
    """Abstract contract for the analytics relation consumed by reporting.

    Implementations persist AnalyticsVisitRecords keyed by visit_id and expose
    read-only summaries. Operations return Result values instead of raising.
    """

    @abstractmethod
    def initialize_schema(self) -> Result[None]:
        """Create tables if they do not exist."""
        pass

    @abstractmethod
    def persist_analytics(self, records: Sequence[AnalyticsVisitRecord]) -> Result[int]:
        """Persist enriched visits, replacing rows with the same visit_id.

        Returns:
            Result[int]: Number of rows persisted
        """
        pass

    @abstractmethod
    def fetch_visits(self, visit_ids: Optional[Sequence[str]] = None) -> Result[pd.DataFrame]:
        """Read persisted visits, optionally restricted to the given ids."""
        pass

    @abstractmethod
    def log_audit_event(self, event_type: str, details: Optional[dict] = None) -> Result[str]:
        """Append an event to the pipeline audit log.

        Returns:
            Result[str]: Audit event identifier
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection."""
        pass
