"""DuckDB Storage Adapter.

This adapter implements the StoragePort contract for the analytics relation:
one row per enriched visit, keyed by visit_id, plus an append-only pipeline
audit log. DuckDB is an in-process OLAP database, a natural fit for the
grouped read-only summaries reporting runs over this table.

Architecture:
    - Implements StoragePort (Hexagonal Architecture)
    - Bulk loads through a registered pandas DataFrame
    - Reporting queries are SELECT-only and never mutate visit rows
"""

import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import duckdb
import pandas as pd

from er_refinery.domain.enums import REVENUE_LOSS_STATUSES, VisitStatus
from er_refinery.domain.ports import Result, StorageError, StoragePort
from er_refinery.domain.visit_records import TIMESTAMP_FIELDS, AnalyticsVisitRecord
from er_refinery.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)

VISIT_TABLE = "visit_analytics"
AUDIT_TABLE = "pipeline_audit_log"

VISIT_COLUMNS = {
    "visit_id": "VARCHAR PRIMARY KEY",
    "patient_id": "VARCHAR NOT NULL",
    "doctor_id": "VARCHAR",
    "nurse_id": "VARCHAR",
    "arrival_time": "TIMESTAMP",
    "triage_time": "TIMESTAMP",
    "doctor_assigned_time": "TIMESTAMP",
    "discharge_time": "TIMESTAMP",
    "complaint_category": "VARCHAR",
    "severity_level": "VARCHAR",
    "age": "INTEGER",
    "insurance_status": "VARCHAR NOT NULL",
    "age_quality_flag": "VARCHAR NOT NULL",
    "patient_id_quality_flag": "VARCHAR NOT NULL",
    "unparseable_timestamps": "VARCHAR",
    "wait_to_triage_min": "INTEGER",
    "wait_to_doctor_min": "INTEGER",
    "treatment_duration_min": "INTEGER",
    "total_visit_duration_min": "INTEGER",
    "arrival_hour": "INTEGER",
    "arrival_day_of_week": "VARCHAR",
    "arrival_month": "INTEGER",
    "arrival_date": "DATE",
    "visit_status": "VARCHAR NOT NULL",
    "revenue_lost": "INTEGER NOT NULL",
    "age_group": "VARCHAR NOT NULL",
}

INTEGER_COLUMNS = [name for name, ddl in VISIT_COLUMNS.items() if ddl.startswith("INTEGER")]

SEVERITY_ORDER = ("Critical", "High", "Medium", "Low")
DAY_ORDER = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def records_to_frame(records: Sequence[AnalyticsVisitRecord]) -> pd.DataFrame:
    """Flatten analytics records into a DataFrame matching the visit table.

    Enums become their string values and the unparseable-field tuple becomes
    a comma-separated string (None when empty).
    """
    rows = []
    for record in records:
        row = record.model_dump()
        for key, value in row.items():
            if isinstance(value, Enum):
                row[key] = value.value
        row["unparseable_timestamps"] = ",".join(record.unparseable_timestamps) or None
        rows.append(row)

    df = pd.DataFrame(rows, columns=list(VISIT_COLUMNS))
    for column in TIMESTAMP_FIELDS:
        df[column] = pd.to_datetime(df[column])
    for column in INTEGER_COLUMNS:
        df[column] = df[column].astype("Int64")
    return df


class DuckDBAdapter(StoragePort):
    """DuckDB implementation of StoragePort for the analytics visit relation.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        adapter = DuckDBAdapter(db_path="data/er_analytics.duckdb")
        adapter.initialize_schema()
        adapter.persist_analytics(analytics_records)
        adapter.summarize_visit_status().value
        ```
    """

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_path: Optional[str] = None,
    ):
        """Initialize DuckDB adapter.

        Note:
            If both db_config and db_path are provided, db_config takes precedence.
            If neither is provided, defaults to in-memory database.
        """
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.db_path or ":memory:"
        elif db_path:
            self.db_path = db_path
        else:
            self.db_path = ":memory:"

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create DuckDB connection (created lazily, then reused)."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except duckdb.Error as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                )
        return self._connection

    def _ensure_schema(self) -> Result[None]:
        if self._initialized:
            return Result.success_result(None)
        return self.initialize_schema()

    def initialize_schema(self) -> Result[None]:
        """Create the visit_analytics and pipeline_audit_log tables.

        Returns:
            Result[None]: Success or failure result
        """
        try:
            conn = self._get_connection()

            columns_sql = ",\n".join(f"    {name} {ddl}" for name, ddl in VISIT_COLUMNS.items())
            conn.execute(f"CREATE TABLE IF NOT EXISTS {VISIT_TABLE} (\n{columns_sql}\n)")

            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {AUDIT_TABLE} (
                    audit_id VARCHAR PRIMARY KEY,
                    event_type VARCHAR NOT NULL,
                    event_timestamp TIMESTAMP NOT NULL,
                    run_id VARCHAR,
                    severity VARCHAR NOT NULL,
                    details VARCHAR
                )
            """)

            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_audit_event_type ON {AUDIT_TABLE}(event_type)")

            self._initialized = True
            logger.info("Database schema initialized successfully")
            return Result.success_result(None)

        except (duckdb.Error, StorageError) as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="initialize_schema"),
                error_type="StorageError"
            )

    def persist_analytics(self, records: Sequence[AnalyticsVisitRecord]) -> Result[int]:
        """Persist enriched visits, replacing any row with the same visit_id.

        Parameters:
            records: Analytics records to persist

        Returns:
            Result[int]: Number of rows persisted or error
        """
        if not records:
            return Result.success_result(0)

        init_result = self._ensure_schema()
        if not init_result.is_success():
            return init_result

        try:
            conn = self._get_connection()
            df = records_to_frame(records)

            columns_str = ", ".join(VISIT_COLUMNS)
            conn.register("visits_temp", df)
            try:
                conn.execute(
                    f"INSERT OR REPLACE INTO {VISIT_TABLE} ({columns_str}) "
                    f"SELECT {columns_str} FROM visits_temp"
                )
            finally:
                conn.unregister("visits_temp")

            row_count = len(df)
            logger.info(f"Persisted {row_count} rows to table '{VISIT_TABLE}'")
            return Result.success_result(row_count)

        except (duckdb.Error, StorageError) as e:
            error_msg = f"Failed to persist visits to {VISIT_TABLE}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="persist_analytics", details={"table_name": VISIT_TABLE}),
                error_type="StorageError"
            )

    def fetch_visits(self, visit_ids: Optional[Sequence[str]] = None) -> Result[pd.DataFrame]:
        """Read persisted visits ordered by visit_id.

        Parameters:
            visit_ids: Optional subset of visit identifiers
        """
        query = f"SELECT * FROM {VISIT_TABLE}"
        params: list = []
        if visit_ids is not None:
            if not visit_ids:
                return Result.success_result(pd.DataFrame(columns=list(VISIT_COLUMNS)))
            placeholders = ", ".join("?" for _ in visit_ids)
            query += f" WHERE visit_id IN ({placeholders})"
            params.extend(visit_ids)
        query += " ORDER BY visit_id"
        return self._query_frame(query, params, operation="fetch_visits")

    def log_audit_event(self, event_type: str, details: Optional[dict] = None) -> Result[str]:
        """Append a pipeline event to the audit log.

        Parameters:
            event_type: e.g. 'PIPELINE_RUN', 'STRUCTURAL_REJECTION'
            details: Additional event metadata (JSON-serialized); a 'run_id'
                     key is also stored in its own column

        Returns:
            Result[str]: Audit event identifier or error
        """
        init_result = self._ensure_schema()
        if not init_result.is_success():
            return init_result

        try:
            conn = self._get_connection()
            audit_id = str(uuid.uuid4())

            severity = "INFO"
            if event_type in ("STRUCTURAL_REJECTION", "PERSISTENCE_ERROR"):
                severity = "ERROR"

            conn.execute(f"""
                INSERT INTO {AUDIT_TABLE} (
                    audit_id, event_type, event_timestamp, run_id, severity, details
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, [
                audit_id,
                event_type,
                datetime.now(),
                details.get("run_id") if details else None,
                severity,
                json.dumps(details, default=str) if details else None,
            ])

            logger.debug(f"Logged audit event: {event_type} (ID: {audit_id})")
            return Result.success_result(audit_id)

        except (duckdb.Error, StorageError) as e:
            error_msg = f"Failed to log audit event: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="log_audit_event"),
                error_type="StorageError"
            )

    def fetch_audit_events(self, event_type: Optional[str] = None) -> Result[pd.DataFrame]:
        """Read audit events, newest first."""
        query = f"SELECT * FROM {AUDIT_TABLE}"
        params: list = []
        if event_type:
            query += " WHERE event_type = ?"
            params.append(event_type)
        query += " ORDER BY event_timestamp DESC"
        return self._query_frame(query, params, operation="fetch_audit_events")

    # ------------------------------------------------------------------
    # Read-only reporting summaries
    # ------------------------------------------------------------------

    def summarize_revenue(self) -> Result[dict]:
        """Total estimated revenue lost to pre-physician walkouts."""
        result = self._query_frame(
            f"""
            SELECT
                COALESCE(SUM(revenue_lost), 0) AS total_revenue_lost,
                ROUND(COALESCE(SUM(revenue_lost), 0) / 10000000, 2) AS crores_lost,
                COUNT(*) FILTER (WHERE revenue_lost > 0) AS lost_visits,
                COUNT(*) AS total_visits
            FROM {VISIT_TABLE}
            """,
            operation="summarize_revenue",
        )
        if not result.is_success():
            return result

        row = result.value.iloc[0]
        return Result.success_result({
            "total_revenue_lost": int(row["total_revenue_lost"]),
            "crores_lost": float(row["crores_lost"]),
            "lost_visits": int(row["lost_visits"]),
            "total_visits": int(row["total_visits"]),
        })

    def summarize_visit_status(self) -> Result[pd.DataFrame]:
        """Drop-off points: visits, share of total and average waits per status."""
        return self._query_frame(
            f"""
            SELECT
                visit_status,
                COUNT(*) AS patient_count,
                ROUND(COUNT(*) * 100.0 / SUM(COUNT(*)) OVER (), 2) AS pct_of_total,
                ROUND(AVG(wait_to_triage_min), 2) AS avg_triage_wait,
                ROUND(AVG(wait_to_doctor_min), 2) AS avg_doctor_wait
            FROM {VISIT_TABLE}
            GROUP BY visit_status
            ORDER BY patient_count DESC, visit_status
            """,
            operation="summarize_visit_status",
        )

    def summarize_severity(self) -> Result[pd.DataFrame]:
        """Triage safety audit: walkout rate per severity, most severe first."""
        order_cases = " ".join(
            f"WHEN '{level}' THEN {rank}" for rank, level in enumerate(SEVERITY_ORDER, start=1)
        )
        completed = VisitStatus.COMPLETED.value
        return self._query_frame(
            f"""
            SELECT
                severity_level,
                COUNT(*) AS total_patients,
                ROUND(AVG(wait_to_triage_min), 2) AS avg_triage_wait,
                ROUND(COUNT(*) FILTER (WHERE visit_status != '{completed}') * 100.0 / COUNT(*), 2)
                    AS walkout_pct
            FROM {VISIT_TABLE}
            GROUP BY severity_level
            ORDER BY CASE severity_level {order_cases} ELSE {len(SEVERITY_ORDER) + 1} END,
                     severity_level
            """,
            operation="summarize_severity",
        )

    def staffing_heatmap(self) -> Result[pd.DataFrame]:
        """Visits and LWBS rate per (day of week, hour of arrival)."""
        day_cases = " ".join(f"WHEN '{day}' THEN {rank}" for rank, day in enumerate(DAY_ORDER, start=1))
        lwbs = ", ".join(f"'{status.value}'" for status in sorted(REVENUE_LOSS_STATUSES, key=lambda s: s.value))
        return self._query_frame(
            f"""
            SELECT
                arrival_day_of_week,
                arrival_hour,
                COUNT(*) AS total_visits,
                COUNT(*) FILTER (WHERE visit_status IN ({lwbs})) AS lwbs_count,
                ROUND(COUNT(*) FILTER (WHERE visit_status IN ({lwbs})) * 100.0 / COUNT(*), 2)
                    AS lwbs_rate_pct
            FROM {VISIT_TABLE}
            WHERE arrival_day_of_week IS NOT NULL
            GROUP BY arrival_day_of_week, arrival_hour
            ORDER BY CASE arrival_day_of_week {day_cases} END, arrival_hour
            """,
            operation="staffing_heatmap",
        )

    def _query_frame(self, query: str, params: Optional[list] = None, operation: str = "query") -> Result[pd.DataFrame]:
        init_result = self._ensure_schema()
        if not init_result.is_success():
            return init_result

        try:
            conn = self._get_connection()
            return Result.success_result(conn.execute(query, params or []).df())
        except (duckdb.Error, StorageError) as e:
            error_msg = f"Query failed ({operation}): {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation=operation),
                error_type="StorageError"
            )

    def close(self) -> None:
        """Close storage connection and release resources."""
        if self._connection is not None:
            try:
                self._connection.close()
                logger.info("Closed DuckDB connection")
            except duckdb.Error as e:
                logger.warning(f"Error closing connection: {str(e)}")
            finally:
                self._connection = None
                self._initialized = False
