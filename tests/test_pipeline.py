"""End-to-end tests for the visit pipeline.

Tests cover:
- Deduplicate -> standardize -> enrich over a complete batch
- Worker fan-out equivalence
- Source processing into DuckDB with audit events
- Structural rejection of duplicate visit ids
"""

import json
import logging

import pytest

from er_refinery.adapters.storage import DuckDBAdapter
from er_refinery.domain.enums import AgeQualityFlag, VisitStatus
from er_refinery.domain.pipeline_config import PipelineConfig
from er_refinery.domain.ports import ValidationError
from er_refinery.infrastructure.config_manager import DatabaseConfig
from er_refinery.infrastructure.logging_config import StructuredFormatter
from er_refinery.main import (
    VisitPipeline,
    create_storage_adapter,
    ensure_unique_visit_ids,
    load_raw_records,
    process_source,
)


@pytest.fixture
def storage():
    adapter = DuckDBAdapter(db_path=":memory:")
    yield adapter
    adapter.close()


class TestVisitPipeline:
    """Test the in-memory pipeline stages."""

    def test_run(self, make_raw):
        """Test duplicates are dropped before standardization and enrichment."""
        result = VisitPipeline().run([
            make_raw("V2", triage_time=None),
            make_raw("V1"),
            make_raw("V3", patient_id=None, age="999", complaint_category="Toothache"),
        ])

        assert [a.visit_id for a in result.analytics] == ["V1", "V3"]
        assert result.dropped_visit_ids == ("V2",)
        assert result.analytics[0].visit_status is VisitStatus.COMPLETED
        assert result.analytics[1].age_quality_flag is AgeQualityFlag.INVALID

        stats = result.stats
        assert stats.raw_rows == 3
        assert stats.duplicates_removed == 1
        assert stats.survivor_rows == 2
        assert stats.patient_ids_mended == 1
        assert stats.invalid_ages == 1
        assert stats.non_canonical_complaints == {"Toothache": 1}

    def test_every_survivor_enriched(self, make_raw):
        """Test output size equals survivor count, with no extra drops."""
        records = [
            make_raw(f"V{i}", patient_id=f"P{i}", triage_time="bad", age="x")
            for i in range(5)
        ]
        result = VisitPipeline().run(records)

        assert len(result.analytics) == 5
        assert result.stats.unparseable_timestamps["triage_time"] == 5
        assert result.stats.missing_ages == 5

    def test_workers_match_sequential(self, make_raw):
        """Test chunked fan-out gives the same records in the same order."""
        records = [
            make_raw(f"V{i:02d}", patient_id=f"P{i % 4}", arrival_time=f"2024-04-15 1{i % 3}:00:00")
            for i in range(12)
        ]

        sequential = VisitPipeline(workers=1).run(records)
        parallel = VisitPipeline(workers=3, chunk_size=2).run(records)

        assert parallel.analytics == sequential.analytics
        assert parallel.stats == sequential.stats

    @pytest.mark.parametrize("kwargs", [{"workers": 0}, {"chunk_size": 0}])
    def test_invalid_fan_out(self, kwargs):
        """Test non-positive workers or chunk size are rejected."""
        with pytest.raises(ValueError):
            VisitPipeline(**kwargs)

    def test_config_flows_to_stages(self, make_raw):
        """Test configuration reaches validation and derivation."""
        config = PipelineConfig(age_max=40, revenue_loss_per_visit=10)
        result = VisitPipeline(config).run([make_raw("V1", triage_time=None)])

        assert result.analytics[0].age is None
        assert result.analytics[0].revenue_lost == 10


class TestLoadRawRecords:
    """Test reading a complete source."""

    def test_load(self, sample_csv):
        """Test every row is loaded as a raw record."""
        records = load_raw_records(str(sample_csv), chunk_size=2)
        assert [r.visit_id for r in records] == ["V1", "V2", "V3", "V4"]

    def test_duplicate_visit_ids_rejected(self, make_raw):
        """Test two rows with one visit_id violate the input contract."""
        with pytest.raises(ValidationError) as exc_info:
            ensure_unique_visit_ids([make_raw("V1"), make_raw("V2"), make_raw("V1")])
        assert exc_info.value.details["visit_ids"] == ["V1"]


class TestProcessSource:
    """Test source -> analytics relation."""

    def test_process_csv(self, sample_csv, storage):
        """Test the dirty sample is cleaned, enriched and persisted."""
        run_result, run_id = process_source(str(sample_csv), storage)

        stats = run_result.stats
        assert stats.raw_rows == 4
        assert stats.duplicates_removed == 1
        assert stats.survivor_rows == 3
        assert stats.patient_ids_mended == 1
        assert stats.invalid_ages == 1
        assert stats.missing_ages == 1
        assert stats.resolved_timestamps == {
            "arrival_time": 3,
            "triage_time": 2,
            "doctor_assigned_time": 1,
            "discharge_time": 1,
        }

        df = storage.fetch_visits().value
        assert df["visit_id"].tolist() == ["V1", "V3", "V4"]
        visits = df.set_index("visit_id")
        assert visits.loc["V1", "complaint_category"] == "Chest Pain"
        assert visits.loc["V1", "severity_level"] == "Critical"
        assert visits.loc["V1", "total_visit_duration_min"] == 90
        assert visits.loc["V3", "patient_id"] == "UNKNOWN_PATIENT"
        assert visits.loc["V3", "complaint_category"] == "Injury/Trauma"
        assert visits.loc["V3", "visit_status"] == "Left Before Triage"
        assert visits.loc["V3", "patient_id_quality_flag"] == "Missing"
        assert visits.loc["V3", "revenue_lost"] == 5000
        assert visits.loc["V4", "visit_status"] == "Left Before Doctor"
        assert visits.loc["V4", "age_quality_flag"] == "Missing"

        audit = storage.fetch_audit_events("PIPELINE_RUN").value
        assert audit.loc[0, "run_id"] == run_id
        details = json.loads(audit.loc[0, "details"])
        assert details["dropped_visit_ids"] == ["V2"]
        assert details["persisted"] == 3

    def test_log_lines_carry_run_id(self, sample_csv, storage, caplog):
        """Test JSON log lines from a run carry its run_id and summary fields."""
        caplog.set_level(logging.INFO, logger="er_refinery.main")

        _, run_id = process_source(str(sample_csv), storage)

        formatter = StructuredFormatter()
        lines = [
            json.loads(formatter.format(record))
            for record in caplog.records
            if record.name == "er_refinery.main" and hasattr(record, "run_id")
        ]
        assert lines
        assert all(line["run_id"] == run_id for line in lines)
        persisted = [line for line in lines if line["message"].startswith("Persisted")]
        assert persisted[0]["persisted"] == 3
        assert persisted[0]["duplicates_removed"] == 1

    def test_rerun_is_idempotent(self, sample_csv, storage):
        """Test processing the same source twice leaves one row per visit."""
        process_source(str(sample_csv), storage)
        process_source(str(sample_csv), storage, workers=2, chunk_size=1)

        assert len(storage.fetch_visits().value) == 3

    def test_duplicate_visit_id_aborts(self, tmp_path, storage):
        """Test a structural violation aborts the run and is audited."""
        path = tmp_path / "dupes.csv"
        path.write_text(
            "visit_id,patient_id,arrival_time\n"
            "V1,P1,2024-04-15 14:30:00\n"
            "V1,P2,2024-04-15 15:30:00\n",
            encoding="utf-8",
        )

        with pytest.raises(ValidationError):
            process_source(str(path), storage)

        assert storage.fetch_visits().value.empty
        rejections = storage.fetch_audit_events("STRUCTURAL_REJECTION").value
        assert len(rejections) == 1
        assert rejections.loc[0, "severity"] == "ERROR"


class TestCreateStorageAdapter:
    """Test storage adapter selection."""

    def test_duckdb(self):
        """Test DuckDB configuration yields a DuckDB adapter."""
        adapter = create_storage_adapter(DatabaseConfig(db_path=":memory:"))
        assert isinstance(adapter, DuckDBAdapter)
        assert adapter.db_path == ":memory:"
