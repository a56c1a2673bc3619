"""Tests for the er-refinery command line interface."""

import json
import logging

import pytest
from typer.testing import CliRunner

from er_refinery.adapters.storage import DuckDBAdapter
from er_refinery.cli import app
from er_refinery.infrastructure.settings import settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolate_cli(monkeypatch, tmp_path):
    """Keep reports in tmp_path and restore root logging handlers."""
    monkeypatch.setattr(settings, "quality_report_dir", str(tmp_path / "reports"))
    root = logging.getLogger()
    original_handlers, original_level = root.handlers[:], root.level
    yield
    root.handlers[:] = original_handlers
    root.setLevel(original_level)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "er.duckdb"


class TestRunCommand:
    """Test the run command."""

    def test_run(self, sample_csv, db_path, tmp_path):
        """Test a dirty export is processed, persisted and reported."""
        result = runner.invoke(app, ["run", str(sample_csv), "--db-path", str(db_path)])

        assert result.exit_code == 0, result.output
        assert "Pipeline completed successfully" in result.output
        assert "DATA QUALITY REPORT" in result.output

        reports = list((tmp_path / "reports").glob("quality_report_*.json"))
        assert len(reports) == 1
        assert json.loads(reports[0].read_text(encoding="utf-8"))["summary"]["duplicates_removed"] == 1

        storage = DuckDBAdapter(db_path=str(db_path))
        try:
            assert storage.fetch_visits().value["visit_id"].tolist() == ["V1", "V3", "V4"]
        finally:
            storage.close()

    def test_no_quality_report(self, sample_csv, db_path, tmp_path):
        """Test the quality report can be skipped."""
        result = runner.invoke(app, [
            "run", str(sample_csv), "--db-path", str(db_path), "--no-quality-report", "--workers", "2",
        ])

        assert result.exit_code == 0, result.output
        assert "DATA QUALITY REPORT" not in result.output
        assert not (tmp_path / "reports").exists()

    def test_structural_violation(self, tmp_path, db_path):
        """Test duplicate visit ids fail the run with exit code 1."""
        path = tmp_path / "dupes.csv"
        path.write_text(
            "visit_id,arrival_time\nV1,2024-04-15 14:30:00\nV1,2024-04-15 15:00:00\n",
            encoding="utf-8",
        )

        result = runner.invoke(app, ["run", str(path), "--db-path", str(db_path)])

        assert result.exit_code == 1
        assert "Input rejected" in result.output

    def test_invalid_config_file(self, sample_csv, tmp_path, db_path):
        """Test an inconsistent configuration file is reported."""
        config_file = tmp_path / "bad.json"
        config_file.write_text(json.dumps({"pipeline": {"age_min": 90, "age_max": 10}}), encoding="utf-8")

        result = runner.invoke(app, [
            "run", str(sample_csv), "--config", str(config_file), "--db-path", str(db_path),
        ])

        assert result.exit_code == 1
        assert "Invalid pipeline configuration" in result.output

    def test_missing_input(self, tmp_path):
        """Test a missing input file is rejected by argument validation."""
        result = runner.invoke(app, ["run", str(tmp_path / "absent.csv")])
        assert result.exit_code != 0


class TestProfileCommand:
    """Test the profile command."""

    def test_profile(self, sample_csv):
        """Test the raw assessment is printed."""
        result = runner.invoke(app, ["profile", str(sample_csv)])

        assert result.exit_code == 0, result.output
        assert "Raw Data Assessment" in result.output
        assert "Ghost duplicates: 1" in result.output
        assert "Complaint variants" in result.output


class TestReportCommand:
    """Test the report command."""

    def test_report_after_run(self, sample_csv, db_path):
        """Test summaries are read back from the analytics database."""
        run_result = runner.invoke(app, [
            "run", str(sample_csv), "--db-path", str(db_path), "--no-quality-report",
        ])
        assert run_result.exit_code == 0, run_result.output

        result = runner.invoke(app, ["report", "--db-path", str(db_path), "--heatmap"])

        assert result.exit_code == 0, result.output
        assert "Revenue Leakage" in result.output
        assert "10,000" in result.output
        assert "Staffing Heatmap" in result.output


class TestInfoCommand:
    """Test the info command."""

    def test_info(self):
        """Test configuration in effect is displayed."""
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0, result.output
        assert "iso_seconds" in result.output
