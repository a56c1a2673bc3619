"""End-to-End Example: Raw ED Visit Export to DuckDB Analytics.

This example demonstrates the complete data flow:
1. Raw CSV -> text-only DataFrame chunks -> RawVisitRecords
2. Deduplicate -> standardize -> enrich
3. Persist to DuckDB and read the operational summaries back

Run with the package installed (pip install -e .).
"""

import csv
import tempfile
from pathlib import Path

from er_refinery.adapters.storage.duckdb_adapter import DuckDBAdapter
from er_refinery.infrastructure.quality_report import (
    generate_quality_report,
    print_quality_report_summary,
)
from er_refinery.main import process_source


def create_sample_csv(file_path: Path):
    """Create a sample visit export with typical source defects."""
    rows = [
        ["visit_id", "patient_id", "arrival_time", "triage_time", "doctor_assigned_time",
         "discharge_time", "complaint_category", "severity_level", "age",
         "insurance_status", "doctor_id", "nurse_id"],
        # Completed visit, one layout per timestamp
        ["V001", "P001", "2024-04-15 14:30:00", "2024/04/15 14:45", "15-Apr-2024 15:10",
         "Apr 15 2024 16:00", "chest pain", "critical", "45", "Private", "D01", "N01"],
        # Ghost duplicate of V001
        ["V002", "P001", "2024-04-15 14:30:00", "2024/04/15 14:50", "", "",
         "Chest Pain", "High", "45", "Private", "D01", "N01"],
        # Left before triage, missing patient id, sentinel age
        ["V003", "", "2024-04-15 23:05:00", "", "", "",
         "Injury / Trauma", "low", "999", "", "", ""],
        # Left before doctor
        ["V004", "P004", "16-Apr-2024 02:15", "2024-04-16 02:40:00", "", "",
         "NAUSEA/VOMITING", "Medium", "NULL", "Public", "", "N02"],
    ]

    with open(file_path, "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows(rows)

    print(f"SUCCESS: Created CSV file: {file_path}")
    print(f"  Records: {len(rows) - 1} (excluding header)")


def main():
    with tempfile.TemporaryDirectory() as temp_dir:
        csv_path = Path(temp_dir) / "er_visits.csv"
        create_sample_csv(csv_path)

        storage = DuckDBAdapter(db_path=str(Path(temp_dir) / "er_analytics.duckdb"))
        try:
            run_result, run_id = process_source(str(csv_path), storage)

            print("\nEnriched visits:")
            for visit in run_result.analytics:
                print(
                    f"  {visit.visit_id}: {visit.visit_status.value:<22} "
                    f"complaint={visit.complaint_category!r} "
                    f"total={visit.total_visit_duration_min} min "
                    f"revenue_lost={visit.revenue_lost}"
                )

            print_quality_report_summary(generate_quality_report(run_result.stats, run_id=run_id).value)

            print("\nRevenue leakage:", storage.summarize_revenue().value)
            print("\nVisit status breakdown:")
            print(storage.summarize_visit_status().value.to_string(index=False))
        finally:
            storage.close()


if __name__ == "__main__":
    main()
