"""Data Quality Report Generator.

This module turns the health check statistics of a pipeline run into a
report dictionary, optionally saved as JSON, and prints a human-readable
summary of it.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from er_refinery.domain.ports import Result
from er_refinery.domain.quality_stats import QualityStats


def generate_quality_report(
    stats: QualityStats,
    output_path: Optional[str] = None,
    run_id: Optional[str] = None
) -> Result[dict]:
    """Generate a data quality report from run statistics.

    Parameters:
        stats: Health check statistics of the run
        output_path: Optional path to save report as JSON file
        run_id: Optional pipeline run identifier

    Returns:
        Result[dict]: Quality report dictionary or error
    """
    survival_rate = (
        round(stats.survivor_rows / stats.raw_rows * 100, 2) if stats.raw_rows else 0.0
    )

    report = {
        "run_id": run_id,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "raw_rows": stats.raw_rows,
            "duplicates_removed": stats.duplicates_removed,
            "survivor_rows": stats.survivor_rows,
            "survival_rate_pct": survival_rate,
            "patient_ids_mended": stats.patient_ids_mended,
            "invalid_ages": stats.invalid_ages,
            "missing_ages": stats.missing_ages,
            "unparseable_timestamps": stats.total_unparseable,
        },
        "timestamps": {
            "resolved": stats.resolved_timestamps,
            "unparseable": stats.unparseable_timestamps,
        },
        "complaints": {
            "categories": stats.complaint_categories,
            "non_canonical": stats.non_canonical_complaints,
        },
    }

    if output_path:
        try:
            output_file = Path(output_path)
            output_file.parent.mkdir(parents=True, exist_ok=True)

            with open(output_file, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, default=str)

            return Result.success_result({
                **report,
                "saved_to": str(output_file)
            })
        except OSError as e:
            return Result.failure_result(
                ValueError(f"Failed to save report to {output_path}: {str(e)}"),
                error_type="ValueError"
            )

    return Result.success_result(report)


def print_quality_report_summary(report: dict) -> None:
    """Print a human-readable summary of the quality report.

    Parameters:
        report: Quality report dictionary
    """
    print("=" * 70)
    print("DATA QUALITY REPORT - Visit Standardization Health Check")
    print("=" * 70)

    if report.get('run_id'):
        print(f"Run ID: {report['run_id']}")

    summary = report.get('summary', {})
    print(f"\nRaw rows: {summary.get('raw_rows', 0)}")
    print(f"Duplicates removed: {summary.get('duplicates_removed', 0)}")
    print(f"Survivor rows: {summary.get('survivor_rows', 0)} ({summary.get('survival_rate_pct', 0.0)}%)")
    print(f"Patient ids mended: {summary.get('patient_ids_mended', 0)}")
    print(f"Invalid ages nulled: {summary.get('invalid_ages', 0)}")
    print(f"Missing ages: {summary.get('missing_ages', 0)}")

    timestamps = report.get('timestamps', {})
    print("\nTimestamps resolved / unparseable:")
    unparseable = timestamps.get('unparseable', {})
    for field, count in timestamps.get('resolved', {}).items():
        print(f"  {field}: {count} / {unparseable.get(field, 0)}")

    non_canonical = report.get('complaints', {}).get('non_canonical', {})
    if non_canonical:
        print("\nWARNING: Complaints outside the canonical vocabulary:")
        for complaint, count in non_canonical.items():
            print(f"  {complaint}: {count}")
    else:
        print("\nAll complaints mapped to canonical categories.")

    print("\n" + "=" * 70)
