"""Generate a large, deliberately dirty ED visit CSV file.

The file mimics the raw visit export the pipeline cleans: timestamps in four
regional layouts, lowercase and spaced-slash complaint spellings, sentinel
ages (999), missing patient ids, injected ghost duplicates and walkouts with
missing triage or doctor times.

Generated data is synthetic and meant for manual runs and benchmarking.
"""

import csv
import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from er_refinery.domain.pipeline_config import CANONICAL_COMPLAINTS, DEFAULT_TIMESTAMP_ENCODINGS
from er_refinery.domain.services.timestamp_resolver import TimestampResolver
from er_refinery.domain.visit_records import RAW_FIELDS

SEVERITIES = ["Critical", "High", "Medium", "Low"]
SEVERITY_WEIGHTS = [0.1, 0.25, 0.4, 0.25]
INSURANCE_STATUSES = ["Private", "Public", "Self-Pay"]

# Most arrivals use the warehouse layout; the rest are regional variants
ENCODING_WEIGHTS = [0.85, 0.05, 0.05, 0.05]


def dirty_complaint(label: str) -> str:
    """Return the label, or a lowercase / spaced-slash variant of it."""
    roll = random.random()
    if roll < 0.1:
        return label.lower()
    if roll < 0.15 and "/" in label:
        return label.replace("/", " / ")
    return label


def render_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    encoding = random.choices(DEFAULT_TIMESTAMP_ENCODINGS, weights=ENCODING_WEIGHTS)[0]
    return TimestampResolver.serialize(value, encoding)


def generate_visit(visit_num: int, base_date: datetime) -> Dict[str, Any]:
    """Generate one raw visit row."""
    arrival = base_date + timedelta(
        days=random.randint(0, 364),
        hours=random.randint(0, 23),
        minutes=random.randint(0, 59),
        seconds=random.randint(0, 59),
    )
    triage = arrival + timedelta(minutes=random.randint(2, 45))
    doctor = triage + timedelta(minutes=random.randint(5, 120))
    discharge = doctor + timedelta(minutes=random.randint(15, 300))

    # Walkouts
    outcome = random.random()
    if outcome < 0.05:
        triage = doctor = discharge = None
    elif outcome < 0.12:
        doctor = discharge = None
    elif outcome < 0.15:
        discharge = None

    age = str(random.randint(1, 95))
    if random.random() < 0.02:
        age = "999"
    elif random.random() < 0.02:
        age = ""

    return {
        "visit_id": f"V{visit_num:07d}",
        "patient_id": "" if random.random() < 0.01 else f"P{random.randint(1, 999999):06d}",
        "arrival_time": render_timestamp(arrival),
        "triage_time": render_timestamp(triage),
        "doctor_assigned_time": render_timestamp(doctor),
        "discharge_time": render_timestamp(discharge),
        "complaint_category": dirty_complaint(random.choice(CANONICAL_COMPLAINTS)),
        "severity_level": random.choices(SEVERITIES, weights=SEVERITY_WEIGHTS)[0],
        "age": age,
        "insurance_status": "" if random.random() < 0.03 else random.choice(INSURANCE_STATUSES),
        "doctor_id": f"D{random.randint(1, 40):03d}" if doctor else "",
        "nurse_id": f"N{random.randint(1, 80):03d}" if triage else "",
    }


def generate_visit_file(
    output_path: Path,
    num_records: int = 30000,
    duplicate_rate: float = 0.01,
    seed: Optional[int] = None,
) -> None:
    """Generate a raw visit CSV file.

    Parameters:
        output_path: CSV file to write
        num_records: Number of distinct visits (default: 30,000)
        duplicate_rate: Share of visits re-emitted as ghost duplicates
        seed: Random seed for reproducible files
    """
    if seed is not None:
        random.seed(seed)

    print(f"Generating ED visit file with {num_records:,} visits...")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    base_date = datetime(2024, 1, 1)

    ghost_count = 0
    next_visit_num = num_records + 1
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(RAW_FIELDS))
        writer.writeheader()

        for visit_num in range(1, num_records + 1):
            row = generate_visit(visit_num, base_date)
            writer.writerow(row)

            # Ghost duplicate: same patient and arrival text, new visit id
            if random.random() < duplicate_rate:
                ghost = dict(row, visit_id=f"V{next_visit_num:07d}")
                writer.writerow(ghost)
                next_visit_num += 1
                ghost_count += 1

            if visit_num % 10000 == 0:
                print(f"  Generated {visit_num:,} visits...")

    file_size_mb = output_path.stat().st_size / (1024 * 1024)
    print(f"\nSUCCESS: Generated {output_path}")
    print(f"  Size: {file_size_mb:.2f} MB")
    print(f"  Rows: {num_records + ghost_count:,} ({ghost_count:,} ghost duplicates)")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Generate a dirty ED visit CSV file")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output file path (default: test_data/er_visits_{records}.csv)"
    )
    parser.add_argument(
        "--records",
        type=int,
        default=30000,
        help="Number of distinct visits to generate (default: 30000)"
    )
    parser.add_argument(
        "--duplicate-rate",
        type=float,
        default=0.01,
        help="Share of visits re-emitted as ghost duplicates (default: 0.01)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible output"
    )

    args = parser.parse_args()

    if args.output is None:
        args.output = Path(f"test_data/er_visits_{args.records}.csv")

    generate_visit_file(args.output, args.records, args.duplicate_rate, args.seed)


if __name__ == "__main__":
    main()
