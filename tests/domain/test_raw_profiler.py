"""Unit tests for raw data profiling."""

import pandas as pd

from er_refinery.domain.services.raw_profiler import RawDataProfiler, pattern_skeleton


class TestPatternSkeleton:
    """Test layout skeletons."""

    def test_digits_replaced(self):
        """Test digits become X while separators and letters stay."""
        assert pattern_skeleton("2024-04-15 14:30:00") == "XXXX-XX-XX XX:XX:XX"
        assert pattern_skeleton("15-Apr-2024 14:30") == "XX-Apr-XXXX XX:XX"

    def test_none(self):
        assert pattern_skeleton(None) is None


class TestRawDataProfiler:
    """Test the raw batch assessment."""

    def setup_method(self):
        self.df = pd.DataFrame({
            "visit_id": ["V1", "V2", "V3", "V4"],
            "patient_id": ["P1", None, "P3", "P4"],
            "arrival_time": [
                "2024-04-15 14:30:00",
                "2024/04/15 14:30",
                "2024-04-16 09:00:00",
                "Apr 15 2024 14:30",
            ],
            "triage_time": [None, "2024/04/15 14:40", None, None],
            "complaint_category": ["chest pain", "Chest Pain", "Chest Pain", None],
        })

    def test_counts_and_gaps(self):
        """Test null counts split into quality gaps and business signals."""
        profile = RawDataProfiler().profile(self.df)

        assert profile["total_rows"] == 4
        assert profile["null_counts"]["patient_id"] == 1
        assert profile["quality_gaps"]["patient_id"] == 1
        assert profile["signal_gaps"]["triage_time"] == 3
        assert "triage_time" not in profile["quality_gaps"]
        # Columns missing from the frame count as entirely null
        assert profile["null_counts"]["age"] == 4

    def test_timestamp_patterns(self):
        """Test arrival layouts are counted, most frequent first."""
        patterns = RawDataProfiler().profile(self.df)["timestamp_patterns"]["arrival_time"]
        assert list(patterns.items()) == [
            ("XXXX-XX-XX XX:XX:XX", 2),
            ("Apr XX XXXX XX:XX", 1),
            ("XXXX/XX/XX XX:XX", 1),
        ]

    def test_complaint_variants(self):
        """Test distinct complaint spellings are counted."""
        variants = RawDataProfiler().profile(self.df)["complaint_variants"]
        assert variants == {"Chest Pain": 2, "chest pain": 1}

    def test_ghost_duplicates(self):
        """Test rows sharing raw patient_id and arrival text are counted."""
        df = pd.DataFrame({
            "visit_id": ["V3", "V1", "V2", "V4", "V5"],
            "patient_id": ["P1", "P1", "P2", None, None],
            "arrival_time": ["2024-04-15 14:30:00"] * 3 + ["2024-04-16 09:00:00"] * 2,
        })

        profile = RawDataProfiler().profile(df)

        # V3 repeats V1; V5 repeats V4 through the null patient_id collapse
        assert profile["ghost_duplicates"] == 2
        assert RawDataProfiler().profile(self.df)["ghost_duplicates"] == 0

    def test_empty_frame(self):
        """Test an empty batch profiles without error."""
        profile = RawDataProfiler().profile(pd.DataFrame())
        assert profile["total_rows"] == 0
        assert profile["complaint_variants"] == {}
        assert profile["ghost_duplicates"] == 0
