"""Unit tests for the pipeline configuration model."""

import pytest
from pydantic import ValidationError

from er_refinery.domain.pipeline_config import PipelineConfig, TimestampEncoding


class TestPipelineConfigDefaults:
    """Test default vocabulary."""

    def test_defaults(self):
        """Test documented default values."""
        config = PipelineConfig()
        assert [e.name for e in config.timestamp_encodings] == [
            "iso_seconds", "slash_minutes", "day_first_month_name", "month_name_first",
        ]
        assert config.age_min == 1
        assert config.age_max == 120
        assert config.revenue_loss_per_visit == 5000
        assert config.unknown_patient_id == "UNKNOWN_PATIENT"

    def test_frozen(self):
        """Test configuration cannot be mutated after validation."""
        config = PipelineConfig()
        with pytest.raises(ValidationError):
            config.age_max = 200


class TestPipelineConfigValidation:
    """Test fail-fast validation."""

    def test_complaint_keys_normalized(self):
        """Test lookup keys are trimmed and upper-cased."""
        config = PipelineConfig(complaint_map={" chest pain ": "Chest Pain"})
        assert config.complaint_map == {"CHEST PAIN": "Chest Pain"}

    @pytest.mark.parametrize("overrides", [
        {"timestamp_encodings": []},
        {"timestamp_encodings": [
            TimestampEncoding(name="a", pattern="%Y"),
            TimestampEncoding(name="a", pattern="%m"),
        ]},
        {"age_min": 50, "age_max": 10},
        {"adult_min_age": 60, "senior_min_age": 60},
        {"revenue_loss_per_visit": -1},
        {"complaint_map": {"  ": "Nothing"}},
    ])
    def test_invalid_configurations_rejected(self, overrides):
        """Test inconsistent settings raise at construction."""
        with pytest.raises(ValidationError):
            PipelineConfig(**overrides)

    def test_from_overrides_ignores_none(self):
        """Test None values fall back to defaults."""
        config = PipelineConfig.from_overrides({"age_max": 99, "age_min": None})
        assert config.age_max == 99
        assert config.age_min == 1

    def test_encodings_from_dicts(self):
        """Test encodings can be given as plain dictionaries (JSON config)."""
        config = PipelineConfig.from_overrides({
            "timestamp_encodings": [{"name": "us", "pattern": "%m/%d/%Y %H:%M"}],
        })
        assert config.timestamp_encodings[0].pattern == "%m/%d/%Y %H:%M"
