"""Unit tests for JSON Ingestion Adapter."""

import json

import pandas as pd
import pytest

from er_refinery.adapters.ingesters.json_ingester import JSONIngester
from er_refinery.domain.ports import SourceNotFoundError, UnsupportedSourceError


def write_json(tmp_path, payload, name="visits.json"):
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def read_all(path, **kwargs):
    results = list(JSONIngester(**kwargs).ingest(str(path)))
    return pd.concat([result.value for result in results], ignore_index=True)


class TestJSONStructures:
    """Test supported document shapes."""

    def test_array_of_objects(self, tmp_path):
        """Test a plain array of visit objects."""
        path = write_json(tmp_path, [
            {"visit_id": "V1", "arrival_time": "2024-04-15 14:30:00", "age": 45},
            {"visit_id": "V2", "arrival_time": "Apr 15 2024 14:30", "age": None},
        ])

        df = read_all(path)

        assert df["visit_id"].tolist() == ["V1", "V2"]
        assert df.loc[0, "age"] == "45"
        assert df.loc[1, "age"] is None
        assert df.loc[0, "triage_time"] is None

    @pytest.mark.parametrize("wrapper", ["visits", "records", "data"])
    def test_wrapper_object(self, tmp_path, wrapper):
        """Test wrapper keys around the visit array."""
        path = write_json(tmp_path, {wrapper: [{"visit_id": "V1", "arrival_time": "x"}]})
        assert read_all(path)["visit_id"].tolist() == ["V1"]

    def test_single_object(self, tmp_path):
        """Test a single visit object."""
        path = write_json(tmp_path, {"visit_id": "V1", "arrival_time": "x"})
        assert len(read_all(path)) == 1

    def test_values_coerced_to_text(self, tmp_path):
        """Test non-string JSON values become text and NULL tokens become None."""
        path = write_json(tmp_path, [{
            "visit_id": 17,
            "arrival_time": "2024-04-15 14:30:00",
            "insurance_status": True,
            "severity_level": "NULL",
        }])

        df = read_all(path)

        assert df.loc[0, "visit_id"] == "17"
        assert df.loc[0, "insurance_status"] == "true"
        assert df.loc[0, "severity_level"] is None

    def test_chunking(self, tmp_path):
        """Test records are yielded in fixed-size chunks."""
        path = write_json(tmp_path, [{"visit_id": f"V{i}", "arrival_time": "x"} for i in range(5)])
        results = list(JSONIngester(chunk_size=2).ingest(str(path)))
        assert [len(result.value) for result in results] == [2, 2, 1]

    def test_empty_array(self, tmp_path):
        """Test an empty array yields nothing."""
        path = write_json(tmp_path, [])
        assert list(JSONIngester().ingest(str(path))) == []


class TestJSONErrors:
    """Test unusable JSON sources."""

    def test_missing_file(self, tmp_path):
        """Test a missing file raises SourceNotFoundError."""
        with pytest.raises(SourceNotFoundError):
            list(JSONIngester().ingest(str(tmp_path / "absent.json")))

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON is unsupported."""
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(UnsupportedSourceError):
            list(JSONIngester().ingest(str(path)))

    def test_non_object_records(self, tmp_path):
        """Test arrays of scalars are unsupported."""
        path = write_json(tmp_path, [1, 2, 3])
        with pytest.raises(UnsupportedSourceError):
            list(JSONIngester().ingest(str(path)))

    def test_scalar_document(self, tmp_path):
        """Test a scalar document is unsupported."""
        path = write_json(tmp_path, 42)
        with pytest.raises(UnsupportedSourceError):
            list(JSONIngester().ingest(str(path)))

    def test_no_visit_id_field(self, tmp_path):
        """Test records without visit ids are unsupported."""
        path = write_json(tmp_path, [{"arrival_time": "x"}])
        with pytest.raises(UnsupportedSourceError):
            list(JSONIngester().ingest(str(path)))
