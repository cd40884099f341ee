"""Tests for the bundled schemas, the schema registry and WTF record checks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from vcon_wtf.schema import (
    SchemaNotFoundError,
    SchemaRegistry,
    SchemaValidationError,
    SchemaValidator,
    validate_wtf_transcription,
)


@pytest.fixture
def record() -> dict[str, Any]:
    return {
        "transcript": {"text": "Hello.", "language": "en", "duration": 1.0, "confidence": 0.9},
        "segments": [
            {"id": 0, "start": 0.0, "end": 1.0, "text": "Hello.", "confidence": 0.9, "speaker": 0}
        ],
        "metadata": {
            "created_at": "2024-05-01T12:00:00.000Z",
            "processed_at": "2024-05-01T12:00:00.000Z",
            "provider": "nvidia",
            "model": "parakeet-tdt-1.1b",
            "audio": {"duration": 1.0},
        },
        "words": [
            {"id": 0, "start": 0.0, "end": 0.5, "text": "Hello", "confidence": 0.9},
            {"id": 1, "start": 0.5, "end": 0.6, "text": ".", "confidence": 1.0},
        ],
        "speakers": {"0": {"id": 0, "label": "Speaker 0", "segments": [0], "total_time": 1.0}},
        "quality": {"average_confidence": 0.9, "multiple_speakers": False},
    }


class TestWtfRecord:
    def test_valid_record(self, record: dict[str, Any]) -> None:
        assert validate_wtf_transcription(record) == []

    def test_end_equal_to_start_is_accepted(self, record: dict[str, Any]) -> None:
        record["segments"][0].update(start=1.0, end=1.0)
        assert validate_wtf_transcription(record) == []

    def test_end_before_start_is_rejected(self, record: dict[str, Any]) -> None:
        record["segments"][0].update(start=1.0, end=0.5)
        assert validate_wtf_transcription(record) == [
            {"path": "segments.0", "message": "end time must be >= start time"}
        ]

    @pytest.mark.parametrize("confidence", [0, 0.0, 1, 1.0])
    def test_confidence_bounds_are_inclusive(
        self, record: dict[str, Any], confidence: float
    ) -> None:
        record["transcript"]["confidence"] = confidence
        record["words"][0]["confidence"] = confidence
        assert validate_wtf_transcription(record) == []

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_outside_unit_interval(
        self, record: dict[str, Any], confidence: float
    ) -> None:
        record["segments"][0]["confidence"] = confidence
        errors = validate_wtf_transcription(record)
        assert [e["path"] for e in errors] == ["segments.0.confidence"]

    def test_negative_time_is_rejected(self, record: dict[str, Any]) -> None:
        record["words"][0]["start"] = -0.1
        assert [e["path"] for e in validate_wtf_transcription(record)] == ["words.0.start"]

    def test_string_speaker_ids_are_accepted(self, record: dict[str, Any]) -> None:
        record["segments"][0]["speaker"] = "agent"
        record["speakers"] = {"agent": {"id": "agent"}}
        assert validate_wtf_transcription(record) == []

    def test_missing_sections(self) -> None:
        errors = validate_wtf_transcription({})
        assert [e["path"] for e in errors] == ["metadata", "segments", "transcript"]

    def test_audio_metadata_requires_duration(self, record: dict[str, Any]) -> None:
        record["metadata"]["audio"] = {"sample_rate": 16000}
        errors = validate_wtf_transcription(record)
        assert [e["path"] for e in errors] == ["metadata.audio.duration"]

    def test_optional_sections_are_accepted(self, record: dict[str, Any]) -> None:
        record["alternatives"] = [{"text": "Hallo.", "confidence": 0.4}]
        record["extensions"] = {"acme": {"call_center": "east"}}
        record["streaming"] = {"is_final": True, "sequence_number": 3}
        assert validate_wtf_transcription(record) == []


class TestSchemaRegistry:
    def test_lists_bundled_schemas(self) -> None:
        assert SchemaRegistry().list_schemas() == ["vcon", "wtf"]

    def test_schema_info(self) -> None:
        info = SchemaRegistry().get_schema("wtf")
        assert info.name == "wtf"
        assert info.version == "1.0"
        assert info.path.name == "wtf.schema.json"
        assert info.hash == SchemaRegistry.compute_hash(info.content)

    def test_schema_is_cached(self) -> None:
        registry = SchemaRegistry()
        assert registry.get_schema("vcon") is registry.get_schema("vcon")

    def test_unknown_schema(self) -> None:
        with pytest.raises(SchemaNotFoundError):
            SchemaRegistry().get_schema("nope")

    def test_custom_directory(self, tmp_path: Path) -> None:
        schema = {"type": "object", "required": ["a"], "version": "9"}
        (tmp_path / "vcon.schema.json").write_text(json.dumps(schema))

        registry = SchemaRegistry(tmp_path)
        validator = SchemaValidator(registry)

        assert registry.get_schema("vcon").version == "9"
        assert validator.validate_and_get_errors({}, "vcon") == [
            {"path": "a", "message": "'a' is a required property"}
        ]


class TestSchemaValidator:
    def test_validate_raises_with_errors(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaValidator().validate({"vcon": "0.0.1"}, "vcon")
        assert len(exc_info.value.errors) == 3

    def test_validate_without_raising(self) -> None:
        assert SchemaValidator().validate({}, "wtf", raise_on_error=False) is False

    def test_accepts_json_text(self) -> None:
        errors = SchemaValidator().validate_and_get_errors('{"vcon": "0.0.1"}', "vcon")
        assert [e["path"] for e in errors] == ["created_at", "parties", "uuid"]
