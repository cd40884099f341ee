"""Tests for turning provider results into WTF records and analysis entries."""

from __future__ import annotations

import copy
from datetime import UTC, datetime
from typing import Any

import pytest

from vcon_wtf.enricher import (
    LOW_CONFIDENCE_WARNING,
    EnrichmentInput,
    create_wtf_analysis,
    create_wtf_transcription,
    enrich_vcon_with_transcriptions,
    is_punctuation,
    normalize_speaker,
    utc_timestamp,
)
from vcon_wtf.models import AsrSegment, AsrWord, TranscribeResult
from vcon_wtf.schema import validate_wtf_transcription

NOW = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=UTC)


def make_result(**overrides: Any) -> TranscribeResult:
    values: dict[str, Any] = {
        "text": "Hello world. How are you?",
        "language": "en-US",
        "duration": 3.5,
        "confidence": 0.9,
        "segments": [
            AsrSegment(
                text="Hello world.",
                start=0.0,
                end=1.5,
                confidence=0.95,
                speaker="0",
                words=[
                    AsrWord("Hello", 0.0, 0.5, 0.96),
                    AsrWord("world", 0.6, 1.4, 0.94),
                    AsrWord(".", 1.4, 1.5, 0.99),
                ],
            ),
            AsrSegment(
                text="How are you?",
                start=2.0,
                end=3.5,
                confidence=0.85,
                speaker="1",
                words=[
                    AsrWord("How", 2.0, 2.3, 0.9),
                    AsrWord("are", 2.4, 2.7, 0.88),
                    AsrWord("you?", 2.8, 3.5, 0.87),
                ],
            ),
        ],
        "processing_time_ms": 1250.0,
        "provider": "nvidia",
        "model": "parakeet-tdt-1.1b",
    }
    values.update(overrides)
    return TranscribeResult(**values)


class TestHelpers:
    @pytest.mark.parametrize("token", [".", ",", "!", "?", ";", ":", "'", '"', "(", ")", "-"])
    def test_punctuation_tokens(self, token: str) -> None:
        assert is_punctuation(token)

    @pytest.mark.parametrize("token", ["don't", "you?", "...", "--", "", "a"])
    def test_not_punctuation(self, token: str) -> None:
        assert not is_punctuation(token)

    @pytest.mark.parametrize(
        ("label", "expected"),
        [("0", 0), ("12", 12), ("agent", "agent"), ("", None), (None, None), ("٣", "٣")],
    )
    def test_normalize_speaker(self, label: str | None, expected: Any) -> None:
        assert normalize_speaker(label) == expected

    def test_utc_timestamp(self) -> None:
        assert utc_timestamp(NOW) == "2024-05-01T12:30:15.123Z"


class TestCreateWtfTranscription:
    def test_transcript_and_metadata(self) -> None:
        record = create_wtf_transcription(make_result(), audio_duration=12.5, now=NOW)
        data = record.to_dict()

        assert data["transcript"] == {
            "text": "Hello world. How are you?",
            "language": "en-US",
            "duration": 3.5,
            "confidence": 0.9,
        }
        assert data["metadata"] == {
            "created_at": "2024-05-01T12:30:15.123Z",
            "processed_at": "2024-05-01T12:30:15.123Z",
            "provider": "nvidia",
            "model": "parakeet-tdt-1.1b",
            "processing_time": 1.25,
            "audio": {"duration": 12.5},
        }

    def test_model_falls_back_to_provider(self) -> None:
        record = create_wtf_transcription(make_result(model=None), now=NOW)
        assert record.metadata.model == "nvidia"
        assert "audio" not in record.to_dict()["metadata"]

    def test_explicit_model_wins(self) -> None:
        record = create_wtf_transcription(make_result(), model="canary-1b", now=NOW)
        assert record.metadata.model == "canary-1b"

    def test_words_flattened_from_segments(self) -> None:
        record = create_wtf_transcription(make_result(), now=NOW)

        assert [w.id for w in record.words] == [0, 1, 2, 3, 4, 5]
        assert [w.text for w in record.words] == ["Hello", "world", ".", "How", "are", "you?"]
        assert [w.speaker for w in record.words] == [0, 0, 0, 1, 1, 1]
        assert [s.words for s in record.segments] == [[0, 1, 2], [3, 4, 5]]

    def test_top_level_words_take_precedence(self) -> None:
        words = [AsrWord("Hi", 0.0, 0.4, 0.9, speaker="2"), AsrWord("there", 0.5, 1.0, 0.8)]
        record = create_wtf_transcription(make_result(words=words), now=NOW)

        assert [w.text for w in record.words] == ["Hi", "there"]
        assert [w.speaker for w in record.words] == [2, None]
        assert record.segments[0].words == [0, 1]
        # No word lies inside the second segment
        assert record.segments[1].words is None
        assert "words" not in record.segments[1].to_dict()

    def test_straddling_word_belongs_to_no_segment(self) -> None:
        words = [AsrWord("across", 1.0, 2.5, 0.9)]
        record = create_wtf_transcription(make_result(words=words), now=NOW)
        assert [s.words for s in record.segments] == [None, None]

    def test_nested_and_flat_words_agree(self) -> None:
        nested = make_result()
        flat_words = [
            AsrWord(w.word, w.start, w.end, w.confidence, speaker=seg.speaker)
            for seg in nested.segments
            for w in seg.words
        ]
        flat = make_result(
            words=flat_words,
            segments=[
                AsrSegment(s.text, s.start, s.end, s.confidence, s.speaker)
                for s in nested.segments
            ],
        )

        from_nested = create_wtf_transcription(nested, now=NOW).to_dict()
        from_flat = create_wtf_transcription(flat, now=NOW).to_dict()

        assert from_nested["words"] == from_flat["words"]
        assert from_nested["segments"] == from_flat["segments"]

    def test_two_speakers(self) -> None:
        record = create_wtf_transcription(make_result(), now=NOW)
        data = record.to_dict()

        assert set(data["speakers"]) == {"0", "1"}
        assert data["speakers"]["0"] == {
            "id": 0,
            "label": "Speaker 0",
            "segments": [0],
            "total_time": 1.5,
        }
        assert data["quality"]["multiple_speakers"] is True

    def test_punctuation_flags(self) -> None:
        words = [AsrWord(",", 0.0, 0.1, 0.9), AsrWord("don't", 0.2, 0.5, 0.9)]
        record = create_wtf_transcription(make_result(words=words), now=NOW)
        assert [w.is_punctuation for w in record.words] == [True, False]

    def test_no_speakers_omits_speaker_map(self) -> None:
        segments = [AsrSegment("Hello.", 0.0, 1.0, 0.9)]
        record = create_wtf_transcription(make_result(segments=segments), now=NOW)
        data = record.to_dict()

        assert "speakers" not in data
        assert "words" not in data
        assert data["quality"]["multiple_speakers"] is False

    def test_speaker_time_accumulates(self) -> None:
        segments = [
            AsrSegment("a", 0.0, 1.0, 0.9, speaker="agent"),
            AsrSegment("b", 1.0, 2.0, 0.9, speaker="customer"),
            AsrSegment("c", 2.0, 4.5, 0.9, speaker="agent"),
        ]
        record = create_wtf_transcription(make_result(segments=segments), now=NOW)

        agent = record.speakers["agent"]
        assert agent.segments == [0, 2]
        assert agent.total_time == pytest.approx(3.5)

    def test_quality_uses_reported_confidence(self) -> None:
        record = create_wtf_transcription(make_result(confidence=0.42), now=NOW)
        assert record.quality.average_confidence == 0.42
        assert record.quality.low_confidence_words == 0
        assert record.quality.processing_warnings == []

    def test_low_confidence_warning(self) -> None:
        words = [AsrWord(f"w{i}", i, i + 0.5, 0.5 if i < 2 else 0.9) for i in range(10)]
        record = create_wtf_transcription(make_result(words=words), now=NOW)
        assert record.quality.low_confidence_words == 2
        assert record.quality.processing_warnings == [LOW_CONFIDENCE_WARNING]

    def test_exactly_ten_percent_is_not_a_warning(self) -> None:
        words = [AsrWord(f"w{i}", i, i + 0.5, 0.5 if i == 0 else 0.9) for i in range(10)]
        record = create_wtf_transcription(make_result(words=words), now=NOW)
        assert record.quality.processing_warnings == []

    def test_sparse_result(self) -> None:
        result = make_result(text="", segments=[], duration=0.0, confidence=0.0)
        data = create_wtf_transcription(result, now=NOW).to_dict()
        assert data["segments"] == []
        assert validate_wtf_transcription(data) == []

    def test_record_matches_schema(self) -> None:
        data = create_wtf_transcription(make_result(), audio_duration=3.5, now=NOW).to_dict()
        assert validate_wtf_transcription(data) == []


class TestAnalysisEntries:
    def test_create_wtf_analysis(self) -> None:
        record = create_wtf_transcription(make_result(), now=NOW)
        entry = create_wtf_analysis(2, record, "nvidia", "parakeet-tdt-1.1b")

        assert entry["type"] == "wtf_transcription"
        assert entry["dialog"] == 2
        assert entry["mediatype"] == "application/json"
        assert entry["vendor"] == "nvidia"
        assert entry["product"] == "parakeet-tdt-1.1b"
        assert entry["schema"] == "wtf-1.0"
        assert entry["encoding"] == "json"
        assert entry["body"] == record.to_dict()

    def test_product_defaults_to_vendor(self) -> None:
        record = create_wtf_transcription(make_result(), now=NOW)
        assert create_wtf_analysis(0, record, "deepgram")["product"] == "deepgram"

    def test_enrich_appends_in_dialog_order(self, sample_vcon: dict[str, Any]) -> None:
        existing = {"type": "summary", "vendor": "acme", "body": "short call"}
        vcon = {**sample_vcon, "analysis": [existing]}
        before = copy.deepcopy(vcon)

        enriched = enrich_vcon_with_transcriptions(
            vcon,
            [
                EnrichmentInput(dialog_index=3, result=make_result()),
                EnrichmentInput(dialog_index=1, result=make_result(), audio_duration=9.0),
            ],
            now=NOW,
        )

        assert vcon == before
        assert enriched["analysis"][0] == existing
        assert [a["dialog"] for a in enriched["analysis"][1:]] == [1, 3]
        assert enriched["analysis"][1]["body"]["metadata"]["audio"] == {"duration": 9.0}
        assert enriched["updated_at"] == "2024-05-01T12:30:15.123Z"

    def test_enrich_without_results_only_stamps(self, sample_vcon: dict[str, Any]) -> None:
        enriched = enrich_vcon_with_transcriptions(sample_vcon, [], now=NOW)
        assert enriched["analysis"] == []
        assert enriched["updated_at"] == "2024-05-01T12:30:15.123Z"
