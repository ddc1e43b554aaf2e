"""Tests for emoquiz.quiz.types — Pydantic models and enums."""

import pytest
from pydantic import ValidationError

from emoquiz.quiz.types import (
    EndOfStream,
    EvaluationResult,
    MatchOutcome,
    Question,
    SessionState,
    SessionTelemetry,
    TranscriptEvent,
)


class TestQuestion:
    """Tests for the Question model."""

    def test_answers_are_normalized(self):
        question = Question(
            clue="🦈", canonical_answer="Jaws", acceptable_answers=["  JAWS ", "Joz"]
        )
        assert question.acceptable_answers == ("jaws", "joz")

    def test_canonical_answer_is_added_first(self):
        question = Question(
            clue="🧊👸", canonical_answer="Frozen", acceptable_answers=["froze in"]
        )
        assert question.acceptable_answers == ("frozen", "froze in")

    def test_canonical_answer_alone_is_enough(self):
        question = Question(clue="🧊👸", canonical_answer="Frozen", acceptable_answers=[])
        assert question.acceptable_answers == ("frozen",)

    def test_blank_answers_are_dropped(self):
        question = Question(
            clue="🚢", canonical_answer="Titanic", acceptable_answers=["", "  ", "titanic"]
        )
        assert question.acceptable_answers == ("titanic",)

    def test_no_answers_is_rejected(self):
        with pytest.raises(ValidationError):
            Question(clue="?", canonical_answer="  ", acceptable_answers=[])

    def test_is_frozen(self, titanic):
        with pytest.raises(ValidationError):
            titanic.clue = "🚢"


class TestEvents:
    """Tests for speech-source event models."""

    def test_transcript_defaults(self):
        event = TranscriptEvent(text="titanic")
        assert event.is_final is False
        assert isinstance(event.timestamp, float)

    def test_end_of_stream_defaults_to_clean(self):
        assert EndOfStream().error is None
        assert EndOfStream(error="network").error == "network"


class TestEvaluationResult:
    """Tests for the EvaluationResult model."""

    def test_serializes_outcome_as_string(self):
        result = EvaluationResult(
            match_outcome=MatchOutcome.CORRECT,
            recognized_text="titanic",
            reaction_time_ms=2500,
            base_points=10,
            time_bonus_points=5,
            total_points=15,
            question_index=1,
        )
        data = result.model_dump(mode="json")
        assert data["match_outcome"] == "correct"
        assert data["reaction_time_ms"] == 2500

    def test_is_frozen(self):
        result = EvaluationResult(
            match_outcome=MatchOutcome.NO_RESPONSE, recognized_text=""
        )
        with pytest.raises(ValidationError):
            result.total_points = 15


class TestEnums:
    """Tests for the str-valued enums."""

    def test_session_states(self):
        assert [s.value for s in SessionState] == [
            "idle", "listening", "draining", "finalized",
        ]

    def test_telemetry_defaults(self):
        snapshot = SessionTelemetry(state=SessionState.IDLE)
        assert snapshot.transcript == ""
        assert snapshot.candidate_match_ms is None
