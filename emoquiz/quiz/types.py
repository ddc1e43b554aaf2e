"""Pydantic models and enums for the answer evaluation engine."""

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MatchOutcome(str, Enum):
    """How a question was graded."""

    CORRECT = "correct"
    INCORRECT = "incorrect"
    NO_RESPONSE = "no_response"


class SessionState(str, Enum):
    """Lifecycle state of the recognition session controller."""

    IDLE = "idle"
    LISTENING = "listening"
    DRAINING = "draining"
    FINALIZED = "finalized"


class Question(BaseModel):
    """One emoji clue with the answers that count as correct.

    ``acceptable_answers`` is normalized to lowercase/trimmed text and always
    includes the normalized ``canonical_answer``.
    """

    model_config = ConfigDict(frozen=True)

    clue: str
    canonical_answer: str
    acceptable_answers: tuple[str, ...]

    @model_validator(mode="before")
    @classmethod
    def _include_canonical(cls, data):
        if isinstance(data, dict):
            answers = [
                str(a).strip().lower() for a in data.get("acceptable_answers") or ()
            ]
            # A blank answer is contained in every utterance.
            answers = [a for a in answers if a]
            canonical = str(data.get("canonical_answer", "")).strip().lower()
            if canonical and canonical not in answers:
                answers.insert(0, canonical)
            data = {**data, "acceptable_answers": tuple(answers)}
        return data

    @field_validator("acceptable_answers")
    @classmethod
    def _at_least_one(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("a question needs at least one acceptable answer")
        return value


class TranscriptEvent(BaseModel):
    """A transcript hypothesis delivered by a speech source."""

    text: str
    is_final: bool = False
    timestamp: float = Field(default_factory=time.monotonic)


class EndOfStream(BaseModel):
    """The speech source stopped delivering events.

    ``error`` is set when the stream broke rather than ending cleanly.
    """

    error: str | None = None
    timestamp: float = Field(default_factory=time.monotonic)


class EvaluationResult(BaseModel):
    """The single graded outcome of one recognition session."""

    model_config = ConfigDict(frozen=True)

    match_outcome: MatchOutcome
    recognized_text: str
    reaction_time_ms: int | None = None
    base_points: int = 0
    time_bonus_points: int = 0
    total_points: int = 0
    question_index: int | None = None


class SessionTelemetry(BaseModel):
    """Read-only snapshot of the active session, for display."""

    state: SessionState
    question_index: int | None = None
    transcript: str = ""
    elapsed_ms: int = 0
    window_duration_ms: int = 0
    candidate_match_ms: int | None = None
    still_receiving_interim: bool = False


class MatchStrategy(str, Enum):
    """Which strategy accepted an utterance."""

    CONTAINMENT = "containment"
    SIMILARITY = "similarity"
    PHONETIC = "phonetic"


class AnswerMatch(BaseModel):
    """An utterance accepted against one of a question's answers."""

    answer: str
    strategy: MatchStrategy
    similarity: float
