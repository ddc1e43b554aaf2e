"""Answer evaluation engine: matching, scoring and the recognition session."""

from emoquiz.quiz.answer_matcher import AnswerMatcher, sounds_like
from emoquiz.quiz.phonetics import consonant_code, simplified_phonetic_code
from emoquiz.quiz.scoring import MAX_POINTS_PER_QUESTION
from emoquiz.quiz.similarity import similarity_ratio
from emoquiz.quiz.types import (
    AnswerMatch,
    EndOfStream,
    EvaluationResult,
    MatchOutcome,
    MatchStrategy,
    Question,
    SessionState,
    SessionTelemetry,
    TranscriptEvent,
)

__all__ = [
    "AnswerMatch",
    "AnswerMatcher",
    "EndOfStream",
    "EvaluationResult",
    "MAX_POINTS_PER_QUESTION",
    "MatchOutcome",
    "MatchStrategy",
    "Question",
    "SessionState",
    "SessionTelemetry",
    "TranscriptEvent",
    "consonant_code",
    "similarity_ratio",
    "simplified_phonetic_code",
    "sounds_like",
]
