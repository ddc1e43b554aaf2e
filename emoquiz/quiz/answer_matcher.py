"""Decides whether a spoken utterance answers a question.

Each acceptable answer is tried in order against three strategies (first
accepting answer wins):

1. Containment: either string contains the other.
2. Similarity: normalized edit-distance ratio above the threshold.
3. Phonetic: ``sounds_like`` on consonant-class and simplified phonetic codes.
"""

from __future__ import annotations

import logging
import math

from emoquiz.config import SIMILARITY_THRESHOLD, WORD_MATCH_RATIO
from emoquiz.quiz.phonetics import consonant_code, simplified_phonetic_code
from emoquiz.quiz.similarity import similarity_ratio
from emoquiz.quiz.types import AnswerMatch, MatchStrategy, Question

logger = logging.getLogger(__name__)


def _normalize(text: str) -> str:
    return text.strip().lower()


def _same_code(w1: str, w2: str) -> bool:
    return (
        consonant_code(w1) == consonant_code(w2)
        or simplified_phonetic_code(w1) == simplified_phonetic_code(w2)
    )


def sounds_like(s1: str, s2: str, word_ratio: float = WORD_MATCH_RATIO) -> bool:
    """Return True if *s1* and *s2* sound alike.

    Whole strings are compared first.  When either side has several words,
    each word of *s1* is looked up in *s2* and the match needs at least
    ``ceil(word_ratio * len(words of s1))`` hits.  The threshold depends on
    *s1* only, so the relation is not symmetric for multi-word input.
    """
    s1 = _normalize(s1)
    s2 = _normalize(s2)

    if s1 == s2:
        return True
    if not s1 or not s2:
        return False
    if _same_code(s1, s2):
        return True

    words1 = s1.split()
    words2 = s2.split()
    if len(words1) <= 1 and len(words2) <= 1:
        return False

    matching = [
        w1 for w1 in words1
        if any(w1 == w2 or _same_code(w1, w2) for w2 in words2)
    ]
    return len(matching) >= math.ceil(len(words1) * word_ratio)


class AnswerMatcher:
    """Matches utterances against a question's acceptable answers."""

    def __init__(self, similarity_threshold: float = SIMILARITY_THRESHOLD) -> None:
        self._threshold = similarity_threshold

    def matches(self, utterance: str, question: Question) -> bool:
        """Return True if *utterance* is accepted for *question*."""
        return self.match(utterance, question) is not None

    def match(self, utterance: str, question: Question) -> AnswerMatch | None:
        """Return the first accepting answer and strategy, or None."""
        if not isinstance(utterance, str):
            logger.debug("Ignoring non-text utterance %r", utterance)
            return None

        spoken = _normalize(utterance)
        if not spoken:
            return None

        for answer in question.acceptable_answers:
            ratio = similarity_ratio(spoken, answer)

            if answer in spoken or spoken in answer:
                strategy = MatchStrategy.CONTAINMENT
            elif ratio > self._threshold:
                strategy = MatchStrategy.SIMILARITY
            elif sounds_like(spoken, answer):
                strategy = MatchStrategy.PHONETIC
            else:
                continue

            logger.debug(
                "Utterance %r accepted as %r (%s, ratio=%.2f)",
                spoken,
                answer,
                strategy.value,
                ratio,
            )
            return AnswerMatch(answer=answer, strategy=strategy, similarity=ratio)

        return None
