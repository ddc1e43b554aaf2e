"""Game loop driving the recognition session controller question by question.

Each question has a think phase (the clue is shown, nothing is recorded)
followed by a voice phase graded by the controller.  Results accumulate in
an ordered log from which the final summary is computed.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from emoquiz.config import (
    GUESS_SECONDS,
    MAX_PHASE_SECONDS,
    MIN_PHASE_SECONDS,
    NEXT_QUESTION_DELAY,
    VOICE_SECONDS,
)
from emoquiz.quiz.catalog import MOVIE_QUESTIONS
from emoquiz.quiz.clock import Clock, RealClock
from emoquiz.quiz.scoring import MAX_POINTS_PER_QUESTION
from emoquiz.quiz.session_controller import RecognitionSessionController
from emoquiz.quiz.types import EvaluationResult, MatchOutcome, Question
from emoquiz.speech.errors import SpeechSourceError

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "(no response)"


class GamePhase(str, Enum):
    """Where the game loop is within the current question."""

    THINK = "think"
    VOICE = "voice"
    FEEDBACK = "feedback"


class GameSettings(BaseModel):
    """Phase lengths in whole seconds, clamped into the allowed range."""

    model_config = ConfigDict(validate_default=True)

    guess_seconds: int = GUESS_SECONDS
    voice_seconds: int = VOICE_SECONDS

    @field_validator("guess_seconds", "voice_seconds", mode="before")
    @classmethod
    def _clamp(cls, value, info):
        default = GUESS_SECONDS if info.field_name == "guess_seconds" else VOICE_SECONDS
        try:
            seconds = int(value)
        except (TypeError, ValueError):
            seconds = default
        return max(MIN_PHASE_SECONDS, min(MAX_PHASE_SECONDS, seconds))


class QuestionRecord(BaseModel):
    """One entry of the results log."""

    clue: str
    correct_answer: str
    user_answer: str
    outcome: MatchOutcome
    base_points: int = 0
    time_bonus_points: int = 0
    total_points: int = 0
    reaction_time_ms: int | None = None

    @classmethod
    def from_result(cls, question: Question, result: EvaluationResult) -> QuestionRecord:
        return cls(
            clue=question.clue,
            correct_answer=question.canonical_answer,
            user_answer=result.recognized_text or NO_RESPONSE_TEXT,
            outcome=result.match_outcome,
            base_points=result.base_points,
            time_bonus_points=result.time_bonus_points,
            total_points=result.total_points,
            reaction_time_ms=result.reaction_time_ms,
        )


class GameSummary(BaseModel):
    """Final tally of a finished game."""

    score: int
    max_score: int
    correct_count: int
    incorrect_count: int
    no_response_count: int
    total_time_bonus: int
    performance_message: str
    records: list[QuestionRecord] = Field(default_factory=list)


def feedback_message(record: QuestionRecord) -> str:
    """Short feedback line shown after a question is graded."""
    if record.outcome == MatchOutcome.CORRECT:
        if record.time_bonus_points > 0:
            return (
                f"✅ Correct! +{record.base_points} pts "
                f"(+{record.time_bonus_points} speed bonus!)"
            )
        return f"✅ Correct! +{record.base_points} points"
    if record.outcome == MatchOutcome.INCORRECT:
        return f'❌ Incorrect! It was "{record.correct_answer}"'
    return f'⏱️ Time\'s up! It was "{record.correct_answer}"'


def performance_message(
    correct_count: int, question_count: int, total_time_bonus: int
) -> str:
    """Closing remark for a finished game, by share of correct answers."""
    percentage = (correct_count / question_count) * 100 if question_count else 0.0
    if percentage == 100:
        message = "🎉 Perfect score! You're a movie genius!"
        if total_time_bonus >= question_count * 4:
            message += " ⚡ Lightning fast too!"
        return message
    if percentage >= 80:
        return "🌟 Excellent! You really know your movies!"
    if percentage >= 60:
        return "👍 Good job! Keep watching those movies!"
    if percentage >= 40:
        return "🎬 Not bad! Time for a movie marathon?"
    return "📺 Keep practicing! Watch more movies!"


def summarize(records: Sequence[QuestionRecord], question_count: int) -> GameSummary:
    correct = sum(1 for r in records if r.outcome == MatchOutcome.CORRECT)
    incorrect = sum(1 for r in records if r.outcome == MatchOutcome.INCORRECT)
    no_response = sum(1 for r in records if r.outcome == MatchOutcome.NO_RESPONSE)
    total_bonus = sum(r.time_bonus_points for r in records)
    return GameSummary(
        score=sum(r.total_points for r in records),
        max_score=question_count * MAX_POINTS_PER_QUESTION,
        correct_count=correct,
        incorrect_count=incorrect,
        no_response_count=no_response,
        total_time_bonus=total_bonus,
        performance_message=performance_message(correct, question_count, total_bonus),
        records=list(records),
    )


class GameSession:
    """Plays through a question list with one recognition session per question."""

    def __init__(
        self,
        controller: RecognitionSessionController,
        settings: GameSettings | None = None,
        questions: Sequence[Question] = MOVIE_QUESTIONS,
        *,
        clock: Clock | None = None,
        next_question_delay: float = NEXT_QUESTION_DELAY,
    ) -> None:
        self._controller = controller
        self._settings = settings or GameSettings()
        self._questions = tuple(questions)
        self._clock = clock or RealClock()
        self._next_question_delay = next_question_delay

        self._records: list[QuestionRecord] = []
        self._current_index: int = 0
        self._phase: GamePhase | None = None
        self._active: bool = False
        self._error: str | None = None
        self._task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def records(self) -> list[QuestionRecord]:
        return list(self._records)

    @property
    def score(self) -> int:
        return sum(r.total_points for r in self._records)

    @property
    def max_score(self) -> int:
        return len(self._questions) * MAX_POINTS_PER_QUESTION

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> Question | None:
        if self._current_index < len(self._questions):
            return self._questions[self._current_index]
        return None

    @property
    def phase(self) -> GamePhase | None:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def error(self) -> str | None:
        """Why the last run was aborted, if it was."""
        return self._error

    @property
    def is_finished(self) -> bool:
        return len(self._records) == len(self._questions)

    def summary(self) -> GameSummary:
        return summarize(self._records, len(self._questions))

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Run the game in a background task."""
        if self._task is not None and not self._task.done():
            raise RuntimeError("game is already running")
        self._active = True
        self._task = asyncio.create_task(self.run())
        self._task.add_done_callback(self._on_done)
        return self._task

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, SpeechSourceError):
            logger.error("Game task crashed", exc_info=exc)

    async def stop(self) -> None:
        """Stop a running game and abandon the question in progress."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self._controller.cancel()
        self._active = False

    async def run(self) -> GameSummary:
        """Play every question in order and return the summary."""
        self._records.clear()
        self._error = None
        self._current_index = 0
        self._active = True
        window_ms = self._settings.voice_seconds * 1000
        logger.info(
            "Game started: %d questions (think=%ds, voice=%ds)",
            len(self._questions),
            self._settings.guess_seconds,
            self._settings.voice_seconds,
        )

        try:
            for index, question in enumerate(self._questions):
                self._current_index = index

                self._phase = GamePhase.THINK
                await self._clock.sleep(self._settings.guess_seconds)

                self._phase = GamePhase.VOICE
                await self._controller.open_session(question, window_ms, index)
                result = await self._controller.wait_for_result()

                record = QuestionRecord.from_result(question, result)
                self._records.append(record)
                self._phase = GamePhase.FEEDBACK
                logger.info(
                    "Question %d/%d: %s",
                    index + 1,
                    len(self._questions),
                    feedback_message(record),
                )

                await self._clock.sleep(self._next_question_delay)
            self._current_index = len(self._questions)
        except SpeechSourceError as exc:
            self._error = str(exc)
            logger.warning("Game aborted on question %d: %s", self._current_index, exc)
            raise
        finally:
            self._active = False
            self._phase = None

        summary = self.summary()
        logger.info("Game finished: %d/%d", summary.score, summary.max_score)
        return summary
