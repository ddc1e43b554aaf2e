"""Recognition session controller — grades one spoken answer per question.

The controller opens a fixed-length listening window, relays transcript
events from the bound speech source into the session record, and decides
when the transcript is final enough to grade:

    Idle -> Listening -> Draining -> Finalized

When the window timer fires the controller does not grade straight away.
A transcript chunk may still be in flight, so while the recognizer is
mid-utterance (or spoke recently) it polls until the stream has been quiet
for a while, bounded by a hard ceiling.  Finalization can be reached from
the timer path or from the source's own end-of-stream notification; the
session's finalize-once guard makes the first caller win and every later
attempt a no-op, so exactly one ``EvaluationResult`` is produced.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field

from emoquiz.config import (
    DRAIN_ACTIVITY_WINDOW,
    DRAIN_MAX_DURATION,
    DRAIN_POLL_INTERVAL,
    DRAIN_QUIET_PERIOD,
    DRAIN_SETTLE_DELAY,
    IDLE_SETTLE_DELAY,
)
from emoquiz.events.event_bus import EventBus
from emoquiz.quiz import scoring
from emoquiz.quiz.answer_matcher import AnswerMatcher
from emoquiz.quiz.clock import Clock, RealClock
from emoquiz.quiz.types import (
    EndOfStream,
    EvaluationResult,
    MatchOutcome,
    Question,
    SessionState,
    SessionTelemetry,
    TranscriptEvent,
)
from emoquiz.speech.errors import PermissionDenied, SourceUnavailable
from emoquiz.speech.source import SpeechEvent, SpeechSource

logger = logging.getLogger(__name__)


@dataclass
class RecognitionSession:
    """Mutable record of one question's voice phase.

    Owned by the controller for the lifetime of one question; nothing else
    mutates it.  ``has_finalized`` flips once and is the only finalization
    guard.
    """

    question: Question
    window_duration_ms: int
    window_start_time: float
    result: asyncio.Future
    question_index: int | None = None
    state: SessionState = SessionState.LISTENING
    latest_transcript: str = ""
    candidate_match_ms: int | None = None
    last_activity_time: float | None = None
    still_receiving_interim: bool = False
    window_expired: bool = False
    stop_requested: bool = False
    has_finalized: bool = False
    finalized_at: float | None = None
    tasks: list[asyncio.Task] = field(default_factory=list)

    def finalize_once(self) -> bool:
        """Claim the right to finalize.  True for the first caller only."""
        if self.has_finalized:
            return False
        self.has_finalized = True
        self.state = SessionState.FINALIZED
        return True


class RecognitionSessionController:
    """Coordinates the listening window against the speech source."""

    def __init__(
        self,
        source: SpeechSource,
        matcher: AnswerMatcher | None = None,
        *,
        clock: Clock | None = None,
        result_bus: EventBus[EvaluationResult] | None = None,
        drain_poll_interval: float = DRAIN_POLL_INTERVAL,
        drain_activity_window: float = DRAIN_ACTIVITY_WINDOW,
        drain_quiet_period: float = DRAIN_QUIET_PERIOD,
        drain_max_duration: float = DRAIN_MAX_DURATION,
        drain_settle_delay: float = DRAIN_SETTLE_DELAY,
        idle_settle_delay: float = IDLE_SETTLE_DELAY,
    ) -> None:
        self._source = source
        self._matcher = matcher or AnswerMatcher()
        self._clock = clock or RealClock()
        self._result_bus = result_bus

        self._drain_poll_interval = drain_poll_interval
        self._drain_activity_window = drain_activity_window
        self._drain_quiet_period = drain_quiet_period
        self._drain_max_duration = drain_max_duration
        self._drain_settle_delay = drain_settle_delay
        self._idle_settle_delay = idle_settle_delay

        self._session: RecognitionSession | None = None
        self._queue: asyncio.Queue[SpeechEvent] | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def source(self) -> SpeechSource:
        return self._source

    @property
    def session(self) -> RecognitionSession | None:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.IDLE
        return self._session.state

    @property
    def is_active(self) -> bool:
        """True while a session is open and not yet finalized."""
        return self._session is not None and not self._session.has_finalized

    def telemetry(self) -> SessionTelemetry:
        """Snapshot of the current session.  Has no side effects."""
        session = self._session
        if session is None:
            return SessionTelemetry(state=SessionState.IDLE)

        until = session.finalized_at
        if until is None:
            until = self._clock.now()
        return SessionTelemetry(
            state=session.state,
            question_index=session.question_index,
            transcript=session.latest_transcript,
            elapsed_ms=max(0, round((until - session.window_start_time) * 1000)),
            window_duration_ms=session.window_duration_ms,
            candidate_match_ms=session.candidate_match_ms,
            still_receiving_interim=session.still_receiving_interim,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open_session(
        self,
        question: Question,
        window_duration_ms: int,
        question_index: int | None = None,
    ) -> None:
        """Open the listening window for *question*.

        Raises ``SourceUnavailable`` if the speech source cannot be used and
        ``PermissionDenied`` if it refuses to start; no session stays open in
        either case.  Raises ``RuntimeError`` if a session is still active.
        """
        if self.is_active:
            raise RuntimeError("a recognition session is already active")

        await self._teardown()

        if not self._source.is_available:
            raise SourceUnavailable(
                f"speech source {self._source.source_name!r} is not available"
            )

        loop = asyncio.get_running_loop()
        session = RecognitionSession(
            question=question,
            window_duration_ms=int(window_duration_ms),
            window_start_time=self._clock.now(),
            result=loop.create_future(),
            question_index=question_index,
        )
        self._session = session
        self._queue = await self._source.events.subscribe()

        try:
            await self._start_source()
        except (PermissionDenied, SourceUnavailable) as exc:
            logger.warning("Could not start speech source: %s", exc)
            session.result.cancel()
            await self._teardown()
            self._session = None
            raise

        session.tasks.append(
            asyncio.create_task(self._consume_loop(session, self._queue))
        )
        session.tasks.append(asyncio.create_task(self._run_window(session)))

        logger.info(
            "Session opened for question %s (%r, window=%dms)",
            question_index,
            question.canonical_answer,
            session.window_duration_ms,
        )

    async def wait_for_result(self) -> EvaluationResult:
        """Wait for the current session's result."""
        if self._session is None:
            raise RuntimeError("no recognition session has been opened")
        return await asyncio.shield(self._session.result)

    async def cancel(self) -> None:
        """Abandon the current session without grading it.

        Every scheduled task is cancelled and the speech source is stopped;
        nothing bound to the abandoned session runs afterwards.
        """
        session = self._session
        await self._teardown()
        if session is not None:
            if not session.result.done():
                session.result.cancel()
            logger.info("Session for question %s cancelled", session.question_index)
        self._session = None

    async def _teardown(self) -> None:
        """Cancel session tasks, stop the source and drop the subscription."""
        session = self._session
        if session is not None:
            current = asyncio.current_task()
            pending = [t for t in session.tasks if t is not current and not t.done()]
            for task in pending:
                task.cancel()
            for task in pending:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            session.tasks.clear()

        await self._stop_source()

        if self._queue is not None:
            await self._source.events.unsubscribe(self._queue)
            self._queue = None

    # ------------------------------------------------------------------
    # Source control (idempotent from our side)
    # ------------------------------------------------------------------

    async def _start_source(self) -> None:
        try:
            await self._source.start()
        except (PermissionDenied, SourceUnavailable):
            raise
        except Exception:
            logger.warning(
                "Speech source start failed — treating as already started",
                exc_info=True,
            )

    async def _stop_source(self) -> None:
        try:
            await self._source.stop()
        except Exception:
            logger.warning(
                "Speech source stop failed — treating as already stopped",
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Transcript relay
    # ------------------------------------------------------------------

    async def _consume_loop(
        self, session: RecognitionSession, queue: asyncio.Queue[SpeechEvent]
    ) -> None:
        """Apply speech events to *session* in arrival order."""
        while not session.has_finalized:
            event = await queue.get()
            if self._session is not session:
                return
            try:
                if isinstance(event, TranscriptEvent):
                    self.handle_transcript(session, event)
                elif isinstance(event, EndOfStream):
                    await self._handle_end_of_stream(session, event)
            except Exception:
                logger.warning("Error processing speech event", exc_info=True)

    def handle_transcript(
        self, session: RecognitionSession, event: TranscriptEvent
    ) -> None:
        """Record *event* as the latest transcript of *session*."""
        if session.has_finalized:
            return

        session.latest_transcript = event.text
        session.last_activity_time = event.timestamp
        session.still_receiving_interim = not event.is_final
        logger.debug(
            "Transcript (%s): %r", "final" if event.is_final else "interim", event.text
        )

        if (
            session.candidate_match_ms is None
            and not session.window_expired
            and self._matcher.matches(event.text, session.question)
        ):
            session.candidate_match_ms = max(
                0, round((event.timestamp - session.window_start_time) * 1000)
            )
            logger.info(
                "Candidate match %r at %dms", event.text, session.candidate_match_ms
            )

    async def _handle_end_of_stream(
        self, session: RecognitionSession, event: EndOfStream
    ) -> None:
        if session.stop_requested:
            # Our own stop; the window task finishes after its settle delay.
            return

        if event.error:
            logger.warning(
                "Speech stream failed (%s) — grading accumulated transcript",
                event.error,
            )
            await self._complete(session, "transport failure")
            return

        if not session.window_expired:
            logger.info("Speech source ended during listening — restarting it")
            try:
                await self._source.start()
            except Exception:
                logger.warning(
                    "Speech source restart failed — grading accumulated transcript",
                    exc_info=True,
                )
                await self._complete(session, "source ended")
            return

        await self._complete(session, "end of stream")

    # ------------------------------------------------------------------
    # Window timer and drain
    # ------------------------------------------------------------------

    def _time_since_activity(self, session: RecognitionSession) -> float:
        if session.last_activity_time is None:
            return math.inf
        return self._clock.now() - session.last_activity_time

    async def _run_window(self, session: RecognitionSession) -> None:
        """Wait out the listening window, drain, then finalize."""
        await self._clock.sleep(session.window_duration_ms / 1000)
        if self._session is not session or session.has_finalized:
            return

        session.window_expired = True
        session.state = SessionState.DRAINING
        since = self._time_since_activity(session)

        if session.still_receiving_interim or since < self._drain_activity_window:
            logger.info(
                "Window expired mid-utterance (interim=%s, %.2fs since activity) — draining",
                session.still_receiving_interim,
                since,
            )
            drain_started = self._clock.now()
            while True:
                await self._clock.sleep(self._drain_poll_interval)
                if self._session is not session or session.has_finalized:
                    return
                quiet = self._time_since_activity(session) >= self._drain_quiet_period
                if not session.still_receiving_interim and quiet:
                    logger.info("Transcript settled — finishing drain")
                    break
                if self._clock.now() - drain_started >= self._drain_max_duration:
                    logger.warning(
                        "Drain ceiling of %.1fs reached — forcing finalization",
                        self._drain_max_duration,
                    )
                    break
            settle = self._drain_settle_delay
        else:
            logger.info("Window expired with no recent speech")
            settle = self._idle_settle_delay

        session.stop_requested = True
        await self._stop_source()
        await self._clock.sleep(settle)
        await self._complete(session, "window")

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    async def _complete(self, session: RecognitionSession, reason: str) -> None:
        """Finalize *session* once, release its resources and publish the result."""
        result = self._finalize(session, reason)
        if result is None:
            return

        if self._session is session:
            await self._teardown()

        if self._result_bus is not None:
            await self._result_bus.emit(result)

    def _finalize(
        self, session: RecognitionSession, reason: str
    ) -> EvaluationResult | None:
        if not session.finalize_once():
            logger.debug("Finalize (%s) ignored — session already finalized", reason)
            return None

        session.finalized_at = self._clock.now()
        result = self.evaluate(session)
        if not session.result.done():
            session.result.set_result(result)

        logger.info(
            "Question %s finalized via %s: %s %r (+%d)",
            session.question_index,
            reason,
            result.match_outcome.value,
            result.recognized_text,
            result.total_points,
        )
        return result

    def evaluate(self, session: RecognitionSession) -> EvaluationResult:
        """Grade the final transcript of *session*.

        The earlier candidate-match tracking only supplies the reaction time;
        correctness is decided from the final transcript alone.
        """
        text = session.latest_transcript.strip()
        reaction_time_ms: int | None = None

        if not text:
            outcome = MatchOutcome.NO_RESPONSE
        elif self._matcher.matches(text, session.question):
            outcome = MatchOutcome.CORRECT
            reaction_time_ms = session.candidate_match_ms
        else:
            outcome = MatchOutcome.INCORRECT

        base, bonus, total = scoring.score(
            outcome, reaction_time_ms, session.window_duration_ms
        )
        return EvaluationResult(
            match_outcome=outcome,
            recognized_text=text,
            reaction_time_ms=reaction_time_ms,
            base_points=base,
            time_bonus_points=bonus,
            total_points=total,
            question_index=session.question_index,
        )
