"""HTTP routes for the Emoquiz server.

Endpoints
---------
POST /game/start       Start a new game with ``{"guess_seconds", "voice_seconds"}``.

POST /game/stop        Stop the running game and abandon the current question.

GET  /game             Progress of the current game, with the summary once
                       every question has been graded.

GET  /session          Read-only telemetry of the active recognition session.

POST /transcript       Relay one ``{"text", "is_final"}`` result from the
                       browser's speech recognizer.

POST /transcript/end   The browser recognizer ended (``{"error"}`` if it failed).

GET  /results          Streams EvaluationResults as Server-Sent Events (SSE).

GET  /health           Server health, version, speech source and session state.
"""

import asyncio
import logging

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from emoquiz import __version__
from emoquiz.events.event_bus import EventBus
from emoquiz.quiz.clock import Clock
from emoquiz.quiz.game import GameSession, GameSettings, feedback_message
from emoquiz.quiz.session_controller import RecognitionSessionController
from emoquiz.speech.push_source import PushSpeechSource
from emoquiz.speech.source import SpeechSource

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_controller(request: Request) -> RecognitionSessionController:
    """Retrieve the shared controller from application state."""
    return request.app.state.controller


def _get_speech_source(request: Request) -> SpeechSource:
    """Retrieve the bound speech source from application state."""
    return request.app.state.speech_source


def _get_result_bus(request: Request) -> EventBus:
    """Retrieve the shared result bus from application state."""
    return request.app.state.result_bus


def _get_clock(request: Request) -> Clock | None:
    """Retrieve the shared clock from application state (if any)."""
    return getattr(request.app.state, "clock", None)


def _get_game(request: Request) -> GameSession | None:
    """Retrieve the current game from application state (if any)."""
    return getattr(request.app.state, "game", None)


async def _read_json(request: Request) -> dict | None:
    """Decode a JSON object body; an empty body counts as ``{}``."""
    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = await request.json()
    except Exception:
        return None
    return payload if isinstance(payload, dict) else None


# ---------------------------------------------------------------------------
# POST /game/start, POST /game/stop, GET /game
# ---------------------------------------------------------------------------


@router.post("/game/start")
async def start_game(request: Request) -> dict:
    """Start a new game in the background.

    Accepts optional JSON ``{"guess_seconds": 3, "voice_seconds": 10}``;
    values are clamped into the allowed range.
    """
    body = await _read_json(request)
    if body is None:
        return {"status": "error", "reason": "invalid json"}

    # Check and replace app.state.game with no await in between.
    game = _get_game(request)
    if game is not None and game.is_active:
        return {"status": "error", "reason": "game already running"}

    source = _get_speech_source(request)
    if not source.is_available:
        return {
            "status": "error",
            "reason": f"speech source {source.source_name!r} unavailable",
        }

    settings = GameSettings(
        guess_seconds=body.get("guess_seconds"),
        voice_seconds=body.get("voice_seconds"),
    )
    game = GameSession(_get_controller(request), settings, clock=_get_clock(request))
    request.app.state.game = game
    game.start()

    logger.info("Game started via HTTP (%s)", settings.model_dump())
    return {
        "status": "ok",
        "settings": settings.model_dump(),
        "questions": len(game.questions),
        "max_score": game.max_score,
    }


@router.post("/game/stop")
async def stop_game(request: Request) -> dict:
    """Stop the running game, if any."""
    game = _get_game(request)
    if game is None or not game.is_active:
        return {"status": "ignored", "reason": "no game running"}
    await game.stop()
    return {"status": "ok", "score": game.score}


@router.get("/game")
async def game_state(request: Request) -> dict:
    """Return the progress of the current game."""
    game = _get_game(request)
    if game is None:
        return {"status": "idle"}

    question = game.current_question
    result: dict = {
        "status": "running" if game.is_active else "stopped",
        "question_number": min(game.current_index + 1, len(game.questions)),
        "total_questions": len(game.questions),
        "clue": question.clue if question is not None else None,
        "phase": game.phase.value if game.phase is not None else None,
        "score": game.score,
        "max_score": game.max_score,
        "feedback": [feedback_message(r) for r in game.records],
    }
    if game.error:
        result["status"] = "error"
        result["reason"] = game.error
    if game.is_finished:
        result["status"] = "finished"
        result["summary"] = game.summary().model_dump(mode="json")
    return result


# ---------------------------------------------------------------------------
# GET /session
# ---------------------------------------------------------------------------


@router.get("/session")
async def session_telemetry(request: Request) -> dict:
    """Return the current transcript and elapsed time of the open session."""
    return _get_controller(request).telemetry().model_dump(mode="json")


# ---------------------------------------------------------------------------
# POST /transcript, POST /transcript/end
# ---------------------------------------------------------------------------


def _get_push_source(request: Request) -> PushSpeechSource | None:
    source = _get_speech_source(request)
    return source if isinstance(source, PushSpeechSource) else None


@router.post("/transcript")
async def push_transcript(request: Request) -> dict:
    """Relay a browser recognizer result into the push speech source.

    Accepts JSON: ``{"text": "...", "is_final": true}``
    """
    source = _get_push_source(request)
    if source is None:
        return {"status": "error", "reason": "speech source does not accept pushes"}

    body = await _read_json(request)
    if body is None:
        return {"status": "error", "reason": "invalid json"}

    text = body.get("text")
    if not isinstance(text, str):
        return {"status": "error", "reason": "text is required"}

    accepted = await source.push(text, bool(body.get("is_final", False)))
    return {"status": "ok" if accepted else "ignored"}


@router.post("/transcript/end")
async def end_transcript(request: Request) -> dict:
    """Tell the push source the browser recognizer stopped.

    Accepts optional JSON: ``{"error": "network"}``
    """
    source = _get_push_source(request)
    if source is None:
        return {"status": "error", "reason": "speech source does not accept pushes"}

    body = await _read_json(request)
    if body is None:
        return {"status": "error", "reason": "invalid json"}

    error = body.get("error")
    await source.end(str(error) if error else None)
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# GET /results  (Server-Sent Events)
# ---------------------------------------------------------------------------


@router.get("/results")
async def result_stream(request: Request) -> EventSourceResponse:
    """Stream EvaluationResults as Server-Sent Events.

    Each SSE message has:
    * ``event`` — the match outcome (``correct``, ``incorrect``, ``no_response``)
    * ``data``  — the full EvaluationResult serialised as JSON
    """
    result_bus = _get_result_bus(request)

    async def _generate():
        async with result_bus.subscription() as queue:
            try:
                while True:
                    if await request.is_disconnected():
                        logger.debug("Results SSE client disconnected")
                        break
                    try:
                        result = await asyncio.wait_for(queue.get(), timeout=15.0)
                    except asyncio.TimeoutError:
                        yield {"comment": "ping"}
                        continue
                    yield {
                        "event": result.match_outcome.value,
                        "data": result.model_dump_json(),
                    }
            except asyncio.CancelledError:
                logger.debug("Results SSE stream cancelled")
        logger.debug("Results SSE subscriber cleaned up")

    return EventSourceResponse(_generate())


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(request: Request) -> dict:
    """Return server health information.

    Useful for the CLI ``status`` command and for external monitoring.
    """
    source = _get_speech_source(request)
    controller = _get_controller(request)
    game = _get_game(request)

    return {
        "status": "ok",
        "version": __version__,
        "speech_source": source.source_name,
        "speech_available": source.is_available,
        "speech_running": source.is_running,
        "session_state": controller.state.value,
        "game_active": game is not None and game.is_active,
        "result_subscribers": _get_result_bus(request).subscriber_count,
        "results_dropped": _get_result_bus(request).dropped,
    }
