"""FastAPI application factory for Emoquiz.

Creates the FastAPI app with lifespan management for the speech source and
the recognition session controller.  The ``create_app()`` function is the
single entry point used by the CLI and ``uvicorn`` alike.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from emoquiz import __version__
from emoquiz.events.event_bus import EventBus
from emoquiz.quiz.clock import RealClock
from emoquiz.quiz.session_controller import RecognitionSessionController
from emoquiz.quiz.types import EvaluationResult
from emoquiz.server.routes import router
from emoquiz.speech.factory import create_speech_source

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Stop any running game and release the speech source on shutdown."""
    logger.info(
        "Emoquiz server starting up (speech source=%s, available=%s)",
        app.state.speech_source.source_name,
        app.state.speech_source.is_available,
    )
    try:
        yield
    finally:
        logger.info("Emoquiz server shutting down")
        game = app.state.game
        if game is not None:
            await game.stop()
        await app.state.controller.cancel()
        logger.info("Recognition controller stopped")


def create_app(source_name: str | None = None) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    The returned app has:
    * ``app.state.clock`` — the :class:`Clock` shared by every timed component
    * ``app.state.speech_source`` — the bound :class:`SpeechSource`
    * ``app.state.result_bus`` — the EvaluationResult bus
    * ``app.state.controller`` — the :class:`RecognitionSessionController`
    * ``app.state.game`` — the current :class:`GameSession` (``None`` until started)
    * The game, transcript, session, results and health routes
    """
    app = FastAPI(
        title="Emoquiz",
        version=__version__,
        lifespan=lifespan,
    )

    clock = RealClock()
    speech_source = create_speech_source(source_name, clock)
    result_bus: EventBus[EvaluationResult] = EventBus()

    app.state.clock = clock
    app.state.speech_source = speech_source
    app.state.result_bus = result_bus
    app.state.controller = RecognitionSessionController(
        speech_source, clock=clock, result_bus=result_bus
    )
    app.state.game = None

    app.include_router(router)

    logger.info("FastAPI app created")
    return app
