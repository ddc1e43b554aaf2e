"""Shared fixtures for Emoquiz tests."""

import asyncio
import heapq

import httpx
import pytest

from emoquiz.events.event_bus import EventBus
from emoquiz.quiz.session_controller import RecognitionSessionController
from emoquiz.quiz.types import Question
from emoquiz.speech.push_source import PushSpeechSource


async def settle(rounds: int = 20) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Clock whose time only moves when a test calls ``advance``.

    ``sleep`` parks the caller until virtual time reaches its deadline, so a
    10-second listening window costs nothing in wall time and every timer
    fires in a predictable order.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = 0
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(
            self._sleepers, (self._now + max(seconds, 0.0), self._seq, future)
        )
        self._seq += 1
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward by *seconds*, waking sleepers in deadline order."""
        target = self._now + seconds
        await settle()
        while self._sleepers and self._sleepers[0][0] <= target + 1e-9:
            deadline, _, future = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            if not future.done():
                future.set_result(None)
            await settle()
        self._now = target
        await settle()

    async def settle(self) -> None:
        await settle()

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, _, f in self._sleepers if not f.done())


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def event_bus() -> EventBus:
    """Return a fresh EventBus instance with a small queue for testing."""
    return EventBus(maxsize=16)


@pytest.fixture
def result_bus() -> EventBus:
    """Return a fresh EventBus for EvaluationResults."""
    return EventBus(maxsize=16)


@pytest.fixture
def titanic() -> Question:
    return Question(clue="🚢❄️💑💔", canonical_answer="Titanic", acceptable_answers=["titanic"])


@pytest.fixture
def push_source(clock: VirtualClock) -> PushSpeechSource:
    return PushSpeechSource(clock)


@pytest.fixture
def controller(
    push_source: PushSpeechSource, clock: VirtualClock, result_bus: EventBus
) -> RecognitionSessionController:
    """A controller on virtual time with the default drain timings."""
    return RecognitionSessionController(push_source, clock=clock, result_bus=result_bus)


@pytest.fixture
def app(clock: VirtualClock):
    """Return a FastAPI test app wired to a push source on virtual time."""
    from fastapi import FastAPI

    from emoquiz.server.routes import router

    source = PushSpeechSource(clock)
    bus: EventBus = EventBus(maxsize=16)

    test_app = FastAPI()
    test_app.state.clock = clock
    test_app.state.speech_source = source
    test_app.state.result_bus = bus
    test_app.state.controller = RecognitionSessionController(
        source, clock=clock, result_bus=bus
    )
    test_app.state.game = None
    test_app.include_router(router)
    return test_app


@pytest.fixture
async def async_client(app):
    """Return an httpx AsyncClient configured with the test FastAPI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
