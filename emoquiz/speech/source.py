"""Abstract base class for speech sources.

A speech source turns a player's voice into transcript hypotheses.  The
session controller only sees this interface: it calls ``start``/``stop`` and
subscribes to ``events``, on which the source publishes ``TranscriptEvent``
items in arrival order followed by an ``EndOfStream`` when it stops.
Swapping transports means binding a different subclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Union

from emoquiz.events.event_bus import EventBus
from emoquiz.quiz.clock import Clock, RealClock
from emoquiz.quiz.types import EndOfStream, TranscriptEvent

SpeechEvent = Union[TranscriptEvent, EndOfStream]


class SpeechSource(ABC):
    """Base class for speech sources.

    ``start`` and ``stop`` must be idempotent: starting a started source or
    stopping a stopped one is a no-op.  ``start`` may raise
    ``PermissionDenied`` or ``SourceUnavailable``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or RealClock()
        self.events: EventBus[SpeechEvent] = EventBus()

    @abstractmethod
    async def start(self) -> None:
        """Begin producing transcript events."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop producing transcript events and publish end-of-stream."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the source can currently be started."""

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """Whether the source is currently producing events."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable source name for health/status display."""

    async def publish_transcript(self, text: str, is_final: bool) -> TranscriptEvent:
        """Stamp a transcript with the source clock and publish it."""
        event = TranscriptEvent(
            text=text, is_final=is_final, timestamp=self._clock.now()
        )
        await self.events.emit(event)
        return event

    async def publish_end(self, error: str | None = None) -> None:
        await self.events.emit(EndOfStream(error=error, timestamp=self._clock.now()))
