"""Speech source fed by a recognizer running in the player's browser.

The browser's built-in speech recognizer produces ``(text, isFinal)``
results and relays them to the server, which pushes them here.
"""

import logging

from emoquiz.quiz.clock import Clock
from emoquiz.speech.source import SpeechSource

logger = logging.getLogger(__name__)


class PushSpeechSource(SpeechSource):
    """Speech source whose transcripts are pushed in by the HTTP layer."""

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._running: bool = False

    async def start(self) -> None:
        if self._running:
            logger.debug("Push source already started")
            return
        self._running = True
        logger.info("Push speech source started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await self.publish_end()
        logger.info("Push speech source stopped")

    @property
    def is_available(self) -> bool:
        return True

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def source_name(self) -> str:
        return "browser"

    async def push(self, text: str, is_final: bool) -> bool:
        """Relay one recognizer result.  Returns False if the source is stopped."""
        if not self._running:
            logger.debug("Dropping transcript while stopped: %r", text)
            return False
        await self.publish_transcript(text, is_final)
        return True

    async def end(self, error: str | None = None) -> None:
        """The browser recognizer ended, cleanly or with *error*."""
        if not self._running:
            return
        self._running = False
        if error:
            logger.warning("Browser recognizer failed: %s", error)
        await self.publish_end(error)
