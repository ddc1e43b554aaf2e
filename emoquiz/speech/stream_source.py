"""Streaming HTTP transcription client.

Opens one long-lived streaming request against a cloud transcription
service and reads newline-delimited JSON results of the form
``{"transcript": "...", "isFinal": true}``.  Follows the same lifecycle as
the other sources: unavailable without an API key, never raises once the
stream is running (failures end the stream with an error instead).
"""

import asyncio
import json
import logging

import httpx

from emoquiz.config import STREAM_API_KEY, STREAM_PATH, STREAM_TIMEOUT, STREAM_URL
from emoquiz.quiz.clock import Clock
from emoquiz.speech.errors import PermissionDenied, SourceUnavailable, TransportFailure
from emoquiz.speech.source import SpeechSource

logger = logging.getLogger(__name__)


class HttpStreamSpeechSource(SpeechSource):
    """Speech source reading transcripts from a streaming HTTP response."""

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        base_url: str = STREAM_URL,
        path: str = STREAM_PATH,
        api_key: str = STREAM_API_KEY,
        timeout: float = STREAM_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(clock)
        self._base_url = base_url
        self._path = path
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

        self._client: httpx.AsyncClient | None = None
        self._response: httpx.Response | None = None
        self._reader_task: asyncio.Task | None = None

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    @property
    def is_running(self) -> bool:
        return self._reader_task is not None and not self._reader_task.done()

    @property
    def source_name(self) -> str:
        return "stream"

    async def start(self) -> None:
        """Open the transcript stream and begin reading it in the background."""
        if self.is_running:
            logger.debug("Stream source already started")
            return
        if not self._api_key:
            raise SourceUnavailable("no streaming transcription API key configured")

        # A stream that ended on its own still holds the previous client.
        await self._close_client()
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, read=None),
            headers={"Authorization": f"Bearer {self._api_key}"},
            transport=self._transport,
        )
        try:
            request = self._client.build_request("GET", self._path)
            response = await self._client.send(request, stream=True)
        except (httpx.ConnectError, httpx.TimeoutException, OSError) as exc:
            await self._close_client()
            raise SourceUnavailable(f"transcription stream unreachable: {exc}") from exc

        if response.status_code in (401, 403):
            await response.aclose()
            await self._close_client()
            raise PermissionDenied(
                f"transcription stream refused access ({response.status_code})"
            )
        if response.status_code != 200:
            await response.aclose()
            await self._close_client()
            raise SourceUnavailable(
                f"transcription stream returned status {response.status_code}"
            )

        self._response = response
        self._reader_task = asyncio.create_task(self._read_loop(response))
        logger.info("Transcript stream opened at %s%s", self._base_url, self._path)

    async def stop(self) -> None:
        """Close the stream.  The reader publishes end-of-stream as it exits."""
        task = self._reader_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            await self.publish_end()
        self._reader_task = None
        await self._close_client()

    async def _read_loop(self, response: httpx.Response) -> None:
        """Publish each streamed result until the body ends or breaks."""
        try:
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                try:
                    text, is_final = self._parse_line(line)
                except TransportFailure:
                    logger.warning("Skipping malformed transcript line: %r", line)
                    continue
                await self.publish_transcript(text, is_final)
        except asyncio.CancelledError:
            raise
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("Transcript stream failed: %s", exc)
            await self.publish_end(str(exc) or type(exc).__name__)
            return
        finally:
            await response.aclose()

        logger.info("Transcript stream ended")
        await self.publish_end()

    @staticmethod
    def _parse_line(line: str) -> tuple[str, bool]:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            raise TransportFailure("invalid JSON") from exc
        if not isinstance(payload, dict) or not isinstance(
            payload.get("transcript"), str
        ):
            raise TransportFailure("missing transcript")
        return payload["transcript"], bool(payload.get("isFinal", False))

    async def _close_client(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self._response = None
