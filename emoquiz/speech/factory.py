"""Speech source factory — selects the transport based on config."""

import logging

from emoquiz.config import SPEECH_SOURCE
from emoquiz.quiz.clock import Clock
from emoquiz.speech.source import SpeechSource

logger = logging.getLogger(__name__)


def create_speech_source(
    name: str | None = None, clock: Clock | None = None
) -> SpeechSource:
    """Create the speech source named by *name* or EMOQUIZ_SPEECH_SOURCE.

    Returns:
        HttpStreamSpeechSource if the name is "stream"
        PushSpeechSource otherwise (the browser recognizer, default)
    """
    source_name = (name or SPEECH_SOURCE).lower()

    if source_name == "stream":
        from emoquiz.speech.stream_source import HttpStreamSpeechSource
        logger.info("Creating streaming HTTP speech source")
        return HttpStreamSpeechSource(clock)

    from emoquiz.speech.push_source import PushSpeechSource
    logger.info("Creating browser push speech source")
    return PushSpeechSource(clock)
