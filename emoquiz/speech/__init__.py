"""Speech sources feeding transcripts to the answer evaluation engine."""

from emoquiz.speech.errors import (
    PermissionDenied,
    SourceUnavailable,
    SpeechSourceError,
    TransportFailure,
)
from emoquiz.speech.factory import create_speech_source
from emoquiz.speech.push_source import PushSpeechSource
from emoquiz.speech.source import SpeechEvent, SpeechSource
from emoquiz.speech.stream_source import HttpStreamSpeechSource

__all__ = [
    "HttpStreamSpeechSource",
    "PermissionDenied",
    "PushSpeechSource",
    "SourceUnavailable",
    "SpeechEvent",
    "SpeechSource",
    "SpeechSourceError",
    "TransportFailure",
    "create_speech_source",
]
