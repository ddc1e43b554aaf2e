"""Speech source failures surfaced to the session controller."""


class SpeechSourceError(Exception):
    """Base exception for speech source failures."""


class SourceUnavailable(SpeechSourceError):
    """No speech source can be started (missing capability or credential)."""


class PermissionDenied(SpeechSourceError):
    """The user refused audio capture, or the transport rejected our credentials."""


class TransportFailure(SpeechSourceError):
    """The transcript stream broke mid-session."""
