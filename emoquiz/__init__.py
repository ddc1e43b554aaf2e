"""Emoquiz: voice-answered emoji movie trivia."""

__version__ = "0.1.0"
