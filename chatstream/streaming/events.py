"""Typed events derived from logical lines, one event per line."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class SessionInfo:
    """The server assigned (or confirmed) a conversation session id."""
    session_id: str


@dataclass(frozen=True)
class ContentDelta:
    """An incremental piece of generated text.

    ``finished`` is set when the same payload also carried the finished flag,
    so the text must be applied before the stream is closed.
    """
    text: str
    finished: bool = False
    finish_reason: Optional[str] = None


@dataclass(frozen=True)
class Done:
    """Explicit end of stream (sentinel or finished flag without text)."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class Ignored:
    """Framing noise: blank lines, event markers, malformed payloads."""
    line: str = ""


StreamEvent = Union[SessionInfo, ContentDelta, Done, Ignored]
