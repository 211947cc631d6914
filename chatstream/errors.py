"""
Exception taxonomy for the streaming chat client.

Only transport problems are ever shown to the user. Malformed frames are
recovered inside the parser and cancellation is an expected outcome, so
neither of them escapes the stream loop as an error.
"""

from typing import Optional


class ChatStreamError(Exception):
    """Base class for all chatstream errors."""


class TransportError(ChatStreamError):
    """The request was rejected or the byte stream broke mid-way."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CancelledError(ChatStreamError):
    """Raised when an operation observes a cooperative cancellation request."""


class MessageFinalizedError(ChatStreamError):
    """A delta was applied to a message that no longer accepts content."""
