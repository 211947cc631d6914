"""
Conversation view model: messages, attachments and the request body.

A turn is a User message plus an Assistant placeholder that starts empty.
Only the DeltaAccumulator mutates the Assistant message while a stream owns
it; the display reads it through ``snapshot()`` so it never observes a value
in the middle of a mutation.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from .errors import MessageFinalizedError


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class FileRef:
    """Reference to a file the server already accepted."""
    file_id: str
    filename: str
    filesize: int = 0


class MessageSnapshot(NamedTuple):
    role: Role
    content: str
    finalized: bool


@dataclass(eq=False)
class Message:
    """A single chat message. ``raw_content`` is append-only during a turn."""

    role: Role
    raw_content: str = ""
    attachments: Optional[List[FileRef]] = None
    finalized: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def append(self, text: str) -> None:
        with self._lock:
            if self.finalized:
                raise MessageFinalizedError("message is finalized")
            self.raw_content += text

    def replace(self, text: str) -> None:
        """Overwrite the content (used only for the transport failure notice)."""
        with self._lock:
            if self.finalized:
                raise MessageFinalizedError("message is finalized")
            self.raw_content = text

    def finalize(self) -> None:
        with self._lock:
            self.finalized = True

    def snapshot(self) -> MessageSnapshot:
        with self._lock:
            return MessageSnapshot(self.role, self.raw_content, self.finalized)


class Conversation:
    """Ordered message list plus the server-side session identifier.

    ``guard`` serializes accumulator mutations against cancellation signals:
    a stream re-checks its token while holding it, so once ``cancel()`` has
    returned the cancelled stream cannot append anything.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        self.messages: List[Message] = []
        self.guard = threading.RLock()

    def begin_turn(self, prompt: str,
                   attachments: Optional[List[FileRef]] = None) -> Tuple[Message, Message]:
        """Append the User message and an empty Assistant placeholder."""
        user = Message(Role.USER, prompt, attachments=list(attachments) if attachments else None,
                       finalized=True)
        assistant = Message(Role.ASSISTANT)
        with self.guard:
            self.messages.extend([user, assistant])
        return user, assistant

    def clear(self) -> None:
        """Start over: drop all messages and forget the session."""
        with self.guard:
            self.messages = []
            self.session_id = None

    def snapshots(self) -> List[MessageSnapshot]:
        with self.guard:
            messages = list(self.messages)
        return [m.snapshot() for m in messages]


class StreamRequest(BaseModel):
    """Body of a streaming generation request."""

    prompt: str = Field(..., min_length=1, description="User prompt text")
    model_name: str = Field(default="qwen", description="Model identifier on the server")
    session_id: Optional[str] = Field(
        default=None,
        description="Conversation session id returned by an earlier turn"
    )

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
