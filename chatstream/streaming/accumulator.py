"""
Folding parsed events into the Assistant message of the active turn.

Pure bookkeeping: no decoding, no regular expressions. It runs once per delta,
so it has to stay cheap.
"""

import logging
from typing import Callable, List, Optional

from ..models import Conversation, Message, MessageSnapshot
from .events import ContentDelta, Done, SessionInfo, StreamEvent

logger = logging.getLogger(__name__)

ContentListener = Callable[[MessageSnapshot], None]


class DeltaAccumulator:
    """Applies stream events to one Assistant message."""

    def __init__(self, conversation: Conversation, message: Message,
                 listeners: Optional[List[ContentListener]] = None):
        self.conversation = conversation
        self.message = message
        self.listeners: List[ContentListener] = list(listeners or [])
        self.session_assigned = False

    @property
    def finalized(self) -> bool:
        return self.message.finalized

    def apply(self, event: StreamEvent) -> bool:
        """Apply ``event``; returns False once the stream should stop."""
        if self.message.finalized:
            logger.debug("Discarding %s for a finalized message", type(event).__name__)
            return False

        if isinstance(event, ContentDelta):
            self.message.append(event.text)
            self._notify()
            if event.finished:
                self.finalize()
                return False
            return True

        if isinstance(event, SessionInfo):
            # First one wins for the turn
            if not self.session_assigned:
                self.session_assigned = True
                self.conversation.session_id = event.session_id
                logger.debug("Session id assigned: %s", event.session_id)
            return True

        if isinstance(event, Done):
            self.finalize()
            return False

        return True

    def finalize(self) -> None:
        if not self.message.finalized:
            self.message.finalize()
            self._notify()

    def fail(self, notice: str) -> None:
        """Replace the content with a user-visible notice and finalize."""
        if self.message.finalized:
            return
        self.message.replace(notice)
        self.finalize()

    def _notify(self) -> None:
        if not self.listeners:
            return
        snapshot = self.message.snapshot()
        for listener in self.listeners:
            listener(snapshot)
