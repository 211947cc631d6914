"""
Core chat functionality: one streamed turn at a time.

Learning Points:
- The engine owns the Conversation and the StreamSession; the display only
  ever sees message snapshots
- The stream itself runs on a worker thread, so the main thread stays free
  to redraw and to receive Ctrl+C
- Ctrl+C cancels the stream and finalizes whatever text already arrived
  instead of tearing the client down
- Debug logging records each prompt and the final reply
"""

import logging
from typing import List, Optional

from ..models import Conversation, FileRef, MessageSnapshot, StreamRequest
from ..streaming import StreamHandle, StreamSession, Transport
from .config import ChatConfig
from .response_handler import ResponseHandler

logger = logging.getLogger(__name__)

LOG_PREVIEW = 500


def _preview(text: str) -> str:
    return text[:LOG_PREVIEW] + ('...' if len(text) > LOG_PREVIEW else '')


class ChatEngine:
    """Sends prompts and follows the streamed replies.

    Dependencies:
    - Transport: opens the byte stream (normally the ConnectionManager)
    - ResponseHandler: renders the live and final reply
    """

    def __init__(self, config: ChatConfig, transport: Transport,
                 response_handler: ResponseHandler,
                 conversation: Optional[Conversation] = None):
        self.config = config
        self.response_handler = response_handler
        self.conversation = conversation or Conversation()
        self.session = StreamSession(
            transport, self.conversation, failure_notice=config.failure_notice
        )

    def start(self, message: str, attachments: Optional[List[FileRef]] = None) -> StreamHandle:
        """Begin a turn without waiting for it."""
        request = StreamRequest(prompt=message, model_name=self.config.model)
        logger.debug("=== CHAT PROMPT ===")
        logger.debug("Model: %s, Session: %s", request.model_name, self.conversation.session_id)
        logger.debug("USER: %s", _preview(message))
        return self.session.start(request, attachments)

    def chat(self, message: str, attachments: Optional[List[FileRef]] = None) -> str:
        """Send ``message`` and render the reply as it streams.

        Returns the raw text of the reply (possibly partial if interrupted).
        """
        handle = self.start(message, attachments)
        try:
            snapshot = self.response_handler.follow_stream(handle)
        except KeyboardInterrupt:
            snapshot = self.interrupt(handle)

        logger.debug("=== CHAT RESPONSE (%s) ===", handle.outcome.value)
        logger.debug("ASSISTANT: %s", _preview(snapshot.content))
        return snapshot.content

    def interrupt(self, handle: StreamHandle) -> MessageSnapshot:
        """Stop ``handle``, keep its partial text and show it once."""
        handle.cancel(finalize=True, reason="interrupted")
        snapshot = handle.message.snapshot()
        self.response_handler.display_response(snapshot)
        self.response_handler.console.print("[dim]⏹ Generation stopped[/dim]")
        return snapshot

    def new_conversation(self) -> None:
        """Drop the history and the server session; any live stream is stopped."""
        self.session.cancel(finalize=True)
        self.conversation.clear()
        logger.debug("Conversation cleared")

    def history(self) -> List[MessageSnapshot]:
        return self.conversation.snapshots()
