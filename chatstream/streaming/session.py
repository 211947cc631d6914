"""
Per-conversation orchestration of the decode, parse and accumulate loop.

Learning Points:
- Each turn gets its own CancellationToken instead of one shared, reassigned
  abort handle; starting a turn signals the previous token first
- Cancellation is signalled while holding the conversation guard and every
  accumulator apply re-checks the token under that same guard, so a stale
  delta can never land after ``cancel()`` returns
- The loop runs on one worker thread per stream: chunks of a stream are
  processed strictly in arrival order, never concurrently
- Cancelling also closes the byte stream so a blocked read wakes up promptly
"""

import itertools
import logging
import threading
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Protocol

from ..errors import CancelledError, TransportError
from ..models import Conversation, FileRef, Message, StreamRequest
from .accumulator import ContentListener, DeltaAccumulator
from .cancellation import CancellationToken
from .event_parser import EventParser
from .events import Ignored
from .frame_decoder import FrameDecoder

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "Sorry, something went wrong. Please try again."

_stream_ids = itertools.count(1)


class ByteStream(Protocol):
    """An open streaming response body."""

    def __iter__(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


class Transport(Protocol):
    """Opens the byte stream for a request; raises TransportError on rejection."""

    def open(self, request: StreamRequest) -> ByteStream: ...


class StreamOutcome(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class StreamHandle:
    """One in-flight stream; the caller's way to cancel or wait for it."""

    def __init__(self, transport: Transport, conversation: Conversation,
                 message: Message, request: StreamRequest,
                 token: CancellationToken, parser: EventParser,
                 listeners: Optional[List[ContentListener]] = None,
                 failure_notice: str = FAILURE_NOTICE):
        self.stream_id = next(_stream_ids)
        self.request = request
        self.message = message
        self.token = token
        self.outcome = StreamOutcome.RUNNING
        self.error: Optional[Exception] = None

        self._transport = transport
        self._guard = conversation.guard
        self._parser = parser
        self._failure_notice = failure_notice
        self._accumulator = DeltaAccumulator(conversation, message, listeners)
        self._finished = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    def cancel(self, finalize: bool = False, reason: str = "cancelled") -> None:
        """Stop the stream; no mutation happens after this returns.

        The message keeps its last applied content. Pass ``finalize=True``
        to also mark it finalized.
        """
        with self._guard:
            self.token.cancel(reason)
            if finalize:
                self._accumulator.finalize()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop to exit; returns True when it has."""
        return self._finished.wait(timeout)

    def _launch(self, background: bool) -> None:
        if not background:
            self._run()
            return
        self._thread = threading.Thread(
            target=self._run, name=f"chatstream-{self.stream_id}", daemon=True
        )
        self._thread.start()

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _run(self) -> None:
        try:
            self._consume()
        except CancelledError:
            logger.info("Stream %d cancelled: %s", self.stream_id, self.token.reason)
        except TransportError as exc:
            self._on_stream_error(exc)
        except Exception as exc:
            # A custom transport or a content listener broke
            self._on_stream_error(exc, unexpected=True)
        finally:
            if self.outcome is StreamOutcome.RUNNING:
                self.outcome = (StreamOutcome.CANCELLED if self.token.cancelled
                                else StreamOutcome.COMPLETED)
            self._finished.set()
            logger.debug("Stream %d finished: %s", self.stream_id, self.outcome.value)

    def _consume(self) -> None:
        self.token.raise_if_cancelled()

        stream = self._transport.open(self.request)
        self.token.on_cancel(stream.close)
        decoder = FrameDecoder()
        try:
            for chunk in stream:
                self.token.raise_if_cancelled()
                if not self._apply_lines(decoder.feed(chunk)):
                    break
            else:
                self._apply_lines(decoder.finish())
                self._finalize_at_end()
        finally:
            stream.close()

    def _apply_lines(self, lines: Iterable[str]) -> bool:
        for line in lines:
            if self.token.cancelled:
                return False
            event = self._parser.parse(line)
            if isinstance(event, Ignored):
                continue
            with self._guard:
                if self.token.cancelled:
                    return False
                if not self._accumulator.apply(event):
                    return False
        return True

    def _finalize_at_end(self) -> None:
        # Natural end of stream without an explicit Done
        with self._guard:
            if not self.token.cancelled:
                self._accumulator.finalize()

    def _on_stream_error(self, exc: Exception, unexpected: bool = False) -> None:
        if self.token.cancelled:
            # Closing the stream on cancel commonly surfaces as a read error
            logger.info("Stream %d cancelled: %s", self.stream_id, self.token.reason)
            return
        if unexpected:
            logger.exception("Stream %d crashed", self.stream_id)
        else:
            logger.warning("Stream %d failed: %s", self.stream_id, exc)
        self.error = exc
        with self._guard:
            if self.token.cancelled:
                return
            self._accumulator.fail(self._failure_notice)
        self.outcome = StreamOutcome.FAILED


class StreamSession:
    """Owns the at-most-one active stream of a conversation."""

    def __init__(self, transport: Transport, conversation: Conversation,
                 parser: Optional[EventParser] = None,
                 failure_notice: str = FAILURE_NOTICE):
        self.transport = transport
        self.conversation = conversation
        self.parser = parser or EventParser()
        self.failure_notice = failure_notice
        self._lock = threading.Lock()
        self._active: Optional[StreamHandle] = None

    @property
    def active(self) -> Optional[StreamHandle]:
        handle = self._active
        return handle if handle is not None and not handle.done else None

    def start(self, request: StreamRequest,
              attachments: Optional[List[FileRef]] = None,
              token: Optional[CancellationToken] = None,
              listeners: Optional[List[ContentListener]] = None,
              background: bool = True) -> StreamHandle:
        """Begin a new turn, cancelling the previous stream first."""
        with self._lock:
            previous = self._active
            if previous is not None and not previous.done:
                # Returns only after the old stream can no longer mutate
                previous.cancel(reason="superseded")
                logger.info("Stream %d superseded", previous.stream_id)

            if request.session_id is None and self.conversation.session_id:
                request = request.model_copy(
                    update={"session_id": self.conversation.session_id}
                )

            _, assistant = self.conversation.begin_turn(request.prompt, attachments)
            handle = StreamHandle(
                self.transport, self.conversation, assistant, request,
                token or CancellationToken(), self.parser,
                listeners=listeners, failure_notice=self.failure_notice,
            )
            self._active = handle

        handle._launch(background)
        return handle

    def cancel(self, finalize: bool = False) -> None:
        handle = self.active
        if handle is not None:
            handle.cancel(finalize=finalize)
