"""Frame reassembly, event parsing and per-turn stream orchestration."""

from .accumulator import DeltaAccumulator
from .cancellation import CancellationToken
from .event_parser import EventParser, parse_line
from .events import ContentDelta, Done, Ignored, SessionInfo, StreamEvent
from .frame_decoder import FrameDecoder, iter_lines
from .session import (
    FAILURE_NOTICE,
    StreamHandle,
    StreamOutcome,
    StreamSession,
    Transport,
)

__all__ = [
    "CancellationToken",
    "ContentDelta",
    "DeltaAccumulator",
    "Done",
    "EventParser",
    "FAILURE_NOTICE",
    "FrameDecoder",
    "Ignored",
    "SessionInfo",
    "StreamEvent",
    "StreamHandle",
    "StreamOutcome",
    "StreamSession",
    "Transport",
    "iter_lines",
    "parse_line",
]
