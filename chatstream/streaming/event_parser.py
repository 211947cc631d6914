"""
Classification of logical lines into stream events.

The wire format is server-sent-events style:

    event: session
    data: {"type": "session_info", "session_id": "abc"}

    data: {"token": "Hel", "is_finished": false}
    data: {"token": "lo", "is_finished": true, "finish_reason": "stop"}
    data: [DONE]

The payload shape is not stable across backends. The incremental text may
arrive under ``content``, ``token``, ``token_text`` or ``text``, or nested in
an OpenAI-compatible ``choices[0].delta.content``. The parser checks a fixed
list of candidates and takes the first non-empty one.

Learning Points:
- A single malformed frame must never lose the rest of the stream, so every
  failure path returns ``Ignored`` instead of raising
- Precedence is explicit: session marker, then text, then finished flag
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

from .events import ContentDelta, Done, Ignored, SessionInfo, StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
EVENT_PREFIX = "event:"
DONE_SENTINEL = "[DONE]"

SESSION_INFO_TYPE = "session_info"
CONTENT_FIELDS: Tuple[str, ...] = ("content", "token", "token_text", "text")


class EventParser:
    """Stateless line classifier; safe to share between streams."""

    def __init__(self, content_fields: Tuple[str, ...] = CONTENT_FIELDS):
        self.content_fields = content_fields

    def parse(self, line: str) -> StreamEvent:
        """Derive exactly one event from ``line``. Never raises."""
        if not line.strip():
            return Ignored(line)

        if line.startswith(EVENT_PREFIX):
            # Framing only, the payload follows on the data line
            return Ignored(line)

        if not line.startswith(DATA_PREFIX):
            logger.debug("Ignoring unrecognised frame: %.80r", line)
            return Ignored(line)

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            return Done()

        try:
            payload = json.loads(data)
        except (ValueError, RecursionError):
            logger.debug("Ignoring undecodable data frame: %.80r", data)
            return Ignored(line)

        if not isinstance(payload, dict):
            return Ignored(line)

        return self._classify(payload, line)

    def _classify(self, payload: Dict[str, Any], line: str) -> StreamEvent:
        session_id = payload.get("session_id")
        if session_id and payload.get("type") == SESSION_INFO_TYPE:
            return SessionInfo(str(session_id))

        text = self._extract_text(payload)
        finished, reason = _finish_state(payload)

        if text:
            return ContentDelta(text, finished=finished, finish_reason=reason)
        if finished:
            return Done(reason)
        return Ignored(line)

    def _extract_text(self, payload: Dict[str, Any]) -> Optional[str]:
        for field in self.content_fields:
            value = payload.get(field)
            if isinstance(value, str) and value:
                return value

        # OpenAI-compatible chunk: choices[0].delta.content
        choice = _first_choice(payload)
        if choice is not None:
            delta = choice.get("delta")
            if isinstance(delta, dict) and isinstance(delta.get("content"), str):
                return delta["content"]
        return None


def _first_choice(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


def _finish_state(payload: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    reason = payload.get("finish_reason")
    if reason is None:
        choice = _first_choice(payload)
        if choice is not None:
            reason = choice.get("finish_reason")
    finished = payload.get("is_finished") is True or reason is not None
    return finished, (str(reason) if reason is not None else None)


_default_parser = EventParser()


def parse_line(line: str) -> StreamEvent:
    """Module-level shortcut using the default candidate field list."""
    return _default_parser.parse(line)
