"""
Turning raw (possibly incomplete) message text into renderable Markdown.

    sanitize(raw, is_streaming)
        Pass A  normalize_bare_math     always
        Pass B  close_open_structures   only while streaming

The function is pure: the same ``(raw, is_streaming)`` always gives the same
result, so results are memoised for the display refresh loop, which asks for
the same text many times per second.
"""

import logging
from functools import lru_cache

from .notation import normalize_bare_math
from .repair import close_open_structures

logger = logging.getLogger(__name__)


@lru_cache(maxsize=128)
def sanitize(raw: str, is_streaming: bool) -> str:
    """Return the renderable view of ``raw``. Never raises."""
    if not raw:
        return ""
    try:
        text = normalize_bare_math(raw)
        if is_streaming:
            text = close_open_structures(text)
        return text
    except Exception:
        # Rendering the unmodified text beats losing the message
        logger.exception("Sanitizer failed; rendering raw content")
        return raw
