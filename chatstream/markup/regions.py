"""
Locating code and math regions that must not be rewritten.

A single left-to-right scan. At every position the first opener found wins,
so a ``$`` inside a code span never starts math and a backtick inside math
never starts code. Every search moves forward only and regions never overlap,
which keeps the scan linear in the length of the text.

Unterminated regions are still claimed, because during streaming their
closer simply has not arrived yet:

- a code fence or a ``$$`` block runs to the end of the text
- an inline code span or inline ``$`` math runs to the end of its line
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

FENCE = "```"
TICK = "`"
BLOCK_MATH = "$$"
DOLLAR = "$"


class RegionKind(str, Enum):
    CODE_BLOCK = "code_block"
    INLINE_CODE = "inline_code"
    BLOCK_MATH = "block_math"
    INLINE_MATH = "inline_math"

    @property
    def is_code(self) -> bool:
        return self in (RegionKind.CODE_BLOCK, RegionKind.INLINE_CODE)

    @property
    def is_math(self) -> bool:
        return not self.is_code


@dataclass(frozen=True)
class Region:
    kind: RegionKind
    start: int
    end: int
    closed: bool = True

    def text(self, source: str) -> str:
        return source[self.start:self.end]

    @property
    def inner(self) -> Tuple[int, int]:
        """Bounds of the content between the delimiters."""
        width = _DELIMITER_WIDTH[self.kind]
        closing = width if self.closed else 0
        return self.start + width, max(self.start + width, self.end - closing)


_DELIMITER_WIDTH = {
    RegionKind.CODE_BLOCK: len(FENCE),
    RegionKind.INLINE_CODE: len(TICK),
    RegionKind.BLOCK_MATH: len(BLOCK_MATH),
    RegionKind.INLINE_MATH: len(DOLLAR),
}


def _line_end(text: str, pos: int) -> int:
    newline = text.find("\n", pos)
    return len(text) if newline == -1 else newline


def scan_regions(text: str) -> List[Region]:
    """Return the protected regions of ``text`` in order of position."""
    regions: List[Region] = []
    length = len(text)
    i = 0
    while i < length:
        char = text[i]

        if char == "\\" and text.startswith(DOLLAR, i + 1):
            # \$ is a literal dollar
            i += 2
            continue

        if char == "`":
            if text.startswith(FENCE, i):
                close = text.find(FENCE, i + len(FENCE))
                if close == -1:
                    regions.append(Region(RegionKind.CODE_BLOCK, i, length, closed=False))
                    break
                regions.append(Region(RegionKind.CODE_BLOCK, i, close + len(FENCE)))
                i = close + len(FENCE)
                continue
            close = text.find(TICK, i + 1)
            if close == i + 1:
                # `` is an empty span, not code
                i += 2
                continue
            if close == -1:
                end = _line_end(text, i)
                regions.append(Region(RegionKind.INLINE_CODE, i, end, closed=False))
                i = end
                continue
            regions.append(Region(RegionKind.INLINE_CODE, i, close + 1))
            i = close + 1
            continue

        if char == "$":
            if text.startswith(BLOCK_MATH, i):
                close = text.find(BLOCK_MATH, i + len(BLOCK_MATH))
                if close == -1:
                    regions.append(Region(RegionKind.BLOCK_MATH, i, length, closed=False))
                    break
                regions.append(Region(RegionKind.BLOCK_MATH, i, close + len(BLOCK_MATH)))
                i = close + len(BLOCK_MATH)
                continue
            close = _find_unescaped_dollar(text, i + 1)
            if close == -1:
                end = _line_end(text, i)
                regions.append(Region(RegionKind.INLINE_MATH, i, end, closed=False))
                i = end
                continue
            regions.append(Region(RegionKind.INLINE_MATH, i, close + 1))
            i = close + 1
            continue

        i += 1
    return regions


def _find_unescaped_dollar(text: str, pos: int) -> int:
    while True:
        found = text.find(DOLLAR, pos)
        if found <= 0 or text[found - 1] != "\\":
            return found
        pos = found + 1


def iter_segments(text: str, regions: List[Region]) -> Iterator[Tuple[int, int, Optional[Region]]]:
    """Yield ``(start, end, region)`` covering ``text``; ``region`` is None for free text."""
    pos = 0
    for region in regions:
        if region.start > pos:
            yield pos, region.start, None
        yield region.start, region.end, region
        pos = region.end
    if pos < len(text):
        yield pos, len(text), None
