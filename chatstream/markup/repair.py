"""
Closing delimiters that a still-streaming message has not closed yet.

Each delimiter family is tracked by a small outside/inside state machine in a
single scan. Code families have priority over math, and fences have priority
over single backticks:

- a ``` token toggles the fence state wherever it appears
- a single backtick toggles inline code only outside fences
- ``$$`` toggles block math only outside code
- a single ``$`` toggles inline math only outside code and block math

Whatever is still open at the end gets one closer appended, in the order
fence, inline code, block math, inline math. A closer never touches a
preceding delimiter character, so it cannot merge into another family's
delimiter. Emphasis, links and tables are left alone; they settle once the
stream is complete.
"""

from dataclasses import dataclass

from .regions import BLOCK_MATH, DOLLAR, FENCE, TICK


@dataclass
class OpenState:
    fence: bool = False
    inline_code: bool = False
    block_math: bool = False
    inline_math: bool = False

    @property
    def in_code(self) -> bool:
        return self.fence or self.inline_code


def scan_open_state(text: str) -> OpenState:
    """Which delimiter families are left open at the end of ``text``."""
    state = OpenState()
    length = len(text)
    i = 0
    while i < length:
        char = text[i]
        if char == "`":
            if text.startswith(FENCE, i):
                state.fence = not state.fence
                i += len(FENCE)
                continue
            if not state.fence:
                state.inline_code = not state.inline_code
            i += len(TICK)
            continue

        if state.in_code:
            i += 1
            continue

        if char == "\\" and text.startswith(DOLLAR, i + 1):
            i += 2
            continue

        if char == "$":
            if text.startswith(BLOCK_MATH, i):
                state.block_math = not state.block_math
                i += len(BLOCK_MATH)
                continue
            if not state.block_math:
                state.inline_math = not state.inline_math
            i += len(DOLLAR)
            continue

        i += 1
    return state


def close_open_structures(text: str) -> str:
    """Pass B: append one closer for every family left open."""
    state = scan_open_state(text)
    if state.fence:
        # A closing fence has to sit on its own line
        text += FENCE if text.endswith("\n") else "\n" + FENCE
    if state.inline_code:
        text = _append_closer(text, TICK)
    if state.block_math:
        text = _append_closer(text, BLOCK_MATH)
    if state.inline_math:
        text = _append_closer(text, DOLLAR)
    return text


def _append_closer(text: str, closer: str) -> str:
    # "$" + "$" would read as "$$", "``" + "`" as a fence and "\" + "$" as \$
    if text.endswith((closer[0], "\\")):
        text += " "
    return text + closer
