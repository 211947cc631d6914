"""
Normalising bare math notations into canonical ``$``/``$$`` delimiters.

Models often write math without the delimiters a Markdown math renderer
expects. The notations recognised here:

    \\[ x^2 \\]                  ->  $$x^2$$
    \\( x^2 \\)                  ->  $x^2$
    [ 5 \\times 4 ]              ->  $5 \\times 4$     (needs a \\command inside)
    \\ 5! = 5 \\times 4 \\        ->  $5! = 5 \\times 4$
    5! = 5 \\times 4 = 20        ->  $5! = 5 \\times 4 = 20$
    5 \\times 4 \\times 3 = 60    ->  $5 \\times 4 \\times 3 = 60$

Existing code and math regions are set aside first (see ``regions``) and only
the free text between them is rewritten. The rewrite is one left-to-right
scan: at each position the rules are tried in a fixed order, the first match
is replaced and scanning resumes after it, so nothing is rewritten twice.

The arithmetic and factorial rules are heuristics. They can fire on prose
that happens to contain numbers and backslash commands. A bare expression
may not start right after ``\\``, ``$`` or a backtick, but it may start
inside a word: ``x5 \\times 4`` becomes ``x$5 \\times 4$``. Where both rules
could start at the same place the factorial form is tried first, so its
leading ``n! =`` stays inside the delimiters.
"""

import re
from typing import List, Optional

from .regions import iter_segments, scan_regions

ARITHMETIC_COMMANDS = ("times", "cdot", "div")
FACTORIAL_COMMANDS = ("times", "cdot")
DELIMITED_COMMANDS = ("times", "cdot", "div", "pm", "mp", "frac", "sqrt")

_COMMAND_TOKEN = re.compile(r"\\[a-zA-Z]+")
_BRACKET = re.compile(r"[\[\]]")
_LETTERS = re.compile(r"[a-zA-Z]+")

_ARITHMETIC = re.compile(
    r"\d+\s*(?:\\(?:%s)\s*\d+\s*)+(?:=\s*\d+)?" % "|".join(ARITHMETIC_COMMANDS)
)
_FACTORIAL = re.compile(
    r"\w+!\s*=\s*\d+\s*(?:\\(?:%s)\s*\d+\s*)+(?:=\s*\d+)?" % "|".join(FACTORIAL_COMMANDS)
)

# Characters that may not directly precede a bare expression
_NO_BARE_AFTER = "\\$`"


def _is_word(char: str) -> bool:
    return char.isalnum() or char == "_"


class _Finder:
    """Forward-only ``str.find`` that reuses its last answer.

    Repeated openers without a closer would otherwise rescan the rest of
    the segment each time.
    """

    def __init__(self, text: str, needle: str, end: int):
        self.text = text
        self.needle = needle
        self.end = end
        self._last: Optional[int] = None

    def find(self, pos: int) -> int:
        last = self._last
        if last is not None and (last == -1 or last >= pos):
            return last
        self._last = self.text.find(self.needle, pos, self.end)
        return self._last


class _SegmentRewriter:
    """Rewrites one free segment ``text[start:end]`` into ``out``."""

    def __init__(self, text: str, start: int, end: int, out: List[str]):
        self.text = text
        self.start = start
        self.end = end
        self.out = out
        self.copied = start
        self.display_close = _Finder(text, "\\]", end)
        self.inline_close = _Finder(text, "\\)", end)

    def run(self) -> None:
        text = self.text
        pos = self.start
        while pos < self.end:
            char = text[pos]
            matched = None
            if char == "\\":
                matched = (self._display(pos) or self._parenthesized(pos)
                           or self._backslash_delimited(pos))
            elif char == "[":
                matched = self._bracketed(pos)
            elif _is_word(char):
                matched = self._bare_expression(pos)

            if matched is None:
                pos += 1
                continue

            replacement, match_end = matched
            self.out.append(text[self.copied:pos])
            self.out.append(replacement)
            pos = self.copied = match_end
        self.out.append(text[self.copied:self.end])

    # ------------------------------------------------------------------
    # Rules, each returns (replacement, end) or None
    # ------------------------------------------------------------------

    def _display(self, pos: int):
        if not self.text.startswith("\\[", pos):
            return None
        close = self.display_close.find(pos + 2)
        if close == -1:
            return None
        inner = self.text[pos + 2:close].strip()
        if not inner:
            return None
        return self._wrap(inner, "$$", pos, close + 2), close + 2

    def _parenthesized(self, pos: int):
        if not self.text.startswith("\\(", pos):
            return None
        close = self.inline_close.find(pos + 2)
        if close == -1:
            return None
        inner = self.text[pos + 2:close].strip()
        if not inner:
            return None
        return self._wrap(inner, "$", pos, close + 2), close + 2

    def _backslash_delimited(self, pos: int):
        # \ <expression with \times etc.> \
        text = self.text
        body = pos + 1
        while body < self.end and text[body] in " \t":
            body += 1
        if body == pos + 1:
            return None

        seen_command = False
        cursor = body
        while True:
            slash = text.find("\\", cursor, self.end)
            if slash == -1:
                return None
            word = _LETTERS.match(text, slash + 1, self.end)
            if word is None:
                break
            if word.group() not in DELIMITED_COMMANDS:
                return None
            seen_command = True
            cursor = word.end()

        inner = text[body:slash].strip()
        if not seen_command or not inner:
            return None
        return self._wrap(inner, "$", pos, slash + 1), slash + 1

    def _bracketed(self, pos: int):
        # [ ... \command ... ] with no nested brackets
        if pos > 0 and self.text[pos - 1] == "\\":
            return None
        bracket = _BRACKET.search(self.text, pos + 1, self.end)
        if bracket is None or bracket.group() != "]":
            return None
        inner = self.text[pos + 1:bracket.start()]
        if not _COMMAND_TOKEN.search(inner) or not inner.strip():
            return None
        return self._wrap(inner.strip(), "$", pos, bracket.end()), bracket.end()

    def _run_start(self, pos: int, in_run) -> bool:
        """True at the first position of a run where a bare match may begin.

        A match tried later in the same run reads the same continuation and
        fails the same way, so each run gets one attempt. When the run's own
        first character is blocked, its second character gets the attempt.
        """
        text = self.text
        if pos == 0:
            return True
        previous = text[pos - 1]
        if previous in _NO_BARE_AFTER:
            return False
        if not in_run(previous):
            return True
        return pos >= 2 and text[pos - 2] in _NO_BARE_AFTER

    def _bare_expression(self, pos: int):
        match = None
        if self._run_start(pos, _is_word):
            match = _FACTORIAL.match(self.text, pos, self.end)
        if match is None and self.text[pos].isdecimal() and self._run_start(pos, str.isdecimal):
            match = _ARITHMETIC.match(self.text, pos, self.end)
        if match is None:
            return None
        expression = match.group()
        stripped = expression.rstrip()
        # Whitespace the pattern swallowed stays outside the delimiters
        end = match.start() + len(stripped)
        return self._wrap(stripped, "$", pos, end), end

    def _wrap(self, inner: str, delimiter: str, start: int, end: int) -> str:
        wrapped = f"{delimiter}{inner}{delimiter}"
        # Never glue a new delimiter onto an existing $, that would read as $$
        if self._previous_output_char(start) == "$":
            wrapped = " " + wrapped
        if end < len(self.text) and self.text[end] == "$":
            wrapped += " "
        return wrapped

    def _previous_output_char(self, start: int) -> str:
        if start > self.copied:
            return self.text[start - 1]
        for piece in reversed(self.out):
            if piece:
                return piece[-1]
        return ""


def normalize_bare_math(text: str) -> str:
    """Pass A: rewrite bare math notations outside code and math regions."""
    if not text:
        return ""
    regions = scan_regions(text)
    out: List[str] = []
    for start, end, region in iter_segments(text, regions):
        if region is not None:
            out.append(text[start:end])
        else:
            _SegmentRewriter(text, start, end, out).run()
    return "".join(out)
