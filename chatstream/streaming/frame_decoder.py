"""
Frame reassembly: raw byte chunks in, complete logical lines out.

The transport hands us chunks whose boundaries are arbitrary. A chunk may end
in the middle of a line, in the middle of a JSON payload, or even in the
middle of a multi-byte UTF-8 character. FrameDecoder hides all of that.

Learning Points:
- codecs incremental decoders keep undecoded trailing bytes between calls,
  so a character split across two chunks is never turned into U+FFFD
- Only text followed by a line break is known to be complete; the trailing
  fragment is carried over to the next call
- CRLF framing is normalised by stripping one trailing ``\\r`` per line, which
  gives identical output no matter where the chunk boundary falls
"""

import codecs
from typing import Iterable, Iterator, List


class FrameDecoder:
    """Turns a sequence of byte chunks into a sequence of logical lines."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        # Pieces of the incomplete fragment, joined only once a line break arrives
        self._pieces: List[str] = []
        self._finished = False

    @property
    def pending(self) -> str:
        """The incomplete fragment waiting for its line break."""
        return "".join(self._pieces)

    def feed(self, chunk: bytes) -> List[str]:
        """Decode ``chunk`` and return every line it completed, in order."""
        if self._finished:
            raise RuntimeError("feed() called after finish()")
        if not chunk:
            return []

        text = self._decoder.decode(chunk)
        if "\n" not in text:
            if text:
                self._pieces.append(text)
            return []

        self._pieces.append(text)
        # The last element is the (possibly empty) incomplete fragment
        *complete, rest = "".join(self._pieces).split("\n")
        self._pieces = [rest] if rest else []
        return [_strip_cr(line) for line in complete]

    def finish(self) -> List[str]:
        """Flush at stream end; the remaining fragment becomes the last line."""
        if self._finished:
            return []
        self._finished = True

        # Leftover bytes of a truncated character become U+FFFD here
        self._pieces.append(self._decoder.decode(b"", final=True))
        tail = _strip_cr("".join(self._pieces))
        self._pieces = []
        return [tail] if tail else []


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def iter_lines(chunks: Iterable[bytes], encoding: str = "utf-8") -> Iterator[str]:
    """Decode a whole chunk iterable with a fresh FrameDecoder."""
    decoder = FrameDecoder(encoding)
    for chunk in chunks:
        yield from decoder.feed(chunk)
    yield from decoder.finish()
