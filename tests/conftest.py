"""Shared fakes for stream tests: scripted byte streams and a transport."""

import threading
from typing import List, Optional, Sequence, Union

import pytest

from chatstream.errors import TransportError
from chatstream.models import Conversation, StreamRequest


class FakeByteStream:
    """Yields scripted chunks; can pause before a given chunk until closed.

    An exception instance in ``chunks`` is raised when reached, which is how
    a connection dropping mid-stream looks to the loop.
    """

    def __init__(self, chunks: Sequence[Union[bytes, Exception]],
                 pause_before: Optional[int] = None):
        self.chunks = list(chunks)
        self.pause_before = pause_before
        self.closed = False
        self.paused = threading.Event()
        self._released = threading.Event()

    def __iter__(self):
        for index, chunk in enumerate(self.chunks):
            if index == self.pause_before:
                self.paused.set()
                self._released.wait(5)
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def release(self):
        self._released.set()

    def close(self):
        self.closed = True
        self._released.set()


class FakeTransport:
    """Hands out prepared streams in order and records every request."""

    def __init__(self, *streams: Union[FakeByteStream, TransportError]):
        self.streams: List[Union[FakeByteStream, TransportError]] = list(streams)
        self.requests: List[StreamRequest] = []

    def open(self, request: StreamRequest) -> FakeByteStream:
        self.requests.append(request)
        stream = self.streams.pop(0)
        if isinstance(stream, Exception):
            raise stream
        return stream


def sse(*lines: str) -> bytes:
    """Join frame lines into one SSE body."""
    return "".join(line + "\n" for line in lines).encode("utf-8")


@pytest.fixture
def conversation():
    return Conversation()

