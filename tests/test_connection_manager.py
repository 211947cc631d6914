"""Tests for ConnectionManager with a mocked requests.Session."""

from unittest.mock import MagicMock

import pytest
import requests

from chatstream.client.config import ChatConfig
from chatstream.client.connection_manager import ConnectionManager, HttpByteStream
from chatstream.errors import TransportError
from chatstream.models import StreamRequest


def make_response(status=200, chunks=(), json_data=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 400
    response.iter_content.return_value = iter(chunks)
    response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    mock = MagicMock(spec=requests.Session)
    mock.headers = {}
    return mock


@pytest.fixture
def manager(session):
    return ConnectionManager(ChatConfig(base_url="http://server:8080"), session=session)


class TestConnectionManager:
    """Tests for ConnectionManager."""

    def test_open_posts_streaming_request(self, manager, session):
        session.post.return_value = make_response(chunks=[b"data: [DONE]\n"])
        stream = manager.open(StreamRequest(prompt="hi", model_name="qwen"))

        args, kwargs = session.post.call_args
        assert args[0] == "http://server:8080/generate/stream"
        assert kwargs["json"] == {"prompt": "hi", "model_name": "qwen"}
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == (10.0, 120.0)
        assert list(stream) == [b"data: [DONE]\n"]

    def test_accept_header(self, manager, session):
        assert session.headers["Accept"] == "text/event-stream"

    def test_open_rejected_status(self, manager, session):
        response = make_response(status=503)
        session.post.return_value = response
        with pytest.raises(TransportError) as excinfo:
            manager.open(StreamRequest(prompt="hi"))
        assert excinfo.value.status_code == 503
        response.close.assert_called_once()

    def test_open_connection_error(self, manager, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(TransportError):
            manager.open(StreamRequest(prompt="hi"))

    def test_stream_interruption_becomes_transport_error(self):
        def chunks():
            yield b"data: {}\n"
            raise requests.exceptions.ChunkedEncodingError("reset")

        response = make_response()
        response.iter_content.return_value = chunks()
        stream = HttpByteStream(response)
        with pytest.raises(TransportError):
            list(stream)

    def test_empty_keepalive_chunks_are_skipped(self):
        stream = HttpByteStream(make_response(chunks=[b"", b"a", b""]))
        assert list(stream) == [b"a"]

    def test_close_is_idempotent(self):
        response = make_response()
        stream = HttpByteStream(response)
        stream.close()
        stream.close()
        response.close.assert_called_once()

    def test_connection_ok(self, manager, session):
        session.get.return_value = make_response(status=200)
        assert manager.test_connection() is True
        assert session.get.call_args[0][0] == "http://server:8080/health"

    def test_connection_refused(self, manager, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        assert manager.test_connection() is False

    @pytest.mark.parametrize("payload", [
        ["qwen", "llama8b"],
        {"models": ["qwen", "llama8b"]},
        {"data": [{"id": "qwen"}, {"name": "llama8b"}]},
    ])
    def test_available_models_shapes(self, manager, session, payload):
        session.get.return_value = make_response(json_data=payload)
        assert manager.get_available_models() == ["qwen", "llama8b"]

    def test_available_models_failure(self, manager, session):
        session.get.return_value = make_response(status=404)
        assert manager.get_available_models() == []
