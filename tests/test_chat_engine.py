"""Tests for ChatEngine and the CLI command dispatch."""

from unittest.mock import MagicMock

import pytest
from rich.console import Console

from chatstream.client.chat_client import ChatClient
from chatstream.client.chat_engine import ChatEngine
from chatstream.client.cli import build_parser, handle_command
from chatstream.client.config import ChatConfig
from chatstream.client.response_handler import ResponseHandler

from conftest import FakeByteStream, FakeTransport, sse


@pytest.fixture
def console():
    return Console(record=True, width=80, force_terminal=False)


@pytest.fixture
def config():
    return ChatConfig(refresh_per_second=50)


class TestChatEngine:
    """Tests for ChatEngine."""

    def test_chat_returns_full_reply(self, config, console):
        transport = FakeTransport(FakeByteStream([
            sse('data: {"type": "session_info", "session_id": "s1"}'),
            sse('data: {"content": "Hello"}', 'data: {"content": " there"}'),
            sse('data: [DONE]'),
        ]))
        engine = ChatEngine(config, transport, ResponseHandler(config, console))

        assert engine.chat("hi") == "Hello there"
        assert engine.conversation.session_id == "s1"
        assert transport.requests[0].model_name == "qwen"
        assert "Hello there" in console.export_text()

    def test_failure_notice_is_rendered(self, config, console):
        from chatstream.errors import TransportError
        transport = FakeTransport(TransportError("boom"))
        engine = ChatEngine(config, transport, ResponseHandler(config, console))

        assert engine.chat("hi") == config.failure_notice
        assert "Sorry, something went wrong" in console.export_text()

    def test_interrupt_keeps_partial_reply(self, config, console):
        stream = FakeByteStream([sse('data: {"content": "partial"}'),
                                 sse('data: {"content": " more"}')], pause_before=1)
        handler = ResponseHandler(config, console)
        engine = ChatEngine(config, FakeTransport(stream), handler)

        def interrupted(handle):
            assert stream.paused.wait(5)
            raise KeyboardInterrupt

        handler.follow_stream = interrupted
        assert engine.chat("hi") == "partial"

        assistant = engine.conversation.messages[-1]
        assert assistant.finalized
        assert "Generation stopped" in console.export_text()

    def test_new_conversation(self, config, console):
        transport = FakeTransport(FakeByteStream([
            sse('data: {"type": "session_info", "session_id": "s1"}', 'data: [DONE]'),
        ]))
        engine = ChatEngine(config, transport, ResponseHandler(config, console))
        engine.chat("hi")
        engine.new_conversation()
        assert engine.history() == []
        assert engine.conversation.session_id is None


class TestCommands:
    """Tests for slash command dispatch."""

    @pytest.fixture
    def client(self, config, console):
        connection = MagicMock()
        connection.get_available_models.return_value = ["qwen", "llama8b"]
        return ChatClient(config, check_connection=False,
                          connection_manager=connection, console=console)

    def test_quit(self, client):
        assert handle_command(client, "/quit") is False
        assert handle_command(client, "/EXIT") is False

    def test_model_switch(self, client):
        assert handle_command(client, "/model llama8b") is True
        assert client.config.model == "llama8b"

    def test_models_listing(self, client, console):
        handle_command(client, "/models")
        output = console.export_text()
        assert "qwen" in output and "llama8b" in output

    def test_unknown_command(self, client, console):
        assert handle_command(client, "/bogus") is True
        assert "Unknown command" in console.export_text()

    def test_history_and_clear(self, client, console):
        handle_command(client, "/history")
        assert "No conversation history" in console.export_text()
        handle_command(client, "/clear")
        assert "Conversation cleared" in console.export_text()

    def test_connection_check_failure(self, config, console):
        connection = MagicMock()
        connection.test_connection.return_value = False
        with pytest.raises(ConnectionError):
            ChatClient(config, connection_manager=connection, console=console)


class TestParser:
    def test_arguments(self):
        args = build_parser().parse_args(
            ["--base-url", "http://x:1", "--model", "smollm2", "--math", "unicode", "--debug"])
        config = ChatConfig.from_args(args)
        assert config.base_url == "http://x:1"
        assert config.model == "smollm2"
        assert config.math_display == "unicode"
        assert config.debug is True
