"""Tests for EventParser line classification."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chatstream.streaming import ContentDelta, Done, EventParser, Ignored, SessionInfo, parse_line


class TestEventParser:
    """Tests for EventParser."""

    @pytest.fixture
    def parser(self):
        return EventParser()

    def test_token_payload(self, parser):
        assert parser.parse('data: {"token":"Hi","is_finished":false}') == ContentDelta("Hi")

    def test_done_sentinel(self, parser):
        assert parser.parse("data: [DONE]") == Done()

    def test_done_sentinel_without_space(self, parser):
        assert parser.parse("data:[DONE]") == Done()

    def test_garbage_is_ignored(self, parser):
        assert isinstance(parser.parse("not-json-garbage"), Ignored)

    def test_undecodable_data_is_ignored(self, parser):
        assert isinstance(parser.parse('data: {"content": "unterminated'), Ignored)

    def test_blank_line_is_ignored(self, parser):
        assert isinstance(parser.parse(""), Ignored)
        assert isinstance(parser.parse("   "), Ignored)

    def test_event_marker_is_ignored(self, parser):
        assert isinstance(parser.parse("event: session"), Ignored)

    def test_session_info(self, parser):
        line = 'data: {"type": "session_info", "session_id": "abc-123"}'
        assert parser.parse(line) == SessionInfo("abc-123")

    def test_session_id_without_type_is_not_session_info(self, parser):
        line = 'data: {"session_id": "abc", "content": "text"}'
        assert parser.parse(line) == ContentDelta("text")

    def test_session_marker_takes_precedence_over_text(self, parser):
        line = 'data: {"type": "session_info", "session_id": "s", "content": "x"}'
        assert parser.parse(line) == SessionInfo("s")

    @pytest.mark.parametrize("field", ["content", "token", "token_text", "text"])
    def test_content_field_variants(self, parser, field):
        assert parser.parse('data: {"%s": "piece"}' % field) == ContentDelta("piece")

    def test_first_candidate_wins(self, parser):
        line = 'data: {"text": "third", "token": "second", "content": "first"}'
        assert parser.parse(line) == ContentDelta("first")

    def test_empty_candidate_falls_through(self, parser):
        line = 'data: {"content": "", "token_text": "tok"}'
        assert parser.parse(line) == ContentDelta("tok")

    def test_openai_delta(self, parser):
        line = 'data: {"choices": [{"delta": {"content": "Hey"}, "finish_reason": null}]}'
        assert parser.parse(line) == ContentDelta("Hey")

    def test_openai_finish_without_text_is_done(self, parser):
        line = 'data: {"choices": [{"delta": {}, "finish_reason": "stop"}]}'
        assert parser.parse(line) == Done("stop")

    def test_text_with_finished_flag(self, parser):
        event = parser.parse('data: {"token_text": "end", "is_finished": true, "finish_reason": "stop"}')
        assert event == ContentDelta("end", finished=True, finish_reason="stop")

    def test_finished_flag_without_text_is_done(self, parser):
        assert parser.parse('data: {"generated_text": "all", "is_finished": true}') == Done()

    def test_payload_without_text_is_ignored(self, parser):
        assert isinstance(parser.parse('data: {"is_finished": false}'), Ignored)

    @pytest.mark.parametrize("payload", ['[1, 2]', '"just a string"', '42', 'null'])
    def test_non_object_payload_is_ignored(self, parser, payload):
        assert isinstance(parser.parse("data: " + payload), Ignored)

    def test_deeply_nested_payload_is_ignored(self, parser):
        assert isinstance(parser.parse("data: " + "[" * 100000), Ignored)

    def test_custom_candidate_fields(self):
        parser = EventParser(content_fields=("delta",))
        assert parser.parse('data: {"delta": "x", "content": "y"}') == ContentDelta("x")

    def test_module_shortcut(self):
        assert parse_line("data: [DONE]") == Done()

    @given(st.text())
    def test_never_raises(self, line):
        """Property test: any line classifies to exactly one event."""
        event = parse_line(line)
        assert isinstance(event, (ContentDelta, Done, Ignored, SessionInfo))

    @given(st.text())
    def test_never_raises_on_data_lines(self, payload):
        assert parse_line("data: " + payload) is not None
