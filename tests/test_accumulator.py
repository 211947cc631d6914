"""Tests for DeltaAccumulator bookkeeping."""

import pytest

from chatstream.errors import MessageFinalizedError
from chatstream.models import Message, Role
from chatstream.streaming import ContentDelta, DeltaAccumulator, Done, Ignored, SessionInfo


@pytest.fixture
def assistant(conversation):
    _, message = conversation.begin_turn("question")
    return message


@pytest.fixture
def accumulator(conversation, assistant):
    return DeltaAccumulator(conversation, assistant)


class TestDeltaAccumulator:
    """Tests for DeltaAccumulator."""

    def test_deltas_append_in_order(self, accumulator, assistant):
        assert accumulator.apply(ContentDelta("Hel"))
        assert accumulator.apply(ContentDelta("lo"))
        assert assistant.raw_content == "Hello"
        assert not assistant.finalized

    def test_done_finalizes_and_stops(self, accumulator, assistant):
        accumulator.apply(ContentDelta("x"))
        assert accumulator.apply(Done()) is False
        assert assistant.finalized

    def test_delta_with_finished_flag_applies_text_then_finalizes(self, accumulator, assistant):
        assert accumulator.apply(ContentDelta("last", finished=True)) is False
        assert assistant.raw_content == "last"
        assert assistant.finalized

    def test_events_after_finalize_are_discarded(self, accumulator, assistant):
        accumulator.apply(Done())
        assert accumulator.apply(ContentDelta("late")) is False
        assert assistant.raw_content == ""

    def test_ignored_is_a_no_op(self, accumulator, assistant):
        assert accumulator.apply(Ignored("event: x"))
        assert assistant.raw_content == ""

    def test_session_info_first_wins(self, accumulator, conversation):
        accumulator.apply(SessionInfo("first"))
        accumulator.apply(SessionInfo("second"))
        assert conversation.session_id == "first"
        assert accumulator.session_assigned

    def test_session_info_replaces_previous_turn_id(self, conversation):
        conversation.session_id = "old"
        _, message = conversation.begin_turn("again")
        DeltaAccumulator(conversation, message).apply(SessionInfo("new"))
        assert conversation.session_id == "new"

    def test_listeners_receive_snapshots(self, conversation, assistant):
        seen = []
        accumulator = DeltaAccumulator(conversation, assistant, listeners=[seen.append])
        accumulator.apply(ContentDelta("a"))
        accumulator.apply(ContentDelta("b"))
        accumulator.apply(Done())
        assert [s.content for s in seen] == ["a", "ab", "ab"]
        assert [s.finalized for s in seen] == [False, False, True]
        assert all(s.role is Role.ASSISTANT for s in seen)

    def test_fail_replaces_content_with_notice(self, accumulator, assistant):
        accumulator.apply(ContentDelta("partial"))
        accumulator.fail("Sorry")
        assert assistant.raw_content == "Sorry"
        assert assistant.finalized

    def test_fail_after_finalize_keeps_content(self, accumulator, assistant):
        accumulator.apply(ContentDelta("complete"))
        accumulator.finalize()
        accumulator.fail("Sorry")
        assert assistant.raw_content == "complete"


class TestMessage:
    """Tests for Message and Conversation."""

    def test_append_after_finalize_raises(self):
        message = Message(Role.ASSISTANT)
        message.finalize()
        with pytest.raises(MessageFinalizedError):
            message.append("x")

    def test_snapshot_is_a_copy(self):
        message = Message(Role.ASSISTANT, "one")
        snapshot = message.snapshot()
        message.append(" two")
        assert snapshot.content == "one"
        assert message.snapshot().content == "one two"

    def test_begin_turn(self, conversation):
        user, assistant = conversation.begin_turn("hi")
        assert user.finalized and user.raw_content == "hi"
        assert assistant.raw_content == "" and not assistant.finalized
        assert conversation.messages == [user, assistant]

    def test_clear_forgets_session(self, conversation):
        conversation.session_id = "s"
        conversation.begin_turn("hi")
        conversation.clear()
        assert conversation.messages == []
        assert conversation.session_id is None
