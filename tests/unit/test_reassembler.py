"""Unit tests for delta reassembly."""

import pytest

from llm_bridge.errors import (
    DuplicateIdError,
    MalformedArgumentsError,
    MissingData,
    OutOfOrderError,
    ReassemblyErrorKind,
)
from llm_bridge.models import (
    DeltaEvent,
    EndEvent,
    FinishReason,
    MessageDelta,
    Role,
    TextDelta,
    TextPart,
    ToolCallDelta,
    ToolCallPart,
    Usage,
)
from llm_bridge.streaming import DeltaReassembler, ReassemblerState, reassemble


def delta(*parts, **kwargs):
    return DeltaEvent(delta=MessageDelta(content=list(parts), **kwargs))


def split_text(text, size):
    return [text[i:i + size] for i in range(0, len(text), size)]


class TestToolCallReassembly:
    """Test tool-call slots."""

    def test_search_cats_scenario(self):
        """Test the canonical three-fragment tool call."""
        result = reassemble([
            delta(ToolCallDelta(index=0, id="call_1", name="search"), role=Role.ASSISTANT),
            delta(ToolCallDelta(index=0, arguments="{\"q\":")),
            delta(ToolCallDelta(index=0, arguments="\"cats\"}")),
            EndEvent(),
        ])

        assert result.message.role == Role.ASSISTANT
        assert result.message.content == [ToolCallPart(id="call_1", name="search", args={"q": "cats"})]
        assert result.ok

    def test_two_calls_in_order(self):
        """Test index 1 may open once index 0 is open."""
        result = reassemble([
            delta(ToolCallDelta(index=0, id="a", name="f", arguments="{}"), role=Role.ASSISTANT),
            delta(ToolCallDelta(index=1, id="b", name="g", arguments="{\"x\": 1}")),
            EndEvent(),
        ])

        assert [(c.id, c.args) for c in result.message.tool_calls] == [("a", {}), ("b", {"x": 1})]

    def test_empty_arguments_become_empty_object(self):
        """Test a call streamed without arguments gets ``{}``."""
        result = reassemble([delta(ToolCallDelta(index=0, id="a", name="now")), EndEvent()])
        assert result.message.tool_calls[0].args == {}

    def test_missing_id_is_assigned(self):
        """Test a slot that never received an id still yields a valid part."""
        result = reassemble([delta(ToolCallDelta(index=0, name="f", arguments="{}")), EndEvent()])
        assert result.message.tool_calls[0].id == "call_0"

    def test_assigned_id_avoids_streamed_ids(self):
        """Test an assigned id never repeats an id the provider sent."""
        result = reassemble([
            delta(ToolCallDelta(index=0, name="f", arguments="{}"), role=Role.ASSISTANT),
            delta(ToolCallDelta(index=1, id="call_0", name="g", arguments="{}")),
            EndEvent(),
        ])

        ids = [call.id for call in result.message.tool_calls]
        assert ids == ["call_0_1", "call_0"]
        assert len(set(ids)) == 2

    def test_id_may_arrive_after_first_fragment(self):
        """Test a late id fills an id-less slot."""
        result = reassemble([
            delta(ToolCallDelta(index=0, name="f")),
            delta(ToolCallDelta(index=0, id="late", arguments="{}")),
            EndEvent(),
        ])
        assert result.message.tool_calls[0].id == "late"


class TestChunkingIdempotence:
    """Test that fragment boundaries never change the result."""

    ARGUMENTS = "{\"query\": \"black cats\", \"limit\": 10, \"tags\": [\"ü\", \"日本\"]}"
    TEXT = "Let me look that up for you."

    def events_for(self, size):
        events = [delta(role=Role.ASSISTANT)]
        events += [delta(TextDelta(text=piece)) for piece in split_text(self.TEXT, size)]
        events.append(delta(ToolCallDelta(index=0, id="call_1", name="search")))
        events += [delta(ToolCallDelta(index=0, arguments=piece)) for piece in split_text(self.ARGUMENTS, size)]
        events.append(EndEvent())
        return events

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 1000])
    def test_fragment_size_does_not_matter(self, size):
        """Test N fragments reassemble to the same message as one."""
        whole = reassemble(self.events_for(1000)).message
        assert reassemble(self.events_for(size)).message == whole
        assert whole.content[0] == TextPart(text=self.TEXT)


class TestOrdering:
    """Test out-of-order and duplicate-id detection."""

    def test_skipping_an_index_is_out_of_order(self):
        """Test index 1 before index 0 fails."""
        reassembler = DeltaReassembler("openai")
        with pytest.raises(OutOfOrderError) as exc_info:
            reassembler.apply(delta(ToolCallDelta(index=1, id="b", name="g"), role=Role.ASSISTANT))

        assert exc_info.value.kind == ReassemblyErrorKind.OUT_OF_ORDER
        assert exc_info.value.index == 1
        assert reassembler.state == ReassemblerState.FAILED

    def test_returning_to_closed_slot_is_out_of_order(self):
        """Test opening slot 1 closes slot 0."""
        reassembler = DeltaReassembler()
        reassembler.apply(delta(ToolCallDelta(index=0, id="a", name="f"), role=Role.ASSISTANT))
        reassembler.apply(delta(ToolCallDelta(index=1, id="b", name="g")))

        with pytest.raises(OutOfOrderError):
            reassembler.apply(delta(ToolCallDelta(index=0, arguments="{}")))

    def test_reused_id_is_duplicate(self):
        """Test two slots may not share an id."""
        reassembler = DeltaReassembler()
        reassembler.apply(delta(ToolCallDelta(index=0, id="same", name="f"), role=Role.ASSISTANT))

        with pytest.raises(DuplicateIdError) as exc_info:
            reassembler.apply(delta(ToolCallDelta(index=1, id="same", name="g")))
        assert exc_info.value.call_id == "same"

    def test_conflicting_id_on_same_slot_is_duplicate(self):
        """Test a slot's id cannot change once set."""
        reassembler = DeltaReassembler()
        reassembler.apply(delta(ToolCallDelta(index=0, id="a", name="f"), role=Role.ASSISTANT))

        with pytest.raises(DuplicateIdError):
            reassembler.apply(delta(ToolCallDelta(index=0, id="b")))

    def test_events_after_failure_are_discarded(self):
        """Test a failed reassembler records further events as violations."""
        reassembler = DeltaReassembler()
        with pytest.raises(OutOfOrderError):
            reassembler.apply(delta(ToolCallDelta(index=3), role=Role.ASSISTANT))

        assert reassembler.apply(EndEvent()) is None
        assert reassembler.violations


class TestMalformedArguments:
    """Test the non-fatal argument failure."""

    def test_bad_json_is_reported_per_slot(self):
        """Test other content survives a malformed slot."""
        result = reassemble([
            delta(TextDelta(text="Calling two tools"), role=Role.ASSISTANT),
            delta(ToolCallDelta(index=0, id="a", name="f", arguments="{\"x\": ")),
            delta(ToolCallDelta(index=1, id="b", name="g", arguments="{\"y\": 2}")),
            EndEvent(),
        ])

        assert not result.ok
        assert len(result.errors) == 1
        error = result.errors[0]
        assert isinstance(error, MalformedArgumentsError)
        assert error.call_id == "a"
        assert error.raw_arguments == "{\"x\": "
        assert result.message.tool_calls[0].args is None
        assert result.message.tool_calls[1].args == {"y": 2}
        assert result.message.text == "Calling two tools"


class TestLifecycle:
    """Test role, metadata and End handling."""

    def test_text_and_tool_interleaving_keeps_order(self):
        """Test text after a tool call opens a new text part."""
        result = reassemble([
            delta(TextDelta(text="before"), role=Role.ASSISTANT),
            delta(ToolCallDelta(index=0, id="a", name="f", arguments="{}")),
            delta(TextDelta(text="after")),
            EndEvent(),
        ])

        assert [part.type for part in result.message.content] == ["text", "tool_call", "text"]

    def test_text_blocks_stay_separate(self):
        """Test text deltas from different content blocks form separate parts."""
        result = reassemble([
            delta(TextDelta(text="One", block=0), role=Role.ASSISTANT),
            delta(TextDelta(text="Two", block=1)),
            delta(TextDelta(text=" more", block=1)),
            EndEvent(),
        ])

        assert result.message.content == [TextPart(text="One"), TextPart(text="Two more")]

    def test_missing_role_defaults_to_assistant(self):
        """Test a stream without a role still completes."""
        result = reassemble([delta(TextDelta(text="hi")), EndEvent()])
        assert result.message.role == Role.ASSISTANT

    def test_role_change_is_ignored(self):
        """Test the first role wins."""
        result = reassemble([
            delta(TextDelta(text="hi"), role=Role.ASSISTANT),
            delta(TextDelta(text="!"), role=Role.USER),
            EndEvent(),
        ])
        assert result.message.role == Role.ASSISTANT
        assert result.message.text == "hi!"

    def test_usage_finish_and_metadata_collected(self):
        """Test stream-level fields end up on the result."""
        result = reassemble([
            delta(TextDelta(text="ok"), role=Role.ASSISTANT, metadata={"id": "msg_1"},
                  usage=Usage(prompt_tokens=25, completion_tokens=1)),
            delta(finish_reason=FinishReason.STOP, raw_finish_reason="end_turn",
                  usage=Usage(completion_tokens=12)),
            EndEvent(),
        ])

        assert result.finish_reason == FinishReason.STOP
        assert result.raw_finish_reason == "end_turn"
        assert result.metadata == {"id": "msg_1"}
        assert result.usage.total_tokens == 37

    def test_empty_text_fragments_dropped(self):
        """Test empty text slots do not produce parts."""
        result = reassemble([
            delta(TextDelta(text=""), role=Role.ASSISTANT),
            delta(ToolCallDelta(index=0, id="a", name="f")),
            EndEvent(),
        ])
        assert [part.type for part in result.message.content] == ["tool_call"]

    def test_end_without_content_is_missing_data(self):
        """Test an empty stream cannot produce a message."""
        with pytest.raises(MissingData):
            reassemble([delta(role=Role.ASSISTANT), EndEvent()])

    def test_sequence_without_end(self):
        """Test reassemble() requires an End event."""
        with pytest.raises(MissingData):
            reassemble([delta(TextDelta(text="hi"), role=Role.ASSISTANT)])

    def test_events_after_end_are_violations(self):
        """Test deltas after End are reported and dropped."""
        reassembler = DeltaReassembler("anthropic")
        reassembler.apply(delta(TextDelta(text="done"), role=Role.ASSISTANT))
        result = reassembler.apply(EndEvent())

        assert reassembler.apply(delta(TextDelta(text="late"))) is None
        assert reassembler.state == ReassemblerState.ENDED
        assert len(reassembler.violations) == 1
        assert result.message.text == "done"
        assert reassembler.result is result
