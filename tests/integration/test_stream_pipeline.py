"""Integration tests for the byte stream -> canonical message pipeline."""

import asyncio
import json

import pytest

from llm_bridge.errors import StreamError
from llm_bridge.models import DeltaEvent, EndEvent, FinishReason, TextPart, ToolCallPart
from llm_bridge.providers import AnthropicConverter, GeminiConverter, OpenAIConverter
from llm_bridge.streaming import Framing, StreamAdapter
from tests.helpers.streaming_mocks import (
    TrackingByteStream,
    anthropic_tool_use_events,
    gemini_chunks,
    openai_chunk,
    openai_tool_call_chunks,
    split_every,
    sse_bytes,
)

SEARCH_CALL = ToolCallPart(id="call_1", name="search", args={"q": "cats"})


@pytest.mark.integration
class TestStreamPipeline:
    """Test StreamAdapter over realistic provider byte streams."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("read_size", [1, 7, 64, 100000])
    async def test_openai_sse(self, read_size):
        """Test an OpenAI tool-call stream gives the same message for any read size."""
        body = sse_bytes(openai_tool_call_chunks(), sentinel="[DONE]")
        source = TrackingByteStream(split_every(body, read_size))

        result = await StreamAdapter(OpenAIConverter()).collect(source)

        assert result.message.content == [SEARCH_CALL]
        assert result.finish_reason == FinishReason.TOOL_CALLS
        assert result.usage.total_tokens == 20
        assert source.closed

    @pytest.mark.asyncio
    async def test_anthropic_sse_with_event_names(self):
        """Test Anthropic streams end on message_stop."""
        body = sse_bytes(anthropic_tool_use_events(), with_event_names=True)
        adapter = StreamAdapter(AnthropicConverter())

        events = [event async for event in adapter.stream_events(TrackingByteStream(split_every(body, 13)))]

        assert isinstance(events[-1], EndEvent)
        assert sum(isinstance(event, EndEvent) for event in events) == 1

        result = await adapter.collect(TrackingByteStream([body]))
        assert result.message.content == [
            TextPart(text="Let me check."),
            ToolCallPart(id="toolu_1", name="search", args={"q": "cats"}),
        ]
        assert result.usage.total_tokens == 55

    @pytest.mark.asyncio
    async def test_gemini_json_array(self):
        """Test Gemini without alt=sse streams a JSON array."""
        body = json.dumps(gemini_chunks(), indent=2).encode("utf-8")
        adapter = StreamAdapter(GeminiConverter(), framing=Framing.JSON_ARRAY)

        result = await adapter.collect(TrackingByteStream(split_every(body, 5)))

        assert result.message.content == [
            TextPart(text="Checking now."),
            ToolCallPart(id="call_0_search", name="search", args={"q": "cats"}),
        ]
        assert result.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_consumer_stop_releases_source(self):
        """Test closing the event stream early closes the byte source."""
        source = TrackingByteStream([sse_bytes(openai_tool_call_chunks(), sentinel="[DONE]")])
        events = StreamAdapter(OpenAIConverter()).stream_events(source)

        first = await events.__anext__()
        await events.aclose()

        assert isinstance(first, DeltaEvent)
        assert source.closed

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        """Test a connection reset mid-stream surfaces as StreamError."""
        chunks = split_every(sse_bytes(openai_tool_call_chunks(), sentinel="[DONE]"), 40)
        source = TrackingByteStream(chunks, fail_after=2)

        with pytest.raises(StreamError):
            await StreamAdapter(OpenAIConverter()).collect(source)
        assert source.closed

    @pytest.mark.asyncio
    async def test_missing_sentinel(self):
        """Test EOF before [DONE] is tolerated unless termination is strict."""
        body = sse_bytes([openai_chunk({"role": "assistant", "content": "Hi"}, finish_reason="stop")])

        result = await StreamAdapter(OpenAIConverter()).collect(TrackingByteStream([body]))
        assert result.message.text == "Hi"

        with pytest.raises(StreamError):
            await StreamAdapter(OpenAIConverter(), strict_termination=True).collect(TrackingByteStream([body]))

    @pytest.mark.asyncio
    async def test_bytes_after_sentinel_ignored(self):
        """Test trailing garbage after [DONE] is never parsed."""
        body = sse_bytes([openai_chunk({"role": "assistant", "content": "Hi"})], sentinel="[DONE]") + b"data: {not json\n\n"

        result = await StreamAdapter(OpenAIConverter()).collect(TrackingByteStream([body]))
        assert result.message.text == "Hi"

    @pytest.mark.asyncio
    async def test_concurrent_streams_share_adapter(self):
        """Test one adapter drives independent streams at the same time."""
        adapter = StreamAdapter(OpenAIConverter())
        texts = ["first", "second", "third"]
        sources = [
            TrackingByteStream(split_every(sse_bytes([openai_chunk({"role": "assistant", "content": text})], sentinel="[DONE]"), 3))
            for text in texts
        ]

        results = await asyncio.gather(*(adapter.collect(source) for source in sources))

        assert [result.message.text for result in results] == texts
