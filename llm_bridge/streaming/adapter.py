"""
Stream pipeline: bytes -> records -> provider chunks -> canonical events.

One StreamAdapter call drives exactly one stream. Each call gets its own
EventStreamParser, StreamState and (for ``collect``) DeltaReassembler, so an
adapter can be reused sequentially or from independent tasks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, AsyncIterable, AsyncIterator, Iterable, Optional, Union

from ..errors import StreamError
from ..models.streaming import EndEvent, MessageStreamEvent
from .parser import ByteSource, EventStreamParser, Framing
from .reassembler import DeltaReassembler, ReassembledMessage

if TYPE_CHECKING:
    from ..providers.base import ProviderConverter

ChunkSource = Union[Iterable[Any], AsyncIterable[Any]]


class StreamAdapter:
    """Runs a provider converter over a streamed response.

    Args:
        converter: Converter for the provider that produced the stream
        framing: Overrides the converter's framing (e.g. Gemini without
            ``alt=sse`` streams a JSON array)
        strict_termination: Raise if the transport closes before the
            provider's terminal sentinel; defaults to the configured setting
    """

    def __init__(
        self,
        converter: "ProviderConverter",
        framing: Optional[Union[Framing, str]] = None,
        strict_termination: Optional[bool] = None,
    ):
        self.converter = converter
        self.framing = Framing(framing) if framing is not None else converter.framing
        self.strict_termination = strict_termination
        self.logger = converter.logger

    async def stream_events(
        self,
        source: ByteSource,
        request_id: Optional[str] = None
    ) -> AsyncIterator[MessageStreamEvent]:
        """
        Yield canonical events parsed from a raw byte stream.

        The last event is always End: either the converter's own (Anthropic
        ``message_stop``) or one emitted when the stream is exhausted.
        Closing this generator early closes the byte source.

        Raises:
            StreamError: Transport or framing failure
            ProviderError: The stream reported a provider-side error
        """
        if self.framing is None:
            raise StreamError(
                "converter has no byte framing; feed decoded events to stream_chunks()",
                provider=self.converter.name,
            )
        parser = EventStreamParser(
            framing=self.framing,
            sentinel=self.converter.terminal_sentinel,
            provider=self.converter.name,
            strict_termination=self.strict_termination,
        )
        state = self.converter.new_stream_state()

        with self.logger.track_stream(request_id) as stream_info:
            records = parser.records(source)
            try:
                async for record in records:
                    stream_info["records"] += 1
                    chunk = self.converter.decode_record(record)
                    event = self.converter.provider_chunk_to_delta(chunk, state)
                    if event is None:
                        continue
                    stream_info["events"] += 1
                    yield event
                    if isinstance(event, EndEvent):
                        state.ended = True
                        break
            finally:
                await records.aclose()
            if not state.ended:
                state.ended = True
                yield EndEvent()

    async def stream_chunks(
        self,
        chunks: ChunkSource,
        request_id: Optional[str] = None
    ) -> AsyncIterator[MessageStreamEvent]:
        """
        Yield canonical events from chunks that are already decoded.

        For SDK streams such as boto3's ``converse_stream()["stream"]`` or an
        ``openai`` / ``anthropic`` async stream of event objects. Accepts sync
        and async iterables.
        """
        state = self.converter.new_stream_state()
        with self.logger.track_stream(request_id) as stream_info:
            async for chunk in _iterate(chunks):
                stream_info["records"] += 1
                event = self.converter.provider_chunk_to_delta(chunk, state)
                if event is None:
                    continue
                stream_info["events"] += 1
                yield event
                if isinstance(event, EndEvent):
                    state.ended = True
                    break
            if not state.ended:
                state.ended = True
                yield EndEvent()

    async def collect(self, source: ByteSource, request_id: Optional[str] = None) -> ReassembledMessage:
        """Parse a byte stream to completion and reassemble the message."""
        return await self._reassemble(self.stream_events(source, request_id))

    async def collect_chunks(self, chunks: ChunkSource, request_id: Optional[str] = None) -> ReassembledMessage:
        """Reassemble a message from already-decoded chunks."""
        return await self._reassemble(self.stream_chunks(chunks, request_id))

    async def _reassemble(self, events: AsyncIterator[MessageStreamEvent]) -> ReassembledMessage:
        reassembler = DeltaReassembler(self.converter.name)
        try:
            async for event in events:
                reassembler.apply(event)
        finally:
            await events.aclose()
        result = reassembler.result
        if result is not None:
            self.logger.log_usage(result.usage)
        return result


async def _iterate(chunks: ChunkSource) -> AsyncIterator[Any]:
    if hasattr(chunks, "__aiter__"):
        async for chunk in chunks:
            yield chunk
    else:
        for chunk in chunks:
            yield chunk
