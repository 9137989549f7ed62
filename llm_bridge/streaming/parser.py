"""
Event stream parser.

Turns the raw bytes of a streaming HTTP response into an ordered sequence of
RawRecords, one per provider chunk. Records are only emitted once all of
their bytes have arrived, so a multi-byte character split across two reads
is never decoded in halves. Turning a record into a provider chunk is left
to the owning converter (``ProviderConverter.decode_record``).
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Iterator, List, Optional, Tuple, Union

import httpx

from ..config.settings import get_settings
from ..errors import StreamError
from ..observability.logging import ProviderLogger
from .json_handler import JsonStreamHandler

ByteSource = Union[httpx.Response, AsyncIterable[bytes]]


class Framing(str, Enum):
    """How records are delimited on the wire."""
    SSE = "sse"                 # text/event-stream, records in data: lines
    NDJSON = "ndjson"           # one JSON value per line
    JSON_ARRAY = "json_array"   # one streamed top-level JSON array


@dataclass(frozen=True)
class RawRecord:
    """One framed record: the payload text plus SSE event metadata."""
    data: str
    event: Optional[str] = None
    id: Optional[str] = None


class _Framer:
    def __init__(self, provider: Optional[str], max_record_bytes: int):
        self.provider = provider
        self.max_record_bytes = max_record_bytes

    def feed(self, chunk: bytes) -> List[RawRecord]:
        raise NotImplementedError

    def close(self) -> List[RawRecord]:
        raise NotImplementedError

    def _too_large(self, size: int) -> None:
        if size > self.max_record_bytes:
            raise StreamError(
                f"record exceeds {self.max_record_bytes} bytes without a boundary",
                provider=self.provider,
            )

    def _decode(self, raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StreamError(
                "record is not valid UTF-8",
                provider=self.provider,
                fragment=raw[:80],
            ) from e


class _LineFramer(_Framer):
    """Splits on LF (CRLF tolerated) and hands complete lines to _handle_line."""

    def __init__(self, provider: Optional[str], max_record_bytes: int):
        super().__init__(provider, max_record_bytes)
        self._buf = b""

    def feed(self, chunk: bytes) -> List[RawRecord]:
        if b"\n" not in chunk:
            self._buf += chunk
            self._too_large(len(self._buf))
            return []

        lines = (self._buf + chunk).split(b"\n")
        self._buf = lines.pop()  # Keep trailing partial line
        self._too_large(len(self._buf))

        records: List[RawRecord] = []
        for line in lines:
            if line.endswith(b"\r"):
                line = line[:-1]
            records.extend(self._handle_line(self._decode(line)))
        return records

    def close(self) -> List[RawRecord]:
        records: List[RawRecord] = []
        if self._buf:
            line = self._buf.rstrip(b"\r")
            self._buf = b""
            records.extend(self._handle_line(self._decode(line)))
        records.extend(self._flush())
        return records

    def _handle_line(self, line: str) -> List[RawRecord]:
        raise NotImplementedError

    def _flush(self) -> List[RawRecord]:
        return []


class _SSEFramer(_LineFramer):
    """text/event-stream: data lines accumulate until a blank line dispatches them."""

    def __init__(self, provider: Optional[str], max_record_bytes: int):
        super().__init__(provider, max_record_bytes)
        self._data: List[str] = []
        self._size = 0
        self._event: Optional[str] = None
        self._id: Optional[str] = None

    def _handle_line(self, line: str) -> List[RawRecord]:
        if not line:
            return self._flush()
        if line.startswith(":"):
            return []

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data.append(value)
            self._size += len(value)
            self._too_large(self._size)
        elif name == "event":
            self._event = value
        elif name == "id":
            self._id = value
        return []

    def _flush(self) -> List[RawRecord]:
        if not self._data:
            self._event = None
            return []
        record = RawRecord(data="\n".join(self._data), event=self._event, id=self._id)
        self._data = []
        self._size = 0
        self._event = None
        return [record]


class _NDJSONFramer(_LineFramer):
    def _handle_line(self, line: str) -> List[RawRecord]:
        if not line.strip():
            return []
        return [RawRecord(data=line)]


class _JsonArrayFramer(_Framer):
    def __init__(self, provider: Optional[str], max_record_bytes: int):
        super().__init__(provider, max_record_bytes)
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._handler = JsonStreamHandler()

    def feed(self, chunk: bytes, final: bool = False) -> List[RawRecord]:
        try:
            text = self._decoder.decode(chunk, final=final)
        except UnicodeDecodeError as e:
            raise StreamError("stream is not valid UTF-8", provider=self.provider, fragment=chunk[:80]) from e
        try:
            completed = self._handler.process_chunk(text)
        except ValueError as e:
            raise StreamError(
                f"malformed JSON array stream: {e}",
                provider=self.provider,
                fragment=self._handler.buffer[:80],
            ) from e
        self._too_large(len(self._handler.buffer))
        return [RawRecord(data=item) for item in completed]

    def close(self) -> List[RawRecord]:
        records = self.feed(b"", final=True)
        if self._handler.pending:
            raise StreamError(
                "stream ended inside a JSON value",
                provider=self.provider,
                fragment=self._handler.buffer[:80],
            )
        return records


_FRAMERS = {
    Framing.SSE: _SSEFramer,
    Framing.NDJSON: _NDJSONFramer,
    Framing.JSON_ARRAY: _JsonArrayFramer,
}


class EventStreamParser:
    """
    Incremental record parser for one stream.

    ``feed``/``close`` are the synchronous core and can be driven by any
    transport. ``records`` wraps them around an async byte source, turning
    transport failures into StreamError and closing the source when the
    consumer stops iterating.

    Args:
        framing: Record framing used by the provider
        sentinel: Payload marking the end of the stream (e.g. "[DONE]");
            bytes after it are ignored
        provider: Provider name for error and log context
        strict_termination: Raise StreamError if the transport closes before
            the sentinel; defaults to the configured setting
        max_record_bytes: Upper bound on a single buffered record
    """

    def __init__(
        self,
        framing: Union[Framing, str] = Framing.SSE,
        sentinel: Optional[str] = None,
        provider: Optional[str] = None,
        strict_termination: Optional[bool] = None,
        max_record_bytes: Optional[int] = None,
    ):
        settings = get_settings()
        self.framing = Framing(framing)
        self.sentinel = sentinel
        self.provider = provider
        self.strict_termination = (
            settings.strict_stream_termination if strict_termination is None else strict_termination
        )
        self._framer = _FRAMERS[self.framing](provider, max_record_bytes or settings.max_record_bytes)
        self._logger = ProviderLogger(provider or "unknown")
        self.done = False
        self.closed = False

    def feed(self, chunk: bytes) -> List[RawRecord]:
        """Buffer ``chunk`` and return every record it completed."""
        if self.done or not chunk:
            return []
        return self._take(self._framer.feed(chunk))

    def close(self) -> List[RawRecord]:
        """Signal transport EOF and return any record still buffered."""
        if self.closed:
            return []
        self.closed = True
        if self.done:
            return []

        records = self._take(self._framer.close())
        if self.sentinel and not self.done:
            if self.strict_termination:
                raise StreamError(
                    f"stream closed before terminal sentinel {self.sentinel!r}",
                    provider=self.provider,
                )
            self._logger.warning("Stream closed before terminal sentinel", sentinel=self.sentinel)
        return records

    def _take(self, records: List[RawRecord]) -> List[RawRecord]:
        if not self.sentinel:
            return records
        for position, record in enumerate(records):
            if record.data.strip() == self.sentinel:
                self.done = True
                return records[:position]
        return records

    def iter_sync(self, chunks: Iterable[bytes]) -> Iterator[RawRecord]:
        """Parse a synchronous byte iterable (e.g. ``httpx.Response.iter_bytes()``)."""
        try:
            for chunk in chunks:
                yield from self.feed(chunk)
                if self.done:
                    break
            else:
                yield from self.close()
        except (httpx.TransportError, httpx.StreamError, OSError) as e:
            raise StreamError(f"transport failed mid-stream: {e}", provider=self.provider) from e

    async def records(self, source: ByteSource) -> AsyncIterator[RawRecord]:
        """
        Yield records from an async byte source.

        Args:
            source: An ``httpx.Response`` opened with ``stream=True`` or any
                async iterable of bytes

        Raises:
            StreamError: Transport failure, invalid framing or invalid UTF-8
        """
        chunks, release = _open_source(source)
        try:
            try:
                async for chunk in chunks:
                    for record in self.feed(chunk):
                        yield record
                    if self.done:
                        break
                else:
                    for record in self.close():
                        yield record
            except (httpx.TransportError, httpx.StreamError, OSError) as e:
                raise StreamError(f"transport failed mid-stream: {e}", provider=self.provider) from e
        finally:
            if release is not None:
                await release()


def _open_source(source: ByteSource) -> Tuple[AsyncIterator[bytes], Optional[Callable[[], Awaitable[Any]]]]:
    if isinstance(source, httpx.Response):
        chunks = source.aiter_bytes()

        async def release() -> None:
            try:
                await chunks.aclose()
            finally:
                await source.aclose()

        return chunks, release
    iterator = source.__aiter__()
    return iterator, getattr(iterator, "aclose", None)


async def iter_records(
    source: ByteSource,
    framing: Union[Framing, str] = Framing.SSE,
    sentinel: Optional[str] = None,
    provider: Optional[str] = None,
) -> AsyncIterator[RawRecord]:
    """Convenience wrapper: parse ``source`` with a fresh EventStreamParser."""
    parser = EventStreamParser(framing=framing, sentinel=sentinel, provider=provider)
    records = parser.records(source)
    try:
        async for record in records:
            yield record
    finally:
        await records.aclose()
