"""Streaming layer: byte framing, delta reassembly and the stream pipeline.

This layer handles:
- Splitting a raw byte stream into records (SSE, NDJSON, JSON array)
- Folding canonical delta events into a completed message
- Driving a provider converter over a live stream
"""

from .adapter import StreamAdapter
from .json_handler import JsonStreamHandler
from .parser import EventStreamParser, Framing, RawRecord, iter_records
from .reassembler import DeltaReassembler, ReassembledMessage, ReassemblerState, reassemble

__all__ = [
    "StreamAdapter",
    "JsonStreamHandler",
    "EventStreamParser",
    "Framing",
    "RawRecord",
    "iter_records",
    "DeltaReassembler",
    "ReassembledMessage",
    "ReassemblerState",
    "reassemble",
]
