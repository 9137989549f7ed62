"""Streaming delta types.

Deltas are created by a provider converter from one stream chunk, consumed
once by the DeltaReassembler and then discarded; they are never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .content import Role
from .generation import FinishReason
from .usage import Usage


@dataclass(frozen=True)
class TextDelta:
    """Fragment of text for the part currently being streamed.

    Attributes:
        text: The fragment
        block: Provider content block the fragment belongs to; a change of
            block starts a new text part. None for providers without blocks.
    """
    text: str
    block: Optional[int] = None


@dataclass(frozen=True)
class ToolCallDelta:
    """Fragment of a tool call.

    Attributes:
        index: Dense position in the tool-call list under construction
        id: Call id, normally only on the first fragment of a slot
        name: Function name, normally only on the first fragment of a slot
        arguments: Raw JSON text fragment, concatenated across deltas
    """
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None


PartDelta = Union[TextDelta, ToolCallDelta]


@dataclass
class MessageDelta:
    """Incremental update to the message under construction."""
    role: Optional[Role] = None
    content: List[PartDelta] = field(default_factory=list)
    finish_reason: Optional[FinishReason] = None
    raw_finish_reason: Optional[str] = None
    usage: Optional[Usage] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeltaEvent:
    """Stream event carrying a MessageDelta."""
    delta: MessageDelta
    type: str = field(default="delta", init=False)


@dataclass
class EndEvent:
    """Stream event marking the end of the message."""
    type: str = field(default="end", init=False)


MessageStreamEvent = Union[DeltaEvent, EndEvent]
