"""Canonical data model for llm-bridge."""

from .content import (
    BlobPart,
    CodeExecutionResultPart,
    DataRef,
    ExecutableCodePart,
    FilePart,
    InlineData,
    Message,
    OpaquePart,
    Part,
    PORTABLE_PART_TYPES,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    UriData,
)
from .generation import (
    ConversionWarning,
    FinishReason,
    ProviderRequest,
    ProviderResponse,
    ToolSpec,
)
from .streaming import (
    DeltaEvent,
    EndEvent,
    MessageDelta,
    MessageStreamEvent,
    PartDelta,
    TextDelta,
    ToolCallDelta,
)
from .usage import Usage

__all__ = [
    "BlobPart",
    "CodeExecutionResultPart",
    "DataRef",
    "ExecutableCodePart",
    "FilePart",
    "InlineData",
    "Message",
    "OpaquePart",
    "Part",
    "PORTABLE_PART_TYPES",
    "Role",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "UriData",
    "ConversionWarning",
    "FinishReason",
    "ProviderRequest",
    "ProviderResponse",
    "ToolSpec",
    "DeltaEvent",
    "EndEvent",
    "MessageDelta",
    "MessageStreamEvent",
    "PartDelta",
    "TextDelta",
    "ToolCallDelta",
    "Usage",
]
