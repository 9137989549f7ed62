"""
llm-bridge - Canonical conversation model and provider wire-format converters.

This package maps one provider-neutral Message/Part model to and from:
- Anthropic Messages
- Google Gemini
- OpenAI Chat Completions (and the compatible Mistral, Groq, OpenRouter APIs)
- Amazon Bedrock Converse

Features:
- Request, response and stream chunk conversion per provider
- Explicit UnsupportedConversion instead of silently dropped content
- Incremental stream parsing and delta reassembly
- Normalized token usage
"""

__version__ = "0.1.0"

from .errors import (
    BridgeError,
    ContentConversion,
    ConversionError,
    DuplicateIdError,
    MalformedArgumentsError,
    MissingData,
    OutOfOrderError,
    ProviderError,
    ReassemblyError,
    StreamError,
    UnsupportedConversion,
)
from .models import (
    BlobPart,
    CodeExecutionResultPart,
    ConversionWarning,
    DeltaEvent,
    EndEvent,
    ExecutableCodePart,
    FilePart,
    FinishReason,
    InlineData,
    Message,
    MessageDelta,
    OpaquePart,
    ProviderRequest,
    ProviderResponse,
    Role,
    TextDelta,
    TextPart,
    ToolCallDelta,
    ToolCallPart,
    ToolResultPart,
    ToolSpec,
    UriData,
    Usage,
)
from .providers import ProviderConverter, get_converter
from .streaming import DeltaReassembler, EventStreamParser, Framing, StreamAdapter, reassemble

__all__ = [
    # Converters
    "ProviderConverter",
    "get_converter",

    # Streaming
    "StreamAdapter",
    "EventStreamParser",
    "Framing",
    "DeltaReassembler",
    "reassemble",

    # Content model
    "Message",
    "Role",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "BlobPart",
    "InlineData",
    "UriData",
    "FilePart",
    "ExecutableCodePart",
    "CodeExecutionResultPart",
    "OpaquePart",
    "ToolSpec",
    "ConversionWarning",
    "ProviderRequest",
    "ProviderResponse",
    "FinishReason",
    "Usage",
    "DeltaEvent",
    "EndEvent",
    "MessageDelta",
    "TextDelta",
    "ToolCallDelta",

    # Errors
    "BridgeError",
    "ConversionError",
    "UnsupportedConversion",
    "MissingData",
    "ContentConversion",
    "ReassemblyError",
    "OutOfOrderError",
    "DuplicateIdError",
    "MalformedArgumentsError",
    "StreamError",
    "ProviderError",
]
