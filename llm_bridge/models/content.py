"""
Canonical conversation content model.

Messages and parts here are provider-agnostic. Each part variant serializes
to a tagged object whose ``type`` field selects the variant; that tagged form
is the intermediate shape every converter reads and writes, and the only
format exposed to callers that do not care which provider is in use.
"""

import base64
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class _PartBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    ext: Dict[str, Any] = Field(
        default_factory=dict,
        description="Pass-through metadata; carried by converters, never interpreted",
    )


class InlineData(BaseModel):
    """Bytes carried inside the message, base64 encoded."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["base64"] = "base64"
    data: str

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class UriData(BaseModel):
    """Opaque external reference (https://, gs://, s3://, data:...)."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["uri"] = "uri"
    uri: str


DataRef = Annotated[Union[InlineData, UriData], Field(discriminator="kind")]


class TextPart(_PartBase):
    """Plain text. Empty strings are allowed (delimiter-only stream fragments)."""
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(_PartBase):
    """A model-issued invocation request."""
    type: Literal["tool_call"] = "tool_call"
    id: str = Field(..., min_length=1, description="Caller-supplied token, unique within the message")
    name: str
    args: Any = Field(default_factory=dict, description="Decoded JSON arguments")


class ToolResultPart(_PartBase):
    """Output of a tool execution, correlated to a ToolCallPart by call_id."""
    type: Literal["tool_result"] = "tool_result"
    call_id: str = Field(..., min_length=1)
    name: str = ""
    content: List["Part"] = Field(default_factory=list)


class BlobPart(_PartBase):
    """Image or other binary payload."""
    type: Literal["blob"] = "blob"
    mime_type: str
    data_ref: DataRef

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str, **kwargs) -> "BlobPart":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(mime_type=mime_type, data_ref=InlineData(data=encoded), **kwargs)

    @classmethod
    def from_uri(cls, uri: str, mime_type: str, **kwargs) -> "BlobPart":
        return cls(mime_type=mime_type, data_ref=UriData(uri=uri), **kwargs)


class FilePart(_PartBase):
    """Reference to a file uploaded to a provider's file store."""
    type: Literal["file"] = "file"
    file_uri: str
    mime_type: str
    display_name: Optional[str] = None


class ExecutableCodePart(_PartBase):
    """Code the model generated for a provider-side sandbox to run."""
    type: Literal["executable_code"] = "executable_code"
    language: str
    code: str


class CodeExecutionResultPart(_PartBase):
    """Outcome of provider-side code execution."""
    type: Literal["code_execution_result"] = "code_execution_result"
    outcome: str
    output: Optional[str] = None


class OpaquePart(_PartBase):
    """
    Provider content block this model has no variant for.

    Kept verbatim so that ingestion never fails on new block types. It can
    only be emitted back to the provider that produced it.
    """
    type: Literal["opaque"] = "opaque"
    provider: str
    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)


Part = Annotated[
    Union[
        TextPart,
        ToolCallPart,
        ToolResultPart,
        BlobPart,
        FilePart,
        ExecutableCodePart,
        CodeExecutionResultPart,
        OpaquePart,
    ],
    Field(discriminator="type"),
]

ToolResultPart.model_rebuild()

# Variants every converter must be able to encode
PORTABLE_PART_TYPES = frozenset({"text", "tool_call", "tool_result", "blob"})


class Message(BaseModel):
    """
    One conversation turn.

    ``content`` is never empty and never consists solely of empty text;
    half-built messages only exist inside the stream reassembler.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Role
    content: List[Part]
    timestamp: Optional[datetime] = None
    ext: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def _check_content(cls, content: List[Any]) -> List[Any]:
        if not content:
            raise ValueError("message content must not be empty")
        if all(isinstance(part, TextPart) and not part.text for part in content):
            raise ValueError("message content must not consist solely of empty text")
        return content

    @classmethod
    def user(cls, text: str, **kwargs) -> "Message":
        return cls(role=Role.USER, content=[TextPart(text=text)], **kwargs)

    @classmethod
    def system(cls, text: str, **kwargs) -> "Message":
        return cls(role=Role.SYSTEM, content=[TextPart(text=text)], **kwargs)

    @classmethod
    def assistant(cls, *parts: Union[str, Any], **kwargs) -> "Message":
        content = [TextPart(text=p) if isinstance(p, str) else p for p in parts]
        return cls(role=Role.ASSISTANT, content=content, **kwargs)

    @property
    def text(self) -> str:
        """Concatenated text of all TextParts."""
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> List[ToolCallPart]:
        return [p for p in self.content if isinstance(p, ToolCallPart)]

    @property
    def tool_results(self) -> List[ToolResultPart]:
        return [p for p in self.content if isinstance(p, ToolResultPart)]
