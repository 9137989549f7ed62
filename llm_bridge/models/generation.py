from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
from enum import Enum

from .content import Message
from .usage import Usage


class FinishReason(str, Enum):
    """Why the model stopped generating, normalized across providers."""
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"
    OTHER = "other"


class ToolSpec(BaseModel):
    """
    A function the model may call.

    ``parameters`` is a JSON Schema object describing the arguments; each
    converter wraps it in its provider's tool declaration shape.
    """
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Function name")
    description: Optional[str] = Field(None, description="What the function does")
    parameters: Optional[Dict[str, Any]] = Field(None, description="JSON Schema for the arguments")
    ext: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific tool fields")


class ConversionWarning(BaseModel):
    """Something a conversion had to leave behind without failing."""
    code: str = Field(..., description="Machine readable reason, e.g. 'ext_dropped'")
    path: str = Field(..., description="Location in the canonical input, e.g. 'messages[1].content[0]'")
    detail: Optional[str] = None


class ProviderRequest(BaseModel):
    """Provider-native request body produced from canonical messages."""
    provider: str
    body: Dict[str, Any]
    warnings: List[ConversionWarning] = Field(default_factory=list)


class ProviderResponse(BaseModel):
    """Canonical view of a complete provider response."""
    provider: str
    message: Message
    usage: Optional[Usage] = None
    finish_reason: Optional[FinishReason] = None
    raw_finish_reason: Optional[str] = None
    model: Optional[str] = None
    response_id: Optional[str] = None
