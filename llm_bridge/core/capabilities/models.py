"""
Provider capability models for conversion decisions.

Defines what each provider's wire format can express so that converters ask
"can this target carry X?" instead of hardcoding provider names.
"""

from typing import Dict, Tuple
from pydantic import BaseModel, Field, ConfigDict


class ProviderCapabilities(BaseModel):
    """What a provider's request format can carry."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: str = Field(..., description="Provider identifier")

    # Content kinds
    supports_tools: bool = Field(True, description="Tool/function calling support")
    supports_image_inputs: bool = Field(True, description="Image parts in user turns")
    supports_blob_urls: bool = Field(True, description="Blobs given by URI rather than inline bytes")
    url_schemes: Tuple[str, ...] = Field(("http://", "https://", "data:"), description="URI prefixes accepted for blob URIs")
    blob_mime_types: Tuple[str, ...] = Field(("image/",), description="MIME types (or prefixes ending in '/') accepted for blob parts")
    supports_file_references: bool = Field(False, description="Provider file-store references")
    supports_code_execution: bool = Field(False, description="Executable code and code execution result parts")

    # Tool result layout
    tool_results_in_single_turn: bool = Field(False, description="Consecutive tool results share one message")
    tool_result_is_projected: bool = Field(True, description="Tool output is written as the canonical JSON projection, not native blocks")
    tool_result_supports_images: bool = Field(False, description="Tool output may contain image blocks")
    tool_message_has_name: bool = Field(False, description="Tool result messages carry the function name")

    # Streaming
    streaming_includes_usage: bool = Field(True, description="Usage data available in streaming")

    def accepts_blob_mime(self, mime_type: str) -> bool:
        for allowed in self.blob_mime_types:
            if allowed.endswith("/") and mime_type.startswith(allowed):
                return True
            if mime_type == allowed:
                return True
        return False


_OPENAI_COMPATIBLE = dict(
    tool_results_in_single_turn=False,
    tool_result_is_projected=True,
    tool_result_supports_images=False,
)

PROVIDER_CAPABILITIES: Dict[str, ProviderCapabilities] = {
    "openai": ProviderCapabilities(provider="openai", **_OPENAI_COMPATIBLE),
    "groq": ProviderCapabilities(provider="groq", **_OPENAI_COMPATIBLE),
    "openrouter": ProviderCapabilities(provider="openrouter", tool_message_has_name=True, **_OPENAI_COMPATIBLE),
    "mistral": ProviderCapabilities(
        provider="mistral",
        tool_message_has_name=True,
        **_OPENAI_COMPATIBLE,
    ),
    "anthropic": ProviderCapabilities(
        provider="anthropic",
        url_schemes=("http://", "https://"),
        blob_mime_types=("image/jpeg", "image/png", "image/gif", "image/webp", "application/pdf"),
        tool_results_in_single_turn=True,
        tool_result_is_projected=False,
        tool_result_supports_images=True,
    ),
    "gemini": ProviderCapabilities(
        provider="gemini",
        url_schemes=("http://", "https://", "gs://"),
        blob_mime_types=("image/", "audio/", "video/", "text/", "application/pdf"),
        supports_file_references=True,
        supports_code_execution=True,
        tool_results_in_single_turn=True,
        tool_result_is_projected=True,
    ),
    "bedrock": ProviderCapabilities(
        provider="bedrock",
        url_schemes=("s3://",),
        blob_mime_types=("image/png", "image/jpeg", "image/gif", "image/webp"),
        tool_results_in_single_turn=True,
        tool_result_is_projected=False,
        tool_result_supports_images=True,
    ),
}


def get_capabilities(provider: str) -> ProviderCapabilities:
    """Look up capabilities for a provider.

    Raises:
        KeyError: Unknown provider
    """
    try:
        return PROVIDER_CAPABILITIES[provider]
    except KeyError:
        raise KeyError(f"No capabilities registered for provider '{provider}'") from None
