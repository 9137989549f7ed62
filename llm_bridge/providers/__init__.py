"""
Provider Converters Layer

This layer contains all provider-specific mappings. Each converter translates
between the canonical Message/Part model and one provider's request,
response and stream chunk schemas.
"""

from typing import Dict, Optional, Type

from ..config.settings import BridgeSettings
from .anthropic import AnthropicConverter
from .base import ConversionContext, ProviderConverter, StreamState
from .bedrock import BedrockConverter
from .errors import ErrorMapper
from .gemini import GeminiConverter
from .groq import GroqConverter
from .mistral import MistralConverter
from .openai import OpenAICompatibleConverter, OpenAIConverter
from .openrouter import OpenRouterConverter

CONVERTERS: Dict[str, Type[ProviderConverter]] = {
    converter.name: converter
    for converter in (
        AnthropicConverter,
        GeminiConverter,
        OpenAIConverter,
        MistralConverter,
        GroqConverter,
        OpenRouterConverter,
        BedrockConverter,
    )
}


def get_converter(name: str, settings: Optional[BridgeSettings] = None) -> ProviderConverter:
    """
    Instantiate the converter registered under ``name``.

    Raises:
        ValueError: Unknown provider
    """
    try:
        converter_class = CONVERTERS[name]
    except KeyError:
        raise ValueError(f"Unknown provider '{name}'. Known providers: {', '.join(sorted(CONVERTERS))}") from None
    return converter_class(settings)


__all__ = [
    "AnthropicConverter",
    "BedrockConverter",
    "CONVERTERS",
    "ConversionContext",
    "ErrorMapper",
    "GeminiConverter",
    "GroqConverter",
    "MistralConverter",
    "OpenAICompatibleConverter",
    "OpenAIConverter",
    "OpenRouterConverter",
    "ProviderConverter",
    "StreamState",
    "get_converter",
]
