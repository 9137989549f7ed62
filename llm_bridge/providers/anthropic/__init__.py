from .adapter import AnthropicConverter

__all__ = ["AnthropicConverter"]
