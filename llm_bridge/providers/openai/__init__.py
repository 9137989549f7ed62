from .adapter import OpenAICompatibleConverter, OpenAIConverter

__all__ = ["OpenAICompatibleConverter", "OpenAIConverter"]
