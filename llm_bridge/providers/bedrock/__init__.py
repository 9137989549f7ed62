from .adapter import BedrockConverter

__all__ = ["BedrockConverter"]
