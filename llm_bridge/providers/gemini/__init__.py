from .adapter import GeminiConverter

__all__ = ["GeminiConverter"]
