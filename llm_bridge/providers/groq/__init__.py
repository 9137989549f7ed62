from .adapter import GroqConverter

__all__ = ["GroqConverter"]
