from .adapter import MistralConverter

__all__ = ["MistralConverter"]
