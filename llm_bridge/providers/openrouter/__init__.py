from .adapter import OpenRouterConverter

__all__ = ["OpenRouterConverter"]
