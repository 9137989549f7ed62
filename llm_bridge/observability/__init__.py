"""Observability helpers for llm-bridge."""

from .logging import ProviderLogger

__all__ = ["ProviderLogger"]
