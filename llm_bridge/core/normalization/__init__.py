"""Normalization helpers shared by all provider converters."""

from .usage import merge_usage, normalize_usage

__all__ = ["normalize_usage", "merge_usage"]
