"""Configuration module for llm-bridge."""

from .settings import BridgeSettings, get_settings, reset_settings

# Import all constants
from .constants import *

__all__ = [
    "BridgeSettings",
    "get_settings",
    "reset_settings",
]
