"""Capability registry and policy layer.

This layer handles:
- Per-provider definitions of what a wire format can carry
- The explicit-failure policy for parts a target cannot express
"""

from .models import PROVIDER_CAPABILITIES, ProviderCapabilities, get_capabilities
from .policy import ensure_part_supported

__all__ = [
    "PROVIDER_CAPABILITIES",
    "ProviderCapabilities",
    "get_capabilities",
    "ensure_part_supported",
]
