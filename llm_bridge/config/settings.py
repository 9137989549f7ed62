"""
Runtime settings loaded from the environment.

A .env file in the working directory is honoured via python-dotenv, the same
way provider credentials are picked up by the transport layer.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    DEFAULT_MAX_RECORD_BYTES,
    DEFAULT_MAX_TOKENS,
    ENV_DEFAULT_MAX_TOKENS,
    ENV_LOG_RAW_FRAGMENTS,
    ENV_MAX_RECORD_BYTES,
    ENV_STRICT_STREAM_TERMINATION,
)

_TRUTHY = {"1", "true", "yes", "on"}


class BridgeSettings(BaseModel):
    """Tunable behaviour of converters and the streaming pipeline."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    default_max_tokens: int = Field(DEFAULT_MAX_TOKENS, gt=0, description="max_tokens sent when a provider requires it and the caller gave none")
    strict_stream_termination: bool = Field(False, description="Raise StreamError when a stream closes before its terminal sentinel")
    max_record_bytes: int = Field(DEFAULT_MAX_RECORD_BYTES, gt=0, description="Upper bound on a single buffered stream record")
    log_raw_fragments: bool = Field(False, description="Include raw payload fragments in log lines")

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        """Build settings from LLM_BRIDGE_* environment variables."""
        load_dotenv()
        values = {}
        max_tokens = os.getenv(ENV_DEFAULT_MAX_TOKENS)
        if max_tokens:
            values["default_max_tokens"] = int(max_tokens)
        strict = os.getenv(ENV_STRICT_STREAM_TERMINATION)
        if strict is not None:
            values["strict_stream_termination"] = strict.strip().lower() in _TRUTHY
        max_record = os.getenv(ENV_MAX_RECORD_BYTES)
        if max_record:
            values["max_record_bytes"] = int(max_record)
        raw = os.getenv(ENV_LOG_RAW_FRAGMENTS)
        if raw is not None:
            values["log_raw_fragments"] = raw.strip().lower() in _TRUTHY
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Return the process-wide settings, loading them on first use."""
    return BridgeSettings.from_env()


def reset_settings() -> None:
    """Drop cached settings so the next get_settings() call reloads them."""
    get_settings.cache_clear()
