"""
Structured logging utility for provider converters.

Every converter and stream pipeline logs through a ProviderLogger so that
lines carry the same leading fields (provider, request_id, ...) and can be
grepped or parsed without a dedicated log formatter.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Dict, Optional

if TYPE_CHECKING:
    from ..models.usage import Usage


class ProviderLogger:
    """Structured logger for provider converters."""

    def __init__(self, provider_name: str):
        """
        Initialize logger for a specific provider.

        Args:
            provider_name: Name of the provider (e.g., "openai", "gemini")
        """
        self.provider = provider_name
        self.logger = logging.getLogger(f"llm_bridge.providers.{provider_name}")

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with structured fields."""
        fields = [f"provider={self.provider}"]

        for key, value in kwargs.items():
            if value is not None:
                fields.append(f"{key}={value}")

        return f"[{' '.join(fields)}] {message}"

    def debug(self, message: str, request_id: Optional[str] = None, **kwargs):
        """Log debug message with structured fields."""
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self._format_message(message, request_id=request_id, **kwargs))

    def info(self, message: str, request_id: Optional[str] = None, **kwargs):
        """Log info message with structured fields."""
        self.logger.info(self._format_message(message, request_id=request_id, **kwargs))

    def warning(self, message: str, request_id: Optional[str] = None, **kwargs):
        """Log warning message with structured fields."""
        self.logger.warning(self._format_message(message, request_id=request_id, **kwargs))

    def error(self, message: str, request_id: Optional[str] = None,
              error: Optional[BaseException] = None, **kwargs):
        """Log error message with structured fields."""
        if error:
            kwargs['error_type'] = type(error).__name__
            kwargs['error_msg'] = str(error)

        self.logger.error(self._format_message(message, request_id=request_id, **kwargs))

    @contextmanager
    def track_stream(self, request_id: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """
        Context manager to time a stream and log how it ended.

        Args:
            request_id: Optional request ID (generated if not provided)

        Yields:
            Mutable dict of stream metadata; callers update ``records`` and
            ``events`` counters while consuming the stream.
        """
        if request_id is None:
            request_id = str(uuid.uuid4())[:8]

        start_time = time.time()
        self.debug("Starting stream", request_id=request_id)

        metadata = {
            'request_id': request_id,
            'start_time': start_time,
            'records': 0,
            'events': 0,
        }

        try:
            yield metadata

            duration = time.time() - start_time
            self.info(
                "Completed stream",
                request_id=request_id,
                records=metadata['records'],
                events=metadata['events'],
                duration_ms=int(duration * 1000)
            )

        except GeneratorExit:
            duration = time.time() - start_time
            self.debug(
                "Stream closed by consumer",
                request_id=request_id,
                records=metadata['records'],
                duration_ms=int(duration * 1000)
            )
            raise

        except Exception as e:
            duration = time.time() - start_time
            self.error(
                "Failed stream",
                request_id=request_id,
                records=metadata['records'],
                duration_ms=int(duration * 1000),
                error=e
            )
            raise

    def log_usage(self, usage: Optional["Usage"], request_id: Optional[str] = None):
        """Log normalized token usage; a response without usage logs nothing."""
        if usage is None:
            return
        self.info(
            "Token usage",
            request_id=request_id,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
            cache_read_tokens=usage.cache_read_tokens,
            cache_creation_tokens=usage.cache_creation_tokens,
        )
