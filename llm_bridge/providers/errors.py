"""
Error mapping utilities for provider converters.

This module provides consistent error mapping across all providers,
converting SDK exceptions, HTTP error responses and in-band error payloads
to standardized ProviderError instances.
"""

import json
from typing import Any, Dict, Optional

import anthropic
import httpx
import openai

from ..errors import ProviderError, StreamError


class ErrorMapper:
    """Maps provider-specific errors to standardized ProviderError."""

    @staticmethod
    def get_retry_after(error: Any) -> Optional[float]:
        """
        Extract retry-after value from error if available.

        Args:
            error: An exception with a ``response`` or an httpx.Response

        Returns:
            Optional[float]: Seconds to wait before retry, or None
        """
        response = error if isinstance(error, httpx.Response) else getattr(error, "response", None)
        headers = getattr(response, "headers", None)
        if headers is not None:
            for header in ("retry-after", "x-ratelimit-reset-after"):
                value = headers.get(header)
                if value:
                    try:
                        return float(value)
                    except ValueError:
                        pass

        return getattr(error, "retry_after", None)

    @staticmethod
    def _sdk_error(error: Exception, provider: str, label: str) -> ProviderError:
        status_code = getattr(error, "status_code", None)
        body = getattr(error, "body", None)
        message = getattr(error, "message", None) or str(error)

        if isinstance(error, (openai.APITimeoutError, anthropic.APITimeoutError)):
            status_code = status_code or 408

        provider_error = ProviderError(
            message=f"{label} API error: {message}",
            provider=provider,
            status_code=status_code,
            body=body,
            retry_after=ErrorMapper.get_retry_after(error),
        )
        if isinstance(error, (openai.APIConnectionError, anthropic.APIConnectionError)):
            # Connection failures never reached the provider
            provider_error.is_retryable = True
        provider_error.original_error = error
        return provider_error

    @staticmethod
    def map_openai_error(error: Exception, provider: str = "openai") -> ProviderError:
        """
        Map OpenAI SDK errors to ProviderError.

        The ``openai`` client is also used against Groq, Mistral and
        OpenRouter base URLs, so the provider name is a parameter.

        Args:
            error: The OpenAI exception
            provider: Provider the client was pointed at

        Returns:
            ProviderError with appropriate metadata
        """
        label = "OpenAI" if provider == "openai" else provider.capitalize()
        return ErrorMapper._sdk_error(error, provider, label)

    @staticmethod
    def map_anthropic_error(error: Exception) -> ProviderError:
        """
        Map Anthropic SDK errors to ProviderError.

        Args:
            error: The Anthropic exception

        Returns:
            ProviderError with appropriate metadata
        """
        provider_error = ErrorMapper._sdk_error(error, "anthropic", "Anthropic")
        if isinstance(error, anthropic.RateLimitError):
            provider_error.status_code = 429
            provider_error.is_retryable = True
        elif isinstance(error, anthropic.AuthenticationError):
            provider_error.status_code = 401
        return provider_error

    @staticmethod
    def from_http_response(response: httpx.Response, provider: str) -> ProviderError:
        """
        Build a ProviderError from a non-2xx HTTP response.

        The body is kept decoded when it is JSON and as text otherwise; the
        message prefers the provider's own error message.
        """
        try:
            body: Any = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = response.text

        message = f"HTTP {response.status_code}"
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                message = str(error["message"])
            elif isinstance(error, str):
                message = error
            elif body.get("message"):
                message = str(body["message"])

        return ProviderError(
            message=message,
            provider=provider,
            status_code=response.status_code,
            body=body,
            retry_after=ErrorMapper.get_retry_after(response),
        )

    @staticmethod
    def map_exception(error: Exception, provider: str) -> Exception:
        """
        Map any exception raised while talking to a provider.

        Already-mapped errors pass through; httpx transport failures become
        StreamError; SDK and HTTP status errors become ProviderError.
        """
        if isinstance(error, (ProviderError, StreamError)):
            return error
        if isinstance(error, anthropic.APIError):
            return ErrorMapper.map_anthropic_error(error)
        if isinstance(error, openai.APIError):
            return ErrorMapper.map_openai_error(error, provider)
        if isinstance(error, httpx.HTTPStatusError):
            provider_error = ErrorMapper.from_http_response(error.response, provider)
            provider_error.original_error = error
            return provider_error
        if isinstance(error, httpx.TransportError):
            stream_error = StreamError(f"transport failure: {error}", provider=provider)
            stream_error.__cause__ = error
            return stream_error

        provider_error = ProviderError(f"{type(error).__name__}: {error}", provider=provider)
        provider_error.original_error = error
        return provider_error

    @staticmethod
    def get_error_classification(error: ProviderError) -> Dict[str, Any]:
        """
        Get error details for logging.

        Args:
            error: The ProviderError to classify

        Returns:
            Dict with error classification details
        """
        return {
            "provider": error.provider,
            "status_code": error.status_code,
            "is_retryable": error.is_retryable,
            "retry_after": error.retry_after,
            "error_type": type(error.original_error).__name__ if error.original_error else None,
            "category": ErrorMapper._categorize_error(error),
        }

    @staticmethod
    def _categorize_error(error: ProviderError) -> str:
        if error.status_code:
            if error.status_code in (401, 403):
                return "authentication"
            if error.status_code == 429:
                return "rate_limit"
            if error.status_code >= 500:
                return "server_error"
            if error.status_code >= 400:
                return "client_error"
        if isinstance(error.original_error, (httpx.TimeoutException, openai.APITimeoutError, anthropic.APITimeoutError)):
            return "timeout"
        if isinstance(error.original_error, (httpx.TransportError, openai.APIConnectionError, anthropic.APIConnectionError)):
            return "network"
        return "unknown"
