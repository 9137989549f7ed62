"""Unit tests for ProviderLogger and the log lines converters emit."""

import logging
from unittest.mock import patch

import pytest

from llm_bridge.models import Message, Role, TextPart, Usage
from llm_bridge.observability.logging import ProviderLogger
from llm_bridge.providers import OpenAIConverter
from llm_bridge.streaming import StreamAdapter
from tests.helpers.streaming_mocks import TrackingByteStream, openai_tool_call_chunks, sse_bytes


class TestProviderLogger:
    """Test structured log formatting."""

    def test_format(self, caplog):
        """Test provider and fields lead the message; None fields are skipped."""
        logger = ProviderLogger("gemini")
        with caplog.at_level(logging.INFO, logger="llm_bridge.providers.gemini"):
            logger.info("Token usage", request_id="abc", total_tokens=15, cache_read_tokens=None)

        assert caplog.records[0].getMessage() == "[provider=gemini request_id=abc total_tokens=15] Token usage"

    def test_error_fields(self, caplog):
        """Test exceptions are flattened into fields."""
        logger = ProviderLogger("openai")
        with caplog.at_level(logging.ERROR, logger="llm_bridge.providers.openai"):
            logger.error("Failed stream", error=ValueError("bad"))

        message = caplog.records[0].getMessage()
        assert "error_type=ValueError" in message
        assert "error_msg=bad" in message

    def test_usage_none_logs_nothing(self):
        """Test log_usage ignores missing usage."""
        logger = ProviderLogger("openai")
        with patch.object(logger, "info") as mock_info:
            logger.log_usage(None)
            logger.log_usage(Usage(prompt_tokens=1, completion_tokens=2))

        assert mock_info.call_count == 1
        assert mock_info.call_args.kwargs["total_tokens"] == 3


class TestConverterLogging:
    """Test log lines produced while converting."""

    def test_dropped_ext_warns(self, caplog):
        """Test ext keys with no wire slot are logged and returned as warnings."""
        message = Message(role=Role.USER, content=[TextPart(text="hi", ext={"cache_control": {"type": "ephemeral"}})])
        with caplog.at_level(logging.WARNING, logger="llm_bridge.providers.openai"):
            request = OpenAIConverter().canonical_to_provider_request([message])

        assert request.warnings[0].code == "ext_dropped"
        assert "keys=cache_control" in caplog.text

    @pytest.mark.asyncio
    async def test_stream_usage_logged(self):
        """Test collect logs the reassembled usage once."""
        adapter = StreamAdapter(OpenAIConverter())
        with patch.object(adapter.logger, "log_usage") as mock_log_usage:
            await adapter.collect(TrackingByteStream([sse_bytes(openai_tool_call_chunks(), sentinel="[DONE]")]))

        mock_log_usage.assert_called_once()
        assert mock_log_usage.call_args.args[0].total_tokens == 20
