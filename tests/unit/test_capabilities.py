"""Unit tests for capability checks and the explicit-failure policy."""

import pytest

from llm_bridge.core.capabilities import PROVIDER_CAPABILITIES, ensure_part_supported, get_capabilities
from llm_bridge.errors import UnsupportedConversion
from llm_bridge.models import (
    BlobPart,
    CodeExecutionResultPart,
    ExecutableCodePart,
    FilePart,
    Message,
    Role,
    TextPart,
    ToolResultPart,
)
from llm_bridge.providers import CONVERTERS, get_converter

NON_GEMINI = sorted(name for name in CONVERTERS if name != "gemini")

GEMINI_ONLY_PARTS = [
    FilePart(file_uri="https://generativelanguage.googleapis.com/v1beta/files/abc", mime_type="application/pdf"),
    ExecutableCodePart(language="PYTHON", code="print(1)"),
    CodeExecutionResultPart(outcome="OUTCOME_OK", output="1"),
]


class TestExplicitFailure:
    """Test content a target cannot carry is never dropped silently."""

    @pytest.mark.parametrize("provider", NON_GEMINI)
    @pytest.mark.parametrize("part", GEMINI_ONLY_PARTS, ids=lambda p: p.type)
    def test_unrepresentable_part_raises(self, provider, part):
        """Test file and code parts fail on every provider but Gemini."""
        role = Role.USER if isinstance(part, FilePart) else Role.ASSISTANT
        message = Message(role=role, content=[TextPart(text="before"), part])

        with pytest.raises(UnsupportedConversion) as exc_info:
            get_converter(provider).canonical_to_provider_request([message])

        error = exc_info.value
        assert error.provider == provider
        assert error.part_type == part.type
        assert error.field == "messages[0].content[1]"

    @pytest.mark.parametrize("provider", NON_GEMINI)
    def test_nested_file_part_raises(self, provider):
        """Test a file reference inside a tool result is caught too."""
        message = Message(role=Role.TOOL, content=[
            ToolResultPart(call_id="c1", name="f", content=[GEMINI_ONLY_PARTS[0]]),
        ])
        with pytest.raises(UnsupportedConversion):
            get_converter(provider).canonical_to_provider_request([message])

    @pytest.mark.parametrize("part", GEMINI_ONLY_PARTS, ids=lambda p: p.type)
    def test_gemini_accepts(self, part):
        """Test Gemini encodes all three."""
        role = Role.USER if isinstance(part, FilePart) else Role.ASSISTANT
        request = get_converter("gemini").canonical_to_provider_request([Message(role=role, content=[part])])
        assert len(request.body["contents"][0]["parts"]) == 1

    def test_error_message_names_context(self):
        """Test the error string includes provider and field."""
        with pytest.raises(UnsupportedConversion) as exc_info:
            get_converter("openai").canonical_to_provider_request([
                Message(role=Role.USER, content=[GEMINI_ONLY_PARTS[0]]),
            ])
        text = str(exc_info.value)
        assert "provider=openai" in text
        assert "field=messages[0].content[0]" in text


class TestCapabilityRegistry:
    """Test the capability table."""

    def test_every_provider_registered(self):
        """Test each converter has capabilities."""
        assert set(PROVIDER_CAPABILITIES) == set(CONVERTERS)

    def test_unknown_provider(self):
        """Test lookup failure."""
        with pytest.raises(KeyError):
            get_capabilities("nope")

    def test_blob_mime_prefixes(self):
        """Test prefix and exact MIME matching."""
        gemini = get_capabilities("gemini")
        anthropic = get_capabilities("anthropic")

        assert gemini.accepts_blob_mime("audio/mpeg")
        assert anthropic.accepts_blob_mime("application/pdf")
        assert not anthropic.accepts_blob_mime("image/tiff")

    def test_nested_image_on_projected_provider(self):
        """Test projected tool outputs carry nested images inside the JSON."""
        image = BlobPart.from_uri("gs://bucket/a.png", "image/png")
        ensure_part_supported(get_capabilities("openai"), image, "x", nested=True)

    def test_gs_uri_rejected_outside_gemini(self):
        """Test unsupported URI schemes."""
        image = BlobPart.from_uri("gs://bucket/a.png", "image/png")
        with pytest.raises(UnsupportedConversion):
            ensure_part_supported(get_capabilities("anthropic"), image, "x")
