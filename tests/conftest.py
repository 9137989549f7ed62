"""Shared pytest fixtures for llm-bridge tests."""

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file for tests
load_dotenv()

from llm_bridge.config.settings import reset_settings
from llm_bridge.models import (
    BlobPart,
    Message,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    ToolSpec,
)
from llm_bridge.providers import get_converter
from tests.helpers.samples import PNG_BASE64

ALL_PROVIDERS = ["anthropic", "gemini", "openai", "mistral", "groq", "openrouter", "bedrock"]
OPENAI_FAMILY = ["openai", "mistral", "groq", "openrouter"]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Give every test default settings regardless of the developer's .env."""
    for name in (
        "LLM_BRIDGE_DEFAULT_MAX_TOKENS",
        "LLM_BRIDGE_STRICT_STREAM_TERMINATION",
        "LLM_BRIDGE_MAX_RECORD_BYTES",
        "LLM_BRIDGE_LOG_RAW_FRAGMENTS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(params=ALL_PROVIDERS)
def any_converter(request):
    """Every registered converter in turn."""
    return get_converter(request.param)


@pytest.fixture(params=OPENAI_FAMILY)
def openai_family_converter(request):
    """Converters that speak the Chat Completions dialect."""
    return get_converter(request.param)


@pytest.fixture
def search_tool():
    """A single-argument function declaration."""
    return ToolSpec(
        name="search",
        description="Search the web",
        parameters={
            "type": "object",
            "properties": {"q": {"type": "string"}},
            "required": ["q"],
        },
    )


@pytest.fixture
def tool_conversation():
    """A full tool round: question, call, result, answer."""
    return [
        Message.system("You are terse."),
        Message.user("Find me cats"),
        Message.assistant(
            "Searching.",
            ToolCallPart(id="call_1", name="search", args={"q": "cats"}),
        ),
        Message(role=Role.TOOL, content=[
            ToolResultPart(call_id="call_1", name="search", content=[TextPart(text="4 results")]),
        ]),
        Message.assistant("Found 4 results."),
    ]


@pytest.fixture
def image_message():
    """A user turn with text and an inline PNG."""
    return Message(role=Role.USER, content=[
        TextPart(text="What is in this picture?"),
        BlobPart(mime_type="image/png", data_ref={"kind": "base64", "data": PNG_BASE64}),
    ])
