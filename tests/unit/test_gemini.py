"""Unit tests for the Gemini generateContent converter."""

import pytest

from llm_bridge.errors import MissingData, ProviderError
from llm_bridge.models import (
    BlobPart,
    CodeExecutionResultPart,
    EndEvent,
    ExecutableCodePart,
    FilePart,
    FinishReason,
    Message,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from llm_bridge.providers import GeminiConverter, StreamState
from llm_bridge.streaming import reassemble
from tests.helpers.streaming_mocks import gemini_chunks

FILE_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc123"


@pytest.fixture
def converter():
    return GeminiConverter()


class TestRequestMapping:
    """Test canonical -> generateContent request bodies."""

    def test_round_trip(self, converter, tool_conversation, search_tool):
        """Test parsing a built request gives back the same messages."""
        request = converter.canonical_to_provider_request(tool_conversation, tools=[search_tool])
        body = request.body

        assert converter.provider_request_to_canonical(body) == tool_conversation
        assert body["systemInstruction"] == {"parts": [{"text": "You are terse."}]}
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user", "model"]
        assert body["tools"][0]["functionDeclarations"][0]["name"] == "search"

    def test_gemini_only_parts_round_trip(self, converter):
        """Test file references and code execution parts survive."""
        messages = [
            Message(role=Role.USER, content=[
                TextPart(text="Summarize"),
                FilePart(file_uri=FILE_URI, mime_type="application/pdf", display_name="report.pdf"),
                BlobPart.from_uri("gs://bucket/clip.mp4", "video/mp4"),
            ]),
            Message.assistant(
                ExecutableCodePart(language="PYTHON", code="print(1 + 1)"),
                CodeExecutionResultPart(outcome="OUTCOME_OK", output="2\n"),
                "The answer is 2.",
            ),
        ]
        body = converter.canonical_to_provider_request(messages).body

        assert converter.provider_request_to_canonical(body) == messages

    def test_function_response_wraps_content(self, converter):
        """Test tool output sits under response.content."""
        message = Message(role=Role.TOOL, content=[
            ToolResultPart(call_id="c1", name="lookup", content=[TextPart(text="{\"v\":1}")]),
        ])
        part = converter.canonical_to_provider_request([message]).body["contents"][0]["parts"][0]

        assert part["functionResponse"] == {
            "id": "c1",
            "name": "lookup",
            "response": {"content": [{"type": "text", "text": "{\"v\":1}", "ext": {}}]},
        }

    def test_result_name_taken_from_call(self, converter):
        """Test a nameless result borrows the name of the call it answers."""
        messages = [
            Message.assistant(ToolCallPart(id="c1", name="lookup")),
            Message(role=Role.TOOL, content=[ToolResultPart(call_id="c1", content=[TextPart(text="x")])]),
        ]
        body = converter.canonical_to_provider_request(messages).body
        assert body["contents"][1]["parts"][0]["functionResponse"]["name"] == "lookup"

    def test_nameless_result_without_call(self, converter):
        """Test a result with no name to recover fails."""
        message = Message(role=Role.TOOL, content=[ToolResultPart(call_id="c9", content=[TextPart(text="x")])])
        with pytest.raises(MissingData):
            converter.canonical_to_provider_request([message])

    def test_generation_config(self, converter):
        """Test sampling options move into generationConfig."""
        request = converter.canonical_to_provider_request(
            [Message.user("hi")], max_tokens=256, temperature=0.1, top_p=0.9, stop="END", stream=True,
        )

        assert request.body["generationConfig"] == {
            "maxOutputTokens": 256, "temperature": 0.1, "topP": 0.9, "stopSequences": ["END"],
        }
        assert "stream" not in request.body
        assert [w.code for w in request.warnings] == ["option_not_in_body"]

    def test_thought_signature_carried(self, converter):
        """Test Gemini part ext keys ride along on the part."""
        message = Message.assistant(TextPart(text="hi", ext={"thoughtSignature": "sig"}))
        part = converter.canonical_to_provider_request([message]).body["contents"][0]["parts"][0]
        assert part == {"text": "hi", "thoughtSignature": "sig"}


class TestRequestParsing:
    """Test generateContent request bodies -> canonical."""

    def test_ids_synthesized_and_matched(self, converter):
        """Test id-less calls get ids and id-less responses match them."""
        messages = converter.provider_request_to_canonical({"contents": [
            {"role": "model", "parts": [
                {"functionCall": {"name": "lookup", "args": {"k": 1}}},
                {"functionCall": {"name": "lookup", "args": {"k": 2}}},
            ]},
            {"role": "user", "parts": [
                {"functionResponse": {"name": "lookup", "response": {"value": 1}}},
                {"functionResponse": {"name": "lookup", "response": {"value": 2}}},
            ]},
        ]})

        calls = messages[0].tool_calls
        results = messages[1].tool_results
        assert [c.id for c in calls] == ["call_0_lookup", "call_1_lookup"]
        assert [r.call_id for r in results] == ["call_0_lookup", "call_1_lookup"]
        assert results[0].content == [TextPart(text="{\"value\": 1}")]
        assert messages[1].role == Role.TOOL

    def test_unanswerable_response(self, converter):
        """Test an id-less response with no earlier call fails."""
        with pytest.raises(MissingData):
            converter.provider_request_to_canonical({"contents": [
                {"role": "user", "parts": [{"functionResponse": {"name": "lookup", "response": {}}}]},
            ]})

    def test_file_data_without_marker_is_blob(self, converter):
        """Test plain URIs in fileData are blobs."""
        messages = converter.provider_request_to_canonical({"contents": [
            {"role": "user", "parts": [{"fileData": {"mimeType": "image/png", "fileUri": "gs://b/o.png"}}]},
        ]})
        assert isinstance(messages[0].content[0], BlobPart)


class TestResponseMapping:
    """Test GenerateContentResponse -> canonical."""

    def test_function_call_response(self, converter):
        """Test STOP with a function call reports TOOL_CALLS."""
        response = converter.provider_response_to_canonical({
            "candidates": [{
                "content": {"role": "model", "parts": [
                    {"text": "Checking."},
                    {"functionCall": {"name": "search", "args": {"q": "cats"}}},
                ]},
                "finishReason": "STOP",
                "safetyRatings": [],
                "index": 0,
            }],
            "usageMetadata": {"promptTokenCount": 9, "candidatesTokenCount": 6, "totalTokenCount": 15},
            "modelVersion": "gemini-2.5-flash",
            "responseId": "resp-1",
        })

        assert response.message.content[1] == ToolCallPart(id="call_0_search", name="search", args={"q": "cats"})
        assert response.finish_reason == FinishReason.TOOL_CALLS
        assert response.raw_finish_reason == "STOP"
        assert response.usage.total_tokens == 15
        assert response.model == "gemini-2.5-flash"
        assert response.message.ext == {"safetyRatings": []}

    def test_safety_finish(self, converter):
        """Test safety stops map to CONTENT_FILTER."""
        response = converter.provider_response_to_canonical({
            "candidates": [{"content": {"role": "model", "parts": [{"text": ""}, {"text": "partial"}]}, "finishReason": "SAFETY"}],
        })
        assert response.finish_reason == FinishReason.CONTENT_FILTER

    def test_blocked_prompt(self, converter):
        """Test a blocked prompt is a provider error."""
        with pytest.raises(ProviderError):
            converter.provider_response_to_canonical({"promptFeedback": {"blockReason": "SAFETY"}})

    def test_no_candidates(self, converter):
        """Test an empty response."""
        with pytest.raises(MissingData):
            converter.provider_response_to_canonical({"candidates": []})

    def test_error_body(self, converter):
        """Test an error body carries its status code."""
        with pytest.raises(ProviderError) as exc_info:
            converter.provider_response_to_canonical({"error": {"code": 429, "message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED"}})
        assert exc_info.value.status_code == 429


class TestStreaming:
    """Test streamed GenerateContentResponse chunks."""

    def test_stream(self, converter):
        """Test text and a whole function call reassemble."""
        state = StreamState()
        events = [converter.provider_chunk_to_delta(c, state) for c in gemini_chunks()]
        result = reassemble([e for e in events if e is not None] + [EndEvent()], "gemini")

        assert result.message.content == [
            TextPart(text="Checking now."),
            ToolCallPart(id="call_0_search", name="search", args={"q": "cats"}),
        ]
        assert result.finish_reason == FinishReason.TOOL_CALLS
        assert result.usage.total_tokens == 15
        assert result.metadata == {"id": "resp-1", "model": "gemini-2.5-flash"}

    def test_role_sent_once(self, converter):
        """Test only the first chunk carries the role."""
        state = StreamState()
        first, second = [converter.provider_chunk_to_delta(c, state) for c in gemini_chunks()[:2]]

        assert first.delta.role == Role.ASSISTANT
        assert second.delta.role is None

    def test_thought_parts_skipped(self, converter):
        """Test thinking summaries do not enter the message."""
        event = converter.provider_chunk_to_delta({"candidates": [{"content": {"role": "model", "parts": [
            {"text": "pondering", "thought": True},
            {"text": "Answer"},
        ]}}]}, StreamState())

        assert [d.text for d in event.delta.content] == ["Answer"]
