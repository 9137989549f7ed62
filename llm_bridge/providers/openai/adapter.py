from typing import Any, Dict, List, Mapping, Optional, Sequence

from ...config.constants import DONE_SENTINEL
from ...errors import ContentConversion, MissingData
from ...models.content import Message
from ...models.generation import FinishReason, ProviderRequest, ProviderResponse, ToolSpec
from ...models.streaming import MessageStreamEvent
from ...models.usage import Usage
from ..base import ProviderConverter, StreamState, to_mapping
from .parsers import parse_assistant_message, parse_request_messages, response_extras
from .payloads import build_messages, tool_spec_to_openai
from .streaming import chunk_to_delta


class OpenAICompatibleConverter(ProviderConverter):
    """
    Chat Completions mapping shared by OpenAI and the providers that speak
    its dialect (Mistral, Groq, OpenRouter).

    Subclasses adjust the dialect through class attributes and the
    ``_chunk_usage`` / ``_response_ext`` hooks rather than re-implementing
    the mapping.
    """

    terminal_sentinel = DONE_SENTINEL
    finish_reasons = {
        "stop": FinishReason.STOP,
        "length": FinishReason.LENGTH,
        "tool_calls": FinishReason.TOOL_CALLS,
        "function_call": FinishReason.TOOL_CALLS,
        "content_filter": FinishReason.CONTENT_FILTER,
    }
    option_renames: Dict[str, str] = {}
    image_url_as_string = False
    omit_empty_parameters = False
    # Ask for a trailing usage chunk via stream_options
    request_stream_usage = True

    def canonical_to_provider_request(
        self,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        system: Optional[str] = None,
        **options: Any
    ) -> ProviderRequest:
        context = self._context()
        body: Dict[str, Any] = {
            "messages": build_messages(messages, system, context, self.image_url_as_string),
        }
        if tools:
            body["tools"] = [tool_spec_to_openai(tool, self.omit_empty_parameters) for tool in tools]
        body.update(self._options(options, self.option_renames))
        if body.get("stream") and self.request_stream_usage:
            body.setdefault("stream_options", {"include_usage": True})
        return ProviderRequest(provider=self.name, body=body, warnings=context.warnings)

    def provider_request_to_canonical(self, request: Any) -> List[Message]:
        body = to_mapping(request, self.name, "request")
        raw_messages = body.get("messages")
        if not isinstance(raw_messages, list):
            raise MissingData("request has no messages array", provider=self.name, field="messages")
        return parse_request_messages(raw_messages, self.name)

    def provider_response_to_canonical(self, response: Any) -> ProviderResponse:
        body = to_mapping(response, self.name, "response")
        self._raise_for_error(body)

        choices = body.get("choices")
        if not choices:
            raise MissingData("response has no choices", provider=self.name, field="choices")
        choice = choices[0]
        if not isinstance(choice, Mapping) or not isinstance(choice.get("message"), Mapping):
            raise ContentConversion("choice has no message object", provider=self.name, field="choices[0].message", fragment=choice)

        message = parse_assistant_message(choice["message"], self.name, "choices[0].message")
        ext = {**message.ext, **self._response_ext(body, choice)}
        if ext != message.ext:
            message = message.model_copy(update={"ext": ext})

        raw_finish = choice.get("finish_reason")
        usage = self.usage_to_canonical(body.get("usage"))
        self.logger.log_usage(usage)
        return ProviderResponse(
            provider=self.name,
            message=message,
            usage=usage,
            finish_reason=self.map_finish_reason(raw_finish),
            raw_finish_reason=raw_finish,
            model=body.get("model"),
            response_id=body.get("id"),
        )

    def provider_chunk_to_delta(
        self,
        chunk: Any,
        state: Optional[StreamState] = None
    ) -> Optional[MessageStreamEvent]:
        data = to_mapping(chunk, self.name, "chunk")
        self._raise_for_error(data)
        return chunk_to_delta(
            data,
            state if state is not None else self.new_stream_state(),
            self.map_finish_reason,
            self._chunk_usage(data),
        )

    def _chunk_usage(self, chunk: Mapping[str, Any]) -> Optional[Usage]:
        return self.usage_to_canonical(chunk.get("usage"))

    def _response_ext(self, body: Mapping[str, Any], choice: Mapping[str, Any]) -> Dict[str, Any]:
        """Fields with no canonical slot, kept on ``Message.ext``."""
        return response_extras(body)


class OpenAIConverter(OpenAICompatibleConverter):
    """OpenAI Chat Completions."""

    name = "openai"
