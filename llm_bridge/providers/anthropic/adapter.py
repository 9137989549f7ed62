from typing import Any, Dict, List, Optional, Sequence

from ...errors import MissingData
from ...models.content import Message
from ...models.generation import FinishReason, ProviderRequest, ProviderResponse, ToolSpec
from ...models.streaming import MessageStreamEvent
from ..base import ProviderConverter, StreamState, to_mapping
from .parsers import parse_request_messages, parse_response_message, parse_system
from .payloads import build_messages, system_field, tool_spec_to_anthropic
from .streaming import event_to_delta


class AnthropicConverter(ProviderConverter):
    """
    Anthropic Messages API.

    System text goes to the top-level ``system`` field. Tool results are
    native ``tool_result`` blocks whose content holds text and image blocks,
    so no string projection is needed.
    """

    name = "anthropic"
    finish_reasons = {
        "end_turn": FinishReason.STOP,
        "stop_sequence": FinishReason.STOP,
        "max_tokens": FinishReason.LENGTH,
        "tool_use": FinishReason.TOOL_CALLS,
        "refusal": FinishReason.CONTENT_FILTER,
        "pause_turn": FinishReason.OTHER,
    }

    def canonical_to_provider_request(
        self,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        system: Optional[str] = None,
        **options: Any
    ) -> ProviderRequest:
        context = self._context()
        system_texts, conversation = self._system_texts(messages, system, context)

        body: Dict[str, Any] = {}
        if system_texts:
            body["system"] = system_field(system_texts)
        body["messages"] = build_messages(conversation, context)
        if tools:
            body["tools"] = [tool_spec_to_anthropic(tool) for tool in tools]

        body.update(self._options(options, {"stop": "stop_sequences"}))
        if isinstance(body.get("stop_sequences"), str):
            body["stop_sequences"] = [body["stop_sequences"]]
        body.setdefault("max_tokens", self.settings.default_max_tokens)
        return ProviderRequest(provider=self.name, body=body, warnings=context.warnings)

    def provider_request_to_canonical(self, request: Any) -> List[Message]:
        body = to_mapping(request, self.name, "request")
        raw_messages = body.get("messages")
        if not isinstance(raw_messages, list):
            raise MissingData("request has no messages array", provider=self.name, field="messages")
        messages = parse_request_messages(raw_messages, self.name)
        system = parse_system(body.get("system"), self.name)
        return [system, *messages] if system is not None else messages

    def provider_response_to_canonical(self, response: Any) -> ProviderResponse:
        body = to_mapping(response, self.name, "response")
        self._raise_for_error(body)

        message = parse_response_message(body, self.name)
        raw_finish = body.get("stop_reason")
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
        event = to_mapping(chunk, self.name, "chunk")
        return event_to_delta(
            event,
            state if state is not None else self.new_stream_state(),
            self,
            self.logger,
        )
