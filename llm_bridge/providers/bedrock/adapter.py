from typing import Any, Dict, List, Optional, Sequence

from ...errors import MissingData
from ...models.content import Message
from ...models.generation import (
    ConversionWarning,
    FinishReason,
    ProviderRequest,
    ProviderResponse,
    ToolSpec,
)
from ...models.streaming import MessageStreamEvent
from ..base import ProviderConverter, StreamState, to_mapping
from .parsers import parse_output_message, parse_request_messages, parse_system
from .payloads import INFERENCE_CONFIG_KEYS, build_messages, inference_config, tool_config
from .streaming import event_to_delta


class BedrockConverter(ProviderConverter):
    """
    Amazon Bedrock Converse / ConverseStream.

    Request bodies are the keyword arguments of boto3's ``converse()``;
    inline image bytes are left as ``bytes`` for boto3 to encode. Streams
    are consumed as the already-decoded event dicts boto3 yields, so this
    converter has no byte framing.
    """

    name = "bedrock"
    framing = None
    finish_reasons = {
        "end_turn": FinishReason.STOP,
        "stop_sequence": FinishReason.STOP,
        "max_tokens": FinishReason.LENGTH,
        "tool_use": FinishReason.TOOL_CALLS,
        "content_filtered": FinishReason.CONTENT_FILTER,
        "guardrail_intervened": FinishReason.CONTENT_FILTER,
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
        if options.get("model") is not None:
            body["modelId"] = options["model"]
        body["messages"] = build_messages(conversation, context)
        if system_texts:
            body["system"] = [{"text": text} for text in system_texts]
        if tools:
            body["toolConfig"] = tool_config(tools)
        config = inference_config(options)
        if config:
            body["inferenceConfig"] = config

        for key, value in options.items():
            if value is None or key == "model" or key in INFERENCE_CONFIG_KEYS:
                continue
            if key == "stream":
                context.warnings.append(ConversionWarning(
                    code="option_not_in_body",
                    path=key,
                    detail="streaming is selected by calling converse_stream",
                ))
                continue
            body[key] = value
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
        message = parse_output_message(body, self.name)
        raw_finish = body.get("stopReason")
        usage = self.usage_to_canonical(body.get("usage"))
        self.logger.log_usage(usage)
        metadata = body.get("ResponseMetadata") or {}
        return ProviderResponse(
            provider=self.name,
            message=message,
            usage=usage,
            finish_reason=self.map_finish_reason(raw_finish),
            raw_finish_reason=raw_finish,
            response_id=metadata.get("RequestId"),
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
