from typing import Any, Dict, List, Optional, Sequence

from ...errors import ProviderError
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
from .parsers import parse_candidate, parse_contents, parse_system_instruction
from .payloads import GENERATION_CONFIG_KEYS, build_contents, generation_config, tools_to_gemini
from .streaming import chunk_to_delta

# Selected by the endpoint (generateContent vs streamGenerateContent), not the body
_ENDPOINT_OPTIONS = ("stream",)


class GeminiConverter(ProviderConverter):
    """
    Google Gemini ``generateContent``.

    The only converter that can carry file references and code execution
    parts. Tool results are sent as ``functionResponse`` parts whose
    ``response`` object wraps the canonical content as ``{"content": [...]}``.
    """

    name = "gemini"
    finish_reasons = {
        "STOP": FinishReason.STOP,
        "MAX_TOKENS": FinishReason.LENGTH,
        "SAFETY": FinishReason.CONTENT_FILTER,
        "RECITATION": FinishReason.CONTENT_FILTER,
        "BLOCKLIST": FinishReason.CONTENT_FILTER,
        "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
        "SPII": FinishReason.CONTENT_FILTER,
        "IMAGE_SAFETY": FinishReason.CONTENT_FILTER,
        "MALFORMED_FUNCTION_CALL": FinishReason.OTHER,
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

        body: Dict[str, Any] = {"contents": build_contents(conversation, context)}
        if system_texts:
            body["systemInstruction"] = {"parts": [{"text": text} for text in system_texts]}
        if tools:
            body["tools"] = tools_to_gemini(tools)

        config = generation_config(options)
        if config:
            body["generationConfig"] = config

        for key, value in options.items():
            if value is None or key in GENERATION_CONFIG_KEYS:
                continue
            if key in _ENDPOINT_OPTIONS:
                context.warnings.append(ConversionWarning(
                    code="option_not_in_body",
                    path=key,
                    detail="streaming is selected by calling streamGenerateContent",
                ))
                continue
            body[key] = value
        return ProviderRequest(provider=self.name, body=body, warnings=context.warnings)

    def provider_request_to_canonical(self, request: Any) -> List[Message]:
        body = to_mapping(request, self.name, "request")
        messages = parse_contents(body.get("contents"), self.name)
        system = parse_system_instruction(body.get("systemInstruction"), self.name)
        return [system, *messages] if system is not None else messages

    def provider_response_to_canonical(self, response: Any) -> ProviderResponse:
        body = to_mapping(response, self.name, "response")
        self._raise_for_error(body)

        feedback = body.get("promptFeedback") or {}
        if not body.get("candidates") and feedback.get("blockReason"):
            raise ProviderError(
                f"prompt blocked: {feedback['blockReason']}",
                provider=self.name,
                body=body,
            )

        message, raw_finish = parse_candidate(body, self.name)
        finish_reason = self.map_finish_reason(raw_finish)
        if raw_finish == "STOP" and message.tool_calls:
            finish_reason = FinishReason.TOOL_CALLS

        usage = self.usage_to_canonical(body.get("usageMetadata"))
        self.logger.log_usage(usage)
        return ProviderResponse(
            provider=self.name,
            message=message,
            usage=usage,
            finish_reason=finish_reason,
            raw_finish_reason=raw_finish,
            model=body.get("modelVersion"),
            response_id=body.get("responseId"),
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
            self,
            self.logger,
        )
