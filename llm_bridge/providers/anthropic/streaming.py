from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from ...errors import ProviderError
from ...models.content import Role
from ...models.streaming import (
    DeltaEvent,
    EndEvent,
    MessageDelta,
    MessageStreamEvent,
    TextDelta,
    ToolCallDelta,
)
from ...observability.logging import ProviderLogger
from ..base import StreamState


def event_to_delta(
    event: Mapping[str, Any],
    state: StreamState,
    converter: Any,
    logger: ProviderLogger,
) -> Optional[MessageStreamEvent]:
    """
    Map one Messages API stream event.

    Content block indices count every block (text, thinking, tool_use); only
    tool_use blocks get a dense tool-call index, assigned in order of
    appearance through ``state``.
    """
    event_type = event.get("type")
    handler = _HANDLERS.get(event_type)
    if handler is None:
        logger.debug("Ignoring stream event", event_type=event_type)
        return None
    return handler(event, state, converter)


def _message_start(event, state, converter):
    message = event.get("message") or {}
    metadata = {key: message[key] for key in ("id", "model") if message.get(key) is not None}
    return DeltaEvent(delta=MessageDelta(
        role=Role.ASSISTANT,
        usage=converter.usage_to_canonical(message.get("usage")),
        metadata=metadata,
    ))


def _content_block_start(event, state, converter):
    index = event.get("index")
    block = event.get("content_block") or {}
    block_type = block.get("type")
    state.block_kinds[index] = block_type

    if block_type == "tool_use":
        return DeltaEvent(delta=MessageDelta(content=[ToolCallDelta(
            index=state.tool_index(index),
            id=block.get("id"),
            name=block.get("name"),
        )]))
    if block_type == "text" and block.get("text"):
        return DeltaEvent(delta=MessageDelta(content=[TextDelta(text=block["text"], block=index)]))
    return None


def _content_block_delta(event, state, converter):
    index = event.get("index")
    delta = event.get("delta") or {}
    delta_type = delta.get("type")

    if delta_type == "text_delta":
        return DeltaEvent(delta=MessageDelta(content=[TextDelta(text=delta.get("text", ""), block=index)]))
    if delta_type == "input_json_delta":
        if not state.has_tool(index):
            raise ProviderError(
                "input_json_delta for a block that was never started as tool_use",
                provider=converter.name,
                body=dict(event),
            )
        return DeltaEvent(delta=MessageDelta(content=[ToolCallDelta(
            index=state.tool_index(index),
            arguments=delta.get("partial_json", ""),
        )]))
    # thinking_delta, signature_delta, citations_delta
    return None


def _message_delta(event, state, converter):
    delta = event.get("delta") or {}
    raw_finish = delta.get("stop_reason")
    return DeltaEvent(delta=MessageDelta(
        finish_reason=converter.map_finish_reason(raw_finish),
        raw_finish_reason=raw_finish,
        usage=converter.usage_to_canonical(event.get("usage")),
    ))


def _message_stop(event, state, converter):
    state.ended = True
    return EndEvent()


def _ignore(event, state, converter):
    return None


def _error(event, state, converter):
    error = event.get("error") or {}
    raise ProviderError(
        error.get("message") or "stream error event",
        provider=converter.name,
        status_code=529 if error.get("type") == "overloaded_error" else None,
        body=dict(event),
    )


_HANDLERS: Mapping[str, Callable[..., Optional[MessageStreamEvent]]] = {
    "message_start": _message_start,
    "content_block_start": _content_block_start,
    "content_block_delta": _content_block_delta,
    "content_block_stop": _ignore,
    "message_delta": _message_delta,
    "message_stop": _message_stop,
    "ping": _ignore,
    "error": _error,
}
