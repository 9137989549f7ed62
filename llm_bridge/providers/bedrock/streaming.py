from __future__ import annotations

from typing import Any, Mapping, Optional

from ...errors import ProviderError
from ...models.content import Role
from ...models.streaming import DeltaEvent, MessageDelta, TextDelta, ToolCallDelta
from ...observability.logging import ProviderLogger
from ..base import StreamState

# ConverseStream exception events and the HTTP status each stands for
EXCEPTION_STATUS = {
    "internalServerException": 500,
    "modelStreamErrorException": 424,
    "validationException": 400,
    "throttlingException": 429,
    "serviceUnavailableException": 503,
}

_ROLES = {"assistant": Role.ASSISTANT, "user": Role.USER}


def event_to_delta(
    event: Mapping[str, Any],
    state: StreamState,
    converter: Any,
    logger: ProviderLogger,
) -> Optional[DeltaEvent]:
    """Map one ConverseStream event (``{"contentBlockDelta": {...}}`` and friends)."""
    for name, status in EXCEPTION_STATUS.items():
        if name in event:
            payload = event[name] or {}
            raise ProviderError(
                payload.get("message") or name,
                provider=converter.name,
                status_code=status,
                body=dict(event),
            )

    if "messageStart" in event:
        role = _ROLES.get((event["messageStart"] or {}).get("role"), Role.ASSISTANT)
        return DeltaEvent(delta=MessageDelta(role=role))

    if "contentBlockStart" in event:
        start_event = event["contentBlockStart"] or {}
        block_index = start_event.get("contentBlockIndex")
        tool_use = (start_event.get("start") or {}).get("toolUse")
        if tool_use is None:
            return None
        state.block_kinds[block_index] = "toolUse"
        return DeltaEvent(delta=MessageDelta(content=[ToolCallDelta(
            index=state.tool_index(block_index),
            id=tool_use.get("toolUseId"),
            name=tool_use.get("name"),
        )]))

    if "contentBlockDelta" in event:
        delta_event = event["contentBlockDelta"] or {}
        block_index = delta_event.get("contentBlockIndex")
        delta = delta_event.get("delta") or {}
        if "text" in delta:
            return DeltaEvent(delta=MessageDelta(content=[TextDelta(text=delta["text"], block=block_index)]))
        if "toolUse" in delta:
            if not state.has_tool(block_index):
                raise ProviderError(
                    "toolUse delta for a block that was never started",
                    provider=converter.name,
                    body=dict(event),
                )
            return DeltaEvent(delta=MessageDelta(content=[ToolCallDelta(
                index=state.tool_index(block_index),
                arguments=(delta["toolUse"] or {}).get("input", ""),
            )]))
        logger.debug("Ignoring content block delta", keys=",".join(delta))
        return None

    if "messageStop" in event:
        raw_finish = (event["messageStop"] or {}).get("stopReason")
        return DeltaEvent(delta=MessageDelta(
            finish_reason=converter.map_finish_reason(raw_finish),
            raw_finish_reason=raw_finish,
        ))

    if "metadata" in event:
        usage = converter.usage_to_canonical((event["metadata"] or {}).get("usage"))
        return DeltaEvent(delta=MessageDelta(usage=usage)) if usage is not None else None

    # contentBlockStop and anything newer
    return None
