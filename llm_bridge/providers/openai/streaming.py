from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from ...models.content import Role
from ...models.generation import FinishReason
from ...models.streaming import DeltaEvent, MessageDelta, PartDelta, TextDelta, ToolCallDelta
from ...models.usage import Usage
from ..base import StreamState

_STREAM_ROLES = {
    "assistant": Role.ASSISTANT,
    "user": Role.USER,
    "system": Role.SYSTEM,
    "tool": Role.TOOL,
}


def chunk_to_delta(
    chunk: Mapping[str, Any],
    state: StreamState,
    map_finish_reason: Callable[[Optional[str]], Optional[FinishReason]],
    usage: Optional[Usage],
) -> Optional[DeltaEvent]:
    """Map one ``chat.completion.chunk`` to a DeltaEvent.

    Only ``choices[0]`` is read. The final chunk of a stream that requested
    ``include_usage`` has an empty ``choices`` list and carries only usage.
    """
    choices = chunk.get("choices") or []
    choice = choices[0] if choices else {}
    delta_data = choice.get("delta") or {}

    content: List[PartDelta] = []
    text = delta_data.get("content")
    if text:
        content.append(TextDelta(text=text))

    for call in delta_data.get("tool_calls") or []:
        function = call.get("function") or {}
        index = call.get("index")
        if index is None:
            # Some compatible servers omit the index; fall back to the call id.
            # An id-less fragment continues the call before it.
            if call.get("id") is None and state.last_tool_index is not None:
                index = state.last_tool_index
            else:
                index = state.tool_index(call.get("id"))
        content.append(ToolCallDelta(
            index=index,
            id=call.get("id"),
            name=function.get("name"),
            arguments=function.get("arguments"),
        ))

    role = _STREAM_ROLES.get(delta_data.get("role")) if delta_data.get("role") else None
    raw_finish = choice.get("finish_reason")

    metadata: Dict[str, Any] = {}
    for key in ("id", "model"):
        if chunk.get(key) is not None:
            metadata[key] = chunk[key]

    if role is None and not content and raw_finish is None and usage is None:
        return None

    return DeltaEvent(delta=MessageDelta(
        role=role,
        content=content,
        finish_reason=map_finish_reason(raw_finish),
        raw_finish_reason=raw_finish,
        usage=usage,
        metadata=metadata,
    ))
