from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from ...models.content import Role
from ...models.generation import FinishReason
from ...models.streaming import DeltaEvent, MessageDelta, PartDelta, TextDelta, ToolCallDelta
from ...observability.logging import ProviderLogger
from ..base import StreamState
from .parsers import synthesize_call_id


def chunk_to_delta(
    chunk: Mapping[str, Any],
    state: StreamState,
    converter: Any,
    logger: ProviderLogger,
) -> Optional[DeltaEvent]:
    """
    Map one streamed ``GenerateContentResponse``.

    Gemini never splits a functionCall across chunks, so each one becomes a
    single ToolCallDelta with complete arguments at the next dense index.
    """
    candidates = chunk.get("candidates") or []
    candidate = candidates[0] if candidates else {}
    content = candidate.get("content") or {}

    deltas: List[PartDelta] = []
    for part in content.get("parts") or []:
        if part.get("thought"):
            logger.debug("Skipping thought part in stream")
            continue
        if "text" in part:
            if part["text"]:
                deltas.append(TextDelta(text=part["text"]))
        elif "functionCall" in part:
            call = part["functionCall"] or {}
            name = call.get("name", "")
            index = state.tool_count
            call_id = call.get("id") or synthesize_call_id(index, name)
            state.tool_index(call_id)
            deltas.append(ToolCallDelta(
                index=index,
                id=call_id,
                name=name,
                arguments=json.dumps(call.get("args") or {}, ensure_ascii=False),
            ))
        else:
            logger.debug("Ignoring non-text part in stream", keys=",".join(part))

    role = None
    if content.get("role") == "model" and not state.role_sent:
        state.role_sent = True
        role = Role.ASSISTANT

    raw_finish = candidate.get("finishReason")
    usage = converter.usage_to_canonical(chunk.get("usageMetadata"))
    metadata: Dict[str, Any] = {}
    if chunk.get("responseId") is not None:
        metadata["id"] = chunk["responseId"]
    if chunk.get("modelVersion") is not None:
        metadata["model"] = chunk["modelVersion"]

    if role is None and not deltas and raw_finish is None and usage is None:
        return None

    finish_reason = converter.map_finish_reason(raw_finish)
    if raw_finish == "STOP" and state.tool_count:
        finish_reason = FinishReason.TOOL_CALLS
    return DeltaEvent(delta=MessageDelta(
        role=role,
        content=deltas,
        finish_reason=finish_reason,
        raw_finish_reason=raw_finish,
        usage=usage,
        metadata=metadata,
    ))
