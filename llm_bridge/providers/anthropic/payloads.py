from __future__ import annotations

from typing import Any, Dict, List, Sequence

from ...config.constants import ANTHROPIC_EXT_KEYS
from ...models.content import (
    BlobPart,
    InlineData,
    Message,
    OpaquePart,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from ...models.generation import ToolSpec
from ..base import ConversionContext

_ROLE_NAMES = {
    Role.USER: "user",
    Role.ASSISTANT: "assistant",
    # Tool results travel in a user turn
    Role.TOOL: "user",
}


def system_field(texts: Sequence[str]) -> Any:
    """A single system text is sent as a string, several as text blocks."""
    if len(texts) == 1:
        return texts[0]
    return [{"type": "text", "text": text} for text in texts]


def tool_spec_to_anthropic(tool: ToolSpec) -> Dict[str, Any]:
    spec: Dict[str, Any] = {"name": tool.name}
    if tool.description is not None:
        spec["description"] = tool.description
    spec["input_schema"] = tool.parameters if tool.parameters is not None else {"type": "object", "properties": {}}
    spec.update(tool.ext)
    return spec


def build_messages(indexed: Sequence[tuple], context: ConversionContext) -> List[Dict[str, Any]]:
    """
    Map non-system canonical messages to the Messages API ``messages`` array.

    Each canonical message becomes one Anthropic message, so consecutive
    tool results inside a tool-role message share a single user turn.
    """
    out = []
    for position, message in indexed:
        base = f"messages[{position}]"
        context.carry_ext(message.ext, (), base)
        blocks = [
            content_block(part, f"{base}.content[{part_position}]", context, message.role)
            for part_position, part in enumerate(message.content)
        ]
        out.append({"role": _ROLE_NAMES[message.role], "content": blocks})
    return out


def content_block(part: Any, path: str, context: ConversionContext, role: Role) -> Dict[str, Any]:
    context.check(part, path)
    if isinstance(part, OpaquePart):
        return dict(part.payload)

    extra = context.carry_ext(part.ext, ANTHROPIC_EXT_KEYS, path)
    if isinstance(part, TextPart):
        block = {"type": "text", "text": part.text}
    elif isinstance(part, BlobPart):
        block = _blob_block(part)
    elif isinstance(part, ToolCallPart):
        if role is not Role.ASSISTANT:
            context.reject(f"tool call in a {role.value} message", path, part.type)
        block = {"type": "tool_use", "id": part.id, "name": part.name, "input": part.args}
    elif isinstance(part, ToolResultPart):
        if role is Role.ASSISTANT:
            context.reject("tool result in an assistant message", path, part.type)
        block = {
            "type": "tool_result",
            "tool_use_id": part.call_id,
            "content": [
                _tool_result_block(inner, f"{path}.content[{inner_position}]", context)
                for inner_position, inner in enumerate(part.content)
            ],
        }
    else:
        context.reject(f"{part.type} part", path, part.type)
    block.update(extra)
    return block


def _tool_result_block(part: Any, path: str, context: ConversionContext) -> Dict[str, Any]:
    context.check(part, path, nested=True)
    extra = context.carry_ext(part.ext, ANTHROPIC_EXT_KEYS, path)
    if isinstance(part, TextPart):
        block = {"type": "text", "text": part.text}
    elif isinstance(part, BlobPart):
        block = _blob_block(part)
    else:
        context.reject(f"{part.type} part inside a tool result", path, part.type)
    block.update(extra)
    return block


def _blob_block(part: BlobPart) -> Dict[str, Any]:
    block_type = "image" if part.is_image else "document"
    if isinstance(part.data_ref, InlineData):
        source = {"type": "base64", "media_type": part.mime_type, "data": part.data_ref.data}
    else:
        source = {"type": "url", "url": part.data_ref.uri}
    return {"type": block_type, "source": source}
