from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...models.content import (
    BlobPart,
    InlineData,
    Message,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from ...models.generation import ToolSpec
from ...tools.encoding import encode_tool_result_content
from ..base import ConversionContext

# Message-level ext keys with a slot on the wire
MESSAGE_EXT_KEYS = ("name",)
IMAGE_EXT_KEYS = ("detail",)

_ROLE_NAMES = {
    Role.USER: "user",
    Role.ASSISTANT: "assistant",
    Role.SYSTEM: "system",
    # Non-result content of a tool-role message is sent as a user turn
    Role.TOOL: "user",
}


def image_url(part: BlobPart) -> str:
    """Inline bytes become a data URL; references pass through."""
    if isinstance(part.data_ref, InlineData):
        return f"data:{part.mime_type};base64,{part.data_ref.data}"
    return part.data_ref.uri


def tool_spec_to_openai(tool: ToolSpec, omit_empty_parameters: bool = False) -> Dict[str, Any]:
    """Wrap a ToolSpec in the Chat Completions function-tool shape."""
    function: Dict[str, Any] = {"name": tool.name}
    if tool.description is not None:
        function["description"] = tool.description
    if tool.parameters is not None and not (omit_empty_parameters and not tool.parameters):
        function["parameters"] = tool.parameters
    function.update(tool.ext)
    return {"type": "function", "function": function}


def tool_call_to_openai(part: ToolCallPart) -> Dict[str, Any]:
    return {
        "id": part.id,
        "type": "function",
        "function": {"name": part.name, "arguments": json.dumps(part.args, ensure_ascii=False)},
    }


def build_messages(
    messages: Sequence[Message],
    system: Optional[str],
    context: ConversionContext,
    image_url_as_string: bool = False,
) -> List[Dict[str, Any]]:
    """Map canonical messages to a Chat Completions ``messages`` array.

    Every ToolResultPart becomes its own ``tool`` message. Content around a
    tool result is split into separate turns so the original order holds.
    """
    out: List[Dict[str, Any]] = []
    if system:
        out.append({"role": "system", "content": system})
    for position, message in enumerate(messages):
        out.extend(_message_to_openai(message, position, context, image_url_as_string))
    return out


def _message_to_openai(
    message: Message,
    position: int,
    context: ConversionContext,
    image_url_as_string: bool,
) -> List[Dict[str, Any]]:
    base = f"messages[{position}]"
    extra = context.carry_ext(message.ext, MESSAGE_EXT_KEYS, base)
    result: List[Dict[str, Any]] = []
    pending: List[Tuple[str, Any]] = []

    def flush() -> None:
        if pending:
            turn = _turn(message.role, pending, context, image_url_as_string)
            turn.update(extra)
            result.append(turn)
            pending.clear()

    for part_position, part in enumerate(message.content):
        path = f"{base}.content[{part_position}]"
        context.check(part, path)
        if isinstance(part, ToolResultPart):
            flush()
            result.append(_tool_message(part, path, context))
        else:
            pending.append((path, part))
    flush()
    return result


def _turn(
    role: Role,
    parts: List[Tuple[str, Any]],
    context: ConversionContext,
    image_url_as_string: bool,
) -> Dict[str, Any]:
    role_name = _ROLE_NAMES[role]
    texts: List[str] = []
    items: List[Dict[str, Any]] = []
    tool_calls: List[Dict[str, Any]] = []

    for path, part in parts:
        if isinstance(part, TextPart):
            context.carry_ext(part.ext, (), path)
            texts.append(part.text)
            items.append({"type": "text", "text": part.text})
        elif isinstance(part, BlobPart):
            if role_name != "user":
                context.reject(f"image in a {role_name} message", path, part.type)
            detail = context.carry_ext(part.ext, IMAGE_EXT_KEYS, path)
            if image_url_as_string and not detail:
                items.append({"type": "image_url", "image_url": image_url(part)})
            else:
                items.append({"type": "image_url", "image_url": {"url": image_url(part), **detail}})
        elif isinstance(part, ToolCallPart):
            if role_name != "assistant":
                context.reject(f"tool call in a {role_name} message", path, part.type)
            context.carry_ext(part.ext, (), path)
            tool_calls.append(tool_call_to_openai(part))
        else:
            context.reject(f"{part.type} part", path, part.type)

    turn: Dict[str, Any] = {"role": role_name}
    only_text = len(items) == len(texts)
    if not items:
        turn["content"] = None
    elif only_text and len(texts) == 1:
        turn["content"] = texts[0]
    else:
        turn["content"] = items
    if tool_calls:
        turn["tool_calls"] = tool_calls
    return turn


def _tool_message(part: ToolResultPart, path: str, context: ConversionContext) -> Dict[str, Any]:
    for inner_position, inner in enumerate(part.content):
        context.check(inner, f"{path}.content[{inner_position}]", nested=True)
    context.carry_ext(part.ext, (), path)
    message = {
        "role": "tool",
        "tool_call_id": part.call_id,
        "content": encode_tool_result_content(part.content),
    }
    if context.capabilities.tool_message_has_name:
        message["name"] = part.name
    return message
