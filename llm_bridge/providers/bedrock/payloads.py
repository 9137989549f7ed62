from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from ...config.constants import BEDROCK_TOOL_RESULT_EXT_KEYS
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
    Role.TOOL: "user",
}

INFERENCE_CONFIG_KEYS = {
    "max_tokens": "maxTokens",
    "temperature": "temperature",
    "top_p": "topP",
    "stop": "stopSequences",
}


def image_format(mime_type: str) -> str:
    """Converse names image formats without the ``image/`` prefix."""
    return mime_type.split("/", 1)[1]


def tool_config(tools: Sequence[ToolSpec]) -> Dict[str, Any]:
    specs = []
    for tool in tools:
        spec: Dict[str, Any] = {"name": tool.name}
        if tool.description is not None:
            spec["description"] = tool.description
        spec["inputSchema"] = {"json": tool.parameters if tool.parameters is not None else {"type": "object", "properties": {}}}
        spec.update(tool.ext)
        specs.append({"toolSpec": spec})
    return {"tools": specs}


def inference_config(options: Dict[str, Any]) -> Dict[str, Any]:
    config = {}
    for key, bedrock_key in INFERENCE_CONFIG_KEYS.items():
        value = options.get(key)
        if value is None:
            continue
        if key == "stop" and isinstance(value, str):
            value = [value]
        config[bedrock_key] = value
    return config


def build_messages(indexed: Sequence[Tuple[int, Message]], context: ConversionContext) -> List[Dict[str, Any]]:
    out = []
    for position, message in indexed:
        base = f"messages[{position}]"
        context.carry_ext(message.ext, (), base)
        blocks = []
        for part_position, part in enumerate(message.content):
            path = f"{base}.content[{part_position}]"
            context.check(part, path)
            blocks.append(content_block(part, path, context))
        out.append({"role": _ROLE_NAMES[message.role], "content": blocks})
    return out


def content_block(part: Any, path: str, context: ConversionContext) -> Dict[str, Any]:
    if isinstance(part, OpaquePart):
        return dict(part.payload)
    if isinstance(part, ToolResultPart):
        result = {
            "toolUseId": part.call_id,
            "content": [
                _result_block(inner, f"{path}.content[{inner_position}]", context)
                for inner_position, inner in enumerate(part.content)
            ],
        }
        result.update(context.carry_ext(part.ext, BEDROCK_TOOL_RESULT_EXT_KEYS, path))
        return {"toolResult": result}

    context.carry_ext(part.ext, (), path)
    if isinstance(part, TextPart):
        return {"text": part.text}
    if isinstance(part, BlobPart):
        return {"image": _image(part)}
    if isinstance(part, ToolCallPart):
        return {"toolUse": {"toolUseId": part.id, "name": part.name, "input": part.args}}
    context.reject(f"{part.type} part", path, part.type)


def _result_block(part: Any, path: str, context: ConversionContext) -> Dict[str, Any]:
    context.check(part, path, nested=True)
    context.carry_ext(part.ext, (), path)
    if isinstance(part, TextPart):
        return {"text": part.text}
    if isinstance(part, BlobPart):
        return {"image": _image(part)}
    context.reject(f"{part.type} part inside a tool result", path, part.type)


def _image(part: BlobPart) -> Dict[str, Any]:
    if isinstance(part.data_ref, InlineData):
        # boto3 base64-encodes raw bytes itself
        source: Dict[str, Any] = {"bytes": part.data_ref.to_bytes()}
    else:
        source = {"s3Location": {"uri": part.data_ref.uri}}
    return {"format": image_format(part.mime_type), "source": source}
