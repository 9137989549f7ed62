from __future__ import annotations

import base64
import json
from typing import Any, Dict, List, Mapping, Optional

from ...errors import ContentConversion, MissingData
from ...models.content import (
    BlobPart,
    InlineData,
    Message,
    OpaquePart,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    UriData,
)

# Transport metadata boto3 adds to every response
_RESPONSE_KEYS = {"output", "stopReason", "usage", "ResponseMetadata"}


def _image_part(image: Mapping[str, Any]) -> BlobPart:
    mime_type = f"image/{image.get('format', 'png')}"
    source = image.get("source") or {}
    if "s3Location" in source:
        return BlobPart(mime_type=mime_type, data_ref=UriData(uri=source["s3Location"].get("uri", "")))
    raw = source.get("bytes", b"")
    data = base64.b64encode(raw).decode("ascii") if isinstance(raw, (bytes, bytearray)) else raw
    return BlobPart(mime_type=mime_type, data_ref=InlineData(data=data))


def parse_blocks(
    blocks: Any,
    provider: str,
    path: str,
    tool_names: Optional[Dict[str, str]] = None,
) -> List[Any]:
    if not isinstance(blocks, list):
        raise ContentConversion("content must be a list of blocks", provider=provider, field=path, fragment=blocks)
    names = tool_names if tool_names is not None else {}
    return [parse_block(block, provider, f"{path}[{position}]", names) for position, block in enumerate(blocks)]


def parse_block(block: Any, provider: str, path: str, tool_names: Dict[str, str]) -> Any:
    if not isinstance(block, Mapping) or not block:
        raise ContentConversion("content block must be a non-empty object", provider=provider, field=path, fragment=block)

    if "text" in block:
        return TextPart(text=block["text"])
    if "image" in block:
        return _image_part(block["image"] or {})
    if "json" in block:
        # Structured tool output has no canonical kind; keep it as JSON text
        return TextPart(text=json.dumps(block["json"], ensure_ascii=False))

    if "toolUse" in block:
        use = block["toolUse"] or {}
        if not use.get("toolUseId"):
            raise MissingData("toolUse block has no toolUseId", provider=provider, field=f"{path}.toolUse.toolUseId")
        tool_names[use["toolUseId"]] = use.get("name", "")
        return ToolCallPart(id=use["toolUseId"], name=use.get("name", ""), args=use.get("input") or {})

    if "toolResult" in block:
        result = block["toolResult"] or {}
        call_id = result.get("toolUseId")
        if not call_id:
            raise MissingData("toolResult block has no toolUseId", provider=provider, field=f"{path}.toolResult.toolUseId")
        ext = {key: value for key, value in result.items() if key not in ("toolUseId", "content")}
        return ToolResultPart(
            call_id=call_id,
            name=tool_names.get(call_id, ""),
            content=parse_blocks(result.get("content") or [], provider, f"{path}.toolResult.content", tool_names),
            ext=ext,
        )

    # reasoningContent, guardContent, cachePoint, document, ...
    return OpaquePart(provider=provider, kind=next(iter(block)), payload=dict(block))


def parse_request_messages(raw_messages: List[Mapping[str, Any]], provider: str) -> List[Message]:
    messages = []
    tool_names: Dict[str, str] = {}
    for position, raw in enumerate(raw_messages):
        path = f"messages[{position}]"
        role_name = raw.get("role")
        if role_name not in ("user", "assistant"):
            raise ContentConversion(f"unknown message role {role_name!r}", provider=provider, field=f"{path}.role")
        parts = parse_blocks(raw.get("content") or [], provider, f"{path}.content", tool_names)
        if not parts:
            raise MissingData("message has no content", provider=provider, field=path)
        if role_name == "assistant":
            role = Role.ASSISTANT
        elif all(isinstance(part, ToolResultPart) for part in parts):
            role = Role.TOOL
        else:
            role = Role.USER
        messages.append(Message(role=role, content=parts))
    return messages


def parse_system(system: Any, provider: str) -> Optional[Message]:
    if not system:
        return None
    parts = []
    for block in system:
        if "text" in block:
            parts.append(TextPart(text=block["text"]))
        else:
            parts.append(OpaquePart(provider=provider, kind=next(iter(block), "unknown"), payload=dict(block)))
    return Message(role=Role.SYSTEM, content=parts)


def parse_output_message(body: Mapping[str, Any], provider: str) -> Message:
    message = (body.get("output") or {}).get("message")
    if not isinstance(message, Mapping):
        raise MissingData("response has no output.message", provider=provider, field="output.message")
    parts = parse_blocks(message.get("content") or [], provider, "output.message.content")
    if not parts:
        raise MissingData("response message is empty", provider=provider, field="output.message.content")
    ext = {key: value for key, value in body.items() if key not in _RESPONSE_KEYS and value is not None}
    return Message(role=Role.ASSISTANT, content=parts, ext=ext)
