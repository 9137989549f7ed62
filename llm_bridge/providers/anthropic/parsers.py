from __future__ import annotations

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
from ..base import guess_image_mime

_RESPONSE_KEYS = {"id", "type", "role", "content", "model", "stop_reason", "usage"}


def _extra(block: Mapping[str, Any], known: set) -> Dict[str, Any]:
    return {key: value for key, value in block.items() if key not in known and value is not None}


def parse_blocks(
    content: Any,
    provider: str,
    path: str,
    tool_names: Optional[Dict[str, str]] = None,
) -> List[Any]:
    """Parse a ``content`` field (string or list of blocks) into canonical parts."""
    if isinstance(content, str):
        return [TextPart(text=content)] if content else []
    if not isinstance(content, list):
        raise ContentConversion("content must be a string or a list of blocks", provider=provider, field=path, fragment=content)
    names = tool_names if tool_names is not None else {}
    return [
        parse_block(block, provider, f"{path}[{position}]", names)
        for position, block in enumerate(content)
    ]


def parse_block(block: Any, provider: str, path: str, tool_names: Dict[str, str]) -> Any:
    if not isinstance(block, Mapping) or "type" not in block:
        raise ContentConversion("content block has no type", provider=provider, field=path, fragment=block)
    block_type = block["type"]

    if block_type == "text":
        return TextPart(text=block.get("text", ""), ext=_extra(block, {"type", "text"}))

    if block_type == "tool_use":
        if not block.get("id"):
            raise MissingData("tool_use block has no id", provider=provider, field=f"{path}.id")
        tool_names[block["id"]] = block.get("name", "")
        return ToolCallPart(
            id=block["id"],
            name=block.get("name", ""),
            args=block.get("input") if block.get("input") is not None else {},
            ext=_extra(block, {"type", "id", "name", "input"}),
        )

    if block_type == "tool_result":
        call_id = block.get("tool_use_id")
        if not call_id:
            raise MissingData("tool_result block has no tool_use_id", provider=provider, field=f"{path}.tool_use_id")
        return ToolResultPart(
            call_id=call_id,
            name=tool_names.get(call_id, ""),
            content=parse_blocks(block.get("content") or [], provider, f"{path}.content", tool_names),
            ext=_extra(block, {"type", "tool_use_id", "content"}),
        )

    if block_type in ("image", "document") and isinstance(block.get("source"), Mapping):
        source = block["source"]
        if source.get("type") == "base64":
            return BlobPart(
                mime_type=source.get("media_type", "application/octet-stream"),
                data_ref=InlineData(data=source.get("data", "")),
                ext=_extra(block, {"type", "source"}),
            )
        if source.get("type") == "url":
            url = source.get("url", "")
            mime_type = guess_image_mime(url) if block_type == "image" else "application/pdf"
            return BlobPart(mime_type=mime_type, data_ref=UriData(uri=url), ext=_extra(block, {"type", "source"}))

    # thinking, redacted_thinking, server tool blocks and anything newer
    return OpaquePart(provider=provider, kind=block_type, payload=dict(block))


def parse_system(system: Any, provider: str) -> Optional[Message]:
    if not system:
        return None
    parts = parse_blocks(system, provider, "system")
    return Message(role=Role.SYSTEM, content=parts)


def parse_request_messages(raw_messages: List[Mapping[str, Any]], provider: str) -> List[Message]:
    """
    Parse a Messages API ``messages`` array.

    A user turn made only of tool_result blocks becomes a tool-role message;
    tool result names come from the tool_use block they answer.
    """
    messages = []
    tool_names: Dict[str, str] = {}
    for position, raw in enumerate(raw_messages):
        path = f"messages[{position}]"
        role_name = raw.get("role")
        if role_name not in ("user", "assistant"):
            raise ContentConversion(f"unknown message role {role_name!r}", provider=provider, field=f"{path}.role")
        parts = parse_blocks(raw.get("content"), provider, f"{path}.content", tool_names)
        if not parts:
            raise MissingData("message has no content", provider=provider, field=path)
        if role_name == "assistant":
            role = Role.ASSISTANT
        elif all(isinstance(part, ToolResultPart) for part in parts):
            role = Role.TOOL
        else:
            role = Role.USER
        messages.append(Message(role=role, content=parts, ext=_extra(raw, {"role", "content"})))
    return messages


def parse_response_message(body: Mapping[str, Any], provider: str) -> Message:
    if "content" not in body:
        raise MissingData("response has no content", provider=provider, field="content")
    parts = parse_blocks(body["content"], provider, "content")
    if not parts:
        raise MissingData("response content is empty", provider=provider, field="content")
    return Message(role=Role.ASSISTANT, content=parts, ext=_extra(body, _RESPONSE_KEYS))
