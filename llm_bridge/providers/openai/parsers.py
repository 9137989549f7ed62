from __future__ import annotations

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
from ...tools.encoding import decode_tool_result_content
from ..base import guess_image_mime

_ROLES = {
    "system": Role.SYSTEM,
    "developer": Role.SYSTEM,
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "tool": Role.TOOL,
}

_RESPONSE_KEYS = {"id", "object", "created", "model", "choices", "usage"}
_MESSAGE_KEYS = {"role", "content", "tool_calls", "tool_call_id", "name"}


def blob_from_url(url: str, provider: str, detail: Optional[str] = None) -> BlobPart:
    """Inverse of payloads.image_url."""
    ext = {"detail": detail} if detail is not None else {}
    if url.startswith("data:") and ";base64," in url:
        header, data = url[5:].split(";base64,", 1)
        return BlobPart(mime_type=header or "application/octet-stream", data_ref=InlineData(data=data), ext=ext)
    return BlobPart(mime_type=guess_image_mime(url), data_ref=UriData(uri=url), ext=ext)


def parse_content(content: Any, provider: str, path: str) -> List[Any]:
    """Parse a message ``content`` field (string, list of items, or null)."""
    if content is None:
        return []
    if isinstance(content, str):
        return [TextPart(text=content)] if content else []
    if not isinstance(content, list):
        raise ContentConversion("content must be a string or a list", provider=provider, field=path, fragment=content)

    parts: List[Any] = []
    for position, item in enumerate(content):
        item_type = item.get("type") if isinstance(item, Mapping) else None
        if item_type == "text":
            parts.append(TextPart(text=item.get("text", "")))
        elif item_type == "image_url":
            image = item.get("image_url")
            if isinstance(image, Mapping):
                parts.append(blob_from_url(image.get("url", ""), provider, image.get("detail")))
            elif isinstance(image, str):
                parts.append(blob_from_url(image, provider))
            else:
                raise MissingData("image_url item has no url", provider=provider, field=f"{path}[{position}]")
        elif item_type:
            parts.append(OpaquePart(provider=provider, kind=item_type, payload=dict(item)))
        else:
            raise ContentConversion("content item has no type", provider=provider, field=f"{path}[{position}]", fragment=item)
    return parts


def parse_tool_calls(tool_calls: Optional[List[Any]], provider: str, path: str) -> List[ToolCallPart]:
    parts = []
    for position, call in enumerate(tool_calls or []):
        function = call.get("function") or {}
        call_id = call.get("id")
        if not call_id:
            raise MissingData("tool call has no id", provider=provider, field=f"{path}[{position}].id")
        raw_arguments = function.get("arguments")
        parts.append(ToolCallPart(
            id=call_id,
            name=function.get("name", ""),
            args=_parse_arguments(raw_arguments, provider, f"{path}[{position}].function.arguments"),
        ))
    return parts


def _parse_arguments(raw: Any, provider: str, path: str) -> Any:
    if raw is None or raw == "":
        return {}
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ContentConversion(f"tool call arguments are not valid JSON: {e}", provider=provider, field=path, fragment=raw) from e


def _unknown(raw: Mapping[str, Any], known: set) -> Dict[str, Any]:
    return {key: value for key, value in raw.items() if key not in known and value is not None}


def parse_assistant_message(raw: Mapping[str, Any], provider: str, path: str) -> Message:
    """Parse ``choices[i].message`` of a Chat Completions response."""
    content = parse_content(raw.get("content"), provider, f"{path}.content")
    content.extend(parse_tool_calls(raw.get("tool_calls"), provider, f"{path}.tool_calls"))
    if not content:
        raise MissingData("response message has no content or tool calls", provider=provider, field=path)
    role = _ROLES.get(raw.get("role") or "assistant", Role.ASSISTANT)
    return Message(role=role, content=content, ext=_unknown(raw, _MESSAGE_KEYS))


def response_extras(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Response-level fields with no canonical slot (system_fingerprint, service_tier, ...)."""
    return _unknown(body, _RESPONSE_KEYS)


def parse_request_messages(raw_messages: List[Mapping[str, Any]], provider: str) -> List[Message]:
    """Parse a Chat Completions ``messages`` array back into canonical messages.

    Consecutive ``tool`` messages fold into one tool-role message. Tool
    results without a ``name`` take it from the assistant call they answer.
    """
    messages: List[Message] = []
    tool_names: Dict[str, str] = {}
    pending_results: List[ToolResultPart] = []

    def flush_results() -> None:
        if pending_results:
            messages.append(Message(role=Role.TOOL, content=list(pending_results)))
            pending_results.clear()

    for position, raw in enumerate(raw_messages):
        path = f"messages[{position}]"
        role_name = raw.get("role")
        if role_name not in _ROLES:
            raise ContentConversion(f"unknown message role {role_name!r}", provider=provider, field=f"{path}.role")

        if role_name == "tool":
            call_id = raw.get("tool_call_id")
            if not call_id:
                raise MissingData("tool message has no tool_call_id", provider=provider, field=f"{path}.tool_call_id")
            content = raw.get("content")
            if isinstance(content, list):
                inner = parse_content(content, provider, f"{path}.content")
            else:
                inner = decode_tool_result_content(content or "")
            pending_results.append(ToolResultPart(
                call_id=call_id,
                name=raw.get("name") or tool_names.get(call_id, ""),
                content=inner,
            ))
            continue

        flush_results()
        content = parse_content(raw.get("content"), provider, f"{path}.content")
        calls = parse_tool_calls(raw.get("tool_calls"), provider, f"{path}.tool_calls")
        for call in calls:
            tool_names[call.id] = call.name
        content.extend(calls)
        if not content:
            raise MissingData("message has no content", provider=provider, field=path)
        messages.append(Message(role=_ROLES[role_name], content=content, ext=_unknown(raw, _MESSAGE_KEYS - {"name"})))

    flush_results()
    return messages
