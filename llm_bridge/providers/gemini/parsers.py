from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from ...errors import ContentConversion, MissingData
from ...models.content import (
    BlobPart,
    CodeExecutionResultPart,
    ExecutableCodePart,
    FilePart,
    InlineData,
    Message,
    OpaquePart,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    UriData,
)
from ...tools.encoding import parts_from_json

_DATA_KEYS = (
    "text",
    "inlineData",
    "fileData",
    "functionCall",
    "functionResponse",
    "executableCode",
    "codeExecutionResult",
)

# fileData URIs served by the Gemini Files API are file references, not blobs
FILES_API_MARKER = "generativelanguage.googleapis.com/"

_CANDIDATE_KEYS = {"content", "finishReason", "index"}
_RESPONSE_KEYS = {"candidates", "usageMetadata", "modelVersion", "responseId"}


def synthesize_call_id(index: int, name: str) -> str:
    """Stable id for a functionCall the API returned without one."""
    return f"call_{index}_{name}"


def _extra(data: Mapping[str, Any], known) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known and value is not None}


class PartParser:
    """
    Parses Gemini ``parts`` for one request or response.

    Holds the call bookkeeping shared across parts: functionCall parts
    without an id get a synthesized one, and a functionResponse without an
    id is matched to the oldest unanswered call of the same name.
    """

    def __init__(self, provider: str):
        self.provider = provider
        self.call_count = 0
        self._unanswered: Dict[str, List[str]] = {}

    def parse_parts(self, parts: Any, path: str) -> List[Any]:
        if not isinstance(parts, list):
            raise ContentConversion("parts must be a list", provider=self.provider, field=path, fragment=parts)
        return [self.parse_part(part, f"{path}[{position}]") for position, part in enumerate(parts)]

    def parse_part(self, part: Any, path: str) -> Any:
        if not isinstance(part, Mapping):
            raise ContentConversion("part must be an object", provider=self.provider, field=path, fragment=part)
        ext = _extra(part, _DATA_KEYS)

        if "text" in part:
            return TextPart(text=part["text"] or "", ext=ext)

        if "inlineData" in part:
            data = part["inlineData"] or {}
            return BlobPart(
                mime_type=data.get("mimeType", "application/octet-stream"),
                data_ref=InlineData(data=data.get("data", "")),
                ext=ext,
            )

        if "fileData" in part:
            data = part["fileData"] or {}
            uri = data.get("fileUri", "")
            mime_type = data.get("mimeType", "application/octet-stream")
            if FILES_API_MARKER in uri or "displayName" in data:
                return FilePart(file_uri=uri, mime_type=mime_type, display_name=data.get("displayName"), ext=ext)
            return BlobPart(mime_type=mime_type, data_ref=UriData(uri=uri), ext=ext)

        if "functionCall" in part:
            return self._function_call(part["functionCall"] or {}, ext)

        if "functionResponse" in part:
            return self._function_response(part["functionResponse"] or {}, path, ext)

        if "executableCode" in part:
            code = part["executableCode"] or {}
            return ExecutableCodePart(language=code.get("language", "LANGUAGE_UNSPECIFIED"), code=code.get("code", ""), ext=ext)

        if "codeExecutionResult" in part:
            result = part["codeExecutionResult"] or {}
            return CodeExecutionResultPart(outcome=result.get("outcome", "OUTCOME_UNSPECIFIED"), output=result.get("output"), ext=ext)

        kind = next(iter(part), "unknown")
        return OpaquePart(provider=self.provider, kind=kind, payload=dict(part))

    def _function_call(self, call: Mapping[str, Any], ext: Dict[str, Any]) -> ToolCallPart:
        name = call.get("name", "")
        call_id = call.get("id") or synthesize_call_id(self.call_count, name)
        self.call_count += 1
        self._unanswered.setdefault(name, []).append(call_id)
        return ToolCallPart(id=call_id, name=name, args=call.get("args") or {}, ext=ext)

    def _function_response(self, response: Mapping[str, Any], path: str, ext: Dict[str, Any]) -> ToolResultPart:
        name = response.get("name", "")
        waiting = self._unanswered.get(name) or []
        call_id = response.get("id")
        if call_id in waiting:
            waiting.remove(call_id)
        elif not call_id:
            if not waiting:
                raise MissingData(
                    f"functionResponse {name!r} has no id and answers no earlier functionCall",
                    provider=self.provider,
                    field=f"{path}.functionResponse.id",
                )
            call_id = waiting.pop(0)

        body = response.get("response")
        content = None
        if isinstance(body, Mapping) and set(body) == {"content"}:
            content = parts_from_json(body["content"])
        if content is None:
            content = [TextPart(text=json.dumps(body, ensure_ascii=False))]

        ext = {**ext, **_extra(response, {"id", "name", "response"})}
        return ToolResultPart(call_id=call_id, name=name, content=content, ext=ext)


def parse_contents(contents: Any, provider: str) -> List[Message]:
    if not isinstance(contents, list):
        raise MissingData("request has no contents array", provider=provider, field="contents")
    parser = PartParser(provider)
    messages = []
    for position, content in enumerate(contents):
        path = f"contents[{position}]"
        parts = parser.parse_parts(content.get("parts") or [], f"{path}.parts")
        if not parts:
            raise MissingData("content has no parts", provider=provider, field=path)
        role_name = content.get("role", "user")
        if role_name == "model":
            role = Role.ASSISTANT
        elif role_name == "user":
            role = Role.TOOL if all(isinstance(part, ToolResultPart) for part in parts) else Role.USER
        else:
            raise ContentConversion(f"unknown content role {role_name!r}", provider=provider, field=f"{path}.role")
        messages.append(Message(role=role, content=parts))
    return messages


def parse_system_instruction(instruction: Any, provider: str) -> Optional[Message]:
    if not instruction:
        return None
    if isinstance(instruction, str):
        return Message.system(instruction)
    parts = PartParser(provider).parse_parts(instruction.get("parts") or [], "systemInstruction.parts")
    return Message(role=Role.SYSTEM, content=parts) if parts else None


def parse_candidate(body: Mapping[str, Any], provider: str) -> tuple:
    """Return (message, raw finish reason) for ``candidates[0]``."""
    candidates = body.get("candidates")
    if not candidates:
        raise MissingData("response has no candidates", provider=provider, field="candidates")
    candidate = candidates[0]
    parts = PartParser(provider).parse_parts(
        (candidate.get("content") or {}).get("parts") or [],
        "candidates[0].content.parts",
    )
    if not parts:
        raise MissingData(
            "candidate has no content parts",
            provider=provider,
            field="candidates[0].content",
            fragment=candidate.get("finishReason"),
        )
    ext = {**_extra(body, _RESPONSE_KEYS), **_extra(candidate, _CANDIDATE_KEYS)}
    return Message(role=Role.ASSISTANT, content=parts, ext=ext), candidate.get("finishReason")
