from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from ...config.constants import GEMINI_FUNCTION_RESPONSE_EXT_KEYS, GEMINI_PART_EXT_KEYS
from ...errors import MissingData
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
)
from ...models.generation import ToolSpec
from ..base import ConversionContext

_ROLE_NAMES = {
    Role.USER: "user",
    Role.ASSISTANT: "model",
    # functionResponse parts are sent in a user turn
    Role.TOOL: "user",
}

GENERATION_CONFIG_KEYS = {
    "max_tokens": "maxOutputTokens",
    "temperature": "temperature",
    "top_p": "topP",
    "top_k": "topK",
    "stop": "stopSequences",
    "seed": "seed",
}


def tools_to_gemini(tools: Sequence[ToolSpec]) -> List[Dict[str, Any]]:
    declarations = []
    for tool in tools:
        declaration: Dict[str, Any] = {"name": tool.name}
        if tool.description is not None:
            declaration["description"] = tool.description
        if tool.parameters is not None:
            declaration["parameters"] = tool.parameters
        declaration.update(tool.ext)
        declarations.append(declaration)
    return [{"functionDeclarations": declarations}]


def generation_config(options: Dict[str, Any]) -> Dict[str, Any]:
    config = {}
    for key, gemini_key in GENERATION_CONFIG_KEYS.items():
        value = options.get(key)
        if value is None:
            continue
        if key == "stop" and isinstance(value, str):
            value = [value]
        config[gemini_key] = value
    return config


def build_contents(indexed: Sequence[Tuple[int, Message]], context: ConversionContext) -> List[Dict[str, Any]]:
    """
    Map non-system canonical messages to ``contents``.

    functionResponse needs the function name; a result without one takes it
    from the functionCall it answers earlier in the same request.
    """
    call_names: Dict[str, str] = {}
    contents = []
    for position, message in indexed:
        base = f"messages[{position}]"
        context.carry_ext(message.ext, (), base)
        parts = []
        for part_position, part in enumerate(message.content):
            path = f"{base}.content[{part_position}]"
            context.check(part, path)
            if isinstance(part, ToolCallPart):
                call_names[part.id] = part.name
            parts.append(part_to_gemini(part, path, context, call_names))
        contents.append({"role": _ROLE_NAMES[message.role], "parts": parts})
    return contents


def part_to_gemini(part: Any, path: str, context: ConversionContext, call_names: Dict[str, str]) -> Dict[str, Any]:
    if isinstance(part, OpaquePart):
        return dict(part.payload)

    if isinstance(part, ToolResultPart):
        return _function_response(part, path, context, call_names)

    extra = context.carry_ext(part.ext, GEMINI_PART_EXT_KEYS, path)
    if isinstance(part, TextPart):
        out: Dict[str, Any] = {"text": part.text}
    elif isinstance(part, BlobPart):
        if isinstance(part.data_ref, InlineData):
            out = {"inlineData": {"mimeType": part.mime_type, "data": part.data_ref.data}}
        else:
            out = {"fileData": {"mimeType": part.mime_type, "fileUri": part.data_ref.uri}}
    elif isinstance(part, FilePart):
        file_data = {"mimeType": part.mime_type, "fileUri": part.file_uri}
        if part.display_name is not None:
            file_data["displayName"] = part.display_name
        out = {"fileData": file_data}
    elif isinstance(part, ToolCallPart):
        out = {"functionCall": {"id": part.id, "name": part.name, "args": part.args}}
    elif isinstance(part, ExecutableCodePart):
        out = {"executableCode": {"language": part.language, "code": part.code}}
    elif isinstance(part, CodeExecutionResultPart):
        result = {"outcome": part.outcome}
        if part.output is not None:
            result["output"] = part.output
        out = {"codeExecutionResult": result}
    else:
        context.reject(f"{part.type} part", path, part.type)
    out.update(extra)
    return out


def _function_response(
    part: ToolResultPart,
    path: str,
    context: ConversionContext,
    call_names: Dict[str, str],
) -> Dict[str, Any]:
    for inner_position, inner in enumerate(part.content):
        context.check(inner, f"{path}.content[{inner_position}]", nested=True)
    name = part.name or call_names.get(part.call_id)
    if not name:
        raise MissingData(
            f"tool result for call {part.call_id!r} has no name and no matching call in the request",
            provider=context.provider,
            field=f"{path}.name",
        )
    response = {
        "id": part.call_id,
        "name": name,
        "response": {"content": [inner.model_dump(mode="json") for inner in part.content]},
    }
    response.update(context.carry_ext(part.ext, GEMINI_FUNCTION_RESPONSE_EXT_KEYS, path))
    return {"functionResponse": response}
