"""
String projection of tool-result content.

Several wire formats only accept a string as a tool's output. The canonical
content sequence is always written as a JSON array of tagged parts, even for
a single text part, so that decoding yields the same sequence back.
"""

import json
import logging
from typing import Any, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from ..models.content import Part, TextPart

logger = logging.getLogger(__name__)

_PART_LIST = TypeAdapter(List[Part])


def encode_tool_result_content(parts: Sequence[Part]) -> str:
    """Serialize tool-result parts to a JSON array string."""
    return json.dumps(
        [part.model_dump(mode="json") for part in parts],
        ensure_ascii=False,
        separators=(",", ":"),
    )


def parts_from_json(data: Any) -> Optional[List[Part]]:
    """Validate already-decoded JSON as a list of tagged parts; None if it is not one."""
    if not isinstance(data, list) or not all(isinstance(item, dict) and "type" in item for item in data):
        return None
    try:
        return _PART_LIST.validate_python(data)
    except ValidationError as e:
        logger.debug(f"Tool result looked like encoded parts but did not validate: {e}")
        return None


def decode_tool_result_content(raw: str) -> List[Part]:
    """
    Inverse of encode_tool_result_content.

    Strings that are not a JSON array of tagged parts (tool output written by
    some other client) become a single TextPart holding the raw string.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return [TextPart(text=raw)]

    parts = parts_from_json(data)
    return parts if parts is not None else [TextPart(text=raw)]
