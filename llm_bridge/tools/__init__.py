"""Tool call helpers."""

from .encoding import decode_tool_result_content, encode_tool_result_content, parts_from_json

__all__ = ["encode_tool_result_content", "decode_tool_result_content", "parts_from_json"]
