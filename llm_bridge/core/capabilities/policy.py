"""
Capability-driven conversion policy.

Converters call ensure_part_supported before encoding any part, so that
content a target cannot carry fails loudly with UnsupportedConversion
instead of being skipped.
"""

from typing import Any

from ...errors import UnsupportedConversion
from ...models.content import UriData
from .models import ProviderCapabilities


def ensure_part_supported(
    capabilities: ProviderCapabilities,
    part: Any,
    path: str,
    nested: bool = False
) -> None:
    """
    Raise if ``part`` has no representation for the capabilities' provider.

    Args:
        capabilities: Target provider capabilities
        part: Canonical part about to be encoded
        path: Location of the part for error context
        nested: The part sits inside a ToolResult's content

    Raises:
        UnsupportedConversion: The target cannot express this part
    """
    provider = capabilities.provider
    kind = part.type

    def reject(reason: str) -> None:
        raise UnsupportedConversion(
            f"{reason} cannot be converted to {provider}",
            provider=provider,
            field=path,
            part_type=kind,
        )

    if kind == "text":
        return

    if kind in ("tool_call", "tool_result"):
        if not capabilities.supports_tools:
            reject("tool content")
        if nested and not capabilities.tool_result_is_projected:
            reject("tool content nested in a tool result")
        return

    if kind == "blob":
        # Projected tool outputs carry nested blobs inside the JSON
        if nested and capabilities.tool_result_is_projected:
            return
        if nested and not capabilities.tool_result_supports_images and part.is_image:
            reject("image inside a tool result")
        if not capabilities.accepts_blob_mime(part.mime_type):
            reject(f"blob of type {part.mime_type}")
        if part.is_image and not capabilities.supports_image_inputs:
            reject("image content")
        if isinstance(part.data_ref, UriData):
            uri = part.data_ref.uri
            if not capabilities.supports_blob_urls or not uri.startswith(capabilities.url_schemes):
                reject(f"blob reference {uri.split(':', 1)[0]}:// URI")
        return

    if kind == "file":
        if not capabilities.supports_file_references:
            reject("file reference")
        return

    if kind in ("executable_code", "code_execution_result"):
        if not capabilities.supports_code_execution:
            reject("executable code")
        return

    if kind == "opaque":
        if part.provider != provider:
            reject(f"opaque {part.provider} '{part.kind}' block")
        return

    reject(f"part type '{kind}'")
