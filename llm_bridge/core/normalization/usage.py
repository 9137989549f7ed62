"""
Usage normalization module.

This module maps each provider's token-accounting shape into the canonical
Usage record. All converters must go through normalize_usage so that usage
is reported the same way whichever provider produced it.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ...models.usage import Usage
from ...observability.logging import ProviderLogger


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _sum_present(*values: Optional[int]) -> Optional[int]:
    present = [v for v in values if v is not None]
    return sum(present) if present else None


def _details(usage_data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    details = usage_data.get(key)
    return details if isinstance(details, Mapping) else {}


# Each mapper returns (fields for Usage, reported total, keys consumed)
_Mapped = Tuple[Dict[str, Optional[int]], Optional[int], Tuple[str, ...]]


def _map_openai_compatible(usage_data: Mapping[str, Any]) -> _Mapped:
    prompt_details = _details(usage_data, "prompt_tokens_details")
    completion_details = _details(usage_data, "completion_tokens_details")
    fields = {
        "prompt_tokens": _int_or_none(usage_data.get("prompt_tokens")),
        "completion_tokens": _int_or_none(usage_data.get("completion_tokens")),
        "cache_read_tokens": _int_or_none(prompt_details.get("cached_tokens")),
        "reasoning_tokens": _int_or_none(completion_details.get("reasoning_tokens")),
    }
    return fields, _int_or_none(usage_data.get("total_tokens")), ("prompt_tokens", "completion_tokens", "total_tokens")


def _map_anthropic(usage_data: Mapping[str, Any]) -> _Mapped:
    fields = {
        "prompt_tokens": _int_or_none(usage_data.get("input_tokens")),
        "completion_tokens": _int_or_none(usage_data.get("output_tokens")),
        "cache_creation_tokens": _int_or_none(usage_data.get("cache_creation_input_tokens")),
        "cache_read_tokens": _int_or_none(usage_data.get("cache_read_input_tokens")),
    }
    consumed = ("input_tokens", "output_tokens", "cache_creation_input_tokens", "cache_read_input_tokens")
    return fields, None, consumed


def _map_gemini(usage_data: Mapping[str, Any]) -> _Mapped:
    candidates = _int_or_none(usage_data.get("candidatesTokenCount"))
    thoughts = _int_or_none(usage_data.get("thoughtsTokenCount"))
    fields = {
        "prompt_tokens": _int_or_none(usage_data.get("promptTokenCount")),
        # Thinking tokens are billed as output
        "completion_tokens": _sum_present(candidates, thoughts),
        "reasoning_tokens": thoughts,
        "cache_read_tokens": _int_or_none(usage_data.get("cachedContentTokenCount")),
    }
    consumed = (
        "promptTokenCount",
        "candidatesTokenCount",
        "thoughtsTokenCount",
        "cachedContentTokenCount",
        "totalTokenCount",
    )
    return fields, _int_or_none(usage_data.get("totalTokenCount")), consumed


def _map_bedrock(usage_data: Mapping[str, Any]) -> _Mapped:
    fields = {
        "prompt_tokens": _int_or_none(usage_data.get("inputTokens")),
        "completion_tokens": _int_or_none(usage_data.get("outputTokens")),
        "cache_read_tokens": _int_or_none(usage_data.get("cacheReadInputTokens")),
        "cache_creation_tokens": _int_or_none(usage_data.get("cacheWriteInputTokens")),
    }
    consumed = ("inputTokens", "outputTokens", "totalTokens", "cacheReadInputTokens", "cacheWriteInputTokens")
    return fields, _int_or_none(usage_data.get("totalTokens")), consumed


def _map_generic(usage_data: Mapping[str, Any]) -> _Mapped:
    """Fallback for providers without a dedicated mapper: try common field names."""
    fields: Dict[str, Optional[int]] = {"prompt_tokens": None, "completion_tokens": None}
    consumed = []
    for prompt_field in ("prompt_tokens", "input_tokens", "promptTokenCount", "inputTokens"):
        if prompt_field in usage_data:
            fields["prompt_tokens"] = _int_or_none(usage_data[prompt_field])
            consumed.append(prompt_field)
            break
    for completion_field in ("completion_tokens", "output_tokens", "candidatesTokenCount", "outputTokens"):
        if completion_field in usage_data:
            fields["completion_tokens"] = _int_or_none(usage_data[completion_field])
            consumed.append(completion_field)
            break
    reported = None
    for total_field in ("total_tokens", "totalTokenCount", "totalTokens"):
        if total_field in usage_data:
            reported = _int_or_none(usage_data[total_field])
            consumed.append(total_field)
            break
    return fields, reported, tuple(consumed)


_MAPPERS: Dict[str, Callable[[Mapping[str, Any]], _Mapped]] = {
    "openai": _map_openai_compatible,
    "mistral": _map_openai_compatible,
    "groq": _map_openai_compatible,
    "openrouter": _map_openai_compatible,
    "anthropic": _map_anthropic,
    "gemini": _map_gemini,
    "bedrock": _map_bedrock,
}


def normalize_usage(
    usage_data: Optional[Mapping[str, Any]],
    provider: str,
    logger: Optional[ProviderLogger] = None
) -> Optional[Usage]:
    """
    Normalize provider usage data into a canonical Usage.

    Fields the provider did not send stay None. ``total_tokens`` is always
    recomputed from prompt and completion tokens; when the provider's own
    total disagrees the discrepancy is logged and the reported value kept in
    ``ext["reported_total_tokens"]``. Keys not mapped to a canonical field
    (timings, cost, detail objects) are copied into ``ext``.

    Args:
        usage_data: Raw usage mapping from the provider (parsed JSON)
        provider: Provider name selecting the field mapping
        logger: Logger for discrepancy warnings (defaults to the provider's)

    Returns:
        Usage, or None when the provider sent no usage at all
    """
    if not usage_data:
        return None

    mapper = _MAPPERS.get(provider, _map_generic)
    fields, reported_total, consumed = mapper(usage_data)

    ext = {key: value for key, value in usage_data.items() if key not in consumed and value is not None}
    usage = Usage(**fields, ext=ext)

    if reported_total is not None and usage.total_tokens is not None and reported_total != usage.total_tokens:
        (logger or ProviderLogger(provider)).warning(
            "Usage total disagrees with prompt + completion",
            reported_total=reported_total,
            computed_total=usage.total_tokens,
        )
        usage.ext["reported_total_tokens"] = reported_total

    return usage


def merge_usage(earlier: Optional[Usage], later: Optional[Usage]) -> Optional[Usage]:
    """Combine cumulative usage reports from one stream; later values win."""
    if earlier is None:
        return later
    return earlier.merged_with(later)
