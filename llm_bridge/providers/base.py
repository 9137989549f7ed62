"""
Base Provider Converter Interface

This module defines the abstract base class for all provider converters.
Every provider implementation inherits from ProviderConverter and implements
the same four mapping operations, so callers can switch providers without
touching their canonical messages.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config.settings import BridgeSettings, get_settings
from ..core.capabilities import ensure_part_supported, get_capabilities
from ..core.normalization.usage import normalize_usage
from ..errors import ContentConversion, ProviderError, StreamError, UnsupportedConversion
from ..models.content import Message, Role, TextPart
from ..models.generation import (
    ConversionWarning,
    FinishReason,
    ProviderRequest,
    ProviderResponse,
    ToolSpec,
)
from ..models.streaming import MessageStreamEvent
from ..models.usage import Usage
from ..observability.logging import ProviderLogger
from ..streaming.parser import Framing, RawRecord


def to_mapping(obj: Any, provider: str, field: str) -> Dict[str, Any]:
    """
    Accept a parsed JSON dict or a provider SDK object and return a dict.

    SDK response types from ``openai`` and ``anthropic`` are pydantic models,
    so ``model_dump()`` yields the documented wire shape.
    """
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_unset=True)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise ContentConversion(
        f"expected a JSON object or SDK model, got {type(obj).__name__}",
        provider=provider,
        field=field,
    )


class StreamState:
    """
    Per-stream bookkeeping used while converting chunks.

    Provider indices (content block numbers, call ids) are mapped onto the
    dense tool-call indices the reassembler expects. One instance belongs to
    one stream and is never shared.
    """

    def __init__(self):
        self._tool_indices: Dict[Any, int] = {}
        self.block_kinds: Dict[Any, str] = {}
        self.role_sent = False
        self.ended = False
        self.last_tool_index: Optional[int] = None

    def tool_index(self, key: Any) -> int:
        """Dense index for a provider-side key, allocating the next one on first sight."""
        if key not in self._tool_indices:
            self._tool_indices[key] = len(self._tool_indices)
        self.last_tool_index = self._tool_indices[key]
        return self.last_tool_index

    def has_tool(self, key: Any) -> bool:
        return key in self._tool_indices

    @property
    def tool_count(self) -> int:
        return len(self._tool_indices)


class ConversionContext:
    """Collects warnings and applies capability checks for one conversion call."""

    def __init__(self, converter: "ProviderConverter"):
        self.provider = converter.name
        self.capabilities = converter.capabilities
        self.logger = converter.logger
        self.warnings: List[ConversionWarning] = []

    def check(self, part: Any, path: str, nested: bool = False) -> None:
        ensure_part_supported(self.capabilities, part, path, nested=nested)

    def carry_ext(self, ext: Mapping[str, Any], allowed: Iterable[str], path: str) -> Dict[str, Any]:
        """
        Split ``ext`` into keys the wire format can carry and keys it cannot.

        Carried keys are returned; every dropped key is recorded as a
        ConversionWarning and logged.
        """
        if not ext:
            return {}
        allowed = set(allowed)
        carried = {key: value for key, value in ext.items() if key in allowed}
        dropped = [key for key in ext if key not in allowed]
        if dropped:
            detail = f"{self.provider} cannot carry ext keys {dropped}"
            self.warnings.append(ConversionWarning(code="ext_dropped", path=path, detail=detail))
            self.logger.warning("Dropping ext metadata", path=path, keys=",".join(dropped))
        return carried

    def reject(self, reason: str, path: str, part_type: Optional[str] = None) -> None:
        raise UnsupportedConversion(
            f"{reason} cannot be converted to {self.provider}",
            provider=self.provider,
            field=path,
            part_type=part_type,
        )


class ProviderConverter(ABC):
    """
    Abstract base class for provider converters.

    A converter maps canonical messages to one provider's request schema and
    maps that provider's responses and stream chunks back. Request and
    response mapping is pure: no I/O and no shared mutable state, so one
    converter instance can serve any number of threads. Stream chunk mapping
    keeps its per-stream bookkeeping in a StreamState owned by the caller.

    Converters should NOT contain:
    - Transport, auth or retry logic
    - Silent dropping of content the target cannot express
    """

    name: str = ""
    framing: Optional[Framing] = Framing.SSE
    terminal_sentinel: Optional[str] = None
    finish_reasons: Dict[str, FinishReason] = {}

    def __init__(self, settings: Optional[BridgeSettings] = None):
        self.settings = settings or get_settings()
        self.capabilities = get_capabilities(self.name)
        self.logger = ProviderLogger(self.name)

    @abstractmethod
    def canonical_to_provider_request(
        self,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        system: Optional[str] = None,
        **options: Any
    ) -> ProviderRequest:
        """
        Build a provider request body from canonical messages.

        Args:
            messages: Conversation in order; system-role messages are folded
                into the provider's system slot
            tools: Function declarations offered to the model
            system: System prompt, placed before any system-role messages
            **options: model, max_tokens, temperature, top_p, stop, stream;
                None values are omitted

        Returns:
            ProviderRequest with the body and any non-fatal warnings

        Raises:
            UnsupportedConversion: A part has no representation in this format
        """

    @abstractmethod
    def provider_response_to_canonical(self, response: Any) -> ProviderResponse:
        """
        Map a complete provider response to canonical form.

        Unknown fields are preserved in ``ext`` rather than rejected.

        Raises:
            ProviderError: The body is an error payload
            MissingData: A required field is absent
            ContentConversion: A field has the wrong shape
        """

    @abstractmethod
    def provider_request_to_canonical(self, request: Any) -> List[Message]:
        """Parse a provider request body back into canonical messages."""

    @abstractmethod
    def provider_chunk_to_delta(
        self,
        chunk: Any,
        state: Optional[StreamState] = None
    ) -> Optional[MessageStreamEvent]:
        """
        Map one provider stream chunk to a canonical stream event.

        Args:
            chunk: Decoded provider chunk (dict or SDK event object)
            state: Bookkeeping for the stream this chunk belongs to; pass the
                same instance for every chunk of a stream

        Returns:
            DeltaEvent, EndEvent, or None for chunks with nothing canonical
            (keep-alives, block stops)

        Raises:
            ProviderError: The chunk reports a provider-side failure
        """

    def usage_to_canonical(self, usage: Any) -> Optional[Usage]:
        """Normalize this provider's usage object (see normalize_usage)."""
        if usage is None:
            return None
        return normalize_usage(to_mapping(usage, self.name, "usage"), self.name, self.logger)

    def decode_record(self, record: RawRecord) -> Dict[str, Any]:
        """Decode one framed stream record into a provider chunk."""
        try:
            chunk = json.loads(record.data)
        except ValueError as e:
            raise StreamError(
                f"stream record is not valid JSON: {e}",
                provider=self.name,
                field=record.event,
                fragment=record.data,
            ) from e
        if not isinstance(chunk, dict):
            raise StreamError("stream record is not a JSON object", provider=self.name, fragment=record.data)
        return chunk

    def new_stream_state(self) -> StreamState:
        return StreamState()

    def map_finish_reason(self, raw: Optional[str]) -> Optional[FinishReason]:
        if raw is None:
            return None
        return self.finish_reasons.get(raw, FinishReason.OTHER)

    def _context(self) -> ConversionContext:
        return ConversionContext(self)

    def _system_texts(
        self,
        messages: Sequence[Message],
        system: Optional[str],
        context: ConversionContext
    ) -> Tuple[List[str], List[Tuple[int, Message]]]:
        """Split system text from the conversation, keeping original message positions."""
        texts = [system] if system else []
        rest = []
        for position, message in enumerate(messages):
            if message.role is not Role.SYSTEM:
                rest.append((position, message))
                continue
            for part_position, part in enumerate(message.content):
                path = f"messages[{position}].content[{part_position}]"
                if not isinstance(part, TextPart):
                    context.reject(f"{part.type} part in a system message", path, part.type)
                context.carry_ext(part.ext, (), path)
                texts.append(part.text)
        return texts, rest

    @staticmethod
    def _options(options: Mapping[str, Any], renames: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Drop None options and apply provider spellings."""
        renames = renames or {}
        return {renames.get(key, key): value for key, value in options.items() if value is not None}

    def _raise_for_error(self, payload: Mapping[str, Any], status_code: Optional[int] = None) -> None:
        error = payload.get("error")
        if error is None:
            return
        if isinstance(error, Mapping):
            message = error.get("message") or error.get("type") or "provider reported an error"
            code = error.get("code")
            if status_code is None and isinstance(code, int):
                status_code = code
        else:
            message = str(error)
        raise ProviderError(str(message), provider=self.name, status_code=status_code, body=dict(payload))


def guess_image_mime(uri: str) -> str:
    """Image MIME type from a URI's extension.

    URL image slots carry no media type, so this is all a parser has to go on.
    URIs without a recognised extension come back as ``image/jpeg``.
    """
    lowered = uri.lower().split("?", 1)[0]
    for suffix, mime in ((".png", "image/png"), (".gif", "image/gif"), (".webp", "image/webp")):
        if lowered.endswith(suffix):
            return mime
    return "image/jpeg"
