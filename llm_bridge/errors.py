"""
Error taxonomy for llm-bridge.

Every error raised by the conversion, reassembly and streaming layers derives
from BridgeError and carries enough context (provider, field, raw fragment)
to diagnose a failure without re-running with verbose logging.
"""

from enum import Enum
from typing import Any, Optional


class BridgeError(Exception):
    """
    Base exception for all llm-bridge errors.

    Attributes:
        message: Human readable description
        provider: Provider name the error relates to, if any
        field: Field or path within the payload (e.g. "messages[2].content[0]")
        fragment: Raw fragment that triggered the failure, if feasible
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        field: Optional[str] = None,
        fragment: Optional[Any] = None
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.field = field
        self.fragment = fragment

    def __str__(self) -> str:
        context = []
        if self.provider:
            context.append(f"provider={self.provider}")
        if self.field:
            context.append(f"field={self.field}")
        text = f"[{' '.join(context)}] {self.message}" if context else self.message
        if self.fragment is not None:
            text += f" (fragment={_truncate(self.fragment)!r})"
        return text


class ConversionError(BridgeError):
    """Base exception for canonical <-> provider mapping failures."""
    pass


class UnsupportedConversion(ConversionError):
    """Canonical content has no representation in the target format."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        field: Optional[str] = None,
        part_type: Optional[str] = None,
        fragment: Optional[Any] = None
    ):
        super().__init__(message, provider=provider, field=field, fragment=fragment)
        self.part_type = part_type


class MissingData(ConversionError):
    """A required field is absent from the input."""
    pass


class ContentConversion(ConversionError):
    """Input has the wrong shape for the mapping being applied."""
    pass


class ReassemblyErrorKind(str, Enum):
    """Kinds of delta reassembly failures."""
    OUT_OF_ORDER = "out_of_order"
    DUPLICATE_ID = "duplicate_id"
    MALFORMED_ARGUMENTS = "malformed_arguments"


class ReassemblyError(BridgeError):
    """Base exception for failures folding deltas into a message."""

    kind: ReassemblyErrorKind

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        provider: Optional[str] = None,
        fragment: Optional[Any] = None
    ):
        field = f"tool_calls[{index}]" if index is not None else None
        super().__init__(message, provider=provider, field=field, fragment=fragment)
        self.index = index


class OutOfOrderError(ReassemblyError):
    """A tool-call delta arrived for a closed or not-yet-opened slot."""
    kind = ReassemblyErrorKind.OUT_OF_ORDER


class DuplicateIdError(ReassemblyError):
    """A tool-call id was reused by another open slot."""
    kind = ReassemblyErrorKind.DUPLICATE_ID

    def __init__(
        self,
        message: str,
        call_id: str,
        index: Optional[int] = None,
        provider: Optional[str] = None
    ):
        super().__init__(message, index=index, provider=provider, fragment=call_id)
        self.call_id = call_id


class MalformedArgumentsError(ReassemblyError):
    """
    Accumulated tool-call arguments are not valid JSON.

    Not raised by the reassembler: it is attached to the affected slot and
    returned alongside the completed message.
    """
    kind = ReassemblyErrorKind.MALFORMED_ARGUMENTS

    def __init__(
        self,
        message: str,
        index: int,
        call_id: Optional[str] = None,
        raw_arguments: str = "",
        provider: Optional[str] = None
    ):
        super().__init__(message, index=index, provider=provider, fragment=raw_arguments)
        self.call_id = call_id
        self.raw_arguments = raw_arguments


class StreamError(BridgeError):
    """Transport or framing failure; the whole stream is considered lost."""
    pass


class ProviderError(BridgeError):
    """
    Non-2xx response or provider-reported failure.

    Attributes:
        status_code: HTTP status code if applicable
        body: Raw response body (text or decoded JSON) as received
        retry_after: Seconds to wait before retry if the provider said so
        is_retryable: Whether the transport layer may retry this request
        original_error: The wrapped exception, if any
    """

    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504, 529}

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[Any] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, provider=provider, fragment=None)
        self.status_code = status_code
        self.body = body
        self.retry_after = retry_after
        self.is_retryable = status_code in self.RETRYABLE_STATUS_CODES if status_code else False
        self.original_error: Optional[BaseException] = None

    def __str__(self) -> str:
        text = super().__str__()
        if self.status_code is not None:
            text += f" (status={self.status_code})"
        return text


def _truncate(value: Any, limit: int = 200) -> Any:
    if isinstance(value, str) and len(value) > limit:
        return value[:limit] + "..."
    return value
