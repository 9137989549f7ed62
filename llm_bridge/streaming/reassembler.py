"""
Delta reassembly.

DeltaReassembler folds the ordered MessageStreamEvents of one streamed
response into a complete canonical Message. One instance owns the buffers of
exactly one stream; it is not shared between tasks.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, NoReturn, Optional, Set, Union

from ..config.settings import get_settings
from ..errors import (
    DuplicateIdError,
    MalformedArgumentsError,
    MissingData,
    OutOfOrderError,
    ReassemblyError,
)
from ..models.content import Message, Role, TextPart, ToolCallPart
from ..models.generation import FinishReason
from ..models.streaming import (
    DeltaEvent,
    EndEvent,
    MessageDelta,
    MessageStreamEvent,
    TextDelta,
    ToolCallDelta,
)
from ..models.usage import Usage
from ..observability.logging import ProviderLogger


class ReassemblerState(str, Enum):
    """Lifecycle of a DeltaReassembler."""
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    ENDED = "ended"
    FAILED = "failed"


@dataclass
class _TextSlot:
    fragments: List[str] = field(default_factory=list)


@dataclass
class _ToolSlot:
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    fragments: List[str] = field(default_factory=list)


@dataclass
class ReassembledMessage:
    """Result of a completed stream.

    Attributes:
        message: The completed canonical message
        errors: Per-slot argument failures; the affected ToolCallPart has args=None
        usage: Last cumulative usage reported by the stream
        finish_reason: Normalized stop reason, if the provider sent one
        raw_finish_reason: Stop reason exactly as sent by the provider
        metadata: Stream-level fields (response id, model) collected from deltas
    """
    message: Message
    errors: List[MalformedArgumentsError] = field(default_factory=list)
    usage: Optional[Usage] = None
    finish_reason: Optional[FinishReason] = None
    raw_finish_reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class DeltaReassembler:
    """
    State machine turning deltas into a Message.

    States move Idle -> Accumulating -> Ended. Text fragments extend the
    current text part; tool-call fragments are routed to slots by index and
    their argument text is only parsed as JSON when End arrives. Out-of-order
    indices and duplicate ids raise and leave the reassembler FAILED.
    Events arriving after End are recorded in ``violations`` and dropped.
    """

    def __init__(self, provider: Optional[str] = None):
        self.provider = provider
        self.state = ReassemblerState.IDLE
        self.violations: List[str] = []
        self._logger = ProviderLogger(provider or "unknown")
        self._role: Optional[Role] = None
        self._slots: List[Union[_TextSlot, _ToolSlot]] = []
        self._tool_slots: Dict[int, _ToolSlot] = {}
        self._last_target: Optional[Any] = None
        self._usage: Optional[Usage] = None
        self._finish_reason: Optional[FinishReason] = None
        self._raw_finish_reason: Optional[str] = None
        self._metadata: Dict[str, Any] = {}
        self._result: Optional[ReassembledMessage] = None

    @property
    def result(self) -> Optional[ReassembledMessage]:
        """The completed message once End has been applied."""
        return self._result

    def apply(self, event: MessageStreamEvent) -> Optional[ReassembledMessage]:
        """
        Apply one stream event.

        Returns:
            The ReassembledMessage when ``event`` is End, otherwise None.

        Raises:
            OutOfOrderError: Tool-call index skipped ahead or went back to a closed slot
            DuplicateIdError: Tool-call id already used by another slot
            MissingData: End arrived before any content
        """
        if self.state in (ReassemblerState.ENDED, ReassemblerState.FAILED):
            note = f"{event.type} event received after stream {self.state.value}"
            self.violations.append(note)
            self._logger.warning("Discarding event", detail=note)
            return None

        if isinstance(event, EndEvent):
            return self._finish()
        if isinstance(event, DeltaEvent):
            self._apply_delta(event.delta)
            return None
        raise TypeError(f"Unsupported stream event: {event!r}")

    def feed(self, events: Iterable[MessageStreamEvent]) -> Optional[ReassembledMessage]:
        """Apply events in order; returns the result if End was among them."""
        for event in events:
            self.apply(event)
        return self._result

    def _apply_delta(self, delta: MessageDelta) -> None:
        if self.state is ReassemblerState.IDLE:
            role = delta.role
            if role is None:
                self._logger.warning("First delta carried no role, assuming assistant")
                role = Role.ASSISTANT
            self._role = role
            self.state = ReassemblerState.ACCUMULATING
        elif delta.role is not None and delta.role != self._role:
            self._logger.warning(
                "Ignoring role change mid-stream",
                role=self._role.value if self._role else None,
                new_role=delta.role.value,
            )

        for part in delta.content:
            if isinstance(part, TextDelta):
                self._append_text(part.text, part.block)
            elif isinstance(part, ToolCallDelta):
                self._apply_tool_call(part)
            else:
                raise TypeError(f"Unsupported part delta: {part!r}")

        if delta.usage is not None:
            self._usage = delta.usage if self._usage is None else self._usage.merged_with(delta.usage)
        if delta.finish_reason is not None:
            self._finish_reason = delta.finish_reason
        if delta.raw_finish_reason is not None:
            self._raw_finish_reason = delta.raw_finish_reason
        if delta.metadata:
            self._metadata.update(delta.metadata)

    def _append_text(self, text: str, block: Optional[int] = None) -> None:
        target = ("text", block)
        if self._last_target == target:
            self._slots[-1].fragments.append(text)
            return
        self._slots.append(_TextSlot([text]))
        self._last_target = target

    def _apply_tool_call(self, part: ToolCallDelta) -> None:
        slot = self._tool_slots.get(part.index)

        if slot is None:
            expected = len(self._tool_slots)
            if part.index != expected:
                self._fail(OutOfOrderError(
                    f"tool call index {part.index} arrived before index {expected} was opened",
                    index=part.index,
                    provider=self.provider,
                ))
            if part.id is not None:
                self._check_unique_id(part.id, part.index)
            slot = _ToolSlot(index=part.index, id=part.id, name=part.name)
            self._tool_slots[part.index] = slot
            self._slots.append(slot)
        else:
            # Opening slot k closes every slot below k
            if part.index < len(self._tool_slots) - 1:
                self._fail(OutOfOrderError(
                    f"tool call index {part.index} is already closed",
                    index=part.index,
                    provider=self.provider,
                    fragment=part.arguments,
                ))
            if part.id is not None and part.id != slot.id:
                if slot.id is not None:
                    self._fail(DuplicateIdError(
                        f"tool call index {part.index} already has id {slot.id!r}",
                        call_id=part.id,
                        index=part.index,
                        provider=self.provider,
                    ))
                self._check_unique_id(part.id, part.index)
                slot.id = part.id
            if part.name and not slot.name:
                slot.name = part.name

        if part.arguments:
            slot.fragments.append(part.arguments)
        self._last_target = ("tool", part.index)

    def _check_unique_id(self, call_id: str, index: int) -> None:
        for other in self._tool_slots.values():
            if other.id == call_id:
                self._fail(DuplicateIdError(
                    f"tool call id {call_id!r} already used by index {other.index}",
                    call_id=call_id,
                    index=index,
                    provider=self.provider,
                ))

    def _fail(self, error: ReassemblyError) -> NoReturn:
        self.state = ReassemblerState.FAILED
        self._logger.error("Aborting message reassembly", error=error)
        raise error

    def _finish(self) -> ReassembledMessage:
        self.state = ReassemblerState.ENDED
        content = []
        errors: List[MalformedArgumentsError] = []
        used_ids = {slot.id for slot in self._tool_slots.values() if slot.id}

        for slot in self._slots:
            if isinstance(slot, _TextSlot):
                text = "".join(slot.fragments)
                if text:
                    content.append(TextPart(text=text))
                continue

            raw = "".join(slot.fragments)
            call_id = slot.id
            if not call_id:
                call_id = _fallback_id(slot.index, used_ids)
                used_ids.add(call_id)
                self._logger.warning("Tool call streamed without an id", index=slot.index, assigned=call_id)
            args: Any = {}
            if raw.strip():
                try:
                    args = json.loads(raw)
                except ValueError as e:
                    args = None
                    error = MalformedArgumentsError(
                        f"tool call arguments are not valid JSON: {e}",
                        index=slot.index,
                        call_id=call_id,
                        raw_arguments=raw,
                        provider=self.provider,
                    )
                    errors.append(error)
                    self._logger.warning(
                        "Malformed tool call arguments",
                        index=slot.index,
                        call_id=call_id,
                        raw=raw if get_settings().log_raw_fragments else None,
                    )
            content.append(ToolCallPart(id=call_id, name=slot.name or "", args=args))

        if self._role is None or not content:
            raise MissingData("stream ended without any message content", provider=self.provider, field="content")

        self._result = ReassembledMessage(
            message=Message(role=self._role, content=content),
            errors=errors,
            usage=self._usage,
            finish_reason=self._finish_reason,
            raw_finish_reason=self._raw_finish_reason,
            metadata=dict(self._metadata),
        )
        return self._result


def _fallback_id(index: int, used_ids: Set[str]) -> str:
    """``call_{index}``, suffixed until it collides with no streamed id."""
    call_id = f"call_{index}"
    suffix = 1
    while call_id in used_ids:
        call_id = f"call_{index}_{suffix}"
        suffix += 1
    return call_id


def reassemble(events: Iterable[MessageStreamEvent], provider: Optional[str] = None) -> ReassembledMessage:
    """Fold a complete event sequence into a message.

    Raises:
        MissingData: The sequence has no End event
    """
    reassembler = DeltaReassembler(provider)
    result = reassembler.feed(events)
    if result is None:
        raise MissingData("stream has no End event", provider=provider, field="events")
    return result
