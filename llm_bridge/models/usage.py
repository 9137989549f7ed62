"""Canonical token usage record."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Usage(BaseModel):
    """
    Token accounting for one request, normalized across providers.

    Fields a provider did not report stay None; they are never defaulted to
    zero. ``total_tokens`` is derived from the prompt and completion counts
    and any value passed in for it is replaced.
    """
    model_config = ConfigDict(extra="forbid")

    prompt_tokens: Optional[int] = Field(None, ge=0, description="Tokens consumed by the input")
    completion_tokens: Optional[int] = Field(None, ge=0, description="Tokens generated, including reasoning tokens")
    total_tokens: Optional[int] = Field(None, description="prompt_tokens + completion_tokens")
    cache_read_tokens: Optional[int] = Field(None, ge=0, description="Input tokens served from a prompt cache")
    cache_creation_tokens: Optional[int] = Field(None, ge=0, description="Input tokens written to a prompt cache")
    reasoning_tokens: Optional[int] = Field(None, ge=0, description="Completion tokens spent on hidden reasoning")
    ext: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific extras (timings, cost, raw details)")

    @model_validator(mode="after")
    def _recompute_total(self) -> "Usage":
        if self.prompt_tokens is None and self.completion_tokens is None:
            total = None
        else:
            total = (self.prompt_tokens or 0) + (self.completion_tokens or 0)
        self.total_tokens = total
        return self

    def merged_with(self, newer: Optional["Usage"]) -> "Usage":
        """
        Overlay a later usage report on this one.

        Streaming providers report usage cumulatively across several events;
        fields present in ``newer`` win, absent ones keep their earlier value.
        """
        if newer is None:
            return self
        data = self.model_dump(exclude={"total_tokens"})
        for key, value in newer.model_dump(exclude={"total_tokens", "ext"}).items():
            if value is not None:
                data[key] = value
        data["ext"] = {**self.ext, **newer.ext}
        return Usage(**data)
