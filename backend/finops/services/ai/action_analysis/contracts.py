"""Action analysis contracts: request, parsed actions and result."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from finops.schemas.customer import CustomerSummary


class AnalysisRequest(BaseModel):
    """A customer utterance to route to finance actions."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1, max_length=10000)
    special_prompt: Optional[str] = Field(
        default=None,
        max_length=4000,
        validation_alias=AliasChoices("special_prompt", "specialPrompt"),
    )
    model: Optional[str] = None
    max_tokens: Optional[int] = Field(
        default=None,
        gt=0,
        le=32000,
        validation_alias=AliasChoices("max_tokens", "maxTokens"),
    )
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    customer_identifier: str = Field(
        ...,
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("customer_identifier", "customerIdentifier", "customerNo"),
    )

    @field_validator("content", "customer_identifier")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class ParsedAction(BaseModel):
    code: str
    parameters: dict[str, Any] = {}


class DateRange(BaseModel):
    """Concrete date range derived from the user's own wording."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(serialization_alias="startDate")
    end_date: str = Field(serialization_alias="endDate")
    is_relative: bool = Field(default=True, serialization_alias="isRelative")
    relative_days: int = Field(serialization_alias="relativeDays")

    def as_hint(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ResolvedReply(BaseModel):
    """Outcome of resolving one raw model reply, before customer context is attached."""

    text: str
    actions: list[ParsedAction] = []
    selected_actions: list[str]
    date_range: Optional[DateRange] = None
    used_fallback: bool = False


class AnalysisResult(BaseModel):
    reconciled_text: str
    original_content: str
    selected_actions: list[str]
    customer_summary: CustomerSummary
    actions: list[ParsedAction] = []
    date_range: Optional[DateRange] = None
    used_fallback: bool = False
    provider: str = ""
    model: str = ""
    latency_ms: float = 0.0
