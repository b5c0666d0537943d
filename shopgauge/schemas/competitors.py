"""
shopgauge/schemas/competitors.py

Competitor tracking and discovery suggestion DTOs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator, model_validator

from shopgauge.schemas.base import ApiModel

SuggestionStatus = Literal["NEW", "APPROVED", "IGNORED"]


class Competitor(ApiModel):
    """
    One tracked competitor product URL with its latest price snapshot.
    """

    id: str
    url: str
    label: str = ""
    price: float = 0.0
    in_stock: bool = False
    percent_diff: float = 0.0
    last_checked: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)

    @model_validator(mode="after")
    def _default_label(self) -> "Competitor":
        if not self.label:
            self.label = self.url
        return self


class CompetitorSuggestion(ApiModel):
    """
    A competitor URL found by server-side discovery, awaiting merchant review.
    """

    id: int
    suggested_url: str
    title: str = ""
    price: float | None = None
    source: str = ""
    discovered_at: datetime | None = None
    status: SuggestionStatus = "NEW"

    @field_validator("status", mode="before")
    @classmethod
    def _upper_status(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class SuggestionCount(ApiModel):
    new_suggestions: int = Field(default=0, ge=0)


class SuggestionPage(ApiModel):
    """
    Spring-style page of suggestions.
    """

    content: list[CompetitorSuggestion] = Field(default_factory=list)
    total_elements: int = 0
    total_pages: int = 0
    number: int = 0
    size: int = 0


class DiscoveryStats(ApiModel):
    """
    Discovery service statistics; shape varies by search provider.
    """

    model_config = ApiModel.model_config | {"extra": "allow"}
