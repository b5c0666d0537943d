"""
Shared pydantic configuration for DTOs mirrored from the ShopGauge API.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    Base DTO accepting both the server's camelCase keys and snake_case names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SnakeApiModel(BaseModel):
    """
    Base DTO for endpoints that already answer in snake_case.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class AnalyticsEnvelope(SnakeApiModel):
    """
    Fields every analytics endpoint may attach to its payload.
    """

    error: str | None = None
    error_code: str | None = None
    rate_limited: bool = False

    @property
    def needs_reauthentication(self) -> bool:
        if self.error_code == "INSUFFICIENT_PERMISSIONS":
            return True
        return bool(self.error and "re-authentication" in self.error)
