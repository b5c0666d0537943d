"""
shopgauge/schemas/privacy.py

Privacy-rights DTOs (compliance report, deletion, export).
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from shopgauge.schemas.base import SnakeApiModel


class ComplianceReport(SnakeApiModel):
    model_config = SnakeApiModel.model_config | {"extra": "allow"}

    detailed_compliance: dict[str, str] = Field(default_factory=dict)
    privacy_policy_summary: dict[str, str] = Field(default_factory=dict)


class DataDeletionResult(SnakeApiModel):
    status: str = ""
    customer_id: str = ""
    completed_at: str | None = None
    message: str = ""


class DataExport(SnakeApiModel):
    model_config = SnakeApiModel.model_config | {"extra": "allow"}

    export_timestamp: str | None = None
    shop: str | None = None
    export_type: str | None = None
    shop_information: dict[str, Any] = Field(default_factory=dict)
