"""
shopgauge/clients/competitors.py

Competitor tracking, suggestion review and discovery endpoints.
"""

from __future__ import annotations

from shopgauge.clients.base import BaseApiClient
from shopgauge.schemas.competitors import (
    Competitor,
    CompetitorSuggestion,
    DiscoveryStats,
    SuggestionCount,
    SuggestionPage,
    SuggestionStatus,
)


class CompetitorsClient(BaseApiClient):
    """
    Client for `/competitors/*`.
    """

    def list_competitors(self) -> list[Competitor]:
        payload = self._request_json(method="GET", path="/competitors")
        rows = payload if isinstance(payload, list) else []
        return [self._parse(Competitor, row) for row in rows]

    def add_competitor(self, url: str, product_id: str) -> Competitor:
        payload = self._request_json(
            method="POST",
            path="/competitors",
            json={"url": url, "productId": product_id},
        )
        return self._parse(Competitor, payload)

    def delete_competitor(self, competitor_id: str) -> None:
        self._request_json(method="DELETE", path=f"/competitors/{competitor_id}")

    def list_suggestions(
        self,
        *,
        page: int = 0,
        size: int = 10,
        status: SuggestionStatus = "NEW",
    ) -> SuggestionPage:
        payload = self._request_json(
            method="GET",
            path="/competitors/suggestions",
            params={"page": page, "size": size, "status": status},
        )
        if isinstance(payload, list):
            suggestions = [self._parse(CompetitorSuggestion, row) for row in payload]
            return SuggestionPage(
                content=suggestions,
                total_elements=len(suggestions),
                total_pages=1,
                size=len(suggestions),
            )
        return self._parse(SuggestionPage, payload)

    def suggestion_count(self) -> SuggestionCount:
        payload = self._request_json(method="GET", path="/competitors/suggestions/count")
        return self._parse(SuggestionCount, payload)

    def refresh_suggestion_count(self) -> SuggestionCount:
        payload = self._request_json(method="POST", path="/competitors/suggestions/refresh-count")
        return self._parse(SuggestionCount, payload)

    def approve_suggestion(self, suggestion_id: int) -> str:
        payload = self._request_json(
            method="POST", path=f"/competitors/suggestions/{suggestion_id}/approve"
        )
        return _message(payload, "Suggestion approved and now being tracked")

    def ignore_suggestion(self, suggestion_id: int) -> str:
        payload = self._request_json(
            method="POST", path=f"/competitors/suggestions/{suggestion_id}/ignore"
        )
        return _message(payload, "Suggestion ignored")

    def trigger_discovery(self, shop_id: int | None = None) -> str:
        path = "/competitors/discovery/trigger"
        if shop_id is not None:
            path = f"{path}/{shop_id}"
        payload = self._request_json(method="POST", path=path)
        return _message(payload, "Discovery triggered")

    def discovery_stats(self) -> DiscoveryStats:
        payload = self._request_json(method="GET", path="/competitors/discovery/stats")
        return self._parse(DiscoveryStats, payload if isinstance(payload, dict) else {})


def _message(payload: object, default: str) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return default
