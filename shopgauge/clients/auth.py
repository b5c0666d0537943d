"""
shopgauge/clients/auth.py

Shopify OAuth and store-session endpoints.
"""

from __future__ import annotations

from urllib.parse import urlencode

from shopgauge.clients.base import BaseApiClient
from shopgauge.schemas.auth import AuthStatus, RefreshResult


class AuthClient(BaseApiClient):
    """
    Client for `/auth/shopify/*`.
    """

    def login_url(self, shop: str) -> str:
        """
        URL the browser must visit to start the Shopify OAuth install flow.
        """

        return f"{self.url('/auth/shopify/login')}?{urlencode({'shop': shop})}"

    def me(self) -> AuthStatus:
        payload = self._request_json(method="GET", path="/auth/shopify/me")
        if isinstance(payload, str):
            # Older deployments answer with the bare shop domain.
            shop = payload.strip() or None
            return AuthStatus(shop=shop, authenticated=shop is not None)
        return self._parse(AuthStatus, payload)

    def refresh(self) -> RefreshResult:
        payload = self._request_json(method="POST", path="/auth/shopify/refresh")
        return self._parse(RefreshResult, payload if isinstance(payload, dict) else {})

    def disconnect(self) -> None:
        self._request_json(method="POST", path="/auth/shopify/profile/disconnect")
        self.clear_shop_cookie()
