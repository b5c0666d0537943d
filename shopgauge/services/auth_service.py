"""
shopgauge/services/auth_service.py

Store login, token refresh and disconnect for the Profile page.
"""

from __future__ import annotations

import logging

from shopgauge.cache import DashboardCache
from shopgauge.clients.auth import AuthClient
from shopgauge.clients.errors import ApiError
from shopgauge.notifications import NotificationCenter
from shopgauge.schemas.auth import AuthStatus
from shopgauge.shop_domain import normalize_shop_domain

logger = logging.getLogger(__name__)

AUTH_CATEGORY = "Authentication"

INVALID_SHOP_MESSAGE = "Please enter a valid Shopify store domain"
REFRESH_OK_MESSAGE = "Token refreshed successfully"
REFRESH_FAILED_MESSAGE = "Failed to refresh token. Please try logging in again."
DISCONNECT_OK_MESSAGE = "Shop disconnected successfully"
DISCONNECT_FAILED_MESSAGE = "Failed to disconnect shop"


class AuthService:
    def __init__(
        self,
        *,
        client: AuthClient,
        cache: DashboardCache,
        notifications: NotificationCenter,
    ) -> None:
        self._client = client
        self._cache = cache
        self._notifications = notifications
        self.status: AuthStatus | None = None

    def login_url(self, shop_input: str) -> str:
        """
        OAuth install URL for the store the merchant typed in.

        Raises:
            ValueError: If the input is not a Shopify store domain.
        """

        shop = normalize_shop_domain(shop_input)
        if shop is None:
            raise ValueError(INVALID_SHOP_MESSAGE)
        return self._client.login_url(shop)

    def adopt_shop(self, shop: str | None) -> str | None:
        """
        Carry the shop the browser was handed at the end of OAuth (cookie or
        `?shop=` redirect parameter) into this session's API cookie jar.

        Returns the normalised shop, or None when `shop` is not a store.
        """

        normalized = normalize_shop_domain(shop)
        if normalized is None:
            return None
        if self._client.shop_cookie() != normalized:
            self._client.set_shop_cookie(normalized)
            logger.info("Adopted browser shop cookie shop=%s", normalized)
        return normalized

    def current_shop(self) -> str | None:
        try:
            self.status = self._client.me()
        except ApiError as exc:
            logger.info("No authenticated shop: %s", exc)
            self.status = None
            return None
        if not self.status.authenticated:
            return None
        return self.status.shop

    def refresh_token(self) -> bool:
        try:
            result = self._client.refresh()
        except ApiError as exc:
            logger.warning("Token refresh failed: %s", exc)
            self._notifications.error(REFRESH_FAILED_MESSAGE, category=AUTH_CATEGORY)
            return False

        if not result.success:
            logger.warning("Token refresh rejected: %s", result.error or result.message)
            self._notifications.error(REFRESH_FAILED_MESSAGE, category=AUTH_CATEGORY)
            return False

        self._notifications.success(REFRESH_OK_MESSAGE, category=AUTH_CATEGORY)
        return True

    def disconnect(self, shop: str | None) -> bool:
        try:
            self._client.disconnect()
        except ApiError as exc:
            logger.error("Disconnect failed for shop=%s: %s", shop, exc)
            self._notifications.error(DISCONNECT_FAILED_MESSAGE, category=AUTH_CATEGORY)
            return False

        if shop:
            self._cache.invalidate(shop)
        self.status = None
        self._notifications.success(DISCONNECT_OK_MESSAGE, category=AUTH_CATEGORY)
        return True

    def logout(self, shop: str | None) -> None:
        """
        Forget the local session without contacting the API.
        """

        self._client.clear_shop_cookie()
        if shop:
            self._cache.invalidate(shop)
        self.status = None
