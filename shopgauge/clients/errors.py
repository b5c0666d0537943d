"""
shopgauge/clients/errors.py

Error hierarchy for ShopGauge API failures.
"""

from __future__ import annotations

from typing import Any


class ApiError(RuntimeError):
    """
    Base class for every failure talking to the ShopGauge API.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.url = url


class AuthenticationRequiredError(ApiError):
    """
    The session cookie is missing or expired (HTTP 401).
    """


class PermissionDeniedError(ApiError):
    """
    The store granted insufficient Shopify scopes; re-authentication needed.
    """


class NotFoundError(ApiError):
    """
    The requested resource does not exist (HTTP 404).
    """


class RateLimitedError(ApiError):
    """
    The API or Shopify rate-limited the request (HTTP 429).
    """


class ServiceUnavailableError(ApiError):
    """
    The API is down, timed out, or answered with a 5xx status.
    """


class ApiRequestError(ApiError):
    """
    Any other non-success response or an undecodable body.
    """
