"""
shopgauge/clients/base.py

Base API client and shared HTTP mechanics.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from shopgauge.clients.errors import (
    ApiError,
    ApiRequestError,
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ServiceUnavailableError,
)
from shopgauge.config import ApiSettings

logger = logging.getLogger(__name__)

SHOP_COOKIE = "shop"
LOGIN_REQUIRED_MESSAGE = "Please log in to continue"
DEFAULT_ERROR_MESSAGE = "API request failed"
UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from the ShopGauge service."

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def build_session() -> requests.Session:
    """
    Create a session carrying the JSON headers every endpoint expects.
    """

    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    return session


def error_message(payload: Any) -> str:
    """
    Pick the most useful human-readable message from an error body.
    """

    if isinstance(payload, dict):
        for key in ("error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return DEFAULT_ERROR_MESSAGE
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return DEFAULT_ERROR_MESSAGE


class BaseApiClient:
    """
    Cookie-authenticated JSON client for one area of the ShopGauge API.
    """

    def __init__(
        self,
        *,
        settings: ApiSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or build_session()
        self._timeout_seconds = settings.timeout_seconds

    @property
    def session(self) -> requests.Session:
        return self._session

    def url(self, path: str) -> str:
        """
        Resolve an API path such as `/competitors` to an absolute URL.
        """

        if path.startswith(("http://", "https://")):
            return path
        return f"{self._settings.base_url}{self._settings.api_prefix}/{path.lstrip('/')}"

    def clear_shop_cookie(self) -> None:
        """
        Forget the shop cookie so stale auth state is not replayed.
        """

        self._session.cookies.set(SHOP_COOKIE, None)

    def set_shop_cookie(self, shop: str) -> None:
        """
        Carry the shop cookie the browser received at the end of OAuth.
        """

        self._session.cookies.set(SHOP_COOKIE, shop)

    def shop_cookie(self) -> str | None:
        return self._session.cookies.get(SHOP_COOKIE)

    def _parse(self, model: type[ModelT], payload: Any) -> ModelT:
        """
        Validate a decoded body against `model`.

        Raises:
            ApiRequestError: If the body does not match the expected shape.
        """

        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.error(
                "API response did not match %s errors=%s",
                model.__name__,
                exc.error_count(),
            )
            raise ApiRequestError(UNEXPECTED_RESPONSE_MESSAGE, payload=payload) from exc

    def _request_json(
        self,
        *,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Execute a request and return the decoded body.

        JSON bodies are parsed; anything else is returned as text.
        """

        response = self._request(method=method, path=path, params=params, json=json)
        return self._decode(response)

    def _request(
        self,
        *,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> requests.Response:
        """
        Execute one HTTP request and map failures to `ApiError` subclasses.
        """

        url = self.url(path)
        logger.debug("API request method=%s url=%s", method, url)
        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=DEFAULT_HEADERS,
                timeout=self._timeout_seconds,
            )
        except requests.Timeout as exc:
            logger.warning("API request timed out method=%s url=%s", method, url)
            raise ServiceUnavailableError(
                "The ShopGauge service did not respond in time.", url=url
            ) from exc
        except requests.ConnectionError as exc:
            logger.warning("API connection failed method=%s url=%s error=%s", method, url, exc)
            raise ServiceUnavailableError(
                "The ShopGauge service is unreachable.", url=url
            ) from exc

        if not response.ok:
            raise self._error_for(response, url=url)
        return response

    def _error_for(self, response: requests.Response, *, url: str) -> ApiError:
        status_code = response.status_code
        payload = self._decode(response, strict=False)
        message = error_message(payload)
        logger.error(
            "API error response status=%s url=%s message=%s",
            status_code,
            url,
            message,
        )

        if status_code == 401:
            self.clear_shop_cookie()
            return AuthenticationRequiredError(
                LOGIN_REQUIRED_MESSAGE, status_code=status_code, payload=payload, url=url
            )
        if status_code == 403 or _needs_reauthentication(payload):
            return PermissionDeniedError(message, status_code=status_code, payload=payload, url=url)
        if status_code == 404:
            return NotFoundError(message, status_code=status_code, payload=payload, url=url)
        if status_code == 429:
            return RateLimitedError(message, status_code=status_code, payload=payload, url=url)
        if status_code >= 500:
            return ServiceUnavailableError(message, status_code=status_code, payload=payload, url=url)
        return ApiRequestError(message, status_code=status_code, payload=payload, url=url)

    @staticmethod
    def _decode(response: requests.Response, *, strict: bool = True) -> Any:
        content_type = (response.headers.get("content-type") or "").lower()
        if "application/json" not in content_type:
            return response.text
        try:
            return response.json()
        except ValueError as exc:
            if not strict:
                return response.text
            raise ApiRequestError(
                "Response was not valid JSON.",
                status_code=response.status_code,
                payload=response.text,
                url=response.url,
            ) from exc


def _needs_reauthentication(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get("error_code") == "INSUFFICIENT_PERMISSIONS":
        return True
    error = payload.get("error")
    return isinstance(error, str) and "re-authentication" in error
