"""Async JSON client for the marketplace REST API.

Responses arrive wrapped in an envelope::

    {"success": true, "message": "...", "data": {...}, "code": "...", "errors": [...]}

``ApiClient`` returns the unwrapped ``data`` and raises the matching
``PromoError`` for everything else.
"""

from __future__ import annotations

from typing import Any

import httpx
import logfire

from promo.common.errors import (
    ApiError,
    NetworkError,
    error_from_response,
)
from promo.common.retry import RetryConfig, call_with_retry


class ApiClient:
    """Thin wrapper around ``httpx.AsyncClient`` with envelope handling.

    Usage:
        async with ApiClient(settings.api_base_url, token=token) as api:
            data = await api.get("/wallet")

    GET requests are retried on transient failures, POST requests never are.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 25.0,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self.retry = retry or RetryConfig()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    @property
    def token(self) -> str | None:
        return self._token

    async def get(self, url: str, *, params: dict[str, Any] | None = None) -> Any:
        """GET ``url`` and return the envelope's ``data``.

        ``url`` may be relative to the base URL or absolute (other hosts).
        """
        return await call_with_retry(
            lambda: self._request("GET", url, params=params),
            self.retry,
            name=f"GET {url}",
        )

    async def post(self, url: str, *, json: dict[str, Any] | None = None) -> Any:
        """POST ``json`` to ``url`` once and return the envelope's ``data``."""
        return await self._request("POST", url, json=json)

    def _owns(self, url: str) -> bool:
        """True when ``url`` points at the marketplace host, not a third party."""
        target = httpx.URL(url)
        return target.is_relative_url or target.host == self._client.base_url.host

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        headers = {}
        if self._token and self._owns(url):
            headers["Authorization"] = f"Bearer {self._token}"

        with logfire.span("api_request", method=method, url=url) as span:
            try:
                response = await self._client.request(
                    method, url, headers=headers, **kwargs
                )
            except httpx.TimeoutException as e:
                raise NetworkError("The request timed out. Try again.") from e
            except httpx.TransportError as e:
                raise NetworkError() from e
            except httpx.HTTPError as e:
                # Undecodable bodies, redirect loops
                raise NetworkError() from e

            span.set_attribute("http.status_code", response.status_code)
            payload = _decode(response)

            if response.is_error or (
                isinstance(payload, dict) and payload.get("success") is False
            ):
                error = error_from_response(response.status_code, payload)
                logfire.warning(
                    "api_request_failed",
                    method=method,
                    url=url,
                    status_code=response.status_code,
                    error_type=type(error).__name__,
                    code=error.code,
                    error=error.message,
                )
                raise error

            if isinstance(payload, dict) and "data" in payload:
                return payload["data"]
            if payload is None and response.content:
                raise ApiError(
                    "Unexpected response from server.",
                    status_code=response.status_code,
                )
            return payload


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
