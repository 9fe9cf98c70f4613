"""HTTP client for the restaurant REST backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from goha_pos.config import API_BASE_URL, API_DEFAULT_HEADERS, API_TIMEOUT_SECONDS
from goha_pos.constant import MSG_NETWORK_ERROR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    """The ``{success, data, message}`` envelope every call resolves to."""

    success: bool
    data: Any = None
    message: str = ""
    status_code: int = 0

    @property
    def ok(self) -> bool:
        return self.success and 200 <= self.status_code < 300


class ApiClient:
    """Thin wrapper over ``httpx.Client`` adding the bearer token and envelope parsing.

    ``request`` never raises for transport or HTTP failures; those come back
    as ``ApiResponse(success=False)`` so callers can fall back to local data.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token_provider: Callable[[], str] | None = None,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider or (lambda: "")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=API_DEFAULT_HEADERS,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> ApiResponse:
        try:
            response = self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return ApiResponse(success=False, message=str(exc) or MSG_NETWORK_ERROR)

        body = _parse_body(response)
        if not response.is_success:
            message = ""
            if isinstance(body, dict):
                message = str(body.get("message") or "")
            message = message or response.reason_phrase or MSG_NETWORK_ERROR
            logger.warning("%s %s -> HTTP %s: %s", method, path, response.status_code, message)
            return ApiResponse(success=False, data=body, message=message, status_code=response.status_code)

        if isinstance(body, dict) and "success" in body:
            return ApiResponse(
                success=bool(body.get("success")),
                data=body.get("data"),
                message=str(body.get("message") or ""),
                status_code=response.status_code,
            )
        # Bare arrays and envelope-less objects are treated as data.
        return ApiResponse(success=True, data=body, status_code=response.status_code)

    def get(self, path: str, **params: Any) -> ApiResponse:
        return self.request("GET", path, params=params or None)

    def post(self, path: str, payload: Any) -> ApiResponse:
        return self.request("POST", path, json=payload)

    def put(self, path: str, payload: Any) -> ApiResponse:
        return self.request("PUT", path, json=payload)

    def patch(self, path: str, payload: Any = None) -> ApiResponse:
        return self.request("PATCH", path, json=payload)

    def delete(self, path: str) -> ApiResponse:
        return self.request("DELETE", path)


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
