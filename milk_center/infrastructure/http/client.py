"""HTTP adapter for the milk center REST backend.

Every call goes through :meth:`ApiClient.request`, which attaches the bearer
token, converts transport failures, and turns non-success responses into the
exception taxonomy. A ``403`` carrying the access-revocation message tears
the stored session down before anything else sees the response.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from milk_center.config import ACCESS_DENIED_MESSAGE, SETTINGS
from milk_center.domain.errors import AccessDeniedError, ApiError, NetworkError, ValidationApiError
from milk_center.domain.events import EventChannel, EventName
from milk_center.domain.repositories import SessionStore

from .normalize import normalize_identity

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(
        self,
        session_store: SessionStore,
        events: EventChannel,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._store = session_store
        self._events = events
        self._http = httpx.Client(
            base_url=base_url or SETTINGS.api_base_url,
            timeout=timeout if timeout is not None else SETTINGS.request_timeout_seconds,
            transport=transport,
        )

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    @property
    def events(self) -> EventChannel:
        return self._events

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._store.load_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        query = {key: str(value) for key, value in (params or {}).items() if value is not None}
        logger.debug("%s %s params=%s", method, endpoint, query)
        try:
            response = self._http.request(
                method,
                endpoint.lstrip("/"),
                json=json,
                params=query or None,
                headers=self._headers(),
            )
        except httpx.TimeoutException as exc:
            raise NetworkError("Request timed out. Please try again.", status_code=408) from exc
        except httpx.TransportError as exc:
            raise NetworkError("Network error. Please check your connection and try again.") from exc
        logger.debug("%s %s -> %s", method, endpoint, response.status_code)
        return self._handle_response(response)

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, data: Any = None) -> dict[str, Any]:
        return self.request("POST", endpoint, json=data if data is not None else {})

    def put(self, endpoint: str, data: Any) -> dict[str, Any]:
        return self.request("PUT", endpoint, json=data)

    def patch(self, endpoint: str, data: Any = None) -> dict[str, Any]:
        return self.request("PATCH", endpoint, json=data)

    def delete(self, endpoint: str) -> dict[str, Any]:
        return self.request("DELETE", endpoint)

    def health(self) -> bool:
        return bool(self.get("/health").get("success"))

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ApiError(
                "Invalid response format",
                response.status_code or 0,
                {"originalError": str(exc)},
            ) from exc
        if not isinstance(data, dict):
            data = {"data": data}

        if not response.is_success:
            status = response.status_code
            if status == 403 and data.get("message") == ACCESS_DENIED_MESSAGE:
                self._revoke_session(data, status)
                raise AccessDeniedError(data)
            if status == 400 and data.get("errors"):
                raise ValidationApiError(data.get("message") or "Validation failed", data["errors"], data)
            raise ApiError(data.get("message") or "An error occurred", status, data)

        return normalize_identity(data)

    def _revoke_session(self, data: dict[str, Any], status: int) -> None:
        logger.warning("Access revoked by server: %s", data.get("message"))
        # Cleared before subscribers run so their countdown starts logged out.
        self._store.clear()
        self._events.emit(
            EventName.USER_ACCESS_DENIED,
            {
                "message": data.get("message"),
                "status": status,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
