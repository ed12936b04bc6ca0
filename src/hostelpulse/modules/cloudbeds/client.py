"""Cloudbeds reservations API client (bulk list + single reservation detail)."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from hostelpulse.config import get_env, get_section
from hostelpulse.errors import AuthError, NetworkError, NotFoundError, RemoteError, RequestTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.cloudbeds.com/api/v1.3"


def format_api_datetime(day: date, end_of_day: bool = False) -> str:
    """``2026-01-05 00:00:00`` for window starts, ``2026-01-11 23:59:59`` for ends."""
    return f"{day.isoformat()} {'23:59:59' if end_of_day else '00:00:00'}"


class CloudbedsClient:
    """Async client for the Cloudbeds reservation endpoints.

    Use as an async context manager so the connection pool is closed.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = get_section("cloudbeds")
        self.api_key = api_key if api_key is not None else get_env("CLOUDBEDS_API_KEY")
        self.base_url = (
            base_url or get_env("CLOUDBEDS_API_BASE_URL") or config.get("base_url") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.timeout = float(timeout if timeout is not None else config.get("timeout_seconds", 10))
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=transport)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def __aenter__(self) -> CloudbedsClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_reservations(self, property_id: str, start: date, end: date) -> list[dict[str, Any]]:
        """All reservations of a property created in ``[start 00:00:00, end 23:59:59]``."""
        params = {
            "propertyID": property_id,
            "resultsFrom": format_api_datetime(start),
            "resultsTo": format_api_datetime(end, end_of_day=True),
        }
        logger.info("Fetching reservations for property %s (%s to %s)", property_id, start, end)
        payload = await self._get("/getReservations", params, not_found=f"Property ID {property_id} not found")
        records = payload.get("data") or []
        logger.info("Property %s: %d reservations returned", property_id, len(records))
        return records

    async def get_reservation(self, property_id: str, reservation_id: str) -> dict[str, Any]:
        """Full detail of one reservation, including the net/tax breakdown."""
        params = {"propertyID": property_id, "reservationID": reservation_id}
        logger.debug("Fetching detail for reservation %s", reservation_id)
        payload = await self._get(
            "/getReservation", params, not_found=f"Reservation {reservation_id} not found"
        )
        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteError("Invalid API response structure", code="invalid_response")
        return data

    async def _get(self, path: str, params: dict[str, str], *, not_found: str) -> dict[str, Any]:
        if not self.is_configured:
            raise AuthError("Cloudbeds API key not configured. Set CLOUDBEDS_API_KEY in .env.")

        try:
            resp = await self._client.get(
                f"{self.base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.TimeoutException as exc:
            logger.error("Cloudbeds %s timed out after %.0fs", path, self.timeout)
            raise RequestTimeoutError(f"Request timeout after {self.timeout:.0f}s") from exc
        except httpx.HTTPError as exc:
            logger.error("Cloudbeds %s network error: %s", path, exc)
            raise NetworkError() from exc

        if resp.status_code in (401, 403):
            raise AuthError("Invalid API key. Check CLOUDBEDS_API_KEY in .env.")
        if resp.status_code == 404:
            raise NotFoundError(not_found)
        if not resp.is_success:
            raise RemoteError(f"Cloudbeds API error: {resp.status_code} {resp.reason_phrase}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise RemoteError("Malformed response from Cloudbeds API", code="invalid_response") from exc
        if not isinstance(payload, dict) or not payload.get("success"):
            raise RemoteError("Invalid response from Cloudbeds API", code="invalid_response")
        return payload
