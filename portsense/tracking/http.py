"""HTTP tracking provider — polls a marine tracking REST API per container."""

from __future__ import annotations

import datetime
from typing import Any

import httpx
import structlog

from portsense.core.config import TrackingConfig, get_settings
from portsense.core.types import ProviderLocation, ProviderSnapshot
from portsense.tracking.base import TrackingProvider
from portsense.tracking.exceptions import (
    TrackingConnectionError,
    TrackingParseError,
    TrackingTimeoutError,
)

logger = structlog.stdlib.get_logger()


def _parse_tracking_response(data: dict[str, Any]) -> ProviderSnapshot:
    """Parse a marine API container response into a ProviderSnapshot.

    Expected structure::

        {
            "container_id": "MSCU1234567",
            "vessel": {"name": "MAERSK CHICAGO", "imo": "9778286"},
            "location": {"latitude": 1.29, "longitude": 103.85,
                         "port": "Port of Singapore", "country": "Singapore"},
            "status": "In Transit",
            "eta": "2026-10-21T08:00:00Z",
            "last_port": "Port Klang",
            "next_port": "Rotterdam"
        }
    """
    location = data.get("location")
    if not isinstance(location, dict):
        raise TrackingParseError("response has no location object")

    status = data.get("status")
    if not isinstance(status, str) or not status:
        raise TrackingParseError("response has no status")

    try:
        lat = float(location["latitude"])
        lon = float(location["longitude"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TrackingParseError("location has invalid coordinates") from exc

    raw_eta = data.get("eta")
    if not isinstance(raw_eta, str):
        raise TrackingParseError("response has no eta")
    try:
        eta = datetime.datetime.fromisoformat(raw_eta)
    except ValueError as exc:
        raise TrackingParseError(f"invalid eta {raw_eta!r}") from exc
    if eta.tzinfo is None:
        eta = eta.replace(tzinfo=datetime.UTC)

    vessel = data.get("vessel")
    vessel_name = str(vessel.get("name", "")) if isinstance(vessel, dict) else ""

    return ProviderSnapshot(
        status=status,
        location=ProviderLocation(lat=lat, lon=lon, name=str(location.get("port", ""))),
        eta=eta,
        last_port=str(data.get("last_port", "")),
        next_port=str(data.get("next_port", "")),
        vessel=vessel_name,
    )


class HttpTrackingProvider(TrackingProvider):
    """Looks containers up with ``GET {base_url}/containers/{id}``.

    A 404 means the provider does not know the container; any other
    non-2xx status or transport failure raises a TrackingError.
    """

    def __init__(
        self,
        config: TrackingConfig | None = None,
        timeout_secs: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or get_settings().tracking
        self._timeout_secs = timeout_secs
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    async def connect(self) -> None:
        """Create the httpx async client."""
        headers = {"Accept": "application/json"}
        api_key = self._config.api_key.get_secret_value()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=headers,
            timeout=httpx.Timeout(self._timeout_secs),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def track(self, container_id: str) -> ProviderSnapshot | None:
        if self._http is None:
            raise TrackingConnectionError("HTTP client not connected")

        try:
            response = await self._http.get(f"/containers/{container_id}")
        except httpx.TimeoutException as exc:
            raise TrackingTimeoutError(
                f"tracking request timed out for {container_id}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TrackingConnectionError(
                f"tracking request failed for {container_id}: {exc}"
            ) from exc

        if response.status_code == 404:
            return None
        if response.is_error:
            raise TrackingConnectionError(
                f"tracking API returned {response.status_code} for {container_id}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TrackingParseError(
                f"tracking API returned invalid JSON for {container_id}"
            ) from exc

        if not isinstance(body, dict):
            raise TrackingParseError(
                f"tracking API returned non-object for {container_id}"
            )

        return _parse_tracking_response(body)
