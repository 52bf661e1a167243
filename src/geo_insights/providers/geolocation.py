"""IP geolocation provider.

The default backend is ipgeolocation.io, called over plain `requests` so the
client stays easy to stub in tests.
"""

from __future__ import annotations

import ipaddress
import logging
from abc import ABC, abstractmethod
from typing import Any

import requests

from geo_insights.providers.errors import GeolocationError
from geo_insights.providers.models import Location

logger = logging.getLogger(__name__)

_FIELDS = "country_name,state_prov,city,latitude,longitude,timezone_name,isp"


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value.strip())
    except ValueError:
        return False
    return True


def _float(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


class GeolocationProvider(ABC):
    """Resolve an IP address to a `Location`."""

    @abstractmethod
    def locate(self, ip: str) -> Location:
        """Raise `GeolocationError` when the IP cannot be resolved."""
        pass


class IPGeolocationClient(GeolocationProvider):
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.ipgeolocation.io",
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("IPGEOLOCATION_API_KEY is required")
        self._api_key = api_key
        self._url = base_url.rstrip("/") + "/ipgeo"
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "geo-insights"})

    def locate(self, ip: str) -> Location:
        ip = ip.strip()
        if not is_valid_ip(ip):
            raise GeolocationError(f"Invalid IP address: {ip}")

        try:
            resp = self._session.get(
                self._url,
                params={"apiKey": self._api_key, "ip": ip, "fields": _FIELDS},
                timeout=self._timeout_seconds,
            )
            data: Any = resp.json() if resp.content else {}
            if isinstance(data, dict) and data.get("message"):
                raise GeolocationError(f"Geolocation API error: {data['message']}")
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.exception("Geolocation request failed", extra={"ip": ip})
            raise GeolocationError(f"Failed to get location for IP {ip}: {e}") from e
        except ValueError as e:
            raise GeolocationError(f"Failed to get location for IP {ip}: invalid response") from e

        if not isinstance(data, dict):
            raise GeolocationError(f"Failed to get location for IP {ip}: unexpected payload")

        location = Location(
            ip=ip,
            country=data.get("country_name") or "Unknown",
            region=data.get("state_prov") or "Unknown",
            city=data.get("city") or "Unknown",
            latitude=_float(data.get("latitude")),
            longitude=_float(data.get("longitude")),
            timezone=data.get("timezone_name") or "UTC",
            isp=data.get("isp") or None,
        )
        logger.info(
            "Resolved IP location",
            extra={"ip": ip, "city": location.city, "country": location.country},
        )
        return location

    def close(self) -> None:
        self._session.close()
