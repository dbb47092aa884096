"""
Geolocation from the host's public IP address (ip-api.com).
"""

from __future__ import annotations

import requests
import structlog

from ..domain.entities import Location
from ..infra.exceptions import GeolocationUnavailable

logger = structlog.get_logger(__name__)

DEFAULT_GEOLOCATION_URL = "http://ip-api.com/json/?fields=status,message,lat,lon"


class IpGeolocator:
    """Resolve the process's location from its public network address."""

    def __init__(self, url: str = DEFAULT_GEOLOCATION_URL, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def locate(self) -> Location:
        """
        Query the geolocation service.

        Raises:
            GeolocationUnavailable: on network, HTTP or decoding failure, or
                when the service reports it could not place the address.
        """
        logger.debug("geolocation_lookup", url=self.url)
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise GeolocationUnavailable(f"Failed to fetch geolocation: {exc}") from exc
        except ValueError as exc:
            raise GeolocationUnavailable(f"Failed to parse geolocation response: {exc}") from exc

        if not isinstance(data, dict):
            raise GeolocationUnavailable("Unexpected geolocation response")
        status = data.get("status", "success")
        if status != "success":
            raise GeolocationUnavailable(f"Geolocation lookup failed: {data.get('message', status)}")

        try:
            location = Location(latitude=float(data["lat"]), longitude=float(data["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeolocationUnavailable(f"Invalid coordinates in geolocation response: {exc}") from exc

        logger.info("geolocation_resolved", latitude=round(location.latitude, 4), longitude=round(location.longitude, 4))
        return location
