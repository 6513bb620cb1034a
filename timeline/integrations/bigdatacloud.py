# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Reverse geocoding through the BigDataCloud client endpoint."""
import logging
from typing import Any

import httpx

from timeline.config import settings
from timeline.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def format_coordinates(latitude: float, longitude: float) -> str:
    """Raw-coordinate place string used when no name can be resolved."""
    return f"{latitude:.4f}, {longitude:.4f}"


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def build_place_name(data: dict[str, Any], home_country_code: str) -> str | None:
    """Join locality (or city), region and foreign country with commas.

    Fields that are missing or not strings are skipped.
    """
    parts: list[str] = []
    locality = _text(data.get("locality")) or _text(data.get("city"))
    if locality:
        parts.append(locality)
    region = _text(data.get("principalSubdivision"))
    if region:
        parts.append(region)
    country = _text(data.get("countryName"))
    country_code = _text(data.get("countryCode")) or ""
    if country and country_code.upper() != home_country_code.upper():
        parts.append(country)
    return ", ".join(parts) if parts else None


class ReverseGeocoder:
    """Turns coordinates into a short human-readable place name."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        home_country_code: str | None = None,
    ) -> None:
        self.url = url or settings.geocode_url
        self.timeout = timeout if timeout is not None else settings.geocode_timeout
        self.home_country_code = home_country_code or settings.home_country_code
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def lookup(self, latitude: float, longitude: float) -> str | None:
        """Resolve a place name.

        Returns:
            The place name, or None if the service knows nothing usable.

        Raises:
            ExternalServiceError: If the service is unreachable, slow or
                answers with an error status.
        """
        try:
            client = await self._get_client()
            response = await client.get(
                self.url,
                params={
                    "latitude": latitude,
                    "longitude": longitude,
                    "localityLanguage": "en",
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalServiceError(f"Reverse geocoding failed: {e}") from e

        if not isinstance(data, dict):
            return None
        return build_place_name(data, self.home_country_code)

    async def describe(self, latitude: float, longitude: float) -> str:
        """Resolve a place name, falling back to the formatted coordinates."""
        try:
            name = await self.lookup(latitude, longitude)
        except ExternalServiceError as e:
            logger.warning(f"{e}; using raw coordinates")
            name = None
        return name or format_coordinates(latitude, longitude)
