"""Free-text address lookup through Nominatim."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...models.domain import Coordinates

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._transport = transport

    def geocode(self, address: str) -> Coordinates | None:
        """Return the best match for ``address``, or None when there is none.

        Lookup failures are logged and reported as no match.
        """
        query = address.strip()
        if not query:
            return None

        params = {"format": "json", "q": query, "limit": 1, "addressdetails": 1}
        headers = {"User-Agent": self.user_agent}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(f"{self.base_url}/search", params=params, headers=headers)
                response.raise_for_status()
                results = response.json()
            if not results:
                return None
            best = results[0]
            return Coordinates(latitude=float(best["lat"]), longitude=float(best["lon"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError, IndexError) as exc:
            logger.error(f"Geocoding failed for '{query[:40]}': {exc}")
            return None
