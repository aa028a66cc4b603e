"""HTTP client for OpenRouteService heavy-goods-vehicle directions."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from .exceptions import ProviderError

PROVIDER_NAME = "openrouteservice"
HGV_PROFILE = "driving-hgv"

logger = logging.getLogger(__name__)


class OpenRouteServiceClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        language: str = "en",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.ors_api_key
        if not self.api_key:
            raise ValueError("OpenRouteService API key is not configured.")
        self.base_url = (base_url or settings.ors_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self.language = language
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    def directions(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Request a truck route through the given (lat, lon) waypoints.

        Distances in the answer are kilometers (``units=km``), durations seconds,
        and ``routes[0].geometry`` is an encoded polyline.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OpenRouteService directions.")

        body = {
            "coordinates": [[lon, lat] for lat, lon in coordinates],
            "instructions": True,
            "geometry": True,
            "units": "km",
            "language": self.language,
        }
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        url = f"{self.base_url}/v2/directions/{HGV_PROFILE}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=body, headers=headers)
                    response.raise_for_status()
                    data = response.json()
                    if not isinstance(data, dict):
                        raise ValueError("OpenRouteService returned an unexpected response body.")
                    if not data.get("routes"):
                        raise ValueError("No truck route found.")
                    return data
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    # 429 is the per-minute quota; it is the only 4xx worth retrying.
                    if status_code == 429 or status_code >= 500:
                        attempt += 1
                        if attempt <= self.max_retries:
                            time.sleep(self.backoff_seconds * attempt)
                            continue
                    raise ProviderError(
                        PROVIDER_NAME, f"HTTP {status_code} - {e.response.text[:200]}"
                    ) from e
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderError(PROVIDER_NAME, "request timed out") from e
                    time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderError(PROVIDER_NAME, f"failed to connect to {self.base_url}: {e}") from e
                    time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
                except ValueError as e:
                    raise ProviderError(PROVIDER_NAME, str(e)) from e
        finally:
            client.close()
