"""
Geocoding Provider Client

Resolves free-text addresses through the Google Geocoding JSON API.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from config.settings import settings
from src.publicmap.errors import ConfigError, NotFound, UpstreamFailure
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lng: float
    formatted_address: Optional[str]

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "formatted_address": self.formatted_address,
        }


class GeocodingProvider(Protocol):
    """External lookup used on cache misses."""

    name: str

    def geocode(self, address: str) -> GeocodeResult:
        ...


class GoogleGeocodingClient:
    """
    Client for the Google Geocoding API.

    The API key is only checked when a lookup is actually made, so cache
    hits keep working on deployments without a key.
    """

    name = "google"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize the geocoding client.

        Args:
            api_key: Override settings.geocoding_api_key
            base_url: Override the default API URL (for testing)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key if api_key is not None else settings.geocoding_api_key
        self.base_url = base_url or settings.geocoding_url
        self.timeout = timeout or settings.geocoding_timeout_seconds
        self.session = requests.Session()

    def geocode(self, address: str) -> GeocodeResult:
        """
        Look up one address.

        Raises:
            ConfigError: no API key configured
            UpstreamFailure: transport error, timeout, non-2xx or provider error status
            NotFound: provider reports no match
        """
        if not self.api_key:
            raise ConfigError("GOOGLE_MAPS_API_KEY is not configured")

        try:
            response = self.session.get(
                self.base_url,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error("geocoding_request_failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamFailure("Geocoding provider failed") from e
        except ValueError as e:
            logger.error("geocoding_invalid_response", error=str(e))
            raise UpstreamFailure("Geocoding provider returned invalid JSON") from e

        status = data.get("status")
        results = data.get("results") or []
        if status == "ZERO_RESULTS" or (status == "OK" and not results):
            raise NotFound(data.get("error_message") or "Address not found")
        if status != "OK":
            logger.error("geocoding_provider_error", status=status, message=data.get("error_message"))
            raise UpstreamFailure(data.get("error_message") or f"Geocoding provider status {status}")

        first = results[0]
        location = first["geometry"]["location"]
        logger.info("geocoding_request_successful", results=len(results))
        return GeocodeResult(
            lat=float(location["lat"]),
            lng=float(location["lng"]),
            formatted_address=first.get("formatted_address"),
        )
