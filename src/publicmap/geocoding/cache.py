"""
Geocode Cache

Read-through cache of successful geocoding lookups keyed by normalized
address text.
"""
import re
from typing import Optional

from sqlalchemy.orm import sessionmaker

from src.publicmap.db.repository import GeocodeCacheRepository
from src.publicmap.db.session import read_session, transaction
from src.publicmap.errors import ValidationError
from src.publicmap.geocoding.client import GeocodeResult, GeocodingProvider
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_query(address: str) -> str:
    """Trim, lowercase and collapse whitespace runs to single spaces."""
    return _WHITESPACE.sub(" ", address.strip().lower())


class GeocodeCache:
    """
    Resolves addresses, calling the provider only on a cache miss.

    Failures (NotFound, UpstreamFailure, ConfigError) propagate and are
    never cached.
    """

    def __init__(self, session_factory: sessionmaker, provider: GeocodingProvider):
        self.session_factory = session_factory
        self.provider = provider
        self.repo = GeocodeCacheRepository()

    def resolve(self, address: Optional[str]) -> GeocodeResult:
        if not address or not address.strip():
            raise ValidationError("address is required")

        normalized = normalize_query(address)
        with read_session(self.session_factory) as session:
            cached = self.repo.get_by_normalized(session, normalized)
            if cached is not None:
                logger.debug("geocode_cache_hit", normalized_query=normalized)
                return GeocodeResult(
                    lat=cached.lat,
                    lng=cached.lng,
                    formatted_address=cached.formatted_address,
                )

        logger.info("geocode_cache_miss", normalized_query=normalized)
        result = self.provider.geocode(address)

        with transaction(self.session_factory, "geocode_cache_upsert") as session:
            self.repo.upsert(session, {
                "address_query": address,
                "normalized_query": normalized,
                "lat": result.lat,
                "lng": result.lng,
                "formatted_address": result.formatted_address,
                "provider": getattr(self.provider, "name", "google"),
            })
        return result
