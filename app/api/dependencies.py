"""
Shared FastAPI dependencies. Tests swap these out via app.dependency_overrides.
"""

import logging
from functools import lru_cache

from app.core.history_store import TripHistoryStore
from app.core.location_provider import (
    CachedLocationProvider,
    InMemoryLocationProvider,
    LocationProvider,
    MongoLocationProvider,
)
from app.core.settings import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_location_provider() -> LocationProvider:
    settings = get_settings()
    if settings.mongodb_uri:
        provider: LocationProvider = MongoLocationProvider(settings=settings)
    else:
        logger.warning("[Provider] MONGODB_URI not set, serving candidates from an empty in-memory store")
        provider = InMemoryLocationProvider()
    return CachedLocationProvider(provider, ttl_seconds=settings.location_cache_ttl_seconds)


@lru_cache
def get_trip_store() -> TripHistoryStore:
    return TripHistoryStore()
