"""
Candidate location providers.

The recommender never fetches anything itself; callers obtain a pool from
one of these providers first.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any, Callable, Iterable, Protocol, Sequence

from pydantic import BaseModel, Field, ValidationError
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from app.core.errors import CandidateFetchError
from app.core.opening_hours_utils import periods_from_weekday_text
from app.core.schemas import Location
from app.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class CandidateFetch(BaseModel):
    locations: list[Location] = Field(default_factory=list)
    # False means the city is unknown, not that filters removed everything
    has_city_data: bool = False


class LocationProvider(Protocol):
    def fetch_candidates(
        self,
        city_id: str,
        categories: Sequence[str] | None = None,
        exclude_categories: Sequence[str] | None = None,
    ) -> CandidateFetch: ...


def _matches_categories(
    location: Location,
    categories: Sequence[str] | None,
    exclude_categories: Sequence[str] | None,
) -> bool:
    if categories and location.category not in categories:
        return False
    if exclude_categories and location.category in exclude_categories:
        return False
    return True


class InMemoryLocationProvider:
    """Serves candidates from a fixed list of locations."""

    def __init__(self, locations: Iterable[Location] = ()):
        self._locations = list(locations)

    def fetch_candidates(
        self,
        city_id: str,
        categories: Sequence[str] | None = None,
        exclude_categories: Sequence[str] | None = None,
    ) -> CandidateFetch:
        city = city_id.casefold()
        in_city = [loc for loc in self._locations if (loc.city or "").casefold() == city]
        return CandidateFetch(
            locations=[
                loc
                for loc in in_city
                if not loc.is_permanently_closed
                and _matches_categories(loc, categories, exclude_categories)
            ],
            has_city_data=bool(in_city),
        )


class MongoLocationProvider:
    """Reads location documents from a MongoDB collection."""

    def __init__(self, collection: Any = None, settings: Settings | None = None):
        if collection is None:
            settings = settings or get_settings()
            if not settings.mongodb_uri:
                raise ValueError("MONGODB_URI environment variable is required")
            client = MongoClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=5000,  # 5 second timeout
                connectTimeoutMS=10000,
                socketTimeoutMS=20000,
                retryReads=True,
            )
            collection = client[settings.database_name].locations
            logger.info(f"[MongoProvider] Using database: {settings.database_name}")
        self.collection = collection

    @staticmethod
    def _city_filter(city_id: str) -> dict[str, Any]:
        return {"city": {"$regex": f"^{re.escape(city_id)}$", "$options": "i"}}

    def fetch_candidates(
        self,
        city_id: str,
        categories: Sequence[str] | None = None,
        exclude_categories: Sequence[str] | None = None,
    ) -> CandidateFetch:
        city_filter = self._city_filter(city_id)
        query: dict[str, Any] = {**city_filter, "business_status": {"$ne": "PERMANENTLY_CLOSED"}}
        category_filter: dict[str, Any] = {}
        if categories:
            category_filter["$in"] = list(categories)
        if exclude_categories:
            category_filter["$nin"] = list(exclude_categories)
        if category_filter:
            query["category"] = category_filter

        try:
            has_city_data = self.collection.count_documents(city_filter, limit=1) > 0
            docs = list(self.collection.find(query)) if has_city_data else []
        except PyMongoError as e:
            logger.warning(f"[MongoProvider] Fetch failed for city {city_id}: {e}")
            raise CandidateFetchError(f"Could not load locations for {city_id}") from e

        locations = []
        for doc in docs:
            doc.pop("_id", None)  # Remove MongoDB ObjectId
            if not doc.get("operating_hours") and doc.get("weekday_text"):
                doc["operating_hours"] = periods_from_weekday_text(doc["weekday_text"])
            try:
                locations.append(Location.model_validate(doc))
            except ValidationError as e:
                logger.debug(f"[MongoProvider] Skipping malformed location {doc.get('id')}: {e}")

        return CandidateFetch(locations=locations, has_city_data=has_city_data)


class CachedLocationProvider:
    """
    TTL cache in front of another provider.

    Entries are keyed by (city, categories, exclude_categories). Fetch errors
    are not cached.
    """

    def __init__(
        self,
        provider: LocationProvider,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else get_settings().location_cache_ttl_seconds
        )
        self._clock = clock
        self._entries: dict[tuple, tuple[float, CandidateFetch]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(
        city_id: str,
        categories: Sequence[str] | None,
        exclude_categories: Sequence[str] | None,
    ) -> tuple:
        return (
            city_id.casefold(),
            tuple(sorted(categories)) if categories else None,
            tuple(sorted(exclude_categories)) if exclude_categories else None,
        )

    def fetch_candidates(
        self,
        city_id: str,
        categories: Sequence[str] | None = None,
        exclude_categories: Sequence[str] | None = None,
    ) -> CandidateFetch:
        key = self._key(city_id, categories, exclude_categories)
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                return entry[1]

        logger.debug(f"[LocationCache] Miss for {key}")
        result = self.provider.fetch_candidates(city_id, categories, exclude_categories)
        with self._lock:
            self._entries[key] = (now + self.ttl_seconds, result)
        return result

    def invalidate(self, city_id: str | None = None) -> None:
        """Drop cached entries for one city, or everything when city_id is None."""
        with self._lock:
            if city_id is None:
                self._entries.clear()
                return
            city = city_id.casefold()
            for key in [k for k in self._entries if k[0] == city]:
                del self._entries[key]
