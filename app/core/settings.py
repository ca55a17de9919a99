import json
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_SCORING_WEIGHTS = {
    "interest": 0.30,
    "popularity": 0.25,
    "style": 0.15,
    "budget": 0.15,
    "diversity": 0.10,
    "time_of_day": 0.05,
}


def _weights_from_env() -> dict[str, float]:
    raw = os.getenv("SCORING_WEIGHTS", "")
    if not raw:
        return dict(DEFAULT_SCORING_WEIGHTS)
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError:
        return dict(DEFAULT_SCORING_WEIGHTS)
    weights = dict(DEFAULT_SCORING_WEIGHTS)
    weights.update({k: float(v) for k, v in overrides.items() if k in weights})
    return weights


class Settings(BaseModel):
    scoring_weights: dict[str, float] = Field(default_factory=_weights_from_env)
    popularity_prior_rating: float = float(os.getenv("POPULARITY_PRIOR_RATING", "3.5"))
    popularity_prior_weight: float = float(os.getenv("POPULARITY_PRIOR_WEIGHT", "50"))
    diversity_window: int = int(os.getenv("DIVERSITY_WINDOW", "5"))
    # Estimated yen cost per price tier (0 = free/unspecified)
    price_tier_costs: list[int] = Field(default_factory=lambda: [0, 1000, 3000, 8000, 20000])
    location_cache_ttl_seconds: float = float(os.getenv("LOCATION_CACHE_TTL_SECONDS", "300"))
    mongodb_uri: str = os.getenv("MONGODB_URI", "")
    database_name: str = os.getenv("DATABASE_NAME", "itinerary_db")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
