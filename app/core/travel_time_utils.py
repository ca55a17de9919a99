"""
Utilities for estimating how long activities take.
"""

from app.core.schemas import Location

DEFAULT_VISIT_MINUTES = 90

# Base durations by location category (in minutes)
CATEGORY_DURATIONS = {
    "museum": 120,  # 2 hours
    "temple": 60,  # 1 hour
    "shrine": 45,  # 45 minutes
    "historic": 90,  # 1.5 hours
    "landmark": 60,  # 1 hour
    "viewpoint": 45,  # 45 minutes
    "park": 90,  # 1.5 hours
    "nature": 180,  # 3 hours
    "market": 90,  # 1.5 hours
    "restaurant": 75,  # 1.25 hours
    "food": 60,  # 1 hour
    "cafe": 45,  # 45 minutes
    "bar": 120,  # 2 hours
}


def category_default_duration(category: str | None) -> int:
    if not category:
        return DEFAULT_VISIT_MINUTES
    return CATEGORY_DURATIONS.get(category.lower(), DEFAULT_VISIT_MINUTES)


def estimate_activity_duration(location: Location) -> int:
    """
    Estimate how long a visit to a location will take.

    Prefers the location's own typical duration, then a per-category
    default, then 90 minutes.
    """
    if location.typical_minutes:
        return location.typical_minutes
    return category_default_duration(location.category)
