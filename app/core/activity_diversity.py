"""
Utilities for keeping a day's activity categories varied.
"""

from collections import Counter
from typing import Sequence

from app.core.schemas import ItineraryActivity

# Alternatives suggested when a day leans too heavily on one category
CATEGORY_ALTERNATIVES = {
    "shrine": ["park", "market", "museum"],
    "temple": ["park", "market", "museum"],
    "museum": ["park", "viewpoint", "market"],
    "historic": ["park", "market", "viewpoint"],
    "landmark": ["park", "museum", "market"],
    "park": ["museum", "temple", "market"],
    "nature": ["museum", "shrine", "market"],
    "market": ["shrine", "park", "museum"],
    "viewpoint": ["museum", "market", "temple"],
    "bar": ["viewpoint", "park", "museum"],
}

# Repeat count -> diversity sub-score (0, 1, 2, 3+ recent repeats)
_REPEAT_SCORES = (1.0, 0.7, 0.3, 0.0)


def recent_categories_from_activities(activities: Sequence[ItineraryActivity]) -> list[str]:
    """
    Build the recent-category list for a day from its place activities.

    The first tag of each place activity is treated as its category, in
    day order (most recent last).
    """
    categories = []
    for activity in activities:
        if activity.kind != "place":
            continue
        if activity.tags and activity.tags[0]:
            categories.append(activity.tags[0])
    return categories


def diversity_score(category: str | None, recent_categories: Sequence[str], window: int = 5) -> float:
    """
    Score how much variety a category adds given recent history.

    Args:
        category: Candidate location category
        recent_categories: Recently scheduled categories (most recent last)
        window: How many of the most recent entries to consider

    Returns:
        1.0 for a fresh category, down to 0.0 after three or more repeats
    """
    if not category:
        return _REPEAT_SCORES[0]

    recent = list(recent_categories)[-window:] if window > 0 else []
    repeats = sum(1 for c in recent if c == category)
    return _REPEAT_SCORES[min(repeats, len(_REPEAT_SCORES) - 1)]


def find_dominant_category(
    categories: Sequence[str], min_activities: int = 3, threshold: float = 0.6
) -> str | None:
    """Return the category making up at least `threshold` of the day, if any."""
    if len(categories) < min_activities:
        return None

    category, count = Counter(categories).most_common(1)[0]
    if count / len(categories) >= threshold:
        return category
    return None


def suggested_alternatives(dominant_category: str) -> list[str]:
    return CATEGORY_ALTERNATIVES.get(dominant_category, ["park", "museum", "market"])
