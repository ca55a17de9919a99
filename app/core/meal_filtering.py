"""
Meal-slot suitability filtering for restaurant candidates.

The policy is permissive: a candidate is only dropped when a signal
actively disqualifies it, so sparse data never empties a pool.
"""

import re
from datetime import date
from typing import Iterable, Sequence

from app.core.opening_hours_utils import closing_minutes, opening_minutes, weekday_for_date
from app.core.schemas import Location, MealType, TriState, Weekday

# Structured types that are NOT appropriate for breakfast
NOT_BREAKFAST_TYPES = {
    "bar",
    "night_club",
    "pub",
    "wine_bar",
    "cocktail_bar",
    "brewery",
    "izakaya",
}

# Name/description keywords that rule out breakfast when no structured data exists
NOT_BREAKFAST_KEYWORDS = [
    "izakaya",
    "bar",
    "pub",
    "brewery",
    "sake",
    "cocktail",
    "night",
    "ramen",  # lunch/dinner in Japan
    "gyoza",
    "sukiyaki",  # hot pot
    "shabu",
    "yakiniku",  # grilled meat
    "yakitori",
]

BREAKFAST_KEYWORDS = [
    "cafe",
    "café",
    "coffee",
    "breakfast",
    "brunch",
    "morning",
    "bakery",
    "toast",
    "egg",
    "pancake",
]

# Dessert/snack shops are not meals
DESSERT_KEYWORDS = [
    "soft serve",
    "ice cream",
    "gelato",
    "dessert",
    "sweets",
    "parfait",
    "cake shop",
    "patisserie",
]

DINING_CATEGORIES = {"restaurant", "food", "cafe", "bar", "market"}

DINING_GOOGLE_TYPES = {
    "restaurant",
    "cafe",
    "coffee_shop",
    "bar",
    "bakery",
    "ramen_restaurant",
    "sushi_restaurant",
    "japanese_restaurant",
    "fast_food_restaurant",
    "meal_takeaway",
    "food",
}

# Landmark names that must not be treated as restaurants
LANDMARK_PATTERNS = re.compile(
    r"castle|shrine|temple|museum|palace|tower|park|garden|observatory|gate|historic|heritage"
    r"|ruins|monument|jo\b|jinja|jingu|dera|taisha|-ji\b|城|神社|寺|塔|門",
    re.IGNORECASE,
)

RESTAURANT_NAME_PATTERN = re.compile(r"restaurant|ramen|sushi|izakaya|cafe|café|dining", re.IGNORECASE)

BREAKFAST_LATEST_OPEN = 11 * 60
LUNCH_LATEST_OPEN = 17 * 60
DINNER_EARLIEST_CLOSE = 18 * 60


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def _structured_types(location: Location) -> set[str]:
    types = {t.lower() for t in location.google_types}
    if location.google_primary_type:
        types.add(location.google_primary_type.lower())
    return types


def _is_breakfast_suitable(location: Location, weekday: Weekday) -> bool:
    types = _structured_types(location)

    # 1. Bars, pubs, breweries and similar venues
    if types & NOT_BREAKFAST_TYPES or location.category == "bar":
        return False

    # 2. Text heuristics only when there is no structured type data
    if not types:
        text = f"{location.name} {location.short_description or ''} {location.description or ''}"
        if contains_keyword(text, NOT_BREAKFAST_KEYWORDS):
            return False
        if contains_keyword(text, DESSERT_KEYWORDS):
            return False
        if contains_keyword(text, BREAKFAST_KEYWORDS):
            return True

    # 3. Meal-serving flags
    options = location.meal_options
    if options is not None:
        if options.serves_breakfast is TriState.YES or options.serves_brunch is TriState.YES:
            return True
        if options.serves_breakfast is TriState.NO and options.serves_brunch is TriState.NO:
            return False

    # 4. Opens too late to be a breakfast venue
    opens_at = opening_minutes(location.operating_hours, weekday)
    if opens_at is not None and opens_at >= BREAKFAST_LATEST_OPEN:
        return False

    # 5. Cafes stay in; everything else is also kept by default
    return True


def _is_lunch_suitable(location: Location, weekday: Weekday) -> bool:
    options = location.meal_options
    if options is not None:
        if options.serves_lunch is TriState.YES:
            return True
        # Dinner-only specialists
        if (
            options.serves_lunch is TriState.NO
            and options.serves_dinner is TriState.YES
            and options.serves_breakfast is not TriState.YES
        ):
            return False

    opens_at = opening_minutes(location.operating_hours, weekday)
    if opens_at is not None and opens_at >= LUNCH_LATEST_OPEN:
        return False
    return True


def _is_dinner_suitable(location: Location, weekday: Weekday) -> bool:
    options = location.meal_options
    if options is not None:
        if options.serves_dinner is TriState.YES:
            return True
        if options.serves_dinner is TriState.NO and (
            options.serves_breakfast is TriState.YES or options.serves_lunch is TriState.YES
        ):
            return False

    closes_at = closing_minutes(location.operating_hours, weekday)
    if closes_at is not None and closes_at < DINNER_EARLIEST_CLOSE:
        return False
    return True


def is_suitable_for_meal(
    location: Location, meal_type: MealType, weekday: Weekday | None = None
) -> bool:
    weekday = weekday or weekday_for_date(date.today())

    if meal_type == "breakfast":
        return _is_breakfast_suitable(location, weekday)
    if meal_type == "lunch":
        return _is_lunch_suitable(location, weekday)
    if meal_type == "dinner":
        return _is_dinner_suitable(location, weekday)
    return True


def filter_for_meal_type(
    candidates: Sequence[Location], meal_type: MealType, weekday: Weekday | None = None
) -> list[Location]:
    """
    Keep the candidates that suit a meal slot, preserving input order.

    Args:
        candidates: Restaurant candidates
        meal_type: breakfast, lunch, dinner or snack
        weekday: Day whose opening hours are checked; defaults to today

    Returns:
        Filtered candidates. Re-filtering the result returns it unchanged.
    """
    weekday = weekday or weekday_for_date(date.today())
    return [c for c in candidates if is_suitable_for_meal(c, meal_type, weekday)]


def is_dining_location(location: Location) -> bool:
    """
    Check if a location is a dining establishment.

    Signals, in order: structured types, category, then name patterns
    (with landmark names excluded).
    """
    if location.is_permanently_closed:
        return False

    if _structured_types(location) & DINING_GOOGLE_TYPES:
        return True

    is_landmark = bool(LANDMARK_PATTERNS.search(location.name))
    if is_landmark:
        return False

    return location.category in DINING_CATEGORIES or bool(
        RESTAURANT_NAME_PATTERN.search(location.name)
    )
