"""
Gap detection for itinerary days.

Scans each day for missing meals, thin time slots and category streaks,
and emits Gap records the recommender can fill.
"""

from typing import Sequence

from app.core.activity_diversity import (
    find_dominant_category,
    recent_categories_from_activities,
    suggested_alternatives,
)
from app.core.schemas import (
    AddExperienceAction,
    AddMealAction,
    Gap,
    Itinerary,
    ItineraryActivity,
    ItineraryDay,
    PlaceActivity,
)

FOOD_TAGS = {
    "dining",
    "restaurant",
    "food",
    "cafe",
    "bakery",
    "ramen",
    "sushi",
    "izakaya",
    "coffee",
    "tea",
    "dessert",
    "sweets",
    "bar",
    "pub",
    "brewery",
    "yakiniku",
    "tempura",
    "udon",
    "soba",
    "kaiseki",
    "bento",
}

MEAL_TYPE_TAGS = {
    "breakfast": "breakfast",
    "brunch": "breakfast",
    "lunch": "lunch",
    "dinner": "dinner",
    "snack": "snack",
}

TIME_OF_DAY_MEALS = {
    "morning": "breakfast",
    "afternoon": "lunch",
    "evening": "dinner",
}


def _place_activities(activities: Sequence[ItineraryActivity]) -> list[PlaceActivity]:
    return [a for a in activities if a.kind == "place"]


def is_food_activity(activity: PlaceActivity) -> bool:
    if activity.meal_type:
        return True
    for tag in activity.tags:
        normalized = tag.lower()
        # Partial matches catch tags like "japanese-restaurant"
        if normalized in FOOD_TAGS or any(food_tag in normalized for food_tag in FOOD_TAGS):
            return True
    return False


def infer_meal_type(activity: PlaceActivity) -> str | None:
    """Infer which meal a food activity covers: explicit type, tag, then time of day."""
    if not is_food_activity(activity):
        return None
    if activity.meal_type:
        return activity.meal_type
    for tag in activity.tags:
        meal = MEAL_TYPE_TAGS.get(tag.lower())
        if meal:
            return meal
    return TIME_OF_DAY_MEALS[activity.time_of_day]


def covered_meal_types(activities: Sequence[ItineraryActivity]) -> set[str]:
    covered = set()
    for activity in _place_activities(activities):
        meal = infer_meal_type(activity)
        if meal:
            covered.add(meal)
    return covered


def detect_meal_gaps(day: ItineraryDay, day_index: int) -> list[Gap]:
    gaps: list[Gap] = []
    places = _place_activities(day.activities)
    covered = covered_meal_types(places)
    city = day.city_id or "the area"

    morning = [a for a in places if a.time_of_day == "morning"]
    if morning and "breakfast" not in covered:
        gaps.append(
            Gap(
                id=f"meal-breakfast-{day.id}",
                day_id=day.id,
                day_index=day_index,
                title="Add breakfast",
                description=f"Fuel up before {morning[0].title} with a local breakfast spot",
                action=AddMealAction(meal_type="breakfast", time_slot="morning"),
            )
        )

    daytime = [a for a in places if a.time_of_day in ("morning", "afternoon")]
    if len(daytime) >= 2 and "lunch" not in covered:
        last_morning = morning[-1] if morning else None
        description = f"Refuel with lunch in {city}"
        if last_morning:
            description = f"After visiting {last_morning.title}, add lunch nearby?"
        gaps.append(
            Gap(
                id=f"meal-lunch-{day.id}",
                day_id=day.id,
                day_index=day_index,
                title="Add lunch",
                description=description,
                action=AddMealAction(
                    meal_type="lunch",
                    time_slot="afternoon",
                    after_activity_id=last_morning.id if last_morning else None,
                ),
            )
        )

    if places and "dinner" not in covered:
        gaps.append(
            Gap(
                id=f"meal-dinner-{day.id}",
                day_id=day.id,
                day_index=day_index,
                title="Add dinner",
                description=f"After {places[-1].title}, find a great dinner spot in {city}",
                action=AddMealAction(meal_type="dinner", time_slot="evening"),
            )
        )

    return gaps


def detect_experience_gaps(day: ItineraryDay, day_index: int) -> list[Gap]:
    gaps: list[Gap] = []
    places = [a for a in _place_activities(day.activities) if not a.meal_type]

    if len(places) <= 2:
        gaps.append(
            Gap(
                id=f"experience-{day.id}",
                day_id=day.id,
                day_index=day_index,
                title="Add more experiences",
                description=f"Day {day_index + 1} has room for more activities",
                action=AddExperienceAction(time_slot="afternoon"),
            )
        )

    slots = {a.time_of_day for a in places}
    if places and "morning" not in slots:
        gaps.append(
            Gap(
                id=f"experience-morning-{day.id}",
                day_id=day.id,
                day_index=day_index,
                title="Start earlier",
                description="Add a morning activity to make the most of the day",
                action=AddExperienceAction(time_slot="morning"),
            )
        )
    if "afternoon" in slots and "evening" not in slots:
        gaps.append(
            Gap(
                id=f"experience-evening-{day.id}",
                day_id=day.id,
                day_index=day_index,
                title="Extend your day",
                description="Add an evening activity or night views",
                action=AddExperienceAction(time_slot="evening"),
            )
        )

    return gaps


def detect_category_imbalance(day: ItineraryDay, day_index: int) -> list[Gap]:
    places = [a for a in _place_activities(day.activities) if not a.meal_type]
    dominant = find_dominant_category(recent_categories_from_activities(places))
    if dominant is None:
        return []

    alternative = suggested_alternatives(dominant)[0]
    return [
        Gap(
            id=f"diversify-{day.id}",
            day_id=day.id,
            day_index=day_index,
            title="Mix it up",
            description=f"Day {day_index + 1} is mostly {dominant}; try a {alternative} instead",
            action=AddExperienceAction(time_slot="afternoon", category=alternative),
        )
    ]


def detect_gaps(
    itinerary: Itinerary,
    include_meals: bool = True,
    include_experiences: bool = True,
    include_category_balance: bool = True,
    max_gaps_per_day: int = 4,
) -> list[Gap]:
    """
    Analyze an itinerary and detect gaps, meals first, capped per day.
    """
    all_gaps: list[Gap] = []

    for day_index, day in enumerate(itinerary.days):
        day_gaps: list[Gap] = []
        if include_meals:
            day_gaps.extend(detect_meal_gaps(day, day_index))
        if include_category_balance:
            day_gaps.extend(detect_category_imbalance(day, day_index))
        if include_experiences:
            day_gaps.extend(detect_experience_gaps(day, day_index))
        all_gaps.extend(day_gaps[:max_gaps_per_day])

    return all_gaps
