"""
Pick the best candidate for an itinerary gap and work out where it goes.
"""

import logging
import uuid
from typing import Collection, Sequence

from app.core.activity_diversity import recent_categories_from_activities
from app.core.errors import InvalidInputError, NotFoundReason, RecommendationNotFound
from app.core.geo_utils import distance_between
from app.core.location_scoring import ScoringContext, rank_locations
from app.core.meal_filtering import filter_for_meal_type, is_dining_location
from app.core.schemas import (
    AddExperienceAction,
    AddMealAction,
    Coordinates,
    Gap,
    ItineraryActivity,
    Location,
    MealType,
    PlaceActivity,
    Recommendation,
    RecommendationReason,
    RefinementFilters,
    TimeSlot,
    TravelerProfile,
    Weekday,
)
from app.core.settings import Settings

logger = logging.getLogger(__name__)

# Default durations for different meal types in minutes
MEAL_DURATIONS = {
    "breakfast": 45,
    "lunch": 60,
    "dinner": 90,
    "snack": 30,
}

DEFAULT_EXPERIENCE_MINUTES = 90
MEAL_AVAILABLE_MINUTES = 60
EXPERIENCE_AVAILABLE_MINUTES = 120

EXPERIENCE_EXCLUDED_CATEGORIES = {"restaurant", "food"}
INDOOR_CATEGORIES = {"museum", "restaurant", "bar", "market", "food", "cafe"}


def _generate_activity_id() -> str:
    return str(uuid.uuid4())


def calculate_meal_position(
    activities: Sequence[ItineraryActivity],
    meal_type: MealType,
    after_activity_id: str | None = None,
) -> int:
    """
    Insertion index for a meal activity.

    An explicit anchor wins when it exists in the day; otherwise breakfast
    opens the day, lunch follows the last morning place, and dinner (and
    snacks) close it.
    """
    if after_activity_id:
        for index, activity in enumerate(activities):
            if activity.id == after_activity_id:
                return index + 1

    if meal_type == "breakfast":
        return 0
    if meal_type == "lunch":
        last_morning = -1
        for index, activity in enumerate(activities):
            if activity.kind == "place" and activity.time_of_day == "morning":
                last_morning = index
        return last_morning + 1 if last_morning >= 0 else len(activities) // 2
    return len(activities)


def calculate_experience_position(
    activities: Sequence[ItineraryActivity], time_slot: TimeSlot
) -> int:
    if time_slot == "morning":
        for index, activity in enumerate(activities):
            if activity.kind == "place" and activity.time_of_day != "morning":
                return index
        return 0
    if time_slot == "afternoon":
        for index, activity in enumerate(activities):
            if activity.kind == "place" and activity.time_of_day == "afternoon":
                return index
        return len(activities) // 2
    return len(activities)


def create_meal_activity(location: Location, meal_type: MealType, time_slot: TimeSlot) -> PlaceActivity:
    return PlaceActivity(
        id=_generate_activity_id(),
        title=location.name,
        time_of_day=time_slot,
        duration_min=MEAL_DURATIONS.get(meal_type, 60),
        location_id=location.id,
        meal_type=meal_type,
        coordinates=location.coordinates,
        neighborhood=location.neighborhood or location.city,
        notes=f"{meal_type.capitalize()} recommendation",
        tags=("dining", meal_type),
        recommendation_reason=RecommendationReason(
            primary_reason=f"Suggested to fill a {meal_type} gap in your day"
        ),
    )


def create_experience_activity(location: Location, time_slot: TimeSlot) -> PlaceActivity:
    return PlaceActivity(
        id=_generate_activity_id(),
        title=location.name,
        time_of_day=time_slot,
        duration_min=location.typical_minutes or DEFAULT_EXPERIENCE_MINUTES,
        location_id=location.id,
        coordinates=location.coordinates,
        neighborhood=location.neighborhood or location.city,
        tags=(location.category,),
        recommendation_reason=RecommendationReason(
            primary_reason="Suggested to fill a gap in your day"
        ),
    )


def apply_refinement_filters(
    locations: list[Location],
    filters: RefinementFilters | None,
    day_activities: Sequence[ItineraryActivity] = (),
) -> list[Location]:
    """
    Narrow a pool with user refinements. A filter that would remove every
    candidate is skipped.
    """
    if filters is None:
        return locations

    result = list(locations)

    if filters.indoor:
        indoor = [loc for loc in result if loc.category in INDOOR_CATEGORIES]
        if indoor:
            result = indoor

    if filters.cheaper:
        cheaper = [loc for loc in result if loc.price_level < 3]
        if cheaper:
            result = cheaper

    if filters.cuisine_exclude:
        excluded = {c.lower() for c in filters.cuisine_exclude}
        kept = [
            loc
            for loc in result
            if not loc.google_primary_type or loc.google_primary_type.lower() not in excluded
        ]
        if kept:
            result = kept

    if filters.closer:
        anchor = _current_location(day_activities)
        if anchor is not None:
            result.sort(key=lambda loc: distance_between(anchor, loc.coordinates))
            result = result[: max(1, -(-len(result) // 2))]

    return result


def _current_location(day_activities: Sequence[ItineraryActivity]) -> Coordinates | None:
    """Coordinates of the last placed activity that has any."""
    for activity in reversed(list(day_activities)):
        if activity.kind == "place" and activity.coordinates is not None:
            return activity.coordinates
    return None


def experience_candidates(
    candidate_pool: Sequence[Location], category: str | None = None
) -> list[Location]:
    """Non-dining locations, narrowed to one category when given."""
    candidates = [loc for loc in candidate_pool if loc.category not in EXPERIENCE_EXCLUDED_CATEGORIES]
    if category:
        candidates = [loc for loc in candidates if loc.category == category.lower()]
    return candidates


def _available_candidates(
    candidate_pool: Sequence[Location],
    used_location_ids: Collection[str],
    refinement: RefinementFilters | None,
    label: str,
) -> list[Location]:
    if not candidate_pool:
        raise RecommendationNotFound(
            NotFoundReason.NO_DATA, f"No {label} data available for this city."
        )

    used = set(used_location_ids)
    unused = [loc for loc in candidate_pool if loc.id not in used]
    if not unused:
        raise RecommendationNotFound(
            NotFoundReason.ALL_USED,
            f"All {label}s for this city have already been added to your itinerary.",
        )

    excluded = set(refinement.exclude_location_ids) if refinement else set()
    available = [loc for loc in unused if loc.id not in excluded and not loc.is_permanently_closed]
    if not available:
        reason = NotFoundReason.FILTERS_EXHAUSTED if excluded else NotFoundReason.NO_SUITABLE
        raise RecommendationNotFound(
            reason, "No more options with those filters. Try different filters or skip."
        )
    return available


def _recommend_meal(
    gap: Gap,
    action: AddMealAction,
    day_activities: Sequence[ItineraryActivity],
    available: list[Location],
    profile: TravelerProfile,
    weekday: Weekday | None,
    refinement: RefinementFilters | None,
    settings: Settings | None,
) -> Recommendation:
    suitable = filter_for_meal_type(available, action.meal_type, weekday)
    suitable = apply_refinement_filters(suitable, refinement, day_activities)
    if not suitable:
        raise RecommendationNotFound(
            NotFoundReason.NO_SUITABLE, f"Could not find a suitable {action.meal_type} restaurant"
        )

    # Dining scores against food interests when none were selected
    meal_profile = profile.model_copy(update={"interests": profile.interests or {"food"}})
    context = ScoringContext(
        available_minutes=MEAL_AVAILABLE_MINUTES,
        recent_categories=recent_categories_from_activities(day_activities) + ["restaurant"],
        time_slot=action.time_slot,
        weekday=weekday,
        current_location=_current_location(day_activities),
    )
    best = rank_locations(suitable, meal_profile, context, settings)[0]

    activity = create_meal_activity(best.location, action.meal_type, action.time_slot)
    position = calculate_meal_position(day_activities, action.meal_type, action.after_activity_id)
    logger.info(
        f"[Recommend] {action.meal_type} for day {gap.day_index}: {best.location.name} "
        f"(score={best.score:.3f}, position={position})"
    )
    return Recommendation(recommendation=best.location, activity=activity, insertion_index=position)


def _recommend_experience(
    gap: Gap,
    action: AddExperienceAction,
    day_activities: Sequence[ItineraryActivity],
    available: list[Location],
    profile: TravelerProfile,
    weekday: Weekday | None,
    refinement: RefinementFilters | None,
    settings: Settings | None,
) -> Recommendation:
    candidates = apply_refinement_filters(available, refinement, day_activities)
    if not candidates:
        raise RecommendationNotFound(
            NotFoundReason.NO_SUITABLE, "Could not find a suitable experience"
        )

    context = ScoringContext(
        available_minutes=EXPERIENCE_AVAILABLE_MINUTES,
        recent_categories=recent_categories_from_activities(day_activities),
        time_slot=action.time_slot,
        weekday=weekday,
        current_location=_current_location(day_activities),
    )
    best = rank_locations(candidates, profile, context, settings)[0]

    activity = create_experience_activity(best.location, action.time_slot)
    position = calculate_experience_position(day_activities, action.time_slot)
    logger.info(
        f"[Recommend] {action.time_slot} experience for day {gap.day_index}: "
        f"{best.location.name} (score={best.score:.3f}, position={position})"
    )
    return Recommendation(recommendation=best.location, activity=activity, insertion_index=position)


def recommend(
    gap: Gap,
    day_activities: Sequence[ItineraryActivity],
    candidate_pool: Sequence[Location],
    profile: TravelerProfile,
    used_location_ids: Collection[str] = (),
    *,
    weekday: Weekday | None = None,
    refinement: RefinementFilters | None = None,
    settings: Settings | None = None,
) -> Recommendation:
    """
    Choose the best candidate for a gap.

    Args:
        gap: The gap to fill (add_meal or add_experience)
        day_activities: The day's current activities, in order
        candidate_pool: Locations fetched for the city by the caller
        profile: Traveler preferences
        used_location_ids: Locations already in the trip; never re-suggested
        weekday: Day of the gap, for opening-hours checks (None skips them
            in scoring and falls back to today in meal filtering)
        refinement: Optional user refinements (cheaper, indoor, closer, ...)

    Returns:
        The chosen location, the synthesized activity and its insertion index

    Raises:
        RecommendationNotFound: no candidate survived filtering
        InvalidInputError: unsupported gap action or missing profile
    """
    if profile is None:
        raise InvalidInputError("A traveler profile is required")

    action = gap.action
    if isinstance(action, AddMealAction):
        dining = [loc for loc in candidate_pool if is_dining_location(loc)]
        available = _available_candidates(dining, used_location_ids, refinement, "restaurant")
        return _recommend_meal(
            gap, action, day_activities, available, profile, weekday, refinement, settings
        )
    if isinstance(action, AddExperienceAction):
        experiences = experience_candidates(candidate_pool, action.category)
        available = _available_candidates(experiences, used_location_ids, refinement, "experience")
        return _recommend_experience(
            gap, action, day_activities, available, profile, weekday, refinement, settings
        )
    raise InvalidInputError(f"Unknown action type: {getattr(action, 'type', action)!r}")
