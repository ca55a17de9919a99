"""
Scoring model for ranking candidate locations against a traveler profile.

Each factor is scored independently in [0, 1] and the total is a weighted
sum (weights from settings). Missing data never raises: every factor falls
back to a neutral contribution instead.

Factors:
  interest     - share of the traveler's interests the location satisfies
  popularity   - Bayesian-shrunk rating (few reviews are pulled to a prior)
  style        - typical visit length vs. travel style and available time,
                 plus distance from the current location when known
  budget       - price tier vs. per-day / total budget or budget level
  diversity    - penalty for categories repeated in recent history
  time_of_day  - how well the requested slot suits the category and hours
"""

import logging
import math
from typing import Iterable

from pydantic import BaseModel, Field

from app.core.activity_diversity import diversity_score
from app.core.opening_hours_utils import check_opening_hours_fit
from app.core.geo_utils import distance_between
from app.core.schemas import Budget, Coordinates, Location, TimeSlot, TravelerProfile, Weekday
from app.core.settings import Settings, get_settings
from app.core.travel_time_utils import estimate_activity_duration

logger = logging.getLogger(__name__)

NEUTRAL = 0.5

CATEGORY_TO_INTERESTS = {
    "shrine": ["culture", "history"],
    "temple": ["culture", "history"],
    "landmark": ["culture", "photography"],
    "historic": ["culture", "history"],
    "museum": ["culture", "history"],
    "restaurant": ["food"],
    "food": ["food"],
    "cafe": ["food"],
    "market": ["food", "shopping"],
    "park": ["nature", "wellness", "photography"],
    "nature": ["nature", "wellness", "photography"],
    "viewpoint": ["photography", "nature"],
    "bar": ["nightlife"],
}

OPTIMAL_TIMES_BY_CATEGORY = {
    "viewpoint": ["morning", "evening"],  # Sunrise/sunset
    "park": ["morning", "afternoon"],
    "nature": ["morning", "afternoon"],
    "shrine": ["morning", "evening"],  # Less crowded, peaceful
    "temple": ["morning", "evening"],
    "restaurant": ["afternoon", "evening"],
    "food": ["afternoon", "evening"],
    "cafe": ["morning", "afternoon"],
    "market": ["morning", "afternoon"],  # Fresh produce
    "museum": ["afternoon"],
    "bar": ["evening"],
    "landmark": ["morning", "afternoon"],
    "historic": ["morning", "afternoon"],
}

_SLOT_ORDER = ["morning", "afternoon", "evening"]

# Accepted price tiers for each budget level
BUDGET_LEVEL_TIERS = {
    "budget": (1, 2),
    "moderate": (2, 3),
    "luxury": (3, 4),
}

# Assumed number of paid activities when amortizing a total budget
ESTIMATED_TRIP_ACTIVITIES = 20


class ScoringContext(BaseModel):
    available_minutes: int = 120
    recent_categories: list[str] | None = None
    time_slot: TimeSlot | None = None
    weekday: Weekday | None = None
    current_location: Coordinates | None = None


class ScoreBreakdown(BaseModel):
    interest: float
    popularity: float
    style: float
    budget: float
    diversity: float
    time_of_day: float


class LocationScore(BaseModel):
    location: Location
    score: float
    breakdown: ScoreBreakdown
    reasoning: list[str] = Field(default_factory=list)


def score_interest_match(location: Location, interests: Iterable[str]) -> tuple[float, str]:
    interests = {i.lower() for i in interests}
    if not interests:
        return NEUTRAL, "No interests selected, using neutral score"

    satisfied = set(CATEGORY_TO_INTERESTS.get(location.category, []))
    satisfied.add(location.category)
    satisfied.update(t.lower() for t in location.tags)

    matched = interests & satisfied
    if not matched:
        return 0.1, f'Category "{location.category}" doesn\'t match any selected interests'

    ratio = len(matched) / len(interests)
    return 0.5 + 0.5 * ratio, (
        f'"{location.category}" matches {len(matched)} of {len(interests)} interests '
        f"({', '.join(sorted(matched))})"
    )


def score_popularity(location: Location, settings: Settings) -> tuple[float, str]:
    """
    Bayesian average of the rating: (v*R + m*C) / (v + m), normalised to [0, 1].

    A 5.0 rating over two reviews lands near the prior, well below a 4.6
    rating backed by thousands of reviews.
    """
    prior = settings.popularity_prior_rating
    weight = settings.popularity_prior_weight
    rating = location.rating
    reviews = location.review_count or 0

    if rating is None or (rating == 0 and reviews == 0):
        return prior / 5, "No rating data available, using prior"

    shrunk = (reviews * rating + weight * prior) / (reviews + weight) if reviews + weight > 0 else prior
    return max(0.0, min(1.0, shrunk / 5)), (
        f"Rating {rating:.1f}/5 ({reviews} reviews), adjusted {shrunk:.2f}"
    )


# (max km, score) bands for distance from the current location
PROXIMITY_BANDS = ((1, 1.0), (3, 0.8), (5, 0.6), (10, 0.4))
FAR_PROXIMITY = 0.1


def score_proximity(
    location: Location, current_location: Coordinates | None
) -> tuple[float | None, str]:
    """Returns (None, reason) when either side has no coordinates."""
    distance = distance_between(current_location, location.coordinates)
    if math.isinf(distance):
        return None, "No distance data available"
    for max_km, score in PROXIMITY_BANDS:
        if distance < max_km:
            return score, f"{distance:.1f}km away"
    return FAR_PROXIMITY, f"{distance:.1f}km away, far from current location"


def score_style_fit(
    location: Location,
    travel_style: str,
    available_minutes: int,
    current_location: Coordinates | None = None,
) -> tuple[float, str]:
    duration = estimate_activity_duration(location)
    reasons = []

    if travel_style == "fast":
        if duration <= 90:
            pacing = 1.0
        elif duration <= 180:
            pacing = 0.6
        else:
            pacing = 0.2
            reasons.append("Too long for fast-paced travel")
    elif travel_style == "relaxed":
        if duration >= 90:
            pacing = 1.0
        elif duration >= 60:
            pacing = 0.6
        else:
            pacing = 0.3
            reasons.append("Short duration for relaxed pace")
    else:
        pacing = 0.7

    # Over-long visits are penalized, never excluded
    if available_minutes <= 0:
        time_fit = NEUTRAL
    else:
        ratio = duration / available_minutes
        if ratio <= 0.3:
            time_fit = 0.6
            reasons.append("Short duration, fits easily")
        elif ratio <= 0.7:
            time_fit = 1.0
            reasons.append("Duration fits well in time slot")
        elif ratio <= 1.1:
            time_fit = 0.8
            reasons.append("Duration slightly exceeds available time")
        else:
            time_fit = 0.3
            reasons.append("Duration exceeds available time significantly")

    reasoning = f"~{duration}min visit"
    if reasons:
        reasoning += ": " + "; ".join(reasons)
    proximity, proximity_reason = score_proximity(location, current_location)
    if proximity is None:
        return (pacing + time_fit) / 2, f"{reasoning}; {proximity_reason}"
    return (pacing + time_fit + proximity) / 3, f"{reasoning}; {proximity_reason}"


def score_budget_fit(location: Location, budget: Budget, settings: Settings) -> tuple[float, str]:
    tier = location.price_level
    if tier <= 0:
        return NEUTRAL, "No price information available"

    costs = settings.price_tier_costs
    cost = costs[min(tier, len(costs) - 1)]

    if budget.per_day is not None:
        max_per_activity = budget.per_day * 0.3
        if cost <= max_per_activity:
            return 1.0, f"Price (~¥{cost}) fits within daily budget (¥{budget.per_day:.0f})"
        if cost <= budget.per_day:
            return 0.7, f"Price (~¥{cost}) is within daily budget but high"
        return 0.2, f"Price (~¥{cost}) exceeds daily budget (¥{budget.per_day:.0f})"

    if budget.total is not None:
        per_activity = budget.total / ESTIMATED_TRIP_ACTIVITIES
        if cost <= per_activity:
            return 1.0, f"Price (~¥{cost}) fits within total budget estimate"
        if cost <= per_activity * 1.5:
            return 0.7, f"Price (~¥{cost}) is within total budget but on the higher side"
        return 0.3, f"Price (~¥{cost}) may exceed total budget (¥{budget.total:.0f})"

    if budget.level is None:
        return NEUTRAL, "No budget preference specified"

    low, high = BUDGET_LEVEL_TIERS[budget.level]
    if low <= tier <= high:
        return 1.0, f"Price level {tier} fits {budget.level} budget"
    if tier < low:
        return 0.8, f"Price level {tier} is below {budget.level} range but acceptable"
    return 0.3, f"Price level {tier} exceeds {budget.level} budget"


def score_time_of_day_fit(
    location: Location, time_slot: str | None, weekday: Weekday | None
) -> tuple[float, str]:
    if time_slot is None:
        return NEUTRAL, "No time slot specified"

    optimal = OPTIMAL_TIMES_BY_CATEGORY.get(location.category)
    if not optimal:
        score, reasoning = NEUTRAL, "No specific time preference for this category"
    elif time_slot in optimal:
        score, reasoning = 1.0, f"{time_slot} is an optimal time to visit {location.category}"
    elif any(
        abs(_SLOT_ORDER.index(time_slot) - _SLOT_ORDER.index(slot)) == 1 for slot in optimal
    ):
        score, reasoning = 0.6, f"{time_slot} is acceptable for {location.category}"
    else:
        score, reasoning = 0.2, f"{time_slot} is not ideal for {location.category}"

    fits, hours_reason = check_opening_hours_fit(location.operating_hours, time_slot, weekday)
    if not fits:
        score = max(0.0, score - 0.3)
        reasoning = f"{reasoning}; {hours_reason}"
    return score, reasoning


def score_location(
    location: Location,
    profile: TravelerProfile,
    context: ScoringContext | None = None,
    settings: Settings | None = None,
) -> LocationScore:
    """Score a location for a traveler; never raises on missing optional data."""
    context = context or ScoringContext()
    settings = settings or get_settings()
    recent = (
        context.recent_categories
        if context.recent_categories is not None
        else profile.recent_categories
    )

    interest, interest_reason = score_interest_match(location, profile.interests)
    popularity, popularity_reason = score_popularity(location, settings)
    style, style_reason = score_style_fit(
        location, profile.travel_style, context.available_minutes, context.current_location
    )
    budget, budget_reason = score_budget_fit(location, profile.budget, settings)
    diversity = diversity_score(location.category, recent, settings.diversity_window)
    time_fit, time_reason = score_time_of_day_fit(location, context.time_slot, context.weekday)

    breakdown = ScoreBreakdown(
        interest=interest,
        popularity=popularity,
        style=style,
        budget=budget,
        diversity=diversity,
        time_of_day=time_fit,
    )
    weights = settings.scoring_weights
    total = sum(weights.get(name, 0.0) * value for name, value in breakdown.model_dump().items())

    return LocationScore(
        location=location,
        # Rounded so equal factor sums compare equal for the name tie-break
        score=round(total, 6),
        breakdown=breakdown,
        reasoning=[
            interest_reason,
            popularity_reason,
            style_reason,
            budget_reason,
            f"Diversity {diversity:.1f} for {location.category}",
            time_reason,
        ],
    )


def rank_locations(
    locations: Iterable[Location],
    profile: TravelerProfile,
    context: ScoringContext | None = None,
    settings: Settings | None = None,
) -> list[LocationScore]:
    """
    Score and sort locations, best first.

    Equal scores are ordered alphabetically by name (then id) so rankings
    are reproducible.
    """
    scored = [score_location(loc, profile, context, settings) for loc in locations]
    scored.sort(key=lambda s: (-s.score, s.location.name.casefold(), s.location.id))
    return scored
