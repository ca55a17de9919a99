import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.api.dependencies import get_location_provider
from app.core.errors import (
    CandidateFetchError,
    InvalidInputError,
    NotFoundReason,
    RecommendationNotFound,
)
from app.core.gap_recommender import recommend
from app.core.location_provider import CandidateFetch, LocationProvider
from app.core.opening_hours_utils import weekday_for_trip_day
from app.core.schemas import (
    AddMealAction,
    Gap,
    ItineraryActivity,
    Location,
    PlaceActivity,
    RefinementFilters,
    TravelerProfile,
)
from app.core.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])

MEAL_CATEGORIES = ["restaurant", "food"]


class RecommendationRequest(BaseModel):
    gap: Gap
    day_activities: list[ItineraryActivity] = Field(default_factory=list)
    city_id: str
    profile: TravelerProfile
    used_location_ids: list[str] = Field(default_factory=list)
    exclude_location_ids: list[str] = Field(default_factory=list)
    refinement: RefinementFilters | None = None
    trip_start_date: str | None = None


class RecommendationResponse(BaseModel):
    recommendation: Location
    activity: PlaceActivity
    position: int


def _fetch_pool(provider: LocationProvider, request: RecommendationRequest) -> CandidateFetch:
    """Fetch only what the gap can use: dining for meals, everything else otherwise."""
    action = request.gap.action
    if isinstance(action, AddMealAction):
        fetched = provider.fetch_candidates(request.city_id, categories=MEAL_CATEGORIES)
    else:
        fetched = provider.fetch_candidates(
            request.city_id,
            categories=[action.category.lower()] if action.category else None,
            exclude_categories=MEAL_CATEGORIES,
        )

    if not fetched.has_city_data:
        raise RecommendationNotFound(
            NotFoundReason.NO_DATA, f"No location data available for {request.city_id}."
        )
    return fetched


@router.post("", response_model=RecommendationResponse)
def recommend_for_gap(
    request: RecommendationRequest,
    provider: LocationProvider = Depends(get_location_provider),
) -> RecommendationResponse:
    """
    Recommend a location to fill a gap in a day.

    The candidate pool is fetched for city_id, scoped to the gap's kind, and
    the gap's weekday is derived from trip_start_date + gap.day_index when a
    start date is given.
    """
    refinement = request.refinement
    if request.exclude_location_ids:
        refinement = refinement or RefinementFilters()
        refinement = refinement.model_copy(
            update={
                "exclude_location_ids": [
                    *refinement.exclude_location_ids,
                    *request.exclude_location_ids,
                ]
            }
        )

    weekday = None
    if request.trip_start_date:
        weekday = weekday_for_trip_day(request.trip_start_date, request.gap.day_index)
        if weekday is None:
            raise HTTPException(status_code=400, detail="Invalid trip_start_date")

    try:
        fetched = _fetch_pool(provider, request)
        result = recommend(
            request.gap,
            request.day_activities,
            fetched.locations,
            request.profile,
            request.used_location_ids,
            weekday=weekday,
            refinement=refinement,
            settings=get_settings(),
        )
    except RecommendationNotFound as e:
        logger.info(f"[Recommend] No match for gap {request.gap.id or request.gap.day_id}: {e.reason.value}")
        raise HTTPException(status_code=404, detail={"reason": e.reason.value, "message": e.message})
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CandidateFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return RecommendationResponse(
        recommendation=result.recommendation,
        activity=result.activity,
        position=result.insertion_index,
    )
