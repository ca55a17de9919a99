import logging
from functools import partial
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from app.api.dependencies import get_trip_store
from app.core import edit_history
from app.core.errors import InvalidInputError, TripNotFoundError
from app.core.gap_detection import detect_gaps
from app.core.history_store import TripHistoryStore
from app.core.schemas import EditType, Gap, Itinerary, ItineraryActivity, StoredTrip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])


class EditRequest(BaseModel):
    day_id: str
    type: EditType
    activity: ItineraryActivity | None = None
    activity_id: str | None = None
    activity_ids: list[str] | None = None
    position: int | None = None
    metadata: dict[str, Any] | None = None


class HistorySummary(BaseModel):
    length: int
    index: int
    can_undo: bool
    can_redo: bool


def _build_updater(edit: EditRequest) -> Callable[[Itinerary], Itinerary]:
    """
    Turn an edit request into an itinerary updater.

    Raises:
        InvalidInputError: fields required by the edit type are missing
    """
    if edit.type == "addActivity":
        if edit.activity is None:
            raise InvalidInputError("addActivity requires 'activity'")
        return partial(
            edit_history.add_activity,
            day_id=edit.day_id,
            activity=edit.activity,
            position=edit.position,
        )
    if edit.type == "deleteActivity":
        if not edit.activity_id:
            raise InvalidInputError("deleteActivity requires 'activity_id'")
        return partial(edit_history.delete_activity, day_id=edit.day_id, activity_id=edit.activity_id)
    if edit.type == "replaceActivity":
        if not edit.activity_id or edit.activity is None:
            raise InvalidInputError("replaceActivity requires 'activity_id' and 'activity'")
        return partial(
            edit_history.replace_activity,
            day_id=edit.day_id,
            activity_id=edit.activity_id,
            new_activity=edit.activity,
        )
    if edit.activity_ids is None:
        raise InvalidInputError("reorderActivities requires 'activity_ids'")
    return partial(
        edit_history.reorder_activities, day_id=edit.day_id, activity_ids=edit.activity_ids
    )


def _get_or_404(store: TripHistoryStore, trip_id: str) -> StoredTrip:
    try:
        return store.get_trip(trip_id)
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=StoredTrip, status_code=201)
def create_trip(trip: StoredTrip, store: TripHistoryStore = Depends(get_trip_store)) -> StoredTrip:
    """Register a trip. Re-posting an existing id replaces it and clears its history."""
    return store.save_trip(trip)


@router.get("/{trip_id}", response_model=StoredTrip)
def get_trip(
    trip_id: str = Path(...), store: TripHistoryStore = Depends(get_trip_store)
) -> StoredTrip:
    return _get_or_404(store, trip_id)


@router.get("/{trip_id}/gaps", response_model=list[Gap])
def get_trip_gaps(
    trip_id: str = Path(...),
    include_meals: bool = Query(True),
    include_experiences: bool = Query(True),
    max_gaps_per_day: int = Query(4, ge=1, le=20),
    store: TripHistoryStore = Depends(get_trip_store),
) -> list[Gap]:
    trip = _get_or_404(store, trip_id)
    return detect_gaps(
        trip.itinerary,
        include_meals=include_meals,
        include_experiences=include_experiences,
        max_gaps_per_day=max_gaps_per_day,
    )


@router.post("/{trip_id}/edits", response_model=StoredTrip)
def apply_edit(
    edit: EditRequest,
    trip_id: str = Path(...),
    store: TripHistoryStore = Depends(get_trip_store),
) -> StoredTrip:
    trip = _get_or_404(store, trip_id)
    if not any(day.id == edit.day_id for day in trip.itinerary.days):
        raise HTTPException(status_code=400, detail=f"Day {edit.day_id} not found in trip")

    try:
        updater = _build_updater(edit)
        return store.apply_edit(trip_id, edit.day_id, edit.type, updater, edit.metadata)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{trip_id}/undo", response_model=StoredTrip)
def undo(trip_id: str = Path(...), store: TripHistoryStore = Depends(get_trip_store)) -> StoredTrip:
    _get_or_404(store, trip_id)
    trip = store.undo(trip_id)
    if trip is None:
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return trip


@router.post("/{trip_id}/redo", response_model=StoredTrip)
def redo(trip_id: str = Path(...), store: TripHistoryStore = Depends(get_trip_store)) -> StoredTrip:
    _get_or_404(store, trip_id)
    trip = store.redo(trip_id)
    if trip is None:
        raise HTTPException(status_code=409, detail="Nothing to redo")
    return trip


@router.get("/{trip_id}/history", response_model=HistorySummary)
def get_history(
    trip_id: str = Path(...), store: TripHistoryStore = Depends(get_trip_store)
) -> HistorySummary:
    _get_or_404(store, trip_id)
    return HistorySummary(**store.history_summary(trip_id))
