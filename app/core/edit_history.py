"""
Per-trip edit history with linear undo/redo.

Each trip owns an ordered log of (previous, next) itinerary snapshots and a
pointer into it (-1 = before the first entry). Making a new edit after an
undo discards everything past the pointer: redo history is lost, there is
no branching.

Nothing here mutates its inputs; every operation returns new values.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from pydantic import BaseModel

from app.core.errors import TripNotFoundError
from app.core.schemas import (
    EditHistoryEntry,
    EditHistoryState,
    EditType,
    Itinerary,
    ItineraryActivity,
    StoredTrip,
)

logger = logging.getLogger(__name__)


class UndoRedoResult(BaseModel):
    trips: list[StoredTrip]
    history_state: EditHistoryState


# =============================================================================
# History log
# =============================================================================


def create_edit_entry(
    trip_id: str,
    day_id: str,
    edit_type: EditType,
    previous_itinerary: Itinerary,
    next_itinerary: Itinerary,
    metadata: dict[str, Any] | None = None,
) -> EditHistoryEntry:
    return EditHistoryEntry(
        id=str(uuid.uuid4()),
        trip_id=trip_id,
        day_id=day_id,
        timestamp=datetime.now(timezone.utc),
        type=edit_type,
        previous_itinerary=previous_itinerary,
        next_itinerary=next_itinerary,
        metadata=metadata,
    )


def current_index(state: EditHistoryState, trip_id: str) -> int:
    return state.current_history_index.get(trip_id, -1)


def history_for(state: EditHistoryState, trip_id: str) -> tuple[EditHistoryEntry, ...]:
    return state.edit_history.get(trip_id, ())


def can_undo(state: EditHistoryState, trip_id: str) -> bool:
    return current_index(state, trip_id) >= 0


def can_redo(state: EditHistoryState, trip_id: str) -> bool:
    return current_index(state, trip_id) < len(history_for(state, trip_id)) - 1


def _with_trip(
    state: EditHistoryState, trip_id: str, log: tuple[EditHistoryEntry, ...], index: int
) -> EditHistoryState:
    return EditHistoryState(
        edit_history={**state.edit_history, trip_id: log},
        current_history_index={**state.current_history_index, trip_id: index},
    )


def add_edit(state: EditHistoryState, trip_id: str, entry: EditHistoryEntry) -> EditHistoryState:
    """Append an edit, pruning any redo entries past the pointer first."""
    log = history_for(state, trip_id)
    index = current_index(state, trip_id)

    if index < len(log) - 1:
        logger.debug(f"[EditHistory] Pruning {len(log) - 1 - index} redo entries for trip {trip_id}")
        log = log[: index + 1]

    log = log + (entry,)
    return _with_trip(state, trip_id, log, len(log) - 1)


def _replace_itinerary(
    trips: Sequence[StoredTrip], trip_id: str, itinerary: Itinerary
) -> list[StoredTrip]:
    now = datetime.now(timezone.utc)
    return [
        t.model_copy(update={"itinerary": itinerary, "updated_at": now}) if t.id == trip_id else t
        for t in trips
    ]


def perform_undo(
    trips: Sequence[StoredTrip], state: EditHistoryState, trip_id: str
) -> UndoRedoResult | None:
    """
    Undo the edit at the pointer. Returns None when there is nothing to undo.
    """
    if not can_undo(state, trip_id):
        return None

    index = current_index(state, trip_id)
    entry = history_for(state, trip_id)[index]
    logger.info(f"[EditHistory] Undo {entry.type} on trip {trip_id} ({index} -> {index - 1})")

    return UndoRedoResult(
        trips=_replace_itinerary(trips, trip_id, entry.previous_itinerary),
        history_state=_with_trip(state, trip_id, history_for(state, trip_id), index - 1),
    )


def perform_redo(
    trips: Sequence[StoredTrip], state: EditHistoryState, trip_id: str
) -> UndoRedoResult | None:
    """
    Redo the edit after the pointer. Returns None when there is nothing to redo.
    """
    if not can_redo(state, trip_id):
        return None

    index = current_index(state, trip_id) + 1
    entry = history_for(state, trip_id)[index]
    logger.info(f"[EditHistory] Redo {entry.type} on trip {trip_id} ({index - 1} -> {index})")

    return UndoRedoResult(
        trips=_replace_itinerary(trips, trip_id, entry.next_itinerary),
        history_state=_with_trip(state, trip_id, history_for(state, trip_id), index),
    )


def apply_itinerary_edit(
    trips: Sequence[StoredTrip],
    state: EditHistoryState,
    trip_id: str,
    day_id: str,
    edit_type: EditType,
    updater: Callable[[Itinerary], Itinerary],
    metadata: dict[str, Any] | None = None,
) -> tuple[list[StoredTrip], EditHistoryState]:
    """
    Apply an itinerary mutation to a trip and record it in the history.

    Raises:
        TripNotFoundError: trip_id is not in trips
    """
    trip = next((t for t in trips if t.id == trip_id), None)
    if trip is None:
        raise TripNotFoundError(f"Trip {trip_id} not found")

    previous_itinerary = trip.itinerary
    next_itinerary = updater(previous_itinerary)
    entry = create_edit_entry(
        trip_id, day_id, edit_type, previous_itinerary, next_itinerary, metadata
    )
    return _replace_itinerary(trips, trip_id, next_itinerary), add_edit(state, trip_id, entry)


# =============================================================================
# Itinerary operations
# =============================================================================


def _update_day(
    itinerary: Itinerary,
    day_id: str,
    change: Callable[[list[ItineraryActivity]], list[ItineraryActivity]],
) -> Itinerary:
    days = [
        day.model_copy(update={"activities": change(list(day.activities))})
        if day.id == day_id
        else day
        for day in itinerary.days
    ]
    return itinerary.model_copy(update={"days": days})


def add_activity(
    itinerary: Itinerary,
    day_id: str,
    activity: ItineraryActivity,
    position: int | None = None,
) -> Itinerary:
    def change(activities: list[ItineraryActivity]) -> list[ItineraryActivity]:
        index = len(activities) if position is None else max(0, min(position, len(activities)))
        return activities[:index] + [activity] + activities[index:]

    return _update_day(itinerary, day_id, change)


def delete_activity(itinerary: Itinerary, day_id: str, activity_id: str) -> Itinerary:
    return _update_day(
        itinerary, day_id, lambda activities: [a for a in activities if a.id != activity_id]
    )


def replace_activity(
    itinerary: Itinerary, day_id: str, activity_id: str, new_activity: ItineraryActivity
) -> Itinerary:
    return _update_day(
        itinerary,
        day_id,
        lambda activities: [new_activity if a.id == activity_id else a for a in activities],
    )


def reorder_activities(itinerary: Itinerary, day_id: str, activity_ids: Sequence[str]) -> Itinerary:
    """
    Reorder a day's activities by id. Unknown ids are ignored; activities
    missing from activity_ids keep their relative order at the end.
    """

    def change(activities: list[ItineraryActivity]) -> list[ItineraryActivity]:
        by_id = {a.id: a for a in activities}
        ordered = [by_id[i] for i in dict.fromkeys(activity_ids) if i in by_id]
        placed = {a.id for a in ordered}
        return ordered + [a for a in activities if a.id not in placed]

    return _update_day(itinerary, day_id, change)
