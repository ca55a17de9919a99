"""
Process-local holder for trips and their edit history.

The edit_history functions are pure; this store is where their results are
kept between requests. Every mutation for a trip runs under that trip's lock.
"""

import logging
import threading
from typing import Any, Callable

from app.core import edit_history
from app.core.errors import TripNotFoundError
from app.core.schemas import EditHistoryState, EditType, Itinerary, StoredTrip

logger = logging.getLogger(__name__)


class TripHistoryStore:
    def __init__(self):
        self._trips: dict[str, StoredTrip] = {}
        self._state = EditHistoryState()
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, trip_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(trip_id)
            if lock is None:
                lock = self._locks[trip_id] = threading.Lock()
            return lock

    def _require(self, trip_id: str) -> StoredTrip:
        trip = self._trips.get(trip_id)
        if trip is None:
            raise TripNotFoundError(f"Trip {trip_id} not found")
        return trip

    def save_trip(self, trip: StoredTrip) -> StoredTrip:
        """Register a trip, or replace one and drop its history."""
        with self._lock_for(trip.id), self._registry_lock:
            replaced = trip.id in self._trips
            self._trips[trip.id] = trip
            history = {k: v for k, v in self._state.edit_history.items() if k != trip.id}
            index = {k: v for k, v in self._state.current_history_index.items() if k != trip.id}
            self._state = EditHistoryState(edit_history=history, current_history_index=index)
        logger.info(f"[TripStore] {'Replaced' if replaced else 'Registered'} trip {trip.id}")
        return trip

    def get_trip(self, trip_id: str) -> StoredTrip:
        return self._require(trip_id)

    def apply_edit(
        self,
        trip_id: str,
        day_id: str,
        edit_type: EditType,
        updater: Callable[[Itinerary], Itinerary],
        metadata: dict[str, Any] | None = None,
    ) -> StoredTrip:
        with self._lock_for(trip_id):
            self._require(trip_id)
            trips, state = edit_history.apply_itinerary_edit(
                *self._snapshot(), trip_id, day_id, edit_type, updater, metadata
            )
            self._commit(trip_id, trips, state)
            return self._trips[trip_id]

    def undo(self, trip_id: str) -> StoredTrip | None:
        """Returns the updated trip, or None when there is nothing to undo."""
        with self._lock_for(trip_id):
            self._require(trip_id)
            result = edit_history.perform_undo(*self._snapshot(), trip_id)
            if result is None:
                return None
            self._commit(trip_id, result.trips, result.history_state)
            return self._trips[trip_id]

    def redo(self, trip_id: str) -> StoredTrip | None:
        """Returns the updated trip, or None when there is nothing to redo."""
        with self._lock_for(trip_id):
            self._require(trip_id)
            result = edit_history.perform_redo(*self._snapshot(), trip_id)
            if result is None:
                return None
            self._commit(trip_id, result.trips, result.history_state)
            return self._trips[trip_id]

    def history_summary(self, trip_id: str) -> dict[str, Any]:
        self._require(trip_id)
        state = self._state
        return {
            "length": len(edit_history.history_for(state, trip_id)),
            "index": edit_history.current_index(state, trip_id),
            "can_undo": edit_history.can_undo(state, trip_id),
            "can_redo": edit_history.can_redo(state, trip_id),
        }

    def _snapshot(self) -> tuple[list[StoredTrip], EditHistoryState]:
        with self._registry_lock:
            return list(self._trips.values()), self._state

    def _commit(self, trip_id: str, trips: list[StoredTrip], state: EditHistoryState) -> None:
        # Take only this trip's entries; other trips may have moved on meanwhile
        updated = next(t for t in trips if t.id == trip_id)
        with self._registry_lock:
            self._trips[trip_id] = updated
            self._state = EditHistoryState(
                edit_history={
                    **self._state.edit_history,
                    trip_id: edit_history.history_for(state, trip_id),
                },
                current_history_index={
                    **self._state.current_history_index,
                    trip_id: edit_history.current_index(state, trip_id),
                },
            )
