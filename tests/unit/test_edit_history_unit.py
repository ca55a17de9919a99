import threading

import pytest

from app.core.edit_history import (
    add_activity,
    add_edit,
    apply_itinerary_edit,
    can_redo,
    can_undo,
    create_edit_entry,
    current_index,
    delete_activity,
    history_for,
    perform_redo,
    perform_undo,
    reorder_activities,
    replace_activity,
)
from app.core.errors import TripNotFoundError
from app.core.history_store import TripHistoryStore
from app.core.schemas import (
    EditHistoryState,
    Itinerary,
    ItineraryDay,
    PlaceActivity,
    StoredTrip,
)


def _activity(activity_id: str, slot: str = "morning") -> PlaceActivity:
    return PlaceActivity(id=activity_id, title=activity_id, time_of_day=slot)


def _itinerary(*activity_ids: str) -> Itinerary:
    return Itinerary(
        days=[ItineraryDay(id="day-1", activities=[_activity(a) for a in activity_ids])]
    )


def _ids(itinerary: Itinerary) -> list[str]:
    return [a.id for a in itinerary.days[0].activities]


def _entry(previous: Itinerary, next_: Itinerary):
    return create_edit_entry("trip-1", "day-1", "addActivity", previous, next_)


I0 = _itinerary()
I1 = _itinerary("a")
I2 = _itinerary("a", "b")
I3 = _itinerary("a", "c")


def test_append_sets_pointer_to_end():
    state = add_edit(EditHistoryState(), "trip-1", _entry(I0, I1))
    assert current_index(state, "trip-1") == 0
    state = add_edit(state, "trip-1", _entry(I1, I2))
    assert current_index(state, "trip-1") == 1
    assert len(history_for(state, "trip-1")) == 2


def test_new_edit_after_undo_prunes_redo_branch():
    trips = [StoredTrip(id="trip-1", itinerary=I2)]
    e1, e2, e3 = _entry(I0, I1), _entry(I1, I2), _entry(I1, I3)
    state = add_edit(add_edit(EditHistoryState(), "trip-1", e1), "trip-1", e2)

    undone = perform_undo(trips, state, "trip-1")
    assert _ids(undone.trips[0].itinerary) == ["a"]

    state = add_edit(undone.history_state, "trip-1", e3)
    log = history_for(state, "trip-1")
    assert len(log) == 2
    assert [e.id for e in log] == [e1.id, e3.id]
    assert current_index(state, "trip-1") == 1
    assert not can_redo(state, "trip-1")


def test_undo_to_start_then_redo():
    trips = [StoredTrip(id="trip-1", itinerary=I1), StoredTrip(id="other", itinerary=I3)]
    state = add_edit(EditHistoryState(), "trip-1", _entry(I0, I1))

    undone = perform_undo(trips, state, "trip-1")
    assert _ids(undone.trips[0].itinerary) == []
    assert undone.trips[1] == trips[1]
    assert current_index(undone.history_state, "trip-1") == -1
    assert not can_undo(undone.history_state, "trip-1")
    assert perform_undo(undone.trips, undone.history_state, "trip-1") is None

    redone = perform_redo(undone.trips, undone.history_state, "trip-1")
    assert _ids(redone.trips[0].itinerary) == ["a"]
    assert current_index(redone.history_state, "trip-1") == 0
    assert perform_redo(redone.trips, redone.history_state, "trip-1") is None


def test_undo_redo_without_history():
    trips = [StoredTrip(id="trip-1", itinerary=I1)]
    state = EditHistoryState()
    assert perform_undo(trips, state, "trip-1") is None
    assert perform_redo(trips, state, "trip-1") is None
    assert not can_undo(state, "missing")
    assert not can_redo(state, "missing")


def test_inputs_are_not_mutated():
    trips = [StoredTrip(id="trip-1", itinerary=I1)]
    state = EditHistoryState()
    new_trips, new_state = apply_itinerary_edit(
        trips, state, "trip-1", "day-1", "addActivity", lambda it: add_activity(it, "day-1", _activity("b"))
    )
    assert _ids(trips[0].itinerary) == ["a"]
    assert state.edit_history == {}
    assert _ids(new_trips[0].itinerary) == ["a", "b"]
    entry = history_for(new_state, "trip-1")[0]
    assert _ids(entry.previous_itinerary) == ["a"]
    assert _ids(entry.next_itinerary) == ["a", "b"]


def test_apply_edit_unknown_trip():
    with pytest.raises(TripNotFoundError):
        apply_itinerary_edit([], EditHistoryState(), "nope", "day-1", "deleteActivity", lambda it: it)


def test_itinerary_operations():
    base = _itinerary("a", "b", "c")
    assert _ids(add_activity(base, "day-1", _activity("x"), position=1)) == ["a", "x", "b", "c"]
    assert _ids(add_activity(base, "day-1", _activity("x"))) == ["a", "b", "c", "x"]
    assert _ids(add_activity(base, "day-1", _activity("x"), position=99)) == ["a", "b", "c", "x"]
    assert _ids(delete_activity(base, "day-1", "b")) == ["a", "c"]
    assert _ids(delete_activity(base, "day-1", "zzz")) == ["a", "b", "c"]
    assert _ids(replace_activity(base, "day-1", "b", _activity("y"))) == ["a", "y", "c"]
    assert _ids(reorder_activities(base, "day-1", ["c", "a"])) == ["c", "a", "b"]
    assert _ids(reorder_activities(base, "day-1", ["zzz", "b"])) == ["b", "a", "c"]
    # Other days are left alone
    assert _ids(add_activity(base, "day-9", _activity("x"))) == ["a", "b", "c"]
    assert _ids(base) == ["a", "b", "c"]


def test_store_round_trip():
    store = TripHistoryStore()
    store.save_trip(StoredTrip(id="trip-1", itinerary=I1))

    store.apply_edit("trip-1", "day-1", "addActivity", lambda it: add_activity(it, "day-1", _activity("b")))
    assert store.history_summary("trip-1") == {
        "length": 1,
        "index": 0,
        "can_undo": True,
        "can_redo": False,
    }

    assert _ids(store.undo("trip-1").itinerary) == ["a"]
    assert store.undo("trip-1") is None
    assert _ids(store.redo("trip-1").itinerary) == ["a", "b"]
    assert store.redo("trip-1") is None

    with pytest.raises(TripNotFoundError):
        store.undo("missing")


def test_store_serializes_concurrent_edits():
    store = TripHistoryStore()
    store.save_trip(StoredTrip(id="trip-1", itinerary=_itinerary()))
    store.save_trip(StoredTrip(id="trip-2", itinerary=_itinerary()))

    def worker(trip_id: str, prefix: str):
        for i in range(25):
            store.apply_edit(
                trip_id,
                "day-1",
                "addActivity",
                lambda it, i=i: add_activity(it, "day-1", _activity(f"{prefix}{i}")),
            )

    threads = [
        threading.Thread(target=worker, args=(trip_id, prefix))
        for trip_id in ("trip-1", "trip-2")
        for prefix in ("x", "y")
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for trip_id in ("trip-1", "trip-2"):
        assert len(_ids(store.get_trip(trip_id).itinerary)) == 50
        assert store.history_summary(trip_id)["length"] == 50
