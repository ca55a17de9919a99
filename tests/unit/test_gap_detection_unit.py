from app.core.gap_detection import (
    covered_meal_types,
    detect_gaps,
    detect_meal_gaps,
    infer_meal_type,
    is_food_activity,
)
from app.core.schemas import Itinerary, ItineraryDay, NoteActivity, PlaceActivity


def _place(activity_id: str, slot: str, *tags: str, meal_type: str | None = None) -> PlaceActivity:
    return PlaceActivity(
        id=activity_id, title=activity_id.title(), time_of_day=slot, tags=tags, meal_type=meal_type
    )


def test_food_activity_detection():
    assert is_food_activity(_place("a", "morning", meal_type="breakfast"))
    assert is_food_activity(_place("b", "evening", "japanese-restaurant"))
    assert not is_food_activity(_place("c", "morning", "shrine"))


def test_infer_meal_type_order():
    assert infer_meal_type(_place("a", "evening", "dining", meal_type="lunch")) == "lunch"
    assert infer_meal_type(_place("b", "morning", "dining", "brunch")) == "breakfast"
    assert infer_meal_type(_place("c", "afternoon", "ramen")) == "lunch"
    assert infer_meal_type(_place("d", "afternoon", "museum")) is None


def test_meal_gaps_for_busy_day():
    day = ItineraryDay(
        id="day-1",
        city_id="kyoto",
        activities=[
            _place("temple", "morning", "temple"),
            _place("garden", "morning", "park"),
            _place("museum", "afternoon", "museum"),
        ],
    )
    gaps = detect_meal_gaps(day, 0)
    assert [g.action.meal_type for g in gaps] == ["breakfast", "lunch", "dinner"]
    lunch = gaps[1]
    assert lunch.action.after_activity_id == "garden"
    assert lunch.day_id == "day-1"


def test_covered_meals_are_skipped():
    day = ItineraryDay(
        id="day-2",
        activities=[
            _place("cafe", "morning", "cafe"),
            _place("temple", "morning", "temple"),
            _place("dinner", "evening", "dining", meal_type="dinner"),
        ],
    )
    assert covered_meal_types(day.activities) == {"breakfast", "dinner"}
    gaps = detect_meal_gaps(day, 1)
    assert [g.action.meal_type for g in gaps] == ["lunch"]


def test_empty_day_has_only_experience_gap():
    itinerary = Itinerary(days=[ItineraryDay(id="day-1", activities=[])])
    gaps = detect_gaps(itinerary)
    assert len(gaps) == 1
    assert gaps[0].action.type == "add_experience"
    assert gaps[0].action.time_slot == "afternoon"


def test_notes_are_ignored():
    note = NoteActivity(id="note", time_of_day="morning", notes="Buy rail pass")
    itinerary = Itinerary(days=[ItineraryDay(id="day-1", activities=[note])])
    assert all(g.action.type == "add_experience" for g in detect_gaps(itinerary))


def test_category_imbalance_suggests_alternative():
    day = ItineraryDay(
        id="day-1",
        activities=[
            _place("t1", "morning", "temple"),
            _place("t2", "afternoon", "temple"),
            _place("t3", "evening", "temple"),
        ],
    )
    gaps = detect_gaps(Itinerary(days=[day]), include_meals=False)
    assert gaps[0].id == "diversify-day-1"
    assert gaps[0].action.category == "park"


def test_gaps_are_capped_per_day_and_meals_come_first():
    day = ItineraryDay(id="day-1", activities=[_place("museum", "afternoon", "museum")])
    gaps = detect_gaps(Itinerary(days=[day, day.model_copy(update={"id": "day-2"})]), max_gaps_per_day=2)
    assert len(gaps) == 4
    assert [g.day_index for g in gaps] == [0, 0, 1, 1]
    assert gaps[0].action.type == "add_meal"
    assert gaps[0].action.meal_type == "dinner"
