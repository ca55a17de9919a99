import pytest

from app.core.location_scoring import (
    ScoringContext,
    rank_locations,
    score_budget_fit,
    score_interest_match,
    score_location,
    score_popularity,
    score_proximity,
    score_style_fit,
    score_time_of_day_fit,
)
from app.core.schemas import (
    Budget,
    Coordinates,
    Location,
    OperatingHours,
    OperatingPeriod,
    TravelerProfile,
    Weekday,
)
from app.core.settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        scoring_weights={
            "interest": 0.30,
            "popularity": 0.25,
            "style": 0.15,
            "budget": 0.15,
            "diversity": 0.10,
            "time_of_day": 0.05,
        }
    )


def test_interest_match():
    shrine = Location(id="s1", name="Fushimi Inari", category="shrine")
    assert score_interest_match(shrine, set())[0] == 0.5
    assert score_interest_match(shrine, {"nightlife"})[0] == pytest.approx(0.1)
    assert score_interest_match(shrine, {"culture", "history"})[0] == pytest.approx(1.0)
    assert score_interest_match(shrine, {"culture", "food"})[0] == pytest.approx(0.75)


def test_bayesian_popularity_shrinks_thin_ratings(settings):
    few = Location(id="a", name="A", rating=5.0, review_count=2)
    many = Location(id="b", name="B", rating=4.6, review_count=3000)
    assert score_popularity(few, settings)[0] < score_popularity(many, settings)[0]

    unrated = Location(id="c", name="C")
    assert score_popularity(unrated, settings)[0] == pytest.approx(3.5 / 5)


def test_style_fit_penalizes_long_visits_for_fast_travelers():
    nature = Location(id="n", name="Long Hike", category="nature")  # 180 min default
    cafe = Location(id="c", name="Quick Cafe", category="cafe")  # 45 min default
    assert score_style_fit(cafe, "fast", 120)[0] > score_style_fit(nature, "fast", 120)[0]


def test_style_fit_never_excludes_overlong_visits():
    museum = Location(id="m", name="Museum", category="museum", typical_minutes=400)
    score, reasoning = score_style_fit(museum, "relaxed", 60)
    assert score > 0
    assert "exceeds available time" in reasoning


def test_style_fit_prefers_nearby_locations():
    here = Coordinates(lat=35.0116, lng=135.7681)  # Kyoto, Sanjo
    near = Location(id="n", name="Near", category="temple", coordinates=Coordinates(lat=35.015, lng=135.77))
    mid = Location(id="m", name="Mid", category="temple", coordinates=Coordinates(lat=35.0394, lng=135.7292))
    far = Location(id="f", name="Far", category="temple", coordinates=Coordinates(lat=34.6937, lng=135.5023))

    assert score_proximity(near, here)[0] == 1.0
    assert score_proximity(mid, here)[0] == 0.6
    assert score_proximity(far, here)[0] == 0.1
    near_fit = score_style_fit(near, "balanced", 120, here)[0]
    assert near_fit > score_style_fit(far, "balanced", 120, here)[0]


def test_style_fit_without_distance_data():
    here = Coordinates(lat=35.0116, lng=135.7681)
    unplaced = Location(id="u", name="Unplaced", category="temple")
    assert score_proximity(unplaced, here) == (None, "No distance data available")

    score, reasoning = score_style_fit(unplaced, "balanced", 120, here)
    assert score == score_style_fit(unplaced, "balanced", 120)[0]
    assert "No distance data available" in reasoning


def test_budget_fit(settings):
    cheap = Location(id="a", name="Cheap", price_level=1)
    pricey = Location(id="b", name="Pricey", price_level=4)
    free = Location(id="c", name="Free", price_level=0)

    per_day = Budget(per_day=10000)
    assert score_budget_fit(cheap, per_day, settings)[0] == 1.0
    assert score_budget_fit(pricey, per_day, settings)[0] == 0.2
    assert score_budget_fit(free, per_day, settings)[0] == 0.5

    total = Budget(total=100000)  # 5000 per activity
    assert score_budget_fit(cheap, total, settings)[0] == 1.0
    assert score_budget_fit(pricey, total, settings)[0] == 0.3

    assert score_budget_fit(pricey, Budget(level="budget"), settings)[0] == 0.3
    assert score_budget_fit(cheap, Budget(level="luxury"), settings)[0] == 0.8
    assert score_budget_fit(cheap, Budget(), settings)[0] == 0.5


def test_time_of_day_fit_uses_hours():
    bar = Location(
        id="b",
        name="Night Bar",
        category="bar",
        operating_hours=OperatingHours(
            periods=[OperatingPeriod(day="monday", open="18:00", close="02:00", is_overnight=True)]
        ),
    )
    assert score_time_of_day_fit(bar, "evening", Weekday.MONDAY)[0] == 1.0
    # Not an optimal slot, and closed all morning
    assert score_time_of_day_fit(bar, "morning", Weekday.MONDAY)[0] == 0.0
    assert score_time_of_day_fit(bar, None, None)[0] == 0.5


def test_score_is_weighted_sum(settings):
    location = Location(id="x", name="Temple", category="temple", rating=4.0, review_count=50)
    profile = TravelerProfile(interests={"culture"})
    result = score_location(location, profile, ScoringContext(), settings)
    breakdown = result.breakdown.model_dump()
    expected = sum(settings.scoring_weights[k] * v for k, v in breakdown.items())
    assert result.score == pytest.approx(expected, abs=1e-6)
    assert 0.0 <= result.score <= 1.0
    assert len(result.reasoning) == 6


def test_recent_categories_reduce_score(settings):
    location = Location(id="x", name="Temple", category="temple")
    profile = TravelerProfile(recent_categories=["temple", "temple"])
    repeated = score_location(location, profile, settings=settings)
    fresh = score_location(location, TravelerProfile(), settings=settings)
    assert repeated.breakdown.diversity == 0.3
    assert repeated.score < fresh.score


def test_missing_optional_data_does_not_raise(settings):
    bare = Location(id="bare", name="Mystery Spot")
    result = score_location(bare, TravelerProfile(), settings=settings)
    assert bare.category == "other"
    assert 0.0 <= result.score <= 1.0


def test_ties_break_alphabetically_and_repeatably(settings):
    names = ["Zen Garden", "alpha park", "Midtown Park"]
    locations = [Location(id=f"id-{i}", name=name, category="park") for i, name in enumerate(names)]
    profile = TravelerProfile(interests={"nature"})

    for _ in range(3):
        ranked = rank_locations(reversed(locations), profile, settings=settings)
        assert [r.location.name for r in ranked] == ["alpha park", "Midtown Park", "Zen Garden"]


def test_rank_locations_prefers_better_match(settings):
    museum = Location(id="m", name="Art Museum", category="museum", rating=4.5, review_count=800)
    bar = Location(id="b", name="Bar", category="bar", rating=4.5, review_count=800)
    ranked = rank_locations([bar, museum], TravelerProfile(interests={"culture"}), settings=settings)
    assert ranked[0].location.id == "m"
