from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# =============================================================================
# Shared enums
# =============================================================================

LOCATION_CATEGORIES = (
    "restaurant",
    "food",
    "shrine",
    "temple",
    "museum",
    "landmark",
    "park",
    "nature",
    "market",
    "bar",
    "cafe",
    "historic",
    "viewpoint",
    "other",
)

TimeSlot = Literal["morning", "afternoon", "evening"]
MealType = Literal["breakfast", "lunch", "dinner", "snack"]
TravelStyle = Literal["relaxed", "balanced", "fast"]
BudgetLevel = Literal["budget", "moderate", "luxury"]
EditType = Literal["replaceActivity", "deleteActivity", "reorderActivities", "addActivity"]


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class TriState(str, Enum):
    """Three-valued meal flag: unknown must never behave like NO."""

    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "TriState":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("yes", "true"):
                return cls.YES
            if lowered in ("no", "false"):
                return cls.NO
        return cls.UNKNOWN


# =============================================================================
# Location records (read-only, supplied by the candidate provider)
# =============================================================================


class Coordinates(BaseModel):
    lat: float
    lng: float


class OperatingPeriod(BaseModel):
    day: Weekday
    open: str = Field(..., description="Opening time, HH:MM (24-hour)")
    close: str = Field(..., description="Closing time, HH:MM (24-hour)")
    is_overnight: bool = False

    @field_validator("day", mode="before")
    @classmethod
    def _lower_day(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class OperatingHours(BaseModel):
    periods: list[OperatingPeriod] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_period_per_day(self) -> "OperatingHours":
        days = [p.day for p in self.periods]
        if len(days) != len(set(days)):
            raise ValueError("At most one operating period per weekday is allowed")
        return self


class MealOptions(BaseModel):
    serves_breakfast: TriState = TriState.UNKNOWN
    serves_lunch: TriState = TriState.UNKNOWN
    serves_dinner: TriState = TriState.UNKNOWN
    serves_brunch: TriState = TriState.UNKNOWN

    @field_validator(
        "serves_breakfast", "serves_lunch", "serves_dinner", "serves_brunch", mode="before"
    )
    @classmethod
    def _coerce_tristate(cls, value: Any) -> TriState:
        return TriState.coerce(value)


class Location(BaseModel):
    """A point of interest as returned by the content layer."""

    id: str
    name: str
    category: str = "other"
    city: str | None = None
    neighborhood: str | None = None
    coordinates: Coordinates | None = None
    operating_hours: OperatingHours | None = None
    price_level: int = Field(0, ge=0, le=4, description="0 = free/unspecified")
    rating: float | None = Field(None, ge=0, le=5)
    review_count: int | None = Field(None, ge=0)
    meal_options: MealOptions | None = None
    short_description: str | None = None
    description: str | None = None

    # Structured category tags (Google Places types)
    google_primary_type: str | None = None
    google_types: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    typical_minutes: int | None = Field(None, gt=0, description="Typical visit duration")
    business_status: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> str:
        if not isinstance(value, str):
            return "other"
        lowered = value.strip().lower()
        return lowered if lowered in LOCATION_CATEGORIES else "other"

    @field_validator("price_level", mode="before")
    @classmethod
    def _default_price_level(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def is_permanently_closed(self) -> bool:
        return (self.business_status or "").upper() == "PERMANENTLY_CLOSED"


# =============================================================================
# Traveler profile
# =============================================================================


class Budget(BaseModel):
    level: BudgetLevel | None = None
    per_day: float | None = Field(None, gt=0)
    total: float | None = Field(None, gt=0)


class TravelerProfile(BaseModel):
    interests: set[str] = Field(default_factory=set)
    travel_style: TravelStyle = "balanced"
    budget: Budget = Field(default_factory=Budget)
    dietary_restrictions: set[str] = Field(default_factory=set)
    recent_categories: list[str] = Field(
        default_factory=list, description="Most recent category last"
    )

    @field_validator("travel_style", mode="before")
    @classmethod
    def _alias_intense(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() == "intense":
            return "fast"
        return value


# =============================================================================
# Itinerary activities
# =============================================================================


class RecommendationReason(BaseModel):
    primary_reason: str


class PlaceActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["place"] = "place"
    id: str
    title: str
    time_of_day: TimeSlot
    duration_min: int | None = Field(None, gt=0)
    location_id: str | None = None
    meal_type: MealType | None = None
    coordinates: Coordinates | None = None
    neighborhood: str | None = None
    notes: str | None = None
    tags: tuple[str, ...] = ()
    recommendation_reason: RecommendationReason | None = None


class NoteActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["note"] = "note"
    id: str
    title: str = "Note"
    time_of_day: TimeSlot
    notes: str = ""


ItineraryActivity = Annotated[Union[PlaceActivity, NoteActivity], Field(discriminator="kind")]


class ItineraryDay(BaseModel):
    id: str
    date: str | None = None
    city_id: str | None = None
    activities: list[ItineraryActivity] = Field(default_factory=list)


class Itinerary(BaseModel):
    days: list[ItineraryDay] = Field(default_factory=list)


class StoredTrip(BaseModel):
    id: str
    name: str = ""
    itinerary: Itinerary = Field(default_factory=Itinerary)
    updated_at: datetime | None = None


# =============================================================================
# Gaps
# =============================================================================


class AddMealAction(BaseModel):
    type: Literal["add_meal"] = "add_meal"
    meal_type: MealType
    time_slot: TimeSlot
    after_activity_id: str | None = None


class AddExperienceAction(BaseModel):
    type: Literal["add_experience"] = "add_experience"
    time_slot: TimeSlot
    category: str | None = None


GapAction = Annotated[Union[AddMealAction, AddExperienceAction], Field(discriminator="type")]


class Gap(BaseModel):
    id: str = ""
    day_id: str
    day_index: int = Field(..., ge=0)
    action: GapAction
    title: str | None = None
    description: str | None = None


class RefinementFilters(BaseModel):
    cheaper: bool = False
    indoor: bool = False
    cuisine_exclude: list[str] = Field(default_factory=list)
    closer: bool = False
    exclude_location_ids: list[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    recommendation: Location
    activity: PlaceActivity
    insertion_index: int


# =============================================================================
# Edit history
# =============================================================================


class EditHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    trip_id: str
    day_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: EditType
    previous_itinerary: Itinerary
    next_itinerary: Itinerary
    metadata: dict[str, Any] | None = None


class EditHistoryState(BaseModel):
    model_config = ConfigDict(frozen=True)

    edit_history: dict[str, tuple[EditHistoryEntry, ...]] = Field(default_factory=dict)
    current_history_index: dict[str, int] = Field(default_factory=dict)
