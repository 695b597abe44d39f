import datetime as dt
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

ScheduleKind = Literal["transport", "hotel"]
PerUnitSemantics = Literal[
    "per_person_shared_pair",
    "per_group_divide_by_tier_size",
    "already_per_person",
]
DisplayCategory = Literal["first", "middle", "last"]


def _date_only(value: Any) -> Any:
    # The REST API serialises dates as full ISO timestamps ("2025-09-22T00:00:00.000Z").
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    if value == "":
        return None
    return value


ApiDate = Annotated[Optional[dt.date], BeforeValidator(_date_only)]


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ------- Bookings & roster -------
class RosterMember(_Model):
    id: Union[int, str]
    check_in_date: ApiDate = Field(None, validation_alias=AliasChoices("check_in_date", "checkInDate"))
    check_out_date: ApiDate = Field(None, validation_alias=AliasChoices("check_out_date", "checkOutDate"))
    room_preference: Optional[str] = Field(None, validation_alias=AliasChoices("room_preference", "roomPreference"))


class Booking(_Model):
    id: int
    tour_type_code: str = Field(..., validation_alias=AliasChoices("tour_type_code", "tourTypeCode"))
    departure_date: ApiDate = Field(None, validation_alias=AliasChoices("departure_date", "departureDate"))
    end_date: ApiDate = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    pax: int = 0

    @field_validator("tour_type_code", mode="before")
    @classmethod
    def _code_from_object(cls, value: Any) -> Any:
        # tourType arrives either as "ER" or as {"code": "ER", ...}
        if isinstance(value, dict):
            value = value.get("code", "")
        return str(value).upper() if value is not None else value


class Anchor(_Model):
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None

    @property
    def ready(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def day_count(self) -> int:
        if not self.ready or self.end < self.start:  # type: ignore[operator]
            return 0
        return (self.end - self.start).days + 1  # type: ignore[operator]


# ------- Templates & schedule rows -------
class TemplateEntry(_Model):
    day_number: int = Field(0, validation_alias=AliasChoices("day_number", "dayNumber"))
    offset_days: int = Field(0, ge=0, validation_alias=AliasChoices("offset_days", "dayOffset", "checkInOffset"))
    name: str = Field("", validation_alias=AliasChoices("name", "routeName", "hotelName"))
    city: Optional[str] = None
    notes: str = Field("", validation_alias=AliasChoices("notes", "itinerary"))
    provider: Optional[str] = None
    nights: int = Field(1, ge=0)

    @field_validator("name", "notes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class MasterTemplate(_Model):
    tour_type_code: str = Field(..., validation_alias=AliasChoices("tour_type_code", "tourTypeCode"))
    kind: ScheduleKind
    segment_offset_days: int = Field(0, ge=0, validation_alias=AliasChoices("segment_offset_days", "segmentOffsetDays"))
    entries: List[TemplateEntry] = Field(default_factory=list)


class ScheduleRow(_Model):
    id: Optional[int] = None
    booking_id: int = Field(..., validation_alias=AliasChoices("booking_id", "bookingId"))
    kind: ScheduleKind = "transport"
    day_number: int = Field(0, validation_alias=AliasChoices("day_number", "dayNumber"))
    date: Annotated[dt.date, BeforeValidator(_date_only)] = Field(..., validation_alias=AliasChoices("date", "checkInDate"))
    name: str = Field("", validation_alias=AliasChoices("name", "routeName", "hotelName"))
    city: Optional[str] = None
    notes: str = Field("", validation_alias=AliasChoices("notes", "itinerary"))
    provider: Optional[str] = None
    check_out_date: ApiDate = Field(None, validation_alias=AliasChoices("check_out_date", "checkOutDate"))
    party_count_override: Optional[int] = Field(None, validation_alias=AliasChoices("party_count_override", "paxOverride"))

    @field_validator("name", "notes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class CachedPatch(_Model):
    """Free-text override kept in the secondary cache for one schedule row."""

    booking_id: int
    row_id: Optional[int] = None
    content_key: str = ""
    notes: str = ""
    updated_at: dt.datetime = Field(default_factory=_utc_now)

    @field_validator("updated_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: dt.datetime) -> dt.datetime:
        # older cache files hold naive timestamps
        return value if value.tzinfo is not None else value.replace(tzinfo=dt.timezone.utc)


# ------- Pricing -------
class PricingTier(_Model):
    tier_id: str
    label: str
    size: int
    min_pax: int
    max_pax: Optional[int] = None

    def contains(self, headcount: int) -> bool:
        if headcount < self.min_pax:
            return False
        return self.max_pax is None or headcount <= self.max_pax


class CostLineItem(_Model):
    category: str = ""
    name: str = Field("", validation_alias=AliasChoices("name", "city"))
    unit_price: float = Field(0.0, validation_alias=AliasChoices("unit_price", "pricePerDay", "price"))
    unit_count: float = Field(1.0, validation_alias=AliasChoices("unit_count", "days"))
    single_room_price: float = Field(0.0, validation_alias=AliasChoices("single_room_price", "ezZimmer"))
    per_unit_semantics: Optional[PerUnitSemantics] = None

    @field_validator("unit_price", "unit_count", "single_room_price", mode="before")
    @classmethod
    def _blank_to_zero(cls, value: Any) -> Any:
        return 0.0 if value in (None, "") else value

    @property
    def raw_total(self) -> float:
        return self.unit_count * self.unit_price

    @property
    def raw_single_total(self) -> float:
        return self.unit_count * self.single_room_price


class TotalPriceEntry(_Model):
    total_price: float = Field(0.0, validation_alias=AliasChoices("total_price", "totalPrice"))
    single_room_surcharge: float = Field(0.0, validation_alias=AliasChoices("single_room_surcharge", "ezZuschlag"))


class ResolvedPrice(_Model):
    tier_id: str
    total_price: float = 0.0
    single_room_surcharge: float = 0.0

    @classmethod
    def zero(cls, tier_id: str) -> "ResolvedPrice":
        return cls(tier_id=tier_id)


# ------- Rooming -------
class RoomBreakdown(_Model):
    double_rooms: int = 0
    twin_rooms: int = 0
    single_rooms: int = 0


class ExtraNights(_Model):
    single_nights: int = 0
    double_nights: int = 0


class RoomingSummary(_Model):
    headcount: int
    breakdown: RoomBreakdown
    single_preference_count: int = 0
    extra_nights: ExtraNights = Field(default_factory=ExtraNights)


# ------- API bodies -------
class RegenerateRequest(_Model):
    reload: bool = False


class NotesUpdate(_Model):
    text: str = Field("", validation_alias=AliasChoices("text", "notes", "itinerary"))
