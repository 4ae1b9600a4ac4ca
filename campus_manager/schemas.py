"""Request bodies accepted by the campus API.

Every schema strips surrounding whitespace from strings, accepts numbers
where text is expected and ignores unknown keys. ``parse`` is the single
place where pydantic errors become a ``ValidationError`` with one
``{"field", "message"}`` entry per problem, ``field`` being the dotted
location (``schedule.0.time_slots.1.end_time``).
"""

import datetime as dt
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import (
    Contact,
    Coordinates,
    EventCategory,
    EventStatus,
    FacultyStatus,
    Location,
    Reservation,
    ResourceStatus,
    ResourceType,
    RoomType,
    ScheduleDay,
    TimeSlot,
    Weekday,
    to_utc,
)

Text = Annotated[str, Field(min_length=1)]
ClockTime = Annotated[str, Field(pattern=r"^(?:[01]\d|2[0-3]):[0-5]\d$")]

S = TypeVar("S", bound=BaseModel)


def parse(schema: type[S], payload: Any) -> S:
    try:
        return schema.model_validate(payload if isinstance(payload, dict) else {})
    except PydanticValidationError as error:
        problems = [
            {"field": ".".join(str(part) for part in item["loc"]) or "body", "message": item["msg"]}
            for item in error.errors()
        ]
        message = problems[0]["message"] if len(problems) == 1 else "Request validation failed"
        raise ValidationError(message, problems) from None


class CampusSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True, extra="ignore")


def _ends_after_start(value: str, info: ValidationInfo) -> str:
    start = info.data.get("start_time")
    if start is not None and value <= start:
        raise ValueError("end_time must be after start_time")
    return value


class CoordinatesIn(CampusSchema):
    x: float | None = None
    y: float | None = None

    def to_model(self) -> Coordinates:
        return Coordinates(x=self.x, y=self.y)


class PinnedCoordinatesIn(CoordinatesIn):
    x: float
    y: float


class LocationIn(CampusSchema):
    room_id: Text
    building: Text
    floor: int | None = None
    coordinates: CoordinatesIn = Field(default_factory=CoordinatesIn)

    def to_model(self) -> Location:
        return Location(
            room_id=self.room_id,
            building=self.building,
            floor=self.floor,
            coordinates=self.coordinates.to_model(),
        )


class CabinIn(LocationIn):
    floor: int
    coordinates: PinnedCoordinatesIn


class TimeSlotIn(CampusSchema):
    start_time: ClockTime
    end_time: ClockTime
    subject: str | None = None
    faculty: str | None = None
    batch: str | None = None

    @field_validator("end_time")
    @classmethod
    def check_end_after_start(cls, value: str, info: ValidationInfo) -> str:
        return _ends_after_start(value, info)

    def to_model(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time, subject=self.subject, faculty=self.faculty, batch=self.batch)


class ScheduleDayIn(CampusSchema):
    day: Weekday
    time_slots: list[TimeSlotIn] = Field(default_factory=list)

    def to_model(self) -> ScheduleDay:
        return ScheduleDay(day=self.day, time_slots=tuple(slot.to_model() for slot in self.time_slots))


def schedule_models(days: list[ScheduleDayIn] | None) -> tuple[ScheduleDay, ...] | None:
    if days is None:
        return None
    return tuple(day.to_model() for day in days)


class RoomIn(CampusSchema):
    room_id: Text
    name: Text
    building: Text
    floor: int
    coordinates: PinnedCoordinatesIn
    room_type: RoomType
    capacity: int = Field(ge=1)
    current_occupancy: int = Field(default=0, ge=0)
    is_available: bool = True
    schedule: list[ScheduleDayIn] = Field(default_factory=list)
    facilities: list[Text] = Field(default_factory=list)
    description: str | None = None


class RoomAvailabilityIn(CampusSchema):
    is_available: bool | None = None
    current_occupancy: int | None = Field(default=None, ge=0)


class RoomScheduleIn(CampusSchema):
    schedule: list[ScheduleDayIn]


class TimeRangeIn(CampusSchema):
    start_time: dt.datetime
    end_time: dt.datetime


class BookingIn(TimeRangeIn):
    purpose: str | None = Field(default=None, max_length=500)


class ReservationIn(TimeRangeIn):
    subject_id: Text

    def to_model(self) -> Reservation:
        return Reservation(subject_id=self.subject_id, start_time=to_utc(self.start_time), end_time=to_utc(self.end_time))


class ResourceIn(CampusSchema):
    name: Text
    resource_type: ResourceType
    location: LocationIn
    metadata: dict[str, str] = Field(default_factory=dict)
    status: ResourceStatus = "available"


class StatusOverrideIn(CampusSchema):
    status: ResourceStatus
    current_user: str | None = None
    reservation: ReservationIn | None = None
    reason: str | None = Field(default=None, max_length=500)


class EventIn(CampusSchema):
    title: Text
    description: str | None = None
    venue: LocationIn
    date: dt.date
    start_time: ClockTime
    end_time: ClockTime
    organizer: Text
    category: EventCategory = "other"
    max_attendees: int | None = Field(default=None, ge=1)
    status: EventStatus = "upcoming"

    @field_validator("end_time")
    @classmethod
    def check_end_after_start(cls, value: str, info: ValidationInfo) -> str:
        return _ends_after_start(value, info)


class RegistrationIn(CampusSchema):
    phone: str = Field(default="", max_length=20)
    department: str = Field(default="", max_length=120)
    notes: str = Field(default="", max_length=500)

    @field_validator("phone")
    @classmethod
    def check_phone_length(cls, value: str) -> str:
        if value and len(value) < 6:
            raise ValueError("phone must be at least 6 characters")
        return value


class ContactIn(CampusSchema):
    email: str | None = None
    phone: str | None = None
    extension: str | None = None

    def to_model(self) -> Contact:
        return Contact(email=self.email, phone=self.phone, extension=self.extension)


class FacultyIn(CampusSchema):
    name: Text
    department: Text
    designation: str | None = None
    cabin: CabinIn
    contact: ContactIn = Field(default_factory=ContactIn)


class FacultyAvailabilityIn(CampusSchema):
    is_available: bool | None = None
    current_status: FacultyStatus | None = None
    schedule: list[ScheduleDayIn] | None = None
