from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Literal, get_args

RoomType = Literal["classroom", "lab", "office", "library", "seminar", "auditorium"]
BookingStatus = Literal["pending", "confirmed", "cancelled", "completed"]
ResourceType = Literal["library-seat", "computer", "lab-equipment", "study-room", "other"]
ResourceStatus = Literal["available", "occupied", "maintenance", "reserved"]
EventCategory = Literal["seminar", "workshop", "fest", "exam", "meeting", "other"]
EventStatus = Literal["upcoming", "ongoing", "completed", "cancelled"]
FacultyStatus = Literal["available", "busy", "in-meeting", "out-of-office"]
Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

ROOM_TYPES = get_args(RoomType)
BOOKING_STATUSES = get_args(BookingStatus)
RESOURCE_TYPES = get_args(ResourceType)
RESOURCE_STATUSES = get_args(ResourceStatus)
EVENT_CATEGORIES = get_args(EventCategory)
EVENT_STATUSES = get_args(EventStatus)
FACULTY_STATUSES = get_args(FacultyStatus)
WEEKDAYS = get_args(Weekday)

TRUE_WORDS = ("true", "1", "yes", "on")
FALSE_WORDS = ("false", "0", "no", "off", "")

ROLE_STUDENT = "student"
ROLE_FACULTY = "faculty"
ROLE_ADMIN = "admin"
ROLES = (ROLE_STUDENT, ROLE_FACULTY, ROLE_ADMIN)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def format_datetime(value: datetime) -> str:
    return to_utc(value).isoformat()


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _optional_datetime(value: Any) -> datetime | None:
    return parse_datetime(value) if value not in (None, "") else None


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    return default


def _format_optional(value: datetime | None) -> str | None:
    return format_datetime(value) if value is not None else None


@dataclass(frozen=True)
class Caller:
    subject_id: str
    role: str = ROLE_STUDENT
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_FACULTY)


@dataclass(frozen=True)
class Coordinates:
    x: float | None = None
    y: float | None = None

    def to_dict(self) -> dict[str, float | None]:
        return {"x": self.x, "y": self.y}

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> "Coordinates":
        data = data or {}
        return Coordinates(
            x=float(data["x"]) if data.get("x") is not None else None,
            y=float(data["y"]) if data.get("y") is not None else None,
        )


@dataclass(frozen=True)
class Location:
    room_id: str
    building: str
    floor: int | None = None
    coordinates: Coordinates = field(default_factory=Coordinates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "building": self.building,
            "floor": self.floor,
            "coordinates": self.coordinates.to_dict(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Location":
        return Location(
            room_id=str(data["room_id"]),
            building=str(data["building"]),
            floor=int(data["floor"]) if data.get("floor") is not None else None,
            coordinates=Coordinates.from_dict(data.get("coordinates")),
        )


@dataclass(frozen=True)
class TimeSlot:
    start_time: str
    end_time: str
    subject: str | None = None
    faculty: str | None = None
    batch: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        payload = {"start_time": self.start_time, "end_time": self.end_time}
        for key in ("subject", "faculty", "batch"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "TimeSlot":
        return TimeSlot(
            start_time=str(data["start_time"]),
            end_time=str(data["end_time"]),
            subject=_optional_str(data.get("subject")),
            faculty=_optional_str(data.get("faculty")),
            batch=_optional_str(data.get("batch")),
        )


@dataclass(frozen=True)
class ScheduleDay:
    day: str
    time_slots: tuple[TimeSlot, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"day": self.day, "time_slots": [slot.to_dict() for slot in self.time_slots]}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ScheduleDay":
        return ScheduleDay(
            day=str(data["day"]),
            time_slots=tuple(TimeSlot.from_dict(row) for row in data.get("time_slots") or []),
        )


@dataclass(frozen=True)
class Booking:
    booking_id: str
    subject_id: str
    start_time: datetime
    end_time: datetime
    purpose: str = ""
    status: str = "pending"
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "subject_id": self.subject_id,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
            "purpose": self.purpose,
            "status": self.status,
            "created_at": _format_optional(self.created_at),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Booking":
        return Booking(
            booking_id=str(data["booking_id"]),
            subject_id=str(data["subject_id"]),
            start_time=parse_datetime(data["start_time"]),
            end_time=parse_datetime(data["end_time"]),
            purpose=str(data.get("purpose") or ""),
            status=str(data.get("status", "pending")),
            created_at=_optional_datetime(data.get("created_at")),
        )


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    building: str
    floor: int
    room_type: str
    capacity: int
    coordinates: Coordinates = field(default_factory=Coordinates)
    current_occupancy: int = 0
    is_available: bool = True
    schedule: tuple[ScheduleDay, ...] = ()
    facilities: tuple[str, ...] = ()
    description: str | None = None
    bookings: tuple[Booking, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "name": self.name,
            "building": self.building,
            "floor": self.floor,
            "room_type": self.room_type,
            "capacity": self.capacity,
            "coordinates": self.coordinates.to_dict(),
            "current_occupancy": self.current_occupancy,
            "is_available": self.is_available,
            "schedule": [day.to_dict() for day in self.schedule],
            "facilities": list(self.facilities),
            "description": self.description,
            "bookings": [booking.to_dict() for booking in self.bookings],
            "created_at": _format_optional(self.created_at),
            "updated_at": _format_optional(self.updated_at),
            "version": self.version,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Room":
        return Room(
            room_id=str(data["room_id"]),
            name=str(data["name"]),
            building=str(data["building"]),
            floor=int(data["floor"]),
            room_type=str(data["room_type"]),
            capacity=int(data["capacity"]),
            coordinates=Coordinates.from_dict(data.get("coordinates")),
            current_occupancy=int(data.get("current_occupancy") or 0),
            is_available=_flag(data.get("is_available"), True),
            schedule=tuple(ScheduleDay.from_dict(row) for row in data.get("schedule") or []),
            facilities=tuple(str(item) for item in data.get("facilities") or []),
            description=_optional_str(data.get("description")),
            bookings=tuple(Booking.from_dict(row) for row in data.get("bookings") or []),
            created_at=_optional_datetime(data.get("created_at")),
            updated_at=_optional_datetime(data.get("updated_at")),
            version=int(data.get("version") or 0),
        )


@dataclass(frozen=True)
class Reservation:
    subject_id: str
    start_time: datetime
    end_time: datetime

    def to_dict(self) -> dict[str, str]:
        return {
            "subject_id": self.subject_id,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        return Reservation(
            subject_id=str(data["subject_id"]),
            start_time=parse_datetime(data["start_time"]),
            end_time=parse_datetime(data["end_time"]),
        )


@dataclass(frozen=True)
class Resource:
    resource_id: str
    name: str
    resource_type: str
    location: Location
    status: str = "available"
    current_user: str | None = None
    reservation: Reservation | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "resource_type": self.resource_type,
            "location": self.location.to_dict(),
            "status": self.status,
            "current_user": self.current_user,
            "reservation": self.reservation.to_dict() if self.reservation is not None else None,
            "metadata": dict(self.metadata),
            "created_at": _format_optional(self.created_at),
            "updated_at": _format_optional(self.updated_at),
            "version": self.version,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Resource":
        reservation = data.get("reservation")
        return Resource(
            resource_id=str(data["resource_id"]),
            name=str(data["name"]),
            resource_type=str(data["resource_type"]),
            location=Location.from_dict(data["location"]),
            status=str(data.get("status", "available")),
            current_user=_optional_str(data.get("current_user")),
            reservation=Reservation.from_dict(reservation) if isinstance(reservation, dict) else None,
            metadata={str(key): str(value) for key, value in (data.get("metadata") or {}).items()},
            created_at=_optional_datetime(data.get("created_at")),
            updated_at=_optional_datetime(data.get("updated_at")),
            version=int(data.get("version") or 0),
        )


@dataclass(frozen=True)
class Registration:
    subject_id: str
    phone: str = ""
    department: str = ""
    notes: str = ""
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "phone": self.phone,
            "department": self.department,
            "notes": self.notes,
            "created_at": _format_optional(self.created_at),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Registration":
        return Registration(
            subject_id=str(data["subject_id"]),
            phone=str(data.get("phone") or ""),
            department=str(data.get("department") or ""),
            notes=str(data.get("notes") or ""),
            created_at=_optional_datetime(data.get("created_at")),
        )


@dataclass(frozen=True)
class Event:
    event_id: str
    title: str
    venue: Location
    date: date
    start_time: str
    end_time: str
    organizer: str
    description: str | None = None
    category: str = "other"
    attendees: tuple[str, ...] = ()
    registrations: tuple[Registration, ...] = ()
    max_attendees: int | None = None
    status: str = "upcoming"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "title": self.title,
            "description": self.description,
            "venue": self.venue.to_dict(),
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "organizer": self.organizer,
            "category": self.category,
            "attendees": list(self.attendees),
            "registrations": [registration.to_dict() for registration in self.registrations],
            "max_attendees": self.max_attendees,
            "status": self.status,
            "created_at": _format_optional(self.created_at),
            "updated_at": _format_optional(self.updated_at),
            "version": self.version,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Event":
        return Event(
            event_id=str(data["event_id"]),
            title=str(data["title"]),
            description=_optional_str(data.get("description")),
            venue=Location.from_dict(data["venue"]),
            date=parse_date(data["date"]),
            start_time=str(data["start_time"]),
            end_time=str(data["end_time"]),
            organizer=str(data["organizer"]),
            category=str(data.get("category", "other")),
            attendees=tuple(str(item) for item in data.get("attendees") or []),
            registrations=tuple(Registration.from_dict(row) for row in data.get("registrations") or []),
            max_attendees=int(data["max_attendees"]) if data.get("max_attendees") is not None else None,
            status=str(data.get("status", "upcoming")),
            created_at=_optional_datetime(data.get("created_at")),
            updated_at=_optional_datetime(data.get("updated_at")),
            version=int(data.get("version") or 0),
        )


@dataclass(frozen=True)
class Contact:
    email: str | None = None
    phone: str | None = None
    extension: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"email": self.email, "phone": self.phone, "extension": self.extension}

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> "Contact":
        data = data or {}
        return Contact(
            email=_optional_str(data.get("email")),
            phone=_optional_str(data.get("phone")),
            extension=_optional_str(data.get("extension")),
        )


@dataclass(frozen=True)
class Availability:
    schedule: tuple[ScheduleDay, ...] = ()
    is_available: bool = True
    current_status: str = "available"

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedule": [day.to_dict() for day in self.schedule],
            "is_available": self.is_available,
            "current_status": self.current_status,
        }

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> "Availability":
        data = data or {}
        return Availability(
            schedule=tuple(ScheduleDay.from_dict(row) for row in data.get("schedule") or []),
            is_available=_flag(data.get("is_available"), True),
            current_status=str(data.get("current_status", "available")),
        )


@dataclass(frozen=True)
class Faculty:
    faculty_id: str
    user_id: str
    name: str
    department: str
    cabin: Location
    designation: str | None = None
    availability: Availability = field(default_factory=Availability)
    contact: Contact = field(default_factory=Contact)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "faculty_id": self.faculty_id,
            "user_id": self.user_id,
            "name": self.name,
            "department": self.department,
            "designation": self.designation,
            "cabin": self.cabin.to_dict(),
            "availability": self.availability.to_dict(),
            "contact": self.contact.to_dict(),
            "created_at": _format_optional(self.created_at),
            "updated_at": _format_optional(self.updated_at),
            "version": self.version,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Faculty":
        return Faculty(
            faculty_id=str(data["faculty_id"]),
            user_id=str(data["user_id"]),
            name=str(data["name"]),
            department=str(data["department"]),
            designation=_optional_str(data.get("designation")),
            cabin=Location.from_dict(data["cabin"]),
            availability=Availability.from_dict(data.get("availability")),
            contact=Contact.from_dict(data.get("contact")),
            created_at=_optional_datetime(data.get("created_at")),
            updated_at=_optional_datetime(data.get("updated_at")),
            version=int(data.get("version") or 0),
        )
