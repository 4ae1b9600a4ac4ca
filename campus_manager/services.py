from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, time
from typing import Any, Callable, TypeVar
from uuid import uuid4
from zoneinfo import ZoneInfo
import logging

import holidays as pyholidays

from . import booking as guards
from . import schemas
from .errors import (
    ConcurrentModificationError,
    ConflictError,
    DuplicateDocumentError,
    NotAvailableError,
    NotFoundError,
    PermissionDeniedError,
    StaleDocumentError,
    StorageError,
    ValidationError,
)
from .models import (
    WEEKDAYS,
    Availability,
    Booking,
    Caller,
    Event,
    Faculty,
    Registration,
    Reservation,
    Resource,
    Room,
    to_utc,
)
from .notifications import Publisher
from .yaml_store import COLLECTION_KEYS, CampusYamlStore

logger = logging.getLogger(__name__)

CAMPUS_START_HOUR = 8
CAMPUS_END_HOUR = 19
DEFAULT_MAX_WRITE_ATTEMPTS = 3

ROOM_EDITABLE_FIELDS = (
    "name",
    "building",
    "floor",
    "coordinates",
    "room_type",
    "capacity",
    "current_occupancy",
    "is_available",
    "schedule",
    "facilities",
    "description",
)
RESOURCE_EDITABLE_FIELDS = ("name", "resource_type", "location", "metadata")
EVENT_EDITABLE_FIELDS = (
    "title",
    "description",
    "venue",
    "date",
    "start_time",
    "end_time",
    "organizer",
    "category",
    "max_attendees",
    "status",
)
FACULTY_EDITABLE_FIELDS = ("name", "department", "designation", "cabin", "contact")

_COLLECTIONS: dict[type, tuple[str, str]] = {
    Room: ("rooms", "Room"),
    Resource: ("resources", "Resource"),
    Event: ("events", "Event"),
    Faculty: ("faculty", "Faculty"),
}
_HOLIDAY_CACHE: dict[tuple[str, int], dict[date, str]] = {}

M = TypeVar("M", Room, Resource, Event, Faculty)


@dataclass(frozen=True)
class BookingOutcome:
    room: Room
    booking: Booking


def _merge_editable(current: dict[str, Any], payload: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    merged = {key: value for key, value in current.items() if key in fields}
    merged.update({key: value for key, value in payload.items() if key in fields})
    return merged


class CampusService:
    """Booking, reservation and facility operations over a document store.

    Every mutation follows fetch -> guard -> conditional write -> publish. The
    conditional write is keyed on the document version, and a lost race
    re-runs the whole sequence against fresh state.
    """

    def __init__(
        self,
        store: CampusYamlStore,
        publisher: Publisher | None = None,
        clock: Callable[[], datetime] | None = None,
        *,
        max_write_attempts: int = DEFAULT_MAX_WRITE_ATTEMPTS,
        timezone: str = "UTC",
        holiday_country: str | None = None,
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.clock: Callable[[], datetime] = clock or (lambda: datetime.now(UTC))
        self.max_write_attempts = max(1, int(max_write_attempts))
        self.timezone = ZoneInfo(timezone)
        self.holiday_country = holiday_country

    def _now(self) -> datetime:
        return to_utc(self.clock())

    def _load(self, model_cls: type[M], key: str) -> M:
        collection, label = _COLLECTIONS[model_cls]
        document = self.store.find_one(collection, key)
        if document is None:
            raise NotFoundError(f"{label} not found")
        return model_cls.from_dict(document)

    def _list(self, model_cls: type[M]) -> list[M]:
        collection, _label = _COLLECTIONS[model_cls]
        return [model_cls.from_dict(row) for row in self.store.find_all(collection)]

    def _insert(self, model: M) -> M:
        collection, label = _COLLECTIONS[type(model)]
        key_field = COLLECTION_KEYS[collection]
        try:
            stored = self.store.insert_one(collection, model.to_dict())
        except DuplicateDocumentError as error:
            if error.field not in (None, key_field):
                raise ConflictError(f"{label} profile already exists") from None
            raise ValidationError.for_field(key_field, f"{label} ID already exists") from None
        return type(model).from_dict(stored)

    def _mutate(self, model_cls: type[M], key: str, change: Callable[[M], M]) -> tuple[M, M]:
        collection, label = _COLLECTIONS[model_cls]
        for attempt in range(1, self.max_write_attempts + 1):
            current = self._load(model_cls, key)
            updated = change(current)
            try:
                stored = self.store.update_one(collection, key, updated.to_dict(), expected_version=current.version)
            except StaleDocumentError:
                logger.info("Concurrent write on %s/%s (attempt %d)", collection, key, attempt)
                continue
            return current, model_cls.from_dict(stored)
        raise ConcurrentModificationError(f"{label} was modified concurrently, please retry")

    def _delete(self, model_cls: type[M], key: str) -> None:
        collection, label = _COLLECTIONS[model_cls]
        if self.store.delete_one(collection, key) is None:
            raise NotFoundError(f"{label} not found")

    def _notify(self, topic: str, payload: dict[str, Any]) -> None:
        if self.publisher is None:
            return
        try:
            self.publisher.publish(topic, payload)
        except Exception:
            logger.exception("Failed to publish %s", topic)

    def _audit(self, event_type: str, payload: dict[str, Any]) -> None:
        # The document write has already committed.
        try:
            self.store.log_event(event_type, payload, self._now())
        except StorageError:
            logger.exception("Failed to record %s in the activity log", event_type)

    @staticmethod
    def _require_staff(caller: Caller) -> None:
        if not caller.is_staff:
            raise PermissionDeniedError("Not authorized")

    @staticmethod
    def _require_admin(caller: Caller) -> None:
        if not caller.is_admin:
            raise PermissionDeniedError("Administrator role required")

    # Rooms

    def list_rooms(
        self,
        building: str | None = None,
        floor: int | None = None,
        room_type: str | None = None,
    ) -> list[Room]:
        rooms = [
            room
            for room in self._list(Room)
            if (building is None or room.building == building)
            and (floor is None or room.floor == floor)
            and (room_type is None or room.room_type == room_type)
        ]
        return sorted(rooms, key=lambda room: (room.building, room.floor, room.name))

    def get_room(self, room_id: str) -> Room:
        return self._load(Room, room_id)

    @staticmethod
    def _parse_room(payload: dict[str, Any], room_id: str | None = None) -> Room:
        if room_id is not None:
            payload = {**payload, "room_id": room_id}
        parsed = schemas.parse(schemas.RoomIn, payload)
        return Room(
            room_id=parsed.room_id,
            name=parsed.name,
            building=parsed.building,
            floor=parsed.floor,
            room_type=parsed.room_type,
            capacity=parsed.capacity,
            coordinates=parsed.coordinates.to_model(),
            current_occupancy=parsed.current_occupancy,
            is_available=parsed.is_available,
            schedule=schemas.schedule_models(parsed.schedule),
            facilities=tuple(parsed.facilities),
            description=parsed.description,
        )

    def create_room(self, payload: dict[str, Any], caller: Caller) -> Room:
        self._require_staff(caller)
        now = self._now()
        room = replace(self._parse_room(payload), created_at=now, updated_at=now)
        stored = self._insert(room)
        self._audit("ROOM_CREATED", {"room_id": stored.room_id, "actor": caller.subject_id})
        self._notify("room-created", stored.to_dict())
        return stored

    def update_room(self, room_id: str, payload: dict[str, Any], caller: Caller) -> Room:
        self._require_staff(caller)
        now = self._now()

        def change(current: Room) -> Room:
            merged = _merge_editable(current.to_dict(), payload, ROOM_EDITABLE_FIELDS)
            parsed = self._parse_room(merged, room_id=current.room_id)
            return replace(
                parsed,
                bookings=current.bookings,
                created_at=current.created_at,
                updated_at=now,
                version=current.version,
            )

        _previous, stored = self._mutate(Room, room_id, change)
        self._notify("room-updated", stored.to_dict())
        return stored

    def delete_room(self, room_id: str, caller: Caller) -> None:
        self._require_admin(caller)
        self._delete(Room, room_id)
        self._audit("ROOM_DELETED", {"room_id": room_id, "actor": caller.subject_id})
        self._notify("room-deleted", {"room_id": room_id})

    def update_room_availability(self, room_id: str, payload: dict[str, Any], caller: Caller) -> Room:
        self._require_staff(caller)
        parsed = schemas.parse(schemas.RoomAvailabilityIn, payload)
        is_available, occupancy = parsed.is_available, parsed.current_occupancy
        if is_available is None and occupancy is None:
            raise ValidationError.for_field("is_available", "is_available or current_occupancy is required")
        now = self._now()

        def change(current: Room) -> Room:
            return replace(
                current,
                is_available=current.is_available if is_available is None else is_available,
                current_occupancy=current.current_occupancy if occupancy is None else occupancy,
                updated_at=now,
            )

        _previous, stored = self._mutate(Room, room_id, change)
        self._audit(
            "ROOM_AVAILABILITY_UPDATED",
            {
                "room_id": room_id,
                "actor": caller.subject_id,
                "is_available": stored.is_available,
                "current_occupancy": stored.current_occupancy,
            },
        )
        self._notify("room-availability-updated", stored.to_dict())
        return stored

    def update_room_schedule(self, room_id: str, payload: dict[str, Any], caller: Caller) -> Room:
        self._require_staff(caller)
        schedule = schemas.schedule_models(schemas.parse(schemas.RoomScheduleIn, payload).schedule)
        now = self._now()

        _previous, stored = self._mutate(
            Room,
            room_id,
            lambda current: replace(current, schedule=schedule, updated_at=now),
        )
        self._notify("room-schedule-updated", stored.to_dict())
        return stored

    def book_room(
        self,
        room_id: str,
        caller: Caller,
        start_time: datetime,
        end_time: datetime,
        purpose: str | None = None,
    ) -> BookingOutcome:
        start, end = to_utc(start_time), to_utc(end_time)
        guards.validate_range(start, end)
        now = self._now()
        created: list[Booking] = []

        def change(room: Room) -> Room:
            if not room.is_available:
                raise NotAvailableError("Room is not available for booking")
            guards.ensure_admissible(room.bookings, start, end)
            booking = Booking(
                booking_id=str(uuid4()),
                subject_id=caller.subject_id,
                start_time=start,
                end_time=end,
                purpose=(purpose or "").strip(),
                status=guards.CONFIRMED,
                created_at=now,
            )
            created.append(booking)
            return replace(room, bookings=room.bookings + (booking,), updated_at=now)

        _previous, stored = self._mutate(Room, room_id, change)
        booking = created[-1]
        logger.info("Room %s booked by %s from %s to %s", room_id, caller.subject_id, start, end)
        self._audit(
            "BOOKING_CREATED",
            {
                "room_id": room_id,
                "booking_id": booking.booking_id,
                "subject_id": caller.subject_id,
                "start_time": booking.to_dict()["start_time"],
                "end_time": booking.to_dict()["end_time"],
            },
        )
        self._notify("room-booked", stored.to_dict())
        return BookingOutcome(room=stored, booking=booking)

    def list_room_bookings(self, room_id: str, status: str | None = None) -> list[Booking]:
        room = self.get_room(room_id)
        bookings = [booking for booking in room.bookings if status is None or booking.status == status]
        return sorted(bookings, key=lambda booking: booking.start_time)

    def cancel_booking(self, room_id: str, booking_id: str, caller: Caller) -> BookingOutcome:
        now = self._now()
        cancelled: list[Booking] = []

        def change(room: Room) -> Room:
            target = next((booking for booking in room.bookings if booking.booking_id == booking_id), None)
            if target is None:
                raise NotFoundError("Booking not found")
            if target.subject_id != caller.subject_id and not caller.is_admin:
                raise PermissionDeniedError("Not authorized to cancel this booking")
            updated = replace(target, status=guards.transition_booking(target.status, guards.CANCELLED))
            cancelled.append(updated)
            bookings = tuple(updated if booking.booking_id == booking_id else booking for booking in room.bookings)
            return replace(room, bookings=bookings, updated_at=now)

        _previous, stored = self._mutate(Room, room_id, change)
        self._audit(
            "BOOKING_CANCELLED",
            {"room_id": room_id, "booking_id": booking_id, "actor": caller.subject_id},
        )
        self._notify("room-booking-cancelled", stored.to_dict())
        return BookingOutcome(room=stored, booking=cancelled[-1])

    def complete_finished_bookings(self, now: datetime | None = None) -> int:
        effective_now = to_utc(now) if now is not None else self._now()
        completed = 0

        for room in self._list(Room):
            if not any(b.status == guards.CONFIRMED and b.end_time <= effective_now for b in room.bookings):
                continue

            finished: list[str] = []

            def change(current: Room) -> Room:
                finished.clear()
                bookings: list[Booking] = []
                for booking in current.bookings:
                    if booking.status == guards.CONFIRMED and booking.end_time <= effective_now:
                        booking = replace(booking, status=guards.transition_booking(booking.status, guards.COMPLETED))
                        finished.append(booking.booking_id)
                    bookings.append(booking)
                return replace(current, bookings=tuple(bookings), updated_at=effective_now)

            try:
                self._mutate(Room, room.room_id, change)
            except NotFoundError:
                continue

            for booking_id in finished:
                self._audit("BOOKING_COMPLETED", {"room_id": room.room_id, "booking_id": booking_id})
            completed += len(finished)

        return completed

    def room_day_schedule(self, room_id: str, day: date) -> dict[str, Any]:
        room = self.get_room(room_id)
        window_start = datetime.combine(day, time(CAMPUS_START_HOUR), tzinfo=self.timezone)
        window_end = datetime.combine(day, time(CAMPUS_END_HOUR), tzinfo=self.timezone)
        weekday = WEEKDAYS[day.weekday()]

        timetable = [slot for entry in room.schedule if entry.day == weekday for slot in entry.time_slots]
        bookings = sorted(
            (
                booking
                for booking in room.bookings
                if booking.status != guards.CANCELLED
                and guards.has_time_overlap(window_start, window_end, booking.start_time, booking.end_time)
            ),
            key=lambda booking: booking.start_time,
        )

        busy: list[tuple[datetime, datetime]] = []
        for slot in timetable:
            busy.append(
                (
                    datetime.combine(day, time.fromisoformat(slot.start_time), tzinfo=self.timezone),
                    datetime.combine(day, time.fromisoformat(slot.end_time), tzinfo=self.timezone),
                )
            )
        busy.extend((booking.start_time, booking.end_time) for booking in bookings)

        def local(value: datetime) -> str:
            return value.astimezone(self.timezone).isoformat(timespec="minutes")

        free_slots: list[dict[str, str]] = []
        cursor = window_start
        for busy_start, busy_end in sorted(busy):
            gap_end = min(busy_start, window_end)
            if gap_end > cursor:
                free_slots.append({"start_time": local(cursor), "end_time": local(gap_end)})
            cursor = max(cursor, busy_end)
        if cursor < window_end:
            free_slots.append({"start_time": local(cursor), "end_time": local(window_end)})

        return {
            "room_id": room.room_id,
            "date": day.isoformat(),
            "weekday": weekday,
            "holiday": self._holiday_name(day),
            "window_start": local(window_start),
            "window_end": local(window_end),
            "timetable": [slot.to_dict() for slot in timetable],
            "bookings": [booking.to_dict() for booking in bookings],
            "free_slots": free_slots,
        }

    def _holiday_name(self, day: date) -> str | None:
        if not self.holiday_country:
            return None
        cache_key = (self.holiday_country, day.year)
        if cache_key not in _HOLIDAY_CACHE:
            holiday_map = pyholidays.country_holidays(self.holiday_country, years=[day.year])
            _HOLIDAY_CACHE[cache_key] = dict(holiday_map.items())
        return _HOLIDAY_CACHE[cache_key].get(day)

    # Resources

    def list_resources(
        self,
        resource_type: str | None = None,
        status: str | None = None,
        room_id: str | None = None,
        building: str | None = None,
    ) -> list[Resource]:
        resources = [
            resource
            for resource in self._list(Resource)
            if (resource_type is None or resource.resource_type == resource_type)
            and (status is None or resource.status == status)
            and (room_id is None or resource.location.room_id == room_id)
            and (building is None or resource.location.building == building)
        ]
        return sorted(
            resources,
            key=lambda resource: (resource.location.building, resource.location.floor or 0, resource.name),
        )

    def get_resource(self, resource_id: str) -> Resource:
        return self._load(Resource, resource_id)

    @staticmethod
    def _parse_resource_fields(parsed: schemas.ResourceIn) -> dict[str, Any]:
        return {
            "name": parsed.name,
            "resource_type": parsed.resource_type,
            "location": parsed.location.to_model(),
            "metadata": dict(parsed.metadata),
        }

    def create_resource(self, payload: dict[str, Any], caller: Caller) -> Resource:
        self._require_admin(caller)
        parsed = schemas.parse(schemas.ResourceIn, payload)
        if parsed.status == guards.RESERVED:
            raise ValidationError.for_field("status", "Use the reserve operation to reserve a resource")

        now = self._now()
        resource = Resource(
            resource_id=str(uuid4()),
            status=parsed.status,
            created_at=now,
            updated_at=now,
            **self._parse_resource_fields(parsed),
        )
        stored = self._insert(resource)
        self._audit("RESOURCE_CREATED", {"resource_id": stored.resource_id, "actor": caller.subject_id})
        self._notify("resource-created", stored.to_dict())
        return stored

    def update_resource(self, resource_id: str, payload: dict[str, Any], caller: Caller) -> Resource:
        self._require_admin(caller)
        for field in ("status", "reservation", "current_user"):
            if field in payload:
                raise ValidationError.for_field(field, "Use the status endpoint to change resource status")
        now = self._now()

        def change(current: Resource) -> Resource:
            merged = _merge_editable(current.to_dict(), payload, RESOURCE_EDITABLE_FIELDS)
            parsed = schemas.parse(schemas.ResourceIn, merged)
            return replace(current, updated_at=now, **self._parse_resource_fields(parsed))

        _previous, stored = self._mutate(Resource, resource_id, change)
        self._notify("resource-updated", stored.to_dict())
        return stored

    def delete_resource(self, resource_id: str, caller: Caller) -> None:
        self._require_admin(caller)
        self._delete(Resource, resource_id)
        self._audit("RESOURCE_DELETED", {"resource_id": resource_id, "actor": caller.subject_id})
        self._notify("resource-deleted", {"resource_id": resource_id})

    def reserve_resource(
        self,
        resource_id: str,
        caller: Caller,
        start_time: datetime,
        end_time: datetime,
    ) -> Resource:
        start, end = to_utc(start_time), to_utc(end_time)
        guards.validate_range(start, end)
        now = self._now()

        def change(resource: Resource) -> Resource:
            decision = guards.reserve(resource.status, caller.subject_id, start, end)
            return replace(resource, status=decision.new_status, reservation=decision.reservation, updated_at=now)

        _previous, stored = self._mutate(Resource, resource_id, change)
        logger.info("Resource %s reserved by %s", resource_id, caller.subject_id)
        self._audit(
            "RESOURCE_RESERVED",
            {"resource_id": resource_id, "subject_id": caller.subject_id, **stored.reservation.to_dict()},
        )
        self._notify("resource-reserved", stored.to_dict())
        return stored

    def release_resource(self, resource_id: str, caller: Caller) -> Resource:
        now = self._now()

        def change(resource: Resource) -> Resource:
            decision = guards.release(resource.status, resource.reservation, caller)
            return replace(resource, status=decision.new_status, reservation=None, updated_at=now)

        _previous, stored = self._mutate(Resource, resource_id, change)
        self._audit("RESOURCE_RELEASED", {"resource_id": resource_id, "actor": caller.subject_id})
        self._notify("resource-released", stored.to_dict())
        return stored

    def override_resource_status(
        self,
        resource_id: str,
        caller: Caller,
        status: str,
        current_user: str | None = None,
        reservation: Reservation | None = None,
        reason: str | None = None,
    ) -> Resource:
        """Administrative status overwrite, bypassing the reservation guard.

        Recorded in the activity log with the acting administrator, the
        previous and new status, and the optional reason.
        """
        self._require_admin(caller)
        decision = guards.overwrite_status(status, current_user=current_user, reservation=reservation)
        now = self._now()

        previous, stored = self._mutate(
            Resource,
            resource_id,
            lambda resource: replace(
                resource,
                status=decision.new_status,
                current_user=decision.current_user,
                reservation=decision.reservation,
                updated_at=now,
            ),
        )
        logger.warning(
            "Resource %s status overridden by %s: %s -> %s",
            resource_id,
            caller.subject_id,
            previous.status,
            stored.status,
        )
        self._audit(
            "RESOURCE_STATUS_OVERRIDDEN",
            {
                "resource_id": resource_id,
                "actor": caller.subject_id,
                "previous_status": previous.status,
                "new_status": stored.status,
                "current_user": stored.current_user,
                "reason": reason,
            },
        )
        self._notify("resource-status-updated", stored.to_dict())
        return stored

    def release_expired_reservations(self, now: datetime | None = None) -> int:
        effective_now = to_utc(now) if now is not None else self._now()
        released = 0

        for resource in self._list(Resource):
            if resource.status != guards.RESERVED or resource.reservation is None:
                continue
            if resource.reservation.end_time > effective_now:
                continue

            def change(current: Resource) -> Resource:
                if current.status != guards.RESERVED or current.reservation is None:
                    return current
                if current.reservation.end_time > effective_now:
                    return current
                return replace(current, status=guards.AVAILABLE, reservation=None, updated_at=effective_now)

            try:
                previous, stored = self._mutate(Resource, resource.resource_id, change)
            except NotFoundError:
                continue
            if previous.status == stored.status:
                continue

            released += 1
            self._audit(
                "RESERVATION_EXPIRED",
                {"resource_id": stored.resource_id, "subject_id": previous.reservation.subject_id},
            )
            self._notify("resource-released", stored.to_dict())

        return released

    # Events

    def list_events(
        self,
        status: str | None = None,
        category: str | None = None,
        on_date: date | None = None,
        upcoming: bool = False,
    ) -> list[Event]:
        today = self._now().astimezone(self.timezone).date()
        events = [
            event
            for event in self._list(Event)
            if (status is None or event.status == status)
            and (category is None or event.category == category)
            and (on_date is None or event.date == on_date)
            and (not upcoming or (event.date >= today and event.status in ("upcoming", "ongoing")))
        ]
        return sorted(events, key=lambda event: (event.date, event.start_time))

    def get_event(self, event_id: str) -> Event:
        return self._load(Event, event_id)

    @staticmethod
    def _parse_event_fields(payload: dict[str, Any], organizer: str | None) -> dict[str, Any]:
        if organizer:
            payload = {**payload, "organizer": organizer}
        parsed = schemas.parse(schemas.EventIn, payload)
        return {**parsed.model_dump(exclude={"venue"}), "venue": parsed.venue.to_model()}

    def create_event(self, payload: dict[str, Any], caller: Caller) -> Event:
        self._require_staff(caller)
        fields = self._parse_event_fields(payload, organizer=caller.name)
        now = self._now()
        event = Event(event_id=str(uuid4()), created_at=now, updated_at=now, **fields)
        stored = self._insert(event)
        self._audit("EVENT_CREATED", {"event_id": stored.event_id, "actor": caller.subject_id})
        self._notify("event-created", stored.to_dict())
        return stored

    def update_event(self, event_id: str, payload: dict[str, Any], caller: Caller) -> Event:
        self._require_staff(caller)
        now = self._now()

        def change(current: Event) -> Event:
            merged = _merge_editable(current.to_dict(), payload, EVENT_EDITABLE_FIELDS)
            fields = self._parse_event_fields(merged, organizer=None)
            if fields["max_attendees"] is not None and fields["max_attendees"] < len(current.attendees):
                raise ValidationError.for_field("max_attendees", "max_attendees is below the current attendee count")
            return replace(current, updated_at=now, **fields)

        _previous, stored = self._mutate(Event, event_id, change)
        self._notify("event-updated", stored.to_dict())
        return stored

    def delete_event(self, event_id: str, caller: Caller) -> None:
        self._require_staff(caller)
        self._delete(Event, event_id)
        self._audit("EVENT_DELETED", {"event_id": event_id, "actor": caller.subject_id})
        self._notify("event-deleted", {"event_id": event_id})

    def register_for_event(self, event_id: str, caller: Caller, payload: dict[str, Any] | None = None) -> Event:
        details = schemas.parse(schemas.RegistrationIn, payload or {})
        now = self._now()

        def change(event: Event) -> Event:
            if event.status in ("cancelled", "completed"):
                raise NotAvailableError("Event is not open for registration")
            already = caller.subject_id in event.attendees or any(
                registration.subject_id == caller.subject_id for registration in event.registrations
            )
            if already:
                raise ConflictError("Already registered for this event")
            if event.max_attendees is not None and len(event.attendees) >= event.max_attendees:
                raise NotAvailableError("Event is full")
            registration = Registration(
                subject_id=caller.subject_id,
                phone=details.phone,
                department=details.department,
                notes=details.notes,
                created_at=now,
            )
            return replace(
                event,
                attendees=event.attendees + (caller.subject_id,),
                registrations=event.registrations + (registration,),
                updated_at=now,
            )

        _previous, stored = self._mutate(Event, event_id, change)
        self._audit("EVENT_REGISTRATION", {"event_id": event_id, "subject_id": caller.subject_id})
        self._notify("event-registration-updated", stored.to_dict())
        return stored

    # Faculty

    def list_faculty(self, department: str | None = None) -> list[Faculty]:
        members = [member for member in self._list(Faculty) if department is None or member.department == department]
        return sorted(members, key=lambda member: (member.department, member.name))

    def get_faculty(self, faculty_id: str) -> Faculty:
        return self._load(Faculty, faculty_id)

    @staticmethod
    def _parse_faculty_fields(payload: dict[str, Any]) -> dict[str, Any]:
        parsed = schemas.parse(schemas.FacultyIn, payload)
        return {
            "name": parsed.name,
            "department": parsed.department,
            "designation": parsed.designation,
            "cabin": parsed.cabin.to_model(),
            "contact": parsed.contact.to_model(),
        }

    def _require_faculty_owner(self, member: Faculty, caller: Caller) -> None:
        if member.user_id != caller.subject_id and not caller.is_admin:
            raise PermissionDeniedError("Not authorized")

    def create_faculty(self, payload: dict[str, Any], caller: Caller) -> Faculty:
        self._require_staff(caller)
        fields = self._parse_faculty_fields(payload)
        now = self._now()
        member = Faculty(
            faculty_id=str(uuid4()),
            user_id=caller.subject_id,
            created_at=now,
            updated_at=now,
            **fields,
        )
        stored = self._insert(member)
        self._audit("FACULTY_CREATED", {"faculty_id": stored.faculty_id, "actor": caller.subject_id})
        self._notify("faculty-created", stored.to_dict())
        return stored

    def update_faculty(self, faculty_id: str, payload: dict[str, Any], caller: Caller) -> Faculty:
        self._require_staff(caller)
        now = self._now()

        def change(current: Faculty) -> Faculty:
            self._require_faculty_owner(current, caller)
            merged = _merge_editable(current.to_dict(), payload, FACULTY_EDITABLE_FIELDS)
            return replace(current, updated_at=now, **self._parse_faculty_fields(merged))

        _previous, stored = self._mutate(Faculty, faculty_id, change)
        self._notify("faculty-updated", stored.to_dict())
        return stored

    def update_faculty_availability(self, faculty_id: str, payload: dict[str, Any], caller: Caller) -> Faculty:
        parsed = schemas.parse(schemas.FacultyAvailabilityIn, payload)
        is_available, current_status = parsed.is_available, parsed.current_status
        schedule = schemas.schedule_models(parsed.schedule)
        now = self._now()

        def change(current: Faculty) -> Faculty:
            self._require_faculty_owner(current, caller)
            availability = current.availability
            availability = Availability(
                schedule=availability.schedule if schedule is None else schedule,
                is_available=availability.is_available if is_available is None else is_available,
                current_status=current_status or availability.current_status,
            )
            return replace(current, availability=availability, updated_at=now)

        _previous, stored = self._mutate(Faculty, faculty_id, change)
        self._notify("faculty-availability-updated", stored.to_dict())
        return stored
