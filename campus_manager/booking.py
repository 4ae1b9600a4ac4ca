from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol, TypeVar

from .errors import ConflictError, InvalidTransitionError, NotAvailableError, PermissionDeniedError, ValidationError
from .models import BOOKING_STATUSES, RESOURCE_STATUSES, Caller, Reservation

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

AVAILABLE = "available"
RESERVED = "reserved"

BOOKING_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({CANCELLED, COMPLETED}),
}


class TimedEntry(Protocol):
    start_time: datetime
    end_time: datetime
    status: str


T = TypeVar("T", bound=TimedEntry)


@dataclass(frozen=True)
class ReservationDecision:
    new_status: str
    reservation: Reservation | None
    current_user: str | None = None


def validate_range(start: datetime, end: datetime) -> None:
    if end <= start:
        raise ValidationError.for_field("end_time", "End time must be after start time")


def has_time_overlap(new_start: datetime, new_end: datetime, exist_start: datetime, exist_end: datetime) -> bool:
    """Return True when two time intervals overlap by even one instant.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    validate_range(new_start, new_end)
    return new_start < exist_end and new_end > exist_start


def find_conflict(existing_bookings: Iterable[T], start: datetime, end: datetime) -> T | None:
    """Return the first non-cancelled booking overlapping [start, end), if any."""
    validate_range(start, end)

    for booking in existing_bookings:
        if booking.status == CANCELLED:
            continue
        if has_time_overlap(start, end, booking.start_time, booking.end_time):
            return booking
    return None


def admit(existing_bookings: Iterable[TimedEntry], start: datetime, end: datetime) -> bool:
    return find_conflict(existing_bookings, start, end) is None


def ensure_admissible(existing_bookings: Iterable[TimedEntry], start: datetime, end: datetime) -> None:
    if find_conflict(existing_bookings, start, end) is not None:
        raise ConflictError("Room is already booked for this time slot")


def transition_booking(current: str, target: str) -> str:
    if target not in BOOKING_STATUSES:
        raise ValidationError.for_field("status", f"Unknown booking status: {target}")
    if target not in BOOKING_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"Booking cannot move from {current} to {target}")
    return target


def reserve(status: str, subject_id: str, start: datetime, end: datetime) -> ReservationDecision:
    validate_range(start, end)
    if status != AVAILABLE:
        raise NotAvailableError("Resource is not available")
    return ReservationDecision(
        new_status=RESERVED,
        reservation=Reservation(subject_id=subject_id, start_time=start, end_time=end),
    )


def release(status: str, reservation: Reservation | None, caller: Caller) -> ReservationDecision:
    if status != RESERVED or reservation is None:
        raise NotAvailableError("Resource is not reserved")
    if reservation.subject_id != caller.subject_id and not caller.is_admin:
        raise PermissionDeniedError("Only the reservation holder can release this resource")
    return ReservationDecision(new_status=AVAILABLE, reservation=None)


def overwrite_status(
    new_status: str,
    current_user: str | None = None,
    reservation: Reservation | None = None,
) -> ReservationDecision:
    """Administrative status overwrite.

    No transition table applies here: any known status may be set from any
    other. Reservation and current user are cleared unless supplied, and a
    reservation may only be supplied together with the reserved status.
    """
    if new_status not in RESOURCE_STATUSES:
        raise ValidationError.for_field("status", f"Unknown resource status: {new_status}")
    if reservation is not None:
        if new_status != RESERVED:
            raise ValidationError.for_field("reservation", "A reservation can only accompany the reserved status")
        validate_range(reservation.start_time, reservation.end_time)
    return ReservationDecision(new_status=new_status, reservation=reservation, current_user=current_user)
