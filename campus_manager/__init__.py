from .booking import admit, ensure_admissible, find_conflict, has_time_overlap, overwrite_status, release, reserve
from .errors import (
	CampusError,
	ConcurrentModificationError,
	ConflictError,
	NotAvailableError,
	NotFoundError,
	PermissionDeniedError,
	StorageError,
	ValidationError,
)
from .models import Booking, Caller, Event, Faculty, Reservation, Resource, Room
from .notifications import NotificationHub, RabbitMQPublisher
from .services import BookingOutcome, CampusService
from .yaml_store import CampusYamlStore

__all__ = [
	"admit",
	"ensure_admissible",
	"find_conflict",
	"has_time_overlap",
	"overwrite_status",
	"release",
	"reserve",
	"CampusError",
	"ConcurrentModificationError",
	"ConflictError",
	"NotAvailableError",
	"NotFoundError",
	"PermissionDeniedError",
	"StorageError",
	"ValidationError",
	"Booking",
	"Caller",
	"Event",
	"Faculty",
	"Reservation",
	"Resource",
	"Room",
	"NotificationHub",
	"RabbitMQPublisher",
	"BookingOutcome",
	"CampusService",
	"CampusYamlStore",
]
