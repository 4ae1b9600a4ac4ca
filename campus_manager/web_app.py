from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable
import logging

from flask import Flask, jsonify, request

from . import schemas
from .errors import (
    AuthenticationRequiredError,
    CampusError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from .models import ROLES, Caller, parse_date, to_utc
from .notifications import DEFAULT_TIMEOUT, NotificationHub, Publisher, RabbitMQPublisher
from .services import DEFAULT_MAX_WRITE_ATTEMPTS, CampusService
from .yaml_store import CampusYamlStore

DEFAULT_CONFIG: dict[str, Any] = {
    "DATA_DIR": "data",
    "TIMEZONE": "UTC",
    "HOLIDAY_COUNTRY": None,
    "CORS_ORIGINS": "*",
    "RABBITMQ_HOST": None,
    "RABBITMQ_TIMEOUT": DEFAULT_TIMEOUT,
    "MAX_WRITE_ATTEMPTS": DEFAULT_MAX_WRITE_ATTEMPTS,
    "LOG_LEVEL": "INFO",
}


def create_app(
    data_dir: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    publisher: Publisher | None = None,
    config: dict[str, Any] | None = None,
) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env("CAMPUS")
    if config:
        app.config.update(config)
    if data_dir is not None:
        app.config["DATA_DIR"] = str(data_dir)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger("campus_manager").setLevel(app.config["LOG_LEVEL"])

    hub = NotificationHub()
    if publisher is not None:
        hub.subscribe(publisher.publish)
    if app.config["RABBITMQ_HOST"]:
        broker = RabbitMQPublisher(app.config["RABBITMQ_HOST"], timeout=float(app.config["RABBITMQ_TIMEOUT"]))
        hub.subscribe(broker.publish)
        app.logger.info("Forwarding notifications to RabbitMQ at %s", app.config["RABBITMQ_HOST"])

    service = CampusService(
        CampusYamlStore(app.config["DATA_DIR"]),
        publisher=hub,
        clock=now_provider,
        max_write_attempts=int(app.config["MAX_WRITE_ATTEMPTS"]),
        timezone=app.config["TIMEZONE"],
        holiday_country=app.config["HOLIDAY_COUNTRY"],
    )
    app.extensions["campus_hub"] = hub
    app.extensions["campus_service"] = service

    def _caller() -> Caller:
        subject_id = (request.headers.get("X-Subject-Id") or "").strip()
        if not subject_id:
            raise AuthenticationRequiredError("Authentication required")
        role = (request.headers.get("X-Subject-Role") or "student").strip().lower()
        if role not in ROLES:
            raise AuthenticationRequiredError("Unknown caller role")
        name = (request.headers.get("X-Subject-Name") or "").strip() or None
        return Caller(subject_id=subject_id, role=role, name=name)

    def _payload() -> dict[str, Any]:
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    def _time_range(payload: dict[str, Any]) -> tuple[datetime, datetime]:
        parsed = schemas.parse(schemas.TimeRangeIn, payload)
        return to_utc(parsed.start_time), to_utc(parsed.end_time)

    def _query_int(name: str) -> int | None:
        raw = request.args.get(name)
        if raw is None or raw == "":
            return None
        try:
            return int(raw)
        except ValueError:
            raise ValidationError.for_field(name, f"{name} must be an integer") from None

    def _query_date(name: str) -> date | None:
        raw = request.args.get(name)
        if not raw:
            return None
        try:
            return parse_date(raw)
        except ValueError:
            raise ValidationError.for_field(name, f"Valid {name} is required") from None

    def _many(items: list[Any]) -> Any:
        return jsonify({"ok": True, "count": len(items), "data": [item.to_dict() for item in items]})

    def _one(item: Any, status: int = 200, message: str | None = None) -> Any:
        body: dict[str, Any] = {"ok": True, "data": item.to_dict()}
        if message:
            body["message"] = message
        return jsonify(body), status

    @app.errorhandler(CampusError)
    def handle_campus_error(error: CampusError) -> Any:
        body: dict[str, Any] = {"ok": False, "message": error.message}
        if error.errors:
            body["errors"] = error.errors
        return jsonify(body), error.status_code

    @app.errorhandler(StorageError)
    def handle_storage_error(error: StorageError) -> Any:
        app.logger.exception("Storage failure: %s", error)
        return jsonify({"ok": False, "message": "Storage is temporarily unavailable"}), 503

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ORIGINS"]
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type,X-Subject-Id,X-Subject-Role,X-Subject-Name"
        return response

    @app.get("/api/health")
    def health() -> Any:
        return jsonify({"ok": True, "message": "Campus API is running", "subscribers": hub.subscriber_count})

    # Rooms

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        rooms = service.list_rooms(
            building=request.args.get("building") or None,
            floor=_query_int("floor"),
            room_type=request.args.get("room_type") or None,
        )
        return _many(rooms)

    @app.get("/api/rooms/<room_id>")
    def get_room(room_id: str) -> Any:
        return _one(service.get_room(room_id))

    @app.post("/api/rooms")
    def create_room() -> Any:
        return _one(service.create_room(_payload(), _caller()), 201, "Room created")

    @app.put("/api/rooms/<room_id>")
    def update_room(room_id: str) -> Any:
        return _one(service.update_room(room_id, _payload(), _caller()))

    @app.delete("/api/rooms/<room_id>")
    def delete_room(room_id: str) -> Any:
        service.delete_room(room_id, _caller())
        return jsonify({"ok": True, "message": "Room deleted"})

    @app.patch("/api/rooms/<room_id>/availability")
    def update_room_availability(room_id: str) -> Any:
        return _one(service.update_room_availability(room_id, _payload(), _caller()))

    @app.put("/api/rooms/<room_id>/schedule")
    def update_room_schedule(room_id: str) -> Any:
        return _one(service.update_room_schedule(room_id, _payload(), _caller()))

    @app.post("/api/rooms/<room_id>/book")
    def book_room(room_id: str) -> Any:
        caller = _caller()
        parsed = schemas.parse(schemas.BookingIn, _payload())

        outcome = service.book_room(room_id, caller, parsed.start_time, parsed.end_time, parsed.purpose)
        return (
            jsonify(
                {
                    "ok": True,
                    "message": "Room booked",
                    "data": outcome.room.to_dict(),
                    "booking": outcome.booking.to_dict(),
                }
            ),
            201,
        )

    @app.get("/api/rooms/<room_id>/bookings")
    def list_room_bookings(room_id: str) -> Any:
        _caller()
        return _many(service.list_room_bookings(room_id, status=request.args.get("status") or None))

    @app.post("/api/rooms/<room_id>/bookings/<booking_id>/cancel")
    def cancel_booking(room_id: str, booking_id: str) -> Any:
        outcome = service.cancel_booking(room_id, booking_id, _caller())
        return jsonify({"ok": True, "message": "Booking cancelled", "booking": outcome.booking.to_dict()})

    @app.get("/api/rooms/<room_id>/day-schedule")
    def room_day_schedule(room_id: str) -> Any:
        day = _query_date("date") or to_utc(service.clock()).astimezone(service.timezone).date()
        return jsonify({"ok": True, "data": service.room_day_schedule(room_id, day)})

    # Resources

    @app.get("/api/resources")
    def list_resources() -> Any:
        resources = service.list_resources(
            resource_type=request.args.get("resource_type") or None,
            status=request.args.get("status") or None,
            room_id=request.args.get("room_id") or None,
            building=request.args.get("building") or None,
        )
        return _many(resources)

    @app.get("/api/resources/<resource_id>")
    def get_resource(resource_id: str) -> Any:
        return _one(service.get_resource(resource_id))

    @app.post("/api/resources")
    def create_resource() -> Any:
        return _one(service.create_resource(_payload(), _caller()), 201, "Resource created")

    @app.put("/api/resources/<resource_id>")
    def update_resource(resource_id: str) -> Any:
        return _one(service.update_resource(resource_id, _payload(), _caller()))

    @app.delete("/api/resources/<resource_id>")
    def delete_resource(resource_id: str) -> Any:
        service.delete_resource(resource_id, _caller())
        return jsonify({"ok": True, "message": "Resource deleted"})

    @app.post("/api/resources/<resource_id>/reserve")
    def reserve_resource(resource_id: str) -> Any:
        caller = _caller()
        start, end = _time_range(_payload())
        return _one(service.reserve_resource(resource_id, caller, start, end), message="Resource reserved")

    @app.post("/api/resources/<resource_id>/release")
    def release_resource(resource_id: str) -> Any:
        return _one(service.release_resource(resource_id, _caller()), message="Resource released")

    @app.patch("/api/resources/<resource_id>/status")
    def override_resource_status(resource_id: str) -> Any:
        caller = _caller()
        parsed = schemas.parse(schemas.StatusOverrideIn, _payload())

        updated = service.override_resource_status(
            resource_id,
            caller,
            parsed.status,
            current_user=parsed.current_user,
            reservation=parsed.reservation.to_model() if parsed.reservation else None,
            reason=parsed.reason,
        )
        return _one(updated, message="Resource status updated")

    # Events

    @app.get("/api/events")
    def list_events() -> Any:
        upcoming = (request.args.get("upcoming") or "").lower() == "true"
        events = service.list_events(
            status=request.args.get("status") or None,
            category=request.args.get("category") or None,
            on_date=_query_date("date"),
            upcoming=upcoming,
        )
        return _many(events)

    @app.get("/api/events/<event_id>")
    def get_event(event_id: str) -> Any:
        return _one(service.get_event(event_id))

    @app.post("/api/events")
    def create_event() -> Any:
        return _one(service.create_event(_payload(), _caller()), 201, "Event created")

    @app.put("/api/events/<event_id>")
    def update_event(event_id: str) -> Any:
        return _one(service.update_event(event_id, _payload(), _caller()))

    @app.delete("/api/events/<event_id>")
    def delete_event(event_id: str) -> Any:
        service.delete_event(event_id, _caller())
        return jsonify({"ok": True, "message": "Event deleted"})

    @app.post("/api/events/<event_id>/register")
    def register_for_event(event_id: str) -> Any:
        caller = _caller()
        return _one(service.register_for_event(event_id, caller, _payload()), message="Registered for event")

    # Faculty

    @app.get("/api/faculty")
    def list_faculty() -> Any:
        return _many(service.list_faculty(department=request.args.get("department") or None))

    @app.get("/api/faculty/<faculty_id>")
    def get_faculty(faculty_id: str) -> Any:
        return _one(service.get_faculty(faculty_id))

    @app.post("/api/faculty")
    def create_faculty() -> Any:
        return _one(service.create_faculty(_payload(), _caller()), 201, "Faculty profile created")

    @app.put("/api/faculty/<faculty_id>")
    def update_faculty(faculty_id: str) -> Any:
        return _one(service.update_faculty(faculty_id, _payload(), _caller()))

    @app.patch("/api/faculty/<faculty_id>/availability")
    def update_faculty_availability(faculty_id: str) -> Any:
        return _one(service.update_faculty_availability(faculty_id, _payload(), _caller()))

    @app.post("/api/maintenance/close-expired")
    def close_expired() -> Any:
        caller = _caller()
        if not caller.is_admin:
            raise PermissionDeniedError("Administrator role required")
        completed = service.complete_finished_bookings()
        released = service.release_expired_reservations()
        app.logger.info("Maintenance sweep: %d bookings completed, %d reservations released", completed, released)
        return jsonify({"ok": True, "data": {"bookings_completed": completed, "reservations_released": released}})

    return app
