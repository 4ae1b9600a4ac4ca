from __future__ import annotations

from pathlib import Path
import os

from mcp.server.fastmcp import FastMCP

from campus_manager import CampusService, CampusYamlStore, Caller
from campus_manager.models import parse_datetime

mcp = FastMCP(
    "Campus MCP Server",
    instructions="Expose campus rooms, bookings and resource reservations from the campus_manager project.",
    json_response=True,
)

DATA_DIR = Path(os.environ.get("CAMPUS_DATA_DIR") or Path(__file__).parent / "data")
SERVICE = CampusService(
    CampusYamlStore(DATA_DIR),
    timezone=os.environ.get("CAMPUS_TIMEZONE", "UTC"),
    holiday_country=os.environ.get("CAMPUS_HOLIDAY_COUNTRY") or None,
)


@mcp.resource("campus://rooms")
async def list_rooms() -> list[dict[str, str]]:
    """List bookable rooms with their building and type."""
    return [
        {"room_id": room.room_id, "name": room.name, "building": room.building, "room_type": room.room_type}
        for room in SERVICE.list_rooms()
    ]


@mcp.resource("campus://resources")
async def list_resources() -> list[dict[str, str]]:
    """List reservable resources and their current status."""
    return [
        {"resource_id": resource.resource_id, "name": resource.name, "status": resource.status}
        for resource in SERVICE.list_resources()
    ]


@mcp.tool()
def list_room_bookings(room_id: str, status: str | None = None) -> list[dict[str, str]]:
    """Return bookings of a room, optionally filtered by status."""
    return [booking.to_dict() for booking in SERVICE.list_room_bookings(room_id, status=status)]


@mcp.tool()
def book_room(room_id: str, subject_id: str, start_iso: str, end_iso: str, purpose: str = "MCP booking") -> dict:
    """Book a room for the given subject using ISO timestamps."""
    outcome = SERVICE.book_room(
        room_id,
        Caller(subject_id=subject_id),
        parse_datetime(start_iso),
        parse_datetime(end_iso),
        purpose,
    )
    return outcome.booking.to_dict()


@mcp.tool()
def reserve_resource(resource_id: str, subject_id: str, start_iso: str, end_iso: str) -> dict:
    """Reserve an available resource for the given subject."""
    resource = SERVICE.reserve_resource(
        resource_id,
        Caller(subject_id=subject_id),
        parse_datetime(start_iso),
        parse_datetime(end_iso),
    )
    return resource.to_dict()


@mcp.tool()
def release_resource(resource_id: str, subject_id: str) -> dict:
    """Release a reservation held by the given subject."""
    return SERVICE.release_resource(resource_id, Caller(subject_id=subject_id)).to_dict()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
