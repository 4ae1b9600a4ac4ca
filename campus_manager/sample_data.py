from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from .models import Coordinates, Event, Location, Resource, Room, ScheduleDay, TimeSlot

_ROOMS: list[tuple[Any, ...]] = [
    # room_id, name, building, floor, (x, y), type, capacity, occupancy, facilities, description
    ("A101", "Computer Lab 1", "A-Block", 1, (100, 150), "lab", 40, 0,
     ("Projector", "Computers", "Whiteboard", "WiFi"), "Main computer lab with 40 workstations"),
    ("A102", "Lecture Hall 1", "A-Block", 1, (200, 150), "classroom", 60, 0,
     ("Projector", "Sound System", "Whiteboard", "WiFi"), "Large lecture hall for major classes"),
    ("A201", "Seminar Room", "A-Block", 2, (150, 200), "seminar", 30, 0,
     ("Projector", "Video Conferencing", "Whiteboard", "WiFi"), "Modern seminar room for presentations"),
    ("B101", "Chemistry Lab", "B-Block", 1, (300, 150), "lab", 25, 0,
     ("Lab Equipment", "Safety Equipment", "Ventilation"), "Well-equipped chemistry laboratory"),
    ("B102", "Physics Lab", "B-Block", 1, (350, 150), "lab", 30, 0,
     ("Physics Equipment", "Measurement Tools", "Whiteboard"), "Physics laboratory with modern equipment"),
    ("C101", "Library Reading Room", "C-Block", 1, (400, 200), "library", 100, 15,
     ("Study Desks", "WiFi", "Quiet Zone", "Reference Books"), "Quiet reading room in the library"),
    ("A301", "Auditorium", "A-Block", 3, (250, 300), "auditorium", 200, 0,
     ("Stage", "Sound System", "Projector", "Lighting", "WiFi"), "Main auditorium for large events"),
    ("A103", "Faculty Office 1", "A-Block", 1, (100, 100), "office", 5, 2,
     ("Desks", "WiFi", "Printer"), "Shared faculty office space"),
]

_TIMETABLES: dict[str, tuple[ScheduleDay, ...]] = {
    "A101": (
        ScheduleDay(
            "Monday",
            (
                TimeSlot("09:00", "11:00", "Data Structures", "Dr. Smith", "CSE-2024"),
                TimeSlot("14:00", "16:00", "Web Development", "Dr. Johnson", "CSE-2023"),
            ),
        ),
        ScheduleDay("Tuesday", (TimeSlot("10:00", "12:00", "Database Systems", "Dr. Williams", "CSE-2024"),)),
    ),
    "A102": (ScheduleDay("Monday", (TimeSlot("09:00", "10:30", "Mathematics", "Dr. Brown", "All"),)),),
    "B101": (ScheduleDay("Wednesday", (TimeSlot("09:00", "12:00", "Organic Chemistry", "Dr. Davis", "CHE-2024"),)),),
}

_EVENTS: list[tuple[Any, ...]] = [
    # event_id, title, description, room_id, days ahead, start, end, organizer, category, max attendees
    ("tech-fest", "Tech Fest 2024",
     "Annual technology festival with coding competitions, workshops, and tech talks",
     "A301", 7, "09:00", "18:00", "Computer Science Department", "fest", 200),
    ("web-dev-workshop", "Web Development Workshop",
     "Hands-on workshop on modern web development with React and Node.js",
     "A101", 3, "14:00", "17:00", "Dr. Johnson", "workshop", 40),
    ("career-guidance", "Career Guidance Seminar", "Seminar on career opportunities in IT industry",
     "A201", 5, "10:00", "12:00", "Placement Cell", "seminar", 30),
    ("mid-term-exams", "Mid-Term Examinations", "Mid-term exams for all courses",
     "A102", 10, "09:00", "12:00", "Examination Department", "exam", 60),
]

_RESOURCES: list[tuple[Any, ...]] = [
    # resource_id, name, type, room_id, (x, y), status, metadata
    ("seat-l-001", "Library Seat 1", "library-seat", "C101", (400, 200), "available", {"seat_number": "L-001"}),
    ("seat-l-002", "Library Seat 2", "library-seat", "C101", (410, 200), "occupied", {"seat_number": "L-002"}),
    ("pc-001", "Computer Workstation 1", "computer", "A101", (100, 150), "available", {"computer_id": "PC-001"}),
    ("pc-002", "Computer Workstation 2", "computer", "A101", (110, 150), "available", {"computer_id": "PC-002"}),
    ("study-sr-001", "Study Room 1", "study-room", "C101", (420, 200), "available", {"seat_number": "SR-001"}),
    ("lab-microscope", "Lab Equipment - Microscope", "lab-equipment", "B101", (300, 150), "available",
     {"equipment_name": "Digital Microscope"}),
]


def sample_rooms(now: datetime) -> list[Room]:
    return [
        Room(
            room_id=room_id,
            name=name,
            building=building,
            floor=floor,
            room_type=room_type,
            capacity=capacity,
            coordinates=Coordinates(*point),
            current_occupancy=occupancy,
            schedule=_TIMETABLES.get(room_id, ()),
            facilities=facilities,
            description=description,
            created_at=now,
            updated_at=now,
        )
        for room_id, name, building, floor, point, room_type, capacity, occupancy, facilities, description in _ROOMS
    ]


def _location(room_id: str, point: tuple[float, float] | None = None) -> Location:
    row = next(row for row in _ROOMS if row[0] == room_id)
    return Location(room_id=room_id, building=row[2], floor=row[3], coordinates=Coordinates(*(point or row[4])))


def sample_events(today: date, now: datetime) -> list[Event]:
    return [
        Event(
            event_id=event_id,
            title=title,
            description=description,
            venue=_location(room_id),
            date=today + timedelta(days=days_ahead),
            start_time=start,
            end_time=end,
            organizer=organizer,
            category=category,
            max_attendees=max_attendees,
            created_at=now,
            updated_at=now,
        )
        for event_id, title, description, room_id, days_ahead, start, end, organizer, category, max_attendees in _EVENTS
    ]


def sample_resources(now: datetime) -> list[Resource]:
    return [
        Resource(
            resource_id=resource_id,
            name=name,
            resource_type=resource_type,
            location=_location(room_id, point),
            status=status,
            metadata=dict(metadata),
            created_at=now,
            updated_at=now,
        )
        for resource_id, name, resource_type, room_id, point, status, metadata in _RESOURCES
    ]


def sample_campus(now: datetime) -> dict[str, list[dict[str, Any]]]:
    """Serialized documents per collection, ready for ``CampusYamlStore.replace_all``."""
    return {
        "rooms": [room.to_dict() for room in sample_rooms(now)],
        "events": [event.to_dict() for event in sample_events(now.date(), now)],
        "resources": [resource.to_dict() for resource in sample_resources(now)],
    }
