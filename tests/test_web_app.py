import tempfile
import unittest
from datetime import UTC, datetime
from pathlib import Path
from unittest import mock

from campus_manager import CampusYamlStore
from campus_manager.errors import StorageError
from campus_manager.sample_data import sample_campus
from campus_manager.web_app import create_app

NOW = datetime(2026, 2, 23, 7, 0, tzinfo=UTC)


def headers(subject_id: str = "stu-1", role: str = "student", name: str | None = None) -> dict[str, str]:
    values = {"X-Subject-Id": subject_id, "X-Subject-Role": role}
    if name:
        values["X-Subject-Name"] = name
    return values


class RecordingPublisher:
    def __init__(self) -> None:
        self.topics: list[str] = []

    def publish(self, topic: str, payload: dict) -> None:
        self.topics.append(topic)


class TestWebApp(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.data_dir = Path(temp_dir.name) / "data"
        store = CampusYamlStore(self.data_dir)
        for collection, documents in sample_campus(NOW).items():
            store.replace_all(collection, documents)

        self.publisher = RecordingPublisher()
        self.app = create_app(self.data_dir, now_provider=lambda: NOW, publisher=self.publisher)
        self.client = self.app.test_client()

    def test_health_and_cors(self) -> None:
        response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.get_json()["ok"])
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_list_rooms_envelope(self) -> None:
        response = self.client.get("/api/rooms?building=B-Block")

        payload = response.get_json()
        self.assertTrue(payload["ok"])
        self.assertEqual(payload["count"], 2)
        self.assertEqual({room["room_id"] for room in payload["data"]}, {"B101", "B102"})

    def test_invalid_floor_filter(self) -> None:
        response = self.client.get("/api/rooms?floor=top")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["errors"][0]["field"], "floor")

    def test_unknown_room_is_404(self) -> None:
        response = self.client.get("/api/rooms/Z999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"ok": False, "message": "Room not found"})

    def test_booking_flow(self) -> None:
        body = {"start_time": "2026-02-24T09:00:00Z", "end_time": "2026-02-24T11:00:00Z", "purpose": "Study"}
        created = self.client.post("/api/rooms/A201/book", json=body, headers=headers())
        self.assertEqual(created.status_code, 201)
        booking = created.get_json()["booking"]
        self.assertEqual(booking["status"], "confirmed")

        conflict = self.client.post(
            "/api/rooms/A201/book",
            json={"start_time": "2026-02-24T10:00:00Z", "end_time": "2026-02-24T12:00:00Z"},
            headers=headers("stu-2"),
        )
        self.assertEqual(conflict.status_code, 409)
        self.assertEqual(conflict.get_json()["message"], "Room is already booked for this time slot")

        adjacent = self.client.post(
            "/api/rooms/A201/book",
            json={"start_time": "2026-02-24T11:00:00Z", "end_time": "2026-02-24T12:00:00Z"},
            headers=headers("stu-2"),
        )
        self.assertEqual(adjacent.status_code, 201)

        listing = self.client.get("/api/rooms/A201/bookings", headers=headers())
        self.assertEqual(listing.get_json()["count"], 2)

        cancelled = self.client.post(f"/api/rooms/A201/bookings/{booking['booking_id']}/cancel", headers=headers())
        self.assertEqual(cancelled.get_json()["booking"]["status"], "cancelled")
        self.assertEqual(self.publisher.topics, ["room-booked", "room-booked", "room-booking-cancelled"])

    def test_booking_requires_identity_and_valid_times(self) -> None:
        anonymous = self.client.post("/api/rooms/A201/book", json={})
        self.assertEqual(anonymous.status_code, 401)

        invalid = self.client.post("/api/rooms/A201/book", json={"start_time": "soon"}, headers=headers())
        self.assertEqual(invalid.status_code, 400)
        fields = {problem["field"] for problem in invalid.get_json()["errors"]}
        self.assertEqual(fields, {"start_time", "end_time"})

        inverted = self.client.post(
            "/api/rooms/A201/book",
            json={"start_time": "2026-02-24T11:00:00Z", "end_time": "2026-02-24T10:00:00Z"},
            headers=headers(),
        )
        self.assertEqual(inverted.status_code, 400)

    def test_unknown_role_is_rejected(self) -> None:
        response = self.client.post("/api/rooms/A201/book", json={}, headers=headers(role="superuser"))
        self.assertEqual(response.status_code, 401)

    def test_resource_reservation_flow(self) -> None:
        body = {"start_time": "2026-02-24T14:00:00Z", "end_time": "2026-02-24T15:00:00Z"}
        reserved = self.client.post("/api/resources/pc-001/reserve", json=body, headers=headers())
        self.assertEqual(reserved.status_code, 200)
        data = reserved.get_json()["data"]
        self.assertEqual(data["status"], "reserved")
        self.assertEqual(data["reservation"]["subject_id"], "stu-1")

        again = self.client.post(
            "/api/resources/pc-001/reserve",
            json={"start_time": "2026-02-24T16:00:00Z", "end_time": "2026-02-24T17:00:00Z"},
            headers=headers("stu-2"),
        )
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.get_json()["message"], "Resource is not available")

        released = self.client.post("/api/resources/pc-001/release", headers=headers())
        self.assertEqual(released.get_json()["data"]["status"], "available")

    def test_status_override_requires_admin(self) -> None:
        denied = self.client.patch("/api/resources/pc-001/status", json={"status": "maintenance"}, headers=headers())
        self.assertEqual(denied.status_code, 403)

        allowed = self.client.patch(
            "/api/resources/pc-001/status",
            json={"status": "maintenance", "reason": "Screen replacement"},
            headers=headers("admin-1", "admin"),
        )
        self.assertEqual(allowed.status_code, 200)
        self.assertEqual(allowed.get_json()["data"]["status"], "maintenance")

        reserved = self.client.patch(
            "/api/resources/pc-002/status",
            json={
                "status": "reserved",
                "reservation": {
                    "subject_id": "stu-9",
                    "start_time": "2026-02-24T14:00:00Z",
                    "end_time": "2026-02-24T15:00:00Z",
                },
            },
            headers=headers("admin-1", "admin"),
        )
        self.assertEqual(reserved.get_json()["data"]["reservation"]["subject_id"], "stu-9")

    def test_event_registration(self) -> None:
        first = self.client.post("/api/events/career-guidance/register", json={"phone": "9876543210"}, headers=headers())
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.get_json()["data"]["attendees"], ["stu-1"])

        duplicate = self.client.post("/api/events/career-guidance/register", json={}, headers=headers())
        self.assertEqual(duplicate.status_code, 409)

    def test_event_filters(self) -> None:
        response = self.client.get("/api/events?upcoming=true&category=fest")
        self.assertEqual([event["event_id"] for event in response.get_json()["data"]], ["tech-fest"])

    def test_faculty_profile_flow(self) -> None:
        body = {
            "name": "Dr. Smith",
            "department": "Computer Science",
            "cabin": {"room_id": "A103", "building": "A-Block", "floor": 1, "coordinates": {"x": 100, "y": 100}},
        }
        created = self.client.post("/api/faculty", json=body, headers=headers("fac-1", "faculty"))
        self.assertEqual(created.status_code, 201)
        faculty_id = created.get_json()["data"]["faculty_id"]

        updated = self.client.patch(
            f"/api/faculty/{faculty_id}/availability",
            json={"current_status": "busy"},
            headers=headers("fac-1", "faculty"),
        )
        self.assertEqual(updated.get_json()["data"]["availability"]["current_status"], "busy")
        self.assertEqual(self.client.get("/api/faculty").get_json()["count"], 1)

    def test_day_schedule_endpoint(self) -> None:
        response = self.client.get("/api/rooms/A101/day-schedule?date=2026-02-24")

        data = response.get_json()["data"]
        self.assertEqual(data["weekday"], "Tuesday")
        self.assertEqual(len(data["timetable"]), 1)

        invalid = self.client.get("/api/rooms/A101/day-schedule?date=someday")
        self.assertEqual(invalid.status_code, 400)

    def test_maintenance_sweep(self) -> None:
        self.client.post(
            "/api/resources/pc-001/reserve",
            json={"start_time": "2026-02-22T09:00:00Z", "end_time": "2026-02-22T10:00:00Z"},
            headers=headers(),
        )

        denied = self.client.post("/api/maintenance/close-expired", headers=headers())
        self.assertEqual(denied.status_code, 403)

        swept = self.client.post("/api/maintenance/close-expired", headers=headers("admin-1", "admin"))
        self.assertEqual(swept.get_json()["data"], {"bookings_completed": 0, "reservations_released": 1})

    def test_storage_failure_is_503(self) -> None:
        with mock.patch.object(CampusYamlStore, "_write_yaml_list", side_effect=StorageError("disk full")):
            response = self.client.post(
                "/api/rooms/A201/book",
                json={"start_time": "2026-02-24T09:00:00Z", "end_time": "2026-02-24T10:00:00Z"},
                headers=headers(),
            )

        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.get_json()["ok"])


if __name__ == "__main__":
    unittest.main()
