from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
import shutil
import threading

import yaml

from .errors import DuplicateDocumentError, StaleDocumentError, StorageError

COLLECTION_KEYS: dict[str, str] = {
    "rooms": "room_id",
    "resources": "resource_id",
    "events": "event_id",
    "faculty": "faculty_id",
}
# Secondary fields that must also be unique within a collection.
UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    "faculty": ("user_id",),
}


class CampusYamlStore:
    """One YAML list per collection plus an append-only activity log.

    Every document carries an integer ``version``. ``update_one`` only writes
    when the stored version still matches the version the caller read, so
    read-check-write sequences can detect a concurrent writer.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.log_file = self.base_dir / "activity_log.yaml"
        self._files = {name: self.base_dir / f"{name}.yaml" for name in COLLECTION_KEYS}
        self._lock = threading.RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            for path in (*self._files.values(), self.log_file):
                if not path.exists():
                    path.write_text("[]\n", encoding="utf-8")
        except OSError as error:
            raise StorageError(f"Failed to initialise data directory: {self.base_dir}") from error

    def _path(self, collection: str) -> Path:
        try:
            return self._files[collection]
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}") from None

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self.log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise StorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
        backup_path: Path | None = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            backup_path = None

        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self.log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name) if backup_path is not None else None,
                    "reason": str(error),
                },
            )

    def log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now(UTC)).isoformat(timespec="seconds")
        with self._lock:
            events = self._read_yaml_list(self.log_file)
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self._write_yaml_list(self.log_file, events)

    def read_log(self, event_type: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            events = self._read_yaml_list(self.log_file)
        return [event for event in events if event_type is None or event.get("event_type") == event_type]

    def find_all(self, collection: str) -> list[dict[str, Any]]:
        path = self._path(collection)
        with self._lock:
            return self._read_yaml_list(path)

    def find_one(self, collection: str, key: str) -> dict[str, Any] | None:
        key_field = COLLECTION_KEYS[collection]
        for row in self.find_all(collection):
            if str(row.get(key_field)) == key:
                return row
        return None

    def insert_one(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        path = self._path(collection)
        key_field = COLLECTION_KEYS[collection]
        key = str(document[key_field])
        with self._lock:
            rows = self._read_yaml_list(path)
            if any(str(row.get(key_field)) == key for row in rows):
                raise DuplicateDocumentError(f"{collection} document already exists: {key}", field=key_field)
            for field in UNIQUE_FIELDS.get(collection, ()):
                value = document.get(field)
                if value is not None and any(row.get(field) == value for row in rows):
                    raise DuplicateDocumentError(f"{collection} {field} already taken: {value}", field=field)
            stored = {**document, "version": 1}
            rows.append(stored)
            self._write_yaml_list(path, rows)
        return stored

    def update_one(
        self,
        collection: str,
        key: str,
        document: dict[str, Any],
        expected_version: int,
    ) -> dict[str, Any]:
        path = self._path(collection)
        key_field = COLLECTION_KEYS[collection]
        with self._lock:
            rows = self._read_yaml_list(path)
            for index, row in enumerate(rows):
                if str(row.get(key_field)) != key:
                    continue
                current_version = int(row.get("version") or 0)
                if current_version != expected_version:
                    raise StaleDocumentError(
                        f"{collection}/{key} is at version {current_version}, expected {expected_version}"
                    )
                stored = {**document, key_field: key, "version": current_version + 1}
                rows[index] = stored
                self._write_yaml_list(path, rows)
                return stored
        raise StaleDocumentError(f"{collection}/{key} no longer exists")

    def delete_one(self, collection: str, key: str) -> dict[str, Any] | None:
        path = self._path(collection)
        key_field = COLLECTION_KEYS[collection]
        with self._lock:
            rows = self._read_yaml_list(path)
            remaining = [row for row in rows if str(row.get(key_field)) != key]
            if len(remaining) == len(rows):
                return None
            removed = next(row for row in rows if str(row.get(key_field)) == key)
            self._write_yaml_list(path, remaining)
        return removed

    def replace_all(self, collection: str, documents: list[dict[str, Any]]) -> int:
        path = self._path(collection)
        with self._lock:
            self._write_yaml_list(path, [{**document, "version": 1} for document in documents])
        return len(documents)
