from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
import sys
import traceback

from campus_manager import CampusYamlStore
from campus_manager.sample_data import sample_campus


def main(data_dir: str = "data") -> int:
    print("[INFO] Seeding campus data...")

    store = CampusYamlStore(data_dir)
    now = datetime.now(UTC)

    counts = {collection: store.replace_all(collection, documents) for collection, documents in sample_campus(now).items()}
    store.log_event("CAMPUS_SEEDED", counts, now)

    print("[INFO] Faculty profiles are created by faculty users, none seeded.")
    for collection, count in counts.items():
        print(f"[OK] {collection.capitalize()}: {count}")
    print(f"[OK] Data directory: {Path(data_dir).resolve()}")

    print("[DONE] Seeding completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main(*sys.argv[1:2]))
    except Exception:
        print("[ERROR] Seeding failed.")
        traceback.print_exc()
        raise SystemExit(1)
