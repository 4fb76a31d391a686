"""SQLite implementation of the vehicle record store."""

from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import NormalizedImagePath, VehicleRecord

VEHICLE_FIELDS = ("id", "make", "model", "year", "status", "images")
_UPDATABLE_FIELDS = frozenset(VEHICLE_FIELDS) - {"id"}
PUBLIC_COLUMNS = ", ".join(VEHICLE_FIELDS)


class SqliteVehicleStore:
    """Vehicle records in SQLite, safe to share between threads.

    ``append_image`` performs the read-modify-write of the image list inside a
    single locked transaction, so concurrent uploads for the same vehicle never
    drop an append.
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._create_schema()

    def _create_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS vehicles (
                id TEXT PRIMARY KEY,
                make TEXT NOT NULL DEFAULT '',
                model TEXT NOT NULL DEFAULT '',
                year INTEGER,
                status TEXT NOT NULL DEFAULT 'available',
                images TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> VehicleRecord:
        images = json.loads(row["images"] or "[]")
        return VehicleRecord(
            id=row["id"],
            make=row["make"],
            model=row["model"],
            year=row["year"],
            status=row["status"],
            images=[str(image) for image in images],
        )

    def _fetch(self, vehicle_id: str) -> Optional[sqlite3.Row]:
        return self._conn.execute(
            f"SELECT {PUBLIC_COLUMNS} FROM vehicles WHERE id = ?", (vehicle_id,)
        ).fetchone()

    def create(self, vehicle: Dict[str, Any]) -> VehicleRecord:
        """Insert a vehicle; an id is generated when none is given."""
        record = VehicleRecord(**{"id": str(uuid.uuid4()), **vehicle})
        now = self._now()
        with self._lock:
            self._conn.execute(
                "INSERT INTO vehicles (id, make, model, year, status, images, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.make,
                    record.model,
                    record.year,
                    record.status,
                    json.dumps(record.images),
                    now,
                    now,
                ),
            )
            self._conn.commit()
        return record

    def get_by_id(self, vehicle_id: str) -> Optional[VehicleRecord]:
        with self._lock:
            row = self._fetch(vehicle_id)
        return self._row_to_record(row) if row else None

    def list_all(self) -> List[VehicleRecord]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {PUBLIC_COLUMNS} FROM vehicles ORDER BY created_at DESC, id"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def update(self, vehicle_id: str, fields: Dict[str, Any]) -> Optional[VehicleRecord]:
        """Update the given fields; unknown field names raise ``ValueError``."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown vehicle fields: {sorted(unknown)}")

        values = dict(fields)
        if "images" in values:
            values["images"] = json.dumps(list(values["images"]))

        with self._lock:
            if self._fetch(vehicle_id) is None:
                return None
            if values:
                assignments = ", ".join(f"{name} = ?" for name in values)
                self._conn.execute(
                    f"UPDATE vehicles SET {assignments}, updated_at = ? WHERE id = ?",
                    (*values.values(), self._now(), vehicle_id),
                )
                self._conn.commit()
            return self._row_to_record(self._fetch(vehicle_id))

    def append_image(
        self, vehicle_id: str, path: NormalizedImagePath
    ) -> Optional[VehicleRecord]:
        """Append one image path to the vehicle's list in a single transaction."""
        with self._lock:
            row = self._fetch(vehicle_id)
            if row is None:
                return None
            images = json.loads(row["images"] or "[]")
            images.append(path)
            self._conn.execute(
                "UPDATE vehicles SET images = ?, updated_at = ? WHERE id = ?",
                (json.dumps(images), self._now(), vehicle_id),
            )
            self._conn.commit()
            return self._row_to_record(self._fetch(vehicle_id))

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM vehicles").fetchone()[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()
