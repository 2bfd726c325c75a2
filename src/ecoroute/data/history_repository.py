"""Data access helpers for historical pickup coordinates."""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..config import settings
from ..models.domain import Point

_TIMESTAMP_COLUMNS = ("submitted_at", "created_at", "SubmittedAt", "CreatedAt")
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _coerce_float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value.replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        stamp = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Unable to parse timestamp from value '{value}'") from exc
    # naive timestamps are taken as UTC
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc)


def load_pickup_history(source: Path) -> tuple[Point, ...]:
    """Load historical pickup coordinates, oldest first.

    The file is read on every call; callers cache the graph built from it.

    Rows are ordered by their ``submitted_at``/``created_at`` column when the file has one,
    otherwise file order is taken as submission order.
    """

    if not source.exists():
        raise FileNotFoundError(f"Pickup history file not found: {source}")

    records: list[tuple[int, Optional[datetime], Point]] = []
    with source.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Pickup history file '{source}' is missing a header row.")
        timestamp_column = next((name for name in _TIMESTAMP_COLUMNS if name in reader.fieldnames), None)
        for index, row in enumerate(reader):
            lat = _coerce_float(row.get("latitude") or row.get("Latitude") or row.get("lat"))
            lon = _coerce_float(row.get("longitude") or row.get("Longitude") or row.get("lng") or row.get("lon"))
            if lat is None or lon is None:
                continue  # ignore records without coordinates
            stamp = _coerce_timestamp(row.get(timestamp_column)) if timestamp_column else None
            records.append((index, stamp, Point(lat, lon)))

    if timestamp_column:
        records.sort(key=lambda record: (record[1] is not None, record[1] or _OLDEST, record[0]))
    return tuple(point for _, _, point in records)


class CsvPickupHistory:
    """Pickup history backed by a CSV export of past submissions."""

    def __init__(self, source: Path) -> None:
        self.source = source

    def recent_pickup_points(self, limit: int) -> tuple[Point, ...]:
        points = load_pickup_history(self.source)
        if limit <= 0:
            return ()
        return tuple(reversed(points[-limit:]))


def default_history_source() -> Optional[CsvPickupHistory]:
    if settings.history_file is None:
        return None
    return CsvPickupHistory(settings.history_file)
