"""JSON backup import and export.

Backup format:
    {"data": [{"id": ..., "date": "2024-01-01T08:00:00", "reading": 1234.5}, ...],
     "settings": {"price": ..., "fixed": ..., "postcode": ...},
     "weather": {"2024-01-01": 7.3, ...}}

Only "data" is required.
"""

import json
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

from ..db import load_readings, save_readings, save_temperatures
from ..models import Reading, TariffConfig
from ..tariffs import YAML_KEYS, load_tariff_from_db, save_tariff_to_db


class BackupError(Exception):
    """Raised for unreadable or malformed backup files."""
    pass


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp as naive local time."""
    # Handle aware timestamps (browser exports end in Z) by normalizing to naive
    timestamp = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone().replace(tzinfo=None)
    return timestamp


def parse_backup(content: str) -> tuple[list[Reading], dict[str, float], dict[date, float]]:
    """Parse backup JSON into readings, tariff overrides and temperatures.

    Tariff overrides map TariffConfig field names to values; settings without
    a tariff counterpart (such as the postcode) are ignored.
    """
    try:
        data = json.loads(content)
        readings = [
            Reading(
                id=str(item["id"]),
                timestamp=_parse_timestamp(item["date"]),
                value=float(item["reading"]),
            )
            for item in data["data"]
        ]
        settings = data.get("settings") or {}
        overrides = {attr: float(settings[key]) for key, attr in YAML_KEYS.items() if settings.get(key) is not None}
        weather = {date.fromisoformat(day): float(temp) for day, temp in data.get("weather", {}).items()}
    except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
        raise BackupError(f"Invalid backup file: {e}")

    return readings, overrides, weather


def apply_settings(tariff: TariffConfig, overrides: dict[str, float]) -> TariffConfig:
    """Override tariff fields with the values from a backup."""
    return replace(tariff, **overrides)


def import_from_file(file_path: Path, db_path: Path | None = None) -> dict:
    """Import readings, tariff settings and temperatures from a backup file.

    Returns dict with 'imported', 'skipped' and 'temperatures' counts.
    """
    with open(file_path, encoding="utf-8") as f:
        readings, overrides, weather = parse_backup(f.read())

    result = save_readings(readings, db_path)
    if overrides:
        save_tariff_to_db(apply_settings(load_tariff_from_db(db_path), overrides), db_path)
    # Backups carry no fetch date, so only past days are kept
    today = date.today()
    result["temperatures"] = save_temperatures(
        {day: temp for day, temp in weather.items() if day <= today}, fetched_on=today, db_path=db_path
    )
    return result


def build_backup(readings: list[Reading], tariff: TariffConfig) -> dict:
    """Backup document for readings and tariff settings."""
    return {
        "data": [
            {"id": r.id, "date": r.timestamp.isoformat(), "reading": r.value}
            for r in sorted(readings, key=lambda r: r.timestamp)
        ],
        "settings": {key: getattr(tariff, attr) for key, attr in YAML_KEYS.items()},
    }


def export_to_file(file_path: Path, db_path: Path | None = None) -> int:
    """Write all readings and settings to a backup file. Returns reading count."""
    readings = load_readings(db_path)
    document = build_backup(readings, load_tariff_from_db(db_path))
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    return len(readings)
