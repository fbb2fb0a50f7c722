"""Database connection and schema management."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator

from .models import Reading, TemperatureStore

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "gas-meter" / "gas.db"

SCHEMA = """
-- Meter readings (cumulative m³, irregular timestamps)
CREATE TABLE IF NOT EXISTS readings (
    id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    value REAL NOT NULL
);

-- Tariff settings (single row)
CREATE TABLE IF NOT EXISTS tariff (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    unit_price REAL NOT NULL,
    daily_fixed_charge REAL NOT NULL,
    conversion_factor REAL NOT NULL,
    tax_rate REAL NOT NULL,
    vat_rate REAL NOT NULL
);

-- Mean daily outside temperature, observed and forecast
CREATE TABLE IF NOT EXISTS temperatures (
    day TEXT PRIMARY KEY,
    temperature_c REAL NOT NULL,
    fetched_on TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_readings_timestamp ON readings(timestamp);
"""


def get_db_path() -> Path:
    """Get the database path, creating parent directories if needed."""
    db_path = Path(DEFAULT_DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


@contextmanager
def get_connection(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Get a database connection with row factory enabled."""
    path = db_path or get_db_path()
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        conn.executescript(SCHEMA)
        conn.commit()


def save_readings(readings: list[Reading], db_path: Path | None = None) -> dict:
    """Save readings to the database.

    Returns dict with 'imported' and 'skipped' counts.
    """
    imported = 0
    skipped = 0

    with get_connection(db_path) as conn:
        for reading in readings:
            try:
                conn.execute(
                    "INSERT INTO readings (id, timestamp, value) VALUES (?, ?, ?)",
                    (reading.id, reading.timestamp.isoformat(), reading.value),
                )
                imported += 1
            except sqlite3.IntegrityError:
                # Same id already stored
                skipped += 1

        conn.commit()

    logger.debug("Saved %d readings, skipped %d", imported, skipped)
    return {"imported": imported, "skipped": skipped}


def load_readings(db_path: Path | None = None) -> list[Reading]:
    """Load all readings in chronological order."""
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT id, timestamp, value FROM readings ORDER BY timestamp"
        ).fetchall()

        return [
            Reading(
                id=row["id"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                value=row["value"],
            )
            for row in rows
        ]


def delete_reading(reading_id: str, db_path: Path | None = None) -> bool:
    """Delete a reading. Returns True if a row was removed."""
    with get_connection(db_path) as conn:
        cursor = conn.execute("DELETE FROM readings WHERE id = ?", (reading_id,))
        conn.commit()
        return cursor.rowcount > 0


def clear_readings(db_path: Path | None = None) -> int:
    """Delete every reading. Returns the number removed."""
    with get_connection(db_path) as conn:
        cursor = conn.execute("DELETE FROM readings")
        conn.commit()
        return cursor.rowcount


def save_temperatures(
    samples: dict[date, float], fetched_on: date | None = None, db_path: Path | None = None
) -> int:
    """Insert or refresh daily temperatures. Returns number of rows written."""
    fetched = (fetched_on or date.today()).isoformat()
    with get_connection(db_path) as conn:
        conn.executemany(
            "INSERT OR REPLACE INTO temperatures (day, temperature_c, fetched_on) VALUES (?, ?, ?)",
            [(day.isoformat(), temp, fetched) for day, temp in samples.items()],
        )
        conn.commit()
    return len(samples)


def load_temperature_store(today: date | None = None, db_path: Path | None = None) -> TemperatureStore:
    """Build the temperature store from the cached samples.

    A sample is observed if its day had passed when it was fetched. Forecasts
    for days that have since passed are dropped.
    """
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT day, temperature_c, fetched_on FROM temperatures").fetchall()

    observed = {}
    forecast = {}
    for row in rows:
        day = date.fromisoformat(row["day"])
        if day <= date.fromisoformat(row["fetched_on"]):
            observed[day] = row["temperature_c"]
        else:
            forecast[day] = row["temperature_c"]

    return TemperatureStore.from_caches(observed, forecast, today or date.today())


def get_stats(db_path: Path | None = None) -> dict:
    """Get database statistics."""
    with get_connection(db_path) as conn:
        stats = {}

        row = conn.execute(
            "SELECT COUNT(*) as count, MIN(timestamp) as earliest, MAX(timestamp) as latest FROM readings"
        ).fetchone()
        stats["readings"] = {
            "count": row["count"],
            "earliest": row["earliest"],
            "latest": row["latest"],
        }

        row = conn.execute(
            "SELECT COUNT(*) as count, MIN(day) as earliest, MAX(day) as latest FROM temperatures"
        ).fetchone()
        stats["temperatures"] = {
            "count": row["count"],
            "earliest": row["earliest"],
            "latest": row["latest"],
        }

        row = conn.execute("SELECT COUNT(*) as count FROM tariff").fetchone()
        stats["tariff"] = {"configured": row["count"] > 0}

        return stats
