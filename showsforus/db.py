import json
import sqlite3
from datetime import date, time
from pathlib import Path
from typing import Any, Optional

from showsforus.models import Musical, Performance, Production, Venue

# Child tables first: the order deletes must run in.
TABLES = ("performances", "productions", "musicals", "venues")


def connect(db_path: Path | str) -> sqlite3.Connection:
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    _create_schema(conn)
    return conn


def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS venues (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            name         TEXT NOT NULL,
            address      TEXT NOT NULL DEFAULT '',
            city         TEXT NOT NULL,
            state        TEXT NOT NULL,
            zip_code     TEXT NOT NULL DEFAULT '',
            latitude     REAL,
            longitude    REAL,
            capacity     INTEGER,
            external_ids TEXT NOT NULL DEFAULT '{}',
            created_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(name, city, state)
        );

        CREATE TABLE IF NOT EXISTS musicals (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            name         TEXT NOT NULL UNIQUE,
            description  TEXT NOT NULL DEFAULT '',
            genre        TEXT NOT NULL DEFAULT 'Musical',
            external_ids TEXT NOT NULL DEFAULT '{}',
            created_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS productions (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            musical_id   INTEGER NOT NULL REFERENCES musicals(id),
            name         TEXT NOT NULL,
            type         TEXT NOT NULL CHECK (type IN ('broadway', 'touring', 'regional')),
            status       TEXT NOT NULL CHECK (status IN ('active', 'upcoming', 'completed')),
            external_ids TEXT NOT NULL DEFAULT '{}',
            created_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(musical_id, name)
        );

        CREATE TABLE IF NOT EXISTS performances (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            production_id    INTEGER NOT NULL REFERENCES productions(id),
            venue_id         INTEGER NOT NULL REFERENCES venues(id),
            performance_date TEXT NOT NULL,
            performance_time TEXT NOT NULL,
            ticket_url       TEXT NOT NULL DEFAULT '',
            availability     TEXT NOT NULL CHECK (availability IN ('available', 'sold-out', 'limited')),
            external_ids     TEXT NOT NULL DEFAULT '{}',
            created_at       TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at       TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(production_id, venue_id, performance_date, performance_time)
        );
    """)
    conn.commit()


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"Unknown table '{table}'")


def _encode(value: Any) -> Any:
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True)
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def decode_external_ids(raw: Optional[str]) -> dict[str, str]:
    if not raw:
        return {}
    return json.loads(raw)


# --- Row operations ---

def select_one(conn: sqlite3.Connection, table: str, where: dict[str, Any]) -> Optional[sqlite3.Row]:
    """Return the first row whose columns equal every value in `where`, or None."""
    _check_table(table)
    clause = " AND ".join(f"{col} = :{col}" for col in where)
    return conn.execute(
        f"SELECT * FROM {table} WHERE {clause} LIMIT 1",
        {col: _encode(v) for col, v in where.items()},
    ).fetchone()


def insert_one(conn: sqlite3.Connection, table: str, fields: dict[str, Any]) -> sqlite3.Row:
    _check_table(table)
    columns = ", ".join(fields)
    placeholders = ", ".join(f":{col}" for col in fields)
    try:
        cursor = conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            {col: _encode(v) for col, v in fields.items()},
        )
    except sqlite3.Error:
        conn.rollback()
        raise
    conn.commit()
    return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (cursor.lastrowid,)).fetchone()


def update_external_ids(
    conn: sqlite3.Connection, table: str, row_id: int, external_ids: dict[str, str]
) -> sqlite3.Row:
    _check_table(table)
    conn.execute(
        f"UPDATE {table} SET external_ids = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (_encode(external_ids), row_id),
    )
    conn.commit()
    return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()


def delete_all(conn: sqlite3.Connection, table: str) -> int:
    _check_table(table)
    cursor = conn.execute(f"DELETE FROM {table}")
    conn.commit()
    return cursor.rowcount


def count(conn: sqlite3.Connection, table: str) -> int:
    _check_table(table)
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


# --- Row conversion ---

def row_to_venue(row: sqlite3.Row) -> Venue:
    return Venue(
        id=row["id"],
        name=row["name"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zip_code=row["zip_code"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        capacity=row["capacity"],
        external_ids=decode_external_ids(row["external_ids"]),
    )


def row_to_musical(row: sqlite3.Row) -> Musical:
    return Musical(
        id=row["id"],
        name=row["name"],
        genre=row["genre"],
        description=row["description"],
        external_ids=decode_external_ids(row["external_ids"]),
    )


def row_to_production(row: sqlite3.Row) -> Production:
    return Production(
        id=row["id"],
        musical_id=row["musical_id"],
        name=row["name"],
        type=row["type"],
        status=row["status"],
        external_ids=decode_external_ids(row["external_ids"]),
    )


def row_to_performance(row: sqlite3.Row) -> Performance:
    return Performance(
        id=row["id"],
        production_id=row["production_id"],
        venue_id=row["venue_id"],
        date=date.fromisoformat(row["performance_date"]),
        time=time.fromisoformat(row["performance_time"]),
        ticket_url=row["ticket_url"],
        availability=row["availability"],
        external_ids=decode_external_ids(row["external_ids"]),
    )
