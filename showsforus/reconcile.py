"""
Find-or-create for the four imported tables.

Each entity is looked up by its natural key with an exact match and only
inserted when absent. The unique indexes in db.py are the real guard against
duplicates: an insert that trips one (another import got there first) is
resolved by fetching the row that won.

Creation order for one event is venue, musical, production, performance.
"""

import logging
import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable

import showsforus.db as db_module
from showsforus.errors import PersistenceError
from showsforus.models import Musical, Performance, Production, Venue

log = logging.getLogger(__name__)


@dataclass
class ReconcileCounters:
    created: Counter = field(default_factory=Counter)
    matched: Counter = field(default_factory=Counter)


class Reconciler:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.counters = ReconcileCounters()

    def venue(self, venue: Venue) -> Venue:
        key = {"name": venue.name, "city": venue.city, "state": venue.state}
        fields = {
            **key,
            "address": venue.address,
            "zip_code": venue.zip_code,
            "latitude": venue.latitude,
            "longitude": venue.longitude,
            "capacity": venue.capacity,
            "external_ids": venue.external_ids,
        }
        return self._find_or_create("venue", "venues", key, fields, db_module.row_to_venue)

    def musical(self, musical: Musical) -> Musical:
        key = {"name": musical.name}
        fields = {
            **key,
            "description": musical.description,
            "genre": musical.genre,
            "external_ids": musical.external_ids,
        }
        return self._find_or_create("musical", "musicals", key, fields, db_module.row_to_musical)

    def production(self, production: Production) -> Production:
        key = {"musical_id": production.musical_id, "name": production.name}
        fields = {
            **key,
            "type": production.type,
            "status": production.status,
            "external_ids": production.external_ids,
        }
        return self._find_or_create("production", "productions", key, fields, db_module.row_to_production)

    def performance(self, performance: Performance) -> Performance:
        key = {
            "production_id": performance.production_id,
            "venue_id": performance.venue_id,
            "performance_date": performance.date,
            "performance_time": performance.time,
        }
        fields = {
            **key,
            "ticket_url": performance.ticket_url,
            "availability": performance.availability,
            "external_ids": performance.external_ids,
        }
        return self._find_or_create("performance", "performances", key, fields, db_module.row_to_performance)

    def _find_or_create(
        self,
        entity: str,
        table: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        to_model: Callable[[sqlite3.Row], Any],
    ):
        try:
            row = db_module.select_one(self.conn, table, key)
            if row is None:
                try:
                    row = db_module.insert_one(self.conn, table, fields)
                except sqlite3.IntegrityError as exc:
                    # Unique index hit: someone else created it. Anything
                    # else (dangling foreign key, bad enum) is a real failure.
                    row = db_module.select_one(self.conn, table, key)
                    if row is None:
                        raise PersistenceError(entity, str(exc)) from exc
                    log.debug("Concurrent insert of %s %s, using existing row", entity, key)
                else:
                    self.counters.created[entity] += 1
                    log.debug("Created %s %s", entity, key)
                    return to_model(row)

            self.counters.matched[entity] += 1
            return to_model(self._merge_external_ids(table, row, fields["external_ids"]))
        except sqlite3.Error as exc:
            raise PersistenceError(entity, str(exc)) from exc

    def _merge_external_ids(self, table: str, row: sqlite3.Row, incoming: dict[str, str]) -> sqlite3.Row:
        """Add ids for providers the row doesn't know yet; never overwrite."""
        existing = db_module.decode_external_ids(row["external_ids"])
        missing = {k: v for k, v in incoming.items() if v and k not in existing}
        if not missing:
            return row
        return db_module.update_external_ids(self.conn, table, row["id"], {**existing, **missing})
