"""
Batch import of provider events into venues, musicals, productions and
performances.

One call fetches a single page of events and reconciles each one on its own.
A failed fetch ends the call with a single error entry; a failed event is
counted as skipped and the batch carries on. The call always returns an
ImportResult, so callers must look at `errors` to notice partial failure.
"""

import logging
import sqlite3
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import showsforus.db as db_module
from showsforus import normalize
from showsforus.config import DEFAULT_IMPORT_LIMIT
from showsforus.errors import RecordSkipped, ShowsForUsError
from showsforus.models import (
    EventSearchFilters,
    ImportResult,
    ImportStats,
    Musical,
    Performance,
    Production,
    RawEvent,
    Venue,
)
from showsforus.reconcile import Reconciler
from showsforus.sources.base import BaseEventSource

log = logging.getLogger(__name__)


class DataImporter:
    def __init__(
        self,
        conn: sqlite3.Connection,
        source: BaseEventSource,
        now: Optional[date | datetime] = None,
        default_limit: int = DEFAULT_IMPORT_LIMIT,
    ):
        """
        Args:
            conn: Open datastore connection, shared by every reconcile call.
            source: Where raw events come from (e.g. TicketmasterClient).
            now: Reference date for production status; today if omitted.
            default_limit: Page size used when the filters don't set one.
        """
        self.conn = conn
        self.source = source
        self.now = now
        self.default_limit = default_limit

    def import_musical_events(self, filters: Optional[EventSearchFilters] = None, **kwargs) -> ImportResult:
        if filters is not None and kwargs:
            raise TypeError("Pass either an EventSearchFilters or keyword filters, not both")
        if filters is None:
            filters = EventSearchFilters(**kwargs)
        if filters.limit is None:
            filters = replace(filters, limit=self.default_limit)

        result = ImportResult()
        try:
            page = self.source.search_musical_events(filters)
        except ShowsForUsError as exc:
            log.error("Fetch from %s failed: %s", self.source.provider, exc)
            result.errors.append(f"Failed to fetch events: {exc}")
            return result
        except Exception as exc:
            log.exception("Unexpected error fetching from %s", self.source.provider)
            result.errors.append(f"Failed to fetch events: {exc}")
            return result

        log.info("Found %d musical events from %s", len(page.events), self.source.provider)

        reconciler = Reconciler(self.conn)
        for event in page.events:
            try:
                self.import_event(event, reconciler)
            except ShowsForUsError as exc:
                log.warning("Skipped event %s: %s", event.id, exc)
                result.skipped += 1
                result.errors.append(f"Failed to import event {event.id}: {exc}")
            except Exception as exc:
                log.exception("Unexpected error importing event %s", event.id)
                result.skipped += 1
                result.errors.append(f"Failed to import event {event.id}: {exc}")
            else:
                result.imported += 1

        result.created = dict(reconciler.counters.created)
        log.info(
            "Import finished: %d imported, %d skipped", result.imported, result.skipped,
        )
        return result

    def import_event(self, event: RawEvent, reconciler: Optional[Reconciler] = None) -> Performance:
        """Reconcile one raw event: venue, musical, production, performance."""
        if event.venue is None:
            raise RecordSkipped(event.id, "missing venue")
        if not event.venue.name:
            raise RecordSkipped(event.id, "venue has no name")
        if not event.name:
            raise RecordSkipped(event.id, "missing event name")
        if event.start_date is None:
            raise RecordSkipped(event.id, "missing start date")

        reconciler = reconciler or Reconciler(self.conn)
        provider = self.source.provider
        now = self.now or date.today()
        raw_venue = event.venue

        venue = reconciler.venue(Venue(
            name=raw_venue.name,
            address=raw_venue.address,
            city=raw_venue.city,
            state=raw_venue.state,
            zip_code=raw_venue.postal_code,
            latitude=raw_venue.latitude,
            longitude=raw_venue.longitude,
            external_ids={provider: raw_venue.id},
        ))

        genre = normalize.musical_genre(event)
        musical = reconciler.musical(Musical(
            name=normalize.canonical_musical_name(event.name),
            genre=genre,
            description=f"{event.name} - {genre}",
            external_ids={provider: event.id},
        ))

        production = reconciler.production(Production(
            musical_id=musical.id,
            name=event.name,
            type=normalize.production_type(event.name),
            status=normalize.production_status(event.start_date, now),
            external_ids={provider: event.id},
        ))

        return reconciler.performance(Performance(
            production_id=production.id,
            venue_id=venue.id,
            date=event.start_date,
            time=normalize.performance_time(event),
            ticket_url=event.url,
            availability=normalize.availability(event.status_code),
            external_ids={provider: event.id},
        ))

    def get_import_stats(self) -> ImportStats:
        return ImportStats(**{table: db_module.count(self.conn, table) for table in db_module.TABLES})

    def clear_all_data(self) -> None:
        """Delete every imported row, children before parents.

        No environment check here; callers decide whether a reset is allowed.
        """
        for table in db_module.TABLES:
            removed = db_module.delete_all(self.conn, table)
            log.info("Deleted %d rows from %s", removed, table)
