"""
Pure helpers that turn a raw provider event into our categorical fields.

Everything here is deterministic: the same raw event name must always yield
the same canonical musical name, otherwise repeated imports would create
duplicate musicals.
"""

import logging
import re
from datetime import date, datetime, time

from showsforus.models import RawEvent

log = logging.getLogger(__name__)

DEFAULT_GENRE = "Musical"
DEFAULT_PERFORMANCE_TIME = time(19, 30)

# Applied in order; each strips a trailing qualifier from the event name.
_QUALIFIER_PATTERNS = [
    re.compile(r"\s*-\s*The Musical.*$", re.IGNORECASE),
    re.compile(r"\s*-\s*National Tour.*$", re.IGNORECASE),
    re.compile(r"\s*-\s*Broadway.*$", re.IGNORECASE),
    re.compile(r"\s*-\s*Tour.*$", re.IGNORECASE),
    re.compile(r"\s*\(.*\)$"),
]

_AVAILABILITY = {
    "onsale": "available",
    "soldout": "sold-out",
    "limited": "limited",
}


def canonical_musical_name(raw_name: str) -> str:
    """
    Strip tour/venue qualifiers from an event name.

    >>> canonical_musical_name("Hamilton - The Musical (Chicago)")
    'Hamilton'

    Falls back to the raw name if nothing would be left.
    """
    name = raw_name
    for pattern in _QUALIFIER_PATTERNS:
        name = pattern.sub("", name)
    name = name.strip()
    return name or raw_name


def production_type(raw_name: str) -> str:
    lowered = raw_name.lower()
    if "broadway" in lowered:
        return "broadway"
    if "tour" in lowered:
        return "touring"
    return "regional"


def production_status(start: date, now: date | datetime) -> str:
    """Compare an event's start date with `now` at day granularity."""
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(now, datetime):
        now = now.date()
    if start < now:
        return "completed"
    if start > now:
        return "upcoming"
    return "active"


def availability(status_code: str | None) -> str:
    code = (status_code or "").strip().lower()
    mapped = _AVAILABILITY.get(code)
    if mapped is None:
        # Providers add codes without notice (presale, rescheduled, ...)
        log.debug("Unknown availability code %r, defaulting to available", status_code)
        return "available"
    return mapped


def musical_genre(event: RawEvent) -> str:
    genre = event.classifications[0].genre.strip() if event.classifications else ""
    if not genre or genre.lower() == "undefined":
        log.debug("Event %s has no genre, defaulting to %s", event.id, DEFAULT_GENRE)
        return DEFAULT_GENRE
    return genre


def performance_time(event: RawEvent) -> time:
    return event.start_time or DEFAULT_PERFORMANCE_TIME
