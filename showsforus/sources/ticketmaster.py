"""
Ticketmaster Discovery API v2 client.

Search endpoint: {base_url}/events.json?apikey=...&<filters>
  - Results live under _embedded.events (the key is absent when nothing matched)
  - Paging info under page: size, totalElements, totalPages, number
  - Each event embeds its venue(s) under _embedded.venues

Musical theatre sits under the "Arts & Theatre" segment with the "Theatre"
sub-genre; search_musical_events() always adds both ids to the query.

The client never retries. A failed call raises UpstreamUnavailable and the
caller decides what to do with it.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Optional

import requests
from dateutil import parser as dateparser

import showsforus.config as cfg_module
from showsforus.config import DEFAULT_BASE_URL
from showsforus.errors import NotConfigured, UpstreamUnavailable
from showsforus.models import (
    Classification,
    EventPage,
    EventSearchFilters,
    RawEvent,
    RawVenue,
)
from showsforus.sources.base import BaseEventSource

log = logging.getLogger(__name__)

ARTS_THEATRE_SEGMENT_ID = "KZFzniwnSyZfZ7v7nE"
THEATRE_SUBGENRE_ID = "KnvZfZ7vAd1"

_HEADERS = {"User-Agent": "showsforus/0.1", "Accept": "application/json"}


def format_datetime(value: str | date | datetime, end_of_day: bool = False) -> str:
    """Render a filter date in the provider's YYYY-MM-DDTHH:MM:SSZ format.

    Offset-aware values are converted to UTC; naive ones are sent as given.
    """
    if isinstance(value, str):
        value = dateparser.parse(value)
        if value.hour == value.minute == value.second == 0 and end_of_day:
            value = value.replace(hour=23, minute=59, second=59)
    elif not isinstance(value, datetime):
        value = datetime.combine(value, time(23, 59, 59) if end_of_day else time.min)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_float(raw: Any) -> Optional[float]:
    try:
        return float(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if not raw or not isinstance(raw, str):
        return None
    try:
        return dateparser.parse(raw)
    except (ValueError, OverflowError):
        log.debug("Unparseable Ticketmaster date %r", raw)
        return None


def _parse_venue(data: dict) -> RawVenue:
    location = data.get("location") or {}
    return RawVenue(
        id=str(data.get("id", "")),
        name=(data.get("name") or "").strip(),
        address=(data.get("address") or {}).get("line1", ""),
        city=(data.get("city") or {}).get("name", ""),
        state=(data.get("state") or {}).get("stateCode", ""),
        postal_code=data.get("postalCode", ""),
        latitude=_parse_float(location.get("latitude")),
        longitude=_parse_float(location.get("longitude")),
    )


def parse_event(data: dict) -> RawEvent:
    """Convert one entry of _embedded.events into a RawEvent.

    Missing fields come back empty (or None for the start date) rather than
    raising; deciding whether the event is importable is the importer's job.
    """
    dates = data.get("dates") or {}
    start = dates.get("start") or {}
    start_date = _parse_datetime(start.get("localDate"))
    start_time = _parse_datetime(start.get("localTime"))

    venues = (data.get("_embedded") or {}).get("venues") or []
    classifications = [
        Classification(
            segment=(c.get("segment") or {}).get("name", ""),
            genre=(c.get("genre") or {}).get("name", ""),
            sub_genre=(c.get("subGenre") or {}).get("name", ""),
        )
        for c in data.get("classifications") or []
    ]

    return RawEvent(
        id=str(data.get("id", "")),
        name=(data.get("name") or "").strip(),
        start_date=start_date.date() if start_date else None,
        start_time=start_time.time() if start_time else None,
        status_code=(dates.get("status") or {}).get("code", ""),
        url=data.get("url", ""),
        venue=_parse_venue(venues[0]) if venues else None,
        classifications=classifications,
    )


def _embedded_list(payload: dict, key: str) -> list[dict]:
    """Return payload["_embedded"][key], raising ValueError if it has the wrong shape."""
    embedded = payload.get("_embedded") or {}
    if not isinstance(embedded, dict):
        raise ValueError("_embedded is not an object")
    items = embedded.get(key) or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ValueError(f"_embedded.{key} is not a list of objects")
    return items


def parse_page(payload: dict) -> EventPage:
    """Raises ValueError if the page itself isn't shaped like a search result."""
    page = payload.get("page") or {}
    events = _embedded_list(payload, "events")
    return EventPage(
        events=[parse_event(e) for e in events],
        page_number=page.get("number", 0),
        page_size=page.get("size", 0),
        total_elements=page.get("totalElements", 0),
        total_pages=page.get("totalPages", 0),
    )


class TicketmasterClient(BaseEventSource):
    provider = "ticketmaster"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15,
        country_code: str = "US",
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.country_code = country_code
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: dict) -> "TicketmasterClient":
        tm = cfg_module.get_ticketmaster(cfg)
        return cls(
            cfg_module.get_api_key(cfg),
            base_url=tm["base_url"],
            timeout=tm["timeout"],
            country_code=tm["country_code"],
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get(self, path: str, params: dict[str, Any]) -> dict:
        if not self.api_key:
            raise NotConfigured("Ticketmaster API key is required (set TICKETMASTER_API_KEY)")

        query = {"apikey": self.api_key}
        query.update({k: v for k, v in params.items() if v is not None})
        url = f"{self.base_url}/{path}"
        try:
            r = self.session.get(url, params=query, headers=_HEADERS, timeout=self.timeout)
            r.raise_for_status()
            payload = r.json()
        except requests.RequestException as exc:
            # Don't leak the API key, which is part of the request URL
            log.error("Ticketmaster request to %s failed: %s", path, type(exc).__name__)
            raise UpstreamUnavailable(f"Failed to fetch {path} from Ticketmaster ({type(exc).__name__})") from exc
        except ValueError as exc:
            raise UpstreamUnavailable(f"Ticketmaster returned invalid JSON for {path}") from exc

        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Unexpected Ticketmaster payload for {path}")
        return payload

    def search_events(self, **params: Any) -> EventPage:
        params.setdefault("countryCode", self.country_code)
        payload = self._get("events.json", params)
        try:
            page = parse_page(payload)
        except ValueError as exc:
            raise UpstreamUnavailable(f"Malformed Ticketmaster event payload: {exc}") from exc
        log.info("Ticketmaster returned %d events (%d total)", len(page.events), page.total_elements)
        return page

    def search_musical_events(self, filters: EventSearchFilters) -> EventPage:
        return self.search_events(
            city=filters.city,
            stateCode=filters.state_code,
            radius=filters.radius,
            startDateTime=format_datetime(filters.start_date) if filters.start_date else None,
            endDateTime=format_datetime(filters.end_date, end_of_day=True) if filters.end_date else None,
            size=filters.limit,
            segmentId=ARTS_THEATRE_SEGMENT_ID,
            subGenreId=THEATRE_SUBGENRE_ID,
        )

    def get_event(self, event_id: str) -> RawEvent:
        return parse_event(self._get(f"events/{event_id}.json", {}))

    def search_venues(self, **params: Any) -> list[RawVenue]:
        """Venue search: city, stateCode, postalCode, latlong, radius, unit, keyword, size, page."""
        params.setdefault("countryCode", self.country_code)
        payload = self._get("venues.json", params)
        try:
            venues = _embedded_list(payload, "venues")
        except ValueError as exc:
            raise UpstreamUnavailable(f"Malformed Ticketmaster venue payload: {exc}") from exc
        return [_parse_venue(v) for v in venues]

    def get_markets(self) -> list[dict[str, str]]:
        """Return the provider's markets as {"id": ..., "name": ...} dicts."""
        payload = self._get("markets.json", {})
        try:
            markets = _embedded_list(payload, "markets")
        except ValueError as exc:
            raise UpstreamUnavailable(f"Malformed Ticketmaster market payload: {exc}") from exc
        return [{"id": str(m.get("id", "")), "name": m.get("name", "")} for m in markets]

    def check_connection(self) -> bool:
        """Run a one-result search; False if unconfigured or unreachable."""
        if not self.is_configured():
            return False
        try:
            self.search_events(size=1)
        except UpstreamUnavailable as exc:
            log.warning("Ticketmaster connection check failed: %s", exc)
            return False
        return True
