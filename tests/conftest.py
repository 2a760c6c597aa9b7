import json
from datetime import date
from pathlib import Path

import pytest

import showsforus.db as db_module
from showsforus.errors import UpstreamUnavailable
from showsforus.models import EventPage, EventSearchFilters
from showsforus.sources.base import BaseEventSource
from showsforus.sources.ticketmaster import TicketmasterClient, parse_page

FIXTURES = Path(__file__).parent / "fixtures"
BASE_URL = "https://tm.test/discovery/v2"
NOW = date(2024, 6, 1)


def load_payload(name: str = "ticketmaster_events.json") -> dict:
    return json.loads((FIXTURES / name).read_text())


class StaticSource(BaseEventSource):
    """Serves a fixed page of events, or raises `error` if given."""

    provider = "ticketmaster"

    def __init__(self, page: EventPage | None = None, error: Exception | None = None):
        self.page = page or EventPage(events=[])
        self.error = error
        self.calls: list[EventSearchFilters] = []

    @classmethod
    def from_config(cls, cfg: dict) -> "StaticSource":
        return cls()

    def is_configured(self) -> bool:
        return True

    def check_connection(self) -> bool:
        return self.error is None

    def search_musical_events(self, filters: EventSearchFilters) -> EventPage:
        self.calls.append(filters)
        if self.error:
            raise self.error
        return self.page


@pytest.fixture
def conn():
    c = db_module.connect(":memory:")
    yield c
    c.close()


@pytest.fixture
def fixture_page() -> EventPage:
    return parse_page(load_payload())


@pytest.fixture
def static_source(fixture_page) -> StaticSource:
    return StaticSource(fixture_page)


@pytest.fixture
def failing_source() -> StaticSource:
    return StaticSource(error=UpstreamUnavailable("Failed to fetch events.json from Ticketmaster (ConnectionError)"))


@pytest.fixture
def client() -> TicketmasterClient:
    return TicketmasterClient("test-key", base_url=BASE_URL)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    # config.load() writes secrets into os.environ; setenv first so the
    # monkeypatch undo removes whatever a test loaded.
    for name in ("TICKETMASTER_API_KEY", "APP_ENV"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
