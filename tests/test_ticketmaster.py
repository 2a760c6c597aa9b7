"""
Tests for the Ticketmaster Discovery client.

HTTP traffic is mocked with `responses`; the recorded search payload lives in
tests/fixtures/ticketmaster_events.json.
"""

from datetime import date, datetime, time, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses as rsps

from conftest import BASE_URL, load_payload
from showsforus.errors import NotConfigured, UpstreamUnavailable
from showsforus.models import EventSearchFilters
from showsforus.sources import SOURCES
from showsforus.sources.ticketmaster import (
    ARTS_THEATRE_SEGMENT_ID,
    THEATRE_SUBGENRE_ID,
    TicketmasterClient,
    format_datetime,
)

EVENTS_URL = f"{BASE_URL}/events.json"


def _query(call) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(call.request.url).query).items()}


def test_source_registry_keys_match_provider():
    for key, cls in SOURCES.items():
        assert cls.provider == key


@rsps.activate
def test_search_musical_events_parses_page(client):
    rsps.add(rsps.GET, EVENTS_URL, json=load_payload())

    page = client.search_musical_events(EventSearchFilters(city="Chicago", limit=5))

    assert [e.id for e in page.events] == ["E1", "E2", "E3", "E4", "E5"]
    assert page.total_elements == 5
    assert page.total_pages == 1

    hamilton = page.events[0]
    assert hamilton.name == "Hamilton - The Musical (Chicago)"
    assert hamilton.start_date == date(2024, 7, 1)
    assert hamilton.start_time == time(19, 30)
    assert hamilton.status_code == "onsale"
    assert hamilton.url == "https://www.ticketmaster.com/event/E1"
    assert hamilton.venue.name == "CIBC Theatre"
    assert hamilton.venue.city == "Chicago"
    assert hamilton.venue.state == "IL"
    assert hamilton.venue.postal_code == "60603"
    assert hamilton.venue.address == "18 W Monroe St"
    assert hamilton.venue.latitude == pytest.approx(41.880)
    assert hamilton.classifications[0].genre == "Theatre"
    assert hamilton.classifications[0].sub_genre == "Musical"

    assert page.events[1].start_time is None
    assert page.events[1].venue.latitude is None
    assert page.events[2].venue is None
    assert page.events[4].classifications == []


@rsps.activate
def test_search_musical_events_sends_filters_and_category(client):
    rsps.add(rsps.GET, EVENTS_URL, json={"page": {}})

    client.search_musical_events(EventSearchFilters(
        city="Chicago",
        state_code="IL",
        radius=25,
        start_date="2024-06-01",
        end_date=date(2024, 6, 30),
        limit=10,
    ))

    query = _query(rsps.calls[0])
    assert query == {
        "apikey": "test-key",
        "city": "Chicago",
        "stateCode": "IL",
        "radius": "25",
        "startDateTime": "2024-06-01T00:00:00Z",
        "endDateTime": "2024-06-30T23:59:59Z",
        "size": "10",
        "countryCode": "US",
        "segmentId": ARTS_THEATRE_SEGMENT_ID,
        "subGenreId": THEATRE_SUBGENRE_ID,
    }


@rsps.activate
def test_empty_result_has_no_events(client):
    rsps.add(rsps.GET, EVENTS_URL, json={"page": {"size": 20, "totalElements": 0, "totalPages": 0, "number": 0}})
    page = client.search_musical_events(EventSearchFilters())
    assert page.events == []


def test_missing_key_fails_without_network_call():
    client = TicketmasterClient(None, base_url=BASE_URL)
    with rsps.RequestsMock() as mock:
        with pytest.raises(NotConfigured):
            client.search_musical_events(EventSearchFilters())
        assert len(mock.calls) == 0


@rsps.activate
def test_http_error_is_upstream_unavailable(client):
    rsps.add(rsps.GET, EVENTS_URL, status=503)
    with pytest.raises(UpstreamUnavailable) as excinfo:
        client.search_musical_events(EventSearchFilters())
    assert "test-key" not in str(excinfo.value)


@rsps.activate
def test_connection_error_is_upstream_unavailable(client):
    rsps.add(rsps.GET, EVENTS_URL, body=requests.ConnectionError("refused"))
    with pytest.raises(UpstreamUnavailable):
        client.search_musical_events(EventSearchFilters())


@rsps.activate
def test_timeout_is_upstream_unavailable(client):
    rsps.add(rsps.GET, EVENTS_URL, body=requests.Timeout("slow"))
    with pytest.raises(UpstreamUnavailable):
        client.search_musical_events(EventSearchFilters())


@rsps.activate
def test_invalid_json_is_upstream_unavailable(client):
    rsps.add(rsps.GET, EVENTS_URL, body="<html>maintenance</html>", status=200)
    with pytest.raises(UpstreamUnavailable):
        client.search_musical_events(EventSearchFilters())


@rsps.activate
def test_event_with_missing_fields_still_parses(client):
    rsps.add(rsps.GET, EVENTS_URL, json={"_embedded": {"events": [
        {"id": "X1", "name": "No dates", "dates": {"start": {"dateTBD": True}}},
        {"id": "X2", "name": "Bad date", "dates": {"start": {"localDate": "TBA"}},
         "_embedded": {"venues": [{"id": "V9", "city": {"name": "Chicago"}}]}},
    ]}})

    page = client.search_musical_events(EventSearchFilters())

    assert [e.id for e in page.events] == ["X1", "X2"]
    assert page.events[0].start_date is None
    assert page.events[0].start_time is None
    assert page.events[1].start_date is None
    assert page.events[1].venue.name == ""
    assert page.events[1].venue.city == "Chicago"


@rsps.activate
def test_events_not_a_list_is_upstream_unavailable(client):
    rsps.add(rsps.GET, EVENTS_URL, json={"_embedded": {"events": {"id": "X1"}}})
    with pytest.raises(UpstreamUnavailable):
        client.search_musical_events(EventSearchFilters())


@rsps.activate
def test_non_object_payload_is_upstream_unavailable(client):
    rsps.add(rsps.GET, EVENTS_URL, json=[{"id": "X1"}])
    with pytest.raises(UpstreamUnavailable):
        client.search_musical_events(EventSearchFilters())


@rsps.activate
def test_client_does_not_retry(client):
    rsps.add(rsps.GET, EVENTS_URL, status=500)
    with pytest.raises(UpstreamUnavailable):
        client.search_musical_events(EventSearchFilters())
    assert len(rsps.calls) == 1


@rsps.activate
def test_get_event(client):
    event_json = load_payload()["_embedded"]["events"][0]
    rsps.add(rsps.GET, f"{BASE_URL}/events/E1.json", json=event_json)
    event = client.get_event("E1")
    assert event.id == "E1"
    assert event.venue.name == "CIBC Theatre"


@rsps.activate
def test_check_connection(client):
    rsps.add(rsps.GET, EVENTS_URL, json={"page": {}})
    assert client.check_connection() is True
    assert _query(rsps.calls[0])["size"] == "1"


@rsps.activate
def test_check_connection_reports_failure(client):
    rsps.add(rsps.GET, EVENTS_URL, status=401)
    assert client.check_connection() is False


def test_check_connection_unconfigured():
    assert TicketmasterClient("").check_connection() is False


def test_from_config():
    cfg = {
        "secrets": {"ticketmaster_api_key": "abc"},
        "ticketmaster": {"base_url": "https://example.test/v2/", "country_code": "CA", "timeout": 5},
    }
    client = TicketmasterClient.from_config(cfg)
    assert client.api_key == "abc"
    assert client.base_url == "https://example.test/v2"
    assert client.country_code == "CA"
    assert client.timeout == 5


class TestFormatDatetime:
    def test_date(self):
        assert format_datetime(date(2024, 6, 1)) == "2024-06-01T00:00:00Z"

    def test_date_end_of_day(self):
        assert format_datetime(date(2024, 6, 1), end_of_day=True) == "2024-06-01T23:59:59Z"

    def test_iso_string_with_time_is_kept(self):
        assert format_datetime("2024-06-01T18:00:00", end_of_day=True) == "2024-06-01T18:00:00Z"

    def test_offset_is_converted_to_utc(self):
        assert format_datetime("2024-06-01T18:00:00-05:00") == "2024-06-01T23:00:00Z"

    def test_aware_datetime_is_converted_to_utc(self):
        value = datetime(2024, 6, 1, 1, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_datetime(value) == "2024-05-31T23:30:00Z"


@rsps.activate
def test_search_venues(client):
    rsps.add(rsps.GET, f"{BASE_URL}/venues.json", json={"_embedded": {"venues": [
        load_payload()["_embedded"]["events"][0]["_embedded"]["venues"][0],
    ]}})

    venues = client.search_venues(city="Chicago", keyword="CIBC", size=5)

    assert [v.name for v in venues] == ["CIBC Theatre"]
    assert venues[0].id == "V1"
    query = _query(rsps.calls[0])
    assert query["city"] == "Chicago"
    assert query["keyword"] == "CIBC"
    assert query["countryCode"] == "US"
    assert query["apikey"] == "test-key"


@rsps.activate
def test_search_venues_empty(client):
    rsps.add(rsps.GET, f"{BASE_URL}/venues.json", json={"page": {"totalElements": 0}})
    assert client.search_venues(city="Nowhere") == []


@rsps.activate
def test_search_venues_http_error(client):
    rsps.add(rsps.GET, f"{BASE_URL}/venues.json", status=500)
    with pytest.raises(UpstreamUnavailable):
        client.search_venues(city="Chicago")


@rsps.activate
def test_get_markets(client):
    rsps.add(rsps.GET, f"{BASE_URL}/markets.json", json={"_embedded": {"markets": [
        {"id": "3", "name": "Chicago & Midwest"},
        {"id": 27, "name": "New York/Tri-State Area"},
    ]}})

    assert client.get_markets() == [
        {"id": "3", "name": "Chicago & Midwest"},
        {"id": "27", "name": "New York/Tri-State Area"},
    ]


@rsps.activate
def test_get_markets_malformed(client):
    rsps.add(rsps.GET, f"{BASE_URL}/markets.json", json={"_embedded": {"markets": "none"}})
    with pytest.raises(UpstreamUnavailable):
        client.get_markets()


def test_get_markets_requires_key():
    with pytest.raises(NotConfigured):
        TicketmasterClient(None, base_url=BASE_URL).get_markets()
