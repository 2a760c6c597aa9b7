from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional


# --- Persisted rows ---

@dataclass
class Venue:
    name: str
    city: str
    state: str
    address: str = ""
    zip_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    capacity: Optional[int] = None
    external_ids: dict[str, str] = field(default_factory=dict)
    # Populated by DB layer after insert
    id: Optional[int] = field(default=None, repr=False)


@dataclass
class Musical:
    name: str          # Canonical name, see normalize.canonical_musical_name
    genre: str = "Musical"
    description: str = ""
    external_ids: dict[str, str] = field(default_factory=dict)
    id: Optional[int] = field(default=None, repr=False)


@dataclass
class Production:
    musical_id: int    # Foreign key to Musical.id
    name: str
    type: str          # "broadway" | "touring" | "regional"
    status: str        # "active" | "upcoming" | "completed"
    external_ids: dict[str, str] = field(default_factory=dict)
    id: Optional[int] = field(default=None, repr=False)


@dataclass
class Performance:
    production_id: int  # Foreign key to Production.id
    venue_id: int       # Foreign key to Venue.id
    date: date
    time: time
    availability: str   # "available" | "sold-out" | "limited"
    ticket_url: str = ""
    external_ids: dict[str, str] = field(default_factory=dict)
    id: Optional[int] = field(default=None, repr=False)


# --- Provider records ---

@dataclass
class RawVenue:
    id: str
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class Classification:
    segment: str = ""
    genre: str = ""
    sub_genre: str = ""


@dataclass
class RawEvent:
    id: str
    name: str
    start_date: Optional[date]   # None when the provider has no date yet (dateTBD)
    status_code: str = ""
    url: str = ""
    start_time: Optional[time] = None
    venue: Optional[RawVenue] = None
    classifications: list[Classification] = field(default_factory=list)


@dataclass
class EventPage:
    events: list[RawEvent]
    page_number: int = 0
    page_size: int = 0
    total_elements: int = 0
    total_pages: int = 0


@dataclass
class EventSearchFilters:
    city: Optional[str] = None
    state_code: Optional[str] = None
    radius: Optional[int] = None
    start_date: Optional[str | date] = None   # ISO string or date
    end_date: Optional[str | date] = None
    limit: Optional[int] = None


# --- Import results ---

@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    created: dict[str, int] = field(default_factory=dict)


@dataclass
class ImportStats:
    musicals: int = 0
    productions: int = 0
    performances: int = 0
    venues: int = 0

    def to_dict(self) -> dict:
        return {
            "musicals": self.musicals,
            "productions": self.productions,
            "performances": self.performances,
            "venues": self.venues,
        }
