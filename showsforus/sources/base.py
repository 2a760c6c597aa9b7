from abc import ABC, abstractmethod

from showsforus.models import EventPage, EventSearchFilters


class BaseEventSource(ABC):
    # Subclasses must set this; it is the key written into external-id maps.
    provider: str = ""

    @classmethod
    @abstractmethod
    def from_config(cls, cfg: dict) -> "BaseEventSource":
        """Build the source from the loaded config dict (see config.load)."""
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True if the credentials this source needs are present."""
        ...

    @abstractmethod
    def check_connection(self) -> bool:
        ...

    @abstractmethod
    def search_musical_events(self, filters: EventSearchFilters) -> EventPage:
        """
        Fetch one page of musical-theatre events matching `filters`.

        Raises:
            NotConfigured: no credential; nothing was sent.
            UpstreamUnavailable: the provider could not be reached or answered
                with a non-success status or an unparseable payload.
        """
        ...
