"""
Event source registry.

To add a new provider:
1. Subclass BaseEventSource in sources/<provider>.py, setting `provider`
2. Implement is_configured() and search_musical_events()
3. Register the class in the SOURCES dict below
"""

from showsforus.sources.base import BaseEventSource
from showsforus.sources.ticketmaster import TicketmasterClient

SOURCES: dict[str, type[BaseEventSource]] = {
    "ticketmaster": TicketmasterClient,
}
