class ShowsForUsError(Exception):
    """Base class for errors raised by the import pipeline."""


class NotConfigured(ShowsForUsError):
    """A required credential is missing; no network call was attempted."""


class UpstreamUnavailable(ShowsForUsError):
    """The event provider could not be reached or returned an unusable response."""


class PersistenceError(ShowsForUsError):
    def __init__(self, entity: str, message: str):
        super().__init__(f"Failed to create {entity}: {message}")
        self.entity = entity
        self.message = message


class RecordSkipped(ShowsForUsError):
    """A single event could not be imported; the batch carries on."""

    def __init__(self, event_id: str, reason: str):
        super().__init__(reason)
        self.event_id = event_id
        self.reason = reason


class ResetRefused(ShowsForUsError):
    """Destructive reset requested in a production environment."""
