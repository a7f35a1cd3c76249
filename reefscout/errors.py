"""Exception types raised at the storage and HTTP boundaries."""


class ScoutingError(Exception):
    """Base class for reefscout errors."""


class ValidationFailed(ScoutingError):
    """A request body or document did not pass validation."""


class ConflictError(ScoutingError):
    """An alliance table was saved against a stale version token."""

    def __init__(self, event_key: str, expected: int, current: int):
        super().__init__(
            f'Alliance table for {event_key} is at version {current}, expected {expected}'
        )
        self.event_key = event_key
        self.expected = expected
        self.current = current


class StoreUnavailable(ScoutingError):
    """The backing document store could not be read or written."""
