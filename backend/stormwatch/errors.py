"""Error kinds raised by the store, window queries and sample parsing."""


class StormWatchError(Exception):
    """Base class for all storm watch errors."""


class NotFound(StormWatchError):
    """No observation satisfies a time-window query."""


class StoreUnavailable(StormWatchError):
    """Transient failure reading from or writing to the observation store."""


class MalformedInput(StormWatchError):
    """An inbound sample or request could not be parsed."""
