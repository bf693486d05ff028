"""Error kinds raised by the counter engine.

Nothing here is fatal to a session: validation errors reject a single input,
persistence and parse errors are logged and the in-memory state wins.
"""


class ScrollError(Exception):
    """Base class for all counter engine errors."""


class ValidationError(ScrollError, ValueError):
    """User input (goal, interval, theme, date) was rejected."""


class PersistenceError(ScrollError):
    """The key-value store could not be read or written."""


class ParseError(ScrollError):
    """A stored value could not be decoded."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"{key}: {message}")
