"""
Exceptions raised by the formulation data model.

All errors derive from OpenDWError so callers can catch the whole family.
The concrete classes also derive from the closest built-in exception, so
code written against KeyError / NotImplementedError keeps working.
"""


class OpenDWError(Exception):
    """Base class for all OpenDW errors."""


class NotFoundError(OpenDWError, KeyError):
    """
    An identifier is absent from an EntityStore.

    Attributes:
        key: The identifier that was looked up
    """

    def __init__(self, key, message: str = ""):
        self.key = key
        super().__init__(message or f"{key!r} not found")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead
        return self.args[0]


class UnsupportedOperationError(OpenDWError, NotImplementedError):
    """
    The requested operation is deliberately not supported.

    Raised when a maximization sense is registered on a formulation and
    when a frozen coefficient relation is mutated.
    """
