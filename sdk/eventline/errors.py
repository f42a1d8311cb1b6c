"""Exceptions raised by eventline."""


class EventlineError(Exception):
    """Base class for all eventline errors."""


class InvalidConfiguration(EventlineError, ValueError):
    """Raised when a component is constructed with invalid options."""


class InvalidArgument(EventlineError, TypeError):
    """Raised when an event pushed by the caller is not a mapping."""


class SerializationError(EventlineError):
    """Raised when an event cannot be converted to JSON."""
