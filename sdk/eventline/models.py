"""Pydantic models shared between the worker and the transport."""

from __future__ import annotations

from pydantic import BaseModel

# Status used when no HTTP response was received at all.
FAILURE_STATUS = -1


class Response(BaseModel):
    """Outcome of one batch delivery (or of a failed serialization).

    ``status`` is the HTTP status code of the last attempt, or
    ``FAILURE_STATUS`` when the request raised before a response arrived.
    """
    status: int = 200
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == 200

    @classmethod
    def failure(cls, error: BaseException | str) -> "Response":
        """Build a ``FAILURE_STATUS`` response from an exception or message."""
        message = str(error) or type(error).__name__
        return cls(status=FAILURE_STATUS, error=message)
