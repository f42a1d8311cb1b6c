"""In-memory stand-in for the delivery pipeline, used in test mode."""

from __future__ import annotations

from typing import Any


class TestQueue:
    """Keeps every pushed event in a list so tests can assert on them.

    Call :meth:`reset` between test cases.
    """

    __test__ = False

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    def append(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def count(self) -> int:
        return len(self.messages)

    def __len__(self) -> int:
        return len(self.messages)

    def reset(self) -> None:
        self.messages = []
