"""Size-bounded accumulator for events awaiting delivery."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Iterator, Mapping

from eventline.config import BATCH_SIZE
from eventline.errors import InvalidConfiguration, SerializationError

# Hard ceiling for one serialized event; larger events are dropped.
MAX_BYTES_PER_MESSAGE = 32_768

# Hard ceiling for one serialized batch.
MAX_BYTES = 512_000

MAX_SIZE = BATCH_SIZE


def dump_json(value: Any) -> str:
    """Compact JSON encoding used for both size accounting and the wire."""
    return json.dumps(value, separators=(",", ":"), allow_nan=False)


class MessageBatch:
    """An ordered group of events sent together in one request.

    ``json_size`` tracks the encoded size of every accepted event plus one
    byte each for the list delimiter.
    """

    def __init__(self, max_size: int = MAX_SIZE, logger: logging.Logger | None = None) -> None:
        if max_size <= 0:
            raise InvalidConfiguration("max_size must be greater than 0")
        self.max_size = max_size
        self.logger = logger or logging.getLogger(__name__)
        self.clear()

    def append(self, message: Mapping[str, Any]) -> bool:
        """Add *message* to the batch.

        Returns ``False`` (and logs) when the message exceeds
        ``MAX_BYTES_PER_MESSAGE`` and was dropped.

        Raises:
            SerializationError: If the message cannot be encoded as JSON.
        """
        try:
            message_json = dump_json(message)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Serialization error: {e}") from e

        message_size = len(message_json.encode("utf-8"))
        if message_size > MAX_BYTES_PER_MESSAGE:
            self.logger.error(
                "Dropping message of %d bytes; the maximum allowed size is %d bytes",
                message_size,
                MAX_BYTES_PER_MESSAGE,
            )
            return False

        self._messages.append(message)
        self.json_size += message_size + 1
        return True

    @property
    def full(self) -> bool:
        return self._item_count_exhausted() or self._size_exhausted()

    @property
    def empty(self) -> bool:
        return not self._messages

    def clear(self) -> None:
        self._messages: list[Mapping[str, Any]] = []
        self.json_size = 0
        self.uuid = str(uuid.uuid4())

    def as_json(self) -> dict[str, Any]:
        return {"uuid": self.uuid, "messages": list(self._messages)}

    def to_json(self) -> str:
        return dump_json(self.as_json())

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        return iter(self._messages)

    def _item_count_exhausted(self) -> bool:
        return len(self._messages) >= self.max_size

    def _size_exhausted(self) -> bool:
        # The queue cannot be peeked, so leave room for one more message of
        # the largest allowed size rather than checking the next one.
        return self.json_size >= MAX_BYTES - MAX_BYTES_PER_MESSAGE
