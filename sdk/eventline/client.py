"""Public entry point for recording events."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from eventline.errors import InvalidArgument
from eventline.testing import TestQueue
from eventline.utils import isoify_dates, stringify_keys
from eventline.worker import Worker

FLUSH_INTERVAL = 0.1


class Client:
    """Validates events and hands them to a background :class:`Worker`.

    Usage:
        client = Client(url="https://collector.example.com/events")
        client.push({"name": "signup", "at": datetime.now(timezone.utc)})
        client.stop()

    Keyword options not consumed here are passed to :class:`Worker` (and
    from there to :class:`~eventline.transport.Transport`). With
    ``test=True`` nothing is delivered; events are kept in
    :attr:`test_queue` instead.
    """

    def __init__(
        self,
        *,
        worker: Worker | None = None,
        test: bool = False,
        logger: logging.Logger | None = None,
        **options: Any,
    ) -> None:
        self._test = test
        self._test_queue: TestQueue | None = None
        if test:
            self.worker = worker
        else:
            self.worker = worker or Worker(logger=logger, **options)

    def push(self, event: Mapping[str, Any]) -> bool:
        """Enqueue *event*; returns whether it was accepted.

        Raises:
            InvalidArgument: If *event* is not a mapping.
        """
        if not isinstance(event, Mapping):
            raise InvalidArgument(f"event must be a mapping, got {type(event).__name__}")

        event = stringify_keys(event)
        if self._test:
            self.test_queue.append(isoify_dates(event))
            return True
        return self.worker.push(event)

    def start(self) -> None:
        if self.worker is not None:
            self.worker.start()

    def flush(self) -> None:
        """Block until every queued event has been taken into a batch and no
        batch is being sent.

        Events still sitting in a partially filled batch are delivered by
        :meth:`stop`, not here.
        """
        if self.worker is None:
            return
        while self.worker.queue.unfinished_tasks or self.worker.requesting:
            self.worker.start()
            time.sleep(FLUSH_INTERVAL)

    def stop(self) -> None:
        """Flush buffered events and stop the background thread."""
        if self.worker is not None:
            self.worker.stop()

    @property
    def queued_messages(self) -> int:
        """Number of events waiting in the queue."""
        if self.worker is None:
            return 0
        return self.worker.queue.qsize()

    @property
    def test_queue(self) -> TestQueue:
        if not self._test:
            raise RuntimeError("Test queue only available when setting test=True.")
        if self._test_queue is None:
            self._test_queue = TestQueue()
        return self._test_queue
