"""Background worker that drains the event queue into batches."""

from __future__ import annotations

import atexit
import logging
import os
import queue
import threading
from typing import Any, Callable, Mapping

from eventline.batch import MessageBatch
from eventline.config import WorkerConfig, build_config
from eventline.errors import InvalidArgument, InvalidConfiguration, SerializationError
from eventline.models import Response
from eventline.transport import Transport
from eventline.utils import isoify_dates

ErrorCallback = Callable[[Response], Any]


class ShutdownSignal:
    """Queue item telling the worker loop to flush and exit."""

    def __repr__(self) -> str:
        return "<ShutdownSignal>"


SHUTDOWN = ShutdownSignal()


def _ignore_error(response: Response) -> None:
    pass


class Worker:
    """Owns the event queue and the single thread that delivers it.

    Any number of threads may call :meth:`push`. The first push (or an
    explicit :meth:`start`) spawns one daemon thread running :meth:`run`,
    which pops events, appends them to a :class:`MessageBatch`, and hands
    full batches to the :class:`Transport`.

    The worker remembers the pid it was started in. When a push or start
    happens in a different process (after ``os.fork``), the startup lock and
    thread handle are replaced and the inherited queue is emptied before a
    fresh thread is started.
    """

    def __init__(
        self,
        queue: queue.Queue | None = None,
        *,
        on_error: ErrorCallback | None = None,
        transport: Transport | None = None,
        batch_size: int | None = None,
        max_queue_size: int | None = None,
        shutdown_timeout: float | None = None,
        start_automatically: bool | None = None,
        shutdown_automatically: bool | None = None,
        logger: logging.Logger | None = None,
        **transport_options: Any,
    ) -> None:
        config = build_config(
            WorkerConfig,
            batch_size=batch_size,
            max_queue_size=max_queue_size,
            shutdown_timeout=shutdown_timeout,
            start_automatically=start_automatically,
            shutdown_automatically=shutdown_automatically,
        )
        self.batch_size = config.batch_size
        self.max_queue_size = config.max_queue_size
        self.shutdown_timeout = config.shutdown_timeout
        self.start_automatically = config.start_automatically

        if transport is not None and transport_options:
            raise InvalidConfiguration(
                f"transport options {sorted(transport_options)} cannot be combined with transport="
            )

        self.logger = logger or logging.getLogger(__name__)
        self._owns_queue = queue is None
        self.queue = queue if queue is not None else _new_queue()
        self.on_error = on_error or _ignore_error
        self.transport = transport or Transport(logger=logger, **transport_options)
        self.batch = MessageBatch(max_size=self.batch_size, logger=logger)

        self.pid = os.getpid()
        self.thread: threading.Thread | None = None
        self._mutex = threading.Lock()
        self._push_lock = threading.Lock()
        self._requesting = False

        if config.shutdown_automatically:
            atexit.register(self.stop)

    @property
    def requesting(self) -> bool:
        """True while a batch is being delivered."""
        return self._requesting

    def push(self, event: Mapping[str, Any]) -> bool:
        """Queue *event* for delivery.

        Returns ``False`` without blocking when the queue already holds
        ``max_queue_size`` events; the event is dropped.

        Raises:
            InvalidArgument: If *event* is not a mapping.
        """
        if not isinstance(event, Mapping):
            raise InvalidArgument(f"event must be a mapping, got {type(event).__name__}")

        if self.start_automatically:
            self.start()
        elif self._forked():
            self._reset()

        event = isoify_dates(event)

        with self._push_lock:
            if self.queue.qsize() < self.max_queue_size:
                self.queue.put_nowait(event)
                return True

        self.logger.warning(
            "Queue is full, dropping events. Increase max_queue_size "
            "to prevent this from happening."
        )
        return False

    def start(self) -> None:
        """Start the background thread unless one is already running."""
        if self._forked():
            self._reset()
        self._ensure_worker_running()

    def stop(self) -> None:
        """Ask the loop to flush and exit, then wait up to ``shutdown_timeout``."""
        thread = self.thread
        if thread is None or not thread.is_alive():
            return

        self.queue.put(SHUTDOWN)
        thread.join(self.shutdown_timeout)
        if thread.is_alive():
            self.logger.info("Worker thread [%s] did not join within %.1fs", thread.name, self.shutdown_timeout)
        else:
            self.logger.info("Worker thread [%s] joined successfully", thread.name)

    def run(self) -> None:
        """Drain the queue until a :data:`SHUTDOWN` signal is popped."""
        batch = self.batch
        try:
            while True:
                message = self.queue.get()
                try:
                    if isinstance(message, ShutdownSignal):
                        self.logger.info("Worker shutting down")
                        if not batch.empty:
                            self._send_batch(batch)
                        break
                    self._process(batch, message)
                finally:
                    # Counted done only once its batch, if full, has been sent.
                    self.queue.task_done()
        finally:
            self.transport.shutdown()

    def _process(self, batch: MessageBatch, message: Mapping[str, Any]) -> None:
        try:
            batch.append(message)
        except SerializationError as e:
            self._notify(Response.failure(e))

        if batch.full:
            self._send_batch(batch)

    def _send_batch(self, batch: MessageBatch) -> Response:
        self._requesting = True
        try:
            response = self.transport.send_batch(batch)
        finally:
            self._requesting = False

        if response.status != 200:
            self._notify(response)
        return response

    def _notify(self, response: Response) -> None:
        try:
            self.on_error(response)
        except Exception:
            self.logger.exception("on_error callback raised for response %r", response)

    def _ensure_worker_running(self) -> None:
        # Fast path: skip the lock when the thread is already up.
        if self._thread_alive():
            return

        # Another thread is starting the worker; it will finish the job.
        if not self._mutex.acquire(blocking=False):
            return

        try:
            if self._thread_alive():
                return
            self.thread = threading.Thread(target=self.run, name="eventline-worker", daemon=True)
            self.thread.start()
            self.logger.debug("Worker thread [%s] started", self.thread.name)
        finally:
            self._mutex.release()

    def _thread_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def _forked(self) -> bool:
        return self.pid != os.getpid()

    def _reset(self) -> None:
        self.logger.debug("Process changed from %d to %d, resetting worker", self.pid, os.getpid())
        self.pid = os.getpid()
        # Whatever held the locks in the parent does not exist here.
        self._mutex = threading.Lock()
        self._push_lock = threading.Lock()
        self.thread = None
        self._requesting = False
        self.batch.clear()
        if self._owns_queue:
            self.queue = _new_queue()
        else:
            _drain(self.queue)


def _new_queue() -> queue.Queue:
    return queue.Queue()


def _drain(q: queue.Queue) -> None:
    while True:
        try:
            q.get_nowait()
        except queue.Empty:
            return
        q.task_done()
