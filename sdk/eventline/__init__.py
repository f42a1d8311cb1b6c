"""eventline - buffered, batched event delivery over HTTP."""

import logging

from eventline.backoff import BackoffPolicy
from eventline.batch import MessageBatch
from eventline.client import Client
from eventline.errors import EventlineError, InvalidArgument, InvalidConfiguration, SerializationError
from eventline.models import Response
from eventline.testing import TestQueue
from eventline.transport import Transport
from eventline.version import __version__
from eventline.worker import SHUTDOWN, ShutdownSignal, Worker

# Silent unless the application configures logging.
logging.getLogger("eventline").addHandler(logging.NullHandler())

__all__ = [
    "BackoffPolicy",
    "Client",
    "EventlineError",
    "InvalidArgument",
    "InvalidConfiguration",
    "MessageBatch",
    "Response",
    "SerializationError",
    "SHUTDOWN",
    "ShutdownSignal",
    "TestQueue",
    "Transport",
    "Worker",
    "__version__",
]
