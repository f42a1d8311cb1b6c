"""Validated construction options for the pipeline components.

Each component accepts plain keyword arguments and funnels them through one
of the models below, so every bad option surfaces as
:class:`~eventline.errors.InvalidConfiguration` instead of a pydantic error.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from eventline.errors import InvalidConfiguration

# Defaults for the worker.
BATCH_SIZE = 100
MAX_QUEUE_SIZE = 10_000
SHUTDOWN_TIMEOUT = 5.0

# Defaults for the transport (timeouts in seconds).
RETRIES = 10
READ_TIMEOUT = 8.0
OPEN_TIMEOUT = 4.0
WRITE_TIMEOUT = 4.0

# Defaults for the backoff policy (milliseconds).
MIN_TIMEOUT_MS = 100
MAX_TIMEOUT_MS = 10_000
MULTIPLIER = 1.5
RANDOMIZATION_FACTOR = 0.5

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class BackoffConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min_timeout_ms: float = Field(default=MIN_TIMEOUT_MS, ge=0)
    max_timeout_ms: float = Field(default=MAX_TIMEOUT_MS, ge=0)
    multiplier: float = Field(default=MULTIPLIER, gt=0)
    randomization_factor: float = Field(default=RANDOMIZATION_FACTOR, ge=0, le=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "BackoffConfig":
        if self.min_timeout_ms > self.max_timeout_ms:
            raise ValueError("min_timeout_ms must be less than or equal to max_timeout_ms")
        return self


class TransportConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    retries: int = Field(default=RETRIES, ge=1)
    read_timeout: float = Field(default=READ_TIMEOUT, gt=0)
    open_timeout: float = Field(default=OPEN_TIMEOUT, gt=0)
    write_timeout: float = Field(default=WRITE_TIMEOUT, gt=0)

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid url {value!r}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"url must be an absolute http(s) URL, got {value!r}")
        return value


class WorkerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    batch_size: int = Field(default=BATCH_SIZE, gt=0)
    max_queue_size: int = Field(default=MAX_QUEUE_SIZE, gt=0)
    shutdown_timeout: float = Field(default=SHUTDOWN_TIMEOUT, gt=0)
    start_automatically: bool = True
    shutdown_automatically: bool = True


def build_config(model: type[ConfigT], **options: Any) -> ConfigT:
    """Validate *options* against *model*.

    ``None`` values are dropped so callers can forward optional keyword
    arguments without shadowing the defaults.

    Raises:
        InvalidConfiguration: If any option is missing or out of range.
    """
    values = {key: value for key, value in options.items() if value is not None}
    try:
        return model(**values)
    except ValidationError as e:
        raise InvalidConfiguration(str(e)) from e
