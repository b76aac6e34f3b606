"""Domain event contracts for processing runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Base domain event emitted by application services."""

    correlation_id: str
    payload_summary: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True, slots=True)
class RunStarted(DomainEvent):
    """A file was picked up by a worker."""


@dataclass(frozen=True, slots=True)
class StageStarted(DomainEvent):
    """An enabled stage began running."""


@dataclass(frozen=True, slots=True)
class StageCompleted(DomainEvent):
    """A stage finished and, if it altered audio, advanced the working path."""


@dataclass(frozen=True, slots=True)
class StageSkipped(DomainEvent):
    """A stage was disabled, bypassed or had nothing to apply."""


@dataclass(frozen=True, slots=True)
class RunSucceeded(DomainEvent):
    """The final encode was written for the file."""


@dataclass(frozen=True, slots=True)
class RunFailed(DomainEvent):
    """The run aborted; no output was written for the file."""
