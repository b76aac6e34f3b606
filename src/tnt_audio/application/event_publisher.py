"""Application-level event publishing contracts."""

from __future__ import annotations

from typing import Iterable, Protocol

from tnt_audio.domain.events import DomainEvent


class EventPublisher(Protocol):
    """Port for publishing domain events."""

    def publish(self, event: DomainEvent) -> None:
        """Publish a single event."""


class NullEventPublisher:
    """No-op publisher used when event streaming is disabled."""

    def publish(self, event: DomainEvent) -> None:  # noqa: ARG002
        return


class CompositeEventPublisher:
    """Fan every event out to several publishers in order."""

    def __init__(self, publishers: Iterable[EventPublisher]) -> None:
        self.publishers = tuple(publishers)

    def publish(self, event: DomainEvent) -> None:
        for publisher in self.publishers:
            publisher.publish(event)
