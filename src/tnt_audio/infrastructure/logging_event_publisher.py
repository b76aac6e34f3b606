"""Structured-log sink for pipeline run events."""

from __future__ import annotations

import logging

from tnt_audio.domain.events import DomainEvent, RunFailed

LOGGER = logging.getLogger("tnt_audio.events")


class LoggingEventPublisher:
    """Emit one ``domain_event_emitted`` record per event; run failures log at warning level."""

    def publish(self, event: DomainEvent) -> None:
        payload = event.payload_summary
        LOGGER.log(
            logging.WARNING if isinstance(event, RunFailed) else logging.INFO,
            "domain_event_emitted",
            extra={
                "event_name": type(event).__name__,
                "correlation_id": event.correlation_id,
                "file": payload.get("file"),
                "stage": payload.get("stage"),
                "payload_summary": payload,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
