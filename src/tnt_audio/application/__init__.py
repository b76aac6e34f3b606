"""Application layer: per-file pipeline use case and worker pools."""

from .event_publisher import CompositeEventPublisher, EventPublisher, NullEventPublisher
from .pipeline_service import ProcessFile
from .worker_pool import BatchRunner, ProgressCounter, WatchQueue, default_worker_count

__all__ = [
    "BatchRunner",
    "CompositeEventPublisher",
    "EventPublisher",
    "NullEventPublisher",
    "ProcessFile",
    "ProgressCounter",
    "WatchQueue",
    "default_worker_count",
]
