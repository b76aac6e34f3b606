"""User-facing pass/fail status lines, shared across concurrent runs."""

from __future__ import annotations

import threading
from typing import Callable

from tnt_audio.domain.events import (
    DomainEvent,
    RunFailed,
    RunSucceeded,
    StageCompleted,
    StageStarted,
)

STAGE_LABELS = {
    "phase": "phase check",
    "eq": "EQ",
    "dyn": "dynamic normalization",
    "atten": "input attenuation",
    "comp": "compression",
    "loudness": "loudness measurement",
    "encode": "encode",
}


def _label(stage: object) -> str:
    return STAGE_LABELS.get(str(stage), str(stage))


class StatusLog:
    """Append-only status lines: one per stage and one pass/fail line per file.

    Publishing is thread-safe. ``sink`` receives each line as it is appended.
    """

    def __init__(self, sink: Callable[[str], None] | None = None) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()
        self._sink = sink

    @property
    def lines(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._lines)

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)
        if self._sink is not None:
            self._sink(line)

    def publish(self, event: DomainEvent) -> None:
        line = self.format_event(event)
        if line is not None:
            self.append(line)

    @staticmethod
    def format_event(event: DomainEvent) -> str | None:
        payload = event.payload_summary
        file_name = payload.get("file", "")
        if isinstance(event, StageStarted):
            return f"-> {_label(payload.get('stage'))}: {file_name}"
        if isinstance(event, StageCompleted):
            return f"OK {_label(payload.get('stage'))}: {file_name}"
        if isinstance(event, RunSucceeded):
            return f"[OK] {file_name} -> {payload.get('output', '')}"
        if isinstance(event, RunFailed):
            return f"[FAILED] {file_name} at {_label(payload.get('stage'))}: {payload.get('error', '')}"
        return None
