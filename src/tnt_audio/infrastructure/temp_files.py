"""Temporary-artifact infrastructure helpers."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from types import TracebackType
from uuid import uuid4

from tnt_audio.audio_contract import INTERMEDIATE_SUFFIX

LOGGER = logging.getLogger(__name__)

ARTIFACT_PREFIX = "tnt"


def artifact_name(stage: str, suffix: str = INTERMEDIATE_SUFFIX) -> str:
    """Return a collision-free artifact file name for ``stage``."""

    return f"{ARTIFACT_PREFIX}_{stage}_{uuid4().hex}{suffix}"


class TempArtifactOwner:
    """Own every temp artifact created during a run and delete them on exit.

    Use as a context manager; artifacts are purged whether the block exits
    normally or by exception.
    """

    def __init__(self, temp_dir: Path | None = None) -> None:
        self.temp_dir = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
        self._artifacts: list[Path] = []

    @property
    def artifacts(self) -> tuple[Path, ...]:
        return tuple(self._artifacts)

    def new_artifact(self, stage: str) -> Path:
        path = self.temp_dir / artifact_name(stage)
        self._artifacts.append(path)
        return path

    def purge(self) -> int:
        removed = 0
        for path in self._artifacts:
            try:
                path.unlink(missing_ok=True)
                removed += 1
            except OSError as exc:
                LOGGER.warning("temp_artifact_not_removed", extra={"path": str(path), "error": str(exc)})
        LOGGER.debug("temp_artifacts_purged", extra={"count": removed})
        return removed

    def __enter__(self) -> TempArtifactOwner:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.purge()
