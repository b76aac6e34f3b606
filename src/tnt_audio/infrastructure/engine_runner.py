"""Subprocess adapter for the external audio engine (ffmpeg)."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from tnt_audio.audio_contract import INTERMEDIATE_CODEC, INTERMEDIATE_SAMPLE_RATE_HZ

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EngineResult:
    """Exit status and combined stdout/stderr of one engine invocation."""

    args: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class EngineRunner(Protocol):
    """Port for invoking the audio engine."""

    def run(self, args: Sequence[str]) -> EngineResult:
        """Run the engine with ``args`` and block until it exits."""


def measure_args(input_path: Path, audio_filter: str) -> list[str]:
    return ["-i", str(input_path), "-af", audio_filter, "-f", "null", "-"]


def render_args(input_path: Path, audio_filter: str, output_path: Path) -> list[str]:
    return [
        "-i",
        str(input_path),
        "-af",
        audio_filter,
        "-ar",
        str(INTERMEDIATE_SAMPLE_RATE_HZ),
        "-acodec",
        INTERMEDIATE_CODEC,
        "-y",
        str(output_path),
    ]


class FfmpegRunner:
    """Run ffmpeg as a blocking subprocess. There is no timeout."""

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary

    def run(self, args: Sequence[str]) -> EngineResult:
        command = [self.binary, "-hide_banner", "-nostdin", *args]
        LOGGER.debug("engine_invoked", extra={"command": " ".join(command)})
        try:
            completed = subprocess.run(command, capture_output=True, text=True)
        except OSError as exc:
            LOGGER.error("engine_unavailable", extra={"binary": self.binary, "error": str(exc)})
            return EngineResult(args=tuple(command), returncode=127, output=str(exc))

        output = (completed.stdout or "") + (completed.stderr or "")
        LOGGER.debug(
            "engine_finished",
            extra={"returncode": completed.returncode, "engine_output": output},
        )
        return EngineResult(args=tuple(command), returncode=completed.returncode, output=output)
