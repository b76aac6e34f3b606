"""Audio format contract shared by every pipeline stage.

Invariants
----------
* Only files with a known audio extension are accepted as pipeline input.
* Every intermediate artifact is rendered at the intermediate format defined
  here so that stages never re-quantize each other's output.
"""

from __future__ import annotations

from pathlib import Path

# Supported source extensions (lower-case, with leading dot).
ACCEPTED_SOURCE_EXTENSIONS: tuple[str, ...] = (
    ".mp3",
    ".wav",
    ".flac",
    ".m4a",
    ".aac",
    ".ogg",
    ".opus",
    ".wma",
    ".aiff",
    ".aif",
    ".ape",
)

# Intermediate format used between processing stages.
INTERMEDIATE_SAMPLE_RATE_HZ = 192_000
INTERMEDIATE_CODEC = "pcm_f64le"
INTERMEDIATE_SUFFIX = ".wav"

# Sample rate used for lossy encodes.
LOSSY_SAMPLE_RATE_HZ = 48_000


class UnsupportedAudioFormatError(ValueError):
    """Raised when a path outside the supported source contract is submitted."""


def is_audio_file(path: Path) -> bool:
    return path.suffix.lower() in ACCEPTED_SOURCE_EXTENSIONS


def ensure_supported_path(path: Path) -> None:
    """Validate a local file path against accepted source extensions."""

    if not is_audio_file(path):
        supported = ", ".join(ACCEPTED_SOURCE_EXTENSIONS)
        raise UnsupportedAudioFormatError(
            f"Unsupported audio format for '{path.name}'. Supported extensions: {supported}"
        )
