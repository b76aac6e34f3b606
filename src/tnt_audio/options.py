"""Shared processing option enums and parsing helpers."""

from __future__ import annotations

from enum import Enum
from typing import TypeVar


class EqTarget(str, Enum):
    """Available EQ target curves."""

    OFF = "off"
    FLAT = "flat"
    SPEECH = "speech"
    BROADCAST = "broadcast"


class DynamicsPreset(str, Enum):
    """Available dynamics compression presets."""

    OFF = "off"
    LIGHT = "light"
    MODERATE = "moderate"
    BROADCAST = "broadcast"


class LoudnessMode(str, Enum):
    """What the pipeline does with the loudness measurement."""

    NONE = "none"
    NORMALIZE = "normalize"
    TAG = "tag"


class LoudnessStandard(str, Enum):
    """Broadcast loudness standards offered for normalization targets."""

    EBU_R128 = "ebu-r128"
    ATSC_A85 = "atsc-a85"
    CUSTOM = "custom"


class PhaseCheckMode(str, Enum):
    """What a detected inter-channel phase inversion does to the run."""

    OFF = "off"
    WARN = "warn"
    SKIP = "skip"


class OutputFormat(str, Enum):
    """Final encode formats."""

    OPUS = "opus"
    AAC = "aac"
    MP3 = "mp3"
    PCM = "pcm"
    FLAC = "flac"


class PcmBitDepth(str, Enum):
    """PCM sample formats for WAV output."""

    INT16 = "16"
    INT24 = "24"
    FLOAT32 = "32f"
    FLOAT64 = "64f"


EnumT = TypeVar("EnumT", bound=Enum)


def enum_values(enum_cls: type[EnumT]) -> tuple[str, ...]:
    """Return enum values for CLI/config hinting in declaration order."""

    return tuple(str(member.value) for member in enum_cls)


def parse_case_insensitive_enum(raw_value: str, enum_cls: type[EnumT]) -> EnumT:
    """Parse enum values case-insensitively and raise ValueError with allowed values."""

    normalized = raw_value.strip().lower()
    for member in enum_cls:
        if str(member.value).lower() == normalized:
            return member

    allowed = ", ".join(enum_values(enum_cls))
    enum_name = enum_cls.__name__
    raise ValueError(f"Invalid {enum_name}: '{raw_value}'. Allowed values: {allowed}.")
