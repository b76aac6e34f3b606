"""Extraction of level statistics from the engine's ``astats`` text output.

The engine prints one block per channel (``Channel: 1``, ``Channel: 2``, ...)
followed by an ``Overall`` summary. Level statistics are read from the
summary; crest factor and dynamic range are only reported per channel, so
they are taken from the first channel's block.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum

from tnt_audio.domain.errors import AnalysisFailure

LOGGER = logging.getLogger(__name__)

_NUMBER = r"(-?inf|-?nan|[-\d.]+)"

OVERALL_FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "peak_level": re.compile(rf"Peak level dB:\s+{_NUMBER}"),
    "rms_peak": re.compile(rf"RMS peak dB:\s+{_NUMBER}"),
    "rms_trough": re.compile(rf"RMS trough dB:\s+{_NUMBER}"),
    "rms_level": re.compile(rf"RMS level dB:\s+{_NUMBER}"),
    "noise_floor": re.compile(rf"Noise floor dB:\s+{_NUMBER}"),
}

CHANNEL_FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "crest_factor": re.compile(rf"Crest factor:\s+{_NUMBER}"),
    "dynamic_range": re.compile(rf"Dynamic range:\s+{_NUMBER}"),
}

# Section headers sit on their own line, optionally behind the filter's "[Parsed_astats_0 @ 0x...]" prefix.
_SECTION_PREFIX = r"^(?:\[[^\]\n]*\][ \t]*)?"
OVERALL_MARKER = re.compile(rf"{_SECTION_PREFIX}Overall[ \t]*$", re.MULTILINE)


class FilterKind(str, Enum):
    """Shape of the analysis filter isolating a frequency band."""

    LOWPASS = "lowpass"
    BANDPASS = "bandpass"
    HIGHPASS = "highpass"


@dataclass(frozen=True, slots=True)
class AudioStatistics:
    """Immutable snapshot of whole-file or per-band level statistics (dB)."""

    peak_level: float = 0.0
    rms_peak: float = 0.0
    rms_trough: float = 0.0
    rms_level: float = 0.0
    crest_factor: float = 0.0
    dynamic_range: float = 0.0
    noise_floor: float = 0.0
    missing_fields: tuple[str, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields


@dataclass(frozen=True, slots=True)
class FrequencyBandMeasurement:
    """Level measurement of a single analysis band."""

    label: str
    filter_kind: FilterKind
    rms_level: float
    peak_level: float
    crest_factor: float


def _overall_section(output: str) -> str:
    match = OVERALL_MARKER.search(output)
    if match is None:
        raise AnalysisFailure(
            "statistics_missing_overall",
            "Engine output has no 'Overall' statistics section.",
        )
    return output[match.end() :]


def _channel_marker(channel: int) -> re.Pattern[str]:
    return re.compile(rf"{_SECTION_PREFIX}Channel:[ \t]*{channel}[ \t]*$", re.MULTILINE)


def channel_section(output: str, channel: int) -> str:
    """Return the block of ``channel`` (1-based), or ``""`` when the output has none."""

    start = _channel_marker(channel).search(output)
    if start is None:
        return ""
    section = output[start.end() :]
    for marker in (_channel_marker(channel + 1), OVERALL_MARKER):
        end = marker.search(section)
        if end is not None:
            section = section[: end.start()]
    return section


def _extract(pattern: re.Pattern[str], text: str) -> float | None:
    match = pattern.search(text)
    if match is None:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_astats_output(output: str, strict: bool = False) -> AudioStatistics:
    """Parse ``astats`` output into :class:`AudioStatistics`.

    Absent fields default to ``0.0`` and are recorded in ``missing_fields``.
    With ``strict=True`` an absent field raises :class:`AnalysisFailure`.
    """

    overall = _overall_section(output)
    channel = channel_section(output, 1)

    values: dict[str, float] = {}
    missing: list[str] = []
    for name, pattern in OVERALL_FIELD_PATTERNS.items():
        value = _extract(pattern, overall)
        if value is None:
            missing.append(name)
        else:
            values[name] = value
    for name, pattern in CHANNEL_FIELD_PATTERNS.items():
        value = _extract(pattern, channel)
        if value is None:
            missing.append(name)
        else:
            values[name] = value

    if missing:
        if strict:
            raise AnalysisFailure(
                "statistics_missing_fields",
                f"Engine output is missing statistics: {', '.join(missing)}.",
            )
        LOGGER.warning(
            "statistics_fields_defaulted",
            extra={"missing_fields": missing},
        )

    return AudioStatistics(**values, missing_fields=tuple(missing))


def parse_band_measurement(
    output: str,
    label: str,
    filter_kind: FilterKind,
    strict: bool = False,
) -> FrequencyBandMeasurement:
    stats = parse_astats_output(output, strict=strict)
    return FrequencyBandMeasurement(
        label=label,
        filter_kind=filter_kind,
        rms_level=stats.rms_level,
        peak_level=stats.peak_level,
        crest_factor=stats.crest_factor,
    )
