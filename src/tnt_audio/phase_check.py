"""Inter-channel phase inversion check on stereo ``astats`` output."""

from __future__ import annotations

import re
from dataclasses import dataclass

from tnt_audio.domain.errors import AnalysisFailure
from tnt_audio.statistics import channel_section

INVERSION_OFFSET_LIMIT = 0.01

_MIN_LEVEL = re.compile(r"Min level:\s+([-\d.]+)")
_MAX_LEVEL = re.compile(r"Max level:\s+([-\d.]+)")


@dataclass(frozen=True, slots=True)
class ChannelExtremes:
    """Linear sample extremes of the first two channels."""

    left_min: float
    left_max: float
    right_min: float
    right_max: float


@dataclass(frozen=True, slots=True)
class PhaseAssessment:
    offset: float
    inverted: bool

    @property
    def fully_cancelling(self) -> bool:
        """Mirror-image channels that sum to silence in mono."""

        return self.inverted and self.offset == 0.0


def _channel_extremes(section: str) -> tuple[float, float] | None:
    low = _MIN_LEVEL.search(section)
    high = _MAX_LEVEL.search(section)
    if low is None or high is None:
        return None
    try:
        return float(low.group(1)), float(high.group(1))
    except ValueError:
        return None


def parse_channel_extremes(output: str) -> ChannelExtremes | None:
    """Return both channels' extremes, ``None`` for mono output.

    Raises :class:`AnalysisFailure` when a reported channel has no extremes.
    """

    sections = [channel_section(output, 1), channel_section(output, 2)]
    if not sections[1]:
        sections.pop()
    extremes = []
    for channel, section in enumerate(sections, start=1):
        levels = _channel_extremes(section)
        if levels is None:
            raise AnalysisFailure(
                "phase_levels_missing",
                f"Engine output has no 'Min level'/'Max level' for channel {channel}.",
            )
        extremes.append(levels)
    if len(extremes) < 2:
        return None
    left, right = extremes
    return ChannelExtremes(left_min=left[0], left_max=left[1], right_min=right[0], right_max=right[1])


def compute_phase_offset(extremes: ChannelExtremes) -> float:
    """Largest mismatch between one channel's trough and the other's crest.

    Inverted channels mirror each other, so the offset approaches zero.
    """

    trough_vs_crest = abs(abs(extremes.left_min) - abs(extremes.right_max))
    crest_vs_trough = abs(abs(extremes.left_max) - abs(extremes.right_min))
    return max(trough_vs_crest, crest_vs_trough)


def assess_phase(extremes: ChannelExtremes) -> PhaseAssessment:
    offset = compute_phase_offset(extremes)
    return PhaseAssessment(offset=offset, inverted=offset < INVERSION_OFFSET_LIMIT)
