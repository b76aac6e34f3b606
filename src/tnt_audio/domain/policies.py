"""Domain value objects representing loudness delivery policies."""

from __future__ import annotations

from dataclasses import dataclass

from tnt_audio.options import LoudnessStandard


@dataclass(frozen=True, slots=True)
class LoudnessTarget:
    """Integrated loudness and true-peak ceiling a delivery must meet."""

    integrated_lufs: float
    true_peak_db: float
    loudness_range_lu: float = 5.0
    standard: LoudnessStandard = LoudnessStandard.CUSTOM


LOUDNESS_STANDARDS: dict[LoudnessStandard, LoudnessTarget] = {
    LoudnessStandard.EBU_R128: LoudnessTarget(-23.0, -1.0, standard=LoudnessStandard.EBU_R128),
    LoudnessStandard.ATSC_A85: LoudnessTarget(-24.0, -2.0, standard=LoudnessStandard.ATSC_A85),
}

DEFAULT_LOUDNESS_TARGET = LOUDNESS_STANDARDS[LoudnessStandard.EBU_R128]


def _as_negative(value: float) -> float:
    return -abs(value)


def resolve_loudness_target(
    standard: LoudnessStandard,
    integrated_lufs: float | None = None,
    true_peak_db: float | None = None,
) -> LoudnessTarget:
    """Resolve a named standard, or build a custom target.

    Custom values are always treated as levels below full scale, so ``23`` and
    ``-23`` both mean -23 LUFS. Missing custom values fall back to EBU R128.
    """

    if standard is not LoudnessStandard.CUSTOM:
        return LOUDNESS_STANDARDS[standard]

    integrated = DEFAULT_LOUDNESS_TARGET.integrated_lufs if integrated_lufs is None else _as_negative(integrated_lufs)
    true_peak = DEFAULT_LOUDNESS_TARGET.true_peak_db if true_peak_db is None else _as_negative(true_peak_db)
    return LoudnessTarget(integrated, true_peak, standard=LoudnessStandard.CUSTOM)
