"""Ten-band EQ target curves, gain derivation and filter rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from tnt_audio.options import EqTarget
from tnt_audio.statistics import FilterKind, FrequencyBandMeasurement

LOGGER = logging.getLogger(__name__)

MAX_BAND_GAIN_DB = 10.0
MIN_AUDIBLE_GAIN_DB = 0.5
EXTREME_SPREAD_DB = 4.0
WINDOW_TOLERANCE_DB = 1e-9
PINK_SLOPE_DB_PER_OCTAVE = 3.0
CORRECTION_RATIO = 2.0

DE_ESSER_FILTER = "deesser=i=1.0:m=1.0:f=0.05:s=o"


@dataclass(frozen=True, slots=True)
class EqBand:
    """Static definition of one analysis band."""

    label: str
    filter_kind: FilterKind
    center_hz: int
    octaves_from_1k: float

    @property
    def analysis_filter(self) -> str:
        if self.filter_kind is FilterKind.LOWPASS:
            return "highpass=f=25:p=2,lowpass=f=50,astats"
        if self.filter_kind is FilterKind.HIGHPASS:
            return f"highpass=f={self.center_hz},astats"
        return f"bandpass=f={self.center_hz}:width_type=o:width=1,astats"


EQ_BANDS: tuple[EqBand, ...] = (
    EqBand("50Hz", FilterKind.LOWPASS, 50, -4.32),
    EqBand("100Hz", FilterKind.BANDPASS, 100, -3.32),
    EqBand("200Hz", FilterKind.BANDPASS, 200, -2.32),
    EqBand("400Hz", FilterKind.BANDPASS, 400, -1.32),
    EqBand("800Hz", FilterKind.BANDPASS, 800, -0.32),
    EqBand("1.6kHz", FilterKind.BANDPASS, 1600, 0.68),
    EqBand("3.2kHz", FilterKind.BANDPASS, 3200, 1.68),
    EqBand("6.4kHz", FilterKind.BANDPASS, 6400, 2.68),
    EqBand("12.8kHz", FilterKind.BANDPASS, 12800, 3.68),
    EqBand("12.8kHz+", FilterKind.HIGHPASS, 12800, 5.0),
)


@dataclass(frozen=True, slots=True)
class EqPresetTuning:
    """Per-preset target offsets and the fixed high-pass/low-pass bracket."""

    offsets_db: tuple[float, ...]
    follows_pink_curve: bool
    boosts_allowed: bool
    highpass: str | None
    lowpass: str | None


EQ_PRESET_TUNINGS: dict[EqTarget, EqPresetTuning] = {
    EqTarget.FLAT: EqPresetTuning(
        offsets_db=(0.0,) * 10,
        follows_pink_curve=False,
        boosts_allowed=False,
        highpass="highpass=f=25:p=2",
        lowpass=None,
    ),
    EqTarget.SPEECH: EqPresetTuning(
        offsets_db=(-9.0, -3.5, -2.5, -3.0, 0.5, 3.0, 1.0, 0.0, -2.0, -2.0),
        follows_pink_curve=True,
        boosts_allowed=True,
        highpass="highpass=f=80:p=2",
        lowpass="lowpass=f=13000:p=1",
    ),
    EqTarget.BROADCAST: EqPresetTuning(
        offsets_db=(-2.0, -1.0, -2.5, -4.5, 1.0, 2.5, 3.5, 2.0, -0.5, -2.5),
        follows_pink_curve=True,
        boosts_allowed=True,
        highpass="highpass=f=70:p=2",
        lowpass="lowpass=f=14000:p=2",
    ),
}


@dataclass(frozen=True, slots=True)
class EQPlan:
    """Resolved per-band gains plus the preset's companion filters."""

    target: EqTarget
    band_labels: tuple[str, ...]
    gains_db: tuple[float, ...]
    highpass: str | None
    lowpass: str | None

    @property
    def active_bands(self) -> tuple[int, ...]:
        return tuple(
            index for index, gain in enumerate(self.gains_db) if abs(gain) >= MIN_AUDIBLE_GAIN_DB
        )

    @property
    def is_empty(self) -> bool:
        return not self.active_bands


def resolve_eq_tuning(target: EqTarget) -> EqPresetTuning:
    if target not in EQ_PRESET_TUNINGS:
        allowed = ", ".join(item.value for item in EQ_PRESET_TUNINGS)
        raise ValueError(f"EQ target '{target.value}' has no curve. Expected one of: {allowed}.")
    return EQ_PRESET_TUNINGS[target]


def _clamp(value: float, lower: float, upper: float) -> float:
    return float(np.clip(value, lower, upper))


def compute_target_levels(
    measurements: Sequence[FrequencyBandMeasurement],
    target: EqTarget,
) -> tuple[float, ...]:
    """Return the target RMS level for every band."""

    tuning = resolve_eq_tuning(target)
    levels = np.array([band.rms_level for band in measurements], dtype=np.float64)
    overall_rms = float(np.mean(levels))
    octaves = np.array([band.octaves_from_1k for band in EQ_BANDS], dtype=np.float64)
    reference = np.full_like(levels, overall_rms)
    if tuning.follows_pink_curve:
        reference = reference - PINK_SLOPE_DB_PER_OCTAVE * octaves
    return tuple(float(value) for value in reference + np.array(tuning.offsets_db))


def compute_band_correction(measured_db: float, target_db: float, boosts_allowed: bool = True) -> float:
    """Return the attenuation (positive) or boost (negative) for one band at 2:1."""

    correction = (measured_db - target_db) / CORRECTION_RATIO
    if not boosts_allowed and correction < 0.0:
        return 0.0
    correction = _clamp(correction, -MAX_BAND_GAIN_DB, MAX_BAND_GAIN_DB)
    if -MIN_AUDIBLE_GAIN_DB < correction < MIN_AUDIBLE_GAIN_DB:
        return 0.0
    return correction


def _intersect(window: tuple[float, float], bound: tuple[float, float]) -> tuple[float, float]:
    lower = max(window[0], bound[0])
    upper = min(window[1], bound[1])
    if lower > upper + WINDOW_TOLERANCE_DB:
        return window
    if lower > upper:
        # Touching bounds that rounding pushed apart collapse to a point inside the window.
        point = min(lower, window[1])
        return point, point
    return lower, upper


def _extreme_window(
    neighbour: float,
    opposite_extreme: float,
    inner_average: float,
    opposite_neighbour: float | None = None,
) -> tuple[float, float]:
    # Bounds are applied in priority order; a bound that would empty the window is ignored.
    window = (neighbour - EXTREME_SPREAD_DB, neighbour + EXTREME_SPREAD_DB)
    if opposite_neighbour is not None:
        # Keep the opposite shelf able to sit within range of both its neighbour and this shelf.
        reach = 2.0 * EXTREME_SPREAD_DB
        window = _intersect(window, (opposite_neighbour - reach, opposite_neighbour + reach))
    window = _intersect(window, (opposite_extreme - EXTREME_SPREAD_DB, opposite_extreme + EXTREME_SPREAD_DB))
    if inner_average >= 0.0:
        window = _intersect(window, (-np.inf, inner_average))
    else:
        window = _intersect(window, (inner_average, np.inf))
    return window


def clamp_extreme_bands(gains: Sequence[float]) -> tuple[float, ...]:
    """Constrain the lowest and highest band gains relative to the rest of the curve.

    The low shelf is resolved first; the high shelf is then resolved against
    the already-clamped low shelf.
    """

    if len(gains) < 3:
        return tuple(float(gain) for gain in gains)

    clamped = [float(gain) for gain in gains]
    inner_average = float(np.mean(clamped[1:-1]))

    low_window = _extreme_window(clamped[1], clamped[-1], inner_average, opposite_neighbour=clamped[-2])
    clamped[0] = _clamp(clamped[0], *low_window)

    high_window = _extreme_window(clamped[-2], clamped[0], inner_average)
    clamped[-1] = _clamp(clamped[-1], *high_window)

    if clamped[0] != gains[0] or clamped[-1] != gains[-1]:
        LOGGER.debug(
            "eq_extremes_clamped",
            extra={
                "low_shelf": (float(gains[0]), clamped[0]),
                "high_shelf": (float(gains[-1]), clamped[-1]),
                "inner_average": inner_average,
            },
        )
    return tuple(clamped)


def build_eq_plan(measurements: Sequence[FrequencyBandMeasurement], target: EqTarget) -> EQPlan:
    """Derive the ten band gains for ``target`` from band measurements."""

    if len(measurements) != len(EQ_BANDS):
        raise ValueError(f"Expected {len(EQ_BANDS)} band measurements, got {len(measurements)}.")

    tuning = resolve_eq_tuning(target)
    targets = compute_target_levels(measurements, target)
    gains = []
    for band, target_db in zip(measurements, targets):
        correction = compute_band_correction(band.rms_level, target_db, tuning.boosts_allowed)
        gains.append(_clamp(-correction, -MAX_BAND_GAIN_DB, MAX_BAND_GAIN_DB))

    resolved = clamp_extreme_bands(gains)
    return EQPlan(
        target=target,
        band_labels=tuple(band.label for band in EQ_BANDS),
        gains_db=resolved,
        highpass=tuning.highpass,
        lowpass=tuning.lowpass,
    )


def _render_band(band: EqBand, gain_db: float) -> str:
    if band.filter_kind is FilterKind.LOWPASS:
        return f"lowshelf=f={band.center_hz}:g={gain_db:.2f}:width_type=q:width=0.7"
    if band.filter_kind is FilterKind.HIGHPASS:
        return f"highshelf=f={band.center_hz}:g={gain_db:.2f}:width_type=q:width=0.7"
    channel = f"f={band.center_hz} w={band.center_hz:.0f} g={gain_db:.2f} t=0"
    return f"anequalizer=c0 {channel}|c1 {channel}"


def render_eq_filter(plan: EQPlan) -> str:
    """Render the plan as a filter chain; an empty plan renders to ``""``."""

    parts = [_render_band(EQ_BANDS[index], plan.gains_db[index]) for index in plan.active_bands]
    if not parts:
        return ""
    if plan.highpass:
        parts.insert(0, plan.highpass)
    if plan.lowpass:
        parts.append(plan.lowpass)
    return ",".join(parts)


def with_de_esser(eq_filter: str) -> str:
    return f"{eq_filter},{DE_ESSER_FILTER}" if eq_filter else ""
