"""Whole-file adaptive compressor/limiter derivation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from tnt_audio.dynamics_score import DynamicsScore, modifiers_for
from tnt_audio.options import DynamicsPreset
from tnt_audio.statistics import AudioStatistics

LOGGER = logging.getLogger(__name__)

THRESHOLD_LINEAR_RANGE = (0.00097563, 1.0)
RATIO_RANGE = (1.0, 20.0)
ATTACK_MS_RANGE = (0.01, 2000.0)
RELEASE_MS_RANGE = (0.01, 9000.0)
MAKEUP_LINEAR_RANGE = (1.0, 64.0)

LIMITER_CREST_TRIGGER = 5.0
MAKEUP_SHARE = 0.8


@dataclass(frozen=True, slots=True)
class CompressorSpec:
    """Fully resolved compressor (and optional limiter) parameters."""

    threshold_linear: float
    ratio: float
    attack_ms: float
    release_ms: float
    makeup_linear: float
    knee: float
    limiter_ceiling_linear: float | None = None
    limiter_attack_ms: float | None = None
    limiter_release_ms: float | None = None

    @property
    def has_limiter(self) -> bool:
        return self.limiter_ceiling_linear is not None


@dataclass(frozen=True, slots=True)
class SingleBandTuning:
    """Base settings for one single-band compression preset."""

    threshold_offset_db: float
    attack_ms: float
    release_ms: float
    limiter_ceiling_db: float = -1.0
    limiter_attack_ms: float = 5.0
    limiter_release_ms: float = 50.0


SINGLE_BAND_TUNINGS: dict[DynamicsPreset, SingleBandTuning] = {
    DynamicsPreset.LIGHT: SingleBandTuning(threshold_offset_db=6.0, attack_ms=100.0, release_ms=250.0),
    DynamicsPreset.MODERATE: SingleBandTuning(threshold_offset_db=5.0, attack_ms=40.0, release_ms=150.0),
    DynamicsPreset.BROADCAST: SingleBandTuning(threshold_offset_db=4.0, attack_ms=10.0, release_ms=30.0),
}


def db_to_linear(value_db: float) -> float:
    return float(10.0 ** (value_db / 20.0))


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    return float(np.clip(value, bounds[0], bounds[1]))


def resolve_single_band_tuning(preset: DynamicsPreset) -> SingleBandTuning:
    if preset not in SINGLE_BAND_TUNINGS:
        allowed = ", ".join(item.value for item in SINGLE_BAND_TUNINGS)
        raise ValueError(f"Dynamics preset '{preset.value}' has no compressor. Expected one of: {allowed}.")
    return SINGLE_BAND_TUNINGS[preset]


def base_ratio_from_crest(crest_factor: float) -> float:
    if crest_factor <= 3.0:
        return 1.4
    if crest_factor <= 5.0:
        return 2.0
    if crest_factor <= 8.0:
        return 4.0
    if crest_factor >= 16.0:
        return 8.0
    return 4.0 + 4.0 * (crest_factor - 8.0) / 8.0


def knee_for_ratio(ratio: float) -> float:
    if ratio < 1.0:
        return 1.0
    if ratio < 2.0:
        return 2.0
    if ratio < 4.0:
        return 3.0
    if ratio < 8.0:
        return 4.0
    if ratio < 12.0:
        return 6.0
    return 7.5


def estimate_makeup_gain_db(stats: AudioStatistics, threshold_db: float, ratio: float) -> float:
    """Estimate makeup gain from where the threshold sits between RMS level and RMS peak."""

    if threshold_db >= stats.rms_peak:
        return 0.0

    if threshold_db <= stats.rms_level:
        share_above_threshold = 0.7
    else:
        position = (stats.rms_peak - threshold_db) / (stats.rms_peak - stats.rms_level)
        share_above_threshold = 0.3 * position

    average_excursion = (stats.rms_peak - threshold_db) / 2.0
    reduction_db = average_excursion * ((ratio - 1.0) / ratio) * share_above_threshold
    return reduction_db * MAKEUP_SHARE


def clamp_compressor_spec(spec: CompressorSpec) -> CompressorSpec:
    """Clamp every field into the ranges the engine accepts."""

    ratio = _clamp(spec.ratio, RATIO_RANGE)
    ceiling = spec.limiter_ceiling_linear
    if ceiling is not None:
        ceiling = _clamp(ceiling, (0.0, 1.0))
    return replace(
        spec,
        threshold_linear=_clamp(spec.threshold_linear, THRESHOLD_LINEAR_RANGE),
        ratio=ratio,
        attack_ms=_clamp(spec.attack_ms, ATTACK_MS_RANGE),
        release_ms=_clamp(spec.release_ms, RELEASE_MS_RANGE),
        makeup_linear=_clamp(spec.makeup_linear, MAKEUP_LINEAR_RANGE),
        limiter_ceiling_linear=ceiling,
    )


def derive_single_band(
    stats: AudioStatistics,
    preset: DynamicsPreset,
    score: DynamicsScore | None = None,
) -> CompressorSpec:
    """Derive a whole-file compressor for ``preset`` adapted to ``stats``."""

    tuning = resolve_single_band_tuning(preset)
    modifiers = modifiers_for(score)

    threshold_db = stats.rms_level + tuning.threshold_offset_db
    ratio = base_ratio_from_crest(stats.crest_factor) * modifiers.ratio_multiplier
    attack_ms = tuning.attack_ms * modifiers.attack_multiplier
    release_ms = tuning.release_ms * modifiers.release_multiplier
    makeup_db = estimate_makeup_gain_db(stats, threshold_db, ratio)

    limited = stats.crest_factor > LIMITER_CREST_TRIGGER
    spec = clamp_compressor_spec(
        CompressorSpec(
            threshold_linear=db_to_linear(threshold_db),
            ratio=ratio,
            attack_ms=attack_ms,
            release_ms=release_ms,
            makeup_linear=db_to_linear(makeup_db),
            knee=knee_for_ratio(ratio),
            limiter_ceiling_linear=db_to_linear(tuning.limiter_ceiling_db) if limited else None,
            limiter_attack_ms=tuning.limiter_attack_ms if limited else None,
            limiter_release_ms=tuning.limiter_release_ms if limited else None,
        )
    )
    LOGGER.debug(
        "single_band_compressor_derived",
        extra={
            "preset": preset.value,
            "threshold_db": threshold_db,
            "ratio": spec.ratio,
            "attack_ms": spec.attack_ms,
            "release_ms": spec.release_ms,
            "limited": limited,
        },
    )
    return spec


def render_single_band(spec: CompressorSpec) -> str:
    rendered = (
        f"acompressor=threshold={spec.threshold_linear:.6f}:ratio={spec.ratio:.1f}"
        f":attack={spec.attack_ms:.0f}:release={spec.release_ms:.0f}"
        f":knee={spec.knee:.1f}:makeup={spec.makeup_linear:.1f}"
    )
    if spec.has_limiter:
        rendered += (
            f",alimiter=limit={spec.limiter_ceiling_linear:.6f}"
            f":attack={spec.limiter_attack_ms:.0f}:release={spec.limiter_release_ms:.0f}"
        )
    return rendered
