"""Five-band adaptive compression and the crossover recombination plan.

The signal is split with a 4th-order crossover at 80/250/1000/4000 Hz, each
band gets its own compressor and limiter, and the bands are summed without
normalization before one final safety limiter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from tnt_audio.compression import (
    CompressorSpec,
    clamp_compressor_spec,
    db_to_linear,
    knee_for_ratio,
)
from tnt_audio.dynamics_score import CompressionModifiers, DynamicsScore, modifiers_for
from tnt_audio.options import DynamicsPreset
from tnt_audio.statistics import FilterKind, FrequencyBandMeasurement

LOGGER = logging.getLogger(__name__)

CROSSOVER_SPLITS_HZ: tuple[int, ...] = (80, 250, 1000, 4000)
RESAMPLE_HZ = 192_000
SAFETY_LIMIT_LINEAR = 0.9886

HOT_PEAK_TRIGGER_DB = -5.0
HOT_PEAK_TARGET_DB = -6.0

PRECOMPRESSED_RATIO_MULTIPLIER = 0.3
HIGHLY_DYNAMIC_RATIO_MULTIPLIER = 3.0
LIMITER_CEILING_FLOOR_DB = -24.0
LIMITER_ATTACK_CAP_MS = 80.0
LIMITER_RELEASE_CAP_MS = 8000.0
MAKEUP_SHARE = 0.8


@dataclass(frozen=True, slots=True)
class CrossoverBand:
    """Static definition of one crossover band."""

    name: str
    pad: str
    analysis_filter: str
    filter_kind: FilterKind
    attack_scale: float
    release_scale: float
    ratio_scale: float
    fallback_threshold_db: float

    @property
    def output_pad(self) -> str:
        return f"{self.pad.lower()}_out"


CROSSOVER_BANDS: tuple[CrossoverBand, ...] = (
    CrossoverBand("sub", "SUB", "lowpass=f=80", FilterKind.LOWPASS, 1.0, 1.0, 1.0, -18.0),
    CrossoverBand("bass", "LOW", "highpass=f=80,lowpass=f=250", FilterKind.BANDPASS, 1.0, 1.0, 1.0, -15.0),
    CrossoverBand("low_mid", "LMID", "highpass=f=250,lowpass=f=1000", FilterKind.BANDPASS, 0.8, 0.9, 1.2, -12.0),
    CrossoverBand("mid", "HMID", "highpass=f=1000,lowpass=f=4000", FilterKind.BANDPASS, 0.6, 0.7, 1.5, -10.0),
    CrossoverBand("high", "HI", "highpass=f=4000", FilterKind.HIGHPASS, 0.5, 0.6, 2.0, -8.0),
)


@dataclass(frozen=True, slots=True)
class MultibandTuning:
    """Base timing and ratio shared by every band before per-band scaling."""

    attack_ms: float
    release_ms: float
    ratio: float


MULTIBAND_TUNINGS: dict[DynamicsPreset, MultibandTuning] = {
    DynamicsPreset.LIGHT: MultibandTuning(attack_ms=150.0, release_ms=300.0, ratio=2.5),
    DynamicsPreset.MODERATE: MultibandTuning(attack_ms=100.0, release_ms=200.0, ratio=4.0),
    DynamicsPreset.BROADCAST: MultibandTuning(attack_ms=10.0, release_ms=20.0, ratio=6.0),
}


@dataclass(frozen=True, slots=True)
class MultibandPlan:
    """Per-band compressor specs in crossover order."""

    preset: DynamicsPreset
    band_specs: tuple[CompressorSpec, ...]


def resolve_multiband_tuning(preset: DynamicsPreset) -> MultibandTuning:
    if preset not in MULTIBAND_TUNINGS:
        allowed = ", ".join(item.value for item in MULTIBAND_TUNINGS)
        raise ValueError(f"Dynamics preset '{preset.value}' has no multiband tuning. Expected one of: {allowed}.")
    return MULTIBAND_TUNINGS[preset]


def attenuation_gain_linear(peak_level_db: float) -> float | None:
    """Return the pre-split volume gain when peaks are hot, else ``None``."""

    if peak_level_db <= HOT_PEAK_TRIGGER_DB:
        return None
    return db_to_linear(HOT_PEAK_TARGET_DB - peak_level_db)


def render_attenuation(gain_linear: float) -> str:
    return f"volume={gain_linear:.6f}"


def _fallback_band_spec(band: CrossoverBand, attack_ms: float, release_ms: float, ratio: float) -> CompressorSpec:
    return clamp_compressor_spec(
        CompressorSpec(
            threshold_linear=db_to_linear(band.fallback_threshold_db),
            ratio=ratio,
            attack_ms=attack_ms,
            release_ms=release_ms,
            makeup_linear=db_to_linear(3.0),
            knee=knee_for_ratio(ratio),
            limiter_ceiling_linear=db_to_linear(-1.0),
            limiter_attack_ms=5.0,
            limiter_release_ms=50.0,
        )
    )


def derive_band_spec(
    band: CrossoverBand,
    measurement: FrequencyBandMeasurement | None,
    tuning: MultibandTuning,
    modifiers: CompressionModifiers,
) -> CompressorSpec:
    """Derive one band's compressor and limiter."""

    attack_ms = tuning.attack_ms * band.attack_scale
    release_ms = tuning.release_ms * band.release_scale
    ratio = tuning.ratio * band.ratio_scale

    if measurement is None:
        return _fallback_band_spec(band, attack_ms, release_ms, ratio)

    if modifiers.ratio_multiplier < PRECOMPRESSED_RATIO_MULTIPLIER:
        # Dense material: chase the peak instead of the average.
        threshold_db = measurement.peak_level - 1.0
        makeup_db = 0.0
        ceiling_db = 0.0
        limiter_attack_ms = LIMITER_ATTACK_CAP_MS
        limiter_release_ms = 2000.0
    else:
        offset_db = 3.0 if modifiers.ratio_multiplier > HIGHLY_DYNAMIC_RATIO_MULTIPLIER else 6.0
        threshold_db = measurement.rms_level + offset_db
        makeup_db = max(0.0, offset_db / ratio * MAKEUP_SHARE)
        ceiling_db = max(measurement.peak_level - 0.8, LIMITER_CEILING_FLOOR_DB)
        limiter_attack_ms = min(25.0 * modifiers.attack_multiplier, LIMITER_ATTACK_CAP_MS)
        limiter_release_ms = min(150.0 * modifiers.release_multiplier, LIMITER_RELEASE_CAP_MS)

    scaled_ratio = ratio * modifiers.ratio_multiplier
    return clamp_compressor_spec(
        CompressorSpec(
            threshold_linear=db_to_linear(threshold_db),
            ratio=scaled_ratio,
            attack_ms=attack_ms * modifiers.attack_multiplier,
            release_ms=release_ms * modifiers.release_multiplier,
            makeup_linear=db_to_linear(makeup_db),
            knee=knee_for_ratio(scaled_ratio),
            limiter_ceiling_linear=db_to_linear(ceiling_db),
            limiter_attack_ms=limiter_attack_ms,
            limiter_release_ms=limiter_release_ms,
        )
    )


def derive_multiband(
    measurements: Mapping[str, FrequencyBandMeasurement],
    preset: DynamicsPreset,
    score: DynamicsScore | None = None,
) -> MultibandPlan:
    """Derive the five band specs; bands absent from ``measurements`` use fallbacks."""

    tuning = resolve_multiband_tuning(preset)
    modifiers = modifiers_for(score)
    specs = []
    for band in CROSSOVER_BANDS:
        measurement = measurements.get(band.name)
        if measurement is None:
            LOGGER.warning("multiband_band_fallback", extra={"band": band.name})
        specs.append(derive_band_spec(band, measurement, tuning, modifiers))
    return MultibandPlan(preset=preset, band_specs=tuple(specs))


def _render_band_chain(spec: CompressorSpec) -> str:
    return (
        f"acompressor=threshold={spec.threshold_linear:.6f}:ratio={spec.ratio:.1f}"
        f":attack={spec.attack_ms:.1f}:release={spec.release_ms:.1f}"
        f":makeup=1.0:knee={spec.knee:.1f}"
        f",alimiter=limit={spec.limiter_ceiling_linear:.6f}"
        f":attack={spec.limiter_attack_ms:.0f}:release={spec.limiter_release_ms:.0f}:level=false"
        f",volume={spec.makeup_linear:.3f}"
    )


def render_multiband(plan: MultibandPlan) -> str:
    """Render the split, per-band processing and remix as one filter graph."""

    splits = " ".join(str(frequency) for frequency in CROSSOVER_SPLITS_HZ)
    input_pads = "".join(f"[{band.pad}]" for band in CROSSOVER_BANDS)
    output_pads = "".join(f"[{band.output_pad}]" for band in CROSSOVER_BANDS)
    band_chains = ";".join(
        f"[{band.pad}]{_render_band_chain(spec)}[{band.output_pad}]"
        for band, spec in zip(CROSSOVER_BANDS, plan.band_specs)
    )
    return (
        f"aresample={RESAMPLE_HZ},"
        f"acrossover=split={splits}:order=4th:precision=double{input_pads};"
        f"{band_chains};"
        f"{output_pads}amix=inputs={len(CROSSOVER_BANDS)}:normalize=0,"
        f"alimiter=limit={SAFETY_LIMIT_LINEAR}:level=false"
    )
