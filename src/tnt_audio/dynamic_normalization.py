"""Continuous gain-riding normalizer parameters."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from tnt_audio.statistics import AudioStatistics

TARGET_BELOW_RMS_PEAK_DB = 6.0
THRESHOLD_ABOVE_NOISE_FLOOR_DB = 12.0


@dataclass(frozen=True, slots=True)
class DynaudnormSpec:
    target_rms_linear: float
    threshold_linear: float


def derive_dynaudnorm(stats: AudioStatistics) -> DynaudnormSpec:
    """Aim 6 dB below the RMS peak and ignore anything within 12 dB of the noise floor."""

    target = 10.0 ** ((stats.rms_peak - TARGET_BELOW_RMS_PEAK_DB) / 20.0)
    threshold = 10.0 ** ((stats.noise_floor + THRESHOLD_ABOVE_NOISE_FLOOR_DB) / 20.0)
    return DynaudnormSpec(
        target_rms_linear=float(np.clip(target, 0.0, 1.0)),
        threshold_linear=float(np.clip(threshold, 0.0, 1.0)),
    )


def render_dynaudnorm(spec: DynaudnormSpec) -> str:
    return (
        f"dynaudnorm=framelen=650:gausssize=36:targetrms={spec.target_rms_linear:.6f}"
        f":threshold={spec.threshold_linear:.6f}:altboundary=true:overlap=0.95"
    )
