"""Dynamics Score heuristic and the compression modifiers it selects."""

from __future__ import annotations

import math
from dataclasses import dataclass

from tnt_audio.statistics import AudioStatistics

DENSE_SCORE_LIMIT = 9.0
MODERATE_SCORE_LIMIT = 15.0
NEUTRAL_SCORE_LIMIT = 21.0
MAX_SCORE_EXCESS = 79.0


@dataclass(frozen=True, slots=True)
class DynamicsScore:
    """Estimate of how much compression headroom the material still has."""

    score: float


@dataclass(frozen=True, slots=True)
class CompressionModifiers:
    """Multipliers applied to a preset's base attack, release and ratio."""

    attack_multiplier: float
    release_multiplier: float
    ratio_multiplier: float


NEUTRAL_MODIFIERS = CompressionModifiers(1.0, 1.0, 1.0)


def compute_dynamics_score(stats: AudioStatistics) -> DynamicsScore:
    """Return ``sqrt(crest factor) * (RMS peak - RMS level)``."""

    crest = max(stats.crest_factor, 0.0)
    return DynamicsScore(score=math.sqrt(crest) * (stats.rms_peak - stats.rms_level))


def resolve_modifiers(score: DynamicsScore | float) -> CompressionModifiers:
    """Map a dynamics score onto compression modifiers.

    Low scores mean dense, already-compressed material: slow timing and a
    much gentler ratio. High scores mean wide swings: faster timing and a
    steeper ratio, saturating at a score of 100.
    """

    value = score.score if isinstance(score, DynamicsScore) else float(score)

    if value < DENSE_SCORE_LIMIT:
        return CompressionModifiers(4.0, 4.0, 0.15)
    if value < MODERATE_SCORE_LIMIT:
        return CompressionModifiers(2.0, 2.0, 2.1)
    if value <= NEUTRAL_SCORE_LIMIT:
        return NEUTRAL_MODIFIERS

    excess = min(value - NEUTRAL_SCORE_LIMIT, MAX_SCORE_EXCESS)
    scale = 2.0 + 2.0 * excess / MAX_SCORE_EXCESS
    return CompressionModifiers(
        attack_multiplier=1.0 / scale,
        release_multiplier=1.0 / scale,
        ratio_multiplier=4.0 + 4.0 * excess / MAX_SCORE_EXCESS,
    )


def modifiers_for(score: DynamicsScore | None) -> CompressionModifiers:
    if score is None:
        return NEUTRAL_MODIFIERS
    return resolve_modifiers(score)
