"""Engine-backed measurements feeding the parameter derivations."""

from __future__ import annotations

import logging
from pathlib import Path

from tnt_audio.domain.errors import AnalysisFailure
from tnt_audio.domain.policies import LoudnessTarget
from tnt_audio.eq_curve import EQ_BANDS
from tnt_audio.infrastructure.engine_runner import EngineRunner, measure_args
from tnt_audio.loudness import (
    EBUR128_MEASURE_FILTER,
    LoudnessMeasurement,
    loudnorm_measure_filter,
    parse_ebur128_output,
    parse_loudnorm_output,
)
from tnt_audio.multiband import CROSSOVER_BANDS
from tnt_audio.phase_check import PhaseAssessment, assess_phase, parse_channel_extremes
from tnt_audio.statistics import (
    AudioStatistics,
    FrequencyBandMeasurement,
    parse_astats_output,
    parse_band_measurement,
)

LOGGER = logging.getLogger(__name__)

ASTATS_FILTER = "astats"


def _measure(runner: EngineRunner, path: Path, audio_filter: str, what: str) -> str:
    result = runner.run(measure_args(path, audio_filter))
    if not result.ok:
        LOGGER.error(
            "measurement_failed",
            extra={"measurement": what, "returncode": result.returncode, "engine_output": result.output},
        )
        raise AnalysisFailure(
            "measurement_failed",
            f"Measuring {what} for '{path.name}' failed with exit code {result.returncode}.",
        )
    return result.output


def measure_statistics(runner: EngineRunner, path: Path, strict: bool = False) -> AudioStatistics:
    """Whole-file level statistics."""

    output = _measure(runner, path, ASTATS_FILTER, "statistics")
    stats = parse_astats_output(output, strict=strict)
    LOGGER.info(
        "statistics_measured",
        extra={
            "file": path.name,
            "peak_level": stats.peak_level,
            "rms_peak": stats.rms_peak,
            "rms_level": stats.rms_level,
            "crest_factor": stats.crest_factor,
            "dynamic_range": stats.dynamic_range,
            "noise_floor": stats.noise_floor,
        },
    )
    return stats


def measure_eq_bands(runner: EngineRunner, path: Path) -> tuple[FrequencyBandMeasurement, ...]:
    """Measure the ten EQ analysis bands; any band failure aborts the analysis."""

    measurements = []
    for band in EQ_BANDS:
        output = _measure(runner, path, band.analysis_filter, f"EQ band {band.label}")
        measurement = parse_band_measurement(output, band.label, band.filter_kind)
        LOGGER.debug(
            "eq_band_measured",
            extra={"band": band.label, "rms_level": measurement.rms_level, "peak_level": measurement.peak_level},
        )
        measurements.append(measurement)
    return tuple(measurements)


def measure_crossover_bands(runner: EngineRunner, path: Path) -> dict[str, FrequencyBandMeasurement]:
    """Measure the five crossover bands used by multiband compression."""

    measurements: dict[str, FrequencyBandMeasurement] = {}
    for band in CROSSOVER_BANDS:
        output = _measure(runner, path, f"{band.analysis_filter},{ASTATS_FILTER}", f"crossover band {band.name}")
        measurements[band.name] = parse_band_measurement(output, band.name, band.filter_kind)
    return measurements


def measure_loudnorm(runner: EngineRunner, path: Path, target: LoudnessTarget) -> LoudnessMeasurement:
    output = _measure(runner, path, loudnorm_measure_filter(target), "loudness")
    return parse_loudnorm_output(output)


def measure_ebur128(runner: EngineRunner, path: Path) -> LoudnessMeasurement:
    output = _measure(runner, path, EBUR128_MEASURE_FILTER, "loudness")
    return parse_ebur128_output(output)


def measure_phase(runner: EngineRunner, path: Path) -> PhaseAssessment | None:
    """Channel phase relationship, ``None`` when the file has a single channel."""

    output = _measure(runner, path, ASTATS_FILTER, "channel phase")
    extremes = parse_channel_extremes(output)
    if extremes is None:
        return None
    assessment = assess_phase(extremes)
    LOGGER.info(
        "phase_measured",
        extra={"file": path.name, "phase_offset": assessment.offset, "inverted": assessment.inverted},
    )
    return assessment
