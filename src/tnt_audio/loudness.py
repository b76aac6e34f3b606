"""Loudness measurement parsing, final normalization filter and ReplayGain values."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass

from tnt_audio.domain.errors import AnalysisFailure
from tnt_audio.domain.policies import LoudnessTarget

LOGGER = logging.getLogger(__name__)

LOUDNORM_JSON_PATTERN = re.compile(r"\{[^{}]*\"input_i\"[^{}]*\}", re.DOTALL)

EBUR128_PATTERNS: dict[str, re.Pattern[str]] = {
    "integrated_lufs": re.compile(r"I:\s+([-\d.]+)\s+LUFS"),
    "loudness_range": re.compile(r"LRA:\s+([-\d.]+)\s+LU"),
    "threshold": re.compile(r"Threshold:\s+([-\d.]+)\s+LUFS"),
    "true_peak_db": re.compile(r"Peak:\s+([-\d.]+)\s+dBFS"),
}

EBUR128_SUMMARY_MARKER = "Summary:"

SPEECH_LEVELER_FILTER = "speechnorm=e=12.5:r=0.0001:l=1"
EBUR128_MEASURE_FILTER = "ebur128=framelog=quiet:peak=true"


@dataclass(frozen=True, slots=True)
class LoudnessMeasurement:
    """Integrated loudness, true peak, loudness range and gating threshold."""

    integrated_lufs: float
    true_peak_db: float | None
    loudness_range: float
    threshold: float
    target_offset: float = 0.0


@dataclass(frozen=True, slots=True)
class ReplayGainTags:
    track_gain_db: float
    track_peak_linear: float
    reference_loudness_lufs: float

    def as_metadata(self) -> dict[str, str]:
        return {
            "REPLAYGAIN_TRACK_GAIN": f"{self.track_gain_db:.2f} dB",
            "REPLAYGAIN_TRACK_PEAK": f"{self.track_peak_linear:.6f}",
            "REPLAYGAIN_REFERENCE_LOUDNESS": f"{_format_level(self.reference_loudness_lufs)} LUFS",
        }


def _format_level(value: float) -> str:
    return f"{value:g}"


def _as_float(raw: object, field_name: str) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise AnalysisFailure(
            "loudness_unparseable",
            f"Loudness field '{field_name}' is not numeric: {raw!r}.",
        ) from exc
    if not math.isfinite(value):
        raise AnalysisFailure("loudness_unparseable", f"Loudness field '{field_name}' is not finite: {raw!r}.")
    return value


def loudnorm_measure_filter(target: LoudnessTarget) -> str:
    return (
        f"loudnorm=linear=false:I={_format_level(target.integrated_lufs)}"
        f":TP={_format_level(target.true_peak_db)}:LRA=5:print_format=json"
    )


def parse_loudnorm_output(output: str) -> LoudnessMeasurement:
    """Parse the JSON summary printed by a first-pass ``loudnorm`` run."""

    match = LOUDNORM_JSON_PATTERN.search(output)
    if match is None:
        raise AnalysisFailure("loudness_missing_summary", "Engine output has no loudnorm JSON summary.")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AnalysisFailure("loudness_unparseable", f"Invalid loudnorm JSON summary: {exc}.") from exc

    return LoudnessMeasurement(
        integrated_lufs=_as_float(payload.get("input_i"), "input_i"),
        true_peak_db=_as_float(payload.get("input_tp"), "input_tp"),
        loudness_range=_as_float(payload.get("input_lra"), "input_lra"),
        threshold=_as_float(payload.get("input_thresh"), "input_thresh"),
        target_offset=_as_float(payload.get("target_offset", 0.0), "target_offset"),
    )


def parse_ebur128_output(output: str) -> LoudnessMeasurement:
    """Parse the summary block of an ``ebur128`` measurement.

    Only text after the ``Summary:`` marker is considered so per-frame log
    lines are ignored. The integrated-loudness threshold precedes the
    loudness-range threshold, so the first match is used. A missing true-peak
    line is tolerated; the other fields are required.
    """

    summary_start = output.rfind(EBUR128_SUMMARY_MARKER)
    summary = output if summary_start == -1 else output[summary_start:]

    values: dict[str, float | None] = {}
    for name, pattern in EBUR128_PATTERNS.items():
        match = pattern.search(summary)
        values[name] = None if match is None else _as_float(match.group(1), name)

    required = ("integrated_lufs", "loudness_range", "threshold")
    missing = [name for name in required if values[name] is None]
    if missing:
        raise AnalysisFailure(
            "loudness_missing_fields",
            f"Engine output is missing loudness fields: {', '.join(missing)}.",
        )
    if values["true_peak_db"] is None:
        LOGGER.warning("ebur128_true_peak_missing")

    return LoudnessMeasurement(
        integrated_lufs=values["integrated_lufs"],  # type: ignore[arg-type]
        true_peak_db=values["true_peak_db"],
        loudness_range=values["loudness_range"],  # type: ignore[arg-type]
        threshold=values["threshold"],  # type: ignore[arg-type]
    )


def build_final_normalization_filter(
    measurement: LoudnessMeasurement,
    target: LoudnessTarget,
    is_speech: bool,
) -> str:
    """Build the second-pass linear ``loudnorm`` filter from a first-pass measurement."""

    loudnorm = (
        f"loudnorm=I={_format_level(target.integrated_lufs)}:TP={_format_level(target.true_peak_db)}"
        f":LRA={target.loudness_range_lu:.1f}"
        f":measured_I={measurement.integrated_lufs:g}:measured_TP={measurement.true_peak_db:g}"
        f":measured_LRA={measurement.loudness_range:g}:measured_thresh={measurement.threshold:g}"
    )
    if is_speech:
        return f"{SPEECH_LEVELER_FILTER},{loudnorm}:linear=true"
    return f"{loudnorm}:offset={measurement.target_offset:g}:linear=true"


def compute_replaygain(measurement: LoudnessMeasurement, target: LoudnessTarget) -> ReplayGainTags:
    """Gain is target minus measured loudness; peak is the true peak as linear amplitude."""

    if measurement.true_peak_db is None:
        peak_linear = 1.0
    else:
        peak_linear = float(10.0 ** (measurement.true_peak_db / 20.0))
    return ReplayGainTags(
        track_gain_db=target.integrated_lufs - measurement.integrated_lufs,
        track_peak_linear=peak_linear,
        reference_loudness_lufs=target.integrated_lufs,
    )
