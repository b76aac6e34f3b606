"""Domain models for processing requests and pipeline runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from tnt_audio.domain.errors import ConfigurationAmbiguity
from tnt_audio.domain.policies import LoudnessTarget
from tnt_audio.encoding import EncodeSettings, output_path_for
from tnt_audio.options import DynamicsPreset, EqTarget, LoudnessStandard, PhaseCheckMode


class Stage(str, Enum):
    """Pipeline stages in execution order."""

    PHASE = "phase"
    EQ = "eq"
    DYNAMIC_NORMALIZATION = "dyn"
    ATTENUATION = "atten"
    COMPRESSION = "comp"
    LOUDNESS = "loudness"
    ENCODE = "encode"


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ProcessingRequest:
    """One job, captured immutably when it is submitted."""

    input_path: Path
    output_dir: Path
    eq_target: EqTarget = EqTarget.OFF
    dynamics_preset: DynamicsPreset = DynamicsPreset.OFF
    use_loudnorm: bool = False
    write_tags: bool = False
    is_speech: bool = False
    loudness_target: float = -23.0
    true_peak_limit: float = -1.0
    loudness_standard: LoudnessStandard = LoudnessStandard.EBU_R128
    bypass_processing: bool = False
    use_dynamic_normalization: bool = False
    encode: EncodeSettings = field(default_factory=EncodeSettings)
    input_root: Path | None = None
    output_tag: str = ""
    phase_check: PhaseCheckMode = PhaseCheckMode.OFF

    def __post_init__(self) -> None:
        if self.use_loudnorm and self.write_tags:
            raise ConfigurationAmbiguity(
                "normalize_and_tag",
                "Loudness normalization and ReplayGain tagging are mutually exclusive.",
            )
        if self.encode.no_transcode and (self.use_loudnorm or self.alters_audio):
            raise ConfigurationAmbiguity(
                "filter_without_transcode",
                "Processing or normalization cannot be combined with stream copy (no transcode).",
            )

    @property
    def output_path(self) -> Path:
        return output_path_for(
            self.input_path,
            self.output_dir,
            self.encode,
            normalized=self.use_loudnorm,
            tagged=self.write_tags,
            input_root=self.input_root,
            output_tag=self.output_tag,
        )

    @property
    def loudness(self) -> LoudnessTarget:
        return LoudnessTarget(
            integrated_lufs=self.loudness_target,
            true_peak_db=self.true_peak_limit,
            standard=self.loudness_standard,
        )

    @property
    def eq_enabled(self) -> bool:
        return not self.bypass_processing and self.eq_target is not EqTarget.OFF

    @property
    def dynamics_enabled(self) -> bool:
        return not self.bypass_processing and self.dynamics_preset is not DynamicsPreset.OFF

    @property
    def dynamic_normalization_enabled(self) -> bool:
        return not self.bypass_processing and self.use_dynamic_normalization

    @property
    def uses_multiband(self) -> bool:
        return self.dynamics_preset is DynamicsPreset.BROADCAST

    @property
    def alters_audio(self) -> bool:
        return self.eq_enabled or self.dynamics_enabled or self.dynamic_normalization_enabled

    def summary(self) -> dict[str, Any]:
        return {
            "input": self.input_path.as_posix(),
            "eq_target": self.eq_target.value,
            "dynamics_preset": self.dynamics_preset.value,
            "loudnorm": self.use_loudnorm,
            "tags": self.write_tags,
            "speech": self.is_speech,
            "bypass": self.bypass_processing,
            "dynaudnorm": self.use_dynamic_normalization,
            "format": self.encode.output_format.value,
            "phase_check": self.phase_check.value,
        }


@dataclass(frozen=True, slots=True)
class StageRecord:
    stage: Stage
    status: str
    detail: str = ""


@dataclass(slots=True)
class PipelineRun:
    """Mutable state of one file's run; owns its temp artifacts until cleanup."""

    correlation_id: str
    request: ProcessingRequest
    working_path: Path
    temp_artifacts: list[Path] = field(default_factory=list)
    stage_log: list[StageRecord] = field(default_factory=list)

    def adopt(self, artifact: Path) -> Path:
        self.temp_artifacts.append(artifact)
        return artifact

    def advance(self, artifact: Path) -> None:
        self.working_path = artifact

    def record(self, stage: Stage, status: str, detail: str = "") -> None:
        self.stage_log.append(StageRecord(stage=stage, status=status, detail=detail))


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of one file's run: exactly one per submitted file."""

    input_path: Path
    status: RunStatus
    correlation_id: str
    output_path: Path | None = None
    error: dict[str, str | None] | None = None
    stages: tuple[StageRecord, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.SUCCEEDED
