from __future__ import annotations

from pathlib import Path
from typing import Any

import json

from pydantic import BaseModel, Field, field_validator, model_validator

from tnt_audio.domain.models import ProcessingRequest
from tnt_audio.domain.policies import resolve_loudness_target
from tnt_audio.encoding import EncodeSettings
from tnt_audio.options import (
    DynamicsPreset,
    EqTarget,
    LoudnessMode,
    LoudnessStandard,
    OutputFormat,
    PcmBitDepth,
    PhaseCheckMode,
    parse_case_insensitive_enum,
)


def _parse_enum(value: Any, enum_cls: type) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, (str, int)):
        return parse_case_insensitive_enum(str(value), enum_cls)
    return value


class LoudnessConfig(BaseModel):
    mode: LoudnessMode = LoudnessMode.NONE
    standard: LoudnessStandard = LoudnessStandard.EBU_R128
    integrated_lufs: float | None = Field(None, ge=-70.0, le=70.0)
    true_peak_db: float | None = Field(None, ge=-9.0, le=9.0)

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        return _parse_enum(value, LoudnessMode)

    @field_validator("standard", mode="before")
    @classmethod
    def _parse_standard(cls, value: Any) -> Any:
        return _parse_enum(value, LoudnessStandard)


class EncodeConfig(BaseModel):
    output_format: OutputFormat = OutputFormat.PCM
    bitrate_kbps: int = Field(256, ge=0, le=1024)
    sample_rate_hz: int = Field(48_000, gt=0, le=384_000)
    bit_depth: PcmBitDepth = PcmBitDepth.INT24
    compression_level: int = Field(5, ge=0, le=10)
    no_transcode: bool = False

    @field_validator("output_format", mode="before")
    @classmethod
    def _parse_output_format(cls, value: Any) -> Any:
        return _parse_enum(value, OutputFormat)

    @field_validator("bit_depth", mode="before")
    @classmethod
    def _parse_bit_depth(cls, value: Any) -> Any:
        return _parse_enum(value, PcmBitDepth)

    def to_settings(self) -> EncodeSettings:
        return EncodeSettings(
            output_format=self.output_format,
            bitrate_kbps=self.bitrate_kbps,
            sample_rate_hz=self.sample_rate_hz,
            bit_depth=self.bit_depth,
            compression_level=self.compression_level,
            no_transcode=self.no_transcode,
        )


class ProcessingConfig(BaseModel):
    eq_target: EqTarget = EqTarget.OFF
    dynamics_preset: DynamicsPreset = DynamicsPreset.OFF
    speech: bool = False
    bypass_processing: bool = False
    dynamic_normalization: bool = False
    phase_check: PhaseCheckMode = PhaseCheckMode.OFF
    loudness: LoudnessConfig = Field(default_factory=LoudnessConfig)
    encode: EncodeConfig = Field(default_factory=EncodeConfig)

    @field_validator("eq_target", mode="before")
    @classmethod
    def _parse_eq_target(cls, value: Any) -> Any:
        return _parse_enum(value, EqTarget)

    @field_validator("dynamics_preset", mode="before")
    @classmethod
    def _parse_dynamics_preset(cls, value: Any) -> Any:
        return _parse_enum(value, DynamicsPreset)

    @field_validator("phase_check", mode="before")
    @classmethod
    def _parse_phase_check(cls, value: Any) -> Any:
        return _parse_enum(value, PhaseCheckMode)

    @model_validator(mode="after")
    def _validate_stream_copy(self) -> ProcessingConfig:
        if not self.encode.no_transcode:
            return self
        if self.loudness.mode is LoudnessMode.NORMALIZE:
            raise ValueError("no_transcode cannot be combined with loudness normalization.")
        processing = (
            self.eq_target is not EqTarget.OFF
            or self.dynamics_preset is not DynamicsPreset.OFF
            or self.dynamic_normalization
        )
        if processing and not self.bypass_processing:
            raise ValueError("no_transcode cannot be combined with EQ or dynamics processing.")
        return self

    def to_request(
        self,
        input_path: Path,
        output_dir: Path,
        input_root: Path | None = None,
    ) -> ProcessingRequest:
        target = resolve_loudness_target(
            self.loudness.standard,
            integrated_lufs=self.loudness.integrated_lufs,
            true_peak_db=self.loudness.true_peak_db,
        )
        return ProcessingRequest(
            input_path=Path(input_path),
            output_dir=Path(output_dir),
            eq_target=self.eq_target,
            dynamics_preset=self.dynamics_preset,
            use_loudnorm=self.loudness.mode is LoudnessMode.NORMALIZE,
            write_tags=self.loudness.mode is LoudnessMode.TAG,
            is_speech=self.speech,
            loudness_target=target.integrated_lufs,
            true_peak_limit=target.true_peak_db,
            loudness_standard=target.standard,
            bypass_processing=self.bypass_processing,
            use_dynamic_normalization=self.dynamic_normalization,
            encode=self.encode.to_settings(),
            input_root=input_root,
            phase_check=self.phase_check,
        )


def load_processing_config(path: Path) -> ProcessingConfig:
    data = _load_config_data(path)
    return ProcessingConfig.model_validate(data)


def _load_config_data(path: Path) -> dict:
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise ImportError("PyYAML is required to load YAML configs.") from exc

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
