"""Application service running one file through the staged pipeline.

Stage order is fixed: optional phase pre-flight, EQ (with de-esser), dynamic
normalization, dynamics compression, loudness measurement, final encode.
Every stage that alters audio renders a new intermediate artifact and
advances the run's working path; the input file is never written. Any
failure aborts the run, removes every temp artifact and yields exactly one
failed :class:`RunResult`.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator
from uuid import uuid4

from tnt_audio.analysis import (
    measure_crossover_bands,
    measure_ebur128,
    measure_eq_bands,
    measure_loudnorm,
    measure_phase,
    measure_statistics,
)
from tnt_audio.application.event_publisher import EventPublisher, NullEventPublisher
from tnt_audio.audio_contract import UnsupportedAudioFormatError, ensure_supported_path
from tnt_audio.compression import derive_single_band, render_single_band
from tnt_audio.domain.errors import AnalysisFailure, EncodeFailure, PipelineError, StageApplicationFailure
from tnt_audio.domain.events import (
    DomainEvent,
    RunFailed,
    RunStarted,
    RunSucceeded,
    StageCompleted,
    StageSkipped,
    StageStarted,
)
from tnt_audio.domain.models import PipelineRun, ProcessingRequest, RunResult, RunStatus, Stage
from tnt_audio.dynamic_normalization import derive_dynaudnorm, render_dynaudnorm
from tnt_audio.dynamics_score import DynamicsScore, compute_dynamics_score, resolve_modifiers
from tnt_audio.encoding import (
    PCM_DITHER_FILTER,
    codec_args,
    needs_dither,
    uses_mp4_metadata,
)
from tnt_audio.eq_curve import build_eq_plan, render_eq_filter, with_de_esser
from tnt_audio.infrastructure.engine_runner import EngineRunner, FfmpegRunner, render_args
from tnt_audio.infrastructure.temp_files import TempArtifactOwner
from tnt_audio.loudness import LoudnessMeasurement, build_final_normalization_filter, compute_replaygain
from tnt_audio.multiband import (
    attenuation_gain_linear,
    derive_multiband,
    render_attenuation,
    render_multiband,
)
from tnt_audio.options import PhaseCheckMode

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessFile:
    """Use case that runs the staged pipeline for one processing request."""

    runner: EngineRunner = field(default_factory=FfmpegRunner)
    event_publisher: EventPublisher = field(default_factory=NullEventPublisher)
    temp_dir: Path | None = None
    strict_statistics: bool = False

    def run(self, request: ProcessingRequest, correlation_id: str | None = None) -> RunResult:
        run = PipelineRun(
            correlation_id=correlation_id or str(uuid4()),
            request=request,
            working_path=request.input_path,
        )
        output_path = request.output_path
        self._publish(RunStarted, run, **request.summary())

        try:
            self._check_input(request, output_path)
            self._check_phase(run)
            with TempArtifactOwner(self.temp_dir) as artifacts:
                self._apply_eq(run, artifacts)
                score = self._measure_dynamics_score(run)
                self._apply_dynamic_normalization(run, artifacts)
                self._apply_dynamics(run, artifacts, score)
                measurement = self._measure_loudness(run)
                self._encode(run, output_path, measurement)
        except PipelineError as error:
            LOGGER.error(
                "pipeline_run_failed",
                extra={
                    "correlation_id": run.correlation_id,
                    "file": request.input_path.name,
                    "error_code": error.code,
                    "error_stage": error.stage,
                    "error_message": error.message,
                },
            )
            self._publish(RunFailed, run, stage=error.stage or "ingest", error=error.message, code=error.code)
            return RunResult(
                input_path=request.input_path,
                status=RunStatus.FAILED,
                correlation_id=run.correlation_id,
                error=error.as_dict(),
                stages=tuple(run.stage_log),
            )

        self._publish(RunSucceeded, run, output=output_path.as_posix())
        return RunResult(
            input_path=request.input_path,
            status=RunStatus.SUCCEEDED,
            correlation_id=run.correlation_id,
            output_path=output_path,
            stages=tuple(run.stage_log),
        )

    def _publish(self, event_type: type[DomainEvent], run: PipelineRun, **payload: Any) -> None:
        summary = {"file": run.request.input_path.name, **payload}
        self.event_publisher.publish(event_type(correlation_id=run.correlation_id, payload_summary=summary))

    @contextmanager
    def _stage(self, run: PipelineRun, stage: Stage) -> Iterator[dict[str, Any]]:
        details: dict[str, Any] = {}
        self._publish(StageStarted, run, stage=stage.value)
        try:
            yield details
        except PipelineError as error:
            if error.stage is None:
                error.stage = stage.value
            # Nested stages: only the innermost failing stage is recorded.
            if not run.stage_log or run.stage_log[-1].status != "failed":
                run.record(stage, "failed", error.message)
            raise
        run.record(stage, "completed", str(details.get("detail", "")))
        self._publish(StageCompleted, run, stage=stage.value, **details)

    def _skip(self, run: PipelineRun, stage: Stage, reason: str) -> None:
        run.record(stage, "skipped", reason)
        self._publish(StageSkipped, run, stage=stage.value, reason=reason)

    def _check_input(self, request: ProcessingRequest, output_path: Path) -> None:
        try:
            ensure_supported_path(request.input_path)
        except UnsupportedAudioFormatError as exc:
            raise AnalysisFailure("unsupported_format", str(exc), stage="ingest") from exc
        if not request.input_path.is_file():
            raise AnalysisFailure(
                "input_missing",
                f"Input file not found: {request.input_path}",
                stage="ingest",
            )
        if output_path.resolve() == request.input_path.resolve():
            raise EncodeFailure(
                "output_is_input",
                f"Output path '{output_path}' would overwrite the input file.",
                stage="ingest",
            )

    def _check_phase(self, run: PipelineRun) -> None:
        mode = run.request.phase_check
        if mode is PhaseCheckMode.OFF:
            return

        with self._stage(run, Stage.PHASE) as details:
            assessment = measure_phase(self.runner, run.request.input_path)
            if assessment is None:
                details["detail"] = "mono"
                return
            details["phase_offset"] = assessment.offset
            if not assessment.inverted:
                return
            LOGGER.warning(
                "phase_inverted",
                extra={
                    "correlation_id": run.correlation_id,
                    "file": run.request.input_path.name,
                    "phase_offset": assessment.offset,
                    "fully_cancelling": assessment.fully_cancelling,
                },
            )
            if mode is PhaseCheckMode.SKIP:
                raise AnalysisFailure(
                    "phase_inverted",
                    f"Channels of '{run.request.input_path.name}' are out of phase (offset {assessment.offset:.4f}).",
                )
            details["detail"] = "inverted"

    def _render(self, run: PipelineRun, artifacts: TempArtifactOwner, stage: Stage, audio_filter: str) -> None:
        artifact = run.adopt(artifacts.new_artifact(stage.value))
        LOGGER.info(
            "stage_rendering",
            extra={"stage": stage.value, "file": run.request.input_path.name, "audio_filter": audio_filter},
        )
        result = self.runner.run(render_args(run.working_path, audio_filter, artifact))
        if not result.ok:
            LOGGER.error(
                "stage_render_failed",
                extra={"stage": stage.value, "returncode": result.returncode, "engine_output": result.output},
            )
            raise StageApplicationFailure(
                "render_failed",
                f"Applying {stage.value} to '{run.request.input_path.name}' failed with exit code {result.returncode}.",
                stage=stage.value,
            )
        run.advance(artifact)

    def _apply_eq(self, run: PipelineRun, artifacts: TempArtifactOwner) -> None:
        request = run.request
        if not request.eq_enabled:
            self._skip(run, Stage.EQ, "bypassed" if request.bypass_processing else "disabled")
            return

        with self._stage(run, Stage.EQ) as details:
            bands = measure_eq_bands(self.runner, run.working_path)
            plan = build_eq_plan(bands, request.eq_target)
            eq_filter = render_eq_filter(plan)
            details["gains_db"] = list(plan.gains_db)
            if not eq_filter:
                details["detail"] = "no corrections"
                return
            self._render(run, artifacts, Stage.EQ, with_de_esser(eq_filter))

    def _measure_dynamics_score(self, run: PipelineRun) -> DynamicsScore | None:
        if not run.request.dynamics_enabled:
            return None
        # Scored on the untouched input, before any stage changes its dynamics.
        try:
            stats = measure_statistics(self.runner, run.request.input_path, strict=self.strict_statistics)
        except PipelineError as error:
            error.stage = error.stage or Stage.COMPRESSION.value
            run.record(Stage.COMPRESSION, "failed", error.message)
            raise
        score = compute_dynamics_score(stats)
        modifiers = resolve_modifiers(score)
        LOGGER.info(
            "dynamics_score_computed",
            extra={
                "file": run.request.input_path.name,
                "score": score.score,
                "attack_multiplier": modifiers.attack_multiplier,
                "release_multiplier": modifiers.release_multiplier,
                "ratio_multiplier": modifiers.ratio_multiplier,
            },
        )
        return score

    def _apply_dynamic_normalization(self, run: PipelineRun, artifacts: TempArtifactOwner) -> None:
        request = run.request
        if not request.dynamic_normalization_enabled:
            self._skip(run, Stage.DYNAMIC_NORMALIZATION, "bypassed" if request.bypass_processing else "disabled")
            return

        with self._stage(run, Stage.DYNAMIC_NORMALIZATION) as details:
            stats = measure_statistics(self.runner, run.working_path, strict=self.strict_statistics)
            spec = derive_dynaudnorm(stats)
            details["target_rms_linear"] = spec.target_rms_linear
            details["threshold_linear"] = spec.threshold_linear
            self._render(run, artifacts, Stage.DYNAMIC_NORMALIZATION, render_dynaudnorm(spec))

    def _apply_attenuation(self, run: PipelineRun, artifacts: TempArtifactOwner) -> None:
        stats = measure_statistics(self.runner, run.working_path, strict=self.strict_statistics)
        gain = attenuation_gain_linear(stats.peak_level)
        if gain is None:
            self._skip(run, Stage.ATTENUATION, "peaks below trigger")
            return
        with self._stage(run, Stage.ATTENUATION) as details:
            details["gain_linear"] = gain
            self._render(run, artifacts, Stage.ATTENUATION, render_attenuation(gain))

    def _apply_dynamics(
        self,
        run: PipelineRun,
        artifacts: TempArtifactOwner,
        score: DynamicsScore | None,
    ) -> None:
        request = run.request
        if not request.dynamics_enabled:
            self._skip(run, Stage.COMPRESSION, "bypassed" if request.bypass_processing else "disabled")
            return

        with self._stage(run, Stage.COMPRESSION) as details:
            if request.uses_multiband:
                self._apply_attenuation(run, artifacts)
                bands = measure_crossover_bands(self.runner, run.working_path)
                plan = derive_multiband(bands, request.dynamics_preset, score)
                compression_filter = render_multiband(plan)
                details["mode"] = "multiband"
            else:
                stats = measure_statistics(self.runner, run.working_path, strict=self.strict_statistics)
                spec = derive_single_band(stats, request.dynamics_preset, score)
                compression_filter = render_single_band(spec)
                details["mode"] = "single-band"
            self._render(run, artifacts, Stage.COMPRESSION, compression_filter)

    def _measure_loudness(self, run: PipelineRun) -> LoudnessMeasurement | None:
        request = run.request
        if not (request.use_loudnorm or request.write_tags):
            self._skip(run, Stage.LOUDNESS, "disabled")
            return None

        with self._stage(run, Stage.LOUDNESS) as details:
            if request.use_loudnorm:
                measurement = measure_loudnorm(self.runner, run.working_path, request.loudness)
            else:
                measurement = measure_ebur128(self.runner, run.working_path)
            details["integrated_lufs"] = measurement.integrated_lufs
            details["true_peak_db"] = measurement.true_peak_db
        return measurement

    def _encode_args(
        self,
        run: PipelineRun,
        output_path: Path,
        measurement: LoudnessMeasurement | None,
    ) -> list[str]:
        request = run.request
        args = ["-i", str(run.working_path), "-vn", *codec_args(request.encode, request.is_speech)]

        filters = []
        if request.use_loudnorm and measurement is not None:
            filters.append(build_final_normalization_filter(measurement, request.loudness, request.is_speech))
        if needs_dither(request.encode):
            filters.append(PCM_DITHER_FILTER)
        if filters:
            args += ["-af", ",".join(filters)]

        if request.write_tags and measurement is not None:
            if uses_mp4_metadata(request.encode, request.input_path):
                args += ["-movflags", "use_metadata_tags"]
            tags = compute_replaygain(measurement, request.loudness)
            for key, value in tags.as_metadata().items():
                args += ["-metadata", f"{key}={value}"]

        return [*args, "-y", str(output_path)]

    def _encode(self, run: PipelineRun, output_path: Path, measurement: LoudnessMeasurement | None) -> None:
        with self._stage(run, Stage.ENCODE) as details:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            # Encoded beside the destination and moved into place only on success.
            partial_path = output_path.with_name(f".tnt_partial_{uuid4().hex}_{output_path.name}")
            try:
                result = self.runner.run(self._encode_args(run, partial_path, measurement))
                if not result.ok:
                    LOGGER.error(
                        "encode_failed",
                        extra={"returncode": result.returncode, "engine_output": result.output},
                    )
                    raise EncodeFailure(
                        "encode_failed",
                        f"Encoding '{run.request.input_path.name}' failed with exit code {result.returncode}.",
                    )
                os.replace(partial_path, output_path)
            finally:
                partial_path.unlink(missing_ok=True)
            details["output"] = output_path.as_posix()
