"""CLI interface for tnt-audio."""

import logging
from pathlib import Path

import typer

from .interfaces.cli_handlers import process_paths, run_batch_processing
from .infrastructure.status_log import StatusLog
from .options import (
    DynamicsPreset,
    EqTarget,
    LoudnessMode,
    LoudnessStandard,
    OutputFormat,
    PcmBitDepth,
    PhaseCheckMode,
)
from .utils.config import ProcessingConfig, load_processing_config

app = typer.Typer(help="tnt-audio batch loudness and dynamics processing")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback()
def configure(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Optional file receiving log records."),
) -> None:
    """Configure logging for every command."""

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level '{log_level}'.", param_hint="--log-level")
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        filename=str(log_file) if log_file is not None else None,
    )


def _build_config(
    config_path: Path | None,
    eq_target: EqTarget,
    dynamics: DynamicsPreset,
    loudness: LoudnessMode,
    standard: LoudnessStandard,
    target_lufs: float | None,
    true_peak: float | None,
    speech: bool,
    bypass: bool,
    dynaudnorm: bool,
    phase_check: PhaseCheckMode,
    output_format: OutputFormat,
    bitrate: int,
    sample_rate: int,
    bit_depth: PcmBitDepth,
    compression_level: int,
    no_transcode: bool,
) -> ProcessingConfig:
    try:
        if config_path is not None:
            return load_processing_config(config_path)
        return ProcessingConfig.model_validate(
            {
                "eq_target": eq_target,
                "dynamics_preset": dynamics,
                "speech": speech,
                "bypass_processing": bypass,
                "dynamic_normalization": dynaudnorm,
                "phase_check": phase_check,
                "loudness": {
                    "mode": loudness,
                    "standard": standard,
                    "integrated_lufs": target_lufs,
                    "true_peak_db": true_peak,
                },
                "encode": {
                    "output_format": output_format,
                    "bitrate_kbps": bitrate,
                    "sample_rate_hz": sample_rate,
                    "bit_depth": bit_depth,
                    "compression_level": compression_level,
                    "no_transcode": no_transcode,
                },
            }
        )
    except (OSError, ValueError) as error:
        typer.echo(f"Invalid configuration: {error}", err=True)
        raise typer.Exit(code=2) from error


def _status_log(show_status: bool) -> StatusLog:
    return StatusLog(sink=(lambda line: typer.echo(line, err=True)) if show_status else None)


def _report(results: list[dict[str, str]], summary: dict[str, int]) -> None:
    for item in results:
        if item["status"] == "succeeded":
            typer.echo(
                "[OK] "
                f"#{item['index']} input={item['input']} output={item['output']} "
                f"correlation_id={item['correlation_id']}"
            )
        else:
            typer.echo(
                "[FAILED] "
                f"#{item['index']} input={item['input']} stage={item.get('stage', '')} "
                f"error={item.get('error', '')} correlation_id={item['correlation_id']}"
            )

    typer.echo(
        "Summary: "
        f"total={summary['total']} "
        f"succeeded={summary['succeeded']} "
        f"failed={summary['failed']}"
    )
    if summary["failed"]:
        raise typer.Exit(code=1)


@app.command("process")
def process_command(
    files: list[Path] = typer.Argument(..., help="Audio files to process."),
    output_dir: Path = typer.Option(..., "--output-dir", "-o", help="Directory receiving the outputs."),
    config_path: Path | None = typer.Option(
        None, "--config", help="JSON or YAML processing config; replaces the processing options below."
    ),
    eq_target: EqTarget = typer.Option(EqTarget.OFF, "--eq", case_sensitive=False, help="EQ target curve."),
    dynamics: DynamicsPreset = typer.Option(
        DynamicsPreset.OFF, "--dynamics", case_sensitive=False, help="Dynamics compression preset."
    ),
    loudness: LoudnessMode = typer.Option(
        LoudnessMode.NONE, "--loudness", case_sensitive=False, help="Normalize, ReplayGain-tag or leave loudness."
    ),
    standard: LoudnessStandard = typer.Option(
        LoudnessStandard.EBU_R128, "--standard", case_sensitive=False, help="Loudness delivery standard."
    ),
    target_lufs: float | None = typer.Option(None, "--target-lufs", help="Custom integrated loudness target."),
    true_peak: float | None = typer.Option(None, "--true-peak", help="Custom true-peak ceiling in dBTP."),
    speech: bool = typer.Option(False, "--speech", help="Treat the content as speech."),
    bypass: bool = typer.Option(False, "--bypass", help="Skip EQ and dynamics, only measure and encode."),
    dynaudnorm: bool = typer.Option(False, "--dynaudnorm", help="Apply dynamic normalization."),
    phase_check: PhaseCheckMode = typer.Option(
        PhaseCheckMode.OFF, "--phase-check", case_sensitive=False, help="Warn about or skip phase-inverted stereo."
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.PCM, "--format", case_sensitive=False, help="Output encoding."
    ),
    bitrate: int = typer.Option(256, "--bitrate", help="Lossy bitrate in kbps."),
    sample_rate: int = typer.Option(48_000, "--sample-rate", help="PCM output sample rate in Hz."),
    bit_depth: PcmBitDepth = typer.Option(PcmBitDepth.INT24, "--bit-depth", help="PCM sample format."),
    compression_level: int = typer.Option(5, "--compression-level", help="Opus/FLAC effort, 0 to 10."),
    no_transcode: bool = typer.Option(False, "--no-transcode", help="Copy the audio stream unchanged."),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Concurrent files; defaults to CPUs - 1."),
    temp_dir: Path | None = typer.Option(None, "--temp-dir", help="Directory for intermediate artifacts."),
    show_status: bool = typer.Option(False, "--status", help="Print per-stage status lines to stderr."),
) -> None:
    """Process individual audio files."""

    config = _build_config(
        config_path,
        eq_target,
        dynamics,
        loudness,
        standard,
        target_lufs,
        true_peak,
        speech,
        bypass,
        dynaudnorm,
        phase_check,
        output_format,
        bitrate,
        sample_rate,
        bit_depth,
        compression_level,
        no_transcode,
    )
    results, summary = process_paths(
        files,
        output_dir,
        config,
        workers=workers,
        status_log=_status_log(show_status),
        temp_dir=temp_dir,
    )
    _report(results, summary)


@app.command("batch")
def batch_command(
    input_dir: Path = typer.Argument(..., help="Directory searched recursively for audio files."),
    output_dir: Path = typer.Option(..., "--output-dir", "-o", help="Directory receiving the mirrored outputs."),
    config_path: Path | None = typer.Option(
        None, "--config", help="JSON or YAML processing config; replaces the processing options below."
    ),
    eq_target: EqTarget = typer.Option(EqTarget.OFF, "--eq", case_sensitive=False, help="EQ target curve."),
    dynamics: DynamicsPreset = typer.Option(
        DynamicsPreset.OFF, "--dynamics", case_sensitive=False, help="Dynamics compression preset."
    ),
    loudness: LoudnessMode = typer.Option(
        LoudnessMode.NONE, "--loudness", case_sensitive=False, help="Normalize, ReplayGain-tag or leave loudness."
    ),
    standard: LoudnessStandard = typer.Option(
        LoudnessStandard.EBU_R128, "--standard", case_sensitive=False, help="Loudness delivery standard."
    ),
    target_lufs: float | None = typer.Option(None, "--target-lufs", help="Custom integrated loudness target."),
    true_peak: float | None = typer.Option(None, "--true-peak", help="Custom true-peak ceiling in dBTP."),
    speech: bool = typer.Option(False, "--speech", help="Treat the content as speech."),
    bypass: bool = typer.Option(False, "--bypass", help="Skip EQ and dynamics, only measure and encode."),
    dynaudnorm: bool = typer.Option(False, "--dynaudnorm", help="Apply dynamic normalization."),
    phase_check: PhaseCheckMode = typer.Option(
        PhaseCheckMode.OFF, "--phase-check", case_sensitive=False, help="Warn about or skip phase-inverted stereo."
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.PCM, "--format", case_sensitive=False, help="Output encoding."
    ),
    bitrate: int = typer.Option(256, "--bitrate", help="Lossy bitrate in kbps."),
    sample_rate: int = typer.Option(48_000, "--sample-rate", help="PCM output sample rate in Hz."),
    bit_depth: PcmBitDepth = typer.Option(PcmBitDepth.INT24, "--bit-depth", help="PCM sample format."),
    compression_level: int = typer.Option(5, "--compression-level", help="Opus/FLAC effort, 0 to 10."),
    no_transcode: bool = typer.Option(False, "--no-transcode", help="Copy the audio stream unchanged."),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Concurrent files; defaults to CPUs - 1."),
    temp_dir: Path | None = typer.Option(None, "--temp-dir", help="Directory for intermediate artifacts."),
    show_status: bool = typer.Option(False, "--status", help="Print per-stage status lines to stderr."),
) -> None:
    """Process every supported audio file below a directory."""

    config = _build_config(
        config_path,
        eq_target,
        dynamics,
        loudness,
        standard,
        target_lufs,
        true_peak,
        speech,
        bypass,
        dynaudnorm,
        phase_check,
        output_format,
        bitrate,
        sample_rate,
        bit_depth,
        compression_level,
        no_transcode,
    )
    try:
        results, summary = run_batch_processing(
            input_dir,
            output_dir,
            config,
            workers=workers,
            status_log=_status_log(show_status),
            temp_dir=temp_dir,
        )
    except ValueError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=2) from error
    _report(results, summary)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
