"""CLI-facing handlers that delegate to application services."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from tnt_audio.application.event_publisher import CompositeEventPublisher, EventPublisher
from tnt_audio.application.pipeline_service import ProcessFile
from tnt_audio.application.worker_pool import BatchRunner
from tnt_audio.audio_contract import is_audio_file
from tnt_audio.domain.models import RunResult
from tnt_audio.infrastructure.engine_runner import EngineRunner, FfmpegRunner
from tnt_audio.infrastructure.logging_event_publisher import LoggingEventPublisher
from tnt_audio.infrastructure.status_log import StatusLog
from tnt_audio.utils.config import ProcessingConfig

engine_runner: EngineRunner = FfmpegRunner()
_event_publisher = LoggingEventPublisher()


def discover_audio_files(input_dir: Path) -> list[Path]:
    """Recursively collect accepted audio files below ``input_dir`` in path order."""

    if not input_dir.is_dir():
        raise ValueError(f"Input directory not found: {input_dir}")
    return sorted(path for path in input_dir.rglob("*") if path.is_file() and is_audio_file(path))


def build_service(status_log: StatusLog | None = None, temp_dir: Path | None = None) -> ProcessFile:
    publishers: list[EventPublisher] = [_event_publisher]
    if status_log is not None:
        publishers.append(status_log)
    return ProcessFile(
        runner=engine_runner,
        event_publisher=CompositeEventPublisher(publishers),
        temp_dir=temp_dir,
    )


def result_to_dict(index: int, result: RunResult) -> dict[str, str]:
    item = {
        "index": str(index),
        "input": str(result.input_path),
        "status": result.status.value,
        "correlation_id": result.correlation_id,
    }
    if result.output_path is not None:
        item["output"] = str(result.output_path)
    if result.error is not None:
        item["error"] = str(result.error.get("message") or "")
        item["stage"] = str(result.error.get("stage") or "")
    return item


def process_paths(
    paths: Sequence[Path],
    output_dir: Path,
    config: ProcessingConfig,
    workers: int | None = None,
    input_root: Path | None = None,
    status_log: StatusLog | None = None,
    temp_dir: Path | None = None,
) -> tuple[list[dict[str, str]], dict[str, int]]:
    if not paths:
        raise ValueError("No input files were provided.")

    output_dir.mkdir(parents=True, exist_ok=True)
    requests = [config.to_request(path, output_dir, input_root=input_root) for path in paths]
    runner = BatchRunner(build_service(status_log, temp_dir), workers=workers)
    results, summary = runner.run(requests)
    return [result_to_dict(index, result) for index, result in enumerate(results, start=1)], summary


def run_batch_processing(
    input_dir: Path,
    output_dir: Path,
    config: ProcessingConfig,
    workers: int | None = None,
    status_log: StatusLog | None = None,
    temp_dir: Path | None = None,
) -> tuple[list[dict[str, str]], dict[str, int]]:
    paths = discover_audio_files(input_dir)
    if not paths:
        raise ValueError(f"No supported audio files found in {input_dir}.")
    return process_paths(
        paths,
        output_dir,
        config,
        workers=workers,
        input_root=input_dir,
        status_log=status_log,
        temp_dir=temp_dir,
    )
