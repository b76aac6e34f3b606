"""Worker pools that run independent pipeline runs concurrently."""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from typing import Callable, Sequence
from uuid import uuid4

from tnt_audio.application.pipeline_service import ProcessFile
from tnt_audio.domain.models import ProcessingRequest, RunResult, RunStatus

LOGGER = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.1


def default_worker_count() -> int:
    return max(1, (os.cpu_count() or 1) - 1)


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    total: int
    completed: int
    failed: int

    @property
    def pending(self) -> int:
        return self.total - self.completed


class ProgressCounter:
    """Lock-guarded batch progress shared by all workers."""

    def __init__(self, total: int = 0) -> None:
        self._lock = threading.Lock()
        self._total = total
        self._completed = 0
        self._failed = 0

    def add(self, count: int = 1) -> None:
        with self._lock:
            self._total += count

    def record(self, result: RunResult) -> ProgressSnapshot:
        with self._lock:
            self._completed += 1
            if not result.succeeded:
                self._failed += 1
            return ProgressSnapshot(self._total, self._completed, self._failed)

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(self._total, self._completed, self._failed)


def run_isolated(service: ProcessFile, request: ProcessingRequest) -> RunResult:
    """Run one request; anything unexpected still yields exactly one failed result."""

    correlation_id = str(uuid4())
    try:
        return service.run(request, correlation_id=correlation_id)
    except Exception as error:  # noqa: BLE001
        LOGGER.exception(
            "pipeline_run_crashed",
            extra={"correlation_id": correlation_id, "file": request.input_path.name},
        )
        return RunResult(
            input_path=request.input_path,
            status=RunStatus.FAILED,
            correlation_id=correlation_id,
            error={"code": "unexpected_error", "message": str(error), "stage": None},
        )


def assign_unique_outputs(requests: Sequence[ProcessingRequest]) -> list[ProcessingRequest]:
    """Give every request in a batch its own destination file.

    Requests whose derived output would land on another request's output or
    input get the source extension appended to the stem (``a_mp3.wav``), plus
    a counter if that name is taken as well.
    """

    destinations = [request.output_path.resolve() for request in requests]
    counts = Counter(destinations)
    inputs = {request.input_path.resolve() for request in requests}
    taken = {destination for destination in destinations if counts[destination] == 1} | inputs

    unique: list[ProcessingRequest] = []
    for request, destination in zip(requests, destinations):
        # Writing onto its own input is refused by the pipeline, not renamed.
        if destination == request.input_path.resolve() or (counts[destination] == 1 and destination not in inputs):
            unique.append(request)
            continue
        base_tag = "_" + request.input_path.suffix.lstrip(".").lower()
        candidate = replace(request, output_tag=base_tag)
        attempt = 1
        while candidate.output_path.resolve() in taken:
            attempt += 1
            candidate = replace(request, output_tag=f"{base_tag}_{attempt}")
        taken.add(candidate.output_path.resolve())
        LOGGER.warning(
            "output_name_disambiguated",
            extra={"file": request.input_path.name, "output": candidate.output_path.name},
        )
        unique.append(candidate)
    return unique


def summarize(results: Sequence[RunResult]) -> dict[str, int]:
    succeeded = sum(1 for result in results if result.succeeded)
    return {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded}


class BatchRunner:
    """Enqueue every request up front and drain the pool to completion."""

    def __init__(
        self,
        service: ProcessFile,
        workers: int | None = None,
        progress: ProgressCounter | None = None,
    ) -> None:
        self.service = service
        self.workers = max(1, workers) if workers is not None else default_worker_count()
        self.progress = progress or ProgressCounter()

    def run(self, requests: Sequence[ProcessingRequest]) -> tuple[list[RunResult], dict[str, int]]:
        requests = assign_unique_outputs(requests)
        self.progress.add(len(requests))
        indexed: list[tuple[int, RunResult]] = []
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                executor.submit(run_isolated, self.service, request): index
                for index, request in enumerate(requests)
            }
            for future in as_completed(futures):
                result = future.result()
                snapshot = self.progress.record(result)
                LOGGER.info(
                    "batch_progress",
                    extra={"completed": snapshot.completed, "total": snapshot.total, "failed": snapshot.failed},
                )
                indexed.append((futures[future], result))

        indexed.sort(key=lambda item: item[0])
        results = [result for _, result in indexed]
        return results, summarize(results)


class WatchQueue:
    """Accept requests one at a time and process them on background workers.

    ``stop()`` lets jobs already taken by a worker finish and drops the rest.
    """

    def __init__(
        self,
        service: ProcessFile,
        workers: int | None = None,
        on_result: Callable[[RunResult], None] | None = None,
        progress: ProgressCounter | None = None,
    ) -> None:
        self.service = service
        self.workers = max(1, workers) if workers is not None else default_worker_count()
        self.on_result = on_result
        self.progress = progress or ProgressCounter()
        self._jobs: queue.Queue[ProcessingRequest] = queue.Queue()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._results: list[RunResult] = []
        self._results_lock = threading.Lock()

    @property
    def results(self) -> tuple[RunResult, ...]:
        with self._results_lock:
            return tuple(self._results)

    @property
    def running(self) -> bool:
        return bool(self._threads) and not self._stop.is_set()

    def start(self) -> WatchQueue:
        if self._threads:
            return self
        self._stop.clear()
        for index in range(self.workers):
            thread = threading.Thread(target=self._work, name=f"tnt-audio-worker-{index}", daemon=True)
            thread.start()
            self._threads.append(thread)
        return self

    def submit(self, request: ProcessingRequest) -> None:
        if self._stop.is_set():
            raise RuntimeError("Watch queue is stopped; no new jobs are accepted.")
        self.progress.add()
        self._jobs.put(request)
        LOGGER.info("watch_job_queued", extra={"file": request.input_path.name})

    def wait_idle(self) -> None:
        """Block until every queued job has been processed or dropped."""

        self._jobs.join()

    def stop(self, wait: bool = True) -> int:
        """Stop accepting work, drop queued jobs and return how many were dropped."""

        self._stop.set()
        dropped = 0
        while True:
            try:
                request = self._jobs.get_nowait()
            except queue.Empty:
                break
            dropped += 1
            LOGGER.info("watch_job_dropped", extra={"file": request.input_path.name})
            self._jobs.task_done()
        if wait:
            for thread in self._threads:
                thread.join()
            self._threads = []
        return dropped

    def _work(self) -> None:
        while not self._stop.is_set():
            try:
                request = self._jobs.get(timeout=POLL_INTERVAL_S)
            except queue.Empty:
                continue
            if self._stop.is_set():
                # Taken off the queue after stop(); never started.
                LOGGER.info("watch_job_dropped", extra={"file": request.input_path.name})
                self._jobs.task_done()
                continue
            try:
                result = run_isolated(self.service, request)
                self.progress.record(result)
                with self._results_lock:
                    self._results.append(result)
                if self.on_result is not None:
                    try:
                        self.on_result(result)
                    except Exception:  # noqa: BLE001
                        LOGGER.exception(
                            "watch_result_callback_failed",
                            extra={"correlation_id": result.correlation_id, "file": request.input_path.name},
                        )
            finally:
                self._jobs.task_done()

    def __enter__(self) -> WatchQueue:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
