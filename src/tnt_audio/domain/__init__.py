"""DDD domain layer."""

from .errors import (
    AnalysisFailure,
    ConfigurationAmbiguity,
    EncodeFailure,
    PipelineError,
    StageApplicationFailure,
)
from .events import (
    DomainEvent,
    RunFailed,
    RunStarted,
    RunSucceeded,
    StageCompleted,
    StageSkipped,
    StageStarted,
)
from .models import PipelineRun, ProcessingRequest, RunResult, RunStatus, Stage, StageRecord
from .policies import DEFAULT_LOUDNESS_TARGET, LOUDNESS_STANDARDS, LoudnessTarget, resolve_loudness_target

__all__ = [
    "PipelineError",
    "AnalysisFailure",
    "StageApplicationFailure",
    "EncodeFailure",
    "ConfigurationAmbiguity",
    "DomainEvent",
    "RunStarted",
    "StageStarted",
    "StageCompleted",
    "StageSkipped",
    "RunSucceeded",
    "RunFailed",
    "ProcessingRequest",
    "PipelineRun",
    "RunResult",
    "RunStatus",
    "Stage",
    "StageRecord",
    "LoudnessTarget",
    "LOUDNESS_STANDARDS",
    "DEFAULT_LOUDNESS_TARGET",
    "resolve_loudness_target",
]
