"""Failure taxonomy for pipeline runs."""

from __future__ import annotations


class PipelineError(Exception):
    """Base failure carrying a stable code and a human-readable message."""

    def __init__(self, code: str, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.stage = stage

    def as_dict(self) -> dict[str, str | None]:
        return {"code": self.code, "message": self.message, "stage": self.stage}


class AnalysisFailure(PipelineError):
    """A measurement invocation failed or its output lacked required fields."""


class StageApplicationFailure(PipelineError):
    """A transformation invocation failed while rendering an intermediate artifact."""


class EncodeFailure(PipelineError):
    """The final render invocation failed."""


class ConfigurationAmbiguity(PipelineError, ValueError):
    """The caller requested mutually exclusive intents."""
