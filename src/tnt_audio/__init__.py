"""Public package exports for tnt-audio with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "AudioStatistics",
    "parse_astats_output",
    "compute_dynamics_score",
    "resolve_modifiers",
    "build_eq_plan",
    "render_eq_filter",
    "derive_single_band",
    "derive_multiband",
    "derive_dynaudnorm",
    "LoudnessTarget",
    "ProcessingRequest",
    "RunResult",
    "ProcessFile",
    "BatchRunner",
    "WatchQueue",
    "ProcessingConfig",
    "load_processing_config",
]

_EXPORT_MODULES: dict[str, str] = {
    "AudioStatistics": "tnt_audio.statistics",
    "parse_astats_output": "tnt_audio.statistics",
    "compute_dynamics_score": "tnt_audio.dynamics_score",
    "resolve_modifiers": "tnt_audio.dynamics_score",
    "build_eq_plan": "tnt_audio.eq_curve",
    "render_eq_filter": "tnt_audio.eq_curve",
    "derive_single_band": "tnt_audio.compression",
    "derive_multiband": "tnt_audio.multiband",
    "derive_dynaudnorm": "tnt_audio.dynamic_normalization",
    "LoudnessTarget": "tnt_audio.domain.policies",
    "ProcessingRequest": "tnt_audio.domain.models",
    "RunResult": "tnt_audio.domain.models",
    "ProcessFile": "tnt_audio.application.pipeline_service",
    "BatchRunner": "tnt_audio.application.worker_pool",
    "WatchQueue": "tnt_audio.application.worker_pool",
    "ProcessingConfig": "tnt_audio.utils.config",
    "load_processing_config": "tnt_audio.utils.config",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'tnt_audio' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
