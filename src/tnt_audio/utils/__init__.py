from .config import (
    EncodeConfig,
    LoudnessConfig,
    ProcessingConfig,
    load_processing_config,
)

__all__ = [
    "EncodeConfig",
    "LoudnessConfig",
    "ProcessingConfig",
    "load_processing_config",
]
