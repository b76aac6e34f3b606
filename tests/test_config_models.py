from pathlib import Path
import json

import pytest

from tnt_audio.options import DynamicsPreset, EqTarget, LoudnessStandard, OutputFormat, PcmBitDepth, PhaseCheckMode
from tnt_audio.utils.config import ProcessingConfig, load_processing_config


def test_processing_config_parses_case_insensitive_options():
    config = ProcessingConfig.model_validate(
        {
            "eq_target": "Speech",
            "dynamics_preset": "BROADCAST",
            "loudness": {"mode": "Normalize", "standard": "ATSC-A85"},
            "encode": {"output_format": "Opus", "bitrate_kbps": 96, "bit_depth": 16},
        }
    )

    assert config.eq_target is EqTarget.SPEECH
    assert config.dynamics_preset is DynamicsPreset.BROADCAST
    assert config.loudness.standard is LoudnessStandard.ATSC_A85
    assert config.encode.output_format is OutputFormat.OPUS
    assert config.encode.bit_depth is PcmBitDepth.INT16


def test_processing_config_rejects_unknown_preset():
    with pytest.raises(ValueError) as exc_info:
        ProcessingConfig.model_validate({"eq_target": "loudness-war"})

    assert "Allowed values: off, flat, speech, broadcast" in str(exc_info.value)


def test_processing_config_rejects_stream_copy_with_processing():
    with pytest.raises(ValueError):
        ProcessingConfig.model_validate({"eq_target": "flat", "encode": {"no_transcode": True}})

    with pytest.raises(ValueError):
        ProcessingConfig.model_validate({"loudness": {"mode": "normalize"}, "encode": {"no_transcode": True}})


def test_processing_config_rejects_out_of_range_compression_level():
    with pytest.raises(ValueError):
        ProcessingConfig.model_validate({"encode": {"compression_level": 11}})


def test_to_request_resolves_custom_loudness(tmp_path: Path):
    config = ProcessingConfig.model_validate(
        {
            "speech": True,
            "loudness": {"mode": "tag", "standard": "custom", "integrated_lufs": 16, "true_peak_db": 1},
        }
    )

    request = config.to_request(tmp_path / "a.wav", tmp_path / "out", input_root=tmp_path)

    assert request.write_tags
    assert not request.use_loudnorm
    assert request.is_speech
    assert request.loudness_target == -16.0
    assert request.true_peak_limit == -1.0
    assert request.loudness_standard is LoudnessStandard.CUSTOM
    assert request.input_root == tmp_path


def test_to_request_uses_named_standard_levels(tmp_path: Path):
    config = ProcessingConfig.model_validate({"loudness": {"mode": "normalize", "standard": "atsc-a85"}})

    request = config.to_request(tmp_path / "a.wav", tmp_path)

    assert request.use_loudnorm
    assert (request.loudness.integrated_lufs, request.loudness.true_peak_db) == (-24.0, -2.0)


def test_load_processing_config_from_json(tmp_path: Path):
    path = tmp_path / "job.json"
    path.write_text(json.dumps({"dynamics_preset": "light", "dynamic_normalization": True}))

    config = load_processing_config(path)

    assert config.dynamics_preset is DynamicsPreset.LIGHT
    assert config.dynamic_normalization


def test_load_processing_config_from_yaml(tmp_path: Path):
    path = tmp_path / "job.yaml"
    path.write_text("eq_target: broadcast\nencode:\n  output_format: flac\n  compression_level: 8\n")

    config = load_processing_config(path)

    assert config.eq_target is EqTarget.BROADCAST
    assert config.encode.output_format is OutputFormat.FLAC
    assert config.encode.compression_level == 8


def test_phase_check_defaults_off_and_reaches_the_request(tmp_path: Path):
    assert ProcessingConfig().phase_check is PhaseCheckMode.OFF

    config = ProcessingConfig.model_validate({"phase_check": "Skip"})
    request = config.to_request(tmp_path / "a.wav", tmp_path / "out")

    assert request.phase_check is PhaseCheckMode.SKIP
    assert request.summary()["phase_check"] == "skip"


def test_processing_config_rejects_unknown_phase_check():
    with pytest.raises(ValueError) as exc_info:
        ProcessingConfig.model_validate({"phase_check": "flip"})

    assert "Allowed values: off, warn, skip" in str(exc_info.value)
