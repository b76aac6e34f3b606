from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest

from tnt_audio.infrastructure.engine_runner import EngineResult

ASTATS_STEREO_OUTPUT = """\
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Channel: 1
[Parsed_astats_0 @ 0x55d1c3a4f2c0] DC offset: 0.000012
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Min level: -0.891362
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Max level: 0.902115
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Peak level dB: -0.895000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS level dB: -18.412000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS peak dB: -9.871000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS trough dB: -61.202000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Crest factor: 7.509000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Flat factor: 0.000000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Dynamic range: 84.120000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Noise floor dB: -72.330000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Channel: 2
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Peak level dB: -0.887000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS level dB: -18.101000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS peak dB: -9.640000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Crest factor: 9.100000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Dynamic range: 80.000000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Overall
[Parsed_astats_0 @ 0x55d1c3a4f2c0] DC offset: 0.000010
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Peak level dB: -0.887000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS level dB: -18.250000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS peak dB: -9.640000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] RMS trough dB: -60.900000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Flat factor: 0.000000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Noise floor dB: -71.800000
[Parsed_astats_0 @ 0x55d1c3a4f2c0] Number of samples: 2646000
"""

ASTATS_MONO_OUTPUT = """\
[Parsed_astats_0 @ 0x5611] Channel: 1
[Parsed_astats_0 @ 0x5611] Min level: -0.706000
[Parsed_astats_0 @ 0x5611] Max level: 0.707000
[Parsed_astats_0 @ 0x5611] Peak level dB: -3.010000
[Parsed_astats_0 @ 0x5611] RMS level dB: -20.000000
[Parsed_astats_0 @ 0x5611] RMS peak dB: -12.000000
[Parsed_astats_0 @ 0x5611] RMS trough dB: -55.000000
[Parsed_astats_0 @ 0x5611] Crest factor: 6.000000
[Parsed_astats_0 @ 0x5611] Dynamic range: 70.500000
[Parsed_astats_0 @ 0x5611] Noise floor dB: -66.000000
[Parsed_astats_0 @ 0x5611] Overall
[Parsed_astats_0 @ 0x5611] Peak level dB: -3.010000
[Parsed_astats_0 @ 0x5611] RMS level dB: -20.000000
[Parsed_astats_0 @ 0x5611] RMS peak dB: -12.000000
[Parsed_astats_0 @ 0x5611] RMS trough dB: -55.000000
[Parsed_astats_0 @ 0x5611] Noise floor dB: -66.000000
"""

PHASE_NORMAL_OUTPUT = """\
[Parsed_astats_0 @ 0x55e2] Channel: 1
[Parsed_astats_0 @ 0x55e2] Min level: -0.812000
[Parsed_astats_0 @ 0x55e2] Max level: 0.905000
[Parsed_astats_0 @ 0x55e2] Peak level dB: -0.866000
[Parsed_astats_0 @ 0x55e2] Channel: 2
[Parsed_astats_0 @ 0x55e2] Min level: -0.744000
[Parsed_astats_0 @ 0x55e2] Max level: 0.861000
[Parsed_astats_0 @ 0x55e2] Peak level dB: -1.300000
[Parsed_astats_0 @ 0x55e2] Overall
[Parsed_astats_0 @ 0x55e2] Min level: -0.812000
[Parsed_astats_0 @ 0x55e2] Max level: 0.905000
[Parsed_astats_0 @ 0x55e2] Peak level dB: -0.866000
[Parsed_astats_0 @ 0x55e2] RMS level dB: -19.000000
[Parsed_astats_0 @ 0x55e2] RMS peak dB: -10.000000
[Parsed_astats_0 @ 0x55e2] RMS trough dB: -60.000000
[Parsed_astats_0 @ 0x55e2] Noise floor dB: -70.000000
"""

# Channel 2 mirrors channel 1: its trough matches channel 1's crest and vice versa.
PHASE_INVERTED_OUTPUT = PHASE_NORMAL_OUTPUT.replace("Min level: -0.744000", "Min level: -0.905000").replace(
    "Max level: 0.861000", "Max level: 0.812000"
)

LOUDNORM_OUTPUT = """\
[Parsed_loudnorm_0 @ 0x55f0a8e3c100]
{
\t"input_i" : "-27.61",
\t"input_tp" : "-4.47",
\t"input_lra" : "18.06",
\t"input_thresh" : "-39.20",
\t"output_i" : "-16.58",
\t"output_tp" : "-1.50",
\t"output_lra" : "14.78",
\t"output_thresh" : "-27.71",
\t"normalization_type" : "dynamic",
\t"target_offset" : "0.58"
}
"""

EBUR128_OUTPUT = """\
[Parsed_ebur128_0 @ 0x5599] t: 9.89998  TARGET:-23 LUFS    M: -20.1 S: -19.8     I: -19.7 LUFS       LRA:   5.9 LU
[Parsed_ebur128_0 @ 0x5599] Summary:

  Integrated loudness:
    I:         -19.5 LUFS
    Threshold: -29.8 LUFS

  Loudness range:
    LRA:         6.2 LU
    Threshold: -39.9 LUFS
    LRA low:   -24.1 LUFS
    LRA high:  -17.9 LUFS

  True peak:
    Peak:       -0.6 dBFS
"""


@pytest.fixture
def astats_output() -> str:
    return ASTATS_STEREO_OUTPUT


@pytest.fixture
def astats_mono_output() -> str:
    return ASTATS_MONO_OUTPUT


@pytest.fixture
def phase_normal_output() -> str:
    return PHASE_NORMAL_OUTPUT


@pytest.fixture
def phase_inverted_output() -> str:
    return PHASE_INVERTED_OUTPUT


@pytest.fixture
def loudnorm_output() -> str:
    return LOUDNORM_OUTPUT


@pytest.fixture
def ebur128_output() -> str:
    return EBUR128_OUTPUT


def audio_filter_of(args: Sequence[str]) -> str:
    return args[list(args).index("-af") + 1] if "-af" in args else ""


class FakeRunner:
    """Engine stand-in: canned measurement output, touches render outputs on disk."""

    def __init__(
        self,
        astats: str = ASTATS_STEREO_OUTPUT,
        fail_on: Callable[[list[str]], bool] | None = None,
    ) -> None:
        self.astats = astats
        self.fail_on = fail_on
        self.calls: list[list[str]] = []

    @property
    def renders(self) -> list[list[str]]:
        return [call for call in self.calls if call[-1] != "-"]

    def run(self, args: Sequence[str]) -> EngineResult:
        call = list(args)
        self.calls.append(call)
        is_measurement = call[-1] == "-"
        if not is_measurement:
            Path(call[-1]).write_bytes(b"RIFF")
        if self.fail_on is not None and self.fail_on(call):
            return EngineResult(args=tuple(call), returncode=1, output="Error while filtering")
        if not is_measurement:
            return EngineResult(args=tuple(call), returncode=0, output="")

        audio_filter = audio_filter_of(call)
        if audio_filter.startswith("loudnorm"):
            output = LOUDNORM_OUTPUT
        elif audio_filter.startswith("ebur128"):
            output = EBUR128_OUTPUT
        else:
            output = self.astats
        return EngineResult(args=tuple(call), returncode=0, output=output)


class RecordingPublisher:
    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def input_file(tmp_path: Path) -> Path:
    path = tmp_path / "input" / "episode.wav"
    path.parent.mkdir()
    path.write_bytes(b"RIFF")
    return path
