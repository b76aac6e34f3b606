from __future__ import annotations

from pathlib import Path

import pytest

from tnt_audio.analysis import measure_crossover_bands, measure_eq_bands, measure_statistics
from tnt_audio.domain.errors import AnalysisFailure


def test_measure_eq_bands_measures_all_ten_bands(fake_runner, input_file: Path) -> None:
    bands = measure_eq_bands(fake_runner, input_file)

    assert [band.label for band in bands][:2] == ["50Hz", "100Hz"]
    assert len(bands) == 10
    assert len(fake_runner.calls) == 10
    assert all(band.rms_level == pytest.approx(-18.25) for band in bands)
    assert all(call[-1] == "-" for call in fake_runner.calls)


def test_measure_crossover_bands_appends_astats(fake_runner, input_file: Path) -> None:
    bands = measure_crossover_bands(fake_runner, input_file)

    assert len(bands) == 5
    filters = [call[call.index("-af") + 1] for call in fake_runner.calls]
    assert all(audio_filter.endswith(",astats") for audio_filter in filters)


def test_any_failed_band_aborts_measurement(make_runner, input_file: Path) -> None:
    runner = make_runner(fail_on=lambda call: len(call) > 3 and "800" in call[3])

    with pytest.raises(AnalysisFailure) as exc_info:
        measure_eq_bands(runner, input_file)

    assert exc_info.value.code == "measurement_failed"
    assert len(runner.calls) == 5


def test_measure_statistics_parses_overall_section(fake_runner, input_file: Path) -> None:
    stats = measure_statistics(fake_runner, input_file)

    assert stats.peak_level == pytest.approx(-0.887)
    assert stats.rms_level == pytest.approx(-18.25)
    assert fake_runner.calls == [["-i", str(input_file), "-af", "astats", "-f", "null", "-"]]
