import numpy as np
import pytest

from tnt_audio.dynamics_score import DynamicsScore, resolve_modifiers
from tnt_audio.multiband import (
    CROSSOVER_BANDS,
    derive_band_spec,
    resolve_multiband_tuning,
    attenuation_gain_linear,
    derive_multiband,
    render_attenuation,
    render_multiband,
)
from tnt_audio.options import DynamicsPreset
from tnt_audio.statistics import FrequencyBandMeasurement


def _measurement(band, rms=-24.0, peak=-6.0):
    return FrequencyBandMeasurement(
        label=band.name,
        filter_kind=band.filter_kind,
        rms_level=rms,
        peak_level=peak,
        crest_factor=5.0,
    )


def test_attenuation_only_for_hot_peaks():
    assert attenuation_gain_linear(-6.0) is None
    assert attenuation_gain_linear(-5.0) is None

    gain = attenuation_gain_linear(-1.0)

    assert gain == pytest.approx(10 ** (-5.0 / 20.0))
    assert render_attenuation(gain) == "volume=0.562341"


def test_missing_bands_fall_back_to_fixed_thresholds():
    plan = derive_multiband({}, DynamicsPreset.BROADCAST)

    assert len(plan.band_specs) == 5
    sub, high = plan.band_specs[0], plan.band_specs[-1]
    assert sub.threshold_linear == pytest.approx(10 ** (-18.0 / 20.0))
    assert sub.ratio == pytest.approx(6.0)
    assert high.ratio == pytest.approx(12.0)
    assert high.attack_ms == pytest.approx(5.0)


def test_measured_band_threshold_sits_above_band_rms():
    measurements = {band.name: _measurement(band) for band in CROSSOVER_BANDS}

    plan = derive_multiband(measurements, DynamicsPreset.MODERATE)

    sub = plan.band_specs[0]
    assert sub.threshold_linear == pytest.approx(10 ** (-18.0 / 20.0))
    assert sub.ratio == pytest.approx(4.0)
    assert sub.limiter_ceiling_linear == pytest.approx(10 ** (-6.8 / 20.0))


def test_precompressed_material_chases_band_peaks():
    measurements = {band.name: _measurement(band, peak=-3.0) for band in CROSSOVER_BANDS}

    plan = derive_multiband(measurements, DynamicsPreset.BROADCAST, DynamicsScore(4.0))

    for spec in plan.band_specs:
        assert spec.threshold_linear == pytest.approx(10 ** (-4.0 / 20.0))
        assert spec.makeup_linear == 1.0
        assert spec.limiter_ceiling_linear == pytest.approx(1.0)
        assert spec.limiter_attack_ms == pytest.approx(80.0)
        assert spec.limiter_release_ms == pytest.approx(2000.0)


def test_highly_dynamic_material_uses_tighter_threshold_offset():
    measurements = {band.name: _measurement(band) for band in CROSSOVER_BANDS}

    plan = derive_multiband(measurements, DynamicsPreset.LIGHT, DynamicsScore(100.0))

    assert plan.band_specs[0].threshold_linear == pytest.approx(10 ** (-21.0 / 20.0))
    assert all(spec.ratio <= 20.0 for spec in plan.band_specs)


def test_render_multiband_graph_shape():
    rendered = render_multiband(derive_multiband({}, DynamicsPreset.BROADCAST))

    assert rendered.startswith(
        "aresample=192000,acrossover=split=80 250 1000 4000:order=4th:precision=double[SUB][LOW][LMID][HMID][HI];"
    )
    assert "[SUB]acompressor=" in rendered
    assert "[hi_out];" in rendered
    assert rendered.endswith(
        "[sub_out][low_out][lmid_out][hmid_out][hi_out]amix=inputs=5:normalize=0,alimiter=limit=0.9886:level=false"
    )
    assert rendered.count("acompressor=") == 5
    assert rendered.count(":level=false") == 6


@pytest.mark.parametrize("preset", [DynamicsPreset.LIGHT, DynamicsPreset.MODERATE, DynamicsPreset.BROADCAST])
def test_band_specs_stay_in_engine_ranges_for_any_measurement(preset):
    rng = np.random.default_rng(20240614)
    tuning = resolve_multiband_tuning(preset)

    for _ in range(300):
        modifiers = resolve_modifiers(float(rng.uniform(0.0, 500.0)))
        for band in CROSSOVER_BANDS:
            rms, peak = rng.uniform(-250.0, 60.0, size=2)
            measurement = None if rng.random() < 0.1 else _measurement(band, rms=float(rms), peak=float(peak))

            spec = derive_band_spec(band, measurement, tuning, modifiers)

            assert 0.00097563 <= spec.threshold_linear <= 1.0
            assert 1.0 <= spec.ratio <= 20.0
            assert 0.01 <= spec.attack_ms <= 2000.0
            assert 0.01 <= spec.release_ms <= 9000.0
            assert 1.0 <= spec.makeup_linear <= 64.0
            assert 0.0 <= spec.limiter_ceiling_linear <= 1.0
