import math

import pytest

from tubesync.biquad import SAMPLE_RATE, AudioFilter, BiquadBandpass


def test_coefficients_are_antisymmetric():
    bp = BiquadBandpass(10, 200, SAMPLE_RATE)
    assert bp.b1 == 0
    assert bp.b2 == pytest.approx(-bp.b0)
    assert bp.b0 > 0


def test_silence_stays_silent():
    bp = BiquadBandpass(100, 1000, SAMPLE_RATE)
    assert [bp.process(0.0) for _ in range(50)] == [0.0] * 50


def test_impulse_response_starts_with_b0():
    bp = BiquadBandpass(100, 1000, SAMPLE_RATE)
    first = bp.process(1.0)
    assert first == pytest.approx(bp.b0)


def test_dc_is_rejected():
    bp = BiquadBandpass(10, 200, SAMPLE_RATE)
    outputs = [bp.process(1.0) for _ in range(5000)]
    assert abs(outputs[-1]) < 1e-3


def test_passband_stronger_than_stopband():
    def peak(freq):
        bp = BiquadBandpass(100, 400, SAMPLE_RATE)
        out = [
            bp.process(math.sin(2 * math.pi * freq * n / SAMPLE_RATE))
            for n in range(SAMPLE_RATE // 4)
        ]
        return max(abs(v) for v in out[len(out) // 2 :])

    assert peak(200) > 5 * peak(10000)


def test_equal_cutoffs_rejected():
    with pytest.raises(ValueError):
        BiquadBandpass(100, 100, SAMPLE_RATE)


def test_audio_filter_defaults():
    flt = AudioFilter()
    assert flt.lower == 10
    assert flt.upper == 200


def test_audio_filter_matches_biquad():
    samples = [math.sin(n * 0.01) for n in range(200)]
    flt = AudioFilter(30, 300)
    bp = BiquadBandpass(30, 300, SAMPLE_RATE)
    expected = [bp.process(s) for s in samples]
    assert flt.process(samples) == pytest.approx(expected)


def test_audio_filter_keeps_state_between_blocks():
    samples = [math.sin(n * 0.02) for n in range(100)]
    whole = AudioFilter().process(samples)
    split = AudioFilter()
    parts = split.process(samples[:40]) + split.process(samples[40:])
    assert parts == pytest.approx(whole)


def test_setting_bounds_rebuilds_filter():
    samples = [math.cos(n * 0.05) for n in range(100)]
    flt = AudioFilter()
    flt.process(samples)
    flt.lower = 50
    flt.upper = 500
    assert (flt.lower, flt.upper) == (50, 500)
    assert flt.process(samples) == pytest.approx(AudioFilter(50, 500).process(samples))


def test_bounds_truncate_to_int():
    flt = AudioFilter()
    flt.upper = 350.9
    assert flt.upper == 350