"""Tests for the K-weighting filter design and application."""

import numpy as np
import pytest

from bandstat.core.kweighting import (
    design_k_weighting,
    is_validated_rate,
    k_weight,
)
from bandstat.utils.errors import UnsupportedInputError


def response_db(sample_rate: int, frequency: float) -> float:
    """Magnitude response of the cascaded stages at one frequency."""
    z_inv = np.exp(-2j * np.pi * frequency / sample_rate)
    gain = 1.0
    for stage in (design_k_weighting(sample_rate).shelf, design_k_weighting(sample_rate).highpass):
        b, a = stage.b, stage.a
        gain *= (b[0] + b[1] * z_inv + b[2] * z_inv ** 2) / (a[0] + a[1] * z_inv + a[2] * z_inv ** 2)
    return 20.0 * np.log10(abs(gain))


class TestCoefficients:
    def test_shelf_matches_bs1770_table_at_48k(self):
        shelf = design_k_weighting(48000).shelf
        assert shelf.b == pytest.approx(
            (1.53512485958697, -2.69169618940638, 1.19839281085285), abs=1e-6
        )
        assert shelf.a == pytest.approx((1.0, -1.69065929318241, 0.73248077421585), abs=1e-6)

    def test_highpass_matches_bs1770_table_at_48k(self):
        highpass = design_k_weighting(48000).highpass
        assert highpass.b == (1.0, -2.0, 1.0)
        assert highpass.a == pytest.approx((1.0, -1.99004745483398, 0.99007225036621), abs=1e-6)

    def test_shelf_matches_reference_at_44k1(self):
        shelf = design_k_weighting(44100).shelf
        assert shelf.b == pytest.approx(
            (1.5308412300503478, -2.6509799951547297, 1.1690790799215869), rel=1e-9
        )
        assert shelf.a == pytest.approx(
            (1.0, -1.6636551132560204, 0.7125954280732254), rel=1e-9
        )

    def test_sos_stacks_both_stages(self):
        sos = design_k_weighting(44100).sos()
        assert sos.shape == (2, 6)
        assert sos[0, 3] == 1.0 and sos[1, 3] == 1.0

    def test_rejects_rate_below_shelf_nyquist(self):
        with pytest.raises(UnsupportedInputError):
            design_k_weighting(3000)


class TestResponse:
    @pytest.mark.parametrize("sample_rate", [44100, 48000, 96000])
    def test_near_unity_at_1khz(self, sample_rate):
        assert 0.4 < response_db(sample_rate, 1000.0) < 1.0

    @pytest.mark.parametrize("sample_rate", [44100, 48000])
    def test_high_shelf_boost(self, sample_rate):
        assert 3.0 < response_db(sample_rate, 10000.0) < 4.5

    def test_low_frequencies_attenuated(self):
        assert response_db(48000, 20.0) < -10.0
        assert response_db(48000, 100.0) < response_db(48000, 1000.0)

    def test_rates_agree_at_1khz(self):
        assert response_db(44100, 1000.0) == pytest.approx(response_db(48000, 1000.0), abs=0.05)


class TestValidatedRates:
    def test_standard_rates(self):
        assert is_validated_rate(44100)
        assert is_validated_rate(48000)

    def test_other_rates(self):
        assert not is_validated_rate(32000)
        assert not is_validated_rate(96000)


class TestKWeight:
    def test_preserves_length(self, sine_wave):
        signal = sine_wave(1000.0, duration=0.5)
        assert k_weight(signal, 48000).shape == signal.shape

    def test_silence_stays_silent(self):
        assert not np.any(k_weight(np.zeros(4800), 48000))

    def test_calls_are_independent(self, sine_wave):
        signal = sine_wave(3000.0, duration=0.5)
        first = k_weight(signal, 48000)
        k_weight(np.ones(1000), 48000)
        second = k_weight(signal, 48000)
        np.testing.assert_array_equal(first, second)

    def test_boosts_presence_tone(self, sine_wave):
        signal = sine_wave(5000.0, duration=1.0)
        filtered = k_weight(signal, 48000)
        settled = slice(4800, None)
        gain_db = 20 * np.log10(np.std(filtered[settled]) / np.std(signal[settled]))
        assert gain_db == pytest.approx(response_db(48000, 5000.0), abs=0.1)
