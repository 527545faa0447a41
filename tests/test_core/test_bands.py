"""Tests for the band table and band mapper."""

import math

import numpy as np
import pytest

from bandstat.core.bands import BandMapper
from bandstat.core.models import BAND_NAMES, BAND_TABLE


class TestBandTable:
    def test_fourteen_contiguous_bands(self):
        assert len(BAND_TABLE) == 14
        assert BAND_TABLE[0].low_hz == 0.0
        for lower, upper in zip(BAND_TABLE, BAND_TABLE[1:]):
            assert lower.high_hz == upper.low_hz

    def test_names_in_order(self):
        assert BAND_NAMES == (
            "DC", "SUB1", "SUB2", "BASS", "UBAS", "LMID", "MID",
            "UMID", "HMID", "PRES", "BRIL", "HIGH", "UHIG", "AIR",
        )

    def test_air_extends_to_nyquist(self):
        air = BAND_TABLE[-1]
        assert math.isinf(air.high_hz)
        assert air.upper_edge(48000) == 24000.0
        assert air.label(44100) == "18000-22050 Hz"

    def test_band_above_nyquist_label(self):
        assert BAND_TABLE[-1].label(16000) == "above Nyquist"


class TestBandMapper:
    @pytest.fixture
    def mapper(self):
        return BandMapper(48000, 8192)

    def test_every_bin_assigned_once(self, mapper):
        assert mapper.bins_per_band().sum() == mapper.bin_count == 4096

    def test_dc_bin(self, mapper):
        assert mapper.band_of_bin(0).name == "DC"

    def test_last_bin_is_air(self, mapper):
        assert mapper.band_of_bin(mapper.bin_count - 1).name == "AIR"

    def test_straddling_bin_goes_to_higher_band(self, mapper):
        # Bin 170 spans 996.1-1002.0 Hz and contains the 1 kHz boundary.
        assert mapper.band_of_bin(169).name == "MID"
        assert mapper.band_of_bin(170).name == "UMID"

    def test_bin_on_boundary_goes_to_higher_band(self, mapper):
        # 6000 / (48000 / 8192) == 1024 exactly.
        assert mapper.band_of_bin(1023).name == "PRES"
        assert mapper.band_of_bin(1024).name == "BRIL"

    @pytest.mark.parametrize(
        "frequency, band",
        [(10.0, "DC"), (100.0, "BASS"), (440.0, "LMID"), (3000.0, "HMID"),
         (5000.0, "PRES"), (12000.0, "HIGH"), (20000.0, "AIR")],
    )
    def test_band_of_frequency(self, mapper, frequency, band):
        assert mapper.band_of_frequency(frequency).name == band

    def test_bands_above_nyquist_get_no_bins(self):
        mapper = BandMapper(16000, 8192)
        counts = dict(zip(BAND_NAMES, mapper.bins_per_band()))
        assert counts["BRIL"] > 0
        assert counts["HIGH"] == counts["UHIG"] == counts["AIR"] == 0
        assert mapper.band_of_bin(mapper.bin_count - 1).name == "BRIL"

    def test_accumulate_counts_bins(self, mapper):
        spectra = [np.ones(mapper.bin_count) for _ in range(3)]
        acc = mapper.accumulate(spectra)
        np.testing.assert_array_equal(acc.energies, 3 * mapper.bins_per_band())
        assert acc.total == pytest.approx(3 * mapper.bin_count)
        assert acc.frame_count == 3

    def test_accumulate_extends_existing(self, mapper):
        acc = mapper.accumulate([np.ones(mapper.bin_count)])
        mapper.accumulate([np.ones(mapper.bin_count)], accumulator=acc)
        assert acc.frame_count == 2

    def test_frame_band_energies_shape(self, mapper):
        block = np.ones((4, mapper.bin_count))
        energies = mapper.frame_band_energies([block, block[:1]])
        assert energies.shape == (5, 14)

    def test_frame_band_energies_empty(self, mapper):
        assert mapper.frame_band_energies([]).shape == (0, 14)
