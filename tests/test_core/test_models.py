"""Tests for core data models, the normalizer and the channel reducer."""

import json

import numpy as np
import pytest

from bandstat.core.distribution import normalize, to_percentages
from bandstat.core.models import (
    NUM_BANDS,
    AnalysisResult,
    BandDistribution,
    BandPowerAccumulator,
    DynamicsProfile,
    SampleStream,
)
from bandstat.core.reducer import downmix
from bandstat.utils.errors import InvalidConfigurationError, UnsupportedInputError


class TestSampleStream:
    def test_samples_are_read_only_copy(self):
        source = np.zeros((10, 2))
        stream = SampleStream(source, 48000, 2)
        source[0, 0] = 1.0
        assert stream.samples[0, 0] == 0.0
        with pytest.raises(ValueError):
            stream.samples[0, 0] = 1.0

    def test_float64_precision_kept(self):
        stream = SampleStream(np.full((4, 1), 0.1), 48000, 1)
        assert stream.samples.dtype == np.float64
        assert stream.samples[0, 0] == 0.1

    @pytest.mark.parametrize("dtype", [np.float32, np.int16])
    def test_other_dtypes_stored_as_float32(self, dtype):
        stream = SampleStream(np.ones((4, 1), dtype=dtype), 48000, 1)
        assert stream.samples.dtype == np.float32

    def test_from_channels_first(self):
        audio = np.zeros((2, 480))
        stream = SampleStream.from_channels_first(audio, 48000)
        assert stream.channels == 2
        assert stream.frame_count == 480
        assert stream.duration == pytest.approx(0.01)

    def test_from_mono(self):
        stream = SampleStream.from_mono(np.zeros(100), 44100, name="x")
        assert stream.samples.shape == (100, 1)
        assert stream.name == "x"


class TestAccumulator:
    def test_add_and_merge(self):
        a = BandPowerAccumulator()
        a.add(np.ones(NUM_BANDS))
        b = BandPowerAccumulator()
        b.add(np.full((2, NUM_BANDS), 2.0))
        merged = a.merge(b)
        assert merged.total == pytest.approx(5 * NUM_BANDS)
        assert merged.frame_count == 3
        assert a.total == pytest.approx(NUM_BANDS)

    def test_finalized_rejects_updates(self):
        acc = BandPowerAccumulator().finalize()
        with pytest.raises(InvalidConfigurationError):
            acc.add(np.ones(NUM_BANDS))

    def test_rejects_wrong_band_count(self):
        with pytest.raises(InvalidConfigurationError):
            BandPowerAccumulator().add(np.ones(3))

    def test_energies_view_is_read_only(self):
        acc = BandPowerAccumulator()
        with pytest.raises(ValueError):
            acc.energies[0] = 1.0


class TestNormalizer:
    def test_percentages(self):
        np.testing.assert_allclose(to_percentages([10, 20, 30, 40]), [10, 20, 30, 40])

    def test_zero_total_gives_zeros(self):
        np.testing.assert_array_equal(to_percentages(np.zeros(NUM_BANDS)), np.zeros(NUM_BANDS))

    def test_rows_normalized_independently(self):
        result = to_percentages(np.array([[1.0, 3.0], [0.0, 0.0]]))
        np.testing.assert_allclose(result, [[25.0, 75.0], [0.0, 0.0]])

    def test_normalize_finalizes_and_diffs(self):
        raw = BandPowerAccumulator()
        raw.add(np.arange(1, NUM_BANDS + 1, dtype=float))
        weighted = BandPowerAccumulator()
        weighted.add(np.ones(NUM_BANDS))
        distribution = normalize(raw, weighted)

        assert raw.finalized and weighted.finalized
        assert distribution.raw.sum() == pytest.approx(100.0)
        assert distribution.weighted.sum() == pytest.approx(100.0)
        np.testing.assert_allclose(distribution.diff, distribution.weighted - distribution.raw)

    def test_distribution_is_immutable(self):
        distribution = BandDistribution(np.zeros(NUM_BANDS), np.zeros(NUM_BANDS))
        with pytest.raises(ValueError):
            distribution.raw[0] = 1.0
        assert distribution.is_silent


class TestReducer:
    def test_downmix_averages_channels(self):
        samples = np.column_stack([np.ones(10), np.zeros(10)])
        mono = downmix(SampleStream(samples, 48000, 2))
        assert mono.dtype == np.float64
        np.testing.assert_allclose(mono, 0.5)

    def test_zero_frames(self):
        with pytest.raises(UnsupportedInputError):
            downmix(SampleStream(np.zeros((0, 2)), 48000, 2))

    def test_zero_channels(self):
        with pytest.raises(UnsupportedInputError):
            downmix(SampleStream(np.zeros((10, 0)), 48000, 0))

    def test_channel_mismatch(self):
        with pytest.raises(UnsupportedInputError):
            downmix(SampleStream(np.zeros((10, 2)), 48000, 3))

    def test_non_finite_samples(self):
        samples = np.zeros((10, 1))
        samples[3, 0] = np.nan
        with pytest.raises(UnsupportedInputError):
            downmix(SampleStream(samples, 48000, 1))

    def test_bad_sample_rate(self):
        with pytest.raises(UnsupportedInputError):
            downmix(SampleStream(np.zeros((10, 1)), 0, 1))


class TestAnalysisResult:
    def test_json_export(self):
        result = AnalysisResult(
            name="mix.wav",
            sample_rate=48000,
            channels=2,
            duration=1.0,
            distribution=BandDistribution(np.full(NUM_BANDS, 100 / NUM_BANDS),
                                          np.full(NUM_BANDS, 100 / NUM_BANDS)),
            dynamics=DynamicsProfile((None,) * (NUM_BANDS - 1) + (1.5,)),
        )
        data = json.loads(result.to_json())
        assert data["name"] == "mix.wav"
        assert data["dynamics"]["AIR"] == 1.5
        assert data["dynamics"]["DC"] is None
        assert data["bands"][-1]["high_hz"] == 24000.0
        assert set(data["distribution"]["BASS"]) == {"raw", "weighted", "diff"}
