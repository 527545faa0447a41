"""Tests for the comparator."""

import numpy as np
import pytest

from bandstat.core.comparator import DYNAMICS, RAW, WEIGHTED, ComparisonSet, compare
from bandstat.core.models import (
    NUM_BANDS,
    AnalysisResult,
    BandDistribution,
    DynamicsProfile,
)
from bandstat.utils.errors import InvalidConfigurationError


def make_result(name: str, seed: int, dynamics=None) -> AnalysisResult:
    rng = np.random.default_rng(seed)
    raw = rng.random(NUM_BANDS)
    weighted = rng.random(NUM_BANDS)
    return AnalysisResult(
        name=name,
        sample_rate=48000,
        channels=2,
        duration=10.0,
        distribution=BandDistribution(100 * raw / raw.sum(), 100 * weighted / weighted.sum()),
        dynamics=dynamics,
    )


class TestEntryCount:
    def test_one_entry_rejected(self):
        with pytest.raises(InvalidConfigurationError):
            ComparisonSet([make_result("a", 0)])

    def test_eleven_entries_rejected(self):
        with pytest.raises(InvalidConfigurationError):
            ComparisonSet([make_result(str(i), i) for i in range(11)])

    def test_ten_entries_accepted(self):
        comparison = compare([make_result(str(i), i) for i in range(10)])
        assert [e.label for e in comparison] == list("ABCDEFGHIJ")


class TestDiffRows:
    @pytest.fixture
    def comparison(self):
        return ComparisonSet([make_result("mix", 1), make_result("ref1", 2), make_result("ref2", 3)])

    def test_base_is_first(self, comparison):
        assert comparison.base.label == "A"
        assert comparison.base.result.name == "mix"
        assert [e.label for e in comparison.others] == ["B", "C"]

    def test_diff_identity(self, comparison):
        base = comparison.base.result.distribution
        for entry in comparison.others:
            raw_row, weighted_row = comparison.diff_rows(entry)
            dist = entry.result.distribution
            np.testing.assert_allclose(raw_row.values, dist.raw - base.raw)
            np.testing.assert_allclose(weighted_row.values, dist.weighted - base.weighted)

    def test_row_titles(self, comparison):
        titles = [row.title for row in comparison.rows()]
        assert titles == ["B-A Raw", "B-A K-wt", "C-A Raw", "C-A K-wt"]
        assert {row.kind for row in comparison.rows()} == {RAW, WEIGHTED}

    def test_base_not_diffed(self, comparison):
        with pytest.raises(ValueError):
            comparison.diff_rows(comparison.base)

    def test_entry_lookup(self, comparison):
        assert comparison.entry("C").result.name == "ref2"
        with pytest.raises(KeyError):
            comparison.entry("D")


class TestDynamicsDiff:
    def test_undefined_propagates(self):
        base = DynamicsProfile((1.0, None) + (2.0,) * (NUM_BANDS - 2))
        other = DynamicsProfile((3.0, 4.0, None) + (1.5,) * (NUM_BANDS - 3))
        comparison = ComparisonSet([make_result("a", 1, base), make_result("b", 2, other)])
        row = comparison.dynamics_diff(comparison.entry("B"))
        assert row.kind == DYNAMICS
        assert row.values[0] == pytest.approx(2.0)
        assert row.values[1] is None
        assert row.values[2] is None
        assert row.values[3] == pytest.approx(-0.5)

    def test_missing_profile(self):
        comparison = ComparisonSet([make_result("a", 1), make_result("b", 2)])
        row = comparison.dynamics_diff(comparison.entry("B"))
        assert all(v is None for v in row.values)


class TestSerialization:
    def test_to_dict(self):
        comparison = ComparisonSet([make_result("a", 1), make_result("b", 2)])
        data = comparison.to_dict()
        assert [e["label"] for e in data["entries"]] == ["A", "B"]
        assert [d["row"] for d in data["diffs"]] == ["B-A Raw", "B-A K-wt", "B-A Dyn"]
        assert data["skipped"] == []

    def test_failed_entries_listed(self):
        comparison = ComparisonSet(
            [make_result("a", 1), make_result("b", 2)], failed=[("c.wav", "decode error")]
        )
        assert comparison.failed == (("c.wav", "decode error"),)
        assert comparison.to_dict()["skipped"] == [{"name": "c.wav", "error": "decode error"}]
        assert len(comparison) == 2
