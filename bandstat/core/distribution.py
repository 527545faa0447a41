"""
Distribution normalizer: band energies to percentages of total energy.
"""

import numpy as np

from bandstat.core.models import BandDistribution, BandPowerAccumulator


def to_percentages(energies: np.ndarray) -> np.ndarray:
    """
    Convert energies to percent of their total along the last axis.

    Rows whose total is zero come out as all zeros.
    """
    energies = np.asarray(energies, dtype=np.float64)
    totals = energies.sum(axis=-1, keepdims=True)
    safe = np.where(totals > 0.0, totals, 1.0)
    return np.where(totals > 0.0, 100.0 * energies / safe, 0.0)


def normalize(
    raw: BandPowerAccumulator, weighted: BandPowerAccumulator
) -> BandDistribution:
    """
    Build the distribution of one extent from its two accumulators.

    Both accumulators are finalized.
    """
    raw.finalize()
    weighted.finalize()
    return BandDistribution(
        raw=to_percentages(raw.energies),
        weighted=to_percentages(weighted.energies),
    )
