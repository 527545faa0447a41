"""
Band mapper: assigns spectral bins to the 14 analysis bands.

Bin k covers [k * df, (k + 1) * df). A band starts at the bin whose span
contains its lower edge, so a bin straddling a boundary (or starting exactly
on one) belongs to the higher band. With 8192-sample frames this keeps a tone
sitting on a band edge, such as 1 kHz, inside the band it names.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from bandstat.core.models import BAND_TABLE, Band, BandPowerAccumulator


class BandMapper:
    """Maps power spectra of one (sample rate, frame size) pair onto bands."""

    def __init__(
        self,
        sample_rate: int,
        frame_size: int,
        bands: Sequence[Band] = BAND_TABLE,
    ):
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self.bands = tuple(bands)
        self.bin_count = frame_size // 2
        self.bin_width = sample_rate / frame_size

        lows = np.array([band.low_hz for band in self.bands])
        self.start_bins = np.minimum(
            np.floor(lows / self.bin_width).astype(np.int64), self.bin_count
        )
        self.bin_bands = (
            np.searchsorted(self.start_bins, np.arange(self.bin_count), side="right") - 1
        )
        # One-hot (bins, bands); a spectra block times this gives band energies.
        self._assignment = np.zeros((self.bin_count, len(self.bands)))
        self._assignment[np.arange(self.bin_count), self.bin_bands] = 1.0

    def band_of_bin(self, bin_index: int) -> Band:
        return self.bands[int(self.bin_bands[bin_index])]

    def band_of_frequency(self, frequency_hz: float) -> Band:
        """Band owning the bin whose span contains frequency_hz."""
        bin_index = min(int(frequency_hz // self.bin_width), self.bin_count - 1)
        return self.band_of_bin(bin_index)

    def bins_per_band(self) -> np.ndarray:
        return self._assignment.sum(axis=0).astype(np.int64)

    def band_energies(self, spectra: np.ndarray) -> np.ndarray:
        """Band energies of one spectrum (1-D) or a block of spectra (2-D)."""
        return np.asarray(spectra) @ self._assignment

    def frame_band_energies(self, spectra: Iterable[np.ndarray]) -> np.ndarray:
        """
        Band energies per frame.

        Args:
            spectra: Iterable of spectra or spectra blocks

        Returns:
            np.ndarray: (frames, bands) matrix
        """
        rows = [np.atleast_2d(self.band_energies(block)) for block in _blocks(spectra)]
        if not rows:
            return np.zeros((0, len(self.bands)))
        return np.vstack(rows)

    def accumulate(
        self,
        spectra: Iterable[np.ndarray],
        accumulator: Optional[BandPowerAccumulator] = None,
    ) -> BandPowerAccumulator:
        """
        Sum band energies over all frames of one extent.

        Args:
            spectra: Iterable of spectra or spectra blocks
            accumulator: Accumulator to extend (a new one if None)

        Returns:
            BandPowerAccumulator: The updated accumulator, not finalized
        """
        if accumulator is None:
            accumulator = BandPowerAccumulator(len(self.bands))
        for block in _blocks(spectra):
            accumulator.add(self.band_energies(block))
        return accumulator


def _blocks(spectra: Iterable[np.ndarray]) -> Iterable[np.ndarray]:
    """Prefer block iteration when the source offers it."""
    blocks = getattr(spectra, "blocks", None)
    if callable(blocks):
        return blocks()
    return spectra
