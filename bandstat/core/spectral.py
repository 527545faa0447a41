"""
Spectral frame analyzer.

Splits a mono signal into Hann-windowed frames with 50% overlap and turns
each frame into a one-sided power spectrum scaled so that summing the bins
approximates the frame's time-domain energy (Parseval).
"""

import math
from typing import Iterator

import librosa
import numpy as np
from scipy import fft as spfft
from scipy import signal as sps

from bandstat.utils.errors import InvalidConfigurationError


FRAME_SIZE: int = 8192
HOP_SIZE: int = FRAME_SIZE // 2
WINDOW: str = "hann"
MIN_FRAME_SIZE: int = 256

# Frames transformed per FFT call while streaming.
BLOCK_FRAMES: int = 64


class PowerSpectra:
    """
    Lazy sequence of per-frame power spectra for one signal.

    Nothing is transformed until iteration; iterating again recomputes
    the spectra from the signal.
    """

    def __init__(self, analyzer: "SpectralFrameAnalyzer", signal: np.ndarray):
        self._analyzer = analyzer
        self._signal = signal

    def __len__(self) -> int:
        return self._analyzer.frame_count(len(self._signal))

    def __iter__(self) -> Iterator[np.ndarray]:
        for block in self.blocks():
            yield from block

    def blocks(self, block_frames: int = BLOCK_FRAMES) -> Iterator[np.ndarray]:
        """Yield (frames, bins) arrays of consecutive spectra."""
        frames = self._analyzer.frames(self._signal)
        for start in range(0, frames.shape[0], block_frames):
            yield self._analyzer.power(frames[start:start + block_frames])


class SpectralFrameAnalyzer:
    """
    Frames a signal and computes Parseval-scaled power spectra.

    Bins 0 .. frame_size/2 - 1 are produced; the Nyquist bin is not.
    """

    def __init__(
        self,
        frame_size: int = FRAME_SIZE,
        hop_size: int = HOP_SIZE,
        window: str = WINDOW,
    ):
        """
        Initialize the analyzer.

        Args:
            frame_size: Samples per frame, a power of two >= 256
            hop_size: Samples between frame starts, 0 < hop <= frame_size
            window: Window name understood by scipy.signal.get_window

        Raises:
            InvalidConfigurationError: If the frame geometry or window is invalid
        """
        if frame_size < MIN_FRAME_SIZE or frame_size & (frame_size - 1):
            raise InvalidConfigurationError(
                f"Frame size must be a power of two >= {MIN_FRAME_SIZE}, got {frame_size}",
                config_key="analysis.frame_size"
            )
        if not 0 < hop_size <= frame_size:
            raise InvalidConfigurationError(
                f"Hop size must be in (0, {frame_size}], got {hop_size}",
                config_key="analysis.hop_size"
            )
        try:
            self.window = sps.get_window(window, frame_size)
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Unknown window: {window}", config_key="analysis.window"
            ) from e

        self.frame_size = frame_size
        self.hop_size = hop_size
        self.bin_count = frame_size // 2
        self._scale = 1.0 / float(np.sum(self.window ** 2))

        # DC appears once in a one-sided spectrum, every other bin twice.
        self._bin_weights = np.full(self.bin_count, 2.0 * self._scale)
        self._bin_weights[0] = self._scale

    def frame_count(self, num_samples: int) -> int:
        """Number of frames covering num_samples, the last one zero-padded."""
        if num_samples <= 0:
            return 0
        overhang = max(0, num_samples - self.frame_size)
        return 1 + math.ceil(overhang / self.hop_size)

    def bin_frequencies(self, sample_rate: int) -> np.ndarray:
        """Lower edge of every produced bin in Hz."""
        return np.arange(self.bin_count) * (sample_rate / self.frame_size)

    def frames(self, signal: np.ndarray) -> np.ndarray:
        """
        Zero-pad and frame a signal.

        Returns:
            np.ndarray: Read-only (frames, frame_size) view
        """
        signal = np.asarray(signal, dtype=np.float64)
        count = self.frame_count(len(signal))
        if count == 0:
            return np.empty((0, self.frame_size))
        padded_length = (count - 1) * self.hop_size + self.frame_size
        padded = np.pad(signal, (0, padded_length - len(signal)))
        return librosa.util.frame(
            padded, frame_length=self.frame_size, hop_length=self.hop_size, axis=0
        )

    def power(self, frames: np.ndarray) -> np.ndarray:
        """One-sided power spectra of a (frames, frame_size) block."""
        spectrum = spfft.rfft(frames * self.window, axis=-1)[..., :self.bin_count]
        return (spectrum.real ** 2 + spectrum.imag ** 2) * self._bin_weights

    def spectra(self, signal: np.ndarray) -> PowerSpectra:
        """Lazy, restartable spectra of a mono signal."""
        return PowerSpectra(self, np.asarray(signal, dtype=np.float64))
