"""
Core data models for the band power analyzer.

Immutable value types passed between the analysis stages: the decoded
sample stream, the band table, energy accumulators, distributions,
dynamics profiles, timelines and the final analysis result.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from bandstat.utils.errors import InvalidConfigurationError


@dataclass(frozen=True)
class Band:
    """A named frequency band, lower edge inclusive, upper edge exclusive."""

    name: str
    low_hz: float
    high_hz: float

    def upper_edge(self, sample_rate: int) -> float:
        """Upper edge clipped to the Nyquist frequency."""
        return min(self.high_hz, sample_rate / 2.0)

    def label(self, sample_rate: Optional[int] = None) -> str:
        """Human readable range, e.g. "60-120 Hz"."""
        high = self.high_hz if sample_rate is None else self.upper_edge(sample_rate)
        if high <= self.low_hz:
            return "above Nyquist"
        high_text = "Nyquist" if math.isinf(high) else f"{high:g}"
        return f"{self.low_hz:g}-{high_text} Hz"


BAND_TABLE: Tuple[Band, ...] = (
    Band("DC", 0.0, 20.0),
    Band("SUB1", 20.0, 40.0),
    Band("SUB2", 40.0, 60.0),
    Band("BASS", 60.0, 120.0),
    Band("UBAS", 120.0, 250.0),
    Band("LMID", 250.0, 500.0),
    Band("MID", 500.0, 1000.0),
    Band("UMID", 1000.0, 2000.0),
    Band("HMID", 2000.0, 4000.0),
    Band("PRES", 4000.0, 6000.0),
    Band("BRIL", 6000.0, 10000.0),
    Band("HIGH", 10000.0, 14000.0),
    Band("UHIG", 14000.0, 18000.0),
    Band("AIR", 18000.0, math.inf),
)

BAND_NAMES: Tuple[str, ...] = tuple(band.name for band in BAND_TABLE)
NUM_BANDS: int = len(BAND_TABLE)


def band_index(name: str) -> int:
    """Position of a band in BAND_TABLE."""
    try:
        return BAND_NAMES.index(name)
    except ValueError:
        raise KeyError(f"Unknown band: {name}") from None


def _frozen_array(values: Any, dtype: Any = np.float64) -> np.ndarray:
    array = np.array(values, dtype=dtype, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class SampleStream:
    """
    Decoded PCM audio, one row per frame and one column per channel.

    The sample array is copied on construction and marked read-only.
    float64 input stays float64; every other dtype (decoded PCM, ints)
    is stored as float32. Shape validation is left to the channel reducer
    so that malformed streams are reported as UnsupportedInputError at
    analysis time.
    """

    samples: np.ndarray  # Shape: (frames, channels)
    sample_rate: int
    channels: int
    name: Optional[str] = None

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples)
        dtype = np.float64 if samples.dtype == np.float64 else np.float32
        object.__setattr__(self, 'samples', _frozen_array(samples, dtype))

    @classmethod
    def from_mono(
        cls, signal: np.ndarray, sample_rate: int, name: Optional[str] = None
    ) -> "SampleStream":
        """Wrap a 1-D signal as a single-channel stream."""
        signal = np.asarray(signal)
        return cls(signal.reshape(-1, 1), sample_rate, 1, name)

    @classmethod
    def from_channels_first(
        cls, audio: np.ndarray, sample_rate: int, name: Optional[str] = None
    ) -> "SampleStream":
        """Build a stream from librosa's (channels, frames) or (frames,) layout."""
        audio = np.asarray(audio)
        if audio.ndim == 1:
            return cls.from_mono(audio, sample_rate, name)
        return cls(audio.T, sample_rate, audio.shape[0], name)

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0]) if self.samples.ndim else 0

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / self.sample_rate


class BandPowerAccumulator:
    """
    Running per-band energy totals for one signal extent.

    Filled by the band mapper while frames stream through, then finalized
    before it is turned into percentages. A finalized accumulator rejects
    further updates.
    """

    def __init__(self, num_bands: int = NUM_BANDS):
        self._energies = np.zeros(num_bands, dtype=np.float64)
        self._frame_count = 0
        self._finalized = False

    def add(self, frame_band_energies: np.ndarray) -> None:
        """
        Add band energies of one frame (1-D) or a block of frames (2-D).

        Raises:
            InvalidConfigurationError: If the accumulator is finalized or the
                band count does not match
        """
        if self._finalized:
            raise InvalidConfigurationError("Accumulator is finalized")
        block = np.atleast_2d(np.asarray(frame_band_energies, dtype=np.float64))
        if block.shape[1] != self._energies.shape[0]:
            raise InvalidConfigurationError(
                f"Expected {self._energies.shape[0]} bands, got {block.shape[1]}"
            )
        self._energies += block.sum(axis=0)
        self._frame_count += block.shape[0]

    def merge(self, other: "BandPowerAccumulator") -> "BandPowerAccumulator":
        """Return a new accumulator holding the sum of both."""
        merged = BandPowerAccumulator(self._energies.shape[0])
        merged._energies = self._energies + other._energies
        merged._frame_count = self._frame_count + other._frame_count
        return merged

    def finalize(self) -> "BandPowerAccumulator":
        self._finalized = True
        self._energies.setflags(write=False)
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def energies(self) -> np.ndarray:
        """Read-only view of the per-band energies."""
        view = self._energies.view()
        view.setflags(write=False)
        return view

    @property
    def total(self) -> float:
        return float(self._energies.sum())

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(BAND_NAMES, self._energies.tolist()))


@dataclass(frozen=True)
class BandDistribution:
    """Raw and K-weighted band percentages of one signal extent."""

    raw: np.ndarray       # Shape: (NUM_BANDS,), percent
    weighted: np.ndarray  # Shape: (NUM_BANDS,), percent

    def __post_init__(self) -> None:
        object.__setattr__(self, 'raw', _frozen_array(self.raw))
        object.__setattr__(self, 'weighted', _frozen_array(self.weighted))

    @property
    def diff(self) -> np.ndarray:
        """K-weighted minus raw, per band."""
        return self.weighted - self.raw

    def percentages(self, weighted: bool = False) -> np.ndarray:
        return self.weighted if weighted else self.raw

    @property
    def is_silent(self) -> bool:
        return not np.any(self.raw)

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        diff = self.diff
        return {
            name: {
                'raw': float(self.raw[i]),
                'weighted': float(self.weighted[i]),
                'diff': float(diff[i]),
            }
            for i, name in enumerate(BAND_NAMES)
        }


@dataclass(frozen=True)
class DynamicsProfile:
    """Per-band level spread in dB; None marks an undefined band."""

    values: Tuple[Optional[float], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, 'values', tuple(self.values))

    def get(self, band: str) -> Optional[float]:
        return self.values[band_index(band)]

    def is_defined(self, band: str) -> bool:
        return self.get(band) is not None

    def as_dict(self) -> Dict[str, Optional[float]]:
        return dict(zip(BAND_NAMES, self.values))


@dataclass(frozen=True)
class TimelineFrame:
    """Distribution of one fixed-length interval."""

    start_time: float  # seconds from the start of the file
    distribution: BandDistribution

    @property
    def silent(self) -> bool:
        return self.distribution.is_silent

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_time': self.start_time,
            'raw': self.distribution.raw.tolist(),
            'weighted': self.distribution.weighted.tolist(),
        }


@dataclass(frozen=True)
class Timeline:
    """Ordered interval distributions plus their energy-weighted average."""

    frames: Tuple[TimelineFrame, ...]
    average: BandDistribution
    interval_seconds: float
    weighted: bool = False

    def __len__(self) -> int:
        return len(self.frames)

    def rows(self) -> Iterator[Tuple[float, np.ndarray]]:
        """Yield (start_time, percentages) in the selected weighting."""
        for frame in self.frames:
            yield frame.start_time, frame.distribution.percentages(self.weighted)

    def average_row(self) -> np.ndarray:
        return self.average.percentages(self.weighted)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'interval_seconds': self.interval_seconds,
            'weighted': self.weighted,
            'frames': [frame.to_dict() for frame in self.frames],
            'average': {
                'raw': self.average.raw.tolist(),
                'weighted': self.average.weighted.tolist(),
            },
        }


@dataclass(frozen=True)
class Advisory:
    """Non-fatal condition observed during analysis."""

    kind: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'kind': self.kind, 'message': self.message}


@dataclass(frozen=True)
class SingleFileMode:
    """Whole-file distribution and dynamics for each stream."""


@dataclass(frozen=True)
class CompareMode:
    """Whole-file analysis of 2-10 streams plus base-relative diffs."""


@dataclass(frozen=True)
class TimelineMode:
    """Per-interval distributions of one stream."""

    interval_seconds: float = 20.0
    weighted: bool = False


@dataclass
class AnalysisResult:
    """Complete analysis result for one sample stream."""

    name: str
    sample_rate: int
    channels: int
    duration: float  # seconds
    distribution: BandDistribution
    dynamics: Optional[DynamicsProfile] = None
    timeline: Optional[Timeline] = None
    advisories: List[Advisory] = field(default_factory=list)
    processing_time: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def degraded(self) -> bool:
        return bool(self.advisories)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'timestamp': self.timestamp.isoformat(),
            'processing_time': self.processing_time,
            'sample_rate': self.sample_rate,
            'channels': self.channels,
            'duration': self.duration,
            'bands': [
                {'name': band.name, 'low_hz': band.low_hz,
                 'high_hz': band.upper_edge(self.sample_rate)}
                for band in BAND_TABLE
            ],
            'distribution': self.distribution.as_dict(),
            'dynamics': self.dynamics.as_dict() if self.dynamics else None,
            'timeline': self.timeline.to_dict() if self.timeline else None,
            'advisories': [advisory.to_dict() for advisory in self.advisories],
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)
