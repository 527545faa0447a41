"""
Timeline segmenter.

Cuts a file into consecutive fixed-length intervals and computes the band
distribution of each. The K-weighted signal is filtered once over the whole
file and cut at the same boundaries as the raw signal, so filter state
carries across interval edges. The overall average is built from the summed
interval accumulators, which weights every interval by its energy.
"""

import logging
import math
from typing import List

import numpy as np

from bandstat.core.bands import BandMapper
from bandstat.core.distribution import normalize
from bandstat.core.models import BandPowerAccumulator, Timeline, TimelineFrame
from bandstat.core.spectral import SpectralFrameAnalyzer
from bandstat.utils.errors import InvalidConfigurationError

DEFAULT_INTERVAL_SECONDS: float = 20.0

logger = logging.getLogger(__name__)


def validate_interval(interval_seconds: float) -> None:
    """
    Raises:
        InvalidConfigurationError: If interval_seconds is not a positive
            finite number
    """
    if not (interval_seconds > 0 and math.isfinite(interval_seconds)):
        raise InvalidConfigurationError(
            f"Interval must be positive, got {interval_seconds}",
            config_key="timeline.interval_seconds"
        )


class TimelineSegmenter:
    """Per-interval band distributions for one mono signal."""

    def __init__(
        self,
        analyzer: SpectralFrameAnalyzer,
        mapper: BandMapper,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        weighted: bool = False,
    ):
        """
        Initialize the segmenter.

        Args:
            analyzer: Spectral frame analyzer shared with whole-file analysis
            mapper: Band mapper for the signal's sample rate
            interval_seconds: Interval length, must be positive
            weighted: Whether the timeline displays K-weighted percentages

        Raises:
            InvalidConfigurationError: If interval_seconds is not positive
        """
        validate_interval(interval_seconds)
        self.analyzer = analyzer
        self.mapper = mapper
        self.interval_seconds = float(interval_seconds)
        self.weighted = weighted

    def interval_samples(self, sample_rate: int) -> int:
        return max(1, int(round(self.interval_seconds * sample_rate)))

    def segment(
        self, raw: np.ndarray, weighted: np.ndarray, sample_rate: int
    ) -> Timeline:
        """
        Build the timeline of a file.

        Args:
            raw: Mono signal
            weighted: K-weighted version of the same signal
            sample_rate: Sample rate in Hz

        Returns:
            Timeline: One frame per interval plus the overall average
        """
        step = self.interval_samples(sample_rate)
        frames: List[TimelineFrame] = []
        total_raw = BandPowerAccumulator(len(self.mapper.bands))
        total_weighted = BandPowerAccumulator(len(self.mapper.bands))

        for start in range(0, len(raw), step):
            stop = min(start + step, len(raw))
            raw_acc = self.mapper.accumulate(self.analyzer.spectra(raw[start:stop]))
            weighted_acc = self.mapper.accumulate(
                self.analyzer.spectra(weighted[start:stop])
            )
            total_raw = total_raw.merge(raw_acc)
            total_weighted = total_weighted.merge(weighted_acc)
            frames.append(TimelineFrame(
                start_time=start / sample_rate,
                distribution=normalize(raw_acc, weighted_acc),
            ))

        logger.debug(
            f"Timeline: {len(frames)} interval(s) of {self.interval_seconds:g}s"
        )
        return Timeline(
            frames=tuple(frames),
            average=normalize(total_raw, total_weighted),
            interval_seconds=self.interval_seconds,
            weighted=self.weighted,
        )
