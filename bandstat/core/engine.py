"""
Band power analysis engine.

Orchestrates the pipeline for each analysis mode:

    SampleStream -> downmix -> {raw, K-weighted}
                 -> spectral frames -> band accumulators
                 -> distribution (+ dynamics | timeline | comparison)

Every call owns its intermediate buffers; the engine itself only holds
immutable configuration and a thread pool, so independent files can be
analyzed concurrently.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from bandstat.core.bands import BandMapper
from bandstat.core.batch_processor import BatchProcessor, BatchResult
from bandstat.core.comparator import ComparisonSet, validate_entry_count
from bandstat.core.distribution import normalize
from bandstat.core.dynamics import DYNAMICS_FLOOR_DB, DYNAMICS_THRESHOLD_PCT, compute_dynamics
from bandstat.core.kweighting import VALIDATED_SAMPLE_RATES, is_validated_rate, k_weight
from bandstat.core.loader import AudioLoader, create_audio_loader
from bandstat.core.models import (
    Advisory,
    AnalysisResult,
    BandPowerAccumulator,
    CompareMode,
    SampleStream,
    SingleFileMode,
    TimelineMode,
)
from bandstat.core.reducer import downmix
from bandstat.core.spectral import FRAME_SIZE, WINDOW, SpectralFrameAnalyzer
from bandstat.core.timeline import (
    DEFAULT_INTERVAL_SECONDS,
    TimelineSegmenter,
    validate_interval,
)
from bandstat.utils.errors import COMPUTATION_DEGRADED, BandStatError, InvalidConfigurationError

AnalysisMode = Union[SingleFileMode, CompareMode, TimelineMode]


class BandPowerEngine:
    """
    Main analysis engine.

    Design:
    - Dependency Injection: loader is injected (testable)
    - Parallel Execution: independent streams run on a thread pool
    - Stateless analysis: no caches or buffers survive a call
    """

    def __init__(
        self,
        frame_size: int = FRAME_SIZE,
        hop_size: Optional[int] = None,
        window: str = WINDOW,
        dynamics_threshold_pct: float = DYNAMICS_THRESHOLD_PCT,
        dynamics_floor_db: float = DYNAMICS_FLOOR_DB,
        max_workers: int = 4,
        loader: Optional[AudioLoader] = None,
    ):
        """
        Initialize analysis engine.

        Args:
            frame_size: Spectral frame size in samples
            hop_size: Hop between frames (half the frame size if None)
            window: Analysis window name
            dynamics_threshold_pct: Mean share below which dynamics is undefined
            dynamics_floor_db: Frames this far below a band's peak are ignored
            max_workers: Max parallel workers for multi-stream analysis
            loader: AudioLoader used by the *_file methods

        Raises:
            InvalidConfigurationError: If the frame geometry is invalid
        """
        self.analyzer = SpectralFrameAnalyzer(
            frame_size=frame_size,
            hop_size=hop_size if hop_size is not None else frame_size // 2,
            window=window,
        )
        self.dynamics_threshold_pct = dynamics_threshold_pct
        self.dynamics_floor_db = dynamics_floor_db
        self.max_workers = max_workers
        self.loader = loader or AudioLoader()
        self.executor = ThreadPoolExecutor(max_workers=max_workers)
        self.logger = logging.getLogger('engine')

    def _mapper(self, sample_rate: int) -> BandMapper:
        return BandMapper(sample_rate, self.analyzer.frame_size)

    def _prepare(self, stream: SampleStream) -> Tuple[np.ndarray, np.ndarray, List[Advisory]]:
        """Downmix, check the sample rate and K-weight the whole signal."""
        mono = downmix(stream)
        advisories: List[Advisory] = []

        if not is_validated_rate(stream.sample_rate):
            message = (
                f"{stream.sample_rate} Hz is not one of the validated rates "
                f"{VALIDATED_SAMPLE_RATES}; K-weighting is approximate"
            )
            self.logger.warning(f"{stream.name or 'stream'}: {message}")
            advisories.append(Advisory(COMPUTATION_DEGRADED, message))

        weighted = k_weight(mono, stream.sample_rate)
        return mono, weighted, advisories

    def analyze(self, stream: SampleStream, name: Optional[str] = None) -> AnalysisResult:
        """
        Whole-file distribution and dynamics of one stream.

        Args:
            stream: Decoded audio
            name: Display name (defaults to the stream's name)

        Returns:
            AnalysisResult: Distribution and dynamics

        Raises:
            UnsupportedInputError: If the stream cannot be analyzed
        """
        start_time = time.time()
        mono, weighted, advisories = self._prepare(stream)
        mapper = self._mapper(stream.sample_rate)

        frame_energies = mapper.frame_band_energies(self.analyzer.spectra(mono))
        raw_acc = BandPowerAccumulator(len(mapper.bands))
        raw_acc.add(frame_energies)
        weighted_acc = mapper.accumulate(self.analyzer.spectra(weighted))

        distribution = normalize(raw_acc, weighted_acc)
        dynamics = compute_dynamics(
            frame_energies,
            threshold_pct=self.dynamics_threshold_pct,
            floor_db=self.dynamics_floor_db,
        )

        processing_time = time.time() - start_time
        self.logger.info(
            f"Analyzed {name or stream.name or 'stream'}: "
            f"{raw_acc.frame_count} frames in {processing_time:.3f}s"
        )
        return AnalysisResult(
            name=name or stream.name or "stream",
            sample_rate=stream.sample_rate,
            channels=stream.channels,
            duration=stream.duration,
            distribution=distribution,
            dynamics=dynamics,
            advisories=advisories,
            processing_time=processing_time,
        )

    def analyze_timeline(
        self,
        stream: SampleStream,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        weighted: bool = False,
        name: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Per-interval distributions of one stream.

        The result's distribution is the timeline's energy-weighted average.

        Raises:
            InvalidConfigurationError: If interval_seconds is not positive
            UnsupportedInputError: If the stream cannot be analyzed
        """
        start_time = time.time()
        validate_interval(interval_seconds)
        mono, weighted_signal, advisories = self._prepare(stream)
        segmenter = TimelineSegmenter(
            self.analyzer,
            self._mapper(stream.sample_rate),
            interval_seconds=interval_seconds,
            weighted=weighted,
        )
        timeline = segmenter.segment(mono, weighted_signal, stream.sample_rate)

        processing_time = time.time() - start_time
        self.logger.info(
            f"Timeline of {name or stream.name or 'stream'}: "
            f"{len(timeline)} interval(s) in {processing_time:.3f}s"
        )
        return AnalysisResult(
            name=name or stream.name or "stream",
            sample_rate=stream.sample_rate,
            channels=stream.channels,
            duration=stream.duration,
            distribution=timeline.average,
            timeline=timeline,
            advisories=advisories,
            processing_time=processing_time,
        )

    def _analyze_entry(
        self, indexed: Tuple[int, SampleStream]
    ) -> Tuple[Optional[AnalysisResult], Optional[Tuple[str, str]]]:
        index, stream = indexed
        name = stream.name or f"stream {index + 1}"
        try:
            return self.analyze(stream, name=name), None
        except BandStatError as e:
            self.logger.error(f"Failed to analyze {name}: {e}")
            return None, (name, str(e))

    def compare(self, streams: Sequence[SampleStream]) -> ComparisonSet:
        """
        Analyze 2-10 streams and line them up against the first.

        A stream that fails analysis is listed in the result's `failed`
        and skipped; the remaining streams are labelled in input order.

        Raises:
            InvalidConfigurationError: If the stream count is out of range or
                fewer than two streams can be analyzed
        """
        validate_entry_count(len(streams))
        self.logger.info(f"Comparing {len(streams)} streams")

        results: List[AnalysisResult] = []
        failed: List[Tuple[str, str]] = []
        for result, failure in self.executor.map(self._analyze_entry, enumerate(streams)):
            if result is not None:
                results.append(result)
            else:
                failed.append(failure)

        if len(results) < 2:
            raise InvalidConfigurationError(
                f"Comparison needs at least 2 analyzable streams, got {len(results)} "
                f"({'; '.join(f'{name}: {error}' for name, error in failed)})"
            )
        return ComparisonSet(results, failed)

    def run(
        self, mode: AnalysisMode, streams: Sequence[SampleStream]
    ) -> Union[List[AnalysisResult], AnalysisResult, ComparisonSet]:
        """
        Dispatch on the requested mode.

        Returns:
            A list of results (single-file), one result with a timeline
            (timeline) or a ComparisonSet (compare)
        """
        if isinstance(mode, CompareMode):
            return self.compare(streams)
        if isinstance(mode, TimelineMode):
            if len(streams) != 1:
                raise InvalidConfigurationError(
                    f"Timeline mode takes exactly one stream, got {len(streams)}"
                )
            return self.analyze_timeline(
                streams[0], interval_seconds=mode.interval_seconds, weighted=mode.weighted
            )
        if isinstance(mode, SingleFileMode):
            return list(self.executor.map(self.analyze, streams))
        raise InvalidConfigurationError(f"Unknown analysis mode: {mode!r}")

    def analyze_file(self, file_path: Path) -> AnalysisResult:
        """Load and analyze one audio file."""
        file_path = Path(file_path)
        self.logger.info(f"Loading audio: {file_path}")
        return self.analyze(self.loader.load(file_path))

    def analyze_timeline_file(
        self,
        file_path: Path,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        weighted: bool = False,
    ) -> AnalysisResult:
        """Load one audio file and compute its timeline."""
        file_path = Path(file_path)
        validate_interval(interval_seconds)
        self.logger.info(f"Loading audio: {file_path}")
        return self.analyze_timeline(
            self.loader.load(file_path), interval_seconds=interval_seconds, weighted=weighted
        )

    def compare_files(
        self,
        file_paths: Sequence[Path],
        progress_callback: Optional[Callable[[int, int, Path], None]] = None,
    ) -> Tuple[ComparisonSet, BatchResult]:
        """
        Load, analyze and compare 2-10 files.

        Files that fail to load or analyze are reported in the returned
        BatchResult and in the comparison's `failed`; the comparison goes
        ahead with the rest.

        Args:
            file_paths: Audio files, the first one is the base [A]
            progress_callback: Optional callback(current, total, file_path)

        Raises:
            InvalidConfigurationError: If the path count is out of range or
                fewer than two files succeed
        """
        validate_entry_count(len(file_paths))
        batch = BatchProcessor(
            self, max_workers=self.max_workers, progress_callback=progress_callback
        ).process([Path(p) for p in file_paths])
        if len(batch.ordered) < 2:
            failures = "; ".join(f"{path.name}: {err}" for path, err in batch.failed.items())
            raise InvalidConfigurationError(
                f"Comparison needs at least 2 readable files, got "
                f"{len(batch.ordered)} ({failures})"
            )
        failed = [(path.name, error) for path, error in batch.failed.items()]
        return ComparisonSet(batch.ordered, failed), batch

    def shutdown(self) -> None:
        """Shutdown thread pool gracefully."""
        self.logger.debug("Shutting down analysis engine")
        self.executor.shutdown(wait=True)

    def __enter__(self) -> "BandPowerEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()


def create_engine(config: Optional[Dict[str, Any]] = None) -> BandPowerEngine:
    """
    Factory function to create a configured analysis engine.

    Args:
        config: Configuration dict (see get_default_config)

    Returns:
        BandPowerEngine: Configured engine
    """
    config = config or {}
    analysis = config.get('analysis', {})
    dynamics = config.get('dynamics', {})
    performance = config.get('performance', {})

    return BandPowerEngine(
        frame_size=analysis.get('frame_size', FRAME_SIZE),
        hop_size=analysis.get('hop_size'),
        window=analysis.get('window', WINDOW),
        dynamics_threshold_pct=dynamics.get('threshold_pct', DYNAMICS_THRESHOLD_PCT),
        dynamics_floor_db=dynamics.get('floor_db', DYNAMICS_FLOOR_DB),
        max_workers=performance.get('max_workers', 4),
        loader=create_audio_loader(config.get('audio', {})),
    )
