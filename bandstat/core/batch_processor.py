"""
Batch processor for analyzing several audio files.

Loads and analyzes each file independently. A file that fails is recorded
with its error message and does not stop the others.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from bandstat.core.models import AnalysisResult
from bandstat.utils.errors import BandStatError
from bandstat.utils.logging import create_logger_with_context


@dataclass
class BatchResult:
    """Result of a batch processing operation."""
    successful: Dict[Path, AnalysisResult] = field(default_factory=dict)
    failed: Dict[Path, str] = field(default_factory=dict)
    # Successes in input order; repeated paths appear once per occurrence.
    ordered: List[AnalysisResult] = field(default_factory=list)
    total_files: int = 0
    total_time: float = 0.0

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.success_count / self.total_files) * 100


class BatchProcessor:
    """
    Runs an engine's analyze_file over a list of files.

    The engine is injected; anything with an analyze_file(path) method works.
    """

    def __init__(
        self,
        engine,
        max_workers: int = 4,
        progress_callback: Optional[Callable[[int, int, Path], None]] = None
    ):
        """
        Initialize batch processor.

        Args:
            engine: Object providing analyze_file(path) -> AnalysisResult
            max_workers: Maximum parallel workers
            progress_callback: Optional callback(current, total, file_path)
                invoked as each file finishes
        """
        self.engine = engine
        self.max_workers = max_workers
        self.progress_callback = progress_callback
        self.logger = logging.getLogger("batch_processor")

    def process(self, inputs: Union[Path, List[Path]]) -> BatchResult:
        """
        Process one or more audio files.

        Args:
            inputs: Single path or list of paths

        Returns:
            BatchResult containing results and per-file errors
        """
        start_time = time.time()
        files = [Path(inputs)] if isinstance(inputs, (str, Path)) else [Path(p) for p in inputs]

        if not files:
            self.logger.warning("No audio files to process")
            return BatchResult(total_files=0, total_time=0.0)

        self.logger.info(f"Processing {len(files)} audio files")
        result = BatchResult(total_files=len(files))

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            outcomes = executor.map(self._process_one, files)
            for processed, (file_path, analysis, error) in enumerate(outcomes, start=1):
                if self.progress_callback:
                    self.progress_callback(processed, len(files), file_path)
                if analysis is not None:
                    result.successful[file_path] = analysis
                    result.ordered.append(analysis)
                else:
                    result.failed[file_path] = error or "unknown error"

        result.total_time = time.time() - start_time
        self.logger.info(
            f"Batch complete: {result.success_count}/{result.total_files} succeeded "
            f"in {result.total_time:.2f}s"
        )
        return result

    def _process_one(
        self, file_path: Path
    ) -> Tuple[Path, Optional[AnalysisResult], Optional[str]]:
        log = create_logger_with_context("batch_processor", {"file": str(file_path)})
        try:
            analysis = self.engine.analyze_file(file_path)
        except (BandStatError, OSError) as e:
            log.error(f"Failed to process {file_path.name}: {e}")
            return file_path, None, str(e)
        log.debug(f"Successfully processed: {file_path.name}")
        return file_path, analysis, None
