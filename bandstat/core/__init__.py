"""
Core module containing data models, the analysis pipeline and the engine.

Uses lazy imports for modules with heavy dependencies (scipy, librosa).
"""

# Models are lightweight - import directly
from bandstat.core.models import (
    BAND_NAMES,
    BAND_TABLE,
    Advisory,
    AnalysisResult,
    Band,
    BandDistribution,
    BandPowerAccumulator,
    CompareMode,
    DynamicsProfile,
    SampleStream,
    SingleFileMode,
    Timeline,
    TimelineFrame,
    TimelineMode,
)

__all__ = [
    # Models (always available)
    "BAND_NAMES",
    "BAND_TABLE",
    "Advisory",
    "AnalysisResult",
    "Band",
    "BandDistribution",
    "BandPowerAccumulator",
    "CompareMode",
    "DynamicsProfile",
    "SampleStream",
    "SingleFileMode",
    "Timeline",
    "TimelineFrame",
    "TimelineMode",
    # Heavy modules (lazy loaded)
    "AudioLoader",
    "create_audio_loader",
    "BandPowerEngine",
    "create_engine",
    "ComparisonSet",
    "BatchProcessor",
    "BatchResult",
    "ReportWriter",
    "TextReportWriter",
    "JSONReportWriter",
    "create_report_writer",
]

_LAZY = {
    "AudioLoader": "bandstat.core.loader",
    "create_audio_loader": "bandstat.core.loader",
    "BandPowerEngine": "bandstat.core.engine",
    "create_engine": "bandstat.core.engine",
    "ComparisonSet": "bandstat.core.comparator",
    "BatchProcessor": "bandstat.core.batch_processor",
    "BatchResult": "bandstat.core.batch_processor",
    "ReportWriter": "bandstat.core.result_writer",
    "TextReportWriter": "bandstat.core.result_writer",
    "JSONReportWriter": "bandstat.core.result_writer",
    "create_report_writer": "bandstat.core.result_writer",
}


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib
    return getattr(importlib.import_module(module_name), name)
