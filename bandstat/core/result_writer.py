"""
Report rendering and writers.

Text tables for the terminal and for report files, plus a JSON writer.
Percent cells use one decimal; diff cells are signed; undefined dynamics
print as "-".
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from bandstat.core.comparator import ComparisonSet
from bandstat.core.models import BAND_NAMES, BAND_TABLE, AnalysisResult

Report = Union[AnalysisResult, ComparisonSet, Sequence[AnalysisResult]]

NAME_WIDTH = 10
CELL_WIDTH = 6
UNDEFINED = "-"


LEGEND = (
    "Raw: Percentage of total power in each band",
    "K-wt: Same as Raw, but with K-weighting applied",
    "Diff: Difference between K-wt and Raw",
    "Dyn: Standard deviation of band power over time (dB)",
)


def format_duration(seconds: float) -> str:
    """Seconds as m:ss.s"""
    minutes, secs = divmod(max(seconds, 0.0), 60.0)
    return f"{int(minutes)}:{secs:04.1f}"


def _cell(value: Optional[float], signed: bool = False) -> str:
    if value is None:
        return f"{UNDEFINED:>{CELL_WIDTH}}"
    return f"{value:>+{CELL_WIDTH}.1f}" if signed else f"{value:>{CELL_WIDTH}.1f}"


def _band_header() -> str:
    return " " * NAME_WIDTH + "".join(f"{name:>{CELL_WIDTH}}" for name in BAND_NAMES)


def _row(title: str, values: Iterable[Optional[float]], signed: bool = False) -> str:
    return f"{title:<{NAME_WIDTH}}" + "".join(_cell(v, signed) for v in values)


def _advisory_lines(result: AnalysisResult) -> List[str]:
    return [f"  ! {a.kind}: {a.message}" for a in result.advisories]


def _file_info(result: AnalysisResult, weighted: bool = False) -> List[str]:
    lines = [
        f"File: {result.name}",
        f"Sample rate: {result.sample_rate} Hz, Channels: {result.channels}, "
        f"Duration: {format_duration(result.duration)}",
    ]
    if weighted:
        lines.append("Weighting: K-weighted (ITU-R BS.1770)")
    return lines + [""]


def _band_list(sample_rate: int) -> List[str]:
    lines = ["Bands:"]
    lines.extend(f"  {band.name:>4}: {band.label(sample_rate)}" for band in BAND_TABLE)
    return lines + [""]


def describe(result: AnalysisResult) -> str:
    return (
        f"{result.name}  ({result.sample_rate} Hz, {result.channels} ch, "
        f"{format_duration(result.duration)})"
    )


def render_distribution(result: AnalysisResult, quiet: bool = False) -> str:
    """
    Band-per-line table of Raw, K-wt, Diff and Dynamics.

    Unless quiet, the table is preceded by the file info and band ranges
    and followed by the legend.
    """
    lines: List[str] = []
    if not quiet:
        lines.extend(_file_info(result))
    lines.append("[Band Power Distribution]")
    range_header = "" if quiet else f"{'Range':>18}"
    lines.append(
        f"{'Band':<6}{range_header}{'Raw(%)':>9}{'K-wt(%)':>9}{'Diff':>8}{'Dyn(dB)':>9}"
    )
    distribution = result.distribution
    diff = distribution.diff
    dynamics = result.dynamics.values if result.dynamics else (None,) * len(BAND_TABLE)
    for i, band in enumerate(BAND_TABLE):
        dyn = UNDEFINED if dynamics[i] is None else f"{dynamics[i]:.1f}"
        band_range = "" if quiet else f"{band.label(result.sample_rate):>18}"
        lines.append(
            f"{band.name:<6}{band_range}"
            f"{distribution.raw[i]:>9.1f}{distribution.weighted[i]:>9.1f}"
            f"{diff[i]:>+8.1f}{dyn:>9}"
        )
    lines.extend(_advisory_lines(result))
    if not quiet:
        lines.append("")
        lines.extend(LEGEND)
    return "\n".join(lines)


def render_comparison(comparison: ComparisonSet, quiet: bool = False) -> str:
    """Band-per-column table of all entries followed by diffs against [A]."""
    base = comparison.base.label
    lines = [f"[Band Power Comparison]  base: [{base}]"]
    for entry in comparison:
        lines.append(f"  [{entry.label}] " + describe(entry.result))
        lines.extend(_advisory_lines(entry.result))
    for name, error in comparison.failed:
        lines.append(f"  [skipped] {name}: {error}")
    lines.append("")
    if not quiet:
        lines.extend(_band_list(comparison.base.result.sample_rate))

    lines.append(_band_header())
    for entry in comparison:
        dist = entry.result.distribution
        lines.append(_row(f"[{entry.label}] Raw", dist.raw.tolist()))
        lines.append(_row(f"[{entry.label}] K-wt", dist.weighted.tolist()))
        lines.append(_row(f"[{entry.label}] Diff", dist.diff.tolist(), signed=True))

    lines.append("")
    lines.append(_band_header())
    for entry in comparison.others:
        for row in comparison.diff_rows(entry):
            lines.append(_row(row.title, row.values, signed=True))

    lines.append("")
    lines.append("[Dynamics (dB)]")
    lines.append(_band_header())
    for entry in comparison:
        values = entry.result.dynamics.values if entry.result.dynamics else (None,) * len(BAND_NAMES)
        lines.append(_row(f"[{entry.label}]", values))
    for entry in comparison.others:
        row = comparison.dynamics_diff(entry)
        lines.append(_row(row.title, row.values, signed=True))

    if not quiet:
        lines.append("")
        lines.extend(LEGEND)
    return "\n".join(lines)


def render_timeline(result: AnalysisResult, quiet: bool = False) -> str:
    """One row per interval plus the average row."""
    timeline = result.timeline
    if timeline is None:
        raise ValueError(f"{result.name} has no timeline")
    weighting = "K-weighted" if timeline.weighted else "Raw"
    lines: List[str] = []
    if not quiet:
        lines.extend(_file_info(result, weighted=timeline.weighted))
        lines.extend(_band_list(result.sample_rate))
    lines.append(
        f"[Band Power Timeline, {weighting}, {timeline.interval_seconds:g}s intervals]"
    )
    lines.append(_band_header())
    for start_time, values in timeline.rows():
        lines.append(_row(format_duration(start_time), values.tolist()))
    lines.append(_row("Average", timeline.average_row().tolist()))
    lines.extend(_advisory_lines(result))
    return "\n".join(lines)


def render(report: Report, quiet: bool = False) -> str:
    """Render any report the engine produces."""
    if isinstance(report, ComparisonSet):
        return render_comparison(report, quiet)
    if isinstance(report, AnalysisResult):
        if report.timeline is not None:
            return render_timeline(report, quiet)
        return render_distribution(report, quiet)
    return "\n\n".join(render(item, quiet) for item in report)


def _to_dict(report: Report):
    if isinstance(report, (ComparisonSet, AnalysisResult)):
        return report.to_dict()
    return [item.to_dict() for item in report]


class ReportWriter(ABC):
    """Abstract base class for report writers (Strategy Pattern)."""

    @abstractmethod
    def write(self, report: Report, output_path: Path) -> None:
        """Write a report to the specified path."""


class TextReportWriter(ReportWriter):
    """Writes reports as the same text tables shown on the terminal."""

    def __init__(self, include_timestamp: bool = True):
        self.include_timestamp = include_timestamp
        self.logger = logging.getLogger("result_writer.text")

    def write(self, report: Report, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            if self.include_timestamp:
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
            f.write(render(report))
            f.write("\n")

        self.logger.info(f"Report written to: {output_path}")


class JSONReportWriter(ReportWriter):
    """Writes reports as JSON."""

    def __init__(self, indent: int = 2):
        self.indent = indent
        self.logger = logging.getLogger("result_writer.json")

    def write(self, report: Report, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_data = {
            "generated": datetime.now().isoformat(),
            "report": _to_dict(report),
        }
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=self.indent, default=str)

        self.logger.info(f"Report written to: {output_path}")


def create_report_writer(format: str = "text", **kwargs) -> ReportWriter:
    """
    Factory function to create a report writer.

    Args:
        format: Output format ("text", "txt" or "json")
        **kwargs: Additional arguments for the writer

    Raises:
        ValueError: If the format is unknown
    """
    writers = {
        "text": TextReportWriter,
        "txt": TextReportWriter,
        "json": JSONReportWriter,
    }

    writer_class = writers.get(format.lower())
    if writer_class is None:
        raise ValueError(f"Unknown format: {format}. Supported: {list(writers.keys())}")

    return writer_class(**kwargs)
