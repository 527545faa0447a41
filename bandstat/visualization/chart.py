"""
PNG charts of band distributions.

Single-file and timeline reports become stacked percentage bars, one band
per segment. Comparisons become grouped raw bars per band with the
K-weighted values drawn as lines over them. Rendering is off-screen (Agg).
"""

import logging
import math
from pathlib import Path
from typing import Sequence, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from bandstat.core.comparator import ComparisonSet
from bandstat.core.models import BAND_TABLE, AnalysisResult, Band
from bandstat.core.result_writer import format_duration
from bandstat.utils.errors import ChartError

logger = logging.getLogger("visualization.chart")

COLOR_BACKGROUND = "#0A0A0C"
COLOR_TEXT = "#FFFFFF"
COLOR_GRID = "#505050"

# (bar face, bar edge, K-weighted line) for [A] through [D]
COLOR_SETS = (
    ("#68B4FF", "#1888F8", "#88D4FF"),
    ("#FF68A8", "#F03888", "#FF94C0"),
    ("#48F89C", "#10D878", "#78FFB4"),
    ("#A478FF", "#7840F8", "#C4A4FF"),
)
MAX_CHART_FILES = len(COLOR_SETS)

# One colour per band, DC first
BAND_COLORS = (
    "#1E3A5F", "#2858A0", "#3878C0", "#4898E0", "#58B8F0", "#48C878", "#78D848",
    "#B8E818", "#E8D800", "#F8A800", "#F87800", "#E84800", "#C82828", "#982060",
)

# Segments smaller than this (percent) get no value label
MIN_LABELED_PERCENT = 5.0
DPI = 150

Chartable = Union[AnalysisResult, ComparisonSet]


def format_freq(hz: float) -> str:
    """Compact frequency: 500 -> "500", 1000 -> "1k", 1500 -> "1.5k"."""
    if hz >= 1000:
        return f"{hz / 1000:g}k"
    return f"{hz:g}"


def band_label(band: Band, multiline: bool = True) -> str:
    """Axis or legend label, e.g. "BASS\\n60-120" or "AIR (18k+)"."""
    if math.isinf(band.high_hz):
        span = f"{format_freq(band.low_hz)}+"
    else:
        span = f"{format_freq(band.low_hz)}-{format_freq(band.high_hz)}"
    return f"{band.name}\n{span}" if multiline else f"{band.name} ({span})"


def _style(fig, ax) -> None:
    fig.patch.set_facecolor(COLOR_BACKGROUND)
    ax.set_facecolor(COLOR_BACKGROUND)
    ax.tick_params(colors=COLOR_TEXT)
    for spine in ax.spines.values():
        spine.set_color(COLOR_GRID)
    ax.grid(True, axis="y", color=COLOR_GRID, alpha=0.5)
    ax.set_axisbelow(True)


def _legend(ax, reverse: bool = False, **kwargs) -> None:
    handles, labels = ax.get_legend_handles_labels()
    if reverse:
        handles, labels = handles[::-1], labels[::-1]
    ax.legend(
        handles, labels,
        facecolor=COLOR_BACKGROUND, edgecolor=COLOR_GRID, labelcolor=COLOR_TEXT,
        fontsize=8, **kwargs,
    )


def _save(fig, output_path: Path) -> Path:
    output_path = Path(output_path)
    try:
        fig.savefig(output_path, dpi=DPI, bbox_inches="tight", facecolor=COLOR_BACKGROUND)
    except (OSError, ValueError) as e:
        raise ChartError(f"Cannot write chart: {e}", output_path=str(output_path)) from e
    finally:
        plt.close(fig)
    logger.info(f"Chart written to: {output_path}")
    return output_path


def _stacked_chart(
    columns: np.ndarray, tick_labels: Sequence[str], title: str, output_path: Path
) -> Path:
    """
    Draw one stacked bar per row of `columns` (shape: (n, NUM_BANDS), percent).

    DC sits at the bottom of each bar; the legend lists bands top to bottom.
    """
    count = len(columns)
    fig, ax = plt.subplots(figsize=(max(6.0, 3.0 + 0.6 * count), 7))
    _style(fig, ax)

    x = np.arange(count)
    width = 0.6 if count == 1 else 0.8
    bottom = np.zeros(count)
    for band_index, band in enumerate(BAND_TABLE):
        values = columns[:, band_index]
        ax.bar(
            x, values, width, bottom=bottom,
            color=BAND_COLORS[band_index], label=band_label(band, multiline=False),
        )
        for xi, value, base in zip(x, values, bottom):
            if value >= MIN_LABELED_PERCENT:
                ax.text(xi, base + value / 2, f"{value:.0f}%", ha="center", va="center",
                        fontsize=7, color=COLOR_TEXT)
        bottom = bottom + values

    step = max(1, int(math.ceil(count / 24)))
    ax.set_xticks(x[::step])
    ax.set_xticklabels(list(tick_labels)[::step], rotation=45 if count > 8 else 0,
                       ha="right" if count > 8 else "center", fontsize=8)
    ax.set_ylim(0, 100)
    ax.set_ylabel("Power (%)", color=COLOR_TEXT)
    ax.set_title(title, fontsize=12, fontweight="bold", color=COLOR_TEXT)
    _legend(ax, reverse=True, loc="center left", bbox_to_anchor=(1.01, 0.5))
    return _save(fig, output_path)


def render_distribution_chart(
    result: AnalysisResult, output_path: Path, weighted: bool = False
) -> Path:
    """Single stacked bar of one file's band distribution."""
    title = "Band Distribution (K-weighted)" if weighted else "Band Distribution"
    columns = np.array([result.distribution.percentages(weighted)])
    return _stacked_chart(columns, [result.name], title, output_path)


def render_timeline_chart(result: AnalysisResult, output_path: Path) -> Path:
    """One stacked bar per timeline interval; silent intervals stay empty."""
    timeline = result.timeline
    if timeline is None:
        raise ValueError(f"{result.name} has no timeline")
    rows = list(timeline.rows())
    title = "Band Distribution Over Time"
    if timeline.weighted:
        title += " (K-weighted)"
    columns = np.array([values for _, values in rows])
    labels = [format_duration(start) for start, _ in rows]
    return _stacked_chart(columns, labels, title, output_path)


def render_comparison_chart(comparison: ComparisonSet, output_path: Path) -> Path:
    """
    Grouped raw bars per band, one colour per entry, K-weighted lines on top.

    Raises:
        ChartError: If the comparison has more entries than colour sets
    """
    entries = list(comparison)
    if len(entries) > MAX_CHART_FILES:
        raise ChartError(
            f"Charts support at most {MAX_CHART_FILES} files, got {len(entries)}",
            output_path=str(output_path),
        )

    fig, ax = plt.subplots(figsize=(14, 7))
    _style(fig, ax)

    x = np.arange(len(BAND_TABLE))
    width = 0.8 / len(entries)
    for position, entry in enumerate(entries):
        face, edge, line = COLOR_SETS[position]
        dist = entry.result.distribution
        offset = (position - (len(entries) - 1) / 2) * width
        ax.bar(x + offset, np.round(dist.raw, 1), width, color=face, edgecolor=edge,
               label=f"[{entry.label}] Raw")
        ax.plot(x, np.round(dist.weighted, 1), color=line, marker="o", linewidth=1.5,
                markersize=4, label=f"[{entry.label}] K-wt")

    ax.set_xticks(x)
    ax.set_xticklabels([band_label(band) for band in BAND_TABLE], fontsize=8)
    ax.set_ylabel("Power (%)", color=COLOR_TEXT)
    ax.set_ylim(bottom=0)
    fig.suptitle("Band Energy Distribution", fontsize=14, fontweight="bold", color=COLOR_TEXT)
    ax.set_title(
        "  vs  ".join(f"[{entry.label}] {entry.result.name}" for entry in entries),
        fontsize=10, color=COLOR_TEXT,
    )
    _legend(ax, loc="upper right")
    return _save(fig, output_path)


def render_chart(report: Chartable, output_path: Path, weighted: bool = False) -> Path:
    """
    Render the chart matching a report and write it to output_path.

    Args:
        report: Analysis result (with or without timeline) or comparison
        output_path: Image path; the format follows its suffix (PNG by default)
        weighted: Chart K-weighted percentages of a single-file result

    Returns:
        The path written

    Raises:
        ChartError: If the chart cannot be drawn or written
    """
    if isinstance(report, ComparisonSet):
        return render_comparison_chart(report, output_path)
    if report.timeline is not None:
        return render_timeline_chart(report, output_path)
    return render_distribution_chart(report, output_path, weighted=weighted)

