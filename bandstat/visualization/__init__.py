"""
Chart rendering for analysis reports.
"""

from bandstat.visualization.chart import (
    MAX_CHART_FILES,
    render_chart,
    render_comparison_chart,
    render_distribution_chart,
    render_timeline_chart,
)

__all__ = [
    "MAX_CHART_FILES",
    "render_chart",
    "render_comparison_chart",
    "render_distribution_chart",
    "render_timeline_chart",
]
