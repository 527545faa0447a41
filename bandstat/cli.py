"""
bandstat - Band Power Analysis CLI

Example usage:
    # Band distribution and dynamics of one file
    bandstat mix.wav

    # Compare a mix against references (the first file is the base [A])
    bandstat mix.wav ref1.flac ref2.mp3

    # Distribution per 10 second interval, K-weighted
    bandstat --time --interval 10 --weighted mix.wav

    # Save reports
    bandstat --output-file report.txt --output-json report.json mix.wav ref.wav

    # Save a chart (comparisons of up to 4 files)
    bandstat --image bands.png mix.wav ref.wav
"""

import argparse
import logging
import math
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from bandstat import __version__
from bandstat.core.comparator import MAX_ENTRIES
from bandstat.core.engine import BandPowerEngine, create_engine
from bandstat.core.result_writer import JSONReportWriter, Report, TextReportWriter, render
from bandstat.utils.config import load_config
from bandstat.utils.errors import BandStatError
from bandstat.utils.logging import setup_logging
from bandstat.visualization.chart import MAX_CHART_FILES, render_chart

logger = logging.getLogger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bandstat",
        description=(
            "Measure how signal power is distributed across 14 frequency bands, "
            "unweighted and K-weighted (ITU-R BS.1770-4)"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  one file              band distribution and dynamics
  one file with --time  distribution per interval
  2-10 files            comparison against the first file [A]
""",
    )
    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help=f"Audio files (WAV, AIFF, FLAC, MP3), up to {MAX_ENTRIES}",
    )
    parser.add_argument(
        "--time",
        action="store_true",
        help="Show the distribution per time interval (single file only)",
    )
    parser.add_argument(
        "-i", "--interval",
        type=float,
        default=None,
        help="Interval length in seconds for --time (default: 20)",
    )
    parser.add_argument(
        "-w", "--weighted",
        action="store_true",
        help="Show K-weighted percentages in the timeline and single-file chart",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Print only the tables: no file info, band ranges, legend or progress",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--output-file",
        type=Path,
        default=None,
        help="Write the text report to this file",
    )
    parser.add_argument(
        "--output-json",
        type=Path,
        default=None,
        help="Write the JSON report to this file",
    )
    parser.add_argument(
        "--image",
        type=Path,
        default=None,
        metavar="PATH",
        help=f"Save a chart image (PNG); comparisons of up to {MAX_CHART_FILES} files",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging and tracebacks",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """Return a usage error message, or None if the arguments are consistent."""
    if len(args.files) > MAX_ENTRIES:
        return f"at most {MAX_ENTRIES} files can be compared, got {len(args.files)}"
    if args.interval is not None and not args.time:
        return "--interval requires --time"
    if args.interval is not None and not (args.interval > 0 and math.isfinite(args.interval)):
        return f"--interval must be positive and finite, got {args.interval:g}"
    if args.time and len(args.files) > 1:
        return "--time works with a single file"
    if args.weighted and len(args.files) > 1:
        return "--weighted cannot be used when comparing files"
    if args.image is not None:
        if len(args.files) > MAX_CHART_FILES:
            return f"--image supports at most {MAX_CHART_FILES} files, got {len(args.files)}"
        if not args.image.parent.is_dir():
            return f"directory for --image does not exist: {args.image.parent}"
    return None


def _progress(args: argparse.Namespace, message: str) -> None:
    """Status line on stderr, unless quiet."""
    if not args.quiet:
        print(message, file=sys.stderr, flush=True)


def _emit(report: Report, args: argparse.Namespace) -> None:
    """Print the report and save the files requested."""
    print(render(report, quiet=args.quiet))

    if args.output_file:
        TextReportWriter().write(report, args.output_file)
        _progress(args, f"Text report saved to: {args.output_file}")

    if args.output_json:
        JSONReportWriter().write(report, args.output_json)
        _progress(args, f"JSON report saved to: {args.output_json}")

    if args.image:
        path = render_chart(report, args.image, weighted=args.weighted)
        _progress(args, f"Chart saved to: {path}")


def run_stats(engine: BandPowerEngine, args: argparse.Namespace) -> int:
    """Single-file distribution and dynamics."""
    if args.weighted and not args.image:
        logger.warning("--weighted only affects timeline output and charts")
    path = args.files[0]
    _progress(args, f"Analyzing {path.name}...")
    result = engine.analyze_file(path)
    _emit(result, args)
    return 0


def run_timeline(
    engine: BandPowerEngine, args: argparse.Namespace, interval: float
) -> int:
    """Per-interval distribution of one file."""
    path = args.files[0]
    _progress(args, f"Analyzing {path.name}...")
    result = engine.analyze_timeline_file(
        path, interval_seconds=interval, weighted=args.weighted
    )
    _emit(result, args)
    return 0


def run_compare(engine: BandPowerEngine, args: argparse.Namespace) -> int:
    """Comparison of 2-10 files against the first."""
    comparison, batch = engine.compare_files(
        args.files,
        progress_callback=lambda done, total, path: _progress(
            args, f"Analyzed {path.name} ({done}/{total})"
        ),
    )

    for path, error in batch.failed.items():
        print(f"Skipped {path.name}: {error}", file=sys.stderr)

    _emit(comparison, args)
    return 0 if batch.failure_count == 0 else 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for bandstat."""
    parser = build_parser()
    args = parser.parse_args(argv)

    error = validate_args(args)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(str(args.config) if args.config else None)
    except BandStatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    log_config = config.get("logging", {})
    if args.verbose:
        log_level = "DEBUG"
    elif args.quiet:
        log_level = "ERROR"
    else:
        log_level = log_config.get("level", "WARNING")
    setup_logging(
        level=log_level,
        log_format=log_config.get("format", "text"),
        log_file=log_config.get("file"),
    )

    interval = args.interval
    if interval is None:
        interval = config.get("timeline", {}).get("interval_seconds", 20.0)

    engine = create_engine(config)
    try:
        if len(args.files) > 1:
            code = run_compare(engine, args)
        elif args.time:
            code = run_timeline(engine, args, interval)
        else:
            code = run_stats(engine, args)
    except (BandStatError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        code = 1
    finally:
        engine.shutdown()

    sys.exit(code)


if __name__ == "__main__":
    main()
