"""
Comparator: lines up 2-10 analysis results against the first one.

Entries are labelled A, B, C, ... in input order; A is the base. Diff rows
are derived on demand and never stored.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from bandstat.core.models import BAND_NAMES, AnalysisResult
from bandstat.utils.errors import InvalidConfigurationError

MIN_ENTRIES: int = 2
MAX_ENTRIES: int = 10
LABELS: str = "ABCDEFGHIJ"

RAW = "Raw"
WEIGHTED = "K-wt"
DYNAMICS = "Dyn"


@dataclass(frozen=True)
class ComparisonEntry:
    label: str
    result: AnalysisResult


@dataclass(frozen=True)
class DiffRow:
    """Per-band difference of one entry against the base."""

    label: str  # e.g. "B-A"
    kind: str   # RAW, WEIGHTED or DYNAMICS
    values: Tuple[Optional[float], ...]

    @property
    def title(self) -> str:
        return f"{self.label} {self.kind}"

    def as_dict(self) -> Dict[str, Optional[float]]:
        return dict(zip(BAND_NAMES, self.values))


def validate_entry_count(count: int) -> None:
    """
    Raises:
        InvalidConfigurationError: If count is outside [MIN_ENTRIES, MAX_ENTRIES]
    """
    if not MIN_ENTRIES <= count <= MAX_ENTRIES:
        raise InvalidConfigurationError(
            f"Comparison needs {MIN_ENTRIES}-{MAX_ENTRIES} files, got {count}"
        )


class ComparisonSet:
    """
    Ordered, labelled analysis results with base-relative diffs.

    Inputs that could not be analyzed are listed in `failed` as
    (name, error) pairs; they get no label.
    """

    def __init__(
        self,
        results: Sequence[AnalysisResult],
        failed: Optional[Sequence[Tuple[str, str]]] = None,
    ):
        validate_entry_count(len(results))
        self.failed: Tuple[Tuple[str, str], ...] = tuple(failed or ())
        self.entries: Tuple[ComparisonEntry, ...] = tuple(
            ComparisonEntry(LABELS[i], result) for i, result in enumerate(results)
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ComparisonEntry]:
        return iter(self.entries)

    @property
    def base(self) -> ComparisonEntry:
        return self.entries[0]

    @property
    def others(self) -> Tuple[ComparisonEntry, ...]:
        return self.entries[1:]

    def entry(self, label: str) -> ComparisonEntry:
        for entry in self.entries:
            if entry.label == label:
                return entry
        raise KeyError(f"No entry labelled {label}")

    def diff_rows(self, entry: ComparisonEntry) -> Tuple[DiffRow, DiffRow]:
        """Raw and K-weighted differences of an entry against the base."""
        if entry.label == self.base.label:
            raise ValueError("The base entry is not diffed against itself")
        label = f"{entry.label}-{self.base.label}"
        ours = entry.result.distribution
        base = self.base.result.distribution
        return (
            DiffRow(label, RAW, tuple((ours.raw - base.raw).tolist())),
            DiffRow(label, WEIGHTED, tuple((ours.weighted - base.weighted).tolist())),
        )

    def dynamics_diff(self, entry: ComparisonEntry) -> DiffRow:
        """Dynamics difference; undefined where either side is undefined."""
        if entry.label == self.base.label:
            raise ValueError("The base entry is not diffed against itself")
        ours = entry.result.dynamics
        base = self.base.result.dynamics
        if ours is None or base is None:
            values: Tuple[Optional[float], ...] = (None,) * len(BAND_NAMES)
        else:
            values = tuple(
                None if a is None or b is None else a - b
                for a, b in zip(ours.values, base.values)
            )
        return DiffRow(f"{entry.label}-{self.base.label}", DYNAMICS, values)

    def rows(self) -> Iterator[DiffRow]:
        """All distribution diff rows in entry order."""
        for entry in self.others:
            yield from self.diff_rows(entry)

    def to_dict(self) -> Dict[str, Any]:
        diffs: List[Dict[str, Any]] = []
        for entry in self.others:
            for row in (*self.diff_rows(entry), self.dynamics_diff(entry)):
                diffs.append({'row': row.title, 'bands': row.as_dict()})
        return {
            'entries': [
                {'label': entry.label, 'result': entry.result.to_dict()}
                for entry in self.entries
            ],
            'diffs': diffs,
            'skipped': [{'name': name, 'error': error} for name, error in self.failed],
        }


def compare(
    results: Sequence[AnalysisResult],
    failed: Optional[Sequence[Tuple[str, str]]] = None,
) -> ComparisonSet:
    return ComparisonSet(results, failed)
