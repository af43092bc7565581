"""Histogram data structures shared by the engine, collection and layouts."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Iterator

MIN_BIN_COUNT = 1
MAX_BIN_COUNT = 100
DEFAULT_BIN_COUNT = 10


def clamp_bin_count(value: int) -> int:
    return max(MIN_BIN_COUNT, min(MAX_BIN_COUNT, int(value)))


@dataclass(frozen=True)
class Bin:
    """One histogram interval; only the last bin of a series is closed."""

    lower: float
    upper: float
    label: str
    frequency: int = 0


@dataclass(frozen=True)
class Statistics:
    count: int = 0
    mean: float = 0.0
    std: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0


@dataclass(frozen=True)
class BinningResult:
    """Bins plus the out-of-range tally from custom bounds.

    Behaves like the bin sequence itself (len, iteration, indexing).
    ``advisory`` is set when too many samples fell outside the bounds;
    it is a warning for the user, not an error.
    """

    bins: tuple[Bin, ...] = ()
    excluded: int = 0
    total: int = 0
    advisory: bool = False

    def __len__(self) -> int:
        return len(self.bins)

    def __iter__(self) -> Iterator[Bin]:
        return iter(self.bins)

    def __getitem__(self, index):
        return self.bins[index]

    @property
    def binned(self) -> int:
        return sum(b.frequency for b in self.bins)


@dataclass
class SeriesConfig:
    """Per-series settings as stored in a layout document."""

    name: str = ""
    bin_count: int = DEFAULT_BIN_COUNT
    min_value: float | None = None
    max_value: float | None = None
    statistics: Statistics = field(default_factory=Statistics)
    description: str = ""
    saved_at: datetime | None = None

    @property
    def has_bounds(self) -> bool:
        return self.min_value is not None and self.max_value is not None


class LayoutFormat(Enum):
    UNIFIED = auto()
    SINGLE = auto()
    LEGACY = auto()


@dataclass
class LayoutDocument:
    """A persisted layout: ordered series configs plus the surface blob.

    ``configs`` is positional; index *i* belongs to the *i*-th series at
    the time the document was written.
    """

    format: LayoutFormat
    version: str
    blob: bytes
    configs: list[SeriesConfig] = field(default_factory=list)
    description: str = ""
    saved_at: datetime | None = None


@dataclass(frozen=True)
class LayoutSummary:
    file_name: str
    saved_at: datetime | None
    description: str
    series_names: tuple[str, ...] = ()
    data_point_counts: tuple[int, ...] = ()

    @property
    def total_series(self) -> int:
        return len(self.series_names)


class SyncState(Enum):
    IDLE = auto()
    LOADING_LAYOUT = auto()
