"""HistogramCollection: the ordered set of named sample series.

Every change goes through the collection so that derived bins/statistics
are recomputed and the matching notification is emitted:

* ``structure_changed()`` after add / remove / rename,
* ``series_updated(series_id)`` after any data, bin-count or bounds change,
* ``active_changed(series_id | None)`` after the active series changes.
"""
from __future__ import annotations

import itertools
import logging
from typing import Iterator, Sequence

import numpy as np

from ._binning import OUTLIER_WARNING_FRACTION, create_bins
from ._events import EventHook
from ._stats import calculate_statistics
from ._types import (
    DEFAULT_BIN_COUNT, BinningResult, SeriesConfig, Statistics,
    clamp_bin_count,
)

logger = logging.getLogger(__name__)


class HistogramSeries:
    """One named sample series with its derived bins and statistics.

    Instances are created and mutated by :class:`HistogramCollection` only;
    the public attributes are meant to be read.
    """

    def __init__(self, series_id: int, name: str,
                 bin_count: int = DEFAULT_BIN_COUNT):
        self._id = series_id
        self.name = name
        self.samples: np.ndarray = np.empty(0, dtype=float)
        self.bin_count = clamp_bin_count(bin_count)
        self.min_value: float | None = None
        self.max_value: float | None = None
        self.result = BinningResult()
        self.statistics = Statistics()
        self._active = False

    def __repr__(self) -> str:
        return (f"HistogramSeries(id={self._id}, name={self.name!r}, "
                f"n={self.samples.size}, bins={self.bin_count})")

    @property
    def id(self) -> int:
        return self._id

    @property
    def active(self) -> bool:
        return self._active

    @property
    def bins(self) -> tuple:
        return self.result.bins

    @property
    def advisory(self) -> bool:
        """True when too many samples fall outside the custom bounds."""
        return self.result.advisory

    @property
    def has_data(self) -> bool:
        return self.samples.size > 0

    @property
    def has_bounds(self) -> bool:
        return self.min_value is not None and self.max_value is not None

    def to_config(self, description: str | None = None) -> SeriesConfig:
        return SeriesConfig(
            name=self.name,
            bin_count=self.bin_count,
            min_value=self.min_value,
            max_value=self.max_value,
            statistics=self.statistics,
            description=self.name if description is None else description,
        )


class HistogramCollection:
    """Ordered collection of :class:`HistogramSeries` with one active entry."""

    def __init__(self, default_bin_count: int = DEFAULT_BIN_COUNT,
                 warn_fraction: float = OUTLIER_WARNING_FRACTION):
        self._series: list[HistogramSeries] = []
        self._ids = itertools.count(1)
        self._default_bin_count = clamp_bin_count(default_bin_count)
        self._warn_fraction = warn_fraction
        self.structure_changed = EventHook("structure_changed")
        self.series_updated = EventHook("series_updated")
        self.active_changed = EventHook("active_changed")

    # -- container protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self._series)

    def __iter__(self) -> Iterator[HistogramSeries]:
        return iter(list(self._series))

    def __getitem__(self, index: int) -> HistogramSeries:
        return self._series[index]

    def get(self, series_id: int) -> HistogramSeries:
        for s in self._series:
            if s.id == series_id:
                return s
        raise KeyError(f"No histogram with id {series_id}")

    def index_of(self, series_id: int) -> int:
        for i, s in enumerate(self._series):
            if s.id == series_id:
                return i
        return -1

    @property
    def active(self) -> HistogramSeries | None:
        for s in self._series:
            if s.active:
                return s
        return None

    # -- structural operations ---------------------------------------------

    def add(self, name: str | None = None) -> HistogramSeries:
        """Append an empty series; the first one added becomes active."""
        if name is None or not name.strip():
            name = f"Histogram {len(self._series) + 1}"
        series = HistogramSeries(next(self._ids), name.strip(),
                                 self._default_bin_count)
        self._series.append(series)
        logger.debug("Added %r", series)
        if len(self._series) == 1:
            series._active = True
        self.structure_changed.emit()
        if series.active:
            self.active_changed.emit(series.id)
        return series

    def remove(self, series_id: int) -> None:
        series = self.get(series_id)
        was_active = series.active
        self._series.remove(series)
        series._active = False
        logger.debug("Removed %r", series)
        new_active = None
        if was_active and self._series:
            new_active = self._series[0]
            new_active._active = True
        self.structure_changed.emit()
        if was_active:
            self.active_changed.emit(
                new_active.id if new_active is not None else None)

    def rename(self, series_id: int, new_name: str) -> None:
        series = self.get(series_id)
        if new_name is None or not new_name.strip():
            return
        new_name = new_name.strip()
        if new_name == series.name:
            return
        series.name = new_name
        self.structure_changed.emit()

    def set_active(self, series_id: int) -> None:
        target = self.get(series_id)
        if target.active:
            return
        previous = self.active
        if previous is not None:
            previous._active = False
        target._active = True
        self.active_changed.emit(target.id)

    # -- data operations ---------------------------------------------------

    def set_samples(self, series_id: int,
                    samples: Sequence[float] | np.ndarray) -> None:
        series = self.get(series_id)
        values = np.asarray(samples, dtype=float).ravel().copy()
        self._update(series, values, series.bin_count,
                     series.min_value, series.max_value)

    def clear_samples(self, series_id: int) -> None:
        series = self.get(series_id)
        self._update(series, np.empty(0, dtype=float), series.bin_count,
                     series.min_value, series.max_value)

    def set_bin_count(self, series_id: int, bin_count: int) -> None:
        series = self.get(series_id)
        self._update(series, series.samples, clamp_bin_count(bin_count),
                     series.min_value, series.max_value)

    def set_bounds(self, series_id: int, lower: float | None,
                   upper: float | None) -> None:
        """Set custom bounds; pass ``None`` for both to use the data range."""
        if (lower is None) != (upper is None):
            raise ValueError("Custom bounds must be set together")
        series = self.get(series_id)
        if lower is not None:
            lower, upper = float(lower), float(upper)
        self._update(series, series.samples, series.bin_count, lower, upper)

    def reset_bounds(self, series_id: int) -> None:
        """Pin the custom bounds to the current data range.

        All-equal data has no range to pin, so its bounds are cleared and
        it keeps its single bin.
        """
        series = self.get(series_id)
        if not series.has_data:
            return
        lower = float(series.samples.min())
        upper = float(series.samples.max())
        if lower < upper:
            self.set_bounds(series_id, lower, upper)
        else:
            self.set_bounds(series_id, None, None)

    def apply_config(self, series_id: int, config: SeriesConfig) -> None:
        series = self.get(series_id)
        lower, upper = (config.min_value, config.max_value) \
            if config.has_bounds else (None, None)
        self._update(series, series.samples,
                     clamp_bin_count(config.bin_count), lower, upper)

    def _update(self, series: HistogramSeries, samples: np.ndarray,
                bin_count: int, lower: float | None,
                upper: float | None) -> None:
        # Compute before committing so a bad range leaves the series intact.
        result = create_bins(samples, bin_count, lower, upper,
                             warn_fraction=self._warn_fraction)
        stats = calculate_statistics(samples)
        series.samples = samples
        series.bin_count = bin_count
        series.min_value = lower
        series.max_value = upper
        series.result = result
        series.statistics = stats
        if result.advisory:
            logger.warning(
                "%s: %d of %d samples lie outside [%g, %g]",
                series.name, result.excluded, result.total, lower, upper)
        self.series_updated.emit(series.id)
