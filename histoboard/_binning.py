"""Bin raw samples into equal-width histogram intervals."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from ._errors import InvalidRange
from ._types import Bin, BinningResult, clamp_bin_count

OUTLIER_WARNING_FRACTION = 0.10
_EPS = np.finfo(float).eps


def format_range(lower: float, upper: float) -> str:
    return f"{lower:.2f}–{upper:.2f}"


def create_bins(samples: Sequence[float] | np.ndarray, bin_count: int = 10,
                custom_min: float | None = None,
                custom_max: float | None = None,
                warn_fraction: float = OUTLIER_WARNING_FRACTION,
                ) -> BinningResult:
    """Split *samples* into *bin_count* equal-width bins.

    The range is the data range unless a custom bound is given. Every bin
    is half-open ``[lower, upper)`` except the last, which is closed so the
    maximum always lands in it. With custom bounds, samples outside
    ``[min, max]`` are left out of the bins and tallied in
    ``BinningResult.excluded``; ``advisory`` is set when that tally exceeds
    *warn_fraction* of all samples.

    Raises
    ------
    InvalidRange
        If the effective minimum is not below the effective maximum. All-equal
        data without custom bounds is not an error: it yields a single bin.
    """
    values = np.asarray(samples, dtype=float).ravel()
    total = int(values.size)
    if total == 0:
        return BinningResult()

    bin_count = clamp_bin_count(bin_count)
    has_custom = custom_min is not None or custom_max is not None
    lo = float(custom_min) if custom_min is not None else float(values.min())
    hi = float(custom_max) if custom_max is not None else float(values.max())

    if not has_custom and abs(hi - lo) < _EPS:
        point = Bin(lower=lo, upper=lo, label=f"{lo:.2f}", frequency=total)
        return BinningResult(bins=(point,), total=total)

    if lo >= hi:
        raise InvalidRange(lo, hi)

    excluded = 0
    if has_custom:
        outside = (values < lo) | (values > hi)
        excluded = int(np.count_nonzero(outside))
        values = values[~outside]

    width = (hi - lo) / bin_count
    bins = []
    for i in range(bin_count):
        lower = lo + i * width
        last = i == bin_count - 1
        upper = hi if last else lo + (i + 1) * width
        if last:
            mask = (values >= lower) & (values <= upper)
        else:
            mask = (values >= lower) & (values < upper)
        bins.append(Bin(lower=lower, upper=upper,
                        label=format_range(lower, upper),
                        frequency=int(np.count_nonzero(mask))))

    advisory = has_custom and excluded > warn_fraction * total
    return BinningResult(bins=tuple(bins), excluded=excluded, total=total,
                         advisory=advisory)
