"""Summary statistics for a sample series."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from ._types import Statistics


def calculate_statistics(samples: Sequence[float] | np.ndarray) -> Statistics:
    """Count, mean, population standard deviation, min and max.

    An empty input gives all-zero statistics.
    """
    values = np.asarray(samples, dtype=float).ravel()
    if values.size == 0:
        return Statistics()
    return Statistics(
        count=int(values.size),
        mean=float(values.mean()),
        std=float(values.std(ddof=0)),
        minimum=float(values.min()),
        maximum=float(values.max()),
    )
