"""histoboard: several histograms on one hand-editable matplotlib figure.

Usage:
    # Open a board in Jupyter, seeded with sample data
    board = histoboard()

    # Work with the core objects directly
    from histoboard import HistogramCollection, LayoutSyncController
    from histoboard import FigureSurface

    coll = HistogramCollection()
    ctrl = LayoutSyncController(coll, FigureSurface())
    s = coll.add()
    coll.set_samples(s.id, [1, 2, 3, 4, 5])
    ctrl.save_layout("layout.xml")
"""
from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    "histoboard",
    "HistogramBoard",
    "HistogramCollection",
    "HistogramSeries",
    "LayoutSyncController",
    "DesignSurface",
    "FigureSurface",
    "SampleSource",
    "create_bins",
    "calculate_statistics",
    "read_layout",
    "read_single",
    "write_layout",
    "list_layouts",
    "detect_format",
    "configure_logging",
    "parse_samples",
    "parse_text_entry",
    "Bin",
    "BinningResult",
    "LayoutDocument",
    "LayoutFormat",
    "SeriesConfig",
    "Statistics",
    "SyncState",
    "HistogramError",
    "InvalidRange",
    "InvalidDocument",
    "InvalidFormat",
    "InvalidOperation",
    "FormatUnrecognized",
    "LayoutError",
    "NotFound",
    "InitializationError",
    "SampleParseError",
    "DataFileError",
]

from typing import Any

from matplotlib.figure import Figure

from ._api import HistogramBoard
from ._binning import create_bins
from ._collection import HistogramCollection, HistogramSeries
from ._config import configure_logging
from ._errors import (
    DataFileError, FormatUnrecognized, HistogramError, InitializationError,
    InvalidDocument, InvalidFormat, InvalidOperation, InvalidRange,
    LayoutError, NotFound, SampleParseError,
)
from ._layout import detect_format, list_layouts, read_layout, read_single, write_layout
from ._samples import SampleSource, parse_samples, parse_text_entry
from ._stats import calculate_statistics
from ._surface import DesignSurface, FigureSurface
from ._sync import LayoutSyncController
from ._types import (
    Bin, BinningResult, LayoutDocument, LayoutFormat, SeriesConfig,
    Statistics, SyncState,
)


def histoboard(fig: Figure | None = None, **kwargs: Any) -> HistogramBoard:
    """Create a :class:`HistogramBoard` and display it.

    Keyword arguments are passed to :class:`HistogramBoard`.
    """
    board = HistogramBoard(fig, **kwargs)
    board.display()
    return board
