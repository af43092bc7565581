"""HistogramBoard: main orchestrator that wires everything together."""
from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Any, Callable, Sequence

import ipywidgets as widgets
import numpy as np
from IPython.display import display
from matplotlib.figure import Figure

from ._collection import HistogramCollection, HistogramSeries
from ._config import layouts_dir, load_config
from ._layout import list_layouts
from ._renderer import CanvasManager
from ._samples import SampleSource, generate_samples, parse_text_entry
from ._surface import DesignSurface, FigureSurface
from ._sync import LayoutSyncController
from ._types import LayoutDocument, LayoutSummary

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_NAME = "ChartLayout.xml"


class HistogramBoard:
    """A set of histogram series drawn on one shared, editable figure.

    Parameters
    ----------
    fig : Figure, optional
        Figure used by the default :class:`FigureSurface`.
    surface : DesignSurface, optional
        Use a different design surface instead of a figure.
    rng : numpy.random.Generator, optional
        Source for generated sample data; seed it for reproducible data.
    config : dict, optional
        Settings as returned by :func:`load_config`.
    designer : callable, optional
        Called with the figure when the designer is opened (for example an
        interactive figure editor). Call :meth:`end_designer_session` when
        the user is done.
    sample_data : bool
        Start with one series filled with generated data.
    """

    def __init__(self, fig: Figure | None = None,
                 surface: DesignSurface | None = None,
                 rng: np.random.Generator | None = None,
                 config: dict[str, Any] | None = None,
                 designer: Callable[[Any], Any] | None = None,
                 sample_data: bool = True):
        self._config = config if config is not None else load_config()
        self._rng = rng if rng is not None else np.random.default_rng()
        self._source = SampleSource()
        self._designer = designer
        self._surface = surface if surface is not None else FigureSurface(fig)
        self._collection = HistogramCollection(
            default_bin_count=int(self._config.get("default_bin_count", 10)),
            warn_fraction=float(
                self._config.get("outlier_warning_fraction", 0.10)))
        self._controller = LayoutSyncController(self._collection,
                                                self._surface)
        self._canvas: CanvasManager | None = None
        self._on_status: Callable[[], None] | None = None
        self.status = ""
        self._subscriptions = [
            self._controller.designer_requested.subscribe(
                self._handle_designer_requested),
            self._controller.layout_loaded.subscribe(
                self._handle_layout_loaded),
        ]
        if sample_data:
            series = self.add_series()
            self.generate_samples(1000, 50, 15, series.id)
            self._set_status("Default sample data loaded (1000 points)")

    # -- accessors ---------------------------------------------------------

    @property
    def collection(self) -> HistogramCollection:
        return self._collection

    @property
    def controller(self) -> LayoutSyncController:
        return self._controller

    @property
    def surface(self) -> DesignSurface:
        return self._surface

    @property
    def active(self) -> HistogramSeries | None:
        return self._collection.active

    def _series(self, series_id: int | None) -> HistogramSeries:
        if series_id is not None:
            return self._collection.get(series_id)
        active = self._collection.active
        if active is None:
            raise LookupError("No histogram selected.")
        return active

    def _set_status(self, message: str) -> None:
        self.status = message
        logger.info(message)
        if self._on_status is not None:
            self._on_status()

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.dispose()
        self._subscriptions.clear()
        self._controller.close()

    # -- series management -------------------------------------------------

    def add_series(self, name: str | None = None) -> HistogramSeries:
        series = self._collection.add(name)
        self._set_status(f"Added {series.name}")
        return series

    def remove_series(self, series_id: int | None = None) -> None:
        series = self._series(series_id)
        self._collection.remove(series.id)
        self._set_status(f"Removed {series.name}")

    def rename_series(self, name: str, series_id: int | None = None) -> None:
        self._collection.rename(self._series(series_id).id, name)

    def select(self, series_id: int) -> None:
        self._collection.set_active(series_id)

    # -- data --------------------------------------------------------------

    def _report_bins(self, series: HistogramSeries) -> None:
        result = series.result
        message = f"Histogram updated with {len(result)} bins"
        if result.advisory:
            message += (f" ({result.excluded} of {result.total} values "
                        f"outside the range)")
        self._set_status(message)

    def set_samples(self, samples: Sequence[float],
                    series_id: int | None = None) -> None:
        series = self._series(series_id)
        self._collection.set_samples(series.id, samples)
        self._report_bins(series)

    def enter_samples(self, text: str, series_id: int | None = None) -> int:
        """Parse typed-in numbers; a bad token aborts with SampleParseError."""
        values = parse_text_entry(text)
        if not values:
            self._set_status("No valid numbers found in the input.")
            return 0
        series = self._series(series_id)
        self._collection.set_samples(series.id, values)
        self._set_status(f"Successfully loaded {len(values)} data points.")
        return len(values)

    def load_samples(self, path: str | Path,
                     series_id: int | None = None) -> int:
        """Load a data file; non-numeric tokens in it are skipped."""
        values = self._source.load(path)
        if not values:
            self._set_status("No valid numbers found in the selected file.")
            return 0
        series = self._series(series_id)
        self._collection.set_bounds(series.id, None, None)
        self._collection.set_samples(series.id, values)
        self._collection.reset_bounds(series.id)
        self._set_status(
            f"Successfully loaded {len(values)} data points from file.")
        return len(values)

    def save_samples(self, path: str | Path,
                     series_id: int | None = None) -> Path:
        series = self._series(series_id)
        if not series.has_data:
            raise ValueError("No data to save.")
        saved = self._source.save(path, series.samples.tolist())
        self._set_status(f"Data saved successfully to {saved}")
        return saved

    def generate_samples(self, count: int = 1000, mean: float = 50.0,
                         std: float = 15.0,
                         series_id: int | None = None) -> None:
        series = self._series(series_id)
        values = generate_samples(count, mean, std, self._rng)
        self._collection.set_samples(series.id, values)

    def clear_data(self, series_id: int | None = None) -> None:
        series = self._series(series_id)
        self._collection.clear_samples(series.id)
        self._set_status("Data cleared")

    def set_bin_count(self, bin_count: int,
                      series_id: int | None = None) -> None:
        series = self._series(series_id)
        self._collection.set_bin_count(series.id, bin_count)
        self._report_bins(series)

    def apply_range(self, lower: float | None, upper: float | None,
                    series_id: int | None = None) -> None:
        series = self._series(series_id)
        self._collection.set_bounds(series.id, lower, upper)
        self._report_bins(series)

    def reset_range(self, series_id: int | None = None) -> None:
        series = self._series(series_id)
        self._collection.reset_bounds(series.id)
        self._report_bins(series)

    # -- designer and layouts ----------------------------------------------

    def open_designer(self) -> None:
        self._controller.open_designer()

    def end_designer_session(self) -> None:
        self._controller.end_designer_session()
        self._set_status("Designer closed; data bindings restored")

    def _handle_designer_requested(self) -> None:
        if self._designer is not None and isinstance(self._surface,
                                                     FigureSurface):
            self._designer(self._surface.figure)
        self._set_status("Designer open")

    def _handle_layout_loaded(self, document: LayoutDocument) -> None:
        self._set_status(
            f"Chart layout loaded ({len(document.configs)} configuration(s))")

    def _layout_path(self, path: str | Path | None) -> Path:
        if path is None:
            return layouts_dir(self._config) / DEFAULT_LAYOUT_NAME
        return Path(path)

    def save_layout(self, path: str | Path | None = None,
                    description: str | None = None) -> Path:
        saved = self._controller.save_layout(self._layout_path(path),
                                             description)
        self._set_status(f"Chart layout saved to {saved}")
        return saved

    def load_layout(self, path: str | Path | None = None) -> LayoutDocument:
        return self._controller.load_layout_file(self._layout_path(path))

    def list_layouts(self, directory: str | Path | None = None
                     ) -> list[LayoutSummary]:
        return list_layouts(directory if directory is not None
                            else layouts_dir(self._config))

    # -- widget front end --------------------------------------------------

    def _stats_html(self) -> str:
        series = self._collection.active
        if series is None:
            return "<i>No histogram</i>"
        st = series.statistics
        return (f"<b>{html.escape(series.name)}</b>: n={st.count:,} "
                f"mean={st.mean:.2f} sd={st.std:.2f} "
                f"min={st.minimum:.2f} max={st.maximum:.2f}")

    def display(self) -> None:
        """Show the chart with a small control toolbar (Jupyter)."""
        display(self.build_widget())

    def build_widget(self) -> widgets.Widget:
        if isinstance(self._surface, FigureSurface):
            self._canvas = CanvasManager(self._surface.figure)
            self._surface.canvas = self._canvas
        lay = widgets.Layout

        series_dd = widgets.Dropdown(description="Series:",
                                     layout=lay(width="220px"))
        name_field = widgets.Text(placeholder="new name",
                                  layout=lay(width="140px"))
        bins_sl = widgets.IntSlider(value=10, min=1, max=100,
                                    description="Bins:",
                                    continuous_update=False)
        min_field = widgets.FloatText(description="Min:",
                                      layout=lay(width="150px"))
        max_field = widgets.FloatText(description="Max:",
                                      layout=lay(width="150px"))
        data_area = widgets.Textarea(placeholder="1, 2, 3.5 ...",
                                     layout=lay(width="100%", height="60px"))
        path_field = widgets.Text(placeholder="path/to/file",
                                  layout=lay(width="260px"))
        stats = widgets.HTML()
        status = widgets.HTML()
        syncing = {"on": False}

        def _refresh():
            syncing["on"] = True
            try:
                series_dd.options = [(s.name, s.id) for s in self._collection]
                active = self._collection.active
                if active is not None:
                    series_dd.value = active.id
                    bins_sl.value = active.bin_count
                stats.value = self._stats_html()
                status.value = html.escape(self.status)
            finally:
                syncing["on"] = False
            if self._canvas is not None:
                self._canvas.force_redraw()

        self._on_status = _refresh

        def _guard(fn):
            def handler(*_args):
                try:
                    fn()
                except Exception as e:
                    status.value = (f"<span style='color:red'>Error: "
                                    f"{html.escape(str(e))}</span>")
                    return
                _refresh()
            return handler

        def _button(text, icon, fn):
            btn = widgets.Button(description=text, icon=icon,
                                 layout=lay(width="auto"))
            btn.on_click(_guard(fn))
            return btn

        def _on_series(change):
            if not syncing["on"] and change["new"] is not None:
                _guard(lambda: self.select(change["new"]))()

        def _on_bins(change):
            if not syncing["on"]:
                _guard(lambda: self.set_bin_count(change["new"]))()

        series_dd.observe(_on_series, names="value")
        bins_sl.observe(_on_bins, names="value")

        toolbar = widgets.VBox([
            widgets.HBox([
                series_dd,
                _button("Add", "plus", lambda: self.add_series()),
                _button("Remove", "trash", lambda: self.remove_series()),
                name_field,
                _button("Rename", "pencil",
                        lambda: self.rename_series(name_field.value)),
            ]),
            widgets.HBox([
                bins_sl, min_field, max_field,
                _button("Apply range", "check", lambda: self.apply_range(
                    min_field.value, max_field.value)),
                _button("Reset range", "undo", lambda: self.reset_range()),
            ]),
            data_area,
            widgets.HBox([
                _button("Load data", "upload",
                        lambda: self.enter_samples(data_area.value)),
                _button("Clear", "times", lambda: self.clear_data()),
                path_field,
                _button("Open file", "folder-open",
                        lambda: self.load_samples(path_field.value)),
                _button("Save file", "download",
                        lambda: self.save_samples(path_field.value)),
            ]),
            widgets.HBox([
                _button("Designer", "paint-brush",
                        lambda: self.open_designer()),
                _button("Done editing", "check-square",
                        lambda: self.end_designer_session()),
                _button("Save layout", "save", lambda: self.save_layout(
                    path_field.value or None)),
                _button("Load layout", "folder", lambda: self.load_layout(
                    path_field.value or None)),
            ]),
            stats,
            status,
        ])
        _refresh()
        children = [toolbar]
        if self._canvas is not None:
            children.append(self._canvas.widget)
        return widgets.VBox(children)
