"""LayoutSyncController keeps the design surface in step with the series.

Two kinds of update are issued to the surface:

rebuild
    Throw away every pane and regenerate one per series. Needed when the
    set of series changes (add / remove / rename) or when the surface no
    longer matches the series list.
rebind
    Re-attach bins and labels to panes that already exist, leaving their
    arrangement and any hand-made styling alone. Used for data changes,
    after an external edit session, and after a layout has been restored.

While a layout is being restored (``SyncState.LOADING_LAYOUT``) rebuild and
rebind requests are dropped so they cannot clobber the incoming structure;
completing the load runs one full rebind pass. All surface work goes
through a :class:`SyncQueue`, so requests raised while an update is still
running are executed afterwards, in order, instead of interleaving.
"""
from __future__ import annotations

import logging
from pathlib import Path

from ._binning import create_bins
from ._collection import HistogramCollection
from ._commands import REBIND, REBIND_ALL, REBUILD, SyncCommand, SyncQueue
from ._errors import InitializationError, InvalidDocument, LayoutError
from ._events import EventHook
from ._layout import read_layout, write_layout
from ._surface import DesignSurface, ElementSpec
from ._types import LayoutDocument, SyncState

logger = logging.getLogger(__name__)


class LayoutSyncController:
    """Reconciles a :class:`DesignSurface` with a :class:`HistogramCollection`.

    Notifications
    -------------
    designer_requested()
        The surface should be handed to the user for external editing.
    sync_failed(error)
        A collection change could not be applied to the surface (no
        surface attached). The collection change itself stands.
    save_layout_requested(path)
        A layout is about to be written to *path*.
    layout_loaded(document)
        A layout finished loading and data has been rebound.
    """

    def __init__(self, collection: HistogramCollection,
                 surface: DesignSurface | None = None):
        self._collection = collection
        self._surface = surface
        self._state = SyncState.IDLE
        self._designer_open = False
        self._loading: LayoutDocument | None = None
        self._queue = SyncQueue()
        self.designer_requested = EventHook("designer_requested")
        self.save_layout_requested = EventHook("save_layout_requested")
        self.layout_loaded = EventHook("layout_loaded")
        self.sync_failed = EventHook("sync_failed")
        self._subscriptions = [
            collection.structure_changed.subscribe(self._on_structure_changed),
            collection.series_updated.subscribe(self._on_series_updated),
        ]

    # -- properties --------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def designer_open(self) -> bool:
        return self._designer_open

    @property
    def surface(self) -> DesignSurface | None:
        return self._surface

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    def attach_surface(self, surface: DesignSurface) -> None:
        self._surface = surface

    def close(self) -> None:
        """Stop listening to the collection."""
        for sub in self._subscriptions:
            sub.dispose()
        self._subscriptions.clear()

    def _require_surface(self) -> DesignSurface:
        if self._surface is None:
            raise InitializationError("Chart design surface not initialized.")
        return self._surface

    # -- collection events -------------------------------------------------

    # These run inside the collection's emit, so they must not raise
    # through it: the collection has already committed the change.

    def _unbound(self, what: str) -> bool:
        if self._surface is not None:
            return False
        error = InitializationError("Chart design surface not initialized.")
        logger.error("Cannot %s: %s", what, error)
        self.sync_failed.emit(error)
        return True

    def _on_structure_changed(self) -> None:
        if self._unbound("rebuild chart"):
            return
        self.request_rebuild()

    def _on_series_updated(self, series_id: int) -> None:
        if self._unbound(f"rebind series {series_id}"):
            return
        self.request_rebind(series_id)

    # -- requests ----------------------------------------------------------

    def request_rebuild(self) -> None:
        self._require_surface()
        if self._state is SyncState.LOADING_LAYOUT:
            logger.debug("Rebuild suppressed while loading layout")
            return
        self._queue.submit(SyncCommand(REBUILD, self._rebuild,
                                       description="rebuild chart"))

    def request_rebind(self, series_id: int) -> None:
        self._require_surface()
        if self._state is SyncState.LOADING_LAYOUT:
            logger.debug("Rebind of %s suppressed while loading layout",
                         series_id)
            return
        self._queue.submit(SyncCommand(
            REBIND, lambda: self._rebind(series_id), series_id=series_id,
            description=f"rebind series {series_id}"))

    def request_rebind_all(self) -> None:
        self._require_surface()
        if self._state is SyncState.LOADING_LAYOUT:
            logger.debug("Rebind pass suppressed while loading layout")
            return
        self._queue.submit(SyncCommand(REBIND_ALL, self._rebind_all,
                                       description="rebind all series"))

    def needs_rebuild(self) -> bool:
        """True if the surface does not structurally match the series list.

        The pane count must equal the series count and every pane must
        still have a data source.
        """
        elements = self._require_surface().elements()
        if len(elements) != len(self._collection):
            logger.debug("Chart structure mismatch: %d pane(s), %d series",
                         len(elements), len(self._collection))
            return True
        for i, element in enumerate(elements):
            if element.data_source is None:
                logger.debug("Pane %d has no data source", i)
                return True
        return False

    def refresh(self) -> None:
        """Bring the surface up to date, rebuilding only if it is needed."""
        self._require_surface()
        if self._state is SyncState.LOADING_LAYOUT:
            return
        if self.needs_rebuild():
            self.request_rebuild()
        else:
            self.request_rebind_all()

    # -- external edit session ---------------------------------------------

    def open_designer(self) -> None:
        """Sync the surface and hand it over for external editing."""
        self.refresh()
        self._designer_open = True
        self.designer_requested.emit()

    def end_designer_session(self) -> None:
        """The external editor returned control; restore data bindings.

        Editors may replace panes internally and lose their bindings, so
        every pane is rebound without altering the structure.
        """
        self._require_surface()
        self._designer_open = False
        self.request_rebind_all()

    # -- layouts -----------------------------------------------------------

    def _check_configs(self, document: LayoutDocument) -> None:
        # Every config must bin its series before anything is changed.
        for series, config in zip(list(self._collection), document.configs):
            lower, upper = (config.min_value, config.max_value) \
                if config.has_bounds else (None, None)
            create_bins(series.samples, config.bin_count, lower, upper)

    def begin_load(self, document: LayoutDocument) -> None:
        """Restore *document* into the surface and apply its settings.

        Data is not rebound until :meth:`finish_load`. Configs are checked
        against the current samples first, so a bad range fails before the
        surface or any series is touched.
        """
        surface = self._require_surface()
        if self._state is SyncState.LOADING_LAYOUT:
            raise RuntimeError("A layout is already being loaded.")
        self._check_configs(document)
        self._state = SyncState.LOADING_LAYOUT
        self._loading = document
        try:
            surface.deserialize(document.blob)
            for series, config in zip(list(self._collection),
                                      document.configs):
                self._collection.apply_config(series.id, config)
        except Exception:
            self._state = SyncState.IDLE
            self._loading = None
            # The surface may have been cleared part way through.
            if self.needs_rebuild():
                self.request_rebuild()
            raise
        logger.debug("Restoring layout with %d configuration(s)",
                     len(document.configs))

    def finish_load(self) -> None:
        if self._state is not SyncState.LOADING_LAYOUT:
            return
        document = self._loading
        self._state = SyncState.IDLE
        self._loading = None
        self.request_rebind_all()
        self.layout_loaded.emit(document)

    def load_layout(self, document: LayoutDocument) -> None:
        self.begin_load(document)
        self.finish_load()

    def load_layout_file(self, path: str | Path) -> LayoutDocument:
        """Read *path* and load it; restore failures carry the path."""
        document = read_layout(path)
        try:
            self.load_layout(document)
        except LayoutError:
            raise
        except ValueError as e:
            raise InvalidDocument(f"Could not restore layout: {e}",
                                  path) from e
        return document

    def save_layout(self, path: str | Path,
                    description: str | None = None) -> Path:
        """Write every series' settings and the surface to a unified layout."""
        surface = self._require_surface()
        if not len(self._collection):
            raise InvalidDocument("There are no histograms to save.", path)
        self.save_layout_requested.emit(Path(path))
        configs = [s.to_config() for s in self._collection]
        return write_layout(path, configs, surface.serialize(), description)

    # -- surface work (run from the queue) ---------------------------------

    def _rebuild(self) -> None:
        specs = [ElementSpec(s.name, s.bins) for s in self._collection]
        self._surface.rebuild(specs)

    def _bind(self, element, series, titles: bool) -> None:
        element.detach()
        element.attach(series.bins)
        element.label = series.name
        if titles:
            element.pane_title = series.name

    def _rebind(self, series_id: int) -> None:
        index = self._collection.index_of(series_id)
        if index < 0:
            return
        elements = self._surface.elements()
        if index >= len(elements):
            logger.debug("No pane for series %s; skipping rebind", series_id)
            return
        self._bind(elements[index], self._collection[index], titles=False)
        self._surface.invalidate()

    def _rebind_all(self) -> None:
        elements = self._surface.elements()
        for element, series in zip(elements, self._collection):
            self._bind(element, series, titles=True)
        self._surface.invalidate()
