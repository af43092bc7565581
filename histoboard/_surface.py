"""Design surface: the chart structure the user may edit by hand.

:class:`DesignSurface` is the capability the sync controller talks to.
:class:`FigureSurface` implements it on a matplotlib Figure: one Axes
("pane") per histogram, each holding a bar series. The binding between a
pane and its histogram bins is a tag attribute on the Axes, so an external
editor that swaps an Axes for a new one silently drops the binding, which
is exactly what the controller's consistency check looks for.
"""
from __future__ import annotations

import abc
import json
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from matplotlib.colors import to_hex
from matplotlib.container import BarContainer
from matplotlib.figure import Figure

from ._types import Bin

logger = logging.getLogger(__name__)

SERIALIZE_VERSION = 1


@dataclass(frozen=True)
class ElementSpec:
    """What one regenerated element should show."""

    name: str
    bins: tuple[Bin, ...]


class SeriesElement(abc.ABC):
    """One pane + bar series on a design surface."""

    @property
    @abc.abstractmethod
    def data_source(self) -> tuple[Bin, ...] | None:
        """Bins currently bound to this element, or None when unbound."""

    @abc.abstractmethod
    def attach(self, bins: Sequence[Bin]) -> None:
        """Bind *bins* as the element's data, replacing any previous data."""

    @abc.abstractmethod
    def detach(self) -> None:
        """Drop the data binding, keeping the element's visual style."""

    @property
    @abc.abstractmethod
    def label(self) -> str: ...

    @label.setter
    @abc.abstractmethod
    def label(self, value: str) -> None: ...

    @property
    @abc.abstractmethod
    def pane_title(self) -> str: ...

    @pane_title.setter
    @abc.abstractmethod
    def pane_title(self, value: str) -> None: ...


class DesignSurface(abc.ABC):
    """Owner of chart structure, opaque apart from its element list."""

    @abc.abstractmethod
    def serialize(self) -> bytes: ...

    @abc.abstractmethod
    def deserialize(self, blob: bytes) -> None: ...

    @abc.abstractmethod
    def elements(self) -> list[SeriesElement]:
        """Structural elements in pane order."""

    @abc.abstractmethod
    def rebuild(self, specs: Sequence[ElementSpec]) -> None:
        """Discard all elements and create one per spec, bound and labeled."""

    def invalidate(self) -> None:
        """Request a repaint after structural or data changes."""


# ---------------------------------------------------------------------------
# matplotlib implementation
# ---------------------------------------------------------------------------

_BINS_ATTR = "_histoboard_bins"
_STYLE_ATTR = "_histoboard_style"
_LABEL_ATTR = "_histoboard_label"
_LEGEND_ATTR = "_histoboard_legend"


def _pane_name(index: int) -> str:
    return "Pane" if index == 0 else f"Pane{index}"


def _is_pane(ax) -> bool:
    name = ax.get_label()
    return name == "Pane" or (name.startswith("Pane") and name[4:].isdigit())


def _default_style(index: int) -> dict[str, Any]:
    color = to_hex(f"C{index % 10}")
    return {
        "color": color,
        "edgecolor": "#333333",
        "linewidth": 0.8,
        "alpha": 0.85,
        "hatch": "",
        "fill": True,
        "linestyle": "-",
    }


def _style_from_patch(patch) -> dict[str, Any]:
    alpha = patch.get_alpha()
    return {
        "color": to_hex(patch.get_facecolor()),
        "edgecolor": to_hex(patch.get_edgecolor()),
        "linewidth": float(patch.get_linewidth()),
        "alpha": 1.0 if alpha is None else float(alpha),
        "hatch": patch.get_hatch() or "",
        "fill": bool(patch.get_fill()),
        "linestyle": patch.get_linestyle() or "-",
    }


def _grid_on(ax) -> bool:
    return any(line.get_visible() for line in ax.get_xgridlines()) or \
        any(line.get_visible() for line in ax.get_ygridlines())


class FigureElement(SeriesElement):
    """A pane (Axes) of a :class:`FigureSurface` and its bar series."""

    def __init__(self, ax, index: int):
        self._ax = ax
        self._index = index

    @property
    def axes(self):
        return self._ax

    def _bars(self) -> list[BarContainer]:
        return [c for c in self._ax.containers
                if isinstance(c, BarContainer)
                and getattr(c, "_histoboard_bars", False)]

    def style(self) -> dict[str, Any]:
        """Current bar style, falling back to the remembered one."""
        for container in self._bars():
            if len(container.patches):
                return _style_from_patch(container.patches[0])
        return dict(getattr(self._ax, _STYLE_ATTR, None)
                    or _default_style(self._index))

    @property
    def data_source(self) -> tuple[Bin, ...] | None:
        return getattr(self._ax, _BINS_ATTR, None)

    def detach(self) -> None:
        ax = self._ax
        setattr(ax, _STYLE_ATTR, self.style())
        bars = self._bars()
        for container in bars:
            container.remove()
        owned = {id(c) for c in bars}
        ax.containers[:] = [c for c in ax.containers if id(c) not in owned]
        setattr(ax, _BINS_ATTR, None)
        ax.relim()

    def attach(self, bins: Sequence[Bin]) -> None:
        ax = self._ax
        self.detach()
        bins = tuple(bins)
        style = getattr(ax, _STYLE_ATTR)
        label = getattr(ax, _LABEL_ATTR, "")
        x = np.arange(len(bins))
        heights = [b.frequency for b in bins]
        container = ax.bar(
            x, heights, width=1.0, align="center", label=label,
            color=style["color"], edgecolor=style["edgecolor"],
            linewidth=style["linewidth"], alpha=style["alpha"],
            hatch=style["hatch"] or None, fill=style["fill"],
            linestyle=style["linestyle"])
        container._histoboard_bars = True
        ax.set_xticks(x)
        ax.set_xticklabels([b.label for b in bins], rotation=45,
                           ha="right", fontsize="small")
        ax.relim()
        ax.autoscale_view()
        setattr(ax, _BINS_ATTR, bins)
        self._refresh_legend()

    @property
    def label(self) -> str:
        for container in self._bars():
            return container.get_label()
        return getattr(self._ax, _LABEL_ATTR, "")

    @label.setter
    def label(self, value: str) -> None:
        setattr(self._ax, _LABEL_ATTR, value)
        for container in self._bars():
            container.set_label(value)
        self._refresh_legend()

    @property
    def pane_title(self) -> str:
        return self._ax.get_title()

    @pane_title.setter
    def pane_title(self, value: str) -> None:
        # Only the text changes; font, size and visibility are kept.
        self._ax.title.set_text(value)

    def _refresh_legend(self) -> None:
        ax = self._ax
        want = ax.get_legend() is not None or getattr(ax, _LEGEND_ATTR, False)
        if not want:
            return
        handles, labels = ax.get_legend_handles_labels()
        if handles:
            ax.legend(handles, labels)


class FigureSurface(DesignSurface):
    """Design surface backed by a matplotlib Figure.

    Parameters
    ----------
    fig : Figure, optional
        Figure to draw into. A new one is created when omitted.
    canvas : object, optional
        Anything with a ``redraw()`` method (e.g. ``CanvasManager``), called
        by :meth:`invalidate`.
    """

    def __init__(self, fig: Figure | None = None, canvas=None):
        self._fig = fig if fig is not None else Figure(figsize=(7, 4))
        self.canvas = canvas

    @property
    def figure(self) -> Figure:
        return self._fig

    def elements(self) -> list[FigureElement]:
        panes = [ax for ax in self._fig.axes if _is_pane(ax)]
        return [FigureElement(ax, i) for i, ax in enumerate(panes)]

    def _new_pane(self, gs, index: int):
        ax = self._fig.add_subplot(gs[index, 0])
        ax.set_label(_pane_name(index))
        if index > 0:
            # Each extra pane owns a dedicated secondary axis pair.
            ax.xaxis.set_gid(f"SecondaryAxisX{index}")
            ax.yaxis.set_gid(f"SecondaryAxisY{index}")
        return ax

    def rebuild(self, specs: Sequence[ElementSpec]) -> None:
        self._fig.clear()
        if specs:
            gs = self._fig.add_gridspec(len(specs), 1)
            for i, spec in enumerate(specs):
                ax = self._new_pane(gs, i)
                setattr(ax, _STYLE_ATTR, _default_style(i))
                setattr(ax, _LABEL_ATTR, spec.name)
                ax.set_title(spec.name)
                FigureElement(ax, i).attach(spec.bins)
        logger.debug("Rebuilt figure with %d pane(s)", len(specs))
        self.invalidate()

    def serialize(self) -> bytes:
        panes = []
        for element in self.elements():
            ax = element.axes
            panes.append({
                "name": ax.get_label(),
                "title": ax.get_title(),
                "title_fontsize": float(ax.title.get_fontsize()),
                "title_visible": bool(ax.title.get_visible()),
                "facecolor": to_hex(ax.get_facecolor()),
                "grid": _grid_on(ax),
                "xlabel": ax.get_xlabel(),
                "ylabel": ax.get_ylabel(),
                "legend": ax.get_legend() is not None,
                "series": {"label": element.label, **element.style()},
            })
        w, h = self._fig.get_size_inches()
        doc = {"chart": {
            "version": SERIALIZE_VERSION,
            "size": [float(w), float(h)],
            "suptitle": self._fig.get_suptitle(),
            "facecolor": to_hex(self._fig.get_facecolor()),
            "panes": panes,
        }}
        return json.dumps(doc, indent=2).encode("utf-8")

    def deserialize(self, blob: bytes) -> None:
        """Recreate panes and their styling from *blob*; no data is bound."""
        try:
            chart = json.loads(blob.decode("utf-8"))["chart"]
            panes = list(chart.get("panes", []))
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError,
                TypeError, AttributeError) as e:
            raise ValueError(f"Invalid chart layout: {e}") from e
        try:
            self._restore_chart(chart, panes)
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            raise ValueError(f"Invalid chart layout: {e}") from e
        logger.debug("Restored figure with %d pane(s)", len(panes))
        self.invalidate()

    def _restore_chart(self, chart: dict, panes: list) -> None:
        fig = self._fig
        fig.clear()
        if "size" in chart:
            fig.set_size_inches(*chart["size"])
        if chart.get("facecolor"):
            fig.set_facecolor(chart["facecolor"])
        if chart.get("suptitle"):
            fig.suptitle(chart["suptitle"])
        if panes:
            gs = fig.add_gridspec(len(panes), 1)
        for i, pane in enumerate(panes):
            ax = self._new_pane(gs, i)
            ax.set_title(pane.get("title", ""))
            if "title_fontsize" in pane:
                ax.title.set_fontsize(pane["title_fontsize"])
            ax.title.set_visible(pane.get("title_visible", True))
            if pane.get("facecolor"):
                ax.set_facecolor(pane["facecolor"])
            if pane.get("grid"):
                ax.grid(True)
            ax.set_xlabel(pane.get("xlabel", ""))
            ax.set_ylabel(pane.get("ylabel", ""))
            series = dict(pane.get("series") or {})
            label = series.pop("label", "")
            style = _default_style(i)
            style.update({k: v for k, v in series.items() if k in style})
            setattr(ax, _STYLE_ATTR, style)
            setattr(ax, _LABEL_ATTR, label)
            setattr(ax, _LEGEND_ATTR, bool(pane.get("legend")))
            setattr(ax, _BINS_ATTR, None)

    def invalidate(self) -> None:
        self._fig.stale = True
        if self.canvas is not None:
            self.canvas.redraw()
