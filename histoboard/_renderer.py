"""Canvas management: renders the chart figure as PNG in an Output widget."""
from __future__ import annotations

import io
import time
import warnings

import ipywidgets as widgets
from matplotlib.figure import Figure


def render_png(fig: Figure, dpi: int = 100) -> bytes:
    """Render *fig* to PNG bytes with its layout tightened."""
    with warnings.catch_warnings():
        # tight_layout warns when rotated tick labels do not fit.
        warnings.simplefilter("ignore", UserWarning)
        fig.tight_layout()
    buf = io.BytesIO()
    fig.savefig(buf, format="png", bbox_inches="tight", pad_inches=0.15,
                facecolor=fig.get_facecolor(), edgecolor="none", dpi=dpi)
    return buf.getvalue()


class CanvasManager:
    """Wraps a matplotlib Figure for display in Jupyter.

    The figure is always shown as a PNG inside an ``ipywidgets.Output``, so
    the chart can be redrawn from any sync operation without an interactive
    backend.
    """

    _MIN_DRAW_INTERVAL_S = 0.08  # 80ms throttle

    def __init__(self, fig: Figure):
        self._fig = fig
        self._last_draw = 0.0
        self._output = widgets.Output()
        self._render()

    @property
    def widget(self) -> widgets.Widget:
        return self._output

    def _render(self) -> None:
        self._output.clear_output(wait=True)
        if not self._fig.axes:
            return
        with self._output:
            from IPython.display import Image, display
            display(Image(data=render_png(self._fig)))

    def redraw(self) -> None:
        """Request a canvas redraw, throttled to avoid excess repaints."""
        now = time.monotonic()
        if now - self._last_draw < self._MIN_DRAW_INTERVAL_S:
            return
        self._last_draw = now
        self._render()

    def force_redraw(self) -> None:
        """Redraw immediately, bypassing the throttle."""
        self._last_draw = time.monotonic()
        self._render()
