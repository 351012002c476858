from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
import matplotlib

matplotlib.use("Agg")
from matplotlib import colormaps  # noqa: E402
from matplotlib.axes import Axes  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

Color = Tuple[float, float, float, float]


@dataclass(frozen=True)
class PlotLabels:
    x: Optional[str] = None
    y: Optional[str] = None
    title: Optional[str] = None
    legend: Optional[str] = None


@dataclass(frozen=True)
class Theme:
    """Figure-level styling, the subset of ggplot's ``theme()`` the walkthrough uses."""

    panel_background: Optional[str] = None
    grid: bool = False
    grid_color: str = "#ebebeb"
    panel_border: bool = True
    legend: bool = True
    x_tick_rotation: float = 0.0
    x_tick_ha: str = "center"
    strip_background: Optional[str] = "#d9d9d9"

    def with_(self, **changes) -> "Theme":
        return replace(self, **changes)


DEFAULT_THEME = Theme(panel_background="#ebebeb", grid=True, grid_color="white", panel_border=False)
# theme_bw(): white panel, light grey grid, dark border
BW_THEME = Theme(panel_background="white", grid=True, grid_color="#ebebeb", panel_border=True)


def category_levels(values: Iterable) -> List:
    """Distinct non-missing values, sorted."""
    return sorted({v for v in values if pd.notna(v)}, key=str)


def category_colors(levels: Iterable, palette: str = "tab20") -> Dict[object, Color]:
    """Map each level to a colour, stable for a given set of levels.

    Qualitative palettes are cycled; continuous ones are sampled evenly.
    """

    levels = list(levels)
    cmap = colormaps[palette]
    n = len(levels)
    if n == 0:
        return {}
    n_listed = getattr(cmap, "N", 256)
    if n_listed < 256:
        return {lv: cmap(i % n_listed) for i, lv in enumerate(levels)}
    if n == 1:
        return {levels[0]: cmap(0.0)}
    return {lv: cmap(i / (n - 1)) for i, lv in enumerate(levels)}


def apply_labels(ax: Axes, labels: Optional[PlotLabels]) -> None:
    if labels is None:
        return
    if labels.x is not None:
        ax.set_xlabel(labels.x)
    if labels.y is not None:
        ax.set_ylabel(labels.y)
    if labels.title is not None:
        ax.set_title(labels.title)
    legend = ax.get_legend()
    if legend is not None and labels.legend is not None:
        legend.set_title(labels.legend)


def apply_theme(ax: Axes, theme: Optional[Theme]) -> None:
    theme = theme or DEFAULT_THEME
    if theme.panel_background is not None:
        ax.set_facecolor(theme.panel_background)
    ax.set_axisbelow(True)
    if theme.grid:
        ax.grid(True, color=theme.grid_color, linewidth=0.8)
    else:
        ax.grid(False)
    for spine in ax.spines.values():
        spine.set_visible(theme.panel_border)
        spine.set_color("#333333")
    if theme.x_tick_rotation:
        for tick in ax.get_xticklabels():
            tick.set_rotation(theme.x_tick_rotation)
            tick.set_ha(theme.x_tick_ha)
    legend = ax.get_legend()
    if legend is not None and not theme.legend:
        legend.remove()


def finalize(fig: Figure) -> Figure:
    fig.tight_layout()
    return fig
