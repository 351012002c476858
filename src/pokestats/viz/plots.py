from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from pokestats.viz.style import (  # noqa: E402
    BW_THEME,
    DEFAULT_THEME,
    PlotLabels,
    Theme,
    apply_labels,
    apply_theme,
    category_colors,
    category_levels,
    finalize,
)

logger = logging.getLogger(__name__)

# ggplot sizes are in mm; matplotlib wants points.
PT_PER_MM = 72.27 / 25.4
GG_POINT_SIZE = 1.5
GG_LINE_SIZE = 0.5
# default point stroke of 0.5, in points
STROKE_PT = 0.5 * 96 / 25.4 / 2
REGRESSION_COLOR = "#3366FF"


def point_area(size: float) -> float:
    """Scatter marker area (pt^2) for a ggplot point size."""
    return (size * PT_PER_MM + STROKE_PT) ** 2


def line_width(size: float) -> float:
    return size * PT_PER_MM


def _require(df: pd.DataFrame, *columns: Optional[str]) -> None:
    missing = [c for c in columns if c is not None and c not in df.columns]
    if missing:
        raise KeyError(f"Unknown column(s): {missing}. Available: {list(df.columns)}")


def _finish(fig: Figure, ax, labels: Optional[PlotLabels], theme: Optional[Theme], *, legend: bool) -> Figure:
    theme = theme or DEFAULT_THEME
    if legend and theme.legend:
        ax.legend(loc="center left", bbox_to_anchor=(1.01, 0.5), frameon=False, fontsize=8, markerscale=1.5)
    apply_labels(ax, labels)
    apply_theme(ax, theme)
    return finalize(fig)


def scatter(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    color: Optional[str] = None,
    color_by: Optional[str] = None,
    size: float = GG_POINT_SIZE,
    alpha: float = 1.0,
    palette: str = "tab20",
    labels: Optional[PlotLabels] = None,
    theme: Optional[Theme] = None,
    figsize: Tuple[float, float] = (7.0, 5.0),
) -> Figure:
    """Scatter plot of ``y`` against ``x``.

    ``color`` sets one colour for every point; ``color_by`` maps a column to
    colours and adds a legend. Passing both is an error.
    """

    if color is not None and color_by is not None:
        raise ValueError("Use either color= (fixed) or color_by= (mapped), not both")
    _require(df, x, y, color_by)

    fig, ax = plt.subplots(figsize=figsize)
    if color_by is None:
        ax.scatter(df[x], df[y], s=point_area(size), c=color or "black", alpha=alpha, linewidths=0)
    else:
        colors = category_colors(category_levels(df[color_by]), palette)
        for level, c in colors.items():
            part = df[df[color_by] == level]
            ax.scatter(part[x], part[y], s=point_area(size), color=c, alpha=alpha, linewidths=0, label=str(level))

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    return _finish(fig, ax, labels or PlotLabels(legend=color_by), theme, legend=color_by is not None)


@dataclass(frozen=True)
class _Categories:
    levels: list
    positions: np.ndarray


def _categories(df: pd.DataFrame, x: str) -> _Categories:
    levels = category_levels(df[x])
    if not levels:
        raise ValueError(f"Column '{x}' has no non-missing values to plot")
    return _Categories(levels=levels, positions=np.arange(1, len(levels) + 1, dtype=float))


def _draw_boxes(
    ax,
    df: pd.DataFrame,
    x: str,
    y: str,
    cats: _Categories,
    *,
    alpha: float,
    linewidth: float,
    edge_colors: Optional[dict],
) -> None:
    data = [pd.to_numeric(df.loc[df[x] == lv, y], errors="coerce").dropna().to_numpy() for lv in cats.levels]
    parts = ax.boxplot(
        data,
        positions=cats.positions,
        widths=0.75,
        patch_artist=True,
        manage_ticks=False,
        flierprops={"marker": "o", "markersize": 3},
    )
    for i, patch in enumerate(parts["boxes"]):
        edge = edge_colors[cats.levels[i]] if edge_colors else "#333333"
        patch.set_facecolor((1.0, 1.0, 1.0, alpha))
        patch.set_edgecolor(edge)
        patch.set_linewidth(linewidth)
    # whiskers and caps come in pairs per box
    for key in ("whiskers", "caps"):
        for j, artist in enumerate(parts[key]):
            artist.set_color(edge_colors[cats.levels[j // 2]] if edge_colors else "#333333")
            artist.set_linewidth(linewidth)
    for i, artist in enumerate(parts["medians"]):
        artist.set_color(edge_colors[cats.levels[i]] if edge_colors else "#333333")
        artist.set_linewidth(linewidth * 1.5)
    for i, artist in enumerate(parts["fliers"]):
        artist.set_markeredgecolor(edge_colors[cats.levels[i]] if edge_colors else "#333333")

    ax.set_xticks(cats.positions)
    ax.set_xticklabels([str(lv) for lv in cats.levels])
    ax.set_xlim(0.4, len(cats.levels) + 0.6)


def box(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    alpha: float = 1.0,
    size: float = GG_LINE_SIZE,
    labels: Optional[PlotLabels] = None,
    theme: Optional[Theme] = None,
    figsize: Tuple[float, float] = (9.0, 5.0),
) -> Figure:
    """One box per category of ``x``, categories sorted."""

    _require(df, x, y)
    cats = _categories(df, x)
    fig, ax = plt.subplots(figsize=figsize)
    _draw_boxes(ax, df, x, y, cats, alpha=alpha, linewidth=line_width(size), edge_colors=None)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    return _finish(fig, ax, labels, theme, legend=False)


def jitter_offsets(n: int, width: float, *, seed: int = 0) -> np.ndarray:
    """Uniform offsets in [-width, width], reproducible for a seed."""
    if width < 0:
        raise ValueError("jitter width must be non-negative")
    rng = np.random.default_rng(seed)
    return rng.uniform(-width, width, size=n)


def box_jitter(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    color_by: Optional[str] = None,
    color_boxes: bool = False,
    box_alpha: float = 1.0,
    box_size: float = GG_LINE_SIZE,
    jitter_width: float = 0.4,
    jitter_height: float = 0.0,
    point_size: float = GG_POINT_SIZE,
    seed: int = 0,
    palette: str = "tab20",
    labels: Optional[PlotLabels] = None,
    theme: Optional[Theme] = None,
    figsize: Tuple[float, float] = (9.0, 5.0),
) -> Figure:
    """Box plot per category with the raw points jittered on top.

    ``color_by`` colours the points. ``color_boxes`` applies the same mapping
    to the box outlines, the global-aesthetic variant.
    """

    _require(df, x, y, color_by)
    if color_boxes and color_by != x:
        raise ValueError("color_boxes needs color_by set to the x column")
    cats = _categories(df, x)

    color_levels = category_levels(df[color_by]) if color_by else []
    colors = category_colors(color_levels, palette) if color_by else {}

    fig, ax = plt.subplots(figsize=figsize)
    _draw_boxes(
        ax,
        df,
        x,
        y,
        cats,
        alpha=box_alpha,
        linewidth=line_width(box_size),
        edge_colors=colors if color_boxes else None,
    )

    pts = df[df[x].isin(cats.levels)]
    pos = pts[x].map(dict(zip(cats.levels, cats.positions))).to_numpy(dtype=float)
    xs = pos + jitter_offsets(len(pts), jitter_width, seed=seed)
    ys = pd.to_numeric(pts[y], errors="coerce").to_numpy(dtype=float)
    if jitter_height:
        ys = ys + jitter_offsets(len(pts), jitter_height, seed=seed + 1)

    if color_by is None:
        ax.scatter(xs, ys, s=point_area(point_size), c="black", linewidths=0)
    else:
        keys = pts[color_by].to_numpy()
        for level, c in colors.items():
            sel = keys == level
            ax.scatter(xs[sel], ys[sel], s=point_area(point_size), color=c, linewidths=0, label=str(level))

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    return _finish(fig, ax, labels or PlotLabels(legend=color_by), theme, legend=color_by is not None)


def stacked_composition(
    long_df: pd.DataFrame,
    x: str,
    y: str,
    fill: str,
    *,
    palette: str = "viridis",
    ylim: Optional[Tuple[float, float]] = (0.0, 3000.0),
    edgecolor: str = "black",
    labels: Optional[PlotLabels] = None,
    theme: Optional[Theme] = None,
    figsize: Tuple[float, float] = (9.0, 5.5),
) -> Figure:
    """Stacked bars: one bar per ``x`` level, one segment per ``fill`` level.

    Segment heights are the ``y`` values as given (no aggregation). The first
    fill level is drawn on top, as ggplot stacks. There is no padding at y=0.
    """

    _require(long_df, x, y, fill)
    x_levels = category_levels(long_df[x])
    fill_levels = list(dict.fromkeys(long_df[fill].dropna()))
    if not x_levels or not fill_levels:
        raise ValueError("Nothing to plot: empty x or fill levels")
    colors = category_colors(fill_levels, palette)

    heights = (
        long_df.pivot_table(index=x, columns=fill, values=y, aggfunc="sum", sort=False)
        .reindex(index=x_levels, columns=fill_levels)
        .fillna(0.0)
    )

    fig, ax = plt.subplots(figsize=figsize)
    positions = np.arange(len(x_levels))
    bottom = np.zeros(len(x_levels))
    handles = {}
    for level in reversed(fill_levels):
        h = heights[level].to_numpy(dtype=float)
        handles[level] = ax.bar(
            positions, h, bottom=bottom, width=0.9, color=colors[level], edgecolor=edgecolor, linewidth=0.5
        )
        bottom = bottom + h

    ax.set_xticks(positions)
    ax.set_xticklabels([str(lv) for lv in x_levels])
    ax.margins(y=0)
    if ylim is not None:
        ax.set_ylim(*ylim)
    ax.set_xlabel(x)
    ax.set_ylabel(y)

    theme = theme or BW_THEME.with_(x_tick_rotation=45, x_tick_ha="right")
    if theme.legend:
        ax.legend(
            [handles[lv] for lv in fill_levels],
            [str(lv) for lv in fill_levels],
            title=fill,
            loc="center left",
            bbox_to_anchor=(1.01, 0.5),
            frameon=False,
        )
    apply_labels(ax, labels)
    apply_theme(ax, theme)
    return finalize(fig)


@dataclass(frozen=True)
class LineFit:
    intercept: float
    slope: float
    n: int


def fit_line(x: Sequence[float], y: Sequence[float]) -> Optional[LineFit]:
    """Ordinary least squares line of ``y`` on ``x``.

    Returns None when fewer than two distinct finite x values remain.
    """

    xv = np.asarray(x, dtype=float)
    yv = np.asarray(y, dtype=float)
    keep = np.isfinite(xv) & np.isfinite(yv)
    xv, yv = xv[keep], yv[keep]
    if np.unique(xv).size < 2:
        return None
    model = sm.OLS(yv, sm.add_constant(xv)).fit()
    intercept, slope = model.params
    return LineFit(intercept=float(intercept), slope=float(slope), n=int(xv.size))


def facet_grid_shape(n_panels: int, nrow: int) -> Tuple[int, int]:
    if n_panels < 1:
        raise ValueError("Need at least one facet")
    nrow = max(1, min(nrow, n_panels))
    return nrow, math.ceil(n_panels / nrow)


def facet_regression(
    df: pd.DataFrame,
    x: str,
    y: str,
    facet: str,
    *,
    nrow: int = 3,
    highlight: bool = False,
    palette: str = "tab20",
    point_size: float = 0.65,
    line_size: float = 0.75,
    background_color: str = "gray",
    background_alpha: float = 0.35,
    background_size: float = 0.5,
    labels: Optional[PlotLabels] = None,
    theme: Optional[Theme] = None,
    panel_size: Tuple[float, float] = (2.2, 2.0),
) -> Figure:
    """One panel per ``facet`` level with its points and an OLS line.

    Panels share both axes and fill row by row. With ``highlight`` every panel
    first draws the whole dataset in grey so each group stands out against
    the rest.
    """

    _require(df, x, y, facet)
    levels = category_levels(df[facet])
    if not levels:
        raise ValueError(f"Column '{facet}' has no non-missing values to facet by")
    nrow, ncol = facet_grid_shape(len(levels), nrow)
    colors = category_colors(levels, palette)

    theme = theme or BW_THEME.with_(legend=False)
    if highlight:
        theme = theme.with_(strip_background=None)

    fig, axes = plt.subplots(
        nrow,
        ncol,
        sharex=True,
        sharey=True,
        squeeze=False,
        figsize=(panel_size[0] * ncol, panel_size[1] * nrow),
    )
    all_x = pd.to_numeric(df[x], errors="coerce")
    all_y = pd.to_numeric(df[y], errors="coerce")

    for i, level in enumerate(levels):
        ax = axes[i // ncol][i % ncol]
        if highlight:
            ax.scatter(
                all_x,
                all_y,
                s=point_area(background_size),
                color=background_color,
                alpha=background_alpha,
                linewidths=0,
            )

        sel = (df[facet] == level).to_numpy()
        px, py = all_x[sel].to_numpy(), all_y[sel].to_numpy()
        fit = fit_line(px, py)
        if fit is not None:
            xs = np.array([np.nanmin(px), np.nanmax(px)])
            ax.plot(xs, fit.intercept + fit.slope * xs, color=REGRESSION_COLOR, linewidth=line_width(line_size))
        else:
            logger.debug("Skipping regression line for %s=%s: not enough distinct x values", facet, level)

        ax.scatter(px, py, s=point_area(point_size), color=colors[level], linewidths=0)

        title = ax.set_title(str(level), fontsize=9)
        if theme.strip_background is not None:
            title.set_bbox({"facecolor": theme.strip_background, "edgecolor": "none", "pad": 2})
        apply_theme(ax, theme)

    for j in range(len(levels), nrow * ncol):
        axes[j // ncol][j % ncol].set_visible(False)

    labels = labels or PlotLabels()
    fig.supxlabel(labels.x or x)
    fig.supylabel(labels.y or y)
    if labels.title:
        fig.suptitle(labels.title)
    return finalize(fig)
