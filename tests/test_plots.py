from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402
from PIL import Image  # noqa: E402

from pokestats.core.config import ExportConfig, TutorialConfig  # noqa: E402
from pokestats.core.data import load_dataset  # noqa: E402
from pokestats.viz import plots  # noqa: E402
from pokestats.viz.export import resolve_format, save_plot  # noqa: E402
from pokestats.viz.style import BW_THEME, PlotLabels, Theme, category_colors  # noqa: E402
from pokestats.wrangle.stats import type_stat_averages_long  # noqa: E402


ROOT = Path(__file__).resolve().parents[1]
CFG = TutorialConfig()


@pytest.fixture(scope="module")
def df():
    return load_dataset(ROOT / "examples" / "datasets" / "pokemon_sample.csv", CFG)


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


def test_scatter_fixed_and_mapped_colour(df):
    fig = plots.scatter(df, "Attack", "Defense", color="red")
    ax = fig.axes[0]
    assert len(ax.collections) == 1
    assert ax.get_legend() is None

    fig = plots.scatter(df, "Attack", "Defense", color_by="Type 1")
    ax = fig.axes[0]
    assert len(ax.collections) == df["Type 1"].nunique()
    assert ax.get_legend() is not None

    with pytest.raises(ValueError):
        plots.scatter(df, "Attack", "Defense", color="red", color_by="Type 1")
    with pytest.raises(KeyError):
        plots.scatter(df, "Attack", "Nope")


def test_box_has_one_box_per_type(df):
    fig = plots.box(df, "Type 1", "Attack")
    ax = fig.axes[0]
    labels = [t.get_text() for t in ax.get_xticklabels()]
    assert labels == sorted(df["Type 1"].unique())


def test_box_jitter_is_reproducible(df):
    def offsets(seed):
        fig = plots.box_jitter(df, "Type 1", "Attack", jitter_width=0.25, seed=seed)
        xs = fig.axes[0].collections[-1].get_offsets()[:, 0]
        plt.close(fig)
        return np.asarray(xs)

    a, b, c = offsets(1), offsets(1), offsets(2)
    assert np.allclose(a, b)
    assert not np.allclose(a, c)
    # every point stays within the jitter width of its box
    assert (np.abs(a - np.round(a)) <= 0.25 + 1e-9).all()


def test_box_jitter_labels_and_theme(df):
    fig = plots.box_jitter(
        df,
        "Type 1",
        "Attack",
        color_by="Type 1",
        labels=PlotLabels(x="Pokemon type", y="Attack statistic", title="Attack stats by Pokemon type"),
        theme=Theme(panel_background="white", legend=False, x_tick_rotation=45),
    )
    ax = fig.axes[0]
    assert ax.get_xlabel() == "Pokemon type"
    assert ax.get_title() == "Attack stats by Pokemon type"
    assert ax.get_legend() is None
    assert ax.get_xticklabels()[0].get_rotation() == 45

    with pytest.raises(ValueError):
        plots.box_jitter(df, "Type 1", "Attack", color_by="Type 2", color_boxes=True)


def test_stacked_composition(df):
    long = type_stat_averages_long(df, CFG)
    fig = plots.stacked_composition(long, "Type 1", "Avg.Total", "Stat", ylim=(0, 3000))
    ax = fig.axes[0]
    assert ax.get_ylim() == (0.0, 3000.0)
    n_types = long["Type 1"].nunique()
    assert len(ax.patches) == 5 * n_types
    assert [t.get_text() for t in ax.get_legend().get_texts()][0] == "Avg.HP"
    tops = {}
    for p in ax.patches:
        x = round(p.get_x() + p.get_width() / 2)
        tops[x] = max(tops.get(x, 0), p.get_y() + p.get_height())
    fire = long[long["Type 1"] == "Fire"]["Avg.Total"].iloc[0]
    fire_pos = sorted(long["Type 1"].unique()).index("Fire")
    assert tops[fire_pos] == pytest.approx(5 * fire)


def test_fit_line():
    fit = plots.fit_line([1, 2, 3, 4], [3, 5, 7, 9])
    assert fit.slope == pytest.approx(2.0)
    assert fit.intercept == pytest.approx(1.0)
    assert fit.n == 4
    assert plots.fit_line([5, 5, 5], [1, 2, 3]) is None
    assert plots.fit_line([1, np.nan, 3], [1, 2, 3]).n == 2


def test_facet_grid_shape():
    assert plots.facet_grid_shape(18, 3) == (3, 6)
    assert plots.facet_grid_shape(16, 3) == (3, 6)
    assert plots.facet_grid_shape(2, 3) == (2, 1)
    with pytest.raises(ValueError):
        plots.facet_grid_shape(0, 3)


def test_facet_regression(df):
    n_types = df["Type 1"].nunique()
    fig = plots.facet_regression(df, "Attack", "Defense", "Type 1", nrow=3)
    visible = [ax for ax in fig.axes if ax.get_visible()]
    assert len(visible) == n_types
    titles = [ax.get_title() for ax in visible]
    assert titles == sorted(df["Type 1"].unique())
    # Fairy has a single row, so no regression line
    fairy = visible[titles.index("Fairy")]
    assert len(fairy.lines) == 0
    fire = visible[titles.index("Fire")]
    assert len(fire.lines) == 1
    assert len(fire.collections) == 1


def test_facet_regression_highlight_draws_background(df):
    fig = plots.facet_regression(df, "Attack", "Defense", "Type 1", highlight=True)
    ax = [a for a in fig.axes if a.get_visible()][0]
    assert len(ax.collections) == 2
    assert len(ax.collections[0].get_offsets()) == len(df)
    assert ax.title.get_bbox_patch() is None


def test_category_colors_are_stable():
    a = category_colors(["Fire", "Water"], "viridis")
    b = category_colors(["Fire", "Water"], "viridis")
    assert a == b
    assert a["Fire"] != a["Water"]
    assert category_colors([], "tab20") == {}


def test_save_plot_formats_and_size(tmp_path):
    fig = plt.figure()
    out = save_plot(fig, tmp_path / "nested" / "plot", ExportConfig(format="svg", width=None, height=None))
    assert out == tmp_path / "nested" / "plot.svg"
    assert out.exists()

    fig, _ = plt.subplots()
    out = save_plot(fig, tmp_path / "plot.jpeg", dpi=72, width=5, height=4, units="cm")
    assert out.exists()
    assert fig.get_size_inches() == pytest.approx([5 / 2.54, 4 / 2.54])

    with pytest.raises(ValueError):
        save_plot(plt.figure(), tmp_path / "plot.bmp")
    with pytest.raises(ValueError):
        save_plot(plt.figure(), tmp_path / "plot.png", dpi=0)


def test_saved_image_has_requested_pixel_size(df, tmp_path):
    # outside legends and rotated labels must not grow or crop the canvas
    fig = plots.facet_regression(df, "Attack", "Defense", "Type 1")
    out = save_plot(fig, tmp_path / "facets.png", ExportConfig(format="png", dpi=100, width=7, height=7))
    with Image.open(out) as img:
        assert img.size == (700, 700)

    fig = plots.scatter(df, "Attack", "Defense", color_by="Type 1")
    out = save_plot(fig, tmp_path / "scatter.png", dpi=50, width=4, height=3, units="in")
    with Image.open(out) as img:
        assert img.size == (200, 150)

    long = type_stat_averages_long(df, CFG)
    fig = plots.stacked_composition(long, "Type 1", "Avg.Total", "Stat", theme=BW_THEME.with_(x_tick_rotation=45))
    out = save_plot(fig, tmp_path / "composition.png", dpi=100, width=10, height=10, units="cm")
    with Image.open(out) as img:
        w, h = img.size
    assert abs(w - 10 / 2.54 * 100) <= 1
    assert abs(h - 10 / 2.54 * 100) <= 1


def test_resolve_format():
    assert resolve_format(Path("a.TIF"), ExportConfig().format)[1].value == "tif"
    assert resolve_format(Path("a"), ExportConfig().format)[0] == Path("a.pdf")


def test_bw_theme_keeps_border():
    fig, ax = plt.subplots()
    plots.apply_theme(ax, BW_THEME)
    assert all(s.get_visible() for s in ax.spines.values())
    assert ax.get_facecolor()[:3] == (1.0, 1.0, 1.0)
