"""The whole tutorial, run top to bottom once.

Each step prints a table or writes a figure; the final step exports the
highlighted facet plot with the configured format, size and resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd
from matplotlib.figure import Figure
from rich.console import Console

from pokestats.core.config import ExportConfig, ExportFormat, TutorialConfig
from pokestats.core.data import load_dataset, preview, validate_dataset
from pokestats.core.tables import print_dataframe
from pokestats.viz import plots
from pokestats.viz.export import save_plot
from pokestats.viz.style import BW_THEME, PlotLabels, Theme
from pokestats.wrangle.stats import (
    add_total,
    attack_summary,
    defensive_only,
    type_stat_averages,
    type_stat_averages_long,
)
from pokestats.wrangle.verbs import select_columns

logger = logging.getLogger(__name__)

FINAL_PLOT_STEM = "beautiful-plot"


@dataclass
class WalkthroughResult:
    tables: Dict[str, pd.DataFrame] = field(default_factory=dict)
    figures: Dict[str, Path] = field(default_factory=dict)

    @property
    def final_plot(self) -> Path:
        return self.figures["final"]


def plot_steps(df: pd.DataFrame, cfg: TutorialConfig) -> List[Tuple[str, Callable[[], Figure]]]:
    """Every figure of the tutorial in narrative order, built lazily.

    ``df`` must already carry the Total column.
    """

    c = cfg.columns
    attack, defense = c.stat("attack"), c.stat("defense")
    ptype = c.primary_type
    p = cfg.plot

    type_labels = PlotLabels(x="Pokemon type", y="Attack statistic", title="Attack stats by Pokemon type")
    white_theme = Theme(panel_background="white", legend=False, x_tick_rotation=45)

    def decorated(labels=None, theme=None) -> Figure:
        return plots.box_jitter(
            df,
            ptype,
            attack,
            color_by=ptype,
            box_alpha=0.5,
            box_size=0.75,
            jitter_width=0.25,
            point_size=0.5,
            seed=p.seed,
            palette=p.category_palette,
            labels=labels,
            theme=theme,
        )

    def composition() -> Figure:
        long = type_stat_averages_long(df, cfg)
        return plots.stacked_composition(
            long,
            ptype,
            "Avg.Total",
            "Stat",
            palette=p.palette,
            ylim=p.composition_ylim,
            labels=PlotLabels(
                x="Pokemon Type",
                y="Average total stat points",
                title="Composition of total stats by Pokemon type",
                legend="Stat",
            ),
            theme=BW_THEME.with_(x_tick_rotation=45, x_tick_ha="right"),
        )

    def facets(highlight: bool) -> Figure:
        return plots.facet_regression(
            df,
            attack,
            defense,
            ptype,
            nrow=p.facet_rows,
            highlight=highlight,
            palette=p.category_palette,
        )

    return [
        ("defensive_scatter", lambda: plots.scatter(defensive_only(df, cfg), defense, attack)),
        ("scatter", lambda: plots.scatter(df, attack, defense)),
        ("box", lambda: plots.box(df, ptype, attack)),
        ("scatter_by_type", lambda: plots.scatter(df, attack, defense, color_by=ptype, palette=p.category_palette)),
        ("scatter_red", lambda: plots.scatter(df, attack, defense, color="red")),
        (
            "box_jitter_global_color",
            lambda: plots.box_jitter(
                df, ptype, attack, color_by=ptype, color_boxes=True, seed=p.seed, palette=p.category_palette
            ),
        ),
        (
            "box_jitter_point_color",
            lambda: plots.box_jitter(df, ptype, attack, color_by=ptype, seed=p.seed, palette=p.category_palette),
        ),
        ("box_jitter_decorated", lambda: decorated()),
        ("box_jitter_labelled", lambda: decorated(labels=type_labels)),
        ("box_jitter_themed", lambda: decorated(labels=type_labels, theme=white_theme)),
        ("stat_composition", composition),
        ("facets", lambda: facets(False)),
        ("facets_highlight", lambda: facets(True)),
    ]


def run_walkthrough(
    data_path: str | Path,
    cfg: Optional[TutorialConfig] = None,
    out_dir: str | Path = "plots",
    *,
    console: Optional[Console] = None,
    export: Optional[ExportConfig] = None,
) -> WalkthroughResult:
    cfg = cfg or TutorialConfig()
    console = console or Console()
    export = export or cfg.export
    out_dir = Path(out_dir)
    c = cfg.columns
    result = WalkthroughResult()

    df = load_dataset(data_path, cfg)
    validate_dataset(df, cfg)
    result.tables["head"] = preview(df)
    print_dataframe(console, result.tables["head"], title="First rows")

    result.tables["attack_summary"] = attack_summary(df, cfg, generation=1)
    print_dataframe(console, result.tables["attack_summary"], title="Generation 1 Attack by type")

    df = add_total(df, cfg)
    result.tables["totals"] = select_columns(df, include=[c.name, "Total"])
    print_dataframe(console, result.tables["totals"], title="Total stat points", max_rows=10)

    result.tables["defensive"] = defensive_only(df, cfg)
    print_dataframe(console, result.tables["defensive"], title="Defensive Pokemon", max_rows=10)

    result.tables["averages"] = type_stat_averages(df, cfg)
    print_dataframe(console, result.tables["averages"], title="Average stats by type")
    result.tables["averages_long"] = type_stat_averages_long(df, cfg)
    print_dataframe(console, result.tables["averages_long"], title="Average stats by type (long)", max_rows=10)

    step_export = ExportConfig(format=ExportFormat.png, dpi=cfg.plot.step_dpi, width=None, height=None)
    for name, build in plot_steps(df, cfg):
        logger.info("Plotting %s", name)
        result.figures[name] = save_plot(build(), out_dir / f"{name}.png", step_export)

    final = plots.facet_regression(
        df,
        c.stat("attack"),
        c.stat("defense"),
        c.primary_type,
        nrow=cfg.plot.facet_rows,
        highlight=True,
        palette=cfg.plot.category_palette,
    )
    result.figures["final"] = save_plot(final, out_dir / f"{FINAL_PLOT_STEM}.{export.format.value}", export)
    console.print(f"Wrote {len(result.figures)} figures to {out_dir}/")
    return result
