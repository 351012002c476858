from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
import yaml
from matplotlib.figure import Figure
from rich.console import Console
from rich.logging import RichHandler

from pokestats.core.config import ExportConfig, SizeUnit, TutorialConfig
from pokestats.core.data import load_dataset, preview as preview_rows, validate_dataset
from pokestats.core.tables import print_dataframe
from pokestats.viz import plots
from pokestats.viz.export import save_plot
from pokestats.viz.style import BW_THEME, PlotLabels
from pokestats.walkthrough import run_walkthrough
from pokestats.wrangle.stats import (
    add_total,
    attack_summary,
    defensive_only,
    type_stat_averages,
    type_stat_averages_long,
)
from pokestats.wrangle.verbs import group_summarize


app = typer.Typer(add_completion=False, help="Pokemon stats wrangling and plotting walkthrough")
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


def _load_cfg(config: Optional[str]) -> TutorialConfig:
    try:
        return TutorialConfig.load(config)
    except FileNotFoundError as e:
        raise typer.BadParameter(f"Config file not found: {config}") from e
    except (ValueError, yaml.YAMLError) as e:
        raise typer.BadParameter(f"Invalid config {config}: {e}") from e


def _load_data(data: str, cfg: TutorialConfig, *, strict: bool = True) -> pd.DataFrame:
    try:
        df = load_dataset(data, cfg)
        validate_dataset(df, cfg, strict=strict)
    except FileNotFoundError as e:
        console.print(f"Data file not found: {data}")
        raise typer.Exit(code=1) from e
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    return df


def _export_cfg(
    cfg: TutorialConfig,
    dpi: Optional[int],
    width: Optional[float],
    height: Optional[float],
    units: Optional[SizeUnit],
) -> ExportConfig:
    updates = {k: v for k, v in {"dpi": dpi, "width": width, "height": height, "units": units}.items() if v is not None}
    try:
        return ExportConfig.model_validate({**cfg.export.model_dump(), **updates})
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _save(fig: Figure, out: str, export: ExportConfig) -> None:
    try:
        path = save_plot(fig, out, export)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    console.print(f"Wrote: {path}")


ConfigOpt = typer.Option(None, "--config", help="Path to YAML config (built-in defaults if omitted)")
DataArg = typer.Argument(..., help="Stats CSV")
DpiOpt = typer.Option(None, "--dpi", help="Resolution of the saved image")
WidthOpt = typer.Option(None, "--width", help="Image width in --units")
HeightOpt = typer.Option(None, "--height", help="Image height in --units")
UnitsOpt = typer.Option(None, "--units", help="in, cm or mm")


@app.command("preview")
def preview(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    n: int = typer.Option(6, "--n", help="Number of rows"),
):
    cfg = _load_cfg(config)
    df = _load_data(data, cfg, strict=False)
    print_dataframe(console, preview_rows(df, n), title=f"First {n} rows of {Path(data).name}", max_rows=n)


@app.command("validate-data")
def validate_data(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    strict: bool = typer.Option(True, "--strict/--no-strict", help="Fail on non-numeric stat values"),
):
    cfg = _load_cfg(config)
    df = _load_data(data, cfg, strict=strict)
    missing = int(df[cfg.columns.secondary_type].isna().sum())
    console.print(f"Data validated successfully: {len(df)} rows, {missing} without a secondary type.")


@app.command("summarize")
def summarize(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    generation: Optional[int] = typer.Option(1, "--generation", help="Generation to keep; 0 keeps all"),
    group_by: Optional[str] = typer.Option(None, "--group-by", help="Grouping column (default: primary type)"),
    stat: Optional[str] = typer.Option(None, "--stat", help="Stat to summarise (default: Attack)"),
    output: Optional[str] = typer.Option(None, "--output", help="If set, write the table as CSV"),
):
    """Count, mean and standard deviation of a stat per group."""

    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    try:
        if group_by is None and generation:
            table = attack_summary(df, cfg, generation=generation, stat=stat)
        else:
            if generation:
                df = df[df[cfg.columns.generation] == generation]
            table = group_summarize(df, group_by or cfg.columns.primary_type, stat or cfg.columns.stat("attack"))
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e

    print_dataframe(console, table, title="Summary", max_rows=len(table))
    if output:
        table.to_csv(output, index=False)
        console.print(f"Wrote summary to {output}")


@app.command("defensive")
def defensive(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    max_rows: int = typer.Option(20, "--max-rows"),
):
    """Pokemon whose Defense beats their Attack."""

    cfg = _load_cfg(config)
    df = add_total(_load_data(data, cfg), cfg)
    table = defensive_only(df, cfg)
    print_dataframe(console, table, title=f"Defensive Pokemon ({len(table)})", max_rows=max_rows)


@app.command("averages")
def averages(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    long: bool = typer.Option(False, "--long/--wide", help="Gather the stat averages into Stat/Average"),
    output: Optional[str] = typer.Option(None, "--output"),
):
    """Average stats per primary type."""

    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    table = type_stat_averages_long(df, cfg) if long else type_stat_averages(df, cfg)
    print_dataframe(console, table, title="Average stats by type", max_rows=len(table))
    if output:
        table.to_csv(output, index=False)
        console.print(f"Wrote averages to {output}")


@app.command("walkthrough")
def walkthrough(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    out_dir: str = typer.Option("plots", "--out-dir"),
    dpi: Optional[int] = DpiOpt,
    width: Optional[float] = WidthOpt,
    height: Optional[float] = HeightOpt,
    units: Optional[SizeUnit] = UnitsOpt,
):
    """Run every tutorial step in order and export the final plot."""

    cfg = _load_cfg(config)
    export = _export_cfg(cfg, dpi, width, height, units)
    try:
        res = run_walkthrough(data, cfg, out_dir, console=console, export=export)
    except FileNotFoundError as e:
        console.print(f"Data file not found: {data}")
        raise typer.Exit(code=1) from e
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    console.print(f"Final plot: {res.final_plot}")


plot_app = typer.Typer(help="Single plots (saves image files)")
app.add_typer(plot_app, name="plot")


@plot_app.command("scatter")
def plot_scatter(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    x: Optional[str] = typer.Option(None, "--x", help="Default: Attack"),
    y: Optional[str] = typer.Option(None, "--y", help="Default: Defense"),
    color: Optional[str] = typer.Option(None, "--color", help="Fixed point colour, e.g. red"),
    color_by: Optional[str] = typer.Option(None, "--color-by", help="Column mapped to colour"),
    out: str = typer.Option("scatter.png", "--out"),
    dpi: Optional[int] = DpiOpt,
    width: Optional[float] = WidthOpt,
    height: Optional[float] = HeightOpt,
    units: Optional[SizeUnit] = UnitsOpt,
):
    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    c = cfg.columns
    try:
        fig = plots.scatter(
            df,
            x or c.stat("attack"),
            y or c.stat("defense"),
            color=color,
            color_by=color_by,
            palette=cfg.plot.category_palette,
        )
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    _save(fig, out, _export_cfg(cfg, dpi, width, height, units))


@plot_app.command("box")
def plot_box(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    stat: Optional[str] = typer.Option(None, "--stat", help="Default: Attack"),
    out: str = typer.Option("box.png", "--out"),
    dpi: Optional[int] = DpiOpt,
    width: Optional[float] = WidthOpt,
    height: Optional[float] = HeightOpt,
    units: Optional[SizeUnit] = UnitsOpt,
):
    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    try:
        fig = plots.box(df, cfg.columns.primary_type, stat or cfg.columns.stat("attack"))
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    _save(fig, out, _export_cfg(cfg, dpi, width, height, units))


@plot_app.command("jitter")
def plot_jitter(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    stat: Optional[str] = typer.Option(None, "--stat", help="Default: Attack"),
    jitter_width: float = typer.Option(0.25, "--jitter-width"),
    box_alpha: float = typer.Option(0.5, "--box-alpha"),
    title: Optional[str] = typer.Option(None, "--title"),
    legend: bool = typer.Option(False, "--legend/--no-legend"),
    out: str = typer.Option("jitter.png", "--out"),
    dpi: Optional[int] = DpiOpt,
    width: Optional[float] = WidthOpt,
    height: Optional[float] = HeightOpt,
    units: Optional[SizeUnit] = UnitsOpt,
):
    """Box plot per type with coloured, jittered points."""

    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    ptype = cfg.columns.primary_type
    try:
        fig = plots.box_jitter(
            df,
            ptype,
            stat or cfg.columns.stat("attack"),
            color_by=ptype,
            box_alpha=box_alpha,
            box_size=0.75,
            jitter_width=jitter_width,
            point_size=0.5,
            seed=cfg.plot.seed,
            palette=cfg.plot.category_palette,
            labels=PlotLabels(title=title) if title else None,
            theme=BW_THEME.with_(legend=legend, x_tick_rotation=45),
        )
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    _save(fig, out, _export_cfg(cfg, dpi, width, height, units))


@plot_app.command("composition")
def plot_composition(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    out: str = typer.Option("composition.png", "--out"),
    dpi: Optional[int] = DpiOpt,
    width: Optional[float] = WidthOpt,
    height: Optional[float] = HeightOpt,
    units: Optional[SizeUnit] = UnitsOpt,
):
    """Stacked bars of the per-type stat averages."""

    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    try:
        long = type_stat_averages_long(df, cfg)
        fig = plots.stacked_composition(
            long,
            cfg.columns.primary_type,
            "Avg.Total",
            "Stat",
            palette=cfg.plot.palette,
            ylim=cfg.plot.composition_ylim,
            labels=PlotLabels(
                x="Pokemon Type",
                y="Average total stat points",
                title="Composition of total stats by Pokemon type",
                legend="Stat",
            ),
        )
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    _save(fig, out, _export_cfg(cfg, dpi, width, height, units))


@plot_app.command("facets")
def plot_facets(
    data: str = DataArg,
    config: Optional[str] = ConfigOpt,
    highlight: bool = typer.Option(False, "--highlight/--no-highlight", help="Draw all data in grey behind each panel"),
    nrow: Optional[int] = typer.Option(None, "--nrow", help="Rows of panels (default from config)"),
    out: str = typer.Option("facets.png", "--out"),
    dpi: Optional[int] = DpiOpt,
    width: Optional[float] = WidthOpt,
    height: Optional[float] = HeightOpt,
    units: Optional[SizeUnit] = UnitsOpt,
):
    """Attack vs Defense per primary type with a line of best fit."""

    cfg = _load_cfg(config)
    df = _load_data(data, cfg)
    c = cfg.columns
    try:
        fig = plots.facet_regression(
            df,
            c.stat("attack"),
            c.stat("defense"),
            c.primary_type,
            nrow=nrow or cfg.plot.facet_rows,
            highlight=highlight,
            palette=cfg.plot.category_palette,
        )
    except (KeyError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    _save(fig, out, _export_cfg(cfg, dpi, width, height, units))


if __name__ == "__main__":
    app()
