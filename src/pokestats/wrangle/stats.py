from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from pokestats.core.config import TutorialConfig
from pokestats.wrangle.verbs import (
    columns_between,
    filter_rows,
    gather,
    group_summarize,
    mutate,
    select_columns,
    sum_columns,
)

logger = logging.getLogger(__name__)

DEFENSIVE = "Defensive"
OFFENSIVE = "Offensive"

# Output name -> stat role; Speed is left out of the averages.
AVERAGE_COLUMNS = {
    "Avg.HP": "hp",
    "Avg.Attack": "attack",
    "Avg.Defense": "defense",
    "Avg.SpAtk": "sp_atk",
    "Avg.SpDef": "sp_def",
}


def attack_summary(
    df: pd.DataFrame,
    cfg: TutorialConfig,
    *,
    generation: int = 1,
    stat: str | None = None,
) -> pd.DataFrame:
    """Count, mean and sd of a stat per primary type within one generation."""

    c = cfg.columns
    stat = stat or c.stat("attack")
    out = select_columns(df, exclude=[c.row_id]) if c.row_id in df.columns else df
    out = filter_rows(out, out[c.generation] == generation)
    if out.empty:
        logger.warning("No rows for generation %s", generation)
    return group_summarize(out, c.primary_type, stat)


def add_total(df: pd.DataFrame, cfg: TutorialConfig, *, column: str = "Total") -> pd.DataFrame:
    """Add the sum of the six stats.

    Rows that share a name share one total: the sum over all of their stats.
    """

    row_totals = sum_columns(df, cfg.stat_names())
    name_totals = row_totals.groupby(df[cfg.columns.name], sort=False, dropna=False).transform("sum")
    return mutate(df, **{column: name_totals})


def classify_offense_defense(df: pd.DataFrame, cfg: TutorialConfig, *, column: str = "DO") -> pd.DataFrame:
    """Label rows Defensive when Defense > Attack, otherwise Offensive."""

    defense = df[cfg.columns.stat("defense")]
    attack = df[cfg.columns.stat("attack")]
    return mutate(df, **{column: np.where(defense > attack, DEFENSIVE, OFFENSIVE)})


def defensive_only(df: pd.DataFrame, cfg: TutorialConfig, *, column: str = "DO") -> pd.DataFrame:
    labelled = classify_offense_defense(df, cfg, column=column)
    return filter_rows(labelled, labelled[column] == DEFENSIVE)


def type_stat_averages(df: pd.DataFrame, cfg: TutorialConfig, *, total_column: str = "Total") -> pd.DataFrame:
    """Per primary type: Avg.Total, then the per-stat averages."""

    c = cfg.columns
    if total_column not in df.columns:
        df = add_total(df, cfg, column=total_column)

    named = {"Avg.Total": total_column}
    named.update({out: c.stat(role) for out, role in AVERAGE_COLUMNS.items()})

    grouped = df.groupby(c.primary_type, sort=True, dropna=False)
    out = pd.DataFrame({out: grouped[src].mean() for out, src in named.items()})
    return out.reset_index()


def type_stat_averages_long(
    df: pd.DataFrame,
    cfg: TutorialConfig,
    *,
    key: str = "Stat",
    value: str = "Average",
) -> pd.DataFrame:
    wide = type_stat_averages(df, cfg)
    return gather(wide, key, value, columns_between(wide, "Avg.HP", "Avg.SpDef"))
