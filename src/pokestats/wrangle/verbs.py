"""The six dplyr verbs as plain pandas functions.

``select_columns``, ``filter_rows``, ``arrange``, ``mutate``,
``group_summarize`` and ``gather`` each return a new DataFrame and leave
their input untouched, so calls chain the way a pipe does.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Union

import pandas as pd


def _check_columns(df: pd.DataFrame, columns: Sequence[str]) -> None:
    unknown = [c for c in columns if c not in df.columns]
    if unknown:
        raise KeyError(f"Unknown column(s): {unknown}. Available: {list(df.columns)}")


def select_columns(
    df: pd.DataFrame,
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    if (include is None) == (exclude is None):
        raise ValueError("Pass exactly one of include= or exclude=")
    if include is not None:
        include = list(include)
        _check_columns(df, include)
        return df[include].copy()
    exclude = list(exclude)
    _check_columns(df, exclude)
    return df.drop(columns=exclude)


def filter_rows(
    df: pd.DataFrame,
    mask: Union[pd.Series, Callable[[pd.DataFrame], pd.Series], None] = None,
    **equals: Any,
) -> pd.DataFrame:
    """Keep rows where ``mask`` holds and every ``column == value`` pair matches.

    Keyword names must be valid identifiers; for other headers pass a mask.
    """

    keep = pd.Series(True, index=df.index)
    if mask is not None:
        if callable(mask):
            mask = mask(df)
        keep &= pd.Series(mask, index=df.index).fillna(False).astype(bool)
    if equals:
        _check_columns(df, list(equals))
        for col, value in equals.items():
            keep &= df[col].eq(value)
    return df.loc[keep].copy()


def arrange(df: pd.DataFrame, by: Union[str, Sequence[str]], *, descending: bool = False) -> pd.DataFrame:
    by = [by] if isinstance(by, str) else list(by)
    _check_columns(df, by)
    return df.sort_values(by, ascending=not descending, kind="mergesort")


def mutate(df: pd.DataFrame, **columns: Any) -> pd.DataFrame:
    """Add or replace columns. Callables receive the frame being built."""

    out = df.copy()
    for name, value in columns.items():
        out[name] = value(out) if callable(value) else value
    return out


def group_summarize(
    df: pd.DataFrame,
    by: Union[str, Sequence[str]],
    column: str,
) -> pd.DataFrame:
    """One row per group with ``n``, ``mean.<column>`` and ``sd.<column>``.

    ``sd`` is the sample standard deviation (ddof=1), NaN for single-row groups.
    """

    by = [by] if isinstance(by, str) else list(by)
    _check_columns(df, by + [column])

    values = pd.to_numeric(df[column], errors="raise")
    grouped = values.groupby([df[b] for b in by], sort=True, dropna=False)
    out = pd.DataFrame(
        {
            "n": grouped.size(),
            f"mean.{column}": grouped.mean(),
            f"sd.{column}": grouped.std(ddof=1),
        }
    )
    out.index.names = by
    return out.reset_index()


def gather(
    df: pd.DataFrame,
    key: str,
    value: str,
    columns: Sequence[str],
) -> pd.DataFrame:
    """Wide-to-long reshape of ``columns`` into ``key``/``value`` pairs.

    Remaining columns are kept as identifiers. Rows come out column-major:
    every input row for the first gathered column, then the next.
    """

    columns = list(columns)
    if not columns:
        raise ValueError("gather needs at least one column")
    _check_columns(df, columns)
    id_vars = [c for c in df.columns if c not in columns]
    long = df.melt(id_vars=id_vars, value_vars=columns, var_name=key, value_name=value)
    return long.reset_index(drop=True)


def columns_between(df: pd.DataFrame, first: str, last: str) -> list[str]:
    """Column names from ``first`` to ``last`` inclusive, like ``Avg.HP:Avg.SpDef``."""

    cols = list(df.columns)
    _check_columns(df, [first, last])
    i, j = cols.index(first), cols.index(last)
    if j < i:
        raise ValueError(f"'{last}' comes before '{first}'")
    return cols[i : j + 1]


def sum_columns(df: pd.DataFrame, columns: Sequence[str]) -> pd.Series:
    columns = list(columns)
    _check_columns(df, columns)
    return df[columns].apply(pd.to_numeric, errors="raise").sum(axis=1)
