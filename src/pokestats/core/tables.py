from __future__ import annotations

import pandas as pd
from rich.console import Console
from rich.table import Table


def _cell(value) -> str:
    if isinstance(value, float):
        if pd.isna(value):
            return "NA"
        return f"{value:.4g}" if abs(value) < 1e4 else f"{value:.6g}"
    if value is None or value is pd.NA:
        return "NA"
    return str(value)


def dataframe_table(df: pd.DataFrame, title: str, max_rows: int = 20) -> Table:
    tbl = Table(title=title, show_lines=False)
    for c in df.columns:
        numeric = pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])
        tbl.add_column(str(c), justify="right" if numeric else "left")
    for row in df.head(max_rows).itertuples(index=False):
        tbl.add_row(*[_cell(v) for v in row])
    return tbl


def print_dataframe(console: Console, df: pd.DataFrame, title: str, max_rows: int = 20) -> None:
    console.print(dataframe_table(df, title, max_rows=max_rows))
    if len(df) > max_rows:
        console.print(f"(showing first {max_rows} of {len(df)} rows)")
