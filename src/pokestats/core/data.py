from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import pandas as pd

from .config import TutorialConfig

logger = logging.getLogger(__name__)

_TEXT_SUFFIXES = {".csv", ".txt", ".tsv"}


def load_dataset(path: str | Path, cfg: TutorialConfig) -> pd.DataFrame:
    """Read the stats table.

    Only the strings in ``cfg.read.na_values`` become missing, so a secondary
    type written as ``""`` or ``"NA"`` loads as NaN and nothing else does.
    """

    path = Path(path)
    if path.suffix.lower() not in _TEXT_SUFFIXES:
        raise ValueError(f"Unsupported dataset format: {path.suffix}. Use a delimited text file (.csv)")

    df = pd.read_csv(
        path,
        sep=cfg.read.sep,
        na_values=cfg.read.na_values,
        keep_default_na=False,
    )
    logger.debug("Loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
    return df


def validate_dataset(df: pd.DataFrame, cfg: TutorialConfig, *, strict: bool = True) -> None:
    """Check that configured columns exist and numeric columns are numeric."""

    missing: List[str] = [c for c in cfg.required_columns() if c not in df.columns]
    if missing:
        raise ValueError(f"Dataset is missing required columns: {missing}")

    if not strict:
        return

    for col in cfg.numeric_columns():
        coerced = pd.to_numeric(df[col], errors="coerce")
        bad = coerced.isna()
        if bad.any():
            bad_rows = df.index[bad][:10].tolist()
            raise ValueError(f"Column '{col}' must be numeric. Example bad rows: {bad_rows}")


def preview(df: pd.DataFrame, n: int = 6) -> pd.DataFrame:
    """First ``n`` rows, the same default as R's ``head()``."""
    if n < 0:
        raise ValueError("n must be non-negative")
    return df.head(n)
