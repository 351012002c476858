from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, model_validator


class ExportFormat(str, Enum):
    png = "png"
    jpeg = "jpeg"
    jpg = "jpg"
    tiff = "tiff"
    tif = "tif"
    pdf = "pdf"
    svg = "svg"


class SizeUnit(str, Enum):
    inches = "in"
    cm = "cm"
    mm = "mm"


class ColumnsConfig(BaseModel):
    """Header names of the stats table.

    Defaults match the classic Pokemon CSV.
    """

    row_id: str = "#"
    name: str = "Name"
    primary_type: str = "Type 1"
    secondary_type: str = "Type 2"
    stats: List[str] = Field(
        default_factory=lambda: ["HP", "Attack", "Defense", "Sp. Atk", "Sp. Def", "Speed"]
    )
    generation: str = "Generation"
    legendary: str = "Legendary"

    @model_validator(mode="after")
    def _validate(self) -> "ColumnsConfig":
        if len(self.stats) != 6 or len(set(self.stats)) != 6:
            raise ValueError(f"Exactly six distinct stat columns are required, got: {self.stats}")
        return self

    def stat(self, role: str) -> str:
        """Return the header of a stat by its role (hp, attack, defense, sp_atk, sp_def, speed)."""
        roles = ["hp", "attack", "defense", "sp_atk", "sp_def", "speed"]
        if role not in roles:
            raise KeyError(f"Unknown stat role '{role}'. Known: {roles}")
        return self.stats[roles.index(role)]


class ReadConfig(BaseModel):
    sep: str = ","
    # Strings read as missing. pandas' own default NA list is disabled.
    na_values: List[str] = Field(default_factory=lambda: ["", "NA"])


class PlotConfig(BaseModel):
    seed: int = 0
    facet_rows: int = Field(default=3, ge=1)
    composition_ylim: Tuple[float, float] = (0.0, 3000.0)
    palette: str = "viridis"
    category_palette: str = "tab20"
    # resolution of the intermediate PNGs the walkthrough writes
    step_dpi: int = Field(default=150, gt=0)

    @model_validator(mode="after")
    def _validate(self) -> "PlotConfig":
        lo, hi = self.composition_ylim
        if hi <= lo:
            raise ValueError(f"composition_ylim must be increasing, got {self.composition_ylim}")
        return self


class ExportConfig(BaseModel):
    """How the final figure is written to disk."""

    format: ExportFormat = ExportFormat.pdf
    dpi: int = Field(default=600, gt=0)
    width: Optional[float] = Field(default=7.0, gt=0)
    height: Optional[float] = Field(default=7.0, gt=0)
    units: SizeUnit = SizeUnit.inches


def to_inches(value: float, units: SizeUnit | str) -> float:
    units = SizeUnit(units)
    if units == SizeUnit.cm:
        return value / 2.54
    if units == SizeUnit.mm:
        return value / 25.4
    return float(value)


class TutorialConfig(BaseModel):
    """Top-level config for the walkthrough. ``TutorialConfig()`` fits the classic CSV."""

    project_name: str = "pokestats"

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    read: ReadConfig = Field(default_factory=ReadConfig)
    plot: PlotConfig = Field(default_factory=PlotConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TutorialConfig":
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "TutorialConfig":
        if path is None:
            return cls()
        return cls.from_yaml(path)

    def stat_names(self) -> List[str]:
        return list(self.columns.stats)

    def numeric_columns(self) -> List[str]:
        return self.stat_names() + [self.columns.generation]

    def required_columns(self) -> List[str]:
        c = self.columns
        return [c.row_id, c.name, c.primary_type, c.secondary_type, *c.stats, c.generation, c.legendary]
