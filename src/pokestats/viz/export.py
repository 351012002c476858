from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from pokestats.core.config import ExportConfig, ExportFormat, SizeUnit, to_inches  # noqa: E402

logger = logging.getLogger(__name__)

# matplotlib format names for the accepted suffixes
_MPL_FORMATS = {
    ExportFormat.png: "png",
    ExportFormat.jpeg: "jpeg",
    ExportFormat.jpg: "jpeg",
    ExportFormat.tiff: "tiff",
    ExportFormat.tif: "tiff",
    ExportFormat.pdf: "pdf",
    ExportFormat.svg: "svg",
}


def resolve_format(path: Path, default: ExportFormat) -> tuple[Path, ExportFormat]:
    """Format from the file suffix, or ``default`` appended when there is none."""

    suffix = path.suffix.lower().lstrip(".")
    if not suffix:
        return path.with_suffix(f".{default.value}"), default
    try:
        return path, ExportFormat(suffix)
    except ValueError:
        allowed = sorted(f.value for f in ExportFormat)
        raise ValueError(f"Unsupported image format '.{suffix}'. Use one of: {allowed}") from None


def save_plot(
    fig: Figure,
    path: str | Path,
    export: Optional[ExportConfig] = None,
    *,
    dpi: Optional[int] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    units: Optional[SizeUnit | str] = None,
) -> Path:
    """Write ``fig`` to ``path`` and close it.

    Keyword arguments override ``export``. Width and height are converted from
    ``units`` to inches; when either is unset the figure keeps its size. The
    saved canvas is exactly that size.
    """

    export = export or ExportConfig()
    dpi = dpi if dpi is not None else export.dpi
    units = SizeUnit(units) if units is not None else export.units
    width = width if width is not None else export.width
    height = height if height is not None else export.height

    try:
        if dpi <= 0:
            raise ValueError(f"dpi must be positive, got {dpi}")
        out_path, fmt = resolve_format(Path(path), export.format)

        if width is not None and height is not None:
            if width <= 0 or height <= 0:
                raise ValueError(f"width and height must be positive, got {width} x {height}")
            fig.set_size_inches(to_inches(width, units), to_inches(height, units))
            # re-fit labels and outside legends to the new canvas
            if fig.get_layout_engine() is None:
                fig.tight_layout()

        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path, dpi=dpi, format=_MPL_FORMATS[fmt])
    finally:
        plt.close(fig)
    logger.debug("Saved %s (%s, %d dpi)", out_path, fmt.value, dpi)
    return out_path
