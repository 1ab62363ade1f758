"""
Chart Colors

Hue-rotated colors for category charts, and label-keyed picks from the
report palette (configured as REPORT_PALETTE, see config.ReportSettings).
"""

import hashlib
from typing import Optional, Sequence

from config import get_settings


BASE_RGB = "59, 130, 246"
BASE_COLOR = f"rgb({BASE_RGB})"


def _format_hue(hue: float) -> str:
    if float(hue).is_integer():
        return str(int(hue))
    return f"{hue:.2f}".rstrip("0").rstrip(".")


def category_hues(count: int, base_hue: int = 210) -> list[float]:
    """Evenly spaced hues starting at `base_hue`."""
    if count <= 0:
        return []
    return [(base_hue + i * 360 / count) % 360 for i in range(count)]


def generate_colors(count: int, base_hue: int = 210, alpha: float = 0.8) -> list[str]:
    """
    One visually distinct hsla color per category.

    Deterministic given the count: hue = (base_hue + i*360/count) mod 360.
    """
    return [
        f"hsla({_format_hue(hue)}, 70%, 50%, {alpha:g})"
        for hue in category_hues(count, base_hue)
    ]


def base_rgba(alpha: float) -> str:
    """The base blue at a given opacity. Alpha is not clamped."""
    return f"rgba({BASE_RGB}, {round(alpha, 2):g})"


def stable_category_colors(
    categories: Sequence[str],
    palette: Optional[Sequence[str]] = None,
) -> dict[str, str]:
    """
    Map each category to a palette color chosen from the category's own
    label, so a category keeps its color across charts and reorderings.
    Uses the configured report palette unless one is given.
    """
    if palette is None:
        palette = get_settings().report.palette
    colors = {}
    for category in categories:
        digest = hashlib.md5(str(category).encode()).hexdigest()
        colors[category] = palette[int(digest, 16) % len(palette)]
    return colors
