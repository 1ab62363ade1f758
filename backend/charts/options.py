"""
Chart Display Options

Presentation settings shared by every chart kind, rendered into the
options structure the frontend charting library consumes.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Literal, Optional


LegendPosition = Literal["top", "bottom", "left", "right"]

TOOLTIP_BACKGROUND = "rgba(0, 0, 0, 0.8)"
GRID_COLOR = "rgba(0, 0, 0, 0.1)"
DEFAULT_ASPECT_RATIO = 2
ANIMATION_DURATION_MS = 1000


@dataclass(frozen=True)
class ChartConfiguration:
    """User-facing display configuration. None means "use the default"."""

    title: Optional[str] = None
    x_axis_label: Optional[str] = None
    y_axis_label: Optional[str] = None
    legend_position: Optional[LegendPosition] = None
    aspect_ratio: Optional[float] = None
    animation: Optional[bool] = None

    def with_defaults(self, **defaults: Any) -> "ChartConfiguration":
        """Fill unset (None or empty) fields from `defaults`."""
        updates = {
            name: value
            for name, value in defaults.items()
            if getattr(self, name) in (None, "")
        }
        return replace(self, **updates) if updates else self

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "ChartConfiguration":
        """Build from a dict, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def _axis(label: Optional[str]) -> dict[str, Any]:
    return {
        "title": {
            "display": bool(label),
            "text": label or "",
            "padding": 10,
            "font": {"size": 12, "weight": "bold"},
        },
        "grid": {
            "display": True,
            "drawOnChartArea": True,
            "drawTicks": True,
            "color": GRID_COLOR,
        },
    }


def get_chart_options(config: Optional[ChartConfiguration] = None) -> dict[str, Any]:
    """
    Render display options.

    Args:
        config: Display configuration (all defaults if None)

    Returns:
        Nested options dict (legend, title, tooltip, axes)
    """
    config = config or ChartConfiguration()

    return {
        "responsive": True,
        "maintainAspectRatio": True,
        "aspectRatio": config.aspect_ratio or DEFAULT_ASPECT_RATIO,
        "animation": {
            "duration": 0 if config.animation is False else ANIMATION_DURATION_MS,
        },
        "plugins": {
            "legend": {
                "position": config.legend_position or "top",
                "labels": {"usePointStyle": True, "padding": 15},
            },
            "title": {
                "display": bool(config.title),
                "text": config.title or "",
                "padding": 20,
                "font": {"size": 16, "weight": "bold"},
            },
            "tooltip": {
                "backgroundColor": TOOLTIP_BACKGROUND,
                "padding": 12,
                "titleFont": {"size": 14, "weight": "bold"},
                "bodyFont": {"size": 13},
                "cornerRadius": 6,
                "displayColors": True,
            },
        },
        "scales": {
            "x": _axis(config.x_axis_label),
            "y": _axis(config.y_axis_label),
        },
    }
