"""
API Request Schemas

Pydantic models for API request validation.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from charts.options import ChartConfiguration
from charts.specs import ChartKind


class ChartConfigModel(BaseModel):
    """Display configuration for a chart."""

    title: Optional[str] = Field(default=None, description="Chart title")
    x_axis_label: Optional[str] = Field(default=None, description="X axis title")
    y_axis_label: Optional[str] = Field(default=None, description="Y axis title")
    legend_position: Optional[str] = Field(
        default=None,
        pattern="^(top|bottom|left|right)$",
        description="Legend placement"
    )
    aspect_ratio: Optional[float] = Field(
        default=None,
        gt=0,
        description="Width / height ratio"
    )
    animation: Optional[bool] = Field(default=None, description="Animate on render")

    def to_configuration(self) -> ChartConfiguration:
        return ChartConfiguration(**self.model_dump())


class ChartRequest(BaseModel):
    """Chart shaping request."""

    kind: ChartKind = Field(..., description="Chart kind")
    mapping: dict[str, Any] = Field(
        ...,
        description="Role -> column, e.g. {\"dateColumn\": \"date\", \"valueColumn\": \"sales\"}"
    )
    config: ChartConfigModel = Field(
        default_factory=ChartConfigModel,
        description="Display configuration"
    )
    bins: Optional[int] = Field(
        default=None,
        ge=1,
        le=500,
        description="Histogram bin count (distribution only)"
    )


class QueryRequest(BaseModel):
    """Free-text chart request."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="e.g. \"compare revenue by region\""
    )
