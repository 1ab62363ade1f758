"""
API Response Schemas

Pydantic models for API responses.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from charts.specs import ChartKind
from core.type_inference import ColumnType


class ColumnInfo(BaseModel):
    """Inferred column of a dataset."""

    name: str
    type: ColumnType
    missing_count: int = 0


class UploadResponse(BaseModel):
    """File upload response."""

    dataset_id: str
    filename: str
    row_count: int
    column_count: int
    columns: list[ColumnInfo]
    message: str


class DatasetInfo(BaseModel):
    """Dataset metadata."""

    dataset_id: str
    filename: str
    created_at: datetime
    row_count: int
    column_count: int
    columns: list[str]
    status: str


class DatasetRecords(BaseModel):
    """A page of dataset records."""

    dataset_id: str
    total: int
    records: list[dict[str, Any]]


class ColumnsResponse(BaseModel):
    """Column type map plus schema details."""

    dataset_id: str
    column_types: dict[str, ColumnType]
    columns: list[ColumnInfo]


class RoleOptions(BaseModel):
    """Eligible columns for one chart role."""

    role: str
    label: str
    required: bool
    multiple: bool
    options: list[str] = []
    error: Optional[str] = None


class ChartOptionsResponse(BaseModel):
    """Roles of a chart kind and the columns that fit them."""

    dataset_id: str
    kind: ChartKind
    roles: list[RoleOptions]


class ChartResponse(BaseModel):
    """Chart.js-ready data and options."""

    dataset_id: str
    kind: ChartKind
    data: Optional[dict[str, Any]] = Field(
        default=None,
        description="Labels and datasets; null when nothing could be drawn"
    )
    options: dict[str, Any] = {}
    summary: Optional[dict[str, Any]] = None


class QueryResponse(BaseModel):
    """Chart picked for a free-text query, drawn when its mapping fits."""

    dataset_id: str
    query: str
    kind: ChartKind
    x_column: Optional[str] = None
    y_column: Optional[str] = None
    title: str
    mapping: dict[str, str]
    data: Optional[dict[str, Any]] = None
    options: dict[str, Any] = {}
    problems: list[str] = []


class MetricModel(BaseModel):
    """A report metric."""

    id: str
    value: Any = None
    note: Optional[str] = None


class MetricsResponse(BaseModel):
    """Report metrics for a dataset."""

    dataset_id: str
    generated_at: datetime
    processing_time_ms: float
    metrics: list[MetricModel]


class ChartBundleModel(BaseModel):
    """Chart data for one report chart."""

    id: str
    data: dict[str, Any]


class ReportVisualizationsResponse(BaseModel):
    """Report charts for a dataset."""

    dataset_id: str
    visualizations: list[ChartBundleModel]


class CleaningResponse(BaseModel):
    """AI cleaning outcome."""

    dataset_id: str
    row_count: int
    chunks: int
    summary: str


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None
