"""
Report API Routes

Business metrics, report charts and report downloads.
"""

import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from api.routes.datasets import attachment, load_dataset_records
from api.schemas.responses import (
    ChartBundleModel,
    MetricModel,
    MetricsResponse,
    ReportVisualizationsResponse,
)
from analysis.report_metrics import report_metrics_engine
from core.session_store import session_store
from insights.report_exporter import UnsupportedFormatError, report_exporter


router = APIRouter()


@router.get("/datasets/{dataset_id}/metrics", response_model=MetricsResponse)
async def get_metrics(dataset_id: str) -> MetricsResponse:
    """
    Compute report metrics.

    Returns total revenue, growth rate, sales by period, average
    transaction and top products, in that order.
    """
    records = load_dataset_records(dataset_id)
    start = time.perf_counter()

    try:
        metrics = report_metrics_engine.calculate_metrics(records)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error computing metrics: {str(e)}")

    return MetricsResponse(
        dataset_id=dataset_id,
        generated_at=datetime.now(),
        processing_time_ms=(time.perf_counter() - start) * 1000,
        metrics=[MetricModel(**metric.to_dict()) for metric in metrics],
    )


@router.get(
    "/datasets/{dataset_id}/report/visualizations",
    response_model=ReportVisualizationsResponse,
)
async def get_report_visualizations(dataset_id: str) -> ReportVisualizationsResponse:
    """Line, bar, pie, area and scatter data for the report."""
    records = load_dataset_records(dataset_id)

    try:
        bundles = report_metrics_engine.generate_visualizations(records)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error generating charts: {str(e)}")

    return ReportVisualizationsResponse(
        dataset_id=dataset_id,
        visualizations=[ChartBundleModel(**bundle.to_dict()) for bundle in bundles],
    )


@router.get("/datasets/{dataset_id}/report/download")
async def download_report(
    dataset_id: str,
    format: str = Query(default="pdf", pattern="^(pdf|excel|csv)$"),
    orientation: str = Query(default="portrait", pattern="^(portrait|landscape)$"),
    include_raw_data: bool = Query(default=False),
    description: Optional[str] = Query(default=None, max_length=1000),
) -> Response:
    """Download the report as PDF, Excel or CSV."""
    records = load_dataset_records(dataset_id)
    session = session_store.get(dataset_id) or {}
    filename = session.get("filename", dataset_id)
    name = f"Report: {filename}"

    try:
        metrics = report_metrics_engine.calculate_metrics(records)
        bundles = report_metrics_engine.generate_visualizations(records)
        content = report_exporter.export_report(
            name,
            metrics,
            format,
            orientation=orientation,
            visualizations=bundles,
            description=description or f"Sales report for {filename}",
            records=records if include_raw_data else None,
        )
    except UnsupportedFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return attachment(content, f"report-{dataset_id}", format)
