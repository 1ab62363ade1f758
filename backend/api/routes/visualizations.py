"""
Visualization API Routes

Endpoints that shape dataset columns into chart-ready data, from an
explicit mapping or a free-text query.
"""

from fastapi import APIRouter, HTTPException, Query

from api.routes.datasets import load_dataset_records, schema_column_types
from api.schemas.requests import ChartRequest, QueryRequest
from api.schemas.responses import (
    ChartOptionsResponse,
    ChartResponse,
    ErrorResponse,
    QueryResponse,
    RoleOptions,
)
from charts.options import ChartConfiguration
from charts.shaper import chart_data_shaper
from charts.specs import ChartKind, ChartSpecError, describe_roles, suggest_chart
from core.dataset import InvalidDatasetError
from core.logging_config import chart_logger as logger


router = APIRouter()


@router.post(
    "/datasets/{dataset_id}/charts",
    response_model=ChartResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_chart(dataset_id: str, request: ChartRequest) -> ChartResponse:
    """
    Shape a dataset for one chart kind.

    The mapping is checked against the inferred column types; a mapping
    that does not fit is answered with 422 and the list of problems.
    """
    records = load_dataset_records(dataset_id)

    try:
        result = chart_data_shaper.render(
            request.kind,
            records,
            request.mapping,
            config=request.config.to_configuration(),
            column_types=schema_column_types(records),
            bins=request.bins,
        )
    except ChartSpecError as e:
        raise HTTPException(status_code=422, detail=e.problems)
    except InvalidDatasetError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error shaping chart: {str(e)}")

    return ChartResponse(
        dataset_id=dataset_id,
        kind=request.kind,
        data=result.data,
        options=result.options,
        summary=result.summary,
    )


@router.get("/datasets/{dataset_id}/chart-options", response_model=ChartOptionsResponse)
async def get_chart_options(
    dataset_id: str,
    kind: ChartKind = Query(..., description="Chart kind"),
) -> ChartOptionsResponse:
    """Columns eligible for each role of a chart kind."""
    records = load_dataset_records(dataset_id)
    roles = describe_roles(kind, schema_column_types(records))

    return ChartOptionsResponse(
        dataset_id=dataset_id,
        kind=kind,
        roles=[RoleOptions(**role) for role in roles],
    )


@router.post(
    "/datasets/{dataset_id}/query",
    response_model=QueryResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def query_chart(dataset_id: str, request: QueryRequest) -> QueryResponse:
    """
    Turn a free-text question into a chart.

    The picked mapping is returned even when it does not fit the column
    types; in that case data is null and problems lists why.
    """
    records = load_dataset_records(dataset_id)
    column_types = schema_column_types(records)

    try:
        suggestion = suggest_chart(request.query, column_types)
    except ChartSpecError as e:
        raise HTTPException(status_code=422, detail=e.problems)

    data, options, problems = None, {}, []
    try:
        result = chart_data_shaper.render(
            suggestion.kind,
            records,
            suggestion.mapping,
            config=ChartConfiguration(title=suggestion.title),
            column_types=column_types,
        )
        data, options = result.data, result.options
    except ChartSpecError as e:
        problems = e.problems
    logger.info(f"Query '{request.query}' on {dataset_id} -> {suggestion.kind.value}")

    return QueryResponse(
        dataset_id=dataset_id,
        query=request.query,
        data=data,
        options=options,
        problems=problems,
        **suggestion.to_dict(),
    )
