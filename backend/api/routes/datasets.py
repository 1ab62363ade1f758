"""
Dataset API Routes

Endpoints for dataset upload, inspection, editing, export and AI cleaning.
"""

from datetime import datetime
from typing import Any

import httpx
from fastapi import APIRouter, Body, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from api.schemas.responses import (
    CleaningResponse,
    ColumnInfo,
    ColumnsResponse,
    DatasetInfo,
    DatasetRecords,
    ErrorResponse,
    UploadResponse,
)
from config import get_settings
from core.dataset import InvalidDatasetError, ensure_dataset
from core.dataset_loader import SUPPORTED_EXTENSIONS, UnsupportedFileError, dataset_loader
from core.logging_config import upload_logger as logger
from core.session_store import session_store
from core.type_inference import ColumnTypeMap, column_type_detector
from insights.report_exporter import (
    CONTENT_TYPES,
    FILE_EXTENSIONS,
    UnsupportedFormatError,
    report_exporter,
)
from llm.data_cleaner import DataCleaningError, data_cleaner


router = APIRouter()


def load_dataset_records(dataset_id: str) -> list[dict[str, Any]]:
    """Records of a registered dataset, or a 404."""
    session = session_store.get(dataset_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Dataset not found")

    try:
        return dataset_loader.load_records(dataset_id)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Dataset data not found")


def schema_column_types(records: list[dict[str, Any]]) -> ColumnTypeMap:
    """Column types over the unioned schema of a dataset."""
    return {column.name: column.type for column in column_type_detector.detect_schema(records)}


def attachment(content: bytes, filename: str, fmt: str) -> Response:
    """Binary download response."""
    return Response(
        content=content,
        media_type=CONTENT_TYPES[fmt],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}.{FILE_EXTENSIONS[fmt]}"'
        },
    )


@router.post(
    "/datasets",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
)
async def upload_dataset(
    file: UploadFile = File(...),
) -> UploadResponse:
    """
    Upload a CSV or Excel file.

    Registers a dataset and returns its inferred column types.
    """
    settings = get_settings()

    if not file.filename or not file.filename.lower().endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="Only CSV and XLSX files are supported"
        )

    content = await file.read()

    file_size_mb = len(content) / (1024 * 1024)
    if file_size_mb > settings.max_file_size_mb:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_file_size_mb}MB"
        )

    try:
        df = dataset_loader.parse_upload(content, file.filename)
        dataset_id = dataset_loader.generate_dataset_id(file.filename)
        dataset_loader.save_dataframe(df, dataset_id)

        records = dataset_loader.to_records(df)
        schema = column_type_detector.detect_schema(records)
    except (UnsupportedFileError, InvalidDatasetError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to process {file.filename}")
        raise HTTPException(
            status_code=500,
            detail=f"Error processing file: {str(e)}"
        )

    session_store.create(dataset_id, {
        "filename": file.filename,
        "row_count": len(df),
        "column_count": len(df.columns),
        "columns": df.columns,
        "status": "ready",
        "file_size_mb": file_size_mb,
    })
    logger.success(f"Registered dataset {dataset_id} ({file.filename}, {len(df):,} rows)")

    return UploadResponse(
        dataset_id=dataset_id,
        filename=file.filename,
        row_count=len(df),
        column_count=len(df.columns),
        columns=[ColumnInfo(**column.to_dict()) for column in schema],
        message=f"Successfully uploaded and processed {file.filename}",
    )


@router.get("/datasets")
async def list_datasets() -> dict:
    """List all registered datasets."""
    datasets = []

    for dataset_id in session_store.list_sessions():
        session = session_store.get(dataset_id)
        if session:
            datasets.append({
                "dataset_id": dataset_id,
                "filename": session.get("filename"),
                "row_count": session.get("row_count"),
                "status": session.get("status"),
            })

    return {"datasets": datasets, "count": len(datasets)}


@router.get("/datasets/{dataset_id}", response_model=DatasetInfo)
async def get_dataset(dataset_id: str) -> DatasetInfo:
    """Get dataset metadata."""
    session = session_store.get(dataset_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Dataset not found")

    return DatasetInfo(
        dataset_id=dataset_id,
        filename=session.get("filename", "unknown"),
        created_at=datetime.fromtimestamp(session.get("created_at", 0)),
        row_count=session.get("row_count", 0),
        column_count=session.get("column_count", 0),
        columns=session.get("columns", []),
        status=session.get("status", "unknown"),
    )


@router.delete("/datasets/{dataset_id}")
async def delete_dataset(dataset_id: str) -> dict:
    """Delete a dataset and its stored data."""
    if not session_store.delete(dataset_id):
        raise HTTPException(status_code=404, detail="Dataset not found")

    dataset_loader.delete_dataset(dataset_id)

    return {"message": f"Dataset {dataset_id} deleted successfully"}


@router.get("/datasets/{dataset_id}/data", response_model=DatasetRecords)
async def get_dataset_records(
    dataset_id: str,
    limit: int = Query(default=100, ge=1, le=10000, description="Maximum records returned"),
) -> DatasetRecords:
    """Get the first records of a dataset."""
    records = load_dataset_records(dataset_id)

    return DatasetRecords(
        dataset_id=dataset_id,
        total=len(records),
        records=records[:limit],
    )


@router.put("/datasets/{dataset_id}/data", responses={400: {"model": ErrorResponse}})
async def replace_dataset_records(dataset_id: str, data: Any = Body(...)) -> dict:
    """
    Replace the records of a dataset.

    The body must be a JSON array of objects; anything else is a 400.
    """
    if session_store.get(dataset_id) is None:
        raise HTTPException(status_code=404, detail="Dataset not found")

    try:
        records = ensure_dataset(data)
    except InvalidDatasetError as e:
        raise HTTPException(status_code=400, detail=str(e))

    df = dataset_loader.from_records(records)
    dataset_loader.save_dataframe(df, dataset_id)
    session_store.update(dataset_id, {
        "row_count": len(df),
        "column_count": len(df.columns),
        "columns": df.columns,
        "status": "edited",
    })
    logger.info(f"Replaced data of {dataset_id} ({len(df):,} rows)")

    return {
        "dataset_id": dataset_id,
        "row_count": len(df),
        "message": f"Dataset {dataset_id} updated successfully",
    }


@router.get("/datasets/{dataset_id}/columns", response_model=ColumnsResponse)
async def get_dataset_columns(dataset_id: str) -> ColumnsResponse:
    """Get inferred column types of a dataset."""
    records = load_dataset_records(dataset_id)
    schema = column_type_detector.detect_schema(records)

    return ColumnsResponse(
        dataset_id=dataset_id,
        column_types={column.name: column.type for column in schema},
        columns=[ColumnInfo(**column.to_dict()) for column in schema],
    )


@router.get("/datasets/{dataset_id}/export")
async def export_dataset(
    dataset_id: str,
    format: str = Query(default="csv", pattern="^(csv|json|excel)$"),
) -> Response:
    """Download a dataset as CSV, JSON or Excel."""
    records = load_dataset_records(dataset_id)

    try:
        content = report_exporter.export_dataset(records, format)
    except UnsupportedFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return attachment(content, f"dataset-{dataset_id}", format)


@router.post("/datasets/{dataset_id}/clean", response_model=CleaningResponse)
async def clean_dataset(dataset_id: str) -> CleaningResponse:
    """
    Clean a dataset with the local LLM.

    The cleaned records replace the stored dataset.
    """
    records = load_dataset_records(dataset_id)

    try:
        result = await data_cleaner.clean(records)
    except DataCleaningError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except (httpx.HTTPError, RuntimeError) as e:
        raise HTTPException(status_code=503, detail=f"LLM unavailable: {str(e)}")

    df = dataset_loader.from_records(result.data)
    dataset_loader.save_dataframe(df, dataset_id)
    session_store.update(dataset_id, {
        "row_count": len(df),
        "column_count": len(df.columns),
        "columns": df.columns,
        "status": "cleaned",
    })

    return CleaningResponse(
        dataset_id=dataset_id,
        row_count=len(result.data),
        chunks=result.chunks,
        summary=result.summary,
    )
