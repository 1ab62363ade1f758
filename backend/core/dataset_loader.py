"""
Dataset Loader

Parses uploaded CSV and Excel files with Polars, persists them as
Parquet per dataset id, and hands records to the engines.
"""

import hashlib
import io
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import chardet
import polars as pl

from config import get_settings
from core.logging_config import upload_logger as logger


SUPPORTED_EXTENSIONS = (".csv", ".xlsx")


class UnsupportedFileError(ValueError):
    """Raised for files that are neither CSV nor XLSX."""


class DatasetLoader:
    """Upload parsing and Parquet persistence."""

    def __init__(self):
        self.settings = get_settings()

    def detect_encoding_from_bytes(self, data: bytes) -> str:
        """Detect encoding from the first 100KB."""
        result = chardet.detect(data[:102400])
        return result.get("encoding") or "utf-8"

    def parse_upload(self, data: bytes, filename: str) -> pl.DataFrame:
        """
        Parse an uploaded file by extension.

        Raises:
            UnsupportedFileError: For anything but .csv / .xlsx
        """
        name = filename.lower()
        if name.endswith(".csv"):
            return self.parse_csv_bytes(data)
        if name.endswith(".xlsx"):
            return self.parse_excel_bytes(data)
        raise UnsupportedFileError(
            f"Unsupported file type for {filename}; expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    def parse_csv_bytes(
        self,
        data: bytes,
        infer_schema_length: int = 10000,
    ) -> pl.DataFrame:
        """
        Parse CSV bytes.

        Column typing is left to the type inference engine, so dates are
        not parsed here; numbers are inferred by Polars.
        """
        encoding = self.detect_encoding_from_bytes(data)

        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # latin-1 accepts any byte
            text = data.decode("latin-1")

        df = pl.read_csv(
            io.StringIO(text),
            infer_schema_length=infer_schema_length,
            ignore_errors=True,
            truncate_ragged_lines=True,
        )
        logger.info(f"Parsed CSV: {len(df):,} rows x {len(df.columns)} columns ({encoding})")
        return df

    def parse_excel_bytes(self, data: bytes) -> pl.DataFrame:
        """Parse the first sheet of an .xlsx workbook."""
        df = pl.read_excel(io.BytesIO(data), engine="openpyxl")
        logger.info(f"Parsed Excel: {len(df):,} rows x {len(df.columns)} columns")
        return df

    def to_records(self, df: pl.DataFrame) -> list[dict[str, Any]]:
        """DataFrame rows as plain dicts."""
        return df.to_dicts()

    def from_records(self, records: list[dict[str, Any]]) -> pl.DataFrame:
        """Records back into a DataFrame, tolerating mixed cell types."""
        if not records:
            return pl.DataFrame()
        return pl.DataFrame(records, infer_schema_length=None, strict=False)

    def _path(self, dataset_id: str) -> Path:
        return Path(self.settings.upload_dir) / f"{dataset_id}.parquet"

    def save_dataframe(self, df: pl.DataFrame, dataset_id: str) -> Path:
        """Persist a dataset as zstd-compressed Parquet."""
        upload_dir = Path(self.settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)

        file_path = self._path(dataset_id)
        df.write_parquet(file_path, compression="zstd")
        return file_path

    def load_dataframe(self, dataset_id: str) -> pl.DataFrame:
        """
        Load a persisted dataset.

        Raises:
            FileNotFoundError: If the dataset was never saved or was deleted
        """
        file_path = self._path(dataset_id)
        if not file_path.exists():
            raise FileNotFoundError(f"Dataset {dataset_id} not found")
        return pl.read_parquet(file_path)

    def load_records(self, dataset_id: str) -> list[dict[str, Any]]:
        return self.to_records(self.load_dataframe(dataset_id))

    def delete_dataset(self, dataset_id: str) -> bool:
        file_path = self._path(dataset_id)
        if file_path.exists():
            file_path.unlink()
            return True
        return False

    def generate_dataset_id(self, filename: str, now: Optional[datetime] = None) -> str:
        """Unique id from the filename and the upload time."""
        timestamp = (now or datetime.now()).isoformat()
        content = f"{filename}_{timestamp}"
        return hashlib.sha256(content.encode()).hexdigest()[:16]


# Global loader instance
dataset_loader = DatasetLoader()
