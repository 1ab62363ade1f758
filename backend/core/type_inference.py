"""
Column Type Inference

Classifies each dataset column as date, number, or string. The result
drives which chart roles a column may fill.

Per column:
1. Look at the first non-missing value. No value at all -> string.
2. If that value is a date, require that more than `threshold` of all
   rows are missing or parse as dates -> date.
3. Otherwise require that more than `threshold` of all rows are
   non-missing numbers -> number.
4. Anything else -> string.

A malformed first value skips the date check entirely, even when later rows
are valid dates.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from config import get_settings
from core.dataset import Record, ensure_dataset, first_record_columns, infer_columns
from core.logging_config import data_logger as logger
from core.values import is_missing, parse_date, to_number


class ColumnType(str, Enum):
    """Inferred column kinds."""

    DATE = "date"
    NUMBER = "number"
    STRING = "string"


ColumnTypeMap = dict[str, ColumnType]


@dataclass
class DatasetColumn:
    """A column of the inferred schema."""

    name: str
    type: ColumnType
    missing_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "missing_count": self.missing_count,
        }


class ColumnTypeDetector:
    """Heuristic column type detection over the full dataset."""

    def __init__(self, threshold: Optional[float] = None):
        self.settings = get_settings()
        self.threshold = (
            threshold if threshold is not None
            else self.settings.visualization.type_threshold
        )

    def detect(
        self,
        dataset: Sequence[Record],
        columns: Optional[list[str]] = None,
    ) -> ColumnTypeMap:
        """
        Detect the type of every column.

        Args:
            dataset: Records to inspect
            columns: Columns to classify (first record's keys if None)

        Returns:
            Mapping of column name to ColumnType
        """
        dataset = ensure_dataset(dataset)
        if not dataset:
            return {}

        if columns is None:
            columns = first_record_columns(dataset)

        column_types = {
            column: self._classify(dataset, column) for column in columns
        }
        logger.debug(
            f"Detected types for {len(column_types)} columns over {len(dataset):,} rows"
        )
        return column_types

    def detect_schema(self, dataset: Sequence[Record]) -> list[DatasetColumn]:
        """
        Infer an explicit schema: columns unioned across a sample of
        records, each with its type and missing-value count.
        """
        dataset = ensure_dataset(dataset)
        columns = infer_columns(
            dataset, self.settings.visualization.schema_sample_size
        )
        column_types = self.detect(dataset, columns=columns)

        return [
            DatasetColumn(
                name=column,
                type=column_types[column],
                missing_count=sum(1 for row in dataset if is_missing(row.get(column))),
            )
            for column in columns
        ]

    def _classify(self, dataset: Sequence[Record], column: str) -> ColumnType:
        first_value = next(
            (row.get(column) for row in dataset if not is_missing(row.get(column))),
            None,
        )
        if first_value is None:
            return ColumnType.STRING

        total = len(dataset)

        if parse_date(first_value) is not None:
            date_count = sum(
                1 for row in dataset
                if is_missing(row.get(column)) or parse_date(row.get(column)) is not None
            )
            if date_count / total > self.threshold:
                return ColumnType.DATE

        number_count = sum(
            1 for row in dataset if to_number(row.get(column)) is not None
        )
        if number_count / total > self.threshold:
            return ColumnType.NUMBER

        return ColumnType.STRING


def detect_column_types(
    dataset: Sequence[Record],
    columns: Optional[list[str]] = None,
) -> ColumnTypeMap:
    """Classify each column of a dataset as date, number, or string."""
    return column_type_detector.detect(dataset, columns=columns)


# Global detector instance
column_type_detector = ColumnTypeDetector()
