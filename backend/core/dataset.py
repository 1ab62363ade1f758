"""
Dataset Contract

A dataset is an ordered sequence of records (mappings from column name
to a loosely typed scalar). Everything downstream assumes that shape;
this module is the one place that checks it.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any


Record = Mapping[str, Any]


class InvalidDatasetError(ValueError):
    """Raised when the top-level input is not a sequence of records."""


def ensure_dataset(data: Any) -> list[Record]:
    """
    Validate and normalize a dataset.

    Accepts a sequence of mappings or a JSON string holding an array of
    objects. An empty sequence is valid.

    Raises:
        InvalidDatasetError: For None, scalars, or sequences with non-mapping rows
    """
    if data is None:
        raise InvalidDatasetError("Dataset is missing")

    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise InvalidDatasetError(f"Dataset is not valid JSON: {e}") from e

    if isinstance(data, Mapping) or not isinstance(data, Sequence) or isinstance(data, (str, bytes)):
        raise InvalidDatasetError(
            f"Dataset must be a list of records, got {type(data).__name__}"
        )

    for index, record in enumerate(data):
        if not isinstance(record, Mapping):
            raise InvalidDatasetError(
                f"Record {index} is {type(record).__name__}, expected a mapping"
            )

    return list(data)


def first_record_columns(dataset: Sequence[Record]) -> list[str]:
    """Column names of the first record, in order."""
    if not dataset:
        return []
    return list(dataset[0].keys())


def infer_columns(dataset: Sequence[Record], sample_size: int = 100) -> list[str]:
    """
    Union of column names across the first `sample_size` records.

    Order is first appearance, so the first record's keys always lead.
    """
    columns: dict[str, None] = {}
    for record in dataset[:sample_size]:
        for key in record.keys():
            columns.setdefault(key, None)
    return list(columns)
