"""
Chart Specifications

Chart kinds, the column roles each kind needs, validation of a column
mapping against the inferred column types, and chart suggestions for
free-text queries.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from core.type_inference import ColumnType, ColumnTypeMap


class ChartKind(str, Enum):
    """Supported chart kinds."""

    TIME_SERIES = "timeSeries"
    DISTRIBUTION = "distribution"
    CORRELATION = "correlation"
    PIE = "pie"
    RADAR = "radar"
    BAR = "bar"


class ChartSpecError(ValueError):
    """Raised when a chart mapping cannot be rendered."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


@dataclass(frozen=True)
class RoleRequirement:
    """A column role of a chart kind and the types it accepts."""

    role: str
    label: str
    types: frozenset[ColumnType]
    required: bool = True
    multiple: bool = False


_NUMBER = frozenset({ColumnType.NUMBER})
_DATE = frozenset({ColumnType.DATE})
_CATEGORY = frozenset({ColumnType.STRING, ColumnType.NUMBER})


CHART_ROLES: dict[ChartKind, list[RoleRequirement]] = {
    ChartKind.TIME_SERIES: [
        RoleRequirement("dateColumn", "Date Column", _DATE),
        RoleRequirement("valueColumn", "Value Column", _NUMBER),
    ],
    ChartKind.DISTRIBUTION: [
        RoleRequirement("valueColumn", "Value Column", _NUMBER),
    ],
    ChartKind.CORRELATION: [
        RoleRequirement("xColumn", "X Axis", _NUMBER),
        RoleRequirement("yColumn", "Y Axis", _NUMBER),
    ],
    ChartKind.PIE: [
        RoleRequirement("categoryColumn", "Category", frozenset({ColumnType.STRING})),
        RoleRequirement("valueColumn", "Value", _NUMBER, required=False),
    ],
    ChartKind.RADAR: [
        RoleRequirement("metrics", "Metrics", _NUMBER, multiple=True),
        RoleRequirement("categoryColumn", "Category", frozenset({ColumnType.STRING}), required=False),
    ],
    ChartKind.BAR: [
        RoleRequirement("categoryColumn", "Category", _CATEGORY),
        RoleRequirement("valueColumn", "Value", _NUMBER),
    ],
}

# Types offered for each role when building a mapping
ROLE_TYPES: dict[str, frozenset[ColumnType]] = {
    "dateColumn": _DATE,
    "valueColumn": _NUMBER,
    "xColumn": _NUMBER,
    "yColumn": _NUMBER,
    "categoryColumn": _CATEGORY,
    "metrics": _NUMBER,
}

_NO_COLUMNS_MESSAGES = {
    "dateColumn": "No date columns available in the dataset",
    "categoryColumn": "No categorical columns available in the dataset",
}


def split_metrics(value: Any) -> list[str]:
    """Metrics arrive comma-joined or as a list."""
    if not value:
        return []
    if isinstance(value, str):
        return [m.strip() for m in value.split(",") if m.strip()]
    return [str(m) for m in value]


def column_options(
    role: str,
    column_types: ColumnTypeMap,
    allowed: Optional[frozenset[ColumnType]] = None,
) -> list[str]:
    """Columns eligible for a role, in dataset order."""
    if allowed is None:
        allowed = ROLE_TYPES.get(role)
    if allowed is None:
        return list(column_types)
    return [col for col, col_type in column_types.items() if col_type in allowed]


def mapping_error(
    role: str,
    column_types: ColumnTypeMap,
    allowed: Optional[frozenset[ColumnType]] = None,
) -> Optional[str]:
    """Message explaining why a role has no eligible columns, if any."""
    if column_options(role, column_types, allowed):
        return None
    return _NO_COLUMNS_MESSAGES.get(role, "No numeric columns available in the dataset")


def validate_chart_spec(
    kind: ChartKind,
    mapping: dict[str, Any],
    column_types: ColumnTypeMap,
) -> list[str]:
    """
    Check a column mapping against the inferred column types.

    Returns:
        List of problems; empty when the mapping is valid
    """
    problems = []

    for requirement in CHART_ROLES[ChartKind(kind)]:
        raw = mapping.get(requirement.role)
        if raw and not isinstance(raw, str):
            if not requirement.multiple:
                problems.append(f"{requirement.role} must be a column name")
                continue
            if not isinstance(raw, (list, tuple)):
                problems.append(f"{requirement.role} must be a list of column names")
                continue
        columns = split_metrics(raw) if requirement.multiple else ([raw] if raw else [])

        if not columns:
            if requirement.required:
                problems.append(f"{requirement.label} ({requirement.role}) is required")
            continue

        for column in columns:
            if column not in column_types:
                problems.append(f"Column '{column}' does not exist")
                continue
            col_type = column_types[column]
            if col_type not in requirement.types:
                expected = " or ".join(sorted(t.value for t in requirement.types))
                problems.append(
                    f"Column '{column}' is {col_type.value}, "
                    f"{requirement.role} needs {expected}"
                )

    return problems


def describe_roles(kind: ChartKind, column_types: ColumnTypeMap) -> list[dict[str, Any]]:
    """Roles of a chart kind with their eligible columns."""
    return [
        {
            "role": req.role,
            "label": req.label,
            "required": req.required,
            "multiple": req.multiple,
            "options": column_options(req.role, column_types, req.types),
            "error": mapping_error(req.role, column_types, req.types),
        }
        for req in CHART_ROLES[ChartKind(kind)]
    ]


# ========== NATURAL LANGUAGE QUERIES ==========

_BAR_WORDS = frozenset({"compare", "comparison"})
_PIE_WORDS = frozenset({"distribution", "breakdown"})


@dataclass
class ChartSuggestion:
    """Chart kind and mapping picked for a free-text query."""

    kind: ChartKind
    x_column: Optional[str]
    y_column: Optional[str]
    title: str
    mapping: dict[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "x_column": self.x_column,
            "y_column": self.y_column,
            "title": self.title,
            "mapping": self.mapping,
        }


def suggest_chart(query: str, column_types: ColumnTypeMap) -> ChartSuggestion:
    """
    Pick a chart for a free-text query.

    "compare" asks for a bar chart and "distribution" or "breakdown" for a
    pie; anything else is a line over time. The x column starts as the
    first column and the y column as the first numeric one. Columns named
    in the query and not yet used then fill y first (while it is unset or
    equal to x) and x after that. A line over a non-date x becomes a bar.

    Raises:
        ChartSpecError: If the dataset has no columns
    """
    columns = list(column_types)
    if not columns:
        raise ChartSpecError(["Dataset has no columns"])

    lowered = query.lower()
    words = set(lowered.split())

    x_column = columns[0]
    numeric = [col for col in columns if column_types[col] == ColumnType.NUMBER]
    if numeric:
        y_column = numeric[0]
    else:
        y_column = columns[1] if len(columns) > 1 else None

    for column in columns:
        if column in (x_column, y_column):
            continue
        if column.lower() in lowered:
            if not y_column or y_column == x_column:
                y_column = column
            else:
                x_column = column

    if words & _BAR_WORDS:
        kind = ChartKind.BAR
    elif words & _PIE_WORDS:
        kind = ChartKind.PIE
    elif column_types.get(x_column) == ColumnType.DATE:
        kind = ChartKind.TIME_SERIES
    else:
        kind = ChartKind.BAR

    if kind == ChartKind.TIME_SERIES:
        mapping = {"dateColumn": x_column}
    else:
        mapping = {"categoryColumn": x_column}
    if y_column:
        mapping["valueColumn"] = y_column

    return ChartSuggestion(
        kind=kind,
        x_column=x_column,
        y_column=y_column,
        title=f"{y_column} by {x_column}" if y_column else x_column,
        mapping=mapping,
    )
