"""
Chart Data Shaper

Turns a dataset plus a column mapping into chart-ready labels and
series. Nothing is rendered here and input records are never mutated.

Callers are expected to validate the mapping against the inferred
column types first (see charts.specs); `render` does that for them.
Unparseable cells degrade to None rather than raising.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional, Sequence

import numpy as np
from numba import jit
from scipy import stats as scipy_stats

from charts.options import ChartConfiguration, get_chart_options
from charts.palette import BASE_COLOR, base_rgba, generate_colors
from charts.specs import ChartKind, ChartSpecError, split_metrics, validate_chart_spec
from config import get_settings
from core.dataset import Record, ensure_dataset
from core.logging_config import chart_logger as logger
from core.type_inference import ColumnTypeMap, detect_column_types
from core.values import is_missing, parse_date, to_number


@dataclass
class ChartResult:
    """Chart-ready data with its display options."""

    kind: str
    data: Optional[dict[str, Any]]
    options: dict[str, Any]
    summary: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "data": self.data,
            "options": self.options,
            "summary": self.summary,
        }


@jit(nopython=True, cache=True)
def _histogram_numba(values: np.ndarray, minimum: float, bin_width: float, bins: int) -> np.ndarray:
    """Numba-accelerated fixed-width bin counting; the maximum lands in the last bin."""
    counts = np.zeros(bins, dtype=np.int64)
    for i in range(len(values)):
        if bin_width > 0:
            index = int(np.floor((values[i] - minimum) / bin_width))
        else:
            index = 0
        if index > bins - 1:
            index = bins - 1
        elif index < 0:
            index = 0
        counts[index] += 1
    return counts


def _mean(values: list[Optional[float]]) -> Optional[float]:
    """Arithmetic mean of the parseable entries; None when there are none."""
    valid = [v for v in values if v is not None]
    if not valid:
        return None
    return float(np.mean(valid))


class ChartDataShaper:
    """Builds chart-ready data for each supported chart kind."""

    def __init__(self):
        self.settings = get_settings()

    def _category_label(self, value: Any) -> str:
        if is_missing(value):
            return self.settings.report.unknown_label
        return str(value)

    # ========== CHART KINDS ==========

    def process_time_series_data(
        self,
        dataset: Sequence[Record],
        date_column: str,
        value_column: str,
        config: Optional[ChartConfiguration] = None,
    ) -> ChartResult:
        """
        Records sorted ascending by date, one label and one value each.

        The sort is stable; rows whose date does not parse go last in
        input order and keep their raw text as label.
        """
        config = config or ChartConfiguration()
        dataset = ensure_dataset(dataset)

        dated = [(parse_date(row.get(date_column)), row) for row in dataset]
        dated.sort(key=lambda pair: (pair[0] is None, pair[0] or datetime.min))

        label_format = self.settings.visualization.date_label_format
        labels = [
            parsed.strftime(label_format) if parsed is not None
            else ("" if is_missing(row.get(date_column)) else str(row.get(date_column)))
            for parsed, row in dated
        ]
        values = [to_number(row.get(value_column)) for _, row in dated]

        return ChartResult(
            kind=ChartKind.TIME_SERIES.value,
            data={
                "labels": labels,
                "datasets": [
                    {
                        "label": value_column,
                        "data": values,
                        "borderColor": BASE_COLOR,
                        "backgroundColor": base_rgba(0.1),
                        "tension": 0.1,
                        "fill": True,
                    }
                ],
            },
            options=get_chart_options(config.with_defaults(
                title="Time Series Analysis",
                x_axis_label="Date",
                y_axis_label=value_column,
            )),
        )

    def process_distribution_data(
        self,
        dataset: Sequence[Record],
        value_column: str,
        bins: Optional[int] = None,
        config: Optional[ChartConfiguration] = None,
    ) -> ChartResult:
        """
        Fixed-width histogram of a numeric column.

        Bin i covers [min + i*width, min + (i+1)*width); values equal to
        the maximum fall into the last bin. Non-numeric cells are dropped.
        """
        config = config or ChartConfiguration()
        dataset = ensure_dataset(dataset)
        if bins is None:
            bins = self.settings.visualization.histogram_bins
        if bins < 1:
            raise ChartSpecError([f"bins must be at least 1, got {bins}"])

        numbers = [to_number(row.get(value_column)) for row in dataset]
        values = np.array([v for v in numbers if v is not None], dtype=np.float64)

        if len(values) == 0:
            labels: list[str] = []
            frequencies: list[int] = []
        else:
            minimum = float(values.min())
            maximum = float(values.max())
            bin_width = (maximum - minimum) / bins
            frequencies = _histogram_numba(values, minimum, bin_width, bins).tolist()
            labels = [
                f"{minimum + i * bin_width:.2f} - {minimum + (i + 1) * bin_width:.2f}"
                for i in range(bins)
            ]

        return ChartResult(
            kind=ChartKind.DISTRIBUTION.value,
            data={
                "labels": labels,
                "datasets": [
                    {
                        "label": f"Distribution of {value_column}",
                        "data": frequencies,
                        "backgroundColor": base_rgba(0.8),
                        "borderColor": BASE_COLOR,
                        "borderWidth": 1,
                    }
                ],
            },
            options=get_chart_options(config.with_defaults(
                title="Distribution Analysis",
                x_axis_label=value_column,
                y_axis_label="Frequency",
            )),
        )

    def process_correlation_data(
        self,
        dataset: Sequence[Record],
        x_column: str,
        y_column: str,
        config: Optional[ChartConfiguration] = None,
    ) -> ChartResult:
        """One (x, y) point per record: no sorting, grouping or dedup."""
        config = config or ChartConfiguration()
        dataset = ensure_dataset(dataset)

        points = [
            {"x": to_number(row.get(x_column)), "y": to_number(row.get(y_column))}
            for row in dataset
        ]

        return ChartResult(
            kind=ChartKind.CORRELATION.value,
            data={
                "datasets": [
                    {
                        "label": f"{x_column} vs {y_column}",
                        "data": points,
                        "backgroundColor": base_rgba(0.6),
                        "pointRadius": 5,
                        "pointHoverRadius": 8,
                    }
                ],
            },
            options=get_chart_options(config.with_defaults(
                title="Correlation Analysis",
                x_axis_label=x_column,
                y_axis_label=y_column,
            )),
            summary=self._pearson_summary(points),
        )

    def _pearson_summary(self, points: list[dict[str, Optional[float]]]) -> Optional[dict[str, Any]]:
        """Pearson r over complete pairs, when there is enough variation."""
        pairs = [(p["x"], p["y"]) for p in points if p["x"] is not None and p["y"] is not None]
        if len(pairs) < 3:
            return None

        xs = np.array([p[0] for p in pairs], dtype=np.float64)
        ys = np.array([p[1] for p in pairs], dtype=np.float64)
        if xs.std() == 0 or ys.std() == 0:
            return None

        r, p_value = scipy_stats.pearsonr(xs, ys)
        return {
            "pearson": round(float(r), 4),
            "p_value": round(float(p_value), 6),
            "points": len(pairs),
        }

    def process_pie_chart_data(
        self,
        dataset: Sequence[Record],
        category_column: str,
        value_column: Optional[str] = None,
        config: Optional[ChartConfiguration] = None,
    ) -> ChartResult:
        """
        Sum of `value_column` (or row count) per category, in order of
        first appearance.
        """
        config = config or ChartConfiguration()
        dataset = ensure_dataset(dataset)

        totals: dict[str, float] = {}
        for row in dataset:
            category = self._category_label(row.get(category_column))
            if value_column:
                amount = to_number(row.get(value_column))
                totals[category] = totals.get(category, 0) + (amount if amount is not None else 0)
            else:
                totals[category] = totals.get(category, 0) + 1

        base_hue = self.settings.visualization.base_hue
        colors = generate_colors(len(totals), base_hue)
        borders = generate_colors(len(totals), base_hue, alpha=1)

        return ChartResult(
            kind=ChartKind.PIE.value,
            data={
                "labels": list(totals.keys()),
                "datasets": [
                    {
                        "data": list(totals.values()),
                        "backgroundColor": colors,
                        "borderColor": borders,
                        "borderWidth": 1,
                    }
                ],
            },
            options=get_chart_options(replace(
                config.with_defaults(title="Category Distribution"),
                aspect_ratio=1,
            )),
        )

    def process_radar_data(
        self,
        dataset: Sequence[Record],
        metrics: Sequence[str],
        category_column: Optional[str] = None,
        config: Optional[ChartConfiguration] = None,
    ) -> ChartResult:
        """
        Mean of each metric, globally or one series per category.

        Unparseable entries are excluded from both sum and count. Per
        category series get increasing opacity (0.2 + i*0.2 fill,
        0.8 + i*0.2 border), left unclamped.
        """
        config = config or ChartConfiguration()
        dataset = ensure_dataset(dataset)
        metrics = list(metrics)

        if category_column:
            groups: dict[str, list[Record]] = {}
            for row in dataset:
                groups.setdefault(self._category_label(row.get(category_column)), []).append(row)

            datasets = [
                {
                    "label": category,
                    "data": self._metric_means(rows, metrics),
                    "backgroundColor": base_rgba(0.2 + index * 0.2),
                    "borderColor": base_rgba(0.8 + index * 0.2),
                    "borderWidth": 2,
                }
                for index, (category, rows) in enumerate(groups.items())
            ]
        else:
            datasets = [
                {
                    "label": "Values",
                    "data": self._metric_means(dataset, metrics),
                    "backgroundColor": base_rgba(0.2),
                    "borderColor": BASE_COLOR,
                    "borderWidth": 2,
                }
            ]

        return ChartResult(
            kind=ChartKind.RADAR.value,
            data={"labels": metrics, "datasets": datasets},
            options=get_chart_options(replace(
                config.with_defaults(title="Radar Analysis"),
                aspect_ratio=1,
            )),
        )

    def _metric_means(self, rows: Sequence[Record], metrics: list[str]) -> list[Optional[float]]:
        return [_mean([to_number(row.get(metric)) for row in rows]) for metric in metrics]

    def process_bar_data(
        self,
        dataset: Sequence[Record],
        category_column: str,
        value_column: str,
        config: Optional[ChartConfiguration] = None,
    ) -> ChartResult:
        """Sum of a value per category; unparseable values count as 0."""
        config = config or ChartConfiguration()
        dataset = ensure_dataset(dataset)

        totals: dict[str, float] = {}
        for row in dataset:
            category = self._category_label(row.get(category_column))
            amount = to_number(row.get(value_column))
            totals[category] = totals.get(category, 0) + (amount if amount is not None else 0)

        return ChartResult(
            kind=ChartKind.BAR.value,
            data={
                "labels": list(totals.keys()),
                "datasets": [
                    {
                        "label": value_column,
                        "data": list(totals.values()),
                        "backgroundColor": base_rgba(0.5),
                        "borderColor": BASE_COLOR,
                        "borderWidth": 1,
                    }
                ],
            },
            options=get_chart_options(config.with_defaults(
                title=f"{value_column} by {category_column}",
                x_axis_label=category_column,
                y_axis_label=value_column,
            )),
        )

    # ========== DISPATCH ==========

    def render(
        self,
        kind: ChartKind,
        dataset: Sequence[Record],
        mapping: dict[str, Any],
        config: Optional[ChartConfiguration] = None,
        column_types: Optional[ColumnTypeMap] = None,
        bins: Optional[int] = None,
    ) -> ChartResult:
        """
        Validate a mapping and shape the data for a chart kind.

        Raises:
            ChartSpecError: When the mapping does not fit the column types
        """
        kind = ChartKind(kind)
        dataset = ensure_dataset(dataset)
        if column_types is None:
            column_types = detect_column_types(dataset)

        problems = validate_chart_spec(kind, mapping, column_types)
        if problems:
            logger.warning(f"Rejected {kind.value} mapping: {problems}")
            raise ChartSpecError(problems)

        logger.info(f"Shaping {kind.value} chart over {len(dataset):,} rows")

        if kind is ChartKind.TIME_SERIES:
            return self.process_time_series_data(
                dataset, mapping["dateColumn"], mapping["valueColumn"], config
            )
        if kind is ChartKind.DISTRIBUTION:
            return self.process_distribution_data(
                dataset, mapping["valueColumn"], bins=bins, config=config
            )
        if kind is ChartKind.CORRELATION:
            return self.process_correlation_data(
                dataset, mapping["xColumn"], mapping["yColumn"], config
            )
        if kind is ChartKind.PIE:
            return self.process_pie_chart_data(
                dataset, mapping["categoryColumn"], mapping.get("valueColumn"), config
            )
        if kind is ChartKind.RADAR:
            return self.process_radar_data(
                dataset, split_metrics(mapping["metrics"]), mapping.get("categoryColumn"), config
            )
        return self.process_bar_data(
            dataset, mapping["categoryColumn"], mapping["valueColumn"], config
        )


# Global shaper instance
chart_data_shaper = ChartDataShaper()

process_time_series_data = chart_data_shaper.process_time_series_data
process_distribution_data = chart_data_shaper.process_distribution_data
process_correlation_data = chart_data_shaper.process_correlation_data
process_pie_chart_data = chart_data_shaper.process_pie_chart_data
process_radar_data = chart_data_shaper.process_radar_data
process_bar_data = chart_data_shaper.process_bar_data
