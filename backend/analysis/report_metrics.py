"""
Report Metrics Engine

Business metrics over sales-like datasets for the report context.
Records carry their fields under aliases (see core.values.FIELD_ALIASES):
amount/revenue/sales, date/timestamp, product/item/name.

Missing or unparseable amounts count as 0 and missing product labels
become "Unknown". Divisions that have no meaningful result are reported
as an explicit undefined value (None plus a note) instead of NaN/inf.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np
from numba import jit

from config import get_settings
from core.dataset import Record, ensure_dataset
from core.logging_config import metrics_logger as logger
from core.values import is_missing, period_key, resolve_amount, resolve_field, to_number


@dataclass
class MetricResult:
    """A scalar or list-valued metric."""

    id: str
    value: Any
    note: Optional[str] = None

    @property
    def is_defined(self) -> bool:
        return self.value is not None

    def to_dict(self) -> dict[str, Any]:
        result = {"id": self.id, "value": self.value}
        if self.note:
            result["note"] = self.note
        return result


@dataclass
class ChartBundle:
    """Chart-ready data for one report chart."""

    id: str
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data}


@jit(nopython=True, cache=True)
def _cumsum_numba(arr: np.ndarray) -> np.ndarray:
    """Numba-accelerated running total."""
    result = np.empty_like(arr)
    if len(arr) == 0:
        return result
    result[0] = arr[0]
    for i in range(1, len(arr)):
        result[i] = result[i-1] + arr[i]
    return result


class ReportMetricsEngine:
    """Revenue, growth and product metrics plus their report charts."""

    def __init__(self):
        self.settings = get_settings()

    # ========== SHARED GROUPING ==========

    def total_revenue(self, dataset: Sequence[Record]) -> float:
        return float(sum(resolve_amount(row) for row in dataset))

    def period_totals(self, dataset: Sequence[Record]) -> dict[str, float]:
        """
        Amount per "YYYY-MM" period, keys sorted ascending.

        Records without a parseable timestamp are left out.
        """
        totals: dict[str, float] = {}
        for row in dataset:
            period = period_key(resolve_field(row, "timestamp"))
            if period is None:
                continue
            totals[period] = totals.get(period, 0.0) + resolve_amount(row)
        return {period: totals[period] for period in sorted(totals)}

    def top_category_pairs(self, dataset: Sequence[Record]) -> list[dict[str, Any]]:
        """
        Top N product labels by summed amount, as {label, value} pairs.

        Ties keep first-appearance order.
        """
        dataset = ensure_dataset(dataset)
        unknown = self.settings.report.unknown_label

        totals: dict[str, float] = {}
        for row in dataset:
            label = resolve_field(row, "label")
            label = unknown if is_missing(label) else str(label)
            totals[label] = totals.get(label, 0.0) + resolve_amount(row)

        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return [
            {"label": label, "value": value}
            for label, value in ranked[:self.settings.report.top_n]
        ]

    # ========== METRICS ==========

    def calculate_metrics(self, dataset: Sequence[Record]) -> list[MetricResult]:
        """
        Compute all report metrics.

        Returns:
            total-revenue, growth-rate, sales-by-period, avg-transaction,
            top-products, in that order
        """
        dataset = ensure_dataset(dataset)
        logger.info(f"Calculating report metrics for {len(dataset):,} records")

        total = self.total_revenue(dataset)
        periods = self.period_totals(dataset)

        metrics = [
            MetricResult("total-revenue", total),
            self._growth_rate(periods),
            MetricResult(
                "sales-by-period",
                [{"period": period, "value": value} for period, value in periods.items()],
            ),
            self._average_transaction(total, len(dataset)),
            MetricResult(
                "top-products",
                [
                    {"product": pair["label"], "value": pair["value"]}
                    for pair in self.top_category_pairs(dataset)
                ],
            ),
        ]

        logger.success(f"Computed {len(metrics)} metrics across {len(periods)} periods")
        return metrics

    def metrics_by_id(self, dataset: Sequence[Record]) -> dict[str, Any]:
        """Metric values keyed by metric id."""
        return {metric.id: metric.value for metric in self.calculate_metrics(dataset)}

    def _growth_rate(self, periods: dict[str, float]) -> MetricResult:
        """Percent change from the first to the last period."""
        if len(periods) < 2:
            return MetricResult("growth-rate", 0.0)

        values = list(periods.values())
        first, last = values[0], values[-1]
        if first == 0:
            logger.warning("Growth rate undefined: first period has zero revenue")
            return MetricResult(
                "growth-rate", None, note="undefined: first period has zero revenue"
            )

        return MetricResult("growth-rate", (last / first - 1) * 100)

    def _average_transaction(self, total: float, count: int) -> MetricResult:
        """Total revenue over all records, valid or not."""
        if count == 0:
            return MetricResult("avg-transaction", 0.0, note="no transactions")
        return MetricResult("avg-transaction", total / count)

    # ========== REPORT CHARTS ==========

    def generate_visualizations(self, dataset: Sequence[Record]) -> list[ChartBundle]:
        """
        Build the report chart bundle.

        Bar and pie share the same top-N pairs; colors follow rank, so
        palette[i] always belongs to the i-th ranked product.
        """
        dataset = ensure_dataset(dataset)
        palette = list(self.settings.report.palette)

        periods = self.period_totals(dataset)
        labels = list(periods.keys())
        period_values = np.array(list(periods.values()), dtype=np.float64)
        top_pairs = self.top_category_pairs(dataset)

        visualizations = [
            ChartBundle("line-chart", {
                "labels": labels,
                "datasets": [{
                    "label": "Revenue",
                    "data": period_values.tolist(),
                    "borderColor": palette[0],
                    "tension": 0.1,
                }],
            }),
            ChartBundle("bar-chart", {
                "labels": [pair["label"] for pair in top_pairs],
                "datasets": [{
                    "label": "Revenue by Product",
                    "data": [pair["value"] for pair in top_pairs],
                    "backgroundColor": palette,
                }],
            }),
            ChartBundle("pie-chart", {
                "labels": [pair["label"] for pair in top_pairs],
                "datasets": [{
                    "data": [pair["value"] for pair in top_pairs],
                    "backgroundColor": palette,
                }],
            }),
            ChartBundle("area-chart", {
                "labels": labels,
                "datasets": [{
                    "label": "Sales Over Time",
                    "data": _cumsum_numba(period_values).tolist(),
                    "fill": True,
                    "backgroundColor": "rgba(59, 130, 246, 0.2)",
                    "borderColor": palette[0],
                    "tension": 0.1,
                }],
            }),
            ChartBundle("scatter-plot", {
                "datasets": [{
                    "label": "Quantity vs Revenue",
                    "data": [self._quantity_point(row) for row in dataset],
                    "backgroundColor": palette[0],
                    "pointRadius": 6,
                    "pointHoverRadius": 8,
                }],
            }),
        ]

        logger.info(f"Generated {len(visualizations)} report charts")
        return visualizations

    def _quantity_point(self, row: Record) -> dict[str, float]:
        quantity = to_number(resolve_field(row, "quantity"))
        return {
            "x": quantity if quantity is not None else 1.0,
            "y": resolve_amount(row),
        }


# Global engine instance
report_metrics_engine = ReportMetricsEngine()


def calculate_metrics(dataset: Sequence[Record]) -> list[MetricResult]:
    """Compute the report metric list for a dataset."""
    return report_metrics_engine.calculate_metrics(dataset)


def generate_visualizations(dataset: Sequence[Record]) -> list[ChartBundle]:
    """Build the report chart bundle for a dataset."""
    return report_metrics_engine.generate_visualizations(dataset)
