"""
Report Processing Utilities

Standalone metric and chart helpers used when assembling saved reports.
Several overlap with ReportMetricsEngine but keep their own semantics:

- calculate_average_transaction averages only transactions with a
  positive amount (ReportMetricsEngine divides by every record).
- calculate_growth_rate compares the first and last record by date
  rather than the first and last month.
- generate_scatter_plot_data drops points with a non-positive axis.
- Amounts are read from revenue, then sales, then amount, and dates
  only from the "date" field.
"""

from datetime import datetime
from typing import Any, Sequence

from config import get_settings
from core.dataset import Record, ensure_dataset
from core.values import is_missing, parse_date, period_key, resolve_amount, resolve_field, to_number


REVENUE_COLOR = "#3B82F6"

# Field lookup order for saved reports
AMOUNT_FIELDS = ("revenue", "sales", "amount")
DATE_FIELDS = ("date",)


def _sorted_by_date(dataset: Sequence[Record]) -> list[Record]:
    """Stable sort by timestamp; undated records go last."""
    dated = [(parse_date(resolve_field(row, "timestamp", DATE_FIELDS)), row) for row in dataset]
    dated.sort(key=lambda pair: (pair[0] is None, pair[0] or datetime.min))
    return [row for _, row in dated]


def calculate_total_revenue(data: Sequence[Record]) -> float:
    """Sum of amounts; unparseable amounts add nothing."""
    data = ensure_dataset(data)
    return float(sum(resolve_amount(row, AMOUNT_FIELDS) for row in data))


def calculate_growth_rate(data: Sequence[Record]) -> float:
    """
    Percent change between the earliest and latest record.

    Fewer than two records, or a zero first amount, give 0.
    """
    data = ensure_dataset(data)
    if len(data) < 2:
        return 0.0

    ordered = _sorted_by_date(data)
    first = resolve_amount(ordered[0], AMOUNT_FIELDS)
    last = resolve_amount(ordered[-1], AMOUNT_FIELDS)

    if first == 0:
        return 0.0
    return (last - first) / first * 100


def get_top_products(data: Sequence[Record], limit: int = 5) -> list[dict[str, Any]]:
    """Top products by summed amount as {name, value}; unlabeled records are skipped."""
    data = ensure_dataset(data)

    totals: dict[str, float] = {}
    for row in data:
        product = resolve_field(row, "label")
        amount = to_number(resolve_field(row, "amount", AMOUNT_FIELDS))
        if is_missing(product) or amount is None:
            continue
        totals[str(product)] = totals.get(str(product), 0.0) + amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "value": value} for name, value in ranked[:limit]]


def calculate_average_transaction(data: Sequence[Record]) -> float:
    """Mean amount over transactions with a positive amount; 0 when there are none."""
    data = ensure_dataset(data)

    amounts = [to_number(resolve_field(row, "amount", AMOUNT_FIELDS)) for row in data]
    valid = [amount for amount in amounts if amount is not None and amount > 0]

    if not valid:
        return 0.0
    return sum(valid) / len(valid)


def calculate_sales_by_period(data: Sequence[Record]) -> list[dict[str, Any]]:
    """Monthly amount totals as {period, value}, ascending by period."""
    data = ensure_dataset(data)

    totals: dict[str, float] = {}
    for row in data:
        period = period_key(resolve_field(row, "timestamp", DATE_FIELDS))
        amount = to_number(resolve_field(row, "amount", AMOUNT_FIELDS))
        if period is None or amount is None:
            continue
        totals[period] = totals.get(period, 0.0) + amount

    return [{"period": period, "value": totals[period]} for period in sorted(totals)]


def generate_line_chart_data(data: Sequence[Record]) -> dict[str, Any]:
    """One point per record in date order."""
    data = ensure_dataset(data)
    ordered = _sorted_by_date(data)
    label_format = get_settings().visualization.date_label_format

    labels = []
    for row in ordered:
        parsed = parse_date(resolve_field(row, "timestamp", DATE_FIELDS))
        labels.append(parsed.strftime(label_format) if parsed else "")

    return {
        "labels": labels,
        "datasets": [{
            "label": "Revenue",
            "data": [resolve_amount(row, AMOUNT_FIELDS) for row in ordered],
            "borderColor": REVENUE_COLOR,
            "tension": 0.1,
        }],
    }


def generate_bar_chart_data(data: Sequence[Record]) -> dict[str, Any]:
    products = get_top_products(data)
    return {
        "labels": [p["name"] for p in products],
        "datasets": [{
            "label": "Revenue by Product",
            "data": [p["value"] for p in products],
            "backgroundColor": list(get_settings().report.palette),
        }],
    }


def generate_pie_chart_data(data: Sequence[Record]) -> dict[str, Any]:
    products = get_top_products(data)
    return {
        "labels": [p["name"] for p in products],
        "datasets": [{
            "data": [p["value"] for p in products],
            "backgroundColor": list(get_settings().report.palette),
        }],
    }


def generate_area_chart_data(data: Sequence[Record]) -> dict[str, Any]:
    """Monthly totals (not cumulative) as a filled line."""
    periods = calculate_sales_by_period(data)
    return {
        "labels": [p["period"] for p in periods],
        "datasets": [{
            "label": "Sales Over Time",
            "data": [p["value"] for p in periods],
            "fill": True,
            "backgroundColor": "rgba(59, 130, 246, 0.2)",
            "borderColor": REVENUE_COLOR,
            "tension": 0.1,
        }],
    }


def generate_scatter_plot_data(data: Sequence[Record]) -> dict[str, Any]:
    """Quantity against amount, keeping only points with both axes positive."""
    data = ensure_dataset(data)

    points = []
    for row in data:
        raw_quantity = resolve_field(row, "quantity")
        quantity = 1.0 if raw_quantity is None else to_number(raw_quantity)
        amount = to_number(resolve_field(row, "amount", AMOUNT_FIELDS))
        x = quantity if quantity is not None else 0.0
        y = amount if amount is not None else 0.0
        if x > 0 and y > 0:
            points.append({"x": x, "y": y})

    return {
        "datasets": [{
            "label": "Quantity vs Revenue",
            "data": points,
            "backgroundColor": REVENUE_COLOR,
            "pointRadius": 6,
            "pointHoverRadius": 8,
        }],
    }
