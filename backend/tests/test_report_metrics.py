"""
Test Report Metrics

Unit tests for the report metrics engine and the report processing helpers.
"""

import pytest

from analysis import report_processing
from analysis.report_metrics import ReportMetricsEngine


@pytest.fixture
def engine():
    return ReportMetricsEngine()


@pytest.fixture
def transactions():
    return [
        {"date": "2024-01-05", "product": "Widget", "amount": 100, "quantity": 2},
        {"date": "2024-01-20", "product": "Gadget", "revenue": "50"},
        {"date": "2024-02-03", "product": "Widget", "amount": 150, "quantity": 3},
        {"date": "2024-03-11", "item": "Gizmo", "sales": 300, "quantity": "x"},
        {"timestamp": "2024-03-28", "amount": "oops"},
    ]


class TestCalculateMetrics:
    def test_metric_order(self, engine, transactions):
        metrics = engine.calculate_metrics(transactions)

        assert [m.id for m in metrics] == [
            "total-revenue",
            "growth-rate",
            "sales-by-period",
            "avg-transaction",
            "top-products",
        ]

    def test_values(self, engine, transactions):
        values = engine.metrics_by_id(transactions)

        assert values["total-revenue"] == 600.0
        assert values["sales-by-period"] == [
            {"period": "2024-01", "value": 150.0},
            {"period": "2024-02", "value": 150.0},
            {"period": "2024-03", "value": 300.0},
        ]
        # 300 / 150 - 1
        assert values["growth-rate"] == pytest.approx(100.0)
        # Unparseable amounts still count as transactions
        assert values["avg-transaction"] == pytest.approx(120.0)

    def test_top_products(self, engine, transactions):
        top = engine.metrics_by_id(transactions)["top-products"]

        assert top == [
            {"product": "Gizmo", "value": 300.0},
            {"product": "Widget", "value": 250.0},
            {"product": "Gadget", "value": 50.0},
            {"product": "Unknown", "value": 0.0},
        ]

    def test_top_products_limited(self, engine):
        data = [{"product": f"P{i}", "amount": i} for i in range(1, 9)]
        top = engine.metrics_by_id(data)["top-products"]

        assert [p["product"] for p in top] == ["P8", "P7", "P6", "P5", "P4"]

    def test_empty_dataset(self, engine):
        metrics = {m.id: m for m in engine.calculate_metrics([])}

        assert metrics["total-revenue"].value == 0
        assert metrics["growth-rate"].value == 0
        assert metrics["sales-by-period"].value == []
        assert metrics["avg-transaction"].value == 0.0
        assert metrics["avg-transaction"].note == "no transactions"
        assert metrics["top-products"].value == []

    def test_growth_undefined_for_zero_base(self, engine):
        data = [
            {"date": "2024-01-01", "amount": 0},
            {"date": "2024-02-01", "amount": 100},
        ]
        growth = engine.calculate_metrics(data)[1]

        assert growth.value is None
        assert not growth.is_defined
        assert growth.to_dict()["note"] == "undefined: first period has zero revenue"

    def test_single_period_growth_is_zero(self, engine):
        data = [{"date": "2024-01-01", "amount": 5}, {"date": "2024-01-09", "amount": 9}]

        assert engine.metrics_by_id(data)["growth-rate"] == 0.0

    def test_to_dict_omits_empty_note(self, engine, transactions):
        total = engine.calculate_metrics(transactions)[0]

        assert total.to_dict() == {"id": "total-revenue", "value": 600.0}


class TestGenerateVisualizations:
    def test_bundle_ids(self, engine, transactions):
        bundles = engine.generate_visualizations(transactions)

        assert [b.id for b in bundles] == [
            "line-chart",
            "bar-chart",
            "pie-chart",
            "area-chart",
            "scatter-plot",
        ]

    def test_bar_and_pie_share_pairs(self, engine, transactions):
        bundles = {b.id: b.data for b in engine.generate_visualizations(transactions)}
        bar, pie = bundles["bar-chart"], bundles["pie-chart"]

        bar_pairs = list(zip(bar["labels"], bar["datasets"][0]["data"]))
        pie_pairs = list(zip(pie["labels"], pie["datasets"][0]["data"]))
        assert bar_pairs == pie_pairs
        assert bar["datasets"][0]["label"] == "Revenue by Product"
        assert "label" not in pie["datasets"][0]

    def test_area_is_cumulative(self, engine, transactions):
        bundles = {b.id: b.data for b in engine.generate_visualizations(transactions)}

        assert bundles["line-chart"]["datasets"][0]["data"] == [150.0, 150.0, 300.0]
        assert bundles["area-chart"]["datasets"][0]["data"] == [150.0, 300.0, 600.0]

    def test_scatter_defaults(self, engine, transactions):
        bundles = {b.id: b.data for b in engine.generate_visualizations(transactions)}
        points = bundles["scatter-plot"]["datasets"][0]["data"]

        assert len(points) == len(transactions)
        assert points[0] == {"x": 2.0, "y": 100.0}
        # Missing or unparseable quantity counts as one unit
        assert points[1] == {"x": 1.0, "y": 50.0}
        assert points[3] == {"x": 1.0, "y": 300.0}

    def test_empty_dataset(self, engine):
        bundles = {b.id: b.data for b in engine.generate_visualizations([])}

        assert bundles["line-chart"]["labels"] == []
        assert bundles["area-chart"]["datasets"][0]["data"] == []
        assert bundles["scatter-plot"]["datasets"][0]["data"] == []


class TestReportProcessing:
    def test_total_revenue(self, transactions):
        assert report_processing.calculate_total_revenue(transactions) == 600.0

    def test_growth_rate_first_to_last_record(self):
        data = [
            {"date": "2024-03-01", "amount": 150},
            {"date": "2024-01-01", "amount": 100},
        ]

        assert report_processing.calculate_growth_rate(data) == pytest.approx(50.0)
        assert report_processing.calculate_growth_rate(data[:1]) == 0.0

    def test_growth_rate_zero_base(self):
        data = [{"date": "2024-01-01", "amount": 0}, {"date": "2024-02-01", "amount": 10}]

        assert report_processing.calculate_growth_rate(data) == 0.0

    def test_top_products_skip_unlabeled(self, transactions):
        top = report_processing.get_top_products(transactions)

        assert top == [
            {"name": "Gizmo", "value": 300.0},
            {"name": "Widget", "value": 250.0},
            {"name": "Gadget", "value": 50.0},
        ]

    def test_average_of_positive_amounts(self, transactions):
        assert report_processing.calculate_average_transaction(transactions) == pytest.approx(150.0)
        assert report_processing.calculate_average_transaction([]) == 0.0

    def test_sales_by_period(self, transactions):
        periods = report_processing.calculate_sales_by_period(transactions)

        assert [p["period"] for p in periods] == ["2024-01", "2024-02", "2024-03"]

    def test_area_chart_not_cumulative(self, transactions):
        area = report_processing.generate_area_chart_data(transactions)

        assert area["datasets"][0]["data"] == [150.0, 150.0, 300.0]

    def test_line_chart_per_record(self, transactions):
        line = report_processing.generate_line_chart_data(transactions)

        assert line["labels"][0] == "2024-01-05"
        assert len(line["datasets"][0]["data"]) == len(transactions)

    def test_scatter_drops_non_positive(self, transactions):
        scatter = report_processing.generate_scatter_plot_data(transactions)
        points = scatter["datasets"][0]["data"]

        assert {"x": 1.0, "y": 50.0} in points
        assert all(p["x"] > 0 and p["y"] > 0 for p in points)
        assert len(points) == 3

    def test_bar_and_pie_match(self, transactions):
        bar = report_processing.generate_bar_chart_data(transactions)
        pie = report_processing.generate_pie_chart_data(transactions)

        assert bar["labels"] == pie["labels"]
        assert bar["datasets"][0]["data"] == pie["datasets"][0]["data"]

    def test_revenue_read_before_amount(self):
        """Saved-report helpers prefer revenue, then sales, then amount."""
        data = [
            {"amount": 10, "revenue": 20, "date": "2024-01-01", "product": "A"},
            {"amount": 5, "sales": 40, "date": "2024-02-01", "product": "B"},
        ]

        assert report_processing.calculate_total_revenue(data) == 60.0
        assert report_processing.get_top_products(data)[0] == {"name": "B", "value": 40.0}
        assert report_processing.calculate_growth_rate(data) == pytest.approx(100.0)

    def test_engine_keeps_amount_first(self, engine):
        data = [{"amount": 10, "revenue": 20, "date": "2024-01-01"}]

        assert engine.metrics_by_id(data)["total-revenue"] == 10.0

    def test_dates_only_from_date_field(self):
        data = [
            {"timestamp": "2024-01-01", "revenue": 5},
            {"date": "2024-02-01", "revenue": 7},
        ]

        periods = report_processing.calculate_sales_by_period(data)
        assert periods == [{"period": "2024-02", "value": 7.0}]
