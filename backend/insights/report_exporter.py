"""
Report Exporter

Serializes datasets and reports for download: CSV, JSON and Excel for
raw data; PDF, Excel and CSV for reports (overview, metrics, chart
listing and optionally the raw records).
"""

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from analysis.report_metrics import ChartBundle, MetricResult
from core.dataset import Record, ensure_dataset, infer_columns
from core.logging_config import export_logger as logger


CONTENT_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}
FILE_EXTENSIONS = {"csv": "csv", "json": "json", "excel": "xlsx", "pdf": "pdf"}

HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFE0E0E0")
COLUMN_WIDTH = 15

CHART_NAMES = {
    "line-chart": "Revenue Over Time",
    "bar-chart": "Revenue by Product",
    "pie-chart": "Product Revenue Distribution",
    "area-chart": "Cumulative Revenue",
    "scatter-plot": "Quantity vs Revenue",
}


class UnsupportedFormatError(ValueError):
    """Raised for export formats that are not offered."""


def _cell(value: Any) -> Any:
    """Spreadsheet/CSV-friendly cell value."""
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, default=str)
    return value


def format_metric_name(metric_id: str) -> str:
    """'total-revenue' -> 'Total Revenue'."""
    return " ".join(part.capitalize() for part in metric_id.split("-"))


def format_chart_name(chart_id: str) -> str:
    """Display name of a report chart; unknown ids are title-cased."""
    return CHART_NAMES.get(chart_id) or format_metric_name(chart_id)


def chart_type(chart_id: str) -> str:
    """'scatter-plot' -> 'scatter'."""
    return chart_id.split("-")[0]


def data_points(bundle: ChartBundle) -> int:
    """Labels of a chart, or points of its first dataset when it has none."""
    labels = bundle.data.get("labels")
    if labels:
        return len(labels)
    datasets = bundle.data.get("datasets") or [{}]
    return len(datasets[0].get("data", []))


def _item_label(item: dict[str, Any]) -> Any:
    return item.get("period") or item.get("product") or item.get("label") or item.get("name")


def format_metric_value(value: Any) -> str:
    """Human-readable metric value."""
    if value is None:
        return "N/A"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return f"{value:,.2f}"
    if isinstance(value, list):
        parts = []
        for item in value:
            if isinstance(item, dict):
                parts.append(f"{_item_label(item)}: {format_metric_value(item.get('value'))}")
            else:
                parts.append(str(item))
        return ", ".join(parts)
    return str(value)


class ReportExporter:
    """Builds download payloads."""

    # ========== DATASET EXPORT ==========

    def export_dataset(self, data: Sequence[Record], fmt: str) -> bytes:
        """
        Serialize a dataset.

        Raises:
            UnsupportedFormatError: For formats other than csv, json, excel
        """
        data = ensure_dataset(data)
        logger.info(f"Exporting {len(data):,} records as {fmt}")

        if fmt == "csv":
            return self._dataset_csv(data)
        if fmt == "json":
            return json.dumps(data, default=str).encode("utf-8")
        if fmt == "excel":
            return self._dataset_excel(data)
        raise UnsupportedFormatError(f"Invalid export format: {fmt}")

    def _dataset_csv(self, data: list[Record]) -> bytes:
        columns = infer_columns(data, sample_size=len(data))
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(columns)
        for row in data:
            writer.writerow([_cell(row.get(col)) for col in columns])
        return buffer.getvalue().encode("utf-8")

    def _dataset_excel(self, data: list[Record]) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Data"

        columns = infer_columns(data, sample_size=len(data))
        if columns:
            sheet.append(columns)
            self._style_header(sheet, len(columns))
        for row in data:
            sheet.append([_cell(row.get(col)) for col in columns])

        return self._save_workbook(workbook)

    def _style_header(self, sheet, column_count: int) -> None:
        for index in range(1, column_count + 1):
            cell = sheet.cell(row=1, column=index)
            cell.font = Font(bold=True)
            cell.fill = HEADER_FILL
            sheet.column_dimensions[get_column_letter(index)].width = COLUMN_WIDTH

    def _save_workbook(self, workbook: Workbook) -> bytes:
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    # ========== REPORT EXPORT ==========

    def export_report(
        self,
        name: str,
        metrics: list[MetricResult],
        fmt: str = "pdf",
        orientation: str = "portrait",
        generated_at: Optional[datetime] = None,
        visualizations: Optional[list[ChartBundle]] = None,
        description: Optional[str] = None,
        records: Optional[Sequence[Record]] = None,
    ) -> bytes:
        """
        Serialize a report.

        Every format carries an overview, the metrics and a listing of the
        report charts. Raw records are appended when given.

        Raises:
            UnsupportedFormatError: For formats other than pdf, excel, csv
        """
        logger.info(f"Exporting report '{name}' as {fmt}")
        report = _ReportContent(
            name=name,
            description=description or "",
            generated_at=generated_at or datetime.now(),
            metrics=metrics,
            visualizations=visualizations or [],
            records=ensure_dataset(records) if records else [],
        )

        if fmt == "pdf":
            return self._report_pdf(report, orientation)
        if fmt == "excel":
            return self._report_excel(report)
        if fmt == "csv":
            return self._report_csv(report)
        raise UnsupportedFormatError(f"Invalid report format: {fmt}")

    def _report_csv(self, report: "_ReportContent") -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer)

        writer.writerow(["Report Overview"])
        for label, value in report.overview():
            writer.writerow([label, value])

        writer.writerow([])
        writer.writerow(["Metrics"])
        writer.writerow(["metric", "label", "value"])
        for metric in report.metrics:
            if isinstance(metric.value, list):
                for item in metric.value:
                    writer.writerow([metric.id, _item_label(item), item.get("value")])
            else:
                writer.writerow([metric.id, "", _cell(metric.value)])

        writer.writerow([])
        writer.writerow(["Visualizations"])
        writer.writerow(["visualization", "type", "data points"])
        for bundle in report.visualizations:
            writer.writerow([format_chart_name(bundle.id), chart_type(bundle.id), data_points(bundle)])

        if report.records:
            columns = infer_columns(report.records, sample_size=len(report.records))
            writer.writerow([])
            writer.writerow(["Raw Data"])
            writer.writerow(columns)
            for row in report.records:
                writer.writerow([_cell(row.get(col)) for col in columns])

        return buffer.getvalue().encode("utf-8")

    def _report_excel(self, report: "_ReportContent") -> bytes:
        workbook = Workbook()
        overview = workbook.active
        overview.title = "Overview"
        for label, value in report.overview():
            overview.append([label, value])
            overview.cell(row=overview.max_row, column=1).font = Font(bold=True)
        overview.column_dimensions["A"].width = 20
        overview.column_dimensions["B"].width = 50

        summary = workbook.create_sheet("Metrics")
        summary.append(["Metric", "Value", "Note"])
        self._style_header(summary, 3)

        for metric in report.metrics:
            if isinstance(metric.value, list):
                sheet = workbook.create_sheet(format_metric_name(metric.id)[:31])
                sheet.append(["Label", "Value"])
                self._style_header(sheet, 2)
                for item in metric.value:
                    sheet.append([_item_label(item), item.get("value")])
            else:
                summary.append([format_metric_name(metric.id), _cell(metric.value), metric.note or ""])

        if report.visualizations:
            charts = workbook.create_sheet("Visualizations")
            charts.append(["Visualization", "Type", "Data Points"])
            self._style_header(charts, 3)
            for bundle in report.visualizations:
                charts.append([format_chart_name(bundle.id), chart_type(bundle.id), data_points(bundle)])

        if report.records:
            raw = workbook.create_sheet("Raw Data")
            columns = infer_columns(report.records, sample_size=len(report.records))
            raw.append(columns)
            self._style_header(raw, len(columns))
            for row in report.records:
                raw.append([_cell(row.get(col)) for col in columns])

        return self._save_workbook(workbook)

    def _report_pdf(self, report: "_ReportContent", orientation: str) -> bytes:
        pagesize = landscape(letter) if orientation == "landscape" else letter
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=pagesize)
        width, height = pagesize
        margin = 48
        y = height - margin

        def write(text: str, font: str = "Helvetica", size: int = 11, gap: int = 16) -> None:
            nonlocal y
            for line in simpleSplit(text, font, size, width - 2 * margin) or [""]:
                if y < 60:
                    pdf.showPage()
                    y = height - margin
                pdf.setFont(font, size)
                pdf.drawString(margin, y, line)
                y -= gap

        write(report.name, font="Helvetica-Bold", size=20, gap=28)
        if report.description:
            write(report.description, size=12, gap=18)
        write(f"Generated on: {report.generated_at:%Y-%m-%d}", size=10, gap=24)

        if report.metrics:
            write("Key Metrics", font="Helvetica-Bold", size=14, gap=22)
            for metric in report.metrics:
                write(f"{format_metric_name(metric.id)}: {format_metric_value(metric.value)}")
                if metric.note:
                    write(f"  ({metric.note})", size=9, gap=14)

        if report.visualizations:
            y -= 8
            write("Visualizations", font="Helvetica-Bold", size=14, gap=22)
            for bundle in report.visualizations:
                write(f"{format_chart_name(bundle.id)} ({data_points(bundle)} data points)")

        if report.records:
            pdf.showPage()
            y = height - margin
            write("Raw Data", font="Helvetica-Bold", size=14, gap=22)
            columns = infer_columns(report.records, sample_size=len(report.records))
            write(" | ".join(columns), font="Helvetica-Bold", size=9, gap=13)
            for row in report.records:
                write(" | ".join(str(_cell(row.get(col))) for col in columns), size=9, gap=13)

        pdf.save()
        return buffer.getvalue()


@dataclass
class _ReportContent:
    name: str
    description: str
    generated_at: datetime
    metrics: list[MetricResult]
    visualizations: list[ChartBundle]
    records: list[Record]

    def overview(self) -> list[tuple[str, Any]]:
        return [
            ("Report Title", self.name),
            ("Description", self.description),
            ("Generated", f"{self.generated_at:%Y-%m-%d %H:%M}"),
            ("Metrics", len(self.metrics)),
            ("Visualizations", len(self.visualizations)),
        ]


# Global exporter instance
report_exporter = ReportExporter()
