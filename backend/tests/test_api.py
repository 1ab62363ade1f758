"""
Test API

End-to-end tests of the HTTP routes with FastAPI's TestClient.
"""

import io
import json

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from core.dataset_loader import dataset_loader
from core.session_store import session_store
from llm.ollama_client import ollama_client
from main import app


SALES_CSV = b"""date,product,amount,quantity,region
2024-01-05,Widget,100,2,North
2024-01-20,Gadget,50,1,South
2024-02-03,Widget,150,3,North
2024-03-11,Gizmo,300,5,East
"""


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(
        dataset_loader,
        "settings",
        dataset_loader.settings.model_copy(update={"upload_dir": str(tmp_path)}),
    )
    yield TestClient(app)
    session_store.clear_all()


@pytest.fixture
def dataset_id(client):
    response = client.post(
        "/api/v1/datasets",
        files={"file": ("sales.csv", SALES_CSV, "text/csv")},
    )
    assert response.status_code == 200
    return response.json()["dataset_id"]


class TestDatasetRoutes:
    def test_upload_infers_columns(self, client):
        response = client.post(
            "/api/v1/datasets",
            files={"file": ("sales.csv", SALES_CSV, "text/csv")},
        )
        body = response.json()

        assert response.status_code == 200
        assert body["row_count"] == 4
        types = {column["name"]: column["type"] for column in body["columns"]}
        assert types == {
            "date": "date",
            "product": "string",
            "amount": "number",
            "quantity": "number",
            "region": "string",
        }

    def test_upload_rejects_other_files(self, client):
        response = client.post(
            "/api/v1/datasets",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400

    def test_dataset_lifecycle(self, client, dataset_id):
        info = client.get(f"/api/v1/datasets/{dataset_id}")
        assert info.status_code == 200
        assert info.json()["filename"] == "sales.csv"

        listing = client.get("/api/v1/datasets").json()
        assert listing["count"] == 1

        assert client.delete(f"/api/v1/datasets/{dataset_id}").status_code == 200
        assert client.get(f"/api/v1/datasets/{dataset_id}").status_code == 404

    def test_records_limit(self, client, dataset_id):
        body = client.get(f"/api/v1/datasets/{dataset_id}/data", params={"limit": 2}).json()

        assert body["total"] == 4
        assert len(body["records"]) == 2
        assert body["records"][0]["product"] == "Widget"

    def test_columns(self, client, dataset_id):
        body = client.get(f"/api/v1/datasets/{dataset_id}/columns").json()

        assert body["column_types"]["date"] == "date"
        assert body["column_types"]["amount"] == "number"

    def test_unknown_dataset(self, client):
        assert client.get("/api/v1/datasets/missing/columns").status_code == 404
        assert client.get("/api/v1/datasets/missing/metrics").status_code == 404

    def test_replace_records(self, client, dataset_id):
        response = client.put(
            f"/api/v1/datasets/{dataset_id}/data",
            json=[{"product": "Widget", "amount": 5}, {"product": "Gizmo", "amount": 7}],
        )

        assert response.status_code == 200
        assert response.json()["row_count"] == 2
        body = client.get(f"/api/v1/datasets/{dataset_id}/data").json()
        assert body["records"] == [
            {"product": "Widget", "amount": 5},
            {"product": "Gizmo", "amount": 7},
        ]
        info = client.get(f"/api/v1/datasets/{dataset_id}").json()
        assert info["status"] == "edited"
        assert info["columns"] == ["product", "amount"]

    def test_replace_records_rejects_non_arrays(self, client, dataset_id):
        response = client.put(f"/api/v1/datasets/{dataset_id}/data", json={"product": "Widget"})

        assert response.status_code == 400
        assert client.get(f"/api/v1/datasets/{dataset_id}/data").json()["total"] == 4

    def test_replace_records_unknown_dataset(self, client):
        response = client.put("/api/v1/datasets/missing/data", json=[])

        assert response.status_code == 404

    def test_export_excel(self, client, dataset_id):
        response = client.get(
            f"/api/v1/datasets/{dataset_id}/export", params={"format": "excel"}
        )

        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        sheet = load_workbook(io.BytesIO(response.content)).active
        assert sheet["A1"].value == "date"

    def test_export_json(self, client, dataset_id):
        response = client.get(f"/api/v1/datasets/{dataset_id}/export", params={"format": "json"})

        assert len(json.loads(response.content)) == 4


class TestVisualizationRoutes:
    def test_time_series_chart(self, client, dataset_id):
        response = client.post(
            f"/api/v1/datasets/{dataset_id}/charts",
            json={
                "kind": "timeSeries",
                "mapping": {"dateColumn": "date", "valueColumn": "amount"},
                "config": {"title": "Revenue", "animation": False},
            },
        )
        body = response.json()

        assert response.status_code == 200
        assert body["data"]["labels"][0] == "2024-01-05"
        assert body["options"]["plugins"]["title"]["text"] == "Revenue"
        assert body["options"]["animation"]["duration"] == 0

    def test_distribution_bins(self, client, dataset_id):
        response = client.post(
            f"/api/v1/datasets/{dataset_id}/charts",
            json={"kind": "distribution", "mapping": {"valueColumn": "amount"}, "bins": 5},
        )

        assert len(response.json()["data"]["labels"]) == 5

    def test_invalid_mapping(self, client, dataset_id):
        response = client.post(
            f"/api/v1/datasets/{dataset_id}/charts",
            json={"kind": "pie", "mapping": {"categoryColumn": "amount"}},
        )

        assert response.status_code == 422
        assert any("amount" in problem for problem in response.json()["detail"])

    def test_list_as_column_name(self, client, dataset_id):
        response = client.post(
            f"/api/v1/datasets/{dataset_id}/charts",
            json={
                "kind": "timeSeries",
                "mapping": {"dateColumn": ["date"], "valueColumn": "amount"},
            },
        )

        assert response.status_code == 422
        assert response.json()["detail"] == ["dateColumn must be a column name"]

    def test_query_compare(self, client, dataset_id):
        response = client.post(
            f"/api/v1/datasets/{dataset_id}/query",
            json={"query": "Compare amount by region"},
        )
        body = response.json()

        assert response.status_code == 200
        assert body["kind"] == "bar"
        assert body["mapping"] == {"categoryColumn": "region", "valueColumn": "amount"}
        assert body["problems"] == []
        assert set(body["data"]["labels"]) == {"North", "South", "East"}
        assert body["options"]["plugins"]["title"]["text"] == "amount by region"

    def test_query_over_time(self, client, dataset_id):
        body = client.post(
            f"/api/v1/datasets/{dataset_id}/query", json={"query": "revenue over time"}
        ).json()

        assert body["kind"] == "timeSeries"
        assert body["mapping"] == {"dateColumn": "date", "valueColumn": "amount"}
        assert body["data"]["labels"][0] == "2024-01-05"

    def test_query_mapping_that_does_not_fit(self, client, dataset_id):
        """A bar over the date column is reported, not drawn."""
        body = client.post(
            f"/api/v1/datasets/{dataset_id}/query", json={"query": "compare"}
        ).json()

        assert body["mapping"]["categoryColumn"] == "date"
        assert body["data"] is None
        assert body["problems"]

    def test_query_rejects_empty_text(self, client, dataset_id):
        response = client.post(f"/api/v1/datasets/{dataset_id}/query", json={"query": ""})

        assert response.status_code == 422

    def test_chart_options(self, client, dataset_id):
        response = client.get(
            f"/api/v1/datasets/{dataset_id}/chart-options", params={"kind": "timeSeries"}
        )
        roles = {role["role"]: role for role in response.json()["roles"]}

        assert roles["dateColumn"]["options"] == ["date"]
        assert roles["valueColumn"]["options"] == ["amount", "quantity"]


class TestReportRoutes:
    def test_metrics(self, client, dataset_id):
        body = client.get(f"/api/v1/datasets/{dataset_id}/metrics").json()
        metrics = {metric["id"]: metric for metric in body["metrics"]}

        assert metrics["total-revenue"]["value"] == 600.0
        assert metrics["avg-transaction"]["value"] == 150.0
        assert metrics["top-products"]["value"][0] == {"product": "Gizmo", "value": 300.0}

    def test_visualizations(self, client, dataset_id):
        body = client.get(f"/api/v1/datasets/{dataset_id}/report/visualizations").json()

        assert [v["id"] for v in body["visualizations"]] == [
            "line-chart",
            "bar-chart",
            "pie-chart",
            "area-chart",
            "scatter-plot",
        ]

    def test_download_pdf(self, client, dataset_id):
        response = client.get(f"/api/v1/datasets/{dataset_id}/report/download")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_download_csv(self, client, dataset_id):
        response = client.get(
            f"/api/v1/datasets/{dataset_id}/report/download", params={"format": "csv"}
        )

        lines = response.text.splitlines()

        assert lines[0] == "Report Overview"
        assert "Report Title,Report: sales.csv" in lines
        assert "Revenue by Product,bar,3" in lines
        assert "Raw Data" not in lines

    def test_download_with_raw_data(self, client, dataset_id):
        response = client.get(
            f"/api/v1/datasets/{dataset_id}/report/download",
            params={"format": "excel", "include_raw_data": "true", "description": "Q1 sales"},
        )
        workbook = load_workbook(io.BytesIO(response.content))

        assert workbook.sheetnames[-2:] == ["Visualizations", "Raw Data"]
        assert workbook["Overview"]["B2"].value == "Q1 sales"
        assert workbook["Raw Data"].max_row == 5

    def test_download_rejects_format(self, client, dataset_id):
        response = client.get(
            f"/api/v1/datasets/{dataset_id}/report/download", params={"format": "docx"}
        )

        assert response.status_code == 422


class TestHealth:
    def test_health(self, client, monkeypatch):
        async def unavailable():
            return False

        monkeypatch.setattr(ollama_client, "is_available", unavailable)
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["llm_available"] is False
