import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from ai_chart.api.charts import get_chart_director
from ai_chart.charts import ChartDirector
from ai_chart.main import app

REGION_PROMPT = "Compare sales by region: North: 120, South: 98, East: 143"


@pytest.fixture
def director():
    return ChartDirector(chat_service=None, enable_ai_extraction=False)


@pytest.fixture
def client(director):
    """Create a test client backed by a director without a chat model."""
    app.dependency_overrides = {}
    app.dependency_overrides[get_chart_director] = lambda: director
    yield TestClient(app)
    app.dependency_overrides = {}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_generate_from_prompt_form(client):
    response = client.post("/charts/generate", data={"prompt": REGION_PROMPT})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["chart_type"] == "bar"
    assert len(body["data"]) == 3
    assert body["config"]["legend"]["position"] == "bottom"


def test_generate_with_file(client, sales_csv):
    response = client.post(
        "/charts/generate",
        data={"prompt": "Show the regional split", "chart_type": "pie"},
        files={"files": ("sales.csv", sales_csv, "text/csv")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["chart_type"] == "pie"
    assert body["metadata"]["data_source"] == "file"


def test_pipeline_failure_is_returned_as_result(client):
    response = client.post(
        "/charts/generate",
        files={"files": ("empty.csv", b"", "text/csv")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error_kind"] == "INSUFFICIENT_DATA"
    assert body["failed_stage"] == "data_extraction"
    assert body["suggestions"]


def test_unknown_chart_type_is_rejected(client):
    response = client.post("/charts/generate", data={"prompt": REGION_PROMPT, "chart_type": "radar"})

    assert response.status_code == 400
    assert "Unsupported chart type" in response.json()["detail"]


def test_generate_from_prompt_json(client):
    response = client.post("/charts/generate-from-prompt", json={"prompt": REGION_PROMPT, "chart_type": "line"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["chart_type"] == "line"


def test_unexpected_error_returns_500():
    failing = MagicMock()
    failing.generate_chart = AsyncMock(side_effect=RuntimeError("boom"))
    app.dependency_overrides[get_chart_director] = lambda: failing
    try:
        response = TestClient(app).post("/charts/generate-from-prompt", json={"prompt": REGION_PROMPT})
    finally:
        app.dependency_overrides = {}

    assert response.status_code == 500
    assert response.json()["detail"] == "Chart generation failed: boom"


def test_status(client):
    response = client.get("/charts/status")

    assert response.status_code == 200
    assert response.json() == {"ai_service_connected": False, "components_initialized": True, "last_error": None}


def test_capabilities(client):
    response = client.get("/charts/capabilities")

    assert response.status_code == 200
    body = response.json()
    assert body["supported_chart_types"] == ["bar", "line", "pie", "area"]
    assert body["supported_file_types"] == [".xlsx", ".xls", ".csv"]
    assert body["settings"]["max_files"] == 3
    assert "ai_extraction" not in body["features"]
    assert "api_key" not in str(body["settings"]["ai"])
