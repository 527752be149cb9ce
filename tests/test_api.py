from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from textus.datastore.factory import datastore
from textus.exceptions import PartialWriteError, StoreError
from textus.main import app

client = TestClient(app)

TEXT = "Call me Ishmael. Some years ago, never mind how long precisely, having little money"


@pytest.fixture(autouse=True)
def clear_datastore():
    datastore.clear()
    yield
    datastore.clear()


def _import_text(**extra):
    payload = {
        "metadata": {"title": "Moby-Dick", "owners": ["melville"]},
        "text": [
            {"sequence": 1, "text": TEXT[17:]},
            {"sequence": 0, "text": TEXT[:17]},
        ],
        "semantics": [{"start": 8, "end": 15, "label": "Ishmael"}],
        "typography": [],
    }
    payload.update(extra)
    response = client.post("/api/texts", json=payload)
    assert response.status_code == 200
    return response.json()["textId"]


def test_health_check():
    """Test health check endpoint"""
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["store"] == "healthy"
    assert "backend" in data


def test_import_and_fetch_range():
    text_id = _import_text()

    response = client.get(f"/api/texts/{text_id}", params={"start": 8, "end": 15})

    assert response.status_code == 200
    data = response.json()
    assert data["text"] == "Ishmael"
    assert data["start"] == 8
    assert data["end"] == 15
    assert data["textId"] == text_id
    assert [annotation["label"] for annotation in data["semantics"]] == ["Ishmael"]


def test_fetch_complete_text():
    text_id = _import_text()
    response = client.get(f"/api/texts/{text_id}/complete")
    assert response.status_code == 200
    data = response.json()
    assert data["text"] == TEXT
    assert "start" not in data
    assert "semantics" not in data


@pytest.mark.parametrize("params", [{"start": 5, "end": 5}, {"start": 9, "end": 3}, {"start": 0}])
def test_fetch_range_invalid_input(params):
    """Test range fetch with invalid offsets"""
    response = client.get("/api/texts/some-id", params=params)
    assert response.status_code == 422


def test_list_texts():
    text_id = _import_text()
    response = client.get("/api/texts")
    assert response.status_code == 200
    assert response.json()[text_id]["title"] == "Moby-Dick"


def test_metadata_get_and_update():
    text_id = _import_text()

    response = client.put(f"/api/texts/{text_id}/metadata", json={"title": "The Whale"})
    assert response.status_code == 200
    assert response.json()["title"] == "The Whale"

    response = client.get(f"/api/texts/{text_id}/metadata")
    assert response.json()["title"] == "The Whale"


def test_metadata_not_found():
    response = client.get("/api/texts/missing/metadata")
    assert response.status_code == 404


def test_create_semantic_annotation():
    text_id = _import_text(semantics=[])
    response = client.post(
        f"/api/texts/{text_id}/semantics",
        json={"start": 0, "end": 4, "label": "call", "textId": "ignored"},
    )
    assert response.status_code == 200

    data = client.get(f"/api/texts/{text_id}", params={"start": 0, "end": 4}).json()
    assert data["text"] == "Call"
    assert [annotation["id"] for annotation in data["semantics"]] == [response.json()["id"]]


@patch("textus.api.routes.text_importer")
def test_import_partial_write_failure(mock_importer):
    """Test import when a collection fails midway"""
    mock_importer.import_text = AsyncMock(side_effect=PartialWriteError("semantics", 0))

    response = client.post("/api/texts", json={"text": [{"sequence": 0, "text": "x"}]})

    assert response.status_code == 500
    assert response.json()["detail"]["type"] == "semantics"


@patch("textus.api.routes.text_service")
def test_fetch_store_failure(mock_service):
    mock_service.fetch_text = AsyncMock(side_effect=StoreError("connection refused"))
    response = client.get("/api/texts/t1", params={"start": 0, "end": 10})
    assert response.status_code == 502


def test_import_invalid_input():
    response = client.post("/api/texts", json={"metadata": {}})
    assert response.status_code == 422
