from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from thrift_search.agents.llm import GenerativeModelError, clear_fake_responses, get_generative_model, queue_fake_response
from thrift_search.api.routes.listings import get_listing_service
from thrift_search.core.config import AppSettings
from thrift_search.main import create_app
from thrift_search.services.listings import ListingAnalysisService


@pytest.fixture()
def client():
    app = create_app()
    model = get_generative_model(AppSettings(_env_file=None, genai_provider="fake"))()
    app.dependency_overrides[get_listing_service] = lambda: ListingAnalysisService(model, timeout=2.0)

    with TestClient(app) as test_client:
        clear_fake_responses()
        yield test_client
        clear_fake_responses()


def test_analyze_returns_model_draft(client: TestClient) -> None:
    queue_fake_response('{"category": "Footwear", "type": "Sneakers", "colors": ["White"], "brand": "Nike", "tags": ["sneakers", "nike"]}')

    response = client.post("/listings/analyze", files={"image": ("shoe.jpg", b"jpeg", "image/jpeg")})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "model"
    assert body["type"] == "Sneakers"
    assert body["tags"] == ["sneakers", "nike"]
    assert body["condition"] == "Good"


def test_analyze_falls_back_to_filename_heuristic(client: TestClient) -> None:
    queue_fake_response(GenerativeModelError("quota exceeded"))

    response = client.post(
        "/listings/analyze",
        files={"image": ("black-denim-jacket.jpg", b"jpeg", "image/jpeg")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "heuristic"
    assert body["type"] == "Jacket"
    assert body["colors"] == ["black"]
    assert body["material"] == "Denim"


def test_analyze_rejects_non_image(client: TestClient) -> None:
    response = client.post("/listings/analyze", files={"image": ("doc.pdf", b"%PDF", "application/pdf")})

    assert response.status_code == 400
