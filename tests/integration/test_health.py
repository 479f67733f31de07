from fastapi.testclient import TestClient

from thrift_search.main import create_app


def test_health_returns_ok() -> None:
    app = create_app()
    client = TestClient(app)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


def test_incoming_request_id_is_echoed() -> None:
    client = TestClient(create_app())

    response = client.get("/health", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"


def test_malformed_request_id_is_replaced() -> None:
    client = TestClient(create_app())

    response = client.get("/health", headers={"X-Request-ID": "x" * 300})

    assert response.headers["X-Request-ID"] != "x" * 300
    assert response.headers["X-Request-ID"]
