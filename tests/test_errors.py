from fastapi import FastAPI
from fastapi.testclient import TestClient


def test_health_without_redis(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "cache": False}


def test_unknown_route_uses_error_format(client: TestClient):
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "http_error"
    assert body["path"] == "/api/v1/nothing-here"
    assert body["timestamp"].endswith("Z")


def test_unhandled_error_is_500_without_trace(app: FastAPI):
    async def explode():
        raise RuntimeError("boom")

    app.add_api_route("/explode", explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/explode")

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "Internal server error"
    assert body["code"] == "internal_server_error"
    assert "trace" not in body
    assert "boom" not in response.text


def test_malformed_json_is_400(client: TestClient):
    response = client.post(
        "/api/v1/auth/login",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_bad_path_parameter_is_400(client: TestClient):
    response = client.get("/api/v1/posts/not-a-number")
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "post_id"
