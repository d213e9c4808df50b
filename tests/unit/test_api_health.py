"""Tests for health check and fallback endpoints."""


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["message"] == "Server is running"
    assert "timestamp" in body


def test_index_metadata(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.get_json()["health"] == "/api/health"


def test_unknown_route(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.get_json() == {
        "success": False,
        "error": "Not Found",
        "message": "Route GET /api/nowhere not found",
    }


def test_token_passthrough(client, monkeypatch):
    from user_admin.core import provisioning_service

    monkeypatch.setattr(
        provisioning_service, "get_access_token",
        lambda *args: {"access_token": "abc", "token_type": "Bearer", "expires_in": 86400},
    )
    response = client.post("/api/auth/token")
    assert response.status_code == 200
    assert response.get_json()["data"]["access_token"] == "abc"


def test_token_passthrough_failure(client, monkeypatch):
    from user_admin.core import provisioning_service
    from user_admin.core.auth0.exceptions import TokenRequestError

    def _fail(*args):
        raise TokenRequestError("Unauthorized")

    monkeypatch.setattr(provisioning_service, "get_access_token", _fail)
    response = client.post("/api/auth/token")
    assert response.status_code == 502
    assert response.get_json()["message"] == "Unauthorized"
