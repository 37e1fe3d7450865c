def test_health_endpoint_returns_ok(api_client):
    """Test health endpoint returns 200 with status ok."""
    response = api_client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_endpoint_echoes_request_id(api_client):
    response = api_client.get("/api/v1/health", headers={"X-Request-Id": "req-42"})
    assert response.headers["X-Request-Id"] == "req-42"


def test_health_endpoint_generates_request_id(api_client):
    response = api_client.get("/api/v1/health")
    assert response.headers["X-Request-Id"]


def test_readiness_ok_with_missing_store(api_client):
    """A store file that does not exist yet is an empty, readable store."""
    response = api_client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "store": "ok"}


def test_readiness_degraded_when_store_unreadable(api_client, store_path):
    store_path.write_text("{broken", encoding="utf-8")

    response = api_client.get("/api/v1/health/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "degraded", "store": "unavailable"}
