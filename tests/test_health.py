def test_root_lists_services(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "progress" in response.json()["available_services"]


def test_health_reports_database(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["services"]["database"]["status"] == "healthy"
    assert body["status"] in ("ok", "degraded")
    assert response.headers["X-Request-ID"]


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_metrics_exposes_prometheus_text(client):
    client.get("/api/v1/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "system_uptime_seconds" in response.text
    assert "tracker_api_requests_total" in response.text
