def test_health_root(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.json() == {"success": True, "data": {"ok": True}}


def test_health_rate_limit_reports_disabled_in_tests(client):
    data = client.get("/api/v1/health/rate-limit").json()["data"]
    assert data["enabled"] is False
    assert data["ready"] is False


def test_security_headers_present(client):
    res = client.get("/api/v1/health")
    assert res.headers.get("x-content-type-options") == "nosniff"
    assert "no-store" not in res.headers.get("cache-control", "")


def test_unknown_route_uses_envelope(client):
    res = client.get("/api/v1/nowhere")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Not Found", "code": "NOT_FOUND"}
