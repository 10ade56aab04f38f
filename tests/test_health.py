from fastapi.testclient import TestClient

from app.main import app


def test_root_reports_gateway_template():
    with TestClient(app) as client:
        res = client.get("/")

    assert res.status_code == 200
    assert res.json()["gateway"] == "http://testserver/api/v1/{slug}"


def test_healthz():
    with TestClient(app) as client:
        res = client.get("/healthz")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_readyz_with_database():
    with TestClient(app) as client:
        res = client.get("/readyz")

    assert res.status_code == 200
    assert res.json()["status"] == "ready"


def test_cors_preflight_for_generated_endpoint():
    with TestClient(app) as client:
        res = client.options(
            "/api/v1/anything",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )

    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "http://localhost:3000"
