from fastapi import APIRouter
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from tasktracker.main import create_app
from tasktracker.models.user import User, UserRole


def test_health(client):
    res = client.get("/health")

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["uptime"] >= 0
    assert "timestamp" in body


def test_health_db(client):
    res = client.get("/health/db")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/nope")

    assert res.status_code == 404
    assert res.json()["success"] is False


def test_stats_endpoints_enforce_admin(client, admin, member, auth_headers):
    assert client.get("/stats/overview", headers=auth_headers(member)).status_code == 200
    assert client.get("/stats/user", headers=auth_headers(member)).status_code == 200
    assert client.get("/stats/analytics", params={"days": 14}, headers=auth_headers(member)).status_code == 200
    assert client.get("/stats/team", headers=auth_headers(member)).status_code == 403
    assert client.get("/stats/system", headers=auth_headers(member)).status_code == 403
    assert client.get("/stats/team", headers=auth_headers(admin)).status_code == 200

    system = client.get("/stats/system", headers=auth_headers(admin)).json()["data"]
    assert system["system_info"]["environment"] == "test"


def test_unhandled_error_returns_500_with_debug_fields(settings, engine):
    app = create_app(settings, engine)
    boom = APIRouter()

    @boom.get("/boom")
    def _boom():
        raise RuntimeError("kaboom")

    app.include_router(boom)

    with TestClient(app, raise_server_exceptions=False) as c:
        res = c.get("/boom")

    assert res.status_code == 500
    body = res.json()
    assert body["message"] == "Internal Server Error"
    assert body["error_type"] == "RuntimeError"
    assert body["traceback"]


def test_startup_bootstraps_admin(settings, engine):
    settings = settings.model_copy(update={"admin_email": "root@example.com", "admin_password": "rootpass1"})

    with TestClient(create_app(settings, engine)):
        pass

    with Session(engine) as s:
        admin = s.exec(select(User).where(User.email == "root@example.com")).one()
    assert admin.role == UserRole.ADMIN
