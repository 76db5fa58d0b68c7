import sys
import types

from fastapi import FastAPI, Depends
from fastapi.responses import Response
from fastapi.testclient import TestClient

from backend.utils import security as security_mod
from backend.utils.security import (
    determine_role,
    set_session_cookie,
    clear_session_cookie,
    get_current_user,
    get_optional_user,
    require_admin,
    COOKIE_NAME,
)


def _make_app():
    app = FastAPI()

    @app.get("/me")
    def me(user=Depends(get_current_user)):
        return user

    @app.get("/maybe")
    def maybe(user=Depends(get_optional_user)):
        return {"user": user}

    @app.get("/admin")
    def admin(user=Depends(require_admin)):
        return {"ok": True}

    return app


def _auth_service(monkeypatch, fn):
    monkeypatch.setitem(sys.modules, "backend.auth.service", types.SimpleNamespace(get_user_from_token=fn))


def test_determine_role():
    assert determine_role({"role": "admin"}) == "admin"
    assert determine_role({"role": "ADMIN"}) == "admin"
    assert determine_role({"role": "scanner"}) == "user"
    assert determine_role(None) == "user"


def test_set_and_clear_session_cookie(monkeypatch):
    monkeypatch.setattr(security_mod, "COOKIE_SECURE", True, raising=False)
    resp = Response()

    set_session_cookie(resp, "abc123")
    low = (resp.headers.get("set-cookie") or "").lower()
    assert "sb_access=abc123" in low
    assert "httponly" in low
    assert "path=/" in low
    assert "samesite=lax" in low
    assert "secure" in low

    resp2 = Response()
    clear_session_cookie(resp2)
    h2 = (resp2.headers.get("set-cookie") or "").lower()
    assert "sb_access=" in h2
    assert "max-age=0" in h2


def test_get_current_user_bearer_success(monkeypatch):
    _auth_service(monkeypatch, lambda token: {"id": "u1", "email": "a@b", "role": "user"})
    client = TestClient(_make_app())

    r = client.get("/me", headers={"Authorization": "Bearer tok-123"})
    assert r.status_code == 200
    assert r.json() == {"id": "u1", "email": "a@b", "role": "user"}


def test_get_current_user_cookie_fallback(monkeypatch):
    seen = []
    _auth_service(monkeypatch, lambda token: seen.append(token) or {"id": "u1", "role": "admin"})
    client = TestClient(_make_app())
    client.cookies.set(COOKIE_NAME, "cookie-token")

    r = client.get("/me")
    assert r.status_code == 200
    assert seen == ["cookie-token"]


def test_get_current_user_missing_token_401(monkeypatch):
    _auth_service(monkeypatch, lambda token: {"id": "u1"})
    r = TestClient(_make_app()).get("/me")
    assert r.status_code == 401
    assert "Non authentifié" in r.text


def test_get_current_user_invalid_token_401(monkeypatch):
    def _reject(token):
        raise RuntimeError("jwt expired")

    _auth_service(monkeypatch, _reject)
    r = TestClient(_make_app()).get("/me", headers={"Authorization": "Bearer tok"})
    assert r.status_code == 401
    assert "Session expirée" in r.text


def test_optional_user_treats_invalid_token_as_guest(monkeypatch):
    def _reject(token):
        raise RuntimeError("jwt expired")

    _auth_service(monkeypatch, _reject)
    client = TestClient(_make_app())
    assert client.get("/maybe").json() == {"user": None}
    assert client.get("/maybe", headers={"Authorization": "Bearer tok"}).json() == {"user": None}


def test_require_admin_forbidden_and_allowed(monkeypatch):
    client = TestClient(_make_app())

    _auth_service(monkeypatch, lambda token: {"id": "u1", "role": "user"})
    assert client.get("/admin", headers={"Authorization": "Bearer tok"}).status_code == 403

    _auth_service(monkeypatch, lambda token: {"id": "u1", "role": "admin"})
    r_ok = client.get("/admin", headers={"Authorization": "Bearer tok"})
    assert r_ok.status_code == 200
    assert r_ok.json() == {"ok": True}
