import types

from backend.auth import service as svc
from backend.auth.models import USER_EXISTS

# Capturée avant le remplacement par la fixture fake_identity
real_get_user_from_token = svc.get_user_from_token


def _session_result(token="abc", metadata=None):
    user = types.SimpleNamespace(id="u1", email="new@example.com", user_metadata=metadata or {"name": "New"})
    return types.SimpleNamespace(user=user, session=types.SimpleNamespace(access_token=token))


def test_login_success_normalizes_email(monkeypatch):
    calls = {}

    def fake_sign_in(email, password):
        calls.update(email=email, password=password)
        return _session_result()

    monkeypatch.setattr(svc.repository, "auth_sign_in_password", fake_sign_in)
    res = svc.login(" User@Example.com ", "pwd")
    assert res.success is True
    assert res.access_token == "abc"
    assert res.user == {"id": "u1", "email": "new@example.com", "name": "New", "role": "user"}
    assert calls == {"email": "user@example.com", "password": "pwd"}


def test_login_rejected_credentials(monkeypatch):
    def fake_sign_in(email, password):
        raise RuntimeError("Invalid login credentials")

    monkeypatch.setattr(svc.repository, "auth_sign_in_password", fake_sign_in)
    res = svc.login("x@y.com", "z")
    assert res.success is False
    assert res.error == "Identifiants invalides"


def test_login_unexpected_error_is_wrapped(monkeypatch):
    def fake_sign_in(email, password):
        raise RuntimeError("boom")

    monkeypatch.setattr(svc.repository, "auth_sign_in_password", fake_sign_in)
    res = svc.login("x@y.com", "z")
    assert res.success is False
    assert "sign_in" in res.error


def test_signup_stores_name_and_phone(monkeypatch):
    calls = {}

    def fake_sign_up(email, password, options_data=None):
        calls["options_data"] = options_data
        return _session_result()

    monkeypatch.setattr(svc.repository, "auth_sign_up_account", fake_sign_up)
    res = svc.signup(" New ", "new@example.com", "secret1", phone=" 0600 ")
    assert res.success is True
    assert res.access_token == "abc"
    assert calls["options_data"] == {"name": "New", "phone": "0600"}


def test_signup_needs_email_verification(monkeypatch):
    monkeypatch.setattr(svc.repository, "auth_sign_up_account", lambda *a, **kw: types.SimpleNamespace(session=None))
    res = svc.signup("X", "x@example.com", "secret1")
    assert res.success is True
    assert res.access_token is None
    assert "vérifiez votre email" in res.error.lower()


def test_signup_duplicate_maps_to_user_exists(monkeypatch):
    def fake_sign_up(*a, **kw):
        raise Exception("User already registered")

    monkeypatch.setattr(svc.repository, "auth_sign_up_account", fake_sign_up)
    res = svc.signup("X", "x@example.com", "secret1")
    assert res.success is False
    assert res.error == USER_EXISTS


def test_get_user_from_token_derives_role(monkeypatch):
    monkeypatch.setattr(
        svc.repository,
        "get_user_from_access_token",
        lambda token: {"id": "a1", "email": "a@b.com", "user_metadata": {"full_name": "Ada", "role": "admin"}},
    )
    assert real_get_user_from_token("tok") == {"id": "a1", "email": "a@b.com", "name": "Ada", "role": "admin"}
