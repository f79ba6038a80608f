import pytest

from app.services.errors import ValidationError
from app.services.identity import (
    IdentityProvider,
    LocalIdentityProvider,
    create_user,
    get_identity,
)


@pytest.fixture()
def user(session):
    u = create_user(session, email="Admin@Example.com", password="correct-horse", display_name="Admin")
    session.commit()
    return u


def test_configured_provider_is_local(app):
    with app.app_context():
        provider = get_identity()
    assert isinstance(provider, LocalIdentityProvider)
    assert isinstance(provider, IdentityProvider)


def test_create_user_normalizes_and_rejects_duplicates(session, user):
    assert user.email == "admin@example.com"
    with pytest.raises(ValidationError) as exc:
        create_user(session, email="ADMIN@example.com", password="another-pass")
    assert "email" in exc.value.errors
    with pytest.raises(ValidationError) as exc:
        create_user(session, email="new@example.com", password="short")
    assert "password" in exc.value.errors


def test_login_me_logout(client, user):
    resp = client.post("/auth/login", json={"email": "admin@example.com", "password": "correct-horse"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["email"] == "admin@example.com"

    me = client.get("/auth/me").get_json()
    assert me["user"]["display_name"] == "Admin"

    assert client.post("/auth/logout").get_json() == {"ok": True}
    assert client.get("/auth/me").get_json()["user"] is None


def test_login_with_bad_password(client, user):
    resp = client.post("/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_credentials"


def test_login_requires_both_fields(client):
    resp = client.post("/auth/login", json={"email": ""})
    assert resp.status_code == 400


def test_admin_requires_login_when_enabled(app, client):
    app.config["LOGIN_DISABLED"] = False
    try:
        resp = client.get("/admin/categories")
    finally:
        app.config["LOGIN_DISABLED"] = True
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"
