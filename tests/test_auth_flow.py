"""
Google login and session token flow.

- the profile comes from Google's userinfo endpoint, not from the request body
- first login creates the user, a second login with the same subject reuses it
- username is derived from the email and made unique
- refresh rotates the cookie and revokes the previous one
- logout revokes the current refresh token
"""

import uuid

import pytest
from pydantic import ValidationError

from caretoshare.core.config import Settings, settings
from caretoshare.models.user import User
from caretoshare.services.users import ExternalIdentity
from tests.helpers import auth_header, identities, login


def test_google_login_creates_then_reuses_user(client, db):
    profile = ExternalIdentity(subject="g-123", email="alice.kim@test.com", name="Alice Kim")
    identities.register("ya29.first", profile)
    identities.register("ya29.second", profile)

    first = client.post("/auth/google/token", json={"access_token": "ya29.first"})
    assert first.status_code == 200, first.text
    data = first.json()["data"]
    assert data["created"] is True
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == "alicekim"
    assert data["user"]["email"] == "alice.kim@test.com"
    assert "google_access_token" not in data["user"]

    second = client.post("/auth/google/token", json={"access_token": "ya29.second"})
    assert second.status_code == 200, second.text
    assert second.json()["data"]["created"] is False
    assert second.json()["data"]["user"]["id"] == data["user"]["id"]

    user = db.get(User, uuid.UUID(data["user"]["id"]))
    assert user.google_access_token == "ya29.second"


def test_client_supplied_subject_cannot_take_over_an_account(client, db):
    victim = login(client, name="Victim", email="victim@test.com", sub="g-victim")
    identities.register("ya29.attacker", ExternalIdentity(subject="g-attacker", email="mallory@test.com", name="Mallory"))

    r = client.post(
        "/auth/google/token",
        json={
            "access_token": "ya29.attacker",
            "user_info": {"sub": "g-victim", "email": "victim@test.com", "name": "Victim"},
        },
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["user"]["id"] != victim["id"]
    assert data["user"]["email"] == "mallory@test.com"

    victim_row = db.get(User, uuid.UUID(victim["id"]))
    assert victim_row.google_access_token == "ya29.g-victim"


def test_unrecognised_google_token_asks_for_reauth(client):
    r = client.post("/auth/google/token", json={"access_token": "ya29.unknown"})
    assert r.status_code == 401
    assert r.json()["requires_reauth"] is True


def test_trusted_login_uses_client_profile(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_VERIFY_USERINFO", False)

    r = client.post(
        "/auth/google/token",
        json={"access_token": "ya29.dev", "user_info": {"sub": "g-dev", "email": "dev@test.com", "name": "Dev"}},
    )
    assert r.status_code == 200, r.text
    assert r.json()["data"]["user"]["email"] == "dev@test.com"

    missing = client.post("/auth/google/token", json={"access_token": "ya29.x"})
    assert missing.status_code == 400
    assert missing.json()["code"] == "INVALID_INPUT"


def test_trusted_login_is_refused_in_production():
    with pytest.raises(ValidationError):
        Settings(
            DATABASE_URL="sqlite://",
            SECRET_KEY="s",
            REFRESH_SECRET_KEY="r",
            ENVIRONMENT="production",
            GOOGLE_VERIFY_USERINFO=False,
        )

    dev = Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY="s",
        REFRESH_SECRET_KEY="r",
        ENVIRONMENT="development",
        GOOGLE_VERIFY_USERINFO=False,
    )
    assert dev.GOOGLE_VERIFY_USERINFO is False
    assert Settings(DATABASE_URL="sqlite://", SECRET_KEY="s", REFRESH_SECRET_KEY="r").GOOGLE_VERIFY_USERINFO is True


def test_username_collision_gets_suffix(client):
    a = login(client, name="Bob", email="bob@test.com", sub="g-bob-1")
    b = login(client, name="Bob", email="bob@other.com", sub="g-bob-2")
    assert a["username"] == "bob"
    assert b["username"] == "bob1"


def test_verify_requires_token(client):
    assert client.get("/auth/verify").status_code == 401

    user = login(client, name="Carol")
    r = client.get("/auth/verify", headers=user["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["data"]["user"]["id"] == user["id"]


def test_refresh_token_rotation_and_revocation(client):
    user = login(client, name="Dana")
    assert "refresh_token" in client.cookies
    refresh1 = client.cookies.get("refresh_token")

    r1 = client.post("/auth/refresh")
    assert r1.status_code == 200, r1.text
    access2 = r1.json()["data"]["access_token"]
    assert access2

    refresh2 = client.cookies.get("refresh_token")
    assert refresh2 and refresh2 != refresh1

    client.cookies.set("refresh_token", refresh1)
    r_old = client.post("/auth/refresh")
    assert r_old.status_code == 401
    assert r_old.json()["detail"] == "Refresh token revoked"

    client.cookies.set("refresh_token", refresh2)
    logout = client.post("/auth/logout", headers=auth_header(access2))
    assert logout.status_code == 204

    client.cookies.set("refresh_token", refresh2)
    after = client.post("/auth/refresh")
    assert after.status_code == 401
    assert user["id"]


def test_refresh_token_is_not_an_access_token(client):
    login(client, name="Eve")
    refresh = client.cookies.get("refresh_token")
    r = client.get("/auth/verify", headers=auth_header(refresh))
    assert r.status_code == 401
