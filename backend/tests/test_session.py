from __future__ import annotations

import json

import pytest

from polo_core import ApiError, FileSecretStore, MemorySecretStore, NetworkError, Session
from polo_core.models import UserRole
from polo_core.session import PROFILE_KEY, REFRESH_TOKEN_KEY, TOKEN_KEY

from conftest import connect_error

AUTH_PAYLOAD = {
    "token": "access-1",
    "refresh_token": "refresh-1",
    "user": {"id": 12, "name": "Sam Carter", "email": "sam@example.com"},
}


def test_login_stores_token_and_profile(fake_api, session):
    fake_api.add("POST", "/auth/login", AUTH_PAYLOAD)

    profile = session.login(fake_api.client(session=session), "sam@example.com", "pw")

    assert profile.remote_id == 12
    assert profile.role is UserRole.USER
    assert profile.is_active and profile.is_email_verified
    assert session.is_authenticated
    assert session.secrets.get(TOKEN_KEY) == "access-1"
    assert session.get_refresh_token() == "refresh-1"
    assert fake_api.body() == {"email": "sam@example.com", "password": "pw"}
    assert "Authorization" not in fake_api.requests[0].headers


def test_failed_login_leaves_session_untouched(fake_api):
    secrets = MemorySecretStore({TOKEN_KEY: "old-token"})
    session = Session(secrets)
    fake_api.add("POST", "/auth/login", {"message": "Invalid credentials"}, status=401)

    with pytest.raises(ApiError) as excinfo:
        session.login(fake_api.client(session=session), "sam@example.com", "wrong")

    assert excinfo.value.message == "Invalid credentials"
    assert secrets.get(TOKEN_KEY) == "old-token"
    assert secrets.get(PROFILE_KEY) is None


def test_register_posts_optional_fields_only_when_given(fake_api, session):
    fake_api.add("POST", "/auth/register", AUTH_PAYLOAD, status=201)

    session.register(fake_api.client(), "Sam Carter", "sam@example.com", "pw", nationality="AU")

    assert fake_api.body() == {
        "name": "Sam Carter",
        "email": "sam@example.com",
        "password": "pw",
        "nationality": "AU",
    }
    assert session.is_authenticated


def test_hydrate_restores_stored_session(fake_api, session):
    fake_api.add("POST", "/auth/login", AUTH_PAYLOAD)
    session.login(fake_api.client(), "sam@example.com", "pw")

    restored = Session(session.secrets)
    assert not restored.is_authenticated
    assert restored.hydrate() is True
    assert restored.token == "access-1"
    assert restored.profile.email == "sam@example.com"


def test_hydrate_requires_token_and_profile():
    session = Session(MemorySecretStore({TOKEN_KEY: "orphan-token"}))

    assert session.hydrate() is False
    assert session.token is None
    assert not session.is_authenticated


def test_corrupted_profile_reads_as_absent():
    session = Session(MemorySecretStore({TOKEN_KEY: "t", PROFILE_KEY: "{not json"}))

    assert session.get_cached_profile() is None
    assert session.hydrate() is False


def test_logout_clears_every_secret(fake_api, session):
    fake_api.add("POST", "/auth/login", AUTH_PAYLOAD)
    session.login(fake_api.client(), "sam@example.com", "pw")

    session.logout()

    assert not session.is_authenticated
    for key in (TOKEN_KEY, REFRESH_TOKEN_KEY, PROFILE_KEY):
        assert session.secrets.get(key) is None


def test_refresh_without_refresh_token_logs_out(fake_api):
    session = Session(MemorySecretStore())
    session.set_token("access-1")

    assert session.refresh(fake_api.client()) is False
    assert session.token is None
    assert fake_api.requests == []


def test_refresh_replaces_access_token(fake_api, session):
    session.set_refresh_token("refresh-1")
    fake_api.add("POST", "/auth/refresh", {**AUTH_PAYLOAD, "token": "access-2", "refresh_token": "refresh-2"})

    assert session.refresh(fake_api.client()) is True
    assert session.get_token() == "access-2"
    assert session.get_refresh_token() == "refresh-2"
    assert fake_api.body() == {"refresh_token": "refresh-1"}


def test_rejected_refresh_logs_out(fake_api, session):
    session.set_token("access-1")
    session.set_refresh_token("expired")
    fake_api.add("POST", "/auth/refresh", {"message": "Token expired"}, status=401)

    assert session.refresh(fake_api.client()) is False
    assert session.get_token() is None
    assert session.get_refresh_token() is None


def test_refresh_network_failure_keeps_session(fake_api, session):
    session.set_token("access-1")
    session.set_refresh_token("refresh-1")
    fake_api.add("POST", "/auth/refresh", error=connect_error)

    with pytest.raises(NetworkError):
        session.refresh(fake_api.client())

    assert session.get_token() == "access-1"


def test_file_secret_store_is_namespaced(tmp_path):
    path = tmp_path / "secrets.json"
    app_store = FileSecretStore(path, "com.australianpolo.app")
    other_store = FileSecretStore(path, "com.example.other")

    app_store.set(TOKEN_KEY, "app-token")
    other_store.set(TOKEN_KEY, "other-token")
    app_store.delete(TOKEN_KEY)

    assert app_store.get(TOKEN_KEY) is None
    assert other_store.get(TOKEN_KEY) == "other-token"
    assert json.loads(path.read_text()) == {"com.example.other": {TOKEN_KEY: "other-token"}, "com.australianpolo.app": {}}


def test_file_secret_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "secrets.json"
    path.write_text("{broken")

    store = FileSecretStore(path)

    assert store.get(TOKEN_KEY) is None
    store.set(TOKEN_KEY, "fresh")
    assert store.get(TOKEN_KEY) == "fresh"


def test_sign_in_without_refresh_token_drops_stale_one(fake_api, session):
    session.set_refresh_token("refresh-old")
    fake_api.add("POST", "/auth/login", {"token": "access-2", "user": AUTH_PAYLOAD["user"]})

    session.login(fake_api.client(), "sam@example.com", "pw")

    assert session.get_token() == "access-2"
    assert session.get_refresh_token() is None
