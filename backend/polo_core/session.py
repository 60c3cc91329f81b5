from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ValidationError

from . import dto
from .client import ApiClient
from .config import DEFAULT_SECRET_SERVICE
from .dates import utc_now
from .errors import ApiError
from .models import UserRole

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"
PROFILE_KEY = "user_profile"


class SecretStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySecretStore:
    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class FileSecretStore:
    """Opaque key/value secrets kept in a JSON file, namespaced by service."""

    def __init__(self, path: Path, service: str = DEFAULT_SECRET_SERVICE) -> None:
        self.path = Path(path)
        self.service = service

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(self.service, {}).get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data.setdefault(self.service, {})[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        namespace = data.get(self.service, {})
        if key in namespace:
            del namespace[key]
            self._write(data)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        try:
            if not self.path.exists():
                return {}
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Falling back to empty secret store for %s due to read error: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {name: values for name, values in data.items() if isinstance(values, dict)}

    def _write(self, data: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to write secret store {self.path}") from exc


class UserProfile(BaseModel):
    remote_id: Optional[int] = None
    name: str
    email: str
    role: UserRole = UserRole.USER
    created_at: dt.datetime
    last_login_at: Optional[dt.datetime] = None
    is_active: bool = True
    is_email_verified: bool = False
    phone_number: Optional[str] = None
    date_of_birth: Optional[dt.date] = None
    nationality: Optional[str] = None

    @classmethod
    def from_backend(cls, user: dto.BackendUser) -> "UserProfile":
        now = utc_now()
        return cls(
            remote_id=user.id,
            name=user.name,
            email=user.email,
            role=UserRole.USER,
            created_at=now,
            last_login_at=now,
            is_active=True,
            is_email_verified=True,
        )


class Session:
    """Authenticated state, backed by a :class:`SecretStore`.

    The session starts unauthenticated; call :meth:`hydrate` once at start-up
    to restore a previously stored token and profile.
    """

    def __init__(self, secrets: SecretStore) -> None:
        self.secrets = secrets
        self.token: Optional[str] = None
        self.profile: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.profile is not None

    def hydrate(self) -> bool:
        token = self.secrets.get(TOKEN_KEY)
        profile = self.get_cached_profile()
        if token and profile is not None:
            self.token = token
            self.profile = profile
            return True
        self.token = None
        self.profile = None
        return False

    # ------------------------------------------------------------------
    # Token / profile accessors

    def get_token(self) -> Optional[str]:
        return self.token

    def set_token(self, token: str) -> None:
        self.secrets.set(TOKEN_KEY, token)
        self.token = token

    def clear_token(self) -> None:
        self.secrets.delete(TOKEN_KEY)
        self.secrets.delete(REFRESH_TOKEN_KEY)
        self.token = None

    def get_refresh_token(self) -> Optional[str]:
        return self.secrets.get(REFRESH_TOKEN_KEY)

    def set_refresh_token(self, token: str) -> None:
        self.secrets.set(REFRESH_TOKEN_KEY, token)

    def get_cached_profile(self) -> Optional[UserProfile]:
        blob = self.secrets.get(PROFILE_KEY)
        if not blob:
            return None
        try:
            return UserProfile.model_validate_json(blob)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cached profile: %s", exc)
            return None

    def set_cached_profile(self, profile: UserProfile) -> None:
        self.secrets.set(PROFILE_KEY, profile.model_dump_json())
        self.profile = profile

    def clear_cached_profile(self) -> None:
        self.secrets.delete(PROFILE_KEY)
        self.profile = None

    # ------------------------------------------------------------------
    # Auth flows

    def login(self, client: ApiClient, email: str, password: str) -> UserProfile:
        body = dto.LoginRequest(email=email, password=password)
        _, response = client.send("POST", "/auth/login", body, dto.AuthResponse, authenticated=False)
        return self._authenticated(response)

    def register(self, client: ApiClient, name: str, email: str, password: str, **extra: Any) -> UserProfile:
        body = dto.RegisterRequest(name=name, email=email, password=password, **extra)
        _, response = client.send("POST", "/auth/register", body, dto.AuthResponse, authenticated=False)
        return self._authenticated(response)

    def refresh(self, client: ApiClient) -> bool:
        """Exchange the stored refresh token for a new access token.

        Without a refresh token, or when the server rejects it, the session is
        logged out and ``False`` is returned.
        """
        refresh_token = self.get_refresh_token()
        if not refresh_token:
            self.logout()
            return False

        body = dto.RefreshRequest(refresh_token=refresh_token)
        try:
            _, response = client.send("POST", "/auth/refresh", body, dto.AuthResponse, authenticated=False)
        except ApiError as exc:
            if exc.status_code in (401, 403):
                logger.info("Refresh token rejected (%s); logging out", exc.status_code)
                self.logout()
                return False
            raise

        self._authenticated(response)
        return True

    def logout(self) -> None:
        self.clear_token()
        self.clear_cached_profile()

    def _authenticated(self, response: dto.AuthResponse) -> UserProfile:
        profile = UserProfile.from_backend(response.user)
        self.set_token(response.token)
        if response.refresh_token:
            self.set_refresh_token(response.refresh_token)
        else:
            self.secrets.delete(REFRESH_TOKEN_KEY)
        self.set_cached_profile(profile)
        logger.info("Signed in as %s", profile.email)
        return profile
