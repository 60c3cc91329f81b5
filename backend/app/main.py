from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from polo_core import (
    ApiClient,
    ApiError,
    FileSecretStore,
    LocalStore,
    PoloClientError,
    RecordNotFound,
    Session,
    SyncService,
    UnsyncedReferenceError,
    UserProfile,
)
from polo_core.config import get_settings
from polo_core.models import RECORD_TYPES
from polo_core.scoring import team_standings

app = FastAPI(title="Polo Sync API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)


class ReconcileSummaryModel(BaseModel):
    inserted: int
    updated: int
    deferred: List[int] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class BacklogSummaryModel(BaseModel):
    synced: int
    remaining: int
    errors: List[str] = Field(default_factory=list)


class PushResponse(BaseModel):
    local_id: str = Field(alias="localId")
    remote_id: int = Field(alias="remoteId")

    model_config = ConfigDict(populate_by_name=True)


class DeleteResponse(BaseModel):
    removed: List[str]
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class LoginPayload(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    authenticated: bool
    profile: Optional[UserProfile] = None


class StandingRowModel(BaseModel):
    team_id: str = Field(alias="teamId")
    name: str
    games_played: int = Field(alias="gamesPlayed")
    wins: int
    losses: int
    draws: int
    goals_for: int = Field(alias="goalsFor")
    goals_against: int = Field(alias="goalsAgainst")
    goal_difference: int = Field(alias="goalDifference")
    win_percentage: float = Field(alias="winPercentage")

    model_config = ConfigDict(populate_by_name=True)


class StandingsResponse(BaseModel):
    teams: List[StandingRowModel]


@lru_cache(maxsize=1)
def store() -> LocalStore:
    return LocalStore()


@lru_cache(maxsize=1)
def session() -> Session:
    settings = get_settings()
    current = Session(FileSecretStore(settings.data_dir / "secrets.json", settings.secret_service))
    current.hydrate()
    return current


@lru_cache(maxsize=1)
def client() -> ApiClient:
    return ApiClient(session=session())


def sync_service(
    local_store: LocalStore = Depends(store),
    api_client: ApiClient = Depends(client),
) -> SyncService:
    return SyncService(api_client, local_store)


def _require_kind(kind: str) -> str:
    if kind not in RECORD_TYPES:
        raise HTTPException(status_code=404, detail=f"Unknown record kind '{kind}'")
    return kind


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ApiError):
        status = exc.status_code if 400 <= exc.status_code < 500 else 502
        return HTTPException(status_code=status, detail=exc.user_message)
    if isinstance(exc, UnsyncedReferenceError):
        return HTTPException(status_code=409, detail=exc.user_message)
    if isinstance(exc, PoloClientError):
        return HTTPException(status_code=502, detail=exc.user_message)
    return HTTPException(status_code=400, detail=str(exc))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/records/{kind}")
def list_records(
    kind: str,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    local_store: LocalStore = Depends(store),
) -> List[Dict[str, Any]]:
    _require_kind(kind)
    records = local_store.all(kind) if include_inactive else local_store.active(kind)
    return [jsonable_encoder(record) for record in records]


@app.post("/sync/all", response_model=Dict[str, ReconcileSummaryModel])
def sync_all(service: SyncService = Depends(sync_service)):
    return service.refresh_all()


@app.post("/sync/{kind}", response_model=ReconcileSummaryModel)
def sync_kind(kind: str, service: SyncService = Depends(sync_service)):
    _require_kind(kind)
    try:
        result = service.refresh(kind)
    except (PoloClientError, ValueError) as exc:
        raise _http_error(exc) from exc
    return ReconcileSummaryModel(**result.as_dict())


@app.post("/push-backlog", response_model=Dict[str, BacklogSummaryModel])
def push_backlog(service: SyncService = Depends(sync_service)):
    return service.push_backlog()


@app.post("/records/{kind}/{local_id}/push", response_model=PushResponse)
def push_record(
    kind: str,
    local_id: str,
    local_store: LocalStore = Depends(store),
    service: SyncService = Depends(sync_service),
):
    _require_kind(kind)
    try:
        record = local_store.require(kind, local_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        remote_id = service.push(record)
    except (PoloClientError, ValueError) as exc:
        raise _http_error(exc) from exc
    return PushResponse(localId=record.local_id, remoteId=remote_id)


@app.delete("/records/{kind}/{local_id}", response_model=DeleteResponse)
def delete_record(
    kind: str,
    local_id: str,
    local_store: LocalStore = Depends(store),
    service: SyncService = Depends(sync_service),
):
    _require_kind(kind)
    try:
        record = local_store.require(kind, local_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        removed = service.delete(record)
    except PoloClientError as exc:
        raise _http_error(exc) from exc
    return DeleteResponse(
        removed=[item.local_id for item in removed],
        isActive=getattr(record, "is_active", None) if not removed else None,
    )


@app.post("/auth/login", response_model=SessionResponse)
def login(
    payload: LoginPayload,
    current: Session = Depends(session),
    api_client: ApiClient = Depends(client),
):
    try:
        profile = current.login(api_client, payload.email, payload.password)
    except PoloClientError as exc:
        raise _http_error(exc) from exc
    return SessionResponse(authenticated=True, profile=profile)


@app.post("/auth/logout", response_model=SessionResponse)
def logout(current: Session = Depends(session)):
    current.logout()
    return SessionResponse(authenticated=False)


@app.get("/session", response_model=SessionResponse)
def session_state(current: Session = Depends(session)):
    return SessionResponse(authenticated=current.is_authenticated, profile=current.profile)


@app.get("/standings", response_model=StandingsResponse)
def standings(local_store: LocalStore = Depends(store)):
    rows = team_standings(local_store)
    return StandingsResponse(teams=[StandingRowModel(**jsonable_encoder(row)) for row in rows])
