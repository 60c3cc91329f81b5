"""Wire shapes exchanged with the remote API.

Field names follow the API's snake_case. Response DTOs ignore unknown keys so
that newer server fields do not break older clients.
"""

from __future__ import annotations

from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

T = TypeVar("T")


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ----------------------------------------------------------------------
# Response DTOs


class TournamentDTO(_WireModel):
    id: int
    name: str
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ClubDTO(_WireModel):
    id: int
    name: str
    location: Optional[str] = None
    founded_date: Optional[str] = Field(default=None, validation_alias=AliasChoices("founded_date", "foundedDate"))


class TeamDTO(_WireModel):
    id: int
    name: str
    coach: Optional[str] = None


class PlayerDTO(_WireModel):
    id: int
    first_name: str = Field(validation_alias=AliasChoices("first_name", "firstName"))
    surname: str = ""
    state: Optional[str] = None
    handicap_jun_2025: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("handicap_jun_2025", "handicapJun2025")
    )
    womens_handicap_jun_2025: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("womens_handicap_jun_2025", "womensHandicapJun2025")
    )
    handicap_dec_2026: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("handicap_dec_2026", "handicapDec2026")
    )
    womens_handicap_dec_2026: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("womens_handicap_dec_2026", "womensHandicapDec2026")
    )
    position: Optional[str] = None
    team_id: Optional[int] = None


class HorseDTO(_WireModel):
    id: int
    name: str
    pedigree: Optional[Dict[str, str]] = None
    breeder_id: Optional[int] = None


class BreederDTO(_WireModel):
    id: int
    name: str
    contact_info: Optional[str] = None


class FieldDTO(_WireModel):
    id: int
    name: str
    location: Optional[str] = None
    grade: Optional[str] = None


class AwardDTO(_WireModel):
    id: int
    title: str
    description: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None


class MatchDTO(_WireModel):
    id: int
    tournament_id: int
    team1_id: int
    team2_id: int
    scheduled_time: Optional[str] = None
    result: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    field_id: Optional[int] = None
    notes: Optional[str] = None


class Pagination(_WireModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(validation_alias=AliasChoices("totalPages", "total_pages"))


class PaginatedResponse(_WireModel, Generic[T]):
    data: List[T]
    pagination: Optional[Pagination] = None


class ErrorDetail(_WireModel):
    status_code: Optional[int] = Field(default=None, validation_alias=AliasChoices("statusCode", "status_code"))
    is_operational: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("isOperational", "is_operational")
    )
    status: Optional[str] = None


class ErrorResponse(_WireModel):
    message: str
    status: Optional[str] = None
    error: Optional[ErrorDetail] = None


# ----------------------------------------------------------------------
# Auth


class BackendUser(_WireModel):
    id: int
    name: str
    email: str


class AuthResponse(_WireModel):
    token: str
    refresh_token: Optional[str] = Field(default=None, validation_alias=AliasChoices("refresh_token", "refreshToken"))
    user: BackendUser


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    role: Optional[str] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


# ----------------------------------------------------------------------
# Create / update bodies


class TournamentRequest(BaseModel):
    name: str
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ClubRequest(BaseModel):
    name: str
    location: Optional[str] = None
    founded_date: Optional[str] = None


class TeamRequest(BaseModel):
    name: str
    coach: Optional[str] = None


class PlayerRequest(BaseModel):
    first_name: str
    surname: str
    state: Optional[str] = None
    handicap_jun_2025: Optional[float] = None
    womens_handicap_jun_2025: Optional[float] = None
    handicap_dec_2026: Optional[float] = None
    womens_handicap_dec_2026: Optional[float] = None
    position: Optional[str] = None
    team_id: Optional[int] = None


class HorseRequest(BaseModel):
    name: str
    pedigree: Optional[Dict[str, str]] = None
    breeder_id: Optional[int] = None


class BreederRequest(BaseModel):
    name: str
    contact_info: Optional[str] = None


class FieldRequest(BaseModel):
    name: str
    location: Optional[str] = None
    grade: Optional[str] = None


class AwardRequest(BaseModel):
    title: str
    description: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None


class MatchRequest(BaseModel):
    tournament_id: int
    team1_id: int
    team2_id: int
    scheduled_time: str
    result: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    field_id: Optional[int] = None
