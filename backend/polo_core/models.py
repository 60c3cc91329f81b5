from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Type

from .dates import utc_now


class TournamentGrade(str, Enum):
    HIGH = "High Goal"
    MEDIUM = "Medium Goal"
    LOW = "Low Goal"
    ZERO = "Zero"
    SUBZERO = "Sub-Zero"


class MatchResult(str, Enum):
    WIN = "Win"
    LOSS = "Loss"
    DRAW = "Draw"
    PENDING = "Pending"


class DutyType(str, Enum):
    UMPIRE = "Umpire"
    CENTRE_TABLE = "Centre Table"
    GOAL_UMPIRE = "Goal Umpire"


class AustralianState(str, Enum):
    NSW = "NSW"
    VIC = "VIC"
    QLD = "QLD"
    WA = "WA"
    SA = "SA"
    TAS = "TAS"
    ACT = "ACT"
    NT = "NT"


class HorseGender(str, Enum):
    STALLION = "Stallion"
    MARE = "Mare"
    GELDING = "Gelding"


class HorseColor(str, Enum):
    BAY = "Bay"
    CHESTNUT = "Chestnut"
    BLACK = "Black"
    GREY = "Grey"
    BROWN = "Brown"
    PALOMINO = "Palomino"
    PINTO = "Pinto"
    ROAN = "Roan"


class UserRole(str, Enum):
    ADMINISTRATOR = "Administrator"
    CLUB_OPERATOR = "Club Operator"
    PLAYER = "Player"
    BREEDER = "Breeder"
    USER = "User"


class DeletionPolicy(str, Enum):
    SOFT = "soft"  # is_active = False
    HARD = "hard"  # removed from the store


class OnDelete(str, Enum):
    CASCADE = "cascade"
    NULLIFY = "nullify"


@dataclass(frozen=True)
class Reference:
    """A relationship field holding the local id(s) of records of ``target`` kind.

    ``on_delete`` says what happens to the owner of the field when the target
    is hard-deleted.
    """

    field: str
    target: str
    on_delete: OnDelete = OnDelete.NULLIFY
    many: bool = False


def _new_local_id() -> str:
    return str(uuid.uuid4())


@dataclass
class User:
    kind: ClassVar[str] = "user"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = ()

    name: str
    email: str
    role: UserRole = UserRole.USER
    created_at: dt.datetime = field(default_factory=utc_now)
    is_active: bool = True
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Club:
    kind: ClassVar[str] = "club"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = ()

    name: str
    location: str = ""
    founded_date: dt.datetime = field(default_factory=utc_now)
    is_active: bool = True
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Field:
    kind: ClassVar[str] = "field"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = ()

    name: str
    location: str = ""
    grade: TournamentGrade = TournamentGrade.MEDIUM
    is_active: bool = True
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Tournament:
    kind: ClassVar[str] = "tournament"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("club_id", "club"),
        Reference("field_id", "field"),
        Reference("team_ids", "team", many=True),
    )

    name: str
    grade: TournamentGrade = TournamentGrade.MEDIUM
    start_date: dt.datetime = field(default_factory=utc_now)
    end_date: dt.datetime = field(default_factory=utc_now)
    location: str = ""
    is_active: bool = True
    club_id: Optional[str] = None
    field_id: Optional[str] = None
    team_ids: List[str] = field(default_factory=list)
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Team:
    kind: ClassVar[str] = "team"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.HARD
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("club_id", "club"),
        Reference("player_ids", "player", many=True),
    )

    name: str
    grade: TournamentGrade = TournamentGrade.MEDIUM
    coach: Optional[str] = None
    wins: int = 0
    losses: int = 0
    draws: int = 0
    goals_for: int = 0
    goals_against: int = 0
    club_id: Optional[str] = None
    player_ids: List[str] = field(default_factory=list)
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


@dataclass
class Player:
    kind: ClassVar[str] = "player"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("club_id", "club"),
        Reference("user_id", "user"),
    )

    first_name: str
    surname: str = ""
    state: Optional[AustralianState] = None
    handicap_jun_2025: Optional[float] = None
    womens_handicap_jun_2025: Optional[float] = None
    handicap_dec_2026: Optional[float] = None
    womens_handicap_dec_2026: Optional[float] = None
    position: Optional[str] = None
    games_played: int = 0
    goals_scored: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    join_date: dt.datetime = field(default_factory=utc_now)
    is_active: bool = True
    club_id: Optional[str] = None
    user_id: Optional[str] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.surname}".strip()

    @property
    def current_handicap(self) -> float:
        return self.handicap_jun_2025 or 0.0

    @property
    def win_percentage(self) -> float:
        if self.games_played <= 0:
            return 0.0
        return self.wins / self.games_played * 100


@dataclass
class Breeder:
    kind: ClassVar[str] = "breeder"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = (Reference("user_id", "user"),)

    name: str
    location: str = ""
    established_date: dt.datetime = field(default_factory=utc_now)
    is_active: bool = True
    user_id: Optional[str] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Horse:
    kind: ClassVar[str] = "horse"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.SOFT
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("breeder_id", "breeder"),
        Reference("owner_id", "player", OnDelete.CASCADE),
    )

    name: str
    birth_date: dt.datetime = field(default_factory=utc_now)
    gender: HorseGender = HorseGender.GELDING
    color: HorseColor = HorseColor.BAY
    pedigree: str = ""
    games_played: int = 0
    tournaments_won: int = 0
    awards: List[str] = field(default_factory=list)
    is_active: bool = True
    breeder_id: Optional[str] = None
    owner_id: Optional[str] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)

    def age(self, today: dt.datetime | None = None) -> int:
        now = today or utc_now()
        years = now.year - self.birth_date.year
        if (now.month, now.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return max(years, 0)


@dataclass
class Match:
    kind: ClassVar[str] = "match"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.HARD
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("tournament_id", "tournament", OnDelete.CASCADE),
        Reference("home_team_id", "team", OnDelete.CASCADE),
        Reference("away_team_id", "team", OnDelete.CASCADE),
        Reference("field_id", "field"),
    )

    date: dt.datetime = field(default_factory=utc_now)
    home_score: int = 0
    away_score: int = 0
    result: MatchResult = MatchResult.PENDING
    notes: str = ""
    current_chukka: int = 1
    # scores last rolled into the team tallies; never set from the server
    tallied_home_score: Optional[int] = None
    tallied_away_score: Optional[int] = None
    tournament_id: Optional[str] = None
    home_team_id: Optional[str] = None
    away_team_id: Optional[str] = None
    field_id: Optional[str] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Duty:
    kind: ClassVar[str] = "duty"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.HARD
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("player_id", "player", OnDelete.CASCADE),
        Reference("match_id", "match", OnDelete.CASCADE),
    )

    type: DutyType
    date: dt.datetime = field(default_factory=utc_now)
    notes: str = ""
    player_id: Optional[str] = None
    match_id: Optional[str] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class MatchParticipation:
    kind: ClassVar[str] = "participation"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.HARD
    references: ClassVar[Tuple[Reference, ...]] = (
        Reference("match_id", "match", OnDelete.CASCADE),
        Reference("player_id", "player", OnDelete.CASCADE),
        Reference("horse_id", "horse", OnDelete.CASCADE),
        Reference("team_id", "team"),
    )

    goals_scored: int = 0
    fouls: int = 0
    rating: float = 0.0
    match_id: Optional[str] = None
    player_id: Optional[str] = None
    horse_id: Optional[str] = None
    team_id: Optional[str] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


@dataclass
class Award:
    kind: ClassVar[str] = "award"
    deletion: ClassVar[DeletionPolicy] = DeletionPolicy.HARD
    references: ClassVar[Tuple[Reference, ...]] = ()

    title: str
    description: Optional[str] = None
    entity_type: Optional[str] = None
    entity_remote_id: Optional[int] = None
    remote_id: Optional[int] = None
    last_synced_at: Optional[dt.datetime] = None
    local_id: str = field(default_factory=_new_local_id)


RECORD_TYPES: Dict[str, Type] = {
    cls.kind: cls
    for cls in (
        User,
        Club,
        Field,
        Tournament,
        Team,
        Player,
        Breeder,
        Horse,
        Match,
        Duty,
        MatchParticipation,
        Award,
    )
}


def record_type(kind: str) -> Type:
    try:
        return RECORD_TYPES[kind]
    except KeyError as exc:
        raise ValueError(f"Unknown record kind '{kind}'") from exc
