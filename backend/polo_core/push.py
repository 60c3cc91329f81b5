from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from . import dto
from .client import ApiClient
from .dates import format_api_date, format_api_datetime
from .errors import UnsyncedReferenceError
from .store import LocalStore

logger = logging.getLogger(__name__)


def _remote_id_of(store: LocalStore, kind: str, local_id: Optional[str], label: str, required: bool = False) -> Optional[int]:
    target = store.get(kind, local_id) if local_id else None
    if target is None or target.remote_id is None:
        if required:
            state = "is not set" if target is None else "is not synced with the server"
            raise UnsyncedReferenceError(f"{label} {state}")
        return None
    return target.remote_id


def _tournament_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.TournamentRequest(
        name=record.name,
        location=record.location or None,
        start_date=format_api_date(record.start_date),
        end_date=format_api_date(record.end_date),
    )


def _club_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.ClubRequest(
        name=record.name,
        location=record.location or None,
        founded_date=format_api_date(record.founded_date),
    )


def _team_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.TeamRequest(name=record.name, coach=record.coach)


def _team_of(store: LocalStore, player: Any) -> Optional[str]:
    for team in store.all("team"):
        if player.local_id in team.player_ids and team.remote_id is not None:
            return team.local_id
    return None


def _player_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.PlayerRequest(
        first_name=record.first_name,
        surname=record.surname,
        state=record.state.value if record.state else None,
        handicap_jun_2025=record.handicap_jun_2025,
        womens_handicap_jun_2025=record.womens_handicap_jun_2025,
        handicap_dec_2026=record.handicap_dec_2026,
        womens_handicap_dec_2026=record.womens_handicap_dec_2026,
        position=record.position,
        team_id=_remote_id_of(store, "team", _team_of(store, record), "Team"),
    )


def _horse_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.HorseRequest(
        name=record.name,
        pedigree={"info": record.pedigree} if record.pedigree else None,
        breeder_id=_remote_id_of(store, "breeder", record.breeder_id, "Breeder"),
    )


def _breeder_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.BreederRequest(name=record.name, contact_info=record.location or None)


def _field_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.FieldRequest(name=record.name, location=record.location or None, grade=record.grade.value)


def _award_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.AwardRequest(
        title=record.title,
        description=record.description,
        entity_type=record.entity_type,
        entity_id=record.entity_remote_id,
    )


def _match_body(store: LocalStore, record: Any) -> BaseModel:
    return dto.MatchRequest(
        tournament_id=_remote_id_of(store, "tournament", record.tournament_id, "Tournament", required=True),
        team1_id=_remote_id_of(store, "team", record.home_team_id, "Home team", required=True),
        team2_id=_remote_id_of(store, "team", record.away_team_id, "Away team", required=True),
        scheduled_time=format_api_datetime(record.date),
        result=record.result.value,
        home_score=record.home_score,
        away_score=record.away_score,
        field_id=_remote_id_of(store, "field", record.field_id, "Field"),
    )


BODY_BUILDERS: Dict[str, Callable[[LocalStore, Any], BaseModel]] = {
    "tournament": _tournament_body,
    "club": _club_body,
    "team": _team_body,
    "player": _player_body,
    "horse": _horse_body,
    "breeder": _breeder_body,
    "field": _field_body,
    "award": _award_body,
    "match": _match_body,
}


def build_body(store: LocalStore, record: Any) -> BaseModel:
    try:
        builder = BODY_BUILDERS[record.kind]
    except KeyError as exc:
        raise ValueError(f"{record.kind} records cannot be pushed to the server") from exc
    return builder(store, record)


class PushSynchronizer:
    """Sends local record state upstream (create or update) and deletes remotely.

    No retries and no version check: the last write from this client wins.
    """

    def __init__(self, client: ApiClient, store: LocalStore) -> None:
        self.client = client
        self.store = store

    def push(self, record: Any) -> int:
        body = build_body(self.store, record)

        if record.remote_id is None:
            created = self.client.create_record(record.kind, body)
            self.store.assign_remote_id(record, created.id)
            logger.info("Created %s %s as remote %s", record.kind, record.local_id, created.id)
            return created.id

        self.client.update_record(record.kind, record.remote_id, body)
        logger.debug("Updated remote %s %s", record.kind, record.remote_id)
        return record.remote_id

    def delete(self, record: Any) -> List[Any]:
        """Delete remotely when the record has a real remote id, then locally.

        Records that were never created server-side only change locally.
        """
        if record.remote_id is not None:
            self.client.delete_record(record.kind, record.remote_id)
            logger.info("Deleted remote %s %s", record.kind, record.remote_id)
        return self.store.delete(record)
