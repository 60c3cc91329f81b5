"""Merge remote list payloads into the local store, keyed by remote id.

For each DTO the reconciler either updates the local record already bound to
``dto.id`` or inserts a new one. Only fields actually carried by the DTO are
written (absent or null values leave the local value alone), and local records
missing from the payload are never removed. Records whose required relations
cannot be resolved to local records yet are deferred, not inserted.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from .dates import parse_api_date, utc_now
from .models import AustralianState, MatchResult, TournamentGrade, record_type
from .store import LocalStore

logger = logging.getLogger(__name__)


def _identity(value: Any) -> Any:
    return value


def _enum(enum_cls: type) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        try:
            return enum_cls(value)
        except ValueError:
            logger.debug("Ignoring unknown %s value %r", enum_cls.__name__, value)
            return None

    return convert


def _pedigree_info(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        info = value.get("info")
        return info if isinstance(info, str) else None
    return None


@dataclass(frozen=True)
class FieldMap:
    local: str
    wire: str
    convert: Callable[[Any], Any] = _identity


@dataclass(frozen=True)
class RefMap:
    """A wire foreign key resolved through the target kind's remote ids."""

    local: str
    wire: str
    target: str
    required: bool = False


@dataclass(frozen=True)
class InverseLink:
    """A wire foreign key stored on the target's list field instead of on the record."""

    wire: str
    target: str
    target_field: str


@dataclass(frozen=True)
class KindMapping:
    kind: str
    fields: Tuple[FieldMap, ...]
    refs: Tuple[RefMap, ...] = ()
    links: Tuple[InverseLink, ...] = ()

    @property
    def depends_on(self) -> Tuple[str, ...]:
        targets = [ref.target for ref in self.refs] + [link.target for link in self.links]
        return tuple(dict.fromkeys(targets))


MAPPINGS: Dict[str, KindMapping] = {
    "tournament": KindMapping(
        "tournament",
        (
            FieldMap("name", "name"),
            FieldMap("location", "location"),
            FieldMap("start_date", "start_date", parse_api_date),
            FieldMap("end_date", "end_date", parse_api_date),
        ),
    ),
    "club": KindMapping(
        "club",
        (
            FieldMap("name", "name"),
            FieldMap("location", "location"),
            FieldMap("founded_date", "founded_date", parse_api_date),
        ),
    ),
    "team": KindMapping(
        "team",
        (
            FieldMap("name", "name"),
            FieldMap("coach", "coach"),
        ),
    ),
    "player": KindMapping(
        "player",
        (
            FieldMap("first_name", "first_name"),
            FieldMap("surname", "surname"),
            FieldMap("state", "state", _enum(AustralianState)),
            FieldMap("handicap_jun_2025", "handicap_jun_2025"),
            FieldMap("womens_handicap_jun_2025", "womens_handicap_jun_2025"),
            FieldMap("handicap_dec_2026", "handicap_dec_2026"),
            FieldMap("womens_handicap_dec_2026", "womens_handicap_dec_2026"),
            FieldMap("position", "position"),
        ),
        links=(InverseLink("team_id", "team", "player_ids"),),
    ),
    "horse": KindMapping(
        "horse",
        (
            FieldMap("name", "name"),
            FieldMap("pedigree", "pedigree", _pedigree_info),
        ),
        refs=(RefMap("breeder_id", "breeder_id", "breeder"),),
    ),
    "breeder": KindMapping(
        "breeder",
        (
            FieldMap("name", "name"),
            FieldMap("location", "contact_info"),
        ),
    ),
    "field": KindMapping(
        "field",
        (
            FieldMap("name", "name"),
            FieldMap("location", "location"),
            FieldMap("grade", "grade", _enum(TournamentGrade)),
        ),
    ),
    "award": KindMapping(
        "award",
        (
            FieldMap("title", "title"),
            FieldMap("description", "description"),
            FieldMap("entity_type", "entity_type"),
            FieldMap("entity_remote_id", "entity_id"),
        ),
    ),
    "match": KindMapping(
        "match",
        (
            FieldMap("date", "scheduled_time", parse_api_date),
            FieldMap("result", "result", _enum(MatchResult)),
            FieldMap("home_score", "home_score"),
            FieldMap("away_score", "away_score"),
            FieldMap("notes", "notes"),
        ),
        refs=(
            RefMap("tournament_id", "tournament_id", "tournament", required=True),
            RefMap("home_team_id", "team1_id", "team", required=True),
            RefMap("away_team_id", "team2_id", "team", required=True),
            RefMap("field_id", "field_id", "field"),
        ),
    ),
}


def mapping_for(kind: str) -> KindMapping:
    try:
        return MAPPINGS[kind]
    except KeyError as exc:
        raise ValueError(f"No reconciliation mapping for '{kind}' records") from exc


@dataclass
class ReconcileResult:
    kind: str
    inserted: int = 0
    updated: int = 0
    deferred: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "deferred": list(self.deferred),
            "errors": list(self.errors),
        }


def _carried(dto: BaseModel, name: str) -> bool:
    return name in dto.model_fields_set and getattr(dto, name, None) is not None


class EntityReconciler:
    """Reconciles one entity kind against the local store."""

    def __init__(self, store: LocalStore, kind: str) -> None:
        self.store = store
        self.kind = kind
        self.mapping = mapping_for(kind)
        self.record_cls = record_type(kind)

    def reconcile(self, remote_list: Iterable[BaseModel], seen_at: dt.datetime | None = None) -> ReconcileResult:
        seen_at = seen_at or utc_now()
        result = ReconcileResult(kind=self.kind)

        for dto in remote_list:
            values = self._field_values(dto)
            refs, missing = self._resolve_refs(dto)
            existing = self.store.find_by_remote_id(self.kind, dto.id)

            if existing is not None:
                for name, value in {**values, **refs}.items():
                    setattr(existing, name, value)
                existing.last_synced_at = seen_at
                self._apply_links(existing, dto)
                result.updated += 1
                continue

            if missing:
                logger.info(
                    "Deferring %s %s: unresolved %s",
                    self.kind,
                    dto.id,
                    ", ".join(missing),
                )
                result.deferred.append(dto.id)
                continue

            record = self.record_cls(**values, **refs, remote_id=dto.id, last_synced_at=seen_at)
            self.store.insert(record)
            self._apply_links(record, dto)
            result.inserted += 1

        logger.debug(
            "Reconciled %s: %s inserted, %s updated, %s deferred",
            self.kind,
            result.inserted,
            result.updated,
            len(result.deferred),
        )
        return result

    def _field_values(self, dto: BaseModel) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for mapping in self.mapping.fields:
            if not _carried(dto, mapping.wire):
                continue
            value = mapping.convert(getattr(dto, mapping.wire))
            if value is not None:
                values[mapping.local] = value
        return values

    def _resolve_refs(self, dto: BaseModel) -> Tuple[Dict[str, str], List[str]]:
        resolved: Dict[str, str] = {}
        missing: List[str] = []
        for ref in self.mapping.refs:
            if not _carried(dto, ref.wire):
                if ref.required:
                    missing.append(ref.wire)
                continue
            target = self.store.find_by_remote_id(ref.target, getattr(dto, ref.wire))
            if target is None:
                if ref.required:
                    missing.append(f"{ref.wire}={getattr(dto, ref.wire)}")
                continue
            resolved[ref.local] = target.local_id
        return resolved, missing

    def _apply_links(self, record: Any, dto: BaseModel) -> None:
        for link in self.mapping.links:
            if not _carried(dto, link.wire):
                continue
            target = self.store.find_by_remote_id(link.target, getattr(dto, link.wire))
            if target is None:
                continue
            # the wire key is single-valued: the record belongs to one target at a time
            for other in self.store.all(link.target):
                if other is not target and record.local_id in getattr(other, link.target_field):
                    getattr(other, link.target_field).remove(record.local_id)
            members = getattr(target, link.target_field)
            if record.local_id not in members:
                members.append(record.local_id)


def reconcile(store: LocalStore, kind: str, remote_list: Iterable[BaseModel], seen_at: dt.datetime | None = None) -> ReconcileResult:
    return EntityReconciler(store, kind).reconcile(remote_list, seen_at=seen_at)


def dependency_order(kinds: Iterable[str]) -> List[str]:
    """Order ``kinds`` so every kind comes after the kinds its relations point at."""
    pending = list(dict.fromkeys(kinds))
    ordered: List[str] = []
    while pending:
        progressed = False
        for kind in list(pending):
            deps = [dep for dep in mapping_for(kind).depends_on if dep in pending and dep != kind]
            if not deps:
                ordered.append(kind)
                pending.remove(kind)
                progressed = True
        if not progressed:
            raise ValueError(f"Cyclic reconciliation dependencies among {pending}")
    return ordered
