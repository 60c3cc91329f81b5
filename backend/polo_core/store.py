from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from .models import RECORD_TYPES, DeletionPolicy, OnDelete, Reference, record_type

logger = logging.getLogger(__name__)

STORE_FILENAME = "polo_store.json"
STORE_VERSION = 1


class RecordNotFound(LookupError):
    pass


class LocalStore:
    """Durable collection of local records, persisted as one JSON document.

    Single-writer: every mutation is expected to happen on the caller's own
    thread of control. Nothing is written to disk until :meth:`save`.
    """

    def __init__(self, data_dir: Path | None = None, filename: str = STORE_FILENAME) -> None:
        if data_dir is None:
            from .config import get_settings

            data_dir = get_settings().data_dir
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / filename
        self._adapters = {kind: TypeAdapter(cls) for kind, cls in RECORD_TYPES.items()}
        self._records: Dict[str, Dict[str, Any]] = {kind: {} for kind in RECORD_TYPES}
        self._inbound = self._build_inbound_index()
        self._load()

    # ------------------------------------------------------------------
    # Queries

    def get(self, kind: str, local_id: str) -> Any | None:
        return self._bucket(kind).get(local_id)

    def require(self, kind: str, local_id: str) -> Any:
        record = self.get(kind, local_id)
        if record is None:
            raise RecordNotFound(f"{kind} {local_id} not found")
        return record

    def find_by_remote_id(self, kind: str, remote_id: int | None) -> Any | None:
        if remote_id is None:
            return None
        for record in self._bucket(kind).values():
            if record.remote_id == remote_id:
                return record
        return None

    def all(self, kind: str) -> List[Any]:
        return list(self._bucket(kind).values())

    def active(self, kind: str) -> List[Any]:
        return [record for record in self._bucket(kind).values() if getattr(record, "is_active", True)]

    def local_only(self, kind: str) -> List[Any]:
        """Active records that have never been created server-side."""
        return [record for record in self.active(kind) if record.remote_id is None]

    def __iter__(self) -> Iterator[Any]:
        for bucket in self._records.values():
            yield from bucket.values()

    def count(self, kind: str) -> int:
        return len(self._bucket(kind))

    # ------------------------------------------------------------------
    # Mutations

    def insert(self, record: Any) -> Any:
        bucket = self._bucket(record.kind)
        if record.local_id in bucket:
            raise ValueError(f"{record.kind} {record.local_id} already exists")
        if record.remote_id is not None:
            self._check_remote_id_free(record.kind, record.remote_id, record.local_id)
        bucket[record.local_id] = record
        return record

    def assign_remote_id(self, record: Any, remote_id: int) -> None:
        """Attach the server-issued id. Once set it never changes."""
        if record.remote_id is not None:
            if record.remote_id == remote_id:
                return
            raise ValueError(
                f"{record.kind} {record.local_id} already has remote id {record.remote_id}; refusing {remote_id}"
            )
        self._check_remote_id_free(record.kind, remote_id, record.local_id)
        record.remote_id = remote_id

    def delete(self, record: Any) -> List[Any]:
        """Apply the kind's deletion policy and return the records removed."""
        if record.deletion is DeletionPolicy.SOFT:
            record.is_active = False
            return []
        return self.purge(record)

    def purge(self, record: Any) -> List[Any]:
        """Physically remove ``record``, cascading or nullifying dependants."""
        removed: List[Any] = []
        self._hard_delete(record, removed)
        return removed

    def retire_stale(self, kind: str, seen_before: dt.datetime) -> int:
        """Mark synced records not seen by a reconciliation since ``seen_before`` inactive.

        Only soft-deletable kinds are retired; the reconciler never calls this.
        """
        cls = record_type(kind)
        if cls.deletion is not DeletionPolicy.SOFT:
            raise ValueError(f"{kind} records are not soft-deletable")
        retired = 0
        for record in self.active(kind):
            if record.remote_id is None:
                continue
            if record.last_synced_at is None or record.last_synced_at < seen_before:
                record.is_active = False
                retired += 1
        if retired:
            logger.info("Retired %s stale %s record(s)", retired, kind)
        return retired

    # ------------------------------------------------------------------
    # Persistence

    def save(self) -> None:
        payload = {
            "version": STORE_VERSION,
            "records": {
                kind: [self._adapters[kind].dump_python(record, mode="json") for record in bucket.values()]
                for kind, bucket in self._records.items()
            },
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to write local data store {self.path}") from exc

    def _load(self) -> None:
        data = self._read_json_file(self.path, {})
        records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(records, dict):
            return

        for kind, rows in records.items():
            if kind not in self._records:
                logger.warning("Ignoring unknown record kind '%s' in %s", kind, self.path)
                continue
            if not isinstance(rows, list):
                continue
            for row in rows:
                try:
                    record = self._adapters[kind].validate_python(row)
                except ValidationError as exc:
                    logger.warning("Skipping unreadable %s row in %s: %s", kind, self.path, exc)
                    continue
                self._records[kind][record.local_id] = record

    def _read_json_file(self, path: Path, default: Any) -> Any:
        try:
            if not path.exists():
                return default
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Falling back to default for %s due to read error: %s", path, exc)
            return default

    # ------------------------------------------------------------------
    # Internals

    def _bucket(self, kind: str) -> Dict[str, Any]:
        try:
            return self._records[kind]
        except KeyError as exc:
            raise ValueError(f"Unknown record kind '{kind}'") from exc

    def _check_remote_id_free(self, kind: str, remote_id: int, local_id: str) -> None:
        existing = self.find_by_remote_id(kind, remote_id)
        if existing is not None and existing.local_id != local_id:
            raise ValueError(f"{kind} remote id {remote_id} is already bound to {existing.local_id}")

    @staticmethod
    def _build_inbound_index() -> Dict[str, List[Tuple[str, Reference]]]:
        inbound: Dict[str, List[Tuple[str, Reference]]] = {kind: [] for kind in RECORD_TYPES}
        for owner_kind, cls in RECORD_TYPES.items():
            for reference in cls.references:
                inbound[reference.target].append((owner_kind, reference))
        return inbound

    def _hard_delete(self, record: Any, removed: List[Any]) -> None:
        bucket = self._bucket(record.kind)
        if bucket.pop(record.local_id, None) is None:
            return
        removed.append(record)

        for owner_kind, reference in self._inbound[record.kind]:
            for owner in list(self._records[owner_kind].values()):
                value = getattr(owner, reference.field)
                if reference.many:
                    if record.local_id in value:
                        value.remove(record.local_id)
                elif value == record.local_id:
                    if reference.on_delete is OnDelete.CASCADE:
                        self._hard_delete(owner, removed)
                    else:
                        setattr(owner, reference.field, None)
