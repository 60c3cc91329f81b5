from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from .client import ApiClient
from .errors import PoloClientError
from .push import BODY_BUILDERS, PushSynchronizer
from .reconcile import EntityReconciler, ReconcileResult, dependency_order
from .store import LocalStore

logger = logging.getLogger(__name__)

LIST_KINDS = ("club", "field", "breeder", "team", "player", "horse", "tournament", "award")
PUSH_KINDS = tuple(BODY_BUILDERS)


def _error_text(exc: Exception) -> str:
    if isinstance(exc, PoloClientError):
        return exc.user_message
    return str(exc)


class SyncService:
    """Manual pull/push actions over one store and one API client.

    Each action persists the store once it has applied its results. Failures
    of one item (one kind, one tournament, one record) are collected and do
    not stop its siblings.
    """

    def __init__(self, client: ApiClient, store: LocalStore, autosave: bool = True) -> None:
        self.client = client
        self.store = store
        self.autosave = autosave
        self.pusher = PushSynchronizer(client, store)

    # ------------------------------------------------------------------
    # Pull

    def refresh(self, kind: str) -> ReconcileResult:
        if kind == "match":
            return self.refresh_matches()
        remote = self.client.list_records(kind)
        result = EntityReconciler(self.store, kind).reconcile(remote)
        self._save()
        return result

    def refresh_matches(self) -> ReconcileResult:
        """Fetch matches tournament by tournament and reconcile them."""
        reconciler = EntityReconciler(self.store, "match")
        result = ReconcileResult(kind="match")

        for tournament in self.store.active("tournament"):
            if tournament.remote_id is None:
                continue
            try:
                remote = self.client.list_matches_for_tournament(tournament.remote_id)
            except PoloClientError as exc:
                logger.warning("Match refresh failed for tournament %s (%s)", tournament.remote_id, exc)
                result.errors.append(f"{tournament.name}: {exc.user_message}")
                continue

            partial = reconciler.reconcile(remote)
            result.inserted += partial.inserted
            result.updated += partial.updated
            result.deferred.extend(partial.deferred)

        self._save()
        return result

    def refresh_all(self) -> Dict[str, Dict[str, Any]]:
        summary: Dict[str, Dict[str, Any]] = {}
        for kind in [*dependency_order(LIST_KINDS), "match"]:
            try:
                if kind == "match":
                    result = self.refresh_matches()
                else:
                    remote = self.client.list_records(kind)
                    result = EntityReconciler(self.store, kind).reconcile(remote)
            except PoloClientError as exc:
                logger.warning("Refresh of %s failed (%s)", kind, exc)
                result = ReconcileResult(kind=kind, errors=[_error_text(exc)])
            summary[kind] = result.as_dict()

        self._save()
        return summary

    # ------------------------------------------------------------------
    # Push

    def push(self, record: Any) -> int:
        remote_id = self.pusher.push(record)
        self._save()
        return remote_id

    def push_backlog(self, kinds: Iterable[str] | None = None) -> Dict[str, Dict[str, Any]]:
        """Create every active local-only record server-side."""
        summary: Dict[str, Dict[str, Any]] = {}
        for kind in dependency_order(kinds or PUSH_KINDS):
            stats: Dict[str, Any] = {"synced": 0, "remaining": 0, "errors": []}
            for record in self.store.local_only(kind):
                try:
                    self.pusher.push(record)
                except (PoloClientError, ValueError) as exc:
                    stats["remaining"] += 1
                    stats["errors"].append(f"{kind} {record.local_id}: {_error_text(exc)}")
                    logger.warning("Push of %s %s failed (%s)", kind, record.local_id, exc)
                else:
                    stats["synced"] += 1
            summary[kind] = stats

        self._save()
        return summary

    def delete(self, record: Any) -> List[Any]:
        removed = self.pusher.delete(record)
        self._save()
        return removed

    def _save(self) -> None:
        if self.autosave:
            self.store.save()
