"""CLI helper for pushing locally created records to the polo API."""

from __future__ import annotations

import logging
import sys
from typing import Dict, List

from polo_core import ApiClient, FileSecretStore, LocalStore, Session, SyncService
from polo_core.config import get_settings


def _format_section(name: str, stats: Dict[str, object]) -> str:
    synced = stats.get("synced", 0)
    remaining = stats.get("remaining", 0)
    errors = stats.get("errors", [])
    lines = [f"{name}: {synced} synced, {remaining} remaining"]
    if isinstance(errors, list):
        for item in errors:
            lines.append(f"  - {item}")
    return "\n".join(lines)


def main() -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    session = Session(FileSecretStore(settings.data_dir / "secrets.json", settings.secret_service))
    if not session.hydrate():
        print("WARNING: no stored session; pushing without authorization", file=sys.stderr)

    service = SyncService(ApiClient(settings.api_base_url, session=session), LocalStore(settings.data_dir))
    try:
        summary = service.push_backlog()
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    sections = [_format_section(kind.capitalize(), stats) for kind, stats in summary.items()]
    print("\n\n".join(sections))

    errors: List[str] = []
    for stats in summary.values():
        for item in stats.get("errors", []) or []:
            errors.append(str(item))

    return 1 if errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
