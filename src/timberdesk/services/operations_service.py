from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from timberdesk.application.store import DomainStore
from timberdesk.domain.errors import ValidationError
from timberdesk.domain.models import User
from timberdesk.repositories.gateway import Outcome
from timberdesk.services.auth_service import AuthService

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncStatus:
    pending_writes: int
    sources: dict[str, str]
    db_integrity: str
    db_size_bytes: int
    generated_at: str


class OperationsService:
    def __init__(self, store: DomainStore, auth: AuthService):
        self.store = store
        self.auth = auth

    def sync_status(self) -> SyncStatus:
        gateway = self.store.gateway
        db_path = Path(gateway.remote.db_path)
        return SyncStatus(
            pending_writes=gateway.pending_writes(),
            sources={name: src.value for name, src in self.store.sources.items()},
            db_integrity=gateway.integrity(),
            db_size_bytes=db_path.stat().st_size if db_path.exists() else 0,
            generated_at=datetime.now().isoformat(timespec="seconds"),
        )

    def wipe_all_data(self, actor: User, confirmed: bool = False) -> Outcome[bool]:
        """Irreversibly empty every table and the local cache.

        Queued background writes are drained first so none of them lands after
        the wipe.
        """
        self.auth.require_action(actor, "wipe_data")
        if not confirmed:
            raise ValidationError("Wiping all data must be explicitly confirmed.")
        self.store.wait_for_sync()
        outcome = self.store.gateway.wipe_all_data()
        self.store.reset()
        log.warning("wipe_requested actor=%s remote_ok=%s", actor.name, outcome.data)
        return outcome
