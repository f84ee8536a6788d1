from __future__ import annotations

import logging
from typing import Any, Callable

from timberdesk.application.sync import SyncWorker
from timberdesk.domain.state import StoreState
from timberdesk.repositories.gateway import Outcome, PersistenceGateway, Source

log = logging.getLogger(__name__)


class DomainStore:
    """Owns the current in-memory snapshot.

    The snapshot is what callers render from; gateway writes are scheduled on
    the sync worker afterwards and may lag behind it.
    """

    def __init__(self, gateway: PersistenceGateway, worker: SyncWorker | None = None):
        self.gateway = gateway
        self.worker = worker or SyncWorker()
        self.state = StoreState()
        self.sources: dict[str, Source] = {}

    def load(self) -> dict[str, Source]:
        outcomes: dict[str, Outcome] = {name: g.get_all() for name, g in self.gateway.entities.items()}
        self.state = StoreState(
            inventory=tuple(outcomes["inventory"].data),
            sales=tuple(outcomes["sales"].data),
            purchases=tuple(outcomes["purchases"].data),
            clients=tuple(outcomes["clients"].data),
            employees=tuple(outcomes["employees"].data),
        )
        self.sources = {name: o.source for name, o in outcomes.items()}
        degraded = {name: src.value for name, src in self.sources.items() if src is not Source.REMOTE}
        if degraded:
            log.warning("store_loaded_degraded sources=%s", degraded)
        else:
            log.info("store_loaded items=%s sales=%s", len(self.state.inventory), len(self.state.sales))
        return dict(self.sources)

    def apply(self, transition: Callable[..., StoreState], *args: Any) -> StoreState:
        self.state = transition(self.state, *args)
        return self.state

    def reset(self) -> None:
        self.state = StoreState()

    def sync(self, fn: Callable[..., Any], *args: Any) -> None:
        self.worker.submit(fn, *args)

    def wait_for_sync(self, timeout: float | None = None) -> bool:
        return self.worker.drain(timeout)

    def close(self) -> None:
        self.worker.close()
