from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from timberdesk.domain.models import Client, Employee, ProductItem, Purchase, Sale
from timberdesk.domain.state import remove, upsert
from timberdesk.repositories.local_cache import LocalCache
from timberdesk.repositories.sqlite_repo import SqliteRepository

log = logging.getLogger("timberdesk.sync")

T = TypeVar("T")
E = TypeVar("E")

OUTBOX_KEY = "_outbox"


class Source(str, Enum):
    REMOTE = "remote"
    CACHED = "cached"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Where a gateway call was served from. Callers pick the display/retry policy."""

    source: Source
    data: T
    error: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return self.source is Source.REMOTE

    @property
    def is_available(self) -> bool:
        return self.source is not Source.UNAVAILABLE


class EntityGateway(Generic[E]):
    def __init__(
        self,
        owner: "PersistenceGateway",
        name: str,
        model: type,
        key: Callable[[E], object],
        fetch: Callable[[], list[E]],
        upsert_remote: Callable[[E], None],
        delete_remote: Callable[[str], bool],
    ):
        self.owner = owner
        self.name = name
        self.model = model
        self.key = key
        self._fetch = fetch
        self._upsert_remote = upsert_remote
        self._delete_remote = delete_remote

    # ---------- cache side ----------
    def _read_cache(self) -> Optional[list[E]]:
        try:
            raw = self.owner.cache.get(self.name)
        except (OSError, ValueError) as e:
            log.error("cache_read_failed entity=%s error=%s", self.name, e)
            return None
        if raw is None:
            return None
        return [self.model.from_dict(r) for r in raw]

    def _write_cache(self, records: Iterable[E]) -> bool:
        try:
            self.owner.cache.set(self.name, [r.to_dict() for r in records])
            return True
        except OSError as e:
            log.error("cache_write_failed entity=%s error=%s", self.name, e)
            return False

    def _cached_for_write(self) -> Optional[list[E]]:
        """The cached collection to patch; None when the file exists but cannot be read."""
        try:
            raw = self.owner.cache.get(self.name)
            return [self.model.from_dict(r) for r in raw or []]
        except (OSError, ValueError, TypeError) as e:
            log.error("cache_write_skipped entity=%s error=%s", self.name, e)
            return None

    def _cache_upsert(self, record: E) -> bool:
        with self.owner.cache.lock:
            current = self._cached_for_write()
            if current is None:
                return False
            return self._write_cache(upsert(current, record, key=self.key))

    def _cache_remove(self, record_id: str) -> bool:
        with self.owner.cache.lock:
            current = self._cached_for_write()
            if current is None:
                return False
            return self._write_cache(remove(current, record_id))

    # ---------- remote side ----------
    def apply_remote(self, op: str, payload: Any) -> None:
        if op == "save":
            self._upsert_remote(self.model.from_dict(payload))
        elif op == "delete":
            self._delete_remote(str(payload))
        else:
            raise ValueError(f"Unknown outbox operation: {op}")

    # ---------- contract ----------
    def get_all(self) -> Outcome[list[E]]:
        if self.owner.remote_ready():
            try:
                rows = self._fetch()
            except sqlite3.Error as e:
                log.warning("remote_read_failed entity=%s error=%s", self.name, e)
            else:
                self._write_cache(rows)
                return Outcome(Source.REMOTE, rows)

        cached = self._read_cache()
        if cached is None:
            return Outcome(Source.UNAVAILABLE, [], error=f"No remote store and no cached {self.name}.")
        return Outcome(Source.CACHED, cached)

    def save(self, record: E) -> Outcome[E]:
        cached = self._cache_upsert(record)
        return self.owner.remote_write(self.name, "save", record.to_dict(), lambda: self._upsert_remote(record), record, cached)

    def save_all(self, records: Iterable[E]) -> Outcome[list[E]]:
        records = list(records)
        outcomes = [self.save(r) for r in records]
        if any(o.source is Source.UNAVAILABLE for o in outcomes):
            source = Source.UNAVAILABLE
        elif all(o.is_remote for o in outcomes):
            source = Source.REMOTE
        else:
            source = Source.CACHED
        errors = [o.error for o in outcomes if o.error]
        return Outcome(source, records, error=errors[0] if errors else None)

    def delete(self, record_id: str) -> Outcome[str]:
        cached = self._cache_remove(record_id)
        return self.owner.remote_write(self.name, "delete", record_id, lambda: self._delete_remote(record_id), record_id, cached)


class PersistenceGateway:
    """Relational store with a local cache fallback and a replayed outbox.

    Reads prefer the remote store and refresh the cache; when the store cannot
    be reached they serve the cache. Writes always land in the cache and are
    queued in the outbox while the store is down; the queue is replayed, in
    order, before the next remote call.
    """

    def __init__(self, remote: SqliteRepository, cache: LocalCache):
        self.remote = remote
        self.cache = cache
        self._schema_ready = False

        self.inventory: EntityGateway[ProductItem] = EntityGateway(
            self, "inventory", ProductItem, lambda i: i.code,
            remote.list_items, remote.upsert_item, remote.delete_item,
        )
        self.sales: EntityGateway[Sale] = EntityGateway(
            self, "sales", Sale, lambda s: s.id,
            remote.list_sales, remote.upsert_sale, remote.delete_sale,
        )
        self.purchases: EntityGateway[Purchase] = EntityGateway(
            self, "purchases", Purchase, lambda p: p.id,
            remote.list_purchases, remote.upsert_purchase, remote.delete_purchase,
        )
        self.clients: EntityGateway[Client] = EntityGateway(
            self, "clients", Client, lambda c: c.name,
            remote.list_clients, remote.upsert_client, remote.delete_client,
        )
        self.employees: EntityGateway[Employee] = EntityGateway(
            self, "employees", Employee, lambda e: e.name,
            remote.list_employees, remote.upsert_employee, remote.delete_employee,
        )
        self.entities: dict[str, EntityGateway] = {
            g.name: g for g in (self.inventory, self.sales, self.purchases, self.clients, self.employees)
        }

    # ---------- connection ----------
    def _connect(self) -> bool:
        if self._schema_ready:
            return True
        try:
            self.remote.init_db()
        except sqlite3.Error as e:
            log.warning("remote_unavailable db=%s error=%s", self.remote.db_path, e)
            return False
        self._schema_ready = True
        log.info("remote_connected db=%s", self.remote.db_path)
        return True

    def remote_ready(self) -> bool:
        """True when the store is reachable and nothing is left in the outbox."""
        return self._connect() and self.flush_outbox()

    # ---------- outbox ----------
    def _read_outbox(self) -> list[dict]:
        try:
            return list(self.cache.get(OUTBOX_KEY) or [])
        except (OSError, ValueError) as e:
            log.error("outbox_read_failed error=%s", e)
            return []

    def _write_outbox(self, entries: list[dict]) -> None:
        try:
            self.cache.set(OUTBOX_KEY, entries)
        except OSError as e:
            log.error("outbox_write_failed pending=%s error=%s", len(entries), e)

    def _enqueue(self, entity: str, op: str, payload: Any) -> None:
        with self.cache.lock:
            entries = self._read_outbox()
            entries.append({"entity": entity, "op": op, "payload": payload})
            self._write_outbox(entries)

    def pending_writes(self) -> int:
        with self.cache.lock:
            return len(self._read_outbox())

    def flush_outbox(self) -> bool:
        with self.cache.lock:
            pending = self._read_outbox()
            if not pending:
                return True
            replayed = 0
            try:
                while pending:
                    entry = pending[0]
                    try:
                        self.entities[entry["entity"]].apply_remote(entry["op"], entry["payload"])
                    except sqlite3.OperationalError:
                        raise
                    except (sqlite3.DatabaseError, KeyError, ValueError, TypeError) as e:
                        # A rejected row will be rejected again; keep the queue moving.
                        log.error("outbox_entry_dropped entity=%s op=%s error=%s", entry.get("entity"), entry.get("op"), e)
                    pending.pop(0)
                    replayed += 1
            except sqlite3.OperationalError as e:
                log.warning("outbox_replay_stalled replayed=%s pending=%s error=%s", replayed, len(pending), e)
                self._write_outbox(pending)
                return False
            self._write_outbox([])
            log.info("outbox_replayed count=%s", replayed)
            return True

    # ---------- writes ----------
    def remote_write(self, entity: str, op: str, payload: Any, call: Callable[[], Any], data: T, cached: bool) -> Outcome[T]:
        if self.remote_ready():
            try:
                call()
                return Outcome(Source.REMOTE, data)
            except sqlite3.OperationalError as e:
                log.warning("remote_write_failed entity=%s op=%s error=%s", entity, op, e)
                error = str(e)
            except sqlite3.DatabaseError as e:
                log.error("remote_write_rejected entity=%s op=%s error=%s", entity, op, e)
                source = Source.CACHED if cached else Source.UNAVAILABLE
                return Outcome(source, data, error=str(e))
        else:
            error = "remote store unreachable"

        self._enqueue(entity, op, payload)
        if not cached:
            return Outcome(Source.UNAVAILABLE, data, error=error)
        return Outcome(Source.CACHED, data, error=error)

    def integrity(self) -> str:
        """SQLite's own integrity verdict, or "unreachable"."""
        if not self._connect():
            return "unreachable"
        try:
            return self.remote.integrity_check()
        except sqlite3.Error as e:
            log.warning("integrity_check_failed db=%s error=%s", self.remote.db_path, e)
            return "unreachable"

    # ---------- admin ----------
    def wipe_all_data(self) -> Outcome[bool]:
        """Clear every table, the cache and the outbox. Irreversible."""
        remote_error = None
        if self._connect():
            try:
                self.remote.wipe_all()
            except sqlite3.Error as e:
                remote_error = str(e)
        else:
            remote_error = "remote store unreachable"

        try:
            self.cache.clear()
        except OSError as e:
            log.error("cache_clear_failed error=%s", e)
            return Outcome(Source.UNAVAILABLE, False, error=str(e))

        if remote_error:
            log.error("wipe_remote_failed error=%s", remote_error)
            return Outcome(Source.CACHED, False, error=remote_error)
        log.warning("all_data_wiped db=%s", self.remote.db_path)
        return Outcome(Source.REMOTE, True)
