import sqlite3

import pytest

from conftest import ADMIN, SELLER, add_item, make_container
from timberdesk.domain.errors import AuthorizationError, ValidationError
from timberdesk.domain.models import Client, ProductItem, Sale
from timberdesk.domain.state import upsert
from timberdesk.repositories.gateway import PersistenceGateway, Source
from timberdesk.repositories.local_cache import LocalCache
from timberdesk.repositories.sqlite_repo import SqliteRepository


class FlakyRepo(SqliteRepository):
    down = False

    def _conn(self):
        if self.down:
            raise sqlite3.OperationalError("disk I/O error")
        return super()._conn()


def _item(item_id="i1", code="P1", bundles=3.0):
    return ProductItem(id=item_id, name=f"Pine {code}", code=code, bundles=bundles, boards_per_bundle=10)


def _gateway(tmp_path, repo_cls=SqliteRepository, db_path=None):
    repo = repo_cls(db_path or tmp_path / "timber.db")
    return PersistenceGateway(repo, LocalCache(tmp_path / "cache")), repo


def test_unreachable_store_with_no_cache_is_unavailable(tmp_path):
    gw, _repo = _gateway(tmp_path, db_path=tmp_path / "share" / "timber.db")
    outcome = gw.inventory.get_all()
    assert outcome.source is Source.UNAVAILABLE
    assert outcome.data == []
    assert not outcome.is_available


def test_writes_queue_while_unreachable_and_replay_on_reconnect(tmp_path):
    gw, repo = _gateway(tmp_path, db_path=tmp_path / "share" / "timber.db")
    item = _item()

    saved = gw.inventory.save(item)
    assert saved.source is Source.CACHED
    assert gw.pending_writes() == 1

    cached = gw.inventory.get_all()
    assert cached.source is Source.CACHED
    assert cached.data == [item]

    (tmp_path / "share").mkdir()
    fresh = gw.inventory.get_all()
    assert fresh.is_remote
    assert [i.id for i in fresh.data] == ["i1"]
    assert gw.pending_writes() == 0
    assert repo.list_items()[0].bundles == 3.0


def test_outbox_replays_in_order_after_a_dropout(tmp_path):
    gw, repo = _gateway(tmp_path, repo_cls=FlakyRepo)
    assert gw.inventory.get_all().is_remote

    repo.down = True
    assert gw.inventory.save(_item("i1", "P1")).source is Source.CACHED
    assert gw.inventory.save(_item("i2", "P2")).source is Source.CACHED
    assert gw.inventory.delete("i1").source is Source.CACHED
    assert gw.pending_writes() == 3
    assert [i.id for i in gw.inventory.get_all().data] == ["i2"]

    repo.down = False
    outcome = gw.inventory.get_all()
    assert outcome.is_remote
    assert [i.id for i in outcome.data] == ["i2"]
    assert gw.pending_writes() == 0


def test_rejected_rows_are_not_queued(tmp_path):
    gw, _repo = _gateway(tmp_path)
    bad = Sale(
        id="s1", invoice_id="INV-1", item_id="", item_name="Pine", quantity=1, unit_type="crate",
        unit_price=1, total_price=1, date="2024-05-01T10:00:00", client_name="Ali",
    )
    outcome = gw.sales.save(bad)
    assert outcome.source is Source.CACHED
    assert outcome.error
    assert gw.pending_writes() == 0


def test_corrupt_cache_file_counts_as_missing(tmp_path):
    gw, _repo = _gateway(tmp_path, db_path=tmp_path / "share" / "timber.db")
    (tmp_path / "cache").mkdir()
    (tmp_path / "cache" / "timberdesk_clients.json").write_text("{not json", encoding="utf-8")
    assert gw.clients.get_all().source is Source.UNAVAILABLE


def test_same_code_replaces_instead_of_duplicating(tmp_path):
    repo = SqliteRepository(tmp_path / "timber.db")
    repo.init_db()
    repo.upsert_item(_item("old", "P1", bundles=1))
    repo.upsert_sale(Sale(
        id="s1", invoice_id="INV-1", item_id="old", item_name="Pine P1", quantity=1, unit_type="bundle",
        unit_price=5, total_price=5, date="2024-05-01T10:00:00", client_name="Ali",
    ))

    repo.upsert_item(_item("new", "P1", bundles=9))

    items = repo.list_items()
    assert [(i.id, i.bundles) for i in items] == [("new", 9.0)]
    assert repo.list_sales()[0].item_id == "new"


def test_code_edit_keeps_one_row(tmp_path):
    repo = SqliteRepository(tmp_path / "timber.db")
    repo.init_db()
    repo.upsert_item(_item("i1", "P1"))
    repo.upsert_item(_item("i1", "P1-B"))
    assert [(i.id, i.code) for i in repo.list_items()] == [("i1", "P1-B")]


def test_clients_are_unique_by_name(tmp_path):
    repo = SqliteRepository(tmp_path / "timber.db")
    repo.init_db()
    repo.upsert_client(Client(id="c1", name="Ali", phone="1"))
    repo.upsert_client(Client(id="c2", name="Ali", phone="2"))
    assert [(c.id, c.phone) for c in repo.list_clients()] == [("c2", "2")]


def test_cache_upsert_uses_the_same_key_rules():
    records = (_item("a", "P1"), _item("b", "P2"))
    assert [i.id for i in upsert(records, _item("c", "P1"), key=lambda i: i.code)] == ["c", "b"]
    assert [i.code for i in upsert(records, _item("b", "P3"), key=lambda i: i.code)] == ["P1", "P3"]
    assert [i.id for i in upsert(records, _item("b", "P1"), key=lambda i: i.code)] == ["b"]
    assert len(upsert(records, _item("d", "P4"), key=lambda i: i.code)) == 3


def test_migrations_are_idempotent(tmp_path):
    repo = SqliteRepository(tmp_path / "timber.db")
    repo.init_db()
    repo.init_db()
    conn = sqlite3.connect(repo.db_path)
    try:
        versions = [r[0] for r in conn.execute("SELECT version FROM schema_migrations")]
    finally:
        conn.close()
    assert versions == [1]
    assert repo.integrity_check() == "ok"


def test_container_loads_degraded_sources(tmp_path):
    c = make_container(tmp_path, db_name="share/timber.db")
    status = c.operations.sync_status()
    assert set(status.sources.values()) == {"unavailable"}
    assert status.pending_writes == 0
    assert status.db_integrity == "unreachable"
    assert status.db_size_bytes == 0

    add_item(c)
    assert c.store.wait_for_sync(timeout=10)
    assert c.operations.sync_status().pending_writes == 1
    c.store.close()


def test_wipe_clears_store_cache_and_database(tmp_path):
    c = make_container(tmp_path)
    item = add_item(c)
    c.sales.submit_invoice(SELLER, "Ali", [c.sales.build_line(item.id, 1)])

    with pytest.raises(ValidationError):
        c.operations.wipe_all_data(ADMIN)
    with pytest.raises(AuthorizationError):
        c.operations.wipe_all_data(SELLER, confirmed=True)

    outcome = c.operations.wipe_all_data(ADMIN, confirmed=True)

    assert outcome.is_remote and outcome.data is True
    assert c.store.state.inventory == () and c.store.state.sales == ()
    repo = SqliteRepository(tmp_path / "timber.db")
    assert repo.list_items() == [] and repo.list_sales() == [] and repo.list_clients() == []
    assert c.gateway.cache.get("inventory") is None
    c.store.close()


def test_wipe_reports_remote_failure(tmp_path):
    gw, repo = _gateway(tmp_path, repo_cls=FlakyRepo)
    gw.inventory.save(_item())
    repo.down = True

    outcome = gw.wipe_all_data()

    assert outcome.source is Source.CACHED
    assert outcome.data is False
    assert gw.cache.get("inventory") is None
    repo.down = False
    assert len(repo.list_items()) == 1


def test_sync_status_reports_database_health(tmp_path):
    c = make_container(tmp_path)
    add_item(c)
    assert c.store.wait_for_sync(timeout=10)

    status = c.operations.sync_status()

    assert status.db_integrity == "ok"
    assert status.db_size_bytes > 0
    assert status.pending_writes == 0
    c.store.close()


def test_unreadable_cache_is_not_overwritten_by_a_write(tmp_path):
    gw, repo = _gateway(tmp_path, db_path=tmp_path / "share" / "timber.db")
    cache_file = tmp_path / "cache" / "timberdesk_clients.json"
    cache_file.parent.mkdir()
    cache_file.write_text("{not json", encoding="utf-8")

    outcome = gw.clients.save(Client(id="c1", name="Ali"))

    assert outcome.source is Source.UNAVAILABLE
    assert cache_file.read_text(encoding="utf-8") == "{not json"
    assert gw.pending_writes() == 1

    (tmp_path / "share").mkdir()
    assert gw.remote_ready()
    assert [c.name for c in repo.list_clients()] == ["Ali"]
