from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Sequence

from timberdesk.domain.models import CLIENT_CASH, Client, Employee, ProductItem, Purchase, Sale

# Wipe order matters: ledger tables reference inventory.
TABLES = ("sales", "purchases", "clients", "employees", "inventory")


class SqliteRepository:
    """The shared relational store. Every call opens its own connection, so a
    database file on a network share that drops out only fails the calls made
    while it is gone."""

    def __init__(self, db_path: Path | str, timeout: float = 5.0):
        self.db_path = str(db_path)
        self.timeout = float(timeout)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS inventory (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            code TEXT UNIQUE NOT NULL,
            type TEXT,
            length REAL,
            width REAL,
            thickness REAL,
            origin TEXT,
            bundles REAL NOT NULL DEFAULT 0 CHECK(bundles >= 0),
            boards_per_bundle INTEGER NOT NULL DEFAULT 0,
            buy_price REAL,
            sell_price REAL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sales (
            id TEXT PRIMARY KEY,
            invoice_id TEXT,
            inventory_id TEXT REFERENCES inventory(id) ON DELETE SET NULL ON UPDATE CASCADE,
            item_name TEXT NOT NULL,
            quantity REAL NOT NULL,
            unit_type TEXT NOT NULL CHECK(unit_type IN ('bundle','board')),
            unit_price REAL NOT NULL,
            total_price REAL NOT NULL,
            sale_date TEXT NOT NULL,
            client_name TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS purchases (
            id TEXT PRIMARY KEY,
            inventory_id TEXT REFERENCES inventory(id) ON DELETE SET NULL ON UPDATE CASCADE,
            quantity_bundles REAL NOT NULL,
            cost REAL NOT NULL,
            purchase_date TEXT NOT NULL,
            supplier TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS clients (
            id TEXT PRIMARY KEY,
            name TEXT UNIQUE NOT NULL,
            phone TEXT,
            address TEXT,
            type TEXT NOT NULL DEFAULT 'CASH' CHECK(type IN ('CASH','CREDIT'))
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS employees (
            id TEXT PRIMARY KEY,
            name TEXT UNIQUE NOT NULL,
            position TEXT,
            salary REAL NOT NULL DEFAULT 0,
            advances REAL NOT NULL DEFAULT 0
        )
        """
        )

        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_invoice ON sales(invoice_id)")

    def integrity_check(self) -> str:
        conn = self._conn()
        try:
            row = conn.execute("PRAGMA integrity_check").fetchone()
        finally:
            conn.close()
        return str(row[0]) if row else "unknown"

    # ---------- Generic helpers ----------
    def _fetch_all(self, sql: str) -> list[tuple]:
        conn = self._conn()
        try:
            return conn.execute(sql).fetchall()
        finally:
            conn.close()

    def _upsert(self, table: str, key_col: str, columns: Sequence[str], values: Sequence[object]) -> None:
        """Replace-or-insert keyed by ``key_col``; ``columns[0]`` must be ``id``.

        A row found by natural key takes over the incoming id; a stale row that
        still holds that id under an old key is removed first.
        """
        record = dict(zip(columns, values))
        assignments = ", ".join(f"{c}=?" for c in columns)
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT id FROM {table} WHERE {key_col}=?", (record[key_col],))
            by_key = cur.fetchone()
            if by_key:
                if by_key[0] != record["id"]:
                    cur.execute(f"DELETE FROM {table} WHERE id=?", (record["id"],))
                cur.execute(f"UPDATE {table} SET {assignments} WHERE {key_col}=?", (*values, record[key_col]))
            else:
                cur.execute(f"UPDATE {table} SET {assignments} WHERE id=?", (*values, record["id"]))
                if cur.rowcount == 0:
                    placeholders = ", ".join("?" for _ in columns)
                    cur.execute(f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})", tuple(values))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _delete(self, table: str, record_id: str) -> bool:
        conn = self._conn()
        try:
            cur = conn.execute(f"DELETE FROM {table} WHERE id=?", (str(record_id),))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    def _existing_item_id(self, item_id: str) -> str | None:
        if not item_id:
            return None
        conn = self._conn()
        try:
            row = conn.execute("SELECT id FROM inventory WHERE id=?", (item_id,)).fetchone()
        finally:
            conn.close()
        return str(row[0]) if row else None

    def wipe_all(self) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            for table in TABLES:
                cur.execute(f"DELETE FROM {table}")
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ---------- Inventory ----------
    def list_items(self) -> list[ProductItem]:
        rows = self._fetch_all(
            """
            SELECT id, name, code, type, length, width, thickness, origin,
                   bundles, boards_per_bundle, buy_price, sell_price
            FROM inventory
            ORDER BY rowid DESC
            """
        )
        return [
            ProductItem(
                id=str(r[0]),
                name=str(r[1]),
                code=str(r[2]),
                type=r[3] or "",
                length=float(r[4] or 0),
                width=float(r[5] or 0),
                thickness=float(r[6] or 0),
                origin=r[7] or "",
                bundles=float(r[8] or 0),
                boards_per_bundle=int(r[9] or 0),
                buy_price=float(r[10] or 0),
                sell_price=float(r[11] or 0),
            )
            for r in rows
        ]

    def upsert_item(self, item: ProductItem) -> None:
        self._upsert(
            "inventory",
            "code",
            ("id", "name", "code", "type", "length", "width", "thickness", "origin",
             "bundles", "boards_per_bundle", "buy_price", "sell_price"),
            (item.id, item.name, item.code, item.type, float(item.length), float(item.width),
             float(item.thickness), item.origin, max(0.0, float(item.bundles)), int(item.boards_per_bundle),
             float(item.buy_price), float(item.sell_price)),
        )

    def delete_item(self, item_id: str) -> bool:
        return self._delete("inventory", item_id)

    # ---------- Sales ----------
    def list_sales(self) -> list[Sale]:
        rows = self._fetch_all(
            """
            SELECT id, invoice_id, inventory_id, item_name, quantity, unit_type,
                   unit_price, total_price, sale_date, client_name
            FROM sales
            ORDER BY sale_date DESC
            """
        )
        return [
            Sale(
                id=str(r[0]),
                invoice_id=str(r[1] or r[0]),
                item_id=str(r[2]) if r[2] is not None else "",
                item_name=str(r[3]),
                quantity=float(r[4]),
                unit_type=str(r[5]),
                unit_price=float(r[6]),
                total_price=float(r[7]),
                date=str(r[8]),
                client_name=r[9] or "",
            )
            for r in rows
        ]

    def upsert_sale(self, sale: Sale) -> None:
        self._upsert(
            "sales",
            "id",
            ("id", "invoice_id", "inventory_id", "item_name", "quantity", "unit_type",
             "unit_price", "total_price", "sale_date", "client_name"),
            (sale.id, sale.invoice_id, self._existing_item_id(sale.item_id), sale.item_name, float(sale.quantity),
             sale.unit_type, float(sale.unit_price), float(sale.total_price), sale.date, sale.client_name),
        )

    def delete_sale(self, sale_id: str) -> bool:
        return self._delete("sales", sale_id)

    # ---------- Purchases ----------
    def list_purchases(self) -> list[Purchase]:
        rows = self._fetch_all(
            """
            SELECT id, inventory_id, quantity_bundles, cost, purchase_date, supplier
            FROM purchases
            ORDER BY purchase_date DESC
            """
        )
        return [
            Purchase(
                id=str(r[0]),
                item_id=str(r[1]) if r[1] is not None else "",
                quantity_bundles=float(r[2]),
                cost=float(r[3]),
                date=str(r[4]),
                supplier=r[5] or "",
            )
            for r in rows
        ]

    def upsert_purchase(self, purchase: Purchase) -> None:
        self._upsert(
            "purchases",
            "id",
            ("id", "inventory_id", "quantity_bundles", "cost", "purchase_date", "supplier"),
            (purchase.id, self._existing_item_id(purchase.item_id), float(purchase.quantity_bundles),
             float(purchase.cost), purchase.date, purchase.supplier),
        )

    def delete_purchase(self, purchase_id: str) -> bool:
        return self._delete("purchases", purchase_id)

    # ---------- Clients ----------
    def list_clients(self) -> list[Client]:
        rows = self._fetch_all("SELECT id, name, phone, address, type FROM clients ORDER BY name ASC")
        return [
            Client(id=str(r[0]), name=str(r[1]), phone=r[2] or "", address=r[3] or "", type=r[4] or CLIENT_CASH)
            for r in rows
        ]

    def upsert_client(self, client: Client) -> None:
        self._upsert(
            "clients",
            "name",
            ("id", "name", "phone", "address", "type"),
            (client.id, client.name, client.phone, client.address, client.type),
        )

    def delete_client(self, client_id: str) -> bool:
        return self._delete("clients", client_id)

    # ---------- Employees ----------
    def list_employees(self) -> list[Employee]:
        rows = self._fetch_all("SELECT id, name, position, salary, advances FROM employees ORDER BY name ASC")
        return [
            Employee(id=str(r[0]), name=str(r[1]), position=r[2] or "", salary=float(r[3]), advances=float(r[4]))
            for r in rows
        ]

    def upsert_employee(self, employee: Employee) -> None:
        self._upsert(
            "employees",
            "name",
            ("id", "name", "position", "salary", "advances"),
            (employee.id, employee.name, employee.position, float(employee.salary), float(employee.advances)),
        )

    def delete_employee(self, employee_id: str) -> bool:
        return self._delete("employees", employee_id)
