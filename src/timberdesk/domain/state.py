"""In-memory snapshot of every collection plus the pure transitions that replace it."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from timberdesk.domain.ledger import apply_purchase_to_stock, apply_sales_to_stock
from timberdesk.domain.models import CLIENT_CASH, Client, Employee, ProductItem, Purchase, Sale

T = TypeVar("T")


@dataclass(frozen=True)
class StoreState:
    inventory: tuple[ProductItem, ...] = ()
    sales: tuple[Sale, ...] = ()
    purchases: tuple[Purchase, ...] = ()
    clients: tuple[Client, ...] = ()
    employees: tuple[Employee, ...] = ()


def upsert(records: Sequence[T], record: T, key: Callable[[T], object]) -> tuple[T, ...]:
    """Replace the record sharing ``key`` (or, failing that, the same id); append otherwise."""
    out = list(records)
    wanted = key(record)
    for idx, existing in enumerate(out):
        if key(existing) == wanted:
            out[idx] = record
            return tuple(r for i, r in enumerate(out) if i == idx or r.id != record.id)
    for idx, existing in enumerate(out):
        if existing.id == record.id:
            out[idx] = record
            return tuple(out)
    out.append(record)
    return tuple(out)


def remove(records: Sequence[T], record_id: str) -> tuple[T, ...]:
    return tuple(r for r in records if r.id != record_id)


def register_client_if_new(clients: Sequence[Client], name: str, client_id: str) -> Optional[Client]:
    if not name or any(c.name == name for c in clients):
        return None
    return Client(id=client_id, name=name, phone="", address="", type=CLIENT_CASH)


def record_sale_batch(state: StoreState, sales: Sequence[Sale], new_client: Optional[Client] = None) -> StoreState:
    """Prepend the batch to the ledger, deduct stock and add the auto-registered client."""
    clients = state.clients + (new_client,) if new_client else state.clients
    return replace(
        state,
        sales=tuple(sales) + state.sales,
        inventory=apply_sales_to_stock(state.inventory, sales),
        clients=clients,
    )


def record_purchase(state: StoreState, purchase: Purchase) -> StoreState:
    return replace(
        state,
        purchases=(purchase,) + state.purchases,
        inventory=apply_purchase_to_stock(state.inventory, purchase),
    )


# Ledger deletions leave stock untouched on purpose: the rows are history.
def delete_sale(state: StoreState, sale_id: str) -> StoreState:
    return replace(state, sales=remove(state.sales, sale_id))


def delete_purchase(state: StoreState, purchase_id: str) -> StoreState:
    return replace(state, purchases=remove(state.purchases, purchase_id))


def save_item(state: StoreState, item: ProductItem) -> StoreState:
    return replace(state, inventory=upsert(state.inventory, item, key=lambda i: i.code))


def delete_item(state: StoreState, item_id: str) -> StoreState:
    return replace(state, inventory=remove(state.inventory, item_id))


def save_client(state: StoreState, client: Client) -> StoreState:
    return replace(state, clients=upsert(state.clients, client, key=lambda c: c.name))


def delete_client(state: StoreState, client_id: str) -> StoreState:
    return replace(state, clients=remove(state.clients, client_id))


def save_employee(state: StoreState, employee: Employee) -> StoreState:
    return replace(state, employees=upsert(state.employees, employee, key=lambda e: e.name))


def delete_employee(state: StoreState, employee_id: str) -> StoreState:
    return replace(state, employees=remove(state.employees, employee_id))


def changed_items(before: Iterable[ProductItem], after: Iterable[ProductItem]) -> list[ProductItem]:
    previous = {item.id: item for item in before}
    return [item for item in after if previous.get(item.id) != item]
