"""Invoice identity and the client -> invoice view rebuilt from the flat sale ledger."""
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from timberdesk.domain.models import Sale


@dataclass(frozen=True)
class InvoiceGroup:
    invoice_id: str
    client_name: str
    date: str
    total: float
    item_count: int
    items: tuple[Sale, ...]


@dataclass(frozen=True)
class ClientInvoices:
    name: str
    total_spent: float
    invoices: tuple[InvoiceGroup, ...]

    @property
    def total_invoices(self) -> int:
        return len(self.invoices)


def generate_invoice_id(now: datetime | None = None, rng: random.Random | None = None) -> str:
    # UTC date plus a 4-digit suffix: good enough as a grouping key, not guaranteed unique.
    # Naive datetimes are taken as local time.
    day = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    suffix = (rng or random).randint(1000, 9999)
    return f"INV-{day.strftime('%Y%m%d')}-{suffix}"


def assign_invoice_id(sales: Iterable[Sale], invoice_id: str) -> tuple[Sale, ...]:
    return tuple(replace(s, invoice_id=invoice_id) for s in sales)


def _date_key(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min
    # mixed naive/aware dates from old cache files must still compare
    return parsed.replace(tzinfo=None)


def group_by_client_then_invoice(sales: Iterable[Sale]) -> list[ClientInvoices]:
    by_client: dict[str, dict[str, list[Sale]]] = {}
    for sale in sales:
        invoice_id = sale.invoice_id or sale.id
        by_client.setdefault(sale.client_name, {}).setdefault(invoice_id, []).append(sale)

    out: list[ClientInvoices] = []
    for client_name, invoices in by_client.items():
        groups = [
            InvoiceGroup(
                invoice_id=invoice_id,
                client_name=client_name,
                date=lines[0].date,
                total=sum(float(line.total_price) for line in lines),
                item_count=len(lines),
                items=tuple(lines),
            )
            for invoice_id, lines in invoices.items()
        ]
        groups.sort(key=lambda g: _date_key(g.date), reverse=True)
        out.append(
            ClientInvoices(
                name=client_name,
                total_spent=sum(g.total for g in groups),
                invoices=tuple(groups),
            )
        )
    out.sort(key=lambda c: c.total_spent, reverse=True)
    return out


def filter_clients(clients: Sequence[ClientInvoices], term: str) -> list[ClientInvoices]:
    needle = (term or "").strip().lower()
    if not needle:
        return list(clients)
    return [
        c
        for c in clients
        if needle in c.name.lower() or any(needle in inv.invoice_id.lower() for inv in c.invoices)
    ]


def find_invoice(clients: Sequence[ClientInvoices], invoice_id: str) -> Optional[InvoiceGroup]:
    for client in clients:
        for invoice in client.invoices:
            if invoice.invoice_id == invoice_id:
                return invoice
    return None
