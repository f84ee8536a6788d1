from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Iterable, Optional

from timberdesk.application.store import DomainStore
from timberdesk.domain import ledger, state
from timberdesk.domain.errors import NotFoundError, ValidationError
from timberdesk.domain.invoices import (
    ClientInvoices,
    InvoiceGroup,
    filter_clients,
    find_invoice,
    generate_invoice_id,
    group_by_client_then_invoice,
)
from timberdesk.domain.models import UNIT_BUNDLE, UNIT_TYPES, CartLine, Sale, User, new_id
from timberdesk.services.auth_service import AuthService
from timberdesk.services.inputs import clean_text, parse_amount

log = logging.getLogger("timberdesk.sales")


class SalesService:
    def __init__(
        self,
        store: DomainStore,
        auth: AuthService,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.auth = auth
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()

    def build_line(
        self,
        item_id: str,
        quantity: object = 1,
        unit_type: str = UNIT_BUNDLE,
        unit_price: object | None = None,
    ) -> CartLine:
        """A cart row priced at the item's sell price unless the seller overrides it."""
        item = ledger.find_item(self.store.state.inventory, item_id)
        if not item:
            raise NotFoundError("Item not found.")
        if unit_type not in UNIT_TYPES:
            raise ValidationError(f"Unit type must be one of {', '.join(UNIT_TYPES)}.")

        qty = parse_amount(quantity, "Quantity")
        if qty <= 0:
            raise ValidationError("Quantity must be > 0.")

        if unit_price is None or clean_text(unit_price) == "":
            price = item.sell_price * item.boards_per_bundle if unit_type == UNIT_BUNDLE else item.sell_price
        else:
            price = parse_amount(unit_price, "Unit price")
        if price < 0:
            raise ValidationError("Unit price must be >= 0.")

        return CartLine(item_id=item.id, item_name=item.name, quantity=qty, unit_type=unit_type, unit_price=price)

    def submit_invoice(self, actor: User, client_name: str, lines: Iterable[CartLine]) -> tuple[Sale, ...]:
        """Commit one cart as one invoice.

        Either every line is recorded under the same invoice id or, if any item
        lacks stock, nothing is.
        """
        self.auth.require_action(actor, "create_sale")
        client_name = clean_text(client_name)
        lines = list(lines)
        if not client_name:
            raise ValidationError("Client name is required.")
        if not lines:
            raise ValidationError("Cart is empty.")

        before = self.store.state
        ledger.check_availability(before.inventory, lines)

        now = self.clock()
        invoice_id = generate_invoice_id(now, self.rng)
        date_iso = now.replace(microsecond=0).isoformat()
        sales = tuple(
            Sale(
                id=new_id(),
                invoice_id=invoice_id,
                item_id=line.item_id,
                item_name=line.item_name,
                quantity=line.quantity,
                unit_type=line.unit_type,
                unit_price=line.unit_price,
                total_price=line.total,
                date=date_iso,
                client_name=client_name,
            )
            for line in lines
        )
        new_client = state.register_client_if_new(before.clients, sales[0].client_name, new_id())

        after = self.store.apply(state.record_sale_batch, sales, new_client)

        gateway = self.store.gateway
        self.store.sync(gateway.sales.save_all, sales)
        self.store.sync(gateway.inventory.save_all, state.changed_items(before.inventory, after.inventory))
        if new_client:
            self.store.sync(gateway.clients.save, new_client)
            log.info("client_registered name=%s", new_client.name)

        log.info(
            "invoice_created invoice_id=%s lines=%s total=%.2f client=%s actor=%s",
            invoice_id, len(sales), sum(s.total_price for s in sales), client_name, actor.name,
        )
        return sales

    def delete_sale(self, actor: User, sale_id: str) -> None:
        """Drop a ledger row. Stock is not restored."""
        self.auth.require_action(actor, "delete_record")
        if not any(s.id == sale_id for s in self.store.state.sales):
            raise NotFoundError("Sale not found.")
        self.store.apply(state.delete_sale, sale_id)
        self.store.sync(self.store.gateway.sales.delete, sale_id)
        log.info("sale_deleted sale_id=%s actor=%s", sale_id, actor.name)

    def list_sales(self, search: str = "") -> list[Sale]:
        needle = clean_text(search).lower()
        sales = self.store.state.sales
        if not needle:
            return list(sales)
        return [
            s for s in sales
            if needle in s.item_name.lower() or needle in s.client_name.lower() or needle in s.invoice_id.lower()
        ]

    def invoices(self, search: str = "") -> list[ClientInvoices]:
        return filter_clients(group_by_client_then_invoice(self.store.state.sales), search)

    def get_invoice(self, invoice_id: str) -> Optional[InvoiceGroup]:
        return find_invoice(group_by_client_then_invoice(self.store.state.sales), invoice_id)
