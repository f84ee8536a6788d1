from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from timberdesk.application.store import DomainStore
from timberdesk.domain import ledger, state
from timberdesk.domain.errors import NotFoundError, ValidationError
from timberdesk.domain.models import Purchase, User, new_id
from timberdesk.services.auth_service import AuthService
from timberdesk.services.inputs import clean_text, parse_amount

log = logging.getLogger(__name__)


class PurchaseService:
    def __init__(self, store: DomainStore, auth: AuthService, clock: Callable[[], datetime] | None = None):
        self.store = store
        self.auth = auth
        self.clock = clock or datetime.now

    def record_purchase(self, actor: User, item_id: str, quantity_bundles: object, cost: object, supplier: str = "") -> Purchase:
        self.auth.require_action(actor, "record_purchase")
        qty = parse_amount(quantity_bundles, "Quantity")
        total_cost = parse_amount(cost, "Cost")
        if qty <= 0:
            raise ValidationError("Quantity must be > 0.")
        if total_cost < 0:
            raise ValidationError("Cost must be >= 0.")
        if not ledger.find_item(self.store.state.inventory, item_id):
            raise NotFoundError("Item not found.")

        purchase = Purchase(
            id=new_id(),
            item_id=item_id,
            quantity_bundles=qty,
            cost=total_cost,
            date=self.clock().replace(microsecond=0).isoformat(),
            supplier=clean_text(supplier),
        )
        after = self.store.apply(state.record_purchase, purchase)

        gateway = self.store.gateway
        self.store.sync(gateway.purchases.save, purchase)
        self.store.sync(gateway.inventory.save, ledger.find_item(after.inventory, item_id))
        log.info("purchase_recorded purchase_id=%s item_id=%s bundles=%s cost=%.2f", purchase.id, item_id, qty, total_cost)
        return purchase

    def delete_purchase(self, actor: User, purchase_id: str) -> None:
        """Drop a ledger row. Stock is not reduced back."""
        self.auth.require_action(actor, "delete_record")
        if not any(p.id == purchase_id for p in self.store.state.purchases):
            raise NotFoundError("Purchase not found.")
        self.store.apply(state.delete_purchase, purchase_id)
        self.store.sync(self.store.gateway.purchases.delete, purchase_id)
        log.info("purchase_deleted purchase_id=%s actor=%s", purchase_id, actor.name)

    def list_purchases(self) -> list[tuple[Purchase, str]]:
        """Purchases paired with the item name, or a placeholder for deleted items."""
        inventory = self.store.state.inventory
        return [(p, ledger.item_label(inventory, p.item_id)) for p in self.store.state.purchases]
