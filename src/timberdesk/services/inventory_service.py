from __future__ import annotations

import logging
from typing import Optional

from timberdesk.application.store import DomainStore
from timberdesk.domain import ledger, state
from timberdesk.domain.errors import NotFoundError, ValidationError
from timberdesk.domain.models import ProductItem, User, new_id
from timberdesk.services.auth_service import AuthService
from timberdesk.services.inputs import clean_text, parse_amount

log = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, store: DomainStore, auth: AuthService):
        self.store = store
        self.auth = auth

    def list_items(self) -> list[ProductItem]:
        return list(self.store.state.inventory)

    def get_item(self, item_id: str) -> ProductItem:
        item = ledger.find_item(self.store.state.inventory, item_id)
        if not item:
            raise NotFoundError("Item not found.")
        return item

    def search(self, term: str) -> list[ProductItem]:
        needle = clean_text(term).lower()
        items = self.store.state.inventory
        if not needle:
            return list(items)
        return [
            i for i in items
            if needle in i.name.lower() or needle in i.code.lower() or needle in i.origin.lower() or i.id == clean_text(term)
        ]

    def save_item(
        self,
        actor: User,
        *,
        name: str,
        code: str,
        type: str = "",
        length: object = 0,
        width: object = 0,
        thickness: object = 0,
        origin: str = "",
        bundles: object = 0,
        boards_per_bundle: object,
        buy_price: object = 0,
        sell_price: object = 0,
        item_id: Optional[str] = None,
    ) -> ProductItem:
        """Create an item, or overwrite the one with ``item_id`` (stock included)."""
        self.auth.require_action(actor, "manage_inventory")
        name = clean_text(name)
        code = clean_text(code)
        if not name or not code:
            raise ValidationError("Name and code are required.")

        qty = parse_amount(bundles, "Bundles")
        per_bundle = parse_amount(boards_per_bundle, "Boards per bundle")
        buy = parse_amount(buy_price, "Buy price")
        sell = parse_amount(sell_price, "Sell price")
        if qty < 0:
            raise ValidationError("Bundles must be >= 0.")
        if per_bundle <= 0 or per_bundle != int(per_bundle):
            raise ValidationError("Boards per bundle must be a whole number > 0.")
        if buy < 0 or sell < 0:
            raise ValidationError("Prices must be >= 0.")

        if item_id is not None:
            self.get_item(item_id)
        clash = next((i for i in self.store.state.inventory if i.code == code and i.id != item_id), None)
        if clash:
            raise ValidationError(f"Code {code} is already used by {clash.name}.")

        item = ProductItem(
            id=item_id or new_id(),
            name=name,
            code=code,
            type=clean_text(type),
            length=parse_amount(length, "Length"),
            width=parse_amount(width, "Width"),
            thickness=parse_amount(thickness, "Thickness"),
            origin=clean_text(origin),
            bundles=qty,
            boards_per_bundle=int(per_bundle),
            buy_price=buy,
            sell_price=sell,
        )
        self.store.apply(state.save_item, item)
        self.store.sync(self.store.gateway.inventory.save, item)
        log.info("item_saved item_id=%s code=%s bundles=%s actor=%s", item.id, code, qty, actor.name)
        return item

    def delete_item(self, actor: User, item_id: str) -> None:
        """Hard delete. Sales and purchases keep pointing at the old id."""
        self.auth.require_action(actor, "delete_record")
        self.get_item(item_id)
        self.store.apply(state.delete_item, item_id)
        self.store.sync(self.store.gateway.inventory.delete, item_id)
        log.info("item_deleted item_id=%s actor=%s", item_id, actor.name)

    def stock_breakdown(self, item_id: str) -> tuple[int, int]:
        return ledger.stock_breakdown(self.get_item(item_id))
