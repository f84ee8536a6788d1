"""Stock arithmetic for bundle/board quantities.

Stock is held in (possibly fractional) bundles. Sales may be recorded in
bundles or in single boards, so every movement is converted to boards first
and back to bundles afterwards. Nothing here touches persistence.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from timberdesk.domain.errors import InsufficientStockError
from timberdesk.domain.models import UNIT_BUNDLE, ProductItem, Purchase

DELETED_ITEM_LABEL = "(deleted item)"
# slack for board counts derived from fractional bundles
_BOARD_EPSILON = 1e-9


def to_boards(quantity: float, unit_type: str, boards_per_bundle: int) -> float:
    if unit_type == UNIT_BUNDLE:
        return float(quantity) * int(boards_per_bundle)
    return float(quantity)


def find_item(items: Iterable[ProductItem], item_id: str) -> Optional[ProductItem]:
    for item in items:
        if item.id == item_id:
            return item
    return None


def item_label(items: Iterable[ProductItem], item_id: str) -> str:
    item = find_item(items, item_id)
    return item.name if item else DELETED_ITEM_LABEL


def apply_sales_to_stock(items: Sequence[ProductItem], sales: Iterable) -> tuple[ProductItem, ...]:
    """Return a new inventory with every sale deducted.

    Lines pointing at unknown items are ignored. The result is clamped at zero
    even if the batch oversells; callers are expected to run
    check_availability first.
    """
    current = {item.id: item for item in items}
    for sale in sales:
        item = current.get(sale.item_id)
        if item is None or item.boards_per_bundle <= 0:
            continue
        sold = to_boards(sale.quantity, sale.unit_type, item.boards_per_bundle)
        remaining = item.bundles * item.boards_per_bundle - sold
        current[item.id] = replace(item, bundles=max(0.0, remaining / item.boards_per_bundle))
    return tuple(current[item.id] for item in items)


def apply_purchase_to_stock(items: Sequence[ProductItem], purchase: Purchase) -> tuple[ProductItem, ...]:
    return tuple(
        replace(item, bundles=item.bundles + float(purchase.quantity_bundles)) if item.id == purchase.item_id else item
        for item in items
    )


def check_availability(items: Sequence[ProductItem], lines: Iterable) -> None:
    """Reject the whole batch if any item would be oversold.

    Requested boards are summed per item, so two lines for the same item cannot
    each pass on their own and oversell together.
    """
    by_id = {item.id: item for item in items}
    requested: Counter[str] = Counter()
    for line in lines:
        item = by_id.get(line.item_id)
        if item is None or item.boards_per_bundle <= 0:
            continue
        requested[item.id] += to_boards(line.quantity, line.unit_type, item.boards_per_bundle)
        if requested[item.id] > item.total_boards + _BOARD_EPSILON:
            raise InsufficientStockError(item.name, item.bundles)


def stock_breakdown(item: ProductItem) -> tuple[int, int]:
    """Whole bundles plus loose boards, e.g. 6.5 bundles of 50 -> (6, 25)."""
    if item.boards_per_bundle <= 0:
        return int(math.floor(item.bundles)), 0
    # split the rounded board count so loose boards stay below one bundle
    whole, loose = divmod(round(item.total_boards), item.boards_per_bundle)
    return int(whole), int(loose)
