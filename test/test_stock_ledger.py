import random

import pytest

from timberdesk.domain import ledger
from timberdesk.domain.errors import InsufficientStockError
from timberdesk.domain.models import CartLine, ProductItem, Purchase, Sale


def _item(item_id="i1", bundles=10.0, per_bundle=50, name="Pine 4m"):
    return ProductItem(id=item_id, name=name, code=f"C-{item_id}", bundles=bundles, boards_per_bundle=per_bundle)


def _sale(item_id, quantity, unit_type):
    return Sale(
        id="s", invoice_id="INV", item_id=item_id, item_name="x", quantity=quantity, unit_type=unit_type,
        unit_price=1.0, total_price=float(quantity), date="2024-05-01T10:00:00", client_name="Ali",
    )


def test_bundles_and_boards_scenario():
    items = (_item(),)

    items = ledger.apply_sales_to_stock(items, [_sale("i1", 2, "bundle")])
    assert items[0].bundles == pytest.approx(8)

    items = ledger.apply_sales_to_stock(items, [_sale("i1", 100, "board")])
    assert items[0].bundles == pytest.approx(6)

    with pytest.raises(InsufficientStockError, match="6.00 bundles") as exc:
        ledger.check_availability(items, [CartLine("i1", "Pine 4m", 400, "board", 1.0)])
    assert exc.value.item_name == "Pine 4m"
    assert exc.value.available_bundles == pytest.approx(6)


def test_selling_a_bundle_of_boards_equals_selling_one_bundle():
    items = (_item(bundles=3.5, per_bundle=40),)
    by_boards = ledger.apply_sales_to_stock(items, [_sale("i1", 40, "board")])
    by_bundle = ledger.apply_sales_to_stock(items, [_sale("i1", 1, "bundle")])
    assert by_boards[0].bundles == pytest.approx(by_bundle[0].bundles)
    assert by_bundle[0].bundles == pytest.approx(2.5)


def test_purchase_adds_bundles():
    items = (_item(bundles=6), _item("i2", bundles=1))
    after = ledger.apply_purchase_to_stock(items, Purchase(id="p", item_id="i1", quantity_bundles=5, cost=900, date="d"))
    assert after[0].bundles == 11
    assert after[1] is items[1]


def test_unknown_items_are_skipped_without_error():
    items = (_item(),)
    assert ledger.apply_sales_to_stock(items, [_sale("gone", 3, "bundle")]) == items
    assert ledger.apply_purchase_to_stock(items, Purchase(id="p", item_id="gone", quantity_bundles=5, cost=1, date="d")) == items
    ledger.check_availability(items, [CartLine("gone", "x", 1000, "bundle", 1.0)])


def test_oversold_stock_is_clamped_at_zero():
    items = ledger.apply_sales_to_stock((_item(bundles=1),), [_sale("i1", 3, "bundle")])
    assert items[0].bundles == 0


def test_untouched_items_pass_through():
    items = (_item(), _item("i2"))
    after = ledger.apply_sales_to_stock(items, [_sale("i1", 1, "bundle")])
    assert after[1] is items[1]
    assert [i.id for i in after] == ["i1", "i2"]


def test_availability_sums_lines_for_the_same_item():
    items = (_item(bundles=2, per_bundle=10),)
    lines = [CartLine("i1", "Pine", 1, "bundle", 1.0), CartLine("i1", "Pine", 15, "board", 1.0)]
    with pytest.raises(InsufficientStockError):
        ledger.check_availability(items, lines)


def test_availability_accepts_selling_everything():
    items = (_item(bundles=6.1, per_bundle=50),)
    ledger.check_availability(items, [CartLine("i1", "Pine", 305, "board", 1.0)])


def test_stock_never_negative_after_checked_sales():
    rng = random.Random(7)
    items = (_item(bundles=20, per_bundle=25), _item("i2", bundles=4.5, per_bundle=12))
    for _ in range(200):
        item = rng.choice(items)
        unit = rng.choice(["bundle", "board"])
        qty = rng.randint(1, 30) if unit == "board" else rng.randint(1, 3)
        line = CartLine(item.id, item.name, qty, unit, 1.0)
        try:
            ledger.check_availability(items, [line])
        except InsufficientStockError:
            continue
        items = ledger.apply_sales_to_stock(items, [line])
        assert all(i.bundles >= 0 for i in items)


def test_item_label_falls_back_to_placeholder():
    items = (_item(),)
    assert ledger.item_label(items, "i1") == "Pine 4m"
    assert ledger.item_label(items, "missing") == ledger.DELETED_ITEM_LABEL


def test_stock_breakdown_splits_whole_bundles_and_loose_boards():
    assert ledger.stock_breakdown(_item(bundles=6.5, per_bundle=50)) == (6, 25)
    assert ledger.stock_breakdown(_item(bundles=3, per_bundle=50)) == (3, 0)


def test_items_without_bundle_size_are_ignored():
    broken = (_item(bundles=4, per_bundle=0),)
    ledger.check_availability(broken, [CartLine("i1", "Pine", 99, "board", 1.0)])
    assert ledger.apply_sales_to_stock(broken, [_sale("i1", 5, "board")]) == broken


def test_stock_breakdown_never_shows_a_full_bundle_as_loose_boards():
    items = (_item(bundles=10, per_bundle=3),)
    for _ in range(3):
        items = ledger.apply_sales_to_stock(items, [_sale("i1", 0.1, "board")])
    assert items[0].bundles < 10
    whole, loose = ledger.stock_breakdown(items[0])
    assert loose < 3
    assert (whole, loose) == (10, 0)
    assert ledger.stock_breakdown(_item(bundles=2.0 / 3, per_bundle=3)) == (0, 2)
