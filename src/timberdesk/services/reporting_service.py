from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from timberdesk.application.store import DomainStore
from timberdesk.domain import ledger
from timberdesk.domain.invoices import group_by_client_then_invoice
from timberdesk.domain.models import User
from timberdesk.services.auth_service import AuthService

# Cost share assumed for sales whose item has since been deleted.
DELETED_ITEM_COST_RATIO = 0.8


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except (AttributeError, ValueError):
        return None


class ReportingService:
    def __init__(self, store: DomainStore, auth: AuthService):
        self.store = store
        self.auth = auth

    def financial_summary(self, actor: User) -> dict[str, float]:
        """Stock valuation plus realised revenue and profit.

        Profit uses the item's current buy price, not the price at sale time.
        """
        self.auth.require_action(actor, "view_reports")
        inventory = self.store.state.inventory
        sales = self.store.state.sales

        stock_cost = sum(i.total_boards * i.buy_price for i in inventory)
        stock_revenue = sum(i.total_boards * i.sell_price for i in inventory)
        revenue = sum(s.total_price for s in sales)

        profit = 0.0
        for s in sales:
            item = ledger.find_item(inventory, s.item_id)
            if item is None:
                cost = s.total_price * DELETED_ITEM_COST_RATIO
            else:
                cost = ledger.to_boards(s.quantity, s.unit_type, item.boards_per_bundle) * item.buy_price
            profit += s.total_price - cost

        return {
            "stock_cost_value": stock_cost,
            "stock_revenue_value": stock_revenue,
            "actual_revenue": revenue,
            "actual_profit": profit,
        }

    def origin_distribution(self, actor: User) -> list[tuple[str, float]]:
        """Boards on hand per origin."""
        self.auth.require_action(actor, "view_reports")
        counts: dict[str, float] = {}
        for item in self.store.state.inventory:
            counts[item.origin] = counts.get(item.origin, 0.0) + item.total_boards
        return list(counts.items())

    def dashboard_stats(self, now: datetime | None = None) -> dict[str, float]:
        now = now or datetime.now()
        inventory = self.store.state.inventory
        sales = self.store.state.sales
        cutoff = now - timedelta(days=30)
        recent = 0.0
        for s in sales:
            when = _parse_date(s.date)
            if when is not None and when > cutoff:
                recent += s.total_price
        return {
            "inventory_value": sum(i.total_boards * i.buy_price for i in inventory),
            "total_sales": sum(s.total_price for s in sales),
            "total_bundles": sum(i.bundles for i in inventory),
            "total_boards": sum(i.total_boards for i in inventory),
            "last_30_days_sales": recent,
            "transactions": float(len(sales)),
        }

    def daily_sales(self, days: int = 7, today: date | None = None) -> list[tuple[str, float]]:
        today = today or date.today()
        totals = {today - timedelta(days=offset): 0.0 for offset in range(days - 1, -1, -1)}
        for s in self.store.state.sales:
            when = _parse_date(s.date)
            if when is not None and when.date() in totals:
                totals[when.date()] += s.total_price
        return [(d.isoformat(), v) for d, v in totals.items()]

    def top_products(self, limit: int = 5) -> list[tuple[str, float, int]]:
        """(item name, revenue, line count), best sellers first."""
        by_name: dict[str, list] = {}
        for s in self.store.state.sales:
            entry = by_name.setdefault(s.item_name, [0.0, 0])
            entry[0] += s.total_price
            entry[1] += 1
        ranked = sorted(by_name.items(), key=lambda kv: kv[1][0], reverse=True)
        return [(name, total, count) for name, (total, count) in ranked[:limit]]

    def export_report_excel(self, actor: User, path: str) -> None:
        summary = self.financial_summary(actor)
        state = self.store.state
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, end_row: int, end_col: int):
            ref = f"A{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True, showColumnStripes=False)
            ws.add_table(tab)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Summary"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A3"] = "Generated"
        ws["B3"] = datetime.now().replace(microsecond=0).isoformat(sep=" ")

        rows = [
            ("Stock value at cost", summary["stock_cost_value"]),
            ("Stock value at sell price", summary["stock_revenue_value"]),
            ("Revenue", summary["actual_revenue"]),
            ("Profit (current buy prices)", summary["actual_profit"]),
        ]
        for i, (label, val) in enumerate(rows):
            r = 5 + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = float(val)
            money(ws[f"B{r}"])
        set_widths(ws, {"A": 30, "B": 22})

        # -------- 2) Inventory --------
        ws2 = wb.create_sheet("Inventory")
        ws2.append(["Code", "Name", "Type", "Origin", "Bundles", "Boards/Bundle", "Boards", "Buy Price", "Sell Price"])
        bold_row(ws2, 1)
        for item in state.inventory:
            ws2.append([
                item.code, item.name, item.type, item.origin,
                float(item.bundles), int(item.boards_per_bundle), float(item.total_boards),
                float(item.buy_price), float(item.sell_price),
            ])
            money(ws2[f"H{ws2.max_row}"])
            money(ws2[f"I{ws2.max_row}"])
        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 14, "B": 30, "C": 14, "D": 14, "E": 10, "F": 14, "G": 10, "H": 12, "I": 12})
        if ws2.max_row >= 2:
            add_table(ws2, "InventoryDetail", 1, ws2.max_row, 9)

        # -------- 3) Sales --------
        ws3 = wb.create_sheet("Sales")
        ws3.append(["Invoice", "Date", "Client", "Item", "Qty", "Unit", "Unit Price", "Total"])
        bold_row(ws3, 1)
        for s in state.sales:
            ws3.append([
                s.invoice_id, s.date, s.client_name, s.item_name,
                float(s.quantity), s.unit_type, float(s.unit_price), float(s.total_price),
            ])
            money(ws3[f"G{ws3.max_row}"])
            money(ws3[f"H{ws3.max_row}"])
        ws3.freeze_panes = "A2"
        set_widths(ws3, {"A": 20, "B": 22, "C": 24, "D": 30, "E": 8, "F": 8, "G": 14, "H": 14})
        if ws3.max_row >= 2:
            add_table(ws3, "SalesDetail", 1, ws3.max_row, 8)

        # -------- 4) Invoices --------
        ws4 = wb.create_sheet("Invoices")
        ws4.append(["Client", "Invoice", "Date", "Lines", "Total"])
        bold_row(ws4, 1)
        for client in group_by_client_then_invoice(state.sales):
            for inv in client.invoices:
                ws4.append([client.name, inv.invoice_id, inv.date, inv.item_count, float(inv.total)])
                money(ws4[f"E{ws4.max_row}"])
        ws4.freeze_panes = "A2"
        set_widths(ws4, {"A": 24, "B": 20, "C": 22, "D": 8, "E": 14})
        if ws4.max_row >= 2:
            add_table(ws4, "InvoiceSummary", 1, ws4.max_row, 5)

        wb.save(path)


