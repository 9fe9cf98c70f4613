"""Stock screen: item list, filters and in/out transactions."""

from __future__ import annotations

from rich.text import Text
from textual import work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Header, Static

from goha_pos.constant import STOCK_ITEM_TYPES, STOCK_TRANSACTION_IN
from goha_pos.errors import PosError
from goha_pos.models import StockItem
from goha_pos.number_modal import NumberModal
from goha_pos.rendering import format_currency, format_stock_line
from goha_pos.stock import StockService, filter_items, stock_stats

_TYPE_FILTERS = ("", *STOCK_ITEM_TYPES)


class StockScreen(Screen):
    BINDINGS = [
        ("escape", "back", "Back"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("up", "move_cursor(-1)", "Previous"),
        ("i", "transaction('in')", "Stock in"),
        ("o", "transaction('out')", "Stock out"),
        ("t", "cycle_type", "Type filter"),
        ("l", "toggle_low", "Low only"),
        ("r", "reload", "Reload"),
    ]

    CSS = """
    #stock-stats {
        border: round $secondary;
        padding: 0 1;
        height: 4;
    }

    #stock-list {
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }

    #stock-status {
        height: 1;
        color: #dddddd;
    }
    """

    def __init__(self, service: StockService) -> None:
        super().__init__()
        self.service = service
        self.cursor_index = 0
        self.type_index = 0
        self.low_only = False
        self.status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Static(id="stock-stats")
            yield Static("...", id="stock-list")
            yield Static(id="stock-status")

    def on_mount(self) -> None:
        self.action_reload()

    @work(thread=True, exclusive=True, group="stock")
    def action_reload(self) -> None:
        self.service.fetch_items()
        self.app.call_from_thread(self._refresh_content)

    @work(thread=True, group="stock")
    def record(self, stock_item_id: str, kind: str, quantity: float) -> None:
        try:
            result = self.service.record_transaction(stock_item_id, kind, quantity)
        except PosError as exc:
            self.app.call_from_thread(self._set_status, str(exc))
            return
        self.app.call_from_thread(self._set_status, result.message)

    def action_back(self) -> None:
        self.app.pop_screen()

    def action_move_cursor(self, delta: int) -> None:
        items = self._visible_items()
        if items:
            self.cursor_index = (self.cursor_index + delta) % len(items)
            self._refresh_content()

    def action_cycle_type(self) -> None:
        self.type_index = (self.type_index + 1) % len(_TYPE_FILTERS)
        self.cursor_index = 0
        self._refresh_content()

    def action_toggle_low(self) -> None:
        self.low_only = not self.low_only
        self.cursor_index = 0
        self._refresh_content()

    def action_transaction(self, kind: str) -> None:
        item = self._selected_item()
        if item is None:
            return
        title = "إضافة للمخزون" if kind == STOCK_TRANSACTION_IN else "صرف من المخزون"

        def _apply(value: float | None) -> None:
            if value is not None:
                self.record(item.stock_item_id, kind, value)

        self.app.push_screen(
            NumberModal(title, f"{item.name} ({item.current_quantity:g} {item.unit})", 0.001, 100000, allow_decimal=True),
            _apply,
        )

    def _visible_items(self) -> list[StockItem]:
        items = filter_items(self.service.items, item_type=_TYPE_FILTERS[self.type_index])
        if self.low_only:
            items = [item for item in items if item.current_quantity <= item.minimum_value]
        return items

    def _selected_item(self) -> StockItem | None:
        items = self._visible_items()
        if not (0 <= self.cursor_index < len(items)):
            return None
        return items[self.cursor_index]

    def _set_status(self, message: str) -> None:
        self.status = message
        self._refresh_content()

    def _refresh_content(self) -> None:
        if not self.is_attached:
            return
        stats = stock_stats(self.service.items)
        type_filter = _TYPE_FILTERS[self.type_index]
        self.query_one("#stock-stats", Static).update(
            f"العناصر: {stats.total_items}  منخفض: {stats.low_stock_items}  نفذ: {stats.out_of_stock_items}"
            f"  حرج: {stats.critical_alerts}  القيمة: {format_currency(stats.total_value)}\n"
            f"النوع: {STOCK_ITEM_TYPES.get(type_filter, 'الكل')}  {'(المنخفض فقط)' if self.low_only else ''}"
        )

        items = self._visible_items()
        list_widget = self.query_one("#stock-list", Static)
        if not items:
            list_widget.update("(لا توجد عناصر)")
        else:
            self.cursor_index = min(self.cursor_index, len(items) - 1)
            lines = Text()
            for idx, item in enumerate(items):
                if idx > 0:
                    lines.append("\n")
                lines.append("➤ " if idx == self.cursor_index else "  ")
                lines.append_text(format_stock_line(item))
            list_widget.update(lines)

        help_line = "J/K تنقل  I إضافة  O صرف  T النوع  L المنخفض  R تحديث  Esc رجوع"
        self.query_one("#stock-status", Static).update(self.status or help_line)
