"""Main Textual app class: cashier order entry."""

from __future__ import annotations

import logging

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from goha_pos.api import ApiClient
from goha_pos.cart import Cart, ExtrasPricing
from goha_pos.catalog import Catalog, min_price
from goha_pos.constant import (
    EVENT_CAFE_ORDER_ADDED,
    EVENT_CAFE_ORDER_DELETED,
    EVENT_CAFE_ORDER_PAID,
    ORDER_TYPE_CAFE,
    ORDER_TYPE_LABELS,
    ORDER_TYPES,
)
from goha_pos.errors import PosError
from goha_pos.events import EventBus
from goha_pos.item_modal import ItemModal
from goha_pos.local_store import LocalStore
from goha_pos.models import CartItem, Order, Product
from goha_pos.monitoring import MonitoringService
from goha_pos.monitoring_screen import MonitoringScreen
from goha_pos.number_modal import NumberModal
from goha_pos.orders import OrderService, shift_totals
from goha_pos.printer import check_printer_dependencies, print_receipt
from goha_pos.rendering import format_cart_line, format_currency, format_order_summary
from goha_pos.stock import StockService
from goha_pos.stock_screen import StockScreen

logger = logging.getLogger(__name__)

PANE_CART = "cart"
PANE_ORDERS = "orders"


def window_bounds(total: int, rows: int, selected: int | None) -> tuple[int, int]:
    """Visible ``[start, end)`` slice keeping ``selected`` roughly centered."""
    if total <= 0:
        return (0, 0)

    rows = max(1, rows)
    if total <= rows:
        return (0, total)

    if selected is None:
        start = 0
    else:
        start = max(0, selected - rows // 2)
        start = min(start, total - rows)
    return (start, start + rows)


def visible_rows(widget: Static) -> int:
    height = widget.size.height
    return max(1, height) if height > 0 else 8


class GohaPosApp(App):
    """Cashier terminal: menu search, cart, saved cafe orders."""

    TITLE = "Goha POS"
    SUB_TITLE = "الكاشير"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #left-pane {
        width: 3fr;
    }

    #cart-pane, #orders-pane {
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }

    #search-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #results, #cart-list, #orders-list {
        height: 1fr;
    }

    .pane-title {
        text-style: bold;
    }
    """

    input_state = reactive("normal")
    query = reactive("")
    selected_index = reactive(0)

    BINDINGS = [
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "configure_selected", "Add item"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+s", "save_order", "Save order", priority=True),
        ("ctrl+c", "cancel_search", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        api: ApiClient,
        store: LocalStore,
        start_screen: str = "cashier",
        pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY,
    ) -> None:
        super().__init__()
        self.api = api
        self.store = store
        self.start_screen = start_screen
        self.events = EventBus()
        self.catalog = Catalog(api)
        self.cart = Cart(pricing)
        self.orders = OrderService(api, store, self.events, pricing)
        self.stock = StockService(api, store)
        self.monitoring = MonitoringService(api)
        self.system_status = ""
        self.focus_pane = PANE_CART
        self.cart_index: int | None = None
        self.order_index: int | None = None
        self.category_index = -1
        self.order_type = ORDER_TYPE_CAFE
        self.table_number = "1"
        for event_name in (EVENT_CAFE_ORDER_ADDED, EVENT_CAFE_ORDER_DELETED, EVENT_CAFE_ORDER_PAID):
            self.events.subscribe(event_name, self._on_order_event)

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="left-pane"):
                with Vertical(id="cart-pane"):
                    yield Static("السلة", classes="pane-title", id="cart-title")
                    yield Static("(السلة فارغة)", id="cart-list")
                with Vertical(id="orders-pane"):
                    yield Static("الطلبات المحفوظة", classes="pane-title", id="orders-title")
                    yield Static("(لا توجد طلبات)", id="orders-list")
            with Vertical(id="search-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")

    def on_mount(self) -> None:
        self.store.bootstrap_schema()
        _, msg = check_printer_dependencies()
        self.system_status = msg
        logger.info("app mounted printer_status=%r", msg)
        self._refresh_all()
        self.load_reference_data()
        if self.start_screen == "stock":
            self.action_open_stock()
        elif self.start_screen == "monitoring":
            self.action_open_monitoring()

    # Background work

    @work(thread=True, exclusive=True, group="load")
    def load_reference_data(self) -> None:
        self.catalog.load()
        self.orders.load_and_sync()
        self.call_from_thread(self._refresh_all)

    @work(thread=True, group="orders")
    def sync_orders(self) -> None:
        self.orders.load_and_sync()
        self.call_from_thread(self._set_status, "تمت مزامنة الطلبات")

    @work(thread=True, group="orders")
    def save_cart(self) -> None:
        try:
            result = self.orders.save_order(
                self.cart,
                staff_name=self.store.current_user_name(),
                table_number=self.table_number,
                order_type=self.order_type,
            )
        except PosError as exc:
            self.call_from_thread(self._set_status, str(exc))
            return
        if result is None:
            return
        self.call_from_thread(self._after_save, result.message)

    @work(thread=True, group="orders")
    def mark_selected_paid(self, order_id: str) -> None:
        result = self.orders.mark_paid(order_id)
        if result is not None:
            self.call_from_thread(self._set_status, result.message)

    @work(thread=True, group="orders")
    def confirm_all_paid(self, shift_id: str) -> None:
        result = self.orders.confirm_all(shift_id)
        self.call_from_thread(self._set_status, result.message)

    @work(thread=True, group="orders")
    def delete_selected_order(self, order_id: str) -> None:
        try:
            result = self.orders.delete_order(order_id)
        except PosError as exc:
            self.call_from_thread(self._set_status, str(exc))
            return
        self.call_from_thread(self._set_status, result.message)

    @work(thread=True, group="printer")
    def print_order(self, order: Order) -> None:
        try:
            print_receipt(order, self.cart.pricing)
        except PosError as exc:
            self.call_from_thread(self._set_status, str(exc))
            return
        self.call_from_thread(self._set_status, f"تمت طباعة الطلب {order.order_id[:8]}")

    def _on_order_event(self, event_name: str, detail: dict) -> None:
        # Emitted from worker threads.
        self.call_from_thread(self._refresh_orders)

    def _after_save(self, message: str) -> None:
        self.cart_index = None
        self.system_status = message
        self._refresh_all()

    def _set_status(self, message: str) -> None:
        self.system_status = message
        self._refresh_all()

    # Keys

    def _on_base_screen(self) -> bool:
        return len(self.screen_stack) <= 1

    def on_key(self, event: Key) -> None:
        if not self._on_base_screen():
            return

        if self.input_state == "search":
            if event.is_printable and event.character and event.key not in {"enter", "backspace"}:
                self.query += event.character
                self.selected_index = 0
                self._refresh_search()
                event.stop()
            return

        if event.key == "tab":
            self.focus_pane = PANE_ORDERS if self.focus_pane == PANE_CART else PANE_CART
            self._refresh_all()
            event.stop()
            return

        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        handlers = {
            "/": self._start_search,
            "j": lambda: self._move_selection(1),
            "k": lambda: self._move_selection(-1),
            "d": self._delete_selected,
            "p": self._pay_selected,
            "a": self._confirm_all,
            "r": self._print_selected,
            "y": self.sync_orders,
            "t": self._ask_table_number,
            "o": self._cycle_order_type,
            "c": self._cycle_category,
            "s": self.action_open_stock,
            "m": self.action_open_monitoring,
        }
        handler = handlers.get(event.character.lower())
        if handler is None:
            return
        handler()
        event.stop()

    def action_cancel_search(self) -> None:
        if not self._on_base_screen() or self.input_state == "normal":
            return
        self.input_state = "normal"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if not self._on_base_screen() or self.input_state != "search":
            return
        results = self._filtered_results()
        self.selected_index = (self.selected_index + delta) % len(results) if results else 0
        self._refresh_results(results)

    def action_backspace_query(self) -> None:
        if not self._on_base_screen() or self.input_state != "search" or not self.query:
            return
        self.query = self.query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_configure_selected(self) -> None:
        if not self._on_base_screen() or self.input_state != "search":
            return
        results = self._filtered_results()
        if not results:
            return
        product = results[self.selected_index]
        extras = self.catalog.extras_for_category(product.category.category_id)
        self.push_screen(ItemModal(product, extras), self._add_to_cart)

    def action_save_order(self) -> None:
        if not self._on_base_screen():
            return
        if self.input_state != "normal":
            self._set_status("الحفظ متاح فقط خارج وضع البحث (Ctrl+C)")
            return
        if self.cart.is_empty:
            self._set_status("السلة فارغة")
            return
        self.save_cart()

    def action_open_stock(self) -> None:
        self.push_screen(StockScreen(self.stock))

    def action_open_monitoring(self) -> None:
        self.push_screen(MonitoringScreen(self.monitoring))

    # Helpers

    def _add_to_cart(self, item: CartItem | None) -> None:
        if item is None:
            return
        self.cart.add(item)
        self.cart_index = len(self.cart) - 1
        self.system_status = f"أضيف {item.name}"
        self._refresh_all()

    def _start_search(self) -> None:
        self.input_state = "search"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def _cycle_category(self) -> None:
        categories = self.catalog.categories
        if not categories:
            return
        self.category_index = self.category_index + 1 if self.category_index + 1 < len(categories) else -1
        self.selected_index = 0
        self._refresh_search()

    def _cycle_order_type(self) -> None:
        idx = ORDER_TYPES.index(self.order_type)
        self.order_type = ORDER_TYPES[(idx + 1) % len(ORDER_TYPES)]
        self._refresh_search()

    def _ask_table_number(self) -> None:
        def _apply(value: float | None) -> None:
            if value is not None:
                self.table_number = str(int(value))
                self._refresh_search()

        self.push_screen(NumberModal("رقم الطاولة", "أدخل رقماً من 1 إلى 1000"), _apply)

    def _selected_category_id(self) -> str | None:
        if self.category_index < 0 or self.category_index >= len(self.catalog.categories):
            return None
        return self.catalog.categories[self.category_index].category_id

    def _filtered_results(self) -> list[Product]:
        return self.catalog.search(self.query, self._selected_category_id())

    def _visible_orders(self) -> list[Order]:
        return [order for order in self.orders.orders if order.items]

    def _selected_order(self) -> Order | None:
        orders = self._visible_orders()
        if self.order_index is None or not (0 <= self.order_index < len(orders)):
            return None
        return orders[self.order_index]

    def _move_selection(self, delta: int) -> None:
        if self.focus_pane == PANE_CART:
            total = len(self.cart)
            current = self.cart_index
        else:
            total = len(self._visible_orders())
            current = self.order_index
        if not total:
            return
        if current is None:
            current = 0 if delta > 0 else total - 1
        else:
            current = (current + delta) % total
        if self.focus_pane == PANE_CART:
            self.cart_index = current
        else:
            self.order_index = current
        self._refresh_all()

    def _delete_selected(self) -> None:
        if self.focus_pane == PANE_CART:
            if self.cart_index is None or not (0 <= self.cart_index < len(self.cart)):
                return
            self.cart.remove(self.cart.items[self.cart_index].item_id)
            self.cart_index = min(self.cart_index, len(self.cart) - 1) if len(self.cart) else None
            self._refresh_cart()
            return
        order = self._selected_order()
        if order is not None:
            self.delete_selected_order(order.order_id)

    def _pay_selected(self) -> None:
        order = self._selected_order()
        if order is not None and not order.is_paid:
            self.mark_selected_paid(order.order_id)

    def _confirm_all(self) -> None:
        self.confirm_all_paid(self.store.current_shift_id())

    def _print_selected(self) -> None:
        order = self._selected_order()
        if order is not None:
            self.print_order(order)

    # Rendering

    def _refresh_all(self) -> None:
        self._refresh_cart()
        self._refresh_orders()
        self._refresh_search()

    def _refresh_cart(self) -> None:
        try:
            cart_widget = self.query_one("#cart-list", Static)
            title = self.query_one("#cart-title", Static)
        except NoMatches:
            return
        marker = "▶ " if self.focus_pane == PANE_CART else ""
        title.update(f"{marker}السلة  الإجمالي: {format_currency(self.cart.total())}")
        if self.cart.is_empty:
            self.cart_index = None
            cart_widget.update("(السلة فارغة)")
            return

        start, end = window_bounds(len(self.cart), visible_rows(cart_widget) // 2 or 1, self.cart_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.cart_index and self.focus_pane == PANE_CART else "  "
            lines.append(f"{pointer}{idx + 1}. ")
            lines.append_text(format_cart_line(self.cart.items[idx], self.cart.pricing))
        if end < len(self.cart):
            lines.append("\n⋮", style="dim")
        cart_widget.update(lines)

    def _refresh_orders(self) -> None:
        try:
            orders_widget = self.query_one("#orders-list", Static)
            title = self.query_one("#orders-title", Static)
        except NoMatches:
            return
        orders = self._visible_orders()
        paid, unpaid = shift_totals(orders)
        marker = "▶ " if self.focus_pane == PANE_ORDERS else ""
        title.update(f"{marker}الطلبات المحفوظة  مدفوع: {format_currency(paid)}  غير مدفوع: {format_currency(unpaid)}")
        if not orders:
            self.order_index = None
            orders_widget.update("(لا توجد طلبات)")
            return
        if self.order_index is not None and self.order_index >= len(orders):
            self.order_index = len(orders) - 1

        start, end = window_bounds(len(orders), visible_rows(orders_widget), self.order_index)
        lines = Text()
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.order_index and self.focus_pane == PANE_ORDERS else "  "
            lines.append(pointer)
            lines.append_text(format_order_summary(orders[idx]))
        orders_widget.update(lines)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        order_type = ORDER_TYPE_LABELS.get(self.order_type, self.order_type)
        context = f"{order_type} | طاولة {self.table_number}"
        category_id = self._selected_category_id()
        if category_id is not None:
            context += f" | {self.catalog.categories[self.category_index].name}"

        if self.input_state == "normal":
            status = self.system_status or "جاهز"
            bar.update(f"/ بحث  Ctrl+S حفظ  Tab تبديل  S مخزون  M متابعة\n{context}\n{status}")
            return

        text = Text()
        text.append(" بحث ", style="bold #ffffff on #2f6db5")
        text.append(f": {self.query}\n{context}")
        bar.update(text)

    def _refresh_results(self, results: list[Product]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            results_widget.update("")
            return
        if not results:
            results_widget.update("لا توجد نتائج")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0

        start, end = window_bounds(len(results), visible_rows(results_widget), self.selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            product = results[idx]
            lines.append(f"{pointer}{product.name}")
            lines.append(f"  من {format_currency(min_price(product))}", style="dim")
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)
