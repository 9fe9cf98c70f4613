"""Owner monitoring screen, refreshed on a fixed interval."""

from __future__ import annotations

from datetime import date

from rich.text import Text
from textual import work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Header, Static

from goha_pos.config import MONITOR_POLL_SECONDS
from goha_pos.constant import ORDER_TYPE_LABELS, SHIFT_TYPE_LABELS
from goha_pos.monitoring import ALL, MonitoringService, MonitoringSnapshot, resolve_cashier_name
from goha_pos.rendering import format_currency, format_stock_line

_SHIFT_TYPES = (ALL, *SHIFT_TYPE_LABELS)
_SHIFT_STATUSES = (ALL, "active", "closed")


class MonitoringScreen(Screen):
    BINDINGS = [
        ("escape", "back", "Back"),
        ("r", "refresh", "Refresh"),
        ("f", "cycle_shift_type", "Shift type"),
        ("g", "cycle_shift_status", "Shift status"),
    ]

    CSS = """
    .panel {
        border: round $primary;
        padding: 0 1;
    }

    #today {
        height: 5;
    }

    #columns {
        height: 1fr;
    }

    #left-column, #right-column {
        width: 1fr;
    }

    #activities, #shifts, #live-orders, #alerts {
        height: 1fr;
    }
    """

    def __init__(self, service: MonitoringService) -> None:
        super().__init__()
        self.service = service
        self.shift_type_index = 0
        self.shift_status_index = 0
        self.snapshot = MonitoringSnapshot()

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="today", classes="panel")
        with Horizontal(id="columns"):
            with Vertical(id="left-column"):
                yield Static(id="activities", classes="panel")
                yield Static(id="shifts", classes="panel")
            with Vertical(id="right-column"):
                yield Static(id="live-orders", classes="panel")
                yield Static(id="alerts", classes="panel")

    def on_mount(self) -> None:
        self.action_refresh()
        self.set_interval(MONITOR_POLL_SECONDS, self.action_refresh)

    def action_back(self) -> None:
        self.app.pop_screen()

    def action_cycle_shift_type(self) -> None:
        self.shift_type_index = (self.shift_type_index + 1) % len(_SHIFT_TYPES)
        self.action_refresh()

    def action_cycle_shift_status(self) -> None:
        self.shift_status_index = (self.shift_status_index + 1) % len(_SHIFT_STATUSES)
        self.action_refresh()

    @work(thread=True, group="monitoring")
    def action_refresh(self) -> None:
        snapshot = self.service.refresh_all(
            date.today(),
            _SHIFT_TYPES[self.shift_type_index],
            _SHIFT_STATUSES[self.shift_status_index],
        )
        if snapshot is not None:
            self.app.call_from_thread(self._apply_snapshot, snapshot)

    def _apply_snapshot(self, snapshot: MonitoringSnapshot) -> None:
        if not self.is_attached:
            return
        self.snapshot = snapshot
        self._refresh_content()

    def _refresh_content(self) -> None:
        snap = self.snapshot
        today = snap.today
        by_type = "  ".join(
            f"{ORDER_TYPE_LABELS.get(kind, kind)}: {count:g} ({format_currency(today.sales_by_type[kind])})"
            for kind, count in today.orders_by_type.items()
        )
        average = snap.order_stats.average_order_value if snap.order_stats else 0.0
        self.query_one("#today", Static).update(
            f"طلبات اليوم: {today.total_orders}  المبيعات: {format_currency(today.total_sales)}"
            f"  مكتمل: {today.completed_orders}  معلق: {today.pending_orders}"
            f"  كاشير نشط: {today.active_cashiers}  المتوسط: {format_currency(average)}\n{by_type}\n"
            f"فلتر الوردية: {_SHIFT_TYPES[self.shift_type_index]} / {_SHIFT_STATUSES[self.shift_status_index]}"
            "   R تحديث  F النوع  G الحالة  Esc رجوع"
        )

        activities = Text("نشاط الكاشير\n", style="bold")
        for activity in snap.activities:
            style = "#5fbf72" if activity.is_active else "dim"
            activities.append(
                f"● {activity.cashier_name}  {activity.orders_today} طلب  {format_currency(activity.total_sales)}\n",
                style=style,
            )
        self.query_one("#activities", Static).update(activities)

        shifts = Text("الورديات\n", style="bold")
        if not snap.shifts:
            shifts.append("لا توجد ورديات اليوم", style="dim")
        for shift in snap.shifts:
            label = SHIFT_TYPE_LABELS.get(shift.type, shift.type or "-")
            marker = " (تقديري)" if shift.synthetic else ""
            net = shift.total_sales - shift.total_expenses - shift.total_staff_cost
            shifts.append(
                f"{label}{marker} [{shift.status}] {shift.opened_by}  {shift.total_orders} طلب"
                f"  {format_currency(shift.total_sales)}  صافي {format_currency(net)}\n"
            )
        self.query_one("#shifts", Static).update(shifts)

        live = Text("الطلبات المباشرة\n", style="bold")
        for order in snap.orders[:20]:
            total = order.get("total_price") or order.get("total") or 0
            live.append(
                f"{str(order.get('order_id') or '')[-8:]}  {ORDER_TYPE_LABELS.get(order.get('order_type'), '-')}"
                f"  {order.get('status') or ''}  {resolve_cashier_name(order)}  {total}\n"
            )
        self.query_one("#live-orders", Static).update(live)

        alerts = Text("تنبيهات المخزون\n", style="bold")
        for item in snap.low_stock:
            alerts.append_text(format_stock_line(item))
            alerts.append("\n")
        alerts.append(f"\nالطلبات الملغاة: {len(snap.cancelled)}", style="bold")
        for cancelled in snap.cancelled[:5]:
            alerts.append(f"\n  {cancelled.get('cancellation_reason') or '-'}", style="dim")
        self.query_one("#alerts", Static).update(alerts)
