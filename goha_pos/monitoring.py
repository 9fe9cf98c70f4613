"""Owner monitoring: today's stats, cashier activity and shift summaries.

Shift summaries come from the backend when one of the shift endpoints answers.
Only when none does are they rebuilt from the day's orders, and that rebuild
is a heuristic: orders carrying an explicit ``shift_id`` always go to that
shift, the rest are matched by calendar date and cashier display name, and
whatever is still unmatched is grouped into synthetic per-cashier shifts.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from goha_pos.api import ApiClient
from goha_pos.config import CASHIER_ACTIVE_WINDOW_SECONDS
from goha_pos.constant import (
    SHIFT_STATUS_CLOSED,
    SHIFT_STATUS_OPENED,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STOCK_STATUS_LOW,
    STOCK_STATUS_OUT,
    UNKNOWN_USER,
)
from goha_pos.models import CashierActivity, OrderStats, ShiftSummary, StockItem, TodayStats
from goha_pos.normalize import normalize_stock_item, to_number, unwrap_list

logger = logging.getLogger(__name__)

ALL = "all"
_UNASSIGNED_CASHIER = "unknown"


def resolve_cashier_name(order: dict[str, Any]) -> str:
    """Best display name for whoever created ``order``."""
    cashier = order.get("cashier") if isinstance(order.get("cashier"), dict) else {}
    user = order.get("user") if isinstance(order.get("user"), dict) else {}
    for value in (
        cashier.get("full_name"),
        cashier.get("fullName"),
        order.get("cashier_name"),
        user.get("full_name"),
        user.get("name"),
        user.get("username"),
    ):
        if value:
            return str(value)

    created_by = order.get("created_by")
    if isinstance(created_by, str) and created_by:
        return created_by
    if isinstance(created_by, dict):
        name = created_by.get("full_name") or created_by.get("name")
        if name:
            return str(name)

    if order.get("employee_name"):
        return str(order["employee_name"])
    return UNKNOWN_USER


def resolve_cashier_id(order: dict[str, Any]) -> str:
    cashier = order.get("cashier") if isinstance(order.get("cashier"), dict) else {}
    created_by = order.get("created_by")
    return str(
        cashier.get("user_id")
        or cashier.get("id")
        or order.get("cashier_id")
        or (created_by if isinstance(created_by, str) else "")
        or _UNASSIGNED_CASHIER
    )


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO timestamp into an aware datetime; naive values are local time."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.astimezone()


def order_date(order: dict[str, Any]) -> date | None:
    parsed = parse_timestamp(order.get("created_at"))
    return parsed.date() if parsed else None


def order_total(order: dict[str, Any]) -> float:
    return to_number(order.get("total_price") if order.get("total_price") is not None else order.get("total"))


def orders_on(orders: Iterable[dict[str, Any]], day: date) -> list[dict[str, Any]]:
    return [order for order in orders if order_date(order) == day]


def cashier_activities(
    orders: Iterable[dict[str, Any]],
    day: date | None = None,
    now: datetime | None = None,
) -> list[CashierActivity]:
    """Group ``day``'s orders per cashier; active means an order inside the active window."""
    now = now or datetime.now().astimezone()
    day = day or now.date()
    window = timedelta(seconds=CASHIER_ACTIVE_WINDOW_SECONDS)
    activities: dict[str, CashierActivity] = {}
    latest: dict[str, datetime] = {}

    for order in orders_on(orders, day):
        cashier_id = resolve_cashier_id(order)
        activity = activities.get(cashier_id)
        if activity is None:
            activity = CashierActivity(cashier_id=cashier_id, cashier_name=resolve_cashier_name(order))
            activities[cashier_id] = activity

        total = order_total(order)
        activity.orders_today += 1
        activity.total_sales += total
        order_type = str(order.get("order_type") or "").lower()
        if order_type in activity.order_types:
            activity.order_types[order_type] += 1
            activity.sales_by_type[order_type] += total

        created = parse_timestamp(order.get("created_at"))
        if created is not None and (cashier_id not in latest or created > latest[cashier_id]):
            latest[cashier_id] = created
            activity.last_order_time = str(order.get("created_at"))

    for cashier_id, activity in activities.items():
        last = latest.get(cashier_id)
        activity.is_active = last is not None and now - last < window
    return list(activities.values())


def today_stats(
    orders: Iterable[dict[str, Any]],
    activities: Iterable[CashierActivity] = (),
    day: date | None = None,
) -> TodayStats:
    day = day or date.today()
    stats = TodayStats()
    for order in orders_on(orders, day):
        total = order_total(order)
        stats.total_orders += 1
        stats.total_sales += total
        if order.get("status") == STATUS_COMPLETED:
            stats.completed_orders += 1
        elif order.get("status") == STATUS_PENDING:
            stats.pending_orders += 1
        order_type = str(order.get("order_type") or "dine-in").lower()
        if order_type in stats.orders_by_type:
            stats.orders_by_type[order_type] += 1
            stats.sales_by_type[order_type] += total
    stats.active_cashiers = sum(1 for activity in activities if activity.is_active)
    return stats


def compute_order_stats(orders: Iterable[dict[str, Any]], day: date | None = None) -> OrderStats:
    day = day or date.today()
    todays = orders_on(orders, day)
    revenue = sum(order_total(order) for order in todays)
    return OrderStats(
        total_orders=len(todays),
        total_revenue=revenue,
        average_order_value=revenue / len(todays) if todays else 0.0,
        orders_by_type=dict(Counter(str(order.get("order_type") or "") for order in todays)),
        orders_by_status=dict(Counter(str(order.get("status") or "") for order in todays)),
        orders_by_payment=dict(Counter(str(order.get("payment_method") or "") for order in todays if order.get("payment_method"))),
    )


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _name_of(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("full_name") or value.get("fullName") or value.get("name") or value.get("username") or "")
    return str(value or "")


def normalize_shift(raw: dict[str, Any]) -> ShiftSummary:
    names = [_name_of(cashier) for cashier in raw.get("cashiers") or []]
    opened_by = _name_of(raw.get("opened_by"))
    workers = [worker for worker in raw.get("workers") or [] if isinstance(worker, dict)]
    expenses = [expense for expense in raw.get("expenses") or [] if isinstance(expense, dict)]
    return ShiftSummary(
        shift_id=str(raw.get("shift_id") or raw.get("id") or ""),
        type=str(raw.get("type") or raw.get("shift_type") or ""),
        status=str(raw.get("status") or ""),
        start_time=str(raw.get("start_time") or raw.get("created_at") or ""),
        end_time=str(raw.get("end_time") or ""),
        opened_by=opened_by,
        cashier_names=[name for name in names if name],
        total_orders=int(to_number(raw.get("total_orders"))),
        total_sales=to_number(raw.get("total_sales")),
        average_order_value=to_number(raw.get("average_order_value")),
        orders_by_type=_as_dict(raw.get("orders_by_type")),
        orders_by_status=_as_dict(raw.get("orders_by_status")),
        orders_by_payment=_as_dict(raw.get("orders_by_payment")),
        workers=workers,
        total_staff_cost=to_number(raw.get("total_staff_cost")) or staff_cost(workers),
        expenses=expenses,
        total_expenses=to_number(raw.get("total_expenses")) or sum(to_number(e.get("amount")) for e in expenses),
        expenses_by_category=_as_dict(raw.get("expenses_by_category")) or expenses_by_category(expenses),
    )


def staff_cost(workers: Iterable[dict[str, Any]]) -> float:
    return sum(to_number(worker.get("calculated_salary")) for worker in workers)


def expenses_by_category(expenses: Iterable[dict[str, Any]]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for expense in expenses:
        category = str(expense.get("category") or "")
        totals[category] = totals.get(category, 0.0) + to_number(expense.get("amount"))
    return totals


def filter_shifts(shifts: Iterable[ShiftSummary], shift_type: str = ALL, status: str = ALL) -> list[ShiftSummary]:
    """Filter by type and status; ``active`` is the UI name for ``opened``."""
    if status == "active":
        status = SHIFT_STATUS_OPENED
    return [
        shift
        for shift in shifts
        if (not shift_type or shift_type == ALL or shift.type == shift_type)
        and (not status or status == ALL or shift.status == status)
    ]


def _order_shift_id(order: dict[str, Any]) -> str:
    shift = order.get("shift") if isinstance(order.get("shift"), dict) else {}
    return str(order.get("shift_id") or shift.get("shift_id") or "")


def _aggregate(summary: ShiftSummary, orders: list[dict[str, Any]]) -> ShiftSummary:
    summary.total_orders = len(orders)
    summary.total_sales = sum(order_total(order) for order in orders)
    summary.average_order_value = summary.total_sales / len(orders) if orders else 0.0
    summary.orders_by_type = dict(Counter(str(order.get("order_type") or "") for order in orders))
    summary.orders_by_status = dict(Counter(str(order.get("status") or "") for order in orders))
    summary.orders_by_payment = dict(
        Counter(str(order.get("payment_method")) for order in orders if order.get("payment_method"))
    )
    for order in orders:
        name = resolve_cashier_name(order)
        if name not in summary.cashier_names:
            summary.cashier_names.append(name)
    return summary


def reconstruct_shift_summaries(
    orders: Iterable[dict[str, Any]],
    shifts: Iterable[ShiftSummary] = (),
    day: date | None = None,
) -> list[ShiftSummary]:
    """Attach ``day``'s orders to shifts and aggregate them.

    Duplicate or missing shifts are possible when names do not match.
    """
    day = day or date.today()
    summaries = list(shifts)
    by_id = {summary.shift_id: index for index, summary in enumerate(summaries) if summary.shift_id}
    # Buckets are per record; id-less records must not share one.
    assigned: list[list[dict[str, Any]]] = [[] for _ in summaries]
    unmatched: list[dict[str, Any]] = []

    for order in orders_on(orders, day):
        explicit = _order_shift_id(order)
        if explicit and explicit in by_id:
            assigned[by_id[explicit]].append(order)
            continue
        name = resolve_cashier_name(order)
        match = None
        for index, summary in enumerate(summaries):
            start = parse_timestamp(summary.start_time)
            if start is None or start.date() != day:
                continue
            if name == summary.opened_by or name in summary.cashier_names:
                match = index
                break
        if match is not None:
            assigned[match].append(order)
        else:
            unmatched.append(order)

    result = [_aggregate(summary, bucket) for summary, bucket in zip(summaries, assigned)]

    per_cashier: dict[str, list[dict[str, Any]]] = {}
    for order in unmatched:
        per_cashier.setdefault(resolve_cashier_name(order), []).append(order)
    for name, cashier_orders in per_cashier.items():
        times = sorted(str(order.get("created_at") or "") for order in cashier_orders)
        synthetic = ShiftSummary(
            shift_id=f"synthetic-{day.isoformat()}-{resolve_cashier_id(cashier_orders[0])}",
            status=SHIFT_STATUS_OPENED,
            start_time=times[0] if times else "",
            end_time=times[-1] if times else "",
            opened_by=name,
            synthetic=True,
        )
        result.append(_aggregate(synthetic, cashier_orders))
    return result


class RefreshGate:
    """Admits one refresh at a time; a tick arriving while one runs is dropped."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_enter(self) -> bool:
        return self._lock.acquire(blocking=False)

    def leave(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()


@dataclass
class MonitoringSnapshot:
    orders: list[dict[str, Any]] = field(default_factory=list)
    order_stats: OrderStats | None = None
    today: TodayStats = field(default_factory=TodayStats)
    activities: list[CashierActivity] = field(default_factory=list)
    shifts: list[ShiftSummary] = field(default_factory=list)
    low_stock: list[StockItem] = field(default_factory=list)
    cancelled: list[dict[str, Any]] = field(default_factory=list)


class MonitoringService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.gate = RefreshGate()

    def fetch_orders(self) -> list[dict[str, Any]]:
        for path in ("/orders/except-cafe", "/orders"):
            response = self.api.get(path)
            if response.success:
                return [raw for raw in unwrap_list(response.data, "orders") if isinstance(raw, dict)]
            logger.info("orders fetch via %s failed, trying next", path)
        logger.warning("no orders endpoint answered")
        return []

    def order_stats(self, orders: list[dict[str, Any]] | None = None, day: date | None = None) -> OrderStats:
        response = self.api.get("/orders/stats")
        if response.success and isinstance(response.data, dict):
            data = response.data
            return OrderStats(
                total_orders=int(to_number(data.get("totalOrders"))),
                total_revenue=to_number(data.get("totalRevenue")),
                average_order_value=to_number(data.get("averageOrderValue")),
                orders_by_type=_as_dict(data.get("ordersByType")),
                orders_by_status=_as_dict(data.get("ordersByStatus")),
                orders_by_payment=_as_dict(data.get("ordersByPayment")),
            )
        logger.info("stats endpoint unavailable, computing from orders")
        return compute_order_stats(orders if orders is not None else self.fetch_orders(), day)

    def cancelled_orders(self) -> list[dict[str, Any]]:
        response = self.api.get("/cancelled-orders")
        if not response.success:
            return []
        return [raw for raw in unwrap_list(response.data, "cancelledOrders", "cancelled_orders") if isinstance(raw, dict)]

    def low_stock_items(self) -> list[StockItem]:
        response = self.api.get("/stock-items/low-stock")
        if response.success:
            return [normalize_stock_item(raw) for raw in unwrap_list(response.data, "stockItems") if isinstance(raw, dict)]
        response = self.api.get("/stock-items")
        if not response.success:
            logger.warning("low stock unavailable: %s", response.message)
            return []
        items = [normalize_stock_item(raw) for raw in unwrap_list(response.data, "stockItems") if isinstance(raw, dict)]
        return [item for item in items if item.status in (STOCK_STATUS_OUT, STOCK_STATUS_LOW)]

    def _shift_records(self, day: date, shift_type: str) -> tuple[list[dict[str, Any]], bool]:
        """Raw shift records and whether they already carry aggregates."""
        params: dict[str, Any] = {"date": day.isoformat()}
        if shift_type and shift_type != ALL:
            params["shift_type"] = shift_type
        response = self.api.get("/shifts/summary/by-date", **params)
        records = unwrap_list(response.data, "shifts") if response.success else []
        if records:
            return records, True

        response = self.api.get("/shifts/by-date", date=day.isoformat())
        records = unwrap_list(response.data, "shifts") if response.success else []
        if records:
            return records, False

        records = []
        for status in (SHIFT_STATUS_OPENED, SHIFT_STATUS_CLOSED):
            response = self.api.get(f"/shifts/status/{status}")
            if response.success:
                records.extend(unwrap_list(response.data, "shifts"))
        return records, False

    def fetch_shift_summaries(
        self,
        day: date | None = None,
        shift_type: str = ALL,
        status: str = ALL,
        orders: list[dict[str, Any]] | None = None,
    ) -> list[ShiftSummary]:
        day = day or date.today()
        records, aggregated = self._shift_records(day, shift_type)
        shifts = [normalize_shift(raw) for raw in records if isinstance(raw, dict)]
        if aggregated:
            return filter_shifts(shifts, shift_type, status)

        if orders is None:
            orders = self.fetch_orders()
        if not shifts:
            logger.info("no shift records for %s, rebuilding from orders", day)
        summaries = reconstruct_shift_summaries(orders, shifts, day)
        result = filter_shifts(summaries, shift_type, status)
        if not result:
            logger.warning("no shifts for %s (no data or every shift endpoint failed)", day)
        return result

    def shift_details(self, shift_id: str) -> ShiftSummary | None:
        response = self.api.get(f"/shifts/{shift_id}")
        if not response.success or not isinstance(response.data, dict):
            logger.warning("shift %s not found: %s", shift_id, response.message)
            return None
        summary = normalize_shift(response.data)

        workers = self.api.get(f"/shift-workers/shift/{shift_id}")
        if workers.success:
            summary.workers = [w for w in unwrap_list(workers.data, "shiftWorkers", "workers") if isinstance(w, dict)]
            summary.total_staff_cost = staff_cost(summary.workers)

        expenses = self.api.get("/expenses", shift_id=shift_id)
        if expenses.success:
            summary.expenses = [e for e in unwrap_list(expenses.data, "expenses") if isinstance(e, dict)]
            summary.total_expenses = sum(to_number(e.get("amount")) for e in summary.expenses)
            summary.expenses_by_category = expenses_by_category(summary.expenses)
        return summary

    def delete_shift(self, shift_id: str) -> bool:
        return self.api.delete(f"/shifts/{shift_id}").ok

    def refresh_all(
        self,
        day: date | None = None,
        shift_type: str = ALL,
        status: str = ALL,
    ) -> MonitoringSnapshot | None:
        """Load everything the monitoring screen shows; ``None`` if a refresh is already running."""
        if not self.gate.try_enter():
            logger.info("monitoring refresh skipped, previous one still running")
            return None
        try:
            day = day or date.today()
            orders = self.fetch_orders()
            with ThreadPoolExecutor(max_workers=4) as pool:
                stats = pool.submit(self.order_stats, orders, day)
                shifts = pool.submit(self.fetch_shift_summaries, day, shift_type, status, orders)
                low_stock = pool.submit(self.low_stock_items)
                cancelled = pool.submit(self.cancelled_orders)
            activities = cashier_activities(orders, day)
            return MonitoringSnapshot(
                orders=orders,
                order_stats=stats.result(),
                today=today_stats(orders, activities, day),
                activities=activities,
                shifts=shifts.result(),
                low_stock=low_stock.result(),
                cancelled=cancelled.result(),
            )
        finally:
            self.gate.leave()
