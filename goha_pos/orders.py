"""Order lifecycle: load/sync, save, mark paid, delete."""

from __future__ import annotations

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable

from goha_pos.api import ApiClient
from goha_pos.cart import Cart, ExtrasPricing, item_payload
from goha_pos.constant import (
    DEFAULT_STAFF_NAME,
    EVENT_CAFE_ORDER_ADDED,
    EVENT_CAFE_ORDER_DELETED,
    EVENT_CAFE_ORDER_PAID,
    EVENT_ORDER_ADDED,
    LOCAL_ORDER_PREFIX,
    MSG_DELETED_API,
    MSG_DELETED_LOCAL,
    MSG_EMPTY_CART,
    MSG_INVALID_ORDER_ID,
    MSG_LOGIN_AGAIN,
    MSG_NO_UNPAID,
    MSG_SAVED_API,
    MSG_SAVED_LOCAL,
    MSG_UNKNOWN_ERROR,
    ORDER_TYPE_CAFE,
    ORDER_TYPES,
    SOURCE_API,
    SOURCE_LOCAL,
    STATUS_COMPLETED,
    STATUS_PENDING,
)
from goha_pos.errors import ValidationError
from goha_pos.events import EventBus
from goha_pos.local_store import LocalStore
from goha_pos.models import Order
from goha_pos.normalize import normalize_api_order, unwrap_list

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class SaveResult:
    order: Order
    api_success: bool
    message: str


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str
    api_success: bool = False


def generate_local_order_id(now_ms: int | None = None) -> str:
    """``cafe_<epoch ms>_<9 base36 chars>``."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{LOCAL_ORDER_PREFIX}{stamp}_{suffix}"


def is_local_order_id(order_id: str) -> bool:
    return order_id.startswith(LOCAL_ORDER_PREFIX)


def format_order_number(order_id: str) -> str:
    """Short display number: the timestamp slice for local ids, else the last 8 chars."""
    if is_local_order_id(order_id):
        return order_id[len(LOCAL_ORDER_PREFIX) : len(LOCAL_ORDER_PREFIX) + 8]
    return order_id[-8:]


def merge_orders(local: Iterable[Order], remote: Iterable[Order]) -> list[Order]:
    """Reconcile local and remote orders by id.

    Remote records win; a local record is kept only when no remote record
    shares its id. Orders without items are dropped from both sides.
    """
    merged: dict[str, Order] = {}
    for order in remote:
        if not order.items:
            logger.warning("remote order %s skipped: no items", order.order_id)
            continue
        merged[order.order_id] = order
    for order in local:
        if order.order_id in merged:
            continue
        if not order.items:
            logger.warning("local order %s skipped: no items", order.order_id)
            continue
        merged[order.order_id] = replace(order, source=SOURCE_LOCAL, api_saved=False)
    return list(merged.values())


def filter_orders(orders: Iterable[Order], query: str) -> list[Order]:
    """Match ``query`` against table number, staff name and order id."""
    q = query.strip().lower()
    if not q:
        return list(orders)
    return [
        order
        for order in orders
        if q in order.table_number.lower() or q in order.staff_name.lower() or q in order.order_id.lower()
    ]


def shift_totals(orders: Iterable[Order]) -> tuple[float, float]:
    paid = 0.0
    unpaid = 0.0
    for order in orders:
        if order.is_paid:
            paid += order.total
        else:
            unpaid += order.total
    return paid, unpaid


def _now_local() -> datetime:
    return datetime.now().astimezone()


class OrderService:
    """Order actions for one cashier session.

    Every action applies to local state and the local store whatever the API
    answers; remote state is reconciled on the next ``load_and_sync``.
    """

    def __init__(
        self,
        api: ApiClient,
        store: LocalStore,
        events: EventBus | None = None,
        pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY,
    ) -> None:
        self.api = api
        self.store = store
        self.events = events or EventBus()
        self.pricing = pricing
        self.orders: list[Order] = []
        self._save_lock = threading.Lock()
        self._paying: set[str] = set()
        self._paying_lock = threading.Lock()

    # Loading

    def fetch_order_items(self, order_id: str) -> list[dict[str, Any]]:
        response = self.api.get(f"/order-items/order/{order_id}")
        if not response.success:
            return []
        return [raw for raw in unwrap_list(response.data, "order_items", "items") if isinstance(raw, dict)]

    def fetch_shift_orders(self, shift_id: str, cashier_id: str) -> list[Order]:
        response = self.api.get(f"/orders/shift-cafe/{shift_id}")
        if not response.success:
            logger.warning("shift-cafe fetch failed shift=%s: %s", shift_id, response.message)
            return []

        orders: list[Order] = []
        for raw in unwrap_list(response.data, "orders"):
            if not isinstance(raw, dict):
                continue
            if cashier_id and cashier_id not in (str(raw.get("cashier_id") or ""), str(raw.get("created_by") or "")):
                continue
            order_id = str(raw.get("order_id") or "")
            items = self.fetch_order_items(order_id) if order_id else []
            order = normalize_api_order(raw, items=items or raw.get("items") or [])
            if order is not None:
                orders.append(order)
        return orders

    def load_and_sync(self) -> list[Order]:
        """Merge this cashier's local orders with the current shift's remote orders."""
        cashier_id = self.store.current_cashier_id()
        local_orders = self.store.cafe_orders()
        mine = [order for order in local_orders if not cashier_id or order.cashier_id == cashier_id]
        others = [order for order in local_orders if cashier_id and order.cashier_id != cashier_id]

        remote: list[Order] = []
        shift_id = self.store.current_shift_id()
        if self.store.current_user().get("user_id") and shift_id:
            remote = self.fetch_shift_orders(shift_id, cashier_id)
        else:
            logger.info("no user or shift, skipping remote order fetch")

        merged = merge_orders(mine, remote)
        self.store.save_cafe_orders(others + merged)
        self.orders = merged
        logger.info("synced %d orders (%d remote)", len(merged), len(remote))
        return merged

    # Save

    def save_order(
        self,
        cart: Cart,
        staff_name: str = "",
        table_number: str = "1",
        order_type: str = ORDER_TYPE_CAFE,
    ) -> SaveResult | None:
        """Save ``cart`` as an order; returns ``None`` if a save is already running."""
        if cart.is_empty:
            raise ValidationError(MSG_EMPTY_CART)
        if order_type not in ORDER_TYPES:
            raise ValidationError(f"unknown order type: {order_type}")
        if not self._save_lock.acquire(blocking=False):
            logger.info("save already in progress, ignoring duplicate")
            return None
        try:
            user = self.store.current_user()
            if not user.get("user_id"):
                raise ValidationError(MSG_LOGIN_AGAIN)
            return self._save(cart, user, staff_name or DEFAULT_STAFF_NAME, table_number or "1", order_type)
        finally:
            self._save_lock.release()

    def _save(self, cart: Cart, user: dict[str, Any], staff_name: str, table_number: str, order_type: str) -> SaveResult:
        order_id = generate_local_order_id()
        shift_id = self.store.current_shift_id()
        logger.info("saving order %s items=%d", order_id, len(cart))

        payload = {
            "cashier_id": user["user_id"],
            "shift_id": shift_id,
            "table_number": table_number,
            "order_type": order_type,
            "customer_name": staff_name,
            "items": [item_payload(item) for item in cart],
        }
        response = self.api.post("/orders", payload)
        api_success = False
        if response.ok and isinstance(response.data, dict) and response.data.get("order_id"):
            order_id = str(response.data["order_id"])
            api_success = True
            logger.info("order saved remotely id=%s", order_id)
        else:
            logger.warning("order kept locally id=%s: %s", order_id, response.message)

        order = Order(
            order_id=order_id,
            staff_name=staff_name,
            items=list(cart.items),
            total=cart.total(),
            created_at=_now_local().isoformat(),
            order_type=order_type,
            status=STATUS_PENDING,
            shift_id=shift_id,
            cashier_id=self.store.current_cashier_id(),
            table_number=table_number,
            source=SOURCE_API if api_success else SOURCE_LOCAL,
            api_saved=api_success,
        )

        # cafeOrders backs the orders view for every type; savedOrders only mirrors non-cafe ones.
        self.store.append_cafe_order(order)
        self.orders = [existing for existing in self.orders if existing.order_id != order.order_id] + [order]
        if order_type != ORDER_TYPE_CAFE:
            saved = [raw for raw in self.store.saved_orders() if raw.get("order_id") != order.order_id]
            saved.append(order.to_dict())
            self.store.save_saved_orders(saved)

        cart.clear()
        detail = {"orderId": order.order_id, "orderType": order_type, "staffName": staff_name, "apiSuccess": api_success}
        self.events.emit(EVENT_CAFE_ORDER_ADDED, detail)
        if order_type != ORDER_TYPE_CAFE:
            self.events.emit(EVENT_ORDER_ADDED, detail)
        return SaveResult(order=order, api_success=api_success, message=MSG_SAVED_API if api_success else MSG_SAVED_LOCAL)

    # Payment

    def find(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.order_id == order_id:
                return order
        return None

    def mark_paid(self, order_id: str) -> ActionResult | None:
        """Complete ``order_id`` remotely, then locally; ``None`` if already in flight."""
        if not order_id:
            raise ValidationError(MSG_INVALID_ORDER_ID)
        with self._paying_lock:
            if order_id in self._paying:
                return None
            self._paying.add(order_id)
        try:
            response = self.api.patch(f"/orders/{order_id}/completed", {"status": STATUS_COMPLETED})
            short_id = order_id[:8]
            if not response.ok:
                reason = response.message or MSG_UNKNOWN_ERROR
                logger.warning("mark paid failed order=%s: %s", order_id, reason)
                return ActionResult(success=False, message=f"❌ فشل تأكيد دفع الطلب #{short_id}: {reason}")

            order = self.find(order_id)
            if order is None:
                # Paid before the first sync populated the view.
                order = next((stored for stored in self.store.cafe_orders() if stored.order_id == order_id), None)
            if order is not None:
                paid = replace(order, status=STATUS_COMPLETED, payment_time=_now_local().strftime("%H:%M:%S"))
                self.orders = [paid if existing.order_id == order_id else existing for existing in self.orders]
                self.store.replace_cafe_order(paid)
            self.events.emit(EVENT_CAFE_ORDER_PAID, {"orderId": order_id})
            return ActionResult(success=True, message=f"✅ تم تأكيد دفع الطلب #{short_id} بنجاح!", api_success=True)
        finally:
            with self._paying_lock:
                self._paying.discard(order_id)

    def confirm_all(self, shift_id: str) -> ActionResult:
        """Mark every unpaid order of ``shift_id`` as paid."""
        unpaid = [order for order in self.orders if order.shift_id == shift_id and not order.is_paid]
        if not unpaid:
            return ActionResult(success=False, message=MSG_NO_UNPAID)

        success_count = 0
        fail_count = 0
        for order in unpaid:
            result = self.mark_paid(order.order_id)
            if result is not None and result.success:
                success_count += 1
            else:
                fail_count += 1

        self.events.emit(EVENT_CAFE_ORDER_PAID, {"count": success_count})
        if success_count == 0:
            return ActionResult(success=False, message="❌ فشل في تأكيد دفع أي طلب. حاول مرة أخرى.")
        message = f"✅ تم تأكيد دفع {success_count} طلب بنجاح!"
        if fail_count:
            message += f"\n❌ فشل في تأكيد {fail_count} طلب."
        return ActionResult(success=True, message=message, api_success=True)

    # Delete

    def delete_order(self, order_id: str) -> ActionResult:
        """Delete remotely when the id came from the server, then always locally."""
        if not order_id:
            raise ValidationError(MSG_INVALID_ORDER_ID)

        api_success = False
        if not is_local_order_id(order_id):
            response = self.api.delete(f"/orders/{order_id}")
            api_success = response.ok
            if not api_success:
                logger.warning("remote delete failed order=%s, deleting locally: %s", order_id, response.message)

        self.orders = [order for order in self.orders if order.order_id != order_id]
        self.store.remove_cafe_order(order_id)
        self.events.emit(EVENT_CAFE_ORDER_DELETED, {"orderId": order_id, "apiSuccess": api_success})
        return ActionResult(
            success=True,
            message=MSG_DELETED_API if api_success else MSG_DELETED_LOCAL,
            api_success=api_success,
        )

    # Views

    def unpaid(self) -> list[Order]:
        return [order for order in self.orders if not order.is_paid and order.items]

    def paid(self) -> list[Order]:
        return [order for order in self.orders if order.is_paid and order.items]

    def for_shift(self, shift_id: str) -> list[Order]:
        return [order for order in self.orders if order.shift_id == shift_id]


def orders_from_raw(raw_orders: Iterable[Any]) -> list[Order]:
    """Normalize a list of backend order records, dropping unusable ones."""
    orders = []
    for raw in raw_orders:
        order = normalize_api_order(raw)
        if order is not None:
            orders.append(order)
    return orders


__all__ = [
    "ActionResult",
    "OrderService",
    "SaveResult",
    "filter_orders",
    "format_order_number",
    "generate_local_order_id",
    "is_local_order_id",
    "merge_orders",
    "orders_from_raw",
    "shift_totals",
]
