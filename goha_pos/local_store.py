"""SQLite-backed key/value mirror used as the offline cache."""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from goha_pos.config import DB_PATH
from goha_pos.constant import (
    KEY_AUTH_TOKEN,
    KEY_CAFE_ORDERS,
    KEY_CURRENT_SHIFT,
    KEY_CURRENT_USER,
    KEY_SAVED_ORDERS,
    UNKNOWN_USER,
)
from goha_pos.models import Order

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalStore:
    """Typed accessors over a JSON key/value table.

    Every value is a JSON document; missing or unreadable keys fall back to
    the caller's default instead of raising.
    """

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def bootstrap_schema(self) -> None:
        """Create the storage table if it does not already exist."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def get_json(self, key: str, default: Any) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM local_storage WHERE key = ?", (key,)).fetchone()
        if row is None:
            return copy.deepcopy(default)
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("unreadable value for key=%s, using default", key)
            return copy.deepcopy(default)

    def set_json(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self._connect() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO local_storage (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, payload, _utc_now_iso()),
                )

    def remove(self, key: str) -> None:
        with self._connect() as conn:
            with conn:
                conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))

    # Session

    def current_user(self) -> dict[str, Any]:
        user = self.get_json(KEY_CURRENT_USER, {})
        return user if isinstance(user, dict) else {}

    def set_current_user(self, user: dict[str, Any]) -> None:
        self.set_json(KEY_CURRENT_USER, user)

    def current_shift(self) -> dict[str, Any]:
        shift = self.get_json(KEY_CURRENT_SHIFT, {})
        return shift if isinstance(shift, dict) else {}

    def set_current_shift(self, shift: dict[str, Any]) -> None:
        self.set_json(KEY_CURRENT_SHIFT, shift)

    def auth_token(self) -> str:
        token = self.get_json(KEY_AUTH_TOKEN, "")
        return token if isinstance(token, str) else ""

    def set_auth_token(self, token: str) -> None:
        self.set_json(KEY_AUTH_TOKEN, token)

    def current_cashier_id(self) -> str:
        user = self.current_user()
        return str(user.get("user_id") or user.get("worker_id") or user.get("id") or "")

    def current_user_name(self) -> str:
        user = self.current_user()
        for key in ("full_name", "fullName", "name", "username"):
            if user.get(key):
                return str(user[key])
        return UNKNOWN_USER

    def current_shift_id(self) -> str:
        shift_id = self.current_shift().get("shift_id")
        if shift_id:
            return str(shift_id)
        user_shift = self.current_user().get("shift") or {}
        if isinstance(user_shift, dict):
            return str(user_shift.get("shift_id") or "")
        return ""

    # Orders

    def cafe_orders(self) -> list[Order]:
        raw_orders = self.get_json(KEY_CAFE_ORDERS, [])
        if not isinstance(raw_orders, list):
            return []
        orders: list[Order] = []
        for raw in raw_orders:
            try:
                orders.append(Order.from_dict(raw))
            except (TypeError, AttributeError) as exc:
                logger.warning("dropping unreadable local order: %s", exc)
        return orders

    def save_cafe_orders(self, orders: Iterable[Order]) -> None:
        self.set_json(KEY_CAFE_ORDERS, [order.to_dict() for order in orders])

    def append_cafe_order(self, order: Order) -> list[Order]:
        """Append ``order`` replacing any stored order with the same id."""
        orders = [existing for existing in self.cafe_orders() if existing.order_id != order.order_id]
        orders.append(order)
        self.save_cafe_orders(orders)
        return orders

    def replace_cafe_order(self, order: Order) -> None:
        """Overwrite the stored copy of ``order`` in place, appending if absent."""
        orders = self.cafe_orders()
        for idx, existing in enumerate(orders):
            if existing.order_id == order.order_id:
                orders[idx] = order
                break
        else:
            orders.append(order)
        self.save_cafe_orders(orders)

    def remove_cafe_order(self, order_id: str) -> bool:
        orders = self.cafe_orders()
        remaining = [order for order in orders if order.order_id != order_id]
        self.save_cafe_orders(remaining)
        return len(remaining) != len(orders)

    def saved_orders(self) -> list[dict[str, Any]]:
        raw_orders = self.get_json(KEY_SAVED_ORDERS, [])
        return raw_orders if isinstance(raw_orders, list) else []

    def save_saved_orders(self, orders: list[dict[str, Any]]) -> None:
        self.set_json(KEY_SAVED_ORDERS, orders)
