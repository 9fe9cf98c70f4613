"""Inventory: stock items, in/out transactions and shift stock reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable

from goha_pos.api import ApiClient
from goha_pos.constant import (
    STOCK_STATUS_LOW,
    STOCK_STATUS_OUT,
    STOCK_STATUS_WARNING,
    STOCK_TRANSACTION_IN,
    STOCK_TRANSACTION_OUT,
)
from goha_pos.errors import ValidationError
from goha_pos.local_store import LocalStore
from goha_pos.models import StockItem, StockTransaction
from goha_pos.normalize import normalize_stock_item, unwrap_list

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionResult:
    transaction: StockTransaction
    item: StockItem | None
    api_success: bool
    message: str


@dataclass(frozen=True)
class StockStats:
    total_items: int = 0
    low_stock_items: int = 0
    out_of_stock_items: int = 0
    critical_alerts: int = 0
    total_value: float = 0.0


def stock_stats(items: Iterable[StockItem]) -> StockStats:
    """Totals for the stock dashboard; low counts warnings too, critical is low or out."""
    total = low = out = critical = 0
    value = 0.0
    for item in items:
        total += 1
        value += item.price * item.current_quantity
        status = item.status
        if status == STOCK_STATUS_OUT:
            out += 1
        if status in (STOCK_STATUS_LOW, STOCK_STATUS_WARNING):
            low += 1
        if status in (STOCK_STATUS_OUT, STOCK_STATUS_LOW):
            critical += 1
    return StockStats(
        total_items=total,
        low_stock_items=low,
        out_of_stock_items=out,
        critical_alerts=critical,
        total_value=value,
    )


def apply_transaction(item: StockItem, kind: str, quantity: float) -> StockItem:
    if kind == STOCK_TRANSACTION_IN:
        new_quantity = item.current_quantity + quantity
    else:
        new_quantity = max(0.0, item.current_quantity - quantity)
    return replace(item, current_quantity=new_quantity)


def filter_items(items: Iterable[StockItem], query: str = "", item_type: str = "", status: str = "") -> list[StockItem]:
    q = query.strip().lower()
    return [
        item
        for item in items
        if (not q or q in item.name.lower())
        and (not item_type or item.type == item_type)
        and (not status or item.status == status)
    ]


class StockService:
    def __init__(self, api: ApiClient, store: LocalStore) -> None:
        self.api = api
        self.store = store
        self.items: list[StockItem] = []

    def _parse_items(self, data: Any) -> list[StockItem]:
        return [normalize_stock_item(raw) for raw in unwrap_list(data, "stockItems", "items") if isinstance(raw, dict)]

    def fetch_items(self) -> list[StockItem]:
        response = self.api.get("/stock-items")
        if not response.success:
            logger.warning("stock items fetch failed, keeping %d cached: %s", len(self.items), response.message)
            return self.items
        self.items = self._parse_items(response.data)
        return self.items

    def fetch_items_by_type(self, item_type: str) -> list[StockItem]:
        response = self.api.get(f"/stock-items/type/{item_type}")
        if not response.success:
            logger.info("type fetch failed, filtering cached items by type=%s", item_type)
            return [item for item in self.items if item.type == item_type]
        return self._parse_items(response.data)

    def fetch_low_stock(self) -> list[StockItem]:
        response = self.api.get("/stock-items/low-stock")
        if response.success:
            return self._parse_items(response.data)
        logger.info("low-stock endpoint failed, deriving from cached items")
        return [item for item in self.items if item.status in (STOCK_STATUS_OUT, STOCK_STATUS_LOW)]

    def find(self, stock_item_id: str) -> StockItem | None:
        for item in self.items:
            if item.stock_item_id == stock_item_id:
                return item
        return None

    def record_transaction(self, stock_item_id: str, kind: str, quantity: float, notes: str = "") -> TransactionResult:
        """Post an in/out movement and apply it to the cached item whatever the API says."""
        if kind not in (STOCK_TRANSACTION_IN, STOCK_TRANSACTION_OUT):
            raise ValidationError(f"نوع الحركة غير صحيح: {kind}")
        if quantity <= 0:
            raise ValidationError("يجب أن تكون الكمية أكبر من صفر")

        item = self.find(stock_item_id)
        if not notes:
            direction = "addition" if kind == STOCK_TRANSACTION_IN else "reduction"
            notes = f"Stock {direction} for {item.name if item else stock_item_id}"

        transaction = StockTransaction(
            stock_item_id=stock_item_id,
            type=kind,
            quantity=quantity,
            shift_id=self.store.current_shift_id(),
            user_id=self.store.current_cashier_id(),
            notes=notes,
        )
        response = self.api.post(
            "/stock-transactions",
            {
                "stock_item_id": transaction.stock_item_id,
                "type": transaction.type,
                "quantity": transaction.quantity,
                "shift_id": transaction.shift_id or None,
                "user_id": transaction.user_id or None,
                "notes": transaction.notes,
            },
        )
        if not response.ok:
            logger.warning("stock transaction not recorded item=%s: %s", stock_item_id, response.message)

        updated = None
        if item is not None:
            updated = apply_transaction(item, kind, quantity)
            self.items = [updated if existing.stock_item_id == stock_item_id else existing for existing in self.items]

        message = "تم تحديث الكمية بنجاح" if response.ok else "تم تحديث الكمية محلياً فقط"
        return TransactionResult(transaction=transaction, item=updated, api_success=response.ok, message=message)

    def fetch_transactions(self, limit: int = 50) -> list[dict[str, Any]]:
        response = self.api.get("/stock-transactions", limit=limit)
        if not response.success:
            return []
        return [raw for raw in unwrap_list(response.data, "transactions") if isinstance(raw, dict)]

    def fetch_shift_report(self, shift_id: str, report_date: date | None = None) -> dict[str, Any]:
        """Shift stock report plus a daily summary computed from current items."""
        report_date = report_date or date.today()
        response = self.api.get(f"/stock-reports/shift/{shift_id}", date=report_date.isoformat())
        transactions = self.fetch_transactions(limit=100)
        items = self.fetch_items()
        stats = stock_stats(items)
        return {
            "shift_report": response.data if response.success else None,
            "transactions": transactions,
            "low_stock_items": [item for item in items if 0 < item.current_quantity <= item.minimum_value],
            "critical_alerts": [item for item in items if item.current_quantity <= 0],
            "summary": {
                "total_items": stats.total_items,
                "total_value": stats.total_value,
                "low_stock_count": stats.low_stock_items,
                "critical_count": stats.critical_alerts,
                "transaction_count": len(transactions),
            },
        }
