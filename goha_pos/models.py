"""Domain models for the POS client."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from goha_pos.constant import (
    ORDER_TYPE_CAFE,
    SOURCE_LOCAL,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STOCK_STATUS_AVAILABLE,
    STOCK_STATUS_LOW,
    STOCK_STATUS_OUT,
    STOCK_STATUS_WARNING,
    STOCK_WARNING_FACTOR,
)


@dataclass(frozen=True)
class Category:
    """A menu category."""

    category_id: str
    name: str


@dataclass(frozen=True)
class SizePrice:
    """One purchasable size of a product."""

    product_size_id: str
    size_id: str
    size_name: str
    price: float


@dataclass(frozen=True)
class Product:
    """A menu product with its size/price list."""

    product_id: str
    name: str
    category: Category
    size_prices: tuple[SizePrice, ...] = ()
    is_active: bool = True
    image_url: str = ""

    def size(self, product_size_id: str) -> SizePrice | None:
        for size_price in self.size_prices:
            if size_price.product_size_id == product_size_id:
                return size_price
        return None


@dataclass(frozen=True)
class Extra:
    """A paid addition offered for a category."""

    extra_id: str
    name: str
    price: float
    category_id: str = ""


@dataclass
class CartExtra:
    """An extra attached to one cart line."""

    extra_id: str
    name: str
    price: float
    quantity: int = 1


_CART_EXTRA_FIELDS = set(CartExtra.__dataclass_fields__)


@dataclass
class CartItem:
    """A configured product line waiting in the cart or stored on an order."""

    item_id: str
    product_id: str
    name: str
    base_price: float
    quantity: int = 1
    size_name: str = ""
    size_id: str = ""
    product_size_id: str = ""
    notes: str = ""
    category_id: str = ""
    category_name: str = ""
    extras: list[CartExtra] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CartItem":
        extras = [
            CartExtra(**{key: value for key, value in extra.items() if key in _CART_EXTRA_FIELDS})
            for extra in raw.get("extras", [])
        ]
        values = {key: value for key, value in raw.items() if key != "extras" and key in _CART_ITEM_FIELDS}
        return cls(extras=extras, **values)


_CART_ITEM_FIELDS = set(CartItem.__dataclass_fields__)


@dataclass
class Order:
    """A saved order, either confirmed by the server or kept locally."""

    order_id: str
    staff_name: str
    items: list[CartItem]
    total: float
    created_at: str
    order_type: str = ORDER_TYPE_CAFE
    status: str = STATUS_PENDING
    shift_id: str = ""
    cashier_id: str = ""
    table_number: str = ""
    payment_method: str = ""
    payment_time: str = ""
    source: str = SOURCE_LOCAL
    api_saved: bool = False

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_COMPLETED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["is_paid"] = self.is_paid
        return data

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Order":
        items = [CartItem.from_dict(item) for item in raw.get("items", [])]
        values = {key: value for key, value in raw.items() if key != "items" and key in _ORDER_FIELDS}
        return cls(items=items, **values)


_ORDER_FIELDS = set(Order.__dataclass_fields__)


@dataclass
class StockItem:
    """An inventory item; status is derived from quantity versus minimum."""

    stock_item_id: str
    name: str
    type: str
    current_quantity: float
    minimum_value: float
    unit: str = ""
    price: float = 0.0
    last_updated_at: str = ""

    @property
    def status(self) -> str:
        return stock_status(self.current_quantity, self.minimum_value)


def stock_status(current_quantity: float, minimum_value: float) -> str:
    """Classify a quantity as out / low / warning / available."""
    if current_quantity <= 0:
        return STOCK_STATUS_OUT
    if current_quantity <= minimum_value:
        return STOCK_STATUS_LOW
    if current_quantity <= minimum_value * STOCK_WARNING_FACTOR:
        return STOCK_STATUS_WARNING
    return STOCK_STATUS_AVAILABLE


@dataclass(frozen=True)
class StockTransaction:
    """A stock movement posted to the backend."""

    stock_item_id: str
    type: str
    quantity: float
    shift_id: str = ""
    user_id: str = ""
    notes: str = ""


def _type_counter() -> dict[str, float]:
    return {"dine-in": 0, "takeaway": 0, "delivery": 0, "cafe": 0}


@dataclass
class CashierActivity:
    """Per-cashier activity derived from today's orders."""

    cashier_id: str
    cashier_name: str
    orders_today: int = 0
    total_sales: float = 0.0
    last_order_time: str = ""
    is_active: bool = False
    order_types: dict[str, float] = field(default_factory=_type_counter)
    sales_by_type: dict[str, float] = field(default_factory=_type_counter)


@dataclass
class TodayStats:
    total_orders: int = 0
    total_sales: float = 0.0
    completed_orders: int = 0
    pending_orders: int = 0
    active_cashiers: int = 0
    orders_by_type: dict[str, float] = field(default_factory=_type_counter)
    sales_by_type: dict[str, float] = field(default_factory=_type_counter)


@dataclass
class OrderStats:
    total_orders: int = 0
    total_revenue: float = 0.0
    average_order_value: float = 0.0
    orders_by_type: dict[str, int] = field(default_factory=dict)
    orders_by_status: dict[str, int] = field(default_factory=dict)
    orders_by_payment: dict[str, int] = field(default_factory=dict)


@dataclass
class ShiftSummary:
    """Aggregated view of one shift, from the backend or rebuilt from orders."""

    shift_id: str
    type: str = ""
    status: str = ""
    start_time: str = ""
    end_time: str = ""
    opened_by: str = ""
    cashier_names: list[str] = field(default_factory=list)
    total_orders: int = 0
    total_sales: float = 0.0
    average_order_value: float = 0.0
    orders_by_type: dict[str, int] = field(default_factory=dict)
    orders_by_status: dict[str, int] = field(default_factory=dict)
    orders_by_payment: dict[str, int] = field(default_factory=dict)
    workers: list[dict[str, Any]] = field(default_factory=list)
    total_staff_cost: float = 0.0
    expenses: list[dict[str, Any]] = field(default_factory=list)
    total_expenses: float = 0.0
    expenses_by_category: dict[str, float] = field(default_factory=dict)
    # True when no backend shift record existed and orders were grouped by cashier.
    synthetic: bool = False
