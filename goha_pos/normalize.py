"""Normalizers turning heterogeneous API/local records into domain models.

The backend has shipped several shapes for the same records over time (and
the local cache holds yet another). Each normalizer walks an ordered list of
known shapes and takes the first match. In lenient mode (the default) nothing
here raises: unknown shapes degrade to placeholder values with a zero price.
With ``strict=True`` an unknown shape raises ``SchemaError`` instead.
"""

from __future__ import annotations

import logging
import math
import secrets
import time
from typing import Any

from goha_pos.cart import cart_total
from goha_pos.config import STRICT_PARSING
from goha_pos.constant import (
    DEFAULT_SIZE,
    EXTRA_PLACEHOLDER_PREFIX,
    ORDER_TYPE_CAFE,
    SOURCE_API,
    STATUS_PENDING,
    UNKNOWN_EXTRA,
    UNKNOWN_PRODUCT,
)
from goha_pos.errors import SchemaError
from goha_pos.models import CartExtra, CartItem, Category, Extra, Order, Product, SizePrice, StockItem

logger = logging.getLogger(__name__)


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite float, returning ``default`` when that fails."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


normalize_price = to_number


def _first(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


def _get(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _local_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def unwrap_list(data: Any, *keys: str) -> list[Any]:
    """Return ``data`` if it is a list, else the first list found under ``keys``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


def normalize_extra(raw: Any, strict: bool | None = None) -> CartExtra:
    strict = STRICT_PARSING if strict is None else strict
    if not isinstance(raw, dict):
        if strict:
            raise SchemaError(f"extra must be an object, got {type(raw).__name__}")
        return CartExtra(extra_id=_local_id("extra"), name=UNKNOWN_EXTRA, price=0.0)

    extra_id = str(_first(raw.get("extra_id"), raw.get("id"), _get(raw, "extra", "extra_id")) or "")
    name = _first(raw.get("name"), raw.get("extra_name"), _get(raw, "extra", "name"))
    if not name:
        if strict:
            raise SchemaError(f"extra {extra_id or '?'} has no name")
        name = f"{EXTRA_PLACEHOLDER_PREFIX} {extra_id[-6:]}" if extra_id else UNKNOWN_EXTRA
    price = to_number(_first(raw.get("price"), _get(raw, "extra", "price")))
    quantity = int(to_number(raw.get("quantity"), 1) or 1)
    return CartExtra(extra_id=extra_id or _local_id("extra"), name=str(name), price=price, quantity=quantity)


def normalize_order_item(raw: Any, strict: bool | None = None) -> CartItem:
    """Resolve product name, size, unit price and extras from any known item shape."""
    strict = STRICT_PARSING if strict is None else strict
    if not isinstance(raw, dict):
        if strict:
            raise SchemaError(f"order item must be an object, got {type(raw).__name__}")
        return CartItem(item_id=_local_id("item"), product_id="", name=UNKNOWN_PRODUCT, base_price=0.0, size_name=DEFAULT_SIZE)

    product_name = UNKNOWN_PRODUCT
    size_name = DEFAULT_SIZE
    base_price = 0.0
    try:
        if raw.get("size"):
            size_name = str(raw["size"])

        if raw.get("product_size"):
            product_size = raw["product_size"]
            product_name = product_size.get("product_name") or product_name
            size_name = _first(_get(product_size, "size", "size_name"), product_size.get("size_name")) or size_name
            base_price = to_number(_first(product_size.get("price"), raw.get("unit_price")))
        elif _get(raw, "product", "name"):
            product_name = raw["product"]["name"]
            size_name = _get(raw, "productSize", "size", "size_name") or size_name
            base_price = to_number(_first(_get(raw, "productSize", "price"), raw.get("unit_price")))
        elif raw.get("product_name"):
            product_name = raw["product_name"]
            size_name = _first(raw.get("size_name"), raw.get("size")) or size_name
            base_price = to_number(_first(raw.get("unit_price"), raw.get("price")))
        else:
            name = _first(raw.get("name"), _get(raw, "product", "name"), raw.get("productName"))
            if name:
                product_name = name
            elif strict:
                raise SchemaError("order item has no recognizable product name")
            base_price = to_number(_first(raw.get("unit_price"), raw.get("price")))
    except SchemaError:
        raise
    except Exception as exc:
        if strict:
            raise SchemaError(f"malformed order item: {exc}") from exc
        logger.warning("falling back to placeholder item: %s", exc)
        product_name = _first(raw.get("product_name"), raw.get("name")) or UNKNOWN_PRODUCT
        size_name = _first(raw.get("size_name"), raw.get("size")) or DEFAULT_SIZE
        base_price = to_number(_first(raw.get("unit_price"), raw.get("price")))

    extras: list[CartExtra] = []
    if isinstance(raw.get("extras"), list):
        extras = [normalize_extra(extra, strict=strict) for extra in raw["extras"]]

    quantity = int(to_number(raw.get("quantity"), 1) or 1)
    return CartItem(
        item_id=str(_first(raw.get("order_item_id"), raw.get("item_id"), raw.get("id")) or _local_id("item")),
        product_id=str(_first(_get(raw, "product", "product_id"), raw.get("product_id"), raw.get("productId")) or ""),
        name=str(product_name) or UNKNOWN_PRODUCT,
        base_price=base_price,
        quantity=max(1, quantity),
        size_name=str(size_name) or DEFAULT_SIZE,
        size_id=str(_first(_get(raw, "productSize", "size", "size_id"), raw.get("size_id"), raw.get("sizeId")) or ""),
        product_size_id=str(
            _first(
                _get(raw, "productSize", "product_size_id"),
                raw.get("product_size_id"),
                raw.get("productSizeId"),
            )
            or ""
        ),
        notes=str(_first(raw.get("notes"), raw.get("special_instructions")) or ""),
        category_id=str(_first(_get(raw, "product", "category", "category_id"), raw.get("category_id")) or ""),
        category_name=str(_first(_get(raw, "product", "category", "name"), raw.get("category")) or ""),
        extras=extras,
    )


def normalize_api_order(raw: Any, items: list[Any] | None = None, strict: bool | None = None) -> Order | None:
    """Build an ``Order`` from a backend order record; ``None`` if it has no id."""
    strict = STRICT_PARSING if strict is None else strict
    if not isinstance(raw, dict) or not _first(raw.get("order_id"), raw.get("id")):
        if strict:
            raise SchemaError("order record has no order_id")
        return None

    raw_items = items if items is not None else raw.get("items") or []
    normalized = [normalize_order_item(item, strict=strict) for item in raw_items]
    total = cart_total(normalized) if normalized else to_number(raw.get("total_price"))
    cashier = raw.get("cashier") if isinstance(raw.get("cashier"), dict) else {}
    shift = raw.get("shift") if isinstance(raw.get("shift"), dict) else {}
    return Order(
        order_id=str(_first(raw.get("order_id"), raw.get("id"))),
        staff_name=str(_first(raw.get("customer_name"), raw.get("staffName")) or ""),
        items=normalized,
        total=total,
        created_at=str(raw.get("created_at") or ""),
        order_type=str(raw.get("order_type") or ORDER_TYPE_CAFE),
        status=str(raw.get("status") or STATUS_PENDING),
        shift_id=str(_first(raw.get("shift_id"), shift.get("shift_id")) or ""),
        cashier_id=str(_first(raw.get("cashier_id"), cashier.get("user_id"), cashier.get("id")) or ""),
        table_number=str(raw.get("table_number") or ""),
        payment_method=str(raw.get("payment_method") or ""),
        payment_time=str(raw.get("paymentTime") or raw.get("payment_time") or ""),
        source=SOURCE_API,
        api_saved=True,
    )


def normalize_category(raw: dict[str, Any]) -> Category:
    return Category(
        category_id=str(_first(raw.get("category_id"), raw.get("id")) or ""),
        name=str(raw.get("name") or ""),
    )


def normalize_product(raw: dict[str, Any]) -> Product:
    size_prices = []
    for size_price in raw.get("sizePrices") or raw.get("size_prices") or []:
        if not isinstance(size_price, dict):
            continue
        size_prices.append(
            SizePrice(
                product_size_id=str(size_price.get("product_size_id") or ""),
                size_id=str(_get(size_price, "size", "size_id") or ""),
                size_name=str(_first(_get(size_price, "size", "size_name"), size_price.get("size_name")) or DEFAULT_SIZE),
                price=to_number(size_price.get("price")),
            )
        )
    category = raw.get("category") if isinstance(raw.get("category"), dict) else {}
    return Product(
        product_id=str(_first(raw.get("product_id"), raw.get("id")) or ""),
        name=str(raw.get("name") or UNKNOWN_PRODUCT),
        category=normalize_category(category),
        size_prices=tuple(size_prices),
        is_active=bool(raw.get("is_active", True)),
        image_url=str(raw.get("image_url") or ""),
    )


def normalize_catalog_extra(raw: dict[str, Any]) -> Extra:
    return Extra(
        extra_id=str(_first(raw.get("extra_id"), raw.get("id")) or ""),
        name=str(raw.get("name") or UNKNOWN_EXTRA),
        price=to_number(raw.get("price")),
        category_id=str(_first(_get(raw, "category", "category_id"), raw.get("category_id")) or ""),
    )


def normalize_stock_item(raw: dict[str, Any]) -> StockItem:
    return StockItem(
        stock_item_id=str(_first(raw.get("stock_item_id"), raw.get("id")) or ""),
        name=str(raw.get("name") or ""),
        type=str(raw.get("type") or ""),
        current_quantity=to_number(_first(raw.get("current_quantity"), raw.get("quantity"))),
        minimum_value=to_number(_first(raw.get("minimum_value"), raw.get("min_quantity"))),
        unit=str(raw.get("unit") or ""),
        price=to_number(raw.get("price")),
        last_updated_at=str(_first(raw.get("last_updated_at"), raw.get("last_updated")) or ""),
    )
