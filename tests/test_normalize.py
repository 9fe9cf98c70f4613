from __future__ import annotations

import math

import pytest

from goha_pos.constant import DEFAULT_SIZE, SOURCE_API, UNKNOWN_EXTRA, UNKNOWN_PRODUCT
from goha_pos.errors import SchemaError
from goha_pos.normalize import (
    normalize_api_order,
    normalize_extra,
    normalize_order_item,
    normalize_product,
    normalize_stock_item,
    to_number,
    unwrap_list,
)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "latte",
        {},
        {"product_size": "oops"},
        {"unit_price": "abc"},
        {"product": {"name": None}, "unit_price": float("nan")},
    ],
)
def test_malformed_items_degrade_to_placeholders(raw):
    item = normalize_order_item(raw, strict=False)

    assert item.name
    assert item.size_name
    assert isinstance(item.base_price, float)
    assert not math.isnan(item.base_price)
    assert item.quantity >= 1


def test_item_without_any_name_gets_unknown_product():
    item = normalize_order_item({"unit_price": "abc"}, strict=False)

    assert item.name == UNKNOWN_PRODUCT
    assert item.size_name == DEFAULT_SIZE
    assert item.base_price == 0.0


def test_product_size_shape():
    item = normalize_order_item(
        {
            "order_item_id": "oi-1",
            "quantity": 2,
            "product_size": {"product_name": "Latte", "size": {"size_name": "كبير"}, "price": "45"},
        }
    )

    assert item.item_id == "oi-1"
    assert item.name == "Latte"
    assert item.size_name == "كبير"
    assert item.base_price == 45.0
    assert item.quantity == 2


def test_product_and_product_size_objects_shape():
    item = normalize_order_item(
        {
            "product": {"product_id": "p1", "name": "Tea", "category": {"category_id": "c1", "name": "Hot"}},
            "productSize": {"product_size_id": "ps1", "price": 12, "size": {"size_id": "z1", "size_name": "وسط"}},
            "unit_price": 99,
        }
    )

    assert item.name == "Tea"
    assert item.product_id == "p1"
    assert item.size_name == "وسط"
    assert item.base_price == 12.0
    assert item.product_size_id == "ps1"
    assert item.category_id == "c1"


def test_product_object_without_size_uses_unit_price():
    item = normalize_order_item({"product": {"name": "Tea"}, "unit_price": "7.5"})

    assert item.size_name == DEFAULT_SIZE
    assert item.base_price == 7.5


def test_product_size_price_is_used_without_size_name():
    item = normalize_order_item({"product": {"name": "Tea"}, "productSize": {"price": "14"}, "unit_price": 99})

    assert item.size_name == DEFAULT_SIZE
    assert item.base_price == 14.0


def test_flat_product_name_shape():
    item = normalize_order_item({"product_name": "Mint", "size_name": "صغير", "unit_price": 10})

    assert (item.name, item.size_name, item.base_price) == ("Mint", "صغير", 10.0)


def test_direct_size_field_is_kept_for_name_only_items():
    item = normalize_order_item({"name": "Juice", "size": "وسط", "price": 20})

    assert item.name == "Juice"
    assert item.size_name == "وسط"
    assert item.base_price == 20.0


def test_extra_name_fallbacks():
    nested = normalize_extra({"extra": {"name": "Cheese", "price": "5"}})
    placeholder = normalize_extra({"extra_id": "abcdef123456"})
    unknown = normalize_extra({"price": 3})

    assert (nested.name, nested.price) == ("Cheese", 5.0)
    assert placeholder.name == "إضافة 123456"
    assert placeholder.price == 0.0
    assert unknown.name == UNKNOWN_EXTRA
    assert nested.quantity == 1


def test_strict_mode_raises_on_unknown_shapes():
    with pytest.raises(SchemaError):
        normalize_order_item({"quantity": 1}, strict=True)
    with pytest.raises(SchemaError):
        normalize_order_item(5, strict=True)
    with pytest.raises(SchemaError):
        normalize_extra({"price": 1}, strict=True)
    with pytest.raises(SchemaError):
        normalize_api_order({"total_price": 1}, strict=True)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("12.5", 12.5), (" 3 ", 3.0), (7, 7.0), (None, 0.0), (True, 0.0), ("inf", 0.0), ("x", 0.0), ({}, 0.0)],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_api_order_total_is_recomputed_from_items():
    order = normalize_api_order(
        {"order_id": "o1", "total_price": "1", "customer_name": "Ali", "status": "pending"},
        items=[{"product_name": "A", "unit_price": 50, "quantity": 2, "extras": [{"name": "E", "price": 5}]}],
    )

    assert order is not None
    assert order.total == 105.0
    assert order.staff_name == "Ali"
    assert order.source == SOURCE_API
    assert order.api_saved is True


def test_api_order_without_items_keeps_backend_total_and_links():
    order = normalize_api_order(
        {"order_id": "o2", "total_price": "99", "cashier": {"user_id": "u1"}, "shift": {"shift_id": "s1"}},
        items=[],
    )

    assert order is not None
    assert order.total == 99.0
    assert order.cashier_id == "u1"
    assert order.shift_id == "s1"


def test_api_order_without_id_is_dropped():
    assert normalize_api_order({"total_price": 10}, strict=False) is None
    assert normalize_api_order("nope", strict=False) is None


def test_unwrap_list():
    assert unwrap_list([1, 2], "orders") == [1, 2]
    assert unwrap_list({"orders": [3]}, "items", "orders") == [3]
    assert unwrap_list({"orders": "bad"}, "orders") == []
    assert unwrap_list(None, "orders") == []


def test_product_and_stock_item_normalizers():
    product = normalize_product(
        {
            "product_id": "p1",
            "name": "Coffee",
            "category": {"category_id": "c1", "name": "Hot"},
            "sizePrices": [{"product_size_id": "ps1", "price": "20", "size": {"size_id": "z1", "size_name": "S"}}],
        }
    )
    stock = normalize_stock_item({"id": "st1", "name": "Milk", "quantity": "4", "min_quantity": 2})

    assert product.category.category_id == "c1"
    assert product.size("ps1").price == 20.0
    assert product.size("missing") is None
    assert (stock.stock_item_id, stock.current_quantity, stock.minimum_value) == ("st1", 4.0, 2.0)
