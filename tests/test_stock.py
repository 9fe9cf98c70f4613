from __future__ import annotations

import json

import pytest

from goha_pos.constant import STOCK_STATUS_AVAILABLE, STOCK_STATUS_LOW, STOCK_STATUS_OUT, STOCK_STATUS_WARNING
from goha_pos.errors import ValidationError
from goha_pos.models import StockItem, stock_status
from goha_pos.stock import StockService, apply_transaction, filter_items, stock_stats


def _item(stock_item_id: str, quantity: float, minimum: float = 5, **kwargs) -> StockItem:
    return StockItem(
        stock_item_id=stock_item_id,
        name=kwargs.pop("name", f"Item {stock_item_id}"),
        type=kwargs.pop("type", "INGREDIENT"),
        current_quantity=quantity,
        minimum_value=minimum,
        unit="kg",
        **kwargs,
    )


@pytest.fixture
def service(api, logged_in_store):
    return StockService(api, logged_in_store)


@pytest.mark.parametrize(
    ("quantity", "minimum", "expected"),
    [
        (0, 5, STOCK_STATUS_OUT),
        (-2, 5, STOCK_STATUS_OUT),
        (5, 5, STOCK_STATUS_LOW),
        (7, 5, STOCK_STATUS_WARNING),
        (7.5, 5, STOCK_STATUS_WARNING),
        (8, 5, STOCK_STATUS_AVAILABLE),
    ],
)
def test_stock_status_thresholds(quantity, minimum, expected):
    assert stock_status(quantity, minimum) == expected


def test_stock_stats():
    items = [
        _item("a", 0, price=3),
        _item("b", 4, price=10),
        _item("c", 6, price=1),
        _item("d", 100, price=2),
    ]

    stats = stock_stats(items)

    assert stats.total_items == 4
    assert stats.out_of_stock_items == 1
    assert stats.low_stock_items == 2
    assert stats.critical_alerts == 2
    assert stats.total_value == 246


def test_apply_transaction_floors_at_zero():
    item = _item("a", 3)

    assert apply_transaction(item, "in", 2).current_quantity == 5
    assert apply_transaction(item, "out", 10).current_quantity == 0
    assert item.current_quantity == 3


def test_filter_items():
    items = [_item("a", 0, name="Milk", type="DRINK"), _item("b", 50, name="Sugar")]

    assert [item.stock_item_id for item in filter_items(items, query="mil")] == ["a"]
    assert [item.stock_item_id for item in filter_items(items, item_type="INGREDIENT")] == ["b"]
    assert [item.stock_item_id for item in filter_items(items, status=STOCK_STATUS_OUT)] == ["a"]


def test_fetch_items_unwraps_and_keeps_cache_on_failure(service, backend):
    backend.add(
        "GET",
        "/stock-items",
        {"success": True, "data": {"stockItems": [{"stock_item_id": "a", "name": "Milk", "current_quantity": "2.5", "minimum_value": 5}]}},
    )

    items = service.fetch_items()

    assert [(item.stock_item_id, item.current_quantity) for item in items] == [("a", 2.5)]

    backend.fail("GET", "/stock-items")
    assert service.fetch_items() == items


@pytest.mark.parametrize(("kind", "quantity"), [("sideways", 1), ("in", 0), ("out", -3)])
def test_record_transaction_validates(service, backend, kind, quantity):
    with pytest.raises(ValidationError):
        service.record_transaction("a", kind, quantity)
    assert backend.calls == []


def test_record_transaction_posts_and_updates_cache(service, backend):
    service.items = [_item("a", 10)]
    backend.add("POST", "/stock-transactions", {"success": True, "data": {}})

    result = service.record_transaction("a", "out", 4)

    assert result.api_success is True
    assert result.item.current_quantity == 6
    assert service.find("a").current_quantity == 6
    payload = json.loads(backend.called("POST", "/stock-transactions")[0].content)
    assert payload == {
        "stock_item_id": "a",
        "type": "out",
        "quantity": 4,
        "shift_id": "s1",
        "user_id": "u1",
        "notes": "Stock reduction for Item a",
    }


def test_record_transaction_applies_locally_when_api_fails(service, backend):
    service.items = [_item("a", 3)]
    backend.add("POST", "/stock-transactions", {"message": "down"}, status=503)

    result = service.record_transaction("a", "out", 5)

    assert result.api_success is False
    assert result.message == "تم تحديث الكمية محلياً فقط"
    assert service.find("a").current_quantity == 0


def test_record_transaction_without_session_sends_nulls(api, store, backend):
    service = StockService(api, store)
    backend.add("POST", "/stock-transactions", {"success": True})

    result = service.record_transaction("ghost", "in", 1, notes="delivery")

    payload = json.loads(backend.called("POST", "/stock-transactions")[0].content)
    assert payload["shift_id"] is None
    assert payload["user_id"] is None
    assert payload["notes"] == "delivery"
    assert result.item is None


def test_fetch_low_stock_falls_back_to_cache(service, backend):
    service.items = [_item("a", 0), _item("b", 4), _item("c", 6), _item("d", 20)]
    backend.add("GET", "/stock-items/low-stock", {"message": "boom"}, status=500)

    assert [item.stock_item_id for item in service.fetch_low_stock()] == ["a", "b"]


def test_fetch_shift_report(service, backend):
    backend.add("GET", "/stock-reports/shift/s1", {"success": True, "data": {"opening": 1}})
    backend.add("GET", "/stock-transactions", {"success": True, "data": {"transactions": [{"id": "t1"}]}})
    backend.add(
        "GET",
        "/stock-items",
        {
            "success": True,
            "data": [
                {"stock_item_id": "a", "name": "Milk", "current_quantity": 0, "minimum_value": 5},
                {"stock_item_id": "b", "name": "Tea", "current_quantity": 3, "minimum_value": 5},
            ],
        },
    )

    report = service.fetch_shift_report("s1")

    assert report["shift_report"] == {"opening": 1}
    assert [item.stock_item_id for item in report["low_stock_items"]] == ["b"]
    assert [item.stock_item_id for item in report["critical_alerts"]] == ["a"]
    assert report["summary"]["transaction_count"] == 1
