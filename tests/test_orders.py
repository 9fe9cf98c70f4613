from __future__ import annotations

import json
import re

import httpx
import pytest

from goha_pos.cart import Cart
from goha_pos.constant import (
    EVENT_CAFE_ORDER_ADDED,
    EVENT_CAFE_ORDER_DELETED,
    EVENT_CAFE_ORDER_PAID,
    EVENT_ORDER_ADDED,
    MSG_DELETED_API,
    MSG_DELETED_LOCAL,
    MSG_NO_UNPAID,
    MSG_SAVED_API,
    MSG_SAVED_LOCAL,
    ORDER_TYPE_TAKEAWAY,
    SOURCE_API,
    SOURCE_LOCAL,
    STATUS_COMPLETED,
)
from goha_pos.errors import ValidationError
from goha_pos.events import EventBus
from goha_pos.models import CartExtra, CartItem, Order
from goha_pos.orders import (
    OrderService,
    filter_orders,
    format_order_number,
    generate_local_order_id,
    merge_orders,
    shift_totals,
)


def _line(base: float = 50, quantity: int = 2) -> CartItem:
    return CartItem(
        item_id=f"line-{base}",
        product_id="p1",
        name="Latte",
        base_price=base,
        quantity=quantity,
        product_size_id="ps1",
        extras=[CartExtra(extra_id="e1", name="Shot", price=5)],
    )


def _cart() -> Cart:
    cart = Cart()
    cart.add(_line())
    return cart


def _order(order_id: str, *, shift_id: str = "s1", cashier_id: str = "u1", status: str = "pending", items=None) -> Order:
    return Order(
        order_id=order_id,
        staff_name="Ali",
        items=[_line()] if items is None else items,
        total=105.0,
        created_at="2024-05-01T10:00:00",
        status=status,
        shift_id=shift_id,
        cashier_id=cashier_id,
        table_number="4",
    )


@pytest.fixture
def events():
    bus = EventBus()
    bus.seen = []
    for name in (EVENT_CAFE_ORDER_ADDED, EVENT_ORDER_ADDED, EVENT_CAFE_ORDER_PAID, EVENT_CAFE_ORDER_DELETED):
        bus.subscribe(name, lambda event_name, detail: bus.seen.append((event_name, detail)))
    return bus


@pytest.fixture
def service(api, logged_in_store, events):
    return OrderService(api, logged_in_store, events)


def test_local_order_id_format():
    assert re.fullmatch(r"cafe_1700000000000_[0-9a-z]{9}", generate_local_order_id(1700000000000))


def test_save_adopts_server_id(service, backend, logged_in_store, events):
    backend.add("POST", "/orders", {"success": True, "data": {"order_id": "srv-1"}})
    cart = _cart()

    result = service.save_order(cart, staff_name="Ali", table_number="4")

    assert result.api_success is True
    assert result.message == MSG_SAVED_API
    assert result.order.order_id == "srv-1"
    assert result.order.source == SOURCE_API
    assert result.order.total == 105.0
    assert cart.is_empty
    assert [order.order_id for order in logged_in_store.cafe_orders()] == ["srv-1"]
    assert events.seen[-1][0] == EVENT_CAFE_ORDER_ADDED

    [request] = backend.called("POST", "/orders")
    payload = json.loads(request.content)
    assert payload["cashier_id"] == "u1"
    assert payload["shift_id"] == "s1"
    assert payload["table_number"] == "4"
    assert payload["items"][0]["unit_price"] == 50
    assert payload["items"][0]["extras"] == [{"extra_id": "e1", "quantity": 1, "price": 5}]


@pytest.mark.parametrize("failure", ["http", "network", "envelope"])
def test_save_falls_back_to_local_order(service, backend, logged_in_store, failure):
    if failure == "http":
        backend.add("POST", "/orders", {"message": "boom"}, status=500)
    elif failure == "network":
        backend.fail("POST", "/orders")
    else:
        backend.add("POST", "/orders", {"success": False, "message": "rejected"})

    result = service.save_order(_cart())

    assert result.api_success is False
    assert result.message == MSG_SAVED_LOCAL
    assert result.order.order_id.startswith("cafe_")
    assert result.order.source == SOURCE_LOCAL
    assert result.order.api_saved is False
    assert len(logged_in_store.cafe_orders()) == 1


def test_concurrent_save_is_a_no_op(service, backend, logged_in_store):
    cart = _cart()
    nested = []

    def _slow_post(request: httpx.Request) -> httpx.Response:
        nested.append(service.save_order(cart))
        return httpx.Response(200, json={"success": True, "data": {"order_id": "srv-1"}})

    backend.add_handler("POST", "/orders", _slow_post)

    result = service.save_order(cart)

    assert nested == [None]
    assert result is not None
    assert len(backend.called("POST", "/orders")) == 1
    assert len(logged_in_store.cafe_orders()) == 1


def test_save_guards(api, store, events):
    service = OrderService(api, store, events)

    with pytest.raises(ValidationError):
        service.save_order(Cart())
    with pytest.raises(ValidationError):
        service.save_order(_cart())
    assert store.cafe_orders() == []


def test_non_cafe_orders_stay_listed(service, backend, logged_in_store, events):
    backend.add("POST", "/orders", {"success": True, "data": {"order_id": "srv-2"}})

    service.save_order(_cart(), order_type=ORDER_TYPE_TAKEAWAY)

    assert [order.order_id for order in service.orders] == ["srv-2"]
    assert [raw["order_id"] for raw in logged_in_store.saved_orders()] == ["srv-2"]
    assert [name for name, _ in events.seen] == [EVENT_CAFE_ORDER_ADDED, EVENT_ORDER_ADDED]

    # No shift-cafe route: the remote fetch fails and the local copy survives.
    synced = service.load_and_sync()

    assert [(order.order_id, order.order_type) for order in synced] == [("srv-2", ORDER_TYPE_TAKEAWAY)]


def test_mark_paid_before_first_sync_updates_stored_copy(service, backend, logged_in_store):
    logged_in_store.save_cafe_orders([_order("srv-1")])
    backend.add("PATCH", "/orders/srv-1/completed", {"success": True})

    result = service.mark_paid("srv-1")

    assert result.success is True
    assert service.orders == []
    assert logged_in_store.cafe_orders()[0].is_paid is True


def test_mark_paid_updates_status_only(service, backend, logged_in_store, events):
    order = _order("srv-1")
    service.orders = [order]
    logged_in_store.save_cafe_orders([order])
    backend.add("PATCH", "/orders/srv-1/completed", {"success": True, "data": {}})

    result = service.mark_paid("srv-1")

    paid = service.find("srv-1")
    assert result.success is True
    assert paid.status == STATUS_COMPLETED
    assert paid.is_paid is True
    assert paid.items == order.items
    assert paid.total == order.total
    assert paid.payment_time
    assert logged_in_store.cafe_orders()[0].is_paid is True
    assert json.loads(backend.called("PATCH", "/orders/srv-1/completed")[0].content) == {"status": "completed"}
    assert events.seen[-1] == (EVENT_CAFE_ORDER_PAID, {"orderId": "srv-1"})


def test_mark_paid_failure_changes_nothing(service, backend, logged_in_store):
    order = _order("srv-1")
    service.orders = [order]
    logged_in_store.save_cafe_orders([order])
    backend.add("PATCH", "/orders/srv-1/completed", {"message": "locked"}, status=409)

    result = service.mark_paid("srv-1")

    assert result.success is False
    assert "locked" in result.message
    assert service.find("srv-1").is_paid is False
    assert logged_in_store.cafe_orders()[0].is_paid is False


def test_mark_paid_while_in_flight_is_a_no_op(service, backend):
    service.orders = [_order("srv-1")]
    nested = []

    def _patch(request: httpx.Request) -> httpx.Response:
        nested.append(service.mark_paid("srv-1"))
        return httpx.Response(200, json={"success": True})

    backend.add_handler("PATCH", "/orders/srv-1/completed", _patch)

    assert service.mark_paid("srv-1").success is True
    assert nested == [None]


def test_mark_paid_requires_id(service):
    with pytest.raises(ValidationError):
        service.mark_paid("")


def test_confirm_all_counts_successes_and_failures(service, backend, events):
    service.orders = [_order("a1"), _order("a2"), _order("a3", status=STATUS_COMPLETED), _order("b1", shift_id="s2")]
    backend.add("PATCH", "/orders/a1/completed", {"success": True})
    backend.add("PATCH", "/orders/a2/completed", {"message": "nope"}, status=500)

    result = service.confirm_all("s1")

    assert result.success is True
    assert "1" in result.message
    assert [order.order_id for order in service.orders if order.is_paid] == ["a1", "a3"]
    assert not backend.called("PATCH", "/orders/a3/completed")
    assert not backend.called("PATCH", "/orders/b1/completed")
    assert events.seen[-1] == (EVENT_CAFE_ORDER_PAID, {"count": 1})


def test_confirm_all_without_unpaid_orders(service):
    service.orders = [_order("a1", status=STATUS_COMPLETED)]

    result = service.confirm_all("s1")

    assert result.success is False
    assert result.message == MSG_NO_UNPAID


def test_delete_local_order_skips_remote(service, backend, logged_in_store, events):
    local_id = generate_local_order_id()
    service.orders = [_order(local_id)]
    logged_in_store.save_cafe_orders(service.orders)

    result = service.delete_order(local_id)

    assert backend.calls == []
    assert result.message == MSG_DELETED_LOCAL
    assert service.orders == []
    assert logged_in_store.cafe_orders() == []
    assert events.seen[-1] == (EVENT_CAFE_ORDER_DELETED, {"orderId": local_id, "apiSuccess": False})


@pytest.mark.parametrize(("status", "api_success"), [(200, True), (500, False)])
def test_delete_server_order_attempts_remote_first(service, backend, logged_in_store, status, api_success):
    service.orders = [_order("srv-9"), _order("srv-10")]
    logged_in_store.save_cafe_orders(service.orders)
    backend.add("DELETE", "/orders/srv-9", {"success": api_success}, status=status)

    result = service.delete_order("srv-9")

    assert len(backend.called("DELETE", "/orders/srv-9")) == 1
    assert result.api_success is api_success
    assert result.message == (MSG_DELETED_API if api_success else MSG_DELETED_LOCAL)
    assert [order.order_id for order in logged_in_store.cafe_orders()] == ["srv-10"]


def test_merge_orders_prefers_remote_and_drops_empty():
    local = [_order("a", status="pending"), _order("b"), _order("empty", items=[])]
    remote = [_order("a", status=STATUS_COMPLETED), _order("c")]

    merged = {order.order_id: order for order in merge_orders(local, remote)}

    assert sorted(merged) == ["a", "b", "c"]
    assert merged["a"].status == STATUS_COMPLETED
    assert merged["b"].source == SOURCE_LOCAL


def test_load_and_sync_merges_current_cashier_only(service, backend, logged_in_store):
    logged_in_store.save_cafe_orders([_order("cafe_1_mine"), _order("cafe_2_other", cashier_id="u2")])
    backend.add(
        "GET",
        "/orders/shift-cafe/s1",
        {
            "success": True,
            "data": [
                {"order_id": "srv-1", "cashier_id": "u1", "status": "pending", "total_price": "10"},
                {"order_id": "srv-2", "cashier_id": "u2", "status": "pending"},
            ],
        },
    )
    backend.add(
        "GET",
        "/order-items/order/srv-1",
        {"success": True, "data": {"order_items": [{"product_name": "Tea", "unit_price": 10, "quantity": 1}]}},
    )

    merged = service.load_and_sync()

    assert sorted(order.order_id for order in merged) == ["cafe_1_mine", "srv-1"]
    assert not backend.called("GET", "/order-items/order/srv-2")
    assert sorted(order.order_id for order in logged_in_store.cafe_orders()) == ["cafe_1_mine", "cafe_2_other", "srv-1"]
    assert next(order for order in merged if order.order_id == "srv-1").items[0].name == "Tea"


def test_load_and_sync_offline_keeps_local_orders(service, backend, logged_in_store):
    logged_in_store.save_cafe_orders([_order("cafe_1_mine")])
    backend.fail("GET", "/orders/shift-cafe/s1")

    merged = service.load_and_sync()

    assert [order.order_id for order in merged] == ["cafe_1_mine"]


def test_format_order_number():
    assert format_order_number("cafe_1700000000000_abcdefghi") == "17000000"
    assert format_order_number("8f14e45f-ceea-467f-a0e6-123456789abc") == "56789abc"
    assert format_order_number("0123456789") == "23456789"


def test_filter_orders_and_shift_totals():
    orders = [_order("srv-1"), _order("srv-2", status=STATUS_COMPLETED)]
    orders[1].staff_name = "Sara"

    assert [order.order_id for order in filter_orders(orders, "sara")] == ["srv-2"]
    assert [order.order_id for order in filter_orders(orders, "4")] == ["srv-1", "srv-2"]
    assert filter_orders(orders, "  ") == orders
    assert shift_totals(orders) == (105.0, 105.0)
