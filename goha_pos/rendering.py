"""Rich text helpers shared by the screens."""

from __future__ import annotations

from rich.text import Text

from goha_pos.cart import ExtrasPricing, line_total
from goha_pos.constant import (
    CURRENCY_SUFFIX,
    ORDER_TYPE_LABELS,
    STOCK_STATUS_AVAILABLE,
    STOCK_STATUS_LABELS,
    STOCK_STATUS_LOW,
    STOCK_STATUS_OUT,
    STOCK_STATUS_WARNING,
)
from goha_pos.models import CartItem, Order, StockItem
from goha_pos.orders import format_order_number

_STOCK_STYLES = {
    STOCK_STATUS_OUT: "bold #ffffff on #b23a48",
    STOCK_STATUS_LOW: "bold #ffffff on #d9822b",
    STOCK_STATUS_WARNING: "bold #1a1a1a on #e6c229",
    STOCK_STATUS_AVAILABLE: "bold #0b1f0f on #5fbf72",
}


def format_currency(amount: float) -> str:
    return f"{amount:.2f} {CURRENCY_SUFFIX}"


def paid_badge(order: Order) -> Text:
    if order.is_paid:
        return Text(" مدفوع ", style="bold #0b1f0f on #5fbf72")
    return Text(" غير مدفوع ", style="bold #ffffff on #b23a48")


def source_badge(order: Order) -> Text:
    """Mark orders the server has never seen."""
    if order.api_saved:
        return Text("")
    return Text(" محلي ", style="bold #ffffff on #2f6db5")


def stock_badge(item: StockItem) -> Text:
    status = item.status
    return Text(f" {STOCK_STATUS_LABELS.get(status, status)} ", style=_STOCK_STYLES.get(status, ""))


def format_cart_line(item: CartItem, pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> Text:
    text = Text()
    text.append(f"{item.quantity}× ", style="bold")
    text.append(item.name)
    if item.size_name:
        text.append(f" ({item.size_name})", style="dim")
    text.append(f"  {format_currency(line_total(item, pricing))}", style="bold #5fbf72")
    for extra in item.extras:
        text.append(f"\n    + {extra.name} {format_currency(extra.price)}", style="#9aa0a6")
    if item.notes:
        text.append(f"\n    [{item.notes}]", style="italic")
    return text


def format_order_summary(order: Order) -> Text:
    text = Text()
    text.append(f"#{format_order_number(order.order_id)} ", style="bold")
    text.append_text(paid_badge(order))
    text.append_text(source_badge(order))
    text.append(f"  {ORDER_TYPE_LABELS.get(order.order_type, order.order_type)}")
    if order.table_number:
        text.append(f"  طاولة {order.table_number}")
    text.append(f"  {order.staff_name}", style="dim")
    text.append(f"  {format_currency(order.total)}", style="bold #5fbf72")
    return text


def format_stock_line(item: StockItem) -> Text:
    text = Text()
    text.append_text(stock_badge(item))
    text.append(f" {item.name}")
    text.append(f"  {item.current_quantity:g} {item.unit}".rstrip())
    text.append(f"  (الحد الأدنى {item.minimum_value:g})", style="dim")
    return text
