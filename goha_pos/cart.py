"""Cart accumulation and order total calculation."""

from __future__ import annotations

import secrets
import time
from enum import Enum
from typing import Iterable

from goha_pos.constant import MSG_SELECT_SIZE
from goha_pos.errors import ValidationError
from goha_pos.models import CartExtra, CartItem, Extra, Product


class ExtrasPricing(Enum):
    """How extra prices scale with quantities.

    PER_EXTRA_QUANTITY multiplies each extra by its own quantity (canonical).
    PER_PARENT_QUANTITY multiplies each extra by the parent line's quantity,
    which is what the cafe order cards display.
    """

    PER_EXTRA_QUANTITY = "per_extra_quantity"
    PER_PARENT_QUANTITY = "per_parent_quantity"


def extras_total(item: CartItem, pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> float:
    if pricing is ExtrasPricing.PER_PARENT_QUANTITY:
        return sum(extra.price * item.quantity for extra in item.extras)
    return sum(extra.price * extra.quantity for extra in item.extras)


def line_total(item: CartItem, pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> float:
    """``base_price × quantity`` plus the extras under ``pricing``."""
    return item.base_price * item.quantity + extras_total(item, pricing)


def cart_total(items: Iterable[CartItem], pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> float:
    return sum(line_total(item, pricing) for item in items)


def build_item(
    product: Product,
    product_size_id: str,
    quantity: int = 1,
    extras: Iterable[Extra] = (),
    notes: str = "",
) -> CartItem:
    """Turn a confirmed product configuration into a cart line."""
    size_price = product.size(product_size_id)
    if size_price is None:
        raise ValidationError(MSG_SELECT_SIZE)
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")

    return CartItem(
        item_id=f"{product.product_id}-{product_size_id}-{int(time.time() * 1000)}{secrets.token_hex(2)}",
        product_id=product.product_id,
        name=product.name,
        base_price=size_price.price,
        quantity=quantity,
        size_name=size_price.size_name,
        size_id=size_price.size_id,
        product_size_id=product_size_id,
        notes=notes.strip(),
        category_id=product.category.category_id,
        category_name=product.category.name,
        extras=[CartExtra(extra_id=extra.extra_id, name=extra.name, price=extra.price) for extra in extras],
    )


def item_payload(item: CartItem) -> dict:
    """Serialize a cart line the way ``POST /orders`` expects it."""
    return {
        "product_id": item.product_id,
        "product_size_id": item.product_size_id or None,
        "quantity": item.quantity,
        "unit_price": item.base_price,
        "special_instructions": item.notes,
        "extras": [
            {"extra_id": extra.extra_id, "quantity": extra.quantity, "price": extra.price}
            for extra in item.extras
        ],
    }


class Cart:
    """Page-local list of configured items awaiting save."""

    def __init__(self, pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> None:
        self.pricing = pricing
        self.items: list[CartItem] = []

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def add(self, item: CartItem) -> None:
        if item.quantity < 1:
            raise ValidationError("quantity must be at least 1")
        self.items.append(item)

    def remove(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.item_id != item_id]
        return len(self.items) != before

    def clear(self) -> None:
        self.items.clear()

    def line_total(self, item: CartItem) -> float:
        return line_total(item, self.pricing)

    def total(self) -> float:
        return cart_total(self.items, self.pricing)
