"""ESC/POS receipt printing over USB, rendered as 1-bit images."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from goha_pos.cart import ExtrasPricing, line_total
from goha_pos.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from goha_pos.constant import ORDER_TYPE_LABELS
from goha_pos.errors import PrinterError
from goha_pos.models import Order
from goha_pos.orders import format_order_number
from goha_pos.rendering import format_currency

logger = logging.getLogger(__name__)

_SEPARATOR_HEIGHT_PX = 14
_SEPARATOR_THICKNESS_PX = 3
# Extra vertical headroom so descenders are not clipped on thermal output.
_LINE_EXTRA_PX = 14
_FONT_OVERRIDE_ENV = "RECEIPT_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/truetype/noto/NotoSansArabic-Regular.ttf",
    "/usr/share/fonts/noto/NotoSansArabic-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
)


def resolve_printer_font_path() -> str:
    """
    Resolve the receipt font.

    Resolution order:
    1. RECEIPT_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux fallbacks, Arabic-capable first
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(PRINTER_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: list[str] = []
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.append(candidate)
        if Path(candidate).is_file():
            return candidate

    raise PrinterError(
        f"No usable printer font found. Set {_FONT_OVERRIDE_ENV} to a valid .ttf/.otf file. "
        f"Tried: {', '.join(seen)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether the printer stack and a font are available."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), max(10, PRINTER_FONT_SIZE // 2))
    except (ImportError, OSError, PrinterError) as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def receipt_lines(order: Order, pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> list[str]:
    """Plain-text receipt body; ``---`` marks a separator."""
    created = order.created_at
    try:
        created = datetime.fromisoformat(order.created_at).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        pass

    lines = [
        f"طلب #{format_order_number(order.order_id)}",
        f"{ORDER_TYPE_LABELS.get(order.order_type, order.order_type)}  {created}",
    ]
    if order.table_number:
        lines.append(f"طاولة: {order.table_number}")
    if order.staff_name:
        lines.append(order.staff_name)
    lines.append("---")
    for item in order.items:
        size = f" ({item.size_name})" if item.size_name else ""
        lines.append(f"{item.quantity}x {item.name}{size}  {format_currency(line_total(item, pricing))}")
        for extra in item.extras:
            lines.append(f"    + {extra.name}")
        if item.notes:
            lines.append(f"    {item.notes}")
    lines.append("---")
    lines.append(f"الإجمالي: {format_currency(order.total)}")
    lines.append("مدفوع" if order.is_paid else "غير مدفوع")
    return lines


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    canvas_height = PRINTER_FONT_SIZE + _LINE_EXTRA_PX
    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)

    bbox = draw.textbbox((0, 0), text, font=font)
    text_height = bbox[3] - bbox[1]
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_separator() -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (PRINTER_WIDTH_PX, _SEPARATOR_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    top = (_SEPARATOR_HEIGHT_PX - _SEPARATOR_THICKNESS_PX) // 2
    draw.rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _SEPARATOR_THICKNESS_PX - 1), fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def print_receipt(order: Order, pricing: ExtrasPricing = ExtrasPricing.PER_EXTRA_QUANTITY) -> None:
    """Print ``order`` and cut the ticket."""
    if not order.items:
        raise PrinterError("cannot print an order without items")

    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except ImportError as exc:
        raise PrinterError(f"Printer dependencies unavailable: {exc}") from exc

    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    try:
        printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
        for line in receipt_lines(order, pricing):
            printer.image(_render_separator() if line == "---" else _render_line(line, font))
        printer.image(_render_spacer(PRINTER_TAIL_SPACER_PX))
        printer.cut()
    except Exception as exc:
        logger.exception("receipt print failed order=%s", order.order_id)
        raise PrinterError(f"Print failed: {exc}") from exc
    logger.info("printed receipt order=%s", order.order_id)
