from __future__ import annotations

import pytest

from goha_pos.constant import STATUS_COMPLETED
from goha_pos.errors import PrinterError
from goha_pos.models import CartExtra, CartItem, Order
from goha_pos.printer import print_receipt, receipt_lines, resolve_printer_font_path
from goha_pos.rendering import format_currency, format_order_summary


def _order(**kwargs) -> Order:
    values = dict(
        order_id="cafe_1714550400000_k2j4h5g6f",
        staff_name="Ali",
        items=[
            CartItem(
                item_id="i1",
                product_id="p1",
                name="Latte",
                base_price=50,
                quantity=2,
                size_name="Large",
                notes="no sugar",
                extras=[CartExtra(extra_id="e1", name="Shot", price=5)],
            )
        ],
        total=105,
        created_at="2024-05-01T09:15:42",
        table_number="4",
    )
    values.update(kwargs)
    return Order(**values)


def test_format_currency():
    assert format_currency(105) == "105.00 ج.م"
    assert format_currency(2.5) == "2.50 ج.م"


def test_receipt_lines():
    lines = receipt_lines(_order())

    assert lines[0] == "طلب #17145504"
    assert lines[1] == "كافيه  2024-05-01 09:15"
    assert "طاولة: 4" in lines
    assert "2x Latte (Large)  105.00 ج.م" in lines
    assert "    + Shot" in lines
    assert "    no sugar" in lines
    assert lines.count("---") == 2
    assert lines[-2:] == ["الإجمالي: 105.00 ج.م", "غير مدفوع"]


def test_receipt_lines_paid_order_with_odd_timestamp():
    lines = receipt_lines(_order(status=STATUS_COMPLETED, created_at="yesterday", table_number=""))

    assert lines[1].endswith("yesterday")
    assert lines[-1] == "مدفوع"
    assert not any(line.startswith("طاولة") for line in lines)


def test_print_receipt_rejects_empty_order():
    with pytest.raises(PrinterError):
        print_receipt(_order(items=[]))


def test_font_override(monkeypatch, tmp_path):
    font = tmp_path / "receipt.ttf"
    font.write_bytes(b"")
    monkeypatch.setenv("RECEIPT_PRINTER_FONT_PATH", str(font))

    assert resolve_printer_font_path() == str(font)


def test_missing_font_raises(monkeypatch, tmp_path):
    monkeypatch.setenv("RECEIPT_PRINTER_FONT_PATH", str(tmp_path / "missing.ttf"))
    monkeypatch.setattr("goha_pos.printer.PRINTER_FONT_PATH", str(tmp_path / "also-missing.ttf"))
    monkeypatch.setattr("goha_pos.printer._LINUX_FONT_FALLBACKS", ())

    with pytest.raises(PrinterError, match="RECEIPT_PRINTER_FONT_PATH"):
        resolve_printer_font_path()


def test_order_summary_marks_local_orders():
    summary = format_order_summary(_order()).plain

    assert summary.startswith("#17145504 ")
    assert "محلي" in summary
    assert "طاولة 4" in summary
