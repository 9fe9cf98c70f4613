"""Product configuration modal: size, quantity, extras and notes."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from goha_pos.cart import build_item
from goha_pos.errors import ValidationError
from goha_pos.models import CartItem, Extra, Product
from goha_pos.rendering import format_currency


class ItemModal(ModalScreen[CartItem | None]):
    """Configure one product and dismiss with the resulting cart line."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("plus", "change_quantity(1)", "More"),
        ("minus", "change_quantity(-1)", "Less"),
        ("space", "toggle_current", "Select"),
        ("n", "edit_notes", "Notes"),
        ("enter", "confirm", "Add"),
    ]

    CSS = """
    ItemModal {
        align: center middle;
        background: $background 60%;
    }

    #item-dialog {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #item-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #item-body {
        margin-bottom: 1;
        color: white;
    }

    #item-error {
        color: #ffb3b3;
    }

    #item-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)
    _SIZE_KIND = "size"
    _EXTRA_KIND = "extra"

    def __init__(self, product: Product, extras: list[Extra]) -> None:
        super().__init__()
        self.product = product
        self.extras = extras
        self.selected_size = product.size_prices[0].product_size_id if len(product.size_prices) == 1 else ""
        self.selected_extras: set[str] = set()
        self.quantity = 1
        self.notes = ""
        self.typing_notes = False
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="item-dialog"):
            yield Static(self.product.name, id="item-title")
            yield Static(id="item-body")
            yield Static(id="item-error")
            yield Static(id="item-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if not self.typing_notes:
            return

        if event.key in {"escape", "enter"}:
            self.typing_notes = False
            self._refresh_content()
        elif event.key == "backspace":
            self.notes = self.notes[:-1]
            self._refresh_content()
        elif event.is_printable and event.character:
            self.notes += event.character
            self._refresh_content()
        # Swallow everything else while typing.
        event.stop()

    def action_close(self) -> None:
        if self.typing_notes:
            self.typing_notes = False
            self._refresh_content()
            return
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        if self.typing_notes:
            return
        rows = self._rows()
        if rows:
            self.cursor_index = (self.cursor_index + delta) % len(rows)
            self._refresh_content()

    def action_change_quantity(self, delta: int) -> None:
        if self.typing_notes:
            return
        self.quantity = max(1, self.quantity + delta)
        self._refresh_content()

    def action_toggle_current(self) -> None:
        if self.typing_notes:
            return
        rows = self._rows()
        if not rows:
            return
        kind, value = rows[self.cursor_index]
        if kind == self._SIZE_KIND:
            self.selected_size = value
        elif value in self.selected_extras:
            self.selected_extras.remove(value)
        else:
            self.selected_extras.add(value)
        self.error = ""
        self._refresh_content()

    def action_edit_notes(self) -> None:
        self.typing_notes = True
        self._refresh_content()

    def action_confirm(self) -> None:
        if self.typing_notes:
            return
        extras = [extra for extra in self.extras if extra.extra_id in self.selected_extras]
        try:
            item = build_item(self.product, self.selected_size, self.quantity, extras, self.notes)
        except ValidationError as exc:
            self.error = str(exc)
            self._refresh_content()
            return
        self.dismiss(item)

    def _rows(self) -> list[tuple[str, str]]:
        rows = [(self._SIZE_KIND, size.product_size_id) for size in self.product.size_prices]
        rows.extend((self._EXTRA_KIND, extra.extra_id) for extra in self.extras)
        return rows

    def _refresh_content(self) -> None:
        body = self.query_one("#item-body", Static)
        content = Text(style="white")
        rows = self._rows()
        sizes = {size.product_size_id: size for size in self.product.size_prices}
        extras = {extra.extra_id: extra for extra in self.extras}

        for idx, (kind, value) in enumerate(rows):
            if idx > 0:
                content.append("\n")
            if kind == self._EXTRA_KIND and (idx == 0 or rows[idx - 1][0] == self._SIZE_KIND):
                content.append("الإضافات:\n", style="bold")
            pointer = "➤ " if idx == self.cursor_index else "  "
            if kind == self._SIZE_KIND:
                size = sizes[value]
                mark = "(•)" if value == self.selected_size else "( )"
                content.append(f"{pointer}{mark} {size.size_name}  {format_currency(size.price)}")
            else:
                extra = extras[value]
                mark = "[x]" if value in self.selected_extras else "[ ]"
                style = "bold white" if value in self.selected_extras else "white"
                content.append(f"{pointer}{mark} {extra.name}  +{format_currency(extra.price)}", style=style)

        content.append(f"\n\nالكمية: {self.quantity}", style="bold")
        cursor = "|" if self.typing_notes else ""
        content.append(f"\nملاحظات: {self.notes}{cursor}")
        body.update(content)

        self.query_one("#item-error", Static).update(self.error)
        help_text = self.query_one("#item-help", Static)
        if self.typing_notes:
            help_text.update("Type notes, Enter/Esc done")
        else:
            help_text.update("J/K move, Space select, +/- quantity, N notes, Enter add, Esc cancel")
