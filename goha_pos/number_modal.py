"""Numeric entry modal used for table numbers and stock quantities."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


class NumberModal(ModalScreen[float | None]):
    """Prompt for a number within ``[minimum, maximum]``."""

    CSS = """
    NumberModal {
        align: center middle;
        background: $background 60%;
    }

    #number-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #number-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #number-prompt {
        color: white;
        margin-bottom: 1;
    }

    #number-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #number-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #number-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        minimum: float = 1,
        maximum: float = 1000,
        allow_decimal: bool = False,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.minimum = minimum
        self.maximum = maximum
        self.allow_decimal = allow_decimal
        self.value = ""
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="number-dialog"):
            yield Static(self.title_text, id="number-title")
            yield Static(self.prompt_text, id="number-prompt")
            yield Static(id="number-value")
            yield Static(id="number-error")
            yield Static("Digits only. Enter confirm. Backspace delete. Esc/Ctrl+C cancel.", id="number-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        char = event.character or ""
        accepted = char.isdigit() or (char == "." and self.allow_decimal and "." not in self.value)
        if event.is_printable and accepted:
            if len(self.value) < 8:
                self.value += char
            self.error = ""
            self._refresh_content()
            event.stop()

    def _confirm(self) -> None:
        if not self.value or self.value == ".":
            self.error = "القيمة مطلوبة"
            self._refresh_content()
            return

        parsed = float(self.value)
        if not (self.minimum <= parsed <= self.maximum):
            self.error = f"القيمة يجب أن تكون بين {self.minimum:g} و {self.maximum:g}"
            self._refresh_content()
            return

        self.dismiss(parsed)

    def _refresh_content(self) -> None:
        self.query_one("#number-value", Static).update(self.value)
        self.query_one("#number-error", Static).update(self.error)
