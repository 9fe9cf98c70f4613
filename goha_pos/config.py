"""Runtime configuration defaults for the API client, persistence and printing."""

from __future__ import annotations

import os


def _env_or(key: str, default: str) -> str:
    value = os.getenv(key)
    return value if value is not None else default


def _env_flag(key: str, default: bool = False) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


API_BASE_URL = _env_or("GOHA_API_BASE_URL", "http://20.117.240.138:3000/api/v1").rstrip("/")
API_TIMEOUT_SECONDS = float(_env_or("GOHA_API_TIMEOUT", "30"))
API_DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}
PRODUCTS_PAGE_LIMIT = 100

DB_PATH = _env_or("GOHA_DB_PATH", "data/goha.db")

LOG_PATH = _env_or("GOHA_LOG_PATH", "/tmp/goha-pos.log")
LOG_LEVEL = _env_or("GOHA_LOG_LEVEL", "INFO")

# Raise on unexpected API shapes instead of degrading to placeholders.
STRICT_PARSING = _env_flag("GOHA_STRICT_PARSING")

MONITOR_POLL_SECONDS = float(_env_or("GOHA_MONITOR_POLL_SECONDS", "30"))
CASHIER_ACTIVE_WINDOW_SECONDS = 2 * 60 * 60

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 28
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 12
PRINTER_TAIL_SPACER_PX = 70
