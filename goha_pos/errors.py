"""Exception types shared across the client."""

from __future__ import annotations


class PosError(Exception):
    """Base class for client-side errors."""


class ValidationError(PosError, ValueError):
    """A user action failed a local check; no request was issued."""


class SchemaError(PosError, ValueError):
    """An API payload did not match any known shape (strict parsing only)."""


class PrinterError(PosError, RuntimeError):
    """Receipt printer is missing or failed mid-print."""
