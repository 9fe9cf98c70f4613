"""In-process publish/subscribe for order change notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict[str, Any]], None]


class EventBus:
    """Best-effort event fan-out.

    A failing handler is logged and skipped so the publisher's code path is
    never broken by a subscriber.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that unregisters it."""
        self._handlers[event_name].append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers[event_name]:
                self._handlers[event_name].remove(handler)

        return _unsubscribe

    def emit(self, event_name: str, detail: dict[str, Any] | None = None) -> None:
        payload = dict(detail or {})
        logger.info("event %s detail=%s", event_name, payload)
        for handler in list(self._handlers[event_name]):
            try:
                handler(event_name, payload)
            except Exception:
                logger.exception("event handler failed for %s", event_name)
