"""Ordered subscriber lists for component side effects."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ListenerRegistry(Generic[T]):
    """Subscribers notified in registration order.

    A failing listener is logged and skipped; it never stops delivery to the
    listeners registered after it and never propagates to the publisher.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register a listener and return a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, item: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(item)
            except Exception:
                logger.exception("Listener %r on %s failed", listener, self._name)

    def __len__(self) -> int:
        return len(self._listeners)
