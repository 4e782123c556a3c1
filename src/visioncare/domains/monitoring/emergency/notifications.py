"""Notification fan-out for triggered alerts.

Subscribes to the ``AlertManager``: every alert becomes an in-app
notification, and critical alerts are also pushed through the configured
``PushSender``.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any

from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.domains.monitoring.connectors import PushSender
from visioncare.domains.monitoring.emergency.models import Alert, Severity, alert_type_label

logger = logging.getLogger(__name__)

CRITICAL_PUSH_TITLE = "Critical Emergency"


@dataclass(frozen=True)
class Notification:
    id: int
    title: str
    message: str
    type: str  # severity value for in-app, "push" for pushes
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "timestamp": self.timestamp,
        }


class NotificationService:
    """Records in-app notifications and forwards critical alerts as pushes."""

    def __init__(
        self,
        *,
        push_sender: PushSender | None = None,
        clock: Clock | None = None,
        history_limit: int = 200,
    ) -> None:
        self._push = push_sender
        self._clock = clock or SystemClock()
        self._history: deque[Notification] = deque(maxlen=history_limit)
        self._ids = itertools.count(1)

    def on_alert(self, alert: Alert) -> None:
        """AlertManager subscriber."""
        self.send_in_app(
            title=alert_type_label(alert.type).replace("_", " "),
            message=alert.message,
            type=alert.severity.value,
        )
        if alert.severity is Severity.CRITICAL:
            self.send_push(CRITICAL_PUSH_TITLE, alert.message)

    def send_in_app(self, *, title: str, message: str, type: str = "info") -> Notification:
        notification = self._record(title, message, type)
        logger.info("In-app notification: %s", notification.to_dict())
        return notification

    def send_push(self, title: str, message: str) -> Notification | None:
        """Push via the sender; skipped (None) when no sender is configured."""
        if self._push is None:
            logger.debug("No push sender configured; skipping push %r", title)
            return None
        self._push.send(title, message)
        return self._record(title, message, "push")

    def history(self) -> list[Notification]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def _record(self, title: str, message: str, type: str) -> Notification:
        notification = Notification(
            id=next(self._ids),
            title=title,
            message=message,
            type=type,
            timestamp=iso_timestamp(self._clock),
        )
        self._history.append(notification)
        return notification
