"""Alert lifecycle: active set with TTL, capped history, severity-gated side effects.

Nothing in this module raises to callers. An unknown alert type degrades to
a generic message, and a failing audio cue or subscriber is logged and
skipped. Alerting must stay up when everything else is failing.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from visioncare.core.events.listeners import ListenerRegistry
from visioncare.core.scheduling.clock import Clock, SystemClock, iso_from_ms
from visioncare.core.scheduling.timers import ScheduledEvent, TimerQueue
from visioncare.domains.monitoring.connectors import AudioCue
from visioncare.domains.monitoring.emergency.models import (
    Alert,
    AlertType,
    Severity,
    coerce_alert_type,
)

logger = logging.getLogger(__name__)

ALERT_EXPIRY = "alert_expiry"

DEFAULT_MESSAGES: dict[AlertType, str] = {
    AlertType.PATIENT_MISSING: "Patient not detected in camera view.",
    AlertType.EMERGENCY_GESTURE: "Emergency gesture detected!",
    AlertType.LOW_CONFIDENCE: "Low detection confidence.",
    AlertType.MULTIPLE_PATIENTS: "More than expected patients detected.",
    AlertType.SYSTEM_ERROR: "System anomaly detected.",
    AlertType.HEART_RATE_ANOMALY: "Abnormal heart rate detected.",
    AlertType.LOW_OXYGEN: "Critical oxygen level detected.",
    AlertType.VOICE_EMERGENCY: "Emergency reported by voice command.",
    AlertType.ESCALATION: "Emergency not resolved. Escalating to higher authority.",
    AlertType.EMERGENCY_RESOLVED: "Emergency resolved successfully.",
}
GENERIC_MESSAGE = "Unknown alert detected."


def default_message(alert_type: AlertType | str) -> str:
    if isinstance(alert_type, AlertType):
        return DEFAULT_MESSAGES.get(alert_type, GENERIC_MESSAGE)
    return GENERIC_MESSAGE


class AlertManager:
    """Owns active alerts and the permanent (capped) alert history.

    Usage::

        alerts = AlertManager(clock=clock, audio_cue=LoggingAudioCue())
        alerts.subscribe(notifications.on_alert)
        alert = alerts.trigger(AlertType.PATIENT_MISSING, Severity.HIGH)
        alerts.run_due()  # expire alerts whose TTL has passed
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        audio_cue: AudioCue | None = None,
        ttl_ms: int = 5_000,
        history_limit: int = 200,
        sound_enabled: bool = True,
    ) -> None:
        self._clock = clock or SystemClock()
        self._timers = TimerQueue(self._clock)
        self._audio_cue = audio_cue
        self._ttl_ms = ttl_ms
        self._active: dict[int, Alert] = {}
        self._expiry_handles: dict[int, int] = {}
        self._history: deque[Alert] = deque(maxlen=history_limit)
        self._ids = itertools.count(1)
        self._subscribers = ListenerRegistry[Alert]("alert_manager")
        self.sound_enabled = sound_enabled

    # ---------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------

    def trigger(
        self,
        alert_type: AlertType | str,
        severity: Severity | str = Severity.MEDIUM,
        message: str | None = None,
        *,
        raised_at_ms: int | None = None,
    ) -> Alert:
        """Raise an alert, schedule its expiry and run severity side effects.

        ``raised_at_ms`` backdates the alert (timestamp and TTL) to when its
        cause was due; it defaults to now.
        """
        kind = coerce_alert_type(alert_type)
        raised_at = self._clock.now_ms() if raised_at_ms is None else raised_at_ms
        alert = Alert(
            id=next(self._ids),
            type=kind,
            severity=_coerce_severity(severity),
            message=message or default_message(kind),
            timestamp=iso_from_ms(raised_at),
        )

        self._active[alert.id] = alert
        self._history.append(alert)
        self._expiry_handles[alert.id] = self._timers.schedule_at(
            raised_at + self._ttl_ms, ALERT_EXPIRY, payload=alert.id
        )
        logger.warning("ALERT TRIGGERED: %s", alert.to_dict())

        if alert.severity is Severity.HIGH and self.sound_enabled:
            self._play_sound()

        self._subscribers.publish(alert)
        return alert

    def dismiss(self, alert_id: int) -> bool:
        """Remove an alert from the active set. Idempotent.

        Returns:
            True if the alert was active.
        """
        self._timers.cancel(self._expiry_handles.pop(alert_id, None))
        removed = self._active.pop(alert_id, None)
        if removed is not None:
            logger.debug("Alert %d dismissed", alert_id)
        return removed is not None

    def clear_all(self) -> None:
        """Empty the active set; history is kept."""
        for handle in self._expiry_handles.values():
            self._timers.cancel(handle)
        self._expiry_handles.clear()
        self._active.clear()

    def toggle_sound(self, enabled: bool) -> None:
        self.sound_enabled = enabled

    def run_due(self) -> int:
        """Expire alerts whose TTL has elapsed. Returns the number expired."""
        return self._timers.run_due(self._on_timer)

    # ---------------------------------------------------------------
    # Reads / subscriptions
    # ---------------------------------------------------------------

    def subscribe(self, listener: Callable[[Alert], Any]) -> Callable[[], None]:
        """Notify ``listener`` of every triggered alert, in registration order."""
        return self._subscribers.subscribe(listener)

    def active_alerts(self) -> list[Alert]:
        return list(self._active.values())

    def history(self) -> list[Alert]:
        return list(self._history)

    def get(self, alert_id: int) -> Alert | None:
        return self._active.get(alert_id)

    # ---------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------

    def _on_timer(self, event: ScheduledEvent) -> None:
        if event.kind == ALERT_EXPIRY:
            self._expiry_handles.pop(event.payload, None)
            if self._active.pop(event.payload, None) is not None:
                logger.debug("Alert %d expired", event.payload)

    def _play_sound(self) -> None:
        if self._audio_cue is None:
            return
        try:
            self._audio_cue.play()
        except Exception:
            logger.exception("Alert sound cue failed")


def _coerce_severity(value: Severity | str) -> Severity:
    if isinstance(value, Severity):
        return value
    try:
        return Severity(str(value).lower())
    except ValueError:
        logger.warning("Unknown severity %r; using medium", value)
        return Severity.MEDIUM
