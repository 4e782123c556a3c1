"""Output connectors: abstraction layer for alert side effects."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AudioCue(Protocol):
    """Plays the audible alert cue.

    Implementations must not raise; a blocked or missing audio device is
    the connector's problem, not the alert manager's.
    """

    def play(self) -> None:
        ...


@runtime_checkable
class PushSender(Protocol):
    """Delivers an out-of-band push notification (browser, phone, pager)."""

    def send(self, title: str, message: str) -> None:
        ...
