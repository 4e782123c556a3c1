"""Default output connectors that record and log instead of touching devices."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LoggingAudioCue:
    """AudioCue that logs each cue and counts plays."""

    def __init__(self) -> None:
        self.play_count: int = 0

    def play(self) -> None:
        self.play_count += 1
        logger.warning("Alert sound cue played")


class LoggingPushSender:
    """PushSender that logs each push and keeps the sent messages."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, title: str, message: str) -> None:
        self.sent.append((title, message))
        logger.warning("Push notification: %s: %s", title, message)
