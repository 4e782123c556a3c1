"""Shared test fixtures for VisionCare monitoring tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from visioncare.core.config.settings import Settings  # noqa: E402
from visioncare.core.scheduling.clock import ManualClock  # noqa: E402
from visioncare.domains.monitoring.connectors.outputs import (  # noqa: E402
    LoggingAudioCue,
    LoggingPushSender,
)
from visioncare.domains.monitoring.domain_logic.vitals_store import VitalsStore  # noqa: E402
from visioncare.domains.monitoring.emergency.alert_manager import AlertManager  # noqa: E402
from visioncare.domains.monitoring.system import (  # noqa: E402
    MonitoringSystem,
    build_monitoring_system,
)

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Ignore any developer .env file and VisionCare settings in the environment."""
    monkeypatch.chdir(tmp_path)
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store(clock: ManualClock) -> VitalsStore:
    """Two-subject store with the default 100/125 bpm thresholds."""
    return VitalsStore([1, 2], clock=clock)


@pytest.fixture
def audio_cue() -> LoggingAudioCue:
    return LoggingAudioCue()


@pytest.fixture
def push_sender() -> LoggingPushSender:
    return LoggingPushSender()


@pytest.fixture
def alerts(clock: ManualClock, audio_cue: LoggingAudioCue) -> AlertManager:
    return AlertManager(clock=clock, audio_cue=audio_cue)


@pytest.fixture
def system(
    settings: Settings,
    clock: ManualClock,
    audio_cue: LoggingAudioCue,
    push_sender: LoggingPushSender,
) -> MonitoringSystem:
    """Fully wired monitoring system on a manual clock."""
    return build_monitoring_system(
        settings, clock=clock, audio_cue=audio_cue, push_sender=push_sender
    )
