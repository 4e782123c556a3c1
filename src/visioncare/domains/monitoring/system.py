"""Composition root for the monitoring core.

``build_monitoring_system`` creates one instance of every component and wires
them together through explicit subscriptions. ``MonitoringSystem`` then
serialises inbound work: each operation first fires any due timers and then
applies its event to completion before returning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from visioncare.core.config.settings import Settings
from visioncare.core.scheduling.clock import Clock, SystemClock
from visioncare.domains.monitoring.connectors import AudioCue, PushSender
from visioncare.domains.monitoring.connectors.outputs import (
    LoggingAudioCue,
    LoggingPushSender,
)
from visioncare.domains.monitoring.domain_logic.clinical_risk import ClinicalRiskAssessor
from visioncare.domains.monitoring.domain_logic.models import AnalysisSnapshot, VitalsSample
from visioncare.domains.monitoring.domain_logic.spo2_estimator import SpO2Estimator
from visioncare.domains.monitoring.domain_logic.statistics_engine import StatisticsEngine
from visioncare.domains.monitoring.domain_logic.vital_signs import VitalSignsEvaluator
from visioncare.domains.monitoring.domain_logic.vitals_store import VitalsStore
from visioncare.domains.monitoring.emergency.alert_manager import AlertManager
from visioncare.domains.monitoring.emergency.escalation import EscalationStateMachine
from visioncare.domains.monitoring.emergency.models import DetectionEvent, EmergencyRecord
from visioncare.domains.monitoring.emergency.notifications import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class MonitoringSystem:
    """All monitoring components, owned together."""

    clock: Clock
    store: VitalsStore
    statistics: StatisticsEngine
    spo2: SpO2Estimator
    vital_signs: VitalSignsEvaluator
    clinical_risk: ClinicalRiskAssessor
    alerts: AlertManager
    escalation: EscalationStateMachine
    notifications: NotificationService

    def run_pending(self) -> int:
        """Fire due escalation and alert-expiry timers. Returns how many fired."""
        return self.escalation.run_due() + self.alerts.run_due()

    def ingest_vitals(
        self, subject_id: int, sample: VitalsSample | dict[str, Any]
    ) -> EmergencyRecord | None:
        """Store a partial vitals sample and check it against the emergency limits."""
        self.run_pending()
        if isinstance(sample, dict):
            sample = VitalsSample.from_dict(sample)
        if self.store.get_subject(subject_id) is None:
            logger.warning("Vitals received for unknown subject %r; ignored", subject_id)
            return None

        self.store.update_vitals(subject_id, sample)
        self.escalation.monitor_vitals(sample, patient=subject_id)
        return self.escalation.current

    def handle_event(self, event: DetectionEvent | dict[str, Any]) -> EmergencyRecord | None:
        """Route a detection, gesture or voice event to the escalation machine."""
        self.run_pending()
        return self.escalation.handle_event(event)

    def resolve_emergency(self) -> bool:
        self.run_pending()
        return self.escalation.resolve()

    def run_analysis_cycle(self) -> list[AnalysisSnapshot]:
        """Periodic sampling tick: analyse every subject."""
        self.run_pending()
        snapshots = []
        for sid in self.store.subject_ids():
            snapshot = self.statistics.full_analysis(sid)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    def reset(self) -> None:
        """System reset: subjects, log, emergency flag and active alerts."""
        self.escalation.resolve()
        self.alerts.clear_all()
        self.store.reset_all()


def build_monitoring_system(
    settings: Settings,
    *,
    clock: Clock | None = None,
    audio_cue: AudioCue | None = None,
    push_sender: PushSender | None = None,
) -> MonitoringSystem:
    """Create and wire the monitoring components from settings."""
    clock = clock or SystemClock()

    store = VitalsStore(
        settings.subject_ids,
        clock=clock,
        warning_threshold=settings.hr_warning_threshold,
        critical_threshold=settings.hr_critical_threshold,
        history_limit=settings.history_limit,
        log_limit=settings.system_log_limit,
    )
    alerts = AlertManager(
        clock=clock,
        audio_cue=audio_cue if audio_cue is not None else LoggingAudioCue(),
        ttl_ms=settings.alert_ttl_ms,
        history_limit=settings.alert_history_limit,
        sound_enabled=settings.alert_sound_enabled,
    )
    escalation = EscalationStateMachine(
        alerts,
        clock=clock,
        escalation_delay_ms=settings.escalation_delay_ms,
        log_limit=settings.emergency_log_limit,
        heart_rate_min=settings.vital_hr_min,
        heart_rate_max=settings.vital_hr_max,
        spo2_min=settings.vital_spo2_min,
    )
    notifications = NotificationService(
        push_sender=push_sender if push_sender is not None else LoggingPushSender(),
        clock=clock,
        history_limit=settings.alert_history_limit,
    )

    # Wiring, in delivery order
    store.subscribe_critical(escalation.trigger)
    escalation.subscribe_resolved(lambda _record: store.clear_emergency())
    alerts.subscribe(notifications.on_alert)

    logger.info(
        "Monitoring %d subjects (warning >= %s bpm, critical >= %s bpm)",
        len(settings.subject_ids),
        settings.hr_warning_threshold,
        settings.hr_critical_threshold,
    )

    return MonitoringSystem(
        clock=clock,
        store=store,
        statistics=StatisticsEngine(store, clock=clock),
        spo2=SpO2Estimator(
            calibration_constant=settings.spo2_calibration_constant,
            min_spo2=settings.spo2_min,
            max_spo2=settings.spo2_max,
            clock=clock,
        ),
        vital_signs=VitalSignsEvaluator(clock=clock),
        clinical_risk=ClinicalRiskAssessor(clock=clock),
        alerts=alerts,
        escalation=escalation,
        notifications=notifications,
    )
