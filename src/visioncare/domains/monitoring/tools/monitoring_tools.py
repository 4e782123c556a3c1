"""MCP tools for vitals ingestion, analytics and signal estimation.

Every tool returns a JSON string. Tools that touch monitoring state first run
any due timers, so deferred alerts and escalations land before the new event.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from visioncare.domains.monitoring.domain_logic.errors import InvalidInputError

if TYPE_CHECKING:
    from visioncare.domains.monitoring.system import MonitoringSystem

logger = logging.getLogger(__name__)


def _unknown_subject(subject_id: int) -> str:
    return json.dumps({"status": "unknown_subject", "patientId": subject_id})


def register_monitoring_tools(mcp: FastMCP, system: MonitoringSystem) -> None:
    """Register vitals and analytics tools on the MCP server."""

    @mcp.tool
    async def update_vitals(
        ctx: Context,
        patient_id: int,
        heart_rate: float | None = None,
        spo2: float | None = None,
        systolic_bp: float | None = None,
        diastolic_bp: float | None = None,
        temperature: float | None = None,
    ) -> str:
        """Record a (partial) vitals sample for a monitored patient.

        Absent fields are left unchanged. A critical heart rate, a heart rate
        outside the safe band, or low SpO2 activates an emergency.

        Args:
            patient_id: Monitored subject id.
            heart_rate: Heart rate in BPM.
            spo2: Blood oxygen saturation percentage.
            systolic_bp: Systolic blood pressure.
            diastolic_bp: Diastolic blood pressure.
            temperature: Body temperature in Celsius.
        """
        if system.store.get_subject(patient_id) is None:
            return _unknown_subject(patient_id)

        emergency = system.ingest_vitals(patient_id, {
            "heartRate": heart_rate,
            "spo2": spo2,
            "systolicBP": systolic_bp,
            "diastolicBP": diastolic_bp,
            "temperature": temperature,
        })
        subject = system.store.get_subject(patient_id)
        return json.dumps({
            "status": "saved",
            "patientId": patient_id,
            "riskLevel": subject.risk_level.value if subject else None,
            "emergency": emergency.to_dict() if emergency else None,
        })

    @mcp.tool
    async def get_subject(ctx: Context, patient_id: int) -> str:
        """Return the current vitals state and heart-rate history of a patient."""
        system.run_pending()
        subject = system.store.get_subject(patient_id)
        if subject is None:
            return _unknown_subject(patient_id)
        return json.dumps(subject.to_dict())

    @mcp.tool
    async def risk_summary(ctx: Context) -> str:
        """Return the risk label of every monitored patient."""
        system.run_pending()
        return json.dumps({
            "patients": list(system.store.get_risk_summary()),
            "emergencyActive": system.store.emergency_active,
        })

    @mcp.tool
    async def analyze_subject(ctx: Context, patient_id: int) -> str:
        """Run a full heart-rate analysis (trend, variability, spikes, risk score)."""
        system.run_pending()
        snapshot = system.statistics.full_analysis(patient_id)
        if snapshot is None:
            return _unknown_subject(patient_id)
        return json.dumps(snapshot.to_dict())

    @mcp.tool
    async def compare_subjects(ctx: Context, patient_a: int = 1, patient_b: int = 2) -> str:
        """Compare two patients' risk scores. Ties report ``patient_b``."""
        system.run_pending()
        comparison = system.statistics.compare(patient_a, patient_b)
        if comparison is None:
            return json.dumps({"status": "unknown_subject", "patients": [patient_a, patient_b]})
        return json.dumps(comparison.to_dict())

    @mcp.tool
    async def system_health_score(ctx: Context) -> str:
        """Overall system health: 100 minus the mean patient risk score."""
        system.run_pending()
        return json.dumps({"systemHealthScore": system.statistics.system_health_score()})

    @mcp.tool
    async def estimate_spo2(ctx: Context, ir_signal: list[float], red_signal: list[float]) -> str:
        """Estimate oxygen saturation from raw infrared and red PPG intensities.

        Args:
            ir_signal: Infrared channel samples.
            red_signal: Red channel samples (same length as ir_signal).
        """
        try:
            reading = system.spo2.calculate(ir_signal, red_signal)
        except InvalidInputError as exc:
            return json.dumps({"status": "error", "error": str(exc)})
        return json.dumps(reading.to_dict())

    @mcp.tool
    async def evaluate_vitals(ctx: Context, vitals: dict[str, Any]) -> str:
        """Range-check a vitals reading and report stability score and condition.

        Args:
            vitals: camelCase vitals (heartRate, systolicBP, diastolicBP,
                temperature, respiratoryRate, spo2).
        """
        try:
            result = system.vital_signs.evaluate(vitals)
        except InvalidInputError as exc:
            return json.dumps({"status": "error", "error": str(exc)})
        return json.dumps(result)

    @mcp.tool
    async def assess_clinical_risk(
        ctx: Context,
        vitals: dict[str, Any] | None = None,
        ecg: dict[str, Any] | None = None,
        age: float | None = None,
        emergency_flags: dict[str, Any] | None = None,
    ) -> str:
        """Point-based clinical risk from vitals, ECG flags, age and emergency flags."""
        try:
            result = system.clinical_risk.assess(
                vitals=vitals, ecg=ecg, age=age, emergency_flags=emergency_flags
            )
        except InvalidInputError as exc:
            return json.dumps({"status": "error", "error": str(exc)})
        return json.dumps(result.to_dict())

    @mcp.tool
    async def system_logs(ctx: Context, limit: int = 50) -> str:
        """Most recent system log entries, oldest first."""
        system.run_pending()
        entries = system.store.logs()[-limit:] if limit > 0 else []
        return json.dumps([e.to_dict() for e in entries])

    @mcp.tool
    async def reset_subject(ctx: Context, patient_id: int) -> str:
        """Reset one patient to the default state."""
        system.run_pending()
        if system.store.get_subject(patient_id) is None:
            return _unknown_subject(patient_id)
        system.store.reset(patient_id)
        logger.info("Patient %d reset via tool", patient_id)
        return json.dumps({"status": "reset", "patientId": patient_id})

    @mcp.tool
    async def reset_system(ctx: Context) -> str:
        """Reset every patient, the system log, the emergency and active alerts."""
        system.reset()
        return json.dumps({"status": "reset"})
