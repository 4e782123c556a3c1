"""MCP tools for detection events, the emergency lifecycle and alerts."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from visioncare.domains.monitoring.system import MonitoringSystem

logger = logging.getLogger(__name__)


def register_emergency_tools(mcp: FastMCP, system: MonitoringSystem) -> None:
    """Register emergency and alert tools on the MCP server."""

    def _outcome() -> str:
        return json.dumps(system.escalation.status())

    @mcp.tool
    async def report_detection_event(
        ctx: Context,
        event_type: str,
        patient_id: int | None = None,
        message: str | None = None,
    ) -> str:
        """Report a patient-detection event (e.g. PATIENT_MISSING, LOW_CONFIDENCE).

        Args:
            event_type: Event type emitted by the detection collaborator.
            patient_id: Patient the event refers to, if known.
            message: Optional free-text detail.
        """
        system.handle_event({"type": event_type, "patient": patient_id, "message": message})
        return _outcome()

    @mcp.tool
    async def report_gesture_event(ctx: Context, patient_id: int, gesture: str) -> str:
        """Report a recognised hand gesture; "Emergency Help" activates an emergency."""
        system.handle_event({"type": "GESTURE", "patient": patient_id, "gesture": gesture})
        return _outcome()

    @mcp.tool
    async def report_voice_command(
        ctx: Context, transcript: str, patient_id: int | None = None
    ) -> str:
        """Report a voice transcript; emergency keywords activate an emergency."""
        system.handle_event({"type": "VOICE", "patient": patient_id, "message": transcript})
        return _outcome()

    @mcp.tool
    async def emergency_status(ctx: Context) -> str:
        """Current emergency state and the log of past emergencies."""
        system.run_pending()
        status = system.escalation.status()
        status["log"] = [r.to_dict() for r in system.escalation.emergency_log()]
        return json.dumps(status)

    @mcp.tool
    async def resolve_emergency(ctx: Context) -> str:
        """Resolve the active emergency and cancel its pending escalation."""
        resolved = system.resolve_emergency()
        return json.dumps({"resolved": resolved, **system.escalation.status()})

    @mcp.tool
    async def list_active_alerts(ctx: Context) -> str:
        """Alerts currently visible (not yet expired or dismissed)."""
        system.run_pending()
        return json.dumps([a.to_dict() for a in system.alerts.active_alerts()])

    @mcp.tool
    async def alert_history(ctx: Context, limit: int = 50) -> str:
        """Most recent triggered alerts, oldest first, including expired ones."""
        system.run_pending()
        alerts = system.alerts.history()[-limit:] if limit > 0 else []
        return json.dumps([a.to_dict() for a in alerts])

    @mcp.tool
    async def dismiss_alert(ctx: Context, alert_id: int) -> str:
        """Dismiss an active alert. Dismissing twice is harmless."""
        system.run_pending()
        return json.dumps({"alertId": alert_id, "dismissed": system.alerts.dismiss(alert_id)})

    @mcp.tool
    async def toggle_alert_sound(ctx: Context, enabled: bool) -> str:
        """Enable or disable the audible cue for high-severity alerts."""
        system.alerts.toggle_sound(enabled)
        logger.info("Alert sound %s", "enabled" if enabled else "disabled")
        return json.dumps({"soundEnabled": system.alerts.sound_enabled})

    @mcp.tool
    async def clear_alerts(ctx: Context) -> str:
        """Clear all active alerts; history is kept."""
        system.alerts.clear_all()
        return json.dumps({"status": "cleared"})
