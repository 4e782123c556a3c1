"""VisionCare Monitor MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from fastmcp import FastMCP

from visioncare.core.config.settings import Settings, get_settings
from visioncare.core.scheduling.driver import running_timer_driver
from visioncare.domains.monitoring.system import MonitoringSystem, build_monitoring_system
from visioncare.domains.monitoring.tools.emergency_tools import register_emergency_tools
from visioncare.domains.monitoring.tools.monitoring_tools import register_monitoring_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "VisionCare Monitor"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    settings_override: Settings | None = None,
    system_override: MonitoringSystem | None = None,
) -> FastMCP:
    """Create and configure the VisionCare monitoring server.

    This is the main application factory. It:
    1. Builds (or accepts) the wired monitoring system
    2. Creates the FastMCP server, whose lifespan drives the system's timers
    3. Registers the monitoring and emergency tools
    """
    settings = settings_override or get_settings()

    # --- Monitoring components ---
    if system_override is not None:
        system = system_override
    else:
        system = build_monitoring_system(settings)

    # --- Timer driver: escalations and alert expiry fire without a request ---
    @contextlib.asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[dict]:
        async with running_timer_driver(system.run_pending, settings.timer_poll_ms):
            yield {}

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "VisionCare patient monitoring server. Ingests vitals, gesture, voice "
            "and detection events; scores heart-rate risk, estimates SpO2, and "
            "drives a single emergency lifecycle with timed escalation and "
            "self-expiring alerts."
        ),
        lifespan=lifespan,
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        system.run_pending()
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "subjects": system.store.subject_ids(),
            "emergency_active": system.escalation.active,
            "active_alerts": len(system.alerts.active_alerts()),
        }

    register_monitoring_tools(server, system)
    logger.info("Monitoring tools registered")

    register_emergency_tools(server, system)
    logger.info("Emergency tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
