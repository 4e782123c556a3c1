"""Run the VisionCare monitor over streamable HTTP.

Launch with ``python -m visioncare.core.server.main`` or the
``visioncare-server`` script.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from visioncare.core.config.settings import Settings, get_settings
from visioncare.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _is_local_bind(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _check_bind(settings: Settings) -> None:
    """The tools carry patient data and have no authentication in front of them."""
    if settings.vc_allow_insecure_bind or _is_local_bind(settings.vc_host):
        return
    raise RuntimeError(
        f"VisionCare monitor will not listen on {settings.vc_host!r}: patient tools are "
        "unauthenticated. Bind to a loopback address, or set "
        "VC_ALLOW_INSECURE_BIND=true behind your own auth proxy."
    )


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.vc_log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    logger = logging.getLogger(__name__)

    _check_bind(settings)
    logger.info(
        "VisionCare monitor listening on http://%s:%d (subjects %s, escalation after %d ms)",
        settings.vc_host,
        settings.vc_port,
        settings.subject_ids,
        settings.escalation_delay_ms,
    )

    create_app(settings_override=settings).run(
        transport="streamable-http",
        host=settings.vc_host,
        port=settings.vc_port,
    )


if __name__ == "__main__":
    run()
