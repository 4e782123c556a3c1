"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VisionCare monitoring server configuration.

    Values are read once at startup; the monitoring components copy what they
    need at construction time and never re-read them.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True}

    # Server
    # Default to loopback; there is no auth layer in front of the tools.
    vc_host: str = "127.0.0.1"
    vc_port: int = 8011
    vc_log_level: str = "info"
    vc_allow_insecure_bind: bool = False
    # Interval at which the running server fires due escalation and expiry timers
    timer_poll_ms: int = 100

    # Monitored subjects (fixed slots, created at startup)
    subject_ids: list[int] = [1, 2]

    # Vitals store
    hr_warning_threshold: float = 100
    hr_critical_threshold: float = 125
    history_limit: int = 50
    system_log_limit: int = 200

    # Escalation
    escalation_delay_ms: int = 10_000
    emergency_log_limit: int = 100
    vital_hr_min: float = 40
    vital_hr_max: float = 130
    vital_spo2_min: float = 85

    # Alerts
    alert_ttl_ms: int = 5_000
    alert_history_limit: int = 200
    alert_sound_enabled: bool = True

    # SpO2 calibration
    spo2_calibration_constant: float = 110
    spo2_min: float = 70
    spo2_max: float = 100

    @model_validator(mode="after")
    def _check_ordering(self) -> Settings:
        if self.hr_warning_threshold >= self.hr_critical_threshold:
            raise ValueError(
                "hr_warning_threshold must be lower than hr_critical_threshold "
                f"({self.hr_warning_threshold} >= {self.hr_critical_threshold})"
            )
        if self.spo2_min > self.spo2_max:
            raise ValueError("spo2_min must not exceed spo2_max")
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        if self.timer_poll_ms < 1:
            raise ValueError("timer_poll_ms must be at least 1")
        return self


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
