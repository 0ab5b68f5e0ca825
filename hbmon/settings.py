from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Failure detection (whole seconds)
    failure_threshold_s: int = 15
    sweep_interval_s: int = 10
    enable_detector: bool = True

    # Remediation
    restart_timeout_s: int = 10
    verify_wait_s: float = 2.0
    verify_poll_s: float = 0.5
    parallel_remediation: bool = False
    remediation_workers: int = 4

    # Ambient
    event_log_size: int = 500
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``HBM_*`` environment variables.

        Malformed numbers fall back to the defaults instead of failing startup.
        """
        return cls(
            failure_threshold_s=max(1, _env_int("HBM_FAILURE_THRESHOLD_S", 15)),
            sweep_interval_s=max(1, _env_int("HBM_SWEEP_INTERVAL_S", 10)),
            enable_detector=_env_bool("HBM_ENABLE_DETECTOR", True),
            restart_timeout_s=max(1, _env_int("HBM_RESTART_TIMEOUT_S", 10)),
            verify_wait_s=max(0.0, _env_float("HBM_VERIFY_WAIT_S", 2.0)),
            verify_poll_s=max(0.05, _env_float("HBM_VERIFY_POLL_S", 0.5)),
            parallel_remediation=_env_bool("HBM_PARALLEL_REMEDIATION", False),
            remediation_workers=max(1, _env_int("HBM_REMEDIATION_WORKERS", 4)),
            event_log_size=max(1, _env_int("HBM_EVENT_LOG_SIZE", 500)),
            log_level=os.getenv("HBM_LOG_LEVEL", "INFO").strip().upper() or "INFO",
            host=os.getenv("HBM_HOST", "0.0.0.0"),
            port=_env_int("HBM_PORT", 8080),
        )

    @property
    def interval_below_threshold(self) -> bool:
        # Otherwise failures are detected late by whole sweep periods.
        return self.sweep_interval_s < self.failure_threshold_s


settings = Settings.from_env()
