# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Central configuration for the console engine."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .error_mapping import ConfigurationError

DEFAULT_CATEGORIES: tuple[str, ...] = ("translation", "grammar", "scoring")

# Keys under which operator-editable values live in the settings store
SETTING_REFRESH_INTERVAL = "auto_refresh_interval_seconds"
SETTING_CUSTOM_CATEGORIES = "custom_categories"
SETTING_COST_THRESHOLD = "cost_threshold"


def _parse_env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default).strip()
    if not raw:
        return ()
    return tuple(x.strip() for x in raw.split(",") if x.strip())


@dataclass
class ConsoleConfig:
    """Configuration for the model fleet console."""

    # Categories
    default_categories: tuple[str, ...] = DEFAULT_CATEGORIES
    tie_break_order: tuple[str, ...] = DEFAULT_CATEGORIES

    # Cost comparison
    cost_threshold: float = 90.0

    # Health derivation
    sample_window: int = 5
    uptime_window_hours: int = 24
    probe_timeout_seconds: float = 10.0

    # Alerting
    alert_lookback_minutes: int = 60
    alert_scan_limit: int = 10
    alert_min_failures_to_notify: int = 3

    # Background refresh (0 disables)
    refresh_interval_seconds: int = 30

    # Model catalog / probe provider
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_api_key: str = ""
    catalog_timeout_seconds: float = 30.0
    catalog_retry_attempts: int = 3
    catalog_retry_delay_seconds: float = 1.0

    # Storage backend: memory|database
    store_backend: str = "memory"

    def __post_init__(self) -> None:
        if self.sample_window < 1:
            raise ConfigurationError("sample_window must be >= 1")
        if self.refresh_interval_seconds < 0:
            raise ConfigurationError("refresh_interval_seconds must be >= 0")
        if self.probe_timeout_seconds <= 0:
            raise ConfigurationError("probe_timeout_seconds must be > 0")

    @classmethod
    def from_environment(cls) -> ConsoleConfig:
        """Create configuration from environment variables."""
        categories = _parse_env_list("CONSOLE_CATEGORIES") or DEFAULT_CATEGORIES
        return cls(
            default_categories=categories,
            tie_break_order=_parse_env_list("CONSOLE_TIE_BREAK_ORDER") or categories,
            cost_threshold=float(os.getenv("CONSOLE_COST_THRESHOLD", "90")),
            sample_window=int(os.getenv("CONSOLE_HEALTH_SAMPLE_WINDOW", "5")),
            uptime_window_hours=int(os.getenv("CONSOLE_UPTIME_WINDOW_HOURS", "24")),
            probe_timeout_seconds=float(os.getenv("CONSOLE_PROBE_TIMEOUT", "10")),
            alert_lookback_minutes=int(os.getenv("CONSOLE_ALERT_LOOKBACK_MINUTES", "60")),
            alert_scan_limit=int(os.getenv("CONSOLE_ALERT_SCAN_LIMIT", "10")),
            alert_min_failures_to_notify=int(os.getenv("CONSOLE_ALERT_MIN_FAILURES", "3")),
            refresh_interval_seconds=int(os.getenv("CONSOLE_REFRESH_INTERVAL_SEC", "30")),
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            catalog_timeout_seconds=float(os.getenv("CONSOLE_CATALOG_TIMEOUT", "30")),
            catalog_retry_attempts=int(os.getenv("CONSOLE_CATALOG_RETRY_ATTEMPTS", "3")),
            catalog_retry_delay_seconds=float(os.getenv("CONSOLE_CATALOG_RETRY_DELAY", "1.0")),
            store_backend=os.getenv("CONSOLE_STORE_BACKEND", "memory").lower(),
        )
