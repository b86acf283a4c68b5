# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Health domain - probe log, derived status, probing and alerting."""

from .deriver import HealthStatusDeriver, consecutive_failures, derive_status, summarize_uptime
from .models import (
    AlertConfig,
    AlertRecord,
    CheckStatus,
    HealthCheckRecord,
    HealthStatus,
    ProbeResult,
    ServiceStatus,
    UptimeSummary,
)

__all__ = [
    "AlertConfig",
    "AlertRecord",
    "CheckStatus",
    "HealthCheckRecord",
    "HealthStatus",
    "HealthStatusDeriver",
    "ProbeResult",
    "ServiceStatus",
    "UptimeSummary",
    "consecutive_failures",
    "derive_status",
    "summarize_uptime",
]
