# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Health status derivation from the probe log.

Status is recomputed from stored checks on every call; nothing is cached
between refresh ticks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ...error_handling import async_error_context
from ..evaluation.models import utcnow
from .models import HealthCheckRecord, HealthStatus, ServiceStatus, UptimeSummary

if TYPE_CHECKING:
    from ...stores import HealthCheckStore

logger = logging.getLogger(__name__)


def consecutive_failures(checks: Iterable[HealthCheckRecord]) -> int:
    """Failures counted newest-first up to the first success."""
    count = 0
    for check in checks:
        if check.is_success:
            break
        count += 1
    return count


def derive_status(
    model_id: str,
    category: str,
    checks: Sequence[HealthCheckRecord],
    sample_window: int = 5,
    role: str | None = None,
) -> ServiceStatus:
    """Derive UP/DOWN/UNKNOWN for one target from its newest-first checks."""
    window = list(checks[:sample_window])
    if not window:
        return ServiceStatus(model_id=model_id, category=category, status=HealthStatus.UNKNOWN, role=role)

    failures = consecutive_failures(window)
    # Missing latency counts as zero
    avg_ms = round(sum(c.response_time_ms or 0 for c in window) / len(window))
    return ServiceStatus(
        model_id=model_id,
        category=category,
        status=HealthStatus.UP if failures == 0 else HealthStatus.DOWN,
        consecutive_failures=failures,
        avg_response_time_ms=avg_ms,
        last_checked_at=window[0].checked_at,
        role=role,
    )


def summarize_uptime(
    checks: Iterable[HealthCheckRecord],
    statuses: Iterable[ServiceStatus],
    window_hours: int = 24,
) -> UptimeSummary:
    checks = list(checks)
    total = len(checks)
    successes = sum(1 for c in checks if c.is_success)
    return UptimeSummary(
        total_checks=total,
        success_count=successes,
        success_rate=(successes / total) * 100 if total else 0.0,
        window_hours=window_hours,
        all_up=all(s.status is HealthStatus.UP for s in statuses),
    )


class HealthStatusDeriver:
    """Reads the probe log and derives per-target status and uptime."""

    def __init__(self, store: HealthCheckStore, sample_window: int = 5, uptime_window_hours: int = 24):
        self.store = store
        self.sample_window = sample_window
        self.uptime_window_hours = uptime_window_hours

    async def status_for(self, model_id: str, category: str, role: str | None = None) -> ServiceStatus:
        async with async_error_context(f"Failed to read health checks for {model_id}"):
            checks = await self.store.query_by_model(model_id, self.sample_window, category=category)
        return derive_status(model_id, category, checks, self.sample_window, role=role)

    async def statuses(
        self,
        targets: Iterable[tuple[str, str]],
        roles: dict[str, str] | None = None,
    ) -> list[ServiceStatus]:
        roles = roles or {}
        return [await self.status_for(m, c, roles.get(m)) for m, c in targets]

    async def uptime(self, statuses: Iterable[ServiceStatus], now: datetime | None = None) -> UptimeSummary:
        since = (now or utcnow()) - timedelta(hours=self.uptime_window_hours)
        async with async_error_context("Failed to read recent health checks"):
            checks = await self.store.query_recent_window(since)
        summary = summarize_uptime(checks, statuses, self.uptime_window_hours)
        logger.debug(f"Uptime over {self.uptime_window_hours}h: {summary.success_rate:.1f}% of {summary.total_checks}")
        return summary
