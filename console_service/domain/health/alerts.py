# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Failure alerting evaluated after each probe run."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol

import aiohttp

from ...catalog.filters import format_model_name
from ...error_handling import async_error_context
from ...logging_utils import get_logger
from ..evaluation.models import utcnow
from ..fallback.dispatch import find_role
from ..fallback.models import FallbackChainConfig, Slot
from .deriver import consecutive_failures
from .models import AlertConfig, AlertRecord, HealthCheckRecord

if TYPE_CHECKING:
    from ...stores import AlertStore, HealthCheckStore

logger = logging.getLogger(__name__)
alert_log = get_logger("alerts")


class Notifier(Protocol):
    async def notify(self, message: str, priority: str = "critical") -> None: ...


class LoggingNotifier:
    """Notifier that only emits a structured log line."""

    async def notify(self, message: str, priority: str = "critical") -> None:
        alert_log.warning("alert_notification", message=message, priority=priority)


class WebhookNotifier:
    """Posts alerts as JSON to an HTTP endpoint (e.g. an SMS relay)."""

    def __init__(self, url: str, token: str = "", recipient: str = "", timeout: float = 10.0):
        self.url = url
        self.token = token
        self.recipient = recipient
        self.timeout = timeout

    async def notify(self, message: str, priority: str = "critical") -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        payload = {"to": self.recipient, "message": message, "priority": priority}
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.post(self.url, json=payload, headers=headers) as response:
                response.raise_for_status()


def role_phrase(model_id: str, chains: Iterable[FallbackChainConfig]) -> str:
    role = find_role(model_id, chains)
    if role is None:
        return "a configured model"
    slot, category = role
    if slot is Slot.PRIMARY:
        return f"the Primary model ({category})"
    return f"{slot.label} ({category})"


def failure_counts(checks: Iterable[HealthCheckRecord], scan_limit: int = 10) -> dict[str, int]:
    """Consecutive failures per model over its newest ``scan_limit`` checks."""
    per_model: dict[str, list[HealthCheckRecord]] = {}
    for check in sorted(checks, key=lambda c: c.checked_at, reverse=True):
        per_model.setdefault(check.model_id, []).append(check)
    return {model_id: consecutive_failures(items[:scan_limit]) for model_id, items in per_model.items()}


class AlertEvaluator:
    """Checks enabled alert rules against the recent probe log and notifies."""

    def __init__(
        self,
        alert_store: AlertStore,
        health_store: HealthCheckStore,
        notifier: Notifier | None = None,
        lookback_minutes: int = 60,
        scan_limit: int = 10,
        min_failures_to_notify: int = 3,
    ):
        self.alert_store = alert_store
        self.health_store = health_store
        self.notifier = notifier or LoggingNotifier()
        self.lookback_minutes = lookback_minutes
        self.scan_limit = scan_limit
        self.min_failures_to_notify = min_failures_to_notify

    async def evaluate(
        self,
        chains: Iterable[FallbackChainConfig],
        now: datetime | None = None,
    ) -> list[AlertRecord]:
        now = now or utcnow()
        chains = list(chains)

        async with async_error_context("Failed to load alert rules"):
            configs = await self.alert_store.enabled_configs()
        if not configs:
            return []

        async with async_error_context("Failed to read recent health checks"):
            checks = await self.health_store.query_recent_window(now - timedelta(minutes=self.lookback_minutes))
        counts = failure_counts(checks, self.scan_limit)

        sent: list[AlertRecord] = []
        for config in configs:
            for model_id, count in sorted(counts.items()):
                if count < config.failure_threshold:
                    continue
                since = now - timedelta(minutes=config.cooldown_minutes)
                async with async_error_context("Failed to read alert history"):
                    recent = await self.alert_store.last_alert_since(config.id, model_id, since)
                if recent is not None:
                    logger.debug(f"Alert {config.name} for {model_id} suppressed by cooldown")
                    continue
                record = await self._send(config, model_id, count, chains, now)
                if record is not None:
                    sent.append(record)
        return sent

    async def _send(
        self,
        config: AlertConfig,
        model_id: str,
        failure_count: int,
        chains: list[FallbackChainConfig],
        now: datetime,
    ) -> AlertRecord | None:
        if failure_count < self.min_failures_to_notify:
            return None

        role = role_phrase(model_id, chains)
        message = f"{format_model_name(model_id)} is {role} and it's down ({failure_count} failures)."
        try:
            await self.notifier.notify(message, priority="critical")
        except Exception as e:
            logger.error(f"Failed to send alert for {model_id}: {e}")
            return None

        record = AlertRecord(
            alert_config_id=config.id,
            model_id=model_id,
            reason=f"{failure_count} consecutive failures - notification sent",
            message=message,
            sent_at=now,
            metadata={"failure_count": failure_count, "model_role": role, "notified": True},
        )
        async with async_error_context("Failed to record alert"):
            await self.alert_store.record_alert(record)
        alert_log.warning("alert_sent", model_id=model_id, rule=config.name, failure_count=failure_count, role=role)
        return record
