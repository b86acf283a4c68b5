# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Health domain models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..evaluation.models import utcnow

PROBE_ERROR_KINDS = ("timeout", "http_error", "connection_error", "unknown")


class CheckStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class HealthStatus(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe request against a model."""

    success: bool
    response_time_ms: float | None = None
    status_code: int | None = None
    error_kind: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class HealthCheckRecord:
    """One entry of the append-only probe log."""

    model_id: str
    category: str
    status: CheckStatus
    checked_at: datetime = field(default_factory=utcnow)
    response_time_ms: float | None = None
    error_kind: str | None = None
    error_message: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_success(self) -> bool:
        return self.status is CheckStatus.SUCCESS

    @classmethod
    def from_probe(cls, model_id: str, category: str, result: ProbeResult) -> HealthCheckRecord:
        return cls(
            model_id=model_id,
            category=category,
            status=CheckStatus.SUCCESS if result.success else CheckStatus.FAILURE,
            response_time_ms=result.response_time_ms,
            error_kind=None if result.success else (result.error_kind or "unknown"),
            error_message=None if result.success else result.error_message,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "model_id": self.model_id,
            "category": self.category,
            "status": self.status.value,
            "checked_at": self.checked_at.isoformat(),
            "response_time_ms": self.response_time_ms,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class ServiceStatus:
    """Derived status of one (model, category) target. Never persisted."""

    model_id: str
    category: str
    status: HealthStatus
    consecutive_failures: int = 0
    avg_response_time_ms: float | None = None
    last_checked_at: datetime | None = None
    role: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "category": self.category,
            "status": self.status.value,
            "consecutive_failures": self.consecutive_failures,
            "avg_response_time_ms": self.avg_response_time_ms,
            "last_checked_at": self.last_checked_at.isoformat() if self.last_checked_at else None,
            "role": self.role,
        }


@dataclass(frozen=True)
class UptimeSummary:
    total_checks: int
    success_count: int
    success_rate: float  # percent
    window_hours: int
    all_up: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_checks": self.total_checks,
            "success_count": self.success_count,
            "success_rate": self.success_rate,
            "window_hours": self.window_hours,
            "all_up": self.all_up,
        }


@dataclass(frozen=True)
class AlertConfig:
    """Operator alert rule evaluated after each probe run."""

    id: str
    name: str
    failure_threshold: int = 3
    cooldown_minutes: int = 60
    enabled: bool = True


@dataclass(frozen=True)
class AlertRecord:
    """Append-only record of a notification sent for a rule and model."""

    alert_config_id: str
    model_id: str
    reason: str
    message: str = ""
    sent_at: datetime = field(default_factory=utcnow)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
