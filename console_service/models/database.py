# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Database models for the fleet console.

Defines SQLAlchemy models for evaluation results, the probe log, fallback
chains, operator settings and alerting.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False
    )


# Evaluation Models
class EvaluationRecordRow(Base):
    """Append-only evaluation result."""

    __tablename__ = "model_evaluations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    model_name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_lang: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    target_lang: Mapped[str] = mapped_column(String(20), nullable=False, default="")

    # Scores
    score: Mapped[float] = mapped_column(Float, nullable=False)
    score_breakdown: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    evaluation: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Error tracking
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_kind: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    response_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Baseline and evaluator context
    baseline_model_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    baseline_model_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    evaluation_model_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    evaluation_model_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_evaluations_category_timestamp", "category", "timestamp"),
        Index("idx_evaluations_model_category", "model_id", "category"),
    )


# Health Models
class HealthCheckRow(Base):
    """Append-only probe result."""

    __tablename__ = "api_health_checks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    service: Mapped[str] = mapped_column(String(50), nullable=False, default="openrouter")
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # success, failure
    checked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    response_time_ms: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    error_kind: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_health_checks_model_checked", "model_id", "checked_at"),
        Index("idx_health_checks_checked", "checked_at"),
    )


# Configuration Models
class FallbackChainRow(Base, TimestampMixin):
    """Primary plus ordered fallbacks for one category."""

    __tablename__ = "fallback_chains"

    category: Mapped[str] = mapped_column(String(100), primary_key=True)
    primary_id: Mapped[str] = mapped_column(String(255), nullable=False)
    primary_name: Mapped[str] = mapped_column(String(255), nullable=False)
    fallback1_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fallback1_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fallback2_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fallback2_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fallback3_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fallback3_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class AdminSettingRow(Base):
    """Operator-editable key/value setting."""

    __tablename__ = "admin_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


# Alerting Models
class AlertConfigRow(Base, TimestampMixin):
    """Alert rule evaluated after each probe run."""

    __tablename__ = "alert_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    failure_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    cooldown_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AlertHistoryRow(Base):
    """Notification sent for an alert rule and model."""

    __tablename__ = "alert_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    alert_config_id: Mapped[str] = mapped_column(String(36), nullable=False)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    alert_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_alert_history_rule_model_sent", "alert_config_id", "model_id", "sent_at"),
    )
