# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Alert rule and history repository backing the AlertStore contract."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import desc, select

from ..database import DatabaseManager
from ..domain.evaluation.models import ensure_aware
from ..domain.health.models import AlertConfig, AlertRecord
from ..models.database import AlertConfigRow, AlertHistoryRow
from .base import BaseRepository


def _config_to_domain(row: AlertConfigRow) -> AlertConfig:
    return AlertConfig(
        id=row.id,
        name=row.name,
        failure_threshold=row.failure_threshold,
        cooldown_minutes=row.cooldown_minutes,
        enabled=row.enabled,
    )


def _history_to_domain(row: AlertHistoryRow) -> AlertRecord:
    return AlertRecord(
        id=row.id,
        alert_config_id=row.alert_config_id,
        model_id=row.model_id,
        reason=row.reason,
        message=row.message,
        sent_at=ensure_aware(row.sent_at),
        metadata=dict(row.alert_metadata or {}),
    )


class AlertRepository(BaseRepository[AlertConfigRow]):
    def __init__(self, db_manager: DatabaseManager | None = None):
        super().__init__(AlertConfigRow, db_manager)

    async def enabled_configs(self) -> list[AlertConfig]:
        rows = await self.find_by({"enabled": True}, order_by="name")
        return [_config_to_domain(r) for r in rows]

    async def save_config(self, config: AlertConfig) -> AlertConfig:
        async def _upsert(session):
            row = await session.get(AlertConfigRow, config.id)
            if row is None:
                row = AlertConfigRow(id=config.id)
                session.add(row)
            row.name = config.name
            row.failure_threshold = config.failure_threshold
            row.cooldown_minutes = config.cooldown_minutes
            row.enabled = config.enabled
            await session.commit()
            return config

        return await self._execute_with_session(_upsert)

    async def last_alert_since(self, alert_config_id: str, model_id: str, since: datetime) -> AlertRecord | None:
        async def _query(session):
            stmt = (
                select(AlertHistoryRow)
                .where(AlertHistoryRow.alert_config_id == alert_config_id)
                .where(AlertHistoryRow.model_id == model_id)
                .where(AlertHistoryRow.sent_at >= since)
                .order_by(desc(AlertHistoryRow.sent_at))
                .limit(1)
            )
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return _history_to_domain(row) if row else None

        return await self._execute_with_session(_query)

    async def record_alert(self, record: AlertRecord) -> AlertRecord:
        async def _insert(session):
            session.add(
                AlertHistoryRow(
                    id=record.id,
                    alert_config_id=record.alert_config_id,
                    model_id=record.model_id,
                    reason=record.reason,
                    message=record.message,
                    sent_at=record.sent_at,
                    alert_metadata=dict(record.metadata),
                )
            )
            await session.commit()
            return record

        return await self._execute_with_session(_insert)
