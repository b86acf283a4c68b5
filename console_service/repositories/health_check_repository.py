# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Probe log repository backing the HealthCheckStore contract."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import desc, select

from ..database import DatabaseManager
from ..domain.evaluation.models import ensure_aware
from ..domain.health.models import CheckStatus, HealthCheckRecord
from ..models.database import HealthCheckRow
from .base import BaseRepository


def _to_domain(row: HealthCheckRow) -> HealthCheckRecord:
    return HealthCheckRecord(
        id=row.id,
        model_id=row.model_id,
        category=row.category,
        status=CheckStatus(row.status),
        checked_at=ensure_aware(row.checked_at),
        response_time_ms=row.response_time_ms,
        error_kind=row.error_kind,
        error_message=row.error_message,
    )


class HealthCheckRepository(BaseRepository[HealthCheckRow]):
    def __init__(self, db_manager: DatabaseManager | None = None):
        super().__init__(HealthCheckRow, db_manager)

    async def insert(self, record: HealthCheckRecord) -> HealthCheckRecord:
        await self.create(
            id=record.id,
            model_id=record.model_id,
            category=record.category,
            status=record.status.value,
            checked_at=record.checked_at,
            response_time_ms=record.response_time_ms,
            error_kind=record.error_kind,
            error_message=record.error_message,
        )
        return record

    async def query_by_model(
        self, model_id: str, limit: int, category: str | None = None
    ) -> list[HealthCheckRecord]:
        filters = {"model_id": model_id}
        if category is not None:
            filters["category"] = category
        rows = await self.find_by(filters, order_by="-checked_at", limit=limit)
        return [_to_domain(r) for r in rows]

    async def query_recent_window(self, since: datetime) -> list[HealthCheckRecord]:
        async def _query(session):
            stmt = (
                select(HealthCheckRow)
                .where(HealthCheckRow.checked_at >= since)
                .order_by(desc(HealthCheckRow.checked_at))
            )
            result = await session.execute(stmt)
            return [_to_domain(r) for r in result.scalars().all()]

        return await self._execute_with_session(_query)
