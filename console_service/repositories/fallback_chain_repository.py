# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Fallback chain repository backing the FallbackChainStore contract."""

from __future__ import annotations

import logging

from ..database import DatabaseManager
from ..domain.evaluation.models import ensure_aware, utcnow
from ..domain.fallback.models import SLOT_ORDER, FallbackChainConfig, SlotAssignment
from ..models.database import FallbackChainRow
from .base import BaseRepository

logger = logging.getLogger(__name__)


def _to_domain(row: FallbackChainRow) -> FallbackChainConfig:
    slots = {}
    for slot in SLOT_ORDER:
        model_id = getattr(row, f"{slot.value}_id")
        if model_id:
            slots[slot] = SlotAssignment(model_id, getattr(row, f"{slot.value}_name") or model_id)
    return FallbackChainConfig(
        category=row.category,
        slots=slots,
        is_active=row.is_active,
        updated_at=ensure_aware(row.updated_at),
    )


class FallbackChainRepository(BaseRepository[FallbackChainRow]):
    """One row per category, overwritten in place on every save."""

    def __init__(self, db_manager: DatabaseManager | None = None):
        super().__init__(FallbackChainRow, db_manager)

    async def get(self, category: str) -> FallbackChainConfig | None:
        row = await self.get_by_key(category)
        return _to_domain(row) if row else None

    async def put(self, category: str, config: FallbackChainConfig) -> FallbackChainConfig:
        async def _upsert(session):
            row = await session.get(FallbackChainRow, category)
            if row is None:
                row = FallbackChainRow(category=category)
                session.add(row)
            for slot in SLOT_ORDER:
                setattr(row, f"{slot.value}_id", config.model_at(slot))
                setattr(row, f"{slot.value}_name", config.name_at(slot))
            row.is_active = config.is_active
            row.updated_at = utcnow()
            await session.commit()
            await session.refresh(row)
            return _to_domain(row)

        return await self._execute_with_session(_upsert)

    async def list_all(self) -> list[FallbackChainConfig]:
        rows = await self.find_by(order_by="category")
        return [_to_domain(r) for r in rows]
