# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Admin settings repository backing the SettingsStore contract."""

from __future__ import annotations

from typing import Any

from ..database import DatabaseManager
from ..domain.evaluation.models import utcnow
from ..models.database import AdminSettingRow
from .base import BaseRepository


class SettingsRepository(BaseRepository[AdminSettingRow]):
    def __init__(self, db_manager: DatabaseManager | None = None):
        super().__init__(AdminSettingRow, db_manager)

    async def get(self, key: str) -> Any | None:
        row = await self.get_by_key(key)
        return row.value if row else None

    async def put(self, key: str, value: Any) -> None:
        async def _upsert(session):
            row = await session.get(AdminSettingRow, key)
            if row is None:
                session.add(AdminSettingRow(key=key, value=value))
            else:
                row.value = value
                row.updated_at = utcnow()
            await session.commit()

        await self._execute_with_session(_upsert)
