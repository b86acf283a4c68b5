# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Base repository class with common CRUD operations."""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, desc, func, select

from ..database import Base, DatabaseManager, get_database_manager

logger = logging.getLogger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository class with common CRUD operations."""

    def __init__(self, model_class: type[ModelType], db_manager: DatabaseManager | None = None):
        self.model_class = model_class
        self.db_manager = db_manager or get_database_manager()

        self._default_page_size = 50
        self._max_page_size = 1000

    async def _execute_with_session(self, operation):
        """Execute an operation with a fresh session."""
        async with self.db_manager.get_session() as session:
            return await operation(session)

    def _apply_filters(self, stmt, filters: dict[str, Any] | None):
        for key, value in (filters or {}).items():
            if hasattr(self.model_class, key):
                column = getattr(self.model_class, key)
                if isinstance(value, list):
                    stmt = stmt.where(column.in_(value))
                else:
                    stmt = stmt.where(column == value)
        return stmt

    def _apply_ordering(self, stmt, order_by: str | None):
        if not order_by:
            return stmt
        if order_by.startswith("-"):
            column_name = order_by[1:]
            if hasattr(self.model_class, column_name):
                return stmt.order_by(desc(getattr(self.model_class, column_name)))
        elif hasattr(self.model_class, order_by):
            return stmt.order_by(getattr(self.model_class, order_by))
        return stmt

    # CRUD operations
    async def create(self, **kwargs) -> ModelType:
        """Create a new entity."""
        async def _create_operation(session):
            entity = self.model_class(**kwargs)
            session.add(entity)
            await session.commit()
            await session.refresh(entity)
            logger.debug(f"Created {self.model_class.__name__}")
            return entity

        return await self._execute_with_session(_create_operation)

    async def get_by_key(self, key: Any) -> ModelType | None:
        """Get entity by primary key."""
        async def _get_operation(session):
            return await session.get(self.model_class, key)

        return await self._execute_with_session(_get_operation)

    async def find_by(
        self,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[ModelType]:
        """Find entities by field values."""
        async def _find_operation(session):
            stmt = self._apply_filters(select(self.model_class), filters)
            stmt = self._apply_ordering(stmt, order_by)
            if limit is not None:
                stmt = stmt.limit(min(limit, self._max_page_size))
            result = await session.execute(stmt)
            return list(result.scalars().all())

        return await self._execute_with_session(_find_operation)

    async def count(self, filters: dict[str, Any] | None = None) -> int:
        """Count entities with optional filtering."""
        async def _count_operation(session):
            stmt = self._apply_filters(select(func.count()).select_from(self.model_class), filters)
            result = await session.execute(stmt)
            return result.scalar() or 0

        return await self._execute_with_session(_count_operation)

    async def delete_where(self, filters: dict[str, Any] | None = None) -> int:
        """Hard delete entities matching filters; no filters deletes everything."""
        async def _delete_operation(session):
            stmt = self._apply_filters(delete(self.model_class), filters)
            result = await session.execute(stmt)
            await session.commit()
            logger.debug(f"Deleted {result.rowcount} {self.model_class.__name__} entities")
            return result.rowcount

        return await self._execute_with_session(_delete_operation)
