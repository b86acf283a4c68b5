# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Evaluation repository backing the EvaluationStore contract."""

from __future__ import annotations

import logging

from ..database import DatabaseManager
from ..domain.evaluation.models import EvaluationRecord, ScoreBreakdown, ensure_aware
from ..models.database import EvaluationRecordRow
from .base import BaseRepository

logger = logging.getLogger(__name__)


def _to_domain(row: EvaluationRecordRow) -> EvaluationRecord:
    return EvaluationRecord(
        id=row.id,
        timestamp=ensure_aware(row.timestamp),
        category=row.category,
        model_id=row.model_id,
        model_name=row.model_name,
        source_lang=row.source_lang,
        target_lang=row.target_lang,
        score=row.score,
        score_breakdown=ScoreBreakdown.from_dict(row.score_breakdown),
        error=row.error,
        error_kind=row.error_kind,
        response_time=row.response_time,
        baseline_model_id=row.baseline_model_id,
        baseline_model_name=row.baseline_model_name,
        evaluation_model_id=row.evaluation_model_id,
        evaluation_model_name=row.evaluation_model_name,
        evaluation=row.evaluation,
    )


class EvaluationRepository(BaseRepository[EvaluationRecordRow]):
    """Append-only evaluation results, newest first on every read."""

    def __init__(self, db_manager: DatabaseManager | None = None):
        super().__init__(EvaluationRecordRow, db_manager)

    async def insert(self, record: EvaluationRecord) -> EvaluationRecord:
        data = record.to_dict()
        data["timestamp"] = record.timestamp
        await self.create(**data)
        return record

    async def query_by_category(self, category: str) -> list[EvaluationRecord]:
        rows = await self.find_by({"category": category}, order_by="-timestamp")
        return [_to_domain(r) for r in rows]

    async def query_by_model(self, model_id: str) -> list[EvaluationRecord]:
        rows = await self.find_by({"model_id": model_id}, order_by="-timestamp")
        return [_to_domain(r) for r in rows]

    async def query_all(self) -> list[EvaluationRecord]:
        rows = await self.find_by(order_by="-timestamp")
        return [_to_domain(r) for r in rows]

    async def delete_by_model_and_category(self, model_id: str, category: str) -> int:
        removed = await self.delete_where({"model_id": model_id, "category": category})
        logger.info(f"Deleted {removed} evaluations for {model_id} in {category}")
        return removed

    async def delete_all(self) -> int:
        removed = await self.delete_where()
        logger.info(f"Deleted all {removed} evaluations")
        return removed
