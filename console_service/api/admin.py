# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Admin console endpoints - rankings, costs, fallback chains, health, settings."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from ..domain.evaluation.models import EvaluationRecord, ScoreBreakdown
from ..domain.fallback.models import SLOT_ORDER, FallbackChainConfig, Slot
from ..domain.ranking.engine import SortMode
from ..service import ConsoleService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> ConsoleService:
    return request.app.state.service


# Response models
class ModelSummaryResponse(BaseModel):
    model_id: str
    model_name: str
    scores: dict[str, float | None]
    counts: dict[str, int]
    test_count: int
    last_evaluated_at: datetime | None = None
    catalog: dict[str, Any] | None = None


class RankingResponse(BaseModel):
    category: str
    sort_mode: SortMode
    language_pair: str | None = None
    models: list[ModelSummaryResponse]


class CostComparisonResponse(BaseModel):
    model_id: str
    total_cost: float
    is_baseline: bool
    is_free: bool
    cost_multiple: float | None = None
    baseline_cost: float | None = None
    baseline_model_id: str | None = None


class CostResponse(BaseModel):
    category: str
    score_threshold: float
    comparisons: dict[str, CostComparisonResponse]


class SlotResponse(BaseModel):
    model_id: str
    model_name: str


class ChainResponse(BaseModel):
    category: str
    slots: dict[Slot, SlotResponse]
    dispatch_order: list[str]
    is_active: bool
    updated_at: datetime | None = None


class DraftResponse(BaseModel):
    category: str
    slots: dict[Slot, str]


class ServiceStatusResponse(BaseModel):
    model_id: str
    category: str
    status: str
    consecutive_failures: int
    avg_response_time_ms: float | None = None
    last_checked_at: datetime | None = None
    role: str | None = None


class UptimeResponse(BaseModel):
    total_checks: int
    success_count: int
    success_rate: float
    window_hours: int
    all_up: bool


class HealthStatusResponse(BaseModel):
    statuses: list[ServiceStatusResponse]
    uptime: UptimeResponse


class CheckResultResponse(BaseModel):
    model_id: str
    category: str
    status: str
    response_time_ms: float | None = None
    error_kind: str | None = None
    error_message: str | None = None


class RunCheckResponse(BaseModel):
    tested: int
    failed: int
    results: list[CheckResultResponse]
    alerts_sent: int


class EvaluationIn(BaseModel):
    category: str
    model_id: str
    model_name: str | None = None
    score: float
    source_lang: str = ""
    target_lang: str = ""
    score_breakdown: dict[str, Any] | None = None
    error: str | None = None
    error_kind: str | None = None
    response_time: float | None = None
    baseline_model_id: str | None = None
    baseline_model_name: str | None = None
    evaluation_model_id: str | None = None
    evaluation_model_name: str | None = None
    evaluation: str = ""


class AssignRequest(BaseModel):
    model_id: str = Field(min_length=1)


class CategoryRequest(BaseModel):
    name: str


class SettingRequest(BaseModel):
    value: Any


class SettingResponse(BaseModel):
    key: str
    value: Any = None


class DeleteResponse(BaseModel):
    deleted: int


def _chain_response(chain: FallbackChainConfig) -> ChainResponse:
    return ChainResponse(
        category=chain.category,
        slots={
            slot: SlotResponse(model_id=a.model_id, model_name=a.model_name)
            for slot, a in chain.slots.items()
        },
        dispatch_order=chain.dispatch_order(),
        is_active=chain.is_active,
        updated_at=chain.updated_at if chain.slots else None,
    )


def _draft_response(category: str, slots: dict[Slot, str]) -> DraftResponse:
    return DraftResponse(category=category, slots={s: slots[s] for s in SLOT_ORDER if s in slots})


# Categories
@router.get("/categories", response_model=list[str])
async def list_categories(service: ConsoleService = Depends(get_service)) -> list[str]:
    return await service.categories.all_categories()


@router.post("/categories", response_model=list[str], status_code=201)
async def add_category(body: CategoryRequest, service: ConsoleService = Depends(get_service)) -> list[str]:
    await service.categories.add(body.name)
    return await service.categories.all_categories()


@router.delete("/categories/{name}", response_model=list[str])
async def remove_category(name: str, service: ConsoleService = Depends(get_service)) -> list[str]:
    await service.categories.remove(name)
    return await service.categories.all_categories()


# Rankings and costs
@router.get("/rankings/{category}", response_model=RankingResponse)
async def get_rankings(
    category: str,
    sort: SortMode = SortMode.SCORE,
    language_pair: str | None = Query(default=None),
    service: ConsoleService = Depends(get_service),
) -> RankingResponse:
    ranked = await service.rankings(category, sort, language_pair)
    return RankingResponse(
        category=category,
        sort_mode=sort,
        language_pair=language_pair,
        models=[ModelSummaryResponse(**s.to_dict()) for s in ranked],
    )


@router.get("/costs/{category}", response_model=CostResponse)
async def get_costs(
    category: str,
    threshold: float | None = Query(default=None),
    language_pair: str | None = Query(default=None),
    service: ConsoleService = Depends(get_service),
) -> CostResponse:
    if threshold is None:
        threshold = await service.cost_threshold()
    comparisons = await service.cost_comparisons(category, threshold, language_pair)
    return CostResponse(
        category=category,
        score_threshold=threshold,
        comparisons={k: CostComparisonResponse(**v.to_dict()) for k, v in comparisons.items()},
    )


@router.get("/language-pairs", response_model=list[str])
async def get_language_pairs(
    category: str | None = Query(default=None),
    service: ConsoleService = Depends(get_service),
) -> list[str]:
    return await service.language_pairs(category)


# Fallback chains
@router.get("/chains", response_model=list[ChainResponse])
async def list_chains(service: ConsoleService = Depends(get_service)) -> list[ChainResponse]:
    return [_chain_response(c) for c in await service.list_chains()]


@router.get("/chains/{category}", response_model=ChainResponse)
async def get_chain(category: str, service: ConsoleService = Depends(get_service)) -> ChainResponse:
    return _chain_response(await service.load_chain(category))


@router.put("/chains/{category}/slots/{slot}", response_model=DraftResponse)
async def assign_slot(
    category: str,
    slot: str,
    body: AssignRequest,
    service: ConsoleService = Depends(get_service),
) -> DraftResponse:
    return _draft_response(category, await service.assign_slot(category, slot, body.model_id))


@router.delete("/chains/{category}/slots/{slot}", response_model=DraftResponse)
async def clear_slot(category: str, slot: str, service: ConsoleService = Depends(get_service)) -> DraftResponse:
    return _draft_response(category, await service.clear_slot(category, slot))


@router.post("/chains/{category}/save", response_model=ChainResponse)
async def save_chain(category: str, service: ConsoleService = Depends(get_service)) -> ChainResponse:
    return _chain_response(await service.save_chain(category))


# Health
@router.get("/health/status", response_model=HealthStatusResponse)
async def health_status(service: ConsoleService = Depends(get_service)) -> HealthStatusResponse:
    overview = await service.health_overview()
    return HealthStatusResponse(**overview.to_dict())


@router.post("/health/run-check", response_model=RunCheckResponse)
async def run_check(service: ConsoleService = Depends(get_service)) -> RunCheckResponse:
    run = await service.run_health_check()
    return RunCheckResponse(
        tested=len(run.records),
        failed=sum(1 for r in run.records if not r.is_success),
        results=[
            CheckResultResponse(
                model_id=r.model_id,
                category=r.category,
                status=r.status.value,
                response_time_ms=r.response_time_ms,
                error_kind=r.error_kind,
                error_message=r.error_message,
            )
            for r in run.records
        ],
        alerts_sent=len(run.alerts),
    )


# Evaluations
@router.post("/evaluations", status_code=201)
async def record_evaluation(body: EvaluationIn, service: ConsoleService = Depends(get_service)) -> dict[str, Any]:
    data = body.model_dump()
    breakdown = data.pop("score_breakdown")
    record = EvaluationRecord(
        model_name=data.pop("model_name") or body.model_id,
        score_breakdown=ScoreBreakdown.from_dict(breakdown),
        **data,
    )
    stored = await service.record_evaluation(record)
    return stored.to_dict()


@router.get("/evaluations")
async def list_evaluations(
    model_id: str = Query(...),
    service: ConsoleService = Depends(get_service),
) -> list[dict[str, Any]]:
    return [r.to_dict() for r in await service.evaluations_for_model(model_id)]


@router.delete("/evaluations", response_model=DeleteResponse)
async def delete_evaluations(
    model_id: str = Query(...),
    category: str = Query(...),
    service: ConsoleService = Depends(get_service),
) -> DeleteResponse:
    return DeleteResponse(deleted=await service.delete_model_evaluations(model_id, category))


@router.delete("/evaluations/all", response_model=DeleteResponse)
async def clear_evaluations(service: ConsoleService = Depends(get_service)) -> DeleteResponse:
    return DeleteResponse(deleted=await service.clear_evaluations())


# Settings
@router.get("/settings/{key}", response_model=SettingResponse)
async def get_setting(key: str, service: ConsoleService = Depends(get_service)) -> SettingResponse:
    return SettingResponse(key=key, value=await service.get_setting(key))


@router.put("/settings/{key}", response_model=SettingResponse)
async def put_setting(key: str, body: SettingRequest, service: ConsoleService = Depends(get_service)) -> SettingResponse:
    await service.put_setting(key, body.value)
    return SettingResponse(key=key, value=body.value)
