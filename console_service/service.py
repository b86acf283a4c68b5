# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Console service: the single entry point the admin surface and scheduler use.

Wires the store adapters into the aggregation, ranking, cost, fallback and
health components. Read paths degrade to "no data" when an adapter fails;
write paths raise.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .catalog.openrouter import OpenRouterCatalog, OpenRouterProbeDispatcher
from .categories import CategoryRegistry
from .config import SETTING_COST_THRESHOLD, SETTING_REFRESH_INTERVAL, ConsoleConfig
from .database import DatabaseManager
from .domain.cost.normalizer import CostComparison, compare_all
from .domain.evaluation.aggregator import unique_language_pairs
from .domain.evaluation.models import ERROR_KINDS, EvaluationRecord, ModelCatalogEntry, ModelSummary, utcnow
from .domain.fallback.configurator import FallbackChainConfigurator
from .domain.fallback.dispatch import describe_role, probe_targets
from .domain.fallback.models import FallbackChainConfig, Slot
from .domain.health.alerts import AlertEvaluator, Notifier
from .domain.health.deriver import HealthStatusDeriver
from .domain.health.models import AlertRecord, HealthCheckRecord, ServiceStatus, UptimeSummary
from .domain.health.prober import HealthCheckRunner
from .domain.ranking.engine import SortMode, rank_records
from .error_handling import ErrorHandler, async_error_context, validate_range, validate_required
from .error_mapping import ValidationError
from .stores import (
    AlertStore,
    EvaluationStore,
    FallbackChainStore,
    HealthCheckStore,
    MemoryAlertStore,
    MemoryEvaluationStore,
    MemoryFallbackChainStore,
    MemoryHealthCheckStore,
    MemorySettingsStore,
    ModelCatalogSource,
    ProbeDispatcher,
    SettingsStore,
)

logger = logging.getLogger(__name__)


@dataclass
class HealthOverview:
    statuses: list[ServiceStatus]
    uptime: UptimeSummary

    @classmethod
    def empty(cls, window_hours: int) -> HealthOverview:
        uptime = UptimeSummary(total_checks=0, success_count=0, success_rate=0.0, window_hours=window_hours, all_up=True)
        return cls(statuses=[], uptime=uptime)

    def to_dict(self) -> dict[str, Any]:
        return {"statuses": [s.to_dict() for s in self.statuses], "uptime": self.uptime.to_dict()}


@dataclass
class HealthCheckRun:
    records: list[HealthCheckRecord]
    alerts: list[AlertRecord] = field(default_factory=list)


@dataclass
class ConsoleSnapshot:
    """Everything the console shows, recomputed from scratch on each refresh."""

    generated_at: datetime
    rankings: dict[str, list[ModelSummary]]
    costs: dict[str, dict[str, CostComparison]]
    chains: list[FallbackChainConfig]
    health: HealthOverview


class ConsoleService:
    def __init__(
        self,
        config: ConsoleConfig,
        evaluations: EvaluationStore,
        catalog: ModelCatalogSource,
        chains: FallbackChainStore,
        health_checks: HealthCheckStore,
        dispatcher: ProbeDispatcher,
        settings: SettingsStore,
        alerts: AlertStore,
        notifier: Notifier | None = None,
    ):
        self.config = config
        self.evaluations = evaluations
        self.catalog = catalog
        self.chains = chains
        self.health_checks = health_checks
        self.dispatcher = dispatcher
        self.settings = settings
        self.alerts = alerts

        self.categories = CategoryRegistry(settings, config)
        self.configurator = FallbackChainConfigurator(chains, self.categories)
        self.deriver = HealthStatusDeriver(health_checks, config.sample_window, config.uptime_window_hours)
        self.runner = HealthCheckRunner(dispatcher, health_checks, config.probe_timeout_seconds)
        self.alert_evaluator = AlertEvaluator(
            alerts,
            health_checks,
            notifier,
            lookback_minutes=config.alert_lookback_minutes,
            scan_limit=config.alert_scan_limit,
            min_failures_to_notify=config.alert_min_failures_to_notify,
        )

    @classmethod
    def from_config(
        cls,
        config: ConsoleConfig,
        db_manager: DatabaseManager | None = None,
        notifier: Notifier | None = None,
    ) -> ConsoleService:
        """Build a service with OpenRouter adapters and the configured store backend."""
        catalog = OpenRouterCatalog(
            config.openrouter_api_key or None,
            base_url=config.openrouter_base_url,
            timeout=config.catalog_timeout_seconds,
            retry_attempts=config.catalog_retry_attempts,
            retry_delay=config.catalog_retry_delay_seconds,
        )
        dispatcher = OpenRouterProbeDispatcher(
            config.openrouter_api_key or None,
            timeout=config.probe_timeout_seconds,
            base_url=config.openrouter_base_url,
        )

        if config.store_backend == "database":
            from .repositories import (
                AlertRepository,
                EvaluationRepository,
                FallbackChainRepository,
                HealthCheckRepository,
                SettingsRepository,
            )

            stores: dict[str, Any] = {
                "evaluations": EvaluationRepository(db_manager),
                "chains": FallbackChainRepository(db_manager),
                "health_checks": HealthCheckRepository(db_manager),
                "settings": SettingsRepository(db_manager),
                "alerts": AlertRepository(db_manager),
            }
        else:
            stores = {
                "evaluations": MemoryEvaluationStore(),
                "chains": MemoryFallbackChainStore(),
                "health_checks": MemoryHealthCheckStore(),
                "settings": MemorySettingsStore(),
                "alerts": MemoryAlertStore(),
            }

        logger.info(f"Console service using {config.store_backend} store backend")
        return cls(config, catalog=catalog, dispatcher=dispatcher, notifier=notifier, **stores)

    # Read side
    async def load_catalog(self) -> list[ModelCatalogEntry] | None:
        """Catalog snapshot, or ``None`` when the source is unavailable."""
        return await ErrorHandler.handle_async_with_fallback(
            self.catalog.fetch_models,
            fallback_value=None,
            context="Model catalog unavailable, continuing without it",
        )

    async def load_records(self) -> list[EvaluationRecord]:
        return await ErrorHandler.handle_async_with_fallback(
            self.evaluations.query_all,
            fallback_value=[],
            context="Evaluation store unavailable, showing no data",
        )

    async def rankings(
        self,
        category: str,
        sort_mode: SortMode | str = SortMode.SCORE,
        language_pair: str | None = None,
        records: Sequence[EvaluationRecord] | None = None,
        catalog: Sequence[ModelCatalogEntry] | None = None,
    ) -> list[ModelSummary]:
        await self.categories.require(category)
        if records is None:
            records = await self.load_records()
        if catalog is None:
            catalog = await self.load_catalog()
        return rank_records(
            records,
            catalog,
            await self.categories.all_categories(),
            category,
            sort_mode,
            language_pair=language_pair,
            tie_break_order=self.config.tie_break_order,
        )

    async def cost_threshold(self) -> float:
        stored = await ErrorHandler.handle_async_with_fallback(
            lambda: self.settings.get(SETTING_COST_THRESHOLD),
            context="Settings store unavailable, using configured cost threshold",
        )
        if stored is None:
            return self.config.cost_threshold
        try:
            return float(stored)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed {SETTING_COST_THRESHOLD} setting: {stored!r}")
            return self.config.cost_threshold

    async def cost_comparisons(
        self,
        category: str,
        score_threshold: float | None = None,
        language_pair: str | None = None,
        ranked: Sequence[ModelSummary] | None = None,
    ) -> dict[str, CostComparison]:
        if ranked is None:
            ranked = await self.rankings(category, SortMode.SCORE, language_pair)
        if score_threshold is None:
            score_threshold = await self.cost_threshold()
        return compare_all(ranked, score_threshold, category)

    async def language_pairs(self, category: str | None = None) -> list[str]:
        records = await self.load_records()
        if category is not None:
            records = [r for r in records if r.category == category]
        return unique_language_pairs(records)

    # Evaluation administration
    async def record_evaluation(self, record: EvaluationRecord) -> EvaluationRecord:
        validate_required(record.model_id, "model_id")
        validate_required(record.category, "category")
        validate_range(record.score, "score", min_val=0)
        if record.error_kind is not None and record.error_kind not in ERROR_KINDS:
            raise ValidationError(f"Unknown error kind '{record.error_kind}'")
        await self.categories.require(record.category)
        async with async_error_context("Failed to store evaluation"):
            return await self.evaluations.insert(record)

    async def evaluations_for_model(self, model_id: str) -> list[EvaluationRecord]:
        async with async_error_context(f"Failed to read evaluations for {model_id}"):
            return await self.evaluations.query_by_model(model_id)

    async def delete_model_evaluations(self, model_id: str, category: str) -> int:
        validate_required(model_id, "model_id")
        await self.categories.require(category)
        async with async_error_context(f"Failed to delete evaluations for {model_id}"):
            return await self.evaluations.delete_by_model_and_category(model_id, category)

    async def clear_evaluations(self) -> int:
        async with async_error_context("Failed to clear evaluations"):
            return await self.evaluations.delete_all()

    # Fallback chains
    async def load_chain(self, category: str) -> FallbackChainConfig:
        return await self.configurator.load(category)

    async def assign_slot(self, category: str, slot: Slot | str, model_id: str) -> dict[Slot, str]:
        return await self.configurator.assign(category, slot, model_id)

    async def clear_slot(self, category: str, slot: Slot | str) -> dict[Slot, str]:
        return await self.configurator.clear(category, slot)

    async def save_chain(self, category: str) -> FallbackChainConfig:
        # Reject an incomplete chain before touching the evaluation store or catalog
        (await self.configurator.draft(category)).validate()
        ranking = await self.rankings(category)
        return await self.configurator.save(category, ranking)

    async def list_chains(self) -> list[FallbackChainConfig]:
        return await self.configurator.list_chains()

    # Health
    async def run_health_check(self) -> HealthCheckRun:
        chains = await self.list_chains()
        records = await self.runner.run(probe_targets(chains))
        # Probe records are already logged; an alerting outage must not fail the run
        alerts = await ErrorHandler.handle_async_with_fallback(
            lambda: self.alert_evaluator.evaluate(chains),
            fallback_value=[],
            log_level=logging.ERROR,
            context="Alert evaluation failed, no alerts sent",
        )
        return HealthCheckRun(records=records, alerts=alerts)

    async def health_overview(self, chains: Sequence[FallbackChainConfig] | None = None) -> HealthOverview:
        if chains is None:
            chains = await self.list_chains()
        targets = probe_targets(chains)
        roles = {model_id: describe_role(model_id, chains) for model_id, _ in targets}
        statuses = await self.deriver.statuses(targets, roles)
        uptime = await self.deriver.uptime(statuses)
        return HealthOverview(statuses=statuses, uptime=uptime)

    # Settings
    async def get_setting(self, key: str) -> Any | None:
        async with async_error_context(f"Failed to read setting {key}"):
            return await self.settings.get(key)

    async def put_setting(self, key: str, value: Any) -> None:
        validate_required(key, "key")
        if key == SETTING_REFRESH_INTERVAL:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"Setting '{key}' must be an integer")
            validate_range(value, key, min_val=0)
        elif key == SETTING_COST_THRESHOLD:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"Setting '{key}' must be a number")
            validate_range(value, key, min_val=0)
        async with async_error_context(f"Failed to write setting {key}"):
            await self.settings.put(key, value)
        logger.info(f"Setting {key} updated")

    async def refresh_interval(self) -> int:
        stored = await ErrorHandler.handle_async_with_fallback(
            lambda: self.settings.get(SETTING_REFRESH_INTERVAL),
            context="Settings store unavailable, using configured refresh interval",
        )
        try:
            return max(0, int(stored)) if stored is not None else self.config.refresh_interval_seconds
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed {SETTING_REFRESH_INTERVAL} setting: {stored!r}")
            return self.config.refresh_interval_seconds

    async def snapshot(self) -> ConsoleSnapshot:
        """Recompute every console view from the stores."""
        records = await self.load_records()
        catalog = await self.load_catalog()
        rankings: dict[str, list[ModelSummary]] = {}
        costs: dict[str, dict[str, CostComparison]] = {}
        threshold = await self.cost_threshold()
        for category in await self.categories.all_categories():
            ranked = await self.rankings(category, records=records, catalog=catalog or [])
            rankings[category] = ranked
            costs[category] = compare_all(ranked, threshold, category)

        chains = await ErrorHandler.handle_async_with_fallback(
            self.list_chains, fallback_value=[], context="Fallback chains unavailable"
        )
        health = await ErrorHandler.handle_async_with_fallback(
            lambda: self.health_overview(chains),
            fallback_value=HealthOverview.empty(self.config.uptime_window_hours),
            context="Health data unavailable",
        )
        return ConsoleSnapshot(
            generated_at=utcnow(),
            rankings=rankings,
            costs=costs,
            chains=chains,
            health=health,
        )
