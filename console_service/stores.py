# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Store contracts for the console engine and their in-memory backends.

The engine depends only on these protocols. Memory backends serve tests,
local development and the default ``store_backend=memory`` setting; the
SQLAlchemy repositories in ``console_service.repositories`` implement the
same contracts against a database.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Protocol

from .domain.evaluation.models import EvaluationRecord, ModelCatalogEntry
from .domain.fallback.models import FallbackChainConfig
from .domain.health.models import AlertConfig, AlertRecord, HealthCheckRecord, ProbeResult


class EvaluationStore(Protocol):
    async def insert(self, record: EvaluationRecord) -> EvaluationRecord: ...
    async def query_by_category(self, category: str) -> list[EvaluationRecord]: ...
    async def query_by_model(self, model_id: str) -> list[EvaluationRecord]: ...
    async def query_all(self) -> list[EvaluationRecord]: ...
    async def delete_by_model_and_category(self, model_id: str, category: str) -> int: ...
    async def delete_all(self) -> int: ...


class ModelCatalogSource(Protocol):
    async def fetch_models(self) -> list[ModelCatalogEntry]: ...


class FallbackChainStore(Protocol):
    async def get(self, category: str) -> FallbackChainConfig | None: ...
    async def put(self, category: str, config: FallbackChainConfig) -> FallbackChainConfig: ...
    async def list_all(self) -> list[FallbackChainConfig]: ...


class HealthCheckStore(Protocol):
    async def insert(self, record: HealthCheckRecord) -> HealthCheckRecord: ...

    async def query_by_model(
        self, model_id: str, limit: int, category: str | None = None
    ) -> list[HealthCheckRecord]: ...

    async def query_recent_window(self, since: datetime) -> list[HealthCheckRecord]: ...


class ProbeDispatcher(Protocol):
    async def probe(self, model_id: str) -> ProbeResult: ...
    async def check_available(self) -> bool: ...


class SettingsStore(Protocol):
    async def get(self, key: str) -> Any | None: ...
    async def put(self, key: str, value: Any) -> None: ...


class AlertStore(Protocol):
    async def enabled_configs(self) -> list[AlertConfig]: ...
    async def save_config(self, config: AlertConfig) -> AlertConfig: ...

    async def last_alert_since(
        self, alert_config_id: str, model_id: str, since: datetime
    ) -> AlertRecord | None: ...

    async def record_alert(self, record: AlertRecord) -> AlertRecord: ...


def _newest_first(items, key):
    return sorted(items, key=key, reverse=True)


class MemoryEvaluationStore:
    def __init__(self) -> None:
        self.records: list[EvaluationRecord] = []

    async def insert(self, record: EvaluationRecord) -> EvaluationRecord:
        self.records.append(record)
        return record

    async def query_by_category(self, category: str) -> list[EvaluationRecord]:
        return _newest_first((r for r in self.records if r.category == category), lambda r: r.timestamp)

    async def query_by_model(self, model_id: str) -> list[EvaluationRecord]:
        return _newest_first((r for r in self.records if r.model_id == model_id), lambda r: r.timestamp)

    async def query_all(self) -> list[EvaluationRecord]:
        return _newest_first(self.records, lambda r: r.timestamp)

    async def delete_by_model_and_category(self, model_id: str, category: str) -> int:
        before = len(self.records)
        self.records = [r for r in self.records if not (r.model_id == model_id and r.category == category)]
        return before - len(self.records)

    async def delete_all(self) -> int:
        removed = len(self.records)
        self.records = []
        return removed


class MemoryFallbackChainStore:
    def __init__(self) -> None:
        self.chains: dict[str, FallbackChainConfig] = {}

    async def get(self, category: str) -> FallbackChainConfig | None:
        return self.chains.get(category)

    async def put(self, category: str, config: FallbackChainConfig) -> FallbackChainConfig:
        self.chains[category] = config
        return config

    async def list_all(self) -> list[FallbackChainConfig]:
        return [self.chains[k] for k in sorted(self.chains)]


class MemoryHealthCheckStore:
    def __init__(self) -> None:
        self.records: list[HealthCheckRecord] = []

    async def insert(self, record: HealthCheckRecord) -> HealthCheckRecord:
        self.records.append(record)
        return record

    async def query_by_model(
        self, model_id: str, limit: int, category: str | None = None
    ) -> list[HealthCheckRecord]:
        matching = (
            r for r in self.records if r.model_id == model_id and (category is None or r.category == category)
        )
        return _newest_first(matching, lambda r: r.checked_at)[:limit]

    async def query_recent_window(self, since: datetime) -> list[HealthCheckRecord]:
        return _newest_first((r for r in self.records if r.checked_at >= since), lambda r: r.checked_at)


class MemorySettingsStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self.values.get(key))

    async def put(self, key: str, value: Any) -> None:
        self.values[key] = copy.deepcopy(value)


class MemoryAlertStore:
    def __init__(self, configs: list[AlertConfig] | None = None) -> None:
        self.configs: dict[str, AlertConfig] = {c.id: c for c in configs or ()}
        self.history: list[AlertRecord] = []

    async def enabled_configs(self) -> list[AlertConfig]:
        return [c for c in self.configs.values() if c.enabled]

    async def save_config(self, config: AlertConfig) -> AlertConfig:
        self.configs[config.id] = config
        return config

    async def last_alert_since(self, alert_config_id: str, model_id: str, since: datetime) -> AlertRecord | None:
        matching = [
            a
            for a in self.history
            if a.alert_config_id == alert_config_id and a.model_id == model_id and a.sent_at >= since
        ]
        return max(matching, key=lambda a: a.sent_at) if matching else None

    async def record_alert(self, record: AlertRecord) -> AlertRecord:
        self.history.append(record)
        return record
