"""Pytest configuration and shared fixtures for the console tests."""

# Ensure project root on sys.path for imports
import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

root = os.path.dirname(os.path.abspath(__file__))
proj = os.path.abspath(os.path.join(root, ".."))
if proj not in sys.path:
    sys.path.insert(0, proj)

from console_service.catalog.static import StaticCatalog  # noqa: E402
from console_service.config import ConsoleConfig  # noqa: E402
from console_service.domain.evaluation.models import EvaluationRecord, ModelCatalogEntry  # noqa: E402
from console_service.domain.health.models import CheckStatus, HealthCheckRecord, ProbeResult  # noqa: E402
from console_service.service import ConsoleService  # noqa: E402
from console_service.stores import (  # noqa: E402
    MemoryAlertStore,
    MemoryEvaluationStore,
    MemoryFallbackChainStore,
    MemoryHealthCheckStore,
    MemorySettingsStore,
)

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(model_id, score, category="translation", minutes=0, **kwargs):
    """Evaluation record ``minutes`` after BASE_TIME."""
    kwargs.setdefault("model_name", model_id.split("/")[-1].title())
    return EvaluationRecord(
        category=category,
        model_id=model_id,
        score=score,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )


def make_check(model_id, success, minutes=0, category="translation", response_time_ms=100.0):
    return HealthCheckRecord(
        model_id=model_id,
        category=category,
        status=CheckStatus.SUCCESS if success else CheckStatus.FAILURE,
        checked_at=BASE_TIME + timedelta(minutes=minutes),
        response_time_ms=response_time_ms,
    )


class FakeDispatcher:
    """Probe dispatcher returning scripted results per model."""

    def __init__(self, results=None, available=True, delays=None):
        self.results = results or {}
        self.available = available
        self.delays = delays or {}
        self.calls = []

    async def check_available(self):
        return self.available

    async def probe(self, model_id):
        self.calls.append(model_id)
        if model_id in self.delays:
            await asyncio.sleep(self.delays[model_id])
        outcome = self.results.get(model_id, True)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, ProbeResult):
            return outcome
        return ProbeResult(success=bool(outcome), response_time_ms=50.0)


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    async def notify(self, message, priority="critical"):
        self.messages.append((message, priority))


@pytest.fixture
def config():
    return ConsoleConfig(probe_timeout_seconds=0.2)


@pytest.fixture
def catalog_entries():
    return [
        ModelCatalogEntry("vendor/model-a", "Model A", prompt_cost=0.001, completion_cost=0.001, context_length=8000),
        ModelCatalogEntry("vendor/model-b", "Model B", prompt_cost=0.0005, completion_cost=0.0005, context_length=128000),
        ModelCatalogEntry("vendor/model-c", "Model C", prompt_cost=0.002, completion_cost=0.002, context_length=32000),
        ModelCatalogEntry("vendor/free", "Free Model", prompt_cost=0.0, completion_cost=0.0, context_length=4096),
    ]


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(config, catalog_entries, dispatcher, notifier):
    return ConsoleService(
        config,
        evaluations=MemoryEvaluationStore(),
        catalog=StaticCatalog(catalog_entries),
        chains=MemoryFallbackChainStore(),
        health_checks=MemoryHealthCheckStore(),
        dispatcher=dispatcher,
        settings=MemorySettingsStore(),
        alerts=MemoryAlertStore(),
        notifier=notifier,
    )
