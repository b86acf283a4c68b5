"""Tests for health status derivation, probing and alerting."""

import json
import logging
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from conftest import BASE_TIME, FakeDispatcher, RecordingNotifier, make_check

from console_service.domain.fallback import FallbackChainConfig, Slot, SlotAssignment
from console_service.domain.health import (
    AlertConfig,
    AlertRecord,
    HealthStatus,
    HealthStatusDeriver,
    ProbeResult,
    consecutive_failures,
    derive_status,
    summarize_uptime,
)
from console_service.domain.health.alerts import AlertEvaluator, failure_counts, role_phrase
from console_service.domain.health.prober import HealthCheckRunner
from console_service.error_mapping import AdapterError, ProbeError
from console_service.stores import MemoryAlertStore, MemoryHealthCheckStore


def newest_first(model_id, outcomes):
    """Checks for ``outcomes`` given newest-first."""
    count = len(outcomes)
    return [make_check(model_id, ok, minutes=count - i) for i, ok in enumerate(outcomes)]


class TestDeriveStatus:
    """Test UP/DOWN/UNKNOWN derivation."""

    def test_leading_failures_mark_down(self):
        checks = newest_first("m/a", [False, False, True, False])
        status = derive_status("m/a", "translation", checks, sample_window=4)

        assert status.status is HealthStatus.DOWN
        assert status.consecutive_failures == 2
        assert status.last_checked_at == checks[0].checked_at

    def test_newest_success_marks_up(self):
        checks = newest_first("m/a", [True, False, False])
        status = derive_status("m/a", "translation", checks)

        assert status.status is HealthStatus.UP
        assert status.consecutive_failures == 0

    def test_flips_with_each_new_check(self):
        history = newest_first("m/a", [True, True])
        assert derive_status("m/a", "translation", history).status is HealthStatus.UP

        failed = make_check("m/a", False, minutes=10)
        assert derive_status("m/a", "translation", [failed] + history).status is HealthStatus.DOWN

        recovered = make_check("m/a", True, minutes=11)
        assert derive_status("m/a", "translation", [recovered, failed] + history).status is HealthStatus.UP

    def test_no_checks_is_unknown(self):
        status = derive_status("m/a", "translation", [], role="Primary (translation)")

        assert status.status is HealthStatus.UNKNOWN
        assert status.avg_response_time_ms is None
        assert status.last_checked_at is None
        assert status.role == "Primary (translation)"

    def test_average_counts_missing_latency_as_zero(self):
        checks = [
            make_check("m/a", True, minutes=3, response_time_ms=300.0),
            make_check("m/a", False, minutes=2, response_time_ms=None),
            make_check("m/a", True, minutes=1, response_time_ms=101.0),
        ]
        assert derive_status("m/a", "translation", checks).avg_response_time_ms == 134

    def test_only_sample_window_considered(self):
        checks = newest_first("m/a", [False, False, False, False])
        status = derive_status("m/a", "translation", checks, sample_window=2)
        assert status.consecutive_failures == 2

    def test_consecutive_failures_stops_at_success(self):
        assert consecutive_failures(newest_first("m/a", [False, True, False, False])) == 1


class TestUptime:
    def test_rate_and_all_up(self):
        checks = newest_first("m/a", [True, True, False, True])
        up = derive_status("m/a", "translation", checks[:1])
        down = derive_status("m/b", "translation", [make_check("m/b", False)])

        summary = summarize_uptime(checks, [up], window_hours=24)
        assert summary.total_checks == 4
        assert summary.success_rate == 75.0
        assert summary.all_up is True
        assert summarize_uptime(checks, [up, down]).all_up is False

    def test_no_checks(self):
        summary = summarize_uptime([], [])
        assert summary.success_rate == 0.0
        assert summary.total_checks == 0

    async def test_deriver_reads_window_from_store(self):
        store = MemoryHealthCheckStore()
        for check in newest_first("m/a", [False, True]):
            await store.insert(check)
        await store.insert(make_check("m/a", True, minutes=99, category="grammar"))
        await store.insert(make_check("m/old", True, minutes=-60 * 48))

        deriver = HealthStatusDeriver(store, sample_window=5, uptime_window_hours=24)
        [status] = await deriver.statuses([("m/a", "translation")], roles={"m/a": "FB1 (translation)"})
        assert status.status is HealthStatus.DOWN
        assert status.role == "FB1 (translation)"

        uptime = await deriver.uptime([status], now=BASE_TIME + timedelta(hours=1))
        assert uptime.total_checks == 3
        assert uptime.all_up is False

    async def test_store_failure_is_adapter_error(self):
        store = AsyncMock()
        store.query_by_model.side_effect = ConnectionError("db down")
        with pytest.raises(AdapterError):
            await HealthStatusDeriver(store).status_for("m/a", "translation")


class TestHealthCheckRunner:
    """Test concurrent probing."""

    def setup_method(self):
        self.store = MemoryHealthCheckStore()

    async def test_timeout_fails_only_that_target(self):
        dispatcher = FakeDispatcher(delays={"m/slow": 1.0})
        runner = HealthCheckRunner(dispatcher, self.store, timeout_seconds=0.2)

        records = await runner.run([("m/fast", "translation"), ("m/slow", "translation")])

        by_model = {r.model_id: r for r in records}
        assert by_model["m/fast"].is_success
        assert not by_model["m/slow"].is_success
        assert by_model["m/slow"].error_kind == "timeout"
        assert len(self.store.records) == 2

    async def test_error_kinds(self):
        dispatcher = FakeDispatcher(
            results={
                "m/http": ProbeResult(success=False, status_code=503, error_kind="http_error"),
                "m/conn": ProbeError("refused", kind="connection_error"),
                "m/boom": RuntimeError("unexpected"),
            }
        )
        runner = HealthCheckRunner(dispatcher, self.store, timeout_seconds=1.0)

        records = await runner.run([("m/http", "translation"), ("m/conn", "grammar"), ("m/boom", "scoring")])

        assert [r.error_kind for r in records] == ["http_error", "connection_error", "unknown"]
        assert all(r.response_time_ms is not None for r in records)

    async def test_unavailable_dispatcher(self):
        runner = HealthCheckRunner(FakeDispatcher(available=False), self.store)
        with pytest.raises(AdapterError):
            await runner.run([("m/a", "translation")])
        assert self.store.records == []

    async def test_no_targets(self):
        dispatcher = FakeDispatcher()
        assert await HealthCheckRunner(dispatcher, self.store).run([]) == []
        assert dispatcher.calls == []

    async def test_store_failure_does_not_fail_run(self):
        store = AsyncMock()
        store.insert.side_effect = ConnectionError("db down")
        records = await HealthCheckRunner(FakeDispatcher(), store).run([("m/a", "translation")])
        assert records[0].is_success


def primary_chain(category, model_id):
    return FallbackChainConfig(category=category, slots={Slot.PRIMARY: SlotAssignment(model_id, model_id)})


class TestAlerts:
    """Test alert thresholds, cooldown and delivery."""

    def setup_method(self):
        self.health = MemoryHealthCheckStore()
        self.alerts = MemoryAlertStore([AlertConfig(id="rule-1", name="Model down")])
        self.notifier = RecordingNotifier()
        self.evaluator = AlertEvaluator(self.alerts, self.health, self.notifier)
        self.now = BASE_TIME + timedelta(minutes=10)

    async def insert(self, model_id, outcomes):
        for check in newest_first(model_id, outcomes):
            await self.health.insert(check)

    async def test_sends_at_threshold(self):
        await self.insert("openai/gpt-4o", [False, False, False, True])
        chains = [primary_chain("translation", "openai/gpt-4o")]

        sent = await self.evaluator.evaluate(chains, now=self.now)

        assert len(sent) == 1
        [(message, priority)] = self.notifier.messages
        assert message == "Openai/gpt-4o is the Primary model (translation) and it's down (3 failures)."
        assert priority == "critical"
        assert self.alerts.history == sent

    async def test_below_threshold_is_silent(self):
        await self.insert("m/a", [False, False, True])
        assert await self.evaluator.evaluate([], now=self.now) == []
        assert self.notifier.messages == []

    async def test_cooldown_suppresses_repeat(self):
        await self.insert("m/a", [False, False, False])
        earlier = AlertRecord(
            alert_config_id="rule-1", model_id="m/a", reason="earlier", sent_at=self.now - timedelta(minutes=5)
        )
        await self.alerts.record_alert(earlier)
        assert await self.evaluator.evaluate([], now=self.now) == []

        later = self.now + timedelta(minutes=61)
        await self.insert("m/a", [False])
        evaluator = AlertEvaluator(self.alerts, self.health, self.notifier, lookback_minutes=120)
        assert len(await evaluator.evaluate([], now=later)) == 1

    async def test_low_rule_threshold_still_needs_minimum_failures(self):
        alerts = MemoryAlertStore([AlertConfig(id="rule-1", name="Sensitive", failure_threshold=1)])
        evaluator = AlertEvaluator(alerts, self.health, self.notifier)
        await self.insert("m/a", [False, False])

        assert await evaluator.evaluate([], now=self.now) == []
        assert alerts.history == []

    async def test_notifier_failure_records_nothing(self):
        notifier = AsyncMock()
        notifier.notify.side_effect = ConnectionError("sms gateway down")
        evaluator = AlertEvaluator(self.alerts, self.health, notifier)
        await self.insert("m/a", [False, False, False])

        assert await evaluator.evaluate([], now=self.now) == []
        assert self.alerts.history == []

    async def test_disabled_rule_ignored(self):
        alerts = MemoryAlertStore([AlertConfig(id="rule-1", name="Off", enabled=False)])
        await self.insert("m/a", [False, False, False])
        assert await AlertEvaluator(alerts, self.health, self.notifier).evaluate([], now=self.now) == []

    def test_role_phrase(self):
        chain = FallbackChainConfig(
            category="grammar",
            slots={Slot.PRIMARY: SlotAssignment("m/a", "A"), Slot.FALLBACK2: SlotAssignment("m/b", "B")},
        )
        assert role_phrase("m/a", [chain]) == "the Primary model (grammar)"
        assert role_phrase("m/b", [chain]) == "FB2 (grammar)"
        assert role_phrase("m/z", [chain]) == "a configured model"

    def test_failure_counts_respect_scan_limit(self):
        checks = newest_first("m/a", [False] * 12)
        assert failure_counts(checks, scan_limit=10) == {"m/a": 10}


class TestProbeEventLog:
    async def test_probe_events_are_json(self, caplog):
        dispatcher = FakeDispatcher(results={"m/down": False})
        runner = HealthCheckRunner(dispatcher, MemoryHealthCheckStore())

        with caplog.at_level(logging.INFO, logger="fleet_console.events"):
            await runner.run([("m/up", "translation"), ("m/down", "grammar")])

        events = {}
        for record in caplog.records:
            if record.name == "fleet_console.events.probes":
                payload = json.loads(record.getMessage())
                events[payload["model_id"]] = (record.levelno, payload)

        level, up = events["m/up"]
        assert level == logging.INFO
        assert up["event"] == "health_probe"
        assert up["component"] == "probes"
        assert up["status"] == "success"
        assert "error_kind" not in up

        level, down = events["m/down"]
        assert level == logging.WARNING
        assert down["category"] == "grammar"
