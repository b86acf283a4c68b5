# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Concurrent "run check now" probing of fallback-chain targets."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ...error_handling import ErrorHandler
from ...error_mapping import AdapterError, ProbeError
from ...logging_utils import log_probe
from .models import HealthCheckRecord, ProbeResult

if TYPE_CHECKING:
    from ...stores import HealthCheckStore, ProbeDispatcher

logger = logging.getLogger(__name__)


class HealthCheckRunner:
    """
    Fans probes out over all targets at once.

    Each probe is bounded by ``timeout_seconds`` and always produces its own
    HealthCheckRecord; a slow or failing target never affects the others.
    """

    def __init__(self, dispatcher: ProbeDispatcher, store: HealthCheckStore, timeout_seconds: float = 10.0):
        self.dispatcher = dispatcher
        self.store = store
        self.timeout_seconds = timeout_seconds

    async def run(self, targets: Iterable[tuple[str, str]]) -> list[HealthCheckRecord]:
        targets = list(targets)
        try:
            available = await self.dispatcher.check_available()
        except Exception as e:
            raise AdapterError(f"Probe dispatcher unavailable: {e}") from e
        if not available:
            raise AdapterError("Probe dispatcher unavailable")

        if not targets:
            logger.info("No active fallback-chain targets to probe")
            return []

        records = await asyncio.gather(*(self._probe_one(model_id, category) for model_id, category in targets))
        failed = sum(1 for r in records if not r.is_success)
        logger.info(f"Health check run complete: {len(records)} probed, {failed} failed")
        return list(records)

    async def _probe_one(self, model_id: str, category: str) -> HealthCheckRecord:
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(self.dispatcher.probe(model_id), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            result = ProbeResult(
                success=False,
                error_kind="timeout",
                error_message=f"Probe timed out after {self.timeout_seconds}s",
            )
        except ProbeError as e:
            result = ProbeResult(success=False, error_kind=e.kind, error_message=e.detail)
        except Exception as e:
            result = ProbeResult(success=False, error_kind="unknown", error_message=str(e))

        if result.response_time_ms is None:
            result = ProbeResult(
                success=result.success,
                response_time_ms=round((time.monotonic() - started) * 1000, 1),
                status_code=result.status_code,
                error_kind=result.error_kind,
                error_message=result.error_message,
            )

        record = HealthCheckRecord.from_probe(model_id, category, result)
        await ErrorHandler.handle_async_with_fallback(
            lambda: self.store.insert(record),
            log_level=logging.ERROR,
            context=f"Failed to log health check for {model_id}",
        )
        log_probe(record)
        return record
