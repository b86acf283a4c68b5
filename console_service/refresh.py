# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Periodic recomputation of the console snapshot."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .service import ConsoleService, ConsoleSnapshot

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Rebuilds the console snapshot on a fixed period.

    The period is re-read from the settings store before every sleep, so an
    operator change takes effect on the next tick; ``0`` stops the loop.
    Each tick recomputes everything from the stores.
    """

    def __init__(
        self,
        service: ConsoleService,
        run_probes: bool = False,
        on_snapshot: Callable[[ConsoleSnapshot], Awaitable[None]] | None = None,
    ):
        self.service = service
        self.run_probes = run_probes
        self.on_snapshot = on_snapshot
        self.latest: ConsoleSnapshot | None = None
        self.tick_count = 0
        self.error_count = 0
        self._is_running = False
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Start the refresh loop."""
        if self._is_running:
            logger.warning("Console refresh is already running")
            return

        interval = await self.service.refresh_interval()
        if interval <= 0:
            logger.info("Console auto-refresh is disabled")
            return

        self._is_running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Console auto-refresh started (every {interval}s)")

    async def stop(self) -> None:
        """Stop the refresh loop."""
        self._is_running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Console auto-refresh stopped")

    async def tick(self) -> ConsoleSnapshot:
        """Recompute once: optional probe run, then the full snapshot."""
        if self.run_probes:
            await self.service.run_health_check()
        snapshot = await self.service.snapshot()
        self.latest = snapshot
        self.tick_count += 1
        if self.on_snapshot is not None:
            await self.on_snapshot(snapshot)
        return snapshot

    async def _refresh_loop(self) -> None:
        """Main refresh loop."""
        while self._is_running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.error_count += 1
                logger.error(f"Error in console refresh loop: {e}")

            interval = await self.service.refresh_interval()
            if interval <= 0:
                logger.info("Console auto-refresh disabled by setting")
                self._is_running = False
                break
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
