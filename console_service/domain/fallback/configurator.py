# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Operator-facing editing of per-category fallback chains."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ...error_handling import async_error_context
from ..evaluation.models import ModelSummary
from .models import FallbackChainBuilder, FallbackChainConfig, Slot

if TYPE_CHECKING:
    from ...categories import CategoryRegistry
    from ...stores import FallbackChainStore

logger = logging.getLogger(__name__)


class FallbackChainConfigurator:
    """
    Keeps one working chain per category and persists it on save.

    Assignments only touch the working chain; nothing reaches the store
    until ``save`` validates it. Saves are last-write-wins.
    """

    def __init__(self, store: FallbackChainStore, categories: CategoryRegistry):
        self.store = store
        self.categories = categories
        self._drafts: dict[str, FallbackChainBuilder] = {}

    async def load(self, category: str) -> FallbackChainConfig:
        """Load the persisted chain and reset the working copy to it."""
        await self.categories.require(category)
        async with async_error_context(f"Failed to load fallback chain for {category}"):
            config = await self.store.get(category)
        if config is None:
            config = FallbackChainConfig(category=category)
        self._drafts[category] = FallbackChainBuilder.from_config(config)
        return config

    async def draft(self, category: str) -> FallbackChainBuilder:
        if category not in self._drafts:
            await self.load(category)
        return self._drafts[category]

    async def assign(self, category: str, slot: Slot | str, model_id: str) -> dict[Slot, str]:
        builder = await self.draft(category)
        builder.assign(slot, model_id)
        return builder.snapshot()

    async def clear(self, category: str, slot: Slot | str) -> dict[Slot, str]:
        builder = await self.draft(category)
        builder.clear(slot)
        return builder.snapshot()

    async def save(self, category: str, ranking: Iterable[ModelSummary] = ()) -> FallbackChainConfig:
        """Validate and persist the working chain for ``category``.

        Display names are resolved from ``ranking``; models missing from it
        are stored under their raw id.
        """
        builder = await self.draft(category)
        builder.validate()
        names = {s.model_id: s.model_name for s in ranking}

        async with async_error_context(f"Failed to save fallback chain for {category}"):
            previous = await self.store.get(category)
            config = builder.build(names, is_active=previous.is_active if previous else True)
            saved = await self.store.put(category, config)

        if previous is not None and previous.dispatch_order() != saved.dispatch_order():
            logger.info(
                f"Overwrote {category} fallback chain (primary {previous.primary} -> {saved.primary}, "
                f"previous save {previous.updated_at.isoformat()})"
            )
        else:
            logger.info(f"Saved {category} fallback chain with primary {saved.primary}")
        return saved

    async def list_chains(self) -> list[FallbackChainConfig]:
        async with async_error_context("Failed to list fallback chains"):
            return await self.store.list_all()
