# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Task category registry: built-in defaults plus operator-defined custom categories."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .config import SETTING_CUSTOM_CATEGORIES, ConsoleConfig
from .error_handling import ErrorHandler, async_error_context, validate_required
from .error_mapping import ValidationError

if TYPE_CHECKING:
    from .stores import SettingsStore

logger = logging.getLogger(__name__)


class CategoryRegistry:
    """Resolves the live category set from configuration and the settings store."""

    def __init__(self, settings: SettingsStore, config: ConsoleConfig):
        self.settings = settings
        self.config = config

    async def custom_categories(self) -> list[str]:
        stored = await ErrorHandler.handle_async_with_fallback(
            lambda: self.settings.get(SETTING_CUSTOM_CATEGORIES),
            context="Settings store unavailable, using default categories only",
        )
        if not stored:
            return []
        if not isinstance(stored, list):
            logger.warning(f"Ignoring malformed {SETTING_CUSTOM_CATEGORIES} setting: {stored!r}")
            return []
        return [str(c) for c in stored if c not in self.config.default_categories]

    async def all_categories(self) -> list[str]:
        return list(self.config.default_categories) + await self.custom_categories()

    async def require(self, category: str) -> str:
        """Return ``category`` if known, otherwise raise ValidationError."""
        if category not in await self.all_categories():
            raise ValidationError(f"Unknown category '{category}'")
        return category

    async def add(self, name: str) -> str:
        validate_required(name, "category")
        normalized = name.strip().lower()
        current = await self.custom_categories()
        if normalized in self.config.default_categories or normalized in current:
            raise ValidationError(f"Category '{normalized}' already exists")
        async with async_error_context("Failed to save custom categories"):
            await self.settings.put(SETTING_CUSTOM_CATEGORIES, current + [normalized])
        logger.info(f"Added custom category {normalized}")
        return normalized

    async def remove(self, name: str) -> None:
        if name in self.config.default_categories:
            raise ValidationError(f"Built-in category '{name}' cannot be removed")
        current = await self.custom_categories()
        if name not in current:
            raise ValidationError(f"Unknown category '{name}'")
        async with async_error_context("Failed to save custom categories"):
            await self.settings.put(SETTING_CUSTOM_CATEGORIES, [c for c in current if c != name])
        logger.info(f"Removed custom category {name}")
