# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Fixed, in-process model catalog for offline use and tests."""

from __future__ import annotations

from collections.abc import Iterable

from ..domain.evaluation.models import ModelCatalogEntry


class StaticCatalog:
    def __init__(self, entries: Iterable[ModelCatalogEntry] = ()):
        self.entries = list(entries)

    async def fetch_models(self) -> list[ModelCatalogEntry]:
        return list(self.entries)
