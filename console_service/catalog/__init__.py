# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Model catalog sources and helpers."""

from .filters import filter_catalog, format_model_name, has_reasoning_cost, is_text_only
from .openrouter import OpenRouterCatalog, OpenRouterProbeDispatcher, parse_model
from .static import StaticCatalog

__all__ = [
    "OpenRouterCatalog",
    "OpenRouterProbeDispatcher",
    "StaticCatalog",
    "filter_catalog",
    "format_model_name",
    "has_reasoning_cost",
    "is_text_only",
    "parse_model",
]
