# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Catalog filters and display helpers."""

from __future__ import annotations

from ..domain.evaluation.models import ModelCatalogEntry


def is_text_only(entry: ModelCatalogEntry) -> bool:
    """True unless the model declares a non-text input/output modality."""
    if any(m != "text" for m in entry.input_modalities):
        return False
    if any(m != "text" for m in entry.output_modalities):
        return False
    if entry.modality and entry.modality != "text->text":
        return False
    return True


def has_reasoning_cost(entry: ModelCatalogEntry) -> bool:
    return bool(entry.reasoning_cost and entry.reasoning_cost > 0)


def filter_catalog(
    entries: list[ModelCatalogEntry],
    text_only: bool = False,
    exclude_reasoning: bool = False,
    search: str | None = None,
) -> list[ModelCatalogEntry]:
    result = entries
    if text_only:
        result = [e for e in result if is_text_only(e)]
    if exclude_reasoning:
        result = [e for e in result if not has_reasoning_cost(e)]
    if search:
        needle = search.lower()
        result = [e for e in result if needle in e.model_id.lower() or needle in e.name.lower()]
    return result


def format_model_name(model_id: str) -> str:
    """``openai/gpt-4o`` -> ``Openai/gpt-4o``; other ids pass through."""
    parts = model_id.split("/")
    if len(parts) == 2 and parts[0]:
        return f"{parts[0][0].upper()}{parts[0][1:]}/{parts[1]}"
    return model_id
