# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Ranking of model summaries within a task category."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from enum import Enum

from ..evaluation.aggregator import aggregate, filter_by_language_pair
from ..evaluation.models import EvaluationRecord, ModelCatalogEntry, ModelSummary

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SortMode(str, Enum):
    SCORE = "score"
    NAME = "name"
    RECENT = "recent"


def tie_break_categories(
    primary_category: str,
    known_categories: Iterable[str],
    tie_break_order: Sequence[str] = (),
) -> list[str]:
    """Secondary categories consulted after the primary score ties.

    Configured order comes first; remaining known categories follow sorted.
    """
    known = set(known_categories)
    known.discard(primary_category)
    ordered = [c for c in dict.fromkeys(tie_break_order) if c in known]
    ordered.extend(sorted(known - set(ordered)))
    return ordered


def _score(summary: ModelSummary, category: str) -> float:
    value = summary.scores.get(category)
    return value if value is not None else 0.0


def rank(
    summaries: Iterable[ModelSummary],
    primary_category: str,
    sort_mode: SortMode | str = SortMode.SCORE,
    tie_break_order: Sequence[str] = (),
) -> list[ModelSummary]:
    """Return a new, deterministically ordered list of summaries.

    Ranking a ranked list yields the same order.
    """
    items = list(summaries)
    if not items:
        return []
    mode = SortMode(sort_mode)

    if mode is SortMode.NAME:
        return sorted(items, key=lambda s: (s.model_name.casefold(), s.model_id))

    if mode is SortMode.RECENT:
        # Never-evaluated models sort last
        return sorted(
            items,
            key=lambda s: (
                s.last_evaluated_at is None,
                -(s.last_evaluated_at or _EPOCH).timestamp(),
                s.model_name.casefold(),
                s.model_id,
            ),
        )

    known = {c for s in items for c in s.scores}
    secondary = tie_break_categories(primary_category, known, tie_break_order)
    return sorted(
        items,
        key=lambda s: (
            -_score(s, primary_category),
            tuple(-_score(s, c) for c in secondary),
            s.model_name,
            s.model_id,
        ),
    )


def rank_records(
    records: Iterable[EvaluationRecord],
    catalog: Sequence[ModelCatalogEntry] | None,
    categories: Sequence[str],
    primary_category: str,
    sort_mode: SortMode | str = SortMode.SCORE,
    language_pair: str | None = None,
    tie_break_order: Sequence[str] = (),
) -> list[ModelSummary]:
    """Filter by language pair, aggregate, then rank."""
    filtered = filter_by_language_pair(records, language_pair)
    summaries = aggregate(filtered, categories, catalog)
    ranked = rank(summaries, primary_category, sort_mode, tie_break_order)
    logger.debug(f"Ranked {len(ranked)} models for {primary_category} (mode={SortMode(sort_mode).value})")
    return ranked
