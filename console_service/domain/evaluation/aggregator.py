# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Evaluation aggregation.

Folds raw evaluation records and the model catalog into one
``ModelSummary`` per model. Everything here is pure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models import EvaluationRecord, ModelCatalogEntry, ModelSummary

logger = logging.getLogger(__name__)

ALL_PAIRS = "all"


def filter_by_language_pair(records: Iterable[EvaluationRecord], pair: str | None) -> list[EvaluationRecord]:
    """Keep records for one ``source>target`` pair; ``None`` or ``"all"`` keeps everything."""
    if pair is None or pair == ALL_PAIRS:
        return list(records)
    return [r for r in records if r.language_pair == pair]


def unique_language_pairs(records: Iterable[EvaluationRecord]) -> list[str]:
    return sorted({r.language_pair for r in records})


def aggregate(
    records: Iterable[EvaluationRecord],
    categories: Sequence[str],
    catalog: Sequence[ModelCatalogEntry] | None = None,
) -> list[ModelSummary]:
    """Build per-model summaries over ``categories``.

    Each category score is the arithmetic mean of every record for that
    (model, category), or ``None`` when the model has none. Models that only
    exist in the catalog are listed with empty scores. A ``None`` catalog
    means it was unavailable; summaries are then built from records alone.
    Records of categories outside ``categories`` are ignored.
    """
    wanted = list(dict.fromkeys(categories))
    wanted_set = set(wanted)
    catalog_by_id = {entry.model_id: entry for entry in catalog or ()}

    grouped: dict[str, list[EvaluationRecord]] = {}
    for record in records:
        if record.category not in wanted_set:
            continue
        grouped.setdefault(record.model_id, []).append(record)

    summaries: list[ModelSummary] = []
    for model_id in sorted(set(grouped) | set(catalog_by_id)):
        model_records = grouped.get(model_id, [])
        entry = catalog_by_id.get(model_id)

        scores: dict[str, float | None] = {}
        counts: dict[str, int] = {}
        for category in wanted:
            values = [r.score for r in model_records if r.category == category]
            counts[category] = len(values)
            scores[category] = sum(values) / len(values) if values else None

        latest = max(model_records, key=lambda r: r.timestamp) if model_records else None
        if latest is not None:
            name = latest.model_name
        elif entry is not None:
            name = entry.name
        else:  # pragma: no cover - a model id always comes from one of the two sources
            name = model_id

        summaries.append(
            ModelSummary(
                model_id=model_id,
                model_name=name,
                scores=scores,
                counts=counts,
                test_count=len(model_records),
                last_evaluated_at=latest.timestamp if latest else None,
                catalog=entry,
            )
        )

    logger.debug(
        f"Aggregated {sum(len(v) for v in grouped.values())} records into {len(summaries)} model summaries"
    )
    return summaries
