# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Cost normalization against a quality-qualified baseline.

The baseline is the cheapest paid model whose primary-category score
reaches the threshold. Every other model's cost is expressed as a
multiple of it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..evaluation.models import ModelSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostComparison:
    """Cost position of one model relative to the current baseline."""

    model_id: str
    total_cost: float
    is_baseline: bool = False
    is_free: bool = False
    cost_multiple: float | None = None
    baseline_cost: float | None = None
    baseline_model_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "total_cost": self.total_cost,
            "is_baseline": self.is_baseline,
            "is_free": self.is_free,
            "cost_multiple": self.cost_multiple,
            "baseline_cost": self.baseline_cost,
            "baseline_model_id": self.baseline_model_id,
        }


def total_cost(summary: ModelSummary) -> float | None:
    """Prompt plus completion cost per token, or ``None`` without a catalog entry."""
    if summary.catalog is None:
        return None
    return summary.catalog.total_cost


def eligible_baselines(
    ranked: Iterable[ModelSummary],
    score_threshold: float,
    primary_category: str,
) -> list[ModelSummary]:
    """Paid, catalogued models scoring at or above ``score_threshold``, in ranked order."""
    eligible = []
    for summary in ranked:
        score = summary.scores.get(primary_category)
        cost = total_cost(summary)
        if score is None or score < score_threshold:
            continue
        if cost is None or cost <= 0:
            continue
        eligible.append(summary)
    return eligible


def select_baseline(
    ranked: Sequence[ModelSummary],
    score_threshold: float,
    primary_category: str,
) -> ModelSummary | None:
    """Cheapest eligible model; the earliest in ranked order wins ties."""
    baseline: ModelSummary | None = None
    for candidate in eligible_baselines(ranked, score_threshold, primary_category):
        if baseline is None or candidate.catalog.total_cost < baseline.catalog.total_cost:
            baseline = candidate
    return baseline


def _compare(model: ModelSummary, baseline: ModelSummary | None) -> CostComparison | None:
    cost = total_cost(model)
    if cost is None:
        return None

    baseline_cost = baseline.catalog.total_cost if baseline is not None else None
    baseline_id = baseline.model_id if baseline is not None else None

    if cost == 0:
        return CostComparison(
            model_id=model.model_id,
            total_cost=0.0,
            is_free=True,
            baseline_cost=baseline_cost,
            baseline_model_id=baseline_id,
        )
    if baseline is None:
        return CostComparison(model_id=model.model_id, total_cost=cost)
    if baseline.model_id == model.model_id:
        return CostComparison(
            model_id=model.model_id,
            total_cost=cost,
            is_baseline=True,
            cost_multiple=1.0,
            baseline_cost=baseline_cost,
            baseline_model_id=baseline_id,
        )
    return CostComparison(
        model_id=model.model_id,
        total_cost=cost,
        cost_multiple=cost / baseline_cost,
        baseline_cost=baseline_cost,
        baseline_model_id=baseline_id,
    )


def compare_cost(
    model: ModelSummary,
    ranked: Sequence[ModelSummary],
    score_threshold: float,
    primary_category: str,
) -> CostComparison | None:
    """Compare one model's cost against the baseline drawn from ``ranked``."""
    return _compare(model, select_baseline(ranked, score_threshold, primary_category))


def compare_all(
    ranked: Sequence[ModelSummary],
    score_threshold: float,
    primary_category: str,
) -> dict[str, CostComparison]:
    """Cost comparison for every catalogued model in ``ranked``."""
    baseline = select_baseline(ranked, score_threshold, primary_category)
    if baseline is None:
        logger.info(f"No {primary_category} model reaches score {score_threshold}; cost multiples unavailable")

    results: dict[str, CostComparison] = {}
    for summary in ranked:
        comparison = _compare(summary, baseline)
        if comparison is not None:
            results[summary.model_id] = comparison
    return results


def estimate_request_cost(summary: ModelSummary, input_tokens: int, output_tokens: int) -> float | None:
    """Dollar cost of one request with the given token counts."""
    if summary.catalog is None:
        return None
    return summary.catalog.prompt_cost * input_tokens + summary.catalog.completion_cost * output_tokens


def format_cost(per_token: float) -> str:
    """Render a per-token price as dollars per 1K tokens."""
    cost = per_token * 1000
    if cost == 0:
        return "Free"
    if cost < 0.001:
        return f"${cost:.5f}"
    if cost < 0.01:
        return f"${cost:.4f}"
    if cost < 1:
        return f"${cost:.3f}"
    return f"${cost:.2f}"


def format_context_length(context_length: int) -> str:
    if context_length >= 1_000_000:
        return f"{context_length / 1_000_000:.1f}M"
    if context_length >= 1000:
        return f"{context_length / 1000:.0f}K"
    return str(context_length)
