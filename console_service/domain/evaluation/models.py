# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Evaluation domain models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ERROR_KINDS = ("json_parse", "api_error", "timeout", "unknown")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return ensure_aware(value)


def language_pair(source_lang: str, target_lang: str) -> str:
    """Build the ``source>target`` key used to filter evaluations."""
    return f"{source_lang}>{target_lang}"


@dataclass(frozen=True)
class ScoreBreakdown:
    """
    Named sub-scores behind a combined evaluation score.

    Quality components add up to ``quality_total`` (0-85); the response
    speed component (0-15) brings it to ``combined_total``.
    """

    components: dict[str, float] = field(default_factory=dict)
    reasons: dict[str, str] = field(default_factory=dict)
    quality_total: float | None = None
    combined_total: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "components": dict(self.components),
            "reasons": dict(self.reasons),
            "quality_total": self.quality_total,
            "combined_total": self.combined_total,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScoreBreakdown | None:
        if not data:
            return None
        return cls(
            components={k: float(v) for k, v in (data.get("components") or {}).items()},
            reasons=dict(data.get("reasons") or {}),
            quality_total=data.get("quality_total"),
            combined_total=data.get("combined_total"),
        )


@dataclass(frozen=True)
class EvaluationRecord:
    """
    One scored evaluation run of a model.

    Records are append-only and never mutated once stored.
    """

    category: str
    model_id: str
    model_name: str
    score: float
    source_lang: str = ""
    target_lang: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utcnow)
    score_breakdown: ScoreBreakdown | None = None
    error: str | None = None
    error_kind: str | None = None
    response_time: float | None = None  # seconds
    baseline_model_id: str | None = None
    baseline_model_name: str | None = None
    evaluation_model_id: str | None = None
    evaluation_model_name: str | None = None
    evaluation: str = ""

    @property
    def language_pair(self) -> str:
        return language_pair(self.source_lang, self.target_lang)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "category": self.category,
            "model_id": self.model_id,
            "model_name": self.model_name,
            "source_lang": self.source_lang,
            "target_lang": self.target_lang,
            "score": self.score,
            "score_breakdown": self.score_breakdown.to_dict() if self.score_breakdown else None,
            "error": self.error,
            "error_kind": self.error_kind,
            "response_time": self.response_time,
            "baseline_model_id": self.baseline_model_id,
            "baseline_model_name": self.baseline_model_name,
            "evaluation_model_id": self.evaluation_model_id,
            "evaluation_model_name": self.evaluation_model_name,
            "evaluation": self.evaluation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvaluationRecord:
        """Create from dictionary."""
        kwargs: dict[str, Any] = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        timestamp = parse_timestamp(data.get("timestamp"))
        if timestamp is not None:
            kwargs["timestamp"] = timestamp

        return cls(
            category=data["category"],
            model_id=data["model_id"],
            model_name=data.get("model_name") or data["model_id"],
            score=float(data["score"]),
            source_lang=data.get("source_lang", ""),
            target_lang=data.get("target_lang", ""),
            score_breakdown=ScoreBreakdown.from_dict(data.get("score_breakdown")),
            error=data.get("error"),
            error_kind=data.get("error_kind"),
            response_time=data.get("response_time"),
            baseline_model_id=data.get("baseline_model_id"),
            baseline_model_name=data.get("baseline_model_name"),
            evaluation_model_id=data.get("evaluation_model_id"),
            evaluation_model_name=data.get("evaluation_model_name"),
            evaluation=data.get("evaluation", ""),
            **kwargs,
        )


@dataclass(frozen=True)
class ModelCatalogEntry:
    """Catalog snapshot of a model offered by the provider.

    Costs are per token; ``0`` means the model is free.
    """

    model_id: str
    name: str
    prompt_cost: float = 0.0
    completion_cost: float = 0.0
    context_length: int = 0
    input_modalities: tuple[str, ...] = ()
    output_modalities: tuple[str, ...] = ()
    modality: str | None = None
    reasoning_cost: float | None = None

    @property
    def total_cost(self) -> float:
        return self.prompt_cost + self.completion_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "name": self.name,
            "prompt_cost": self.prompt_cost,
            "completion_cost": self.completion_cost,
            "context_length": self.context_length,
            "input_modalities": list(self.input_modalities),
            "output_modalities": list(self.output_modalities),
            "modality": self.modality,
            "reasoning_cost": self.reasoning_cost,
        }


@dataclass
class ModelSummary:
    """Per-model aggregate across the requested categories.

    Derived on every query; never persisted.
    """

    model_id: str
    model_name: str
    scores: dict[str, float | None] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)
    test_count: int = 0
    last_evaluated_at: datetime | None = None
    catalog: ModelCatalogEntry | None = None

    def score_for(self, category: str) -> float | None:
        return self.scores.get(category)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "model_name": self.model_name,
            "scores": dict(self.scores),
            "counts": dict(self.counts),
            "test_count": self.test_count,
            "last_evaluated_at": self.last_evaluated_at.isoformat() if self.last_evaluated_at else None,
            "catalog": self.catalog.to_dict() if self.catalog else None,
        }
