# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Evaluation domain - records, catalog entries and per-model aggregation."""

from .aggregator import aggregate, filter_by_language_pair, unique_language_pairs
from .models import (
    ERROR_KINDS,
    EvaluationRecord,
    ModelCatalogEntry,
    ModelSummary,
    ScoreBreakdown,
    language_pair,
)

__all__ = [
    "ERROR_KINDS",
    "EvaluationRecord",
    "ModelCatalogEntry",
    "ModelSummary",
    "ScoreBreakdown",
    "aggregate",
    "filter_by_language_pair",
    "language_pair",
    "unique_language_pairs",
]
