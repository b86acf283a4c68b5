# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Cost domain - baseline selection and relative cost multiples."""

from .normalizer import (
    CostComparison,
    compare_all,
    compare_cost,
    eligible_baselines,
    estimate_request_cost,
    format_context_length,
    format_cost,
    select_baseline,
    total_cost,
)

__all__ = [
    "CostComparison",
    "compare_all",
    "compare_cost",
    "eligible_baselines",
    "estimate_request_cost",
    "format_context_length",
    "format_cost",
    "select_baseline",
    "total_cost",
]
