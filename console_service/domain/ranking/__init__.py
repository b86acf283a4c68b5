# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Ranking domain - ordering models per category."""

from .engine import SortMode, rank, rank_records, tie_break_categories

__all__ = ["SortMode", "rank", "rank_records", "tie_break_categories"]
