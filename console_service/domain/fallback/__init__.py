# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Fallback domain - per-category primary and ordered fallback models."""

from .configurator import FallbackChainConfigurator
from .dispatch import describe_role, find_role, probe_targets, try_in_order
from .models import SLOT_ORDER, FallbackChainBuilder, FallbackChainConfig, Slot, SlotAssignment

__all__ = [
    "SLOT_ORDER",
    "FallbackChainBuilder",
    "FallbackChainConfig",
    "FallbackChainConfigurator",
    "Slot",
    "SlotAssignment",
    "describe_role",
    "find_role",
    "probe_targets",
    "try_in_order",
]
