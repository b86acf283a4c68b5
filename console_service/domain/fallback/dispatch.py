# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Helpers for consumers of saved fallback chains."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from ...error_mapping import ChainExhaustedError
from .models import SLOT_ORDER, FallbackChainConfig, Slot

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def try_in_order(
    chain: FallbackChainConfig,
    attempt: Callable[[str], Awaitable[T]],
) -> tuple[str, T]:
    """Run ``attempt`` against each model in dispatch order until one succeeds.

    Returns the model id that answered together with its result. Retries
    and backoff within a single model are up to ``attempt``.
    """
    failures: list[tuple[str, str]] = []
    for index, model_id in enumerate(chain.dispatch_order()):
        try:
            result = await attempt(model_id)
        except Exception as e:
            logger.warning(f"{chain.category}: model {model_id} failed ({e}), trying next in chain")
            failures.append((model_id, str(e)))
            continue
        if index > 0:
            logger.info(f"{chain.category}: fallback {index} used: {model_id}")
        return model_id, result

    raise ChainExhaustedError(
        f"All {len(failures)} models in the {chain.category} chain failed",
        attempts=failures,
    )


def find_role(model_id: str, chains: Iterable[FallbackChainConfig]) -> tuple[Slot, str] | None:
    """First (slot, category) holding ``model_id`` across active chains."""
    for chain in chains:
        if not chain.is_active:
            continue
        slot = chain.slot_of(model_id)
        if slot is not None:
            return slot, chain.category
    return None


def describe_role(model_id: str, chains: Iterable[FallbackChainConfig]) -> str | None:
    """Operator label such as ``Primary (translation)`` or ``FB1 (grammar)``."""
    role = find_role(model_id, chains)
    if role is None:
        return None
    slot, category = role
    return f"{slot.label} ({category})"


def probe_targets(chains: Iterable[FallbackChainConfig]) -> list[tuple[str, str]]:
    """Distinct (model_id, category) pairs over every assigned slot of active chains."""
    seen: dict[tuple[str, str], None] = {}
    for chain in sorted(chains, key=lambda c: c.category):
        if not chain.is_active:
            continue
        for slot in SLOT_ORDER:
            model_id = chain.model_at(slot)
            if model_id:
                seen.setdefault((model_id, chain.category), None)
    return list(seen)
