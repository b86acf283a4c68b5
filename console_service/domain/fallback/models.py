# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Fallback chain domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ...error_mapping import ValidationError
from ..evaluation.models import parse_timestamp, utcnow


class Slot(str, Enum):
    PRIMARY = "primary"
    FALLBACK1 = "fallback1"
    FALLBACK2 = "fallback2"
    FALLBACK3 = "fallback3"

    @classmethod
    def parse(cls, value: Slot | str) -> Slot:
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown slot '{value}'") from None

    @property
    def label(self) -> str:
        """Short operator-facing label: ``Primary``, ``FB1``..``FB3``."""
        if self is Slot.PRIMARY:
            return "Primary"
        return f"FB{self.value[-1]}"


SLOT_ORDER: tuple[Slot, ...] = (Slot.PRIMARY, Slot.FALLBACK1, Slot.FALLBACK2, Slot.FALLBACK3)


@dataclass(frozen=True)
class SlotAssignment:
    model_id: str
    model_name: str


@dataclass(frozen=True)
class FallbackChainConfig:
    """
    Primary model plus up to three ordered fallbacks for one category.

    Non-empty slot values are pairwise distinct.
    """

    category: str
    slots: dict[Slot, SlotAssignment] = field(default_factory=dict)
    is_active: bool = True
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def primary(self) -> str | None:
        return self.model_at(Slot.PRIMARY)

    def model_at(self, slot: Slot) -> str | None:
        assignment = self.slots.get(slot)
        return assignment.model_id if assignment else None

    def name_at(self, slot: Slot) -> str | None:
        assignment = self.slots.get(slot)
        return assignment.model_name if assignment else None

    def dispatch_order(self) -> list[str]:
        """Model ids in the order a dispatcher should try them, empty slots skipped."""
        return [self.slots[s].model_id for s in SLOT_ORDER if s in self.slots]

    def slot_of(self, model_id: str) -> Slot | None:
        for slot in SLOT_ORDER:
            if self.model_at(slot) == model_id:
                return slot
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "category": self.category,
            "is_active": self.is_active,
            "updated_at": self.updated_at.isoformat(),
        }
        for slot in SLOT_ORDER:
            data[f"{slot.value}_id"] = self.model_at(slot)
            data[f"{slot.value}_name"] = self.name_at(slot)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FallbackChainConfig:
        slots = {}
        for slot in SLOT_ORDER:
            model_id = data.get(f"{slot.value}_id")
            if model_id:
                slots[slot] = SlotAssignment(model_id, data.get(f"{slot.value}_name") or model_id)
        kwargs = {}
        updated_at = parse_timestamp(data.get("updated_at"))
        if updated_at is not None:
            kwargs["updated_at"] = updated_at
        return cls(
            category=data["category"],
            slots=slots,
            is_active=data.get("is_active", True),
            **kwargs,
        )


class FallbackChainBuilder:
    """Mutable working copy of a chain that enforces slot uniqueness."""

    def __init__(self, category: str, slots: dict[Slot, str] | None = None):
        self.category = category
        self._slots: dict[Slot, str] = {}
        for slot, model_id in (slots or {}).items():
            if model_id:
                self.assign(slot, model_id)

    @classmethod
    def from_config(cls, config: FallbackChainConfig) -> FallbackChainBuilder:
        return cls(config.category, {slot: a.model_id for slot, a in config.slots.items()})

    def get(self, slot: Slot | str) -> str | None:
        return self._slots.get(Slot.parse(slot))

    def snapshot(self) -> dict[Slot, str]:
        return dict(self._slots)

    def assign(self, slot: Slot | str, model_id: str) -> None:
        """Put ``model_id`` in ``slot``.

        Raises ValidationError, leaving the chain untouched, if the model
        already sits in a different slot.
        """
        slot = Slot.parse(slot)
        if not model_id:
            raise ValidationError(f"Model id for slot '{slot.value}' is empty")
        for other, existing in self._slots.items():
            if existing == model_id and other is not slot:
                raise ValidationError(
                    f"Model '{model_id}' is already assigned to {other.value} in {self.category}"
                )
        self._slots[slot] = model_id

    def clear(self, slot: Slot | str) -> None:
        self._slots.pop(Slot.parse(slot), None)

    def validate(self) -> None:
        if not self._slots.get(Slot.PRIMARY):
            raise ValidationError(f"Primary model is required for {self.category}")
        values = list(self._slots.values())
        if len(values) != len(set(values)):
            raise ValidationError(f"Duplicate models in {self.category} chain")

    def build(self, names: dict[str, str] | None = None, is_active: bool = True) -> FallbackChainConfig:
        """Validate and freeze the chain; unknown names fall back to the raw id."""
        self.validate()
        names = names or {}
        return FallbackChainConfig(
            category=self.category,
            slots={
                slot: SlotAssignment(self._slots[slot], names.get(self._slots[slot], self._slots[slot]))
                for slot in SLOT_ORDER
                if slot in self._slots
            },
            is_active=is_active,
        )
