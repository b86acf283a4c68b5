"""Tests for fallback chain editing, persistence and dispatch."""

from unittest.mock import AsyncMock

import pytest

from console_service.categories import CategoryRegistry
from console_service.config import ConsoleConfig
from console_service.domain.evaluation import ModelSummary
from console_service.domain.fallback import (
    FallbackChainBuilder,
    FallbackChainConfig,
    FallbackChainConfigurator,
    Slot,
    SlotAssignment,
    describe_role,
    find_role,
    probe_targets,
    try_in_order,
)
from console_service.error_mapping import AdapterError, ChainExhaustedError, ValidationError
from console_service.stores import MemoryFallbackChainStore, MemorySettingsStore


def chain(category, *model_ids, is_active=True):
    slots = {}
    for slot, model_id in zip(Slot, model_ids):
        if model_id:
            slots[slot] = SlotAssignment(model_id, model_id.upper())
    return FallbackChainConfig(category=category, slots=slots, is_active=is_active)


class TestFallbackChainBuilder:
    """Test slot uniqueness and validation."""

    def test_duplicate_assignment_rejected_without_change(self):
        builder = FallbackChainBuilder("translation")
        builder.assign(Slot.PRIMARY, "m/a")
        builder.assign(Slot.FALLBACK2, "m/x")
        before = builder.snapshot()

        with pytest.raises(ValidationError):
            builder.assign(Slot.FALLBACK3, "m/x")

        assert builder.snapshot() == before
        assert builder.get("fallback3") is None

    def test_reassigning_same_slot_allowed(self):
        builder = FallbackChainBuilder("translation", {Slot.PRIMARY: "m/a"})
        builder.assign("primary", "m/a")
        builder.assign("primary", "m/b")
        assert builder.get(Slot.PRIMARY) == "m/b"

    def test_unknown_slot_and_empty_model(self):
        builder = FallbackChainBuilder("translation")
        with pytest.raises(ValidationError):
            builder.assign("fallback9", "m/a")
        with pytest.raises(ValidationError):
            builder.assign(Slot.PRIMARY, "")

    def test_clear_frees_model_for_another_slot(self):
        builder = FallbackChainBuilder("translation", {Slot.PRIMARY: "m/a", Slot.FALLBACK1: "m/b"})
        builder.clear(Slot.FALLBACK1)
        builder.assign(Slot.FALLBACK2, "m/b")
        assert builder.snapshot() == {Slot.PRIMARY: "m/a", Slot.FALLBACK2: "m/b"}

    def test_build_requires_primary(self):
        builder = FallbackChainBuilder("translation", {Slot.FALLBACK1: "m/b"})
        with pytest.raises(ValidationError):
            builder.build()

    def test_build_resolves_names_with_raw_id_fallback(self):
        builder = FallbackChainBuilder("translation", {Slot.PRIMARY: "m/a", Slot.FALLBACK1: "m/unknown"})
        config = builder.build({"m/a": "Model A"})

        assert config.name_at(Slot.PRIMARY) == "Model A"
        assert config.name_at(Slot.FALLBACK1) == "m/unknown"


class TestFallbackChainConfig:
    def test_dispatch_order_skips_empty_slots(self):
        config = chain("translation", "m/a", None, "m/c", "m/d")
        assert config.dispatch_order() == ["m/a", "m/c", "m/d"]

    def test_dict_round_trip_keeps_slots(self):
        config = chain("grammar", "m/a", "m/b")
        restored = FallbackChainConfig.from_dict(config.to_dict())

        assert restored.slots == config.slots
        assert restored.updated_at == config.updated_at

    def test_slot_labels(self):
        assert [s.label for s in Slot] == ["Primary", "FB1", "FB2", "FB3"]


class TestFallbackChainConfigurator:
    """Test the working-copy and save workflow."""

    def setup_method(self):
        self.store = MemoryFallbackChainStore()
        self.categories = CategoryRegistry(MemorySettingsStore(), ConsoleConfig())
        self.configurator = FallbackChainConfigurator(self.store, self.categories)

    async def test_save_without_primary_never_touches_store(self):
        store = AsyncMock()
        store.get.return_value = None
        configurator = FallbackChainConfigurator(store, self.categories)
        await configurator.assign("translation", Slot.FALLBACK1, "m/b")
        store.reset_mock()

        with pytest.raises(ValidationError):
            await configurator.save("translation")

        store.get.assert_not_called()
        store.put.assert_not_called()

    async def test_save_persists_with_ranking_names(self):
        await self.configurator.assign("translation", "primary", "m/a")
        await self.configurator.assign("translation", "fallback1", "m/b")
        ranking = [ModelSummary("m/a", "Model A"), ModelSummary("m/z", "Model Z")]

        saved = await self.configurator.save("translation", ranking)

        assert self.store.chains["translation"] is saved
        assert saved.name_at(Slot.PRIMARY) == "Model A"
        assert saved.name_at(Slot.FALLBACK1) == "m/b"

    async def test_last_write_wins(self):
        await self.store.put("translation", chain("translation", "m/old"))
        first = FallbackChainConfigurator(self.store, self.categories)
        second = FallbackChainConfigurator(self.store, self.categories)
        await first.load("translation")
        await second.load("translation")

        await first.assign("translation", Slot.PRIMARY, "m/first")
        await second.assign("translation", Slot.PRIMARY, "m/second")
        await first.save("translation")
        await second.save("translation")

        assert (await self.store.get("translation")).primary == "m/second"

    async def test_save_keeps_deactivated_flag(self):
        await self.store.put("translation", chain("translation", "m/a", is_active=False))
        await self.configurator.load("translation")
        await self.configurator.assign("translation", Slot.FALLBACK1, "m/b")

        saved = await self.configurator.save("translation")
        assert saved.is_active is False

    async def test_load_missing_chain_is_empty(self):
        config = await self.configurator.load("grammar")
        assert config.slots == {}
        assert (await self.configurator.draft("grammar")).snapshot() == {}

    async def test_load_resets_draft(self):
        await self.store.put("translation", chain("translation", "m/a"))
        await self.configurator.assign("translation", Slot.FALLBACK1, "m/b")
        await self.configurator.load("translation")

        assert (await self.configurator.draft("translation")).snapshot() == {Slot.PRIMARY: "m/a"}

    async def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            await self.configurator.load("poetry")

    async def test_store_failure_surfaces_as_adapter_error(self):
        store = AsyncMock()
        store.get.side_effect = ConnectionError("db down")
        configurator = FallbackChainConfigurator(store, self.categories)

        with pytest.raises(AdapterError):
            await configurator.load("translation")

    async def test_failed_put_leaves_previous_chain(self):
        await self.store.put("translation", chain("translation", "m/a"))
        self.store.put = AsyncMock(side_effect=OSError("disk full"))
        await self.configurator.assign("translation", Slot.PRIMARY, "m/b")

        with pytest.raises(AdapterError):
            await self.configurator.save("translation")
        assert self.store.chains["translation"].primary == "m/a"


class TestDispatch:
    async def test_first_success_wins(self):
        config = chain("translation", "m/a", "m/b", "m/c")

        async def attempt(model_id):
            if model_id == "m/a":
                raise RuntimeError("unavailable")
            return f"answer from {model_id}"

        model_id, result = await try_in_order(config, attempt)
        assert model_id == "m/b"
        assert result == "answer from m/b"

    async def test_exhausted_chain(self):
        config = chain("translation", "m/a", "m/b")
        attempt = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(ChainExhaustedError) as excinfo:
            await try_in_order(config, attempt)

        assert [model for model, _ in excinfo.value.attempts] == ["m/a", "m/b"]
        assert attempt.await_count == 2

    def test_roles_from_active_chains(self):
        chains = [
            chain("grammar", "m/a", "m/b", is_active=False),
            chain("translation", "m/c", "m/a"),
        ]
        assert find_role("m/a", chains) == (Slot.FALLBACK1, "translation")
        assert describe_role("m/c", chains) == "Primary (translation)"
        assert describe_role("m/b", chains) is None

    def test_probe_targets_cover_every_slot_of_active_chains(self):
        chains = [
            chain("translation", "m/a", "m/b"),
            chain("grammar", "m/a", None, "m/c"),
            chain("scoring", "m/z", is_active=False),
        ]
        assert probe_targets(chains) == [
            ("m/a", "grammar"),
            ("m/c", "grammar"),
            ("m/a", "translation"),
            ("m/b", "translation"),
        ]
