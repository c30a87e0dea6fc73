"""Tests for feature extraction, the mods layer, and the world store."""

import math

import pytest

from cognition_kernel.models.features import EntityMods
from cognition_kernel.models.world import (
    CharacterRecord,
    LocationRecord,
    SceneRecord,
    WorldEvent,
)
from cognition_kernel.world_model.features import (
    extract_character_features,
    extract_location_features,
    extract_scene_features,
)
from cognition_kernel.world_model.mods import ModsStore, apply_mods
from cognition_kernel.world_model.store import WorldStore


def _make_character(**overrides) -> CharacterRecord:
    data = dict(
        id="A",
        body={"stress": 0.4, "fatigue": 1.7, "pain": -0.2},
        emotion={"anger": 0.6, "fear": math.nan},
        access={"weapon": 0.9},
        traits={"brave": 0.8},
    )
    data.update(overrides)
    return CharacterRecord(**data)


class TestFeatureExtraction:
    def test_clamps_to_unit_interval(self):
        fs = extract_character_features(_make_character())
        assert fs.get("body.stress") == 0.4
        assert fs.get("body.fatigue") == 1.0
        assert fs.get("body.pain") == 0.0

    def test_non_finite_dropped(self):
        fs = extract_character_features(_make_character())
        assert fs.get("emotion.fear") is None

    def test_traits_extracted(self):
        fs = extract_character_features(_make_character())
        assert fs.get("trait.brave") == 0.8
        assert fs.values["trait.brave"].source == "character.traits"

    def test_neutral_defaults_with_provenance(self):
        fs = extract_character_features(_make_character())
        assert fs.get("social.trust") == 0.5
        assert fs.get("emotion.valence") == 0.5
        assert fs.values["social.trust"].source == "default"
        assert fs.values["social.trust"].notes == ["missing:world:social:trust:A"]

    def test_present_value_not_defaulted(self):
        fs = extract_character_features(_make_character(social={"trust": 0.9}))
        assert fs.get("social.trust") == 0.9
        assert fs.values["social.trust"].notes == []

    def test_location_and_scene(self):
        loc = extract_location_features(LocationRecord(id="hall", properties={"cover": 0.7, "unknown": 0.3}))
        assert loc.get("loc.cover") == 0.7
        assert "loc.unknown" not in loc.values

        scene = extract_scene_features(SceneRecord(id="s1", metrics={"threat": 2.0}))
        assert scene.get("scene.threat") == 1.0


class TestModsStore:
    def setup_method(self):
        self.store = ModsStore()

    def test_get_or_create_is_explicit(self):
        assert self.store.entity_ids() == []
        self.store.get("A")
        assert self.store.entity_ids() == []
        mods = self.store.get_or_create("A")
        assert mods.is_empty()
        assert self.store.entity_ids() == ["A"]

    def test_deltas_accumulate(self):
        self.store.add_delta("A", "body.stress", 0.1)
        self.store.add_delta("A", "body.stress", 0.2)
        assert self.store.get("A").deltas["body.stress"] == pytest.approx(0.3)

    def test_clear(self):
        self.store.set_override("A", "body.stress", 0.2)
        assert self.store.clear("A") is True
        assert self.store.clear("A") is False
        assert self.store.get("A").is_empty()


class TestApplyMods:
    def test_fold_order_override_delta_scale(self):
        fs = extract_character_features(_make_character())
        mods = EntityMods(
            entity_id="A",
            overrides={"body.stress": 0.2},
            deltas={"body.stress": 0.1},
            scales={"body.stress": 2.0},
        )
        out = apply_mods(fs, mods)
        assert out.get("body.stress") == pytest.approx(0.6)
        assert out.values["body.stress"].source == "mods.override"

    def test_result_is_clamped(self):
        fs = extract_character_features(_make_character())
        out = apply_mods(fs, EntityMods(entity_id="A", scales={"access.weapon": 3.0}))
        assert out.get("access.weapon") == 1.0

    def test_input_untouched(self):
        fs = extract_character_features(_make_character())
        apply_mods(fs, EntityMods(entity_id="A", overrides={"body.stress": 0.0}))
        assert fs.get("body.stress") == 0.4

    def test_non_finite_mods_ignored(self):
        fs = extract_character_features(_make_character())
        mods = EntityMods(
            entity_id="A",
            overrides={"body.stress": math.nan},
            deltas={"access.weapon": math.inf},
        )
        out = apply_mods(fs, mods)
        assert out.get("body.stress") == 0.4
        assert out.get("access.weapon") == 0.9
        assert "mod:ignored:override" in out.values["body.stress"].notes
        assert "mod:ignored:delta" in out.values["access.weapon"].notes

    def test_override_can_supply_missing_feature(self):
        fs = extract_character_features(_make_character())
        out = apply_mods(fs, EntityMods(entity_id="A", overrides={"emotion.fear": 0.8}))
        assert out.get("emotion.fear") == 0.8

    def test_delta_on_absent_feature_skipped(self):
        fs = extract_character_features(_make_character())
        out = apply_mods(fs, EntityMods(entity_id="A", deltas={"emotion.fear": 0.3}))
        assert out.get("emotion.fear") is None


class TestWorldStore:
    def test_snapshot_is_isolated(self):
        store = WorldStore()
        store.upsert_agent(CharacterRecord(id="A", body={"stress": 0.1}))
        snap = store.snapshot()
        store.get_agent("A").body["stress"] = 0.9
        assert snap.agents["A"].body["stress"] == 0.1

    def test_events_and_ticks(self):
        store = WorldStore()
        store.record_event(WorldEvent(tick=0, kind="attack", actor_id="B", target_id="A"))
        assert store.advance_tick() == 1
        assert store.tick == 1
        assert len(store.recent_events()) == 1

    def test_remove_agent(self):
        store = WorldStore()
        store.upsert_agent(CharacterRecord(id="A"))
        assert store.remove_agent("A") is True
        assert store.remove_agent("A") is False
