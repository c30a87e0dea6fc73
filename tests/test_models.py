"""Tests for the data models."""

import math

import pytest
from pydantic import ValidationError

from cognition_kernel.models import (
    STAGE_CONTRACTS,
    ContextAtom,
    MassNetwork,
    MassNode,
    Namespace,
    OverrideEvent,
    PipelineResult,
    StageFrame,
    StageId,
    WorldSnapshot,
    CharacterRecord,
    LocationRecord,
    atom_id,
    make_atom,
)


class TestNamespace:
    def test_ladder_order(self):
        ranks = [ns.rank for ns in Namespace]
        assert ranks == sorted(ranks)
        assert Namespace.WORLD.rank < Namespace.CTX.rank < Namespace.CTX_FINAL.rank
        assert Namespace.GOAL.rank < Namespace.UTIL.rank < Namespace.ACTION.rank

    def test_longest_prefix_wins(self):
        assert Namespace.of("ctx:final:danger:A") == Namespace.CTX_FINAL
        assert Namespace.of("ctx:danger:A") == Namespace.CTX
        assert Namespace.of("world:harm:recent:A:B") == Namespace.WORLD
        assert Namespace.of("action:forced:A") == Namespace.ACTION

    def test_unknown_prefix(self):
        assert Namespace.of("bogus:thing:A") is None
        assert Namespace.of("ctxfinal:danger:A") is None

    def test_atom_id_builder(self):
        assert atom_id(Namespace.CTX_FINAL, "danger", "A") == "ctx:final:danger:A"
        assert atom_id(Namespace.WORLD, "obs:nearby", "A", "B") == "world:obs:nearby:A:B"


class TestContextAtom:
    def test_make_atom(self):
        atom = make_atom(Namespace.UTIL, "hint:safety:hide", "A", 0.5, kind="action_hint",
                         source="test", used_atom_ids=["goal:domain:safety:A"])
        assert atom.id == "util:hint:safety:hide:A"
        assert atom.subject_id == "A"
        assert atom.trace.used_atom_ids == ["goal:domain:safety:A"]

    def test_namespace_mismatch_rejected(self):
        with pytest.raises(ValidationError):
            ContextAtom(id="ctx:danger:A", namespace=Namespace.CTX_FINAL, kind="x",
                        magnitude=0.1, source="test", subject_id="A")

    def test_non_finite_magnitude_rejected(self):
        with pytest.raises(ValidationError):
            make_atom(Namespace.CTX, "danger", "A", math.nan, kind="x", source="test")
        with pytest.raises(ValidationError):
            make_atom(Namespace.CTX, "danger", "A", math.inf, kind="x", source="test")

    def test_atoms_are_frozen(self):
        atom = make_atom(Namespace.CTX, "danger", "A", 0.3, kind="x", source="test")
        with pytest.raises(ValidationError):
            atom.magnitude = 0.9


class TestStageContracts:
    def test_every_stage_has_a_contract(self):
        assert set(STAGE_CONTRACTS) == set(StageId)

    def test_reads_never_above_writes(self):
        for contract in STAGE_CONTRACTS.values():
            if not contract.reads:
                continue
            assert max(ns.rank for ns in contract.reads) <= min(ns.rank for ns in contract.writes)

    def test_action_layer_cannot_read_goals(self):
        assert Namespace.GOAL not in STAGE_CONTRACTS[StageId.S8].reads
        assert Namespace.UTIL in STAGE_CONTRACTS[StageId.S8].reads

    def test_goal_stage_cannot_read_raw_axes(self):
        assert Namespace.CTX not in STAGE_CONTRACTS[StageId.S6].reads


class TestPipelineResult:
    def test_trace_indexes_by_stage(self):
        atom = make_atom(Namespace.WORLD, "body:stress", "A", 0.4, kind="feature", source="test")
        result = PipelineResult(
            agent_id="A",
            tick=0,
            stages=[StageFrame(stage=StageId.S0, title="world facts", atoms=[atom])],
            atoms=[atom],
        )
        assert result.trace() == {"S0": [atom]}
        assert result.atom("world:body:stress:A") == atom
        assert result.atom("world:body:fatigue:A") is None


class TestMassNetworkModel:
    def test_aligned(self):
        net = MassNetwork(
            node_order=["a", "b"],
            nodes={"a": MassNode(id="a"), "b": MassNode(id="b")},
            weights=[[0.0, 0.1], [0.2, 0.0]],
        )
        assert net.state() == {"a": 0.05, "b": 0.05}

    def test_misaligned_weights_rejected(self):
        with pytest.raises(ValidationError):
            MassNetwork(
                node_order=["a", "b"],
                nodes={"a": MassNode(id="a"), "b": MassNode(id="b")},
                weights=[[0.0, 0.1]],
            )

    def test_missing_node_rejected(self):
        with pytest.raises(ValidationError):
            MassNetwork(node_order=["a", "b"], nodes={"a": MassNode(id="a")},
                        weights=[[0.0, 0.0], [0.0, 0.0]])


class TestWorldModel:
    def test_location_of(self):
        world = WorldSnapshot(
            agents={"A": CharacterRecord(id="A", location_id="hall"), "B": CharacterRecord(id="B")},
            locations={"hall": LocationRecord(id="hall")},
        )
        assert world.location_of("A").id == "hall"
        assert world.location_of("B") is None
        assert world.location_of("Z") is None

    def test_override_event_defaults(self):
        event = OverrideEvent(agent_id="A", action_id="hide")
        assert event.type == "force_action"
