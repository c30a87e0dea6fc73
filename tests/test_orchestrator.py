"""Tests for the Tick Orchestrator: streams, carry-over, mass stepping."""

import pytest

from cognition_kernel.models.action import OverrideEvent
from cognition_kernel.models.config import EngineConfig, MassAggregationConfig
from cognition_kernel.models.world import CharacterRecord, LocationRecord, Relation, SceneRecord, WorldSnapshot
from cognition_kernel.orchestrator.tick import TickOrchestrator, agent_rng, mass_rng
from cognition_kernel.pipeline.runner import ContextPipeline
from cognition_kernel.tables.loader import default_static_tables


def _make_world(tick: int = 3) -> WorldSnapshot:
    return WorldSnapshot(
        tick=tick,
        agents={
            "A": CharacterRecord(id="A", location_id="capital", position=[0.0, 0.0],
                                 body={"stress": 0.6, "fatigue": 0.7}, emotion={"fear": 0.4},
                                 exposure={"dark": 0.5}, relations={"B": Relation(trust=0.7)}),
            "B": CharacterRecord(id="B", location_id="capital", position=[2.0, 0.0],
                                 body={"stress": 0.2}, psych={"risk": 0.8}),
        },
        locations={"capital": LocationRecord(id="capital", properties={"cover": 0.6, "escape": 0.4})},
        scene=SceneRecord(id="dusk", metrics={"threat": 0.3, "uncertainty": 0.5}),
    )


def _make_orchestrator(**kwargs) -> TickOrchestrator:
    return TickOrchestrator(pipeline=ContextPipeline(tables=default_static_tables()), **kwargs)


class TestTickOrchestrator:
    def test_every_agent_decides(self):
        result = _make_orchestrator().run_tick(_make_world(), seed=42)
        assert set(result.chosen) == {"A", "B"}
        assert all(c is not None for c in result.chosen.values())
        assert result.tick == 3

    def test_same_seed_reproduces_tick(self):
        first = _make_orchestrator().run_tick(_make_world(), seed=42)
        second = _make_orchestrator().run_tick(_make_world(), seed=42)
        assert first.chosen == second.chosen
        assert first.mass.mean_x == second.mass.mean_x
        for agent_id in first.results:
            assert (
                first.results[agent_id].decision.probabilities
                == second.results[agent_id].decision.probabilities
            )

    def test_carry_over_recorded(self):
        orch = _make_orchestrator()
        result = orch.run_tick(_make_world(), seed=1)
        carry = orch.carry_over("A")
        assert carry.last_tick == 3
        assert carry.prev_action_id == result.chosen["A"]
        assert carry.prev_final_axes == result.results["A"].final_axes

    def test_momentum_applies_next_tick(self):
        orch = _make_orchestrator()
        result = orch.run_tick(_make_world(), seed=1)
        prev = result.chosen["A"]
        nxt = orch.run_agent(_make_world(tick=4), "A", seed=1)
        boosted = [s for s in nxt.decision.ranked if s.candidate.id == prev]
        assert boosted and boosted[0].momentum == pytest.approx(0.1)
        assert all(s.momentum == 0.0 for s in nxt.decision.ranked if s.candidate.id != prev)

    def test_reset_agent_drops_carry_over(self):
        orch = _make_orchestrator()
        orch.run_tick(_make_world(), seed=1)
        orch.reset_agent("A")
        assert orch.carry_over("A") is None
        assert orch.carry_over("B") is not None

    def test_run_agent_leaves_state_alone(self):
        orch = _make_orchestrator()
        orch.run_agent(_make_world(), "A", seed=1)
        assert orch.carry_over("A") is None
        assert orch.network.step_count == 0

    def test_force_applies_to_named_agent_only(self):
        overrides = [OverrideEvent(agent_id="A", action_id="rest")]
        result = _make_orchestrator().run_tick(_make_world(), seed=7, overrides=overrides)
        assert result.chosen["A"] == "rest"
        assert result.results["A"].decision.forced
        assert not result.results["B"].decision.forced

    def test_agent_streams_are_independent(self):
        world = _make_world()
        solo = _make_orchestrator().run_agent(world, "A", seed=9)
        world.agents["C"] = CharacterRecord(id="C", location_id="elsewhere")
        crowded = _make_orchestrator().run_tick(world, seed=9)
        assert crowded.chosen["A"] == solo.decision.best.candidate.id

    def test_agent_named_mass_has_its_own_stream(self):
        assert agent_rng(4, 3, "mass").random() != mass_rng(4, 3).random()

    def test_run_agent_uses_agent_stream(self):
        world = _make_world()
        pipeline = ContextPipeline(tables=default_static_tables())
        direct = pipeline.run(world, "A", agent_rng(9, world.tick, "A"))
        via = TickOrchestrator(pipeline=pipeline).run_agent(world, "A", seed=9)
        assert via.decision.probabilities == direct.decision.probabilities
        assert via.decision.best.candidate.id == direct.decision.best.candidate.id


class TestMassStepping:
    def test_network_steps_once_per_tick(self):
        orch = _make_orchestrator()
        orch.run_tick(_make_world(), seed=1)
        result = orch.run_tick(_make_world(tick=4), seed=1)
        assert orch.network.step_count == 2
        assert result.mass.step_count == 2

    def test_location_assignment_feeds_capital(self):
        config = EngineConfig(mass=MassAggregationConfig(base_noise_scale=0.0))
        quiet = TickOrchestrator(pipeline=ContextPipeline(config, default_static_tables()), assignment={})
        busy = TickOrchestrator(pipeline=ContextPipeline(config, default_static_tables()))
        quiet.run_tick(_make_world(), seed=5)
        busy.run_tick(_make_world(), seed=5)
        assert busy.network.nodes["geo:capital"].x > quiet.network.nodes["geo:capital"].x
        assert busy.network.nodes["geo:tunnels"].x == quiet.network.nodes["geo:tunnels"].x
