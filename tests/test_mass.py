"""Tests for the mass network: aggregation, Euler step, summary."""

import math

import numpy as np
import pytest

from cognition_kernel.mass.aggregate import aggregate_inputs, assignment_from_world, signals_from_world
from cognition_kernel.mass.network import (
    DEFAULT_PARAMS,
    RIGID_PARAMS,
    build_default_network,
    build_network,
    step_network,
    summarize_network,
)
from cognition_kernel.models.config import MassAggregationConfig
from cognition_kernel.models.mass import (
    CharacterMassSignal,
    MassNode,
    MassNodeParams,
    NodeInput,
)
from cognition_kernel.models.world import CharacterRecord, WorldSnapshot
from cognition_kernel.rng.streams import derive_rng
from cognition_kernel.world_model.mods import ModsStore


class _OnesRng:
    """Every standard normal draw is exactly 1."""

    def standard_normal(self, n):
        return np.ones(n)


class _ZerosRng:
    def standard_normal(self, n):
        return np.zeros(n)


def _sigmoid(z: float) -> float:
    return 1.0 / (1.0 + math.exp(-z))


def _make_single(x: float = 0.2):
    params = MassNodeParams(tau=4.0, bias=-1.0, gain=2.0, noise_scale=0.5)
    return build_network([MassNode(id="geo:a", x=x, params=params)], [])


class TestStep:
    def test_single_node_analytic(self):
        net = _make_single()
        inputs = {"geo:a": NodeInput(node_id="geo:a", value=0.3, count=1)}
        out = step_network(net, inputs, _ZerosRng())
        expected = 0.2 + (-0.2 + _sigmoid(-1.0 + 2.0 * 0.3)) / 4.0
        assert out.nodes["geo:a"].x == pytest.approx(expected)
        assert out.step_count == 1

    def test_noise_shrinks_with_count(self):
        net = _make_single()
        one = step_network(net, {"geo:a": NodeInput(node_id="geo:a", value=0.3, count=1)}, _OnesRng())
        four = step_network(net, {"geo:a": NodeInput(node_id="geo:a", value=0.3, count=4)}, _OnesRng())
        assert one.nodes["geo:a"].x == pytest.approx(0.2 + (-0.2 + _sigmoid(-0.4 + 0.5)) / 4.0)
        assert four.nodes["geo:a"].x == pytest.approx(0.2 + (-0.2 + _sigmoid(-0.4 + 0.25)) / 4.0)

    def test_zero_count_treated_as_one(self):
        net = _make_single()
        out = step_network(net, {}, _OnesRng())
        assert out.nodes["geo:a"].x == pytest.approx(0.2 + (-0.2 + _sigmoid(-1.0 + 0.5)) / 4.0)

    def test_recurrence_ignores_diagonal(self):
        params = MassNodeParams(tau=1.0, bias=0.0, gain=1.0, noise_scale=0.0)
        net = build_network(
            [MassNode(id="a", x=0.5, params=params), MassNode(id="b", x=0.0, params=params)],
            [("a", "b", 2.0)],
        )
        net = net.model_copy(update={"weights": [[9.0, 0.0], [2.0, 9.0]]})
        out = step_network(net, {}, _ZerosRng())
        assert out.nodes["a"].x == pytest.approx(_sigmoid(0.0))
        assert out.nodes["b"].x == pytest.approx(_sigmoid(1.0))

    def test_input_network_unchanged(self):
        net = build_default_network()
        before = net.state()
        step_network(net, {}, np.random.default_rng(3))
        assert net.state() == before
        assert net.step_count == 0

    def test_same_rng_seed_same_state(self):
        net = build_default_network()
        a = step_network(net, {}, np.random.default_rng(11))
        b = step_network(net, {}, np.random.default_rng(11))
        assert a.state() == b.state()

    def test_same_seed_same_trajectory(self):
        inputs = {
            "geo:capital": NodeInput(node_id="geo:capital", value=0.6, count=3),
            "geo:tunnels": NodeInput(node_id="geo:tunnels", value=0.9, count=1),
        }

        def trajectory():
            net = build_default_network()
            states = []
            for step in range(6):
                net = step_network(net, inputs, derive_rng(21, step, "mass"))
                states.append(net.state())
            return states

        first, second = trajectory(), trajectory()
        assert first == second
        assert first[0] != first[-1]

    def test_dt_scales_step(self):
        net = _make_single()
        half = step_network(net, {}, _ZerosRng(), MassAggregationConfig(dt=0.5))
        full = step_network(net, {}, _ZerosRng())
        assert half.nodes["geo:a"].x - 0.2 == pytest.approx(0.5 * (full.nodes["geo:a"].x - 0.2))


class TestTopology:
    def test_default_network_shape(self):
        net = build_default_network()
        assert len(net.node_order) == 6
        assert all(net.nodes[nid].x == 0.05 for nid in net.node_order)

    def test_link_direction(self):
        net = build_default_network()
        i = net.node_order.index("geo:capital")
        j = net.node_order.index("inst:rectorate")
        assert net.weights[i][j] == -0.8
        assert net.weights[j][i] == 0.0

    def test_presets(self):
        net = build_default_network()
        assert net.nodes["geo:capital"].params == RIGID_PARAMS
        assert net.nodes["faction:royal_guard"].params == RIGID_PARAMS
        assert net.nodes["faction:independent"].params == DEFAULT_PARAMS
        assert net.nodes["geo:periphery"].params.noise_scale == 1.0

    def test_self_link_rejected(self):
        with pytest.raises(ValueError):
            build_network([MassNode(id="a")], [("a", "a", 1.0)])

    def test_misaligned_weights_rejected(self):
        net = _make_single()
        with pytest.raises(ValueError):
            type(net)(node_order=net.node_order, nodes=net.nodes, weights=[[0.0, 0.0]])


class TestAggregation:
    def setup_method(self):
        self.net = build_default_network()

    def test_mean_and_count(self):
        signals = [
            CharacterMassSignal(character_id="A", stress=1.0),
            CharacterMassSignal(character_id="B", dark=1.0),
            CharacterMassSignal(character_id="C", risk=1.0),
        ]
        assignment = {"A": "geo:capital", "B": "geo:capital", "C": "nowhere"}
        inputs = aggregate_inputs(signals, assignment, self.net)
        assert inputs["geo:capital"].count == 2
        assert inputs["geo:capital"].value == pytest.approx((0.4 + 0.3) / 2)
        assert inputs["geo:tunnels"].count == 0
        assert inputs["geo:tunnels"].value == 0.0
        assert set(inputs) == set(self.net.node_order)

    def test_signals_follow_mods(self):
        world = WorldSnapshot(agents={"A": CharacterRecord(id="A", body={"stress": 0.2})})
        mods = ModsStore()
        mods.set_override("A", "body.stress", 0.9)
        signals = signals_from_world(world, mods)
        assert signals[0].stress == pytest.approx(0.9)
        assert signals[0].dark == 0.0

    def test_assignment_by_location(self):
        world = WorldSnapshot(agents={
            "A": CharacterRecord(id="A", location_id="capital"),
            "B": CharacterRecord(id="B", location_id="faction:royal_guard"),
            "C": CharacterRecord(id="C", location_id="moon"),
            "D": CharacterRecord(id="D"),
        })
        assert assignment_from_world(world, self.net) == {"A": "geo:capital", "B": "faction:royal_guard"}


class TestSummary:
    def test_hotspots(self):
        net = _make_single(x=0.7)
        summary = summarize_network(net)
        assert summary.max_node == "geo:a"
        assert summary.max_x == pytest.approx(0.7)
        assert summary.hotspots == ["geo:a"]
        assert summarize_network(net, threshold=0.8).hotspots == []

    def test_mean(self):
        summary = summarize_network(build_default_network())
        assert summary.mean_x == pytest.approx(0.05)
        assert summary.step_count == 0
