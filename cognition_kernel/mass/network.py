"""
Mass Network — mesoscale leaky-integrator dynamics over regions and factions.

Per node i, with h_i the recurrent drive from every other node's previous
state and I_i the aggregated character input:

    x_i' = x_i + dt * (-x_i + sigmoid(bias_i + gain_i * (h_i + I_i) + noise_i * xi_i)) / tau_i

where noise_i = noise_scale_i * base_noise_scale / sqrt(max(count_i, 1)) and
xi ~ N(0, 1) is drawn once per node, in node_order. Steps never mutate the
input network.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from cognition_kernel.models.config import MassAggregationConfig
from cognition_kernel.models.mass import (
    MassNetwork,
    MassNetworkSummary,
    MassNode,
    MassNodeParams,
    NodeInput,
)

logger = logging.getLogger(__name__)

DEFAULT_PARAMS = MassNodeParams(tau=5.0, bias=-2.0, gain=1.5, noise_scale=0.5)
UNSTABLE_PARAMS = MassNodeParams(tau=5.0, bias=-1.0, gain=1.5, noise_scale=1.0)
RIGID_PARAMS = MassNodeParams(tau=8.0, bias=-2.0, gain=1.5, noise_scale=0.5)

DEFAULT_NODES: List[MassNode] = [
    MassNode(id="geo:capital", label="Capital", kind="geo", params=RIGID_PARAMS),
    MassNode(id="geo:periphery", label="Periphery", kind="geo", params=UNSTABLE_PARAMS),
    MassNode(id="geo:tunnels", label="Tunnels", kind="geo", params=UNSTABLE_PARAMS),
    MassNode(id="faction:royal_guard", label="Royal Guard", kind="faction", params=RIGID_PARAMS),
    MassNode(id="faction:independent", label="Independents", kind="faction", params=DEFAULT_PARAMS),
    MassNode(id="inst:rectorate", label="Rectorate", kind="institution", params=RIGID_PARAMS),
]

# (source, target, weight): source's state drives target.
DEFAULT_LINKS: List[Tuple[str, str, float]] = [
    ("geo:capital", "geo:periphery", 0.2),
    ("geo:periphery", "geo:capital", 0.4),
    ("geo:tunnels", "geo:periphery", 0.3),
    ("geo:periphery", "geo:tunnels", 0.1),
    ("faction:royal_guard", "geo:capital", 0.5),
    ("geo:capital", "faction:royal_guard", 0.3),
    ("faction:independent", "geo:tunnels", 0.4),
    ("geo:tunnels", "faction:independent", 0.4),
    ("inst:rectorate", "geo:capital", -0.8),
    ("inst:rectorate", "faction:royal_guard", -0.5),
]


def build_network(nodes: List[MassNode], links: List[Tuple[str, str, float]]) -> MassNetwork:
    order = [n.id for n in nodes]
    index = {nid: i for i, nid in enumerate(order)}
    weights = [[0.0] * len(order) for _ in order]
    for src, tgt, w in links:
        if src == tgt:
            raise ValueError(f"self-link on {src!r}")
        weights[index[tgt]][index[src]] = w
    return MassNetwork(node_order=order, nodes={n.id: n for n in nodes}, weights=weights)


def build_default_network() -> MassNetwork:
    """Six-node capital/periphery/tunnels/guard/independents/rectorate topology."""
    return build_network(DEFAULT_NODES, DEFAULT_LINKS)


def _sigmoid(z: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-z))


def step_network(
    network: MassNetwork,
    inputs: Dict[str, NodeInput],
    rng: np.random.Generator,
    config: Optional[MassAggregationConfig] = None,
) -> MassNetwork:
    """One forward-Euler step. Returns a new network with step_count + 1."""
    cfg = config or MassAggregationConfig()
    order = network.node_order
    n = len(order)

    x = np.array([network.nodes[nid].x for nid in order], dtype=float)
    w = np.array(network.weights, dtype=float).reshape(n, n)
    np.fill_diagonal(w, 0.0)
    h = w @ x

    drive = np.array([inputs[nid].value if nid in inputs else 0.0 for nid in order], dtype=float)
    counts = np.array([inputs[nid].count if nid in inputs else 0 for nid in order], dtype=float)
    tau = np.array([network.nodes[nid].params.tau for nid in order], dtype=float)
    bias = np.array([network.nodes[nid].params.bias for nid in order], dtype=float)
    gain = np.array([network.nodes[nid].params.gain for nid in order], dtype=float)
    noise_scale = np.array([network.nodes[nid].params.noise_scale for nid in order], dtype=float)

    xi = rng.standard_normal(n)
    noise = noise_scale * cfg.base_noise_scale / np.sqrt(np.maximum(counts, 1.0))

    target = _sigmoid(bias + gain * (h + drive) + noise * xi)
    x_next = x + cfg.dt * (-x + target) / tau

    nodes = {
        nid: network.nodes[nid].model_copy(update={"x": float(x_next[i])})
        for i, nid in enumerate(order)
    }
    return MassNetwork(
        node_order=list(order),
        nodes=nodes,
        weights=[list(row) for row in network.weights],
        step_count=network.step_count + 1,
    )


def summarize_network(network: MassNetwork, threshold: float = 0.6) -> MassNetworkSummary:
    """Mean and peak activation, and every node at or above ``threshold``."""
    state = network.state()
    if not state:
        return MassNetworkSummary(step_count=network.step_count, mean_x=0.0)
    max_node = max(network.node_order, key=lambda nid: state[nid])
    return MassNetworkSummary(
        step_count=network.step_count,
        mean_x=float(np.mean(list(state.values()))),
        max_node=max_node,
        max_x=state[max_node],
        hotspots=[nid for nid in network.node_order if state[nid] >= threshold],
    )
