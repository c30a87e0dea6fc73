"""Character -> node signal aggregation for the mass network."""

import logging
from typing import Dict, List, Optional

from cognition_kernel.models.config import MassAggregationConfig
from cognition_kernel.models.mass import CharacterMassSignal, MassNetwork, NodeInput
from cognition_kernel.models.world import WorldSnapshot
from cognition_kernel.world_model.features import extract_character_features
from cognition_kernel.world_model.mods import ModsStore, apply_mods

logger = logging.getLogger(__name__)


def signals_from_world(world: WorldSnapshot, mods: Optional[ModsStore] = None) -> List[CharacterMassSignal]:
    """Per-character stress / darkness / risk, after mods."""
    mods = mods or ModsStore()
    signals = []
    for agent_id in sorted(world.agents):
        features = apply_mods(extract_character_features(world.agents[agent_id]), mods.get(agent_id))
        signals.append(
            CharacterMassSignal(
                character_id=agent_id,
                stress=features.get("body.stress") or 0.0,
                dark=features.get("exposure.dark") or 0.0,
                risk=features.get("psych.risk") or 0.0,
            )
        )
    return signals


def assignment_from_world(world: WorldSnapshot, network: MassNetwork) -> Dict[str, str]:
    """Map each agent to the node named by its location (``loc`` or ``geo:loc``)."""
    assignment: Dict[str, str] = {}
    for agent_id, agent in world.agents.items():
        loc = agent.location_id
        if loc is None:
            continue
        if loc in network.nodes:
            assignment[agent_id] = loc
        elif f"geo:{loc}" in network.nodes:
            assignment[agent_id] = f"geo:{loc}"
    return assignment


def aggregate_inputs(
    signals: List[CharacterMassSignal],
    assignment: Dict[str, str],
    network: MassNetwork,
    config: Optional[MassAggregationConfig] = None,
) -> Dict[str, NodeInput]:
    """Mean weighted signal and contributor count for every node."""
    cfg = config or MassAggregationConfig()
    sums: Dict[str, float] = {nid: 0.0 for nid in network.node_order}
    counts: Dict[str, int] = {nid: 0 for nid in network.node_order}

    for s in signals:
        node_id = assignment.get(s.character_id)
        if node_id is None:
            logger.debug("Character %s has no node assignment", s.character_id)
            continue
        if node_id not in sums:
            logger.debug("Character %s assigned to unknown node %s", s.character_id, node_id)
            continue
        sums[node_id] += cfg.stress_weight * s.stress + cfg.dark_weight * s.dark + cfg.risk_weight * s.risk
        counts[node_id] += 1

    return {
        nid: NodeInput(node_id=nid, value=sums[nid] / counts[nid] if counts[nid] else 0.0, count=counts[nid])
        for nid in network.node_order
    }
