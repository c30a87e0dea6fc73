"""
Candidate Projection — turns enabled possibilities into scored-to-be actions.

Goal energy and per-goal deltas are read from ``util:*`` atoms only; the
action layer never consults ``goal:*`` directly.
"""

import logging
from typing import Dict, List, Tuple

from cognition_kernel.atoms.ledger import AtomLedger
from cognition_kernel.models.action import ActionCandidate, Possibility

logger = logging.getLogger(__name__)


def active_goal_energy(ledger: AtomLedger, agent_id: str) -> Tuple[Dict[str, float], Dict[str, str]]:
    """goal id -> energy, and goal id -> the util atom it was read from."""
    energy: Dict[str, float] = {}
    sources: Dict[str, str] = {}
    prefix = "util:activeGoal:"
    suffix = f":{agent_id}"
    for atom in ledger.by_prefix(prefix):
        if not atom.id.endswith(suffix):
            continue
        goal_id = atom.id[len(prefix):-len(suffix)]
        energy[goal_id] = atom.magnitude
        sources[goal_id] = atom.id
    return energy, sources


def build_action_candidates(
    possibilities: List[Possibility],
    ledger: AtomLedger,
    agent_id: str,
) -> Tuple[List[ActionCandidate], Dict[str, float]]:
    """Project every enabled possibility; disabled ones are not candidates."""
    energy, sources = active_goal_energy(ledger, agent_id)
    top_goal = max(sorted(energy), key=lambda g: energy[g]) if energy else None

    candidates: List[ActionCandidate] = []
    for p in possibilities:
        if not p.enabled:
            continue

        delta_goals: Dict[str, float] = {}
        util_ids: List[str] = []
        for goal_id in sorted(energy):
            hint_id = f"util:hint:{goal_id}:{p.action_id}:{agent_id}"
            hint = ledger.magnitude(hint_id)
            if hint is None:
                continue
            delta_goals[goal_id] = hint
            util_ids.append(hint_id)

        if not delta_goals and top_goal is not None:
            delta_goals[top_goal] = p.magnitude or 0.0
            util_ids.append(sources[top_goal])
            logger.debug("No hints for %s; tying it to %s", p.id, top_goal)

        support = list(p.support_atom_ids)
        for uid in util_ids:
            if uid not in support:
                support.append(uid)

        candidates.append(
            ActionCandidate(
                id=p.id,
                kind=p.action_id,
                actor_id=agent_id,
                target_id=p.target_id,
                delta_goals=delta_goals,
                cost=p.meta.get("cost", 0.0),
                confidence=p.confidence,
                support_atom_ids=support,
            )
        )
    return candidates, energy
