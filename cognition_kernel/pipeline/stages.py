"""
Context Pipeline Stages — S0 world facts through S7 utility projection.

Each stage is a pure function ``(ledger, agent_id, inputs) -> atoms``. It
reads only atoms already committed by earlier stages (or the world slice for
S0/S1), and emits atoms in its own namespace. A value that cannot be computed
is not emitted; downstream stages treat absence as unknown.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

from cognition_kernel.atoms.ledger import AtomLedger
from cognition_kernel.decision.projection import action_kinds, project_action
from cognition_kernel.models.atom import ContextAtom, Namespace, make_atom
from cognition_kernel.models.config import PipelineConfig
from cognition_kernel.models.features import FeatureSet
from cognition_kernel.models.goals import StaticTables
from cognition_kernel.models.world import WorldSnapshot
from cognition_kernel.traits.modifiers import goal_keys, input_keys, resolve_modifiers
from cognition_kernel.world_model.features import clamp01, feature_atom_key

logger = logging.getLogger(__name__)

CROWD_NORM = 5.0                            # Nearby count that saturates obs:crowd
UNKNOWN_POSITION_CLOSENESS = 0.5


class StageInputs:
    """The read-only world slice handed to every stage for one agent."""

    def __init__(
        self,
        world: WorldSnapshot,
        self_features: FeatureSet,
        location_features: Optional[FeatureSet] = None,
        scene_features: Optional[FeatureSet] = None,
        config: Optional[PipelineConfig] = None,
        tables: Optional[StaticTables] = None,
        prev_final_axes: Optional[Dict[str, float]] = None,
    ):
        self.world = world
        self.self_features = self_features
        self.location_features = location_features
        self.scene_features = scene_features
        self.config = config or PipelineConfig()
        self.tables = tables or StaticTables()
        self.prev_final_axes = prev_final_axes or {}

    @property
    def traits(self) -> Dict[str, float]:
        out = {}
        for key, fv in self.self_features.values.items():
            if key.startswith("trait."):
                out[key[len("trait."):]] = fv.value
        return out


Stage = Callable[[AtomLedger, str, StageInputs], List[ContextAtom]]

# (input key, weight, inverted)
InputSpec = Tuple[str, float, bool]


def _weighted_mean(ledger: AtomLedger, specs: List[Tuple[str, float, bool]]) -> Tuple[Optional[float], List[str], Dict[str, float]]:
    """Weighted mean over the atoms that are present; None if none are."""
    total = 0.0
    weight_sum = 0.0
    used: List[str] = []
    parts: Dict[str, float] = {}
    for aid, weight, inverted in specs:
        value = ledger.magnitude(aid)
        if value is None:
            continue
        if inverted:
            value = 1.0 - value
        total += weight * value
        weight_sum += weight
        used.append(aid)
        parts[aid] = weight
    if weight_sum <= 0:
        return None, used, parts
    return total / weight_sum, used, parts


def sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


# --- S0 world facts -------------------------------------------------------

def _feature_atoms(features: Optional[FeatureSet], agent_id: str, kind: str) -> List[ContextAtom]:
    if features is None:
        return []
    atoms = []
    for key in sorted(features.values):
        fv = features.values[key]
        atoms.append(
            make_atom(
                Namespace.WORLD,
                feature_atom_key(key),
                agent_id,
                fv.value,
                kind=kind,
                source=f"S0.{fv.source}",
                notes=fv.notes,
            )
        )
    return atoms


def s0_world_facts(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    """Self features, location and scene features, relations, recent harm."""
    atoms = _feature_atoms(inputs.self_features, agent_id, "feature")
    atoms += _feature_atoms(inputs.location_features, agent_id, "location_feature")
    atoms += _feature_atoms(inputs.scene_features, agent_id, "scene_feature")

    me = inputs.world.agents[agent_id]
    for other_id in sorted(me.relations):
        if other_id == agent_id:
            continue
        rel = me.relations[other_id]
        if rel.trust is not None:
            atoms.append(make_atom(Namespace.WORLD, "rel:trust", agent_id, rel.trust,
                                   kind="relation", source="S0.relations", other_id=other_id))
        if rel.hostility is not None:
            atoms.append(make_atom(Namespace.WORLD, "rel:hostility", agent_id, rel.hostility,
                                   kind="relation", source="S0.relations", other_id=other_id))
        for tag in sorted(set(rel.tags)):
            atoms.append(make_atom(Namespace.WORLD, f"rel:tag:{tag}", agent_id, 1.0,
                                   kind="relation_tag", source="S0.relations", other_id=other_id))

    atoms += _recent_harm(agent_id, inputs)
    return atoms


def _recent_harm(agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    cfg = inputs.config
    window = max(cfg.harm_window_ticks, 1)
    now = inputs.world.tick
    totals: Dict[str, float] = {}
    notes: Dict[str, List[str]] = {}
    for event in inputs.world.events:
        if event.kind not in cfg.harm_kinds or event.target_id != agent_id:
            continue
        if event.actor_id == agent_id:
            continue
        age = now - event.tick
        if age < 0 or age >= window:
            continue
        weight = 1.0 - age / window
        totals[event.actor_id] = totals.get(event.actor_id, 0.0) + event.magnitude * weight
        notes.setdefault(event.actor_id, []).append(f"{event.kind}@{event.tick}")

    return [
        make_atom(Namespace.WORLD, "harm:recent", agent_id, clamp01(totals[other]),
                  kind="recent_harm", source="S0.events", other_id=other, notes=notes[other])
        for other in sorted(totals)
    ]


# --- S1 observation -------------------------------------------------------

def _closeness(a, b, radius: float) -> Tuple[Optional[float], List[str]]:
    if a.position is None or b.position is None:
        return UNKNOWN_POSITION_CLOSENESS, ["position:unknown"]
    dist = math.dist(a.position, b.position)
    if dist > radius:
        return None, []
    if radius <= 0:
        return 1.0, []
    return clamp01(1.0 - dist / radius), []


def s1_observation(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    """Who is nearby, and how hostile/trusting the nearby company is."""
    world = inputs.world
    me = world.agents[agent_id]
    if me.location_id is None:
        return []

    nearby: List[ContextAtom] = []
    for other_id in sorted(world.agents):
        other = world.agents[other_id]
        if other_id == agent_id or other.location_id != me.location_id:
            continue
        closeness, notes = _closeness(me, other, inputs.config.proximity_radius)
        if closeness is None:
            continue
        nearby.append(make_atom(Namespace.WORLD, "obs:nearby", agent_id, closeness,
                                kind="proximity", source="S1", other_id=other_id, notes=notes))

    atoms = list(nearby)
    nearby_ids = [a.id for a in nearby]
    atoms.append(make_atom(Namespace.WORLD, "obs:crowd", agent_id, clamp01(len(nearby) / CROWD_NORM),
                           kind="observation", source="S1", used_atom_ids=nearby_ids))

    hostility: List[Tuple[float, str]] = []
    trust: List[Tuple[float, str]] = []
    for a in nearby:
        h_id = f"world:rel:hostility:{agent_id}:{a.target_id}"
        t_id = f"world:rel:trust:{agent_id}:{a.target_id}"
        if ledger.get(h_id) is not None:
            hostility.append((ledger.magnitude(h_id), h_id))
        if ledger.get(t_id) is not None:
            trust.append((ledger.magnitude(t_id), t_id))

    if hostility:
        atoms.append(make_atom(Namespace.WORLD, "obs:hostility", agent_id, max(v for v, _ in hostility),
                               kind="observation", source="S1",
                               used_atom_ids=nearby_ids + [i for _, i in hostility]))
    if trust:
        atoms.append(make_atom(Namespace.WORLD, "obs:trust", agent_id, sum(v for v, _ in trust) / len(trust),
                               kind="observation", source="S1",
                               used_atom_ids=nearby_ids + [i for _, i in trust]))
    return atoms


# --- S2 context axes ------------------------------------------------------

AXIS_INPUTS: Dict[str, List[InputSpec]] = {
    "danger": [("scene:threat", 1.0, False), ("loc:hazard", 0.6, False), ("obs:hostility", 0.8, False),
               ("scene:hostility", 0.5, False), ("scene:chaos", 0.3, False)],
    "publicness": [("loc:publicness", 1.0, False), ("loc:crowd", 0.5, False), ("obs:crowd", 0.5, False)],
    "privacy": [("loc:privacy", 1.0, False), ("loc:publicness", 0.5, True)],
    "normPressure": [("loc:norm_pressure", 1.0, False), ("loc:control", 0.5, False)],
    "proceduralStrict": [("loc:procedural_strictness", 1.0, False), ("loc:control", 0.3, False)],
    "surveillance": [("loc:surveillance", 1.0, False), ("loc:visibility", 0.3, False)],
    "cover": [("loc:cover", 1.0, False), ("exposure:dark", 0.5, False)],
    "visibility": [("loc:visibility", 1.0, False), ("exposure:dark", 0.5, True)],
    "escape": [("loc:escape", 1.0, False)],
    "scarcity": [("scene:scarcity", 1.0, False), ("scene:resource_access", 0.5, True)],
    "resourceAccess": [("scene:resource_access", 1.0, False)],
    "timePressure": [("scene:urgency", 1.0, False)],
    "uncertainty": [("scene:uncertainty", 1.0, False), ("scene:chaos", 0.5, False)],
    "anger": [("emotion:anger", 1.0, False)],
    "fear": [("emotion:fear", 1.0, False)],
    "valence": [("emotion:valence", 1.0, False)],
    "socialTrust": [("social:trust", 1.0, False), ("obs:trust", 1.0, False)],
    "stress": [("body:stress", 1.0, False), ("body:pain", 0.4, False)],
    "fatigue": [("body:fatigue", 1.0, False)],
}


def s2_context_axes(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    atoms = []
    for axis, specs in AXIS_INPUTS.items():
        resolved = [(f"world:{key}:{agent_id}", w, inv) for key, w, inv in specs]
        value, used, parts = _weighted_mean(ledger, resolved)
        if value is None:
            logger.debug("Axis %s has no inputs for %s", axis, agent_id)
            continue
        atoms.append(make_atom(Namespace.CTX, axis, agent_id, clamp01(value),
                               kind="ctx_axis", source="S2", used_atom_ids=used, parts=parts))
    return atoms


# --- S3 final axes --------------------------------------------------------

FINAL_MIX: Dict[str, List[InputSpec]] = {
    "danger": [("danger", 0.8, False), ("uncertainty", 0.2, False)],
    "visibility": [("visibility", 0.7, False), ("surveillance", 0.3, False)],
    "privacy": [("privacy", 0.8, False), ("surveillance", 0.2, True)],
    "escape": [("escape", 0.8, False), ("fatigue", 0.2, True)],
}


def s3_final_axes(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    """Mix, then trait lens, then optional smoothing against last tick."""
    alpha = inputs.config.smoothing_alpha
    traits = inputs.traits
    atoms = []
    for axis in AXIS_INPUTS:
        mix = FINAL_MIX.get(axis, [(axis, 1.0, False)])
        resolved = [(f"ctx:{name}:{agent_id}", w, inv) for name, w, inv in mix]
        # The axis itself must be known; blend partners only refine it.
        if ledger.get(resolved[0][0]) is None:
            continue
        value, used, parts = _weighted_mean(ledger, resolved)
        if value is None:
            continue

        lens = resolve_modifiers(input_keys(axis), traits, inputs.tables.trait_matrix)
        value = clamp01(lens.apply(value))
        parts = {"mix": parts, "lens_multiplier": lens.multiplier, "lens_bonus": lens.bonus}
        notes = [f"trait:{e.trait_id}:{e.key}" for e in lens.breakdown]

        prev = inputs.prev_final_axes.get(axis)
        if alpha is not None and prev is not None and math.isfinite(prev):
            value = alpha * value + (1.0 - alpha) * prev
            parts["smoothed_from"] = prev
            notes.append(f"smoothed:alpha={alpha:g}")

        atoms.append(make_atom(Namespace.CTX_FINAL, axis, agent_id, clamp01(value),
                               kind="ctx_final", source="S3", used_atom_ids=used,
                               parts=parts, notes=notes))
    return atoms


# --- S4 threat ------------------------------------------------------------

THREAT_COMPONENTS: Dict[str, List[InputSpec]] = {
    "env": [("danger", 1.0, False), ("cover", 0.3, True)],
    "social": [("socialTrust", 0.6, True), ("surveillance", 0.2, False), ("normPressure", 0.2, False)],
    "personal": [("fear", 0.5, False), ("stress", 0.3, False), ("escape", 0.2, True)],
}


def s4_threat(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    atoms = []
    for name, specs in THREAT_COMPONENTS.items():
        resolved = [(f"ctx:final:{axis}:{agent_id}", w, inv) for axis, w, inv in specs]
        if ledger.get(resolved[0][0]) is None:
            continue
        value, used, parts = _weighted_mean(ledger, resolved)
        if value is None:
            continue
        atoms.append(make_atom(Namespace.THREAT, name, agent_id, clamp01(value),
                               kind="threat_component", source="S4", used_atom_ids=used, parts=parts))

    if atoms:
        survive = 1.0
        for a in atoms:
            survive *= 1.0 - a.magnitude
        atoms.append(make_atom(Namespace.THREAT, "final", agent_id, clamp01(1.0 - survive),
                               kind="threat_final", source="S4",
                               used_atom_ids=[a.id for a in atoms], notes=["noisy-or"]))
    return atoms


# --- S5 drivers -----------------------------------------------------------

DRIVER_INPUTS: Dict[str, List[InputSpec]] = {
    "safetyNeed": [("threat:final", 0.7, False), ("ctx:final:fear", 0.3, False)],
    "affiliationNeed": [("ctx:final:socialTrust", 0.5, True), ("ctx:final:valence", 0.5, True)],
    "restNeed": [("ctx:final:fatigue", 0.7, False), ("ctx:final:stress", 0.3, False)],
    "controlNeed": [("ctx:final:uncertainty", 0.5, False), ("ctx:final:timePressure", 0.3, False),
                    ("ctx:final:anger", 0.2, False)],
    "resourceNeed": [("ctx:final:scarcity", 0.7, False), ("ctx:final:resourceAccess", 0.3, True)],
}


def s5_drivers(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    atoms = []
    for name, specs in DRIVER_INPUTS.items():
        resolved = [(f"{prefix}:{agent_id}", w, inv) for prefix, w, inv in specs]
        value, used, parts = _weighted_mean(ledger, resolved)
        if value is None:
            continue
        atoms.append(make_atom(Namespace.DRV, name, agent_id, clamp01(value),
                               kind="driver", source="S5", used_atom_ids=used, parts=parts))
    return atoms


# --- S6 goals -------------------------------------------------------------

def goal_input_atom_id(name: str, agent_id: str) -> str:
    """``drv.safetyNeed`` -> ``drv:safetyNeed:A``; ``danger`` -> ``ctx:final:danger:A``."""
    if name.startswith("drv."):
        return f"drv:{name[len('drv.'):]}:{agent_id}"
    return f"ctx:final:{name}:{agent_id}"


def deadline_pressure(deadline: Optional[int], tick: int, config: PipelineConfig) -> float:
    if deadline is None:
        return 0.0
    remaining = deadline - tick
    horizon = max(config.deadline_horizon, 1)
    return config.deadline_weight * clamp01(1.0 - remaining / horizon)


def s6_goals(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    """
    energy = value * sigmoid(trait-modified logit).

    A goal with no present input emits nothing. With only some inputs present,
    the weighted sum is rescaled by the share of absolute weight they carry,
    and the goal is noted ``partial``.
    """
    traits = inputs.traits
    atoms = []
    for goal in inputs.tables.goals:
        weighted = 0.0
        present_weight = 0.0
        total_weight = sum(abs(w) for w in goal.inputs.values())
        used: List[str] = []
        notes: List[str] = []
        for name, weight in goal.inputs.items():
            aid = goal_input_atom_id(name, agent_id)
            value = ledger.magnitude(aid)
            if value is None:
                notes.append(f"missing:{aid}")
                continue
            weighted += weight * value
            present_weight += abs(weight)
            used.append(aid)

        if goal.inputs and not used:
            logger.debug("Goal %s has no inputs for %s", goal.id, agent_id)
            continue
        coverage = present_weight / total_weight if total_weight > 0 else 1.0
        if 0.0 < coverage < 1.0:
            weighted /= coverage
            notes.append(f"partial:{coverage:.2f}")

        pressure = deadline_pressure(goal.deadline, inputs.world.tick, inputs.config)
        logit = goal.bias + weighted + pressure

        mods = resolve_modifiers(goal_keys(goal.id), traits, inputs.tables.trait_matrix)
        logit = mods.apply(logit)
        notes += [f"trait:{e.trait_id}:{e.key}" for e in mods.breakdown]

        energy = goal.value * sigmoid(logit)
        atoms.append(make_atom(Namespace.GOAL, f"domain:{goal.id}", agent_id, energy,
                               kind="goal_energy", source="S6", used_atom_ids=used, notes=notes,
                               parts={"logit": logit, "coverage": coverage, "deadline_pressure": pressure,
                                      "trait_multiplier": mods.multiplier, "trait_bonus": mods.bonus}))
    return atoms


# --- S7 utility -----------------------------------------------------------

def s7_utility(ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> List[ContextAtom]:
    """Goal-free projections the action layer may read instead of goal:*."""
    atoms = []
    kinds = action_kinds()
    for goal in inputs.tables.goals:
        goal_atom_id = f"goal:domain:{goal.id}:{agent_id}"
        energy = ledger.magnitude(goal_atom_id)
        if energy is None:
            continue
        atoms.append(make_atom(Namespace.UTIL, f"activeGoal:{goal.id}", agent_id, energy,
                               kind="active_goal", source="S7", used_atom_ids=[goal_atom_id]))
        for kind in kinds:
            hint = project_action(kind, goal.id)
            if hint == 0.0:
                continue
            atoms.append(make_atom(Namespace.UTIL, f"hint:{goal.id}:{kind}", agent_id, hint,
                                   kind="action_hint", source="S7", used_atom_ids=[goal_atom_id]))
    return atoms
