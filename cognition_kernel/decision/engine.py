"""
Decision Engine — scores action candidates against goal energy and samples one.

Behavioral Contract:
- rawQ = sum over goals of energy * delta; non-finite terms are skipped.
- Exactly one scoring model applies per call (multiplicative or additive-risk).
- The feasibility filter never leaves the agent with zero options: when no
  candidate meets min_confidence it is bypassed.
- Momentum is added to the previous action's score before ranking.
- Sampling overrides perturb only the sampling logits; ranked q values and
  order are never affected by them.
- All randomness comes from the injected source.
- A force_action event addressed to this agent replaces the choice.
- Every candidate gets an action atom, including those the filter excluded.
"""

import logging
import math
from typing import Dict, List, Optional, Protocol, Tuple

from cognition_kernel.models.action import (
    ActionCandidate,
    DecisionOptions,
    DecisionSnapshot,
    OverrideEvent,
    ScoredAction,
    ScoringModel,
)
from cognition_kernel.models.atom import ContextAtom, Namespace, make_atom

logger = logging.getLogger(__name__)

SOURCE = "S8.decision"


class RandomSource(Protocol):
    """Anything with ``random() -> float in [0, 1)``, e.g. numpy's Generator."""

    def random(self) -> float: ...


def raw_score(candidate: ActionCandidate, goal_energy: Dict[str, float]) -> Tuple[float, Dict[str, float]]:
    """Energy-weighted sum of goal deltas, and its per-goal contributions."""
    total = 0.0
    contribs: Dict[str, float] = {}
    for goal_id, delta in candidate.delta_goals.items():
        term = goal_energy.get(goal_id, 0.0) * delta
        if not math.isfinite(term):
            logger.warning("Skipping non-finite term for %s on goal %s", candidate.id, goal_id)
            continue
        contribs[goal_id] = term
        total += term
    return total, contribs


def canonical_q(raw_q: float, cost: float, confidence: float, model: ScoringModel, penalty_factor: float) -> float:
    net = raw_q - cost
    if model == ScoringModel.MULTIPLICATIVE:
        return net * confidence
    return net - (1.0 - confidence) * max(net, 0.0) * penalty_factor


def score_candidate(candidate: ActionCandidate, goal_energy: Dict[str, float], options: DecisionOptions) -> ScoredAction:
    raw_q, contribs = raw_score(candidate, goal_energy)
    cost = candidate.cost
    if not math.isfinite(cost):
        logger.warning("Ignoring non-finite cost on %s", candidate.id)
        cost = 0.0
    q = canonical_q(raw_q, cost, candidate.confidence, options.scoring_model, options.penalty_factor)
    return ScoredAction(
        candidate=candidate,
        q=q,
        raw_q=raw_q,
        cost=cost,
        confidence=candidate.confidence,
        goal_contribs=contribs,
    )


def _sampling_logits(ranked: List[ScoredAction], overrides: Dict[str, float]) -> List[float]:
    logits = []
    for s in ranked:
        bump = overrides.get(s.candidate.id)
        if bump is not None and not math.isfinite(bump):
            logger.warning("Ignoring non-finite sampling override for %s", s.candidate.id)
            bump = None
        logits.append(s.q + (bump or 0.0))
    return logits


def _softmax(logits: List[float], temperature: float) -> List[float]:
    scaled = [l / temperature for l in logits]
    top = max(scaled)
    weights = [math.exp(v - top) for v in scaled]
    total = sum(weights)
    return [w / total for w in weights]


def _sample(ranked: List[ScoredAction], logits: List[float], temperature: float, rng: RandomSource) -> Tuple[int, List[float]]:
    if temperature <= 0 or not math.isfinite(temperature):
        best = max(range(len(logits)), key=lambda i: (logits[i], -i))
        probs = [1.0 if i == best else 0.0 for i in range(len(logits))]
        return best, probs

    probs = _softmax(logits, temperature)
    r = float(rng.random())
    acc = 0.0
    for i, p in enumerate(probs):
        acc += p
        if r < acc:
            return i, probs
    return len(probs) - 1, probs


def _find_force(overrides: List[OverrideEvent], agent_id: Optional[str]) -> Optional[OverrideEvent]:
    if agent_id is None:
        return None
    for event in overrides:
        if event.type == "force_action" and event.agent_id == agent_id:
            return event
    return None


def _forced_action(event: OverrideEvent, ranked: List[ScoredAction], excluded: List[ScoredAction]) -> ScoredAction:
    for s in ranked + excluded:
        if s.candidate.id == event.action_id:
            return s
    for s in ranked + excluded:
        if s.candidate.kind == event.action_id:
            return s

    kind, _, target = event.action_id.partition(":")
    synthesized = ActionCandidate(
        id=event.action_id,
        kind=kind,
        actor_id=event.agent_id,
        target_id=target or None,
    )
    return ScoredAction(candidate=synthesized, q=0.0, raw_q=0.0, cost=0.0, confidence=1.0)


def _strip_goal_ids(ids: List[str]) -> List[str]:
    out = []
    for i in ids:
        if Namespace.of(i) == Namespace.GOAL or i in out:
            continue
        out.append(i)
    return out


def _action_atom(scored: ScoredAction, kind: str = "action_score", notes: Optional[List[str]] = None) -> ContextAtom:
    c = scored.candidate
    return make_atom(
        Namespace.ACTION,
        c.kind,
        c.actor_id,
        scored.q,
        kind=kind,
        source=SOURCE,
        other_id=c.target_id,
        used_atom_ids=_strip_goal_ids(c.support_atom_ids),
        notes=notes,
        confidence=c.confidence,
        label=c.id,
        parts={
            "raw_q": scored.raw_q,
            "cost": scored.cost,
            "momentum": scored.momentum,
            "goal_contribs": dict(scored.goal_contribs),
        },
    )


def build_action_atoms(
    actor_id: str,
    ranked: List[ScoredAction],
    best: Optional[ScoredAction],
    forced: bool,
    excluded: Optional[List[ScoredAction]] = None,
) -> List[ContextAtom]:
    """
    One atom per candidate, plus the chosen (and forced) markers.

    Candidates dropped by the feasibility filter get an ``action_infeasible``
    atom noted ``infeasible``, so the trace shows what was left out.
    """
    atoms: List[ContextAtom] = []
    by_candidate: Dict[str, ContextAtom] = {}
    entries = [(s, _action_atom(s)) for s in ranked]
    entries += [(s, _action_atom(s, "action_infeasible", ["infeasible"])) for s in excluded or []]
    for scored, atom in entries:
        if any(a.id == atom.id for a in atoms):
            continue
        atoms.append(atom)
        by_candidate[scored.candidate.id] = atom

    if best is None:
        return atoms

    best_atom = by_candidate.get(best.candidate.id)
    if best_atom is None:
        best_atom = _action_atom(best)
        existing = next((a for a in atoms if a.id == best_atom.id), None)
        if existing is not None:
            best_atom = existing
        else:
            atoms.append(best_atom)

    marker_cites = [best_atom.id] + [
        i for i in best_atom.trace.used_atom_ids if Namespace.of(i) == Namespace.UTIL
    ]
    if forced:
        atoms.append(
            make_atom(
                Namespace.ACTION,
                "forced",
                actor_id,
                1.0,
                kind="action_forced",
                source=SOURCE,
                used_atom_ids=marker_cites,
                label=best.candidate.id,
            )
        )
    atoms.append(
        make_atom(
            Namespace.ACTION,
            "chosen",
            actor_id,
            best.q,
            kind="action_chosen",
            source=SOURCE,
            used_atom_ids=marker_cites,
            label=best.candidate.id,
            notes=["forced"] if forced else [],
        )
    )
    return atoms


def decide(
    candidates: List[ActionCandidate],
    goal_energy: Dict[str, float],
    temperature: float,
    rng: RandomSource,
    options: Optional[DecisionOptions] = None,
) -> DecisionSnapshot:
    """Score, filter, rank and sample; see module docstring for the rules."""
    options = options or DecisionOptions()
    notes: List[str] = []

    energy = {}
    for goal_id, e in goal_energy.items():
        if math.isfinite(e):
            energy[goal_id] = e
        else:
            logger.warning("Ignoring non-finite energy for goal %s", goal_id)

    scored = [score_candidate(c, energy, options) for c in candidates]

    pool = scored
    excluded: List[ScoredAction] = []
    filter_bypassed = False
    if options.min_confidence is not None and scored:
        feasible = [s for s in scored if s.confidence >= options.min_confidence]
        if feasible:
            pool = feasible
            excluded = [s for s in scored if s.confidence < options.min_confidence]
            for s in excluded:
                s.feasible = False
                notes.append(f"infeasible:{s.candidate.id}")
        else:
            filter_bypassed = True
            notes.append("feasibility filter bypassed: no candidate meets min_confidence")

    if options.prev_action_id and options.momentum_bonus:
        for s in pool:
            if s.candidate.id == options.prev_action_id:
                s.q += options.momentum_bonus
                s.momentum = options.momentum_bonus

    ranked = sorted(pool, key=lambda s: (-s.q, s.candidate.id))

    best: Optional[ScoredAction] = None
    probabilities: Dict[str, float] = {}
    if ranked:
        logits = _sampling_logits(ranked, options.q_sampling_override)
        idx, probs = _sample(ranked, logits, temperature, rng)
        for s, p in zip(ranked, probs):
            s.probability = p
            probabilities[s.candidate.id] = p
        best = ranked[idx]

    forced = False
    force = _find_force(options.overrides, options.agent_id)
    if force is not None:
        best = _forced_action(force, ranked, excluded)
        forced = True
        notes.append(f"forced:{force.action_id}")
        logger.info("Forced action %s for agent %s", force.action_id, force.agent_id)

    actor_id = options.agent_id or (best.candidate.actor_id if best is not None else None)
    atoms = build_action_atoms(actor_id, ranked, best, forced, excluded) if actor_id else []

    return DecisionSnapshot(
        agent_id=options.agent_id,
        best=best,
        ranked=ranked,
        atoms=atoms,
        probabilities=probabilities,
        forced=forced,
        filter_bypassed=filter_bypassed,
        notes=notes,
    )
