"""
Possibility Registry — derives gated affordances from the atom ledger.

Behavioral Contract:
- Each definition is a pure function of a GatingContext.
- Disabled possibilities are kept, each failed gate listed in blocked_by.
- Attack is AND-gated: weapon access, closeness, no hard relation taboo,
  enough provocation, and low procedural strictness must all hold.
- If nothing is enabled a single fallback ``wait`` is appended, so the agent
  is never left without an option.
"""

import logging
from typing import Callable, Dict, List, Optional

from cognition_kernel.atoms.ledger import AtomLedger
from cognition_kernel.models.action import Possibility
from cognition_kernel.models.atom import ContextAtom
from cognition_kernel.models.config import GatingConfig

logger = logging.getLogger(__name__)


class GatingContext:
    """Atom lookup scoped to one agent, plus gating thresholds."""

    def __init__(self, ledger: AtomLedger, agent_id: str, config: Optional[GatingConfig] = None):
        self.ledger = ledger
        self.agent_id = agent_id
        self.config = config or GatingConfig()

    def self_id(self, prefix: str) -> str:
        return f"{prefix}:{self.agent_id}"

    def dyad_id(self, prefix: str, other_id: str) -> str:
        return f"{prefix}:{self.agent_id}:{other_id}"

    def value(self, atom_id: str) -> Optional[float]:
        return self.ledger.magnitude(atom_id)

    def nearby(self) -> List[ContextAtom]:
        return self.ledger.by_prefix(f"world:obs:nearby:{self.agent_id}:")

    def cost(self, kind: str) -> float:
        base = self.config.base_costs.get(kind, 0.0)
        fatigue = self.value(self.self_id("ctx:final:fatigue")) or 0.0
        return base * (1.0 + self.config.fatigue_cost_scale * fatigue)


PossibilityDef = Callable[[GatingContext], List[Possibility]]


def _make(ctx: GatingContext, action_id: str, label: str, enabled: bool, *,
          target_id: Optional[str] = None, magnitude: float = 0.0, confidence: float = 1.0,
          support: Optional[List[str]] = None, blocked_by: Optional[List[str]] = None,
          plan_tags: Optional[List[str]] = None, meta: Optional[dict] = None) -> Possibility:
    pid = f"{action_id}:{target_id}" if target_id else action_id
    return Possibility(
        id=pid,
        action_id=action_id,
        label=label,
        target_id=target_id,
        plan_tags=plan_tags or [],
        enabled=enabled,
        magnitude=magnitude,
        confidence=max(0.0, min(1.0, confidence)),
        support_atom_ids=support or [],
        blocked_by=blocked_by or [],
        meta={"cost": ctx.cost(action_id), **(meta or {})},
    )


def _threshold_gate(ctx: GatingContext, atom_id: str, gate: str, passes: Callable[[float], bool],
                    support: List[str], blocked: List[str], absent_passes: bool = False) -> Optional[float]:
    """Check one gate, recording support and failures. Returns the value read."""
    value = ctx.value(atom_id)
    if value is None:
        if not absent_passes:
            blocked.append(f"gate:{gate}")
        return None
    support.append(atom_id)
    if not passes(value):
        blocked.append(atom_id)
    return value


def hide_possibility(ctx: GatingContext) -> List[Possibility]:
    support: List[str] = []
    blocked: List[str] = []
    cover = _threshold_gate(ctx, ctx.self_id("ctx:final:cover"), "cover",
                            lambda v: v >= ctx.config.cover_min, support, blocked)
    return [_make(ctx, "hide", "Hide", not blocked, magnitude=cover or 0.0,
                  support=support, blocked_by=blocked, plan_tags=["defensive"])]


def escape_possibility(ctx: GatingContext) -> List[Possibility]:
    support: List[str] = []
    blocked: List[str] = []
    escape = _threshold_gate(ctx, ctx.self_id("ctx:final:escape"), "escape",
                             lambda v: v >= ctx.config.escape_min, support, blocked)
    uncertainty_id = ctx.self_id("ctx:final:uncertainty")
    uncertainty = ctx.value(uncertainty_id)
    confidence = 1.0
    if uncertainty is not None:
        confidence = 1.0 - 0.5 * uncertainty
        support.append(uncertainty_id)
    return [_make(ctx, "escape", "Escape", not blocked, magnitude=escape or 0.0,
                  confidence=confidence, support=support, blocked_by=blocked, plan_tags=["defensive"])]


def observe_possibility(ctx: GatingContext) -> List[Possibility]:
    support: List[str] = []
    uncertainty_id = ctx.self_id("ctx:final:uncertainty")
    uncertainty = ctx.value(uncertainty_id)
    if uncertainty is not None:
        support.append(uncertainty_id)
    nearby = [a.id for a in ctx.nearby()]
    support += nearby
    enabled = bool(nearby) or (
        uncertainty is not None and uncertainty >= ctx.config.observe_uncertainty_min
    )
    blocked = [] if enabled else ["gate:nothing_to_observe"]
    return [_make(ctx, "observe", "Observe", enabled, magnitude=uncertainty or 0.0,
                  support=support, blocked_by=blocked, plan_tags=["information"])]


def rest_possibility(ctx: GatingContext) -> List[Possibility]:
    cfg = ctx.config
    support: List[str] = []
    blocked: List[str] = []
    fatigue = _threshold_gate(ctx, ctx.self_id("ctx:final:fatigue"), "fatigue",
                              lambda v: v >= cfg.rest_fatigue_min, support, blocked)
    _threshold_gate(ctx, ctx.self_id("threat:final"), "threat",
                    lambda v: v <= cfg.rest_threat_max, support, blocked, absent_passes=True)
    return [_make(ctx, "rest", "Rest", not blocked, magnitude=fatigue or 0.0,
                  support=support, blocked_by=blocked, plan_tags=["recovery"])]


def _attack(ctx: GatingContext, other_id: str, nearby: ContextAtom) -> Possibility:
    cfg = ctx.config
    support = [nearby.id]
    blocked: List[str] = []

    _threshold_gate(ctx, ctx.self_id("world:access:weapon"), "weapon",
                    lambda v: v > cfg.weapon_min, support, blocked)

    if not nearby.magnitude > cfg.closeness_min:
        blocked.append(nearby.id)

    for tag in cfg.taboo_tags:
        tag_id = ctx.dyad_id(f"world:rel:tag:{tag}", other_id)
        if ctx.value(tag_id) is not None:
            support.append(tag_id)
            blocked.append(tag_id)

    provocation_ids = [
        ctx.self_id("threat:final"),
        ctx.self_id("ctx:final:anger"),
        ctx.dyad_id("world:harm:recent", other_id),
    ]
    provocation = 0.0
    for aid in provocation_ids:
        v = ctx.value(aid)
        if v is not None:
            support.append(aid)
            provocation = max(provocation, v)
    if provocation < cfg.provocation_min:
        blocked.append("gate:provocation")

    _threshold_gate(ctx, ctx.self_id("ctx:final:proceduralStrict"), "procedural",
                    lambda v: v < cfg.procedural_max, support, blocked, absent_passes=True)

    weapon = ctx.value(ctx.self_id("world:access:weapon")) or 0.0
    return _make(ctx, "attack", f"Attack {other_id}", not blocked, target_id=other_id,
                 magnitude=provocation, confidence=weapon, support=support, blocked_by=blocked,
                 plan_tags=["aggressive"], meta={"provocation": provocation})


def social_possibilities(ctx: GatingContext) -> List[Possibility]:
    """talk / help / attack for every nearby agent."""
    cfg = ctx.config
    out: List[Possibility] = []
    for nearby in ctx.nearby():
        other_id = nearby.target_id
        close = nearby.magnitude > cfg.closeness_min
        blocked = [] if close else [nearby.id]
        out.append(_make(ctx, "talk", f"Talk to {other_id}", close, target_id=other_id,
                         magnitude=nearby.magnitude, support=[nearby.id], blocked_by=blocked,
                         plan_tags=["social"]))

        trust_id = ctx.dyad_id("world:rel:trust", other_id)
        if ctx.value(trust_id) is None:
            trust_id = ctx.self_id("ctx:final:socialTrust")
        help_support = [nearby.id]
        help_blocked = list(blocked)
        trust = _threshold_gate(ctx, trust_id, "trust", lambda v: v >= cfg.help_trust_min,
                                help_support, help_blocked)
        out.append(_make(ctx, "help", f"Help {other_id}", not help_blocked, target_id=other_id,
                         magnitude=trust or 0.0, support=help_support, blocked_by=help_blocked,
                         plan_tags=["social", "prosocial"]))

        out.append(_attack(ctx, other_id, nearby))
    return out


POSSIBILITY_DEFS: Dict[str, PossibilityDef] = {
    "hide": hide_possibility,
    "escape": escape_possibility,
    "observe": observe_possibility,
    "rest": rest_possibility,
    "social": social_possibilities,
}


def fallback_wait(ctx: GatingContext) -> Possibility:
    return _make(ctx, "wait", "Wait", True, magnitude=0.1,
                 meta={"fallback": True, "notes": ["no enabled possibility; fallback wait"]})


def derive_possibilities(ctx: GatingContext, defs: Optional[Dict[str, PossibilityDef]] = None) -> List[Possibility]:
    """Run every definition, then guarantee at least one enabled option."""
    registry = defs if defs is not None else POSSIBILITY_DEFS
    possibilities: List[Possibility] = []
    for builder in registry.values():
        possibilities.extend(builder(ctx))

    if not any(p.enabled for p in possibilities):
        logger.warning("No enabled possibility for %s; adding fallback wait", ctx.agent_id)
        possibilities.append(fallback_wait(ctx))
    return possibilities
