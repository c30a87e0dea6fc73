"""Possibilities, Action Candidates and Decision Snapshots."""

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from cognition_kernel.models.atom import ContextAtom


class Possibility(BaseModel):
    """
    A candidate affordance, gated enabled/disabled by context.

    Disabled possibilities are kept so the decision layer and inspectors can
    explain why something was blocked.
    """

    id: str                                 # e.g. "attack:B", "hide"
    action_id: str                          # e.g. "attack", "hide"
    label: str
    target_id: Optional[str] = None
    plan_tags: List[str] = []
    params: dict = {}
    enabled: bool
    magnitude: Optional[float] = None
    confidence: float = Field(ge=0.0, le=1.0, default=1.0)
    support_atom_ids: List[str] = []        # Gating atoms actually read
    blocked_by: List[str] = []              # Failed gates (atom ids or gate names)
    meta: dict = {}                         # cost, fallback, trace notes


class ActionCandidate(BaseModel):
    """A scored-to-be action: its claimed effect on each goal if chosen."""

    id: str
    kind: str
    actor_id: str
    target_id: Optional[str] = None
    delta_goals: Dict[str, float] = {}
    cost: float = 0.0
    confidence: float = Field(ge=0.0, le=1.0, default=1.0)
    support_atom_ids: List[str] = []


class OverrideEvent(BaseModel):
    """An external control-surface event applied to a single agent."""

    type: Literal["force_action"] = "force_action"
    agent_id: str
    action_id: str


class ScoringModel(str, Enum):
    """How candidate confidence enters the score. Mutually exclusive per call."""

    MULTIPLICATIVE = "multiplicative"
    ADDITIVE_RISK = "additive_risk"


class DecisionOptions(BaseModel):
    """Per-call knobs for the decision engine."""

    agent_id: Optional[str] = None
    scoring_model: ScoringModel = ScoringModel.ADDITIVE_RISK
    penalty_factor: float = 0.4
    min_confidence: Optional[float] = None
    prev_action_id: Optional[str] = None
    momentum_bonus: float = 0.0
    q_sampling_override: Dict[str, float] = {}  # Sampling-only logit perturbation
    overrides: List[OverrideEvent] = []


class ScoredAction(BaseModel):
    """A candidate together with its canonical score breakdown."""

    candidate: ActionCandidate
    q: float                                # Canonical score, reported in ranking
    raw_q: float                            # Sum of goal energy * delta
    cost: float
    confidence: float
    momentum: float = 0.0
    feasible: bool = True
    probability: float = 0.0                # Sampling probability this call
    goal_contribs: Dict[str, float] = {}


class DecisionSnapshot(BaseModel):
    """Output of one decision call."""

    agent_id: Optional[str] = None
    best: Optional[ScoredAction] = None
    ranked: List[ScoredAction] = []
    atoms: List[ContextAtom] = []
    probabilities: Dict[str, float] = {}
    forced: bool = False
    filter_bypassed: bool = False
    notes: List[str] = []
