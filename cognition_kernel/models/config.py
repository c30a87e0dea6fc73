"""Engine configuration."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cognition_kernel.models.action import ScoringModel


class DecisionConfig(BaseModel):
    """Defaults for the decision engine; per-call options override them."""

    temperature: float = 0.5
    scoring_model: ScoringModel = ScoringModel.ADDITIVE_RISK
    penalty_factor: float = 0.4
    min_confidence: Optional[float] = None
    momentum_bonus: float = 0.1


class GatingConfig(BaseModel):
    """Thresholds for possibility gating."""

    weapon_min: float = 0.5
    closeness_min: float = 0.15
    provocation_min: float = 0.35
    procedural_max: float = 0.6
    taboo_tags: List[str] = ["friend", "lover", "family", "protected"]
    cover_min: float = 0.3
    escape_min: float = 0.3
    observe_uncertainty_min: float = 0.2
    rest_fatigue_min: float = 0.6
    rest_threat_max: float = 0.4
    help_trust_min: float = 0.4
    fatigue_cost_scale: float = 0.5         # cost' = cost * (1 + scale * fatigue)
    base_costs: Dict[str, float] = {
        "hide": 0.05,
        "escape": 0.15,
        "observe": 0.0,
        "rest": 0.02,
        "talk": 0.05,
        "help": 0.1,
        "attack": 0.3,
        "wait": 0.0,
    }


class PipelineConfig(BaseModel):
    """Stage parameters."""

    proximity_radius: float = 5.0
    harm_window_ticks: int = 10
    harm_kinds: List[str] = ["attack", "harm", "insult", "threaten", "betray"]
    smoothing_alpha: Optional[float] = Field(default=None, ge=0, le=1)
    deadline_horizon: int = 10              # Ticks over which deadline pressure ramps up
    deadline_weight: float = 1.0


class MassAggregationConfig(BaseModel):
    """How character signals feed the mass network."""

    stress_weight: float = 0.4
    dark_weight: float = 0.3
    risk_weight: float = 0.3
    base_noise_scale: float = 1.0
    dt: float = 1.0
    hotspot_threshold: float = 0.6


class EngineConfig(BaseModel):
    """Top-level configuration for a session."""

    decision: DecisionConfig = DecisionConfig()
    gating: GatingConfig = GatingConfig()
    pipeline: PipelineConfig = PipelineConfig()
    mass: MassAggregationConfig = MassAggregationConfig()
