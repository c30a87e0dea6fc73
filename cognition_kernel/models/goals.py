"""Static goal catalog and trait matrix consumed by the pipeline."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class GoalDef(BaseModel):
    """
    A goal domain definition.

    ``inputs`` maps an input name to its logit weight. Input names are
    ``ctx:final`` axis names (e.g. ``danger``) or driver names prefixed with
    ``drv.`` (e.g. ``drv.safetyNeed``).
    """

    id: str                                 # e.g. "safety", "affiliation"
    value: float = Field(ge=0, default=1.0) # Intrinsic importance
    tags: List[str] = []
    deadline: Optional[int] = None          # Tick by which the goal matters most
    bias: float = 0.0
    inputs: Dict[str, float] = {}


class ModifierEffect(BaseModel):
    """Full-strength effect of a trait on one modifier key."""

    multiplier: float = 1.0
    bonus: float = 0.0


class StaticTables(BaseModel):
    """Read-only tables loaded once per session."""

    goals: List[GoalDef] = []
    trait_matrix: Dict[str, Dict[str, ModifierEffect]] = {}  # trait -> modifier key -> effect

    def goal(self, goal_id: str) -> Optional[GoalDef]:
        for g in self.goals:
            if g.id == goal_id:
                return g
        return None
