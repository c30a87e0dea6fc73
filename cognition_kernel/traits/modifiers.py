"""
Trait Modifiers — character traits bending goal logits and input axes.

A trait matrix row maps modifier keys (``Goal:<goalId>``, ``Input:<axis>``)
to a full-strength effect. Callers pass an explicit, ordered list of keys to
try; per trait the first key present in its row applies, exactly once.
Effects are interpolated by trait strength:

    multiplier' = 1 + (multiplier - 1) * strength
    bonus'      = bonus * strength

Multipliers compose by product, bonuses by sum.
"""

import logging
import math
from typing import Dict, List

from pydantic import BaseModel

from cognition_kernel.models.goals import ModifierEffect

logger = logging.getLogger(__name__)

TraitMatrix = Dict[str, Dict[str, ModifierEffect]]


class ModifierBreakdownEntry(BaseModel):
    trait_id: str
    key: str
    strength: float
    multiplier: float                       # Interpolated
    bonus: float                            # Interpolated


class ModifierResolution(BaseModel):
    """Combined effect of every applicable trait on one modifier target."""

    multiplier: float = 1.0
    bonus: float = 0.0
    breakdown: List[ModifierBreakdownEntry] = []
    unmatched: List[str] = []               # Traits with no matching key

    def apply(self, value: float) -> float:
        return value * self.multiplier + self.bonus

    def is_identity(self) -> bool:
        return not self.breakdown


def goal_keys(goal_id: str) -> List[str]:
    return [f"Goal:{goal_id}", "Goal:*"]


def input_keys(axis: str) -> List[str]:
    return [f"Input:{axis}", "Input:*"]


def resolve_modifiers(keys: List[str], traits: Dict[str, float], matrix: TraitMatrix) -> ModifierResolution:
    """Resolve the combined modifier for ``keys`` over a character's traits."""
    resolution = ModifierResolution()

    for trait_id in sorted(traits):
        strength = traits[trait_id]
        if not math.isfinite(strength):
            logger.warning("Ignoring non-finite strength for trait %s", trait_id)
            continue
        strength = max(0.0, min(1.0, strength))

        row = matrix.get(trait_id)
        matched = None
        if row:
            for key in keys:
                if key in row:
                    matched = key
                    break
        if matched is None:
            resolution.unmatched.append(trait_id)
            continue

        effect = row[matched]
        multiplier = 1.0 + (effect.multiplier - 1.0) * strength
        bonus = effect.bonus * strength
        resolution.multiplier *= multiplier
        resolution.bonus += bonus
        resolution.breakdown.append(
            ModifierBreakdownEntry(
                trait_id=trait_id,
                key=matched,
                strength=strength,
                multiplier=multiplier,
                bonus=bonus,
            )
        )

    return resolution
