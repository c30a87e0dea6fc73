"""Feature Set and Mods — normalized per-entity features with provenance."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
    CHARACTER = "character"
    LOCATION = "location"
    SCENE = "scene"


class FeatureValue(BaseModel):
    """A single normalized feature and where it came from."""

    value: float = Field(ge=0.0, le=1.0)
    source: str                             # e.g. "character.body", "default"
    notes: List[str] = []


class FeatureSet(BaseModel):
    """Dotted feature key -> 0..1 value, for one entity, for one tick."""

    entity_id: str
    entity_kind: EntityKind
    values: Dict[str, FeatureValue] = {}

    def get(self, key: str) -> Optional[float]:
        fv = self.values.get(key)
        return fv.value if fv is not None else None


class EntityMods(BaseModel):
    """
    Editor-owned adjustments for one entity.

    Applied in a fixed order: overrides, then additive deltas, then
    multiplicative scalars.
    """

    entity_id: str
    overrides: Dict[str, float] = {}
    deltas: Dict[str, float] = {}
    scales: Dict[str, float] = {}

    def is_empty(self) -> bool:
        return not (self.overrides or self.deltas or self.scales)
