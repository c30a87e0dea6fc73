"""
Mods Layer — editor-owned adjustments layered over extracted features.

The store is explicit and owned by the session; nothing is reset implicitly.
Application is a pure fold: overrides, then additive deltas, then
multiplicative scalars, clamped to 0..1.
"""

import logging
import math
from typing import Dict, List

from cognition_kernel.models.features import EntityMods, FeatureSet, FeatureValue
from cognition_kernel.world_model.features import clamp01

logger = logging.getLogger(__name__)


class ModsStore:
    """Per-entity mods, keyed by entity id."""

    def __init__(self):
        self._mods: Dict[str, EntityMods] = {}

    def get(self, entity_id: str) -> EntityMods:
        """Read-only lookup; unknown entities get an empty, unstored record."""
        mods = self._mods.get(entity_id)
        return mods if mods is not None else EntityMods(entity_id=entity_id)

    def get_or_create(self, entity_id: str) -> EntityMods:
        mods = self._mods.get(entity_id)
        if mods is None:
            mods = EntityMods(entity_id=entity_id)
            self._mods[entity_id] = mods
        return mods

    def set_override(self, entity_id: str, key: str, value: float) -> None:
        self.get_or_create(entity_id).overrides[key] = value

    def add_delta(self, entity_id: str, key: str, delta: float) -> None:
        """Deltas accumulate across calls."""
        mods = self.get_or_create(entity_id)
        mods.deltas[key] = mods.deltas.get(key, 0.0) + delta

    def set_scale(self, entity_id: str, key: str, scale: float) -> None:
        self.get_or_create(entity_id).scales[key] = scale

    def clear(self, entity_id: str) -> bool:
        """Drop all mods for an entity."""
        if entity_id in self._mods:
            del self._mods[entity_id]
            return True
        return False

    def entity_ids(self) -> List[str]:
        return sorted(self._mods)

    def snapshot(self) -> dict:
        return {eid: m.model_dump(mode="json") for eid, m in sorted(self._mods.items())}


def _finite(kind: str, key: str, value: float, entity_id: str) -> bool:
    if isinstance(value, (int, float)) and math.isfinite(value):
        return True
    logger.warning("Ignoring non-finite %s mod for %s on %s", kind, key, entity_id)
    return False


def apply_mods(features: FeatureSet, mods: EntityMods) -> FeatureSet:
    """Return a new FeatureSet with ``mods`` folded in. Inputs are untouched."""
    if mods.is_empty():
        return features

    values = {k: fv.model_copy(deep=True) for k, fv in features.values.items()}
    eid = features.entity_id

    for key, value in mods.overrides.items():
        if not _finite("override", key, value, eid):
            _note(values, key, "mod:ignored:override")
            continue
        notes = values[key].notes if key in values else []
        values[key] = FeatureValue(
            value=clamp01(value), source="mods.override", notes=notes + ["mod:override"]
        )

    for key, delta in mods.deltas.items():
        if key not in values:
            continue
        if not _finite("delta", key, delta, eid):
            _note(values, key, "mod:ignored:delta")
            continue
        fv = values[key]
        values[key] = FeatureValue(
            value=clamp01(fv.value + delta), source=fv.source, notes=fv.notes + [f"mod:delta:{delta:+g}"]
        )

    for key, scale in mods.scales.items():
        if key not in values:
            continue
        if not _finite("scale", key, scale, eid):
            _note(values, key, "mod:ignored:scale")
            continue
        fv = values[key]
        values[key] = FeatureValue(
            value=clamp01(fv.value * scale), source=fv.source, notes=fv.notes + [f"mod:scale:x{scale:g}"]
        )

    return FeatureSet(entity_id=eid, entity_kind=features.entity_kind, values=values)


def _note(values: Dict[str, FeatureValue], key: str, note: str) -> None:
    if key in values:
        fv = values[key]
        values[key] = FeatureValue(value=fv.value, source=fv.source, notes=fv.notes + [note])
