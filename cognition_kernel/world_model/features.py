"""
Feature Extraction — normalizes raw world records into 0..1 feature sets.

Behavioral Contract:
- Produces one FeatureSet per entity per tick.
- Raw values are clamped to 0..1; non-finite raw values are dropped.
- Missing social.trust and emotion.valence fall back to a neutral 0.5 with a
  ``missing:<atom id>`` note naming the world atom that would have carried it.
"""

import logging
import math
from typing import Dict, Optional

from cognition_kernel.models.features import EntityKind, FeatureSet, FeatureValue
from cognition_kernel.models.world import CharacterRecord, LocationRecord, SceneRecord

logger = logging.getLogger(__name__)

CHARACTER_FIELDS = {
    "body": ("stress", "fatigue", "pain"),
    "emotion": ("anger", "fear", "valence"),
    "social": ("trust",),
    "access": ("weapon",),
    "exposure": ("dark",),
    "psych": ("risk",),
}

LOCATION_FIELDS = (
    "privacy",
    "publicness",
    "crowd",
    "control",
    "norm_pressure",
    "procedural_strictness",
    "hazard",
    "cover",
    "visibility",
    "escape",
    "surveillance",
)

SCENE_FIELDS = (
    "threat",
    "urgency",
    "scarcity",
    "chaos",
    "hostility",
    "resource_access",
    "uncertainty",
)

NEUTRAL_DEFAULTS = {
    "social.trust": 0.5,
    "emotion.valence": 0.5,
}


def feature_atom_key(feature_key: str) -> str:
    """``body.stress`` -> ``body:stress``, the key part of its world atom id."""
    return feature_key.replace(".", ":")


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _normalize(raw: Optional[float], key: str, entity_id: str) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Dropping non-numeric feature %s for %s: %r", key, entity_id, raw)
        return None
    if not math.isfinite(value):
        logger.warning("Dropping non-finite feature %s for %s", key, entity_id)
        return None
    return clamp01(value)


def _collect(entity_id: str, source: str, raw: Dict[str, float], prefix: str, fields) -> Dict[str, FeatureValue]:
    values: Dict[str, FeatureValue] = {}
    for name in fields:
        key = f"{prefix}.{name}"
        value = _normalize(raw.get(name), key, entity_id)
        if value is not None:
            values[key] = FeatureValue(value=value, source=source)
    return values


def extract_character_features(character: CharacterRecord) -> FeatureSet:
    """Body, emotion, social, access, exposure, psych and trait features."""
    values: Dict[str, FeatureValue] = {}
    for group, fields in CHARACTER_FIELDS.items():
        raw = getattr(character, group)
        values.update(_collect(character.id, f"character.{group}", raw, group, fields))

    for trait_id, strength in character.traits.items():
        key = f"trait.{trait_id}"
        value = _normalize(strength, key, character.id)
        if value is not None:
            values[key] = FeatureValue(value=value, source="character.traits")

    for key, default in NEUTRAL_DEFAULTS.items():
        if key not in values:
            missing = f"world:{feature_atom_key(key)}:{character.id}"
            values[key] = FeatureValue(value=default, source="default", notes=[f"missing:{missing}"])

    return FeatureSet(entity_id=character.id, entity_kind=EntityKind.CHARACTER, values=values)


def extract_location_features(location: LocationRecord) -> FeatureSet:
    values = _collect(location.id, "location", location.properties, "loc", LOCATION_FIELDS)
    return FeatureSet(entity_id=location.id, entity_kind=EntityKind.LOCATION, values=values)


def extract_scene_features(scene: SceneRecord) -> FeatureSet:
    values = _collect(scene.id, "scene", scene.metrics, "scene", SCENE_FIELDS)
    return FeatureSet(entity_id=scene.id, entity_kind=EntityKind.SCENE, values=values)
