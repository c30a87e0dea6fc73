"""
Static tables and engine configuration — YAML loaders and built-in defaults.

Both files are read once per session. A missing file yields the defaults; a
malformed file raises (yaml.YAMLError or pydantic.ValidationError).
"""

import logging
from pathlib import Path
from typing import Union

import yaml

from cognition_kernel.models.config import EngineConfig
from cognition_kernel.models.goals import GoalDef, ModifierEffect, StaticTables

logger = logging.getLogger(__name__)


def _read_yaml(path: Union[str, Path]) -> dict:
    payload = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return payload or {}


def load_engine_config(path: Union[str, Path] = "config/engine.yaml") -> EngineConfig:
    cfg_path = Path(path)
    if not cfg_path.exists():
        logger.info("No engine config at %s; using defaults", cfg_path)
        return EngineConfig()
    return EngineConfig.model_validate(_read_yaml(cfg_path))


def load_static_tables(path: Union[str, Path]) -> StaticTables:
    """Goal catalog and trait matrix; a missing file yields the built-ins."""
    tables_path = Path(path)
    if not tables_path.exists():
        logger.info("No static tables at %s; using defaults", tables_path)
        return default_static_tables()
    return StaticTables.model_validate(_read_yaml(tables_path))


def default_static_tables() -> StaticTables:
    goals = [
        GoalDef(id="safety", value=1.0, tags=["survival"], bias=-1.0,
                inputs={"danger": 1.5, "drv.safetyNeed": 2.0, "fear": 0.5}),
        GoalDef(id="affiliation", value=0.8, tags=["social"], bias=-1.0,
                inputs={"drv.affiliationNeed": 1.5, "socialTrust": 0.8}),
        GoalDef(id="rest", value=0.7, tags=["wellbeing"], bias=-1.5,
                inputs={"drv.restNeed": 2.5}),
        GoalDef(id="control", value=0.7, tags=["autonomy"], bias=-1.0,
                inputs={"drv.controlNeed": 1.5, "anger": 0.8}),
        GoalDef(id="resource", value=0.6, tags=["wealth"], bias=-1.0,
                inputs={"drv.resourceNeed": 2.0}),
        GoalDef(id="exploration", value=0.5, tags=["curiosity"], bias=-0.5,
                inputs={"uncertainty": 1.0, "danger": -1.0}),
    ]
    trait_matrix = {
        "brave": {
            "Input:danger": ModifierEffect(multiplier=0.7),
            "Goal:safety": ModifierEffect(bonus=-0.4),
            "Goal:exploration": ModifierEffect(bonus=0.3),
        },
        "anxious": {
            "Input:danger": ModifierEffect(multiplier=1.3),
            "Input:fear": ModifierEffect(bonus=0.1),
            "Goal:safety": ModifierEffect(bonus=0.5),
        },
        "sociable": {
            "Goal:affiliation": ModifierEffect(multiplier=1.3, bonus=0.2),
        },
        "aggressive": {
            "Input:anger": ModifierEffect(multiplier=1.4),
            "Goal:control": ModifierEffect(bonus=0.4),
        },
        "stoic": {
            "Input:*": ModifierEffect(multiplier=0.9),
        },
    }
    return StaticTables(goals=goals, trait_matrix=trait_matrix)
