"""Cognition kernel data models."""

from cognition_kernel.models.action import (
    ActionCandidate,
    DecisionOptions,
    DecisionSnapshot,
    OverrideEvent,
    Possibility,
    ScoredAction,
    ScoringModel,
)
from cognition_kernel.models.atom import AtomTrace, ContextAtom, Namespace, atom_id, make_atom
from cognition_kernel.models.config import (
    DecisionConfig,
    EngineConfig,
    GatingConfig,
    MassAggregationConfig,
    PipelineConfig,
)
from cognition_kernel.models.features import EntityKind, EntityMods, FeatureSet, FeatureValue
from cognition_kernel.models.goals import GoalDef, ModifierEffect, StaticTables
from cognition_kernel.models.mass import (
    CharacterMassSignal,
    MassNetwork,
    MassNetworkSummary,
    MassNode,
    MassNodeParams,
    NodeInput,
)
from cognition_kernel.models.pipeline import (
    STAGE_CONTRACTS,
    PipelineResult,
    StageContract,
    StageFrame,
    StageId,
)
from cognition_kernel.models.world import (
    CharacterRecord,
    LocationRecord,
    Relation,
    SceneRecord,
    WorldEvent,
    WorldSnapshot,
)

__all__ = [
    "ActionCandidate",
    "AtomTrace",
    "CharacterMassSignal",
    "CharacterRecord",
    "ContextAtom",
    "DecisionConfig",
    "DecisionOptions",
    "DecisionSnapshot",
    "EngineConfig",
    "EntityKind",
    "EntityMods",
    "FeatureSet",
    "FeatureValue",
    "GatingConfig",
    "GoalDef",
    "LocationRecord",
    "MassAggregationConfig",
    "MassNetwork",
    "MassNetworkSummary",
    "MassNode",
    "MassNodeParams",
    "ModifierEffect",
    "Namespace",
    "NodeInput",
    "OverrideEvent",
    "PipelineConfig",
    "PipelineResult",
    "Possibility",
    "Relation",
    "STAGE_CONTRACTS",
    "ScoredAction",
    "ScoringModel",
    "SceneRecord",
    "StageContract",
    "StageFrame",
    "StageId",
    "StaticTables",
    "WorldEvent",
    "WorldSnapshot",
    "atom_id",
    "make_atom",
]
