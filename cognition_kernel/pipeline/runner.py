"""
Context Pipeline — runs S0..S8 for one agent against one world snapshot.

Behavioral Contract:
- Reads an immutable WorldSnapshot and a ModsStore; mutates neither.
- Every stage's output is committed through the AtomLedger, which enforces
  the namespace ladder.
- S8 derives gated possibilities, projects them to candidates through util:*
  atoms only, and decides with the injected random source.
"""

import logging
from typing import Dict, List, Optional

from cognition_kernel.atoms.ledger import AtomLedger
from cognition_kernel.decision.engine import RandomSource, decide
from cognition_kernel.errors import UnknownEntityError
from cognition_kernel.models.action import DecisionOptions, OverrideEvent
from cognition_kernel.models.config import EngineConfig
from cognition_kernel.models.goals import StaticTables
from cognition_kernel.models.pipeline import STAGE_CONTRACTS, PipelineResult, StageFrame, StageId
from cognition_kernel.models.world import WorldSnapshot
from cognition_kernel.pipeline.stages import (
    Stage,
    StageInputs,
    s0_world_facts,
    s1_observation,
    s2_context_axes,
    s3_final_axes,
    s4_threat,
    s5_drivers,
    s6_goals,
    s7_utility,
)
from cognition_kernel.possibilities.candidates import build_action_candidates
from cognition_kernel.possibilities.registry import GatingContext, PossibilityDef, derive_possibilities
from cognition_kernel.world_model.features import (
    extract_character_features,
    extract_location_features,
    extract_scene_features,
)
from cognition_kernel.world_model.mods import ModsStore, apply_mods

logger = logging.getLogger(__name__)

STAGES: List[tuple] = [
    (StageId.S0, s0_world_facts),
    (StageId.S1, s1_observation),
    (StageId.S2, s2_context_axes),
    (StageId.S3, s3_final_axes),
    (StageId.S4, s4_threat),
    (StageId.S5, s5_drivers),
    (StageId.S6, s6_goals),
    (StageId.S7, s7_utility),
]


class ContextPipeline:
    """Staged context pipeline for a session's config and static tables."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        tables: Optional[StaticTables] = None,
        possibility_defs: Optional[Dict[str, PossibilityDef]] = None,
    ):
        self.config = config or EngineConfig()
        self.tables = tables or StaticTables()
        self.possibility_defs = possibility_defs

    def build_inputs(
        self,
        world: WorldSnapshot,
        agent_id: str,
        mods: ModsStore,
        prev_final_axes: Optional[Dict[str, float]] = None,
    ) -> StageInputs:
        agent = world.agents.get(agent_id)
        if agent is None:
            raise UnknownEntityError(f"agent {agent_id!r} not in world")

        self_features = apply_mods(extract_character_features(agent), mods.get(agent.id))
        location = world.location_of(agent_id)
        location_features = None
        if location is not None:
            location_features = apply_mods(extract_location_features(location), mods.get(location.id))
        scene_features = None
        if world.scene is not None:
            scene_features = apply_mods(extract_scene_features(world.scene), mods.get(world.scene.id))

        return StageInputs(
            world=world,
            self_features=self_features,
            location_features=location_features,
            scene_features=scene_features,
            config=self.config.pipeline,
            tables=self.tables,
            prev_final_axes=prev_final_axes,
        )

    def run(
        self,
        world: WorldSnapshot,
        agent_id: str,
        rng: RandomSource,
        mods: Optional[ModsStore] = None,
        *,
        prev_action_id: Optional[str] = None,
        prev_final_axes: Optional[Dict[str, float]] = None,
        overrides: Optional[List[OverrideEvent]] = None,
        q_sampling_override: Optional[Dict[str, float]] = None,
        temperature: Optional[float] = None,
    ) -> PipelineResult:
        inputs = self.build_inputs(world, agent_id, mods or ModsStore(), prev_final_axes)
        ledger = AtomLedger()
        frames: List[StageFrame] = []

        for stage_id, stage in STAGES:
            frames.append(self._run_stage(stage_id, stage, ledger, agent_id, inputs))

        frames[0].warnings.extend(
            note
            for fv in inputs.self_features.values.values()
            for note in fv.notes
            if note.startswith("missing:")
        )

        gating = GatingContext(ledger, agent_id, self.config.gating)
        possibilities = derive_possibilities(gating, self.possibility_defs)
        candidates, goal_energy = build_action_candidates(possibilities, ledger, agent_id)

        dcfg = self.config.decision
        options = DecisionOptions(
            agent_id=agent_id,
            scoring_model=dcfg.scoring_model,
            penalty_factor=dcfg.penalty_factor,
            min_confidence=dcfg.min_confidence,
            prev_action_id=prev_action_id,
            momentum_bonus=dcfg.momentum_bonus if prev_action_id else 0.0,
            q_sampling_override=q_sampling_override or {},
            overrides=overrides or [],
        )
        decision = decide(
            candidates,
            goal_energy,
            dcfg.temperature if temperature is None else temperature,
            rng,
            options,
        )
        ledger.commit(StageId.S8, decision.atoms)

        s8_warnings = [f"fallback:{p.id}" for p in possibilities if p.meta.get("fallback")]
        s8_warnings += [n for n in decision.notes if n.startswith("feasibility")]
        frames.append(
            StageFrame(
                stage=StageId.S8,
                title=STAGE_CONTRACTS[StageId.S8].title,
                atoms=decision.atoms,
                warnings=s8_warnings,
            )
        )

        final_axes = {
            a.id[len("ctx:final:"):-len(f":{agent_id}")]: a.magnitude
            for a in ledger.emitted_by(StageId.S3)
        }
        logger.debug(
            "Pipeline for %s at tick %d: %d atoms, %d candidates",
            agent_id, world.tick, len(ledger), len(candidates),
        )
        return PipelineResult(
            agent_id=agent_id,
            tick=world.tick,
            stages=frames,
            atoms=ledger.atoms(),
            possibilities=possibilities,
            candidates=candidates,
            goal_energy=goal_energy,
            final_axes=final_axes,
            decision=decision,
        )

    def _run_stage(self, stage_id: StageId, stage: Stage, ledger: AtomLedger, agent_id: str, inputs: StageInputs) -> StageFrame:
        atoms = ledger.commit(stage_id, stage(ledger, agent_id, inputs))
        return StageFrame(stage=stage_id, title=STAGE_CONTRACTS[stage_id].title, atoms=atoms)
