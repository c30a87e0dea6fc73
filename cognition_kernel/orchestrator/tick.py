"""
Tick Orchestrator — runs every agent, then steps the mass network.

Per tick:
  snapshot -> (per agent, independent stream) pipeline S0..S8 -> carry-over
           -> mass aggregation -> mass step (own stream)

Agents are independent within a tick: each reads the same immutable snapshot
and nothing one agent decides is visible to another until the next tick.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
from pydantic import BaseModel

from cognition_kernel.mass.aggregate import aggregate_inputs, assignment_from_world, signals_from_world
from cognition_kernel.mass.network import build_default_network, step_network, summarize_network
from cognition_kernel.models.action import OverrideEvent
from cognition_kernel.models.mass import MassNetwork, MassNetworkSummary
from cognition_kernel.models.pipeline import PipelineResult
from cognition_kernel.models.world import WorldSnapshot
from cognition_kernel.pipeline.runner import ContextPipeline
from cognition_kernel.rng.streams import derive_rng
from cognition_kernel.world_model.mods import ModsStore

logger = logging.getLogger(__name__)

AGENT_STREAM = "agent"
MASS_STREAM = "mass"


def agent_rng(seed: int, tick: int, agent_id: str) -> np.random.Generator:
    return derive_rng(seed, tick, AGENT_STREAM, agent_id)


def mass_rng(seed: int, tick: int) -> np.random.Generator:
    return derive_rng(seed, tick, MASS_STREAM)


class AgentCarryOver(BaseModel):
    """What an agent remembers from its previous tick."""

    agent_id: str
    last_tick: int
    prev_action_id: Optional[str] = None
    prev_final_axes: Dict[str, float] = {}


class TickResult(BaseModel):
    tick: int
    seed: int
    results: Dict[str, PipelineResult] = {}
    chosen: Dict[str, Optional[str]] = {}
    mass: Optional[MassNetworkSummary] = None


class TickOrchestrator:
    """Owns the pipeline, the mods handle, the mass network, and carry-over."""

    def __init__(
        self,
        pipeline: Optional[ContextPipeline] = None,
        mods: Optional[ModsStore] = None,
        network: Optional[MassNetwork] = None,
        assignment: Optional[Dict[str, str]] = None,
    ):
        self.pipeline = pipeline or ContextPipeline()
        self.mods = mods if mods is not None else ModsStore()
        self.network = network if network is not None else build_default_network()
        self.assignment = assignment
        self._carry: Dict[str, AgentCarryOver] = {}

    def carry_over(self, agent_id: str) -> Optional[AgentCarryOver]:
        return self._carry.get(agent_id)

    def reset_agent(self, agent_id: str) -> None:
        self._carry.pop(agent_id, None)

    def run_agent(
        self,
        world: WorldSnapshot,
        agent_id: str,
        seed: int,
        overrides: Optional[List[OverrideEvent]] = None,
        q_sampling_override: Optional[Dict[str, float]] = None,
        temperature: Optional[float] = None,
    ) -> PipelineResult:
        """Run one agent without touching carry-over or the mass network."""
        carry = self._carry.get(agent_id)
        return self.pipeline.run(
            world,
            agent_id,
            agent_rng(seed, world.tick, agent_id),
            self.mods,
            prev_action_id=carry.prev_action_id if carry else None,
            prev_final_axes=carry.prev_final_axes if carry else None,
            overrides=overrides,
            q_sampling_override=q_sampling_override,
            temperature=temperature,
        )

    def run_tick(
        self,
        world: WorldSnapshot,
        seed: int,
        overrides: Optional[List[OverrideEvent]] = None,
    ) -> TickResult:
        result = TickResult(tick=world.tick, seed=seed)

        for agent_id in sorted(world.agents):
            run = self.run_agent(world, agent_id, seed, overrides=overrides)
            result.results[agent_id] = run
            best = run.decision.best if run.decision else None
            chosen = best.candidate.id if best is not None else None
            result.chosen[agent_id] = chosen
            self._carry[agent_id] = AgentCarryOver(
                agent_id=agent_id,
                last_tick=world.tick,
                prev_action_id=chosen,
                prev_final_axes=dict(run.final_axes),
            )

        mass_cfg = self.pipeline.config.mass
        assignment = self.assignment if self.assignment is not None else assignment_from_world(world, self.network)
        inputs = aggregate_inputs(signals_from_world(world, self.mods), assignment, self.network, mass_cfg)
        self.network = step_network(self.network, inputs, mass_rng(seed, world.tick), mass_cfg)
        result.mass = summarize_network(self.network, mass_cfg.hotspot_threshold)

        logger.info(
            "Tick %d: %d agents, mass mean %.3f, hotspots %s",
            world.tick, len(result.results), result.mass.mean_x, result.mass.hotspots,
        )
        return result
