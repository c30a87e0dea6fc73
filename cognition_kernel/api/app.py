"""
Cognition Kernel API — FastAPI sandbox over the engine.

Exposes the engine's control surface via a REST API for:
- World ingest (agents, locations, scene, events)
- Mods editing
- Single-agent pipeline runs with override events
- Full ticks
- Mass network inspection
"""

from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from cognition_kernel.errors import UnknownEntityError
from cognition_kernel.mass.network import summarize_network
from cognition_kernel.models.action import OverrideEvent
from cognition_kernel.models.config import EngineConfig
from cognition_kernel.models.world import CharacterRecord, LocationRecord, SceneRecord, WorldEvent
from cognition_kernel.orchestrator.tick import TickOrchestrator
from cognition_kernel.pipeline.runner import ContextPipeline
from cognition_kernel.tables.loader import default_static_tables
from cognition_kernel.world_model.store import WorldStore


# --- Request/Response Models ---

class ModEditRequest(BaseModel):
    op: Literal["override", "delta", "scale"]
    key: str                                # Dotted feature key, e.g. "body.stress"
    value: float


class PipelineRunRequest(BaseModel):
    seed: int = 0
    overrides: List[OverrideEvent] = []
    q_sampling_override: Dict[str, float] = {}
    temperature: Optional[float] = None


class TickRequest(BaseModel):
    seed: int = 0
    overrides: List[OverrideEvent] = []
    advance: bool = True                    # Advance the world tick afterwards


# --- Application Factory ---

def create_app(
    world_store: Optional[WorldStore] = None,
    orchestrator: Optional[TickOrchestrator] = None,
    config: Optional[EngineConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Cognition Kernel API",
        description="Agent cognition and decision engine sandbox",
        version="0.1.0",
    )

    ws = world_store or WorldStore()
    engine_config = config or EngineConfig()
    orch = orchestrator or TickOrchestrator(
        pipeline=ContextPipeline(engine_config, default_static_tables())
    )

    app.state.world_store = ws
    app.state.orchestrator = orch

    # === WORLD ===

    @app.get("/world/state")
    def get_world_state():
        return ws.snapshot().model_dump(mode="json")

    @app.post("/world/agents")
    def upsert_agent(agent: CharacterRecord):
        ws.upsert_agent(agent)
        return {"status": "ingested", "agent_id": agent.id}

    @app.get("/world/agents/{agent_id}")
    def get_agent(agent_id: str):
        agent = ws.get_agent(agent_id)
        if not agent:
            raise HTTPException(404, "Agent not found")
        return agent.model_dump(mode="json")

    @app.delete("/world/agents/{agent_id}")
    def remove_agent(agent_id: str):
        if not ws.remove_agent(agent_id):
            raise HTTPException(404, "Agent not found")
        orch.reset_agent(agent_id)
        return {"status": "removed", "agent_id": agent_id}

    @app.post("/world/locations")
    def upsert_location(location: LocationRecord):
        ws.upsert_location(location)
        return {"status": "ingested", "location_id": location.id}

    @app.put("/world/scene")
    def set_scene(scene: SceneRecord):
        ws.set_scene(scene)
        return {"status": "set", "scene_id": scene.id}

    @app.post("/world/events")
    def record_event(event: WorldEvent):
        ws.record_event(event)
        return {"status": "recorded"}

    @app.post("/world/advance")
    def advance_tick():
        return {"tick": ws.advance_tick()}

    # === MODS ===

    @app.get("/mods")
    def list_mods():
        return orch.mods.snapshot()

    @app.get("/mods/{entity_id}")
    def get_mods(entity_id: str):
        return orch.mods.get(entity_id).model_dump(mode="json")

    @app.post("/mods/{entity_id}")
    def edit_mods(entity_id: str, req: ModEditRequest):
        if req.op == "override":
            orch.mods.set_override(entity_id, req.key, req.value)
        elif req.op == "delta":
            orch.mods.add_delta(entity_id, req.key, req.value)
        else:
            orch.mods.set_scale(entity_id, req.key, req.value)
        return orch.mods.get(entity_id).model_dump(mode="json")

    @app.delete("/mods/{entity_id}")
    def clear_mods(entity_id: str):
        if not orch.mods.clear(entity_id):
            raise HTTPException(404, "No mods for entity")
        return {"status": "cleared", "entity_id": entity_id}

    # === PIPELINE ===

    @app.post("/pipeline/{agent_id}/run")
    def run_pipeline(agent_id: str, req: PipelineRunRequest):
        """Run S0..S8 for one agent; carry-over and mass state are untouched."""
        try:
            result = orch.run_agent(
                ws.snapshot(),
                agent_id,
                req.seed,
                overrides=req.overrides,
                q_sampling_override=req.q_sampling_override,
                temperature=req.temperature,
            )
        except UnknownEntityError:
            raise HTTPException(404, "Agent not found")
        return result.model_dump(mode="json")

    @app.post("/tick")
    def run_tick(req: TickRequest):
        result = orch.run_tick(ws.snapshot(), req.seed, overrides=req.overrides)
        if req.advance:
            ws.advance_tick()
        return {
            "tick": result.tick,
            "chosen": result.chosen,
            "forced": {aid: r.decision.forced for aid, r in result.results.items() if r.decision},
            "mass": result.mass.model_dump(mode="json") if result.mass else None,
        }

    # === MASS NETWORK ===

    @app.get("/mass/state")
    def get_mass_state():
        return orch.network.model_dump(mode="json")

    @app.get("/mass/summary")
    def get_mass_summary(threshold: Optional[float] = None):
        cfg = orch.pipeline.config.mass
        return summarize_network(
            orch.network, cfg.hotspot_threshold if threshold is None else threshold
        ).model_dump(mode="json")

    # === CONFIG ===

    @app.get("/config")
    def get_config():
        return orch.pipeline.config.model_dump(mode="json")

    return app


# Default application instance
app = create_app()
