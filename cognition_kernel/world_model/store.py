"""
World Store — accumulates world-state updates between ticks.

Updated by: the world-state collaborator (ingest API)
Queried by: the Tick Orchestrator, which receives an immutable snapshot
"""

from typing import List, Optional

from cognition_kernel.models.world import (
    CharacterRecord,
    LocationRecord,
    SceneRecord,
    WorldEvent,
    WorldSnapshot,
)


class WorldStore:
    """In-memory world state. Snapshots are deep copies."""

    def __init__(self, world: Optional[WorldSnapshot] = None):
        self._world = world.model_copy(deep=True) if world is not None else WorldSnapshot()

    @property
    def tick(self) -> int:
        return self._world.tick

    def snapshot(self) -> WorldSnapshot:
        """A copy the pipeline may read without seeing later edits."""
        return self._world.model_copy(deep=True)

    def upsert_agent(self, agent: CharacterRecord) -> None:
        self._world.agents[agent.id] = agent

    def get_agent(self, agent_id: str) -> Optional[CharacterRecord]:
        return self._world.agents.get(agent_id)

    def remove_agent(self, agent_id: str) -> bool:
        if agent_id in self._world.agents:
            del self._world.agents[agent_id]
            return True
        return False

    def upsert_location(self, location: LocationRecord) -> None:
        self._world.locations[location.id] = location

    def get_location(self, location_id: str) -> Optional[LocationRecord]:
        return self._world.locations.get(location_id)

    def set_scene(self, scene: Optional[SceneRecord]) -> None:
        self._world.scene = scene

    def record_event(self, event: WorldEvent) -> None:
        self._world.events.append(event)

    def recent_events(self, limit: int = 10) -> List[WorldEvent]:
        return self._world.events[-limit:]

    def advance_tick(self) -> int:
        self._world.tick += 1
        return self._world.tick
