"""World Snapshot — the read-only per-tick input to the pipeline."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Relation(BaseModel):
    """How one character regards another."""

    trust: Optional[float] = Field(default=None, ge=0, le=1)
    hostility: Optional[float] = Field(default=None, ge=0, le=1)
    tags: List[str] = []                    # e.g. "friend", "lover", "family"


class CharacterRecord(BaseModel):
    """A single character as supplied by the world-state collaborator."""

    id: str
    name: str = ""
    location_id: Optional[str] = None
    position: Optional[List[float]] = None  # [x, y] within the location
    traits: Dict[str, float] = {}           # trait id -> strength 0..1
    body: Dict[str, float] = {}             # stress, fatigue, pain
    emotion: Dict[str, float] = {}          # anger, fear, valence
    social: Dict[str, float] = {}           # trust
    access: Dict[str, float] = {}           # weapon, ...
    exposure: Dict[str, float] = {}         # dark
    psych: Dict[str, float] = {}            # risk
    relations: Dict[str, Relation] = {}     # other character id -> relation


class LocationRecord(BaseModel):
    """A location and its raw properties (privacy, hazard, cover, ...)."""

    id: str
    name: str = ""
    properties: Dict[str, float] = {}


class SceneRecord(BaseModel):
    """The active scene and its metrics (threat, urgency, scarcity, ...)."""

    id: str
    metrics: Dict[str, float] = {}


class WorldEvent(BaseModel):
    """An entry in the world event log."""

    tick: int
    kind: str                               # e.g. "attack", "insult", "help"
    actor_id: str
    target_id: Optional[str] = None
    magnitude: float = Field(ge=0, le=1, default=1.0)


class WorldSnapshot(BaseModel):
    """Everything the pipeline may read for one tick."""

    tick: int = 0
    agents: Dict[str, CharacterRecord] = {}
    locations: Dict[str, LocationRecord] = {}
    scene: Optional[SceneRecord] = None
    events: List[WorldEvent] = []

    def location_of(self, agent_id: str) -> Optional[LocationRecord]:
        agent = self.agents.get(agent_id)
        if agent is None or agent.location_id is None:
            return None
        return self.locations.get(agent.location_id)
