"""Mass Network — mesoscale recurrent network over a fixed node set."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MassNodeParams(BaseModel):
    """Leaky-integrator parameters of one node."""

    model_config = ConfigDict(frozen=True)

    tau: float = Field(gt=0, default=5.0)   # Inertia
    bias: float = -2.0                      # Resting drive (negative = calm)
    gain: float = 1.5
    noise_scale: float = Field(ge=0, default=0.5)


class MassNode(BaseModel):
    """A node's identity, parameters and current latent state."""

    model_config = ConfigDict(frozen=True)

    id: str                                 # e.g. "geo:capital"
    label: str = ""
    kind: str = "geo"                       # "geo", "faction" or "institution"
    x: float = 0.05
    params: MassNodeParams = MassNodeParams()


class MassNetwork(BaseModel):
    """
    A directed weighted graph. ``weights[i][j]`` is the influence of node
    ``node_order[j]`` on node ``node_order[i]``.

    Never resized at runtime; a step returns a new network.
    """

    model_config = ConfigDict(frozen=True)

    node_order: List[str]
    nodes: Dict[str, MassNode]
    weights: List[List[float]]
    step_count: int = 0

    @model_validator(mode="after")
    def _aligned(self) -> "MassNetwork":
        n = len(self.node_order)
        if set(self.node_order) != set(self.nodes) or len(set(self.node_order)) != n:
            raise ValueError("node_order must list every node exactly once")
        if len(self.weights) != n or any(len(row) != n for row in self.weights):
            raise ValueError(f"weights must be a {n}x{n} matrix")
        return self

    def state(self) -> Dict[str, float]:
        return {nid: self.nodes[nid].x for nid in self.node_order}


class CharacterMassSignal(BaseModel):
    """Per-character metrics fed into the network each tick."""

    character_id: str
    stress: float = Field(ge=0, le=1, default=0.0)
    dark: float = Field(ge=0, le=1, default=0.0)
    risk: float = Field(ge=0, le=1, default=0.0)


class NodeInput(BaseModel):
    """Aggregated exogenous input for one node."""

    node_id: str
    value: float = 0.0                      # Mean weighted signal
    count: int = 0                          # Contributing characters


class MassNetworkSummary(BaseModel):
    """System-level analytics over the latent states."""

    step_count: int
    mean_x: float
    max_node: Optional[str] = None
    max_x: float = 0.0
    hotspots: List[str] = []
