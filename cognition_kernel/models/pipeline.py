"""Pipeline stages, their namespace contracts, and the per-agent result."""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict

from cognition_kernel.models.action import ActionCandidate, DecisionSnapshot, Possibility
from cognition_kernel.models.atom import ContextAtom, Namespace


class StageId(str, Enum):
    S0 = "S0"
    S1 = "S1"
    S2 = "S2"
    S3 = "S3"
    S4 = "S4"
    S5 = "S5"
    S6 = "S6"
    S7 = "S7"
    S8 = "S8"


class StageContract(BaseModel):
    """Which namespaces a stage may cite, and which it may emit."""

    model_config = ConfigDict(frozen=True)

    stage: StageId
    title: str
    reads: FrozenSet[Namespace] = frozenset()
    writes: FrozenSet[Namespace]


def _contract(stage: StageId, title: str, reads: List[Namespace], writes: List[Namespace]) -> StageContract:
    return StageContract(stage=stage, title=title, reads=frozenset(reads), writes=frozenset(writes))


N = Namespace

STAGE_CONTRACTS: Dict[StageId, StageContract] = {
    StageId.S0: _contract(StageId.S0, "world facts", [], [N.WORLD]),
    StageId.S1: _contract(StageId.S1, "observation", [N.WORLD], [N.WORLD]),
    StageId.S2: _contract(StageId.S2, "context axes", [N.WORLD], [N.CTX]),
    StageId.S3: _contract(StageId.S3, "final axes", [N.CTX], [N.CTX_FINAL]),
    StageId.S4: _contract(StageId.S4, "threat stack", [N.CTX_FINAL], [N.THREAT]),
    StageId.S5: _contract(StageId.S5, "drivers", [N.CTX_FINAL, N.THREAT], [N.DRV]),
    StageId.S6: _contract(StageId.S6, "goal activation", [N.CTX_FINAL, N.DRV], [N.GOAL]),
    StageId.S7: _contract(StageId.S7, "utility projection", [N.GOAL], [N.UTIL]),
    StageId.S8: _contract(
        StageId.S8,
        "possibilities + decision",
        [N.WORLD, N.CTX_FINAL, N.THREAT, N.DRV, N.UTIL],
        [N.ACTION],
    ),
}


class StageFrame(BaseModel):
    """What a single stage emitted for one agent."""

    stage: StageId
    title: str
    atoms: List[ContextAtom] = []
    warnings: List[str] = []


class PipelineResult(BaseModel):
    """Full stage-indexed output of one pipeline run for one agent."""

    agent_id: str
    tick: int
    stages: List[StageFrame] = []
    atoms: List[ContextAtom] = []
    possibilities: List[Possibility] = []
    candidates: List[ActionCandidate] = []
    goal_energy: Dict[str, float] = {}
    final_axes: Dict[str, float] = {}
    decision: Optional[DecisionSnapshot] = None

    def trace(self) -> Dict[str, List[ContextAtom]]:
        """Stage id -> atoms emitted by that stage."""
        return {frame.stage.value: list(frame.atoms) for frame in self.stages}

    def atom(self, atom_id: str) -> Optional[ContextAtom]:
        for a in self.atoms:
            if a.id == atom_id:
                return a
        return None
