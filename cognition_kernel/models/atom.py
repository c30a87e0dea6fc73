"""Context Atom — the unit of belief/fact flowing through the pipeline."""

import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Namespace(str, Enum):
    """
    The namespace ladder. Ordering is a hard invariant: a stage may only
    cite atoms from namespaces that are already finalized for the tick.
    """

    WORLD = "world"          # Raw facts
    CTX = "ctx"              # Derived axes, pre-aggregation
    CTX_FINAL = "ctx:final"  # Aggregated/smoothed axes consumed by goals
    THREAT = "threat"        # Composite danger signal
    DRV = "drv"              # Helper drivers summarizing needs
    GOAL = "goal"            # Goal-domain activation
    UTIL = "util"            # Goal-free projections safe for the action layer
    ACTION = "action"        # Scored candidates

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def prefix(self) -> str:
        return f"{self.value}:"

    @classmethod
    def of(cls, atom_id: str) -> Optional["Namespace"]:
        """Resolve the namespace of an atom id by longest matching prefix."""
        for ns in _BY_PREFIX_LENGTH:
            if atom_id.startswith(ns.prefix):
                return ns
        return None


_RANKS = {ns: i for i, ns in enumerate(Namespace)}
_BY_PREFIX_LENGTH = sorted(Namespace, key=lambda ns: len(ns.value), reverse=True)


def atom_id(namespace: Namespace, key: str, self_id: str, other_id: Optional[str] = None) -> str:
    """Build a structured atom id: ``ns:key:selfId[:otherId]``."""
    parts = [namespace.value, key, self_id]
    if other_id is not None:
        parts.append(other_id)
    return ":".join(parts)


class AtomTrace(BaseModel):
    """Provenance of an atom: which atoms it was computed from, and how."""

    model_config = ConfigDict(frozen=True)

    used_atom_ids: List[str] = []
    notes: List[str] = []
    parts: dict = {}                        # Named inputs/weights for audit


class ContextAtom(BaseModel):
    """
    An immutable, namespaced scalar fact.

    Atoms are never mutated within a tick. A later stage that refines a fact
    emits a new atom in a later namespace and cites its predecessor.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    namespace: Namespace
    kind: str                               # e.g. "ctx_axis", "goal_energy"
    magnitude: float                        # Typically 0..1, logits unconstrained
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    source: str                             # Producing stage or collaborator
    subject_id: str
    target_id: Optional[str] = None         # For dyadic facts
    label: Optional[str] = None
    trace: AtomTrace = AtomTrace()

    @field_validator("magnitude")
    @classmethod
    def _finite_magnitude(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("atom magnitude must be finite")
        return v

    @model_validator(mode="after")
    def _id_matches_namespace(self) -> "ContextAtom":
        if Namespace.of(self.id) != self.namespace:
            raise ValueError(
                f"atom id {self.id!r} does not belong to namespace {self.namespace.value!r}"
            )
        return self


def make_atom(
    namespace: Namespace,
    key: str,
    self_id: str,
    magnitude: float,
    *,
    kind: str,
    source: str,
    other_id: Optional[str] = None,
    used_atom_ids: Optional[List[str]] = None,
    notes: Optional[List[str]] = None,
    parts: Optional[dict] = None,
    confidence: Optional[float] = None,
    label: Optional[str] = None,
) -> ContextAtom:
    """Convenience constructor that derives the id from its components."""
    return ContextAtom(
        id=atom_id(namespace, key, self_id, other_id),
        namespace=namespace,
        kind=kind,
        magnitude=magnitude,
        confidence=confidence,
        source=source,
        subject_id=self_id,
        target_id=other_id,
        label=label,
        trace=AtomTrace(
            used_atom_ids=list(used_atom_ids or []),
            notes=list(notes or []),
            parts=dict(parts or {}),
        ),
    )
