"""
Atom Ledger — the append-only per-tick atom set for one agent.

Behavioral Contract:
- Append-only. No atom is ever replaced or removed within a tick.
- Each commit is made on behalf of exactly one stage and checked against
  that stage's contract in STAGE_CONTRACTS.
- A stage may write only its own namespaces and cite only atoms that are
  already in the ledger under a namespace it may read, or atoms earlier in
  its own batch.
- Any breach raises NamespaceViolation; nothing is committed from a failing
  batch.
"""

import hashlib
import json
import logging
from typing import Dict, Iterable, List, Optional

from cognition_kernel.errors import NamespaceViolation
from cognition_kernel.models.atom import ContextAtom, Namespace
from cognition_kernel.models.pipeline import STAGE_CONTRACTS, StageContract, StageId

logger = logging.getLogger(__name__)


class AtomLedger:
    """Holds every atom emitted for one agent in one tick, in emission order."""

    def __init__(self, contracts: Optional[Dict[StageId, StageContract]] = None):
        self._contracts = contracts if contracts is not None else STAGE_CONTRACTS
        self._atoms: Dict[str, ContextAtom] = {}
        self._emitted_by: Dict[str, StageId] = {}
        self._order: List[str] = []

    def commit(self, stage: StageId, atoms: Iterable[ContextAtom]) -> List[ContextAtom]:
        """
        Validate and append a stage's batch.

        The batch is validated in full before any atom is appended.
        """
        contract = self._contracts[stage]
        batch = list(atoms)
        seen_in_batch: Dict[str, ContextAtom] = {}

        for atom in batch:
            if atom.namespace not in contract.writes:
                raise NamespaceViolation(
                    f"{stage.value} may not write {atom.namespace.value!r} atom {atom.id!r}"
                )
            if atom.id in self._atoms or atom.id in seen_in_batch:
                raise NamespaceViolation(f"duplicate atom id {atom.id!r} from {stage.value}")

            for cited in atom.trace.used_atom_ids:
                if cited in seen_in_batch:
                    continue
                prior = self._atoms.get(cited)
                if prior is None:
                    raise NamespaceViolation(
                        f"{atom.id!r} cites unknown atom {cited!r}"
                    )
                if prior.namespace not in contract.reads:
                    raise NamespaceViolation(
                        f"{stage.value} may not cite {prior.namespace.value!r} atom "
                        f"{cited!r} (from {atom.id!r})"
                    )
            seen_in_batch[atom.id] = atom

        for atom in batch:
            self._atoms[atom.id] = atom
            self._emitted_by[atom.id] = stage
            self._order.append(atom.id)

        logger.debug("%s committed %d atoms", stage.value, len(batch))
        return batch

    def get(self, atom_id: str) -> Optional[ContextAtom]:
        return self._atoms.get(atom_id)

    def magnitude(self, atom_id: str) -> Optional[float]:
        atom = self._atoms.get(atom_id)
        return atom.magnitude if atom is not None else None

    def __contains__(self, atom_id: str) -> bool:
        return atom_id in self._atoms

    def __len__(self) -> int:
        return len(self._order)

    def atoms(self) -> List[ContextAtom]:
        return [self._atoms[i] for i in self._order]

    def by_namespace(self, namespace: Namespace) -> List[ContextAtom]:
        return [a for a in self.atoms() if a.namespace == namespace]

    def by_prefix(self, prefix: str) -> List[ContextAtom]:
        return [self._atoms[i] for i in self._order if i.startswith(prefix)]

    def emitted_by(self, stage: StageId) -> List[ContextAtom]:
        return [self._atoms[i] for i in self._order if self._emitted_by[i] == stage]

    def fingerprint(self) -> str:
        """SHA-256 over the ledger contents, for reproducibility checks."""
        payload = [self._atoms[i].model_dump(mode="json") for i in self._order]
        data = json.dumps(payload, sort_keys=True, default=str).encode()
        return hashlib.sha256(data).hexdigest()
