# dolev_strong/verifier.py
"""
Property verification for Dolev-Strong runs

Checks the three broadcast guarantees against node states:
- Termination: every party has decided after f+1 rounds
- Agreement: honest parties never decide two different values
- Validity: with an honest sender, honest parties decide its value
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence

from .config import RunParams
from .exceptions import IncompleteRunError
from .node import NodeSnapshot


class PropertyStatus(Enum):
    SATISFIED = "satisfied"
    VIOLATED = "violated"
    PENDING = "pending"
    NOT_APPLICABLE = "not-applicable"


@dataclass(frozen=True)
class PropertyResult:
    name: str
    status: PropertyStatus
    evidence: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status in (PropertyStatus.SATISFIED, PropertyStatus.NOT_APPLICABLE)

    def to_dict(self) -> Dict[str, Any]:
        return {'status': self.status.value, 'evidence': self.evidence}


@dataclass(frozen=True)
class PropertyReport:
    termination: PropertyResult
    agreement: PropertyResult
    validity: PropertyResult
    resilience: Dict[str, Any] = field(default_factory=dict)

    def all_satisfied(self) -> bool:
        return all(r.passed for r in (self.termination, self.agreement, self.validity))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'termination': self.termination.to_dict(),
            'agreement': self.agreement.to_dict(),
            'validity': self.validity.to_dict(),
            'resilience': dict(self.resilience),
        }


def format_decision(decision: Optional[int]) -> str:
    return "⊥" if decision is None else str(decision)


class PropertyVerifier:
    """Pure evaluation of broadcast properties over node snapshots"""

    def check(self, nodes: Sequence[NodeSnapshot], params: RunParams,
              finalized: bool = True) -> PropertyReport:
        """Evaluate all properties; pending while the run is still going"""
        if len(nodes) != params.n:
            raise IncompleteRunError(
                f"Node table has {len(nodes)} entries, expected n={params.n}")
        if finalized:
            undecided = [node.node_id for node in nodes if not node.decided]
            if undecided:
                raise IncompleteRunError(f"Run marked final but nodes {undecided} have not decided")

        honest = [node for node in nodes if node.is_honest]
        return PropertyReport(
            termination=self.check_termination(nodes, finalized),
            agreement=self.check_agreement(honest, finalized),
            validity=self.check_validity(honest, params, finalized),
            resilience=self.resilience(params),
        )

    def check_termination(self, nodes: Iterable[NodeSnapshot], finalized: bool) -> PropertyResult:
        nodes = list(nodes)
        decided = [node.node_id for node in nodes if node.decided]
        status = (PropertyStatus.SATISFIED if finalized and len(decided) == len(nodes)
                  else PropertyStatus.PENDING)
        return PropertyResult("termination", status, {'decided': decided})

    def check_agreement(self, honest: Sequence[NodeSnapshot], finalized: bool) -> PropertyResult:
        if not finalized:
            return PropertyResult("agreement", PropertyStatus.PENDING)

        decisions = [node.decision for node in honest]
        histogram = dict(Counter(decisions))
        distinct = sorted({d for d in decisions if d is not None})
        # Some honest parties on a value and the rest on ⊥ still agrees
        status = PropertyStatus.VIOLATED if len(distinct) > 1 else PropertyStatus.SATISFIED
        return PropertyResult("agreement", status, {
            'histogram': histogram,
            'honest_parties': [node.node_id for node in honest],
            'distinct_values': distinct,
        })

    def check_validity(self, honest: Sequence[NodeSnapshot], params: RunParams,
                       finalized: bool) -> PropertyResult:
        if not finalized:
            return PropertyResult("validity", PropertyStatus.PENDING)
        if params.sender_is_byzantine:
            return PropertyResult("validity", PropertyStatus.NOT_APPLICABLE,
                                  {'reason': "sender is Byzantine"})

        mismatching = [node.node_id for node in honest if node.decision != params.sender_value]
        status = PropertyStatus.VIOLATED if mismatching else PropertyStatus.SATISFIED
        return PropertyResult("validity", status, {
            'expected': params.sender_value,
            'mismatching': mismatching,
        })

    @staticmethod
    def resilience(params: RunParams) -> Dict[str, Any]:
        """Advisory node counts; never fails a run"""
        min_nodes = params.f + 1
        recommended = 2 * params.f + 1 if params.sender_is_byzantine else min_nodes
        return {
            'min_nodes': min_nodes,
            'recommended_nodes': recommended,
            'has_enough_nodes': params.n >= min_nodes,
        }


def verify(snapshot) -> PropertyReport:
    """Evaluate a RunSnapshot"""
    if snapshot is None:
        raise IncompleteRunError("No run snapshot; initialize() the engine first")
    return PropertyVerifier().check(snapshot.nodes, snapshot.params, snapshot.finalized)
