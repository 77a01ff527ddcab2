# dolev_strong/node.py
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .messages import Message
from .signatures import SENDER_ID, SignatureChain


@dataclass(frozen=True)
class NodeSnapshot:
    """Read-only copy of a party's state handed to callers"""
    node_id: int
    is_byzantine: bool
    convinced: Mapping[int, int]
    inbox: Tuple[Message, ...]
    decision: Optional[int]
    decided: bool

    @property
    def is_honest(self) -> bool:
        return not self.is_byzantine

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.node_id,
            'byzantine': self.is_byzantine,
            'convinced': dict(self.convinced),
            'inbox': len(self.inbox),
            'decision': self.decision,
            'decided': self.decided,
        }


class NodeState:
    """Per-party protocol state, mutated only by the engine"""

    def __init__(self, node_id: int, is_byzantine: bool = False):
        self.node_id = node_id
        self.is_byzantine = is_byzantine

        # value -> round first convinced (monotone, never shrinks)
        self.convinced: Dict[int, int] = {}
        # value -> message whose chain certified it (None: sender's own value)
        self.convincing: Dict[int, Optional[Message]] = {}
        self.inbox: List[Message] = []

        # Decision state
        self.decision: Optional[int] = None
        self.decided = False

        # Statistics
        self.stats = {
            'messages_sent': 0,
            'messages_received': 0,
        }

    @property
    def is_sender(self) -> bool:
        return self.node_id == SENDER_ID

    def receive(self, message: Message):
        """Append a delivered message to the inbox"""
        self.inbox.append(message)
        self.stats['messages_received'] += 1

    def is_convinced_of(self, value: int) -> bool:
        return value in self.convinced

    def convince(self, value: int, round_num: int, message: Optional[Message]) -> bool:
        """
        Record conviction of `value` at `round_num`.
        Returns False if already convinced; the first round is kept.
        """
        if value in self.convinced:
            return False
        self.convinced[value] = round_num
        self.convincing[value] = message
        return True

    def echo_chain(self, value: int) -> SignatureChain:
        """Chain this party signs when echoing `value`"""
        if self.is_sender:
            return SignatureChain.of(SENDER_ID)
        message = self.convincing.get(value)
        if message is None:
            raise KeyError(f"Node {self.node_id} holds no convincing chain for {value}")
        return message.chain.extend(self.node_id)

    def decide(self, value: Optional[int]):
        if self.decided:
            raise RuntimeError(f"Node {self.node_id} already decided {self.decision}")
        self.decision = value
        self.decided = True

    def snapshot(self) -> NodeSnapshot:
        return NodeSnapshot(
            node_id=self.node_id,
            is_byzantine=self.is_byzantine,
            convinced=MappingProxyType(dict(self.convinced)),
            inbox=tuple(self.inbox),
            decision=self.decision,
            decided=self.decided,
        )

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)

    def __repr__(self):
        kind = "byzantine" if self.is_byzantine else "honest"
        return f"NodeState({self.node_id}, {kind}, convinced={self.convinced}, decision={self.decision})"
