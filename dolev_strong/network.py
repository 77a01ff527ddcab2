# dolev_strong/network.py
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .messages import Message, MessageType
from .node import NodeState
from .signatures import SignatureChain

logger = logging.getLogger(__name__)


class SynchronousNetwork:
    """
    Lock-step network for the simulator.

    Every message sent in round t sits in its recipient's inbox before
    round t+1 starts; there are no delays, drops or reordering.
    """

    def __init__(self, nodes: List[NodeState]):
        self.nodes = nodes
        self.message_history: List[Message] = []
        self.round_counts: Dict[int, int] = defaultdict(int)

    @property
    def n(self) -> int:
        return len(self.nodes)

    def send(self, message: Message):
        """Log a message and deliver it to the addressed party"""
        self.message_history.append(message)
        self.round_counts[message.round] += 1
        self.nodes[message.source].stats['messages_sent'] += 1
        self.nodes[message.target].receive(message)
        logger.debug("deliver %s", message)

    def multicast(self, source: int, value: int, chain: SignatureChain, round_num: int,
                  targets: Optional[Iterable[int]] = None,
                  kind: MessageType = MessageType.ECHO) -> List[Message]:
        """Send (value, chain) from `source` to `targets`, or to every other party"""
        if targets is None:
            targets = range(self.n)
        sent = []
        for target in targets:
            if target == source or not 0 <= target < self.n:
                continue
            message = Message(value=value, chain=chain, source=source,
                              target=target, round=round_num, kind=kind)
            self.send(message)
            sent.append(message)
        return sent

    def get_stats(self) -> Dict[str, object]:
        """Get network statistics"""
        return {
            'total_messages': len(self.message_history),
            'messages_per_round': dict(sorted(self.round_counts.items())),
            'initial_messages': sum(1 for m in self.message_history
                                    if m.kind is MessageType.INITIAL),
        }
