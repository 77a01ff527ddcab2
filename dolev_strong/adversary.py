# dolev_strong/adversary.py
"""
Pluggable Byzantine behaviour.

A strategy sees a read-only PartyView of the party it controls and returns
EchoPlans; the engine turns plans into messages. Honest-party logic never
consults a strategy.
"""

import random
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .messages import Message
from .signatures import SENDER_ID, SignatureChain


@dataclass(frozen=True)
class PartyView:
    """What a Byzantine party knows at the start of its echo phase"""
    party_id: int
    n: int
    round: int
    convinced: Mapping[int, int]
    inbox: Tuple[Message, ...]

    @property
    def is_sender(self) -> bool:
        return self.party_id == SENDER_ID

    def others(self) -> List[int]:
        return [i for i in range(self.n) if i != self.party_id]

    def signable_chain(self, value: int) -> Optional[SignatureChain]:
        """
        Chain this party can legitimately produce for `value`: the sender
        signs alone, anyone else extends a sender-first chain it holds.
        """
        if self.is_sender:
            return SignatureChain.of(SENDER_ID)
        for message in self.inbox:
            if (message.value == value and message.chain.is_sender_first()
                    and self.party_id not in message.chain):
                return message.chain.extend(self.party_id)
        return None


@dataclass(frozen=True)
class EchoPlan:
    """One (value, chain) to send; targets=None means every other party"""
    value: int
    chain: SignatureChain
    targets: Optional[Tuple[int, ...]] = None


class ByzantineStrategy:
    """Base strategy: behaves like an honest echoer that never stops talking"""

    name = "base"

    def initial_values(self, recipients: Iterable[int], sender_value: int) -> Dict[int, int]:
        """Round-0 value per recipient when this strategy controls the sender"""
        return {r: sender_value for r in recipients}

    def decide_echo_set(self, view: PartyView) -> List[EchoPlan]:
        raise NotImplementedError

    def decide(self, view: PartyView, rng: random.Random) -> Optional[int]:
        """Non-normative decision: the single convinced value, else a seeded pick"""
        values = sorted(view.convinced)
        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return rng.choice(values)

    def __repr__(self):
        return f"{type(self).__name__}()"


class EchoConvinced(ByzantineStrategy):
    """Echo every convinced value to everyone, every round"""

    name = "echo"

    def decide_echo_set(self, view: PartyView) -> List[EchoPlan]:
        plans = []
        for value in view.convinced:
            chain = view.signable_chain(value)
            if chain is not None:
                plans.append(EchoPlan(value, chain))
        return plans


class Equivocate(ByzantineStrategy):
    """
    Tell different parties different values.

    `assignments` maps a party id to the value it is sent; every other party
    gets the party's own value. With no assignments the lowest other
    non-sender party receives value + offset.
    """

    name = "equivocate"

    def __init__(self, assignments: Optional[Mapping[int, int]] = None, offset: int = 1):
        self.assignments = dict(assignments or {})
        self.offset = offset

    def _deviations(self, party_id: int, n: int, base: int) -> Dict[int, int]:
        if self.assignments:
            return self.assignments
        for target in range(1, n):
            if target != party_id:
                return {target: base + self.offset}
        return {}

    def initial_values(self, recipients: Iterable[int], sender_value: int) -> Dict[int, int]:
        recipients = list(recipients)
        n = max(recipients, default=0) + 1
        deviations = self._deviations(SENDER_ID, n, sender_value)
        return {r: deviations.get(r, sender_value) for r in recipients}

    def decide_echo_set(self, view: PartyView) -> List[EchoPlan]:
        if not view.convinced:
            return []
        base = min(view.convinced, key=lambda v: (view.convinced[v], v))
        deviations = self._deviations(view.party_id, view.n, base)

        grouped: Dict[Tuple[int, SignatureChain], List[int]] = OrderedDict()
        for target in view.others():
            value = deviations.get(target, base)
            # Without a sender-first chain for the value, sign it alone
            chain = view.signable_chain(value) or SignatureChain.of(view.party_id)
            grouped.setdefault((value, chain), []).append(target)
        return [EchoPlan(value, chain, tuple(targets))
                for (value, chain), targets in grouped.items()]

    def __repr__(self):
        return f"Equivocate(assignments={self.assignments}, offset={self.offset})"


class Silent(ByzantineStrategy):
    """Withhold echoes from `muted` parties, or from everyone when muted is None"""

    name = "silent"

    def __init__(self, muted: Optional[Iterable[int]] = None):
        self.muted = None if muted is None else frozenset(muted)

    def decide_echo_set(self, view: PartyView) -> List[EchoPlan]:
        if self.muted is None:
            return []
        targets = tuple(i for i in view.others() if i not in self.muted)
        if not targets:
            return []
        plans = []
        for value in view.convinced:
            chain = view.signable_chain(value)
            if chain is not None:
                plans.append(EchoPlan(value, chain, targets))
        return plans

    def __repr__(self):
        muted = None if self.muted is None else sorted(self.muted)
        return f"Silent(muted={muted})"


class Replay(ByzantineStrategy):
    """Re-sign and forward every distinct sender-first chain in the inbox"""

    name = "replay"

    def decide_echo_set(self, view: PartyView) -> List[EchoPlan]:
        seen = set()
        plans = []
        for message in view.inbox:
            chain = message.chain
            if not chain.is_sender_first() or view.party_id in chain:
                continue
            key = (message.value, chain)
            if key in seen:
                continue
            seen.add(key)
            plans.append(EchoPlan(message.value, chain.extend(view.party_id)))
        return plans


STRATEGIES = {
    EchoConvinced.name: EchoConvinced,
    Equivocate.name: Equivocate,
    Silent.name: Silent,
    Replay.name: Replay,
}


def build_strategy(name: str, assignments: Optional[Mapping[int, int]] = None,
                   muted: Optional[Iterable[int]] = None) -> ByzantineStrategy:
    """Instantiate a registered strategy by name"""
    try:
        cls = STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown Byzantine strategy '{name}' (choose from {sorted(STRATEGIES)})")
    if cls is Equivocate:
        return Equivocate(assignments=assignments)
    if cls is Silent:
        # An empty muted list from config means "silent to everyone"
        return Silent(muted=muted or None)
    return cls()
