# dolev_strong/consensus.py
"""
Dolev-Strong protocol engine.

Round 0: the sender signs and sends its value, every party echoes what it got.
Rounds 1..f+1: an honest party becomes convinced of v at round t when it holds
a sender-first chain for v with at least t+1 distinct signers, then echoes
its convinced values with its own signature appended.
Decision: the single convinced value, otherwise bottom (None).
"""

import logging
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Set, Tuple

from .adversary import ByzantineStrategy, EchoPlan, PartyView, build_strategy
from .config import (ByzantineRepair, RunParams, SimulatorConfig,
                     repair_byzantine_ids, validate_params)
from .exceptions import InvalidConfigError, NotYetTerminatedError, OutOfSequenceError
from .messages import Message, MessageType
from .network import SynchronousNetwork
from .node import NodeSnapshot, NodeState
from .signatures import SENDER_ID, SignatureChain

logger = logging.getLogger(__name__)

DecisionTable = Dict[int, Optional[int]]


@dataclass(frozen=True)
class RunHandle:
    """Returned by initialize(): the effective parameters of the new run"""
    params: RunParams
    repair: Optional[ByzantineRepair]
    round: int
    initial_messages: int
    forgeries_rejected: int = 0


@dataclass(frozen=True)
class RoundSummary:
    round: int
    newly_convinced: Mapping[int, Tuple[int, ...]]
    echo_count: int
    forgeries_rejected: int = 0
    finalized: bool = False


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable picture of a run for verifiers and renderers"""
    params: RunParams
    round: int
    finalized: bool
    nodes: Tuple[NodeSnapshot, ...]
    messages: Tuple[Message, ...]
    repair: Optional[ByzantineRepair] = None

    @property
    def decisions(self) -> DecisionTable:
        return {node.node_id: node.decision for node in self.nodes}

    def to_dict(self) -> Dict[str, object]:
        return {
            'params': self.params.to_dict(),
            'round': self.round,
            'finalized': self.finalized,
            'nodes': [node.to_dict() for node in self.nodes],
            'messages': [message.to_dict() for message in self.messages],
            'repair': self.repair.describe() if self.repair else None,
        }


class ProtocolEngine:
    """Owns the node table and message log of one run at a time"""

    def __init__(self, config: Optional[SimulatorConfig] = None,
                 strategies: Optional[Mapping[int, ByzantineStrategy]] = None):
        self.config = config or SimulatorConfig()
        self._strategy_overrides = dict(strategies or {})
        self._reset()

    def _reset(self):
        self.params: Optional[RunParams] = None
        self.repair: Optional[ByzantineRepair] = None
        self.nodes: List[NodeState] = []
        self.network: Optional[SynchronousNetwork] = None
        self.strategies: Dict[int, ByzantineStrategy] = {}
        self.current_round = 0
        self.summaries: List[RoundSummary] = []
        self._decisions: Optional[DecisionTable] = None
        self._round_zero_rejected = 0
        # (value, chain) pairs honest parties have actually signed
        self._signed: Set[Tuple[int, SignatureChain]] = set()
        self._rng = random.Random(self.config.random_seed)

    @property
    def initialized(self) -> bool:
        return self.params is not None

    @property
    def finalized(self) -> bool:
        return self._decisions is not None

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self.network.message_history) if self.network else ()

    # --- round 0 ---
    def initialize(self, params: Optional[RunParams] = None) -> RunHandle:
        """Validate parameters, build the node table and run round 0"""
        params = params or self.config.run_params()
        errors = validate_params(params.n, params.f, params.byzantine_ids)
        if errors:
            raise InvalidConfigError("; ".join(errors), errors)

        byzantine_ids, repair = repair_byzantine_ids(params.n, params.f, params.byzantine_ids)
        if repair is not None:
            logger.warning("Byzantine set repaired to match f=%d: %s", params.f, repair.describe())
        params = RunParams(params.n, params.f, params.sender_value, byzantine_ids)

        self._reset()
        self.params = params
        self.repair = repair
        self.nodes = [NodeState(i, i in byzantine_ids) for i in range(params.n)]
        self.network = SynchronousNetwork(self.nodes)
        self.strategies = self._build_strategies(byzantine_ids)

        logger.info("Protocol initialized with %d nodes, f=%d, Byzantine=%s",
                    params.n, params.f, sorted(byzantine_ids) or "none")

        initial = self._initial_broadcast()
        outbox, self._round_zero_rejected = self._round_zero_echoes()
        self._deliver(outbox, 0)

        self.current_round = 1
        return RunHandle(params=params, repair=repair, round=self.current_round,
                         initial_messages=initial,
                         forgeries_rejected=self._round_zero_rejected)

    def _build_strategies(self, byzantine_ids) -> Dict[int, ByzantineStrategy]:
        adversary = self.config.adversary
        strategies = {}
        for party in sorted(byzantine_ids):
            if party in self._strategy_overrides:
                strategies[party] = self._strategy_overrides[party]
                continue
            name = adversary.sender_strategy if party == SENDER_ID else adversary.party_strategy
            strategies[party] = build_strategy(name, adversary.assignments, adversary.muted)
        for party in self._strategy_overrides:
            if party not in byzantine_ids:
                logger.debug("Ignoring strategy for honest party %d", party)
        return strategies

    def _initial_broadcast(self) -> int:
        params = self.params
        sender = self.nodes[SENDER_ID]
        recipients = range(1, params.n)
        chain = SignatureChain.of(SENDER_ID)

        if sender.is_byzantine:
            values = self.strategies[SENDER_ID].initial_values(recipients, params.sender_value)
            logger.info("Round 0: Byzantine sender sends %s", values)
        else:
            values = {r: params.sender_value for r in recipients}
            self._signed.add((params.sender_value, chain))
            logger.info("Round 0: sender broadcasts V*=%s", params.sender_value)

        sender.convince(params.sender_value, 0, None)
        count = 0
        for target in recipients:
            value = values.get(target, params.sender_value)
            for message in self.network.multicast(SENDER_ID, value, chain, 0,
                                                  targets=[target], kind=MessageType.INITIAL):
                self.nodes[target].convince(message.value, 0, message)
                count += 1
        return count

    def _round_zero_echoes(self):
        outbox = []
        for node in self.nodes:
            if node.is_byzantine or not node.convinced:
                continue
            value = next(iter(node.convinced))
            outbox.append(self._honest_echo(node, value))
        byzantine_outbox, rejected = self._byzantine_echoes(0)
        outbox.extend(byzantine_outbox)
        return outbox, rejected

    # --- rounds 1..f+1 ---
    def advance_round(self) -> RoundSummary:
        """Run one conviction/echo round; auto-finalizes after round f+1"""
        if not self.initialized:
            raise OutOfSequenceError("advance_round() called before initialize()")
        if self.finalized or self.current_round > self.params.max_rounds:
            raise OutOfSequenceError(
                f"Round {self.current_round} exceeds f+1={self.params.max_rounds}; call finalize()")

        t = self.current_round
        logger.info("Round %d: checking conviction and echoing messages", t)

        newly = self._apply_conviction_rule(t)
        self._adopt_byzantine_values(t)

        outbox = []
        for node_id in newly:
            node = self.nodes[node_id]
            for value in node.convinced:
                outbox.append(self._honest_echo(node, value))
        byzantine_outbox, rejected = self._byzantine_echoes(t)
        outbox.extend(byzantine_outbox)

        echo_count = self._deliver(outbox, t)
        if echo_count == 0:
            logger.info("Round %d: no new convictions or echoes", t)

        self.current_round = t + 1
        if t >= self.params.max_rounds:
            logger.info("Round %d complete; protocol has run for f+1=%d rounds", t, self.params.max_rounds)
            self._finalize()

        summary = RoundSummary(
            round=t,
            newly_convinced=MappingProxyType({k: tuple(v) for k, v in newly.items()}),
            echo_count=echo_count,
            forgeries_rejected=rejected,
            finalized=self.finalized,
        )
        self.summaries.append(summary)
        return summary

    def _apply_conviction_rule(self, t: int) -> Dict[int, List[int]]:
        """Convict honest parties against their whole inbox as of round start"""
        newly: Dict[int, List[int]] = {}
        for node in self.nodes:
            if node.is_byzantine:
                continue
            for message in node.inbox:
                if node.is_convinced_of(message.value):
                    continue
                # A chain claiming our own signature on an unconvinced value is forged
                if node.node_id in message.chain:
                    continue
                if (message.chain.first_signer() == SENDER_ID
                        and message.chain.unique_signer_count() >= t + 1):
                    node.convince(message.value, t, message)
                    newly.setdefault(node.node_id, []).append(message.value)
                    logger.info("Node %d convinced of V=%s at round %d (%d >= %d sigs)",
                                node.node_id, message.value, t,
                                message.chain.unique_signer_count(), t + 1)
        return newly

    def _adopt_byzantine_values(self, t: int):
        """Byzantine parties take up every value they have seen, no threshold"""
        for party in self.strategies:
            node = self.nodes[party]
            for message in node.inbox:
                if node.convince(message.value, t, message):
                    logger.debug("Byzantine node %d adopts V=%s at round %d", party, message.value, t)

    # --- echo helpers ---
    def _honest_echo(self, node: NodeState, value: int):
        chain = node.echo_chain(value)
        self._signed.add((value, chain))
        return node.node_id, value, chain, None

    def _byzantine_echoes(self, round_num: int):
        outbox = []
        rejected = 0
        for party, strategy in self.strategies.items():
            node = self.nodes[party]
            view = PartyView(
                party_id=party,
                n=self.params.n,
                round=round_num,
                convinced=MappingProxyType(dict(node.convinced)),
                inbox=tuple(node.inbox),
            )
            for plan in strategy.decide_echo_set(view):
                if not self._is_admissible(plan):
                    rejected += 1
                    logger.warning("Dropped forged echo from Byzantine node %d: V=%s %s",
                                   party, plan.value, plan.chain)
                    continue
                outbox.append((party, plan.value, plan.chain, plan.targets))
        return outbox, rejected

    def _is_admissible(self, plan: EchoPlan) -> bool:
        """Every honest signature in the chain must have really been produced"""
        if not len(plan.chain):
            return False
        for prefix in plan.chain.prefixes():
            signer = prefix.signers[-1]
            if not 0 <= signer < self.params.n:
                return False
            if self.nodes[signer].is_byzantine:
                continue
            if (plan.value, prefix) not in self._signed:
                return False
        return True

    def _deliver(self, outbox, round_num: int) -> int:
        count = 0
        for source, value, chain, targets in outbox:
            sent = self.network.multicast(source, value, chain, round_num, targets=targets)
            if sent:
                logger.debug("Node %d echoes (V=%s, %s) to %d parties",
                             source, value, chain, len(sent))
            count += len(sent)
        return count

    # --- decisions ---
    def finalize(self) -> DecisionTable:
        """Decision table; available once all f+1 rounds have run"""
        if not self.initialized:
            raise OutOfSequenceError("finalize() called before initialize()")
        if self._decisions is None:
            if self.current_round <= self.params.max_rounds:
                raise NotYetTerminatedError(
                    f"Only {self.current_round - 1} of {self.params.max_rounds} rounds have run")
            self._finalize()
        return dict(self._decisions)

    def _finalize(self):
        if self._decisions is not None:
            return
        logger.info("Computing final decisions")
        decisions = {}
        for node in self.nodes:
            values = list(node.convinced)
            if len(values) == 1:
                decision = values[0]
            elif node.is_byzantine and values:
                view = PartyView(node.node_id, self.params.n, self.current_round,
                                 MappingProxyType(dict(node.convinced)), tuple(node.inbox))
                decision = self.strategies[node.node_id].decide(view, self._rng)
            else:
                decision = None
            node.decide(decision)
            decisions[node.node_id] = decision
            logger.info("Node %d%s decided %s (convinced of %s)", node.node_id,
                        " (Byzantine)" if node.is_byzantine else "",
                        "⊥" if decision is None else decision, sorted(values))
        self._decisions = decisions

    # --- snapshots ---
    def snapshot(self) -> RunSnapshot:
        if not self.initialized:
            raise OutOfSequenceError("snapshot() called before initialize()")
        return RunSnapshot(
            params=self.params,
            round=self.current_round,
            finalized=self.finalized,
            nodes=tuple(node.snapshot() for node in self.nodes),
            messages=self.messages,
            repair=self.repair,
        )

    def get_stats(self) -> Dict[str, object]:
        stats = self.network.get_stats() if self.network else {}
        stats['rounds_run'] = len(self.summaries)
        stats['forgeries_rejected'] = (self._round_zero_rejected
                                       + sum(s.forgeries_rejected for s in self.summaries))
        return stats


def run_protocol(params: Optional[RunParams] = None,
                 config: Optional[SimulatorConfig] = None,
                 strategies: Optional[Mapping[int, ByzantineStrategy]] = None
                 ) -> Tuple[RunSnapshot, List[RoundSummary]]:
    """Initialize a fresh engine and drive it to completion"""
    engine = ProtocolEngine(config=config, strategies=strategies)
    engine.initialize(params)
    summaries = []
    while not engine.finalized:
        summaries.append(engine.advance_round())
    return engine.snapshot(), summaries
