# dolev_strong/__init__.py
"""
Dolev-Strong Byzantine Broadcast Simulator

This package implements the synchronous Dolev-Strong protocol with:
- Signature chains abstracted as ordered signer ids
- Round 0 broadcast followed by f+1 conviction/echo rounds
- Pluggable Byzantine strategies (equivocation, silence, replay)
- Termination, Agreement and Validity verification
"""

__version__ = "1.0.0"

from .signatures import SignatureChain
from .messages import Message, MessageType
from .node import NodeState, NodeSnapshot
from .network import SynchronousNetwork
from .adversary import (ByzantineStrategy, EchoPlan, PartyView, EchoConvinced,
                        Equivocate, Silent, Replay, build_strategy)
from .consensus import ProtocolEngine, RoundSummary, RunHandle, RunSnapshot, run_protocol
from .verifier import PropertyVerifier, PropertyStatus, PropertyResult, PropertyReport, verify
from .config import RunParams, ByzantineRepair, SimulatorConfig, load_config, setup_logging
from .exceptions import (DolevStrongError, InvalidConfigError, OutOfSequenceError,
                         NotYetTerminatedError, DuplicateSignerError, EmptyChainError,
                         IncompleteRunError)

__all__ = [
    'SignatureChain',
    'Message',
    'MessageType',
    'NodeState',
    'NodeSnapshot',
    'SynchronousNetwork',
    'ByzantineStrategy',
    'EchoPlan',
    'PartyView',
    'EchoConvinced',
    'Equivocate',
    'Silent',
    'Replay',
    'build_strategy',
    'ProtocolEngine',
    'RoundSummary',
    'RunHandle',
    'RunSnapshot',
    'run_protocol',
    'PropertyVerifier',
    'PropertyStatus',
    'PropertyResult',
    'PropertyReport',
    'verify',
    'RunParams',
    'ByzantineRepair',
    'SimulatorConfig',
    'load_config',
    'setup_logging',
    'DolevStrongError',
    'InvalidConfigError',
    'OutOfSequenceError',
    'NotYetTerminatedError',
    'DuplicateSignerError',
    'EmptyChainError',
    'IncompleteRunError',
]
