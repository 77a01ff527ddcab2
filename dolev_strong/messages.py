# dolev_strong/messages.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict
import json
import hashlib

from .signatures import SignatureChain


class MessageType(Enum):
    INITIAL = "INITIAL"  # round-0 send from the sender
    ECHO = "ECHO"


@dataclass(frozen=True)
class Message:
    """A signed value in transit between two parties for one round"""
    value: int
    chain: SignatureChain
    source: int
    target: int
    round: int
    kind: MessageType = MessageType.ECHO

    @property
    def id(self) -> str:
        return f"r{self.round}-n{self.source}-to-n{self.target}-v{self.value}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary for serialization"""
        return {
            'id': self.id,
            'type': self.kind.value,
            'value': self.value,
            'signatures': self.chain.to_list(),
            'from': self.source,
            'to': self.target,
            'round': self.round,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def digest(self) -> str:
        """SHA-256 of the canonical JSON form"""
        return hashlib.sha256(self.to_json().encode()).hexdigest()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        return cls(
            value=data['value'],
            chain=SignatureChain.from_list(data['signatures']),
            source=data['from'],
            target=data['to'],
            round=data['round'],
            kind=MessageType(data.get('type', MessageType.ECHO.value)),
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'Message':
        """Deserialize from JSON"""
        return cls.from_dict(json.loads(json_str))

    def __str__(self):
        return f"({self.value}, {self.chain}) {self.source}->{self.target} @r{self.round}"
