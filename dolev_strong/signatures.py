# dolev_strong/signatures.py
"""
Signature chains.

Signatures are abstracted as the ordered list of parties that endorsed a
value. Unforgeability is assumed, not computed: the engine checks chain
prefixes against what honest parties actually signed instead of hashing.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

from .exceptions import DuplicateSignerError, EmptyChainError

SENDER_ID = 0


@dataclass(frozen=True)
class SignatureChain:
    """Ordered, duplicate-free sequence of signer ids"""
    signers: Tuple[int, ...] = ()

    def __post_init__(self):
        signers = tuple(int(s) for s in self.signers)
        seen = set()
        for signer in signers:
            if signer in seen:
                raise DuplicateSignerError(signer, signers)
            seen.add(signer)
        object.__setattr__(self, 'signers', signers)

    @classmethod
    def of(cls, *signers: int) -> 'SignatureChain':
        return cls(tuple(signers))

    @classmethod
    def from_list(cls, signers: Iterable[int]) -> 'SignatureChain':
        return cls(tuple(signers))

    def extend(self, signer: int) -> 'SignatureChain':
        """Return a new chain with `signer` appended (copy-append)"""
        if signer in self.signers:
            raise DuplicateSignerError(signer, self.signers)
        return SignatureChain(self.signers + (signer,))

    def unique_signer_count(self) -> int:
        return len(set(self.signers))

    def first_signer(self) -> int:
        if not self.signers:
            raise EmptyChainError("Signature chain is empty")
        return self.signers[0]

    def is_sender_first(self) -> bool:
        """True if the designated sender signed first"""
        return bool(self.signers) and self.signers[0] == SENDER_ID

    def prefixes(self) -> Iterator['SignatureChain']:
        """Yield every leading sub-chain, shortest first"""
        for i in range(1, len(self.signers) + 1):
            yield SignatureChain(self.signers[:i])

    def to_list(self) -> List[int]:
        return list(self.signers)

    def __len__(self):
        return len(self.signers)

    def __iter__(self):
        return iter(self.signers)

    def __contains__(self, signer):
        return signer in self.signers

    def __str__(self):
        return "[" + ", ".join(str(s) for s in self.signers) + "]"
