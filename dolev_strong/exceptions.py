# dolev_strong/exceptions.py
"""
Error taxonomy for the Dolev-Strong simulator.

Chain errors (DuplicateSignerError, EmptyChainError) signal misuse of the
engine internals and are not meant to be recovered from.
"""


class DolevStrongError(Exception):
    """Base class for all simulator errors"""


class InvalidConfigError(DolevStrongError, ValueError):
    """Malformed run parameters (n/f relationship, Byzantine id range)"""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [message])


class OutOfSequenceError(DolevStrongError):
    """Round API called before initialize() or after the last round"""


class NotYetTerminatedError(DolevStrongError):
    """finalize() called before all f+1 rounds have run"""


class DuplicateSignerError(DolevStrongError):
    """A signer id appears twice in a signature chain"""

    def __init__(self, signer: int, chain=()):
        super().__init__(f"Party {signer} already signed chain {list(chain)}")
        self.signer = signer
        self.chain = tuple(chain)


class EmptyChainError(DolevStrongError):
    """First signer requested from a chain nobody signed"""


class IncompleteRunError(DolevStrongError):
    """Verifier handed a missing or inconsistent run snapshot"""
