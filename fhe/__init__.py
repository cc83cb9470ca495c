"""Client-side FHE: encryption session, coprocessor access, proof-carrying decryption."""

from .coprocessor import (
    Coprocessor,
    LocalCoprocessor,
    EncryptedInput,
    DecryptionProof,
    handle_for,
)
from .fhe_client import EncryptionClient, SessionState
from .decryption import DecryptionVerifier

__all__ = [
    'Coprocessor',
    'LocalCoprocessor',
    'EncryptedInput',
    'DecryptionProof',
    'handle_for',
    'EncryptionClient',
    'SessionState',
    'DecryptionVerifier',
]
