"""
Coprocessor interface and local development coprocessor
========================================================
The coprocessor is the external service that encrypts client values bound to
a (contract, account) pair and produces proofs for public decryption of
handles stored on the ledger.

LocalCoprocessor runs in-process so the client can be exercised end to end:
- Ciphertexts: AES-256-GCM, associated data binds contract and account
- Input proofs and decryption proofs: Ed25519 signatures
- Handles: 0x-prefixed SHA-256 of the ciphertext
- Clear values: ABI-encoded uint256 words
"""

import abc
import asyncio
import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from config.config import FHEConfig
from utils.errors import DecryptionProtocolFailed, EncryptionSessionUnavailable
from utils.utils import abi_encode_uint256, abi_decode_uint256

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
MAX_PLAINTEXT = (1 << 64) - 1  # euint64


def handle_for(ciphertext: bytes) -> str:
    """Ledger reference for a ciphertext"""
    return "0x" + hashlib.sha256(ciphertext).hexdigest()


def _binding(contract_address: str, account: str) -> bytes:
    return f"{contract_address.lower()}:{account.lower()}".encode()


def _decryption_message(handles: List[str], encoded_clear_values: str) -> bytes:
    return b"decrypt|" + "|".join(handles).encode() + b"|" + encoded_clear_values.encode()


@dataclass(frozen=True)
class EncryptedInput:
    """Ciphertext plus the proof that it was produced for (contract, account)"""
    ciphertext: bytes
    proof: bytes

    @property
    def handle(self) -> str:
        return handle_for(self.ciphertext)


@dataclass(frozen=True)
class DecryptionProof:
    clear_values: Dict[str, int]
    encoded_clear_values: str
    proof: str


class Coprocessor(abc.ABC):
    """Operations the client consumes from the coprocessor"""

    @abc.abstractmethod
    async def initialize_session(self, account: str) -> None:
        ...

    @abc.abstractmethod
    async def encrypt(self, contract_address: str, account: str, value: int) -> EncryptedInput:
        ...

    @abc.abstractmethod
    async def request_decryption_proof(self, handles: List[str], contract_address: str) -> DecryptionProof:
        ...


class LocalCoprocessor(Coprocessor):
    """In-process coprocessor backed by AES-GCM and Ed25519"""

    def __init__(self, config: Optional[FHEConfig] = None):
        self.config = config or FHEConfig()
        seed = (self.config.key_seed.encode() if self.config.key_seed
                else secrets.token_bytes(32))

        key_material = HKDF(
            algorithm=hashes.SHA256(),
            length=64,
            salt=None,
            info=b"private-voting-coprocessor-v1",
        ).derive(seed)

        self._aead = AESGCM(key_material[:32])
        self._signing_key = Ed25519PrivateKey.from_private_bytes(key_material[32:])
        self.verification_key: Ed25519PublicKey = self._signing_key.public_key()

        # handle -> (ciphertext, contract_address, account)
        self._ciphertexts: Dict[str, Tuple[bytes, str, str]] = {}
        self._sessions = set()

        self.available = True
        self.session_inits = 0
        self.encrypt_calls = 0
        self.decryption_requests = 0

        logger.info(f"Local coprocessor ready ({self.config.coprocessor_url})")

    async def initialize_session(self, account: str) -> None:
        await asyncio.sleep(self.config.latency)
        if not self.available:
            raise EncryptionSessionUnavailable(
                f"Coprocessor at {self.config.coprocessor_url} is unreachable")

        self.session_inits += 1
        self._sessions.add(account.lower())
        logger.debug(f"Coprocessor session opened for {account}")

    async def encrypt(self, contract_address: str, account: str, value: int) -> EncryptedInput:
        await asyncio.sleep(self.config.latency)
        if not self.available:
            raise EncryptionSessionUnavailable("Coprocessor is unreachable")
        if account.lower() not in self._sessions:
            raise EncryptionSessionUnavailable(f"No coprocessor session for {account}")
        if not 0 <= value <= MAX_PLAINTEXT:
            raise ValueError(f"Plaintext {value} is outside the euint64 range")

        self.encrypt_calls += 1

        nonce = secrets.token_bytes(NONCE_SIZE)
        ciphertext = nonce + self._aead.encrypt(
            nonce, value.to_bytes(8, "big"), _binding(contract_address, account))
        handle = handle_for(ciphertext)
        self._ciphertexts[handle] = (ciphertext, contract_address, account)

        proof = self._signing_key.sign(
            b"input|" + _binding(contract_address, account) + b"|" + handle.encode())

        return EncryptedInput(ciphertext=ciphertext, proof=proof)

    async def request_decryption_proof(self, handles: List[str], contract_address: str) -> DecryptionProof:
        await asyncio.sleep(self.config.decryption_latency)
        if not self.available:
            raise DecryptionProtocolFailed("Coprocessor is unreachable")

        self.decryption_requests += 1

        clear_values: Dict[str, int] = {}
        for handle in handles:
            stored = self._ciphertexts.get(handle)
            if stored is None:
                raise DecryptionProtocolFailed(f"Unknown handle {handle}")

            ciphertext, bound_contract, account = stored
            if bound_contract.lower() != contract_address.lower():
                raise DecryptionProtocolFailed(
                    f"Handle {handle} is not bound to contract {contract_address}")

            try:
                plaintext = self._aead.decrypt(
                    ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:],
                    _binding(bound_contract, account))
            except InvalidTag as e:
                raise DecryptionProtocolFailed(
                    f"Ciphertext for {handle} failed authentication", cause=e) from e

            clear_values[handle] = int.from_bytes(plaintext, "big")

        encoded = abi_encode_uint256([clear_values[h] for h in handles])
        signature = self._signing_key.sign(_decryption_message(handles, encoded))

        return DecryptionProof(
            clear_values=clear_values,
            encoded_clear_values=encoded,
            proof="0x" + signature.hex(),
        )

    # Ledger-side checks, used by the registry to validate submissions

    def verify_input_proof(self, ciphertext: bytes, proof: bytes,
                           contract_address: str, account: str) -> bool:
        message = (b"input|" + _binding(contract_address, account) +
                   b"|" + handle_for(ciphertext).encode())
        try:
            self.verification_key.verify(proof, message)
            return True
        except InvalidSignature:
            return False

    def verify_decryption_proof(self, handles: List[str], encoded_clear_values: str,
                                proof: str) -> bool:
        try:
            signature = bytes.fromhex(proof[2:] if proof.startswith("0x") else proof)
            self.verification_key.verify(
                signature, _decryption_message(handles, encoded_clear_values))
        except (InvalidSignature, ValueError):
            return False

        try:
            return len(abi_decode_uint256(encoded_clear_values)) == len(handles)
        except ValueError:
            return False
