"""
Vote registry contract surface and transaction primitives.
"""

import abc
import asyncio
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class RegistryRecord:
    """Record as stored by the registry contract"""
    title: str
    public_value1: int
    public_value2: int
    timestamp: int
    creator: str
    is_verified: bool
    decrypted_value: int
    metadata: str = ""


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    sender: str
    nonce: int
    block_number: int


class PendingTransaction:
    """Broadcast transaction awaiting inclusion"""

    def __init__(self, tx_hash: str, sender: str, nonce: int):
        self.tx_hash = tx_hash
        self.sender = sender
        self.nonce = nonce
        self._receipt: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def confirmed(self) -> bool:
        return self._receipt.done() and not self._receipt.cancelled() \
            and self._receipt.exception() is None

    def resolve(self, receipt: TransactionReceipt):
        if not self._receipt.done():
            self._receipt.set_result(receipt)

    def reject(self, error: BaseException):
        if not self._receipt.done():
            self._receipt.set_exception(error)

    async def wait(self) -> TransactionReceipt:
        # Shielded so a caller-side timeout does not cancel the transaction itself
        return await asyncio.shield(self._receipt)

    def __repr__(self):
        return f"PendingTransaction({self.tx_hash[:12]}..., nonce={self.nonce})"


class RegistryContract(abc.ABC):
    """Read and write surface of the on-chain vote registry"""

    address: str

    @abc.abstractmethod
    async def get_all_ids(self) -> List[str]:
        ...

    @abc.abstractmethod
    async def get_record(self, record_id: str) -> RegistryRecord:
        ...

    @abc.abstractmethod
    async def get_encrypted_handle(self, record_id: str) -> str:
        ...

    @abc.abstractmethod
    async def is_available(self) -> bool:
        ...

    @abc.abstractmethod
    async def create_record(self, sender: str, record_id: str, title: str,
                            ciphertext: bytes, proof: bytes,
                            public_value1: int, public_value2: int,
                            metadata: str) -> PendingTransaction:
        ...

    @abc.abstractmethod
    async def submit_decryption_proof(self, sender: str, record_id: str,
                                      encoded_clear_values: str,
                                      proof: str) -> PendingTransaction:
        ...
