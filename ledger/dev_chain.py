"""
In-process development chain hosting the vote registry.

Transactions are validated at broadcast (like gas estimation against the
current state), mined after ``block_time`` and re-validated at inclusion, so
a conflicting transaction that lands first reverts the later one.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Callable, Dict, List

from config.config import DEV_CONTRACT_ADDRESS
from fhe.coprocessor import LocalCoprocessor, handle_for
from ledger.registry import (
    PendingTransaction, RegistryContract, RegistryRecord, TransactionReceipt
)
from utils.errors import (
    AlreadyVerified, DuplicateId, LedgerError, LedgerUnavailable,
    RecordNotFound, SubmissionFailed
)
from utils.utils import abi_decode_uint256, compute_hash

logger = logging.getLogger(__name__)


@dataclass
class _StoredRecord:
    record: RegistryRecord
    handle: str


class DevChainRegistry(RegistryContract):
    """Vote registry on a single-node development chain"""

    def __init__(self, coprocessor: LocalCoprocessor,
                 address: str = DEV_CONTRACT_ADDRESS, block_time: float = 0.0):
        self.coprocessor = coprocessor
        self.address = address
        self.block_time = block_time

        self._records: Dict[str, _StoredRecord] = {}
        self._order: List[str] = []
        self._nonces: Dict[str, int] = defaultdict(int)
        self._unconfirmed: Dict[str, int] = defaultdict(int)

        self.available = True
        self.block_number = 0
        self.receipts: List[TransactionReceipt] = []
        # Highest number of simultaneously unconfirmed transactions per sender
        self.max_unconfirmed: Dict[str, int] = defaultdict(int)
        self.submissions: List[str] = []

    def _ensure_available(self):
        if not self.available:
            raise LedgerUnavailable(f"Registry {self.address} is not reachable")

    def _stored(self, record_id: str) -> _StoredRecord:
        stored = self._records.get(record_id)
        if stored is None:
            raise RecordNotFound(f"No record with id {record_id}")
        return stored

    # Read surface

    async def get_all_ids(self) -> List[str]:
        await asyncio.sleep(0)
        self._ensure_available()
        return list(self._order)

    async def get_record(self, record_id: str) -> RegistryRecord:
        await asyncio.sleep(0)
        self._ensure_available()
        return self._stored(record_id).record

    async def get_encrypted_handle(self, record_id: str) -> str:
        await asyncio.sleep(0)
        self._ensure_available()
        return self._stored(record_id).handle

    async def is_available(self) -> bool:
        await asyncio.sleep(0)
        self._ensure_available()
        return True

    # Write surface

    async def create_record(self, sender: str, record_id: str, title: str,
                            ciphertext: bytes, proof: bytes,
                            public_value1: int, public_value2: int,
                            metadata: str) -> PendingTransaction:
        self._ensure_available()

        def apply():
            if record_id in self._records:
                raise DuplicateId(f"Record {record_id} already exists")
            record = RegistryRecord(
                title=title,
                public_value1=public_value1,
                public_value2=public_value2,
                timestamp=int(time.time()),
                creator=sender,
                is_verified=False,
                decrypted_value=0,
                metadata=metadata,
            )
            self._records[record_id] = _StoredRecord(record, handle_for(ciphertext))
            self._order.append(record_id)

        if record_id in self._records:
            raise DuplicateId(f"Record {record_id} already exists")
        if not self.coprocessor.verify_input_proof(ciphertext, proof, self.address, sender):
            raise SubmissionFailed("Invalid input proof")

        return self._broadcast(sender, "createRecord", apply)

    async def submit_decryption_proof(self, sender: str, record_id: str,
                                      encoded_clear_values: str,
                                      proof: str) -> PendingTransaction:
        self._ensure_available()
        stored = self._stored(record_id)

        def apply():
            current = self._stored(record_id)
            if current.record.is_verified:
                raise AlreadyVerified(f"Data already verified for {record_id}")
            value = abi_decode_uint256(encoded_clear_values)[0]
            current.record = replace(current.record, is_verified=True, decrypted_value=value)

        if stored.record.is_verified:
            raise AlreadyVerified(f"Data already verified for {record_id}")
        if not self.coprocessor.verify_decryption_proof(
                [stored.handle], encoded_clear_values, proof):
            raise SubmissionFailed("Invalid decryption proof")

        return self._broadcast(sender, "verifyDecryption", apply)

    # Mining

    def _broadcast(self, sender: str, method: str, apply: Callable[[], None]) -> PendingTransaction:
        nonce = self._nonces[sender]
        self._nonces[sender] += 1

        tx_hash = "0x" + compute_hash(f"{sender}:{nonce}:{method}:{time.time_ns()}")
        tx = PendingTransaction(tx_hash, sender, nonce)

        self._unconfirmed[sender] += 1
        self.max_unconfirmed[sender] = max(
            self.max_unconfirmed[sender], self._unconfirmed[sender])
        self.submissions.append(method)

        logger.debug(f"Broadcast {method} from {sender} nonce={nonce}")
        asyncio.get_running_loop().create_task(self._mine(tx, apply))
        return tx

    async def _mine(self, tx: PendingTransaction, apply: Callable[[], None]):
        try:
            await asyncio.sleep(self.block_time)
            self.block_number += 1
            apply()
            receipt = TransactionReceipt(
                tx_hash=tx.tx_hash,
                sender=tx.sender,
                nonce=tx.nonce,
                block_number=self.block_number,
            )
            self.receipts.append(receipt)
            tx.resolve(receipt)
        except LedgerError as e:
            logger.debug(f"Transaction {tx.tx_hash[:12]} reverted: {e}")
            tx.reject(e)
        finally:
            self._unconfirmed[tx.sender] -= 1
