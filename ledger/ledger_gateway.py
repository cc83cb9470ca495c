"""
Bindings to the vote registry.

LedgerGateway is the read surface: no signing key, safe to call
concurrently. SignedLedgerGateway adds the signer-bound write surface.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from config.config import LedgerConfig
from ledger.registry import PendingTransaction, RegistryContract, RegistryRecord, TransactionReceipt
from ledger.wallet import LocalSigner
from utils.errors import ConfirmationTimeout, LedgerError, LedgerUnavailable

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = ("Option A", "Option B", "Option C")


@dataclass(frozen=True)
class VoteRecord:
    id: str
    title: str
    option1: str
    option2: str
    option3: str
    creator: str
    timestamp: int
    public_value1: int
    public_value2: int
    encrypted_handle: str
    is_verified: bool
    # None unless is_verified
    decrypted_value: Optional[int] = None

    @property
    def options(self) -> Tuple[str, str, str]:
        return (self.option1, self.option2, self.option3)


def encode_options(option1: str, option2: str, option3: str) -> str:
    return json.dumps({"options": [option1, option2, option3]})


def decode_options(metadata: str) -> Tuple[str, str, str]:
    """Option labels from record metadata, defaults if absent or malformed"""
    if not metadata:
        return DEFAULT_OPTIONS
    try:
        options = json.loads(metadata).get("options")
    except (ValueError, AttributeError):
        return DEFAULT_OPTIONS
    if not isinstance(options, list) or len(options) != 3 \
            or not all(isinstance(o, str) for o in options):
        return DEFAULT_OPTIONS
    return tuple(options)


def to_vote_record(vote_id: str, raw: RegistryRecord, handle: str) -> VoteRecord:
    option1, option2, option3 = decode_options(raw.metadata)
    return VoteRecord(
        id=vote_id,
        title=raw.title,
        option1=option1,
        option2=option2,
        option3=option3,
        creator=raw.creator,
        timestamp=int(raw.timestamp),
        public_value1=int(raw.public_value1 or 0),
        public_value2=int(raw.public_value2 or 0),
        encrypted_handle=handle,
        is_verified=bool(raw.is_verified),
        decrypted_value=int(raw.decrypted_value) if raw.is_verified else None,
    )


class LedgerGateway:
    """Read-only registry access"""

    def __init__(self, registry: RegistryContract, config: Optional[LedgerConfig] = None):
        self.registry = registry
        self.config = config or LedgerConfig(contract_address=registry.address)
        self._read_slots = asyncio.Semaphore(self.config.max_concurrent_reads)

    @property
    def contract_address(self) -> str:
        return self.registry.address

    async def list_vote_ids(self) -> List[str]:
        try:
            return list(await self.registry.get_all_ids())
        except LedgerUnavailable:
            raise
        except (LedgerError, OSError) as e:
            raise LedgerUnavailable(f"Could not list ids: {e}", cause=e) from e

    async def get_record(self, vote_id: str) -> VoteRecord:
        async with self._read_slots:
            raw, handle = await asyncio.gather(
                self.registry.get_record(vote_id),
                self.registry.get_encrypted_handle(vote_id),
            )
        return to_vote_record(vote_id, raw, handle)

    async def get_encrypted_handle(self, vote_id: str) -> str:
        return await self.registry.get_encrypted_handle(vote_id)

    async def is_registry_available(self) -> bool:
        try:
            return bool(await self.registry.is_available())
        except (LedgerError, OSError) as e:
            raise LedgerUnavailable(f"Availability check failed: {e}", cause=e) from e

    async def list_records(self, vote_ids: Optional[Sequence[str]] = None) -> List[VoteRecord]:
        """
        Fetch every record concurrently.

        A record that fails to load is logged and left out; its siblings are
        unaffected. Only a failure to list the ids fails the call.
        """
        if vote_ids is None:
            vote_ids = await self.list_vote_ids()

        results = await asyncio.gather(
            *(self.get_record(vote_id) for vote_id in vote_ids),
            return_exceptions=True,
        )

        records = []
        for vote_id, result in zip(vote_ids, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"Skipping vote {vote_id}: {result}")
                continue
            records.append(result)

        if len(records) < len(vote_ids):
            logger.info(f"Loaded {len(records)}/{len(vote_ids)} votes")
        return records

    async def wait_for_confirmation(self, tx: PendingTransaction) -> TransactionReceipt:
        timeout = self.config.confirmation_timeout
        try:
            receipt = await asyncio.wait_for(tx.wait(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ConfirmationTimeout(
                f"{tx.tx_hash} not confirmed after {timeout:.1f}s", cause=e) from e
        logger.info(f"Transaction {tx.tx_hash[:12]} confirmed in block {receipt.block_number}")
        return receipt

    def bind_signer(self, signer: LocalSigner) -> 'SignedLedgerGateway':
        return SignedLedgerGateway(self.registry, signer, self.config)


class SignedLedgerGateway(LedgerGateway):
    """Registry access bound to a signer"""

    def __init__(self, registry: RegistryContract, signer: LocalSigner,
                 config: Optional[LedgerConfig] = None):
        super().__init__(registry, config)
        self.signer = signer

    async def submit_vote(self, vote_id: str, title: str, ciphertext: bytes, proof: bytes,
                          public_value1: int, public_value2: int,
                          metadata: str) -> PendingTransaction:
        await self.signer.authorize(f"createRecord({vote_id})")
        tx = await self.registry.create_record(
            self.signer.address, vote_id, title, ciphertext, proof,
            public_value1, public_value2, metadata)
        logger.info(f"Submitted vote {vote_id} as {tx.tx_hash[:12]}")
        return tx

    async def submit_decryption_proof(self, vote_id: str, encoded_clear_values: str,
                                      proof: str) -> PendingTransaction:
        await self.signer.authorize(f"verifyDecryption({vote_id})")
        tx = await self.registry.submit_decryption_proof(
            self.signer.address, vote_id, encoded_clear_values, proof)
        logger.info(f"Submitted decryption proof for {vote_id} as {tx.tx_hash[:12]}")
        return tx
