"""
Proof-carrying public decryption.

The verifier asks the coprocessor to decrypt a set of handles, posts the
clear values and proof on-chain through a caller-supplied submission
callback, waits for the receipt and returns the clear values.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fhe.coprocessor import Coprocessor
from utils.errors import AlreadyVerified, DecryptionProtocolFailed

logger = logging.getLogger(__name__)

SubmitProof = Callable[[str, str], Awaitable[Any]]
StoredValues = Callable[[], Awaitable[Dict[str, int]]]
Confirm = Callable[[Any], Awaitable[Any]]


async def _wait_receipt(tx):
    return await tx.wait()


class DecryptionVerifier:

    def __init__(self, coprocessor: Coprocessor, confirm: Optional[Confirm] = None):
        self.coprocessor = coprocessor
        self._confirm = confirm or _wait_receipt

    async def verify(self, handles: List[str], contract_address: str,
                     submit: SubmitProof,
                     on_already_verified: Optional[StoredValues] = None) -> Dict[str, int]:
        """
        Decrypt handles and verify the result on-chain.

        If the ledger reports the target as already verified, the stored
        plaintext returned by ``on_already_verified`` is the result. Without
        that callback AlreadyVerified propagates.
        """
        if not handles:
            raise ValueError("At least one handle is required")

        try:
            proof = await self.coprocessor.request_decryption_proof(list(handles), contract_address)
        except OSError as e:
            raise DecryptionProtocolFailed(str(e), cause=e) from e

        missing = [h for h in handles if h not in proof.clear_values]
        if missing:
            raise DecryptionProtocolFailed(f"No clear value returned for {missing}")

        logger.info(f"Decryption proof obtained for {len(handles)} handle(s)")

        try:
            tx = await submit(proof.encoded_clear_values, proof.proof)
            await self._confirm(tx)
        except AlreadyVerified:
            if on_already_verified is None:
                raise
            logger.info("Target already verified on-chain, reading stored plaintext")
            return await on_already_verified()

        return {h: proof.clear_values[h] for h in handles}
