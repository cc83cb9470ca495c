"""
Client-side encryption session
Produces ciphertext + proof for a plaintext bound to (contract, account)
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from fhe.coprocessor import Coprocessor, EncryptedInput
from utils.errors import EncryptionSessionUnavailable

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class EncryptionClient:
    """
    One encryption session per process, keyed by the connected account.

    initialize() is idempotent and guarded so concurrent callers never start
    a second coprocessor handshake. teardown() drops the session when the
    wallet disconnects.
    """

    def __init__(self, coprocessor: Coprocessor):
        self.coprocessor = coprocessor
        self.state = SessionState.UNINITIALIZED
        self.account: Optional[str] = None
        self._busy = False
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._busy

    def is_ready_for(self, account: str) -> bool:
        return (self.state == SessionState.READY and
                self.account is not None and
                self.account.lower() == account.lower())

    async def initialize(self, account: str):
        if self.is_ready_for(account):
            return

        async with self._lock:
            if self.is_ready_for(account):
                return

            generation = self._generation
            self._busy = True
            self.state = SessionState.INITIALIZING
            logger.info(f"Initializing encryption session for {account}")

            try:
                await self.coprocessor.initialize_session(account)
            except EncryptionSessionUnavailable:
                self.state = SessionState.UNINITIALIZED
                raise
            except OSError as e:
                self.state = SessionState.UNINITIALIZED
                raise EncryptionSessionUnavailable(str(e), cause=e) from e
            finally:
                self._busy = False

            if generation != self._generation:
                # Torn down while the handshake was in flight
                self.state = SessionState.UNINITIALIZED
                raise EncryptionSessionUnavailable(
                    "Session was torn down during initialization")

            self.account = account
            self.state = SessionState.READY
            logger.info(f"Encryption session ready for {account}")

    def teardown(self):
        if self.state != SessionState.UNINITIALIZED:
            logger.info(f"Tearing down encryption session for {self.account}")
        self._generation += 1
        self.state = SessionState.UNINITIALIZED
        self.account = None

    async def encrypt(self, contract_address: str, account: str, value: int) -> EncryptedInput:
        if not self.is_ready_for(account):
            raise EncryptionSessionUnavailable(
                f"Encryption session is {self.state.value} for {account}")

        try:
            return await self.coprocessor.encrypt(contract_address, account, value)
        except OSError as e:
            raise EncryptionSessionUnavailable(str(e), cause=e) from e
