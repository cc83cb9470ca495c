"""
Signers and wallet connection state.
"""

import asyncio
import inspect
import logging
from typing import Callable, List, Optional, Union, Awaitable

from utils.errors import TransactionRejectedByUser

logger = logging.getLogger(__name__)

Approval = Callable[[str], Union[bool, Awaitable[bool]]]


class LocalSigner:
    """
    Account that signs transactions for the connected user.

    ``approve`` receives a short description of the transaction and returns
    whether the user accepts it (sync or async). Without it every request is
    approved.
    """

    def __init__(self, address: str, approve: Optional[Approval] = None):
        self.address = address
        self._approve = approve
        self.signed = 0

    async def authorize(self, description: str):
        approved = True
        if self._approve is not None:
            approved = self._approve(description)
            if inspect.isawaitable(approved):
                approved = await approved

        if not approved:
            logger.info(f"{self.address} rejected transaction: {description}")
            raise TransactionRejectedByUser(f"User rejected transaction: {description}")

        self.signed += 1
        await asyncio.sleep(0)


class WalletConnection:
    """Currently connected signer, with change notifications"""

    def __init__(self):
        self.signer: Optional[LocalSigner] = None
        self._listeners: List[Callable[[Optional[str]], None]] = []

    @property
    def is_connected(self) -> bool:
        return self.signer is not None

    @property
    def address(self) -> Optional[str]:
        return self.signer.address if self.signer else None

    def on_change(self, listener: Callable[[Optional[str]], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def connect(self, signer: LocalSigner):
        if self.signer is not None and self.signer.address != signer.address:
            self.disconnect()
        self.signer = signer
        logger.info(f"Wallet connected: {signer.address}")
        self._notify()

    def disconnect(self):
        if self.signer is None:
            return
        logger.info(f"Wallet disconnected: {self.signer.address}")
        self.signer = None
        self._notify()

    def _notify(self):
        for listener in list(self._listeners):
            listener(self.address)
