#!/usr/bin/env python3
"""
Private Voting Client
=====================
Wires the encryption session, registry bindings, decryption verifier,
vote repository and status slot into one lifecycle controller.

Without explicit collaborators the system runs against the in-process
development coprocessor and development chain.
"""

import logging
from typing import Any, Dict, Optional

from config.config import SystemConfig
from fhe.coprocessor import Coprocessor, LocalCoprocessor
from fhe.decryption import DecryptionVerifier
from fhe.fhe_client import EncryptionClient
from ledger.dev_chain import DevChainRegistry
from ledger.ledger_gateway import LedgerGateway
from ledger.registry import RegistryContract
from ledger.wallet import LocalSigner, WalletConnection
from lifecycle.controller import VoteLifecycleController
from lifecycle.status_tracker import TransactionStatusTracker
from lifecycle.vote_repository import VoteRepository
from utils.utils import PerformanceMonitor, create_performance_report

logger = logging.getLogger(__name__)


class PrivateVotingSystem:

    def __init__(self, config: Optional[SystemConfig] = None,
                 coprocessor: Optional[Coprocessor] = None,
                 registry: Optional[RegistryContract] = None):
        self.config = config or SystemConfig()

        self.coprocessor = coprocessor or LocalCoprocessor(self.config.fhe_config)
        if registry is None:
            registry = DevChainRegistry(
                self.coprocessor,
                address=self.config.ledger_config.contract_address,
                block_time=self.config.ledger_config.block_time,
            )
        self.registry = registry

        self.wallet = WalletConnection()
        self.encryption = EncryptionClient(self.coprocessor)
        self.gateway = LedgerGateway(self.registry, self.config.ledger_config)
        self.verifier = DecryptionVerifier(
            self.coprocessor, confirm=self.gateway.wait_for_confirmation)
        self.repository = VoteRepository(self.gateway)
        self.status = TransactionStatusTracker(self.config.status_config)
        self.performance_monitor = PerformanceMonitor()

        self.controller = VoteLifecycleController(
            config=self.config,
            wallet=self.wallet,
            encryption=self.encryption,
            gateway=self.gateway,
            verifier=self.verifier,
            repository=self.repository,
            status=self.status,
            monitor=self.performance_monitor,
        )

        self.wallet.on_change(self._on_account_change)
        logger.info(f"Private voting system ready (registry {self.registry.address})")

    def _on_account_change(self, account: Optional[str]):
        if account is None or (self.encryption.account and
                               self.encryption.account.lower() != account.lower()):
            self.encryption.teardown()

    async def connect_wallet(self, signer: LocalSigner) -> bool:
        """Connect, open the encryption session and load the vote list"""
        self.wallet.connect(signer)
        initialized = await self.controller.initialize_session()
        await self.controller.refresh()
        return initialized

    def disconnect_wallet(self):
        self.wallet.disconnect()

    def performance_report(self) -> str:
        return create_performance_report(self.performance_monitor)

    def get_system_metrics(self) -> Dict[str, Any]:
        stats = self.repository.stats()
        metrics = {
            'contract_address': self.gateway.contract_address,
            'connected_account': self.wallet.address,
            'session_state': self.encryption.state.value,
            'total_votes': stats.total_votes,
            'verified_votes': stats.verified_votes,
            'today_votes': stats.today_votes,
            'performance': self.performance_monitor.get_summary(),
        }
        if isinstance(self.registry, DevChainRegistry):
            metrics['block_number'] = self.registry.block_number
            metrics['max_unconfirmed_per_sender'] = dict(self.registry.max_unconfirmed)
        return metrics
