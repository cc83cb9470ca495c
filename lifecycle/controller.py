"""
Vote lifecycle controller
=========================
Sole entry point for mutation. Orchestrates the two pipelines:

Create:  Idle -> Encrypting -> AwaitingSignature -> Submitted -> Confirmed
Decrypt: Idle -> CheckingState -> (ShortCircuitVerified | RequestingProof
         -> SubmittingProof) -> Confirmed

Any non-terminal stage may end in Failed. At most one mutating pipeline
runs at a time; a second call is rejected with OperationInProgress, since
both pipelines write the single status slot and spend the signer's nonces.
Failures are reported through the status slot and leave the vote list
untouched. Nothing is retried automatically.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from config.config import SystemConfig
from fhe.decryption import DecryptionVerifier
from fhe.fhe_client import EncryptionClient
from ledger.ledger_gateway import LedgerGateway, SignedLedgerGateway, VoteRecord, encode_options
from ledger.wallet import WalletConnection
from lifecycle.status_tracker import TransactionStatus, TransactionStatusTracker
from lifecycle.vote_repository import VoteRepository
from utils.errors import (
    EncryptionSessionUnavailable, LedgerUnavailable, OperationInProgress,
    VoteSystemError, WalletNotConnected
)
from utils.utils import PerformanceMonitor, generate_vote_id

logger = logging.getLogger(__name__)


class CreateStage(Enum):
    IDLE = "idle"
    ENCRYPTING = "encrypting"
    AWAITING_SIGNATURE = "awaiting_signature"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class DecryptStage(Enum):
    IDLE = "idle"
    CHECKING_STATE = "checking_state"
    SHORT_CIRCUIT_VERIFIED = "short_circuit_verified"
    REQUESTING_PROOF = "requesting_proof"
    SUBMITTING_PROOF = "submitting_proof"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class VoteLifecycleController:

    def __init__(self, config: SystemConfig,
                 wallet: WalletConnection,
                 encryption: EncryptionClient,
                 gateway: LedgerGateway,
                 verifier: DecryptionVerifier,
                 repository: VoteRepository,
                 status: TransactionStatusTracker,
                 monitor: Optional[PerformanceMonitor] = None):
        self.config = config
        self.wallet = wallet
        self.encryption = encryption
        self.gateway = gateway
        self.verifier = verifier
        self.repository = repository
        self.status = status
        self.monitor = monitor or PerformanceMonitor()

        self._busy = False
        self.stage: Optional[Enum] = None
        self.stage_history: List[Enum] = []
        self.last_error: Optional[BaseException] = None

    # Presentation-facing state

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def votes(self) -> Tuple[VoteRecord, ...]:
        return self.repository.votes

    @property
    def transaction_status(self) -> TransactionStatus:
        return self.status.current

    # Pipeline bookkeeping

    def _acquire(self, operation: str):
        if self._busy:
            logger.warning(f"Rejected {operation}: another operation is in flight")
            raise OperationInProgress(f"Cannot {operation} while another operation is active")
        self._busy = True
        self.stage_history = []
        self.last_error = None

    def _enter(self, stage: Enum):
        self.stage = stage
        self.stage_history.append(stage)
        logger.info(f"Pipeline stage -> {stage.name}")

    def _fail(self, failed_stage: Enum, error: BaseException, prefix: str = "Submission failed"):
        self.last_error = error
        self._enter(failed_stage)
        if isinstance(error, VoteSystemError):
            message = error.describe()
        elif isinstance(error, ValueError):
            # Rejected client-side, nothing reached the ledger
            message = f"Invalid input: {error}"
        else:
            message = f"{prefix}: {error or 'unknown error'}"
        logger.error(f"Operation failed: {message}")
        self.status.error(message)

    def _require_signer(self):
        if not self.wallet.is_connected:
            raise WalletNotConnected()
        return self.wallet.signer

    def _writer(self) -> SignedLedgerGateway:
        return self.gateway.bind_signer(self._require_signer())

    async def _refresh_after_confirmation(self):
        try:
            await self.repository.refresh()
        except LedgerUnavailable as e:
            # The transaction is confirmed; a stale list is fixed by the next refresh
            logger.warning(f"Refresh after confirmation failed: {e}")

    # Session

    async def initialize_session(self) -> bool:
        """Open the encryption session for the connected account"""
        if not self.wallet.is_connected:
            return False
        try:
            await self.encryption.initialize(self.wallet.address)
            return True
        except EncryptionSessionUnavailable as e:
            logger.error(f"Encryption initialization failed: {e}")
            self.last_error = e
            self.status.error("Encryption system initialization failed")
            return False

    # Read-only operations

    async def refresh(self) -> bool:
        try:
            await self.repository.refresh()
            return True
        except LedgerUnavailable as e:
            logger.error(f"Failed to load votes: {e}")
            self.status.error(e.user_message)
            return False

    async def check_availability(self) -> bool:
        try:
            available = await self.gateway.is_registry_available()
        except LedgerUnavailable as e:
            logger.error(f"Availability check failed: {e}")
            self.status.error("Availability check failed")
            return False

        if available:
            self.status.success("Contract availability check passed!")
        else:
            self.status.error("Contract reported unavailable")
        return available

    # Create-vote pipeline

    async def create(self, title: str, option1: str, option2: str, option3: str,
                     value: Optional[int] = None) -> Optional[str]:
        """Encrypt and submit a new vote; returns its id, or None on failure"""
        self._acquire("create a vote")
        try:
            with self.monitor.start_operation("create_vote"):
                return await self._run_create(title, option1, option2, option3, value)
        finally:
            self._busy = False

    async def _run_create(self, title, option1, option2, option3, value) -> Optional[str]:
        self._enter(CreateStage.IDLE)
        value = self.config.default_vote_value if value is None else value

        try:
            signer = self._require_signer()
            title = (title or "").strip()
            if not title:
                raise ValueError("Title is required")

            self.status.pending("Creating encrypted vote...")
            self._enter(CreateStage.ENCRYPTING)
            await self.encryption.initialize(signer.address)
            encrypted = await self.encryption.encrypt(
                self.gateway.contract_address, signer.address, value)

            self._enter(CreateStage.AWAITING_SIGNATURE)
            vote_id = generate_vote_id(self.config.id_prefix)
            tx = await self._writer().submit_vote(
                vote_id, title, encrypted.ciphertext, encrypted.proof,
                0, 0, encode_options(option1, option2, option3))

            self._enter(CreateStage.SUBMITTED)
            self.status.pending("Waiting for transaction confirmation...")
            await self.gateway.wait_for_confirmation(tx)
        except (VoteSystemError, ValueError) as e:
            self._fail(CreateStage.FAILED, e)
            return None
        except Exception as e:
            self._fail(CreateStage.FAILED, e)
            raise

        # Confirmed on-chain from here on
        self._enter(CreateStage.CONFIRMED)
        self.status.success("Vote created successfully!")
        await self._refresh_after_confirmation()
        return vote_id

    # Decrypt-verify pipeline

    async def decrypt(self, vote_id: str) -> Optional[int]:
        """Return the verified plaintext of a vote, or None on failure"""
        self._acquire("decrypt a vote")
        try:
            with self.monitor.start_operation("decrypt_vote"):
                return await self._run_decrypt(vote_id)
        finally:
            self._busy = False

    async def _run_decrypt(self, vote_id: str) -> Optional[int]:
        self._enter(DecryptStage.IDLE)
        already_verified = False

        try:
            self._require_signer()

            self._enter(DecryptStage.CHECKING_STATE)
            record = await self.gateway.get_record(vote_id)
            handle = record.encrypted_handle

            if record.is_verified:
                clear_values = {handle: record.decrypted_value}
            else:
                self.status.pending("Requesting decryption proof...")
                self._enter(DecryptStage.REQUESTING_PROOF)
                writer = self._writer()

                async def submit(encoded_clear_values: str, proof: str):
                    self._enter(DecryptStage.SUBMITTING_PROOF)
                    self.status.pending("Verifying decryption on-chain...")
                    return await writer.submit_decryption_proof(
                        vote_id, encoded_clear_values, proof)

                async def stored_values() -> Dict[str, int]:
                    nonlocal already_verified
                    already_verified = True
                    current = await self.gateway.get_record(vote_id)
                    return {handle: current.decrypted_value}

                clear_values = await self.verifier.verify(
                    [handle], self.gateway.contract_address, submit,
                    on_already_verified=stored_values)
        except (VoteSystemError, ValueError) as e:
            self._fail(DecryptStage.FAILED, e, "Decryption failed")
            return None
        except Exception as e:
            self._fail(DecryptStage.FAILED, e, "Decryption failed")
            raise

        if record.is_verified:
            # No coprocessor call, no submission
            self._enter(DecryptStage.SHORT_CIRCUIT_VERIFIED)
            self.status.success("Data already verified on-chain")
        else:
            self._enter(DecryptStage.CONFIRMED)
            if already_verified:
                self.status.success("Data already verified on-chain")
            else:
                self.status.success("Decryption verified successfully!")

        await self._refresh_after_confirmation()
        return clear_values.get(handle)
