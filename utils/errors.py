"""
Error taxonomy for the private voting client.

Every failure the core can surface is a distinct class, so callers branch
on the kind of error rather than on message text. Each class carries a
short ``user_message`` that the status slot shows.
"""

from typing import Optional


class VoteSystemError(Exception):
    """Base error for the voting client"""
    user_message = "Operation failed"

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None):
        super().__init__(message or self.user_message)
        self.cause = cause

    def describe(self) -> str:
        detail = str(self)
        if detail and detail != self.user_message:
            return f"{self.user_message}: {detail}"
        return self.user_message


class WalletNotConnected(VoteSystemError):
    """No account is connected"""
    user_message = "Please connect your wallet first"


class OperationInProgress(VoteSystemError):
    """Another mutating operation is still active"""
    user_message = "Another transaction is still in progress"


# Coprocessor side


class EncryptionSessionUnavailable(VoteSystemError):
    """Encryption session is not ready or the coprocessor cannot be reached"""
    user_message = "Encryption system unavailable"


class DecryptionProtocolFailed(VoteSystemError):
    """Coprocessor failed to produce a decryption proof"""
    user_message = "Decryption failed"


# Ledger side


class LedgerError(VoteSystemError):
    """Base error for registry interactions"""
    user_message = "Ledger error"


class LedgerUnavailable(LedgerError):
    """Registry could not be read"""
    user_message = "Failed to load data"


class RecordNotFound(LedgerError):
    """No record stored under the requested id"""
    user_message = "Vote not found"


class SubmissionFailed(LedgerError):
    """Transaction was rejected on-chain"""
    user_message = "Submission failed"


class TransactionRejectedByUser(SubmissionFailed):
    """Signer declined to sign the transaction"""
    user_message = "Transaction cancelled by user"


class DuplicateId(SubmissionFailed):
    """A record with the same id already exists"""
    user_message = "A vote with this id already exists"


class AlreadyVerified(LedgerError):
    """Decryption was already verified on-chain"""
    user_message = "Data already verified on-chain"


class ConfirmationTimeout(LedgerError):
    """Transaction was not confirmed within the configured window"""
    user_message = "Timed out waiting for confirmation"


__all__ = [
    'VoteSystemError',
    'WalletNotConnected',
    'OperationInProgress',
    'EncryptionSessionUnavailable',
    'DecryptionProtocolFailed',
    'LedgerError',
    'LedgerUnavailable',
    'RecordNotFound',
    'SubmissionFailed',
    'TransactionRejectedByUser',
    'DuplicateId',
    'AlreadyVerified',
    'ConfirmationTimeout',
]
