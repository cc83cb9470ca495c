"""Utilities for the private voting client."""

from .utils import (
    setup_logging,
    save_results,
    PerformanceMonitor,
    create_performance_report,
    get_system_info,
    compute_hash,
    generate_vote_id,
    abi_encode_uint256,
    abi_decode_uint256,
)
from .errors import (
    VoteSystemError,
    WalletNotConnected,
    OperationInProgress,
    EncryptionSessionUnavailable,
    DecryptionProtocolFailed,
    LedgerError,
    LedgerUnavailable,
    RecordNotFound,
    SubmissionFailed,
    TransactionRejectedByUser,
    DuplicateId,
    AlreadyVerified,
    ConfirmationTimeout,
)

__all__ = [
    'setup_logging',
    'save_results',
    'PerformanceMonitor',
    'create_performance_report',
    'get_system_info',
    'compute_hash',
    'generate_vote_id',
    'abi_encode_uint256',
    'abi_decode_uint256',

    # Errors
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
