"""Vote lifecycle: status slot, vote repository and the pipeline controller."""

from .status_tracker import TransactionStatusTracker, TransactionStatus, TxStatus
from .vote_repository import VoteRepository, VoteStats
from .controller import VoteLifecycleController, CreateStage, DecryptStage

__all__ = [
    'TransactionStatusTracker',
    'TransactionStatus',
    'TxStatus',
    'VoteRepository',
    'VoteStats',
    'VoteLifecycleController',
    'CreateStage',
    'DecryptStage',
]
