"""Vote registry bindings, signers and the development chain."""

from .registry import (
    RegistryContract,
    RegistryRecord,
    PendingTransaction,
    TransactionReceipt,
)
from .dev_chain import DevChainRegistry
from .wallet import LocalSigner, WalletConnection
from .ledger_gateway import (
    LedgerGateway,
    SignedLedgerGateway,
    VoteRecord,
    encode_options,
    decode_options,
)

__all__ = [
    'RegistryContract',
    'RegistryRecord',
    'PendingTransaction',
    'TransactionReceipt',
    'DevChainRegistry',
    'LocalSigner',
    'WalletConnection',
    'LedgerGateway',
    'SignedLedgerGateway',
    'VoteRecord',
    'encode_options',
    'decode_options',
]
