"""Transaction ledger -- user-entered buys with atomic JSON persistence."""

from portfolio.ledger.ledger import SCHEMA_VERSION, TransactionLedger
from portfolio.ledger.storage import FileStorage, LedgerStorage, MemoryStorage

__all__ = [
    "FileStorage",
    "LedgerStorage",
    "MemoryStorage",
    "SCHEMA_VERSION",
    "TransactionLedger",
]
