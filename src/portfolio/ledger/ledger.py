"""Append/remove-only ledger of user-entered buy transactions.

Every mutation persists the full ledger before returning. If the write
fails the in-memory change is rolled back, so memory and disk never
diverge.

Persisted format (version 1):
    {"version": 1, "transactions": [{"id": ..., "asset_id": ..., ...}, ...]}

A bare JSON array of transactions (the unversioned format written by the
first release) is accepted on load and rewritten as version 1 on the next
mutation.
"""

from __future__ import annotations

import datetime
import json
import time
from collections.abc import Callable, Iterator
from decimal import Decimal, InvalidOperation

from portfolio.exceptions import PersistenceError, ValidationError
from portfolio.ledger.storage import LedgerStorage
from portfolio.logging import get_logger
from portfolio.models import Transaction

logger = get_logger(__name__)

SCHEMA_VERSION = 1


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_positive(name: str, value: object) -> Decimal:
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{name} must be a number, got {value!r}") from e
    if not parsed.is_finite() or parsed <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    return parsed


def _parse_date(value: datetime.date | str) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"date must be YYYY-MM-DD, got {value!r}") from e


def _restore(record: object) -> Transaction:
    """Decode one stored record, holding it to the same rules as ``add``."""
    if not isinstance(record, dict):
        raise TypeError(f"expected an object, got {type(record).__name__}")
    transaction = Transaction.from_dict(record)
    if not transaction.asset_id.strip():
        raise ValidationError("asset_id is required")
    _parse_positive("amount", transaction.amount)
    _parse_positive("unit_price", transaction.unit_price)
    return transaction


class TransactionLedger:
    """Ordered collection of buy transactions backed by durable storage.

    Args:
        storage: Where the serialized ledger lives.
        clock: Returns epoch milliseconds; used to mint transaction ids.

    Raises:
        PersistenceError: On construction, if stored data cannot be decoded.
    """

    def __init__(
        self,
        storage: LedgerStorage,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock or _now_ms
        self._transactions: list[Transaction] = self._load()
        self._last_id = max(
            (int(t.id) for t in self._transactions if t.id.isdigit()),
            default=0,
        )
        logger.info("ledger_loaded", transactions=len(self._transactions))

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._transactions))

    def list(self) -> list[Transaction]:
        """Return all transactions in insertion order."""
        return list(self._transactions)

    def get(self, transaction_id: str) -> Transaction | None:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def asset_ids(self) -> set[str]:
        """Return the set of asset ids with at least one transaction."""
        return {t.asset_id for t in self._transactions}

    def add(
        self,
        asset_id: str,
        amount: Decimal | str | int,
        unit_price: Decimal | str | int,
        date: datetime.date | str,
        transaction_id: str | None = None,
    ) -> Transaction:
        """Validate and append a buy transaction, then persist.

        Raises:
            ValidationError: Non-positive or non-numeric amount/price, bad date,
                empty asset id, or a duplicate explicit id.
            PersistenceError: The write failed; the ledger is unchanged.
        """
        asset_id = str(asset_id or "").strip().lower()
        if not asset_id:
            raise ValidationError("asset_id is required")

        parsed_amount = _parse_positive("amount", amount)
        parsed_price = _parse_positive("unit_price", unit_price)
        parsed_date = _parse_date(date)
        if transaction_id is not None and self.get(transaction_id) is not None:
            raise ValidationError(f"Transaction {transaction_id} already exists")

        transaction = Transaction(
            id=transaction_id if transaction_id is not None else self._next_id(),
            asset_id=asset_id,
            amount=parsed_amount,
            unit_price=parsed_price,
            date=parsed_date,
        )

        self._transactions.append(transaction)
        try:
            self._persist()
        except PersistenceError:
            self._transactions.pop()
            raise

        if transaction.id.isdigit():
            self._last_id = max(self._last_id, int(transaction.id))
        logger.info(
            "transaction_added",
            transaction_id=transaction.id,
            asset_id=transaction.asset_id,
            amount=str(transaction.amount),
            unit_price=str(transaction.unit_price),
        )
        return transaction

    def remove(self, transaction_id: str) -> bool:
        """Remove a transaction by id. Removing an unknown id is a no-op.

        Returns:
            True if a transaction was removed.
        """
        for index, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                break
        else:
            logger.debug("transaction_remove_noop", transaction_id=transaction_id)
            return False

        del self._transactions[index]
        try:
            self._persist()
        except PersistenceError:
            self._transactions.insert(index, transaction)
            raise

        logger.info("transaction_removed", transaction_id=transaction_id)
        return True

    def _next_id(self) -> str:
        # Creation timestamp, bumped when two entries land in the same millisecond
        self._last_id = max(self._clock(), self._last_id + 1)
        return str(self._last_id)

    def _serialize(self) -> bytes:
        document = {
            "version": SCHEMA_VERSION,
            "transactions": [t.to_dict() for t in self._transactions],
        }
        return json.dumps(document, indent=2).encode("utf-8")

    def _persist(self) -> None:
        self._storage.save(self._serialize())

    def _load(self) -> list[Transaction]:
        raw = self._storage.load()
        if not raw:
            return []

        try:
            document = json.loads(raw)
        except ValueError as e:
            raise PersistenceError("Stored ledger is not valid JSON") from e

        if isinstance(document, list):
            records = document
        elif isinstance(document, dict) and document.get("version") == SCHEMA_VERSION:
            records = document.get("transactions", [])
        else:
            version = document.get("version") if isinstance(document, dict) else None
            raise PersistenceError(f"Unsupported ledger format (version={version!r})")

        try:
            return [_restore(record) for record in records]
        except (KeyError, TypeError, ValueError, InvalidOperation, ValidationError) as e:
            raise PersistenceError(f"Stored ledger has a malformed transaction: {e}") from e
