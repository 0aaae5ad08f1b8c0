"""Per-account ledger of transactions kept in date-descending order."""

import threading
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Iterator

from finance_ledger.models.transaction import DedupKey, Transaction, TransactionType
from finance_ledger.utils.date_utils import is_date_in_range, month_end, month_start, week_bounds
from finance_ledger.utils.decimal_utils import sum_amounts
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)


class Ledger:
    """Ordered collection of Transactions belonging to one account.

    The collection is re-sorted by date (newest first) after every add.
    Python's sort is stable, so entries sharing a date keep insertion order.
    All views are recomputed from the current entries on each call.

    Note: mutation is not thread-safe on its own. Writers hold `lock` for the
    whole read-check-add sequence; readers work on the tuple returned by
    `transactions`.
    """

    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._transactions: list[Transaction] = []
        self.lock = threading.RLock()
        for txn in transactions:
            self._transactions.append(txn)
        self._sort()

    def _sort(self) -> None:
        self._transactions.sort(key=lambda t: t.date, reverse=True)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Snapshot of the current entries, newest first."""
        return tuple(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def __bool__(self) -> bool:
        return bool(self._transactions)

    def add(self, transaction: Transaction) -> None:
        """Append a transaction and restore date-descending order."""
        self._transactions.append(transaction)
        self._sort()

    def extend(self, transactions: Iterable[Transaction]) -> int:
        """Append several transactions with a single re-sort.

        Returns:
            Number of transactions appended.
        """
        added = 0
        for txn in transactions:
            self._transactions.append(txn)
            added += 1
        if added:
            self._sort()
        return added

    def remove(self, transaction_id: str) -> int:
        """Delete every entry with the given id.

        Returns:
            Number of entries removed (expected 0 or 1).
        """
        before = len(self._transactions)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        removed = before - len(self._transactions)
        if removed:
            logger.debug(f"Removed {removed} transaction(s) with id {transaction_id}")
        return removed

    def dedup_keys(self) -> set[DedupKey]:
        return {t.dedup_key for t in self._transactions}

    def contains_equivalent(self, transaction: Transaction) -> bool:
        """True if an entry with the same date, description, amount and direction exists."""
        key = transaction.dedup_key
        return any(t.dedup_key == key for t in self._transactions)

    # Derived views

    @property
    def debits(self) -> list[Transaction]:
        return [t for t in self._transactions if t.is_debit]

    @property
    def credits(self) -> list[Transaction]:
        return [t for t in self._transactions if t.is_credit]

    @property
    def categories(self) -> list[str]:
        """Distinct category labels present, sorted by name."""
        return sorted({t.category for t in self._transactions})

    def for_direction(self, direction: TransactionType) -> list[Transaction]:
        return [t for t in self._transactions if t.transaction_type is direction]

    def for_category(self, name: str) -> list[Transaction]:
        return [t for t in self._transactions if t.category == name]

    def for_date_range(self, start: date | None, end: date | None) -> list[Transaction]:
        """Entries with start <= date <= end; None leaves that side open."""
        return [t for t in self._transactions if is_date_in_range(t.date, start, end)]

    def for_month(self, d: date) -> list[Transaction]:
        """Entries in the calendar month containing d."""
        return self.for_date_range(month_start(d), month_end(d))

    def for_week(self, d: date) -> list[Transaction]:
        """Entries in the Monday-to-Sunday week containing d."""
        start, end = week_bounds(d)
        return self.for_date_range(start, end)

    def last_30_days(self, today: date) -> list[Transaction]:
        return self.for_date_range(today - timedelta(days=30), today)

    # Totals

    @property
    def total_debits(self) -> Decimal:
        return sum_amounts(t.amount for t in self.debits)

    @property
    def total_credits(self) -> Decimal:
        return sum_amounts(t.amount for t in self.credits)

    @property
    def net_balance(self) -> Decimal:
        return self.total_credits - self.total_debits

    def debits_for(self, category: str) -> Decimal:
        """Total debited under a category."""
        return sum_amounts(t.amount for t in self._transactions if t.is_debit and t.category == category)

    def credits_for(self, category: str) -> Decimal:
        """Total credited under a category."""
        return sum_amounts(t.amount for t in self._transactions if t.is_credit and t.category == category)

    def net_for(self, category: str) -> Decimal:
        return self.credits_for(category) - self.debits_for(category)

    def totals_for_date_range(self, start: date | None, end: date | None) -> tuple[Decimal, Decimal]:
        """(debits, credits) for entries inside the range."""
        entries = self.for_date_range(start, end)
        return (
            sum_amounts(t.amount for t in entries if t.is_debit),
            sum_amounts(t.amount for t in entries if t.is_credit),
        )

    def __repr__(self) -> str:
        return f"Ledger(transactions={len(self._transactions)})"
