"""Transaction data model for ledger entries."""

import hashlib
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class TransactionType(Enum):
    """Direction of a transaction."""

    CREDIT = "credit"  # Money in
    DEBIT = "debit"  # Money out

    @classmethod
    def from_value(cls, value: "str | TransactionType") -> "TransactionType":
        """Accept an enum member or its case-insensitive string value."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


DedupKey = tuple[date, str, Decimal, TransactionType]


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry.

    The amount is always non-negative; the direction decides its effect on
    the balance (debit subtracts, credit adds).

    Attributes:
        date: Calendar date the transaction occurred.
        description: Payee / memo text as exported (trimmed).
        category: Category label assigned at parse or entry time.
        amount: Non-negative monetary amount.
        transaction_type: Debit (outflow) or credit (inflow).
        id: Unique identifier (UUID string).
        source_file: Identifier of the delivered file it came from ("" for manual entries).
    """

    date: date
    description: str
    category: str
    amount: Decimal
    transaction_type: TransactionType
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source_file: str = ""

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Transaction amount must be non-negative, got {self.amount}")

    @property
    def is_debit(self) -> bool:
        return self.transaction_type is TransactionType.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.transaction_type is TransactionType.CREDIT

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the account balance: negative for debits, positive for credits."""
        return -self.amount if self.is_debit else self.amount

    @property
    def dedup_key(self) -> DedupKey:
        """Fields that make two entries the same transaction for import purposes."""
        return (self.date, self.description, self.amount, self.transaction_type)

    @property
    def fingerprint(self) -> str:
        """Stable fingerprint for matching the same transaction across runs.

        Built from date, normalized description, amount and direction, so it
        does not depend on the generated id.

        Returns:
            A 16-character hex string.
        """
        desc_normalized = re.sub(r"\s+", " ", self.description.lower().strip())
        amount_normalized = self.amount.quantize(Decimal("0.01"))
        data = (
            f"{self.date.isoformat()}|{desc_normalized}|"
            f"{amount_normalized}|{self.transaction_type.value}"
        )
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def __repr__(self) -> str:
        return (
            f"Transaction(date={self.date}, "
            f"description={self.description[:30]!r}, "
            f"amount={self.signed_amount}, "
            f"category={self.category!r})"
        )
