"""Account data model: a ledger plus its budget tables."""

import fnmatch
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from finance_ledger.models.budget import BudgetTable
from finance_ledger.models.ledger import Ledger
from finance_ledger.utils.decimal_utils import ZERO, safe_decimal
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)

# Allowed drift when checking that allocation shares add up to 100%
SHARE_TOLERANCE = Decimal("0.001")


class AccountType(Enum):
    """Role an account plays in the household money flow."""

    CHECKING = "checking"  # Day-to-day spending account with an expense budget
    SAVINGS = "savings"
    TRANSFER = "transfer"  # Pass-through money-movement service, no budget
    INVESTMENT = "investment"
    OTHER = "other"


@dataclass
class SavingsGoal:
    """Emergency-fund target and how savings beyond it are split.

    Attributes:
        emergency_fund_target: Balance to reach before excess is allocated.
        allocation: Ordered (name, share) pairs; shares are fractions summing to 1.
    """

    emergency_fund_target: Decimal = ZERO
    allocation: list[tuple[str, Decimal]] = field(default_factory=list)

    def update_allocation(self, allocation: list[tuple[str, Decimal]]) -> bool:
        """Replace the allocation if its shares add up to 100%."""
        total = sum((share for _, share in allocation), ZERO)
        if abs(total - Decimal("1")) >= SHARE_TOLERANCE:
            logger.warning(f"Savings allocation shares add up to {total}, expected 1; ignored")
            return False
        self.allocation = list(allocation)
        return True

    def add_share(self, name: str, share: Decimal) -> bool:
        """Add a category if enough unallocated share remains."""
        remaining = Decimal("1") - sum((s for _, s in self.allocation), ZERO)
        if share > remaining:
            logger.warning(
                f"Cannot add savings category '{name}': {share} requested, {remaining} unallocated"
            )
            return False
        self.allocation.append((name, share))
        return True

    def remove_share(self, name: str) -> None:
        self.allocation = [(n, s) for n, s in self.allocation if n != name]

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "SavingsGoal":
        if not data:
            return cls()
        raw_allocation = data.get("savings_allocation") or {}
        allocation = [
            (str(name), safe_decimal(share))
            for name, share in dict(raw_allocation).items()  # type: ignore[call-overload]
        ]
        return cls(
            emergency_fund_target=safe_decimal(data.get("emergency_fund_target")),
            allocation=allocation,
        )


@dataclass
class Account:
    """A named account owning one Ledger and its budget tables.

    Attributes:
        id: Unique identifier for this account.
        name: Human-readable account name.
        account_type: Role of the account.
        dialect: Name of the CSV dialect its exports use.
        ledger: The account's transactions.
        budget: Expense budget (spend ceilings per category).
        income_budget: Expected income per category.
        savings_goal: Emergency fund target and excess allocation (savings accounts).
        source_file_patterns: Glob patterns routing delivered files to this account.
        display_order: Order for displaying accounts.
        is_active: Whether this account should be processed.
    """

    id: str
    name: str
    account_type: AccountType
    dialect: str = "debit_credit"

    ledger: Ledger = field(default_factory=Ledger)
    budget: BudgetTable = field(default_factory=BudgetTable)
    income_budget: BudgetTable = field(default_factory=BudgetTable)
    savings_goal: SavingsGoal = field(default_factory=SavingsGoal)

    source_file_patterns: list[str] = field(default_factory=list)
    display_order: int = 0
    is_active: bool = True

    def matches_file(self, filename: str) -> bool:
        """Check if a filename matches any of this account's glob patterns."""
        filename_lower = filename.lower()
        for pattern in self.source_file_patterns:
            if fnmatch.fnmatch(filename_lower, pattern.lower()):
                return True
        return False

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Account":
        """Create an Account from a dictionary (e.g., from YAML config).

        Args:
            data: Dictionary containing account data.

        Returns:
            A new Account instance with an empty ledger.
        """
        account_type_str = str(data.get("type", "other"))
        try:
            account_type = AccountType(account_type_str)
        except ValueError:
            account_type = AccountType.OTHER

        savings_goal: Optional[SavingsGoal] = None
        if "emergency_fund_target" in data or "savings_allocation" in data:
            savings_goal = SavingsGoal.from_dict(data)

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            account_type=account_type,
            dialect=str(data.get("dialect", "debit_credit")),
            budget=BudgetTable.from_dict(data.get("budget")),  # type: ignore[arg-type]
            income_budget=BudgetTable.from_dict(data.get("income_budget")),  # type: ignore[arg-type]
            savings_goal=savings_goal or SavingsGoal(),
            source_file_patterns=list(data.get("source_file_patterns", [])),  # type: ignore[arg-type]
            display_order=int(data.get("display_order", 0)),  # type: ignore[arg-type]
            is_active=bool(data.get("is_active", True)),
        )

    def __repr__(self) -> str:
        return (
            f"Account(id={self.id!r}, name={self.name!r}, "
            f"type={self.account_type.value}, transactions={len(self.ledger)})"
        )
