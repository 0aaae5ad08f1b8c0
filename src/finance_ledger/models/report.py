"""Report data models produced by analytics and reconciliation."""

from dataclasses import dataclass, field
from decimal import Decimal

from finance_ledger.utils.decimal_utils import ZERO, format_currency


@dataclass(frozen=True)
class BudgetStatus:
    """Spend against an allocation, for one category or a whole budget.

    Attributes:
        name: Category name, or "Total" for the whole table.
        allocation: Allocated ceiling.
        spent: Debits recorded against it.
        utilization: spent / allocation (0.0 when allocation <= 0).
        remaining: max(allocation - spent, 0).
        overrun: max(spent - allocation, 0).
        is_over_budget: spent > allocation.
    """

    name: str
    allocation: Decimal
    spent: Decimal
    utilization: float
    remaining: Decimal
    overrun: Decimal
    is_over_budget: bool

    @property
    def utilization_percentage(self) -> float:
        return self.utilization * 100


@dataclass(frozen=True)
class IncomeStatus:
    """Received income against an expected amount for one income category."""

    name: str
    expected: Decimal
    received: Decimal
    progress: float
    shortfall: Decimal


@dataclass(frozen=True)
class TrendPoint:
    """Total for one calendar month of a trend series."""

    year: int
    month: int
    label: str
    amount: Decimal


@dataclass(frozen=True)
class CategorySpend:
    """Debit total of a category and its share of all debits (in percent)."""

    category: str
    amount: Decimal
    percentage: float


@dataclass(frozen=True)
class CategorySummary:
    """Debit and credit totals of one category."""

    category: str
    debits: Decimal
    credits: Decimal

    @property
    def net(self) -> Decimal:
        return self.credits - self.debits


@dataclass(frozen=True)
class AllocationSlice:
    """A named value and its share of a whole (in percent)."""

    category: str
    value: Decimal
    percentage: float


@dataclass(frozen=True)
class SavingsProgress:
    """Emergency-fund progress and the split of savings beyond it."""

    balance: Decimal
    target: Decimal
    progress: float
    remaining: Decimal
    excess: Decimal
    allocations: list[AllocationSlice] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.balance >= self.target

    @property
    def emergency_fund_balance(self) -> Decimal:
        return min(self.balance, self.target)


@dataclass(frozen=True)
class CapitalAllocation:
    """Where positive capital sits across accounts, plus outstanding debt."""

    savings: Decimal = ZERO
    investments: Decimal = ZERO
    assets: Decimal = ZERO
    cash: Decimal = ZERO
    debt: Decimal = ZERO

    @property
    def total_capital(self) -> Decimal:
        return self.savings + self.investments + self.assets + self.cash

    def share_of(self, value: Decimal) -> float:
        """value / total capital, with the total floored at 1 currency unit."""
        return float(value / max(self.total_capital, Decimal("1")))

    @property
    def slices(self) -> list[AllocationSlice]:
        parts = [
            ("Savings", self.savings),
            ("Investments", self.investments),
            ("Assets", self.assets),
            ("Cash", self.cash),
            ("Debt", self.debt),
        ]
        return [AllocationSlice(name, value, self.share_of(value) * 100) for name, value in parts]


@dataclass(frozen=True)
class FinancialHealth:
    """Composite household health score.

    Each sub-score and the overall score run from 0 to 100. The asset
    health score is reported alongside but not averaged in.
    """

    portfolio: float
    budget: float
    savings: float
    diversification: float
    asset_health: float = 100.0

    @property
    def overall(self) -> float:
        return (self.portfolio + self.budget + self.savings + self.diversification) / 4

    @property
    def grade(self) -> str:
        score = self.overall
        for threshold, grade in ((90, "A+"), (80, "A"), (70, "B"), (60, "C"), (50, "D")):
            if score >= threshold:
                return grade
        return "F"


@dataclass(frozen=True)
class TransferVerdict:
    """Outcome of checking one directional transfer between two accounts.

    Attributes:
        source_account: Account the money left (debits side).
        destination_account: Account the money arrived in (credits side).
        category: Transfer category both sides record.
        outgoing: Debits on the source under the category.
        incoming: Credits on the destination under the category.
        is_valid: |incoming - outgoing| below the tolerance.
        message: Human-readable verdict.
    """

    source_account: str
    destination_account: str
    category: str
    outgoing: Decimal
    incoming: Decimal
    is_valid: bool
    message: str

    @property
    def signed_difference(self) -> Decimal:
        """incoming - outgoing."""
        return self.incoming - self.outgoing

    @property
    def difference(self) -> Decimal:
        return abs(self.signed_difference)


@dataclass(frozen=True)
class CashFlowVerdict:
    """Whether every revenue-generating asset shows up as income."""

    is_valid: bool
    message: str
    missing_assets: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AccountSnapshot:
    """Everything the presentation layer needs about one account."""

    account_id: str
    name: str
    transaction_count: int
    total_debits: Decimal
    total_credits: Decimal
    net_balance: Decimal
    budget: BudgetStatus
    categories: list[BudgetStatus]
    health_score: float
    spending_trend: list[TrendPoint]
    income_trend: list[TrendPoint]
    top_categories: list[CategorySpend]
    portfolio_value: Decimal | None = None

    @property
    def net_balance_display(self) -> str:
        return format_currency(self.net_balance)
