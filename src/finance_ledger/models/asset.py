"""Owned assets and the loans financing them."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterator, Optional

from finance_ledger.utils.date_utils import months_between
from finance_ledger.utils.decimal_utils import ZERO, ratio, safe_decimal, sum_amounts

# Loan-to-value ratio where the asset health score peaks, and the distance over which it drops to 0
OPTIMAL_LOAN_TO_VALUE = 0.5
LOAN_TO_VALUE_BAND = 0.3


class LoanStatus(Enum):
    """Lifecycle of the loan behind an asset."""

    NO_LOAN = "no_loan"
    ACTIVE = "active"
    PAID_OFF = "paid_off"


@dataclass
class Loan:
    """Fixed-rate amortized loan.

    Attributes:
        original_amount: Principal borrowed.
        interest_rate: Annual nominal rate in percent (7.5 means 7.5%).
        term_years: Length of the loan.
        start_date: First month of the loan.
        down_payment: Paid up front, not part of the principal.
        status: ACTIVE until marked paid off.
        paid_off_date: When it was paid off.
    """

    original_amount: Decimal
    interest_rate: Decimal
    term_years: int
    start_date: date
    down_payment: Decimal = ZERO
    status: LoanStatus = LoanStatus.ACTIVE
    paid_off_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.term_years < 1:
            raise ValueError(f"Loan term must be at least one year, got {self.term_years}")
        if self.original_amount < 0 or self.interest_rate < 0:
            raise ValueError("Loan amount and interest rate must be non-negative")

    @property
    def total_payments(self) -> int:
        return self.term_years * 12

    @property
    def monthly_rate(self) -> Decimal:
        return self.interest_rate / 100 / 12

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE

    @property
    def monthly_payment(self) -> Decimal:
        """Standard amortized payment; principal spread evenly when the rate is 0."""
        if not self.is_active or self.original_amount <= 0:
            return ZERO
        n = self.total_payments
        r = self.monthly_rate
        if r == 0:
            return self.original_amount / n
        growth = (1 + r) ** n
        return self.original_amount * r * growth / (growth - 1)

    def payments_made(self, as_of: date) -> int:
        return min(months_between(self.start_date, as_of), self.total_payments)

    def remaining_balance(self, as_of: date) -> Decimal:
        """Principal still owed after the payments due up to as_of."""
        if not self.is_active:
            return ZERO
        paid = self.payments_made(as_of)
        remaining = self.total_payments - paid
        if remaining == 0:
            return ZERO
        r = self.monthly_rate
        if r == 0:
            return max(self.original_amount - self.original_amount / self.total_payments * paid, ZERO)
        growth = (1 + r) ** remaining
        return self.monthly_payment * (growth - 1) / (r * growth)

    def interest_paid(self, as_of: date) -> Decimal:
        principal_paid = self.original_amount - self.remaining_balance(as_of)
        return max(self.monthly_payment * self.payments_made(as_of) - principal_paid, ZERO)

    def mark_paid_off(self, on: date) -> None:
        self.status = LoanStatus.PAID_OFF
        self.paid_off_date = on

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Loan":
        status = LoanStatus(str(data.get("status", LoanStatus.ACTIVE.value)))
        paid_off = data.get("paid_off_date")
        return cls(
            original_amount=safe_decimal(data.get("original_amount")),
            interest_rate=safe_decimal(data.get("interest_rate")),
            term_years=int(data.get("term_years", 1)),  # type: ignore[arg-type]
            start_date=_as_date(data["start_date"]),
            down_payment=safe_decimal(data.get("down_payment")),
            status=status,
            paid_off_date=_as_date(paid_off) if paid_off else None,
        )


def _as_date(value: object) -> date:
    # PyYAML already turns unquoted ISO dates into date objects
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


@dataclass
class Asset:
    """A physical or financial asset outside the brokerage portfolio.

    Attributes:
        name: Display name; also the name its income credits carry.
        asset_type: Free-form kind ("Car", "Apartment", ...).
        acquisition_date: When it was bought.
        acquisition_price: Price paid, including the financed part.
        market_value: Latest known value; acquisition price when unknown.
        loan: Financing, if any.
        expense_category: Ledger category under which loan payments are recorded.
        generates_revenue: Whether it should produce asset income credits.
    """

    name: str
    asset_type: str
    acquisition_date: date
    acquisition_price: Decimal
    market_value: Optional[Decimal] = None
    loan: Optional[Loan] = None
    expense_category: Optional[str] = None
    generates_revenue: bool = False

    @property
    def current_value(self) -> Decimal:
        return self.market_value if self.market_value is not None else self.acquisition_price

    @property
    def loan_status(self) -> LoanStatus:
        return self.loan.status if self.loan else LoanStatus.NO_LOAN

    @property
    def monthly_payment(self) -> Decimal:
        return self.loan.monthly_payment if self.loan else ZERO

    @property
    def total_appreciation(self) -> Decimal:
        return self.current_value - self.acquisition_price

    @property
    def appreciation_rate(self) -> float:
        return ratio(self.total_appreciation, self.acquisition_price)

    def remaining_loan_balance(self, as_of: date) -> Decimal:
        return self.loan.remaining_balance(as_of) if self.loan else ZERO

    def equity(self, as_of: date) -> Decimal:
        return self.current_value - self.remaining_loan_balance(as_of)

    def is_underwater(self, as_of: date) -> bool:
        return self.equity(as_of) < 0

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Asset":
        """Create an Asset from a dictionary (e.g., from YAML config)."""
        loan_data = data.get("loan")
        market_value = data.get("market_value")
        return cls(
            name=str(data["name"]),
            asset_type=str(data.get("type", "Other")),
            acquisition_date=_as_date(data["acquisition_date"]),
            acquisition_price=safe_decimal(data.get("acquisition_price")),
            market_value=safe_decimal(market_value) if market_value is not None else None,
            loan=Loan.from_dict(loan_data) if loan_data else None,  # type: ignore[arg-type]
            expense_category=str(data["expense_category"]) if data.get("expense_category") else None,
            generates_revenue=bool(data.get("generates_revenue", False)),
        )


@dataclass
class AssetBook:
    """All assets of a household and their debt, equity and health figures."""

    assets: list[Asset] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.assets)

    def __iter__(self) -> Iterator[Asset]:
        return iter(list(self.assets))

    @property
    def total_value(self) -> Decimal:
        return sum_amounts(a.current_value for a in self.assets)

    @property
    def total_acquisition_price(self) -> Decimal:
        return sum_amounts(a.acquisition_price for a in self.assets)

    @property
    def total_monthly_payments(self) -> Decimal:
        return sum_amounts(a.monthly_payment for a in self.assets)

    @property
    def appreciation_rate(self) -> float:
        return ratio(self.total_value - self.total_acquisition_price, self.total_acquisition_price)

    @property
    def revenue_asset_names(self) -> list[str]:
        return [a.name for a in self.assets if a.generates_revenue]

    @property
    def average_interest_rate(self) -> Decimal:
        """Interest rate of the active loans, weighted by original amount."""
        loans = [a.loan for a in self.assets if a.loan and a.loan.is_active]
        principal = sum_amounts(loan.original_amount for loan in loans)
        if principal <= 0:
            return ZERO
        return sum_amounts(loan.interest_rate * loan.original_amount for loan in loans) / principal

    def total_debt(self, as_of: date) -> Decimal:
        return sum_amounts(a.remaining_loan_balance(as_of) for a in self.assets)

    def total_equity(self, as_of: date) -> Decimal:
        return sum_amounts(a.equity(as_of) for a in self.assets)

    def loan_to_value_ratio(self, as_of: date) -> float:
        return ratio(self.total_debt(as_of), self.total_value)

    def health_score(self, as_of: date) -> float:
        """Asset health between 0 and 1; 1.0 without assets.

        Average of the share of assets with non-negative equity, a
        loan-to-value score peaking at 50% and an appreciation score.
        """
        if not self.assets:
            return 1.0
        equity_score = sum(1 for a in self.assets if not a.is_underwater(as_of)) / len(self.assets)
        ltv = self.loan_to_value_ratio(as_of)
        ltv_score = min(1.0, max(0.0, 1.0 - (ltv - OPTIMAL_LOAN_TO_VALUE) / LOAN_TO_VALUE_BAND))
        appreciation_score = min(1.0, max(0.0, 1.0 + self.appreciation_rate))
        return (equity_score + ltv_score + appreciation_score) / 3

    @classmethod
    def from_dict(cls, data: object) -> "AssetBook":
        """Create from the `assets` list of assets.yaml."""
        if not data:
            return cls()
        if not isinstance(data, list):
            raise ValueError(f"'assets' must be a list, got {type(data).__name__}")
        return cls(assets=[Asset.from_dict(item) for item in data])
