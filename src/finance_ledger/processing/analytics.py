"""Budget, trend and allocation analytics over account ledgers.

Every figure is recomputed from the current ledger contents on each call;
nothing is cached between calls.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from finance_ledger.config import AnalyticsConfig
from finance_ledger.models.account import Account
from finance_ledger.models.asset import AssetBook
from finance_ledger.models.budget import BudgetTable
from finance_ledger.models.ledger import Ledger
from finance_ledger.models.portfolio import PortfolioSnapshot
from finance_ledger.models.report import (
    AccountSnapshot,
    AllocationSlice,
    BudgetStatus,
    CapitalAllocation,
    CategorySpend,
    CategorySummary,
    FinancialHealth,
    IncomeStatus,
    SavingsProgress,
    TrendPoint,
)
from finance_ledger.models.transaction import Transaction, TransactionType
from finance_ledger.utils.date_utils import add_months, month_label, trailing_months
from finance_ledger.utils.decimal_utils import ZERO, ratio, sum_amounts
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)

# Suffix stripped from an asset income description to recover the asset name
ASSET_REVENUE_SUFFIX = " Revenue"

# Financial health parameters
HEALTH_WINDOW_MONTHS = 6
EMERGENCY_FUND_MONTHS = 6
TARGET_SAVINGS_RATE = 0.2
CONSISTENT_SAVING_MONTHS = 4
NO_PORTFOLIO_SCORE = 40.0
# Ideal shares of savings, investments and asset equity
IDEAL_CAPITAL_SPLIT = (0.1, 0.6, 0.3)


def budget_status(name: str, allocation: Decimal, spent: Decimal) -> BudgetStatus:
    """Compare spend against an allocation.

    Args:
        name: Label of the budget line.
        allocation: Allocated ceiling.
        spent: Amount spent.

    Returns:
        BudgetStatus; utilization is 0.0 when the allocation is not positive.
    """
    return BudgetStatus(
        name=name,
        allocation=allocation,
        spent=spent,
        utilization=ratio(spent, allocation),
        remaining=max(allocation - spent, ZERO),
        overrun=max(spent - allocation, ZERO),
        is_over_budget=spent > allocation,
    )


def _monthly_totals(
    transactions: Iterable[Transaction], months: list[tuple[int, int]]
) -> list[TrendPoint]:
    totals: dict[tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
    for txn in transactions:
        totals[(txn.date.year, txn.date.month)] += txn.amount
    return [
        TrendPoint(year=year, month=month, label=month_label(year, month), amount=totals[(year, month)])
        for year, month in months
    ]


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


class AnalyticsEngine:
    """Computes budget, trend and allocation figures for accounts."""

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        """Initialize analytics engine.

        Args:
            config: Trend length, utilization target and asset income category.
        """
        self.config = config or AnalyticsConfig()

    # Totals

    def total(self, ledger: Ledger, direction: TransactionType) -> Decimal:
        return sum_amounts(t.amount for t in ledger.for_direction(direction))

    def net_balance(self, ledger: Ledger) -> Decimal:
        return self.total(ledger, TransactionType.CREDIT) - self.total(ledger, TransactionType.DEBIT)

    def category_total(self, ledger: Ledger, name: str, direction: TransactionType) -> Decimal:
        if direction is TransactionType.DEBIT:
            return ledger.debits_for(name)
        return ledger.credits_for(name)

    def category_summary(self, ledger: Ledger) -> list[CategorySummary]:
        """Debits and credits per category present in the ledger, sorted by name."""
        return [
            CategorySummary(category=name, debits=ledger.debits_for(name), credits=ledger.credits_for(name))
            for name in ledger.categories
        ]

    # Budgets

    def budget_status(self, account: Account) -> BudgetStatus:
        """Total debits of the account against its whole expense budget."""
        return budget_status("Total", account.budget.total, account.ledger.total_debits)

    def category_status(self, account: Account, name: str) -> BudgetStatus:
        return budget_status(name, account.budget.allocation_for(name), account.ledger.debits_for(name))

    def category_statuses(self, account: Account) -> list[BudgetStatus]:
        """Status of every expense budget category, in table order."""
        return [self.category_status(account, name) for name in account.budget.names]

    def income_status(self, account: Account) -> list[IncomeStatus]:
        """Received credits against each expected income category."""
        statuses = []
        for category in account.income_budget:
            received = account.ledger.credits_for(category.name)
            statuses.append(
                IncomeStatus(
                    name=category.name,
                    expected=category.allocation,
                    received=received,
                    progress=ratio(received, category.allocation),
                    shortfall=max(category.allocation - received, ZERO),
                )
            )
        return statuses

    def health_score(self, account: Account) -> float:
        """Budget health between 0 and 1.

        Average of the share of categories within budget and a utilization
        score that is 1 up to the target utilization and falls linearly to 0
        over the configured band above it. An empty budget scores 1.0.
        """
        budget: BudgetTable = account.budget
        if not len(budget):
            return 1.0

        statuses = self.category_statuses(account)
        within_budget = sum(1 for s in statuses if not s.is_over_budget)
        category_score = within_budget / len(statuses)

        utilization = self.budget_status(account).utilization
        band = self.config.utilization_band
        utilization_score = min(1.0, max(0.0, 1.0 - (utilization - self.config.target_utilization) / band))

        return (category_score + utilization_score) / 2

    # Trends

    def _months(self, as_of: date) -> list[tuple[int, int]]:
        return trailing_months(as_of, self.config.trend_months)

    def spending_trend(self, ledger: Ledger, as_of: date) -> list[TrendPoint]:
        """Debits per month for the trailing months up to as_of, oldest first."""
        return _monthly_totals(ledger.debits, self._months(as_of))

    def income_trend(self, ledger: Ledger, as_of: date) -> list[TrendPoint]:
        """Credits per month for the trailing months up to as_of, oldest first."""
        return _monthly_totals(ledger.credits, self._months(as_of))

    def category_trend(self, ledger: Ledger, name: str, as_of: date) -> list[TrendPoint]:
        """Debits of one category per month for the trailing months, oldest first."""
        return _monthly_totals(
            (t for t in ledger.debits if t.category == name), self._months(as_of)
        )

    def top_spending_categories(self, ledger: Ledger, limit: Optional[int] = None) -> list[CategorySpend]:
        """Debit totals per category, largest first, with their share of all debits.

        Ties are ordered by category name.
        """
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in ledger.debits:
            totals[txn.category] += txn.amount
        total_debits = sum_amounts(totals.values())

        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        if limit is not None:
            ranked = ranked[:limit]
        return [
            CategorySpend(category=name, amount=amount, percentage=ratio(amount, total_debits) * 100)
            for name, amount in ranked
        ]

    # Ratios

    def savings_rate(self, ledger: Ledger) -> float:
        """Net balance as a fraction of credits (0.0 without credits)."""
        return ratio(ledger.net_balance, ledger.total_credits)

    def expense_ratio(self, ledger: Ledger) -> float:
        """Debits as a fraction of credits (0.0 without credits)."""
        return ratio(ledger.total_debits, ledger.total_credits)

    def average_income(self, ledger: Ledger, today: date) -> Decimal:
        """Credits over the trailing 30 days."""
        return sum_amounts(t.amount for t in ledger.last_30_days(today) if t.is_credit)

    def average_expenses(self, ledger: Ledger, today: date) -> Decimal:
        """Debits over the trailing 30 days."""
        return sum_amounts(t.amount for t in ledger.last_30_days(today) if t.is_debit)

    # Savings

    def savings_growth(self, ledger: Ledger, as_of: date) -> list[TrendPoint]:
        """Running balance of the trailing months, starting from zero.

        Each point is the cumulative net change up to the end of its month,
        floored at zero.
        """
        net: dict[tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
        for txn in ledger:
            net[(txn.date.year, txn.date.month)] += txn.signed_amount

        points = []
        running = ZERO
        for year, month in self._months(as_of):
            running += net[(year, month)]
            points.append(
                TrendPoint(year=year, month=month, label=month_label(year, month), amount=max(running, ZERO))
            )
        return points

    def savings_progress(self, account: Account) -> SavingsProgress:
        """Emergency fund progress and the split of any excess.

        Excess savings are allocated only once the emergency fund is complete.
        """
        goal = account.savings_goal
        balance = account.ledger.net_balance
        target = goal.emergency_fund_target
        excess = max(balance - target, ZERO)

        allocations = []
        if balance >= target and excess > ZERO:
            allocations = [
                AllocationSlice(category=name, value=excess * share, percentage=float(share) * 100)
                for name, share in goal.allocation
            ]

        progress = max(min(ratio(balance, target), 1.0), 0.0) if target > ZERO else 1.0
        return SavingsProgress(
            balance=balance,
            target=target,
            progress=progress,
            remaining=max(target - balance, ZERO),
            excess=excess,
            allocations=allocations,
        )

    # Asset income

    def _asset_income(self, ledger: Ledger) -> list[Transaction]:
        return [t for t in ledger.credits if t.category == self.config.asset_income_category]

    def asset_revenue(self, ledger: Ledger, asset_name: str, month: Optional[date] = None) -> Decimal:
        """Asset income credits naming the asset, optionally limited to one month."""
        return sum_amounts(
            t.amount
            for t in self._asset_income(ledger)
            if asset_name in t.description
            and (month is None or (t.date.year, t.date.month) == (month.year, month.month))
        )

    def asset_revenue_history(self, ledger: Ledger, asset_name: str, as_of: date) -> list[TrendPoint]:
        """Monthly revenue of one asset for the trailing months, oldest first."""
        return _monthly_totals(
            (t for t in self._asset_income(ledger) if asset_name in t.description),
            self._months(as_of),
        )

    def asset_revenue_by_asset(self, ledger: Ledger) -> list[tuple[str, Decimal]]:
        """Total asset income per asset, largest first.

        The asset name is the description without a trailing " Revenue".
        """
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in self._asset_income(ledger):
            totals[txn.description.replace(ASSET_REVENUE_SUFFIX, "")] += txn.amount
        return sorted(totals.items(), key=lambda item: (-item[1], item[0]))

    # Portfolio and capital

    def portfolio_allocation(self, portfolio: PortfolioSnapshot) -> list[AllocationSlice]:
        """Market value per security category plus cash, as shares of net liquidation."""
        values: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for position in portfolio.positions:
            values[position.category] += position.market_value
        if portfolio.total_cash:
            values["Cash"] += portfolio.total_cash

        return [
            AllocationSlice(
                category=name,
                value=value,
                percentage=ratio(value, portfolio.net_liquidation) * 100,
            )
            for name, value in sorted(values.items(), key=lambda item: (-item[1], item[0]))
        ]

    def capital_allocation(
        self,
        savings: Optional[Account] = None,
        spending: Optional[Account] = None,
        portfolio: Optional[PortfolioSnapshot] = None,
        assets: Optional[AssetBook] = None,
        as_of: Optional[date] = None,
    ) -> CapitalAllocation:
        """Positive capital per bucket; each bucket is floored at zero.

        Assets count at market value; their outstanding loans as of as_of
        (default: today) make up the debt bucket.
        """
        as_of = as_of or date.today()
        return CapitalAllocation(
            savings=max(savings.ledger.net_balance, ZERO) if savings else ZERO,
            investments=max(portfolio.net_liquidation, ZERO) if portfolio else ZERO,
            assets=max(assets.total_value, ZERO) if assets else ZERO,
            cash=max(spending.ledger.net_balance, ZERO) if spending else ZERO,
            debt=max(assets.total_debt(as_of), ZERO) if assets else ZERO,
        )

    def net_worth(
        self,
        accounts: Iterable[Account],
        portfolio: Optional[PortfolioSnapshot] = None,
        assets: Optional[AssetBook] = None,
        as_of: Optional[date] = None,
    ) -> Decimal:
        """Account balances plus portfolio and asset value, minus outstanding loans."""
        as_of = as_of or date.today()
        balances = sum_amounts(account.ledger.net_balance for account in accounts)
        investments = portfolio.net_liquidation if portfolio else ZERO
        asset_equity = assets.total_equity(as_of) if assets else ZERO
        return balances + investments + asset_equity

    # Financial health

    def expense_growth(self, ledger: Ledger, as_of: date) -> float:
        """Change in debits of the last six months against the six before them.

        Both windows are whole calendar months, the recent one ending with
        as_of's month. 0.0 when the older window has no debits.
        """
        recent_start = add_months(as_of, -(HEALTH_WINDOW_MONTHS - 1))
        older_start = add_months(recent_start, -HEALTH_WINDOW_MONTHS)
        recent = sum_amounts(t.amount for t in ledger.for_date_range(recent_start, as_of) if t.is_debit)
        older = sum_amounts(
            t.amount
            for t in ledger.for_date_range(older_start, recent_start - timedelta(days=1))
            if t.is_debit
        )
        return ratio(recent - older, older)

    def saving_months(self, ledger: Ledger, as_of: date) -> int:
        """How many of the last six calendar months received any credit."""
        months = trailing_months(as_of, HEALTH_WINDOW_MONTHS)
        credited = {(t.date.year, t.date.month) for t in ledger.credits}
        return sum(1 for month in months if month in credited)

    def portfolio_score(
        self, net_worth: Decimal, portfolio: Optional[PortfolioSnapshot] = None
    ) -> float:
        """Investment share of net worth (60%) and unrealized return (40%).

        Investing half of net worth or more maxes the allocation part; the
        return part runs linearly from -10% to +10%. Without investments the
        score is a flat 40.
        """
        investments = portfolio.net_liquidation if portfolio else ZERO
        if investments <= ZERO:
            return NO_PORTFOLIO_SCORE
        allocation = min(float(investments / max(net_worth, Decimal("1"))) * 2, 1.0)
        performance = _clamp((portfolio.unrealized_return + 0.1) / 0.2)  # type: ignore[union-attr]
        return (allocation * 0.6 + performance * 0.4) * 100

    def budget_score(self, spending: Account, savings: Account, as_of: date) -> float:
        """Emergency fund coverage (70%) and expense growth (30%).

        Coverage is the savings balance over six months of the trailing
        30-day expenses; growth scores 1 at -5% or less and 0 at +5% or more.
        """
        monthly_expenses = self.average_expenses(spending.ledger, as_of)
        months_covered = float(max(savings.ledger.net_balance, ZERO) / max(monthly_expenses, Decimal("1")))
        emergency = min(months_covered / EMERGENCY_FUND_MONTHS, 1.0)
        growth = _clamp((0.05 - self.expense_growth(spending.ledger, as_of)) / 0.1)
        return (emergency * 0.7 + growth * 0.3) * 100

    def savings_score(self, spending: Account, savings: Account, as_of: date) -> float:
        """Savings inflow against spending inflow (70%) and saving consistency (30%).

        A savings rate of 20% or more maxes the first part; consistency is
        full when at least four of the last six months received savings.
        """
        rate = ratio(savings.ledger.total_credits, max(spending.ledger.total_credits, Decimal("1")))
        rate_score = min(rate / TARGET_SAVINGS_RATE, 1.0)
        consistency = 1.0 if self.saving_months(savings.ledger, as_of) >= CONSISTENT_SAVING_MONTHS else 0.5
        return (rate_score * 0.7 + consistency * 0.3) * 100

    def diversification_score(
        self,
        savings: Account,
        as_of: date,
        portfolio: Optional[PortfolioSnapshot] = None,
        assets: Optional[AssetBook] = None,
    ) -> float:
        """Distance of the savings/investments/asset-equity split from 10/60/30.

        Scores 0 without investments.
        """
        investments = portfolio.net_liquidation if portfolio else ZERO
        if investments <= ZERO:
            return 0.0
        parts = (
            max(savings.ledger.net_balance, ZERO),
            investments,
            max(assets.total_equity(as_of), ZERO) if assets else ZERO,
        )
        total = max(sum_amounts(parts), Decimal("1"))
        deviation = sum(abs(float(part / total) - ideal) for part, ideal in zip(parts, IDEAL_CAPITAL_SPLIT))
        return max(1.0 - deviation / len(parts) * 2, 0.0) * 100

    def financial_health(
        self,
        spending: Account,
        savings: Account,
        as_of: date,
        portfolio: Optional[PortfolioSnapshot] = None,
        assets: Optional[AssetBook] = None,
    ) -> FinancialHealth:
        """Composite health of the household from its spending and savings accounts."""
        worth = self.net_worth([spending, savings], portfolio, assets, as_of)
        health = FinancialHealth(
            portfolio=self.portfolio_score(worth, portfolio),
            budget=self.budget_score(spending, savings, as_of),
            savings=self.savings_score(spending, savings, as_of),
            diversification=self.diversification_score(savings, as_of, portfolio, assets),
            asset_health=(assets.health_score(as_of) if assets else 1.0) * 100,
        )
        logger.debug(f"Financial health as of {as_of}: {health.overall:.1f} ({health.grade})")
        return health

    # Snapshot

    def snapshot(
        self,
        account: Account,
        as_of: date,
        portfolio: Optional[PortfolioSnapshot] = None,
        top_limit: int = 5,
    ) -> AccountSnapshot:
        """Collect the figures the presentation layer shows for one account."""
        ledger = account.ledger
        logger.debug(f"Building snapshot for {account.id} as of {as_of}")
        return AccountSnapshot(
            account_id=account.id,
            name=account.name,
            transaction_count=len(ledger),
            total_debits=ledger.total_debits,
            total_credits=ledger.total_credits,
            net_balance=ledger.net_balance,
            budget=self.budget_status(account),
            categories=self.category_statuses(account),
            health_score=self.health_score(account),
            spending_trend=self.spending_trend(ledger, as_of),
            income_trend=self.income_trend(ledger, as_of),
            top_categories=self.top_spending_categories(ledger, limit=top_limit),
            portfolio_value=portfolio.net_liquidation if portfolio else None,
        )
