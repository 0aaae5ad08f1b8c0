"""Tests for transaction, ledger, budget, account and asset models."""

from datetime import date
from decimal import Decimal

import pytest

from finance_ledger.models import (
    Account,
    AccountType,
    Asset,
    AssetBook,
    BudgetCategory,
    BudgetTable,
    Ledger,
    Loan,
    LoanStatus,
    PortfolioSnapshot,
    Position,
    SavingsGoal,
    Transaction,
    TransactionType,
)


def create_transaction(
    amount: str,
    transaction_type: TransactionType = TransactionType.DEBIT,
    trans_date: date = date(2024, 3, 15),
    description: str = "Test Transaction",
    category: str = "Misc",
) -> Transaction:
    """Helper to create a Transaction for testing."""
    return Transaction(
        date=trans_date,
        description=description,
        category=category,
        amount=Decimal(amount),
        transaction_type=transaction_type,
        source_file="test.csv",
    )


class TestTransaction:
    """Tests for the Transaction model."""

    def test_negative_amount_rejected(self) -> None:
        """Test that amounts must be non-negative."""
        with pytest.raises(ValueError):
            create_transaction("-1")

    def test_signed_amount(self) -> None:
        """Test that direction decides the balance effect."""
        assert create_transaction("10").signed_amount == Decimal("-10")
        assert create_transaction("10", TransactionType.CREDIT).signed_amount == Decimal("10")

    def test_immutable(self) -> None:
        """Test that transactions cannot be mutated."""
        txn = create_transaction("10")
        with pytest.raises(AttributeError):
            txn.amount = Decimal("20")  # type: ignore[misc]

    def test_ids_unique(self) -> None:
        """Test that each transaction gets its own id."""
        assert create_transaction("1").id != create_transaction("1").id

    def test_dedup_key_ignores_id_and_scale(self) -> None:
        """Test that equal values with different ids share a dedup key."""
        a = create_transaction("50000")
        b = create_transaction("50000.00")
        assert a.dedup_key == b.dedup_key
        assert a.fingerprint == b.fingerprint

    def test_dedup_key_includes_direction(self) -> None:
        """Test that a debit and a credit of the same amount differ."""
        assert create_transaction("5").dedup_key != create_transaction("5", TransactionType.CREDIT).dedup_key

    def test_transaction_type_from_value(self) -> None:
        """Test parsing the direction from configuration strings."""
        assert TransactionType.from_value(" Credit ") is TransactionType.CREDIT
        assert TransactionType.from_value(TransactionType.DEBIT) is TransactionType.DEBIT
        with pytest.raises(ValueError):
            TransactionType.from_value("sideways")


class TestLedger:
    """Tests for the Ledger collection."""

    def test_sorted_descending_after_every_add(self) -> None:
        """Test that the ledger is non-increasing by date after each add."""
        ledger = Ledger()
        for day in (5, 20, 1, 15, 20, 3):
            ledger.add(create_transaction("1", trans_date=date(2024, 3, day)))
            dates = [t.date for t in ledger]
            assert dates == sorted(dates, reverse=True)

    def test_equal_dates_keep_insertion_order(self) -> None:
        """Test that sorting is stable for entries sharing a date."""
        first = create_transaction("1", description="first")
        second = create_transaction("2", description="second")
        ledger = Ledger([first, second])
        ledger.add(create_transaction("3", trans_date=date(2024, 1, 1)))

        assert [t.description for t in ledger][:2] == ["first", "second"]

    def test_remove_by_id(self) -> None:
        """Test deletion by identifier."""
        keep = create_transaction("1")
        drop = create_transaction("2")
        ledger = Ledger([keep, drop])

        assert ledger.remove(drop.id) == 1
        assert ledger.remove(drop.id) == 0
        assert [t.id for t in ledger] == [keep.id]

    def test_views(self) -> None:
        """Test direction, category and date views."""
        ledger = Ledger(
            [
                create_transaction("100", category="Debt", trans_date=date(2024, 3, 1)),
                create_transaction("50", category="Debt", trans_date=date(2024, 2, 28)),
                create_transaction("900", TransactionType.CREDIT, category="Salary", trans_date=date(2024, 3, 10)),
            ]
        )

        assert len(ledger.debits) == 2
        assert len(ledger.credits) == 1
        assert ledger.categories == ["Debt", "Salary"]
        assert len(ledger.for_category("Debt")) == 2
        assert len(ledger.for_month(date(2024, 3, 20))) == 2
        assert len(ledger.for_date_range(date(2024, 2, 28), date(2024, 3, 1))) == 2
        assert len(ledger.for_date_range(None, date(2024, 2, 28))) == 1

    def test_totals(self) -> None:
        """Test totals, per-category totals and net balance."""
        ledger = Ledger(
            [
                create_transaction("100", category="Savings"),
                create_transaction("30", TransactionType.CREDIT, category="Savings"),
                create_transaction("900", TransactionType.CREDIT, category="Salary"),
            ]
        )

        assert ledger.total_debits == Decimal("100")
        assert ledger.total_credits == Decimal("930")
        assert ledger.net_balance == Decimal("830")
        assert ledger.debits_for("Savings") == Decimal("100")
        assert ledger.credits_for("Savings") == Decimal("30")
        assert ledger.net_for("Savings") == Decimal("-70")

    def test_week_and_last_30_days(self) -> None:
        """Test week and trailing 30-day windows."""
        ledger = Ledger(
            [
                create_transaction("1", trans_date=date(2024, 3, 11)),
                create_transaction("2", trans_date=date(2024, 3, 17)),
                create_transaction("4", trans_date=date(2024, 3, 18)),
                create_transaction("8", trans_date=date(2024, 2, 1)),
            ]
        )

        assert {t.amount for t in ledger.for_week(date(2024, 3, 13))} == {Decimal("1"), Decimal("2")}
        assert len(ledger.last_30_days(date(2024, 3, 18))) == 3
        assert ledger.totals_for_date_range(date(2024, 3, 1), None) == (Decimal("7"), Decimal("0"))

    def test_views_recomputed_after_mutation(self) -> None:
        """Test that derived views reflect the current entries."""
        ledger = Ledger()
        assert ledger.total_debits == Decimal("0")
        txn = create_transaction("10")
        ledger.add(txn)
        assert ledger.total_debits == Decimal("10")
        ledger.remove(txn.id)
        assert ledger.total_debits == Decimal("0")
        assert not ledger

    def test_contains_equivalent(self) -> None:
        """Test lookup by date, description, amount and direction."""
        ledger = Ledger([create_transaction("10")])
        assert ledger.contains_equivalent(create_transaction("10.0"))
        assert not ledger.contains_equivalent(create_transaction("11"))


class TestBudgetTable:
    """Tests for budget table management."""

    def test_duplicate_names_rejected(self) -> None:
        """Test that names are unique within a table."""
        with pytest.raises(ValueError):
            BudgetTable([BudgetCategory("Debt", Decimal("1")), BudgetCategory("Debt", Decimal("2"))])

    def test_update_add_remove(self) -> None:
        """Test editing allocations."""
        table = BudgetTable.from_dict({"Debt": 100, "Misc": "50.5"})

        assert table.total == Decimal("150.5")
        assert table.update("Debt", Decimal("120"))
        assert not table.update("Unknown", Decimal("1"))
        assert table.allocation_for("Debt") == Decimal("120")
        assert not table.add(BudgetCategory("Misc", Decimal("1")))
        assert table.add(BudgetCategory("Trips", Decimal("10")))
        assert table.remove("Misc")
        assert not table.remove("Misc")
        assert table.names == ["Debt", "Trips"]
        assert table.allocation_for("Misc") == Decimal("0")
        assert table.to_dict() == {"Debt": "120", "Trips": "10"}

    def test_editing_budget_leaves_ledger_alone(self) -> None:
        """Test that budget changes never touch transactions."""
        account = Account(id="a", name="A", account_type=AccountType.CHECKING)
        account.ledger.add(create_transaction("10", category="Debt"))
        account.budget.add(BudgetCategory("Debt", Decimal("5")))
        account.budget.remove("Debt")

        assert account.ledger.debits_for("Debt") == Decimal("10")


class TestSavingsGoal:
    """Tests for the savings goal allocation rules."""

    def test_update_requires_shares_summing_to_one(self) -> None:
        """Test that allocations must cover exactly 100%."""
        goal = SavingsGoal(Decimal("250000"), [("Trips", Decimal("0.5")), ("Long term", Decimal("0.5"))])

        assert not goal.update_allocation([("Trips", Decimal("0.6")), ("Long term", Decimal("0.5"))])
        assert goal.allocation[0] == ("Trips", Decimal("0.5"))
        assert goal.update_allocation([("Trips", Decimal("0.3")), ("Long term", Decimal("0.7"))])
        assert goal.allocation == [("Trips", Decimal("0.3")), ("Long term", Decimal("0.7"))]

    def test_add_and_remove_share(self) -> None:
        """Test adding a category only within the unallocated share."""
        goal = SavingsGoal(Decimal("0"), [("Trips", Decimal("0.5"))])

        assert not goal.add_share("Car", Decimal("0.6"))
        assert goal.add_share("Car", Decimal("0.5"))
        goal.remove_share("Trips")
        assert goal.allocation == [("Car", Decimal("0.5"))]


class TestAccount:
    """Tests for Account configuration helpers."""

    def test_from_dict(self) -> None:
        """Test building an account from configuration data."""
        account = Account.from_dict(
            {
                "id": "savings",
                "type": "savings",
                "dialect": "savings",
                "emergency_fund_target": 250000,
                "savings_allocation": {"Trips": 0.5, "Long term": 0.5},
                "source_file_patterns": ["*Savings*.csv"],
            }
        )

        assert account.name == "savings"
        assert account.account_type is AccountType.SAVINGS
        assert account.savings_goal.emergency_fund_target == Decimal("250000")
        assert account.savings_goal.allocation == [("Trips", Decimal("0.5")), ("Long term", Decimal("0.5"))]
        assert account.matches_file("march_savings_2024.csv")
        assert not account.matches_file("march_expenses.csv")
        assert len(account.ledger) == 0

    def test_unknown_type_falls_back_to_other(self) -> None:
        """Test that unknown account types do not fail loading."""
        assert Account.from_dict({"id": "x", "type": "crypto"}).account_type is AccountType.OTHER


class TestPortfolioSnapshot:
    """Tests for the brokerage snapshot model."""

    def test_from_dict(self) -> None:
        """Test position categories from broker security types."""
        snapshot = PortfolioSnapshot.from_dict(
            {
                "net_liquidation": "10000",
                "total_cash": 500,
                "positions": [
                    {"symbol": "VT", "sec_type": "STK", "market_value": 8000},
                    {"symbol": "XYZ", "sec_type": "WAR", "market_value": 1500},
                ],
            }
        )

        assert snapshot.net_liquidation == Decimal("10000")
        assert [p.category for p in snapshot.positions] == ["Stocks", "Other"]

    def test_unrealized_return(self) -> None:
        """Test the return of the positions over their cost basis."""
        snapshot = PortfolioSnapshot(
            net_liquidation=Decimal("16000"),
            positions=(
                Position("VT", "STK", Decimal("11000"), Decimal("1000")),
                Position("BND", "BOND", Decimal("4000"), Decimal("-500")),
            ),
        )

        assert snapshot.unrealized_return == pytest.approx(500 / 14500)
        assert PortfolioSnapshot(net_liquidation=Decimal("100")).unrealized_return == 0.0


def create_loan(
    amount: str = "12000",
    rate: str = "0",
    term_years: int = 1,
    start: date = date(2024, 1, 10),
) -> Loan:
    """Helper to create a Loan for testing."""
    return Loan(
        original_amount=Decimal(amount),
        interest_rate=Decimal(rate),
        term_years=term_years,
        start_date=start,
    )


class TestLoan:
    """Tests for loan amortization."""

    def test_amortized_payment(self) -> None:
        """Test the standard annuity payment for a positive rate."""
        loan = create_loan("100000", rate="12")

        assert round(loan.monthly_payment, 2) == Decimal("8884.88")

    def test_remaining_balance_declines_to_zero(self) -> None:
        """Test the outstanding principal over the life of the loan."""
        loan = create_loan("100000", rate="12")

        assert abs(loan.remaining_balance(date(2024, 1, 10)) - Decimal("100000")) < Decimal("0.01")
        assert Decimal("51400") < loan.remaining_balance(date(2024, 7, 10)) < Decimal("51600")
        assert loan.remaining_balance(date(2025, 1, 10)) == Decimal("0")
        assert loan.remaining_balance(date(2030, 1, 1)) == Decimal("0")

    def test_interest_paid_over_full_term(self) -> None:
        """Test that interest is everything paid beyond the principal."""
        loan = create_loan("100000", rate="12")

        assert round(loan.interest_paid(date(2025, 1, 10)), 2) == Decimal("6618.55")

    def test_zero_rate_is_straight_line(self) -> None:
        """Test that an interest-free loan spreads the principal evenly."""
        loan = create_loan()

        assert loan.monthly_payment == Decimal("1000")
        assert loan.payments_made(date(2024, 4, 9)) == 2
        assert loan.remaining_balance(date(2024, 4, 10)) == Decimal("9000")
        assert loan.interest_paid(date(2024, 4, 10)) == Decimal("0")

    def test_paid_off(self) -> None:
        """Test that a paid-off loan owes nothing and costs nothing."""
        loan = create_loan()
        loan.mark_paid_off(date(2024, 2, 1))

        assert loan.status is LoanStatus.PAID_OFF
        assert loan.paid_off_date == date(2024, 2, 1)
        assert loan.monthly_payment == Decimal("0")
        assert loan.remaining_balance(date(2024, 4, 10)) == Decimal("0")

    def test_invalid_term(self) -> None:
        """Test that a loan needs at least one year."""
        with pytest.raises(ValueError):
            create_loan(term_years=0)


class TestAsset:
    """Tests for assets and their equity."""

    def test_equity_and_appreciation(self) -> None:
        """Test market value minus the outstanding loan."""
        asset = Asset(
            name="Car",
            asset_type="Car",
            acquisition_date=date(2024, 1, 10),
            acquisition_price=Decimal("100000"),
            market_value=Decimal("90000"),
            loan=create_loan(),
        )

        assert asset.equity(date(2024, 4, 10)) == Decimal("81000")
        assert asset.total_appreciation == Decimal("-10000")
        assert asset.appreciation_rate == pytest.approx(-0.1)
        assert not asset.is_underwater(date(2024, 4, 10))

    def test_underwater(self) -> None:
        """Test an asset worth less than its loan."""
        asset = Asset("Boat", "Boat", date(2024, 1, 10), Decimal("12000"), Decimal("5000"), create_loan())

        assert asset.is_underwater(date(2024, 4, 10))

    def test_market_value_defaults_to_price(self) -> None:
        """Test that an asset without a market value counts at its price."""
        asset = Asset.from_dict(
            {"name": "Lot", "acquisition_date": "2020-05-01", "acquisition_price": 30000}
        )

        assert asset.current_value == Decimal("30000")
        assert asset.loan_status is LoanStatus.NO_LOAN
        assert asset.equity(date(2024, 1, 1)) == Decimal("30000")


class TestAssetBook:
    """Tests for household asset totals and health."""

    def test_totals(self) -> None:
        """Test value, debt, equity and payments across assets."""
        book = AssetBook(
            [
                Asset("Car", "Car", date(2024, 1, 10), Decimal("20000"), loan=create_loan()),
                Asset("Lot", "Land", date(2020, 5, 1), Decimal("30000")),
            ]
        )
        as_of = date(2024, 4, 10)

        assert book.total_value == Decimal("50000")
        assert book.total_debt(as_of) == Decimal("9000")
        assert book.total_equity(as_of) == Decimal("41000")
        assert book.total_monthly_payments == Decimal("1000")
        assert book.loan_to_value_ratio(as_of) == pytest.approx(0.18)

    def test_average_interest_rate_weighted_by_amount(self) -> None:
        """Test that larger loans weigh more in the average rate."""
        book = AssetBook(
            [
                Asset("A", "Car", date(2024, 1, 1), Decimal("100000"), loan=create_loan("100000", "6")),
                Asset("B", "House", date(2024, 1, 1), Decimal("300000"), loan=create_loan("300000", "10")),
            ]
        )

        assert book.average_interest_rate == Decimal("9")

    def test_health_score(self) -> None:
        """Test equity, loan-to-value and appreciation parts of asset health."""
        loan = create_loan("60000", term_years=5, start=date(2024, 1, 1))
        book = AssetBook([Asset("Flat", "Apartment", date(2024, 1, 1), Decimal("100000"), loan=loan)])

        assert book.loan_to_value_ratio(date(2024, 1, 1)) == pytest.approx(0.6)
        assert book.health_score(date(2024, 1, 1)) == pytest.approx((1 + 2 / 3 + 1) / 3)

    def test_empty_book_is_healthy(self) -> None:
        """Test that no assets means full asset health."""
        assert AssetBook().health_score(date(2024, 1, 1)) == 1.0
        assert AssetBook.from_dict(None).total_value == Decimal("0")

    def test_from_dict_rejects_mapping(self) -> None:
        """Test that assets must be listed."""
        with pytest.raises(ValueError):
            AssetBook.from_dict({"Car": {}})
