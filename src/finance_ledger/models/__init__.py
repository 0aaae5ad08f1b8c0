"""Data models for transactions, ledgers, accounts, assets, budgets and reports."""

from finance_ledger.models.account import Account, AccountType, SavingsGoal
from finance_ledger.models.asset import Asset, AssetBook, Loan, LoanStatus
from finance_ledger.models.budget import BudgetCategory, BudgetTable
from finance_ledger.models.category import CategoryRule, RuleTable
from finance_ledger.models.ledger import Ledger
from finance_ledger.models.portfolio import PortfolioSnapshot, Position
from finance_ledger.models.transaction import Transaction, TransactionType

__all__ = [
    "Transaction",
    "TransactionType",
    "Ledger",
    "Account",
    "AccountType",
    "SavingsGoal",
    "Asset",
    "AssetBook",
    "Loan",
    "LoanStatus",
    "BudgetCategory",
    "BudgetTable",
    "CategoryRule",
    "RuleTable",
    "PortfolioSnapshot",
    "Position",
]
