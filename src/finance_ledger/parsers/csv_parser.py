"""Parsers for the two amount layouts of CSV exports."""

from decimal import Decimal
from typing import Optional

from finance_ledger.config import ColumnLayout, DialectConfig
from finance_ledger.models.transaction import TransactionType
from finance_ledger.parsers.base import BaseParser, UnparsableRowError
from finance_ledger.utils.decimal_utils import ZERO, parse_amount, try_parse_amount
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)


class DebitCreditParser(BaseParser):
    """Parser for exports with separate debit and credit columns.

    A positive debit wins; otherwise a positive credit; a row with neither
    is a zero-value row and is skipped. Empty or non-numeric cells count as zero.
    """

    def _parse_amount(
        self, row: list[str], columns: dict[str, int], source: str
    ) -> Optional[tuple[Decimal, TransactionType]]:
        separator = self.dialect.decimal_separator
        debit = parse_amount(row[columns["debit"]], separator)
        credit = parse_amount(row[columns["credit"]], separator)

        if debit > ZERO and credit > ZERO:
            logger.warning(
                f"Row in {source or '<input>'} has both debit ({debit}) and credit ({credit}); using debit"
            )

        if debit > ZERO:
            return debit, TransactionType.DEBIT
        if credit > ZERO:
            return credit, TransactionType.CREDIT
        return None


class SignedAmountParser(BaseParser):
    """Parser for exports with one signed amount column.

    Negative amounts are debits (stored as the absolute value), everything
    else is a credit. A currency code around the amount is ignored.
    """

    def _parse_amount(
        self, row: list[str], columns: dict[str, int], source: str
    ) -> Optional[tuple[Decimal, TransactionType]]:
        raw_amount = row[columns["amount"]]
        amount = try_parse_amount(raw_amount, self.dialect.decimal_separator)
        if amount is None:
            raise UnparsableRowError(f"invalid amount '{raw_amount.strip()}'", source)

        if amount < ZERO:
            return -amount, TransactionType.DEBIT
        return amount, TransactionType.CREDIT


PARSERS_BY_LAYOUT: dict[ColumnLayout, type[BaseParser]] = {
    ColumnLayout.DEBIT_CREDIT: DebitCreditParser,
    ColumnLayout.SIGNED_AMOUNT: SignedAmountParser,
}


def get_parser(dialect: DialectConfig) -> BaseParser:
    """Create the parser matching a dialect's amount layout."""
    return PARSERS_BY_LAYOUT[dialect.layout](dialect)
