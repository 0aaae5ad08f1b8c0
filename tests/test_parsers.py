"""Tests for the CSV dialect parsers."""

import csv
import logging
from decimal import Decimal

import pytest

from finance_ledger.config import DEFAULT_DIALECTS, ColumnLayout, DialectConfig
from finance_ledger.models.category import CategoryRule, RuleTable
from finance_ledger.models.transaction import TransactionType
from finance_ledger.parsers import (
    DebitCreditParser,
    MalformedHeaderError,
    ParseError,
    SignedAmountParser,
    UnparsableRowError,
    get_parser,
)
from finance_ledger.parsers.base import split_line

BANK_HEADER = "Fecha,Descripción,Débito,Crédito"
WISE_HEADER = "Date,Description,Amount"


def bank_parser() -> DebitCreditParser:
    """Helper to create a parser for the bank export dialect."""
    return DebitCreditParser(DEFAULT_DIALECTS["debit_credit"])


def wise_parser() -> SignedAmountParser:
    """Helper to create a parser for the transfer-service dialect."""
    return SignedAmountParser(DEFAULT_DIALECTS["signed_amount"])


def csv_text(header: str, *rows: str) -> str:
    """Helper to join a header and rows into CSV content."""
    return "\n".join([header, *rows]) + "\n"


class TestDebitCreditParser:
    """Tests for the dual-column debit/credit layout."""

    def test_debit_row_categorized_by_keyword(self) -> None:
        """Test the basic Spanish export row for a loan payment."""
        transactions = bank_parser().parse(csv_text(BANK_HEADER, "01/03/2024,Pago Prestamo,50000,"))

        assert len(transactions) == 1
        txn = transactions[0]
        assert txn.transaction_type == TransactionType.DEBIT
        assert txn.amount == Decimal("50000")
        assert txn.category == "Debt"
        assert txn.description == "Pago Prestamo"
        assert txn.date.isoformat() == "2024-03-01"

    def test_quoted_credit_with_thousands_separator(self) -> None:
        """Test a quoted credit amount containing a comma."""
        transactions = bank_parser().parse(
            csv_text(BANK_HEADER, '02/03/2024,Deposito ATM,,"1,000"')
        )

        assert len(transactions) == 1
        assert transactions[0].transaction_type == TransactionType.CREDIT
        assert transactions[0].amount == Decimal("1000")
        assert transactions[0].category == "Salary"

    def test_direction_defaults(self) -> None:
        """Test unmatched credits and debits fall back to their own defaults."""
        transactions = bank_parser().parse(
            csv_text(
                BANK_HEADER,
                "05/03/2024,Reintegro,,200",
                "06/03/2024,Supermercado,300,",
            )
        )

        categories = {t.transaction_type: t.category for t in transactions}
        assert categories == {TransactionType.CREDIT: "Other", TransactionType.DEBIT: "Misc"}

    def test_debit_only_rule_does_not_apply_to_credit(self) -> None:
        """Test that a debit rule keyword on a credit row is not used."""
        transactions = bank_parser().parse(csv_text(BANK_HEADER, "05/03/2024,Pago recibido,,500"))

        assert transactions[0].category == "Other"

    def test_skips_bad_rows_and_keeps_good_ones(self) -> None:
        """Test that zero, short and bad-date rows are skipped individually."""
        transactions = bank_parser().parse(
            csv_text(
                BANK_HEADER,
                "03/03/2024,Nada,0,0",
                "04/03/2024,Corta",
                "not-a-date,Pago,100,",
                "2024-03-05,Pago,100,",
                "07/03/2024,Servicentro La Sabana,15000,",
            )
        )

        assert len(transactions) == 1
        assert transactions[0].category == "Transportation"

    def test_debit_wins_when_both_columns_filled(self) -> None:
        """Test rows carrying values in both amount columns."""
        transactions = bank_parser().parse(csv_text(BANK_HEADER, "08/03/2024,Ajuste,10,20"))

        assert transactions[0].transaction_type == TransactionType.DEBIT
        assert transactions[0].amount == Decimal("10")

    def test_english_header_and_column_order(self) -> None:
        """Test that columns are found by keyword regardless of position."""
        content = csv_text("Credit,Debit,Transaction Date,Description", ",75.5,09/03/2024,OpenAI")
        transactions = bank_parser().parse(content)

        assert transactions[0].amount == Decimal("75.5")
        assert transactions[0].category == "Subscriptions"

    def test_bytes_with_bom(self) -> None:
        """Test delivered bytes with a UTF-8 byte order mark."""
        raw = ("\ufeff" + csv_text(BANK_HEADER, "01/03/2024,Ahorro mensual,20000,")).encode("utf-8")
        transactions = bank_parser().parse(raw, source="expenses.csv")

        assert transactions[0].category == "Savings"
        assert transactions[0].source_file == "expenses.csv"

    def test_blank_lines_ignored(self) -> None:
        """Test that empty lines between rows are dropped."""
        content = BANK_HEADER + "\n\n01/03/2024,Pago,1,\n   \n02/03/2024,Pago,2,\n"
        assert len(bank_parser().parse(content)) == 2


class TestSignedAmountParser:
    """Tests for the single signed amount layout."""

    def test_sign_decides_direction(self) -> None:
        """Test negative amounts become debits stored as absolute values."""
        transactions = wise_parser().parse(
            csv_text(
                WISE_HEADER,
                "15-03-2024,Transfer to IBKR,-2500.00 CRC",
                "2024-03-16,Expenses top up,10000",
            )
        )

        assert len(transactions) == 2
        debit, credit = transactions
        assert debit.transaction_type == TransactionType.DEBIT
        assert debit.amount == Decimal("2500.00")
        assert debit.category == "Interactive Brokers"
        assert credit.transaction_type == TransactionType.CREDIT
        assert credit.category == "Wise"

    def test_zero_amount_is_credit(self) -> None:
        """Test that zero is non-negative and therefore a credit."""
        transactions = wise_parser().parse(csv_text(WISE_HEADER, "2024/03/17,Fee waiver,0"))

        assert transactions[0].transaction_type == TransactionType.CREDIT
        assert transactions[0].amount == Decimal("0")

    def test_unparsable_amount_skips_row(self) -> None:
        """Test that a non-numeric amount skips the row instead of recording zero."""
        transactions = wise_parser().parse(
            csv_text(WISE_HEADER, "16/03/2024,Card refund,abc", "16/03/2024,Card refund,5")
        )

        assert len(transactions) == 1
        assert transactions[0].amount == Decimal("5")

    def test_shared_rules_apply_to_both_directions(self) -> None:
        """Test rules without a direction match debits and credits."""
        transactions = wise_parser().parse(
            csv_text(WISE_HEADER, "16/03/2024,IBKR withdrawal,300", "16/03/2024,Sent money,-5")
        )

        assert transactions[0].category == "Interactive Brokers"
        assert transactions[1].category == "Wise"

    def test_comma_decimal_dialect(self) -> None:
        """Test a dialect with comma as decimal separator."""
        dialect = DialectConfig(
            name="eu",
            layout=ColumnLayout.SIGNED_AMOUNT,
            columns={"date": ["datum"], "description": ["omschrijving"], "amount": ["bedrag"]},
            date_formats=["%d-%m-%Y"],
            decimal_separator=",",
            rules=RuleTable(rules=(CategoryRule("Groceries", ("albert heijn",)),), default="Other"),
        )
        content = csv_text("Datum,Omschrijving,Bedrag", '01-03-2024,Albert Heijn,"-1.234,56"')
        transactions = SignedAmountParser(dialect).parse(content)

        assert transactions[0].amount == Decimal("1234.56")
        assert transactions[0].category == "Groceries"


class TestMalformedInput:
    """Tests for files that yield nothing importable."""

    def test_missing_column_yields_empty_result(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a header without a required column skips the whole file."""
        content = csv_text("Fecha,Descripción,Monto", "01/03/2024,Pago,50000")

        with caplog.at_level(logging.WARNING, logger="finance_ledger"):
            transactions = bank_parser().parse(content, source="bad.csv")

        assert transactions == []
        assert "bad.csv" in caplog.text

    def test_resolve_columns_raises(self) -> None:
        """Test that column resolution reports every missing column."""
        with pytest.raises(MalformedHeaderError) as exc_info:
            bank_parser().resolve_columns(["Fecha", "Monto"], source="bad.csv")

        assert isinstance(exc_info.value, ParseError)
        assert exc_info.value.source == "bad.csv"
        assert "description" in str(exc_info.value)
        assert "credit" in str(exc_info.value)

    @pytest.mark.parametrize("content", ["", BANK_HEADER, BANK_HEADER + "\n\n  \n"])
    def test_fewer_than_two_lines(self, content: str) -> None:
        """Test that header-only or empty content yields no transactions."""
        assert bank_parser().parse(content) == []


    def test_unbalanced_quote_skips_only_that_row(self) -> None:
        """Test that an unterminated quote does not swallow the following rows."""
        content = csv_text(
            BANK_HEADER,
            '01/03/2024,"Pago Prestamo,50000,',
            "02/03/2024,Servicentro,15000,",
            "03/03/2024,Delta,8000,",
        )

        transactions = bank_parser().parse(content)

        assert [t.description for t in transactions] == ["Servicentro", "Delta"]
        assert all(t.category == "Transportation" for t in transactions)

    def test_oversized_field_skips_only_that_row(self) -> None:
        """Test that a field beyond the csv module's size limit is an unparsable row."""
        content = csv_text(
            BANK_HEADER,
            f"01/03/2024,{'x' * (csv.field_size_limit() + 10)},100,",
            "02/03/2024,Servicentro,15000,",
        )

        transactions = bank_parser().parse(content, source="huge.csv")

        assert [t.description for t in transactions] == ["Servicentro"]

    def test_split_line_rejects_oversized_field(self) -> None:
        """Test that csv errors surface as UnparsableRowError with the source."""
        with pytest.raises(UnparsableRowError) as exc_info:
            split_line("a," + "x" * (csv.field_size_limit() + 1), source="huge.csv")

        assert exc_info.value.source == "huge.csv"

    def test_split_line_keeps_quoted_commas(self) -> None:
        """Test that quoted separators stay inside their field."""
        assert split_line('01/03/2024,Deposito,,"1,000"') == ["01/03/2024", "Deposito", "", "1,000"]


class TestGetParser:
    """Tests for the layout-to-parser registry."""

    def test_parser_per_layout(self) -> None:
        """Test that each built-in dialect gets the parser of its layout."""
        assert isinstance(get_parser(DEFAULT_DIALECTS["debit_credit"]), DebitCreditParser)
        assert isinstance(get_parser(DEFAULT_DIALECTS["savings"]), DebitCreditParser)
        assert isinstance(get_parser(DEFAULT_DIALECTS["signed_amount"]), SignedAmountParser)

    def test_savings_rules(self) -> None:
        """Test the savings dialect's rule table through its parser."""
        parser = get_parser(DEFAULT_DIALECTS["savings"])
        transactions = parser.parse(
            csv_text(
                BANK_HEADER,
                "01/03/2024,Emergency deposit,,1000",
                "02/03/2024,Vacation fund,,500",
                "03/03/2024,Interest paid,,3",
                "04/03/2024,Monthly transfer,,2000",
            )
        )

        assert [t.category for t in transactions] == ["Emergency Fund", "Trips", "Interest", "Savings"]
