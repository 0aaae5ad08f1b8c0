"""Base class and error taxonomy for CSV dialect parsers."""

import csv
import unicodedata
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Union

from finance_ledger.config import REQUIRED_COLUMNS, DialectConfig
from finance_ledger.models.transaction import Transaction, TransactionType
from finance_ledger.processing.categorizer import Categorizer
from finance_ledger.utils.date_utils import InvalidDateError, parse_date
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)


class ParseError(Exception):
    """Exception raised when parsing fails."""

    def __init__(self, message: str, source: Optional[str] = None):
        """Initialize ParseError.

        Args:
            message: Error message.
            source: Optional identifier of the file that failed to parse.
        """
        self.source = source
        super().__init__(message)


class MalformedHeaderError(ParseError):
    """A required column could not be found in the header; the file is skipped."""

    pass


class UnparsableRowError(ParseError):
    """A data row is structurally invalid or has a bad date or amount; the row is skipped."""

    pass


def _normalize(text: str) -> str:
    return unicodedata.normalize("NFC", text).strip().casefold()


def decode(raw: Union[bytes, str]) -> str:
    """Decode delivered bytes as UTF-8, tolerating a BOM and invalid sequences."""
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8-sig", errors="replace")


def split_line(line: str, source: Optional[str] = None) -> list[str]:
    """Split one CSV line into fields.

    Each line is read on its own, so an unbalanced quote cannot swallow the
    lines after it.

    Raises:
        UnparsableRowError: If the csv module rejects the line.
    """
    try:
        return next(csv.reader([line]), [])
    except csv.Error as e:
        raise UnparsableRowError(f"malformed CSV line: {e}", source) from e


class BaseParser(ABC):
    """Parses one CSV dialect into Transactions.

    Subclasses implement `_parse_amount()` for their amount layout; header
    resolution, row iteration, date parsing and categorization are shared.
    """

    def __init__(self, dialect: DialectConfig):
        """Initialize parser.

        Args:
            dialect: Column keywords, date formats and rules of the source.
        """
        self.dialect = dialect
        self.categorizer = Categorizer(dialect.rules)

    @property
    def name(self) -> str:
        return f"{self.__class__.__name__}({self.dialect.name})"

    def parse(self, raw_text: Union[bytes, str], source: str = "") -> list[Transaction]:
        """Parse CSV content and return transactions.

        Never raises for content problems: a header missing a required column
        yields an empty list, unparsable rows are skipped.

        Args:
            raw_text: CSV content as delivered (bytes or text).
            source: Identifier of the file, used in logs and on each Transaction.

        Returns:
            List of Transaction objects in file order.
        """
        label = source or "<input>"
        lines = [line for line in decode(raw_text).splitlines() if line.strip()]
        if len(lines) < 2:
            logger.info(f"No data rows in {label}")
            return []

        try:
            header = split_line(lines[0], source)
            columns = self.resolve_columns(header, source)
        except ParseError as e:
            logger.warning(f"Skipping {label}: {e}")
            return []

        max_index = max(columns.values())
        transactions = []
        skipped_count = 0
        for row_num, line in enumerate(lines[1:], start=2):
            try:
                row = split_line(line, source)
                if len(row) <= max_index:
                    raise UnparsableRowError(
                        f"{len(row)} fields, column {max_index + 1} required", source
                    )
                txn = self._parse_row(row, columns, source)
            except UnparsableRowError as e:
                logger.debug(f"Skipping row {row_num} in {label}: {e}")
                skipped_count += 1
                continue

            if txn is None:
                logger.debug(f"Skipping row {row_num} in {label}: zero-value row")
                skipped_count += 1
                continue
            transactions.append(txn)

        logger.info(
            f"Parsed {len(transactions)} transactions from {label} ({skipped_count} rows skipped)"
        )
        return transactions

    def resolve_columns(self, header: list[str], source: Optional[str] = None) -> dict[str, int]:
        """Find the index of each required column by keyword.

        A column matches when any of its keywords is a case-insensitive
        substring of the header cell. The first matching cell wins.

        Args:
            header: Header cells.
            source: File identifier for error context.

        Returns:
            Mapping of column role to index.

        Raises:
            MalformedHeaderError: If any required column has no match.
        """
        cells = [_normalize(cell) for cell in header]
        columns: dict[str, int] = {}
        missing = []
        for role in REQUIRED_COLUMNS[self.dialect.layout]:
            keywords = [_normalize(k) for k in self.dialect.columns[role]]
            index = next(
                (i for i, cell in enumerate(cells) if any(k in cell for k in keywords)),
                None,
            )
            if index is None:
                missing.append(role)
            else:
                columns[role] = index

        if missing:
            raise MalformedHeaderError(
                f"no column matching {', '.join(missing)} in header {header!r}", source
            )
        return columns

    def _parse_row(
        self, row: list[str], columns: dict[str, int], source: str
    ) -> Optional[Transaction]:
        """Parse a single CSV row into a Transaction.

        Returns:
            Transaction, or None for a zero-value row.

        Raises:
            UnparsableRowError: If the date or amount cannot be parsed.
        """
        date_str = row[columns["date"]].strip()
        try:
            parsed_date = parse_date(date_str, self.dialect.date_formats)
        except InvalidDateError as e:
            raise UnparsableRowError(str(e), source) from e

        description = row[columns["description"]].strip()

        parsed = self._parse_amount(row, columns, source)
        if parsed is None:
            return None
        amount, direction = parsed

        return Transaction(
            date=parsed_date,
            description=description,
            category=self.categorizer.category_for(description, direction),
            amount=amount,
            transaction_type=direction,
            source_file=source,
        )

    @abstractmethod
    def _parse_amount(
        self, row: list[str], columns: dict[str, int], source: str
    ) -> Optional[tuple[Decimal, TransactionType]]:
        """Determine the non-negative amount and direction of a row.

        Returns:
            (amount, direction), or None when the row carries no value.

        Raises:
            UnparsableRowError: If the amount is structurally invalid.
        """
        pass
