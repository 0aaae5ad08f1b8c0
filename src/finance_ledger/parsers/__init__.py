"""CSV dialect parsers."""

from finance_ledger.parsers.base import (
    BaseParser,
    MalformedHeaderError,
    ParseError,
    UnparsableRowError,
)
from finance_ledger.parsers.csv_parser import DebitCreditParser, SignedAmountParser, get_parser

__all__ = [
    "BaseParser",
    "ParseError",
    "MalformedHeaderError",
    "UnparsableRowError",
    "DebitCreditParser",
    "SignedAmountParser",
    "get_parser",
]
