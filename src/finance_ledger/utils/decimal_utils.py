"""Decimal utilities for monetary amounts.

All monetary calculations use Decimal to avoid floating-point drift.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional


# Currency symbols to strip
CURRENCY_SYMBOLS = {"$", "€", "£", "¥", "₹", "₽", "₩", "₿", "₡"}

# Three-letter currency code glued to either end of the token: "CRC 1,000", "-2500.00 CRC"
CURRENCY_CODE_PATTERN = re.compile(r"^[A-Za-z]{3}(?![A-Za-z])|(?<![A-Za-z])[A-Za-z]{3}$")

# Parentheses-enclosed negatives: ($1,234.56) or (1234.56)
PARENS_NEGATIVE_PATTERN = re.compile(r"^\s*\(\s*([^)]+)\s*\)\s*$")

QUOTE_CHARS = "\"'"

ZERO = Decimal("0")


def try_parse_amount(raw_amount: Optional[str], decimal_separator: str = ".") -> Optional[Decimal]:
    """Parse a raw amount token into a signed Decimal.

    Handles:
    - Standard: 1234.56, -1234.56, +12
    - Quoting and thousands separators: "1,000" -> 1000
    - Currency symbols and codes: ₡1,500, -2500.00 CRC, USD 12.5
    - Parentheses for negative: (1,234.56)
    - Trailing minus: 1234.56-
    - Comma-decimal locales: 1.234,56 with decimal_separator=","

    Args:
        raw_amount: The raw amount string.
        decimal_separator: "." (comma groups thousands) or "," (period groups thousands).

    Returns:
        The signed amount, or None when nothing numeric is left.
    """
    if raw_amount is None:
        return None

    amount_str = raw_amount.strip().strip(QUOTE_CHARS).strip()
    if not amount_str:
        return None

    is_negative = False

    parens_match = PARENS_NEGATIVE_PATTERN.match(amount_str)
    if parens_match:
        amount_str = parens_match.group(1).strip()
        is_negative = True

    amount_str = CURRENCY_CODE_PATTERN.sub("", amount_str.strip()).strip()
    for symbol in CURRENCY_SYMBOLS:
        amount_str = amount_str.replace(symbol, "")
    amount_str = amount_str.strip()

    if amount_str.startswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[1:]
    elif amount_str.startswith("+"):
        amount_str = amount_str[1:]
    elif amount_str.endswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[:-1]

    thousands_separator = "," if decimal_separator == "." else "."
    amount_str = amount_str.replace(thousands_separator, "")
    amount_str = amount_str.replace(" ", "").replace("\u00a0", "").replace("'", "")
    if decimal_separator != ".":
        amount_str = amount_str.replace(decimal_separator, ".")

    if not amount_str:
        return None

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        return None

    if not amount.is_finite():
        return None

    return -amount if is_negative else amount


def parse_amount(raw_amount: Optional[str], decimal_separator: str = ".") -> Decimal:
    """Parse a raw amount token, normalizing anything non-numeric to zero.

    Never raises.

    Args:
        raw_amount: The raw amount string.
        decimal_separator: Decimal separator of the source locale.

    Returns:
        Signed Decimal amount, Decimal("0") for empty or non-numeric tokens.
    """
    amount = try_parse_amount(raw_amount, decimal_separator)
    return amount if amount is not None else ZERO


def format_currency(
    amount: Decimal,
    decimal_places: int = 2,
    include_sign: bool = True,
) -> str:
    """Format a Decimal amount for display.

    Args:
        amount: The amount to format.
        decimal_places: Number of decimal places (default 2).
        include_sign: Whether to include sign for negative amounts.

    Returns:
        Formatted string like "-1,234.56" or "1,234.56".
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    rounded = amount.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)

    if include_sign and rounded < 0:
        return f"{rounded:,}"
    return f"{abs(rounded):,}"


def safe_decimal(value: Optional[object], default: Decimal = ZERO) -> Decimal:
    """Safely convert a config value to Decimal.

    Args:
        value: Value to convert (string, int, float, Decimal or None).
        default: Default value if conversion fails.

    Returns:
        Decimal value or default.
    """
    if value is None:
        return default

    try:
        if isinstance(value, Decimal):
            return value
        if isinstance(value, (int, float, str)):
            # str() first so floats keep their printed precision
            return Decimal(str(value))
        return default
    except (InvalidOperation, ValueError):
        return default


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Sum Decimal amounts, starting from Decimal zero."""
    return sum(amounts, ZERO)


def ratio(numerator: Decimal, denominator: Decimal) -> float:
    """Divide two amounts, returning 0.0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return float(numerator / denominator)
