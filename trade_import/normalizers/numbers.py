"""
Trade Import - Number Normalizer.

============================================================
RESPONSIBILITY
============================================================
Converts European formatted numeric and currency tokens from
NT8 exports into exact Decimal values.

- "6387,50"     -> Decimal("6387.50")
- "21.250,75"   -> Decimal("21250.75")
- "21 250,75"   -> Decimal("21250.75")
- "-$ 200,00"   -> Decimal("-200.00")
- "($ 200,00)"  -> Decimal("-200.00")

============================================================
DESIGN PRINCIPLES
============================================================
- Comma is the decimal separator
- Dot and (narrow) no-break spaces group thousands
- Grouping must be well formed; "6387.50" is rejected
  instead of being read as 638750
- Empty input raises EmptyValueError so callers decide
  between null and error
- Pure functions, no floats anywhere

============================================================
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Tuple

from trade_import.errors import EmptyValueError, NumberParseError, ParseError


CURRENCY_SYMBOLS = "$€£"

_PLAIN = re.compile(r"^\d+(?:,\d+)?$")
_GROUPED = re.compile(r"^\d{1,3}(?P<sep>[. \u00a0\u202f])\d{3}(?:(?P=sep)\d{3})*(?:,\d+)?$")
_GROUP_CHARS = ". \u00a0\u202f"


def _strip_sign_and_symbol(text: str) -> Tuple[bool, str]:
    """
    Remove a leading sign and a currency symbol in either order.

    Returns (negative, remaining body). The symbol may also trail
    the number ("200,00 $").
    """
    negative = False
    body = text.strip()

    if body[:1] in "+-":
        negative = body[0] == "-"
        body = body[1:].strip()

    if body[:1] and body[0] in CURRENCY_SYMBOLS:
        body = body[1:].strip()
        if body[:1] in "+-" and not negative:
            negative = body[0] == "-"
            body = body[1:].strip()
    elif body[-1:] and body[-1] in CURRENCY_SYMBOLS:
        body = body[:-1].strip()

    return negative, body


def _parse_body(body: str, raw_value: str) -> Decimal:
    if not (_PLAIN.match(body) or _GROUPED.match(body)):
        raise NumberParseError(raw_value)

    canonical = body
    for ch in _GROUP_CHARS:
        canonical = canonical.replace(ch, "")
    canonical = canonical.replace(",", ".")

    try:
        return Decimal(canonical)
    except InvalidOperation as e:
        raise NumberParseError(raw_value) from e


def parse_decimal(token: str) -> Decimal:
    """
    Parse a locale formatted number.

    Args:
        token: Raw field value, may be padded with whitespace

    Returns:
        Exact Decimal value

    Raises:
        EmptyValueError: token is empty or blank
        NumberParseError: token is not a number
    """
    if token is None or not token.strip():
        raise EmptyValueError(token or "")

    negative, body = _strip_sign_and_symbol(token)
    value = _parse_body(body, token)
    return -value if negative else value


def parse_currency(token: str) -> Decimal:
    """
    Parse a currency token such as "-$ 200,00" or "$ 212,50".

    Accounting style parentheses mark a negative amount.
    """
    if token is None or not token.strip():
        raise EmptyValueError(token or "")

    text = token.strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()
        if not text:
            raise NumberParseError(token)

    sign_negative, body = _strip_sign_and_symbol(text)
    if not body:
        raise NumberParseError(token)

    try:
        value = parse_decimal(body)
    except ParseError as e:
        raise NumberParseError(token) from e

    if negative != sign_negative:
        return -value
    return value
