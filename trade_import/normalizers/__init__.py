"""
Trade Import - Normalizers Package.

Locale aware token normalizers used by the row mapper.

Normalizers:
- numbers: European decimal and currency tokens
- timestamps: Day-first NT8 date/time tokens
"""

from trade_import.normalizers.numbers import parse_currency, parse_decimal
from trade_import.normalizers.timestamps import parse_timestamp, resolve_zone

__all__ = [
    "parse_currency",
    "parse_decimal",
    "parse_timestamp",
    "resolve_zone",
]
