"""
Trade Import - Commission Schedule.

Round-trip commission per contract for common CME futures, used to
fill in commissions that an export left empty or zero. Only applied
when ImportConfig.estimate_missing_commission is enabled.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommissionRate:
    """Round-trip commission for one contract of a root symbol."""
    symbol: str
    display_name: str
    per_contract: Decimal


_STANDARD = Decimal("4.20")
_MICRO = Decimal("1.20")

DEFAULT_COMMISSION = _STANDARD

COMMISSION_RATES: Dict[str, CommissionRate] = {
    rate.symbol: rate
    for rate in (
        CommissionRate("ES", "E-mini S&P 500", _STANDARD),
        CommissionRate("MES", "Micro E-mini S&P 500", _MICRO),
        CommissionRate("NQ", "E-mini NASDAQ-100", _STANDARD),
        CommissionRate("MNQ", "Micro E-mini NASDAQ-100", _MICRO),
        CommissionRate("YM", "E-mini Dow", _STANDARD),
        CommissionRate("MYM", "Micro E-mini Dow", _MICRO),
        CommissionRate("RTY", "E-mini Russell 2000", _STANDARD),
        CommissionRate("M2K", "Micro E-mini Russell 2000", _MICRO),
        CommissionRate("CL", "Crude Oil", _STANDARD),
        CommissionRate("MCL", "Micro Crude Oil", _MICRO),
        CommissionRate("GC", "Gold", _STANDARD),
        CommissionRate("MGC", "Micro Gold", _MICRO),
    )
}


def commission_per_contract(symbol: str) -> Decimal:
    """Round-trip rate for a root symbol, falling back to the standard rate."""
    rate = COMMISSION_RATES.get(symbol.strip().upper())
    if rate is None:
        logger.warning(f"No commission rate for symbol {symbol}, using default {DEFAULT_COMMISSION}")
        return DEFAULT_COMMISSION
    return rate.per_contract


def estimate_commission(symbol: str, quantity: Decimal) -> Decimal:
    return commission_per_contract(symbol) * quantity
