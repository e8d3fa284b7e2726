"""
Trade ORM Model.

============================================================
PURPOSE
============================================================
Stores trades imported from NT8 exports.

============================================================
DUPLICATE KEY
============================================================
(user_id, account_id, symbol, direction, entry_price,
 quantity, entry_date) is unique. Two concurrent imports of
the same file cannot both store a trade; the loser gets an
integrity error and reports the row as a duplicate.

The lookup index covers the duplicate check query
(user, account, symbol, direction, entry second).

============================================================
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from storage.models.base import Base, CreatedAtMixin
from trade_import.types import PRICE_SCALE


PRICE = Numeric(20, PRICE_SCALE)
MONEY = Numeric(18, 4)


class Trade(Base, CreatedAtMixin):
    """
    One imported trade.

    ============================================================
    DATA LIFECYCLE
    ============================================================
    - Written once per trade by the execute import pass
    - exit_price / exit_date may be null (open trade)
    - net_pnl and result are derived from pnl and commission
      at import time

    ============================================================
    """

    __tablename__ = "trades"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Trade identifier"
    )

    # Ownership
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Trade details
    symbol: Mapped[str] = mapped_column(String(20), nullable=False, comment="Root symbol, e.g. ES")
    direction: Mapped[str] = mapped_column(String(5), nullable=False, comment="LONG or SHORT")
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    entry_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    exit_price: Mapped[Optional[Decimal]] = mapped_column(PRICE, nullable=True)
    entry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    exit_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Financials
    pnl: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    commission: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_pnl: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    result: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, comment="WIN, LOSS, BREAKEVEN")
    mae: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    mfe: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)

    # Source metadata
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    source_strategy_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    source_account_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    exit_signal_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    external_trade_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "account_id",
            "symbol",
            "direction",
            "entry_price",
            "quantity",
            "entry_date",
            name="uq_trades_duplicate_key",
        ),
        Index("ix_trades_lookup", "user_id", "account_id", "symbol", "direction", "entry_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Trade {self.id} {self.direction} {self.quantity} {self.symbol} "
            f"@ {self.entry_price} {self.entry_date}>"
        )
