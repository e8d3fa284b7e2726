"""
Trade Import - Row Validation.

============================================================
PURPOSE
============================================================
Business checks on a fully mapped candidate trade, on top of
what the mapper already enforces.

VALIDATION STEPS:
1. Entry price must be positive
2. Quantity must be positive (no integer rule at this layer)
3. Exit price, when present, must be positive
4. Exit time must not precede entry time

All checks run; the result lists every failure.

============================================================
"""

import logging
from typing import List

from trade_import.types import CandidateTrade, FieldError


logger = logging.getLogger(__name__)


class RowValidator:
    """
    Validates candidate trades before duplicate checking.
    """

    def validate(self, candidate: CandidateTrade) -> List[FieldError]:
        """
        Validate a candidate trade.

        Args:
            candidate: Mapped trade

        Returns:
            List of field errors, empty when the trade is valid
        """
        errors: List[FieldError] = []

        if candidate.entry_price <= 0:
            errors.append(FieldError(
                "entryPrice",
                "must be greater than 0",
                str(candidate.entry_price),
            ))

        if candidate.quantity <= 0:
            errors.append(FieldError(
                "quantity",
                "must be greater than 0",
                str(candidate.quantity),
            ))

        if candidate.exit_price is not None and candidate.exit_price <= 0:
            errors.append(FieldError(
                "exitPrice",
                "must be greater than 0",
                str(candidate.exit_price),
            ))

        if (
            candidate.exit_price is not None
            and candidate.exit_date is not None
            and candidate.exit_date < candidate.entry_date
        ):
            errors.append(FieldError(
                "exitDate",
                "exit before entry",
                candidate.exit_date.isoformat(),
            ))

        if errors:
            logger.debug(
                f"Validation failed for row {candidate.row_number}: "
                f"{', '.join(e.field_name for e in errors)}"
            )
        return errors
