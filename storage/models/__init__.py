"""
ORM Models Package.

Models:
- base: Declarative base and mixins
- trade: Imported trades
"""

from storage.models.base import Base, CreatedAtMixin
from storage.models.trade import Trade

__all__ = [
    "Base",
    "CreatedAtMixin",
    "Trade",
]
