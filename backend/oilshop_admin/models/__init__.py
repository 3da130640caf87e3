"""Models package marker.

Exposes Base and the model classes for simplified imports.
"""
from .database import (  # noqa: F401
    Base,
    BankAccount,
    CheckoutMode,
    EmailConfig,
    Order,
    OrderStatus,
    Shop,
    User,
)
