# Import all models to ensure they are registered with SQLAlchemy
# This ensures all relationships can be resolved properly

from .order import Order
from .payment import PaymentLog, PaymentTransaction

__all__ = [
    "Order",
    "PaymentTransaction",
    "PaymentLog",
]
