"""Database model definitions."""

from src.models.bid import Bid, BidStatus
from src.models.listing import CartItem, Listing
from src.models.message import Message
from src.models.order import Order, OrderItem, OrderStatus
from src.models.payment import Payment, PaymentStatus
from src.models.user import User

__all__ = [
    "Bid",
    "BidStatus",
    "CartItem",
    "Listing",
    "Message",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "User",
]
