"""Модели базы данных"""
from .user import User
from .product import Product
from .auction import Auction, AuctionStatus
from .bid import Bid
from .auto_bid import AutoBid
from .order import Order, OrderStatus
from .rating import Rating, RatingDirection
from .system_config import SystemConfig

__all__ = [
    "User",
    "Product",
    "Auction",
    "AuctionStatus",
    "Bid",
    "AutoBid",
    "Order",
    "OrderStatus",
    "Rating",
    "RatingDirection",
    "SystemConfig",
]
