"""Клавиатуры бота"""
from .auction import get_auction_keyboard

__all__ = [
    "get_auction_keyboard",
]
