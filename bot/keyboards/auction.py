"""Клавиатуры для аукционов"""
from typing import Optional, Tuple

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from database.models.auction import Auction

# Быстрые ставки: минимальная, +2 шага, +5 шагов
QUICK_BID_STEPS = (1, 2, 5)


def quick_bid_data(product_id: int, amount: int) -> str:
    return f"bid:quick:{product_id}:{amount}"


def parse_quick_bid_data(data: str) -> Optional[Tuple[int, int]]:
    """Разобрать bid:quick:<id товара>:<сумма>"""
    parts = data.split(":")
    if len(parts) != 4:
        return None
    try:
        return int(parts[2]), int(parts[3])
    except ValueError:
        return None


def get_auction_keyboard(auction: Auction) -> InlineKeyboardMarkup:
    """Клавиатура карточки активного лота"""
    builder = InlineKeyboardBuilder()
    # Сумма зашита в кнопку: если цена ушла вперед, ставка будет отклонена
    for steps in QUICK_BID_STEPS:
        amount = auction.current_price + auction.bid_step * steps
        builder.add(InlineKeyboardButton(
            text=f"💰 {amount:,} сум",
            callback_data=quick_bid_data(auction.product_id, amount)
        ))
    builder.add(InlineKeyboardButton(
        text="✏️ Указать свою сумму",
        callback_data=f"bid:custom:{auction.product_id}"
    ))
    if auction.buy_now_price is not None:
        builder.add(InlineKeyboardButton(
            text=f"⚡️ Купить сейчас за {auction.buy_now_price:,} сум",
            callback_data=f"buynow:{auction.product_id}"
        ))
    builder.add(InlineKeyboardButton(
        text="📊 История ставок",
        callback_data=f"history:{auction.product_id}"
    ))
    # Каждая кнопка в своей строке
    builder.adjust(1)
    return builder.as_markup()
