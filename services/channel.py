"""Тексты и карточки лотов"""
from datetime import datetime, timezone
from typing import Optional
import logging

from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.auction import Auction, AuctionStatus
from services.auction import load_auction
from services.ledger import count_bids
from services.rules import as_utc, is_open
from bot.keyboards.auction import get_auction_keyboard

logger = logging.getLogger(__name__)

STATUS_NAMES = {
    AuctionStatus.ACTIVE.value: "🟢 Идут торги",
    AuctionStatus.ENDED.value: "⌛️ Завершен без ставок",
    AuctionStatus.SOLD.value: "🔨 Продан",
    AuctionStatus.CANCELLED.value: "❌ Отменен",
}


def format_time_left(ends_at: datetime, now: datetime) -> str:
    """Оставшееся время в виде "2ч 15м" или "15м" """
    ends_at = as_utc(ends_at)
    if ends_at <= now:
        return "0м"
    total_seconds = int((ends_at - now).total_seconds())
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    if hours > 0:
        return f"{hours}ч {minutes}м"
    return f"{minutes}м"


def format_auction_status_text(
    title: str,
    auction: Auction,
    bids_count: int,
    now: datetime,
    seller_id: Optional[int] = None
) -> str:
    """Формирует текст карточки лота"""
    lines: list[str] = [f"<b>{title}</b>", STATUS_NAMES.get(auction.status, auction.status)]
    if seller_id is not None:
        lines.append(f"👤 Продавец: ID {seller_id}, рейтинг: /rating {seller_id}")
    lines.append(f"Цена: {auction.current_price:,} сум")
    if auction.status == AuctionStatus.ACTIVE.value:
        lines.append(f"Шаг ставки: {auction.bid_step:,} сум")
        lines.append(f"Минимальная ставка: {auction.minimum_bid:,} сум")
        if auction.buy_now_price is not None:
            lines.append(f"Купить сейчас: {auction.buy_now_price:,} сум")
        lines.append(f"👥 Кол-во ставок: {bids_count}")
        lines.append(f"⏳ До завершения: {format_time_left(auction.ends_at, now)}")
    else:
        lines.append(f"👥 Было ставок: {bids_count}")
    return "\n".join(lines)


async def get_auction_status_text(
    session: AsyncSession,
    product_id: int,
    now: Optional[datetime] = None
) -> str:
    """Построить текст карточки лота по ID товара"""
    auction = await load_auction(session, product_id)
    if not auction:
        return "Аукцион не найден"

    now = now or datetime.now(timezone.utc)
    bids_count = await count_bids(session, auction.id)
    logger.debug(f"Аукцион {auction.id}: ends_at={auction.ends_at}, now={now}")
    return format_auction_status_text(
        auction.product.title, auction, bids_count, now, seller_id=auction.product.seller_id
    )


async def send_lot_card(
    message: Message,
    session: AsyncSession,
    product_id: int,
    now: Optional[datetime] = None
) -> bool:
    """Ответить карточкой лота. Кнопки ставок только у открытого аукциона"""
    auction = await load_auction(session, product_id)
    if not auction:
        await message.answer("Аукцион не найден")
        return False

    now = now or datetime.now(timezone.utc)
    text = await get_auction_status_text(session, product_id, now)
    keyboard = get_auction_keyboard(auction) if is_open(auction, now) else None
    await message.answer(text, reply_markup=keyboard, parse_mode="HTML")
    return True
