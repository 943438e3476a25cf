"""Сервис для работы с автоставками"""
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.auto_bid import AutoBid


async def get_auto_bids(session: AsyncSession, auction_id: int) -> list[AutoBid]:
    """Автоставки аукциона: сначала больший лимит, при равных раньше заданная"""
    result = await session.execute(
        select(AutoBid)
        .where(AutoBid.auction_id == auction_id)
        .order_by(AutoBid.max_amount.desc(), AutoBid.created_at, AutoBid.id)
    )
    return list(result.scalars().all())


async def get_auto_bid(session: AsyncSession, auction_id: int, user_id: int) -> Optional[AutoBid]:
    result = await session.execute(
        select(AutoBid).where(
            AutoBid.auction_id == auction_id,
            AutoBid.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def save_auto_bid(
    session: AsyncSession,
    auction_id: int,
    user_id: int,
    max_amount: int,
    now: datetime
) -> AutoBid:
    """Задать или изменить лимит. Коммит делает вызывающий"""
    auto_bid = await get_auto_bid(session, auction_id, user_id)
    if auto_bid:
        auto_bid.max_amount = max_amount
        auto_bid.updated_at = now
    else:
        auto_bid = AutoBid(
            auction_id=auction_id,
            user_id=user_id,
            max_amount=max_amount,
            created_at=now
        )
        session.add(auto_bid)
    await session.flush()
    return auto_bid
