"""Журнал ставок: только добавление, порядок по времени и порядку вставки"""
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from database.models.auction import Auction
from database.models.bid import Bid


def _history_query(auction_id: int):
    return (
        select(Bid)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.created_at.asc(), Bid.id.asc())
    )


async def append_bid(
    session: AsyncSession,
    auction: Auction,
    bidder_id: int,
    amount: int,
    created_at: datetime
) -> Bid:
    """Добавить ставку в журнал. Коммит делает вызывающий код"""
    bid = Bid(
        auction_id=auction.id,
        product_id=auction.product_id,
        bidder_id=bidder_id,
        amount=amount,
        created_at=created_at
    )
    session.add(bid)
    await session.flush()
    return bid


async def highest_bid(session: AsyncSession, auction_id: int) -> Optional[Bid]:
    """Лидирующая ставка: последняя в журнале"""
    result = await session.execute(
        select(Bid)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def count_bids(session: AsyncSession, auction_id: int) -> int:
    """Количество ставок на аукционе"""
    result = await session.execute(
        select(func.count(Bid.id)).where(Bid.auction_id == auction_id)
    )
    return result.scalar() or 0


async def bid_history(session: AsyncSession, auction_id: int) -> list[Bid]:
    """Вся история ставок по возрастанию времени"""
    result = await session.execute(
        _history_query(auction_id).options(selectinload(Bid.bidder))
    )
    return list(result.scalars().all())


async def iter_bid_history(session: AsyncSession, auction_id: int) -> AsyncIterator[Bid]:
    """Ленивый обход истории. Каждый вызов заново читает журнал с начала"""
    result = await session.stream_scalars(_history_query(auction_id))
    async for bid in result:
        yield bid


def replay_price(start_price: int, bids: Iterable[Bid]) -> int:
    """Восстановить текущую цену по истории ставок"""
    price = start_price
    for bid in bids:
        price = max(price, bid.amount)
    return price


def mask_name(name: Optional[str]) -> str:
    """Скрыть имя участника, оставив последние 4 символа"""
    if not name or len(name) <= 4:
        return "****"
    return f"****{name[-4:]}"


async def masked_history(session: AsyncSession, auction_id: int) -> list[dict]:
    """История для показа другим участникам: новые первыми, имена скрыты"""
    bids = await bid_history(session, auction_id)
    return [
        {
            "id": bid.id,
            "amount": bid.amount,
            "created_at": bid.created_at,
            "bidder": mask_name(bid.bidder.display_name if bid.bidder else None),
        }
        for bid in reversed(bids)
    ]
