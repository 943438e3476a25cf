"""Сервис для работы с аукционами"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from database.models.auction import Auction, AuctionStatus
from database.models.product import Product
from config import settings


async def create_product(
    session: AsyncSession,
    seller_id: int,
    title: str,
    description: str = None
) -> Product:
    """Создать товар"""
    product = Product(
        seller_id=seller_id,
        title=title,
        description=description
    )
    session.add(product)
    await session.commit()
    await session.refresh(product)
    return product


async def create_auction(
    session: AsyncSession,
    product_id: int,
    start_price: int,
    bid_step: int,
    buy_now_price: Optional[int] = None,
    duration_hours: Optional[float] = None,
    auto_extend: bool = True,
    allow_new_bidders: bool = True,
    now: Optional[datetime] = None
) -> Auction:
    """Создать и сразу запустить аукцион"""
    if start_price < 0:
        raise ValueError("Начальная цена не может быть отрицательной")
    if bid_step <= 0:
        raise ValueError("Шаг ставки должен быть положительным")
    if buy_now_price is not None and buy_now_price <= start_price:
        raise ValueError("Цена «купить сейчас» должна быть выше начальной")

    # Используем timezone-aware datetime с явным указанием UTC
    now = now or datetime.now(timezone.utc)
    hours = settings.AUCTION_DURATION_HOURS if duration_hours is None else duration_hours

    auction = Auction(
        product_id=product_id,
        start_price=start_price,
        current_price=start_price,
        bid_step=bid_step,
        buy_now_price=buy_now_price,
        status=AuctionStatus.ACTIVE.value,
        auto_extend=auto_extend,
        allow_new_bidders=allow_new_bidders,
        started_at=now,
        ends_at=now + timedelta(hours=hours)
    )
    session.add(auction)
    await session.commit()
    await session.refresh(auction)
    return auction


async def load_auction(
    session: AsyncSession,
    product_id: int,
    for_update: bool = False
) -> Optional[Auction]:
    """Загрузить аукцион товара вместе с товаром.

    С for_update строка аукциона блокируется до конца транзакции
    (на PostgreSQL; SQLite опускает FOR UPDATE).
    """
    query = (
        select(Auction)
        .where(Auction.product_id == product_id)
        .options(selectinload(Auction.product))
    )
    if for_update:
        query = query.with_for_update(of=Auction)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def save_auction(session: AsyncSession, auction: Auction) -> Auction:
    """Записать изменения аукциона в текущую транзакцию"""
    session.add(auction)
    await session.flush()
    return auction


async def get_active_auctions(session: AsyncSession) -> list[Auction]:
    """Получить активные аукционы"""
    result = await session.execute(
        select(Auction)
        .where(Auction.status == AuctionStatus.ACTIVE.value)
        .order_by(Auction.ends_at.asc())
    )
    return list(result.scalars().all())


async def get_due_product_ids(session: AsyncSession, now: datetime) -> list[int]:
    """ID товаров, у которых активный аукцион уже истек"""
    result = await session.execute(
        select(Auction.product_id)
        .where(
            Auction.status == AuctionStatus.ACTIVE.value,
            Auction.ends_at <= now
        )
        .order_by(Auction.ends_at.asc())
    )
    return list(result.scalars().all())
