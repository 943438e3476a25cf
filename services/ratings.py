"""Сервис для работы с оценками"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from database.models.order import Order
from database.models.rating import Rating, RatingDirection


@dataclass(frozen=True)
class RatingSummary:
    """Сводка оценок пользователя"""
    positive: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.negative

    @property
    def percentage(self) -> float:
        """Доля положительных оценок в процентах (0, если оценок нет)"""
        if self.total == 0:
            return 0.0
        return self.positive / self.total * 100


async def get_rating_summary(session: AsyncSession, user_id: int) -> RatingSummary:
    """Получить сводку оценок пользователя"""
    result = await session.execute(
        select(
            func.coalesce(func.sum(case((Rating.score > 0, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Rating.score < 0, 1), else_=0)), 0),
        ).where(Rating.receiver_id == user_id)
    )
    positive, negative = result.one()
    return RatingSummary(positive=int(positive), negative=int(negative))


async def get_user_ratings(session: AsyncSession, user_id: int) -> list[Rating]:
    """Получить оценки пользователя, новые первыми"""
    result = await session.execute(
        select(Rating)
        .where(Rating.receiver_id == user_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )
    return list(result.scalars().all())


async def create_rating(
    session: AsyncSession,
    order_id: int,
    giver_id: int,
    score: int,
    comment: Optional[str] = None
) -> Rating:
    """Оценить вторую сторону заказа"""
    if score not in (1, -1):
        raise ValueError("Оценка должна быть +1 или -1")

    result = await session.execute(
        select(Order).where(Order.id == order_id)
    )
    order = result.scalar_one_or_none()

    if not order:
        raise ValueError("Заказ не найден")

    # Направление определяется тем, кто оценивает
    if giver_id == order.buyer_id:
        direction = RatingDirection.BUYER_TO_SELLER
        receiver_id = order.seller_id
    elif giver_id == order.seller_id:
        direction = RatingDirection.SELLER_TO_BUYER
        receiver_id = order.buyer_id
    else:
        raise ValueError("Оценивать могут только участники заказа")

    if receiver_id == giver_id:
        raise ValueError("Нельзя оценить самого себя")

    result = await session.execute(
        select(Rating).where(
            Rating.order_id == order_id,
            Rating.direction == direction.value
        )
    )
    if result.scalar_one_or_none():
        raise ValueError("Вы уже оценили этого пользователя по этому заказу")

    rating = Rating(
        order_id=order_id,
        direction=direction.value,
        giver_id=giver_id,
        receiver_id=receiver_id,
        score=score,
        comment=comment
    )
    session.add(rating)
    await session.commit()
    await session.refresh(rating)
    return rating
