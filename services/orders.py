"""Сервис заказов"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from database.models.auction import Auction
from database.models.order import Order, OrderStatus


async def create_order(session: AsyncSession, auction: Auction) -> Order:
    """Создать заказ для победителя проданного аукциона. Коммит делает вызывающий код"""
    if auction.highest_bidder_id is None:
        raise ValueError("У аукциона нет покупателя")

    order = Order(
        product_id=auction.product_id,
        buyer_id=auction.highest_bidder_id,
        seller_id=auction.product.seller_id,
        final_price=auction.current_price,
        status=OrderStatus.PENDING_PAYMENT.value
    )
    session.add(order)
    await session.flush()
    return order


async def get_order(session: AsyncSession, order_id: int) -> Order:
    """Получить заказ"""
    result = await session.execute(
        select(Order).where(Order.id == order_id)
    )
    order = result.scalar_one_or_none()

    if not order:
        raise ValueError("Заказ не найден")
    return order


async def get_user_orders(session: AsyncSession, user_id: int) -> list[Order]:
    """Заказы, где пользователь покупатель или продавец"""
    result = await session.execute(
        select(Order)
        .where(or_(Order.buyer_id == user_id, Order.seller_id == user_id))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())
