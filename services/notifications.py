"""Сервис уведомлений участников аукциона"""
from typing import Iterable, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from aiogram import Bot
from database.models.auction import Auction
from database.models.bid import Bid
from database.models.order import Order
from database.models.product import Product
from database.models.user import User
from services.ledger import mask_name

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Рассылает события аукциона пользователям через бота"""

    def __init__(self, bot: Bot, session_maker: async_sessionmaker = None):
        if session_maker is None:
            from database.connection import async_session_maker
            session_maker = async_session_maker
        self.bot = bot
        self.session_maker = session_maker

    async def _users(self, user_ids: Iterable[int]) -> dict[int, User]:
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}
        async with self.session_maker() as session:
            result = await session.execute(select(User).where(User.id.in_(ids)))
            return {user.id: user for user in result.scalars().all()}

    async def _title(self, product_id: int) -> str:
        async with self.session_maker() as session:
            product = await session.get(Product, product_id)
        return product.title if product else f"лот #{product_id}"

    async def _bidder_ids(self, auction_id: int) -> list[int]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Bid.bidder_id).where(Bid.auction_id == auction_id).distinct()
            )
            return list(result.scalars().all())

    async def _send(self, user: Optional[User], text: str) -> None:
        if user is None:
            return
        try:
            await self.bot.send_message(user.telegram_id, text, parse_mode="HTML")
        except Exception as e:
            logger.error(f"Ошибка отправки уведомления пользователю {user.id}: {e}")

    async def bid_placed(self, auction: Auction, bid: Bid, previous_bidder_id: Optional[int]) -> None:
        """Подтверждение ставки, уведомление перебитого участника и продавца"""
        title = await self._title(auction.product_id)
        seller_id = auction.product.seller_id
        users = await self._users([bid.bidder_id, previous_bidder_id, seller_id])

        await self._send(
            users.get(bid.bidder_id),
            f"✅ Ваша ставка <b>{bid.amount:,} сум</b> на «{title}» принята"
        )
        if previous_bidder_id and previous_bidder_id != bid.bidder_id:
            await self._send(
                users.get(previous_bidder_id),
                f"⚡️ Вашу ставку на «{title}» перебили. Новая цена: <b>{bid.amount:,} сум</b>"
            )
        await self._send(
            users.get(seller_id),
            f"💰 Новая ставка на «{title}»: <b>{bid.amount:,} сум</b>"
        )

    async def auction_sold(self, auction: Auction, order: Order) -> None:
        """Победителю, продавцу и остальным участникам"""
        title = await self._title(auction.product_id)
        bidder_ids = await self._bidder_ids(auction.id)
        users = await self._users([order.buyer_id, order.seller_id, *bidder_ids])
        winner = users.get(order.buyer_id)

        await self._send(
            winner,
            f"🏆 Вы выиграли «{title}» за <b>{order.final_price:,} сум</b>. Заказ №{order.id}"
        )
        await self._send(
            users.get(order.seller_id),
            f"🔨 «{title}» продан за <b>{order.final_price:,} сум</b>. Заказ №{order.id}"
        )

        winner_name = mask_name(winner.display_name if winner else None)
        for bidder_id in bidder_ids:
            if bidder_id == order.buyer_id:
                continue
            await self._send(
                users.get(bidder_id),
                f"Аукцион «{title}» завершен. Победитель: {winner_name}, "
                f"итоговая цена: <b>{order.final_price:,} сум</b>"
            )
        logger.info(f"Уведомления о продаже товара {auction.product_id} отправлены")

    async def auction_ended(self, auction: Auction) -> None:
        """Продавцу: аукцион завершился без ставок"""
        title = await self._title(auction.product_id)
        users = await self._users([auction.product.seller_id])
        await self._send(
            users.get(auction.product.seller_id),
            f"⌛️ Аукцион «{title}» завершился без ставок"
        )
