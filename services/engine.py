"""Движок аукциона: прием ставок и автоставок, покупка сразу, завершение по времени.

Все изменения одного аукциона идут под одной asyncio-блокировкой товара и внутри
одной транзакции с SELECT ... FOR UPDATE по строке аукциона. Поэтому две ставки не
могут быть приняты на основании одной и той же текущей цены, а завершение по времени,
покупка сразу и ставка на границе разрешаются порядком захвата блокировки.
Разные товары обрабатываются независимо.

Ошибки бизнес-правил возвращаются в BidResult. Исключением остается только
отсутствие аукциона (AuctionNotFound) и сбои базы.
"""
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from database.models.order import Order
from services.auction import load_auction, save_auction, get_due_product_ids
from services.auto_bids import get_auto_bids, save_auto_bid
from services.ledger import append_bid, count_bids
from services.locks import AuctionLocks
from services.orders import create_order
from services.ratings import get_rating_summary
from services.results import AuctionNotFound, BidError, BidResult
from services.rules import (
    check_auto_bid,
    check_bid,
    check_buy_now,
    expiry_status,
    extended_deadline,
    is_open,
    next_proxy_bid,
    rating_allows_bid,
)
from services.system import AuctionConfig, get_auction_config
from config import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Notifier(Protocol):
    """Получатель событий аукциона"""

    async def bid_placed(self, auction: Auction, bid: Bid, previous_bidder_id: Optional[int]) -> None: ...

    async def auction_sold(self, auction: Auction, order: Order) -> None: ...

    async def auction_ended(self, auction: Auction) -> None: ...


class AuctionEngine:
    """Прием ставок и переходы статусов аукциона"""

    def __init__(
        self,
        session_maker: async_sessionmaker = None,
        notifier: Optional[Notifier] = None,
        clock: Clock = utcnow,
        locks: Optional[AuctionLocks] = None,
        min_rating_percent: Optional[float] = None
    ):
        if session_maker is None:
            from database.connection import async_session_maker
            session_maker = async_session_maker
        self.session_maker = session_maker
        self.notifier = notifier
        self.clock = clock
        self.locks = locks or AuctionLocks()
        self.min_rating_percent = (
            settings.MIN_POSITIVE_RATING_PERCENT if min_rating_percent is None else min_rating_percent
        )

    async def _load_locked(self, session: AsyncSession, product_id: int) -> Auction:
        auction = await load_auction(session, product_id, for_update=True)
        if not auction:
            raise AuctionNotFound(product_id)
        return auction

    async def _accept(
        self,
        session: AsyncSession,
        auction: Auction,
        bidder_id: int,
        amount: int,
        now: datetime,
        config: AuctionConfig
    ) -> Tuple[Bid, Optional[int]]:
        """Записать проверенную ставку и продлить аукцион при необходимости"""
        previous_bidder_id = auction.highest_bidder_id
        bid = await append_bid(session, auction, bidder_id, amount, now)

        auction.current_price = amount
        auction.highest_bidder_id = bidder_id

        if auction.auto_extend:
            new_ends_at = extended_deadline(
                auction.ends_at, now, config.extension_trigger, config.extension_duration
            )
            if new_ends_at:
                auction.ends_at = new_ends_at
                logger.info(f"Аукцион {auction.id} продлен до {new_ends_at}")
        return bid, previous_bidder_id

    async def _run_proxies(
        self,
        session: AsyncSession,
        auction: Auction,
        now: datetime,
        config: AuctionConfig
    ) -> list[Tuple[Bid, Optional[int]]]:
        """Ставить по автоставкам, пока кто-то из них может перебить лидера"""
        seller_id = auction.product.seller_id
        ratings = {}
        proxies = []
        for proxy in await get_auto_bids(session, auction.id):
            if proxy.user_id == seller_id:
                continue
            ratings[proxy.user_id] = await get_rating_summary(session, proxy.user_id)
            if rating_allows_bid(ratings[proxy.user_id], auction.allow_new_bidders, self.min_rating_percent):
                proxies.append(proxy)

        placed = []
        while True:
            step = next_proxy_bid(auction, proxies)
            if step is None:
                break
            user_id, amount = step
            failure = check_bid(
                auction, seller_id, user_id, amount, now, ratings[user_id], self.min_rating_percent
            )
            if failure:
                logger.warning(f"Автоставка {amount} от {user_id} на аукцион {auction.id} не прошла: {failure[0].value}")
                break
            placed.append(await self._accept(session, auction, user_id, amount, now, config))
            logger.info(f"Автоставка: пользователь {user_id}, аукцион {auction.id}, сумма {amount}")
        return placed

    async def place_bid(self, product_id: int, bidder_id: int, amount: int) -> BidResult:
        """Сделать ставку. Автоставки других участников отвечают в той же транзакции"""
        async with self.locks.for_product(product_id):
            async with self.session_maker() as session:
                auction = await self._load_locked(session, product_id)
                now = self.clock()

                rating = await get_rating_summary(session, bidder_id)
                failure = check_bid(
                    auction,
                    auction.product.seller_id,
                    bidder_id,
                    amount,
                    now,
                    rating,
                    self.min_rating_percent
                )
                if failure:
                    error, message = failure
                    logger.info(f"Ставка {amount} от {bidder_id} на товар {product_id} отклонена: {error.value}")
                    return BidResult.fail(error, message, auction)

                config = await get_auction_config(session)
                placed = [await self._accept(session, auction, bidder_id, amount, now, config)]
                placed += await self._run_proxies(session, auction, now, config)

                await save_auction(session, auction)
                await session.commit()

        bid = placed[0][0]
        logger.info(f"Ставка {bid.id}: пользователь {bidder_id}, товар {product_id}, сумма {amount}")
        await self._notify_bids(auction, placed)
        return BidResult(auction=auction, bid=bid, proxy_bids=[b for b, _ in placed[1:]])

    async def set_auto_bid(self, product_id: int, user_id: int, max_amount: int) -> BidResult:
        """Задать лимит автоставки и сразу сделать ставки, которые он требует"""
        async with self.locks.for_product(product_id):
            async with self.session_maker() as session:
                auction = await self._load_locked(session, product_id)
                now = self.clock()

                rating = await get_rating_summary(session, user_id)
                failure = check_auto_bid(
                    auction,
                    auction.product.seller_id,
                    user_id,
                    max_amount,
                    now,
                    rating,
                    self.min_rating_percent
                )
                if failure:
                    error, message = failure
                    logger.info(f"Автоставка {max_amount} от {user_id} на товар {product_id} отклонена: {error.value}")
                    return BidResult.fail(error, message, auction)

                auto_bid = await save_auto_bid(session, auction.id, user_id, max_amount, now)
                config = await get_auction_config(session)
                placed = await self._run_proxies(session, auction, now, config)

                await save_auction(session, auction)
                await session.commit()

        logger.info(f"Автоставка пользователя {user_id} на товар {product_id}: лимит {max_amount}")
        await self._notify_bids(auction, placed)
        return BidResult(auction=auction, auto_bid=auto_bid, proxy_bids=[b for b, _ in placed])

    async def buy_now(self, product_id: int, buyer_id: int) -> BidResult:
        """Купить товар по фиксированной цене, завершив аукцион досрочно"""
        async with self.locks.for_product(product_id):
            async with self.session_maker() as session:
                auction = await self._load_locked(session, product_id)
                now = self.clock()

                error = check_buy_now(auction, auction.product.seller_id, buyer_id, now)
                if error:
                    logger.info(f"Покупка товара {product_id} пользователем {buyer_id} отклонена: {error.value}")
                    return BidResult.fail(error, auction=auction)

                auction.current_price = auction.buy_now_price
                auction.highest_bidder_id = buyer_id
                auction.status = AuctionStatus.SOLD.value
                auction.finished_at = now
                order = await create_order(session, auction)

                await save_auction(session, auction)
                await session.commit()

        logger.info(f"Товар {product_id} куплен сразу пользователем {buyer_id} за {auction.current_price}")
        await self._notify("auction_sold", auction, order)
        return BidResult(auction=auction, order=order)

    async def expire_auction(self, product_id: int) -> Auction:
        """Завершить аукцион, если его время вышло. Повторный вызов ничего не меняет"""
        order = None
        async with self.locks.for_product(product_id):
            async with self.session_maker() as session:
                auction = await self._load_locked(session, product_id)
                now = self.clock()

                status = expiry_status(auction, now)
                if status is None:
                    return auction

                auction.status = status.value
                auction.finished_at = now
                if status == AuctionStatus.SOLD:
                    order = await create_order(session, auction)

                await save_auction(session, auction)
                await session.commit()

        if order:
            logger.info(
                f"Аукцион {auction.id} завершен. Победитель: {auction.highest_bidder_id}, цена: {auction.current_price}"
            )
            await self._notify("auction_sold", auction, order)
        else:
            logger.info(f"Аукцион {auction.id} завершен без ставок")
            await self._notify("auction_ended", auction)
        return auction

    async def expire_due_auctions(self) -> list[Auction]:
        """Завершить все истекшие аукционы"""
        async with self.session_maker() as session:
            product_ids = await get_due_product_ids(session, self.clock())

        if not product_ids:
            logger.debug("Истекших аукционов нет")
            return []

        logger.info(f"Найдено истекших аукционов: {len(product_ids)}")
        finished = []
        for product_id in product_ids:
            try:
                auction = await self.expire_auction(product_id)
            except Exception as e:
                logger.error(f"Ошибка при завершении аукциона товара {product_id}: {e}")
                continue
            if not auction.is_active:
                finished.append(auction)
        return finished

    async def cancel_auction(self, product_id: int, seller_id: int) -> BidResult:
        """Отменить аукцион без ставок по просьбе продавца"""
        async with self.locks.for_product(product_id):
            async with self.session_maker() as session:
                auction = await self._load_locked(session, product_id)
                now = self.clock()

                if not is_open(auction, now):
                    return BidResult.fail(BidError.AUCTION_NOT_ACTIVE, auction=auction)
                if auction.product.seller_id != seller_id:
                    return BidResult.fail(BidError.NOT_SELLER, auction=auction)
                if await count_bids(session, auction.id) > 0:
                    return BidResult.fail(BidError.HAS_BIDS, auction=auction)

                auction.status = AuctionStatus.CANCELLED.value
                auction.finished_at = now
                await save_auction(session, auction)
                await session.commit()

        logger.info(f"Аукцион {auction.id} отменен продавцом {seller_id}")
        return BidResult(auction=auction)

    async def _notify(self, event: str, *args) -> None:
        # Ошибка уведомления не откатывает уже сохраненное состояние
        if self.notifier is None:
            return
        try:
            await getattr(self.notifier, event)(*args)
        except Exception as e:
            logger.error(f"Ошибка отправки уведомления {event}: {e}")

    async def _notify_bids(self, auction: Auction, placed: list[Tuple[Bid, Optional[int]]]) -> None:
        for bid, previous_bidder_id in placed:
            await self._notify("bid_placed", auction, bid, previous_bidder_id)
