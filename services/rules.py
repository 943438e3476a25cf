"""Правила приема ставок и завершения аукциона.

Здесь только чистые функции над уже загруженным состоянием: они не ходят в базу,
не берут блокировки и не знают о часах. Движок (services/engine.py) вызывает их
внутри транзакции под блокировкой товара и сам применяет результат.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Tuple

from database.models.auction import Auction, AuctionStatus
from database.models.auto_bid import AutoBid
from services.ratings import RatingSummary
from services.results import BidError, ERROR_MESSAGES


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Привести дату к aware UTC (SQLite возвращает naive)"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_open(auction: Auction, now: datetime) -> bool:
    """Аукцион принимает ставки: статус active и время еще не вышло"""
    return auction.status == AuctionStatus.ACTIVE.value and now < as_utc(auction.ends_at)


def rating_allows_bid(
    summary: RatingSummary,
    allow_new_bidders: bool,
    min_percent: float
) -> bool:
    """Проверка рейтинга участника"""
    # Без оценок решает настройка продавца
    if summary.total == 0:
        return allow_new_bidders
    return summary.percentage >= min_percent


def check_bid(
    auction: Auction,
    seller_id: int,
    bidder_id: int,
    amount: int,
    now: datetime,
    rating: RatingSummary,
    min_percent: float
) -> Optional[Tuple[BidError, str]]:
    """Вернуть (код, сообщение) первой нарушенной проверки или None"""
    if not is_open(auction, now):
        return BidError.AUCTION_NOT_ACTIVE, ERROR_MESSAGES[BidError.AUCTION_NOT_ACTIVE]

    if bidder_id == seller_id:
        return BidError.OWN_PRODUCT, ERROR_MESSAGES[BidError.OWN_PRODUCT]

    minimum = auction.minimum_bid
    if amount < minimum:
        return BidError.BID_TOO_LOW, f"Ставка должна быть не меньше {minimum:,} сум (текущая цена + шаг)"

    if auction.highest_bidder_id is not None and bidder_id == auction.highest_bidder_id:
        return BidError.SELF_BID, ERROR_MESSAGES[BidError.SELF_BID]

    if not rating_allows_bid(rating, auction.allow_new_bidders, min_percent):
        if rating.total == 0:
            message = "Продавец не допускает к торгам участников без оценок"
        else:
            message = f"Ваш рейтинг ({round(rating.percentage)}%) ниже требуемых {min_percent:g}%"
        return BidError.INSUFFICIENT_RATING, message

    return None


def extended_deadline(
    ends_at: datetime,
    now: datetime,
    trigger: timedelta,
    duration: timedelta
) -> Optional[datetime]:
    """Новое время окончания по правилу анти-снайпинга или None, если продлевать не нужно"""
    ends_at = as_utc(ends_at)
    remaining = ends_at - now
    if timedelta(0) < remaining < trigger:
        return ends_at + duration
    return None


def check_buy_now(
    auction: Auction,
    seller_id: int,
    buyer_id: int,
    now: datetime
) -> Optional[BidError]:
    """Проверки перед покупкой по фиксированной цене"""
    if auction.buy_now_price is None or not is_open(auction, now):
        return BidError.BUY_NOW_UNAVAILABLE
    # Цена аукциона не может уменьшиться
    if auction.buy_now_price < auction.current_price:
        return BidError.BUY_NOW_UNAVAILABLE
    if buyer_id == seller_id:
        return BidError.OWN_PRODUCT
    return None


def expiry_status(auction: Auction, now: datetime) -> Optional[AuctionStatus]:
    """Итоговый статус истекшего аукциона или None, если переход не нужен"""
    if auction.status != AuctionStatus.ACTIVE.value:
        return None
    if now < as_utc(auction.ends_at):
        return None
    if auction.highest_bidder_id is not None:
        return AuctionStatus.SOLD
    return AuctionStatus.ENDED


def check_auto_bid(
    auction: Auction,
    seller_id: int,
    user_id: int,
    max_amount: int,
    now: datetime,
    rating: RatingSummary,
    min_percent: float
) -> Optional[Tuple[BidError, str]]:
    """Проверки лимита автоставки: те же, что у ставки на сумму лимита"""
    if user_id == auction.highest_bidder_id:
        # Лидер только меняет свой лимит, ставка от него не нужна
        if not is_open(auction, now):
            return BidError.AUCTION_NOT_ACTIVE, ERROR_MESSAGES[BidError.AUCTION_NOT_ACTIVE]
        if max_amount < auction.current_price:
            return BidError.BID_TOO_LOW, f"Лимит не может быть ниже текущей цены {auction.current_price:,} сум"
        return None
    return check_bid(auction, seller_id, user_id, max_amount, now, rating, min_percent)


def next_proxy_bid(auction: Auction, proxies: Sequence[AutoBid]) -> Optional[Tuple[int, int]]:
    """Следующая автоматическая ставка (пользователь, сумма) или None.

    proxies: допущенные к торгам автоставки, отсортированные по убыванию лимита
    (при равных лимитах раньше заданная первой). Первый, кто может перебить лидера,
    ставит ровно столько, чтобы обойти сильнейший чужой лимит, но не больше своего.
    Лимит, который отстает от лимита лидера меньше чем на шаг, не ставит: лидер
    уже не смог бы ему ответить.
    """
    leader_id = auction.highest_bidder_id
    leader_max = next((p.max_amount for p in proxies if p.user_id == leader_id), None)
    minimum = auction.minimum_bid

    for proxy in proxies:
        if proxy.user_id == leader_id or proxy.max_amount < minimum:
            continue
        if leader_max is not None and leader_max - auction.bid_step < proxy.max_amount <= leader_max:
            continue
        rival_max = max((p.max_amount for p in proxies if p.user_id != proxy.user_id), default=None)
        if rival_max is None:
            return proxy.user_id, minimum
        return proxy.user_id, max(minimum, min(proxy.max_amount, rival_max + auction.bid_step))
    return None
