"""Результаты операций аукциона: ошибки возвращаются, а не выбрасываются"""
import enum
from dataclasses import dataclass, field
from typing import Optional

from database.models.auction import Auction
from database.models.auto_bid import AutoBid
from database.models.bid import Bid
from database.models.order import Order


class AuctionNotFound(ValueError):
    """Аукцион для товара не найден"""

    def __init__(self, product_id: int):
        super().__init__(f"Аукцион для товара {product_id} не найден")
        self.product_id = product_id


class BidError(str, enum.Enum):
    """Причина отказа в ставке или покупке"""
    AUCTION_NOT_ACTIVE = "auction_not_active"
    BID_TOO_LOW = "bid_too_low"
    SELF_BID = "self_bid"
    INSUFFICIENT_RATING = "insufficient_rating"
    BUY_NOW_UNAVAILABLE = "buy_now_unavailable"
    OWN_PRODUCT = "own_product"
    NOT_SELLER = "not_seller"
    HAS_BIDS = "has_bids"


ERROR_MESSAGES = {
    BidError.AUCTION_NOT_ACTIVE: "Аукцион не активен",
    BidError.BID_TOO_LOW: "Ставка должна быть не меньше текущей цены плюс шаг",
    BidError.SELF_BID: "Ваша ставка уже лидирует",
    BidError.INSUFFICIENT_RATING: "Ваш рейтинг не позволяет участвовать в этом аукционе",
    BidError.BUY_NOW_UNAVAILABLE: "Покупка по фиксированной цене недоступна",
    BidError.OWN_PRODUCT: "Нельзя делать ставки на собственный товар",
    BidError.NOT_SELLER: "Только продавец может отменить аукцион",
    BidError.HAS_BIDS: "Нельзя отменить аукцион, на который уже есть ставки",
}


@dataclass
class BidResult:
    """Итог операции: либо ставка/аукцион, либо код ошибки с сообщением"""
    auction: Optional[Auction] = None
    bid: Optional[Bid] = None
    order: Optional[Order] = None
    auto_bid: Optional[AutoBid] = None
    # Автоставки, сделанные системой в той же транзакции
    proxy_bids: list[Bid] = field(default_factory=list)
    error: Optional[BidError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, error: BidError, message: str = None, auction: Auction = None) -> "BidResult":
        return cls(auction=auction, error=error, message=message or ERROR_MESSAGES[error])
