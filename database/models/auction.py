"""Модель аукциона"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Boolean, String
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, IdType


class AuctionStatus(str, enum.Enum):
    """Статус аукциона"""
    ACTIVE = "active"  # Идут торги
    ENDED = "ended"  # Время вышло, ставок не было
    SOLD = "sold"  # Продан победителю или по цене "купить сейчас"
    CANCELLED = "cancelled"  # Отменен продавцом


class Auction(Base):
    """Модель аукциона. Единственный владелец текущей цены и статуса лота"""
    __tablename__ = "auctions"

    id = Column(IdType, primary_key=True, index=True)
    product_id = Column(IdType, ForeignKey("products.id"), unique=True, nullable=False, index=True)
    start_price = Column(Integer, nullable=False)  # Начальная цена
    current_price = Column(Integer, nullable=False)  # Текущая цена, только растет
    bid_step = Column(Integer, nullable=False)  # Минимальный шаг ставки
    buy_now_price = Column(Integer, nullable=True)  # Цена "купить сейчас"
    highest_bidder_id = Column(IdType, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(String(50), default=AuctionStatus.ACTIVE.value, nullable=False, index=True)
    auto_extend = Column(Boolean, default=True, nullable=False)  # Анти-снайпинг
    allow_new_bidders = Column(Boolean, default=True, nullable=False)  # Пускать без оценок
    started_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=False, index=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Связи
    product = relationship("Product", back_populates="auction")
    highest_bidder = relationship("User", foreign_keys=[highest_bidder_id])
    bids = relationship("Bid", back_populates="auction", order_by="[Bid.created_at, Bid.id]")

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE.value

    @property
    def minimum_bid(self) -> int:
        """Минимальная допустимая ставка"""
        return self.current_price + self.bid_step
