"""Модель ставки"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database.connection import Base, IdType


class Bid(Base):
    """Модель ставки на аукционе. Записи только добавляются и не изменяются"""
    __tablename__ = "bids"

    id = Column(IdType, primary_key=True, index=True)
    auction_id = Column(IdType, ForeignKey("auctions.id"), nullable=False, index=True)
    product_id = Column(IdType, ForeignKey("products.id"), nullable=False, index=True)
    bidder_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Сумма ставки
    # Время ставки берется из часов движка, а не из БД: порядок истории зависит только от него
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Связи
    auction = relationship("Auction", back_populates="bids")
    bidder = relationship("User", backref="bids")
