"""Модель оценки"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, IdType


class RatingDirection(str, enum.Enum):
    """Кто кого оценивает в рамках заказа"""
    BUYER_TO_SELLER = "buyer_to_seller"
    SELLER_TO_BUYER = "seller_to_buyer"


class Rating(Base):
    """Оценка +1/-1. Одна на заказ в каждую сторону, после создания не меняется"""
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("order_id", "direction", name="uq_ratings_order_direction"),
    )

    id = Column(IdType, primary_key=True, index=True)
    order_id = Column(IdType, ForeignKey("orders.id"), nullable=False, index=True)
    direction = Column(String(50), nullable=False)
    giver_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)  # +1 или -1
    comment = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Связи
    order = relationship("Order", backref="ratings")
    giver = relationship("User", foreign_keys=[giver_id])
    receiver = relationship("User", foreign_keys=[receiver_id])
