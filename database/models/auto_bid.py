"""Модель автоставки"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database.connection import Base, IdType


class AutoBid(Base):
    """Лимит пользователя, до которого система ставит за него сама"""
    __tablename__ = "auto_bids"
    __table_args__ = (
        UniqueConstraint("auction_id", "user_id", name="uq_auto_bids_auction_user"),
    )

    id = Column(IdType, primary_key=True, index=True)
    auction_id = Column(IdType, ForeignKey("auctions.id"), nullable=False, index=True)
    user_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    max_amount = Column(Integer, nullable=False)  # Максимальная сумма
    # Время из часов движка: при равных лимитах раньше заданный идет первым
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Связи
    user = relationship("User")
