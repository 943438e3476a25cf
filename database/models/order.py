"""Модель заказа"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, String
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, IdType


class OrderStatus(str, enum.Enum):
    """Статус заказа"""
    PENDING_PAYMENT = "pending_payment"  # Ожидает оплаты
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Order(Base):
    """Заказ, созданный по итогам проданного аукциона"""
    __tablename__ = "orders"

    id = Column(IdType, primary_key=True, index=True)
    product_id = Column(IdType, ForeignKey("products.id"), unique=True, nullable=False, index=True)
    buyer_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    seller_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    final_price = Column(Integer, nullable=False)
    status = Column(String(50), default=OrderStatus.PENDING_PAYMENT.value, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Связи
    product = relationship("Product", backref="order")
    buyer = relationship("User", foreign_keys=[buyer_id])
    seller = relationship("User", foreign_keys=[seller_id])
