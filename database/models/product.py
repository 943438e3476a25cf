"""Модель товара"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database.connection import Base, IdType


class Product(Base):
    """Модель товара, выставленного на аукцион"""
    __tablename__ = "products"

    id = Column(IdType, primary_key=True, index=True)
    seller_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Связи
    seller = relationship("User", backref="products")
    auction = relationship("Auction", back_populates="product", uselist=False)
