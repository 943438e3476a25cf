"""Модель системных настроек"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from database.connection import Base


class SystemConfig(Base):
    """Пара ключ-значение, которую админ может менять без перезапуска"""
    __tablename__ = "system_config"

    key = Column(String(100), primary_key=True)
    value = Column(String(500), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
