"""Сервис системных настроек"""
from dataclasses import dataclass
from datetime import timedelta
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.system_config import SystemConfig
from config import settings

logger = logging.getLogger(__name__)

EXTENSION_TRIGGER_KEY = "AUCTION_EXTENSION_TRIGGER_MINUTES"
EXTENSION_DURATION_KEY = "AUCTION_EXTENSION_DURATION_MINUTES"


@dataclass(frozen=True)
class AuctionConfig:
    """Параметры анти-снайпинга"""
    extension_trigger: timedelta
    extension_duration: timedelta


async def get_value(session: AsyncSession, key: str, default: str) -> str:
    """Получить значение настройки или значение по умолчанию"""
    result = await session.execute(
        select(SystemConfig).where(SystemConfig.key == key)
    )
    config = result.scalar_one_or_none()
    if not config:
        return default
    return config.value


async def set_value(session: AsyncSession, key: str, value: str) -> SystemConfig:
    """Сохранить значение настройки"""
    config = await session.get(SystemConfig, key)
    if config:
        config.value = value
    else:
        config = SystemConfig(key=key, value=value)
        session.add(config)
    await session.commit()
    await session.refresh(config)
    return config


async def _get_minutes(session: AsyncSession, key: str, default: int) -> int:
    raw = await get_value(session, key, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Некорректное значение {key}={raw!r}, используется {default}")
        return default


async def get_auction_config(session: AsyncSession) -> AuctionConfig:
    """Текущие параметры продления аукционов"""
    trigger = await _get_minutes(session, EXTENSION_TRIGGER_KEY, settings.AUCTION_EXTENSION_TRIGGER_MINUTES)
    duration = await _get_minutes(session, EXTENSION_DURATION_KEY, settings.AUCTION_EXTENSION_DURATION_MINUTES)
    return AuctionConfig(
        extension_trigger=timedelta(minutes=trigger),
        extension_duration=timedelta(minutes=duration)
    )
