"""Конфигурация приложения"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Настройки приложения"""

    # Telegram Bot
    BOT_TOKEN: str = ""

    # Database
    # Если задан DATABASE_URL, он используется вместо DB_* (например, sqlite+aiosqlite для тестов)
    DATABASE_URL: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_NAME: str = ""

    # Admin
    ADMIN_USER_IDS: str = ""

    # Auction Settings
    # Базовая длительность аукциона (в часах)
    AUCTION_DURATION_HOURS: float = 2.0
    # Анти-снайпинг: если ставка пришла меньше чем за N минут до конца,
    # время окончания сдвигается на M минут. Значения из таблицы system_config важнее.
    AUCTION_EXTENSION_TRIGGER_MINUTES: int = 5
    AUCTION_EXTENSION_DURATION_MINUTES: int = 10
    # Минимальный процент положительных оценок для участия в торгах
    MIN_POSITIVE_RATING_PERCENT: float = 80.0

    # Scheduler
    SCHEDULER_INTERVAL_SECONDS: int = 60

    @property
    def admin_ids_list(self) -> List[int]:
        """Список ID администраторов"""
        if not self.ADMIN_USER_IDS:
            return []
        return [int(uid.strip()) for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

    @property
    def database_url(self) -> str:
        """URL подключения к базе данных"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
