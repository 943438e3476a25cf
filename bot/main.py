"""Главный файл бота"""
import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from config import settings
from database.connection import async_session_maker, init_models
from bot.handlers import start, auction, sale, ratings, admin
from bot.middlewares.database import DatabaseMiddleware
from services.engine import AuctionEngine
from services.notifications import TelegramNotifier
from services.scheduler import start_scheduler

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Запуск бота"""
    await init_models()

    # Создаем бот и диспетчер
    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )
    engine = AuctionEngine(async_session_maker, notifier=TelegramNotifier(bot, async_session_maker))
    # engine попадает в обработчики как именованный аргумент
    dp = Dispatcher(engine=engine)

    # Регистрируем middleware
    dp.message.middleware(DatabaseMiddleware())
    dp.callback_query.middleware(DatabaseMiddleware())

    # Регистрируем роутеры
    dp.include_router(start.router)
    dp.include_router(admin.router)
    dp.include_router(sale.router)
    dp.include_router(ratings.router)
    dp.include_router(auction.router)

    # Запускаем планировщик для завершения аукционов
    start_scheduler(engine)

    logger.info("Бот запущен")

    # Запускаем polling
    await dp.start_polling(bot)


if __name__ == "__main__":
    asyncio.run(main())
