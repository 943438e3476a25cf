"""Планировщик задач для завершения аукционов"""
import asyncio
import logging

from services.engine import AuctionEngine
from config import settings

logger = logging.getLogger(__name__)


async def check_and_finish_auctions(engine: AuctionEngine) -> int:
    """Проверить и завершить истекшие аукционы"""
    finished = await engine.expire_due_auctions()
    for auction in finished:
        logger.info(f"Аукцион {auction.id} завершен со статусом {auction.status}")
    return len(finished)


async def scheduler_loop(engine: AuctionEngine, interval: float = None):
    """Основной цикл планировщика"""
    interval = settings.SCHEDULER_INTERVAL_SECONDS if interval is None else interval

    while True:
        try:
            await check_and_finish_auctions(engine)
        except Exception as e:
            logger.error(f"Ошибка в планировщике: {e}")

        await asyncio.sleep(interval)


def start_scheduler(engine: AuctionEngine) -> asyncio.Task:
    """Запустить планировщик"""
    task = asyncio.create_task(scheduler_loop(engine))
    logger.info("Планировщик аукционов запущен")
    return task
