"""Обработчики для админов"""
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command, CommandObject
from sqlalchemy.ext.asyncio import AsyncSession
from services.system import (
    EXTENSION_DURATION_KEY,
    EXTENSION_TRIGGER_KEY,
    get_auction_config,
    set_value,
)
from config import settings

router = Router()


def is_admin(user_id: int) -> bool:
    """Проверить, является ли пользователь админом из .env"""
    return user_id in settings.admin_ids_list


@router.message(Command("extension"))
async def cmd_extension(message: Message, command: CommandObject, session: AsyncSession):
    """Показать или изменить анти-снайпинг: /extension [триггер_мин продление_мин]"""
    if not is_admin(message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    if command.args:
        parts = command.args.split()
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            await message.answer("Использование: /extension <триггер, мин> <продление, мин>")
            return
        await set_value(session, EXTENSION_TRIGGER_KEY, parts[0])
        await set_value(session, EXTENSION_DURATION_KEY, parts[1])

    config = await get_auction_config(session)
    await message.answer(
        f"Продление: если до конца меньше {int(config.extension_trigger.total_seconds() // 60)} мин, "
        f"аукцион продлевается на {int(config.extension_duration.total_seconds() // 60)} мин"
    )
