"""Обработчики выставления лота"""
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command, CommandObject
from sqlalchemy.ext.asyncio import AsyncSession
from services.auction import create_product, create_auction
from services.user import get_or_create_user
from bot.keyboards.auction import get_auction_keyboard
import logging

logger = logging.getLogger(__name__)

router = Router()

USAGE = "Использование: /sell Название | начальная цена | шаг | [цена купить сейчас]"


def parse_sell_args(args: str | None) -> tuple[str, int, int, int | None] | None:
    """Разобрать "Название | 100000 | 10000 | 500000" """
    parts = [p.strip() for p in (args or "").split("|")]
    if len(parts) not in (3, 4) or not parts[0]:
        return None
    try:
        numbers = [int(p.replace(" ", "").replace(",", "")) for p in parts[1:]]
    except ValueError:
        return None
    buy_now = numbers[2] if len(numbers) == 3 else None
    return parts[0], numbers[0], numbers[1], buy_now


@router.message(Command("sell"))
async def cmd_sell(message: Message, command: CommandObject, session: AsyncSession):
    """Выставить товар на аукцион"""
    parsed = parse_sell_args(command.args)
    if not parsed:
        await message.answer(USAGE)
        return
    title, start_price, bid_step, buy_now_price = parsed

    user = await get_or_create_user(
        session,
        message.from_user.id,
        message.from_user.username,
        message.from_user.first_name,
        message.from_user.last_name
    )
    product = await create_product(session, user.id, title)
    try:
        auction = await create_auction(session, product.id, start_price, bid_step, buy_now_price)
    except ValueError as e:
        await session.delete(product)
        await session.commit()
        await message.answer(f"❌ {e}")
        return

    logger.info(f"Пользователь {user.id} выставил товар {product.id} на аукцион {auction.id}")
    await message.answer(
        f"✅ Лот №{product.id} «{title}» выставлен.\n"
        f"Начальная цена: {start_price:,} сум, шаг: {bid_step:,} сум",
        reply_markup=get_auction_keyboard(auction)
    )
