"""Обработчики команды /start"""
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command, CommandObject
from sqlalchemy.ext.asyncio import AsyncSession
from services.channel import send_lot_card
from services.user import get_or_create_user

router = Router()

HELP_TEXT = (
    "👋 Добро пожаловать в аукцион!\n\n"
    "/sell Название | цена | шаг | [купить сейчас] — выставить лот\n"
    "/lot id — карточка лота\n"
    "/bid id сумма — сделать ставку\n"
    "/autobid id лимит — автоставка до лимита\n"
    "/buynow id — купить сразу\n"
    "/history id — история ставок\n"
    "/cancel_lot id — отменить свой лот без ставок\n"
    "/orders — мои заказы\n"
    "/rate заказ +1|-1 [комментарий] — оценить сделку\n"
    "/rating [id] — мой рейтинг или рейтинг участника"
)


@router.message(Command("start"))
async def cmd_start(message: Message, command: CommandObject, session: AsyncSession):
    """Обработчик команды /start"""
    await get_or_create_user(
        session,
        message.from_user.id,
        message.from_user.username,
        message.from_user.first_name,
        message.from_user.last_name
    )

    # Deep-link вида /start lot_123 сразу открывает лот
    if command.args and command.args.startswith("lot_"):
        try:
            product_id = int(command.args.split("_")[1])
        except (ValueError, IndexError):
            product_id = None
        if product_id is not None:
            await send_lot_card(message, session, product_id)
            return

    await message.answer(HELP_TEXT)


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)
