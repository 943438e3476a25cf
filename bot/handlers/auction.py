"""Обработчики аукционов"""
from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from sqlalchemy.ext.asyncio import AsyncSession
from services.auction import load_auction
from services.channel import send_lot_card
from services.engine import AuctionEngine
from services.ledger import masked_history
from services.results import AuctionNotFound, BidResult
from services.user import get_or_create_user
from bot.keyboards.auction import parse_quick_bid_data

router = Router()


class BidState(StatesGroup):
    """Состояния для ввода ставки"""
    waiting_amount = State()


def _parse_ints(args: str | None, count: int) -> list[int] | None:
    """Разобрать первые count целых чисел из аргументов команды"""
    parts = (args or "").replace(",", "").split()
    if len(parts) < count:
        return None
    try:
        return [int(p) for p in parts[:count]]
    except ValueError:
        return None


async def _user_from(event: Message | CallbackQuery, session: AsyncSession):
    return await get_or_create_user(
        session,
        event.from_user.id,
        event.from_user.username,
        event.from_user.first_name,
        event.from_user.last_name
    )


def _result_text(result: BidResult) -> str:
    if not result.ok:
        return f"❌ {result.message}"
    if result.auto_bid:
        text = f"✅ Автоставка до {result.auto_bid.max_amount:,} сум сохранена."
    elif result.bid:
        text = f"✅ Ваша ставка {result.bid.amount:,} сум принята."
    else:
        return f"✅ Лот ваш за {result.auction.current_price:,} сум. Заказ №{result.order.id}"

    text += f"\nТекущая цена лота: {result.auction.current_price:,} сум."
    leader_id = result.auction.highest_bidder_id
    user_id = result.auto_bid.user_id if result.auto_bid else result.bid.bidder_id
    if leader_id != user_id:
        text += "\n⚠️ Вас сразу перебила автоставка другого участника."
    return text


@router.message(Command("lot"))
async def cmd_lot(message: Message, command: CommandObject, session: AsyncSession):
    """Показать лот: /lot <id товара>"""
    args = _parse_ints(command.args, 1)
    if not args:
        await message.answer("Использование: /lot <id товара>")
        return
    await send_lot_card(message, session, args[0])


@router.message(Command("bid"))
async def cmd_bid(message: Message, command: CommandObject, session: AsyncSession, engine: AuctionEngine):
    """Сделать ставку: /bid <id товара> <сумма>"""
    args = _parse_ints(command.args, 2)
    if not args:
        await message.answer("Использование: /bid <id товара> <сумма>")
        return
    product_id, amount = args
    user = await _user_from(message, session)
    try:
        result = await engine.place_bid(product_id, user.id, amount)
    except AuctionNotFound:
        await message.answer("Аукцион не найден")
        return
    await message.answer(_result_text(result))


@router.message(Command("autobid"))
async def cmd_auto_bid(message: Message, command: CommandObject, session: AsyncSession, engine: AuctionEngine):
    """Автоставка: /autobid <id товара> <лимит>"""
    args = _parse_ints(command.args, 2)
    if not args:
        await message.answer("Использование: /autobid <id товара> <лимит>")
        return
    product_id, max_amount = args
    user = await _user_from(message, session)
    try:
        result = await engine.set_auto_bid(product_id, user.id, max_amount)
    except AuctionNotFound:
        await message.answer("Аукцион не найден")
        return
    await message.answer(_result_text(result))


@router.message(Command("buynow"))
async def cmd_buy_now(message: Message, command: CommandObject, session: AsyncSession, engine: AuctionEngine):
    """Купить сразу: /buynow <id товара>"""
    args = _parse_ints(command.args, 1)
    if not args:
        await message.answer("Использование: /buynow <id товара>")
        return
    user = await _user_from(message, session)
    try:
        result = await engine.buy_now(args[0], user.id)
    except AuctionNotFound:
        await message.answer("Аукцион не найден")
        return
    await message.answer(_result_text(result))


@router.message(Command("cancel_lot"))
async def cmd_cancel_lot(message: Message, command: CommandObject, session: AsyncSession, engine: AuctionEngine):
    """Отменить свой аукцион без ставок: /cancel_lot <id товара>"""
    args = _parse_ints(command.args, 1)
    if not args:
        await message.answer("Использование: /cancel_lot <id товара>")
        return
    user = await _user_from(message, session)
    try:
        result = await engine.cancel_auction(args[0], user.id)
    except AuctionNotFound:
        await message.answer("Аукцион не найден")
        return
    await message.answer("✅ Аукцион отменен" if result.ok else f"❌ {result.message}")


async def _history_text(session: AsyncSession, product_id: int) -> str:
    auction = await load_auction(session, product_id)
    if not auction:
        return "Аукцион не найден"
    history = await masked_history(session, auction.id)
    if not history:
        return "Ставок пока нет"
    lines = ["📊 История ставок:"]
    for item in history[:20]:
        lines.append(f"{item['created_at']:%d.%m %H:%M} — {item['bidder']}: {item['amount']:,} сум")
    return "\n".join(lines)


@router.message(Command("history"))
async def cmd_history(message: Message, command: CommandObject, session: AsyncSession):
    """История ставок: /history <id товара>"""
    args = _parse_ints(command.args, 1)
    if not args:
        await message.answer("Использование: /history <id товара>")
        return
    await message.answer(await _history_text(session, args[0]))


@router.callback_query(F.data.startswith("history:"))
async def show_history(callback: CallbackQuery, session: AsyncSession):
    """История ставок (кнопка)"""
    product_id = int(callback.data.split(":")[1])
    await callback.message.answer(await _history_text(session, product_id))
    await callback.answer()


@router.callback_query(F.data.startswith("bid:quick:"))
async def place_bid_quick(callback: CallbackQuery, session: AsyncSession, engine: AuctionEngine):
    """Сделать ставку на сумму, указанную на кнопке"""
    parsed = parse_quick_bid_data(callback.data)
    if not parsed:
        await callback.answer("Некорректная кнопка", show_alert=True)
        return
    product_id, amount = parsed

    user = await _user_from(callback, session)
    try:
        result = await engine.place_bid(product_id, user.id, amount)
    except AuctionNotFound:
        await callback.answer("Аукцион не найден", show_alert=True)
        return

    if result.ok:
        await callback.answer(f"Ставка {amount:,} сум принята! ✅")
    else:
        await callback.answer(result.message, show_alert=True)


@router.callback_query(F.data.startswith("bid:custom:"))
async def ask_custom_bid(callback: CallbackQuery, state: FSMContext):
    """Попросить ввести свою сумму"""
    product_id = int(callback.data.split(":")[2])
    await state.update_data(product_id=product_id)
    await state.set_state(BidState.waiting_amount)
    await callback.message.answer("Введите сумму ставки в сумах:")
    await callback.answer()


@router.message(BidState.waiting_amount)
async def process_custom_bid(message: Message, state: FSMContext, session: AsyncSession, engine: AuctionEngine):
    """Обработка введенной суммы"""
    args = _parse_ints(message.text, 1)
    if not args:
        await message.answer("Введите сумму числом, например 150000")
        return

    data = await state.get_data()
    await state.clear()
    user = await _user_from(message, session)
    try:
        result = await engine.place_bid(data["product_id"], user.id, args[0])
    except AuctionNotFound:
        await message.answer("Аукцион не найден")
        return
    await message.answer(_result_text(result))


@router.callback_query(F.data.startswith("buynow:"))
async def buy_now_button(callback: CallbackQuery, session: AsyncSession, engine: AuctionEngine):
    """Купить сразу (кнопка)"""
    product_id = int(callback.data.split(":")[1])
    user = await _user_from(callback, session)
    try:
        result = await engine.buy_now(product_id, user.id)
    except AuctionNotFound:
        await callback.answer("Аукцион не найден", show_alert=True)
        return
    if result.ok:
        await callback.message.answer(_result_text(result))
        await callback.answer()
    else:
        await callback.answer(result.message, show_alert=True)
