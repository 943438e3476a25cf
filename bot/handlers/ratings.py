"""Обработчики оценок и заказов"""
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command, CommandObject
from sqlalchemy.ext.asyncio import AsyncSession
from services.orders import get_user_orders
from services.ratings import create_rating, get_rating_summary, get_user_ratings
from services.user import get_or_create_user, get_user

router = Router()

RECENT_COMMENTS = 5


@router.message(Command("rate"))
async def cmd_rate(message: Message, command: CommandObject, session: AsyncSession):
    """Оценить сделку: /rate <id заказа> <+1|-1> [комментарий]"""
    parts = (command.args or "").split(maxsplit=2)
    if len(parts) < 2:
        await message.answer("Использование: /rate <id заказа> <+1|-1> [комментарий]")
        return
    try:
        order_id, score = int(parts[0]), int(parts[1])
    except ValueError:
        await message.answer("Использование: /rate <id заказа> <+1|-1> [комментарий]")
        return
    comment = parts[2] if len(parts) > 2 else None

    user = await get_or_create_user(
        session,
        message.from_user.id,
        message.from_user.username,
        message.from_user.first_name,
        message.from_user.last_name
    )
    try:
        await create_rating(session, order_id, user.id, score, comment)
    except ValueError as e:
        await message.answer(f"❌ {e}")
        return
    await message.answer("✅ Спасибо за оценку!")


@router.message(Command("rating"))
async def cmd_rating(message: Message, command: CommandObject, session: AsyncSession):
    """Рейтинг: /rating — свой, /rating <id пользователя> — чужой"""
    if command.args:
        try:
            user_id = int(command.args.split()[0])
        except ValueError:
            await message.answer("Использование: /rating [id пользователя]")
            return
        user = await get_user(session, user_id)
        if not user:
            await message.answer("Пользователь не найден")
            return
        own = False
    else:
        user = await get_or_create_user(session, message.from_user.id, message.from_user.username, message.from_user.first_name, message.from_user.last_name)
        own = True

    summary = await get_rating_summary(session, user.id)
    if summary.total == 0:
        await message.answer("У вас пока нет оценок" if own else f"У {user.display_name} пока нет оценок")
        return

    title = "Ваш рейтинг" if own else f"Рейтинг {user.display_name}"
    lines = [
        f"⭐️ {title} (ID {user.id}): {round(summary.percentage)}%",
        f"👍 {summary.positive}  👎 {summary.negative}",
    ]
    comments = [r for r in await get_user_ratings(session, user.id) if r.comment]
    if comments:
        lines.append("")
        lines.append("Последние отзывы:")
        for rating in comments[:RECENT_COMMENTS]:
            lines.append(f"{'👍' if rating.score > 0 else '👎'} {rating.comment}")
    await message.answer("\n".join(lines))


@router.message(Command("orders"))
async def cmd_orders(message: Message, session: AsyncSession):
    """Мои заказы"""
    user = await get_or_create_user(session, message.from_user.id, message.from_user.username, message.from_user.first_name, message.from_user.last_name)
    orders = await get_user_orders(session, user.id)
    if not orders:
        await message.answer("Заказов пока нет")
        return
    lines = ["📦 Ваши заказы:"]
    for order in orders[:20]:
        role = "покупка" if order.buyer_id == user.id else "продажа"
        lines.append(f"№{order.id} — {role}, {order.final_price:,} сум, {order.status}")
    await message.answer("\n".join(lines))
