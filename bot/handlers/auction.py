"""Обработчики аукционов: ставки, покупка, отмена и удаление"""
import html
from decimal import Decimal, InvalidOperation
from typing import Optional
from aiogram import Router, F
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from database.models.auction import Auction
from database.models.bid import Bid
from database.models.user import User
from schemas.bid import BidCreate, BuyNowRequest
from services.auction import cancel_auction, delete_auction, get_active_auctions, get_auction, get_bid_history
from services.bidding import buy_now, place_bid
from services.pricing import format_currency, minimum_bid
from services.status import DisplayStatus, auction_display_status
from services.user import get_user
from services.watchlist import add_to_watchlist, is_in_watchlist, remove_from_watchlist
from bot.keyboards.auction import get_auction_keyboard, get_history_keyboard

router = Router()

STATUS_LABELS = {
    DisplayStatus.ACTIVE: "🟢 Идут торги",
    DisplayStatus.SOLD: "✅ Продан",
    DisplayStatus.ENDED: "⚪️ Завершен",
    DisplayStatus.CANCELLED: "❌ Отменен",
}


def _parse_auction_id(command: CommandObject) -> Optional[int]:
    """Первый аргумент команды как ID аукциона"""
    if not command.args:
        return None
    try:
        return int(command.args.split()[0])
    except ValueError:
        return None


def _validation_text(error: ValidationError) -> str:
    return error.errors()[0].get("msg", "Некорректные данные")


async def get_auction_card_text(session: AsyncSession, auction: Auction, user_id: Optional[int] = None) -> str:
    """Текст карточки лота. Для user_id отмечается, что лот в избранном."""
    status = auction_display_status(auction)

    result = await session.execute(
        select(func.count(Bid.id)).where(Bid.auction_id == auction.id)
    )
    bids_count = result.scalar() or 0
    seller: Optional[User] = await get_user(session, auction.user_id)

    lines = [
        f"<b>{html.escape(auction.title)}</b>",
        f"{STATUS_LABELS[status]}",
        "",
        f"Продавец: {html.escape(seller.display_name) if seller else '—'}",
        f"Состояние: {auction.condition}",
        f"Начальная цена: {format_currency(auction.starting_price)}",
        f"⚡️ Текущая цена: {format_currency(auction.current_price)}",
        f"👥 Кол-во ставок: {bids_count}",
    ]
    if user_id is not None and await is_in_watchlist(session, user_id, auction.id):
        lines.append("⭐ В избранном")
    if status == DisplayStatus.ACTIVE:
        lines.append(f"Минимальная рекомендуемая ставка: {format_currency(minimum_bid(auction.current_price))}")
        if auction.buy_now_price:
            lines.append(f"Купить сейчас: {format_currency(auction.buy_now_price)}")
        lines.append(f"Завершится: {auction.end_time:%d.%m.%Y %H:%M} UTC")
    return "\n".join(lines)


async def _send_auction_card(message: Message, session: AsyncSession, auction_id: int, user: Optional[User] = None):
    auction = await get_auction(session, auction_id)
    if not auction:
        await message.answer("Аукцион не найден")
        return

    text = await get_auction_card_text(session, auction, user.id if user else None)
    keyboard = None
    if auction_display_status(auction) == DisplayStatus.ACTIVE:
        keyboard = get_auction_keyboard(auction)
    await message.answer(text, reply_markup=keyboard)


async def _place_bid_and_reply(
    message: Message,
    session: AsyncSession,
    user: User,
    auction_id: int,
    amount
) -> str:
    """Сделать ставку и вернуть текст ответа"""
    try:
        data = BidCreate(auction_id=auction_id, amount=amount)
    except ValidationError as e:
        return f"❌ {_validation_text(e)}"

    result = await place_bid(session, data.auction_id, user.id, data.amount, bot=message.bot)
    if not result.success:
        return f"❌ {result.error.message}"
    return (
        f"✅ Ваша ставка {format_currency(result.value.amount)} принята.\n"
        f"Следующая рекомендуемая ставка: {format_currency(minimum_bid(result.value.amount))}"
    )


@router.message(Command("auction"))
async def cmd_auction(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Показать карточку лота: /auction <id>"""
    auction_id = _parse_auction_id(command)
    if auction_id is None:
        await message.answer("Использование: /auction &lt;номер лота&gt;")
        return
    await _send_auction_card(message, session, auction_id, user)


@router.message(Command("auctions"))
async def cmd_auctions(message: Message, session: AsyncSession):
    """Список активных аукционов, ближайшие к завершению первыми"""
    auctions = await get_active_auctions(session)
    if not auctions:
        await message.answer("Активных аукционов нет")
        return

    lines = ["🔨 Идут торги:"]
    for item in auctions[:20]:
        lines.append(
            f"#{item.id} «{html.escape(item.title)}» — {format_currency(item.current_price)}, "
            f"до {item.end_time:%d.%m %H:%M}"
        )
    await message.answer("\n".join(lines))


@router.callback_query(F.data.startswith("auction:show:"))
async def show_auction(callback: CallbackQuery, session: AsyncSession, user: User):
    """Обновить карточку лота"""
    auction_id = int(callback.data.split(":")[2])
    await _send_auction_card(callback.message, session, auction_id, user)
    await callback.answer()


@router.message(Command("bid"))
async def cmd_bid(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Сделать ставку: /bid <id> <сумма>"""
    args = (command.args or "").split()
    if len(args) != 2:
        await message.answer("Использование: /bid &lt;номер лота&gt; &lt;сумма&gt;")
        return

    try:
        auction_id = int(args[0])
        amount = Decimal(args[1].replace(",", "."))
    except (ValueError, InvalidOperation):
        await message.answer("Номер лота и сумма должны быть числами")
        return

    text = await _place_bid_and_reply(message, session, user, auction_id, amount)
    await message.answer(text)


@router.callback_query(F.data.startswith("bid:amount:"))
async def place_bid_quick(callback: CallbackQuery, session: AsyncSession, user: User):
    """Сделать ставку через кнопку быстрой ставки"""
    parts = callback.data.split(":")
    auction_id = int(parts[2])
    amount = Decimal(parts[3])

    text = await _place_bid_and_reply(callback.message, session, user, auction_id, amount)
    await callback.answer(text, show_alert=True)


async def _buy_now_and_reply(message: Message, session: AsyncSession, user: User, auction_id: int) -> str:
    try:
        data = BuyNowRequest(auction_id=auction_id)
    except ValidationError as e:
        return f"❌ {_validation_text(e)}"

    result = await buy_now(session, data.auction_id, user.id, bot=message.bot)
    if not result.success:
        return f"❌ {result.error.message}"
    return f"🎉 Лот ваш! Вы купили его за {format_currency(result.value.amount)}"


@router.message(Command("buynow"))
async def cmd_buy_now(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Мгновенная покупка: /buynow <id>"""
    auction_id = _parse_auction_id(command)
    if auction_id is None:
        await message.answer("Использование: /buynow &lt;номер лота&gt;")
        return
    await message.answer(await _buy_now_and_reply(message, session, user, auction_id))


@router.callback_query(F.data.startswith("auction:buynow:"))
async def buy_now_button(callback: CallbackQuery, session: AsyncSession, user: User):
    """Мгновенная покупка по кнопке"""
    auction_id = int(callback.data.split(":")[2])
    text = await _buy_now_and_reply(callback.message, session, user, auction_id)
    await callback.answer(text, show_alert=True)


@router.callback_query(F.data.startswith("auction:bids:"))
async def show_bid_history(callback: CallbackQuery, session: AsyncSession):
    """История ставок по лоту"""
    auction_id = int(callback.data.split(":")[2])
    bids = await get_bid_history(session, auction_id)

    if not bids:
        await callback.answer("Ставок пока нет", show_alert=True)
        return

    lines = ["📊 Последние ставки:"]
    for bid in bids:
        lines.append(f"{bid.created_at:%d.%m %H:%M} — {format_currency(bid.amount)}")
    await callback.message.answer("\n".join(lines), reply_markup=get_history_keyboard(auction_id))
    await callback.answer()


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Отменить свой аукцион: /cancel <id>"""
    auction_id = _parse_auction_id(command)
    if auction_id is None:
        await message.answer("Использование: /cancel &lt;номер лота&gt;")
        return

    result = await cancel_auction(session, auction_id, user.id, bot=message.bot)
    if not result.success:
        await message.answer(f"❌ {result.error.message}")
        return
    await message.answer(f"Аукцион «{result.value.title}» отменен")


@router.message(Command("delete"))
async def cmd_delete(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Удалить завершенный или отмененный аукцион: /delete <id>"""
    auction_id = _parse_auction_id(command)
    if auction_id is None:
        await message.answer("Использование: /delete &lt;номер лота&gt;")
        return

    result = await delete_auction(session, auction_id, user.id)
    if not result.success:
        await message.answer(f"❌ {result.error.message}")
        return
    await message.answer("Аукцион удален")


async def _watch_and_reply(session: AsyncSession, user: User, auction_id: int) -> str:
    result = await add_to_watchlist(session, user.id, auction_id)
    if not result.success:
        return f"❌ {result.error.message}"
    return "⭐ Лот добавлен в избранное: /watchlist"


@router.message(Command("watch"))
async def cmd_watch(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Добавить лот в избранное: /watch <id>"""
    auction_id = _parse_auction_id(command)
    if auction_id is None:
        await message.answer("Использование: /watch &lt;номер лота&gt;")
        return
    await message.answer(await _watch_and_reply(session, user, auction_id))


@router.callback_query(F.data.startswith("watch:add:"))
async def watch_button(callback: CallbackQuery, session: AsyncSession, user: User):
    """Добавить лот в избранное по кнопке"""
    auction_id = int(callback.data.split(":")[2])
    text = await _watch_and_reply(session, user, auction_id)
    await callback.answer(text, show_alert=True)


@router.message(Command("unwatch"))
async def cmd_unwatch(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Убрать лот из избранного: /unwatch <id>"""
    auction_id = _parse_auction_id(command)
    if auction_id is None:
        await message.answer("Использование: /unwatch &lt;номер лота&gt;")
        return

    if await remove_from_watchlist(session, user.id, auction_id):
        await message.answer("Лот убран из избранного")
    else:
        await message.answer("Этого лота нет в избранном")
