"""Обработчики личного кабинета: ставки, аукционы продавца, избранное и уведомления"""
import html
from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.auction import AuctionStatus
from database.models.user import User
from services.auction import get_user_auctions
from services.notifications import get_notifications, mark_notifications_as_read
from services.pricing import format_currency
from services.status import BidStatus, auction_display_status, get_user_bids, group_user_bids
from services.watchlist import get_user_watchlist
from bot.handlers.auction import STATUS_LABELS

router = Router()

BID_STATUS_LABELS = {
    BidStatus.WINNING: "🟢 лидируете",
    BidStatus.OUTBID: "🔴 перебили",
    BidStatus.WON: "🏆 выиграно",
    BidStatus.LOST: "⚪️ проиграно",
}


@router.message(Command("mybids"))
async def cmd_my_bids(message: Message, session: AsyncSession, user: User):
    """Мои ставки, сгруппированные по статусу"""
    summaries = await get_user_bids(session, user.id)
    if not summaries:
        await message.answer("Вы еще не делали ставок")
        return

    groups = group_user_bids(summaries)
    sections = (
        ("Активные", groups["active"]),
        ("Выигранные", groups["won"]),
        ("Проигранные", groups["lost"]),
    )

    lines = []
    for title, items in sections:
        if not items:
            continue
        lines.append(f"<b>{title} ({len(items)})</b>")
        for item in items:
            lines.append(
                f"#{item.auction_id} «{html.escape(item.auction_title)}»: {format_currency(item.amount)} "
                f"— {BID_STATUS_LABELS[item.status]}"
            )
        lines.append("")
    await message.answer("\n".join(lines).strip())


@router.message(Command("notifications"))
async def cmd_notifications(message: Message, session: AsyncSession, user: User):
    """Последние уведомления. После просмотра они отмечаются прочитанными."""
    notifications = await get_notifications(session, user.id)
    if not notifications:
        await message.answer("Уведомлений нет")
        return

    lines = ["🔔 Уведомления:"]
    for notification in notifications:
        marker = "" if notification.read else "• "
        lines.append(f"{marker}{html.escape(notification.message)}")
    # Прочитанными становятся только показанные уведомления
    await mark_notifications_as_read(session, user.id, [n.id for n in notifications if not n.read])
    await message.answer("\n".join(lines))


@router.message(Command("myauctions"))
async def cmd_my_auctions(message: Message, command: CommandObject, session: AsyncSession, user: User):
    """Мои аукционы: /myauctions [active|ended|cancelled]"""
    status = None
    if command.args:
        try:
            status = AuctionStatus(command.args.split()[0].upper())
        except ValueError:
            await message.answer("Фильтр: active, ended или cancelled")
            return

    items = await get_user_auctions(session, user.id, status)
    if not items:
        await message.answer("Аукционов не найдено. Создать новый: /new")
        return

    lines = ["📦 Мои аукционы:"]
    for item in items:
        auction = item.auction
        lines.append(
            f"#{auction.id} «{html.escape(auction.title)}» — {format_currency(auction.current_price)}, "
            f"ставок: {item.bids_count}, {STATUS_LABELS[auction_display_status(auction)]}"
        )
    await message.answer("\n".join(lines))


@router.message(Command("watchlist"))
async def cmd_watchlist(message: Message, session: AsyncSession, user: User):
    """Избранные аукционы"""
    items = await get_user_watchlist(session, user.id)
    if not items:
        await message.answer("Избранное пусто. Добавить лот: /watch &lt;номер лота&gt;")
        return

    lines = ["⭐ Избранное:"]
    for item in items:
        auction = item.auction
        lines.append(
            f"#{auction.id} «{html.escape(auction.title)}» — {format_currency(auction.current_price)}, "
            f"ставок: {item.bids_count}, {STATUS_LABELS[auction_display_status(auction)]}"
        )
    await message.answer("\n".join(lines))
