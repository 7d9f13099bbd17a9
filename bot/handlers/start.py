"""Обработчики команд /start и /help"""
import html
from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.user import User
from services.notifications import count_unread

router = Router()

HELP_TEXT = (
    "Команды:\n"
    "/auctions — активные аукционы\n"
    "/auction &lt;номер&gt; — карточка лота\n"
    "/new — выставить лот на аукцион\n"
    "/myauctions [active|ended|cancelled] — мои аукционы\n"
    "/watch &lt;номер&gt; и /unwatch &lt;номер&gt; — избранное\n"
    "/watchlist — список избранного\n"
    "/bid &lt;номер&gt; &lt;сумма&gt; — сделать ставку\n"
    "/buynow &lt;номер&gt; — купить сразу\n"
    "/mybids — мои ставки\n"
    "/notifications — уведомления\n"
    "/cancel &lt;номер&gt; — отменить свой аукцион\n"
    "/delete &lt;номер&gt; — удалить завершенный аукцион"
)


@router.message(Command("start"))
async def cmd_start(message: Message, session: AsyncSession, user: User):
    """Обработчик команды /start"""
    text = f"👋 Добро пожаловать на аукцион кампуса, {html.escape(user.display_name)}!\n\n"
    unread = await count_unread(session, user.id)
    if unread:
        text += f"🔔 Непрочитанных уведомлений: {unread} (/notifications)\n\n"
    await message.answer(text + HELP_TEXT)


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)
