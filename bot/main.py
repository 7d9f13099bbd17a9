"""Точка входа бота аукциона"""
import asyncio
import contextlib
import logging
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand
from config import settings
from bot.handlers import start, auction, dashboard, new_auction
from bot.middlewares.database import DatabaseMiddleware
from database.connection import engine, init_db
from services.scheduler import start_scheduler

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="auctions", description="Активные аукционы"),
    BotCommand(command="auction", description="Карточка лота"),
    BotCommand(command="new", description="Выставить лот"),
    BotCommand(command="myauctions", description="Мои аукционы"),
    BotCommand(command="watchlist", description="Избранное"),
    BotCommand(command="bid", description="Сделать ставку"),
    BotCommand(command="buynow", description="Купить сразу"),
    BotCommand(command="mybids", description="Мои ставки"),
    BotCommand(command="notifications", description="Уведомления"),
    BotCommand(command="help", description="Список команд"),
]


async def main():
    """Запуск бота и планировщика завершения торгов"""
    await init_db()

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )
    dp = Dispatcher()

    # Сессия БД и текущий участник для сообщений и кнопок
    dp.message.middleware(DatabaseMiddleware())
    dp.callback_query.middleware(DatabaseMiddleware())

    dp.include_router(start.router)
    dp.include_router(auction.router)
    dp.include_router(dashboard.router)
    # Шаги мастера после команд: команда во время создания лота выполняется как обычно
    dp.include_router(new_auction.router)

    await bot.set_my_commands(BOT_COMMANDS)
    scheduler_task = start_scheduler(bot)
    logger.info("Бот аукциона запущен")

    try:
        await dp.start_polling(bot)
    finally:
        scheduler_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scheduler_task
        await bot.session.close()
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
