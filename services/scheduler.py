"""Планировщик задач для завершения аукционов и напоминаний"""
import asyncio
from datetime import timedelta
from typing import Optional
from sqlalchemy import select
from database.connection import async_session_maker
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from database.models.notification import NotificationType
from services.auction import finish_auction, get_expired_auction_ids, get_leading_bid
from services.clock import utc_now
from services.notifications import PendingNotification, auction_link, dispatch_notifications
from services.pricing import format_currency
from config import settings
from aiogram import Bot
import logging

logger = logging.getLogger(__name__)

# Окно поиска аукционов для напоминания: +-5 минут от целевого времени
REMINDER_WINDOW = timedelta(minutes=5)


async def check_and_finish_auctions(bot: Optional[Bot] = None, session_maker=async_session_maker) -> int:
    """Проверить и завершить истекшие аукционы.

    Каждый аукцион завершается в своей сессии: ошибка на одном
    не мешает обработать остальные. Возвращает число завершенных.
    """
    async with session_maker() as session:
        expired_ids = await get_expired_auction_ids(session)

    finished_count = 0
    for auction_id in expired_ids:
        try:
            async with session_maker() as session:
                result = await finish_auction(session, auction_id, bot=bot)
            if result.success and result.value.finished:
                finished_count += 1
        except Exception as e:
            logger.error(f"Ошибка при завершении аукциона {auction_id}: {e}")

    if expired_ids:
        logger.info(f"Завершено аукционов: {finished_count} из {len(expired_ids)}")
    return finished_count


def _hours_text(hours: int) -> str:
    if hours % 10 == 1 and hours % 100 != 11:
        return f"{hours} час"
    if hours % 10 in (2, 3, 4) and hours % 100 not in (12, 13, 14):
        return f"{hours} часа"
    return f"{hours} часов"


async def send_ending_reminders(
    hours: int,
    bot: Optional[Bot] = None,
    session_maker=async_session_maker
) -> int:
    """Напомнить лидерам торгов, что аукцион скоро завершится"""
    now = utc_now()
    target = now + timedelta(hours=hours)

    async with session_maker() as session:
        result = await session.execute(
            select(Auction).where(
                Auction.status == AuctionStatus.ACTIVE.value,
                Auction.end_time >= target - REMINDER_WINDOW,
                Auction.end_time <= target + REMINDER_WINDOW
            )
        )
        ending_auctions = list(result.scalars().all())

        pending = []
        for auction in ending_auctions:
            leading_bid: Optional[Bid] = await get_leading_bid(session, auction.id)
            if not leading_bid:
                continue
            pending.append(PendingNotification(
                user_id=leading_bid.user_id,
                type=NotificationType.AUCTION_ENDING_SOON,
                message=f"Аукцион «{auction.title}» завершится через {_hours_text(hours)}. "
                        f"Текущая ставка: {format_currency(auction.current_price)}",
                link=auction_link(auction.id),
            ))

        await dispatch_notifications(session, pending, bot)

    if pending:
        logger.info(f"Отправлено напоминаний за {hours} ч: {len(pending)}")
    return len(pending)


async def send_auction_ending_reminders(bot: Optional[Bot] = None, session_maker=async_session_maker) -> dict[int, int]:
    """Напоминания для всех настроенных интервалов (по умолчанию 1 и 24 часа)"""
    counts = {}
    for hours in settings.ending_reminder_hours_list:
        try:
            counts[hours] = await send_ending_reminders(hours, bot, session_maker)
        except Exception as e:
            logger.error(f"Ошибка отправки напоминаний за {hours} ч: {e}")
            counts[hours] = 0
    return counts


async def scheduler_loop(bot: Optional[Bot] = None):
    """Основной цикл планировщика"""
    seconds_since_reminders = 0
    reminder_interval = settings.REMINDER_INTERVAL_MINUTES * 60

    while True:
        try:
            await check_and_finish_auctions(bot)

            if seconds_since_reminders >= reminder_interval:
                await send_auction_ending_reminders(bot)
                seconds_since_reminders = 0
        except Exception as e:
            logger.error(f"Ошибка в планировщике: {e}")

        await asyncio.sleep(settings.SCHEDULER_INTERVAL_SECONDS)
        seconds_since_reminders += settings.SCHEDULER_INTERVAL_SECONDS


def start_scheduler(bot: Optional[Bot] = None) -> asyncio.Task:
    """Запустить планировщик"""
    task = asyncio.create_task(scheduler_loop(bot))
    logger.info("Планировщик аукционов запущен")
    return task
