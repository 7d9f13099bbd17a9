"""Сервис уведомлений пользователей.

Уведомления собираются во время операции и отправляются только после того,
как транзакция операции зафиксирована. Ошибка доставки логируется и не
влияет на результат ставки или покупки.
"""
import html
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from aiogram import Bot
from database.models.notification import Notification, NotificationType
from database.models.user import User
from config import settings
import logging

logger = logging.getLogger(__name__)


@dataclass
class PendingNotification:
    """Уведомление, ожидающее отправки"""
    user_id: int
    type: NotificationType
    message: str
    link: Optional[str] = None


def auction_link(auction_id: int) -> str:
    """Ссылка на страницу аукциона"""
    return f"/auctions/{auction_id}"


async def _store_notifications(
    session: AsyncSession,
    pending: list[PendingNotification]
) -> int:
    """Сохранить уведомления в отдельной транзакции"""
    session.add_all([
        Notification(
            user_id=item.user_id,
            type=item.type.value,
            message=item.message,
            link=item.link,
        )
        for item in pending
    ])
    await session.commit()
    return len(pending)


async def _push_to_telegram(
    session: AsyncSession,
    bot: Bot,
    pending: list[PendingNotification]
) -> int:
    """Продублировать уведомления в личные сообщения Telegram"""
    user_ids = {item.user_id for item in pending}
    result = await session.execute(
        select(User.id, User.telegram_id).where(User.id.in_(user_ids))
    )
    chat_ids = {user_id: telegram_id for user_id, telegram_id in result.all() if telegram_id}

    sent = 0
    for item in pending:
        chat_id = chat_ids.get(item.user_id)
        if not chat_id:
            continue
        try:
            await bot.send_message(chat_id, f"🔔 {html.escape(item.message)}")
            sent += 1
        except Exception as e:
            logger.error(f"Ошибка отправки уведомления пользователю {item.user_id}: {e}")
    return sent


async def dispatch_notifications(
    session: AsyncSession,
    pending: list[PendingNotification],
    bot: Optional[Bot] = None
) -> int:
    """Отправить уведомления после фиксации операции.

    Возвращает количество сохраненных уведомлений. Исключения не пробрасываются.
    """
    if not pending:
        return 0

    stored = 0
    # Отдельная сессия: сбой здесь не затрагивает объекты, загруженные операцией
    async with AsyncSession(session.bind, expire_on_commit=False) as notify_session:
        try:
            stored = await _store_notifications(notify_session, pending)
        except Exception as e:
            await notify_session.rollback()
            logger.error(f"Ошибка сохранения {len(pending)} уведомлений: {e}")

        if bot is not None:
            try:
                await _push_to_telegram(notify_session, bot, pending)
            except Exception as e:
                logger.error(f"Ошибка рассылки уведомлений в Telegram: {e}")

    return stored


async def create_notification(
    session: AsyncSession,
    user_id: int,
    type: NotificationType,
    message: str,
    link: Optional[str] = None
) -> Optional[Notification]:
    """Создать одно уведомление"""
    notification = Notification(
        user_id=user_id,
        type=type.value,
        message=message,
        link=link,
    )
    try:
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    except Exception as e:
        await session.rollback()
        logger.error(f"Ошибка создания уведомления для пользователя {user_id}: {e}")
        return None
    return notification


async def get_notifications(
    session: AsyncSession,
    user_id: int,
    limit: Optional[int] = None,
    unread_only: bool = False
) -> list[Notification]:
    """Получить уведомления пользователя, новые первыми"""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    result = await session.execute(
        query
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit or settings.NOTIFICATIONS_LIMIT)
    )
    return list(result.scalars().all())


async def count_unread(session: AsyncSession, user_id: int) -> int:
    """Количество непрочитанных уведомлений"""
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read.is_(False)
        )
    )
    return result.scalar() or 0


async def mark_as_read(session: AsyncSession, notification_id: int, user_id: int) -> bool:
    """Отметить уведомление прочитанным. Чужие уведомления не изменяются."""
    result = await session.execute(
        update(Notification)
        .where(
            Notification.id == notification_id,
            Notification.user_id == user_id
        )
        .values(read=True)
    )
    await session.commit()
    return result.rowcount == 1


async def mark_all_as_read(session: AsyncSession, user_id: int) -> int:
    """Отметить все уведомления пользователя прочитанными"""
    result = await session.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.read.is_(False)
        )
        .values(read=True)
    )
    await session.commit()
    return result.rowcount


async def mark_notifications_as_read(
    session: AsyncSession,
    user_id: int,
    notification_ids: list[int]
) -> int:
    """Отметить прочитанными только переданные уведомления пользователя"""
    if not notification_ids:
        return 0
    result = await session.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.id.in_(notification_ids),
            Notification.read.is_(False)
        )
        .values(read=True)
    )
    await session.commit()
    return result.rowcount
