"""Сервис для работы с пользователями площадки"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.user import User
import logging

logger = logging.getLogger(__name__)


async def get_or_create_user(
    session: AsyncSession,
    telegram_id: int,
    username: str = None,
    first_name: str = None,
    last_name: str = None
) -> User:
    """Найти участника по Telegram ID или зарегистрировать нового.

    Имя и username синхронизируются с профилем Telegram при каждом обращении.
    """
    result = await session.execute(
        select(User).where(User.telegram_id == telegram_id)
    )
    user = result.scalar_one_or_none()

    profile = {"username": username, "first_name": first_name, "last_name": last_name}

    if user is None:
        user = User(telegram_id=telegram_id, **profile)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        logger.info(f"Зарегистрирован участник {user.id} (telegram {telegram_id})")
        return user

    changed = {key: value for key, value in profile.items() if getattr(user, key) != value}
    if changed:
        for key, value in changed.items():
            setattr(user, key, value)
        await session.commit()

    return user


async def get_user(session: AsyncSession, user_id: int) -> Optional[User]:
    """Получить участника по внутреннему ID"""
    return await session.get(User, user_id)
