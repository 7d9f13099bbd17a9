"""Сервис для работы с аукционами: создание, отмена, удаление и завершение"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from aiogram import Bot
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from database.models.notification import NotificationType
from database.models.watchlist import Watchlist
from services.user import get_user
from schemas.auction import AuctionCreate
from services.clock import as_utc, utc_now
from services.errors import (
    AuctionError,
    AuctionNotActive,
    AuctionStillActive,
    NotFound,
    NotOwner,
    OperationResult,
)
from services.notifications import PendingNotification, auction_link, dispatch_notifications
from services.pricing import format_currency
import logging

logger = logging.getLogger(__name__)


@dataclass
class AuctionWithBids:
    """Аукцион вместе с количеством ставок"""
    auction: Auction
    bids_count: int


@dataclass
class FinishOutcome:
    """Итог попытки завершить аукцион по времени"""
    auction: Auction
    finished: bool
    winner_id: Optional[int] = None


async def get_auction(session: AsyncSession, auction_id: int) -> Optional[Auction]:
    """Получить аукцион по ID"""
    result = await session.execute(
        select(Auction)
        .where(Auction.id == auction_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_auction_for_bid(
    session: AsyncSession,
    auction_id: int,
    lock: bool = False
) -> Optional[Auction]:
    """Получить аукцион для ставки.

    С lock=True строка блокируется до конца транзакции (SELECT ... FOR UPDATE),
    так что параллельные ставки на один лот выполняются по очереди.
    """
    query = select(Auction).where(Auction.id == auction_id)
    if lock:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def get_leading_bid(session: AsyncSession, auction_id: int) -> Optional[Bid]:
    """Текущая лидирующая ставка: самая высокая, при равенстве самая новая"""
    result = await session.execute(
        select(Bid)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.amount.desc(), Bid.created_at.desc(), Bid.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_bid_history(
    session: AsyncSession,
    auction_id: int,
    limit: int = 10
) -> list[Bid]:
    """История ставок аукциона, новые первыми"""
    result = await session.execute(
        select(Bid)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_bidder_ids(session: AsyncSession, auction_id: int) -> list[int]:
    """Уникальные участники торгов"""
    result = await session.execute(
        select(Bid.user_id).where(Bid.auction_id == auction_id).distinct()
    )
    return [row[0] for row in result.all()]


async def get_active_auctions(session: AsyncSession) -> list[Auction]:
    """Получить активные аукционы"""
    result = await session.execute(
        select(Auction)
        .where(Auction.status == AuctionStatus.ACTIVE.value)
        .order_by(Auction.end_time.asc())
    )
    return list(result.scalars().all())


async def get_user_auctions(
    session: AsyncSession,
    user_id: int,
    status: Optional[AuctionStatus] = None
) -> list[AuctionWithBids]:
    """Аукционы продавца, новые первыми. Можно отфильтровать по статусу."""
    query = (
        select(Auction, func.count(Bid.id))
        .outerjoin(Bid, Bid.auction_id == Auction.id)
        .where(Auction.user_id == user_id)
        .group_by(Auction.id)
        .order_by(Auction.created_at.desc(), Auction.id.desc())
    )
    if status is not None:
        query = query.where(Auction.status == AuctionStatus(status).value)

    result = await session.execute(query)
    return [AuctionWithBids(auction=auction, bids_count=count) for auction, count in result.all()]


async def get_expired_auction_ids(
    session: AsyncSession,
    now: Optional[datetime] = None
) -> list[int]:
    """ID активных аукционов, время которых вышло"""
    now = as_utc(now) or utc_now()
    result = await session.execute(
        select(Auction.id).where(
            Auction.status == AuctionStatus.ACTIVE.value,
            Auction.end_time <= now
        ).order_by(Auction.end_time.asc())
    )
    return [row[0] for row in result.all()]


async def create_auction(
    session: AsyncSession,
    seller_id: int,
    data: AuctionCreate,
    now: Optional[datetime] = None,
    bot: Optional[Bot] = None
) -> Auction:
    """Создать аукцион. Торги начинаются сразу."""
    now = as_utc(now) or utc_now()

    auction = Auction(
        user_id=seller_id,
        title=data.title,
        description=data.description,
        category=data.category.value,
        condition=data.condition.value,
        starting_price=data.starting_price,
        current_price=data.starting_price,
        buy_now_price=data.buy_now_price,
        status=AuctionStatus.ACTIVE.value,
        start_time=now,
        end_time=now + timedelta(days=data.duration_days),
    )
    session.add(auction)
    await session.commit()
    await session.refresh(auction)
    logger.info(f"Аукцион {auction.id} создан продавцом {seller_id}, завершится {auction.end_time}")

    await dispatch_notifications(session, [
        PendingNotification(
            user_id=seller_id,
            type=NotificationType.AUCTION_CREATED,
            message=f"Ваш аукцион «{auction.title}» опубликован. "
                    f"Начальная цена: {format_currency(auction.starting_price)}",
            link=auction_link(auction.id),
        )
    ], bot)
    return auction


async def cancel_auction(
    session: AsyncSession,
    auction_id: int,
    user_id: int,
    bot: Optional[Bot] = None
) -> OperationResult[Auction]:
    """Отменить аукцион. Доступно только продавцу и только пока торги идут.

    Ставки остаются в истории без изменений.
    """
    try:
        auction = await get_auction_for_bid(session, auction_id, lock=True)
        if not auction:
            raise NotFound()
        if auction.user_id != user_id:
            raise NotOwner("Отменить аукцион может только продавец")
        if auction.status != AuctionStatus.ACTIVE.value:
            raise AuctionNotActive("Отменить можно только активный аукцион")

        result = await session.execute(
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.status == AuctionStatus.ACTIVE.value
            )
            .values(status=AuctionStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AuctionNotActive("Отменить можно только активный аукцион")

        bidder_ids = await get_bidder_ids(session, auction_id)
        await session.commit()
    except AuctionError as e:
        # До отказа ничего не записано: фиксация снимает блокировку строки
        # и не сбрасывает объекты, загруженные вызывающим кодом
        await session.commit()
        logger.info(f"Отмена аукциона {auction_id} пользователем {user_id} отклонена: {e.code}")
        return OperationResult.fail(e)
    except Exception:
        await session.rollback()
        raise

    await session.refresh(auction)
    logger.info(f"Аукцион {auction_id} отменен продавцом")

    await dispatch_notifications(session, [
        PendingNotification(
            user_id=bidder_id,
            type=NotificationType.AUCTION_CANCELLED,
            message=f"Аукцион «{auction.title}» отменен продавцом",
            link=auction_link(auction_id),
        )
        for bidder_id in bidder_ids
    ], bot)
    return OperationResult.ok(auction)


async def delete_auction(
    session: AsyncSession,
    auction_id: int,
    user_id: int
) -> OperationResult[None]:
    """Удалить завершенный или отмененный аукцион вместе со ставками и записями избранного"""
    try:
        auction = await get_auction_for_bid(session, auction_id, lock=True)
        if not auction:
            raise NotFound()
        if auction.user_id != user_id:
            raise NotOwner("Удалить аукцион может только продавец")
        if auction.status == AuctionStatus.ACTIVE.value:
            raise AuctionStillActive()

        await session.execute(
            delete(Watchlist).where(Watchlist.auction_id == auction_id)
        )
        await session.execute(
            delete(Bid).where(Bid.auction_id == auction_id)
        )
        await session.execute(
            delete(Auction).where(
                Auction.id == auction_id,
                Auction.status != AuctionStatus.ACTIVE.value
            )
        )
        await session.commit()
    except AuctionError as e:
        # До отказа ничего не записано: фиксация снимает блокировку строки
        # и не сбрасывает объекты, загруженные вызывающим кодом
        await session.commit()
        logger.info(f"Удаление аукциона {auction_id} пользователем {user_id} отклонено: {e.code}")
        return OperationResult.fail(e)
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Аукцион {auction_id} удален продавцом")
    return OperationResult.ok()


async def finish_auction(
    session: AsyncSession,
    auction_id: int,
    now: Optional[datetime] = None,
    bot: Optional[Bot] = None
) -> OperationResult[FinishOutcome]:
    """Завершить аукцион по времени и определить победителя.

    Операция идемпотентна: для уже завершенного, отмененного или еще не
    истекшего аукциона ничего не меняется и возвращается finished=False.
    """
    now = as_utc(now) or utc_now()

    try:
        auction = await get_auction_for_bid(session, auction_id, lock=True)
        if not auction:
            raise NotFound()

        if auction.status != AuctionStatus.ACTIVE.value or as_utc(auction.end_time) > now:
            # Ничего не меняли: фиксация сохраняет загруженные атрибуты
            await session.commit()
            return OperationResult.ok(FinishOutcome(auction=auction, finished=False, winner_id=auction.winner_id))

        # Находим выигрышную ставку
        winning_bid = await get_leading_bid(session, auction_id)
        winner_id = winning_bid.user_id if winning_bid else None

        result = await session.execute(
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.status == AuctionStatus.ACTIVE.value
            )
            .values(
                status=AuctionStatus.ENDED.value,
                winner_id=winner_id
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Аукцион завершили параллельно
            auction = await get_auction(session, auction_id)
            await session.commit()
            return OperationResult.ok(FinishOutcome(auction=auction, finished=False, winner_id=auction.winner_id))

        await session.commit()
    except AuctionError as e:
        # До отказа ничего не записано: фиксация снимает блокировку строки
        # и не сбрасывает объекты, загруженные вызывающим кодом
        await session.commit()
        return OperationResult.fail(e)
    except Exception:
        await session.rollback()
        raise

    await session.refresh(auction)
    logger.info(f"Аукцион {auction_id} завершен. Победитель: {winner_id}")

    link = auction_link(auction_id)
    if winning_bid:
        winner = await get_user(session, winner_id)
        winner_name = winner.display_name if winner else "неизвестен"
        pending = [
            PendingNotification(
                user_id=auction.user_id,
                type=NotificationType.AUCTION_ENDED,
                message=f"Ваш аукцион «{auction.title}» завершен. Победитель: {winner_name}",
                link=link,
            ),
            PendingNotification(
                user_id=winner_id,
                type=NotificationType.AUCTION_WON,
                message=f"Поздравляем! Вы выиграли «{auction.title}» за "
                        f"{format_currency(winning_bid.amount)}",
                link=link,
            ),
        ]
    else:
        pending = [
            PendingNotification(
                user_id=auction.user_id,
                type=NotificationType.AUCTION_ENDED,
                message=f"Ваш аукцион «{auction.title}» завершился без ставок",
                link=link,
            )
        ]

    await dispatch_notifications(session, pending, bot)
    return OperationResult.ok(FinishOutcome(auction=auction, finished=True, winner_id=winner_id))
