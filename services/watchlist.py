"""Сервис избранного: аукционы, за которыми следит пользователь"""
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from database.models.auction import Auction
from database.models.bid import Bid
from database.models.watchlist import Watchlist
from services.errors import AlreadyInWatchlist, AuctionError, NotFound, OperationResult
import logging

logger = logging.getLogger(__name__)


@dataclass
class WatchlistItem:
    """Запись избранного вместе с аукционом и количеством ставок"""
    watchlist_id: int
    auction: Auction
    bids_count: int
    created_at: datetime


async def is_in_watchlist(session: AsyncSession, user_id: int, auction_id: int) -> bool:
    """Есть ли аукцион в избранном пользователя"""
    result = await session.execute(
        select(Watchlist.id).where(
            Watchlist.user_id == user_id,
            Watchlist.auction_id == auction_id
        )
    )
    return result.first() is not None


async def add_to_watchlist(
    session: AsyncSession,
    user_id: int,
    auction_id: int
) -> OperationResult[Watchlist]:
    """Добавить аукцион в избранное"""
    try:
        auction = await session.get(Auction, auction_id)
        if not auction:
            raise NotFound()
        if await is_in_watchlist(session, user_id, auction_id):
            raise AlreadyInWatchlist()

        item = Watchlist(user_id=user_id, auction_id=auction_id)
        session.add(item)
        try:
            await session.commit()
        except IntegrityError:
            # Ту же запись добавили параллельно
            await session.rollback()
            raise AlreadyInWatchlist()
    except AuctionError as e:
        await session.commit()
        return OperationResult.fail(e)

    await session.refresh(item)
    logger.info(f"Пользователь {user_id} следит за аукционом {auction_id}")
    return OperationResult.ok(item)


async def remove_from_watchlist(session: AsyncSession, user_id: int, auction_id: int) -> bool:
    """Убрать аукцион из избранного. Возвращает True, если запись была."""
    result = await session.execute(
        delete(Watchlist).where(
            Watchlist.user_id == user_id,
            Watchlist.auction_id == auction_id
        )
    )
    await session.commit()
    return result.rowcount > 0


async def get_user_watchlist(session: AsyncSession, user_id: int) -> list[WatchlistItem]:
    """Избранное пользователя, недавно добавленные первыми"""
    bids_count = (
        select(func.count(Bid.id))
        .where(Bid.auction_id == Watchlist.auction_id)
        .correlate(Watchlist)
        .scalar_subquery()
    )
    result = await session.execute(
        select(Watchlist, Auction, bids_count)
        .join(Auction, Watchlist.auction_id == Auction.id)
        .where(Watchlist.user_id == user_id)
        .order_by(Watchlist.created_at.desc(), Watchlist.id.desc())
    )
    return [
        WatchlistItem(
            watchlist_id=item.id,
            auction=auction,
            bids_count=count,
            created_at=item.created_at,
        )
        for item, auction, count in result.all()
    ]
