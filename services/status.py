"""Вычисление статуса ставки пользователя и статуса аукциона для показа.

Все функции чистые: работают только с переданными данными и могут
вызываться параллельно с записью ставок. Результат: снимок на момент `now`.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from services.clock import as_utc, utc_now


class BidStatus(str, enum.Enum):
    """Статус ставки пользователя"""
    WINNING = "winning"
    OUTBID = "outbid"
    WON = "won"
    LOST = "lost"


class DisplayStatus(str, enum.Enum):
    """Статус аукциона для показа"""
    ACTIVE = "Active"
    ENDED = "Ended"
    SOLD = "Sold"
    CANCELLED = "Cancelled"


def is_auction_active(auction, now: Optional[datetime] = None) -> bool:
    """Аукцион принимает ставки: ACTIVE, уже начался и еще не истек"""
    now = as_utc(now) or utc_now()
    start_time = as_utc(auction.start_time)
    return (
        auction.status == AuctionStatus.ACTIVE.value
        and (start_time is None or start_time <= now)
        and now < as_utc(auction.end_time)
    )


def is_auction_ended(auction, now: Optional[datetime] = None) -> bool:
    """Аукцион завершен: статус ENDED или время вышло"""
    now = as_utc(now) or utc_now()
    return auction.status == AuctionStatus.ENDED.value or as_utc(auction.end_time) <= now


def is_auction_cancelled(auction) -> bool:
    return auction.status == AuctionStatus.CANCELLED.value


def derive_bid_status(
    user_highest_bid_amount,
    auction,
    now: Optional[datetime],
    user_id: int
) -> BidStatus:
    """Статус ставки пользователя на аукционе.

    Лидерство определяется равенством лучшей ставки пользователя текущей цене:
    цена меняется только на сумму принятой ставки, которая строго выше
    предыдущей, поэтому две разные ставки не могут совпасть с ней одновременно.
    """
    now = as_utc(now) or utc_now()

    if is_auction_ended(auction, now):
        if auction.winner_id is not None and auction.winner_id == user_id:
            return BidStatus.WON
        return BidStatus.LOST

    if is_auction_active(auction, now):
        if Decimal(str(user_highest_bid_amount)) == Decimal(str(auction.current_price)):
            return BidStatus.WINNING
        return BidStatus.OUTBID

    # Отменен или еще не начался
    return BidStatus.LOST


def auction_display_status(auction, now: Optional[datetime] = None) -> DisplayStatus:
    """Статус аукциона для карточки лота"""
    now = as_utc(now) or utc_now()

    if is_auction_cancelled(auction):
        return DisplayStatus.CANCELLED
    if is_auction_ended(auction, now):
        return DisplayStatus.SOLD if auction.winner_id else DisplayStatus.ENDED
    return DisplayStatus.ACTIVE


@dataclass
class UserBidSummary:
    """Лучшая ставка пользователя на аукционе вместе с ее статусом"""
    bid_id: int
    auction_id: int
    auction_title: str
    amount: Decimal
    current_price: Decimal
    created_at: datetime
    status: BidStatus


async def get_user_bids(
    session: AsyncSession,
    user_id: int,
    now: Optional[datetime] = None
) -> list[UserBidSummary]:
    """Ставки пользователя: по одной (самой высокой) на каждый аукцион"""
    now = as_utc(now) or utc_now()

    result = await session.execute(
        select(Bid, Auction)
        .join(Auction, Bid.auction_id == Auction.id)
        .where(Bid.user_id == user_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
    )

    best: dict[int, tuple[Bid, Auction]] = {}
    for bid, auction in result.all():
        existing = best.get(auction.id)
        if existing is None or bid.amount > existing[0].amount:
            best[auction.id] = (bid, auction)

    return [
        UserBidSummary(
            bid_id=bid.id,
            auction_id=auction.id,
            auction_title=auction.title,
            amount=bid.amount,
            current_price=auction.current_price,
            created_at=bid.created_at,
            status=derive_bid_status(bid.amount, auction, now, user_id),
        )
        for bid, auction in best.values()
    ]


def group_user_bids(summaries: list[UserBidSummary]) -> dict[str, list[UserBidSummary]]:
    """Разбить ставки на активные, выигранные и проигранные"""
    groups = {"active": [], "won": [], "lost": []}
    for summary in summaries:
        if summary.status in (BidStatus.WINNING, BidStatus.OUTBID):
            groups["active"].append(summary)
        elif summary.status == BidStatus.WON:
            groups["won"].append(summary)
        else:
            groups["lost"].append(summary)
    return groups
