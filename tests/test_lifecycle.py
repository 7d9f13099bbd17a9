from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func, select

from database.models import AuctionStatus, Bid, Notification, NotificationType
from schemas.auction import AuctionCreate
from services.auction import (
    cancel_auction,
    create_auction,
    delete_auction,
    finish_auction,
    get_active_auctions,
    get_auction,
    get_bid_history,
    get_expired_auction_ids,
    get_leading_bid,
    get_user_auctions,
)
from services.bidding import place_bid
from services.clock import as_utc, utc_now
from services.errors import AuctionNotActive, AuctionStillActive, NotFound, NotOwner
from services.status import BidStatus, get_user_bids


async def notifications_for(session, user_id, type_):
    result = await session.execute(
        select(Notification).where(Notification.user_id == user_id, Notification.type == type_.value)
    )
    return list(result.scalars().all())


async def test_create_auction_starts_immediately(session, make_user):
    seller = await make_user("seller")
    now = utc_now()
    data = AuctionCreate(
        title="Калькулятор TI-84",
        description="Работает, есть чехол и батарейки",
        category="ELECTRONICS",
        condition="Good",
        starting_price="25.00",
        buy_now_price="60.00",
        duration_days=3,
    )

    auction = await create_auction(session, seller.id, data, now=now)

    assert auction.id is not None
    assert auction.status == AuctionStatus.ACTIVE.value
    assert auction.current_price == Decimal("25.00")
    assert as_utc(auction.end_time) - as_utc(auction.start_time) == timedelta(days=3)
    assert len(await notifications_for(session, seller.id, NotificationType.AUCTION_CREATED)) == 1


async def test_cancel_with_bids_makes_everyone_lose(session, make_user, make_auction):
    seller = await make_user("seller")
    alice = await make_user("alice")
    bob = await make_user("bob")
    auction = await make_auction(seller)
    await place_bid(session, auction.id, alice.id, Decimal("15.00"))
    await place_bid(session, auction.id, bob.id, Decimal("20.00"))

    result = await cancel_auction(session, auction.id, seller.id)

    assert result.success
    assert result.value.status == AuctionStatus.CANCELLED.value
    for user in (alice, bob):
        assert [b.status for b in await get_user_bids(session, user.id)] == [BidStatus.LOST]
        assert len(await notifications_for(session, user.id, NotificationType.AUCTION_CANCELLED)) == 1
    # Ставки остаются в истории
    assert len(await get_bid_history(session, auction.id)) == 2


async def test_cancel_by_non_owner_is_rejected(session, make_user, make_auction):
    seller = await make_user("seller")
    other = await make_user("other")
    auction = await make_auction(seller)
    auction_id = auction.id

    result = await cancel_auction(session, auction_id, other.id)

    assert isinstance(result.error, NotOwner)
    assert (await get_auction(session, auction_id)).status == AuctionStatus.ACTIVE.value


async def test_cancel_finished_auction_is_rejected(session, make_user, make_auction):
    seller = await make_user("seller")
    auction = await make_auction(seller, status=AuctionStatus.ENDED)

    result = await cancel_auction(session, auction.id, seller.id)

    assert isinstance(result.error, AuctionNotActive)


async def test_cancel_missing_auction(session, make_user):
    seller = await make_user("seller")

    result = await cancel_auction(session, 12345, seller.id)

    assert isinstance(result.error, NotFound)


async def test_delete_active_auction_is_rejected(session, make_user, make_auction):
    seller = await make_user("seller")
    auction = await make_auction(seller)
    auction_id = auction.id

    result = await delete_auction(session, auction_id, seller.id)

    assert isinstance(result.error, AuctionStillActive)
    assert await get_auction(session, auction_id) is not None


async def test_delete_by_non_owner_is_rejected(session, make_user, make_auction):
    seller = await make_user("seller")
    other = await make_user("other")
    auction = await make_auction(seller, status=AuctionStatus.ENDED)

    result = await delete_auction(session, auction.id, other.id)

    assert isinstance(result.error, NotOwner)


async def test_delete_cancelled_auction_removes_bids(session, make_user, make_auction):
    seller = await make_user("seller")
    bidder = await make_user("bidder")
    auction = await make_auction(seller)
    auction_id = auction.id
    await place_bid(session, auction_id, bidder.id, Decimal("15.00"))
    await cancel_auction(session, auction_id, seller.id)

    result = await delete_auction(session, auction_id, seller.id)

    assert result.success
    assert await get_auction(session, auction_id) is None
    count = await session.execute(select(func.count(Bid.id)).where(Bid.auction_id == auction_id))
    assert count.scalar() == 0


async def test_finish_auction_with_bids_sets_winner(session, make_user, make_auction, bot):
    seller = await make_user("seller")
    alice = await make_user("alice")
    bob = await make_user("bob")
    auction = await make_auction(seller, ends_in=timedelta(hours=1))
    await place_bid(session, auction.id, alice.id, Decimal("15.00"))
    await place_bid(session, auction.id, bob.id, Decimal("20.00"))

    result = await finish_auction(session, auction.id, now=as_utc(auction.end_time), bot=bot)

    assert result.success
    assert result.value.finished
    assert result.value.winner_id == bob.id
    assert result.value.auction.status == AuctionStatus.ENDED.value
    assert len(await notifications_for(session, bob.id, NotificationType.AUCTION_WON)) == 1
    assert len(await notifications_for(session, seller.id, NotificationType.AUCTION_ENDED)) == 1

    after = as_utc(auction.end_time) + timedelta(minutes=1)
    assert [b.status for b in await get_user_bids(session, bob.id, now=after)] == [BidStatus.WON]
    assert [b.status for b in await get_user_bids(session, alice.id, now=after)] == [BidStatus.LOST]


async def test_finish_auction_without_bids(session, make_user, make_auction):
    seller = await make_user("seller")
    auction = await make_auction(seller, ends_in=timedelta(minutes=-1))

    result = await finish_auction(session, auction.id)

    assert result.value.finished
    assert result.value.winner_id is None
    assert result.value.auction.status == AuctionStatus.ENDED.value
    ended = await notifications_for(session, seller.id, NotificationType.AUCTION_ENDED)
    assert len(ended) == 1
    assert "без ставок" in ended[0].message


async def test_finish_auction_is_idempotent(session, make_user, make_auction):
    seller = await make_user("seller")
    bidder = await make_user("bidder")
    auction = await make_auction(seller, ends_in=timedelta(hours=1))
    await place_bid(session, auction.id, bidder.id, Decimal("15.00"))
    later = as_utc(auction.end_time) + timedelta(seconds=1)

    first = await finish_auction(session, auction.id, now=later)
    second = await finish_auction(session, auction.id, now=later)

    assert first.value.finished
    assert not second.value.finished
    assert second.value.winner_id == bidder.id
    won = await notifications_for(session, bidder.id, NotificationType.AUCTION_WON)
    assert len(won) == 1


async def test_finish_before_end_time_does_nothing(session, make_user, make_auction):
    seller = await make_user("seller")
    auction = await make_auction(seller, ends_in=timedelta(hours=1))

    result = await finish_auction(session, auction.id)

    assert not result.value.finished
    assert result.value.auction.status == AuctionStatus.ACTIVE.value


async def test_finish_cancelled_auction_does_nothing(session, make_user, make_auction):
    seller = await make_user("seller")
    auction = await make_auction(seller, status=AuctionStatus.CANCELLED, ends_in=timedelta(minutes=-1))

    result = await finish_auction(session, auction.id)

    assert not result.value.finished
    assert result.value.auction.status == AuctionStatus.CANCELLED.value


async def test_leading_bid_and_expired_ids(session, make_user, make_auction):
    seller = await make_user("seller")
    bidder = await make_user("bidder")
    expired = await make_auction(seller, ends_in=timedelta(minutes=-5))
    running = await make_auction(seller, ends_in=timedelta(hours=5))
    await place_bid(session, running.id, bidder.id, Decimal("12.00"))
    await place_bid(session, running.id, bidder.id, Decimal("14.00"))

    leading = await get_leading_bid(session, running.id)
    assert leading.amount == Decimal("14.00")
    assert await get_expired_auction_ids(session) == [expired.id]


async def test_active_auctions_sorted_by_end_time(session, make_user, make_auction):
    seller = await make_user("seller")
    later = await make_auction(seller, ends_in=timedelta(days=3))
    sooner = await make_auction(seller, ends_in=timedelta(hours=3))
    await make_auction(seller, status=AuctionStatus.CANCELLED)

    active = await get_active_auctions(session)

    assert [a.id for a in active] == [sooner.id, later.id]


async def test_rejected_cancel_keeps_loaded_objects_usable(session, make_user, make_auction):
    seller = await make_user("seller")
    other = await make_user("other")
    auction = await make_auction(seller)

    result = await cancel_auction(session, auction.id, other.id)
    deleted = await delete_auction(session, auction.id, seller.id)

    assert isinstance(result.error, NotOwner)
    assert isinstance(deleted.error, AuctionStillActive)
    assert auction.status == AuctionStatus.ACTIVE.value
    assert other.username == "other"


async def test_user_auctions_with_bid_counts(session, make_user, make_auction):
    seller = await make_user("seller")
    other_seller = await make_user("other_seller")
    bidder = await make_user("bidder")
    first = await make_auction(seller, title="Настольная лампа")
    second = await make_auction(seller, title="Чайник")
    cancelled = await make_auction(seller, status=AuctionStatus.CANCELLED, title="Стул")
    await make_auction(other_seller)
    await place_bid(session, first.id, bidder.id, Decimal("12.00"))
    await place_bid(session, first.id, bidder.id, Decimal("14.00"))

    items = await get_user_auctions(session, seller.id)

    # Новые первыми
    assert [item.auction.id for item in items] == [cancelled.id, second.id, first.id]
    counts = {item.auction.id: item.bids_count for item in items}
    assert counts == {first.id: 2, second.id: 0, cancelled.id: 0}


async def test_user_auctions_status_filter(session, make_user, make_auction):
    seller = await make_user("seller")
    active = await make_auction(seller)
    ended = await make_auction(seller, status=AuctionStatus.ENDED)
    await make_auction(seller, status=AuctionStatus.CANCELLED)

    assert [i.auction.id for i in await get_user_auctions(session, seller.id, AuctionStatus.ACTIVE)] == [active.id]
    assert [i.auction.id for i in await get_user_auctions(session, seller.id, "ENDED")] == [ended.id]
    assert await get_user_auctions(session, 99999) == []
