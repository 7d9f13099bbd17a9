from decimal import Decimal

from sqlalchemy import func, select

from database.models import AuctionStatus, Watchlist
from services.auction import cancel_auction, delete_auction
from services.bidding import place_bid
from services.errors import AlreadyInWatchlist, NotFound
from services.watchlist import (
    add_to_watchlist,
    get_user_watchlist,
    is_in_watchlist,
    remove_from_watchlist,
)


async def test_add_and_check(session, make_user, make_auction):
    seller = await make_user("seller")
    student = await make_user("student")
    auction = await make_auction(seller)

    assert not await is_in_watchlist(session, student.id, auction.id)

    result = await add_to_watchlist(session, student.id, auction.id)

    assert result.success
    assert result.value.auction_id == auction.id
    assert await is_in_watchlist(session, student.id, auction.id)
    assert not await is_in_watchlist(session, seller.id, auction.id)


async def test_add_twice_is_rejected(session, make_user, make_auction):
    seller = await make_user("seller")
    student = await make_user("student")
    auction = await make_auction(seller)
    await add_to_watchlist(session, student.id, auction.id)

    result = await add_to_watchlist(session, student.id, auction.id)

    assert isinstance(result.error, AlreadyInWatchlist)
    count = await session.execute(select(func.count(Watchlist.id)))
    assert count.scalar() == 1


async def test_add_missing_auction(session, make_user):
    student = await make_user("student")

    result = await add_to_watchlist(session, student.id, 12345)

    assert isinstance(result.error, NotFound)


async def test_remove(session, make_user, make_auction):
    seller = await make_user("seller")
    student = await make_user("student")
    auction = await make_auction(seller)
    await add_to_watchlist(session, student.id, auction.id)

    assert await remove_from_watchlist(session, student.id, auction.id)
    assert not await remove_from_watchlist(session, student.id, auction.id)
    assert not await is_in_watchlist(session, student.id, auction.id)


async def test_watchlist_newest_first_with_bid_counts(session, make_user, make_auction):
    seller = await make_user("seller")
    student = await make_user("student")
    bidder = await make_user("bidder")
    lamp = await make_auction(seller, title="Настольная лампа")
    kettle = await make_auction(seller, title="Чайник")
    await place_bid(session, lamp.id, bidder.id, Decimal("12.00"))
    await place_bid(session, lamp.id, bidder.id, Decimal("13.00"))
    await add_to_watchlist(session, student.id, lamp.id)
    await add_to_watchlist(session, student.id, kettle.id)

    items = await get_user_watchlist(session, student.id)

    assert [item.auction.title for item in items] == ["Чайник", "Настольная лампа"]
    assert [item.bids_count for item in items] == [0, 2]
    assert await get_user_watchlist(session, bidder.id) == []


async def test_delete_auction_clears_watchlist(session, make_user, make_auction):
    seller = await make_user("seller")
    student = await make_user("student")
    auction = await make_auction(seller)
    auction_id = auction.id
    await add_to_watchlist(session, student.id, auction_id)
    await cancel_auction(session, auction_id, seller.id)

    result = await delete_auction(session, auction_id, seller.id)

    assert result.success
    assert not await is_in_watchlist(session, student.id, auction_id)
    assert await get_user_watchlist(session, student.id) == []


async def test_cancelled_auction_stays_in_watchlist(session, make_user, make_auction):
    seller = await make_user("seller")
    student = await make_user("student")
    auction = await make_auction(seller)
    await add_to_watchlist(session, student.id, auction.id)

    await cancel_auction(session, auction.id, seller.id)

    items = await get_user_watchlist(session, student.id)
    assert [item.auction.status for item in items] == [AuctionStatus.CANCELLED.value]
