from decimal import Decimal

from conftest import FakeBot
from sqlalchemy import select

from database.models import Auction, Notification, NotificationType
from services import notifications
from services.bidding import place_bid
from services.notifications import (
    PendingNotification,
    count_unread,
    create_notification,
    dispatch_notifications,
    get_notifications,
    mark_all_as_read,
    mark_as_read,
    mark_notifications_as_read,
)


async def test_dispatch_stores_and_pushes(session, make_user, bot):
    user = await make_user("alice")

    stored = await dispatch_notifications(session, [
        PendingNotification(user_id=user.id, type=NotificationType.BID_OUTBID, message="Вас перебили", link="/auctions/1"),
    ], bot)

    assert stored == 1
    assert bot.sent == [(user.telegram_id, "🔔 Вас перебили")]
    items = await get_notifications(session, user.id)
    assert [(n.type, n.read) for n in items] == [(NotificationType.BID_OUTBID.value, False)]


async def test_dispatch_with_nothing_pending(session, bot):
    assert await dispatch_notifications(session, [], bot) == 0
    assert bot.sent == []


async def test_storage_failure_does_not_fail_bid(session, make_user, make_auction, monkeypatch):
    seller = await make_user("seller")
    bidder = await make_user("bidder")
    auction = await make_auction(seller)

    async def broken_store(session, pending):
        raise RuntimeError("таблица недоступна")

    monkeypatch.setattr(notifications, "_store_notifications", broken_store)

    result = await place_bid(session, auction.id, bidder.id, Decimal("15.00"))

    assert result.success
    refreshed = await session.get(Auction, auction.id, populate_existing=True)
    assert refreshed.current_price == Decimal("15.00")
    assert (await session.execute(select(Notification))).scalars().all() == []


async def test_telegram_failure_does_not_fail_bid(session, make_user, make_auction):
    seller = await make_user("seller")
    bidder = await make_user("bidder")
    auction = await make_auction(seller)

    result = await place_bid(session, auction.id, bidder.id, Decimal("15.00"), bot=FakeBot(fail=True))

    assert result.success
    # Уведомление сохранено, несмотря на сбой доставки
    assert len(await get_notifications(session, seller.id)) == 1


async def test_mark_as_read_only_own_notifications(session, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    notification = await create_notification(session, alice.id, NotificationType.BID_PLACED, "Новая ставка")

    assert not await mark_as_read(session, notification.id, bob.id)
    assert await count_unread(session, alice.id) == 1
    assert await mark_as_read(session, notification.id, alice.id)
    assert await count_unread(session, alice.id) == 0


async def test_mark_all_as_read_and_filters(session, make_user):
    alice = await make_user("alice")
    for i in range(3):
        await create_notification(session, alice.id, NotificationType.BID_OUTBID, f"Сообщение {i}")

    assert len(await get_notifications(session, alice.id, limit=2)) == 2
    assert len(await get_notifications(session, alice.id, unread_only=True)) == 3
    assert await mark_all_as_read(session, alice.id) == 3
    assert await get_notifications(session, alice.id, unread_only=True) == []
    assert await count_unread(session, alice.id) == 0


async def test_mark_only_shown_notifications_as_read(session, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    for i in range(3):
        await create_notification(session, alice.id, NotificationType.BID_OUTBID, f"Сообщение {i}")
    foreign = await create_notification(session, bob.id, NotificationType.BID_PLACED, "Новая ставка")

    shown = await get_notifications(session, alice.id, limit=2)
    updated = await mark_notifications_as_read(session, alice.id, [n.id for n in shown] + [foreign.id])

    # Чужое уведомление и не показанное остаются непрочитанными
    assert updated == 2
    assert await count_unread(session, alice.id) == 1
    assert await count_unread(session, bob.id) == 1
    assert await mark_notifications_as_read(session, alice.id, []) == 0
