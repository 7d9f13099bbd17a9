"""Сервис ставок и мгновенной покупки.

Чтение аукциона, проверка суммы и запись новой цены выполняются в одной
транзакции. Строка аукциона блокируется (SELECT ... FOR UPDATE), а сама цена
меняется условным UPDATE, который срабатывает только если цена все еще ниже
новой ставки. Проигравшая гонку ставка получает BidTooLow с актуальной ценой
и никогда не перезаписывает чужую.

Отказ возвращается как OperationResult с ошибкой. Транзакция при отказе
фиксируется без изменений, поэтому объекты, уже загруженные в сессию
вызывающего кода, остаются доступными.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from aiogram import Bot
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from database.models.notification import NotificationType
from services.auction import get_auction_for_bid, get_leading_bid
from services.clock import as_utc, utc_now
from services.errors import (
    AuctionError,
    AuctionNotActive,
    BidTooLow,
    BuyNowUnavailable,
    InvalidBidAmount,
    NotFound,
    OperationResult,
    SellerCannotBid,
)
from services.notifications import PendingNotification, auction_link, dispatch_notifications
from services.pricing import CENT, format_currency
import logging

logger = logging.getLogger(__name__)


def _check_auction_open(auction: Optional[Auction], user_id: int, now: datetime, action: str = "bid"):
    """Общие проверки ставки и покупки: существует, активен, не продавец"""
    if not auction:
        raise NotFound()

    if auction.status != AuctionStatus.ACTIVE.value or as_utc(auction.end_time) <= now:
        raise AuctionNotActive()

    if auction.user_id == user_id:
        if action == "buy_now":
            raise SellerCannotBid("Нельзя купить собственный лот")
        raise SellerCannotBid()


def _parse_amount(amount) -> Decimal:
    """Сумма ставки как есть: без округления, не больше двух знаков после запятой"""
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite() or value <= 0 or value != value.quantize(CENT):
            raise InvalidBidAmount()
        return value.quantize(CENT)
    except InvalidOperation:
        raise InvalidBidAmount()


async def _raise_for_lost_race(session: AsyncSession, auction_id: int, user_id: int, now: datetime, action: str):
    """Условный UPDATE не сработал: аукцион изменился параллельно.

    Перечитываем строку и сообщаем причину по актуальным данным.
    """
    auction = await get_auction_for_bid(session, auction_id)
    _check_auction_open(auction, user_id, now, action)
    if action == "buy_now":
        raise BuyNowUnavailable()
    raise BidTooLow(auction.current_price)


async def place_bid(
    session: AsyncSession,
    auction_id: int,
    user_id: int,
    amount,
    now: Optional[datetime] = None,
    bot: Optional[Bot] = None
) -> OperationResult[Bid]:
    """Сделать ставку"""
    now = as_utc(now) or utc_now()

    try:
        amount = _parse_amount(amount)
        auction = await get_auction_for_bid(session, auction_id, lock=True)
        _check_auction_open(auction, user_id, now)

        # Ставка должна быть строго выше текущей цены
        if amount <= auction.current_price:
            raise BidTooLow(auction.current_price)

        leading_bid = await get_leading_bid(session, auction_id)
        previous_leader_id = leading_bid.user_id if leading_bid else None

        # Время окончания не меняется: продления торгов нет
        result = await session.execute(
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.status == AuctionStatus.ACTIVE.value,
                Auction.end_time > now,
                Auction.current_price < amount
            )
            .values(current_price=amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await _raise_for_lost_race(session, auction_id, user_id, now, "bid")

        bid = Bid(
            auction_id=auction_id,
            user_id=user_id,
            amount=amount,
            created_at=now
        )
        session.add(bid)
        await session.commit()
    except AuctionError as e:
        # До отказа ничего не записано: фиксация снимает блокировку строки
        # и не сбрасывает объекты, загруженные вызывающим кодом
        await session.commit()
        logger.info(f"Ставка {amount} на аукцион {auction_id} от пользователя {user_id} отклонена: {e.code}")
        return OperationResult.fail(e)
    except Exception:
        await session.rollback()
        raise

    await session.refresh(auction)
    logger.info(f"Ставка {bid.id} принята: аукцион {auction_id}, пользователь {user_id}, сумма {amount}")

    link = auction_link(auction_id)
    pending = []
    # Уведомляем предыдущего лидера, если его перебили
    if previous_leader_id and previous_leader_id != user_id:
        pending.append(PendingNotification(
            user_id=previous_leader_id,
            type=NotificationType.BID_OUTBID,
            message=f"Вашу ставку на «{auction.title}» перебили. "
                    f"Новая цена: {format_currency(amount)}",
            link=link,
        ))
    # Уведомляем продавца о новой ставке
    pending.append(PendingNotification(
        user_id=auction.user_id,
        type=NotificationType.BID_PLACED,
        message=f"Новая ставка на «{auction.title}». Текущая цена: {format_currency(amount)}",
        link=link,
    ))
    await dispatch_notifications(session, pending, bot)

    return OperationResult.ok(bid)


async def buy_now(
    session: AsyncSession,
    auction_id: int,
    user_id: int,
    now: Optional[datetime] = None,
    bot: Optional[Bot] = None
) -> OperationResult[Bid]:
    """Купить лот по цене мгновенной покупки и завершить аукцион"""
    now = as_utc(now) or utc_now()

    try:
        auction = await get_auction_for_bid(session, auction_id, lock=True)
        _check_auction_open(auction, user_id, now, "buy_now")

        if not auction.buy_now_price or auction.buy_now_price <= 0:
            raise BuyNowUnavailable()

        price: Decimal = auction.buy_now_price
        # Цена не может уменьшиться: если ставки уже выше, покупка недоступна
        if auction.current_price > price:
            raise BuyNowUnavailable("Текущая цена уже выше цены мгновенной покупки")

        leading_bid = await get_leading_bid(session, auction_id)
        previous_leader_id = leading_bid.user_id if leading_bid else None

        result = await session.execute(
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.status == AuctionStatus.ACTIVE.value,
                Auction.end_time > now,
                Auction.current_price <= price
            )
            .values(
                current_price=price,
                status=AuctionStatus.ENDED.value,
                winner_id=user_id
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await _raise_for_lost_race(session, auction_id, user_id, now, "buy_now")

        bid = Bid(
            auction_id=auction_id,
            user_id=user_id,
            amount=price,
            created_at=now
        )
        session.add(bid)
        await session.commit()
    except AuctionError as e:
        # До отказа ничего не записано: фиксация снимает блокировку строки
        # и не сбрасывает объекты, загруженные вызывающим кодом
        await session.commit()
        logger.info(f"Мгновенная покупка аукциона {auction_id} пользователем {user_id} отклонена: {e.code}")
        return OperationResult.fail(e)
    except Exception:
        await session.rollback()
        raise

    await session.refresh(auction)
    logger.info(f"Аукцион {auction_id} выкуплен пользователем {user_id} за {price}")

    link = auction_link(auction_id)
    formatted_price = format_currency(price)
    pending = []
    if previous_leader_id and previous_leader_id != user_id:
        pending.append(PendingNotification(
            user_id=previous_leader_id,
            type=NotificationType.BID_OUTBID,
            message=f"Лот «{auction.title}» выкуплен по цене {formatted_price}",
            link=link,
        ))
    pending.append(PendingNotification(
        user_id=auction.user_id,
        type=NotificationType.AUCTION_WON,
        message=f"Ваш лот «{auction.title}» выкуплен по цене {formatted_price}",
        link=link,
    ))
    pending.append(PendingNotification(
        user_id=user_id,
        type=NotificationType.AUCTION_WON,
        message=f"Поздравляем! Вы выиграли «{auction.title}» за {formatted_price}",
        link=link,
    ))
    await dispatch_notifications(session, pending, bot)

    return OperationResult.ok(bid)
