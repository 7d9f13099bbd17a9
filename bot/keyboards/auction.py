"""Клавиатуры для аукционов"""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from database.models.auction import Auction
from services.pricing import format_currency, quick_bid_amounts


def get_auction_keyboard(auction: Auction) -> InlineKeyboardMarkup:
    """Клавиатура активного аукциона: быстрые ставки, покупка, история, избранное"""
    builder = InlineKeyboardBuilder()
    # Быстрые ставки: текущая цена + шаг x1, x2, x5
    for amount in quick_bid_amounts(auction.current_price):
        builder.add(InlineKeyboardButton(
            text=f"💰 {format_currency(amount)}",
            callback_data=f"bid:amount:{auction.id}:{amount}"
        ))
    if auction.buy_now_price:
        builder.add(InlineKeyboardButton(
            text=f"⚡️ Купить сейчас за {format_currency(auction.buy_now_price)}",
            callback_data=f"auction:buynow:{auction.id}"
        ))
    builder.add(InlineKeyboardButton(
        text="📊 История ставок",
        callback_data=f"auction:bids:{auction.id}"
    ))
    builder.add(InlineKeyboardButton(
        text="⭐ В избранное",
        callback_data=f"watch:add:{auction.id}"
    ))
    # Быстрые ставки в одну строку, остальное по одной кнопке
    builder.adjust(3, 1)
    return builder.as_markup()


def get_history_keyboard(auction_id: int) -> InlineKeyboardMarkup:
    """Кнопка возврата к лоту"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text="🔄 Обновить лот",
        callback_data=f"auction:show:{auction_id}"
    ))
    return builder.as_markup()
